"""
Tests for custom exception classes and error handling.
"""

import pytest

from mockmq.exceptions import (
    MockMQError,
    ErrorCode,
    MQReasonCode,
    QueueManagerError,
    QueueNotFoundError,
    QueueFullError,
    QueueAlreadyExistsError,
    ConnectionNotFoundError,
    ValidationError,
    ImposterError,
    ImposterNotFoundError,
    ImposterAlreadyExistsError,
    StubNotFoundError,
    ProcessingError,
    StorageBackendError
)


@pytest.mark.unit
class TestMockMQError:
    """Test the base exception class."""

    def test_basic_exception_creation(self):
        """Test creating a basic exception."""
        error = MockMQError(message="Test error")

        assert str(error) == "Test error"
        assert error.message == "Test error"
        assert error.error_code == ErrorCode.INTERNAL_SERVER_ERROR
        assert error.details == {}
        assert error.cause is None
        assert error.mqrc is None

    def test_exception_with_details_and_cause(self):
        """Test creating an exception with details and cause."""
        cause = ValueError("Original error")

        error = MockMQError(
            message="Test error",
            error_code=ErrorCode.SERVICE_UNAVAILABLE,
            details={"key": "value"},
            cause=cause
        )

        assert error.to_dict() == {
            "error": "SERVICE_UNAVAILABLE",
            "message": "Test error",
            "details": {
                "key": "value",
                "cause": "Original error",
                "cause_type": "ValueError"
            }
        }

    def test_to_dict_does_not_mutate_details(self):
        """Test serialization leaves the exception details untouched."""
        error = MockMQError("x", details={"a": 1}, mqrc=MQReasonCode.MQRC_Q_FULL)

        error.to_dict()

        assert error.details == {"a": 1}

    def test_reason_code_in_dict(self):
        """Test the MQ reason code and its name are reported."""
        error = MockMQError("x", mqrc=MQReasonCode.MQRC_NOT_AUTHORIZED)

        details = error.to_dict()["details"]

        assert details["mqrc"] == 2035
        assert details["reason"] == "MQRC_NOT_AUTHORIZED"


@pytest.mark.unit
class TestQueueExceptions:
    """Test queue store exceptions."""

    def test_queue_not_found(self):
        """Test the unknown object reason code."""
        error = QueueNotFoundError("MISSING.Q")

        assert isinstance(error, QueueManagerError)
        assert error.error_code == ErrorCode.QUEUE_NOT_FOUND
        assert error.mqrc == MQReasonCode.MQRC_UNKNOWN_OBJECT_NAME
        assert error.queue_name == "MISSING.Q"
        assert "MISSING.Q" in error.message

    def test_queue_full(self):
        """Test the queue full reason code and depth details."""
        error = QueueFullError("Q1", 2)

        assert error.mqrc == 2053
        assert error.to_dict()["details"] == {
            "queue": "Q1",
            "max_depth": 2,
            "mqrc": 2053,
            "reason": "MQRC_Q_FULL"
        }

    def test_queue_already_exists(self):
        """Test an existing queue carries no reason code."""
        error = QueueAlreadyExistsError("Q1")

        assert error.error_code == ErrorCode.QUEUE_ALREADY_EXISTS
        assert error.mqrc is None

    def test_connection_not_found(self):
        """Test unknown connections report a broken connection."""
        error = ConnectionNotFoundError("C1")

        assert error.mqrc == MQReasonCode.MQRC_CONNECTION_BROKEN
        assert error.details == {"connection_id": "C1"}


@pytest.mark.unit
class TestImposterExceptions:
    """Test imposter exceptions."""

    def test_validation_error_lists_every_problem(self):
        """Test all validation problems are kept together."""
        error = ValidationError(["first", "second"], message="MQ imposter validation failed")

        assert error.errors == ["first", "second"]
        assert error.to_dict()["details"] == {"errors": ["first", "second"]}
        assert error.error_code == ErrorCode.VALIDATION_ERROR

    @pytest.mark.parametrize("error, code", [
        (ImposterNotFoundError(2526), ErrorCode.IMPOSTER_NOT_FOUND),
        (ImposterAlreadyExistsError(2526), ErrorCode.IMPOSTER_ALREADY_EXISTS),
        (StubNotFoundError(2526, 3), ErrorCode.STUB_NOT_FOUND),
    ])
    def test_imposter_error_codes(self, error, code):
        """Test imposter errors map to their codes."""
        assert isinstance(error, ImposterError)
        assert error.error_code == code
        assert error.details["port"] == 2526

    def test_processing_error(self):
        """Test processing errors name the message and the reason."""
        cause = RuntimeError("boom")
        error = ProcessingError("MSG-1", "boom", cause=cause)

        assert error.message == "Failed to process message 'MSG-1': boom"
        assert error.reason == "boom"
        assert error.to_dict()["details"]["cause_type"] == "RuntimeError"


@pytest.mark.unit
class TestStorageExceptions:
    """Test persistence exceptions."""

    def test_storage_backend_error(self):
        """Test storage errors record the failed operation."""
        error = StorageBackendError("disk full", operation="save_state", details={"path": "/tmp/x"})

        assert error.error_code == ErrorCode.STORAGE_ERROR
        assert error.operation == "save_state"
        assert error.details == {"path": "/tmp/x"}
