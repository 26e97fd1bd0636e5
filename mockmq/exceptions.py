"""
Custom exception classes for the Mock MQ Manager.

This module defines a hierarchy of custom exceptions that provide structured
error handling throughout the application. Queue errors carry the IBM MQ
reason code (MQRC) a real queue manager would report for the same condition.
"""

import logging
from typing import Optional, Dict, Any, List
from enum import Enum, IntEnum


logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Standard error codes for the application."""

    # General errors
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    TIMEOUT = "TIMEOUT"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    # Queue errors
    QUEUE_NOT_FOUND = "QUEUE_NOT_FOUND"
    QUEUE_FULL = "QUEUE_FULL"
    QUEUE_ALREADY_EXISTS = "QUEUE_ALREADY_EXISTS"
    CONNECTION_NOT_FOUND = "CONNECTION_NOT_FOUND"

    # Imposter errors
    IMPOSTER_NOT_FOUND = "IMPOSTER_NOT_FOUND"
    IMPOSTER_ALREADY_EXISTS = "IMPOSTER_ALREADY_EXISTS"
    STUB_NOT_FOUND = "STUB_NOT_FOUND"
    PROCESSING_ERROR = "PROCESSING_ERROR"

    # Persistence errors
    STORAGE_ERROR = "STORAGE_ERROR"


class MQReasonCode(IntEnum):
    """IBM MQ reason codes reported by the simulator."""
    MQRC_CONNECTION_BROKEN = 2009
    MQRC_NO_MSG_AVAILABLE = 2033
    MQRC_NOT_AUTHORIZED = 2035
    MQRC_Q_FULL = 2053
    MQRC_UNKNOWN_OBJECT_NAME = 2085


class MockMQError(Exception):
    """Base exception class for all Mock MQ Manager errors.

    It provides structured error information including error codes, messages,
    additional context details and, for queue errors, an MQ reason code.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        mqrc: Optional[MQReasonCode] = None
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            error_code: Standardized error code
            details: Additional error context and details
            cause: The underlying exception that caused this error
            mqrc: MQ reason code for the condition, if any
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause
        self.mqrc = mqrc

        logger.debug(f"Exception created: {error_code.value} - {message}", exc_info=cause)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format for API responses."""
        result = {
            "error": self.error_code.value,
            "message": self.message,
            "details": dict(self.details)
        }

        if self.mqrc is not None:
            result["details"]["mqrc"] = int(self.mqrc)
            result["details"]["reason"] = self.mqrc.name

        if self.cause:
            result["details"]["cause"] = str(self.cause)
            result["details"]["cause_type"] = type(self.cause).__name__

        return result


# Queue Exceptions

class QueueManagerError(MockMQError):
    """Base exception for queue store operations."""


class QueueNotFoundError(QueueManagerError):
    """Raised when an operation references a queue that does not exist."""

    def __init__(self, queue_name: str, cause: Optional[Exception] = None):
        super().__init__(
            message=f"Queue '{queue_name}' does not exist",
            error_code=ErrorCode.QUEUE_NOT_FOUND,
            details={"queue": queue_name},
            cause=cause,
            mqrc=MQReasonCode.MQRC_UNKNOWN_OBJECT_NAME
        )
        self.queue_name = queue_name


class QueueFullError(QueueManagerError):
    """Raised when a put targets a queue at its maximum depth."""

    def __init__(self, queue_name: str, max_depth: int):
        super().__init__(
            message=f"Queue '{queue_name}' is full (max depth: {max_depth})",
            error_code=ErrorCode.QUEUE_FULL,
            details={"queue": queue_name, "max_depth": max_depth},
            mqrc=MQReasonCode.MQRC_Q_FULL
        )
        self.queue_name = queue_name
        self.max_depth = max_depth


class QueueAlreadyExistsError(QueueManagerError):
    """Raised when creating a queue whose name is taken."""

    def __init__(self, queue_name: str):
        super().__init__(
            message=f"Queue '{queue_name}' already exists",
            error_code=ErrorCode.QUEUE_ALREADY_EXISTS,
            details={"queue": queue_name}
        )
        self.queue_name = queue_name


class ConnectionNotFoundError(QueueManagerError):
    """Raised when disconnecting an unknown connection."""

    def __init__(self, connection_id: str):
        super().__init__(
            message=f"Connection '{connection_id}' not found",
            error_code=ErrorCode.CONNECTION_NOT_FOUND,
            details={"connection_id": connection_id},
            mqrc=MQReasonCode.MQRC_CONNECTION_BROKEN
        )
        self.connection_id = connection_id


# Configuration Exceptions

class ValidationError(MockMQError):
    """Raised when an imposter or operation request is malformed.

    All problems found are reported together in ``errors``.
    """

    def __init__(self, errors: List[str], message: str = "Validation failed",
                 cause: Optional[Exception] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_ERROR,
            details={"errors": list(errors)},
            cause=cause
        )
        self.errors = list(errors)


# Imposter Exceptions

class ImposterError(MockMQError):
    """Base exception for imposter management."""


class ImposterNotFoundError(ImposterError):
    """Raised when an imposter port is not registered."""

    def __init__(self, port: int):
        super().__init__(
            message=f"Imposter on port {port} not found",
            error_code=ErrorCode.IMPOSTER_NOT_FOUND,
            details={"port": port}
        )
        self.port = port


class ImposterAlreadyExistsError(ImposterError):
    """Raised when creating an imposter on a port already in use."""

    def __init__(self, port: int):
        super().__init__(
            message=f"Imposter on port {port} already exists",
            error_code=ErrorCode.IMPOSTER_ALREADY_EXISTS,
            details={"port": port}
        )
        self.port = port


class StubNotFoundError(ImposterError):
    """Raised when a stub index is out of range."""

    def __init__(self, port: int, index: int):
        super().__init__(
            message=f"Imposter on port {port} has no stub at index {index}",
            error_code=ErrorCode.STUB_NOT_FOUND,
            details={"port": port, "index": index}
        )
        self.port = port
        self.index = index


class ProcessingError(MockMQError):
    """Raised when an inbound message cannot be turned into a response."""

    def __init__(self, message_id: str, reason: str, cause: Optional[Exception] = None):
        super().__init__(
            message=f"Failed to process message '{message_id}': {reason}",
            error_code=ErrorCode.PROCESSING_ERROR,
            details={"message_id": message_id, "reason": reason},
            cause=cause
        )
        self.message_id = message_id
        self.reason = reason


# Persistence Exceptions

class StorageBackendError(MockMQError):
    """Raised when the state file cannot be read or written."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.STORAGE_ERROR,
            details=details,
            cause=cause
        )
        self.operation = operation
