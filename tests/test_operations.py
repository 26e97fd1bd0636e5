"""
Tests for the send, receive, depth, health, list, create and clear operations.
"""

import pytest
from unittest.mock import patch

from mockmq.exceptions import MockMQError, ErrorCode


@pytest.fixture
def queue(store):
    """Name of an existing queue."""
    store.create_queue("DEV.QUEUE.1")
    return "DEV.QUEUE.1"


@pytest.mark.unit
class TestSendOperation:
    """Test the send operation."""

    def test_send(self, operations, store, queue):
        """Test send puts the message and reports ids and depth."""
        envelope = operations.execute("send", {
            "queue": queue,
            "message": {"action": "GET_PRODUCT"},
            "correlationId": "CORR-X",
            "replyQueue": "REPLY.Q",
            "priority": 3
        })

        assert envelope.status_code == 200
        assert envelope.headers == {"Content-Type": "application/json"}
        body = envelope.body
        assert body["status"] == "SUCCESS"
        assert body["operation"] == "SEND"
        assert body["correlationId"] == "CORR-X"
        assert body["queueDepth"] == 1
        assert body["messageSize"] == len('{"action":"GET_PRODUCT"}')

        message = store.get(queue)
        assert message.message_id == body["messageId"]
        assert message.reply_to_queue == "REPLY.Q"
        assert message.priority == 3

    def test_send_uses_default_queue(self, operations, store, queue):
        """Test send without a queue targets the default queue."""
        operations.execute("send", {"message": "hello"})

        assert store.get(queue).payload == "hello"

    def test_send_payload_fallbacks(self, operations, store, queue):
        """Test the payload is message, then body, then the whole request."""
        operations.execute("send", {"body": "from body"})
        operations.execute("send", {"queue": queue, "anything": 1})

        assert store.get(queue).payload == "from body"
        assert store.get(queue).payload == {"queue": queue, "anything": 1}

    def test_send_to_missing_queue(self, operations):
        """Test send to an unknown queue reports a 500 with the reason code."""
        envelope = operations.execute("send", {"queue": "NOPE", "message": "x"})

        assert envelope.status_code == 500
        assert envelope.body["status"] == "ERROR"
        assert envelope.body["errorCode"] == "QUEUE_NOT_FOUND"
        assert envelope.body["mqrc"] == 2085

    def test_send_to_full_queue(self, operations, store):
        """Test send to a full queue reports MQRC_Q_FULL."""
        store.create_queue("FULL.Q", max_depth=1)
        operations.execute("send", {"queue": "FULL.Q", "message": 1})

        envelope = operations.execute("send", {"queue": "FULL.Q", "message": 2})

        assert envelope.status_code == 500
        assert envelope.body["mqrc"] == 2053
        assert store.get_queue_depth("FULL.Q").current_depth == 1

    def test_unknown_reason_code(self, operations, store):
        """Test errors without a reason code report ``Unknown``."""
        with patch.object(store, "put", side_effect=MockMQError("boom", ErrorCode.INTERNAL_SERVER_ERROR)):
            envelope = operations.execute("send", {"message": "x"})

        assert envelope.body["mqrc"] == "Unknown"

    def test_invalid_request_fields(self, operations, queue):
        """Test out of range request fields are a 400."""
        envelope = operations.execute("send", {"message": "x", "priority": 12})

        assert envelope.status_code == 400
        assert envelope.body["error"] == "Invalid request"
        assert envelope.body["errors"][0].startswith("priority:")


@pytest.mark.unit
class TestReceiveOperation:
    """Test the receive operation."""

    def test_receive(self, operations, queue):
        """Test receive returns the head message."""
        sent = operations.execute("send", {"message": {"n": 1}, "replyQueue": "R"}).body

        envelope = operations.execute("receive", {"queue": queue})

        body = envelope.body
        assert envelope.status_code == 200
        assert body["operation"] == "RECEIVE"
        assert body["message"] == {"n": 1}
        assert body["messageId"] == sent["messageId"]
        assert body["replyToQueue"] == "R"
        assert body["queueDepth"] == 0

    def test_browse(self, operations, store, queue):
        """Test browse reports the head and leaves it queued."""
        operations.execute("send", {"message": "x"})

        envelope = operations.execute("receive", {"browse": True})

        assert envelope.body["operation"] == "BROWSE"
        assert envelope.body["queueDepth"] == 1
        assert store.get_queue_depth(queue).total_messages_out == 0

    def test_receive_empty(self, operations, queue):
        """Test an empty queue answers 204 NO_MESSAGES."""
        envelope = operations.execute("receive", {})

        assert envelope.status_code == 204
        assert envelope.body["status"] == "NO_MESSAGES"

    def test_receive_missing_queue(self, operations):
        """Test receive from an unknown queue is a 500 with 2085."""
        envelope = operations.execute("receive", {"queue": "NOPE"})

        assert envelope.status_code == 500
        assert envelope.body["mqrc"] == 2085


@pytest.mark.unit
class TestQueueOperations:
    """Test depth, list, create and clear."""

    def test_depth(self, operations, store):
        """Test depth reports counters and utilization."""
        store.create_queue("SMALL.Q", max_depth=4)
        operations.execute("send", {"queue": "SMALL.Q", "message": 1})

        body = operations.execute("depth", {"queue": "SMALL.Q"}).body

        assert body["operation"] == "QUEUE_DEPTH"
        assert body["currentDepth"] == 1
        assert body["maxDepth"] == 4
        assert body["totalMessagesIn"] == 1
        assert body["utilization"] == "25.00%"
        assert body["warning"] is None

    def test_depth_warning(self, operations, store):
        """Test a nearly full queue carries a utilization warning."""
        store.create_queue("SMALL.Q", max_depth=5)
        for i in range(5):
            store.put("SMALL.Q", i)

        body = operations.execute("depth", {"queue": "SMALL.Q"}).body

        assert body["utilization"] == "100.00%"
        assert body["warning"] == "High queue utilization"

    def test_depth_missing_queue(self, operations):
        """Test depth of an unknown queue reports the reason code."""
        envelope = operations.execute("depth", {"queue": "NOPE"})

        assert envelope.status_code == 500
        assert envelope.body["mqrc"] == 2085

    def test_list(self, operations, store):
        """Test list reports every queue."""
        store.create_queue("A.Q")
        store.create_queue("B.Q")

        body = operations.execute("list", {}).body

        assert body["operation"] == "LIST_QUEUES"
        assert body["queueCount"] == 2
        assert [q["name"] for q in body["queues"]] == ["A.Q", "B.Q"]
        assert body["queues"][0]["currentDepth"] == 0

    def test_create(self, operations, store):
        """Test create makes a queue with the requested depth."""
        envelope = operations.execute("create", {"queueName": "NEW.Q", "maxDepth": 10, "description": "d"})

        assert envelope.status_code == 201
        assert envelope.body["created"] is True
        assert store.get_queue_depth("NEW.Q").max_depth == 10

    def test_create_existing(self, operations, store):
        """Test creating an existing queue answers 409 QUEUE_EXISTS."""
        store.create_queue("NEW.Q", max_depth=3)

        envelope = operations.execute("create", {"queue": "NEW.Q", "maxDepth": 99})

        assert envelope.status_code == 409
        assert envelope.body["status"] == "QUEUE_EXISTS"
        assert envelope.body["created"] is False
        assert store.get_queue_depth("NEW.Q").max_depth == 3

    @pytest.mark.parametrize("request_body", [{}, {"queueName": "BAD NAME"}, {"queueName": "Q" * 49}])
    def test_create_invalid_name(self, operations, request_body):
        """Test a missing or invalid name answers 400."""
        envelope = operations.execute("create", request_body)

        assert envelope.status_code == 400
        assert envelope.body["status"] == "ERROR"

    def test_clear(self, operations, store, queue):
        """Test clear reports how many messages were discarded."""
        for i in range(3):
            store.put(queue, i)

        body = operations.execute("clear", {}).body

        assert body["operation"] == "CLEAR_QUEUE"
        assert body["messagesCleared"] == 3
        assert store.get_queue_depth(queue).current_depth == 0

    def test_clear_missing_queue(self, operations):
        """Test clear of an unknown queue reports the reason code."""
        envelope = operations.execute("clear", {"queue": "NOPE"})

        assert envelope.status_code == 500
        assert envelope.body["mqrc"] == 2085


@pytest.mark.unit
class TestHealthAndDispatch:
    """Test health and unknown operations."""

    def test_health(self, operations, store, queue):
        """Test health reports the queue manager summary."""
        store.put(queue, "x")

        envelope = operations.execute("health")

        body = envelope.body
        assert envelope.status_code == 200
        assert body["operation"] == "HEALTH_CHECK"
        assert body["queueManager"] == "MOCK_QM1"
        assert body["queueManagerStatus"] == "RUNNING"
        assert body["queues"] == 1
        assert body["totalMessages"] == 1

    def test_health_failure(self, operations, store):
        """Test a failing queue manager answers 503."""
        with patch.object(store, "get_status", side_effect=MockMQError("down", ErrorCode.SERVICE_UNAVAILABLE)):
            envelope = operations.execute("health", {})

        assert envelope.status_code == 503
        assert envelope.body["error"] == "down"
        assert "mqrc" not in envelope.body

    def test_unknown_operation(self, operations):
        """Test unknown operations answer 400 listing the valid ones."""
        envelope = operations.execute("purge", {})

        assert envelope.status_code == 400
        assert envelope.body["error"] == "Unknown operation: purge"
        assert envelope.body["availableOperations"] == [
            "send", "receive", "depth", "health", "list", "create", "clear"
        ]

    def test_operations_are_counted(self, operations, metrics, queue):
        """Test every operation is counted and timed."""
        operations.execute("send", {"message": "x"})
        operations.execute("receive", {})

        assert metrics.get_metric_summary("mq.operations.total").count == 2
        assert metrics.get_metric_summary("mq.operations.duration_ms").count == 2
