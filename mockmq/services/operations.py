"""Operation Service exposing queue operations as result envelopes.

Each operation takes a loosely typed JSON request and answers with
``{statusCode, headers, body}``. Operations never raise for a failed queue
operation; the failure is reported in the envelope.
"""

import json
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from ..config import Settings
from ..exceptions import MockMQError
from ..models.base import utc_now
from ..models.message import PutOptions
from ..models.operation import Operation, OperationEnvelope, OperationRequest, OperationStatus
from ..models.queue import validate_queue_name
from ..utils.metrics import MetricsCollector, metrics_collector, time_operation


logger = logging.getLogger(__name__)


OPERATION_NAMES = {
    Operation.SEND: "SEND",
    Operation.RECEIVE: "RECEIVE",
    Operation.DEPTH: "QUEUE_DEPTH",
    Operation.HEALTH: "HEALTH_CHECK",
    Operation.LIST: "LIST_QUEUES",
    Operation.CREATE: "CREATE_QUEUE",
    Operation.CLEAR: "CLEAR_QUEUE",
}


def _timestamp() -> str:
    return utc_now().isoformat()


def _message_size(payload: Any) -> int:
    return len(json.dumps(payload, separators=(",", ":"), default=str))


class OperationService:
    """Runs the send, receive, depth, health, list, create and clear operations."""

    def __init__(self, store, settings: Optional[Settings] = None,
                 metrics: Optional[MetricsCollector] = None):
        if settings is None:
            from ..config import settings
        self.store = store
        self.default_queue = settings.mq.default_queue
        self.default_max_depth = settings.mq.max_depth
        self.high_utilization_percent = settings.monitoring.high_utilization_percent
        self.metrics = metrics or metrics_collector
        self._handlers = {
            Operation.SEND: self.send,
            Operation.RECEIVE: self.receive,
            Operation.DEPTH: self.depth,
            Operation.HEALTH: self.health,
            Operation.LIST: self.list_queues,
            Operation.CREATE: self.create,
            Operation.CLEAR: self.clear,
        }

    def execute(self, operation: str, request: Optional[Dict[str, Any]] = None) -> OperationEnvelope:
        """Run an operation by name."""
        try:
            op = Operation(operation)
        except ValueError:
            return self._envelope(400, {
                "status": OperationStatus.ERROR.value,
                "operation": str(operation).upper(),
                "error": f"Unknown operation: {operation}",
                "availableOperations": [o.value for o in Operation],
                "timestamp": _timestamp()
            })

        raw = request if isinstance(request, dict) else {}
        with time_operation('mq.operations.duration_ms', {'operation': op.value}, self.metrics):
            try:
                parsed = OperationRequest.model_validate(raw)
            except PydanticValidationError as e:
                envelope = self._envelope(400, {
                    "status": OperationStatus.ERROR.value,
                    "operation": OPERATION_NAMES[op],
                    "error": "Invalid request",
                    "errors": [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()],
                    "timestamp": _timestamp()
                })
            else:
                envelope = self._handlers[op](parsed, raw)

        self.metrics.counter('mq.operations.total', 1, {
            'operation': op.value,
            'status_code': str(envelope.status_code)
        })
        logger.debug(f"Operation {op.value} -> {envelope.status_code}")
        return envelope

    # Operations

    def send(self, request: OperationRequest, raw: Dict[str, Any]) -> OperationEnvelope:
        queue_name = request.queue or self.default_queue
        if request.message is not None:
            payload = request.message
        elif request.body is not None:
            payload = request.body
        else:
            payload = raw

        try:
            message = self.store.put(queue_name, payload, PutOptions(
                correlation_id=request.correlation_id,
                reply_to_queue=request.reply_queue,
                priority=request.priority,
                persistence=request.persistence
            ))
            depth = self.store.get_queue_depth(queue_name).current_depth
        except MockMQError as e:
            return self._error(Operation.SEND, e)

        return self._envelope(200, {
            "status": OperationStatus.SUCCESS.value,
            "operation": OPERATION_NAMES[Operation.SEND],
            "messageId": message.message_id,
            "correlationId": message.correlation_id,
            "queue": queue_name,
            "messageSize": _message_size(payload),
            "timestamp": message.put_time.isoformat(),
            "queueDepth": depth
        })

    def receive(self, request: OperationRequest, raw: Dict[str, Any]) -> OperationEnvelope:
        queue_name = request.queue or self.default_queue
        try:
            message = self.store.get(queue_name, browse=request.browse)
            depth = self.store.get_queue_depth(queue_name).current_depth
        except MockMQError as e:
            return self._error(Operation.RECEIVE, e)

        if message is None:
            return self._envelope(204, {
                "status": OperationStatus.NO_MESSAGES.value,
                "operation": OPERATION_NAMES[Operation.RECEIVE],
                "queue": queue_name,
                "timestamp": _timestamp()
            })

        return self._envelope(200, {
            "status": OperationStatus.SUCCESS.value,
            "operation": "BROWSE" if request.browse else OPERATION_NAMES[Operation.RECEIVE],
            "message": message.payload,
            "messageId": message.message_id,
            "correlationId": message.correlation_id,
            "replyToQueue": message.reply_to_queue,
            "queue": queue_name,
            "putTime": message.put_time.isoformat(),
            "priority": message.priority,
            "messageSize": _message_size(message.payload),
            "timestamp": _timestamp(),
            "queueDepth": depth
        })

    def depth(self, request: OperationRequest, raw: Dict[str, Any]) -> OperationEnvelope:
        queue_name = request.queue or self.default_queue
        try:
            info = self.store.get_queue_depth(queue_name)
        except MockMQError as e:
            return self._error(Operation.DEPTH, e)

        utilization = info.utilization
        return self._envelope(200, {
            "status": OperationStatus.SUCCESS.value,
            "operation": OPERATION_NAMES[Operation.DEPTH],
            "queue": queue_name,
            "currentDepth": info.current_depth,
            "maxDepth": info.max_depth,
            "openInputCount": info.open_input_count,
            "openOutputCount": info.open_output_count,
            "totalMessagesIn": info.total_messages_in,
            "totalMessagesOut": info.total_messages_out,
            "utilization": f"{utilization:.2f}%",
            "warning": "High queue utilization" if utilization > self.high_utilization_percent else None,
            "timestamp": _timestamp()
        })

    def health(self, request: OperationRequest, raw: Dict[str, Any]) -> OperationEnvelope:
        try:
            status = self.store.get_status()
        except MockMQError as e:
            return self._error(Operation.HEALTH, e, status_code=503)

        return self._envelope(200, {
            "status": OperationStatus.SUCCESS.value,
            "operation": OPERATION_NAMES[Operation.HEALTH],
            "queueManager": status.queue_manager,
            "queueManagerStatus": status.status,
            "queues": status.queues,
            "connections": status.connections,
            "totalMessages": status.total_messages,
            "version": status.version,
            "platform": status.platform,
            "timestamp": _timestamp()
        })

    def list_queues(self, request: OperationRequest, raw: Dict[str, Any]) -> OperationEnvelope:
        queues = [q.model_dump(by_alias=True, mode='json') for q in self.store.list_queues()]
        return self._envelope(200, {
            "status": OperationStatus.SUCCESS.value,
            "operation": OPERATION_NAMES[Operation.LIST],
            "queueCount": len(queues),
            "queues": queues,
            "timestamp": _timestamp()
        })

    def create(self, request: OperationRequest, raw: Dict[str, Any]) -> OperationEnvelope:
        queue_name = request.queue_name or request.queue
        try:
            if not queue_name:
                raise ValueError("Queue name is required")
            validate_queue_name(queue_name)
        except ValueError as e:
            return self._envelope(400, {
                "status": OperationStatus.ERROR.value,
                "operation": OPERATION_NAMES[Operation.CREATE],
                "error": str(e),
                "timestamp": _timestamp()
            })

        created = self.store.create_queue(
            queue_name,
            max_depth=request.max_depth or self.default_max_depth,
            description=request.description
        )
        return self._envelope(201 if created else 409, {
            "status": (OperationStatus.SUCCESS if created else OperationStatus.QUEUE_EXISTS).value,
            "operation": OPERATION_NAMES[Operation.CREATE],
            "queue": queue_name,
            "created": created,
            "message": "Queue created successfully" if created else "Queue already exists",
            "timestamp": _timestamp()
        })

    def clear(self, request: OperationRequest, raw: Dict[str, Any]) -> OperationEnvelope:
        queue_name = request.queue or self.default_queue
        try:
            cleared = self.store.clear_queue(queue_name)
        except MockMQError as e:
            return self._error(Operation.CLEAR, e)

        return self._envelope(200, {
            "status": OperationStatus.SUCCESS.value,
            "operation": OPERATION_NAMES[Operation.CLEAR],
            "queue": queue_name,
            "messagesCleared": cleared,
            "timestamp": _timestamp()
        })

    # Private helper methods

    def _envelope(self, status_code: int, body: Dict[str, Any]) -> OperationEnvelope:
        return OperationEnvelope(status_code=status_code, body=body)

    def _error(self, operation: Operation, error: MockMQError, status_code: int = 500) -> OperationEnvelope:
        logger.warning(f"Operation {operation.value} failed: {error.message}")
        body = {
            "status": OperationStatus.ERROR.value,
            "operation": OPERATION_NAMES[operation],
            "error": error.message,
            "errorCode": error.error_code.value,
            "timestamp": _timestamp()
        }
        if operation in (Operation.SEND, Operation.RECEIVE, Operation.DEPTH, Operation.CLEAR):
            body["mqrc"] = int(error.mqrc) if error.mqrc is not None else "Unknown"
        return self._envelope(status_code, body)
