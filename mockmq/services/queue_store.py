"""Queue Store for the simulated queue manager.

The store owns every queue, message and connection of one queue manager.
All operations are synchronous, so each one is atomic with respect to the
asyncio event loop: a put or a consuming get is never observed half done.
Every mutation asks the attached persistence layer for a snapshot; failures
there are logged by the persistence layer and never reach the caller.
"""

import logging
import time
from typing import Any, Dict, List, Optional

from ..config import MQConfig
from ..exceptions import (
    ConnectionNotFoundError,
    ErrorCode,
    MockMQError,
    MQReasonCode,
    QueueFullError,
    QueueNotFoundError,
)
from ..models.base import utc_now
from ..models.connection import Connection, ConnectResult
from ..models.message import Message, PutOptions
from ..models.queue import Queue, QueueDepth, QueueInfo, QueueStatus
from ..utils.metrics import MetricsCollector, metrics_collector


logger = logging.getLogger(__name__)


SIMULATED_ERRORS = {
    "QUEUE_FULL": (MQReasonCode.MQRC_Q_FULL, ErrorCode.QUEUE_FULL),
    "QUEUE_NOT_FOUND": (MQReasonCode.MQRC_UNKNOWN_OBJECT_NAME, ErrorCode.QUEUE_NOT_FOUND),
    "CONNECTION_BROKEN": (MQReasonCode.MQRC_CONNECTION_BROKEN, ErrorCode.SERVICE_UNAVAILABLE),
    "NOT_AUTHORIZED": (MQReasonCode.MQRC_NOT_AUTHORIZED, ErrorCode.VALIDATION_ERROR),
    "NO_MSG_AVAILABLE": (MQReasonCode.MQRC_NO_MSG_AVAILABLE, ErrorCode.NOT_FOUND),
}


class QueueStore:
    """In-memory queue manager: named FIFO queues, connections and id counters."""

    def __init__(self, mq_config: Optional[MQConfig] = None,
                 metrics: Optional[MetricsCollector] = None):
        """Initialize an empty queue store.

        Args:
            mq_config: Queue manager settings (uses config if None)
            metrics: Metrics collector (uses the global collector if None)
        """
        if mq_config is None:
            from ..config import settings
            mq_config = settings.mq

        self.config = mq_config
        self.queue_manager = mq_config.queue_manager
        self.metrics = metrics or metrics_collector
        self.persistence = None

        self._queues: Dict[str, Queue] = {}
        self._connections: Dict[str, Connection] = {}
        self._message_seq = 1
        self._correlation_seq = 1
        self._started = time.monotonic()

    # Queue lifecycle

    def create_queue(self, name: str, max_depth: Optional[int] = None,
                     description: str = "") -> bool:
        """Create a queue.

        Args:
            name: Queue name
            max_depth: Maximum number of resident messages (default from config)
            description: Free text description

        Returns:
            True if the queue was created, False if it already existed
        """
        if name in self._queues:
            logger.debug(f"Queue {name} already exists")
            return False

        self._queues[name] = Queue(
            name=name,
            max_depth=max_depth or self.config.max_depth,
            description=description or ""
        )
        logger.info(f"Created queue {name}")
        self._changed()
        return True

    def delete_queue(self, name: str) -> bool:
        """Delete a queue and every message on it.

        Returns:
            True if the queue existed
        """
        if self._queues.pop(name, None) is None:
            return False
        logger.info(f"Deleted queue {name}")
        self._changed()
        return True

    def has_queue(self, name: str) -> bool:
        return name in self._queues

    def list_queues(self) -> List[QueueInfo]:
        """List queues in creation order."""
        return [
            QueueInfo(
                name=queue.name,
                current_depth=queue.current_depth,
                max_depth=queue.max_depth,
                description=queue.description,
                created_at=queue.created_at
            )
            for queue in self._queues.values()
        ]

    def get_queue_depth(self, name: str) -> QueueDepth:
        """Get depth and counters of a queue.

        Raises:
            QueueNotFoundError: If the queue does not exist
        """
        queue = self._get_queue(name)
        return QueueDepth(
            queue_name=name,
            current_depth=queue.current_depth,
            max_depth=queue.max_depth,
            total_messages_in=queue.total_messages_in,
            total_messages_out=queue.total_messages_out,
            open_input_count=queue.open_input_count,
            open_output_count=queue.open_output_count
        )

    def clear_queue(self, name: str) -> int:
        """Discard every message on a queue. Counters are left untouched.

        Returns:
            Number of messages discarded

        Raises:
            QueueNotFoundError: If the queue does not exist
        """
        queue = self._get_queue(name)
        cleared = queue.current_depth
        queue.messages = []
        logger.info(f"Cleared {cleared} messages from queue {name}")
        self._changed()
        return cleared

    def initialize_default_queues(self) -> int:
        """Create the configured default queues that are missing.

        Returns:
            Number of queues created
        """
        created = 0
        for name in self.config.default_queues:
            if self.create_queue(
                name,
                max_depth=self.config.default_queue_max_depth,
                description=f"Mock queue: {name}"
            ):
                created += 1
        return created

    # Message operations

    def put(self, queue_name: str, payload: Any,
            options: Optional[PutOptions] = None) -> Message:
        """Append a message to the tail of a queue.

        Args:
            queue_name: Target queue
            payload: Message payload, any JSON value
            options: Message metadata

        Returns:
            The stored message

        Raises:
            QueueNotFoundError: If the queue does not exist
            QueueFullError: If the queue is at its maximum depth
        """
        self._check_capacity(queue_name)
        return self.enqueue(queue_name, self.build_message(payload, options))

    def enqueue(self, queue_name: str, message: Message) -> Message:
        """Append an already built message to the tail of a queue.

        Raises:
            QueueNotFoundError: If the queue does not exist
            QueueFullError: If the queue is at its maximum depth
        """
        queue = self._check_capacity(queue_name)
        queue.messages.append(message)
        queue.total_messages_in += 1

        logger.debug(f"Put message {message.message_id} on {queue_name}")
        self.metrics.counter('mq.messages.put', 1, {'queue': queue_name})
        self.metrics.gauge('mq.queue.depth', queue.current_depth, {'queue': queue_name})
        self._changed()
        return message

    def get(self, queue_name: str, browse: bool = False) -> Optional[Message]:
        """Take the message at the head of a queue.

        Args:
            queue_name: Source queue
            browse: Return the head without removing it

        Returns:
            The head message, or None if the queue is empty

        Raises:
            QueueNotFoundError: If the queue does not exist
        """
        queue = self._get_queue(queue_name)
        if not queue.messages:
            return None

        if browse:
            return queue.messages[0]

        message = queue.messages.pop(0)
        queue.total_messages_out += 1

        logger.debug(f"Got message {message.message_id} from {queue_name}")
        self.metrics.counter('mq.messages.get', 1, {'queue': queue_name})
        self.metrics.gauge('mq.queue.depth', queue.current_depth, {'queue': queue_name})
        self._changed()
        return message

    def build_message(self, payload: Any, options: Optional[PutOptions] = None) -> Message:
        """Create a message with fresh ids. The message is not queued."""
        options = options or PutOptions()
        return Message(
            message_id=self.generate_message_id(),
            correlation_id=options.correlation_id or self.generate_correlation_id(),
            payload=payload,
            put_time=utc_now(),
            priority=options.priority,
            persistence=options.persistence,
            format=options.format,
            message_type=options.message_type,
            reply_to_queue=options.reply_to_queue or "",
            expiry=options.expiry,
            put_application_name=options.put_application_name,
            headers=options.headers
        )

    def generate_message_id(self) -> str:
        message_id = f"MSG-{self._message_seq:08d}-{int(time.time() * 1000)}"
        self._message_seq += 1
        return message_id

    def generate_correlation_id(self) -> str:
        correlation_id = f"CORR-{self._correlation_seq:08d}-{int(time.time() * 1000)}"
        self._correlation_seq += 1
        return correlation_id

    # Open handles

    def open_queue(self, name: str, input: bool = False, output: bool = False) -> None:
        """Register an open input and/or output handle on a queue."""
        queue = self._get_queue(name)
        if input:
            queue.open_input_count += 1
        if output:
            queue.open_output_count += 1

    def close_queue(self, name: str, input: bool = False, output: bool = False) -> None:
        """Release handles registered with ``open_queue``. Missing queues are ignored."""
        queue = self._queues.get(name)
        if queue is None:
            return
        if input:
            queue.open_input_count = max(0, queue.open_input_count - 1)
        if output:
            queue.open_output_count = max(0, queue.open_output_count - 1)

    # Connections

    def connect(self, connection_id: str, client_name: str = "MockMQClient",
                channel: str = "DEV.APP.SVRCONN", host: str = "localhost",
                port: int = 1414) -> ConnectResult:
        """Register a client connection. Reconnecting replaces the old entry."""
        self._connections[connection_id] = Connection(
            id=connection_id,
            client_name=client_name,
            channel=channel,
            host=host,
            port=port
        )
        logger.info(f"Connection {connection_id} opened by {client_name}")
        return ConnectResult(connection_id=connection_id, queue_manager=self.queue_manager)

    def disconnect(self, connection_id: str) -> bool:
        """Drop a client connection.

        Returns:
            False if the connection was unknown
        """
        if self._connections.pop(connection_id, None) is None:
            return False
        logger.info(f"Connection {connection_id} closed")
        return True

    def get_connection(self, connection_id: str) -> Connection:
        """Get a registered connection.

        Raises:
            ConnectionNotFoundError: If the connection is unknown
        """
        connection = self._connections.get(connection_id)
        if connection is None:
            raise ConnectionNotFoundError(connection_id)
        return connection

    def list_connections(self) -> List[Connection]:
        return list(self._connections.values())

    # Status

    def get_status(self) -> QueueStatus:
        """Summary of the queue manager for health checks."""
        return QueueStatus(
            queue_manager=self.queue_manager,
            queues=len(self._queues),
            connections=len(self._connections),
            total_messages=sum(q.current_depth for q in self._queues.values()),
            version=self.config.version,
            platform=self.config.platform,
            uptime_seconds=round(time.monotonic() - self._started, 3)
        )

    def simulate_error(self, error_type: str) -> None:
        """Raise the error a real queue manager reports for ``error_type``.

        Unknown types simulate a broken connection.
        """
        mqrc, error_code = SIMULATED_ERRORS.get(error_type, SIMULATED_ERRORS["CONNECTION_BROKEN"])
        raise MockMQError(
            message=mqrc.name,
            error_code=error_code,
            details={"simulated": True},
            mqrc=mqrc
        )

    # State export and import

    def export_state(self) -> Dict[str, Any]:
        """Whole-state document written by snapshot persistence."""
        return {
            "queues": [[name, queue.to_dict()] for name, queue in self._queues.items()],
            "messageId": self._message_seq,
            "correlationId": self._correlation_seq,
            "lastSaved": utc_now().isoformat()
        }

    def load_state(self, state: Dict[str, Any]) -> int:
        """Replace all queues and id counters with a snapshot document.

        Open handle counts are reset, since no handle survives a restart.
        Connections are not part of the snapshot and are kept.

        Returns:
            Number of queues loaded

        Raises:
            ValueError: If the document is malformed
        """
        queues: Dict[str, Queue] = {}
        for entry in state.get("queues") or []:
            name, data = entry
            queue = Queue.model_validate({**data, "name": name})
            queue.open_input_count = 0
            queue.open_output_count = 0
            queues[name] = queue

        self._queues = queues
        self._message_seq = int(state.get("messageId") or 1)
        self._correlation_seq = int(state.get("correlationId") or 1)
        logger.info(f"Loaded {len(queues)} queues from snapshot")
        return len(queues)

    # Private helper methods

    def _get_queue(self, name: str) -> Queue:
        queue = self._queues.get(name)
        if queue is None:
            raise QueueNotFoundError(name)
        return queue

    def _check_capacity(self, name: str) -> Queue:
        queue = self._get_queue(name)
        if queue.is_full:
            self.metrics.counter('mq.messages.rejected', 1, {'queue': name})
            raise QueueFullError(name, queue.max_depth)
        return queue

    def _changed(self) -> None:
        if self.persistence is not None:
            self.persistence.request_snapshot()
