"""Message Handler turning inbound messages into reply messages."""

import asyncio
import json
import logging
import time
from typing import Any, Dict, List, Optional

from ..exceptions import MockMQError, ProcessingError
from ..models.message import DEFAULT_FORMAT, Message, MessageType, PutOptions
from ..models.stub import CompiledStub
from ..utils.metrics import MetricsCollector, metrics_collector
from .behaviors import apply_behaviors
from .stub_matcher import build_request, find_match


logger = logging.getLogger(__name__)


REPLY_APPLICATION_NAME = "Mountebank-MQ-Server"


class MessageHandler:
    """Matches an inbound message against stubs and builds the reply.

    Replies are built by the queue store, so they take ids from the same
    sequence as every other message, but they are not queued here.
    """

    def __init__(self, store, processing_timeout_ms: int = 30000,
                 metrics: Optional[MetricsCollector] = None):
        """Initialize the message handler.

        Args:
            store: Queue store building the reply messages
            processing_timeout_ms: Upper bound for producing one reply
            metrics: Metrics collector (uses the global collector if None)
        """
        self.store = store
        self.processing_timeout_ms = processing_timeout_ms
        self.metrics = metrics or metrics_collector

    async def process_message(self, message: Message, stubs: List[CompiledStub],
                              queue_name: str = "") -> Message:
        """Produce the reply to ``message``.

        Never raises for a bad stub or a slow behavior: failures become an
        error reply referencing the inbound message id.
        """
        start_time = time.time()
        try:
            reply = await asyncio.wait_for(
                self._respond(message, stubs, queue_name),
                timeout=self.processing_timeout_ms / 1000
            )
        except asyncio.TimeoutError as e:
            error = ProcessingError(
                message.message_id,
                f"processing exceeded {self.processing_timeout_ms} ms",
                cause=e
            )
            reply = self._failed(message, error, queue_name)
        except ProcessingError as e:
            reply = self._failed(message, e, queue_name)
        except Exception as e:
            reason = e.message if isinstance(e, MockMQError) else str(e)
            reply = self._failed(message, ProcessingError(message.message_id, reason, cause=e), queue_name)

        self.metrics.timer('mq.handler.duration_ms', (time.time() - start_time) * 1000,
                           {'queue': queue_name})
        return reply

    async def _respond(self, message: Message, stubs: List[CompiledStub],
                       queue_name: str) -> Message:
        request = build_request(message, queue_name)
        stub = find_match(stubs, request)

        if stub is None:
            logger.debug(f"No stub matched message {message.message_id}")
            self.metrics.counter('mq.handler.unmatched', 1, {'queue': queue_name})
            return self.default_reply(message)

        response = stub.response
        if response.kind != "is":
            raise ProcessingError(message.message_id, f"'{response.kind}' responses are not supported")

        rendered = await apply_behaviors(response.template, response.behaviors, request)
        self.metrics.counter('mq.handler.matched', 1, {'queue': queue_name})
        return self.build_reply(message, rendered)

    def build_reply(self, original: Message, response: Dict[str, Any]) -> Message:
        """Reply message carrying a rendered ``is`` response."""
        if response.get("body") is not None:
            payload = response["body"]
        elif response.get("data") is not None:
            payload = response["data"]
        else:
            payload = ""

        return self.store.build_message(payload, PutOptions(
            correlation_id=original.message_id,
            message_type=MessageType.REPLY,
            priority=original.priority,
            persistence=original.persistence,
            format=response.get("format") or DEFAULT_FORMAT,
            expiry=response.get("expiry") or -1,
            put_application_name=REPLY_APPLICATION_NAME,
            headers=response.get("headers") or {}
        ))

    def default_reply(self, original: Message) -> Message:
        """Reply sent when no stub matches."""
        return self._reply_with(original, {
            "status": "error",
            "message": "No matching stub found",
            "originalMessageId": original.message_id
        })

    def error_reply(self, original: Message, error: ProcessingError) -> Message:
        """Reply sent when producing a response failed."""
        return self._reply_with(original, {
            "status": "error",
            "error": error.error_code.value,
            "message": error.reason,
            "originalMessageId": original.message_id
        })

    def _reply_with(self, original: Message, document: Dict[str, Any]) -> Message:
        return self.store.build_message(json.dumps(document), PutOptions(
            correlation_id=original.message_id,
            message_type=MessageType.REPLY,
            priority=original.priority,
            persistence=original.persistence,
            put_application_name=REPLY_APPLICATION_NAME
        ))

    def _failed(self, original: Message, error: ProcessingError, queue_name: str) -> Message:
        logger.error(f"Failed to process message {original.message_id}: {error.reason}",
                     extra={'queue': queue_name, 'message_id': original.message_id})
        self.metrics.counter('mq.handler.errors', 1, {'queue': queue_name})
        return self.error_reply(original, error)
