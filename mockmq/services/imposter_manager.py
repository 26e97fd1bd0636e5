"""Imposter Manager for MQ imposter lifecycle and message processing."""

import asyncio
import copy
import logging
from typing import Any, Dict, List, Optional, Set, Tuple

from ..exceptions import (
    ImposterAlreadyExistsError,
    ImposterNotFoundError,
    MockMQError,
    QueueNotFoundError,
    StubNotFoundError,
)
from ..models.message import Message
from ..models.stub import CompiledStub
from ..utils.logging import log_performance
from .imposter_config import compile_stub, queue_bindings, validate_imposter_config, validate_stub
from .message_handler import MessageHandler
from .stub_matcher import build_request


logger = logging.getLogger(__name__)


INPUT_TYPES = ("input", "both")
OUTPUT_TYPES = ("output", "both")


class Imposter:
    """A validated MQ imposter: bound queues, compiled stubs and recorded requests."""

    def __init__(self, config: Dict[str, Any]):
        self.port: int = config["port"]
        self.protocol = "mq"
        self.name: Optional[str] = config.get("name")
        self.mq_settings: Dict[str, Any] = dict(config.get("mq") or {})
        self.record_requests: bool = config.get("recordRequests", True)
        self.queues: List[Tuple[str, str]] = queue_bindings(config)
        self.stubs: List[CompiledStub] = [compile_stub(stub) for stub in config.get("stubs") or []]
        self.requests: List[Dict[str, Any]] = []
        self.number_of_requests = 0

    @property
    def input_queues(self) -> List[str]:
        return [name for name, queue_type in self.queues if queue_type in INPUT_TYPES]

    def record_request(self, request: Dict[str, Any]) -> None:
        self.number_of_requests += 1
        if self.record_requests:
            self.requests.append(request)

    def reset_requests(self) -> None:
        self.requests = []
        self.number_of_requests = 0

    # Stubs

    def add_stub(self, stub: Dict[str, Any], index: Optional[int] = None) -> None:
        compiled = compile_stub(stub)
        if index is None or index >= len(self.stubs):
            self.stubs.append(compiled)
        else:
            self.stubs.insert(max(index, 0), compiled)

    def replace_stub(self, index: int, stub: Dict[str, Any]) -> None:
        self._check_index(index)
        self.stubs[index] = compile_stub(stub)

    def replace_stubs(self, stubs: List[Dict[str, Any]]) -> None:
        self.stubs = [compile_stub(stub) for stub in stubs]

    def remove_stub(self, index: int) -> None:
        self._check_index(index)
        del self.stubs[index]

    def get_stub(self, index: int) -> Dict[str, Any]:
        self._check_index(index)
        return self._stub_document(index)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.stubs):
            raise StubNotFoundError(self.port, index)

    def _stub_document(self, index: int) -> Dict[str, Any]:
        document = copy.deepcopy(self.stubs[index].definition)
        document["_links"] = {"self": {"href": f"/imposters/{self.port}/stubs/{index}"}}
        return document

    def to_dict(self) -> Dict[str, Any]:
        """The configuration document with runtime state and links."""
        document: Dict[str, Any] = {
            "protocol": self.protocol,
            "port": self.port,
            "numberOfRequests": self.number_of_requests,
            "recordRequests": self.record_requests,
            "mq": dict(self.mq_settings),
            "queues": [{"name": name, "type": queue_type} for name, queue_type in self.queues],
            "requests": list(self.requests),
            "stubs": [self._stub_document(i) for i in range(len(self.stubs))],
            "_links": {
                "self": {"href": f"/imposters/{self.port}"},
                "stubs": {"href": f"/imposters/{self.port}/stubs"}
            }
        }
        if self.name:
            document["name"] = self.name
        return document


class ImposterManager:
    """Manages MQ imposters and the processors consuming their input queues.

    Every imposter runs one asyncio task per input queue. A processor takes
    one message at a time from its queue, asks the message handler for a
    reply and puts the reply on the message's reply-to queue. Imposters of
    one manager share its queue store.
    """

    def __init__(self, store, handler: Optional[MessageHandler] = None,
                 poll_interval_ms: int = 1000):
        """Initialize the imposter manager.

        Args:
            store: Queue store shared by all imposters
            handler: Message handler (one bound to ``store`` if None)
            poll_interval_ms: Sleep between polls of an empty input queue
        """
        self.store = store
        self.handler = handler or MessageHandler(store)
        self.poll_interval_ms = poll_interval_ms
        self.imposters: Dict[int, Imposter] = {}
        self._processors: Dict[Tuple[int, str], asyncio.Task] = {}
        self._open_handles: Set[Tuple[int, str]] = set()

    @log_performance("create_imposter")
    async def create_imposter(self, config: Dict[str, Any], start: bool = True) -> Imposter:
        """Validate, register and start an imposter.

        Args:
            config: Imposter configuration document
            start: Start the queue processors right away

        Raises:
            ValidationError: If the document is invalid
            ImposterAlreadyExistsError: If the port is taken
        """
        validate_imposter_config(config)
        if config["port"] in self.imposters:
            raise ImposterAlreadyExistsError(config["port"])

        imposter = Imposter(config)
        for queue_name, _ in imposter.queues:
            self.store.create_queue(queue_name)

        self.imposters[imposter.port] = imposter
        logger.info(f"Created imposter on port {imposter.port} with {len(imposter.stubs)} stubs")

        if start:
            self.start_imposter(imposter.port)
        return imposter

    def get_imposter(self, port: int) -> Imposter:
        imposter = self.imposters.get(port)
        if imposter is None:
            raise ImposterNotFoundError(port)
        return imposter

    def list_imposters(self) -> List[Imposter]:
        return list(self.imposters.values())

    async def delete_imposter(self, port: int) -> Imposter:
        """Stop and unregister an imposter.

        Raises:
            ImposterNotFoundError: If no imposter uses the port
        """
        imposter = self.get_imposter(port)
        await self.stop_imposter(port)
        del self.imposters[port]
        logger.info(f"Deleted imposter on port {port}")
        return imposter

    async def delete_all(self) -> int:
        ports = list(self.imposters)
        for port in ports:
            await self.delete_imposter(port)
        return len(ports)

    # Stubs

    def add_stub(self, port: int, stub: Dict[str, Any], index: Optional[int] = None) -> Imposter:
        """Validate a stub and insert it at `index`, appending by default."""
        imposter = self.get_imposter(port)
        validate_stub(stub, len(imposter.stubs) if index is None else index)
        imposter.add_stub(stub, index)
        return imposter

    def replace_stub(self, port: int, index: int, stub: Dict[str, Any]) -> Imposter:
        imposter = self.get_imposter(port)
        validate_stub(stub, index)
        imposter.replace_stub(index, stub)
        return imposter

    def replace_stubs(self, port: int, stubs: List[Dict[str, Any]]) -> Imposter:
        """Replace every stub of an imposter. Nothing changes if any stub is invalid."""
        imposter = self.get_imposter(port)
        validate_imposter_config({"port": port, "protocol": "mq", "stubs": stubs})
        imposter.replace_stubs(stubs)
        return imposter

    def remove_stub(self, port: int, index: int) -> Imposter:
        imposter = self.get_imposter(port)
        imposter.remove_stub(index)
        return imposter

    def reset_requests(self, port: int) -> Imposter:
        imposter = self.get_imposter(port)
        imposter.reset_requests()
        return imposter

    # Processors

    def start_imposter(self, port: int) -> None:
        """Open the imposter's queues and start a processor per input queue."""
        imposter = self.get_imposter(port)
        for queue_name, queue_type in imposter.queues:
            key = (port, queue_name)
            if key in self._open_handles:
                continue
            self.store.create_queue(queue_name)
            self.store.open_queue(
                queue_name,
                input=queue_type in INPUT_TYPES,
                output=queue_type in OUTPUT_TYPES
            )
            self._open_handles.add(key)
            if queue_type in INPUT_TYPES:
                self._processors[key] = asyncio.create_task(
                    self._run_processor(imposter, queue_name)
                )
                logger.debug(f"Message processor started for queue {queue_name}")

    async def stop_imposter(self, port: int) -> None:
        """Stop the imposter's processors and release its queue handles."""
        imposter = self.get_imposter(port)
        for queue_name, queue_type in imposter.queues:
            task = self._processors.pop((port, queue_name), None)
            if task is not None:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
                logger.debug(f"Message processor stopped for queue {queue_name}")
            if (port, queue_name) not in self._open_handles:
                continue
            self._open_handles.discard((port, queue_name))
            self.store.close_queue(
                queue_name,
                input=queue_type in INPUT_TYPES,
                output=queue_type in OUTPUT_TYPES
            )

    def is_running(self, port: int) -> bool:
        return any(key[0] == port for key in self._open_handles)

    async def process_queue_once(self, imposter: Imposter, queue_name: str) -> Optional[Message]:
        """Handle the message at the head of ``queue_name``, if any.

        A message taken off the queue is always answered. If the processor is
        cancelled meanwhile, cancellation waits until the reply is sent, which
        the handler's processing timeout bounds.

        Returns:
            The reply, or None when the queue was empty
        """
        message = self.store.get(queue_name)
        if message is None:
            return None

        logger.debug(f"Processing message {message.message_id} from queue {queue_name}")
        handling = asyncio.ensure_future(self._handle_message(imposter, message, queue_name))
        try:
            return await asyncio.shield(handling)
        except asyncio.CancelledError:
            logger.warning(
                f"Processor for queue {queue_name} stopped while handling message "
                f"{message.message_id}, finishing it first"
            )
            try:
                await handling
            except Exception as e:
                logger.error(f"Failed to finish message {message.message_id}: {str(e)}")
            raise

    async def _handle_message(self, imposter: Imposter, message: Message, queue_name: str) -> Message:
        reply = await self.handler.process_message(message, imposter.stubs, queue_name)
        imposter.record_request(build_request(message, queue_name))

        if message.reply_to_queue:
            self._send_reply(message.reply_to_queue, reply)
        return reply

    def _send_reply(self, queue_name: str, reply: Message) -> None:
        if not self.store.has_queue(queue_name):
            self.store.create_queue(queue_name)
        try:
            self.store.enqueue(queue_name, reply)
            logger.debug(f"Reply {reply.message_id} sent to queue {queue_name}")
        except MockMQError as e:
            logger.error(f"Failed to send reply to queue {queue_name}: {e.message}")

    async def _run_processor(self, imposter: Imposter, queue_name: str) -> None:
        while True:
            try:
                reply = await self.process_queue_once(imposter, queue_name)
                if reply is None:
                    await asyncio.sleep(self.poll_interval_ms / 1000)
            except asyncio.CancelledError:
                break
            except QueueNotFoundError:
                logger.debug(f"Input queue {queue_name} does not exist, waiting")
                await asyncio.sleep(self.poll_interval_ms / 1000)
            except Exception as e:
                logger.error(f"Error processing messages for queue {queue_name}: {str(e)}")
                await asyncio.sleep(self.poll_interval_ms / 1000)
