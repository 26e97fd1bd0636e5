# Services package

from .queue_store import QueueStore
from .persistence import SnapshotPersistence
from .message_handler import MessageHandler
from .imposter_manager import Imposter, ImposterManager
from .operations import OperationService

__all__ = [
    "QueueStore",
    "SnapshotPersistence",
    "MessageHandler",
    "Imposter",
    "ImposterManager",
    "OperationService",
]
