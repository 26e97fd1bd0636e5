"""
Abstract base class for state backends.
"""

from abc import ABC, abstractmethod
from typing import Optional, Dict, Any


class StateBackend(ABC):
    """Abstract interface for queue manager state storage.

    A backend stores one document: the whole queue manager state as produced
    by ``QueueStore.export_state``. Writes replace the previous document.
    """

    @abstractmethod
    async def initialize(self) -> bool:
        """Initialize the backend.

        Returns:
            True if initialization was successful

        Raises:
            StorageBackendError: If initialization fails
        """
        pass

    @abstractmethod
    async def load(self) -> Optional[Dict[str, Any]]:
        """Load the stored state document.

        Returns:
            The state document, or None if nothing usable is stored
        """
        pass

    @abstractmethod
    async def save(self, state: Dict[str, Any]) -> None:
        """Replace the stored state document.

        Args:
            state: State document to store

        Raises:
            StorageBackendError: If the write fails
        """
        pass

    @abstractmethod
    def save_sync(self, state: Dict[str, Any]) -> None:
        """Blocking variant of ``save`` for callers without an event loop.

        Raises:
            StorageBackendError: If the write fails
        """
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Report backend health information."""
        pass
