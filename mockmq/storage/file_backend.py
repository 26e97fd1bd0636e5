"""
File-based state backend using a single JSON file.
"""

import json
import os
import aiofiles
from pathlib import Path
from typing import Optional, Dict, Any

from ..exceptions import StorageBackendError
from ..models.base import utc_now
from ..utils.logging import get_logger
from .base import StateBackend

logger = get_logger(__name__)


class FileStateBackend(StateBackend):
    """Stores the queue manager state as one JSON document on disk.

    Every write goes to a temporary sibling file which then replaces the state
    file, so a crash mid-write never leaves a truncated document behind.
    """

    def __init__(self, state_file: str = "data/mock-mq/mock-mq-state.json"):
        """Initialize file state backend.

        Args:
            state_file: Path of the state file
        """
        self.state_file = Path(state_file)
        self.state_dir = self.state_file.parent
        self._temp_file = self.state_file.with_name(self.state_file.name + ".tmp")

    async def initialize(self) -> bool:
        """Create the state directory if needed."""
        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"File state backend initialized at {self.state_file}")
            return True
        except OSError as e:
            logger.error(f"Failed to initialize file state backend: {e}")
            raise StorageBackendError(
                "Failed to initialize file state backend",
                operation="initialize",
                details={"state_file": str(self.state_file)},
                cause=e
            )

    async def load(self) -> Optional[Dict[str, Any]]:
        """Load the state document.

        A missing file is not an error. An unreadable or malformed file is
        logged and treated as absent.
        """
        if not self.state_file.exists():
            logger.debug(f"No state file at {self.state_file}")
            return None

        try:
            data = await self._read_json_file(self.state_file)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load state file {self.state_file}: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"Ignoring state file {self.state_file}: not a JSON object")
            return None

        logger.info(f"Loaded state from {self.state_file}")
        return data

    async def save(self, state: Dict[str, Any]) -> None:
        """Write the state document atomically."""
        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
            await self._write_json_file(self._temp_file, state)
            os.replace(self._temp_file, self.state_file)
            logger.debug(f"Saved state to {self.state_file}")
        except (OSError, TypeError, ValueError) as e:
            raise StorageBackendError(
                f"Failed to save state to {self.state_file}",
                operation="save",
                details={"state_file": str(self.state_file)},
                cause=e
            )

    def save_sync(self, state: Dict[str, Any]) -> None:
        """Write the state document atomically without an event loop."""
        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
            with open(self._temp_file, 'w', encoding='utf-8') as f:
                f.write(json.dumps(state, indent=2, default=str))
            os.replace(self._temp_file, self.state_file)
            logger.debug(f"Saved state to {self.state_file}")
        except (OSError, TypeError, ValueError) as e:
            raise StorageBackendError(
                f"Failed to save state to {self.state_file}",
                operation="save_sync",
                details={"state_file": str(self.state_file)},
                cause=e
            )

    async def health_check(self) -> Dict[str, Any]:
        """Perform health check on the state backend."""
        directory_ok = self.state_dir.exists() and self.state_dir.is_dir()
        size = self.state_file.stat().st_size if self.state_file.exists() else 0

        return {
            "status": "healthy" if directory_ok else "unhealthy",
            "backend_type": "file",
            "state_file": str(self.state_file),
            "state_file_exists": self.state_file.exists(),
            "state_file_size_bytes": size,
            "last_check": utc_now().isoformat()
        }

    # Private helper methods

    async def _read_json_file(self, file_path: Path) -> Any:
        """Read JSON data from file."""
        async with aiofiles.open(file_path, 'r', encoding='utf-8') as f:
            content = await f.read()
            return json.loads(content)

    async def _write_json_file(self, file_path: Path, data: Dict[str, Any]) -> None:
        """Write JSON data to file."""
        async with aiofiles.open(file_path, 'w', encoding='utf-8') as f:
            content = json.dumps(data, indent=2, default=str)
            await f.write(content)
