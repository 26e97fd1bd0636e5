"""
State backends for queue manager snapshot persistence.
"""

from .base import StateBackend
from .file_backend import FileStateBackend

__all__ = [
    "StateBackend",
    "FileStateBackend"
]
