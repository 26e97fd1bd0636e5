"""Queue-related data models."""

from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .base import BaseResponse, utc_now
from .message import Message


INVALID_QUEUE_NAME_CHARS = set(' \\/:*?"<>|')
MAX_QUEUE_NAME_LENGTH = 48


def validate_queue_name(name: str) -> str:
    """Validate a queue name follows MQ object naming rules."""
    if not name or not name.strip():
        raise ValueError("Queue name cannot be empty")
    if len(name) > MAX_QUEUE_NAME_LENGTH:
        raise ValueError(f"Queue name cannot exceed {MAX_QUEUE_NAME_LENGTH} characters")
    if any(char in INVALID_QUEUE_NAME_CHARS for char in name):
        raise ValueError(f"Queue name contains invalid characters: {name}")
    return name


class Queue(BaseModel):
    """A named FIFO queue owned by the queue store."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    messages: List[Message] = Field(default_factory=list)
    max_depth: int = Field(default=5000, ge=1, alias="maxDepth")
    description: str = Field(default="")
    created_at: datetime = Field(default_factory=utc_now, alias="created")
    open_input_count: int = Field(default=0, ge=0, alias="openInputCount")
    open_output_count: int = Field(default=0, ge=0, alias="openOutputCount")
    total_messages_in: int = Field(default=0, ge=0, alias="totalMessagesIn")
    total_messages_out: int = Field(default=0, ge=0, alias="totalMessagesOut")

    @property
    def current_depth(self) -> int:
        return len(self.messages)

    @property
    def is_full(self) -> bool:
        return len(self.messages) >= self.max_depth

    def to_dict(self) -> Dict[str, Any]:
        """Dump in the camelCase document format used by the state file."""
        return self.model_dump(by_alias=True, mode='json')


class QueueInfo(BaseModel):
    """Summary of a queue as returned by list operations."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    current_depth: int = Field(..., ge=0, alias="currentDepth")
    max_depth: int = Field(..., ge=1, alias="maxDepth")
    description: str = ""
    created_at: datetime = Field(..., alias="createdAt")


class QueueDepth(BaseModel):
    """Depth and counters of a single queue."""
    model_config = ConfigDict(populate_by_name=True)

    queue_name: str = Field(..., alias="queueName")
    current_depth: int = Field(..., ge=0, alias="currentDepth")
    max_depth: int = Field(..., ge=1, alias="maxDepth")
    total_messages_in: int = Field(..., ge=0, alias="totalMessagesIn")
    total_messages_out: int = Field(..., ge=0, alias="totalMessagesOut")
    open_input_count: int = Field(..., ge=0, alias="openInputCount")
    open_output_count: int = Field(..., ge=0, alias="openOutputCount")

    @property
    def utilization(self) -> float:
        """Current depth as a percentage of the max depth."""
        return round(self.current_depth / self.max_depth * 100, 2)


class QueueCreateRequest(BaseModel):
    """Request to create a new queue."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Queue name")
    max_depth: Optional[int] = Field(None, ge=1, alias="maxDepth")
    description: str = Field(default="")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return validate_queue_name(v)


class QueueListResponse(BaseResponse):
    """Response containing list of queues."""
    queues: List[QueueInfo] = Field(default_factory=list)
    total_count: int = Field(default=0, ge=0, alias="totalCount")


class QueueStatus(BaseModel):
    """Health summary of the simulated queue manager."""
    model_config = ConfigDict(populate_by_name=True)

    queue_manager: str = Field(..., alias="queueManager")
    status: str = "RUNNING"
    queues: int = Field(..., ge=0)
    connections: int = Field(..., ge=0)
    total_messages: int = Field(..., ge=0, alias="totalMessages")
    version: str
    platform: str
    uptime_seconds: float = Field(..., ge=0, alias="uptimeSeconds")
