"""Models for the queue operation surface.

Operations take a loosely typed JSON request and always answer with an
envelope whose ``statusCode`` mirrors HTTP conventions; the codes are logical
result codes, not a promise of an HTTP transport.
"""

from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field


class Operation(str, Enum):
    """Operations accepted by the operation surface."""
    SEND = "send"
    RECEIVE = "receive"
    DEPTH = "depth"
    HEALTH = "health"
    LIST = "list"
    CREATE = "create"
    CLEAR = "clear"


class OperationStatus(str, Enum):
    """Status reported in an envelope body."""
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    NO_MESSAGES = "NO_MESSAGES"
    QUEUE_EXISTS = "QUEUE_EXISTS"


class OperationRequest(BaseModel):
    """Request fields shared by all operations."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    queue: Optional[str] = None
    queue_name: Optional[str] = Field(None, alias="queueName")
    message: Any = None
    body: Any = None
    correlation_id: Optional[str] = Field(None, alias="correlationId")
    reply_queue: Optional[str] = Field(None, alias="replyQueue")
    priority: int = Field(default=0, ge=0, le=9)
    persistence: int = Field(default=1, ge=0, le=2)
    browse: bool = False
    max_depth: Optional[int] = Field(None, ge=1, alias="maxDepth")
    description: str = ""


class OperationEnvelope(BaseModel):
    """Result envelope of an operation."""
    model_config = ConfigDict(populate_by_name=True)

    status_code: int = Field(..., alias="statusCode")
    headers: Dict[str, str] = Field(default_factory=lambda: {"Content-Type": "application/json"})
    body: Dict[str, Any] = Field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode='json')
