"""Message-related data models.

Field aliases follow the camelCase keys used by the persisted state file and
the operation envelopes, so models dump straight into those documents with
``by_alias=True``.
"""

from enum import IntEnum
from typing import Any, Dict, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .base import BaseResponse, utc_now


class MessageType(IntEnum):
    """MQ message types (MQMT_*)."""
    DATAGRAM = 1
    REPLY = 2
    REPORT = 4
    REQUEST = 8


class Persistence(IntEnum):
    """MQ persistence options (MQPER_*)."""
    AS_QUEUE_DEFINITION = 0
    NOT_PERSISTENT = 1
    PERSISTENT = 2


DEFAULT_FORMAT = "MQSTR"
DEFAULT_PUT_APPLICATION = "MockMQServer"


class Message(BaseModel):
    """A message resident in a queue. Immutable once created."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    message_id: str = Field(..., alias="messageId", description="Unique message identifier")
    correlation_id: str = Field(..., alias="correlationId", description="Correlation identifier")
    payload: Any = Field(None, alias="data", description="Message payload (any JSON value)")
    put_time: datetime = Field(default_factory=utc_now, alias="putTime")
    priority: int = Field(default=0, ge=0, le=9, description="Advisory priority, never reorders")
    persistence: int = Field(default=Persistence.NOT_PERSISTENT, ge=0, le=2)
    format: str = Field(default=DEFAULT_FORMAT, description="MQ format tag")
    message_type: int = Field(default=MessageType.REQUEST, alias="messageType")
    reply_to_queue: str = Field(default="", alias="replyToQueue")
    expiry: int = Field(default=-1, description="Advisory expiry, -1 is unlimited")
    put_application_name: str = Field(default=DEFAULT_PUT_APPLICATION, alias="putApplicationName")
    headers: Dict[str, Any] = Field(default_factory=dict, description="Response headers of reply messages")

    def to_dict(self) -> Dict[str, Any]:
        """Dump in the camelCase document format."""
        return self.model_dump(by_alias=True, mode='json')


class PutOptions(BaseModel):
    """Caller supplied metadata for a put."""
    model_config = ConfigDict(populate_by_name=True)

    correlation_id: Optional[str] = Field(None, alias="correlationId")
    reply_to_queue: Optional[str] = Field(None, alias="replyToQueue")
    priority: int = Field(default=0, ge=0, le=9)
    persistence: int = Field(default=Persistence.NOT_PERSISTENT, ge=0, le=2)
    format: str = Field(default=DEFAULT_FORMAT)
    message_type: int = Field(default=MessageType.REQUEST, alias="messageType")
    expiry: int = Field(default=-1)
    put_application_name: str = Field(default=DEFAULT_PUT_APPLICATION, alias="putApplicationName")
    headers: Dict[str, Any] = Field(default_factory=dict)

    @field_validator('expiry')
    @classmethod
    def validate_expiry(cls, v):
        """Expiry is either unlimited (-1) or a positive interval."""
        if v < -1 or v == 0:
            raise ValueError("Expiry must be -1 (unlimited) or a positive number")
        return v


class PutRequest(PutOptions):
    """Request body for putting a message onto a queue."""
    payload: Any = Field(..., alias="message", description="Message payload")


class MessageResponse(BaseResponse):
    """A message returned by a get or browse."""
    queue: str = Field(..., description="Queue name")
    browse: bool = Field(default=False, description="Whether the message was left on the queue")
    message: Dict[str, Any] = Field(..., description="Message document")
    queue_depth: int = Field(..., ge=0, alias="queueDepth")


class PutResult(BaseResponse):
    """Result of putting a message."""
    queue: str = Field(..., description="Queue name")
    message_id: str = Field(..., alias="messageId")
    correlation_id: str = Field(..., alias="correlationId")
    queue_depth: int = Field(..., ge=0, alias="queueDepth")
