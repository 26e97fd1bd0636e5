"""Connection-related data models."""

from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from .base import utc_now


class Connection(BaseModel):
    """A client connection to the simulated queue manager.

    Connections carry client metadata only; they own no messages.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    client_name: str = Field(default="MockMQClient", alias="clientName")
    channel: str = Field(default="DEV.APP.SVRCONN")
    host: str = Field(default="localhost")
    port: int = Field(default=1414, ge=1, le=65535)
    connected_at: datetime = Field(default_factory=utc_now, alias="connected")


class ConnectRequest(BaseModel):
    """Request to open a connection."""
    model_config = ConfigDict(populate_by_name=True)

    connection_id: Optional[str] = Field(None, alias="connectionId")
    client_name: str = Field(default="MockMQClient", alias="clientName")
    channel: str = Field(default="DEV.APP.SVRCONN")
    host: str = Field(default="localhost")
    port: int = Field(default=1414, ge=1, le=65535)


class ConnectResult(BaseModel):
    """Result of opening a connection."""
    model_config = ConfigDict(populate_by_name=True)

    connection_id: str = Field(..., alias="connectionId")
    queue_manager: str = Field(..., alias="queueManager")
    status: str = "CONNECTED"
