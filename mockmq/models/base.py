"""Base data models for the Mock MQ Manager."""

from typing import Any, Dict, Optional
from datetime import datetime, timezone
from pydantic import BaseModel, Field, ConfigDict


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class BaseResponse(BaseModel):
    """Base response model with common fields."""
    model_config = ConfigDict(populate_by_name=True)

    timestamp: datetime = Field(default_factory=utc_now)
    request_id: Optional[str] = None


class ErrorResponse(BaseResponse):
    """Standard error response format."""
    error: str = Field(..., description="Error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
