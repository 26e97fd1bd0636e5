"""Data models package for the Mock MQ Manager."""

# Base models and enums
from .base import BaseResponse, ErrorResponse, utc_now

# Message models
from .message import (
    Message,
    MessageType,
    Persistence,
    PutOptions,
    PutRequest,
    PutResult,
    MessageResponse,
)

# Queue models
from .queue import (
    Queue,
    QueueInfo,
    QueueDepth,
    QueueStatus,
    QueueCreateRequest,
    QueueListResponse,
    validate_queue_name,
)

# Connection models
from .connection import Connection, ConnectRequest, ConnectResult

# Operation surface models
from .operation import Operation, OperationStatus, OperationRequest, OperationEnvelope

# Stub models
from .stub import CompiledPredicate, CompiledResponse, CompiledStub

__all__ = [
    # Base
    "BaseResponse",
    "ErrorResponse",
    "utc_now",
    # Message
    "Message",
    "MessageType",
    "Persistence",
    "PutOptions",
    "PutRequest",
    "PutResult",
    "MessageResponse",
    # Queue
    "Queue",
    "QueueInfo",
    "QueueDepth",
    "QueueStatus",
    "QueueCreateRequest",
    "QueueListResponse",
    "validate_queue_name",
    # Connection
    "Connection",
    "ConnectRequest",
    "ConnectResult",
    # Operation
    "Operation",
    "OperationStatus",
    "OperationRequest",
    "OperationEnvelope",
    # Stub
    "CompiledPredicate",
    "CompiledResponse",
    "CompiledStub",
]
