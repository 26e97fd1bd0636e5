"""
FastAPI routes for the Mock MQ Manager API.

Queue resources, messages, connections, the operation surface, health and
metrics. Service errors propagate to the global exception handlers in
``main.py``.
"""

import logging
import uuid
from typing import Any, Dict, Optional
from fastapi import APIRouter, Body, Depends, Path, Query, Response, status

from ..exceptions import ConnectionNotFoundError, QueueAlreadyExistsError, QueueNotFoundError
from ..models.base import utc_now
from ..models.connection import ConnectRequest, ConnectResult
from ..models.message import MessageResponse, PutOptions, PutRequest, PutResult
from ..models.queue import QueueCreateRequest, QueueListResponse, QueueStatus
from ..services.operations import OperationService
from ..services.persistence import SnapshotPersistence
from ..services.queue_store import QueueStore
from ..utils.metrics import MetricsCollector
from .dependencies import get_metrics, get_operations, get_persistence, get_store


logger = logging.getLogger(__name__)

# Create API router
router = APIRouter()


# Operation surface
@router.post("/mq/{operation}", tags=["Operations"])
async def run_operation(
    operation: str = Path(..., description="send, receive, depth, health, list, create or clear"),
    request: Optional[Dict[str, Any]] = Body(None),
    operations: OperationService = Depends(get_operations)
) -> dict:
    """
    Run a queue operation and return its result envelope.

    The HTTP status is always 200; the logical result code is the envelope's
    ``statusCode``.
    """
    return operations.execute(operation, request or {}).to_dict()


# Queue management endpoints
@router.get("/queues", response_model=QueueListResponse, tags=["Queue Management"])
async def list_queues(store: QueueStore = Depends(get_store)) -> QueueListResponse:
    """List all queues in creation order."""
    queues = store.list_queues()
    return QueueListResponse(queues=queues, total_count=len(queues))


@router.post("/queues", status_code=status.HTTP_201_CREATED, tags=["Queue Management"])
async def create_queue(
    request: QueueCreateRequest,
    store: QueueStore = Depends(get_store)
) -> dict:
    """Create a queue. Existing queues are never overwritten."""
    if not store.create_queue(request.name, request.max_depth, request.description):
        raise QueueAlreadyExistsError(request.name)
    depth = store.get_queue_depth(request.name)
    return {
        "queue": request.name,
        "created": True,
        "maxDepth": depth.max_depth,
        "timestamp": utc_now().isoformat()
    }


@router.delete("/queues/{queue_name}", tags=["Queue Management"])
async def delete_queue(
    queue_name: str = Path(..., description="Name of the queue to delete"),
    store: QueueStore = Depends(get_store)
) -> dict:
    """Delete a queue and all messages on it."""
    if not store.delete_queue(queue_name):
        raise QueueNotFoundError(queue_name)
    return {"queue": queue_name, "deleted": True, "timestamp": utc_now().isoformat()}


@router.get("/queues/{queue_name}/depth", tags=["Queue Management"])
async def get_queue_depth(
    queue_name: str = Path(..., description="Name of the queue"),
    store: QueueStore = Depends(get_store)
) -> dict:
    """Get depth, counters and utilization of a queue."""
    depth = store.get_queue_depth(queue_name)
    return {**depth.model_dump(by_alias=True), "utilization": depth.utilization}


# Message endpoints
@router.post("/queues/{queue_name}/messages", response_model=PutResult,
             status_code=status.HTTP_201_CREATED, tags=["Message Operations"])
async def put_message(
    request: PutRequest,
    queue_name: str = Path(..., description="Target queue"),
    store: QueueStore = Depends(get_store)
) -> PutResult:
    """Put a message at the tail of a queue."""
    options = PutOptions.model_validate(request.model_dump(exclude={"payload"}))
    message = store.put(queue_name, request.payload, options)
    return PutResult(
        queue=queue_name,
        message_id=message.message_id,
        correlation_id=message.correlation_id,
        queue_depth=store.get_queue_depth(queue_name).current_depth
    )


@router.get("/queues/{queue_name}/messages", response_model=MessageResponse,
            responses={204: {"description": "Queue is empty"}}, tags=["Message Operations"])
async def get_message(
    queue_name: str = Path(..., description="Source queue"),
    browse: bool = Query(False, description="Return the head message without removing it"),
    store: QueueStore = Depends(get_store)
):
    """Get the message at the head of a queue, or 204 when the queue is empty."""
    message = store.get(queue_name, browse=browse)
    if message is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return MessageResponse(
        queue=queue_name,
        browse=browse,
        message=message.to_dict(),
        queue_depth=store.get_queue_depth(queue_name).current_depth
    )


@router.delete("/queues/{queue_name}/messages", tags=["Message Operations"])
async def clear_queue(
    queue_name: str = Path(..., description="Queue to clear"),
    store: QueueStore = Depends(get_store)
) -> dict:
    """Discard every message on a queue."""
    cleared = store.clear_queue(queue_name)
    return {"queue": queue_name, "messagesCleared": cleared, "timestamp": utc_now().isoformat()}


# Connection endpoints
@router.get("/connections", tags=["Connections"])
async def list_connections(store: QueueStore = Depends(get_store)) -> dict:
    """List open client connections."""
    connections = [c.model_dump(by_alias=True, mode='json') for c in store.list_connections()]
    return {"connections": connections, "totalCount": len(connections)}


@router.post("/connections", response_model=ConnectResult,
             status_code=status.HTTP_201_CREATED, tags=["Connections"])
async def connect(
    request: Optional[ConnectRequest] = None,
    store: QueueStore = Depends(get_store)
) -> ConnectResult:
    """Open a client connection to the queue manager."""
    request = request or ConnectRequest()
    connection_id = request.connection_id or f"CONN-{uuid.uuid4().hex[:12].upper()}"
    return store.connect(
        connection_id,
        client_name=request.client_name,
        channel=request.channel,
        host=request.host,
        port=request.port
    )


@router.delete("/connections/{connection_id}", tags=["Connections"])
async def disconnect(
    connection_id: str = Path(..., description="Connection to close"),
    store: QueueStore = Depends(get_store)
) -> dict:
    """Close a client connection."""
    if not store.disconnect(connection_id):
        raise ConnectionNotFoundError(connection_id)
    return {"connectionId": connection_id, "status": "DISCONNECTED"}


# Health and monitoring endpoints
@router.get("/health", tags=["Health"])
async def health_check(
    store: QueueStore = Depends(get_store),
    persistence: SnapshotPersistence = Depends(get_persistence)
) -> dict:
    """Queue manager status and state storage health."""
    queue_status: QueueStatus = store.get_status()
    return {
        **queue_status.model_dump(by_alias=True),
        "storage": {
            **await persistence.backend.health_check(),
            "enabled": persistence.enabled,
            "snapshots_written": persistence.snapshots_written,
            "snapshot_failures": persistence.snapshot_failures
        },
        "timestamp": utc_now().isoformat()
    }


@router.get("/metrics", tags=["Monitoring"])
async def get_metrics_report(
    metric_name: Optional[str] = Query(None, description="Specific metric name to retrieve"),
    metrics: MetricsCollector = Depends(get_metrics)
) -> dict:
    """
    Get application metrics.

    Returns summaries of queue, handler, operation and API metrics.
    """
    if metric_name:
        summary = metrics.get_metric_summary(metric_name)
        if summary is None:
            return {
                "error": f"Metric '{metric_name}' not found",
                "available_metrics": metrics.get_metric_names()
            }
        return {"metric": summary.to_dict(), "timestamp": utc_now().isoformat()}
    return metrics.report()
