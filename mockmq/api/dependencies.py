"""
Request dependencies resolving the services of the running application.

Services are created once per application by ``create_app`` and kept on
``app.state``; routes receive them through ``Depends``.
"""

from fastapi import Request

from ..services.imposter_manager import ImposterManager
from ..services.operations import OperationService
from ..services.persistence import SnapshotPersistence
from ..services.queue_store import QueueStore
from ..utils.metrics import MetricsCollector


def get_store(request: Request) -> QueueStore:
    return request.app.state.store


def get_operations(request: Request) -> OperationService:
    return request.app.state.operations


def get_imposter_manager(request: Request) -> ImposterManager:
    return request.app.state.imposters


def get_persistence(request: Request) -> SnapshotPersistence:
    return request.app.state.persistence


def get_metrics(request: Request) -> MetricsCollector:
    return request.app.state.metrics
