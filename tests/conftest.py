"""
Pytest configuration and shared fixtures
"""

import pytest
from fastapi.testclient import TestClient
from typing import Any, Dict

from mockmq.config import Settings
from mockmq.config.settings import MQConfig
from mockmq.main import create_app
from mockmq.services.imposter_manager import ImposterManager
from mockmq.services.message_handler import MessageHandler
from mockmq.services.operations import OperationService
from mockmq.services.queue_store import QueueStore
from mockmq.utils.metrics import MetricsCollector


@pytest.fixture
def metrics():
    """Metrics collector private to one test"""
    return MetricsCollector()


@pytest.fixture
def mq_config():
    """Queue manager settings with the stock defaults"""
    return MQConfig()


@pytest.fixture
def store(mq_config, metrics):
    """Empty queue store without persistence"""
    return QueueStore(mq_config, metrics=metrics)


@pytest.fixture
def handler(store, metrics):
    """Message handler bound to the test store"""
    return MessageHandler(store, processing_timeout_ms=2000, metrics=metrics)


@pytest.fixture
def manager(store, handler):
    """Imposter manager with a short poll interval"""
    return ImposterManager(store, handler, poll_interval_ms=10)


@pytest.fixture
def test_settings(tmp_path):
    """Settings writing state below a temporary directory"""
    return Settings(
        environment="testing",
        storage={"enabled": True, "state_dir": str(tmp_path), "snapshot_debounce_ms": 0},
        mq={"poll_interval_ms": 10}
    )


@pytest.fixture
def operations(store, test_settings, metrics):
    """Operation service over the test store"""
    return OperationService(store, test_settings, metrics=metrics)


@pytest.fixture
def client(test_settings):
    """Test client for a fresh application; startup and shutdown hooks run"""
    with TestClient(create_app(test_settings)) as test_client:
        yield test_client


# Data fixtures
@pytest.fixture
def product_imposter() -> Dict[str, Any]:
    """Imposter answering GET_PRODUCT requests"""
    return {
        "port": 2526,
        "protocol": "mq",
        "name": "product service",
        "mq": {"queueManager": "MOCK_QM1", "channel": "DEV.APP.SVRCONN"},
        "queues": [
            {"name": "TEST.REQUEST.QUEUE", "type": "input"},
            {"name": "TEST.RESPONSE.QUEUE", "type": "output"}
        ],
        "stubs": [
            {
                "predicates": [{"contains": {"body": "GET_PRODUCT"}}],
                "responses": [{"is": {"data": "{\"productId\":\"12345\"}"}}]
            }
        ]
    }
