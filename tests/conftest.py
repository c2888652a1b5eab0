"""Pytest configuration and fixtures."""

from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from flowengine.config import get_testing_config
from flowengine.core.execution_engine import ExecutionEngine
from flowengine.core.execution_logger import ExecutionLogStore
from flowengine.core.node_executors import NodeExecutorRegistry
from flowengine.core.workflow_manager import WorkflowManager
from flowengine.factory import create_app
from flowengine.storage.database import (
    configure_database,
    create_tables,
    get_session_factory,
    reset_database_engine
)
from flowengine.tools.text_cleaner import stringify


class FakeTextCleaner:
    """Records every input and answers with a canned result."""

    def __init__(self, error: Optional[str] = None):
        self.error = error
        self.calls: List[Any] = []

    async def clean(self, data: Any):
        self.calls.append(data)
        if self.error is not None:
            return {"error": self.error}
        return f"cleaned: {stringify(data)}"


def json_handler(payload: Any, status_code: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    """Transport handler answering every request with the same JSON body."""
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=payload)
    return handler


def make_http_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    """AsyncClient whose requests never leave the process."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def start_node(node_id: str = "start", **data) -> Dict[str, Any]:
    return {"id": node_id, "type": "start", "data": {"label": "Start", **data}, "position": {"x": 0, "y": 0}}


def output_node(node_id: str = "output") -> Dict[str, Any]:
    return {"id": node_id, "type": "output", "data": {"label": "Output"}, "position": {"x": 0, "y": 200}}


def api_node(node_id: str, url: str = "https://api.example.com/data", method: str = "GET", **route) -> Dict[str, Any]:
    return {
        "id": node_id,
        "type": "default",
        "data": {"label": "Api", "apiRoute": {"url": url, "method": method, **route}},
        "position": {"x": 0, "y": 100}
    }


def transform_node(node_id: str) -> Dict[str, Any]:
    return {"id": node_id, "type": "default", "data": {"label": "Transform"}, "position": {"x": 0, "y": 150}}


def edge(source: str, target: str) -> Dict[str, Any]:
    return {"id": f"e{source}-{target}", "source": source, "target": target}


@pytest.fixture
def session_factory():
    """Fresh in-memory database bound to the global engine."""
    configure_database("sqlite:///:memory:")
    create_tables()
    yield get_session_factory()
    reset_database_engine()


@pytest.fixture
def log_store(session_factory):
    return ExecutionLogStore(session_factory)


@pytest.fixture
def workflow_manager(session_factory, log_store):
    return WorkflowManager(session_factory, log_store=log_store)


@pytest.fixture
def text_cleaner():
    return FakeTextCleaner()


@pytest.fixture
def api_payload():
    return {"customers": [{"id": "cus_1", "name": "Ada"}]}


@pytest.fixture
def http_client(api_payload):
    return make_http_client(json_handler(api_payload))


@pytest.fixture
def node_executors(http_client, text_cleaner):
    return NodeExecutorRegistry.create(http_client, text_cleaner, stripe_secret_key="sk_test_123")


@pytest.fixture
def execution_engine(node_executors, log_store):
    return ExecutionEngine(node_executors, log_store=log_store)


@pytest.fixture
def test_config():
    """Testing preset without CORS so responses stay minimal."""
    config = get_testing_config()
    config.cors_origins = []
    return config


@pytest.fixture
def app_client(test_config, http_client, text_cleaner):
    """FastAPI test client running the full application lifespan."""
    app = create_app(test_config, http_client=http_client, text_cleaner=text_cleaner)
    with TestClient(app) as client:
        yield client
    reset_database_engine()
