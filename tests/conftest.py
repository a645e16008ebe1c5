"""Shared test fixtures for the canvas core."""

from __future__ import annotations

import pytest

from flowcanvas.workflow.graph_store import GraphStore
from flowcanvas.workflow.persistence import GraphCache, GraphContext, PersistenceBridge
from flowcanvas.workflow.workflow_model import CanvasNode, FunctionDescriptor


@pytest.fixture(autouse=True)
def set_test_env(monkeypatch, tmp_path):
    """Point every env-derived config at the test's temp dir."""
    monkeypatch.setenv("FLOWCANVAS_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setenv("FLOWCANVAS_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("FLOWCANVAS_API_BASE", "http://testserver")
    monkeypatch.delenv("FLOWCANVAS_WS_URL", raising=False)


@pytest.fixture
def cache(tmp_path) -> GraphCache:
    return GraphCache(tmp_path / "cache", "test_graph")


@pytest.fixture
def context() -> GraphContext:
    return GraphContext()


@pytest.fixture
def store(cache, context) -> GraphStore:
    return GraphStore(bridge=PersistenceBridge(cache=cache, context=context))


@pytest.fixture
def descriptor() -> FunctionDescriptor:
    """A function with one defaulted and one required input."""
    return FunctionDescriptor(
        name="scale",
        input=[{"id": "a", "default": 5}, {"id": "factor"}],
        output=[{"id": "result"}],
    )


@pytest.fixture
def make_node(descriptor):
    """Factory building a function node with the default descriptor."""

    def _make(node_id: str, desc: FunctionDescriptor = None, x: float = 0, y: float = 0) -> CanvasNode:
        return CanvasNode(id=node_id, data=desc or descriptor, position={"x": x, "y": y})

    return _make
