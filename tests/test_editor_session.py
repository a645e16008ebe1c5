"""Tests for the editor mount/unmount lifecycle."""

from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager

import httpx

from flowcanvas.config import CanvasConfig
from flowcanvas.workflow.api_client import NodeDefClient
from flowcanvas.workflow.editor_session import EditorSession
from flowcanvas.workflow.graph_store import GraphStore
from flowcanvas.workflow.persistence import GraphCache, PersistenceBridge
from flowcanvas.workflow.workflow_model import WorkflowGraph


def _idle_connect():
    """Connector whose connection stays open without sending anything."""

    @asynccontextmanager
    async def connect(url):
        yield _Silent()

    return connect


class _Silent:
    def __aiter__(self):
        return self

    async def __anext__(self):
        await asyncio.Event().wait()


def _session(tmp_path, handler, store=None) -> EditorSession:
    config = CanvasConfig.get_default_instance()
    if store is None:
        cache = GraphCache(tmp_path / "cache", config.cache_key)
        store = GraphStore(bridge=PersistenceBridge(cache=cache))
    client = NodeDefClient(config.api_base, transport=httpx.MockTransport(handler))
    return EditorSession(config, store=store, client=client, connect=_idle_connect())


def _seed_cache(tmp_path, make_node) -> WorkflowGraph:
    graph = WorkflowGraph(workflow_id="cached", name="cached", nodes=[make_node("1")],
                          values={"input_node_1_a": 5})
    config = CanvasConfig.get_default_instance()
    GraphCache(tmp_path / "cache", config.cache_key).save(graph.to_cache_dict())
    return graph


class TestMount:
    async def test_fresh_start_without_cache(self, tmp_path):
        def handler(request):
            raise AssertionError("no refresh expected without a cache")

        async with _session(tmp_path, handler) as session:
            assert session.refresh_task is None
            assert session.store.nodes == []
            assert session.channel.running
        assert not session.channel.running

    async def test_restores_cache_then_applies_refresh(self, tmp_path, make_node):
        _seed_cache(tmp_path, make_node)

        def handler(request):
            body = json.loads(request.content)
            body["name"] = "from network"
            return httpx.Response(200, json=body)

        session = _session(tmp_path, handler)
        await session.mount()
        assert session.store.workflow_id == "cached"
        await session.refresh_task
        assert session.refresh_task.result() is True
        assert session.store.name == "from network"
        await session.unmount()

    async def test_corrupt_cache_is_discarded(self, tmp_path):
        config = CanvasConfig.get_default_instance()
        cache = GraphCache(tmp_path / "cache", config.cache_key)
        cache.path.write_text("{broken", encoding="utf-8")

        async with _session(tmp_path, lambda r: httpx.Response(500)) as session:
            assert session.store.nodes == []
            assert session.refresh_task is None
        assert not cache.path.exists()

    async def test_refresh_failure_keeps_cached_state(self, tmp_path, make_node):
        _seed_cache(tmp_path, make_node)
        session = _session(tmp_path, lambda r: httpx.Response(503))
        await session.mount()
        applied = await session.refresh_task
        assert applied is False
        assert session.store.name == "cached"
        assert session.store.values["input_node_1_a"] == 5
        await session.unmount()


class TestStaleRefresh:
    async def test_refresh_dropped_after_user_edit(self, tmp_path, make_node, descriptor):
        _seed_cache(tmp_path, make_node)
        release = asyncio.Event()

        async def slow_handler(request):
            await release.wait()
            body = json.loads(request.content)
            body["nodes"] = []
            return httpx.Response(200, json=body)

        session = _session(tmp_path, slow_handler)
        await session.mount()
        await asyncio.sleep(0)
        session.drop_function(descriptor, {"x": 40, "y": 40})
        release.set()
        applied = await session.refresh_task
        assert applied is False
        assert [n.id for n in session.store.nodes] == ["1", "2"]
        await session.unmount()

    async def test_unmount_cancels_inflight_refresh(self, tmp_path, make_node):
        _seed_cache(tmp_path, make_node)

        async def never(request):
            await asyncio.Event().wait()

        session = _session(tmp_path, never)
        await session.mount()
        task = session.refresh_task
        await asyncio.sleep(0)
        await session.unmount()
        assert task.cancelled()
        assert session.store.name == "cached"


class TestChannelWiring:
    async def test_job_status_reaches_store(self, tmp_path):
        async with _session(tmp_path, lambda r: httpx.Response(500)) as session:
            session.channel.handle_message(json.dumps({"type": "job_status", "data": {"s": 1}}))
            assert session.store.job_status == {"s": 1}
            assert session.store.bridge.context.current["job_status"] == {"s": 1}

    async def test_session_log_written(self, tmp_path):
        async with _session(tmp_path, lambda r: httpx.Response(500)) as session:
            session.channel.handle_message(json.dumps({"type": "progress", "data": 1}))
            workflow_id = session.store.workflow_id
        log_text = (tmp_path / "logs" / f"{workflow_id}.log").read_text(encoding="utf-8")
        assert "editor mounted" in log_text
        assert "channel message type=progress" in log_text

    async def test_list_package_children_passthrough(self, tmp_path):
        def handler(request):
            return httpx.Response(200, json=[{"type": "folder", "name": "a", "path": "a"}])

        async with _session(tmp_path, handler) as session:
            entries = await session.list_package_children("")
        assert entries[0].name == "a"
