"""Tests for the graph cache, graph context and persistence bridge."""

from __future__ import annotations

import json

import pytest

from flowcanvas.workflow.errors import CacheCorrupt
from flowcanvas.workflow.persistence import GraphCache, GraphContext, PersistenceBridge
from flowcanvas.workflow.workflow_model import WorkflowGraph


class TestGraphCache:
    def test_missing_entry_loads_none(self, cache):
        assert cache.load() is None
        assert not cache.exists()

    def test_save_and_load(self, cache, make_node):
        graph = WorkflowGraph(workflow_id="wf", nodes=[make_node("1")], name="n")
        cache.save(graph.to_cache_dict())
        loaded = cache.load()
        assert loaded.workflow_id == "wf"
        assert loaded.nodes == graph.nodes

    def test_malformed_json_raises_cache_corrupt(self, cache):
        cache.path.write_text("{not json", encoding="utf-8")
        with pytest.raises(CacheCorrupt):
            cache.load()

    def test_wrong_shape_raises_cache_corrupt(self, cache):
        cache.path.write_text(json.dumps({"nodes": "nope"}), encoding="utf-8")
        with pytest.raises(CacheCorrupt):
            cache.load()

    def test_discard(self, cache):
        cache.save({"workflow_id": "wf"})
        assert cache.discard() is True
        assert cache.discard() is False

    def test_key_is_sanitized(self, tmp_path):
        cache = GraphCache(tmp_path, "../evil key")
        assert cache.path.parent == tmp_path
        assert cache.path.name == "evilkey.json"

    def test_no_temp_files_left_behind(self, cache):
        cache.save({"workflow_id": "wf"})
        assert [p.name for p in cache.path.parent.iterdir()] == [cache.path.name]


class TestGraphContext:
    def test_subscribers_receive_published_graph(self, context):
        received = []
        unsubscribe = context.subscribe(received.append)
        context.publish({"workflow_id": "wf"})
        unsubscribe()
        context.publish({"workflow_id": "other"})
        assert received == [{"workflow_id": "wf"}]

    def test_current_is_a_copy(self, context):
        context.publish({"nodes": [{"id": "1"}]})
        context.current["nodes"].clear()
        assert context.current["nodes"] == [{"id": "1"}]

    def test_failing_listener_does_not_block_others(self, context):
        received = []

        def broken(_graph):
            raise RuntimeError("boom")

        context.subscribe(broken)
        context.subscribe(received.append)
        context.publish({"workflow_id": "wf"})
        assert received == [{"workflow_id": "wf"}]


class TestPersistenceBridge:
    def test_cache_omits_job_status_context_keeps_it(self, cache, context):
        bridge = PersistenceBridge(cache=cache, context=context)
        bridge.snapshot(WorkflowGraph(workflow_id="wf", job_status={"state": "running"}))
        raw = json.loads(cache.path.read_text(encoding="utf-8"))
        assert "job_status" not in raw
        assert set(raw) == {"workflow_id", "name", "nodes", "edges", "values"}
        assert context.current["job_status"] == {"state": "running"}

    def test_cache_omits_drag_state(self, cache, make_node):
        node = make_node("1")
        node.dragging = True
        PersistenceBridge(cache=cache).snapshot(WorkflowGraph(workflow_id="wf", nodes=[node]))
        raw = json.loads(cache.path.read_text(encoding="utf-8"))
        assert "dragging" not in raw["nodes"][0]
        assert cache.load().nodes[0].dragging is False

    def test_edges_use_wire_aliases(self, cache):
        bridge = PersistenceBridge(cache=cache)
        bridge.snapshot(WorkflowGraph.model_validate({
            "workflow_id": "wf",
            "edges": [{"id": "e", "source": "1", "target": "2", "sourceHandle": "out"}],
        }))
        raw = json.loads(cache.path.read_text(encoding="utf-8"))
        assert raw["edges"][0]["sourceHandle"] == "out"

    def test_restore_without_cache(self):
        assert PersistenceBridge().restore() is None

    def test_store_mirrors_every_mutation(self, store, context, cache, make_node):
        seen = []
        context.subscribe(seen.append)
        store.add_node(make_node("1"))
        store.set_job_status({"state": "queued"})
        assert len(seen) == 2
        assert seen[-1]["job_status"] == {"state": "queued"}
        assert cache.load().nodes[0].id == "1"
