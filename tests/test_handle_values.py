"""Tests for the handle value store."""

from __future__ import annotations

import pytest

from flowcanvas.workflow.handle_values import UNSET, HandleKey, HandleValueStore


class TestHandleKey:
    def test_encode(self):
        assert HandleKey("input", "3", "x").encode() == "input_node_3_x"

    def test_decode_handle_with_underscores(self):
        key = HandleKey.decode("output_node_12_max_value")
        assert key == HandleKey("output", "12", "max_value")

    def test_decode_with_known_node_ids(self):
        key = HandleKey.decode("input_node_n_1_arg", node_ids=["n", "n_1"])
        assert key == HandleKey("input", "n_1", "arg")

    @pytest.mark.parametrize("raw", ["", "bogus", "sideways_node_1_a", "input_node_", "input_node_1"])
    def test_decode_rejects_malformed(self, raw):
        with pytest.raises(ValueError):
            HandleKey.decode(raw)


class TestHandleValueStore:
    def test_seed_uses_default_or_none(self, make_node):
        values = HandleValueStore()
        values.seed(make_node("1"))
        assert values[HandleKey("input", "1", "a")] == 5
        assert values[HandleKey("input", "1", "factor")] is None

    def test_seed_copies_mutable_defaults(self, make_node):
        from flowcanvas.workflow.workflow_model import FunctionDescriptor

        desc = FunctionDescriptor(name="f", input=[{"id": "items", "default": []}])
        values = HandleValueStore()
        values.seed(make_node("1", desc))
        values.seed(make_node("2", desc))
        values["input_node_1_items"].append("x")
        assert values["input_node_2_items"] == []

    def test_prune_removes_only_matching_node(self):
        values = HandleValueStore({
            HandleKey("input", "1", "a"): 1,
            HandleKey("output", "1", "r"): 2,
            HandleKey("input", "11", "a"): 3,
            HandleKey("input", "2", "node_1"): 4,
        })
        assert values.prune("1") == 2
        assert values.node_ids() == {"11", "2"}

    def test_prune_unknown_node_is_noop(self):
        values = HandleValueStore({HandleKey("input", "1", "a"): 1})
        assert values.prune("7") == 0
        assert len(values) == 1

    def test_patch_upserts_and_deletes(self):
        values = HandleValueStore({HandleKey("input", "1", "a"): 1})
        values.patch({"input_node_1_a": UNSET, ("input", "1", "b"): None})
        assert HandleKey("input", "1", "a") not in values
        assert values[HandleKey("input", "1", "b")] is None

    def test_wire_round_trip(self):
        values = HandleValueStore({HandleKey("input", "4", "cfg"): {"k": [1]}})
        wire = values.to_wire()
        assert wire == {"input_node_4_cfg": {"k": [1]}}
        assert HandleValueStore.from_wire(wire) == values

    def test_copy_is_deep(self):
        values = HandleValueStore({HandleKey("input", "1", "a"): {"k": 1}})
        clone = values.copy()
        clone["input_node_1_a"]["k"] = 2
        assert values["input_node_1_a"] == {"k": 1}

    def test_contains_tolerates_garbage(self):
        values = HandleValueStore()
        assert "not a key" not in values
        assert 42 not in values


class TestOpaqueKeys:
    def test_undecodable_keys_survive_wire_round_trip(self):
        wire = {"bogus": 1, "input_node_1_x": 2, "param_node_1_y": {"k": 3}}
        values = HandleValueStore.from_wire(wire)
        assert values.to_wire() == wire
        assert values.opaque == {"bogus": 1, "param_node_1_y": {"k": 3}}
        assert len(values) == 3
        assert "bogus" in values

    def test_prune_matches_node_marker_in_opaque_keys(self):
        values = HandleValueStore.from_wire({"param_node_1_y": 1, "param_node_12_y": 2, "other": 3})
        assert values.prune("1") == 1
        assert values.to_wire() == {"param_node_12_y": 2, "other": 3}

    def test_patch_decodes_against_given_node_ids(self):
        values = HandleValueStore()
        values.patch({"input_node_n_1_a": 9}, node_ids=["n", "n_1"])
        assert values[HandleKey("input", "n_1", "a")] == 9
        assert values.prune("n_1") == 1
        assert len(values) == 0

    def test_patch_resolves_existing_node_ids(self):
        values = HandleValueStore({HandleKey("input", "n_1", "a"): 1})
        values.patch({"input_node_n_1_a": UNSET})
        assert len(values) == 0

    def test_patch_unset_deletes_opaque_key(self):
        values = HandleValueStore.from_wire({"bogus": 1})
        values.patch({"bogus": UNSET})
        assert values.to_wire() == {}
