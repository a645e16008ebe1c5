"""Tests for the config registry and CanvasConfig."""

from __future__ import annotations

import os

import pytest

from flowcanvas.config import CanvasConfig, get_config, get_config_registry


class TestCanvasConfig:
    def test_registered(self):
        assert get_config_registry()["canvas"] is CanvasConfig

    def test_env_defaults(self, monkeypatch, tmp_path):
        monkeypatch.setenv("FLOWCANVAS_HISTORY_LIMIT", "7")
        monkeypatch.setenv("FLOWCANVAS_REQUEST_TIMEOUT", "2.5")
        config = get_config("canvas")
        assert config.history_limit == 7
        assert config.request_timeout == 2.5
        assert config.cache_dir == str(tmp_path / "cache")
        assert config.api_base == "http://testserver"

    def test_invalid_env_value_keeps_default(self, monkeypatch):
        monkeypatch.setenv("FLOWCANVAS_HISTORY_LIMIT", "lots")
        assert CanvasConfig.get_default_instance().history_limit == 100

    def test_ws_url_derived_from_api_base(self):
        assert CanvasConfig(api_base="https://host:9000/").resolved_ws_url == "wss://host:9000/ws"
        assert CanvasConfig(api_base="http://host").resolved_ws_url == "ws://host/ws"

    def test_explicit_ws_url_wins(self):
        assert CanvasConfig(ws_url="ws://other/stream").resolved_ws_url == "ws://other/stream"

    def test_update_fires_env_sync(self, monkeypatch):
        monkeypatch.delenv("FLOWCANVAS_API_BASE", raising=False)
        config = CanvasConfig()
        config.update(api_base="http://changed")
        assert os.environ["FLOWCANVAS_API_BASE"] == "http://changed"

    def test_update_unknown_field(self):
        with pytest.raises(KeyError):
            CanvasConfig().update(nope=1)

    def test_fields_metadata_cover_dataclass_fields(self):
        names = {f.name for f in CanvasConfig.get_fields_metadata()}
        assert names == set(CanvasConfig.__dataclass_fields__)
        assert all(f.to_dict()["group"] for f in CanvasConfig.get_fields_metadata())

    def test_unknown_config_name(self):
        with pytest.raises(KeyError):
            get_config("missing")
