"""
Canvas Editor Configuration.

Controls the backend endpoints, the local graph cache, undo history
depth, and status-channel reconnect behaviour.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

from flowcanvas.config.base import BaseConfig, ConfigField, FieldType, register_config
from flowcanvas.config.sub_config.general.env_utils import env_sync, read_env_defaults

_DEFAULT_CACHE_DIR = str(Path.home() / ".flowcanvas" / "cache")
_DEFAULT_LOG_DIR = str(Path.home() / ".flowcanvas" / "logs")


@register_config
@dataclass
class CanvasConfig(BaseConfig):
    """Editor backend, cache and history settings."""

    api_base: str = "http://127.0.0.1:7070"
    ws_url: str = ""
    request_timeout: float = 30.0
    cache_dir: str = _DEFAULT_CACHE_DIR
    cache_key: str = "nozy_graph_cache"
    history_limit: int = 100
    reconnect_initial_delay: float = 1.0
    reconnect_max_delay: float = 30.0
    reconnect_max_attempts: int = 0  # 0 = retry forever
    log_dir: str = _DEFAULT_LOG_DIR

    _ENV_MAP = {
        "api_base": "FLOWCANVAS_API_BASE",
        "ws_url": "FLOWCANVAS_WS_URL",
        "request_timeout": "FLOWCANVAS_REQUEST_TIMEOUT",
        "cache_dir": "FLOWCANVAS_CACHE_DIR",
        "cache_key": "FLOWCANVAS_CACHE_KEY",
        "history_limit": "FLOWCANVAS_HISTORY_LIMIT",
        "reconnect_initial_delay": "FLOWCANVAS_RECONNECT_INITIAL_DELAY",
        "reconnect_max_delay": "FLOWCANVAS_RECONNECT_MAX_DELAY",
        "reconnect_max_attempts": "FLOWCANVAS_RECONNECT_MAX_ATTEMPTS",
        "log_dir": "FLOWCANVAS_LOG_DIR",
    }

    @property
    def resolved_ws_url(self) -> str:
        """The push-channel URL, derived from ``api_base`` when unset."""
        if self.ws_url:
            return self.ws_url
        base = self.api_base.rstrip("/")
        base = base.replace("https://", "wss://").replace("http://", "ws://")
        return f"{base}/ws"

    @classmethod
    def get_default_instance(cls) -> "CanvasConfig":
        defaults = read_env_defaults(cls._ENV_MAP, cls.__dataclass_fields__)
        return cls(**defaults)

    @classmethod
    def get_config_name(cls) -> str:
        return "canvas"

    @classmethod
    def get_display_name(cls) -> str:
        return "Canvas Editor"

    @classmethod
    def get_description(cls) -> str:
        return "Backend endpoints, graph cache, undo history depth and status-channel reconnect policy."

    @classmethod
    def get_category(cls) -> str:
        return "general"

    @classmethod
    def get_icon(cls) -> str:
        return "canvas"

    @classmethod
    def get_i18n(cls) -> Dict[str, Dict[str, Any]]:
        return {
            "ko": {
                "display_name": "캔버스 에디터",
                "description": "백엔드 엔드포인트, 그래프 캐시, 실행 취소 기록 깊이 및 상태 채널 재연결 정책.",
                "groups": {
                    "backend": "백엔드",
                    "cache": "캐시",
                    "history": "기록",
                    "channel": "상태 채널",
                },
                "fields": {
                    "api_base": {
                        "label": "API 주소",
                        "description": "노드 정의 및 패키지 목록을 제공하는 백엔드 주소",
                    },
                    "ws_url": {
                        "label": "웹소켓 주소",
                        "description": "작업 상태 푸시 채널 주소 (비워두면 API 주소에서 파생)",
                    },
                    "cache_dir": {
                        "label": "캐시 디렉터리",
                        "description": "복구용 그래프 스냅샷이 저장되는 위치",
                    },
                    "history_limit": {
                        "label": "실행 취소 기록 수",
                        "description": "보관할 최대 실행 취소 단계 수",
                    },
                    "reconnect_max_attempts": {
                        "label": "최대 재연결 시도",
                        "description": "연결이 끊겼을 때 재시도 횟수 (0 = 무제한)",
                    },
                },
            }
        }

    @classmethod
    def get_fields_metadata(cls) -> List[ConfigField]:
        return [
            ConfigField(
                name="api_base",
                field_type=FieldType.URL,
                label="API Base URL",
                description="Backend serving node definitions and package listings",
                default="http://127.0.0.1:7070",
                required=True,
                group="backend",
                apply_change=env_sync("FLOWCANVAS_API_BASE"),
            ),
            ConfigField(
                name="ws_url",
                field_type=FieldType.URL,
                label="WebSocket URL",
                description="Job-status push channel (derived from API base when empty)",
                placeholder="ws://127.0.0.1:7070/ws",
                group="backend",
                apply_change=env_sync("FLOWCANVAS_WS_URL"),
            ),
            ConfigField(
                name="request_timeout",
                field_type=FieldType.NUMBER,
                label="Request Timeout",
                description="Seconds before a backend request fails",
                default=30.0,
                min_value=1,
                max_value=600,
                group="backend",
            ),
            ConfigField(
                name="cache_dir",
                field_type=FieldType.PATH,
                label="Cache Directory",
                description="Where the recoverable graph snapshot is written",
                default=_DEFAULT_CACHE_DIR,
                group="cache",
                apply_change=env_sync("FLOWCANVAS_CACHE_DIR"),
            ),
            ConfigField(
                name="cache_key",
                field_type=FieldType.STRING,
                label="Cache Key",
                description="Name of the snapshot entry inside the cache directory",
                default="nozy_graph_cache",
                group="cache",
            ),
            ConfigField(
                name="history_limit",
                field_type=FieldType.NUMBER,
                label="Undo History Limit",
                description="Maximum number of undo steps kept in memory",
                default=100,
                min_value=1,
                max_value=10000,
                group="history",
            ),
            ConfigField(
                name="reconnect_initial_delay",
                field_type=FieldType.NUMBER,
                label="Reconnect Delay",
                description="First backoff delay in seconds after the channel drops",
                default=1.0,
                min_value=0,
                max_value=60,
                group="channel",
            ),
            ConfigField(
                name="reconnect_max_delay",
                field_type=FieldType.NUMBER,
                label="Max Reconnect Delay",
                description="Upper bound for the exponential backoff",
                default=30.0,
                min_value=0,
                max_value=3600,
                group="channel",
            ),
            ConfigField(
                name="reconnect_max_attempts",
                field_type=FieldType.NUMBER,
                label="Max Reconnect Attempts",
                description="Consecutive failed attempts before giving up (0 = unlimited)",
                default=0,
                min_value=0,
                max_value=1000,
                group="channel",
            ),
            ConfigField(
                name="log_dir",
                field_type=FieldType.PATH,
                label="Log Directory",
                description="Per-workflow editor session logs",
                default=_DEFAULT_LOG_DIR,
                group="history",
            ),
        ]
