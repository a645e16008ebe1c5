"""
Config package.

Importing this package registers every built-in config.
"""

from flowcanvas.config.base import (
    BaseConfig,
    ConfigField,
    FieldType,
    get_config,
    get_config_registry,
    register_config,
)
from flowcanvas.config.sub_config.general.canvas_config import CanvasConfig

__all__ = [
    "BaseConfig",
    "ConfigField",
    "FieldType",
    "get_config",
    "get_config_registry",
    "register_config",
    "CanvasConfig",
]
