"""
Configuration base — dataclass configs with field metadata.

Every config is a ``@dataclass`` subclass of ``BaseConfig`` decorated
with ``@register_config``. Class-level metadata (name, category,
i18n, per-field ``ConfigField`` descriptors) lets a settings panel
render and edit configs without knowing their concrete types.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from logging import getLogger
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

logger = getLogger(__name__)


class FieldType(str, Enum):
    """Editor widget used for a config field."""
    STRING = "string"
    PASSWORD = "password"
    NUMBER = "number"
    BOOLEAN = "boolean"
    SELECT = "select"
    URL = "url"
    PATH = "path"


@dataclass
class ConfigField:
    """Metadata describing one editable config field."""
    name: str
    field_type: FieldType
    label: str
    description: str = ""
    required: bool = False
    default: Any = None
    placeholder: str = ""
    options: List[Dict[str, str]] = field(default_factory=list)
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    group: str = "general"
    secure: bool = False
    apply_change: Optional[Callable[[Any, Any], None]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for the frontend (callbacks are dropped)."""
        return {
            "name": self.name,
            "type": self.field_type.value,
            "label": self.label,
            "description": self.description,
            "required": self.required,
            "default": self.default,
            "placeholder": self.placeholder,
            "options": self.options,
            "min": self.min_value,
            "max": self.max_value,
            "group": self.group,
            "secure": self.secure,
        }


@dataclass
class BaseConfig:
    """Base class for all registered configs."""

    @classmethod
    def get_default_instance(cls) -> "BaseConfig":
        return cls()

    @classmethod
    def get_config_name(cls) -> str:
        raise NotImplementedError

    @classmethod
    def get_display_name(cls) -> str:
        return cls.get_config_name()

    @classmethod
    def get_description(cls) -> str:
        return ""

    @classmethod
    def get_category(cls) -> str:
        return "general"

    @classmethod
    def get_icon(cls) -> str:
        return "settings"

    @classmethod
    def get_i18n(cls) -> Dict[str, Dict[str, Any]]:
        return {}

    @classmethod
    def get_fields_metadata(cls) -> List[ConfigField]:
        return []

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def update(self, **changes: Any) -> None:
        """Set fields in place, firing each field's ``apply_change`` hook."""
        hooks = {f.name: f.apply_change for f in self.get_fields_metadata()}
        for name, value in changes.items():
            if name not in self.__dataclass_fields__:
                raise KeyError(f"Unknown field '{name}' for config '{self.get_config_name()}'")
            old = getattr(self, name)
            setattr(self, name, value)
            hook = hooks.get(name)
            if hook is not None and old != value:
                hook(old, value)


# ── Registry ──

C = TypeVar("C", bound=Type[BaseConfig])

_registry: Dict[str, Type[BaseConfig]] = {}


def register_config(cls: C) -> C:
    """Class decorator adding a config to the global registry."""
    name = cls.get_config_name()
    if name in _registry and _registry[name] is not cls:
        logger.warning(f"Config '{name}' re-registered by {cls.__name__}")
    _registry[name] = cls
    return cls


def get_config_registry() -> Dict[str, Type[BaseConfig]]:
    """Return a copy of the name → config class registry."""
    return dict(_registry)


def get_config(name: str) -> BaseConfig:
    """Build the env-derived default instance of a registered config."""
    try:
        cls = _registry[name]
    except KeyError:
        raise KeyError(f"No config registered under '{name}'") from None
    return cls.get_default_instance()
