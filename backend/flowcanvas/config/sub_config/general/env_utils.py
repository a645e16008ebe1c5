"""
Environment helpers for configs.

``read_env_defaults`` builds constructor kwargs from environment
variables, coercing each value to the dataclass field's default type.
``env_sync`` returns an ``apply_change`` hook that mirrors an edited
field back into ``os.environ``.
"""

from __future__ import annotations

import os
from dataclasses import MISSING, Field
from logging import getLogger
from typing import Any, Callable, Dict

logger = getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _coerce(raw: str, sample: Any) -> Any:
    if isinstance(sample, bool):
        return raw.strip().lower() in _TRUE_VALUES
    if isinstance(sample, int):
        return int(raw)
    if isinstance(sample, float):
        return float(raw)
    return raw


def read_env_defaults(
    env_map: Dict[str, str],
    fields: Dict[str, Field],
) -> Dict[str, Any]:
    """Collect field values from the environment.

    Variables that are unset or fail to parse are skipped, leaving the
    dataclass default in place.
    """
    values: Dict[str, Any] = {}
    for field_name, env_name in env_map.items():
        raw = os.environ.get(env_name)
        if raw is None or field_name not in fields:
            continue
        default = fields[field_name].default
        sample = None if default is MISSING else default
        try:
            values[field_name] = _coerce(raw, sample)
        except ValueError:
            logger.warning(f"Ignoring invalid value for {env_name}: {raw!r}")
    return values


def env_sync(env_name: str) -> Callable[[Any, Any], None]:
    """Hook that writes the new field value to ``env_name``."""

    def _apply(old: Any, new: Any) -> None:
        os.environ[env_name] = str(new)

    return _apply
