"""
Session Logger — per-workflow editor timeline.

Each editing session gets a log file named after its workflow id that
records graph loads, status events and channel state changes. Records
also propagate to the ``flowcanvas.session`` logger so they show up in
the application log.
"""

from __future__ import annotations

import logging
from logging import getLogger
from pathlib import Path
from typing import Any, Dict, Optional

logger = getLogger(__name__)

_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


class SessionLogger:
    """Write timeline entries for one workflow to ``<log_dir>/<workflow_id>.log``."""

    def __init__(self, workflow_id: str, log_dir: Optional[Path] = None) -> None:
        self.workflow_id = workflow_id
        self._logger = getLogger(f"flowcanvas.session.{workflow_id}")
        self._logger.setLevel(logging.INFO)
        self._handler: Optional[logging.Handler] = None
        self.log_path: Optional[Path] = None
        if log_dir is not None:
            log_dir = Path(log_dir)
            log_dir.mkdir(parents=True, exist_ok=True)
            self.log_path = log_dir / f"{_safe_name(workflow_id)}.log"
            self._handler = logging.FileHandler(self.log_path, encoding="utf-8")
            self._handler.setFormatter(logging.Formatter(_FORMAT))
            self._logger.addHandler(self._handler)

    def info(self, event: str, **fields: Any) -> None:
        self._logger.info(_render(event, fields))

    def warning(self, event: str, **fields: Any) -> None:
        self._logger.warning(_render(event, fields))

    def error(self, event: str, **fields: Any) -> None:
        self._logger.error(_render(event, fields))

    def close(self) -> None:
        """Detach and close the file handler."""
        if self._handler is not None:
            self._logger.removeHandler(self._handler)
            self._handler.close()
            self._handler = None


def _render(event: str, fields: Dict[str, Any]) -> str:
    if not fields:
        return event
    detail = " ".join(f"{k}={v}" for k, v in fields.items())
    return f"{event} {detail}"


def _safe_name(workflow_id: str) -> str:
    return "".join(c for c in workflow_id if c.isalnum() or c in "-_") or "workflow"


# ── Per-workflow cache ──

_session_loggers: Dict[str, SessionLogger] = {}


def get_session_logger(workflow_id: str, log_dir: Optional[Path] = None) -> SessionLogger:
    """Return the cached SessionLogger for a workflow, creating it on first use."""
    session_logger = _session_loggers.get(workflow_id)
    if session_logger is None:
        session_logger = SessionLogger(workflow_id, log_dir)
        _session_loggers[workflow_id] = session_logger
        logger.debug(f"Session logger created for workflow {workflow_id}")
    return session_logger


def close_session_logger(workflow_id: str) -> None:
    """Close and forget the logger of a workflow (no-op when unknown)."""
    session_logger = _session_loggers.pop(workflow_id, None)
    if session_logger is not None:
        session_logger.close()
