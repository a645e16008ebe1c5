"""
Persistence Bridge — recoverable cache and shared graph context.

After every store mutation the bridge mirrors the graph twice:

* ``GraphCache``   — a JSON file under the cache directory holding
  ``{workflow_id, nodes, edges, values, name}``. ``job_status`` is left
  out so a stale status is never restored on reload.
* ``GraphContext`` — the full graph including ``job_status``, published
  as a read-only snapshot to subscribed collaborators (node browser,
  run panel, …).
"""

from __future__ import annotations

import copy
import json
import os
import tempfile
from logging import getLogger
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from flowcanvas.workflow.errors import CacheCorrupt
from flowcanvas.workflow.workflow_model import WorkflowGraph

logger = getLogger(__name__)

GraphListener = Callable[[Dict[str, Any]], None]


class GraphCache:
    """Single-entry JSON-file cache for the current graph."""

    def __init__(self, storage_dir: Path, key: str) -> None:
        self._dir = Path(storage_dir)
        self._dir.mkdir(parents=True, exist_ok=True)
        self.key = key
        logger.info(f"GraphCache initialized at {self.path}")

    @property
    def path(self) -> Path:
        # Sanitize key for filesystem
        safe_key = "".join(c for c in self.key if c.isalnum() or c in "-_")
        return self._dir / f"{safe_key}.json"

    def save(self, data: Dict[str, Any]) -> None:
        """Write ``data`` atomically (temp file + replace)."""
        fd, tmp = tempfile.mkstemp(dir=self._dir, prefix=".graph-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def load(self) -> Optional[WorkflowGraph]:
        """Load the cached graph, or None when nothing is cached.

        Raises:
            CacheCorrupt: If the entry is not valid graph JSON.
        """
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return WorkflowGraph.model_validate(data)
        except (ValueError, ValidationError) as e:
            raise CacheCorrupt(f"Unreadable graph cache {self.path.name}: {e}") from e

    def discard(self) -> bool:
        """Delete the cache entry."""
        if self.path.exists():
            self.path.unlink()
            logger.info(f"Graph cache discarded: {self.path.name}")
            return True
        return False

    def exists(self) -> bool:
        return self.path.exists()


class GraphContext:
    """Read-only published view of the current graph."""

    def __init__(self) -> None:
        self._current: Dict[str, Any] = WorkflowGraph().to_context_dict()
        self._listeners: List[GraphListener] = []

    @property
    def current(self) -> Dict[str, Any]:
        """A private copy of the latest published graph."""
        return copy.deepcopy(self._current)

    def subscribe(self, listener: GraphListener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def publish(self, graph: Dict[str, Any]) -> None:
        self._current = graph
        for listener in list(self._listeners):
            try:
                listener(copy.deepcopy(graph))
            except Exception:
                logger.exception(f"Graph context listener {listener!r} failed")


class PersistenceBridge:
    """Mirror the store's graph into the cache and the shared context."""

    def __init__(
        self,
        cache: Optional[GraphCache] = None,
        context: Optional[GraphContext] = None,
    ) -> None:
        self.cache = cache
        self.context = context or GraphContext()

    def snapshot(self, graph: WorkflowGraph) -> None:
        if self.cache is not None:
            try:
                self.cache.save(graph.to_cache_dict())
            except OSError as e:
                logger.error(f"Failed to write graph cache: {e}")
        self.context.publish(graph.to_context_dict())

    def restore(self) -> Optional[WorkflowGraph]:
        """Load the cached graph (None without a cache or entry).

        Raises:
            CacheCorrupt: If the cached entry is malformed.
        """
        if self.cache is None:
            return None
        return self.cache.load()
