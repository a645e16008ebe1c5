"""
Undo/Redo Manager — bounded, snapshot-based edit history.

Each recorded action stores a deep copy of the canvas state as it was
*before* the mutation. Undo swaps the live state with the stored
snapshot (pushing the live state onto the redo stack); redo is the
mirror. No operation inverses are needed, so actions recorded without
a payload (``onConnect``, ``addNode``, …) undo just as well as those
carrying their change batch.

Only ``nodes``, ``edges`` and ``values`` are captured. Job status,
name and selection are never reverted by undo.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from logging import getLogger
from typing import Any, Callable, Deque, List, Optional

from flowcanvas.workflow.handle_values import HandleValueStore
from flowcanvas.workflow.workflow_model import CanvasEdge, CanvasNode

logger = getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 100


@dataclass
class CanvasSnapshot:
    """Deep copy of the undoable part of the canvas."""
    nodes: List[CanvasNode]
    edges: List[CanvasEdge]
    values: HandleValueStore

    def copy(self) -> "CanvasSnapshot":
        return CanvasSnapshot(
            nodes=[n.model_copy(deep=True) for n in self.nodes],
            edges=[e.model_copy(deep=True) for e in self.edges],
            values=self.values.copy(),
        )


@dataclass
class HistoryRecord:
    action_type: str
    payload: Any
    snapshot: CanvasSnapshot


class UndoRedoManager:
    """Two bounded stacks of ``HistoryRecord``s.

    ``capture`` must return a deep copy of the live state; ``restore``
    replaces the live state with a snapshot.
    """

    def __init__(
        self,
        capture: Callable[[], CanvasSnapshot],
        restore: Callable[[CanvasSnapshot], None],
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self._capture = capture
        self._restore = restore
        self._limit = limit
        self._undo: Deque[HistoryRecord] = deque(maxlen=limit)
        self._redo: Deque[HistoryRecord] = deque(maxlen=limit)
        self.baseline: Optional[str] = None

    # ── Recording ──

    def add_undo_stack(
        self,
        action_type: str,
        payload: Any = None,
        snapshot: Optional[CanvasSnapshot] = None,
    ) -> None:
        """Record the pre-mutation state of ``action_type`` and clear redo.

        ``snapshot`` is a state captured earlier; when omitted the live
        state is captured now.
        """
        if len(self._undo) == self._limit:
            logger.debug(f"Undo history full, dropping '{self._undo[0].action_type}'")
        if snapshot is None:
            snapshot = self._capture()
        self._undo.append(HistoryRecord(action_type, payload, snapshot))
        self._redo.clear()

    def reset(self, baseline: str = "init") -> None:
        """Drop all history; the current state becomes the new baseline."""
        self._undo.clear()
        self._redo.clear()
        self.baseline = baseline

    # ── Replay ──

    def undo(self) -> Optional[str]:
        """Revert the most recent action; returns its type or None."""
        if not self._undo:
            return None
        record = self._undo.pop()
        self._redo.append(HistoryRecord(record.action_type, record.payload, self._capture()))
        self._restore(record.snapshot.copy())
        logger.debug(f"Undo '{record.action_type}'")
        return record.action_type

    def redo(self) -> Optional[str]:
        """Re-apply the most recently undone action; returns its type or None."""
        if not self._redo:
            return None
        record = self._redo.pop()
        self._undo.append(HistoryRecord(record.action_type, record.payload, self._capture()))
        self._restore(record.snapshot.copy())
        logger.debug(f"Redo '{record.action_type}'")
        return record.action_type

    # ── Introspection ──

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_actions(self) -> List[str]:
        """Recorded action types, oldest first."""
        return [r.action_type for r in self._undo]

    @property
    def redo_actions(self) -> List[str]:
        return [r.action_type for r in self._redo]

    @property
    def limit(self) -> int:
        return self._limit
