"""
Change application for node and edge lists.

Pure functions: each takes the current list and returns a new one,
leaving the input untouched. Changes are applied strictly in the order
given; changes that reference unknown ids are ignored.
"""

from __future__ import annotations

from logging import getLogger
from typing import Collection, List, Optional, Sequence, Tuple

from flowcanvas.workflow.workflow_model import (
    CanvasEdge,
    CanvasNode,
    Connection,
    EdgeAddChange,
    EdgeChange,
    EdgeRemoveChange,
    EdgeReplaceChange,
    EdgeSelectionChange,
    NodeAddChange,
    NodeChange,
    NodeDimensionChange,
    NodePositionChange,
    NodeRemoveChange,
    NodeReplaceChange,
    NodeSelectionChange,
    new_edge_id,
)

logger = getLogger(__name__)


def _index_of(items: Sequence, item_id: str) -> Optional[int]:
    for i, item in enumerate(items):
        if item.id == item_id:
            return i
    return None


def _insert(items: list, item, index: Optional[int]) -> None:
    if index is None or index >= len(items):
        items.append(item)
    else:
        items.insert(max(index, 0), item)


def apply_node_changes(
    changes: Sequence[NodeChange],
    nodes: Sequence[CanvasNode],
) -> List[CanvasNode]:
    """Apply a node change batch and return the resulting node list."""
    result = [n.model_copy(deep=True) for n in nodes]

    for change in changes:
        if isinstance(change, NodeAddChange):
            if _index_of(result, change.item.id) is not None:
                logger.warning(f"Ignoring add of duplicate node id {change.item.id}")
                continue
            _insert(result, change.item.model_copy(deep=True), change.index)
            continue

        idx = _index_of(result, change.id)
        if idx is None:
            continue

        if isinstance(change, NodeRemoveChange):
            del result[idx]
        elif isinstance(change, NodeReplaceChange):
            other = _index_of(result, change.item.id)
            if other is not None and other != idx:
                logger.warning(
                    f"Ignoring replace of node {change.id}: id {change.item.id} is already in use"
                )
                continue
            result[idx] = change.item.model_copy(deep=True)
        elif isinstance(change, NodeSelectionChange):
            result[idx].selected = change.selected
        elif isinstance(change, NodePositionChange):
            node = result[idx]
            if change.position is not None:
                node.position = dict(change.position)
            if change.dragging is not None:
                node.dragging = change.dragging
        elif isinstance(change, NodeDimensionChange):
            node = result[idx]
            if change.dimensions is not None:
                node.width = change.dimensions.get("width", node.width)
                node.height = change.dimensions.get("height", node.height)

    return result


def apply_edge_changes(
    changes: Sequence[EdgeChange],
    edges: Sequence[CanvasEdge],
    node_ids: Optional[Collection[str]] = None,
) -> List[CanvasEdge]:
    """Apply an edge change batch and return the resulting edge list.

    When ``node_ids`` is given, added edges must reference existing
    nodes; others are skipped.
    """
    result = [e.model_copy(deep=True) for e in edges]

    for change in changes:
        if isinstance(change, EdgeAddChange):
            item = change.item
            if node_ids is not None and (item.source not in node_ids or item.target not in node_ids):
                logger.warning(
                    f"Skipping edge {item.id}: endpoint missing "
                    f"({item.source} -> {item.target})"
                )
                continue
            if _index_of(result, item.id) is not None:
                logger.warning(f"Ignoring add of duplicate edge id {item.id}")
                continue
            _insert(result, item.model_copy(deep=True), change.index)
            continue

        idx = _index_of(result, change.id)
        if idx is None:
            continue

        if isinstance(change, EdgeRemoveChange):
            del result[idx]
        elif isinstance(change, EdgeReplaceChange):
            other = _index_of(result, change.item.id)
            if other is not None and other != idx:
                logger.warning(
                    f"Ignoring replace of edge {change.id}: id {change.item.id} is already in use"
                )
                continue
            result[idx] = change.item.model_copy(deep=True)
        elif isinstance(change, EdgeSelectionChange):
            result[idx].selected = change.selected

    return result


def add_edge(
    connection: Connection,
    edges: Sequence[CanvasEdge],
) -> Tuple[List[CanvasEdge], Optional[CanvasEdge]]:
    """Append an edge for ``connection`` with a fresh id.

    Returns the new list and the created edge, or ``None`` when an
    identical connection already exists.
    """
    result = [e.model_copy(deep=True) for e in edges]
    if any(connection.matches(e) for e in result):
        return result, None
    existing = {e.id for e in result}
    edge_id = new_edge_id()
    while edge_id in existing:
        edge_id = new_edge_id()
    edge = CanvasEdge(
        id=edge_id,
        source=connection.source,
        target=connection.target,
        source_handle=connection.source_handle,
        target_handle=connection.target_handle,
    )
    result.append(edge)
    return result, edge
