"""
Graph Store — the canonical workflow model and its mutation API.

Every mutation runs synchronously end to end:

    apply change → prune/seed handle values → record history → snapshot

History-recorded operations (``add_node``, ``on_nodes_change``,
``on_edges_change``, ``on_connect``) capture the pre-mutation state with
the ``UndoRedoManager``. Value patches, job status and name changes are
snapshotted but never recorded; selection is neither.

Usage::

    store = GraphStore(bridge=PersistenceBridge(cache=GraphCache(dir, "graph")))
    node = store.add_function_node(descriptor, {"x": 120, "y": 40})
    store.on_nodes_change([NodeRemoveChange(id=node.id)])
    store.undo()
"""

from __future__ import annotations

import copy
from logging import getLogger
from typing import Any, List, Mapping, Optional, Sequence, Union

from pydantic import TypeAdapter

from flowcanvas.workflow.changes import add_edge, apply_edge_changes, apply_node_changes
from flowcanvas.workflow.errors import DuplicateNodeId, InvalidConnection
from flowcanvas.workflow.handle_values import HandleValueStore, KeyLike
from flowcanvas.workflow.persistence import PersistenceBridge
from flowcanvas.workflow.undo_redo import (
    DEFAULT_HISTORY_LIMIT,
    CanvasSnapshot,
    UndoRedoManager,
)
from flowcanvas.workflow.workflow_model import (
    FUNCTION_NODE_TYPE,
    CanvasEdge,
    CanvasNode,
    Connection,
    EdgeChange,
    FunctionDescriptor,
    JobStatus,
    NodeAddChange,
    NodeChange,
    NodeRemoveChange,
    NodeReplaceChange,
    WorkflowGraph,
    new_workflow_id,
)

logger = getLogger(__name__)

_node_changes = TypeAdapter(List[NodeChange])
_edge_changes = TypeAdapter(List[EdgeChange])


class GraphStore:
    """Owns the workflow and coordinates values, history and persistence."""

    def __init__(
        self,
        bridge: Optional[PersistenceBridge] = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        self.workflow_id: str = new_workflow_id()
        self.name: Optional[str] = None
        self.nodes: List[CanvasNode] = []
        self.edges: List[CanvasEdge] = []
        self.values = HandleValueStore()
        self.job_status: JobStatus = None
        self.selected_node_ids: List[str] = []
        self.revision = 0

        self.bridge = bridge or PersistenceBridge()
        self.history = UndoRedoManager(self._capture, self._restore, limit=history_limit)

    # ========================================================================
    # Reads
    # ========================================================================

    @property
    def graph(self) -> WorkflowGraph:
        """Deep copy of the current model."""
        return WorkflowGraph(
            workflow_id=self.workflow_id,
            name=self.name,
            nodes=[n.model_copy(deep=True) for n in self.nodes],
            edges=[e.model_copy(deep=True) for e in self.edges],
            values=self.values.to_wire(),
            job_status=copy.deepcopy(self.job_status),
        )

    def get_node(self, node_id: str) -> Optional[CanvasNode]:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def next_node_id(self) -> str:
        """First unused id among ``"1".."n"``, else ``str(n + 1)``.

        Must be consumed in the same call that adds the node; see
        ``add_function_node``.
        """
        used = {n.id for n in self.nodes}
        candidate = 1
        while candidate < len(self.nodes) + 1:
            if str(candidate) not in used:
                return str(candidate)
            candidate += 1
        return str(candidate)

    # ========================================================================
    # Recorded mutations
    # ========================================================================

    def add_node(self, node: Union[CanvasNode, Mapping[str, Any]]) -> CanvasNode:
        """Append a node whose id the caller already assigned."""
        node = CanvasNode.model_validate(node)
        if self.get_node(node.id) is not None:
            raise DuplicateNodeId(f"Node id '{node.id}' is already in use")

        self._record("addNode")
        self.nodes = self.nodes + [node]
        self.values.seed(node)
        self._on_graph_change()
        logger.debug(f"Node added: {node.data.name} ({node.id})")
        return node

    def add_function_node(
        self,
        descriptor: Union[FunctionDescriptor, Mapping[str, Any]],
        position: Optional[Mapping[str, float]] = None,
        node_type: str = FUNCTION_NODE_TYPE,
    ) -> CanvasNode:
        """Drop-to-add: build a node from a function descriptor and add it.

        ``position`` is already in model coordinates.
        """
        node = CanvasNode(
            id=self.next_node_id(),
            type=node_type,
            data=FunctionDescriptor.model_validate(descriptor),
            position=dict(position or {"x": 0, "y": 0}),
        )
        return self.add_node(node)

    def on_nodes_change(self, changes: Sequence[Union[NodeChange, Mapping[str, Any]]]) -> None:
        """Apply a node change batch; prunes the values of removed nodes."""
        batch = _node_changes.validate_python(list(changes))
        before = self._capture()
        nodes = apply_node_changes(batch, self.nodes)
        self._record("onNodesChange", batch, before)
        self.nodes = nodes

        live_ids = {n.id for n in self.nodes}
        for change in batch:
            if isinstance(change, NodeRemoveChange):
                pruned = self.values.prune(change.id)
                logger.debug(f"Node {change.id} removed, {pruned} value(s) pruned")
            elif isinstance(change, NodeAddChange) and change.item.id in live_ids:
                self._seed_missing(self.get_node(change.item.id))
            elif (
                isinstance(change, NodeReplaceChange)
                and change.item.id != change.id
                and change.id not in live_ids
                and change.item.id in live_ids
            ):
                pruned = self.values.prune(change.id)
                logger.debug(f"Node {change.id} renamed to {change.item.id}, {pruned} value(s) pruned")
                self._seed_missing(self.get_node(change.item.id))
        self._on_graph_change()

    def on_edges_change(self, changes: Sequence[Union[EdgeChange, Mapping[str, Any]]]) -> None:
        batch = _edge_changes.validate_python(list(changes))
        before = self._capture()
        edges = apply_edge_changes(batch, self.edges, node_ids={n.id for n in self.nodes})
        self._record("onEdgesChange", batch, before)
        self.edges = edges
        self._on_graph_change()

    def on_connect(self, connection: Union[Connection, Mapping[str, Any]]) -> Optional[CanvasEdge]:
        """Create an edge for ``connection``; returns it, or None if it already existed.

        Raises:
            InvalidConnection: If either endpoint is not a live node.
        """
        connection = Connection.model_validate(connection)
        for endpoint in (connection.source, connection.target):
            if self.get_node(endpoint) is None:
                raise InvalidConnection(f"Unknown node '{endpoint}' in connection")

        before = self._capture()
        edges, edge = add_edge(connection, self.edges)
        self._record("onConnect", snapshot=before)
        self.edges = edges
        self._on_graph_change()
        return edge

    # ========================================================================
    # Unrecorded mutations
    # ========================================================================

    def update_values(self, patch: Mapping[KeyLike, Any]) -> None:
        """Merge ``patch`` into the handle values (``UNSET`` deletes)."""
        self.values.patch(patch, node_ids=[n.id for n in self.nodes])
        self.revision += 1
        self._on_graph_change()

    def load_graph(self, graph: Union[WorkflowGraph, Mapping[str, Any]]) -> None:
        """Replace the whole model and start a fresh history."""
        graph = WorkflowGraph.model_validate(graph)
        logger.info(
            f"Loading graph '{graph.name or 'untitled'}' ({graph.workflow_id}): "
            f"{len(graph.nodes)} nodes, {len(graph.edges)} edges"
        )
        self.workflow_id = graph.workflow_id
        self.name = graph.name
        self.nodes = [n.model_copy(deep=True) for n in graph.nodes]
        self.edges = [e.model_copy(deep=True) for e in graph.edges]
        self.values = HandleValueStore.from_wire(graph.values, node_ids=[n.id for n in self.nodes])
        self.job_status = copy.deepcopy(graph.job_status)
        self.revision += 1
        self._on_graph_change()
        self.history.reset("init")

    def set_job_status(self, status: JobStatus) -> None:
        self.job_status = status
        self._on_graph_change()

    def set_name(self, name: Optional[str]) -> None:
        self.name = name
        self.revision += 1
        self._on_graph_change()

    def set_selected_node_ids(self, ids: Sequence[str]) -> None:
        self.selected_node_ids = list(ids)

    def set_nodes(self, nodes: Sequence[Union[CanvasNode, Mapping[str, Any]]]) -> None:
        """Raw setter for the rendering layer: no history, no snapshot."""
        self.nodes = [CanvasNode.model_validate(n) for n in nodes]

    def set_edges(self, edges: Sequence[Union[CanvasEdge, Mapping[str, Any]]]) -> None:
        """Raw setter for the rendering layer: no history, no snapshot."""
        self.edges = [CanvasEdge.model_validate(e) for e in edges]

    # ========================================================================
    # History
    # ========================================================================

    def undo(self) -> Optional[str]:
        action = self.history.undo()
        if action is not None:
            self.revision += 1
            self._on_graph_change()
        return action

    def redo(self) -> Optional[str]:
        action = self.history.redo()
        if action is not None:
            self.revision += 1
            self._on_graph_change()
        return action

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    # ========================================================================
    # Internals
    # ========================================================================

    def _record(
        self,
        action_type: str,
        payload: Any = None,
        snapshot: Optional[CanvasSnapshot] = None,
    ) -> None:
        self.history.add_undo_stack(action_type, payload, snapshot)
        self.revision += 1

    def _capture(self) -> CanvasSnapshot:
        return CanvasSnapshot(self.nodes, self.edges, self.values).copy()

    def _restore(self, snapshot: CanvasSnapshot) -> None:
        self.nodes = snapshot.nodes
        for node in self.nodes:
            node.dragging = False
        self.edges = snapshot.edges
        self.values = snapshot.values
        live_ids = {n.id for n in self.nodes}
        self.selected_node_ids = [i for i in self.selected_node_ids if i in live_ids]

    def _seed_missing(self, node: CanvasNode) -> None:
        fresh = HandleValueStore()
        fresh.seed(node)
        self.values.patch({k: v for k, v in fresh.items() if k not in self.values})

    def _on_graph_change(self) -> None:
        self.bridge.snapshot(self.graph)

    def __repr__(self) -> str:
        return (
            f"GraphStore(workflow_id={self.workflow_id!r}, "
            f"nodes={len(self.nodes)}, edges={len(self.edges)}, values={len(self.values)})"
        )
