"""
Workflow Data Models — canvas nodes, edges, handles and change batches.

These are the serializable structures exchanged with the rendering
layer, the local graph cache and the backend. Field aliases keep the
camelCase wire names (``sourceHandle``, ``targetHandle``) while Python
code uses snake_case attributes.
"""

from __future__ import annotations

import uuid
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

FUNCTION_NODE_TYPE = "astFunction"

JobStatus = Any


def new_workflow_id() -> str:
    return str(uuid.uuid4())


def new_edge_id() -> str:
    return str(uuid.uuid4())[:8]


# ============================================================================
# Function descriptors
# ============================================================================


class HandleSpec(BaseModel):
    """One input or output port declared by a function descriptor."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: Optional[str] = None
    type: Optional[str] = None
    default: Any = None


class FunctionDescriptor(BaseModel):
    """A callable exposed by the node browser: name plus ordered handles.

    Unknown descriptor fields (module path, docstring, …) are kept as-is
    so they survive a round trip through the cache.
    """

    model_config = ConfigDict(extra="allow")

    name: str
    input: List[HandleSpec] = Field(default_factory=list)
    output: List[HandleSpec] = Field(default_factory=list)


# ============================================================================
# Nodes and edges
# ============================================================================


class CanvasNode(BaseModel):
    """A single node placed on the canvas.

    ``id`` is assigned by the store (see ``GraphStore.next_node_id``).
    ``position`` is owned by the rendering layer but stored here.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    type: str = FUNCTION_NODE_TYPE
    position: Dict[str, float] = Field(
        default_factory=lambda: {"x": 0, "y": 0}
    )
    data: FunctionDescriptor
    selected: bool = False
    dragging: bool = False
    width: Optional[float] = None
    height: Optional[float] = None


class CanvasEdge(BaseModel):
    """A directed edge between two node handles."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(default_factory=new_edge_id)
    source: str
    target: str
    source_handle: Optional[str] = Field(default=None, alias="sourceHandle")
    target_handle: Optional[str] = Field(default=None, alias="targetHandle")
    selected: bool = False


class Connection(BaseModel):
    """A proposed source/target/handle tuple from a connect gesture."""

    model_config = ConfigDict(populate_by_name=True)

    source: str
    target: str
    source_handle: Optional[str] = Field(default=None, alias="sourceHandle")
    target_handle: Optional[str] = Field(default=None, alias="targetHandle")

    def matches(self, edge: CanvasEdge) -> bool:
        return (
            edge.source == self.source
            and edge.target == self.target
            and edge.source_handle == self.source_handle
            and edge.target_handle == self.target_handle
        )


# ============================================================================
# Change batches
# ============================================================================


class NodePositionChange(BaseModel):
    type: Literal["position"] = "position"
    id: str
    position: Optional[Dict[str, float]] = None
    dragging: Optional[bool] = None


class NodeDimensionChange(BaseModel):
    type: Literal["dimensions"] = "dimensions"
    id: str
    dimensions: Optional[Dict[str, float]] = None
    resizing: Optional[bool] = None


class NodeSelectionChange(BaseModel):
    type: Literal["select"] = "select"
    id: str
    selected: bool


class NodeRemoveChange(BaseModel):
    type: Literal["remove"] = "remove"
    id: str


class NodeAddChange(BaseModel):
    type: Literal["add"] = "add"
    item: CanvasNode
    index: Optional[int] = None


class NodeReplaceChange(BaseModel):
    type: Literal["replace"] = "replace"
    id: str
    item: CanvasNode


NodeChange = Annotated[
    Union[
        NodePositionChange,
        NodeDimensionChange,
        NodeSelectionChange,
        NodeRemoveChange,
        NodeAddChange,
        NodeReplaceChange,
    ],
    Field(discriminator="type"),
]


class EdgeSelectionChange(BaseModel):
    type: Literal["select"] = "select"
    id: str
    selected: bool


class EdgeRemoveChange(BaseModel):
    type: Literal["remove"] = "remove"
    id: str


class EdgeAddChange(BaseModel):
    type: Literal["add"] = "add"
    item: CanvasEdge
    index: Optional[int] = None


class EdgeReplaceChange(BaseModel):
    type: Literal["replace"] = "replace"
    id: str
    item: CanvasEdge


EdgeChange = Annotated[
    Union[EdgeSelectionChange, EdgeRemoveChange, EdgeAddChange, EdgeReplaceChange],
    Field(discriminator="type"),
]


# ============================================================================
# Workflow graph
# ============================================================================


class WorkflowGraph(BaseModel):
    """The whole editable workflow as exchanged on the wire.

    ``values`` uses the encoded handle keys
    (``"<direction>_node_<nodeId>_<handleId>"``).
    """

    workflow_id: str = Field(default_factory=new_workflow_id)
    name: Optional[str] = None
    nodes: List[CanvasNode] = Field(default_factory=list)
    edges: List[CanvasEdge] = Field(default_factory=list)
    values: Dict[str, Any] = Field(default_factory=dict)
    job_status: JobStatus = None

    def get_node(self, node_id: str) -> Optional[CanvasNode]:
        """Find a node by ID."""
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def get_edges_from(self, node_id: str) -> List[CanvasEdge]:
        """Get all edges originating from a node."""
        return [e for e in self.edges if e.source == node_id]

    def get_edges_to(self, node_id: str) -> List[CanvasEdge]:
        """Get all edges pointing to a node."""
        return [e for e in self.edges if e.target == node_id]

    def dangling_edges(self) -> List[CanvasEdge]:
        """Edges whose source or target node no longer exists."""
        node_ids = {n.id for n in self.nodes}
        return [
            e for e in self.edges
            if e.source not in node_ids or e.target not in node_ids
        ]

    def to_cache_dict(self) -> Dict[str, Any]:
        """Recoverable snapshot: everything except ``job_status`` and drag state."""
        return self.model_dump(
            by_alias=True,
            exclude={"job_status": True, "nodes": {"__all__": {"dragging"}}},
        )

    def to_context_dict(self) -> Dict[str, Any]:
        """Full snapshot published to collaborators."""
        return self.model_dump(by_alias=True)


class FileTreeEntry(BaseModel):
    """One entry returned by ``/list_package_children``."""

    type: Literal["folder", "file"]
    name: str
    path: str
    functions: Optional[List[FunctionDescriptor]] = None
