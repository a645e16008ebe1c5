"""
Workflow Canvas Core — state synchronization for the visual editor.

Keeps one consistent, undoable model of a workflow of function nodes
while user edits, graph loads and pushed job-status events arrive.

Architecture:
    workflow_model  — pydantic models for nodes, edges, handles, changes
    changes         — apply node/edge change batches and connections
    handle_values   — (direction, node, handle) → value map
    undo_redo       — bounded snapshot-based history
    persistence     — recoverable cache + published graph context
    status_channel  — websocket client for job-status pushes
    api_client      — httpx client for node-definition endpoints
    graph_store     — canonical model and mutation API
    editor_session  — mount/unmount lifecycle tying it all together
"""

from flowcanvas.workflow.workflow_model import (
    CanvasEdge,
    CanvasNode,
    Connection,
    FileTreeEntry,
    FunctionDescriptor,
    HandleSpec,
    WorkflowGraph,
)
from flowcanvas.workflow.errors import (
    CacheCorrupt,
    CanvasError,
    ChannelClosed,
    DuplicateNodeId,
    FetchFailed,
    InvalidConnection,
)
from flowcanvas.workflow.handle_values import UNSET, HandleKey, HandleValueStore
from flowcanvas.workflow.undo_redo import UndoRedoManager
from flowcanvas.workflow.persistence import GraphCache, GraphContext, PersistenceBridge
from flowcanvas.workflow.status_channel import StatusChannel
from flowcanvas.workflow.api_client import NodeDefClient
from flowcanvas.workflow.graph_store import GraphStore
from flowcanvas.workflow.editor_session import EditorSession

__all__ = [
    "CanvasEdge",
    "CanvasNode",
    "Connection",
    "FileTreeEntry",
    "FunctionDescriptor",
    "HandleSpec",
    "WorkflowGraph",
    "CacheCorrupt",
    "CanvasError",
    "ChannelClosed",
    "DuplicateNodeId",
    "FetchFailed",
    "InvalidConnection",
    "UNSET",
    "HandleKey",
    "HandleValueStore",
    "UndoRedoManager",
    "GraphCache",
    "GraphContext",
    "PersistenceBridge",
    "StatusChannel",
    "NodeDefClient",
    "GraphStore",
    "EditorSession",
]
