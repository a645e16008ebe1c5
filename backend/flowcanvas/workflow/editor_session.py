"""
Editor Session — mount/unmount lifecycle of one canvas editor.

On enter:
    1. Restore the graph from the local cache (a corrupt entry is
       discarded and the editor starts fresh).
    2. If something was restored, ask the backend to refresh its node
       definitions in the background.
    3. Open the status channel.

The refresh result is applied only if the graph is still the one the
request was issued for (same ``workflow_id`` and ``revision``); a
response that arrives after the user started editing, or after a
different graph was loaded, is dropped.

On exit the status channel is closed and an in-flight refresh is
cancelled, so nothing can overwrite the model after unmount.
"""

from __future__ import annotations

import asyncio
from logging import getLogger
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

from flowcanvas.config import CanvasConfig
from flowcanvas.logging import SessionLogger, close_session_logger, get_session_logger
from flowcanvas.workflow.api_client import NodeDefClient
from flowcanvas.workflow.errors import CacheCorrupt, FetchFailed
from flowcanvas.workflow.graph_store import GraphStore
from flowcanvas.workflow.persistence import GraphCache, GraphContext, PersistenceBridge
from flowcanvas.workflow.status_channel import Connector, Envelope, StatusChannel
from flowcanvas.workflow.workflow_model import CanvasNode, FileTreeEntry, FunctionDescriptor

logger = getLogger(__name__)


class EditorSession:
    """Wire a GraphStore to its cache, backend client and status channel."""

    def __init__(
        self,
        config: Optional[CanvasConfig] = None,
        store: Optional[GraphStore] = None,
        client: Optional[NodeDefClient] = None,
        channel: Optional[StatusChannel] = None,
        connect: Optional[Connector] = None,
    ) -> None:
        self.config = config or CanvasConfig.get_default_instance()
        if store is None:
            cache = GraphCache(Path(self.config.cache_dir), self.config.cache_key)
            store = GraphStore(
                bridge=PersistenceBridge(cache=cache, context=GraphContext()),
                history_limit=self.config.history_limit,
            )
        self.store = store
        self.client = client or NodeDefClient(
            self.config.api_base, timeout=self.config.request_timeout,
        )
        self.channel = channel or StatusChannel(
            self.config.resolved_ws_url,
            self.store.set_job_status,
            initial_delay=self.config.reconnect_initial_delay,
            max_delay=self.config.reconnect_max_delay,
            max_attempts=self.config.reconnect_max_attempts,
            connect=connect,
        )
        self.refresh_task: Optional[asyncio.Task] = None
        self._session_log: Optional[SessionLogger] = None

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def __aenter__(self) -> "EditorSession":
        await self.mount()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.unmount()

    async def mount(self) -> None:
        restored = self.restore_from_cache()
        self._open_session_log()
        if restored:
            self.refresh_task = asyncio.create_task(self.refresh_node_defs())
        self.channel.add_listener(self._log_envelope)
        await self.channel.start()

    async def unmount(self) -> None:
        await self.channel.stop()
        self.channel.remove_listener(self._log_envelope)
        task, self.refresh_task = self.refresh_task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait([task])
        await self.client.aclose()
        if self._session_log is not None:
            self._session_log.info("editor unmounted")
            close_session_logger(self._session_log.workflow_id)
            self._session_log = None

    # ========================================================================
    # Loading
    # ========================================================================

    def restore_from_cache(self) -> bool:
        """Load the cached graph into the store; returns whether one was loaded."""
        bridge = self.store.bridge
        try:
            graph = bridge.restore()
        except CacheCorrupt as e:
            logger.warning(f"{e}; discarding and starting fresh")
            if bridge.cache is not None:
                bridge.cache.discard()
            return False
        if graph is None:
            return False
        self.store.load_graph(graph)
        return True

    async def refresh_node_defs(self) -> bool:
        """Re-resolve node definitions; returns whether the result was applied."""
        workflow_id = self.store.workflow_id
        revision = self.store.revision
        try:
            graph = await self.client.refresh_node_def(self.store.graph)
        except FetchFailed as e:
            logger.warning(f"Node definition refresh failed: {e}")
            return False

        if self.store.workflow_id != workflow_id or self.store.revision != revision:
            logger.warning(
                f"Dropping stale node definition refresh for {workflow_id} "
                f"(graph changed while the request was in flight)"
            )
            return False
        self.store.load_graph(graph)
        if self._session_log is not None:
            self._session_log.info("node definitions refreshed", nodes=len(graph.nodes))
        return True

    # ========================================================================
    # Node browser / drop-to-add
    # ========================================================================

    async def list_package_children(self, path: str) -> List[FileTreeEntry]:
        return await self.client.list_package_children(path)

    def drop_function(
        self,
        descriptor: Union[FunctionDescriptor, Mapping[str, Any]],
        position: Mapping[str, float],
    ) -> CanvasNode:
        """Add a dragged function descriptor at a model-space position."""
        return self.store.add_function_node(descriptor, position)

    # ========================================================================
    # Internals
    # ========================================================================

    def _open_session_log(self) -> None:
        self._session_log = get_session_logger(self.store.workflow_id, Path(self.config.log_dir))
        self._session_log.info(
            "editor mounted",
            nodes=len(self.store.nodes),
            edges=len(self.store.edges),
        )

    def _log_envelope(self, message: Envelope) -> None:
        if self._session_log is not None:
            self._session_log.info("channel message", type=message["type"])
