"""
Node definition client — async HTTP calls to the editor backend.

Wraps the two endpoints the canvas consumes:

* ``POST /refresh_node_def``    — re-resolve function descriptors of a
  cached graph against the current source tree.
* ``GET  /list_package_children`` — list folders/files (with their
  function descriptors) below a package path.

Every failure surfaces as ``FetchFailed``; callers never see a
partially decoded response.
"""

from __future__ import annotations

from logging import getLogger
from typing import Any, Dict, List, Mapping, Optional, Union

import httpx
from pydantic import TypeAdapter, ValidationError

from flowcanvas.workflow.errors import FetchFailed
from flowcanvas.workflow.workflow_model import FileTreeEntry, WorkflowGraph

logger = getLogger(__name__)

REFRESH_NODE_DEF = "/refresh_node_def"
LIST_PACKAGE_CHILDREN = "/list_package_children"

_file_tree = TypeAdapter(List[FileTreeEntry])


class NodeDefClient:
    """Async client for the node-definition endpoints."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )

    async def refresh_node_def(
        self,
        graph: Union[WorkflowGraph, Mapping[str, Any]],
    ) -> WorkflowGraph:
        """Send the cached graph and return the backend's refreshed copy."""
        if isinstance(graph, WorkflowGraph):
            body: Dict[str, Any] = graph.to_cache_dict()
        else:
            body = dict(graph)
        data = await self._request("POST", REFRESH_NODE_DEF, json=body)
        try:
            return WorkflowGraph.model_validate(data)
        except ValidationError as e:
            raise FetchFailed(REFRESH_NODE_DEF, f"unexpected response shape: {e}") from e

    async def list_package_children(self, path: str) -> List[FileTreeEntry]:
        """List the entries below ``path`` (relative to the package root)."""
        data = await self._request("GET", LIST_PACKAGE_CHILDREN, params={"path": path})
        try:
            return _file_tree.validate_python(data)
        except ValidationError as e:
            raise FetchFailed(LIST_PACKAGE_CHILDREN, f"unexpected response shape: {e}") from e

    async def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, endpoint, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(f"{method} {endpoint} returned {e.response.status_code}")
            raise FetchFailed(endpoint, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.warning(f"{method} {endpoint} failed: {e}")
            raise FetchFailed(endpoint, str(e) or type(e).__name__) from e
        except ValueError as e:
            raise FetchFailed(endpoint, f"invalid JSON: {e}") from e

    async def aclose(self) -> None:
        if not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "NodeDefClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
