"""
Status Channel — websocket client for backend job-status pushes.

Holds one long-lived connection to the backend's ``/ws`` endpoint.
Every inbound envelope ``{"type": ..., "data": ...}`` is broadcast to
registered listeners; ``job_status`` envelopes are additionally handed
to the ``on_job_status`` callback (normally ``GraphStore.set_job_status``).
Messages are handled one at a time in arrival order.

When the connection drops, the channel reconnects with exponential
backoff. Listeners belong to the channel rather than the connection,
so a reconnect needs no resubscription. After ``max_attempts``
consecutive failures (0 = never give up) the channel stops with
``ChannelClosed``; the editor keeps working without live status.

Usage::

    async with StatusChannel(url, store.set_job_status) as channel:
        channel.add_listener(print)
        ...
"""

from __future__ import annotations

import asyncio
import json
from logging import getLogger
from typing import (
    Any,
    AsyncContextManager,
    AsyncIterable,
    Callable,
    Dict,
    List,
    Optional,
    Union,
)

import websockets
from websockets.exceptions import WebSocketException

from flowcanvas.workflow.errors import ChannelClosed
from flowcanvas.workflow.workflow_model import JobStatus

logger = getLogger(__name__)

JOB_STATUS = "job_status"

Envelope = Dict[str, Any]
Listener = Callable[[Envelope], None]
Connector = Callable[[str], AsyncContextManager[AsyncIterable[Union[str, bytes]]]]


def _default_connect(url: str) -> AsyncContextManager[AsyncIterable[Union[str, bytes]]]:
    return websockets.connect(url, ping_interval=20, ping_timeout=10)


class StatusChannel:
    """Reconnecting push-channel client."""

    def __init__(
        self,
        url: str,
        on_job_status: Callable[[JobStatus], None],
        initial_delay: float = 1.0,
        max_delay: float = 30.0,
        max_attempts: int = 0,
        connect: Optional[Connector] = None,
    ) -> None:
        self.url = url
        self._on_job_status = on_job_status
        self._initial_delay = initial_delay
        self._max_delay = max_delay
        self._max_attempts = max_attempts
        self._connect = connect or _default_connect
        self._listeners: List[Listener] = []
        self._task: Optional[asyncio.Task] = None
        self._running = False
        self._connected = False
        self.closed_reason: Optional[ChannelClosed] = None

    # ── Listeners ──

    def add_listener(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ── Message handling ──

    def handle_message(self, raw: Union[str, bytes]) -> Optional[Envelope]:
        """Decode one inbound frame, broadcast it, and apply job status.

        Returns the decoded envelope, or None if the frame was skipped.
        """
        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Invalid JSON on status channel: {str(raw)[:100]}")
            return None
        if not isinstance(message, dict) or not isinstance(message.get("type"), str):
            logger.warning(f"Ignoring envelope without a type: {str(raw)[:100]}")
            return None

        self._broadcast(message)
        if message["type"] == JOB_STATUS and message.get("data"):
            self._on_job_status(message["data"])
        return message

    def _broadcast(self, message: Envelope) -> None:
        for listener in list(self._listeners):
            try:
                listener(message)
            except Exception:
                logger.exception(f"Status listener {listener!r} failed on '{message['type']}'")

    # ── Lifecycle ──

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background connection loop."""
        if self.running:
            return
        self._running = True
        self.closed_reason = None
        self._task = asyncio.create_task(self._connect_loop())
        self._task.add_done_callback(self._on_task_done)
        logger.info(f"Status channel started: {self.url}")

    async def stop(self) -> None:
        """Close the connection and wait for the loop to finish."""
        self._running = False
        task, self._task = self._task, None
        if task is not None:
            if not task.done():
                task.cancel()
            await asyncio.wait([task])
        logger.info("Status channel stopped")

    async def __aenter__(self) -> "StatusChannel":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    async def _connect_loop(self) -> None:
        attempts = 0
        delay = self._initial_delay
        while self._running:
            try:
                logger.info(f"Connecting to status channel: {self.url}")
                async with self._connect(self.url) as ws:
                    self._connected = True
                    attempts = 0
                    delay = self._initial_delay
                    logger.info("Status channel connected")
                    async for raw in ws:
                        self.handle_message(raw)
                logger.info("Status channel closed by server")
            except (OSError, asyncio.TimeoutError, WebSocketException) as e:
                logger.warning(f"Status channel disconnected: {e}")
            finally:
                self._connected = False

            if not self._running:
                break
            attempts += 1
            if self._max_attempts and attempts > self._max_attempts:
                self.closed_reason = ChannelClosed(
                    f"Gave up on {self.url} after {self._max_attempts} reconnect attempts"
                )
                raise self.closed_reason
            logger.info(f"Reconnecting in {delay:.1f}s (attempt {attempts})")
            await asyncio.sleep(delay)
            delay = min(delay * 2, self._max_delay)

    def _on_task_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if isinstance(exc, ChannelClosed):
            logger.error(f"Status channel closed: {exc}")
        elif exc is not None:
            logger.error(f"Status channel crashed: {exc!r}")
