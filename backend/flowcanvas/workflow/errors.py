"""
Errors raised by the canvas core.

All are recoverable: callers log them and keep the editor running.
"""

from __future__ import annotations


class CanvasError(Exception):
    """Base class for canvas core errors."""


class CacheCorrupt(CanvasError):
    """The recoverable graph cache could not be parsed.

    Recover by discarding the cache entry and starting fresh.
    """


class FetchFailed(CanvasError):
    """A backend request failed; in-memory state was left untouched."""

    def __init__(self, endpoint: str, reason: str) -> None:
        super().__init__(f"{endpoint}: {reason}")
        self.endpoint = endpoint
        self.reason = reason


class ChannelClosed(CanvasError):
    """The status push channel is gone and will not reconnect."""


class InvalidConnection(CanvasError):
    """A connection references a node that does not exist."""


class DuplicateNodeId(CanvasError):
    """A node was added with an id already used by a live node."""
