"""
Session Logging Module

Provides per-workflow editor session logging for FlowCanvas.
"""
from flowcanvas.logging.session_logger import (
    SessionLogger,
    close_session_logger,
    get_session_logger,
)

__all__ = ['SessionLogger', 'get_session_logger', 'close_session_logger']
