"""FlowCanvas — state-synchronization core of a visual workflow editor."""

__version__ = "0.1.0"
