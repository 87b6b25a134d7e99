"""Graph Heartbeat: one-shot Microsoft Graph connectivity probe."""
__version__ = "0.1.0"
