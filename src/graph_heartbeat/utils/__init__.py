"""Utility modules."""
from .logger import get_logger, configure_logging, set_step_context
from .exceptions import (
    HeartbeatError,
    ConfigError,
    AuthError,
    GatewayError,
    WorkflowError,
    NotifyError
)

__all__ = [
    "get_logger",
    "configure_logging",
    "set_step_context",
    "HeartbeatError",
    "ConfigError",
    "AuthError",
    "GatewayError",
    "WorkflowError",
    "NotifyError"
]
