"""Heartbeat workflow."""
from .models import HeartbeatReport, StepResult, WorkflowOutcome, WorkflowState
from .heartbeat import (
    HeartbeatWorkflow,
    iso_timestamp,
    path_safe_timestamp,
    timestamp_from_path_safe
)

__all__ = [
    "HeartbeatReport",
    "StepResult",
    "WorkflowOutcome",
    "WorkflowState",
    "HeartbeatWorkflow",
    "iso_timestamp",
    "path_safe_timestamp",
    "timestamp_from_path_safe"
]
