"""Data models for a heartbeat run."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from graph_heartbeat.graph.models import DriveQuota
from graph_heartbeat.utils.exceptions import WorkflowError


class WorkflowState(str, Enum):
    """Heartbeat state machine. DONE and FAILED are terminal."""
    START = "start"
    QUOTA_READ = "quota_read"
    FILE_WRITE = "file_write"
    MAIL_SEND = "mail_send"
    EVENT_CREATE = "event_create"
    DONE = "done"
    FAILED = "failed"


@dataclass
class StepResult:
    """Outcome of one step: either a value or the error that stopped the run."""
    step: str
    ok: bool
    value: Any = None
    error: Optional[Exception] = None


@dataclass
class HeartbeatReport:
    """Everything a successful run produced."""
    timestamp: str
    target_identity: str
    drive_quota: DriveQuota
    uploaded_file_name: str
    upload_status_code: int
    variant: str = "full"
    # Not set in the basic variant
    mail_sent_to: Optional[str] = None
    calendar_event_id: Optional[str] = None
    calendar_event_subject: Optional[str] = None


@dataclass
class WorkflowOutcome:
    """Final state of one workflow pass. `report` only in DONE, `error` only in FAILED."""
    state: WorkflowState = WorkflowState.START
    steps: List[StepResult] = field(default_factory=list)
    report: Optional[HeartbeatReport] = None
    error: Optional[WorkflowError] = None

    @property
    def succeeded(self) -> bool:
        return self.state == WorkflowState.DONE

    @property
    def failed_step(self) -> Optional[str]:
        return self.error.step if self.error else None
