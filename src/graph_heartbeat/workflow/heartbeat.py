"""Heartbeat workflow: quota read, file write, mail send, event create.

Each step returns a StepResult instead of raising. The first failed step
moves the run to FAILED and nothing after it is attempted. Report fields
are collected in a per-run draft and a HeartbeatReport is only built once
every planned step has succeeded, so callers see a complete report or none.
"""
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Tuple

from pydantic import ValidationError

from .models import HeartbeatReport, StepResult, WorkflowOutcome, WorkflowState
from graph_heartbeat.config.settings import AppSettings
from graph_heartbeat.graph.client import GraphClient
from graph_heartbeat.graph.models import DriveQuota, EventSchema
from graph_heartbeat.utils.logger import get_logger, set_step_context
from graph_heartbeat.utils.exceptions import GatewayError, WorkflowError

logger = get_logger()

_SAFE_TIMESTAMP = re.compile(r"^(\d{4}-\d{2}-\d{2})T(\d{2})-(\d{2})-(\d{2})-(\d{3})Z$")

# Errors a step turns into a failed StepResult; anything else is a bug and propagates.
STEP_ERRORS = (GatewayError, ValidationError)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_timestamp(moment: datetime) -> str:
    """UTC ISO-8601 with milliseconds and a Z suffix, e.g. 2026-10-18T09:30:12.345Z."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def path_safe_timestamp(iso: str) -> str:
    """Replace ':' and '.' with '-' so the timestamp can be used in a file name."""
    return iso.replace(":", "-").replace(".", "-")


def timestamp_from_path_safe(token: str) -> str:
    """Inverse of path_safe_timestamp for tokens produced from iso_timestamp."""
    match = _SAFE_TIMESTAMP.match(token)
    if not match:
        raise ValueError(f"Not a heartbeat timestamp token: {token!r}")
    date, hours, minutes, seconds, millis = match.groups()
    return f"{date}T{hours}:{minutes}:{seconds}.{millis}Z"


def event_wire_time(moment: datetime) -> str:
    """Event dateTime without milliseconds; the time zone is sent separately as UTC."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")


@dataclass
class _RunContext:
    """Per-run state: token, target and the fields gathered so far."""
    token: str
    target: str
    iso: str
    safe_ts: str
    draft: Dict[str, object] = field(default_factory=dict)


class HeartbeatWorkflow:
    """Runs the fixed sequence of Graph calls for one identity."""
    
    def __init__(
        self,
        client: GraphClient,
        settings: AppSettings,
        variant: str = "full",
        target_mode: str = "me",
        clock: Callable[[], datetime] = utc_now
    ):
        self.client = client
        self.settings = settings
        self.variant = variant
        self.target_mode = target_mode
        self.clock = clock
    
    def run(self, token: str, target: str) -> HeartbeatReport:
        """Execute and return the report, or raise the WorkflowError of the failed step."""
        outcome = self.execute(token, target)
        if not outcome.succeeded:
            raise outcome.error
        return outcome.report
    
    def execute(self, token: str, target: str) -> WorkflowOutcome:
        """Execute every planned step in order, stopping at the first failure."""
        now = self.clock()
        iso = iso_timestamp(now)
        run = _RunContext(
            token=token,
            target=target,
            iso=iso,
            safe_ts=path_safe_timestamp(iso)
        )
        outcome = WorkflowOutcome()
        
        try:
            for state, step in self._plan():
                outcome.state = state
                set_step_context(state.value)
                result = step(run)
                outcome.steps.append(result)
                
                if not result.ok:
                    logger.error(f"Step {state.value} failed: {result.error}")
                    outcome.state = WorkflowState.FAILED
                    outcome.error = WorkflowError(state.value, result.error)
                    return outcome
        finally:
            set_step_context(None)
        
        outcome.state = WorkflowState.DONE
        outcome.report = self._build_report(run)
        return outcome
    
    def resource_root(self, target: str) -> str:
        """/me for the signed-in user, /users/{upn} for an explicit target."""
        if self.target_mode == "user":
            return f"/users/{target}"
        return "/me"
    
    def heartbeat_file_name(self, safe_ts: str) -> str:
        return f"{self.settings.file_prefix}-{safe_ts}.txt"
    
    def _plan(self) -> List[Tuple[WorkflowState, Callable[[_RunContext], StepResult]]]:
        steps = [
            (WorkflowState.QUOTA_READ, self._read_quota),
            (WorkflowState.FILE_WRITE, self._write_heartbeat_file),
        ]
        if self.variant == "full":
            steps += [
                (WorkflowState.MAIL_SEND, self._send_mail),
                (WorkflowState.EVENT_CREATE, self._create_event),
            ]
        return steps
    
    def _read_quota(self, run: _RunContext) -> StepResult:
        step = WorkflowState.QUOTA_READ.value
        logger.info("Reading OneDrive quota...")
        try:
            data = self.client.get(f"{self.resource_root(run.target)}/drive", run.token)
            quota = DriveQuota.from_response(data)
        except STEP_ERRORS as e:
            return StepResult(step, ok=False, error=e)
        
        logger.info(f"driveType: {quota.drive_type_display}")
        logger.info(f"quota used/total: {quota.used_display} / {quota.total_display}")
        run.draft["drive_quota"] = quota
        return StepResult(step, ok=True, value=quota)
    
    def _write_heartbeat_file(self, run: _RunContext) -> StepResult:
        step = WorkflowState.FILE_WRITE.value
        quota: DriveQuota = run.draft["drive_quota"]
        file_name = self.heartbeat_file_name(run.safe_ts)
        logger.info(f"Writing {self.settings.heartbeat_folder}/{file_name}...")
        
        content = "\n".join([
            self.settings.file_header,
            f"timestamp={run.safe_ts}",
            f"upn={run.target}",
            f"drive_type={quota.drive_type_display}",
            f"quota_used={quota.used_display}",
            f"quota_total={quota.total_display}",
        ])
        path = (
            f"{self.resource_root(run.target)}/drive/root:/"
            f"{self.settings.heartbeat_folder}/{file_name}:/content"
        )
        try:
            result = self.client.put_raw(path, run.token, content, "text/plain")
        except STEP_ERRORS as e:
            return StepResult(step, ok=False, error=e)
        
        logger.info(f"Heartbeat file upload HTTP status: {result.status_code}")
        run.draft["uploaded_file_name"] = file_name
        run.draft["upload_status_code"] = result.status_code
        return StepResult(step, ok=True, value=result)
    
    def _send_mail(self, run: _RunContext) -> StepResult:
        step = WorkflowState.MAIL_SEND.value
        quota: DriveQuota = run.draft["drive_quota"]
        logger.info("Sending test mail...")
        
        message = {
            "message": {
                "subject": f"{self.settings.mail_subject} {run.iso}",
                "body": {
                    "contentType": "Text",
                    "content": (
                        "This is a test message sent by the local Graph heartbeat.\n\n"
                        f"Time: {run.iso}\n"
                        f"OneDrive used/total: {quota.used_display} / {quota.total_display}\n"
                    )
                },
                "toRecipients": [
                    {"emailAddress": {"address": run.target}}
                ]
            },
            "saveToSentItems": True
        }
        try:
            self.client.post(f"{self.resource_root(run.target)}/sendMail", run.token, message)
        except STEP_ERRORS as e:
            return StepResult(step, ok=False, error=e)
        
        logger.info(f"Test mail sent to: {run.target}")
        run.draft["mail_sent_to"] = run.target
        return StepResult(step, ok=True, value=run.target)
    
    def _create_event(self, run: _RunContext) -> StepResult:
        step = WorkflowState.EVENT_CREATE.value
        logger.info("Creating test calendar event...")
        start = self.clock() + timedelta(minutes=self.settings.event_start_offset_minutes)
        end = start + timedelta(minutes=self.settings.event_duration_minutes)
        
        event = {
            "subject": self.settings.event_subject,
            "body": {
                "contentType": "HTML",
                "content": (
                    "<p>Test event created by the local Graph heartbeat.</p>"
                    f"<p>Time: {iso_timestamp(start)} ~ {iso_timestamp(end)}</p>"
                )
            },
            "start": {"dateTime": event_wire_time(start), "timeZone": "UTC"},
            "end": {"dateTime": event_wire_time(end), "timeZone": "UTC"},
            "location": {"displayName": self.settings.event_location},
            "attendees": [
                {
                    "type": "required",
                    "emailAddress": {"address": run.target}
                }
            ]
        }
        try:
            data = self.client.post(f"{self.resource_root(run.target)}/events", run.token, event)
            created = EventSchema.model_validate(data)
        except STEP_ERRORS as e:
            return StepResult(step, ok=False, error=e)
        
        logger.info(f"Calendar event created, id: {created.id}")
        run.draft["calendar_event_id"] = created.id
        run.draft["calendar_event_subject"] = created.subject or self.settings.event_subject
        return StepResult(step, ok=True, value=created)
    
    def _build_report(self, run: _RunContext) -> HeartbeatReport:
        draft = run.draft
        return HeartbeatReport(
            timestamp=run.iso,
            target_identity=run.target,
            drive_quota=draft["drive_quota"],
            uploaded_file_name=draft["uploaded_file_name"],
            upload_status_code=draft["upload_status_code"],
            variant=self.variant,
            mail_sent_to=draft.get("mail_sent_to"),
            calendar_event_id=draft.get("calendar_event_id"),
            calendar_event_subject=draft.get("calendar_event_subject")
        )
