"""Best-effort run summary to a Teams incoming webhook."""
from dataclasses import dataclass
from typing import Optional, Union

import requests

from graph_heartbeat.workflow.models import HeartbeatReport
from graph_heartbeat.utils.logger import get_logger
from graph_heartbeat.utils.exceptions import NotifyError

logger = get_logger()


@dataclass
class NotificationPayload:
    """A run summary shaped for the webhook."""
    title: str
    body: str
    theme_color: str
    summary: str = ""

    def to_card(self) -> dict:
        """Office 365 connector MessageCard JSON."""
        return {
            "@type": "MessageCard",
            "@context": "https://schema.org/extensions",
            "summary": self.summary or self.title,
            "themeColor": self.theme_color,
            "title": self.title,
            "text": self.body,
        }


def render_report(report: HeartbeatReport) -> str:
    """Multi-line success summary."""
    quota = report.drive_quota
    lines = [
        "Local Graph heartbeat completed:",
        f"- Heartbeat file: {report.uploaded_file_name}",
    ]
    if report.mail_sent_to:
        lines.append(f"- Mail sent to: {report.mail_sent_to}")
    if report.calendar_event_subject:
        lines.append(f"- Calendar event: {report.calendar_event_subject}")
    lines.append(f"- OneDrive used/total: {quota.used_display} / {quota.total_display}")
    lines.append(f"Time: {report.timestamp}")
    return "\n".join(lines)


class TeamsNotifier:
    """Posts a MessageCard. Never raises: delivery problems are only logged."""
    
    def __init__(
        self,
        webhook_url: Optional[str],
        title: str = "Local Graph heartbeat",
        theme_color: str = "0076D7",
        failure_theme_color: str = "C4314B",
        summary: str = "",
        error_body_limit: int = 300,
        session: Optional[requests.Session] = None
    ):
        self.webhook_url = webhook_url or ""
        self.title = title
        self.theme_color = theme_color
        self.failure_theme_color = failure_theme_color
        self.summary = summary
        self.error_body_limit = error_body_limit
        self.session = session or requests.Session()
    
    def build_payload(self, outcome: Union[HeartbeatReport, str]) -> NotificationPayload:
        """Render a report as a success card, anything else as an error card."""
        if isinstance(outcome, HeartbeatReport):
            return NotificationPayload(
                title=self.title,
                body=render_report(outcome),
                theme_color=self.theme_color,
                summary=self.summary
            )
        return NotificationPayload(
            title=f"{self.title} FAILED",
            body=f"Error: {outcome}",
            theme_color=self.failure_theme_color,
            summary=self.summary
        )
    
    def notify(self, outcome: Union[HeartbeatReport, str]) -> bool:
        """Send the summary. Returns True only when the webhook accepted it."""
        if not self.webhook_url:
            logger.warning("TEAMS_WEBHOOK_URL not configured, skipping Teams notification")
            return False
        
        payload = self.build_payload(outcome)
        try:
            self._post(payload)
        except NotifyError as e:
            logger.warning(f"Failed to send Teams message: {e}")
            return False
        
        logger.info("Teams notification sent")
        return True
    
    def _post(self, payload: NotificationPayload) -> None:
        try:
            response = self.session.post(self.webhook_url, json=payload.to_card())
        except requests.RequestException as e:
            raise NotifyError(f"webhook request failed: {e}")
        
        if not 200 <= response.status_code < 300:
            raise NotifyError(
                f"HTTP {response.status_code}\n{response.text[:self.error_body_limit]}"
            )
