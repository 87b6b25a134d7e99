"""Run notifications."""
from .teams import NotificationPayload, TeamsNotifier, render_report

__all__ = ["NotificationPayload", "TeamsNotifier", "render_report"]
