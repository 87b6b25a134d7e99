"""Tests for the heartbeat workflow state machine."""
import unittest
from datetime import datetime, timedelta, timezone

from graph_heartbeat.config.settings import AppSettings, default_settings_path
from graph_heartbeat.graph.models import PutResult
from graph_heartbeat.workflow import (
    HeartbeatWorkflow,
    WorkflowState,
    iso_timestamp,
    path_safe_timestamp,
    timestamp_from_path_safe
)
from graph_heartbeat.utils.exceptions import GatewayError, WorkflowError

SETTINGS = AppSettings.load(default_settings_path())
NOW = datetime(2026, 10, 18, 9, 30, 12, 345678, tzinfo=timezone.utc)
DRIVE = {"driveType": "business", "quota": {"used": 1024, "total": 1099511627776}}


class FakeGraphClient:
    """Scripted responses keyed by the last path segment."""

    def __init__(self, responses=None):
        self.responses = {
            "drive": DRIVE,
            "content": PutResult(201, '{"id": "file1"}'),
            "sendMail": {},
            "events": {"id": "evt1", "subject": SETTINGS.event_subject},
        }
        self.responses.update(responses or {})
        self.calls = []

    def _respond(self, method, url, token, payload=None):
        self.calls.append((method, url, token, payload))
        response = self.responses[url.rsplit("/", 1)[-1]]
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url, token):
        return self._respond("GET", url, token)

    def post(self, url, token, body):
        return self._respond("POST", url, token, body)

    def put_raw(self, url, token, content, content_type="text/plain"):
        return self._respond("PUT", url, token, content)


class TestHeartbeatWorkflow(unittest.TestCase):
    
    def make_workflow(self, responses=None, **kwargs):
        self.client = FakeGraphClient(responses)
        return HeartbeatWorkflow(self.client, SETTINGS, clock=lambda: NOW, **kwargs)
    
    def test_full_run_produces_complete_report(self):
        workflow = self.make_workflow()
        
        outcome = workflow.execute("tok", "dev@x.com")
        
        self.assertEqual(outcome.state, WorkflowState.DONE)
        self.assertIsNone(outcome.error)
        report = outcome.report
        self.assertEqual(report.timestamp, "2026-10-18T09:30:12.345Z")
        self.assertEqual(report.uploaded_file_name, "local-heartbeat-2026-10-18T09-30-12-345Z.txt")
        self.assertEqual(report.upload_status_code, 201)
        self.assertEqual(report.mail_sent_to, "dev@x.com")
        self.assertEqual(report.calendar_event_id, "evt1")
        self.assertEqual(report.calendar_event_subject, SETTINGS.event_subject)
        self.assertEqual(report.drive_quota.used, 1024)
        self.assertEqual([s.step for s in outcome.steps], ["quota_read", "file_write", "mail_send", "event_create"])
        self.assertTrue(all(call[2] == "tok" for call in self.client.calls))
    
    def test_calls_are_sequenced_against_me(self):
        workflow = self.make_workflow()
        
        workflow.execute("tok", "dev@x.com")
        
        self.assertEqual(
            [(m, url) for m, url, _, _ in self.client.calls],
            [
                ("GET", "/me/drive"),
                ("PUT", "/me/drive/root:/Dev-Heartbeat/local-heartbeat-2026-10-18T09-30-12-345Z.txt:/content"),
                ("POST", "/me/sendMail"),
                ("POST", "/me/events"),
            ]
        )
    
    def test_user_target_mode(self):
        workflow = self.make_workflow(target_mode="user")
        
        workflow.execute("tok", "dev@x.com")
        
        self.assertEqual(self.client.calls[0][1], "/users/dev@x.com/drive")
        self.assertTrue(self.client.calls[1][1].startswith("/users/dev@x.com/drive/root:/Dev-Heartbeat/"))
    
    def test_quota_forbidden_aborts_after_first_step(self):
        error = GatewayError("GET", "https://graph.microsoft.com/v1.0/me/drive", 403, "Forbidden")
        workflow = self.make_workflow({"drive": error})
        
        outcome = workflow.execute("tok", "dev@x.com")
        
        self.assertEqual(outcome.state, WorkflowState.FAILED)
        self.assertEqual(outcome.failed_step, "quota_read")
        self.assertIs(outcome.error.cause, error)
        self.assertIsNone(outcome.report)
        self.assertEqual(len(self.client.calls), 1)
        self.assertFalse(outcome.steps[-1].ok)
    
    def test_mail_failure_skips_event(self):
        error = GatewayError("POST", "https://graph.microsoft.com/v1.0/me/sendMail", 429, "throttled")
        workflow = self.make_workflow({"sendMail": error})
        
        outcome = workflow.execute("tok", "dev@x.com")
        
        self.assertEqual(outcome.failed_step, "mail_send")
        self.assertIsNone(outcome.report)
        self.assertEqual(len(self.client.calls), 3)
    
    def test_non_object_drive_body_fails_quota_step(self):
        for body in ([], None, "text"):
            with self.subTest(body=body):
                workflow = self.make_workflow({"drive": body})
                
                outcome = workflow.execute("tok", "dev@x.com")
                
                self.assertEqual(outcome.state, WorkflowState.FAILED)
                self.assertEqual(outcome.failed_step, "quota_read")
                self.assertIsNone(outcome.report)
                self.assertEqual(len(self.client.calls), 1)
    
    def test_non_object_event_body_fails_event_step(self):
        workflow = self.make_workflow({"events": []})
        
        outcome = workflow.execute("tok", "dev@x.com")
        
        self.assertEqual(outcome.failed_step, "event_create")
        self.assertIsNone(outcome.report)
    
    def test_event_without_id_fails_event_step(self):
        workflow = self.make_workflow({"events": {"subject": "no id"}})
        
        outcome = workflow.execute("tok", "dev@x.com")
        
        self.assertEqual(outcome.failed_step, "event_create")
        self.assertIsNone(outcome.report)
    
    def test_run_raises_workflow_error(self):
        error = GatewayError("GET", "https://graph.microsoft.com/v1.0/me/drive", 401, "")
        workflow = self.make_workflow({"drive": error})
        
        with self.assertRaises(WorkflowError) as ctx:
            workflow.run("tok", "dev@x.com")
        
        self.assertEqual(ctx.exception.step, "quota_read")
        self.assertIs(ctx.exception.cause, error)
    
    def test_missing_quota_renders_placeholder(self):
        workflow = self.make_workflow({"drive": {"driveType": "personal"}})
        
        outcome = workflow.execute("tok", "dev@x.com")
        
        self.assertTrue(outcome.succeeded)
        content = self.client.calls[1][3]
        self.assertIn("quota_used=n/a", content)
        self.assertIn("quota_total=n/a", content)
        self.assertIn("drive_type=personal", content)
        self.assertIsNone(outcome.report.drive_quota.used)
        self.assertEqual(outcome.report.drive_quota.total_display, "n/a")
        mail = self.client.calls[2][3]
        self.assertIn("n/a / n/a", mail["message"]["body"]["content"])
    
    def test_file_content_layout(self):
        workflow = self.make_workflow()
        
        workflow.execute("tok", "dev@x.com")
        
        self.assertEqual(
            self.client.calls[1][3].split("\n"),
            [
                SETTINGS.file_header,
                "timestamp=2026-10-18T09-30-12-345Z",
                "upn=dev@x.com",
                "drive_type=business",
                "quota_used=1024",
                "quota_total=1099511627776",
            ]
        )
    
    def test_mail_message_shape(self):
        workflow = self.make_workflow()
        
        workflow.execute("tok", "dev@x.com")
        
        mail = self.client.calls[2][3]
        self.assertTrue(mail["saveToSentItems"])
        self.assertEqual(mail["message"]["toRecipients"], [{"emailAddress": {"address": "dev@x.com"}}])
        self.assertIn("2026-10-18T09:30:12.345Z", mail["message"]["subject"])
    
    def test_event_window_and_attendee(self):
        workflow = self.make_workflow()
        
        workflow.execute("tok", "dev@x.com")
        
        event = self.client.calls[3][3]
        self.assertEqual(event["start"], {"dateTime": "2026-10-18T09:40:12", "timeZone": "UTC"})
        self.assertEqual(event["end"], {"dateTime": "2026-10-18T10:10:12", "timeZone": "UTC"})
        self.assertEqual(event["attendees"][0]["type"], "required")
        self.assertEqual(event["attendees"][0]["emailAddress"]["address"], "dev@x.com")
    
    def test_event_window_uses_clock_at_creation(self):
        later = NOW + timedelta(minutes=5)
        moments = iter([NOW, later])
        self.client = FakeGraphClient()
        workflow = HeartbeatWorkflow(self.client, SETTINGS, clock=lambda: next(moments))
        
        outcome = workflow.execute("tok", "dev@x.com")
        
        self.assertEqual(outcome.report.timestamp, "2026-10-18T09:30:12.345Z")
        event = self.client.calls[3][3]
        self.assertEqual(event["start"]["dateTime"], "2026-10-18T09:45:12")
        self.assertEqual(event["end"]["dateTime"], "2026-10-18T10:15:12")
    
    def test_basic_variant_stops_after_file(self):
        workflow = self.make_workflow(variant="basic")
        
        outcome = workflow.execute("tok", "dev@x.com")
        
        self.assertTrue(outcome.succeeded)
        self.assertEqual(len(self.client.calls), 2)
        self.assertIsNone(outcome.report.mail_sent_to)
        self.assertIsNone(outcome.report.calendar_event_id)
        self.assertEqual(outcome.report.variant, "basic")


class TestTimestampHelpers(unittest.TestCase):
    
    def test_iso_timestamp_has_millis_and_z(self):
        self.assertEqual(iso_timestamp(NOW), "2026-10-18T09:30:12.345Z")
    
    def test_path_safe_replaces_colons_and_dots(self):
        token = path_safe_timestamp("2026-10-18T09:30:12.345Z")
        
        self.assertEqual(token, "2026-10-18T09-30-12-345Z")
        self.assertNotIn(":", token)
        self.assertNotIn(".", token)
    
    def test_path_safe_is_reversible(self):
        iso = "2026-01-02T03:04:05.006Z"
        
        self.assertEqual(timestamp_from_path_safe(path_safe_timestamp(iso)), iso)
    
    def test_reverse_rejects_foreign_tokens(self):
        with self.assertRaises(ValueError):
            timestamp_from_path_safe("2026-10-18T09:30:12.345Z")


if __name__ == "__main__":
    unittest.main()
