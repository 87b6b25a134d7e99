"""Custom exception classes for Graph Heartbeat."""
from typing import Optional


class HeartbeatError(Exception):
    """Base exception for Graph Heartbeat."""
    pass


class ConfigError(HeartbeatError):
    """Configuration-related errors."""
    pass


class AuthError(HeartbeatError):
    """Device-code authentication errors."""

    def __init__(self, message: str, error: Optional[str] = None, description: Optional[str] = None):
        super().__init__(message)
        self.error = error
        self.description = description


class GatewayError(HeartbeatError):
    """Non-2xx, unparseable or failed Graph API call."""

    def __init__(self, method: str, url: str, status_code: Optional[int], body: str = "", reason: str = ""):
        self.method = method
        self.url = url
        self.status_code = status_code
        self.body = body
        self.reason = reason
        status = f"HTTP {status_code}" if status_code is not None else "no response"
        message = f"{method} {url} failed: {status}"
        if reason:
            message += f" ({reason})"
        if body:
            message += f"\n{body}"
        super().__init__(message)


class WorkflowError(HeartbeatError):
    """A heartbeat step failed; carries the step name and the underlying error."""

    def __init__(self, step: str, cause: Exception):
        super().__init__(f"step '{step}' failed: {cause}")
        self.step = step
        self.cause = cause


class NotifyError(HeartbeatError):
    """Webhook delivery errors. Logged, never fatal."""
    pass
