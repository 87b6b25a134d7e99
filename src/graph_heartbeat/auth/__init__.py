"""Device-code authentication for Microsoft Graph."""
from .device_code import Credential, DeviceCodeAuthenticator, resolve_scopes

__all__ = ["Credential", "DeviceCodeAuthenticator", "resolve_scopes"]
