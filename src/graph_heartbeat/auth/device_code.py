"""Delegated Microsoft Graph token via the OAuth2 device-code flow."""
from dataclasses import dataclass
from typing import Callable, List, Optional

import msal
import requests

from graph_heartbeat.utils.logger import get_logger
from graph_heartbeat.utils.exceptions import AuthError

logger = get_logger()

BANNER = "=" * 49


@dataclass
class Credential:
    """Bearer token for a single run. Never cached, never refreshed."""
    access_token: str

    def __repr__(self) -> str:
        return "Credential(access_token=<redacted>)"


def resolve_scopes(scope_mode: str, delegated_scopes: List[str], default_scope: str) -> List[str]:
    """Pick the scope list for the configured mode."""
    if scope_mode == "default":
        return [default_scope]
    return list(delegated_scopes)


class DeviceCodeAuthenticator:
    """Acquires one access token per run through an out-of-band user login."""
    
    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        scopes: List[str],
        authority_host: str = "https://login.microsoftonline.com",
        output: Callable[[str], None] = print,
        app: Optional[msal.PublicClientApplication] = None
    ):
        self.authority = f"{authority_host.rstrip('/')}/{tenant_id}"
        self.client_id = client_id
        self.scopes = scopes
        self.output = output
        self._app = app
    
    def acquire_token(self) -> Credential:
        """
        Run the device-code grant and block until the user signs in.
        
        Returns:
            Credential holding the access token
            
        Raises:
            AuthError: If the flow cannot start, is denied or expires
        """
        app = self._get_app()
        
        flow = app.initiate_device_flow(scopes=self.scopes)
        if "user_code" not in flow:
            raise AuthError(
                f"Failed to start device-code flow: "
                f"{flow.get('error')}: {flow.get('error_description')}",
                error=flow.get("error"),
                description=flow.get("error_description")
            )
        
        self._emit_instructions(flow)
        
        # Blocks until the user completes login or the code expires
        result = app.acquire_token_by_device_flow(flow)
        
        if "access_token" not in result:
            raise AuthError(
                f"Failed to acquire token: "
                f"{result.get('error')}: {result.get('error_description')}",
                error=result.get("error"),
                description=result.get("error_description")
            )
        
        claims = result.get("id_token_claims") or {}
        if claims.get("preferred_username"):
            logger.info(f"Signed in as {claims['preferred_username']}")
        
        return Credential(access_token=result["access_token"])
    
    def _get_app(self) -> msal.PublicClientApplication:
        """Create the MSAL public client; authority discovery happens here."""
        if self._app is None:
            try:
                self._app = msal.PublicClientApplication(
                    client_id=self.client_id,
                    authority=self.authority
                )
            except (ValueError, requests.RequestException) as e:
                raise AuthError(f"Failed to initialise identity provider {self.authority}: {e}")
        return self._app
    
    def _emit_instructions(self, flow: dict) -> None:
        """Show the verification URL and user code."""
        logger.info(f"Waiting for device-code login at {flow.get('verification_uri')}")
        self.output(BANNER)
        self.output("Sign in with the heartbeat account in a browser:")
        self.output(flow.get("message") or (
            f"Open {flow.get('verification_uri')} and enter the code {flow['user_code']}"
        ))
        self.output(BANNER)
