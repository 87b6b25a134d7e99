"""Thin Microsoft Graph REST client with uniform error handling."""
import json
from typing import Any, Dict, Optional

import requests

from .models import PutResult
from graph_heartbeat.utils.logger import get_logger
from graph_heartbeat.utils.exceptions import GatewayError

logger = get_logger()

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"


class GraphClient:
    """GET/POST/PUT helpers. The bearer token is passed into every call."""
    
    def __init__(
        self,
        base_url: str = GRAPH_BASE_URL,
        error_body_limit: int = 500,
        session: Optional[requests.Session] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.error_body_limit = error_body_limit
        self.session = session or requests.Session()
    
    def url_for(self, path: str) -> str:
        """Join a relative Graph path to the base URL; absolute URLs pass through."""
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"
    
    def get(self, url: str, token: str) -> Dict[str, Any]:
        """GET a resource and parse the JSON body."""
        status, text = self._send("GET", url, token)
        return self._parse_json("GET", url, status, text)
    
    def post(self, url: str, token: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """POST a JSON body; an empty response body yields {}."""
        status, text = self._send(
            "POST", url, token,
            headers={"Content-Type": "application/json"},
            data=json.dumps(body)
        )
        if not text:
            return {}
        return self._parse_json("POST", url, status, text)
    
    def put_raw(self, url: str, token: str, content: str, content_type: str = "text/plain") -> PutResult:
        """PUT raw content and return status and body verbatim."""
        data = content.encode("utf-8") if isinstance(content, str) else content
        status, text = self._send(
            "PUT", url, token,
            headers={"Content-Type": content_type},
            data=data
        )
        return PutResult(status_code=status, raw_body=text)
    
    def _send(self, method: str, url: str, token: str, headers: Optional[dict] = None, data=None) -> tuple[int, str]:
        """Issue one request; read the full body before judging success."""
        full_url = self.url_for(url)
        request_headers = {"Authorization": f"Bearer {token}"}
        if headers:
            request_headers.update(headers)
        
        logger.debug(f"{method} {full_url}")
        try:
            response = self.session.request(method, full_url, headers=request_headers, data=data)
            text = response.text
        except requests.RequestException as e:
            raise GatewayError(method, full_url, None, reason=str(e))
        
        if not 200 <= response.status_code < 300:
            raise GatewayError(method, full_url, response.status_code, text[:self.error_body_limit])
        
        return response.status_code, text
    
    def _parse_json(self, method: str, url: str, status: int, text: str) -> Dict[str, Any]:
        try:
            return json.loads(text)
        except ValueError as e:
            raise GatewayError(
                method, self.url_for(url), status,
                text[:self.error_body_limit],
                reason=f"invalid JSON response: {e}"
            )
