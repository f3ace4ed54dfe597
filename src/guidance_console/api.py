"""HTTP access to the exam administration API."""
import logging
from typing import Any, Dict, Optional

import requests

from guidance_console.config import DEFAULT_API_URL, REQUEST_TIMEOUT

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """A request failed or the server reported ``success: false``."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _server_message(response: requests.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("message") or body.get("error")
    return None


class ApiClient:
    """Thin JSON client. Every call has a timeout and raises ``ApiError`` on failure."""

    def __init__(self, base_url: str = DEFAULT_API_URL, timeout: float = REQUEST_TIMEOUT,
                 session: Optional[requests.Session] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.setdefault("Accept", "application/json")

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None,
                data: Optional[Dict[str, Any]] = None) -> Any:
        """Send a request and return the decoded ``data`` of the response envelope.

        Raises:
            ApiError: network error, timeout, non-2xx status, non-JSON body, or a
                ``{"success": false}`` envelope. The server's message is kept when
                it sent one.
        """
        url = self.url(path)
        logger.debug("%s %s params=%s", method, url, params)
        try:
            response = self.session.request(method, url, params=params, json=data, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise ApiError(f"Request to {path} timed out after {self.timeout:g}s") from e
        except requests.exceptions.RequestException as e:
            raise ApiError(f"Could not reach the server: {e}") from e

        if not response.ok:
            message = _server_message(response) or f"Server returned HTTP {response.status_code}"
            raise ApiError(message, response.status_code)
        try:
            body = response.json()
        except ValueError as e:
            raise ApiError(f"Unexpected non-JSON response from {path}", response.status_code) from e
        return unwrap(body)

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, data: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("POST", path, data=data or {})

    def put(self, path: str, data: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("PUT", path, data=data or {})

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)


def unwrap(body: Any) -> Any:
    """Strip the ``{"success", "message", "data"}`` envelope when present."""
    if not isinstance(body, dict) or "success" not in body:
        return body
    if not body.get("success"):
        raise ApiError(body.get("message") or "The server reported a failure")
    if "data" in body:
        return body["data"]
    return {k: v for k, v in body.items() if k != "success"}
