"""
HTTP utilities for source adapters.

Thin wrapper over a requests session: JSON in, JSON out, timeouts, and
errors on non-2xx responses. Requests are attempted exactly once; a failed
lookup blocks the install instead of being retried.
"""
import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class HttpStatusError(requests.HTTPError):
    """Raised for non-2xx responses; keeps status and body for reporting."""

    def __init__(self, status_code: int, body: Optional[str]):
        message = f"HTTP {status_code}: {body}" if body else f"HTTP {status_code}"
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class HttpClient:
    """HTTP client with a shared session and per-request timeout."""

    def __init__(
        self,
        source_id: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.source_id = source_id
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    def get_json(self, url: str, params: Optional[Dict[str, Any]] = None, headers: Optional[Dict[str, str]] = None) -> Any:
        response = self._request("GET", url, params=params, headers=headers)
        return response.json()

    def post_json(self, url: str, payload: Any, headers: Optional[Dict[str, str]] = None) -> Any:
        response = self._request("POST", url, json=payload, headers=headers)
        return response.json()

    def close(self) -> None:
        self.session.close()

    def _request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        json: Any = None,
    ) -> requests.Response:
        logger.debug(f"{self.source_id} {method} {url}")
        response = self.session.request(
            method,
            url,
            params=params,
            headers=headers,
            json=json,
            timeout=self.timeout_seconds,
        )

        if response.status_code >= 400:
            body = response.text.strip() if response.text else None
            raise HttpStatusError(response.status_code, body or None)

        return response
