"""
HTTP transport for the Grafana REST API.

Paths are absolute API paths such as ``/api/datasources``.
Authentication: ``Authorization: Bearer <token>`` or HTTP basic auth.

Every verb returns a result dict with an integer ``status``; nothing is raised
for non-2xx responses:

  * JSON object body    → the object with ``status`` added
  * other JSON body     → ``{"status": ..., "message": body}``
  * non-2xx response    → ``{"status": ..., "message": "<server message>"}``
  * connection failure  → ``{"status": 503, "message": "<error>"}``
"""
from __future__ import annotations

import time
from typing import Any, Optional

import httpx
import structlog

from grafana_toolkit.config import Settings

log = structlog.get_logger(__name__)

Result = dict[str, Any]


def _build_headers(settings: Settings) -> dict[str, str]:
    headers = {"Accept": "application/json", "Content-Type": "application/json"}
    if settings.api_token:
        headers["Authorization"] = f"Bearer {settings.api_token}"
    return headers


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:500] or response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.text[:500]


def _to_result(response: httpx.Response) -> Result:
    if not response.is_success:
        return {"status": response.status_code, "message": _error_message(response)}
    if not response.content:
        return {"status": response.status_code, "message": None}
    body = response.json()
    if isinstance(body, dict):
        return {**body, "status": response.status_code}
    return {"status": response.status_code, "message": body}


class GrafanaClient:
    """Synchronous context-manager wrapper around the Grafana HTTP API."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._headers = _build_headers(settings)
        self._auth: Optional[tuple[str, str]] = None
        if not settings.api_token and settings.user and settings.password:
            self._auth = (settings.user, settings.password)
        self._client: Optional[httpx.Client] = None

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> "GrafanaClient":
        self._client = httpx.Client(
            base_url=self._settings.grafana_url,
            headers=self._headers,
            auth=self._auth,
            verify=self._settings.ssl_verify,
            timeout=self._settings.timeout,
        )
        return self

    def __exit__(self, *_: Any) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _client_or_raise(self) -> httpx.Client:
        if self._client is None:
            raise RuntimeError("GrafanaClient must be used as a context manager")
        return self._client

    def _request(self, method: str, path: str, body: Optional[dict] = None) -> Result:
        client = self._client_or_raise()
        t0 = time.monotonic()
        try:
            response = client.request(method, path, json=body)
        except httpx.TransportError as e:
            log.error("grafana.transport_error", method=method, path=path, error=str(e))
            return {"status": 503, "message": str(e)}
        elapsed = round((time.monotonic() - t0) * 1000)

        log.info(
            "grafana.api_call",
            method=method,
            path=path,
            status=response.status_code,
            elapsed_ms=elapsed,
        )
        return _to_result(response)

    # ------------------------------------------------------------------
    # Verbs
    # ------------------------------------------------------------------

    def get(self, path: str) -> Result:
        return self._request("GET", path)

    def post(self, path: str, body: dict) -> Result:
        return self._request("POST", path, body)

    def put(self, path: str, body: dict) -> Result:
        return self._request("PUT", path, body)

    def delete(self, path: str) -> Result:
        return self._request("DELETE", path)
