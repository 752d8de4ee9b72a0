"""HTTP client for the administrative review endpoints."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from vending_registry.client.agent import API_PREFIX

LOGGER = logging.getLogger(__name__)


class AdminRequestError(RuntimeError):
    """Raised when the API refuses an admin call or cannot be reached."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, kind: Optional[str] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.kind = kind


@dataclass(frozen=True)
class AdminResult:
    message: str
    data: Dict[str, Any]


class AdminClient:
    def __init__(
        self,
        server_url: str,
        token: str,
        *,
        timeout_ms: int = 10000,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._base_url = f"{server_url.rstrip('/')}{API_PREFIX}"
        self._timeout_s = max(timeout_ms, 1) / 1000.0
        self._session = session or requests.Session()
        self._headers = {"Authorization": f"Bearer {token}"}

    def list_pending(self) -> List[Dict[str, Any]]:
        result = self._call("GET", "/pending")
        return list(result.data.get("devices", []))

    def approve(self, hardware_id: str) -> AdminResult:
        return self._call("PUT", f"/{hardware_id}/approve")

    def reject(self, hardware_id: str, reason: str) -> AdminResult:
        return self._call("PUT", f"/{hardware_id}/reject", json={"reason": reason})

    def purge_expired(self) -> int:
        result = self._call("POST", "/purge-expired")
        return int(result.data.get("removed", 0))

    def _call(self, method: str, path: str, **kwargs: Any) -> AdminResult:
        url = f"{self._base_url}{path}"
        try:
            response = self._session.request(method, url, headers=self._headers, timeout=self._timeout_s, **kwargs)
        except requests.RequestException as exc:
            raise AdminRequestError(f"{exc.__class__.__name__}: {exc}") from exc
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = str(body.get("message", ""))
        if response.status_code >= 400:
            LOGGER.debug("%s %s -> %s %s", method, url, response.status_code, message)
            raise AdminRequestError(
                message or f"HTTP {response.status_code}",
                status_code=response.status_code,
                kind=body.get("kind"),
            )
        return AdminResult(message=message, data=body.get("data") or {})


__all__ = ["AdminClient", "AdminRequestError", "AdminResult"]
