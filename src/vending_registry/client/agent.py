"""HTTP agent that registers a vending machine and polls for approval."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests

from vending_registry.client.system_info import collect_system_info, local_ip_address
from vending_registry.config.loader import AgentConfig
from vending_registry.errors import ErrorKind

LOGGER = logging.getLogger(__name__)

API_PREFIX = "/api/devices"


@dataclass(frozen=True)
class Credentials:
    device_id: str
    queue_endpoint: str


@dataclass(frozen=True)
class StatusCheck:
    status: Optional[str]
    message: str
    device_id: Optional[str] = None
    queue_endpoint: Optional[str] = None
    needs_registration: bool = False

    @property
    def approved(self) -> bool:
        return self.status == "approved" and bool(self.device_id) and bool(self.queue_endpoint)


class VendingMachineClient:
    """Registers with the backend, then polls until an administrator decides.

    A 409 on registration counts as registered. A 404 or an expired
    registration on a status check triggers a fresh registration, as does the
    periodic re-registration interval.
    """

    def __init__(
        self,
        config: AgentConfig,
        *,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._base_url = f"{config.server_url.rstrip('/')}{API_PREFIX}"
        self._timeout_s = max(config.timeout_ms, 1) / 1000.0
        self._session = session or requests.Session()
        self._sleep = sleep
        self._clock = clock
        self._stopped = False
        self._last_error: Optional[str] = None

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def stop(self) -> None:
        self._stopped = True

    def registration_payload(self) -> Dict[str, Any]:
        system_info = self._config.system_info or collect_system_info()
        return {
            "hardwareId": self._config.hardware_id,
            "tenantId": self._config.tenant_id,
            "ipAddress": self._config.ip_address or local_ip_address(),
            "systemInfo": system_info.to_dict(),
        }

    def register(self) -> bool:
        """Submit a registration request; True once the backend holds a record."""

        LOGGER.info("Submitting registration for %s", self._config.hardware_id)
        try:
            response = self._session.post(
                f"{self._base_url}/register",
                json=self.registration_payload(),
                timeout=self._timeout_s,
            )
        except requests.RequestException as exc:
            self._last_error = f"{exc.__class__.__name__}: {exc}"
            LOGGER.warning("Registration request failed: %s", self._last_error)
            return False

        body = _json_body(response)
        message = body.get("message", "")
        if response.status_code == 201:
            LOGGER.info("Registration accepted: %s", message)
            return True
        if response.status_code == 409:
            LOGGER.warning("Duplicate registration: %s", message)
            return True
        self._last_error = f"HTTP {response.status_code}: {message}"
        LOGGER.error("Registration refused: %s", self._last_error)
        return False

    def check_status(self) -> StatusCheck:
        url = f"{self._base_url}/status/{self._config.hardware_id}"
        try:
            response = self._session.get(url, timeout=self._timeout_s)
        except requests.RequestException as exc:
            self._last_error = f"{exc.__class__.__name__}: {exc}"
            LOGGER.warning("Status check failed: %s", self._last_error)
            return StatusCheck(status=None, message=self._last_error)

        body = _json_body(response)
        message = body.get("message", "")
        if response.status_code == 200:
            data = body.get("data") or {}
            check = StatusCheck(
                status=data.get("status"),
                message=message,
                device_id=data.get("deviceId"),
                queue_endpoint=data.get("queueEndpoint"),
            )
            LOGGER.info("Registration status for %s: %s", self._config.hardware_id, check.status)
            return check
        if response.status_code == 404 or body.get("kind") == ErrorKind.REGISTRATION_EXPIRED.value:
            LOGGER.warning("Backend has no live registration (%s); re-registration needed", message)
            return StatusCheck(status=None, message=message, needs_registration=True)
        self._last_error = f"HTTP {response.status_code}: {message}"
        LOGGER.error("Status check refused: %s", self._last_error)
        return StatusCheck(status=None, message=message)

    def run_until_approved(self, *, max_attempts: Optional[int] = None) -> Optional[Credentials]:
        """Loop register/poll until approved, stopped, or out of attempts."""

        polling = self._config.polling
        registered = self.register()
        registered_at = self._clock()
        attempts = 0
        while not self._stopped:
            if max_attempts is not None and attempts >= max_attempts:
                LOGGER.info("Giving up after %d attempts", attempts)
                return None
            attempts += 1

            if not registered:
                self._sleep(polling.registration_retry_s)
                registered = self.register()
                registered_at = self._clock()
                continue

            self._sleep(polling.status_check_s)
            check = self.check_status()
            if check.approved:
                LOGGER.info("Device approved as %s (queue %s)", check.device_id, check.queue_endpoint)
                return Credentials(device_id=check.device_id, queue_endpoint=check.queue_endpoint)
            if check.status == "rejected":
                LOGGER.warning("Registration rejected: %s", check.message)

            overdue = self._clock() - registered_at >= polling.reregister_after_s
            if check.needs_registration or overdue:
                registered = self.register()
                registered_at = self._clock()
        return None


def _json_body(response: requests.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


__all__ = ["API_PREFIX", "Credentials", "StatusCheck", "VendingMachineClient"]
