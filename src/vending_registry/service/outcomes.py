"""Typed results returned by the registration service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from vending_registry.domain.types import DeviceStatus
from vending_registry.errors import ErrorKind

DEVICE_REGISTERED = "Device registration request submitted successfully"
DEVICE_APPROVED = "Device approved successfully"
DEVICE_REJECTED = "Device rejected successfully"
DEVICE_NOT_FOUND = "Device not found"
DEVICE_ALREADY_PENDING = "Device registration is already pending approval"
DEVICE_ALREADY_APPROVED = "Device is already registered and approved"
DEVICE_NOT_PENDING = "Device is not in pending status"
INVALID_HARDWARE_ID = "Invalid hardware ID format"
REGISTRATION_EXPIRED = "Device registration has expired. Please register again."
DEVICE_READY = "Device has been approved and is ready for operation"
DEVICE_PENDING = "Device registration is pending approval"


@dataclass(frozen=True)
class RegistrationOutcome:
    """Result of ``register``, ``approve`` and ``reject``.

    ``kind`` is ``None`` exactly when ``accepted`` is true.
    """

    accepted: bool
    message: str
    kind: Optional[ErrorKind] = None
    device_id: Optional[str] = None
    queue_endpoint: Optional[str] = None

    @classmethod
    def success(cls, message: str, **extra: Optional[str]) -> "RegistrationOutcome":
        return cls(accepted=True, message=message, **extra)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "RegistrationOutcome":
        return cls(accepted=False, message=message, kind=kind)


@dataclass(frozen=True)
class StatusOutcome:
    """Result of ``get_status``."""

    message: str
    status: Optional[DeviceStatus] = None
    kind: Optional[ErrorKind] = None
    device_id: Optional[str] = None
    queue_endpoint: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind is None

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "StatusOutcome":
        return cls(message=message, kind=kind)

    def to_data(self) -> Dict[str, Any]:
        return {
            "status": self.status.value if self.status else None,
            "deviceId": self.device_id,
            "queueEndpoint": self.queue_endpoint,
        }


__all__ = [
    "DEVICE_ALREADY_APPROVED",
    "DEVICE_ALREADY_PENDING",
    "DEVICE_APPROVED",
    "DEVICE_NOT_FOUND",
    "DEVICE_NOT_PENDING",
    "DEVICE_PENDING",
    "DEVICE_READY",
    "DEVICE_REGISTERED",
    "DEVICE_REJECTED",
    "INVALID_HARDWARE_ID",
    "REGISTRATION_EXPIRED",
    "RegistrationOutcome",
    "StatusOutcome",
]
