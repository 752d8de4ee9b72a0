"""Device record entity and its lifecycle transitions."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

from vending_registry.errors import InvalidStateTransition, ValidationFailure

REGISTRATION_EXPIRY = timedelta(hours=24)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DeviceStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class SystemInfo:
    os: str
    version: str
    architecture: str
    memory: str
    storage: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SystemInfo":
        return cls(
            os=str(data["os"]),
            version=str(data["version"]),
            architecture=str(data["architecture"]),
            memory=str(data["memory"]),
            storage=str(data["storage"]),
        )

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass
class DeviceRecord:
    """One physical unit's registration and its current lifecycle state.

    Only ``approve`` and ``reject`` change ``status``, and both require the
    record to be pending. ``hardware_id``, ``tenant_id`` and ``created_at``
    are never reassigned after construction.
    """

    hardware_id: str
    tenant_id: str
    ip_address: str
    system_info: SystemInfo
    status: DeviceStatus = DeviceStatus.PENDING
    device_id: Optional[str] = None
    queue_endpoint: Optional[str] = None
    rejection_reason: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.updated_at is None:
            self.updated_at = self.created_at

    @property
    def is_pending(self) -> bool:
        return self.status is DeviceStatus.PENDING

    @property
    def is_approved(self) -> bool:
        return self.status is DeviceStatus.APPROVED

    @property
    def is_rejected(self) -> bool:
        return self.status is DeviceStatus.REJECTED

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """True when the record is still pending past the expiry window."""

        if not self.is_pending:
            return False
        current = now or utcnow()
        return self.created_at < current - REGISTRATION_EXPIRY

    def approve(self, device_id: str, queue_endpoint: str, *, now: Optional[datetime] = None) -> None:
        self._require_pending("approve")
        if not device_id or not queue_endpoint:
            raise ValidationFailure("device_id and queue_endpoint are both required for approval")
        self.status = DeviceStatus.APPROVED
        self.device_id = device_id
        self.queue_endpoint = queue_endpoint
        self.updated_at = now or utcnow()

    def reject(self, reason: str, *, now: Optional[datetime] = None) -> None:
        self._require_pending("reject")
        if not reason or not reason.strip():
            raise ValidationFailure("A rejection reason is required")
        self.status = DeviceStatus.REJECTED
        self.rejection_reason = reason
        self.updated_at = now or utcnow()

    def copy(self) -> "DeviceRecord":
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation with camelCase keys and ISO-8601 timestamps."""

        return {
            "hardwareId": self.hardware_id,
            "tenantId": self.tenant_id,
            "ipAddress": self.ip_address,
            "systemInfo": self.system_info.to_dict(),
            "status": self.status.value,
            "deviceId": self.device_id,
            "queueEndpoint": self.queue_endpoint,
            "rejectionReason": self.rejection_reason,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def _require_pending(self, action: str) -> None:
        if not self.is_pending:
            raise InvalidStateTransition(
                f"Cannot {action} device {self.hardware_id}: status is {self.status.value}"
            )


__all__ = [
    "DeviceRecord",
    "DeviceStatus",
    "REGISTRATION_EXPIRY",
    "SystemInfo",
    "utcnow",
]
