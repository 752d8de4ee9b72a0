"""Device record entity and registration payload contracts."""

from vending_registry.domain.types import REGISTRATION_EXPIRY, DeviceRecord, DeviceStatus, SystemInfo
from vending_registry.domain.validation import (
    RegistrationRequest,
    is_valid_hardware_id,
    validate_registration,
    validate_rejection_reason,
)

__all__ = [
    "DeviceRecord",
    "DeviceStatus",
    "REGISTRATION_EXPIRY",
    "RegistrationRequest",
    "SystemInfo",
    "is_valid_hardware_id",
    "validate_registration",
    "validate_rejection_reason",
]
