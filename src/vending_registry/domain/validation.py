"""Field contracts for registration payloads.

Validation runs before any record is constructed. A failure carries the
description of the first violated rule; a success returns the payload values
unchanged.
"""

from __future__ import annotations

import ipaddress
import re
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from vending_registry.domain.types import SystemInfo
from vending_registry.errors import ValidationFailure

HARDWARE_ID_MIN_LENGTH = 8
HARDWARE_ID_MAX_LENGTH = 64
HARDWARE_ID_PATTERN = re.compile(r"[A-Za-z0-9]+")
UUID_PATTERN = re.compile(r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}")
REJECTION_REASON_MAX_LENGTH = 500


class SystemInfoPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    os: StrictStr = Field(min_length=1)
    version: StrictStr = Field(min_length=1)
    architecture: StrictStr = Field(min_length=1)
    memory: StrictStr = Field(min_length=1)
    storage: StrictStr = Field(min_length=1)

    def to_system_info(self) -> SystemInfo:
        return SystemInfo(
            os=self.os,
            version=self.version,
            architecture=self.architecture,
            memory=self.memory,
            storage=self.storage,
        )


class RegistrationRequest(BaseModel):
    """Registration payload as sent by a device (camelCase on the wire)."""

    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)

    hardware_id: StrictStr
    tenant_id: StrictStr
    ip_address: StrictStr
    system_info: SystemInfoPayload

    @field_validator("hardware_id")
    @classmethod
    def _check_hardware_id(cls, value: str) -> str:
        problem = _hardware_id_problem(value)
        if problem:
            raise ValueError(problem)
        return value

    @field_validator("tenant_id")
    @classmethod
    def _check_tenant_id(cls, value: str) -> str:
        if not UUID_PATTERN.fullmatch(value):
            raise ValueError("must be a valid UUID")
        return value

    @field_validator("ip_address")
    @classmethod
    def _check_ip_address(cls, value: str) -> str:
        try:
            ipaddress.ip_address(value)
        except ValueError:
            raise ValueError("must be a valid IPv4 or IPv6 address") from None
        return value


def validate_registration(payload: Any) -> RegistrationRequest:
    """Validate a candidate registration mapping or raise ``ValidationFailure``."""

    if isinstance(payload, RegistrationRequest):
        return payload
    try:
        return RegistrationRequest.model_validate(payload)
    except ValidationError as exc:
        raise ValidationFailure(_describe(exc.errors()[0])) from exc


def is_valid_hardware_id(value: Any) -> bool:
    return isinstance(value, str) and _hardware_id_problem(value) is None


def validate_rejection_reason(reason: Any) -> str:
    if not isinstance(reason, str) or not reason.strip():
        raise ValidationFailure("A rejection reason is required")
    if len(reason) > REJECTION_REASON_MAX_LENGTH:
        raise ValidationFailure(
            f"Rejection reason must be at most {REJECTION_REASON_MAX_LENGTH} characters"
        )
    return reason


def _hardware_id_problem(value: str) -> Optional[str]:
    if not value:
        return "must not be empty"
    if not HARDWARE_ID_PATTERN.fullmatch(value):
        return "must only contain alpha-numeric characters"
    if len(value) < HARDWARE_ID_MIN_LENGTH:
        return f"length must be at least {HARDWARE_ID_MIN_LENGTH} characters long"
    if len(value) > HARDWARE_ID_MAX_LENGTH:
        return f"length must be less than or equal to {HARDWARE_ID_MAX_LENGTH} characters long"
    return None


def _describe(error: Dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ())) or "payload"
    error_type = error.get("type")
    if error_type == "missing":
        return f"'{location}' is required"
    if error_type == "extra_forbidden":
        return f"'{location}' is not allowed"
    context = error.get("ctx") or {}
    if error_type == "value_error" and "error" in context:
        return f"'{location}' {context['error']}"
    return f"'{location}': {error.get('msg', 'is invalid')}"


__all__ = [
    "HARDWARE_ID_MAX_LENGTH",
    "HARDWARE_ID_MIN_LENGTH",
    "REJECTION_REASON_MAX_LENGTH",
    "RegistrationRequest",
    "SystemInfoPayload",
    "is_valid_hardware_id",
    "validate_registration",
    "validate_rejection_reason",
]
