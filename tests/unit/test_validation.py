from __future__ import annotations

import pytest

from vending_registry.domain.validation import (
    REJECTION_REASON_MAX_LENGTH,
    RegistrationRequest,
    is_valid_hardware_id,
    validate_registration,
    validate_rejection_reason,
)
from vending_registry.errors import ErrorKind, ValidationFailure

TENANT_ID = "550e8400-e29b-41d4-a716-446655440000"


def _payload(**overrides: object) -> dict:
    payload = {
        "hardwareId": "VM00112345",
        "tenantId": TENANT_ID,
        "ipAddress": "192.168.1.10",
        "systemInfo": {
            "os": "Linux",
            "version": "5.4",
            "architecture": "x64",
            "memory": "8GB",
            "storage": "256GB",
        },
    }
    payload.update(overrides)
    return payload


def test_valid_payload_passes_through_unchanged() -> None:
    request = validate_registration(_payload())

    assert isinstance(request, RegistrationRequest)
    assert request.hardware_id == "VM00112345"
    assert request.tenant_id == TENANT_ID
    assert request.ip_address == "192.168.1.10"
    assert request.system_info.memory == "8GB"


def test_snake_case_keys_are_accepted() -> None:
    payload = _payload()
    snake = {
        "hardware_id": payload["hardwareId"],
        "tenant_id": payload["tenantId"],
        "ip_address": "::1",
        "system_info": payload["systemInfo"],
    }
    assert validate_registration(snake).ip_address == "::1"


@pytest.mark.parametrize(
    "hardware_id, fragment",
    [
        ("VM-0011234", "alpha-numeric"),
        ("VM001", "at least 8"),
        ("V" * 65, "less than or equal to 64"),
        ("", "must not be empty"),
    ],
)
def test_hardware_id_rules(hardware_id: str, fragment: str) -> None:
    with pytest.raises(ValidationFailure) as exc:
        validate_registration(_payload(hardwareId=hardware_id))

    assert "hardwareId" in str(exc.value)
    assert fragment in str(exc.value)
    assert exc.value.kind is ErrorKind.INVALID_INPUT


def test_hardware_id_length_bounds_are_inclusive() -> None:
    assert validate_registration(_payload(hardwareId="A" * 8)).hardware_id == "A" * 8
    assert validate_registration(_payload(hardwareId="A" * 64)).hardware_id == "A" * 64


def test_tenant_id_must_be_uuid() -> None:
    with pytest.raises(ValidationFailure) as exc:
        validate_registration(_payload(tenantId="tenant-1"))
    assert "tenantId" in str(exc.value)
    assert "UUID" in str(exc.value)


@pytest.mark.parametrize("address", ["999.1.1.1", "localhost", "192.168.1", ""])
def test_ip_address_must_be_literal(address: str) -> None:
    with pytest.raises(ValidationFailure) as exc:
        validate_registration(_payload(ipAddress=address))
    assert "ipAddress" in str(exc.value)


def test_missing_field_is_reported() -> None:
    payload = _payload()
    payload.pop("tenantId")
    with pytest.raises(ValidationFailure) as exc:
        validate_registration(payload)
    assert str(exc.value) == "'tenantId' is required"


def test_system_info_requires_all_fields_non_empty() -> None:
    payload = _payload()
    payload["systemInfo"] = dict(payload["systemInfo"], storage="")
    with pytest.raises(ValidationFailure) as exc:
        validate_registration(payload)
    assert "systemInfo.storage" in str(exc.value)

    payload["systemInfo"] = {"os": "Linux"}
    with pytest.raises(ValidationFailure) as exc:
        validate_registration(payload)
    assert "systemInfo.version" in str(exc.value)


def test_non_string_values_are_rejected() -> None:
    payload = _payload()
    payload["systemInfo"] = dict(payload["systemInfo"], memory=8)
    with pytest.raises(ValidationFailure):
        validate_registration(payload)


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ValidationFailure) as exc:
        validate_registration(_payload(firmware="1.2"))
    assert "'firmware' is not allowed" == str(exc.value)


def test_non_mapping_payload_is_rejected() -> None:
    with pytest.raises(ValidationFailure):
        validate_registration(["VM00112345"])
    with pytest.raises(ValidationFailure):
        validate_registration(None)


def test_first_violation_wins() -> None:
    with pytest.raises(ValidationFailure) as exc:
        validate_registration(_payload(hardwareId="bad!", tenantId="also-bad"))
    assert "hardwareId" in str(exc.value)
    assert "tenantId" not in str(exc.value)


def test_is_valid_hardware_id() -> None:
    assert is_valid_hardware_id("VM00112345")
    assert not is_valid_hardware_id("VM0011234\n")
    assert not is_valid_hardware_id("short")
    assert not is_valid_hardware_id(None)
    assert not is_valid_hardware_id(12345678)


def test_rejection_reason_rules() -> None:
    assert validate_rejection_reason("Unknown tenant") == "Unknown tenant"
    for reason in ("", "   ", None):
        with pytest.raises(ValidationFailure):
            validate_rejection_reason(reason)
    with pytest.raises(ValidationFailure):
        validate_rejection_reason("x" * (REJECTION_REASON_MAX_LENGTH + 1))
