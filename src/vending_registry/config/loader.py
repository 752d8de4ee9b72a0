"""Config loader with schema validation for the vending machine agent."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from vending_registry.domain.types import SystemInfo
from vending_registry.domain.validation import UUID_PATTERN, is_valid_hardware_id

SYSTEM_INFO_FIELDS = ("os", "version", "architecture", "memory", "storage")


class ConfigError(ValueError):
    """Raised when a configuration file fails validation."""


@dataclass(frozen=True)
class PollingConfig:
    registration_retry_s: float = 300.0
    status_check_s: float = 300.0
    reregister_after_s: float = 86400.0


@dataclass(frozen=True)
class AgentConfig:
    source: Path
    server_url: str
    hardware_id: str
    tenant_id: str
    timeout_ms: int
    polling: PollingConfig
    ip_address: Optional[str]
    system_info: Optional[SystemInfo]


def load_config(path: str | Path) -> AgentConfig:
    """Load and validate a YAML/JSON agent config file."""
    source = Path(path)
    if not source.exists():
        raise ConfigError(f"Config file not found: {source}")

    data = _deserialize(source)
    if not isinstance(data, dict):
        raise ConfigError("Config root must be a mapping")
    return _parse_config(data, source)


def _deserialize(source: Path) -> Any:
    text = source.read_text(encoding="utf-8")
    suffix = source.suffix.lower()
    try:
        if suffix == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Config file {source} is not parseable: {exc}") from exc


def _parse_config(data: Dict[str, Any], source: Path) -> AgentConfig:
    server_url = _require_str(data, "server_url").rstrip("/")
    if not server_url.startswith(("http://", "https://")):
        raise ConfigError("'server_url' must start with http:// or https://")

    hardware_id = _require_str(data, "hardware_id")
    if not is_valid_hardware_id(hardware_id):
        raise ConfigError("'hardware_id' must be 8-64 alphanumeric characters")

    tenant_id = _require_str(data, "tenant_id")
    if not UUID_PATTERN.fullmatch(tenant_id):
        raise ConfigError("'tenant_id' must be a UUID")

    polling_section = data.get("polling", {})
    if not isinstance(polling_section, dict):
        raise ConfigError("polling block must be a mapping if provided")
    polling = PollingConfig(
        registration_retry_s=_coerce_float(
            polling_section.get("registration_retry_s", 300), "polling.registration_retry_s", minimum=0.0
        ),
        status_check_s=_coerce_float(polling_section.get("status_check_s", 300), "polling.status_check_s", minimum=0.0),
        reregister_after_s=_coerce_float(
            polling_section.get("reregister_after_s", 86400), "polling.reregister_after_s", minimum=0.0
        ),
    )

    system_info = None
    if "system_info" in data:
        info_section = _require_dict(data, "system_info")
        system_info = SystemInfo(**{name: _require_str(info_section, name) for name in SYSTEM_INFO_FIELDS})

    ip_address = data.get("ip_address")
    if ip_address is not None and (not isinstance(ip_address, str) or not ip_address.strip()):
        raise ConfigError("'ip_address' must be a non-empty string when provided")

    return AgentConfig(
        source=source,
        server_url=server_url,
        hardware_id=hardware_id,
        tenant_id=tenant_id,
        timeout_ms=_coerce_int(data.get("timeout_ms", 10000), "timeout_ms", minimum=1),
        polling=polling,
        ip_address=ip_address,
        system_info=system_info,
    )


def _require_dict(obj: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = obj.get(key)
    if not isinstance(value, dict):
        raise ConfigError(f"'{key}' must be a mapping")
    return value


def _require_str(obj: Dict[str, Any], key: str) -> str:
    value = obj.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{key}' must be a non-empty string")
    return value


def _coerce_int(value: Any, field: str, minimum: Optional[int] = None) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"'{field}' must be an integer, not boolean")
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'{field}' must be an integer") from exc
    if minimum is not None and parsed < minimum:
        raise ConfigError(f"'{field}' must be >= {minimum}")
    return parsed


def _coerce_float(value: Any, field: str, minimum: Optional[float] = None) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{field}' must be a number")
    result = float(value)
    if minimum is not None and result < minimum:
        raise ConfigError(f"'{field}' must be >= {minimum}")
    return result


__all__ = [
    "AgentConfig",
    "ConfigError",
    "PollingConfig",
    "SYSTEM_INFO_FIELDS",
    "load_config",
]
