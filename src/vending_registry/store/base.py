"""Device store contract consumed by the registration service."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Protocol

from vending_registry.domain.types import DeviceRecord, DeviceStatus


class DeviceStore(Protocol):
    """Keyed persistence for device records.

    Records are keyed by ``hardware_id``. Implementations must make each call
    atomic per key and must hand out copies, so a caller mutating a returned
    record changes nothing until it calls ``update``.
    """

    def save(self, record: DeviceRecord) -> None:
        """Insert a new record; raise ``DuplicateKeyError`` if the key exists."""
        ...

    def find_by_hardware_id(self, hardware_id: str) -> Optional[DeviceRecord]:
        ...

    def find_by_device_id(self, device_id: str) -> Optional[DeviceRecord]:
        ...

    def find_pending(self) -> List[DeviceRecord]:
        ...

    def update(self, record: DeviceRecord, *, expected_status: Optional[DeviceStatus] = None) -> None:
        """Overwrite an existing record.

        Raises ``RecordNotFoundError`` when the key is absent and
        ``StaleRecordError`` when ``expected_status`` is given and the stored
        status differs.
        """
        ...

    def delete(
        self,
        hardware_id: str,
        *,
        expected_status: Optional[DeviceStatus] = None,
        created_before: Optional[datetime] = None,
    ) -> bool:
        """Remove a record if present and matching; return whether one was removed."""
        ...


__all__ = ["DeviceStore"]
