"""Thread-safe in-memory device store for development and tests."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional

from vending_registry.domain.types import DeviceRecord, DeviceStatus
from vending_registry.errors import DuplicateKeyError, RecordNotFoundError, StaleRecordError

LOGGER = logging.getLogger(__name__)


class InMemoryDeviceStore:
    """Dictionary keyed by hardware id, guarded by a single lock."""

    def __init__(self) -> None:
        self._records: Dict[str, DeviceRecord] = {}
        self._lock = threading.Lock()

    def save(self, record: DeviceRecord) -> None:
        with self._lock:
            if record.hardware_id in self._records:
                raise DuplicateKeyError(f"Device with hardware ID {record.hardware_id} already exists")
            self._records[record.hardware_id] = record.copy()
        LOGGER.debug("Stored device %s", record.hardware_id)

    def find_by_hardware_id(self, hardware_id: str) -> Optional[DeviceRecord]:
        with self._lock:
            record = self._records.get(hardware_id)
            return record.copy() if record else None

    def find_by_device_id(self, device_id: str) -> Optional[DeviceRecord]:
        with self._lock:
            for record in self._records.values():
                if record.device_id == device_id:
                    return record.copy()
        return None

    def find_pending(self) -> List[DeviceRecord]:
        with self._lock:
            return [record.copy() for record in self._records.values() if record.is_pending]

    def update(self, record: DeviceRecord, *, expected_status: Optional[DeviceStatus] = None) -> None:
        with self._lock:
            current = self._records.get(record.hardware_id)
            if current is None:
                raise RecordNotFoundError(f"Device with hardware ID {record.hardware_id} not found")
            if expected_status is not None and current.status is not expected_status:
                raise StaleRecordError(
                    f"Device {record.hardware_id} is {current.status.value}, expected {expected_status.value}"
                )
            self._records[record.hardware_id] = record.copy()

    def delete(
        self,
        hardware_id: str,
        *,
        expected_status: Optional[DeviceStatus] = None,
        created_before: Optional[datetime] = None,
    ) -> bool:
        with self._lock:
            current = self._records.get(hardware_id)
            if current is None:
                return False
            if expected_status is not None and current.status is not expected_status:
                return False
            if created_before is not None and not current.created_at < created_before:
                return False
            del self._records[hardware_id]
        LOGGER.debug("Deleted device %s", hardware_id)
        return True

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


__all__ = ["InMemoryDeviceStore"]
