"""SQLAlchemy-backed device store."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from vending_registry.domain.types import DeviceRecord, DeviceStatus, SystemInfo
from vending_registry.errors import (
    DuplicateKeyError,
    RecordNotFoundError,
    StaleRecordError,
    StoreError,
)
from vending_registry.store.models import DeviceRow

LOGGER = logging.getLogger(__name__)


class SqlDeviceStore:
    """Stores device records in the ``devices`` table.

    Uniqueness of ``hardware_id`` and ``device_id`` comes from the table's
    primary key and unique index. Conditional updates and deletes are single
    ``UPDATE``/``DELETE`` statements filtered on the expected status.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def save(self, record: DeviceRecord) -> None:
        try:
            with self._session() as session:
                session.add(_to_row(record))
        except IntegrityError as exc:
            raise DuplicateKeyError(f"Device with hardware ID {record.hardware_id} already exists") from exc

    def find_by_hardware_id(self, hardware_id: str) -> Optional[DeviceRecord]:
        with self._session() as session:
            row = session.get(DeviceRow, hardware_id)
            return _to_record(row) if row else None

    def find_by_device_id(self, device_id: str) -> Optional[DeviceRecord]:
        with self._session() as session:
            row = session.query(DeviceRow).filter(DeviceRow.device_id == device_id).first()
            return _to_record(row) if row else None

    def find_pending(self) -> List[DeviceRecord]:
        with self._session() as session:
            rows = session.query(DeviceRow).filter(DeviceRow.status == DeviceStatus.PENDING.value).all()
            return [_to_record(row) for row in rows]

    def update(self, record: DeviceRecord, *, expected_status: Optional[DeviceStatus] = None) -> None:
        with self._session() as session:
            query = session.query(DeviceRow).filter(DeviceRow.hardware_id == record.hardware_id)
            if expected_status is not None:
                query = query.filter(DeviceRow.status == expected_status.value)
            changed = query.update(
                {
                    DeviceRow.status: record.status.value,
                    DeviceRow.device_id: record.device_id,
                    DeviceRow.queue_endpoint: record.queue_endpoint,
                    DeviceRow.rejection_reason: record.rejection_reason,
                    DeviceRow.updated_at: _as_utc(record.updated_at),
                },
                synchronize_session=False,
            )
            if changed:
                return
            current = session.get(DeviceRow, record.hardware_id)
            if current is None:
                raise RecordNotFoundError(f"Device with hardware ID {record.hardware_id} not found")
            raise StaleRecordError(
                f"Device {record.hardware_id} is {current.status}, expected {expected_status.value}"
            )

    def delete(
        self,
        hardware_id: str,
        *,
        expected_status: Optional[DeviceStatus] = None,
        created_before: Optional[datetime] = None,
    ) -> bool:
        with self._session() as session:
            query = session.query(DeviceRow).filter(DeviceRow.hardware_id == hardware_id)
            if expected_status is not None:
                query = query.filter(DeviceRow.status == expected_status.value)
            if created_before is not None:
                query = query.filter(DeviceRow.created_at < _as_utc(created_before))
            removed = query.delete(synchronize_session=False)
        if removed:
            LOGGER.debug("Deleted device %s", hardware_id)
        return bool(removed)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except (IntegrityError, StoreError):
            session.rollback()
            raise
        except SQLAlchemyError as exc:
            session.rollback()
            LOGGER.error("Device store operation failed: %s", exc)
            raise StoreError(f"Device store unavailable: {exc.__class__.__name__}") from exc
        finally:
            session.close()


def _to_row(record: DeviceRecord) -> DeviceRow:
    return DeviceRow(
        hardware_id=record.hardware_id,
        tenant_id=record.tenant_id,
        ip_address=record.ip_address,
        system_info=record.system_info.to_dict(),
        status=record.status.value,
        device_id=record.device_id,
        queue_endpoint=record.queue_endpoint,
        rejection_reason=record.rejection_reason,
        created_at=_as_utc(record.created_at),
        updated_at=_as_utc(record.updated_at or record.created_at),
    )


def _to_record(row: DeviceRow) -> DeviceRecord:
    return DeviceRecord(
        hardware_id=row.hardware_id,
        tenant_id=row.tenant_id,
        ip_address=row.ip_address,
        system_info=SystemInfo.from_dict(row.system_info),
        status=DeviceStatus(row.status),
        device_id=row.device_id,
        queue_endpoint=row.queue_endpoint,
        rejection_reason=row.rejection_reason,
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
    )


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive timestamps; everything is stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


__all__ = ["SqlDeviceStore"]
