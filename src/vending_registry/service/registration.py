"""Registration service: the device approval state machine.

A device record starts pending, and an administrator moves it once, to
approved or rejected. A rejected record, or a pending one older than the
expiry window, is replaced when the same hardware id registers again.
Validation and state-check failures come back as typed outcomes. Store and
queue provisioner errors propagate unchanged.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Callable, List, Optional

from vending_registry.domain.types import REGISTRATION_EXPIRY, DeviceRecord, DeviceStatus, utcnow
from vending_registry.domain.validation import (
    is_valid_hardware_id,
    validate_registration,
    validate_rejection_reason,
)
from vending_registry.errors import (
    DuplicateKeyError,
    ErrorKind,
    InvalidStateTransition,
    QueueProvisioningError,
    StaleRecordError,
    ValidationFailure,
)
from vending_registry.queues.base import QueueProvisioner
from vending_registry.service import outcomes
from vending_registry.service.outcomes import RegistrationOutcome, StatusOutcome
from vending_registry.store.base import DeviceStore

LOGGER = logging.getLogger(__name__)


def _new_device_id() -> str:
    return str(uuid.uuid4())


class RegistrationService:
    """Orchestrates register, status, approve and reject against the collaborators."""

    def __init__(
        self,
        store: DeviceStore,
        provisioner: QueueProvisioner,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        device_id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self._store = store
        self._provisioner = provisioner
        self._clock = clock or utcnow
        self._device_id_factory = device_id_factory or _new_device_id

    def register(self, payload: Any) -> RegistrationOutcome:
        """Create a pending record for a new or superseded hardware id."""

        try:
            request = validate_registration(payload)
        except ValidationFailure as exc:
            LOGGER.info("Rejected registration payload: %s", exc)
            return RegistrationOutcome.failure(ErrorKind.INVALID_INPUT, str(exc))

        now = self._clock()
        existing = self._store.find_by_hardware_id(request.hardware_id)
        while existing is not None:
            duplicate = self._duplicate_of(existing, now)
            if duplicate is not None:
                return duplicate
            LOGGER.info(
                "Replacing %s registration for %s",
                "expired" if existing.is_pending else existing.status.value,
                request.hardware_id,
            )
            if self._store.delete(
                request.hardware_id,
                expected_status=existing.status,
                created_before=self._expiry_cutoff(now) if existing.is_pending else None,
            ):
                break
            # The record changed after it was read; decide again from its current state.
            existing = self._store.find_by_hardware_id(request.hardware_id)

        record = DeviceRecord(
            hardware_id=request.hardware_id,
            tenant_id=request.tenant_id,
            ip_address=request.ip_address,
            system_info=request.system_info.to_system_info(),
            created_at=now,
            updated_at=now,
        )
        try:
            self._store.save(record)
        except DuplicateKeyError:
            LOGGER.info("Concurrent registration already stored %s", request.hardware_id)
            current = self._store.find_by_hardware_id(request.hardware_id)
            if current is not None and current.is_approved:
                return RegistrationOutcome.failure(ErrorKind.DUPLICATE_APPROVED, outcomes.DEVICE_ALREADY_APPROVED)
            return RegistrationOutcome.failure(ErrorKind.DUPLICATE_PENDING, outcomes.DEVICE_ALREADY_PENDING)
        LOGGER.info("Registered device %s for tenant %s", record.hardware_id, record.tenant_id)
        return RegistrationOutcome.success(outcomes.DEVICE_REGISTERED)

    def get_status(self, hardware_id: Any) -> StatusOutcome:
        """Report the lifecycle state for ``hardware_id``; expired records are removed."""

        if not is_valid_hardware_id(hardware_id):
            return StatusOutcome.failure(ErrorKind.INVALID_INPUT, outcomes.INVALID_HARDWARE_ID)

        now = self._clock()
        record = self._store.find_by_hardware_id(hardware_id)
        while record is not None and record.is_expired(now):
            if self._store.delete(
                hardware_id,
                expected_status=DeviceStatus.PENDING,
                created_before=self._expiry_cutoff(now),
            ):
                LOGGER.info("Registration for %s expired; record removed", hardware_id)
                return StatusOutcome.failure(ErrorKind.REGISTRATION_EXPIRED, outcomes.REGISTRATION_EXPIRED)
            # Changed since the read; report the stored state instead.
            record = self._store.find_by_hardware_id(hardware_id)
        if record is None:
            return StatusOutcome.failure(ErrorKind.NOT_FOUND, outcomes.DEVICE_NOT_FOUND)

        if record.is_approved:
            return StatusOutcome(
                message=outcomes.DEVICE_READY,
                status=DeviceStatus.APPROVED,
                device_id=record.device_id,
                queue_endpoint=record.queue_endpoint,
            )
        if record.is_rejected:
            return StatusOutcome(
                message=f"Device registration was rejected: {record.rejection_reason}",
                status=DeviceStatus.REJECTED,
            )
        return StatusOutcome(message=outcomes.DEVICE_PENDING, status=DeviceStatus.PENDING)

    def approve(self, hardware_id: str) -> RegistrationOutcome:
        """Assign a device id and queue endpoint to a pending record."""

        record, failure = self._load_pending(hardware_id)
        if failure is not None:
            return failure

        device_id = self._device_id_factory()
        queue_endpoint = self._provisioner.create_queue(device_id)
        if not queue_endpoint:
            raise QueueProvisioningError(f"Queue provisioner returned no endpoint for {device_id}")

        try:
            record.approve(device_id, queue_endpoint, now=self._clock())
            self._store.update(record, expected_status=DeviceStatus.PENDING)
        except (InvalidStateTransition, StaleRecordError) as exc:
            LOGGER.warning("Approval of %s lost a race (%s); queue %s left unused", hardware_id, exc, queue_endpoint)
            return RegistrationOutcome.failure(ErrorKind.INVALID_STATE_TRANSITION, outcomes.DEVICE_NOT_PENDING)

        LOGGER.info("Approved device %s as %s", hardware_id, device_id)
        return RegistrationOutcome.success(
            outcomes.DEVICE_APPROVED,
            device_id=device_id,
            queue_endpoint=queue_endpoint,
        )

    def reject(self, hardware_id: str, reason: Any) -> RegistrationOutcome:
        """Move a pending record to rejected with a non-empty reason."""

        try:
            reason = validate_rejection_reason(reason)
        except ValidationFailure as exc:
            return RegistrationOutcome.failure(ErrorKind.INVALID_INPUT, str(exc))

        record, failure = self._load_pending(hardware_id)
        if failure is not None:
            return failure

        try:
            record.reject(reason, now=self._clock())
            self._store.update(record, expected_status=DeviceStatus.PENDING)
        except (InvalidStateTransition, StaleRecordError) as exc:
            LOGGER.warning("Rejection of %s lost a race (%s)", hardware_id, exc)
            return RegistrationOutcome.failure(ErrorKind.INVALID_STATE_TRANSITION, outcomes.DEVICE_NOT_PENDING)

        LOGGER.info("Rejected device %s", hardware_id)
        return RegistrationOutcome.success(outcomes.DEVICE_REJECTED)

    def list_pending(self) -> List[DeviceRecord]:
        return self._store.find_pending()

    def purge_expired(self) -> int:
        """Delete every pending record past the expiry window; return how many went."""

        now = self._clock()
        cutoff = self._expiry_cutoff(now)
        removed = 0
        for record in self._store.find_pending():
            if not record.is_expired(now):
                continue
            if self._store.delete(record.hardware_id, expected_status=DeviceStatus.PENDING, created_before=cutoff):
                removed += 1
        if removed:
            LOGGER.info("Purged %d expired registrations", removed)
        return removed

    @staticmethod
    def _duplicate_of(existing: DeviceRecord, now: datetime) -> Optional[RegistrationOutcome]:
        if existing.is_approved:
            return RegistrationOutcome.failure(ErrorKind.DUPLICATE_APPROVED, outcomes.DEVICE_ALREADY_APPROVED)
        if existing.is_pending and not existing.is_expired(now):
            return RegistrationOutcome.failure(ErrorKind.DUPLICATE_PENDING, outcomes.DEVICE_ALREADY_PENDING)
        return None

    def _load_pending(self, hardware_id: str) -> tuple[Optional[DeviceRecord], Optional[RegistrationOutcome]]:
        record = self._store.find_by_hardware_id(hardware_id) if is_valid_hardware_id(hardware_id) else None
        if record is None:
            return None, RegistrationOutcome.failure(ErrorKind.NOT_FOUND, outcomes.DEVICE_NOT_FOUND)
        if not record.is_pending:
            return None, RegistrationOutcome.failure(ErrorKind.INVALID_STATE_TRANSITION, outcomes.DEVICE_NOT_PENDING)
        return record, None

    @staticmethod
    def _expiry_cutoff(now: datetime) -> datetime:
        return now - REGISTRATION_EXPIRY


__all__ = ["RegistrationService"]
