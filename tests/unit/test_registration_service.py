from __future__ import annotations

import itertools
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import List

import pytest

from vending_registry.domain.types import DeviceStatus
from vending_registry.errors import ErrorKind, QueueProvisioningError, StoreError
from vending_registry.queues.memory import InMemoryQueueProvisioner
from vending_registry.service import outcomes
from vending_registry.service.registration import RegistrationService
from vending_registry.store.memory import InMemoryDeviceStore

START = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)
HARDWARE_ID = "VM00112345"
TENANT_ID = "550e8400-e29b-41d4-a716-446655440000"


class _Clock:
    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class _FailingProvisioner:
    def __init__(self) -> None:
        self.calls: List[str] = []

    def create_queue(self, device_id: str) -> str:
        self.calls.append(device_id)
        raise QueueProvisioningError("queue backend unavailable")


class _EmptyEndpointProvisioner:
    def create_queue(self, device_id: str) -> str:
        return ""


class _ApprovesDuringDeleteStore(InMemoryDeviceStore):
    """Lets an administrator approve the record between a read and the conditional delete."""

    def __init__(self) -> None:
        super().__init__()
        self.service = None
        self.fired = False

    def delete(self, hardware_id: str, **conditions):
        if self.service is not None and not self.fired:
            self.fired = True
            self.service.approve(hardware_id)
        return super().delete(hardware_id, **conditions)


class _BrokenStore(InMemoryDeviceStore):
    def find_by_hardware_id(self, hardware_id: str):
        raise StoreError("database unreachable")


def _payload(hardware_id: str = HARDWARE_ID, **overrides: object) -> dict:
    payload = {
        "hardwareId": hardware_id,
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


def _build_service(provisioner=None, store=None, clock=None):
    counter = itertools.count(1)
    store = store if store is not None else InMemoryDeviceStore()
    service = RegistrationService(
        store,
        provisioner if provisioner is not None else InMemoryQueueProvisioner(),
        clock=clock or _Clock(),
        device_id_factory=lambda: f"device-{next(counter)}",
    )
    return service, store


def test_register_creates_pending_record() -> None:
    service, store = _build_service()

    outcome = service.register(_payload())

    assert outcome.accepted
    assert outcome.kind is None
    assert outcome.message == outcomes.DEVICE_REGISTERED
    record = store.find_by_hardware_id(HARDWARE_ID)
    assert record.status is DeviceStatus.PENDING
    assert record.created_at == START
    assert record.device_id is None and record.queue_endpoint is None


def test_register_invalid_payload_writes_nothing() -> None:
    service, store = _build_service()

    outcome = service.register(_payload(hardwareId="VM-001"))

    assert not outcome.accepted
    assert outcome.kind is ErrorKind.INVALID_INPUT
    assert "hardwareId" in outcome.message
    assert len(store) == 0


def test_register_twice_while_pending_is_duplicate() -> None:
    service, store = _build_service()
    service.register(_payload())

    outcome = service.register(_payload(ipAddress="10.0.0.9"))

    assert outcome.kind is ErrorKind.DUPLICATE_PENDING
    assert outcome.message == outcomes.DEVICE_ALREADY_PENDING
    assert store.find_by_hardware_id(HARDWARE_ID).ip_address == "192.168.1.10"


def test_register_after_approval_is_refused() -> None:
    service, store = _build_service()
    service.register(_payload())
    service.approve(HARDWARE_ID)

    outcome = service.register(_payload())

    assert outcome.kind is ErrorKind.DUPLICATE_APPROVED
    assert outcome.message == outcomes.DEVICE_ALREADY_APPROVED
    assert store.find_by_hardware_id(HARDWARE_ID).device_id == "device-1"


def test_register_after_rejection_replaces_record() -> None:
    clock = _Clock()
    service, store = _build_service(clock=clock)
    service.register(_payload())
    service.reject(HARDWARE_ID, "Unknown tenant")
    clock.advance(minutes=10)

    outcome = service.register(_payload(ipAddress="10.0.0.9"))

    assert outcome.accepted
    record = store.find_by_hardware_id(HARDWARE_ID)
    assert record.status is DeviceStatus.PENDING
    assert record.rejection_reason is None
    assert record.ip_address == "10.0.0.9"
    assert record.created_at == START + timedelta(minutes=10)


def test_register_after_expiry_replaces_record() -> None:
    clock = _Clock()
    service, store = _build_service(clock=clock)
    service.register(_payload())
    clock.advance(hours=24, seconds=1)

    outcome = service.register(_payload())

    assert outcome.accepted
    assert store.find_by_hardware_id(HARDWARE_ID).created_at == clock.now


def test_pending_exactly_at_window_is_not_expired() -> None:
    clock = _Clock()
    service, _ = _build_service(clock=clock)
    service.register(_payload())
    clock.advance(hours=24)

    assert service.register(_payload()).kind is ErrorKind.DUPLICATE_PENDING
    assert service.get_status(HARDWARE_ID).status is DeviceStatus.PENDING


def test_status_for_each_state() -> None:
    service, _ = _build_service()
    service.register(_payload())
    service.register(_payload("VM00000002"))

    pending = service.get_status(HARDWARE_ID)
    assert pending.ok
    assert pending.status is DeviceStatus.PENDING
    assert pending.message == outcomes.DEVICE_PENDING
    assert pending.device_id is None

    service.approve(HARDWARE_ID)
    approved = service.get_status(HARDWARE_ID)
    assert approved.status is DeviceStatus.APPROVED
    assert approved.message == outcomes.DEVICE_READY
    assert approved.device_id == "device-1"
    assert approved.queue_endpoint == "memory://queue/vending-machine-device-1"

    service.reject("VM00000002", "Wrong site")
    rejected = service.get_status("VM00000002")
    assert rejected.status is DeviceStatus.REJECTED
    assert rejected.message == "Device registration was rejected: Wrong site"
    assert rejected.device_id is None


def test_status_invalid_and_unknown_ids() -> None:
    service, _ = _build_service()

    invalid = service.get_status("bad id!")
    assert invalid.kind is ErrorKind.INVALID_INPUT
    assert invalid.message == outcomes.INVALID_HARDWARE_ID

    missing = service.get_status("VM99999999")
    assert missing.kind is ErrorKind.NOT_FOUND
    assert missing.message == outcomes.DEVICE_NOT_FOUND


def test_status_of_expired_pending_removes_record() -> None:
    clock = _Clock()
    service, store = _build_service(clock=clock)
    service.register(_payload())
    clock.advance(hours=25)

    expired = service.get_status(HARDWARE_ID)

    assert expired.kind is ErrorKind.REGISTRATION_EXPIRED
    assert expired.message == outcomes.REGISTRATION_EXPIRED
    assert store.find_by_hardware_id(HARDWARE_ID) is None
    assert service.get_status(HARDWARE_ID).kind is ErrorKind.NOT_FOUND


def test_approved_and_rejected_records_never_expire() -> None:
    clock = _Clock()
    service, _ = _build_service(clock=clock)
    service.register(_payload())
    service.register(_payload("VM00000002"))
    service.approve(HARDWARE_ID)
    service.reject("VM00000002", "Wrong site")
    clock.advance(days=30)

    assert service.get_status(HARDWARE_ID).status is DeviceStatus.APPROVED
    assert service.get_status("VM00000002").status is DeviceStatus.REJECTED


def test_approve_returns_identity_and_provisions_queue() -> None:
    provisioner = InMemoryQueueProvisioner(prefix="vm-")
    service, store = _build_service(provisioner=provisioner)
    service.register(_payload())

    outcome = service.approve(HARDWARE_ID)

    assert outcome.accepted
    assert outcome.message == outcomes.DEVICE_APPROVED
    assert outcome.device_id == "device-1"
    assert outcome.queue_endpoint == "memory://queue/vm-device-1"
    assert provisioner.queue_count == 1
    record = store.find_by_hardware_id(HARDWARE_ID)
    assert (record.device_id, record.queue_endpoint) == (outcome.device_id, outcome.queue_endpoint)


def test_approve_unknown_device() -> None:
    service, _ = _build_service()
    outcome = service.approve("VM99999999")
    assert outcome.kind is ErrorKind.NOT_FOUND
    assert outcome.message == outcomes.DEVICE_NOT_FOUND


def test_reject_then_approve_is_refused() -> None:
    provisioner = InMemoryQueueProvisioner()
    service, store = _build_service(provisioner=provisioner)
    service.register(_payload())
    service.reject(HARDWARE_ID, "Unknown tenant")

    outcome = service.approve(HARDWARE_ID)

    assert outcome.kind is ErrorKind.INVALID_STATE_TRANSITION
    assert outcome.message == outcomes.DEVICE_NOT_PENDING
    assert provisioner.queue_count == 0
    assert store.find_by_hardware_id(HARDWARE_ID).status is DeviceStatus.REJECTED


def test_approve_then_reject_is_refused() -> None:
    service, store = _build_service()
    assert service.register(_payload()).accepted
    assert service.get_status(HARDWARE_ID).status is DeviceStatus.PENDING
    approved = service.approve(HARDWARE_ID)
    assert approved.accepted

    outcome = service.reject(HARDWARE_ID, "Changed my mind")

    assert outcome.kind is ErrorKind.INVALID_STATE_TRANSITION
    record = store.find_by_hardware_id(HARDWARE_ID)
    assert record.status is DeviceStatus.APPROVED
    assert record.device_id == approved.device_id
    assert record.rejection_reason is None


def test_reject_requires_reason_before_lookup() -> None:
    service, store = _build_service()
    service.register(_payload())

    outcome = service.reject(HARDWARE_ID, "  ")

    assert outcome.kind is ErrorKind.INVALID_INPUT
    assert store.find_by_hardware_id(HARDWARE_ID).status is DeviceStatus.PENDING
    assert service.reject("VM99999999", "").kind is ErrorKind.INVALID_INPUT


def test_reject_unknown_device() -> None:
    service, _ = _build_service()
    assert service.reject("VM99999999", "nope").kind is ErrorKind.NOT_FOUND


def test_provisioner_failure_leaves_record_pending() -> None:
    provisioner = _FailingProvisioner()
    service, store = _build_service(provisioner=provisioner)
    service.register(_payload())

    with pytest.raises(QueueProvisioningError):
        service.approve(HARDWARE_ID)

    assert provisioner.calls == ["device-1"]
    record = store.find_by_hardware_id(HARDWARE_ID)
    assert record.status is DeviceStatus.PENDING
    assert record.device_id is None


def test_empty_endpoint_is_a_provisioning_failure() -> None:
    service, store = _build_service(provisioner=_EmptyEndpointProvisioner())
    service.register(_payload())

    with pytest.raises(QueueProvisioningError):
        service.approve(HARDWARE_ID)
    assert store.find_by_hardware_id(HARDWARE_ID).is_pending


def test_status_reports_approval_that_beat_the_expiry_delete() -> None:
    clock = _Clock()
    store = _ApprovesDuringDeleteStore()
    service, _ = _build_service(store=store, clock=clock)
    service.register(_payload())
    store.service = service
    clock.advance(hours=25)

    outcome = service.get_status(HARDWARE_ID)

    assert store.fired
    assert outcome.ok
    assert outcome.status is DeviceStatus.APPROVED
    assert outcome.device_id == "device-1"
    assert store.find_by_hardware_id(HARDWARE_ID).is_approved


def test_register_reports_approval_that_beat_the_expiry_delete() -> None:
    clock = _Clock()
    store = _ApprovesDuringDeleteStore()
    service, _ = _build_service(store=store, clock=clock)
    service.register(_payload())
    store.service = service
    clock.advance(hours=25)

    outcome = service.register(_payload(ipAddress="10.0.0.9"))

    assert store.fired
    assert outcome.kind is ErrorKind.DUPLICATE_APPROVED
    assert outcome.message == outcomes.DEVICE_ALREADY_APPROVED
    record = store.find_by_hardware_id(HARDWARE_ID)
    assert record.is_approved
    assert record.ip_address == "192.168.1.10"


def test_default_device_id_is_a_fresh_uuid4() -> None:
    store = InMemoryDeviceStore()
    service = RegistrationService(store, InMemoryQueueProvisioner())
    service.register(_payload())
    service.register(_payload("VM00000002"))

    first = service.approve(HARDWARE_ID)
    second = service.approve("VM00000002")

    assert uuid.UUID(first.device_id).version == 4
    assert uuid.UUID(second.device_id).version == 4
    assert first.device_id != second.device_id
    assert first.queue_endpoint == f"memory://queue/vending-machine-{first.device_id}"
    assert store.find_by_hardware_id(HARDWARE_ID).device_id == first.device_id


def test_store_failure_propagates() -> None:
    service, _ = _build_service(store=_BrokenStore())

    with pytest.raises(StoreError):
        service.register(_payload())
    with pytest.raises(StoreError):
        service.get_status(HARDWARE_ID)


def test_list_pending_and_purge_expired() -> None:
    clock = _Clock()
    service, store = _build_service(clock=clock)
    service.register(_payload("VM00000001"))
    clock.advance(hours=12)
    service.register(_payload("VM00000002"))
    service.register(_payload("VM00000003"))
    service.approve("VM00000003")

    assert sorted(r.hardware_id for r in service.list_pending()) == ["VM00000001", "VM00000002"]

    clock.advance(hours=13)
    assert service.purge_expired() == 1
    assert store.find_by_hardware_id("VM00000001") is None
    assert store.find_by_hardware_id("VM00000002") is not None
    assert service.purge_expired() == 0


def test_concurrent_approve_and_reject_have_one_winner() -> None:
    service, store = _build_service()
    service.register(_payload())
    barrier = threading.Barrier(2)
    results = []

    def _approve() -> None:
        barrier.wait()
        results.append(service.approve(HARDWARE_ID))

    def _reject() -> None:
        barrier.wait()
        results.append(service.reject(HARDWARE_ID, "duplicate unit"))

    threads = [threading.Thread(target=_approve), threading.Thread(target=_reject)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    winners = [r for r in results if r.accepted]
    losers = [r for r in results if not r.accepted]
    assert len(winners) == 1
    assert len(losers) == 1
    assert losers[0].kind is ErrorKind.INVALID_STATE_TRANSITION
    record = store.find_by_hardware_id(HARDWARE_ID)
    if record.is_approved:
        assert record.rejection_reason is None
        assert record.device_id is not None
    else:
        assert record.device_id is None
        assert record.queue_endpoint is None


def test_concurrent_registrations_store_one_record() -> None:
    service, store = _build_service()
    barrier = threading.Barrier(4)
    results = []

    def _register() -> None:
        barrier.wait()
        results.append(service.register(_payload()))

    threads = [threading.Thread(target=_register) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sum(1 for r in results if r.accepted) == 1
    assert all(r.kind is ErrorKind.DUPLICATE_PENDING for r in results if not r.accepted)
    assert len(store) == 1
