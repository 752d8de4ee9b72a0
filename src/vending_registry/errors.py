"""Error taxonomy shared by the registration core, its collaborators, and the API."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    DUPLICATE_PENDING = "duplicate_pending"
    DUPLICATE_APPROVED = "duplicate_approved"
    NOT_FOUND = "not_found"
    INVALID_STATE_TRANSITION = "invalid_state_transition"
    REGISTRATION_EXPIRED = "registration_expired"
    COLLABORATOR_FAILURE = "collaborator_failure"


class VendingRegistryError(Exception):
    """Base class for every error raised by this package.

    Concrete subclasses set ``kind``; the base class leaves it unset.
    """

    kind: ErrorKind


class ValidationFailure(VendingRegistryError, ValueError):
    """Raised when a payload violates a field contract."""

    kind = ErrorKind.INVALID_INPUT


class InvalidStateTransition(VendingRegistryError):
    """Raised when a record is asked to leave a terminal state."""

    kind = ErrorKind.INVALID_STATE_TRANSITION


class CollaboratorError(VendingRegistryError):
    """Raised by a device store or queue provisioner when it cannot serve a call."""

    kind = ErrorKind.COLLABORATOR_FAILURE


class StoreError(CollaboratorError):
    pass


class DuplicateKeyError(StoreError):
    """A record with the same hardware id already exists."""


class RecordNotFoundError(StoreError):
    """An update targeted a hardware id that is not stored."""


class StaleRecordError(StoreError):
    """A conditional write found a status other than the expected one."""


class QueueProvisioningError(CollaboratorError):
    pass


__all__ = [
    "CollaboratorError",
    "DuplicateKeyError",
    "ErrorKind",
    "InvalidStateTransition",
    "QueueProvisioningError",
    "RecordNotFoundError",
    "StaleRecordError",
    "StoreError",
    "ValidationFailure",
    "VendingRegistryError",
]
