"""Queue provisioner contract consumed by the registration service."""

from __future__ import annotations

from typing import Protocol


class QueueProvisioner(Protocol):
    def create_queue(self, device_id: str) -> str:
        """Provision a messaging endpoint for ``device_id`` and return its handle.

        Calling again with the same ``device_id`` returns the same handle.
        Failures raise ``QueueProvisioningError``.
        """
        ...


__all__ = ["QueueProvisioner"]
