"""In-memory queue provisioner for development and tests."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List

from vending_registry.errors import QueueProvisioningError

LOGGER = logging.getLogger(__name__)

DEFAULT_QUEUE_PREFIX = "vending-machine-"


@dataclass(frozen=True)
class QueuedMessage:
    message_id: str
    body: Any
    sent_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class InMemoryQueueProvisioner:
    """Hands out ``memory://queue/<prefix><device_id>`` endpoints backed by lists."""

    def __init__(self, prefix: str = DEFAULT_QUEUE_PREFIX) -> None:
        self._prefix = prefix
        self._queues: Dict[str, List[QueuedMessage]] = {}
        self._endpoints: Dict[str, str] = {}
        self._lock = threading.Lock()

    def create_queue(self, device_id: str) -> str:
        if not device_id:
            raise QueueProvisioningError("A device id is required to provision a queue")
        with self._lock:
            endpoint = self._endpoints.get(device_id)
            if endpoint is None:
                endpoint = f"memory://queue/{self._prefix}{device_id}"
                self._endpoints[device_id] = endpoint
                self._queues[endpoint] = []
                LOGGER.info("Provisioned queue %s", endpoint)
        return endpoint

    def send_message(self, endpoint: str, body: Any) -> str:
        with self._lock:
            queue = self._queues.get(endpoint)
            if queue is None:
                raise QueueProvisioningError(f"Queue {endpoint} does not exist")
            message = QueuedMessage(message_id=uuid.uuid4().hex, body=body)
            queue.append(message)
        return message.message_id

    def receive_messages(self, endpoint: str, *, max_messages: int = 10) -> List[QueuedMessage]:
        """Pop up to ``max_messages`` messages in arrival order."""

        with self._lock:
            queue = self._queues.get(endpoint)
            if queue is None:
                raise QueueProvisioningError(f"Queue {endpoint} does not exist")
            taken = queue[:max_messages]
            del queue[:max_messages]
        return taken

    def delete_queue(self, endpoint: str) -> None:
        with self._lock:
            self._queues.pop(endpoint, None)
            for device_id, known in list(self._endpoints.items()):
                if known == endpoint:
                    del self._endpoints[device_id]

    @property
    def queue_count(self) -> int:
        with self._lock:
            return len(self._queues)


__all__ = ["DEFAULT_QUEUE_PREFIX", "InMemoryQueueProvisioner", "QueuedMessage"]
