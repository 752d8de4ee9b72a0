"""Queue provisioner contract and the in-memory implementation."""

from vending_registry.queues.base import QueueProvisioner
from vending_registry.queues.memory import DEFAULT_QUEUE_PREFIX, InMemoryQueueProvisioner, QueuedMessage

__all__ = ["DEFAULT_QUEUE_PREFIX", "InMemoryQueueProvisioner", "QueueProvisioner", "QueuedMessage"]
