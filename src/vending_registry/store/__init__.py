"""Device store contract and its in-memory and SQLAlchemy implementations."""

from vending_registry.store.base import DeviceStore
from vending_registry.store.memory import InMemoryDeviceStore
from vending_registry.store.sql import SqlDeviceStore

__all__ = ["DeviceStore", "InMemoryDeviceStore", "SqlDeviceStore"]
