"""
SQLAlchemy model for the device registration table.

One row per hardware unit, keyed by hardware id, with a unique lookup on the
assigned device id and an index on status for the pending listing.
"""
from sqlalchemy import JSON, TIMESTAMP, Column, Index, String

from .database import Base


class DeviceRow(Base):
    """Persisted device record."""

    __tablename__ = "devices"

    # Columns
    hardware_id = Column(String(64), primary_key=True)
    tenant_id = Column(String(36), nullable=False)
    ip_address = Column(String(45), nullable=False)
    system_info = Column(JSON, nullable=False)
    status = Column(String(16), nullable=False)
    device_id = Column(String(36), nullable=True, unique=True)
    queue_endpoint = Column(String(512), nullable=True)
    rejection_reason = Column(String(500), nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False)

    # Constraints
    __table_args__ = (
        Index("ix_devices_status", "status"),
    )

    def __repr__(self):
        return f"<DeviceRow(hardware_id={self.hardware_id}, status={self.status}, device_id={self.device_id})>"
