"""
Pydantic schemas for device registration endpoints.

Defines the response envelope and device representations. Registration
payloads are validated by ``vending_registry.domain.validation``.
"""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ...domain.types import DeviceStatus


class SystemInfoOut(BaseModel):
    """Descriptive host information reported at registration."""
    os: str
    version: str
    architecture: str
    memory: str
    storage: str

    model_config = ConfigDict(from_attributes=True)


class DeviceOut(BaseModel):
    """Device record as shown to administrators."""
    hardware_id: str = Field(description="Hardware identifier reported by the unit")
    tenant_id: str = Field(description="Owning tenant UUID")
    ip_address: str = Field(description="Address at registration time")
    system_info: SystemInfoOut
    status: DeviceStatus
    device_id: Optional[str] = Field(None, description="Assigned on approval")
    queue_endpoint: Optional[str] = Field(None, description="Assigned on approval")
    rejection_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "hardwareId": "VM00112345",
                "tenantId": "550e8400-e29b-41d4-a716-446655440000",
                "ipAddress": "192.168.1.10",
                "systemInfo": {
                    "os": "Linux",
                    "version": "5.4",
                    "architecture": "x64",
                    "memory": "8GB",
                    "storage": "256GB",
                },
                "status": "pending",
                "deviceId": None,
                "queueEndpoint": None,
                "rejectionReason": None,
                "createdAt": "2026-01-10T10:00:00Z",
                "updatedAt": "2026-01-10T10:00:00Z",
            }
        },
    )


class RejectRequest(BaseModel):
    """Request body for rejecting a pending device."""
    reason: Optional[str] = Field(None, description="Why the registration was refused (1-500 characters)")


class ApiResponse(BaseModel):
    """Envelope shared by every endpoint."""
    status: str = Field(description="'success' or 'error'")
    message: str
    kind: Optional[str] = Field(None, description="Error kind when status is 'error'")
    data: Optional[Any] = None
