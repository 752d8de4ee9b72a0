"""
Devices API router.

Public endpoints for devices (register, status) and admin endpoints for
reviewing registrations (pending, approve, reject, purge-expired).
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, status
from fastapi.responses import JSONResponse

from ...errors import ErrorKind
from ...service.outcomes import RegistrationOutcome
from ...service.registration import RegistrationService
from ..dependencies import get_registration_service, require_admin
from ..schemas.device import ApiResponse, DeviceOut, RejectRequest


router = APIRouter(tags=["devices"])

_STATUS_BY_KIND = {
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.DUPLICATE_PENDING: status.HTTP_409_CONFLICT,
    ErrorKind.DUPLICATE_APPROVED: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_STATE_TRANSITION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.REGISTRATION_EXPIRED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.COLLABORATOR_FAILURE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def envelope(status_code: int, message: str, *, data: Any = None, kind: Optional[ErrorKind] = None) -> JSONResponse:
    content: Dict[str, Any] = {
        "status": "error" if kind is not None or status_code >= 400 else "success",
        "message": message,
    }
    if kind is not None:
        content["kind"] = kind.value
    if data is not None:
        content["data"] = data
    return JSONResponse(status_code=status_code, content=content)


def _outcome_response(outcome: RegistrationOutcome, success_code: int, data: Optional[Dict[str, Any]] = None) -> JSONResponse:
    if outcome.accepted:
        return envelope(success_code, outcome.message, data=data)
    return envelope(_STATUS_BY_KIND[outcome.kind], outcome.message, kind=outcome.kind)


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=ApiResponse)
def register_device(
    payload: Any = Body(None),
    service: RegistrationService = Depends(get_registration_service),
):
    """
    Submit a registration request for a hardware unit.

    - **201**: pending record created
    - **400**: payload failed validation
    - **409**: hardware id already pending or approved
    """
    return _outcome_response(service.register(payload), status.HTTP_201_CREATED)


@router.get("/status/{hardware_id}", response_model=ApiResponse)
def get_device_status(
    hardware_id: str,
    service: RegistrationService = Depends(get_registration_service),
):
    """
    Report the registration status of a hardware unit.

    Approved devices also receive their **deviceId** and **queueEndpoint**.
    An expired pending registration is removed and reported as 400 with
    kind ``registration_expired``.
    """
    outcome = service.get_status(hardware_id)
    if not outcome.ok:
        return envelope(_STATUS_BY_KIND[outcome.kind], outcome.message, kind=outcome.kind)
    return envelope(status.HTTP_200_OK, outcome.message, data=outcome.to_data())


@router.get("/pending", response_model=ApiResponse)
def list_pending_devices(
    service: RegistrationService = Depends(get_registration_service),
    _admin: Dict[str, Any] = Depends(require_admin),
):
    """List every device awaiting review (admin only)."""
    devices = [
        DeviceOut.model_validate(record.to_dict()).model_dump(by_alias=True, mode="json")
        for record in service.list_pending()
    ]
    return envelope(status.HTTP_200_OK, "Pending devices retrieved successfully", data={"devices": devices})


@router.post("/purge-expired", response_model=ApiResponse)
def purge_expired_devices(
    service: RegistrationService = Depends(get_registration_service),
    _admin: Dict[str, Any] = Depends(require_admin),
):
    """Delete pending registrations older than the expiry window (admin only)."""
    removed = service.purge_expired()
    return envelope(status.HTTP_200_OK, f"Removed {removed} expired registrations", data={"removed": removed})


@router.put("/{hardware_id}/approve", response_model=ApiResponse)
def approve_device(
    hardware_id: str,
    service: RegistrationService = Depends(get_registration_service),
    _admin: Dict[str, Any] = Depends(require_admin),
):
    """Approve a pending device and provision its queue (admin only)."""
    outcome = service.approve(hardware_id)
    data = {"deviceId": outcome.device_id, "queueEndpoint": outcome.queue_endpoint} if outcome.accepted else None
    return _outcome_response(outcome, status.HTTP_200_OK, data)


@router.put("/{hardware_id}/reject", response_model=ApiResponse)
def reject_device(
    hardware_id: str,
    payload: RejectRequest,
    service: RegistrationService = Depends(get_registration_service),
    _admin: Dict[str, Any] = Depends(require_admin),
):
    """Reject a pending device with a reason (admin only)."""
    return _outcome_response(service.reject(hardware_id, payload.reason), status.HTTP_200_OK)
