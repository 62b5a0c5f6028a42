from uuid import UUID

from fastapi import APIRouter

from sessionguard.core.modules.device.models import DeviceView
from sessionguard.web.deps import AppDep, IdentityDep
from sessionguard.web.openapi import ErrorResponse

router = APIRouter(tags=["devices"])


@router.get(
    "/devices",
    summary="List devices",
    description="Devices the current user has signed in from, most recently seen first.",
    operation_id="listDevices",
    responses={
        200: {"description": "Registered devices"},
        401: {"model": ErrorResponse, "description": "No identity from the gateway"},
    },
)
async def list_devices(app: AppDep, identity: IdentityDep) -> list[DeviceView]:
    return await app.get_devices(identity)


@router.delete(
    "/devices/{device_id}",
    summary="Remove device",
    description="Remove a device of the current user. Active sessions on it end with reason 'device_removed'.",
    operation_id="removeDevice",
    status_code=204,
    responses={
        204: {"description": "Device removed"},
        401: {"model": ErrorResponse, "description": "No identity from the gateway"},
        404: {"model": ErrorResponse, "description": "Device not found"},
    },
)
async def remove_device(device_id: UUID, app: AppDep, identity: IdentityDep) -> None:
    await app.remove_device(identity, device_id)
