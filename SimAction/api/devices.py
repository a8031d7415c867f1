"""Device discovery routes."""

from fastapi import APIRouter

from SimAction.device_manager import DeviceManager
from SimAction.models import DeviceItem, DeviceTab
from SimAction.schemas import DeviceListResponse, DeviceResponse, RefreshResponse

router = APIRouter()


def _to_response(device: DeviceItem) -> DeviceResponse:
    return DeviceResponse(**device.to_dict())


@router.get("/api/devices", response_model=DeviceListResponse)
def list_devices(tab: DeviceTab = DeviceTab.ALL) -> DeviceListResponse:
    """Sorted, source-filtered view of the current snapshot (no refresh)."""
    devices = DeviceManager.get_instance().get_devices(tab)
    return DeviceListResponse(tab=tab, devices=[_to_response(d) for d in devices])


@router.post("/api/devices/refresh", response_model=RefreshResponse)
async def refresh_devices() -> RefreshResponse:
    """Query simctl and xctrace, then publish a new snapshot."""
    manager = DeviceManager.get_instance()
    result = await manager.refresh()

    return RefreshResponse(
        success=result.ok,
        devices=[_to_response(d) for d in manager.get_devices(DeviceTab.ALL)],
        simulator_count=len(result.simulators) if result.simulators is not None else None,
        physical_count=len(result.physical_devices),
        policy=result.policy.value,
        error=str(result.error) if result.error else None,
    )
