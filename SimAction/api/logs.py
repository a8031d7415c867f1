"""Audit log and preference routes."""

from fastapi import APIRouter

from SimAction.device_manager import DeviceManager
from SimAction.preferences import PreferencesStore
from SimAction.schemas import LogResponse, PreferencesResponse, ScreenshotPathRequest

router = APIRouter()


@router.get("/api/logs", response_model=LogResponse)
def get_logs() -> LogResponse:
    """Session audit entries, oldest first."""
    audit_log = DeviceManager.get_instance().audit_log
    return LogResponse(capacity=audit_log.capacity, entries=audit_log.lines())


@router.get("/api/preferences", response_model=PreferencesResponse)
def get_preferences() -> PreferencesResponse:
    return PreferencesResponse(**PreferencesStore.get_instance().to_dict())


@router.put("/api/preferences/screenshot-path", response_model=PreferencesResponse)
def set_screenshot_path(request: ScreenshotPathRequest) -> PreferencesResponse:
    """Remember the folder screenshots are written to when none is given."""
    preferences = PreferencesStore.get_instance()
    preferences.set_screenshot_path(request.path)
    return PreferencesResponse(**preferences.to_dict())
