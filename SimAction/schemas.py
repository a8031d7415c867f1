"""Shared Pydantic models for the SimAction API."""

from pydantic import BaseModel, field_validator

from SimAction.config_manager import RefreshPolicy
from SimAction.models import DeviceTab


class DeviceResponse(BaseModel):
    id: str
    name: str
    os_version: str
    state: str  # Booted | Shutdown | Connected | Unavailable
    source: str  # simulator | physicalDevice


class DeviceListResponse(BaseModel):
    tab: DeviceTab
    devices: list[DeviceResponse]


class RefreshResponse(BaseModel):
    success: bool
    devices: list[DeviceResponse]
    simulator_count: int | None = None  # None when the simulator query failed
    physical_count: int
    policy: str
    error: str | None = None


class DeviceSelectionRequest(BaseModel):
    device_ids: list[str]


class OpenURLRequest(DeviceSelectionRequest):
    url: str


class SetClipboardRequest(DeviceSelectionRequest):
    text: str


class ScreenshotRequest(DeviceSelectionRequest):
    output_folder: str | None = None  # Defaults to the saved screenshot path

    @field_validator("output_folder")
    @classmethod
    def validate_output_folder(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v


class ScreenshotPathRequest(BaseModel):
    path: str

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("path cannot be empty")
        return v.strip()


class DeviceOutcomeResponse(BaseModel):
    device_id: str
    device_name: str
    source: str
    status: str  # success | failed | unsupported
    message: str
    path: str | None = None


class DispatchResponse(BaseModel):
    action: str
    aborted: bool
    outcomes: list[DeviceOutcomeResponse]
    logs: list[str]


class ClipboardResponse(DispatchResponse):
    text: str | None = None


class LogResponse(BaseModel):
    capacity: int
    entries: list[str]


class PreferencesResponse(BaseModel):
    recent_urls: list[str]
    last_clipboard_text: str
    screenshot_path: str


class VersionResponse(BaseModel):
    version: str


class ConfigResponse(BaseModel):
    xcrun_path: str
    command_timeout: float
    log_capacity: int
    refresh_policy: str
    parallel_dispatch: bool
    source: str  # Highest-priority layer holding any value
    field_sources: dict[str, str]  # Layer that supplied each field
    config_path: str


class ConfigSaveRequest(BaseModel):
    xcrun_path: str | None = None
    command_timeout: float | None = None
    log_capacity: int | None = None
    refresh_policy: RefreshPolicy | None = None
    parallel_dispatch: bool | None = None
