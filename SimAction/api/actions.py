"""Action routes: open URL, clipboard, screenshot."""

from fastapi import APIRouter

from SimAction.action_dispatcher import (
    Action,
    ActionDispatcher,
    DispatchResult,
    GetClipboard,
    OpenURL,
    SetClipboard,
    TakeScreenshot,
)
from SimAction.device_manager import DeviceManager
from SimAction.schemas import (
    ClipboardResponse,
    DeviceOutcomeResponse,
    DeviceSelectionRequest,
    DispatchResponse,
    OpenURLRequest,
    ScreenshotRequest,
    SetClipboardRequest,
)

router = APIRouter()


async def _dispatch(action: Action, device_ids: list[str]) -> DispatchResult:
    # Selection is resolved against the snapshot current at dispatch time
    device_set = DeviceManager.get_instance().device_set
    return await ActionDispatcher.get_instance().dispatch(action, device_ids, device_set)


def _to_response(result: DispatchResult) -> dict:
    return {
        "action": result.action,
        "aborted": result.aborted,
        "outcomes": [
            DeviceOutcomeResponse(
                device_id=o.device.id,
                device_name=o.device.name,
                source=o.device.source.value,
                status=o.status.value,
                message=o.message,
                path=o.path,
            )
            for o in result.outcomes
        ],
        "logs": [entry.format() for entry in result.log_entries],
    }


@router.post("/api/actions/open-url", response_model=DispatchResponse)
async def open_url(request: OpenURLRequest) -> DispatchResponse:
    result = await _dispatch(OpenURL(request.url), request.device_ids)
    return DispatchResponse(**_to_response(result))


@router.post("/api/actions/clipboard", response_model=DispatchResponse)
async def set_clipboard(request: SetClipboardRequest) -> DispatchResponse:
    result = await _dispatch(SetClipboard(request.text), request.device_ids)
    return DispatchResponse(**_to_response(result))


@router.post("/api/actions/clipboard/get", response_model=ClipboardResponse)
async def get_clipboard(request: DeviceSelectionRequest) -> ClipboardResponse:
    """Read the pasteboard of the first selected simulator."""
    result = await _dispatch(GetClipboard(), request.device_ids)
    return ClipboardResponse(**_to_response(result), text=result.clipboard_text)


@router.post("/api/actions/screenshot", response_model=DispatchResponse)
async def take_screenshot(request: ScreenshotRequest) -> DispatchResponse:
    result = await _dispatch(TakeScreenshot(request.output_folder), request.device_ids)
    return DispatchResponse(**_to_response(result))
