"""Simulator source adapter built on `xcrun simctl`."""

from __future__ import annotations

import asyncio

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from SimAction.errors import DecodeError, ToolInvocationError, ToolTimeoutError
from SimAction.logger import logger
from SimAction.models import DeviceItem, DeviceSource, DeviceState
from SimAction.platform_utils import CommandResult, CommandRunner, run_cmd_silently

TOOL_NAME = "simctl"


class SimctlDevice(BaseModel):
    """Raw device record from `simctl list devices -j`."""

    state: str
    isAvailable: bool
    name: str
    udid: str
    deviceTypeIdentifier: str | None = None


class SimctlListResult(BaseModel):
    """Top-level payload: runtime key -> device records."""

    devices: dict[str, list[SimctlDevice]]


def parse_runtime_name(runtime_key: str) -> str:
    """
    Derive a display OS label from a simctl runtime key.

    Examples:
        - "com.apple.CoreSimulator.SimRuntime.iOS-17-5" → "iOS 17 5"
        - "com.apple.CoreSimulator.SimRuntime.watchOS-10-0" → "watchOS 10 0"

    The transform is tied to the key format; an unexpected key degrades the
    label instead of failing.
    """
    last = runtime_key.split(".")[-1]
    return last.replace("-", " ")


def parse_simctl_payload(payload: str | bytes) -> list[DeviceItem]:
    """
    Decode `simctl list devices -j` output into simulator entities.

    Args:
        payload: Raw JSON text

    Returns:
        One DeviceItem per raw record (unavailable devices included)

    Raises:
        DecodeError: The payload is not JSON of the expected shape
    """
    try:
        result = SimctlListResult.model_validate_json(payload)
    except PydanticValidationError as e:
        raise DecodeError(f"Unexpected simctl device list payload: {e}") from e

    items: list[DeviceItem] = []
    for runtime_key, devices in result.devices.items():
        os_version = parse_runtime_name(runtime_key)
        for device in devices:
            items.append(
                DeviceItem(
                    id=device.udid,
                    name=device.name,
                    os_version=os_version,
                    state=DeviceState.from_simctl_state(device.state),
                    source=DeviceSource.SIMULATOR,
                )
            )
    return items


class SimctlClient:
    """Runs simctl subcommands through xcrun with a per-call deadline."""

    def __init__(
        self,
        xcrun_path: str = "xcrun",
        timeout: float | None = 30.0,
        runner: CommandRunner = run_cmd_silently,
    ):
        self._xcrun_path = xcrun_path
        self._timeout = timeout
        self._runner = runner

    async def _run(self, args: list[str], input: bytes | None = None) -> CommandResult:
        cmd = [self._xcrun_path, TOOL_NAME, *args]
        try:
            result = await self._runner(cmd, input=input, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise ToolTimeoutError(TOOL_NAME, self._timeout or 0.0) from e
        except OSError as e:
            raise ToolInvocationError(TOOL_NAME, f"could not start {self._xcrun_path}: {e}") from e

        if not result.ok:
            raise ToolInvocationError(
                TOOL_NAME, result.error_text(), returncode=result.returncode
            )
        return result

    async def list_devices(self) -> list[DeviceItem]:
        """List every simulator with its state."""
        result = await self._run(["list", "devices", "-j"])
        items = parse_simctl_payload(result.stdout)
        logger.debug(f"simctl listed {len(items)} simulators")
        return items

    async def open_url(self, udid: str, url: str) -> None:
        await self._run(["openurl", udid, url])

    async def set_clipboard(self, udid: str, text: str) -> None:
        """Write the pasteboard; text goes through stdin to avoid argv escaping."""
        await self._run(["pbcopy", udid], input=text.encode("utf-8"))

    async def get_clipboard(self, udid: str) -> str:
        result = await self._run(["pbpaste", udid])
        return result.stdout_text()

    async def take_screenshot(self, udid: str, path: str) -> None:
        await self._run(["io", udid, "screenshot", path])
