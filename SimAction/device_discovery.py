"""Physical device source adapter built on `xcrun xctrace list devices`."""

from __future__ import annotations

import asyncio
import re

from SimAction.logger import logger
from SimAction.models import DeviceItem, DeviceSource, DeviceState
from SimAction.platform_utils import CommandRunner, run_cmd_silently

# "<name> (<os version>) (<identifier>)"; the name may itself contain parens
_DEVICE_LINE = re.compile(r"^(.*) \((.+?)\) \(([A-Fa-f0-9-]{10,})\)$")

# Canonical simulator UUID shape: 8-4-4-4-12
_SIMULATOR_UDID_LENGTH = 36
_SIMULATOR_UDID_GROUPS = 5


def is_simulator_udid(udid: str) -> bool:
    """
    Classify an xctrace identifier as a simulator UUID.

    xctrace lists simulators and physical devices together. Simulators use
    random UUIDs (36 chars, 5 dash groups); physical devices use either
    25-char "0000XXXX-XXXXXXXXXXXXXXXX" or legacy 40-char hex UDIDs.

    Examples:
        - "A1B2C3D4-E5F6-7890-ABCD-EF1234567890" → True
        - "00008120-001234567890ABCD" → False
        - "0123456789abcdef0123456789abcdef01234567" → False

    Identifiers matching only one half of the shape are logged, since they
    mean the shape assumption no longer holds for some vendor or tool version.
    """
    length_matches = len(udid) == _SIMULATOR_UDID_LENGTH
    groups_match = len(udid.split("-")) == _SIMULATOR_UDID_GROUPS

    if length_matches != groups_match:
        logger.warning(
            f"Identifier {udid} partially matches the simulator UUID shape "
            f"(length={len(udid)}, groups={len(udid.split('-'))}); treating as physical"
        )

    return length_matches and groups_match


def parse_xctrace_output(output: str) -> list[DeviceItem]:
    """
    Parse `xctrace list devices` text into physical device entities.

    Section headers ("== Devices ==") and lines without the
    "<name> (<os>) (<udid>)" shape are skipped. Simulators are dropped.

    Args:
        output: Raw stdout of xctrace

    Returns:
        Physical devices, all in the Connected state
    """
    items: list[DeviceItem] = []

    for line in output.splitlines():
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("=="):
            continue

        match = _DEVICE_LINE.match(trimmed)
        if not match:
            continue

        name, os_version, udid = match.groups()
        if is_simulator_udid(udid):
            continue

        items.append(
            DeviceItem(
                id=udid,
                name=name,
                os_version=os_version,
                state=DeviceState.CONNECTED,  # xctrace reports no finer state
                source=DeviceSource.PHYSICAL_DEVICE,
            )
        )

    return items


class PhysicalDeviceClient:
    """Lists physical devices. Never raises: any failure means no devices."""

    def __init__(
        self,
        xcrun_path: str = "xcrun",
        timeout: float | None = 30.0,
        runner: CommandRunner = run_cmd_silently,
    ):
        self._xcrun_path = xcrun_path
        self._timeout = timeout
        self._runner = runner

    async def list_devices(self) -> list[DeviceItem]:
        cmd = [self._xcrun_path, "xctrace", "list", "devices"]
        try:
            result = await self._runner(cmd, timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning(f"xctrace timed out after {self._timeout}s, assuming no devices")
            return []
        except OSError as e:
            logger.warning(f"Could not run xctrace: {e}")
            return []

        if not result.ok:
            logger.debug(f"xctrace exited with {result.returncode}: {result.error_text()}")
            return []

        items = parse_xctrace_output(result.stdout_text())
        logger.debug(f"xctrace listed {len(items)} physical devices")
        return items
