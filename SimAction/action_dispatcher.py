"""Fan user actions out across a device selection, one outcome per device."""

from __future__ import annotations

import asyncio
import re
import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, ClassVar, Iterable, Optional, Union
from urllib.parse import urlsplit

from SimAction.audit_log import AuditEntry, AuditLog
from SimAction.device_manager import sort_and_filter
from SimAction.errors import ValidationError
from SimAction.logger import logger
from SimAction.models import DeviceItem, DeviceSet, DeviceTab
from SimAction.preferences import PreferencesStore
from SimAction.simctl import SimctlClient

_URL_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")


# ==================== Actions ====================


@dataclass(frozen=True)
class OpenURL:
    name: ClassVar[str] = "open_url"
    url: str


@dataclass(frozen=True)
class SetClipboard:
    name: ClassVar[str] = "set_clipboard"
    text: str


@dataclass(frozen=True)
class GetClipboard:
    name: ClassVar[str] = "get_clipboard"


@dataclass(frozen=True)
class TakeScreenshot:
    name: ClassVar[str] = "take_screenshot"
    output_folder: Optional[Union[str, Path]] = None  # None: screenshot preference


Action = Union[OpenURL, SetClipboard, GetClipboard, TakeScreenshot]


# ==================== Outcomes ====================


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    UNSUPPORTED = "unsupported"  # Action not available for the device's source


@dataclass(frozen=True)
class DeviceOutcome:
    device: DeviceItem
    status: OutcomeStatus
    message: str
    path: Optional[str] = None  # Screenshot file, when one was written


@dataclass
class DispatchResult:
    action: str
    outcomes: list[DeviceOutcome] = field(default_factory=list)
    log_entries: list[AuditEntry] = field(default_factory=list)
    clipboard_text: Optional[str] = None
    aborted: bool = False  # Input validation failed before any device was touched


# ==================== Helpers ====================


def is_valid_url(url: str) -> bool:
    """True if `url` carries a recognizable scheme and no whitespace."""
    if not url or any(ch.isspace() for ch in url):
        return False
    scheme = urlsplit(url).scheme
    return bool(scheme) and bool(_URL_SCHEME.match(scheme))


def require_valid_url(url: str) -> str:
    if not is_valid_url(url):
        raise ValidationError(f"Invalid URL: {url}")
    return url


def sanitize_filename_component(value: str) -> str:
    """Strip slashes, colons and commas; turn spaces into underscores."""
    for ch in ("/", ":", ","):
        value = value.replace(ch, "")
    return value.replace(" ", "_")


def build_screenshot_filename(device: DeviceItem, now: datetime | None = None) -> str:
    """
    Filesystem-safe screenshot name.

    Examples:
        - iPhone 15 / iOS 17 5 at 2026-10-18 14:30:15
          → "SimAction_iPhone_15_iOS_17_5_101826_143015.png"
    """
    now = now or datetime.now()
    timestamp = sanitize_filename_component(now.strftime("%m/%d/%y, %H:%M:%S"))
    name = sanitize_filename_component(device.name)
    os_version = sanitize_filename_component(device.os_version)
    return f"SimAction_{name}_{os_version}_{timestamp}.png"


def resolve_selection(selection: Iterable[str], device_set: DeviceSet) -> list[DeviceItem]:
    """
    Resolve selected ids against the current snapshot.

    Devices are returned in the sorted view order, so single-pick actions are
    deterministic. Ids missing from the snapshot are skipped.
    """
    selected = set(selection)
    return [d for d in sort_and_filter(device_set, DeviceTab.ALL) if d.id in selected]


# ==================== Dispatcher ====================


class ActionDispatcher:
    """Runs one action per selected device and records every outcome."""

    _instance: Optional[ActionDispatcher] = None
    _lock = threading.Lock()

    def __init__(
        self,
        simctl: SimctlClient,
        audit_log: AuditLog,
        preferences: PreferencesStore | None = None,
        parallel: bool = False,
    ):
        self._simctl = simctl
        self._audit_log = audit_log
        self._preferences = preferences
        self._parallel = parallel
        self._stats: Counter[tuple[str, str]] = Counter()

    @classmethod
    def get_instance(cls) -> ActionDispatcher:
        """Get singleton instance sharing the DeviceManager's tools and log."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    from SimAction.config_manager import config_manager
                    from SimAction.device_manager import DeviceManager

                    device_manager = DeviceManager.get_instance()
                    cls._instance = cls(
                        simctl=device_manager.simctl,
                        audit_log=device_manager.audit_log,
                        preferences=PreferencesStore.get_instance(),
                        parallel=config_manager.get_effective_config().parallel_dispatch,
                    )
                    logger.info("ActionDispatcher singleton created")
        return cls._instance

    @property
    def stats(self) -> dict[tuple[str, str], int]:
        """Outcome counts keyed by (action name, outcome status)."""
        return dict(self._stats)

    async def dispatch(
        self,
        action: Action,
        selection: Iterable[str],
        device_set: DeviceSet,
    ) -> DispatchResult:
        """
        Apply `action` to every selected device present in `device_set`.

        Per-device failures are captured as outcomes and never raised.

        Returns:
            DispatchResult with outcomes and the audit entries written
        """
        result = DispatchResult(action=action.name)
        devices = resolve_selection(selection, device_set)
        logger.info(f"Dispatching {action.name} to {len(devices)} device(s)")

        if isinstance(action, OpenURL):
            try:
                require_valid_url(action.url)
            except ValidationError as e:
                result.aborted = True
                self._log(result, str(e))
                return result
            if self._preferences is not None:
                self._preferences.add_recent_url(action.url)
            await self._run_each(result, devices, lambda d: self._open_url(d, action.url))

        elif isinstance(action, SetClipboard):
            if self._preferences is not None:
                self._preferences.set_last_clipboard_text(action.text)
            await self._run_each(result, devices, lambda d: self._set_clipboard(d, action.text))

        elif isinstance(action, GetClipboard):
            await self._get_clipboard(result, devices)

        elif isinstance(action, TakeScreenshot):
            folder = self._screenshot_folder(action.output_folder)
            await self._run_each(result, devices, lambda d: self._take_screenshot(d, folder))

        else:
            raise TypeError(f"Unknown action: {action!r}")

        return result

    # ==================== Internals ====================

    def _log(self, result: DispatchResult, message: str) -> None:
        result.log_entries.append(self._audit_log.append(message))

    def _record(self, result: DispatchResult, outcome: DeviceOutcome) -> None:
        self._stats[(result.action, outcome.status.value)] += 1
        self._log(result, outcome.message)

    async def _run_each(
        self,
        result: DispatchResult,
        devices: list[DeviceItem],
        handler: Callable[[DeviceItem], Awaitable[DeviceOutcome]],
    ) -> None:
        if self._parallel:

            async def run_one(device: DeviceItem) -> DeviceOutcome:
                outcome = await handler(device)
                self._record(result, outcome)
                return outcome

            result.outcomes.extend(await asyncio.gather(*(run_one(d) for d in devices)))
            return

        for device in devices:
            outcome = await handler(device)
            self._record(result, outcome)
            result.outcomes.append(outcome)

    async def _guard(
        self,
        device: DeviceItem,
        call: Awaitable[None],
        success_message: str,
        failure_prefix: str,
        path: Optional[str] = None,
    ) -> DeviceOutcome:
        try:
            await call
        except Exception as e:
            logger.warning(f"{failure_prefix} ({device.id}): {e}")
            return DeviceOutcome(device, OutcomeStatus.FAILED, f"{failure_prefix}: {e}")
        return DeviceOutcome(device, OutcomeStatus.SUCCESS, success_message, path=path)

    async def _open_url(self, device: DeviceItem, url: str) -> DeviceOutcome:
        if not device.is_simulator:
            return DeviceOutcome(
                device,
                OutcomeStatus.UNSUPPORTED,
                f"URL opening not supported on physical device: {device.name}",
            )
        return await self._guard(
            device,
            self._simctl.open_url(device.id, url),
            f"Success: Opened URL on {device.name}",
            f"Failed to open URL on {device.name}",
        )

    async def _set_clipboard(self, device: DeviceItem, text: str) -> DeviceOutcome:
        if not device.is_simulator:
            return DeviceOutcome(
                device,
                OutcomeStatus.UNSUPPORTED,
                f"Clipboard not supported on physical device: {device.name}",
            )
        return await self._guard(
            device,
            self._simctl.set_clipboard(device.id, text),
            f"Set clipboard on {device.name}",
            f"Failed clipboard on {device.name}",
        )

    async def _get_clipboard(self, result: DispatchResult, devices: list[DeviceItem]) -> None:
        device = next((d for d in devices if d.is_simulator), None)
        if device is None:
            self._log(result, "No simulator selected for Get Clipboard")
            return

        try:
            text = await self._simctl.get_clipboard(device.id)
        except Exception as e:
            logger.warning(f"Failed get clipboard ({device.id}): {e}")
            outcome = DeviceOutcome(
                device, OutcomeStatus.FAILED, f"Failed get clipboard from {device.name}: {e}"
            )
        else:
            result.clipboard_text = text
            outcome = DeviceOutcome(
                device, OutcomeStatus.SUCCESS, f"Got clipboard from {device.name}"
            )

        self._record(result, outcome)
        result.outcomes.append(outcome)

    def _screenshot_folder(self, output_folder: Optional[Union[str, Path]]) -> Path:
        if output_folder is not None:
            return Path(output_folder)
        if self._preferences is not None:
            return Path(self._preferences.screenshot_path)
        return Path.home()

    async def _take_screenshot(self, device: DeviceItem, folder: Path) -> DeviceOutcome:
        if not device.is_simulator:
            return DeviceOutcome(
                device,
                OutcomeStatus.UNSUPPORTED,
                f"Screenshot not supported on physical device: {device.name}",
            )
        filename = build_screenshot_filename(device)
        path = str(folder / filename)
        return await self._guard(
            device,
            self._simctl.take_screenshot(device.id, path),
            f"Screenshot saved for {device.name}: {filename}",
            f"Failed screenshot {device.name}",
            path=path,
        )
