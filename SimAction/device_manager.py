"""Global device manager: concurrent discovery, snapshot caching, sorted views."""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, field
from typing import Optional

from SimAction.audit_log import AuditLog
from SimAction.config_manager import RefreshPolicy
from SimAction.device_discovery import PhysicalDeviceClient
from SimAction.errors import SimActionError
from SimAction.logger import logger
from SimAction.models import DeviceItem, DeviceSet, DeviceSource, DeviceTab
from SimAction.simctl import SimctlClient


def sort_and_filter(device_set: DeviceSet, tab: DeviceTab = DeviceTab.ALL) -> list[DeviceItem]:
    """
    Ordered view of a snapshot.

    Booted/connected devices come first, then the rest; each partition is
    ordered by name. The tab restricts by source only.
    """
    ordered = sorted(device_set, key=lambda d: (not d.is_active, d.name))

    if tab == DeviceTab.SIMULATORS:
        return [d for d in ordered if d.source == DeviceSource.SIMULATOR]
    if tab == DeviceTab.DEVICES:
        return [d for d in ordered if d.source == DeviceSource.PHYSICAL_DEVICE]
    return ordered


@dataclass(frozen=True)
class RefreshResult:
    """Outcome of one refresh, with each source reported separately."""

    device_set: DeviceSet  # What was published
    simulators: Optional[list[DeviceItem]]  # None when the simulator query failed
    simulator_error: Optional[SimActionError]
    physical_devices: list[DeviceItem] = field(default_factory=list)
    policy: RefreshPolicy = RefreshPolicy.FAIL_FAST

    @property
    def error(self) -> Optional[SimActionError]:
        return self.simulator_error

    @property
    def ok(self) -> bool:
        return self.simulator_error is None


class DeviceManager:
    """Singleton owning the current DeviceSet snapshot.

    Features:
    - Both sources queried concurrently on each refresh
    - Snapshot replaced by a single assignment (no torn reads)
    - Selectable policy for a failed simulator query
    - Refresh outcomes recorded in the shared audit log
    """

    _instance: Optional[DeviceManager] = None
    _lock = threading.Lock()

    def __init__(
        self,
        simctl: SimctlClient,
        physical: PhysicalDeviceClient,
        audit_log: AuditLog | None = None,
        refresh_policy: RefreshPolicy = RefreshPolicy.FAIL_FAST,
    ):
        self._simctl = simctl
        self._physical = physical
        self._audit_log = audit_log if audit_log is not None else AuditLog()
        self._refresh_policy = refresh_policy

        self._device_set = DeviceSet.empty()
        self._last_refresh: Optional[RefreshResult] = None
        self._refreshes_in_flight = 0

    @classmethod
    def get_instance(cls) -> DeviceManager:
        """Get singleton instance built from the effective configuration."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    from SimAction.config_manager import config_manager

                    config = config_manager.get_effective_config()
                    cls._instance = cls(
                        simctl=SimctlClient(
                            xcrun_path=config.xcrun_path,
                            timeout=config.command_timeout,
                        ),
                        physical=PhysicalDeviceClient(
                            xcrun_path=config.xcrun_path,
                            timeout=config.command_timeout,
                        ),
                        audit_log=AuditLog(capacity=config.log_capacity),
                        refresh_policy=config.refresh_policy,
                    )
                    logger.info("DeviceManager singleton created")
        return cls._instance

    @property
    def simctl(self) -> SimctlClient:
        return self._simctl

    @property
    def audit_log(self) -> AuditLog:
        return self._audit_log

    @property
    def device_set(self) -> DeviceSet:
        return self._device_set

    @property
    def last_refresh(self) -> Optional[RefreshResult]:
        return self._last_refresh

    def get_devices(self, tab: DeviceTab = DeviceTab.ALL) -> list[DeviceItem]:
        return sort_and_filter(self._device_set, tab)

    async def _list_simulators(
        self,
    ) -> tuple[Optional[list[DeviceItem]], Optional[SimActionError]]:
        try:
            return await self._simctl.list_devices(), None
        except SimActionError as e:
            return None, e

    async def refresh(self, policy: RefreshPolicy | None = None) -> RefreshResult:
        """
        Query both sources concurrently and publish a new snapshot.

        Args:
            policy: Override the configured policy for this call

        Returns:
            RefreshResult with the published set and per-source results
        """
        policy = policy or self._refresh_policy

        if self._refreshes_in_flight:
            logger.warning("Refresh requested while another refresh is in flight")
        self._refreshes_in_flight += 1

        try:
            (simulators, simulator_error), physical = await asyncio.gather(
                self._list_simulators(),
                self._physical.list_devices(),
            )
        finally:
            self._refreshes_in_flight -= 1

        if simulator_error is None:
            new_set = DeviceSet(tuple(physical) + tuple(simulators or ()))
            self._audit_log.append(f"Refreshed devices. Found {len(new_set)} total.")
            logger.info(
                f"Device refresh: {len(simulators or ())} simulators, "
                f"{len(physical)} physical devices"
            )
        elif policy == RefreshPolicy.BEST_EFFORT:
            new_set = DeviceSet(tuple(physical))
            self._audit_log.append(
                f"Error: {simulator_error}. Showing {len(new_set)} physical devices."
            )
            logger.warning(f"Simulator query failed, keeping physical devices: {simulator_error}")
        else:
            new_set = DeviceSet.empty()
            self._audit_log.append(f"Error: {simulator_error}")
            logger.error(f"Device refresh failed: {simulator_error}")

        self._device_set = new_set

        result = RefreshResult(
            device_set=new_set,
            simulators=simulators,
            simulator_error=simulator_error,
            physical_devices=list(physical),
            policy=policy,
        )
        self._last_refresh = result
        return result
