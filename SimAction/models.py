"""Unified device model shared by both discovery sources."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator


class DeviceSource(str, Enum):
    """Which xcrun tool discovered the device."""

    SIMULATOR = "simulator"
    PHYSICAL_DEVICE = "physicalDevice"


class DeviceState(str, Enum):
    """Device availability state."""

    BOOTED = "Booted"
    SHUTDOWN = "Shutdown"
    CONNECTED = "Connected"  # Physical devices listed by xctrace
    UNAVAILABLE = "Unavailable"

    @classmethod
    def from_simctl_state(cls, raw: str) -> DeviceState:
        """Map a simctl state string; anything unknown is Unavailable."""
        lowered = raw.lower()
        if lowered == "booted":
            return cls.BOOTED
        if lowered == "shutdown":
            return cls.SHUTDOWN
        return cls.UNAVAILABLE


class DeviceTab(str, Enum):
    """Source filter applied by the sorted device view."""

    ALL = "All"
    SIMULATORS = "Simulators"
    DEVICES = "Devices"


@dataclass(frozen=True)
class DeviceItem:
    """One discoverable target, simulator or physical."""

    id: str  # UDID, unique only within its source
    name: str
    os_version: str
    state: DeviceState
    source: DeviceSource

    @property
    def is_active(self) -> bool:
        """Booted simulators and connected physical devices sort first."""
        return self.state in (DeviceState.BOOTED, DeviceState.CONNECTED)

    @property
    def is_simulator(self) -> bool:
        return self.source == DeviceSource.SIMULATOR

    @property
    def key(self) -> tuple[DeviceSource, str]:
        """Compound identity; the bare id may repeat across sources."""
        return (self.source, self.id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "os_version": self.os_version,
            "state": self.state.value,
            "source": self.source.value,
        }


@dataclass(frozen=True)
class DeviceSet:
    """Immutable refresh snapshot. Replaced wholesale, never edited."""

    devices: tuple[DeviceItem, ...] = ()

    @classmethod
    def empty(cls) -> DeviceSet:
        return cls(())

    def __iter__(self) -> Iterator[DeviceItem]:
        return iter(self.devices)

    def __len__(self) -> int:
        return len(self.devices)
