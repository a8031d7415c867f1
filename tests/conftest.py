"""Shared fixtures: a scripted command runner and canned xcrun output."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Sequence

import pytest

from SimAction.audit_log import AuditLog
from SimAction.models import DeviceItem, DeviceSource, DeviceState
from SimAction.platform_utils import CommandResult
from SimAction.preferences import PreferencesStore

SIM_UDID_A = "A1B2C3D4-E5F6-7890-ABCD-EF1234567890"
SIM_UDID_B = "11111111-2222-3333-4444-555555555555"
SIM_UDID_C = "99999999-8888-7777-6666-555555555555"
PHYSICAL_UDID = "00008120-001234567890ABCD"
LEGACY_UDID = "0123456789abcdef0123456789abcdef01234567"

ENV_KEYS = [
    "SIMACTION_XCRUN_PATH",
    "SIMACTION_COMMAND_TIMEOUT",
    "SIMACTION_LOG_CAPACITY",
    "SIMACTION_REFRESH_POLICY",
    "SIMACTION_PARALLEL_DISPATCH",
]

SIMCTL_PAYLOAD = json.dumps(
    {
        "devices": {
            "com.apple.CoreSimulator.SimRuntime.iOS-17-5": [
                {
                    "state": "Booted",
                    "isAvailable": True,
                    "name": "iPhone 15",
                    "udid": SIM_UDID_A,
                    "deviceTypeIdentifier": "com.apple.CoreSimulator.SimDeviceType.iPhone-15",
                },
                {
                    "state": "Shutdown",
                    "isAvailable": True,
                    "name": "iPad Air",
                    "udid": SIM_UDID_B,
                },
            ],
            "com.apple.CoreSimulator.SimRuntime.watchOS-10-5": [
                {
                    "state": "Creating",
                    "isAvailable": False,
                    "name": "Apple Watch Series 9",
                    "udid": SIM_UDID_C,
                },
            ],
        }
    }
)

XCTRACE_OUTPUT = f"""== Devices ==
Jane's MacBook Pro (ABCDEF12-3456-7890-ABCD-EF1234567890)
Phone-A (17.5) (00008120-001234567890ABCD)
Old iPad (12.5.7) ({LEGACY_UDID})

== Simulators ==
iPhone 15 Simulator (17.5) ({SIM_UDID_A})
iPad Air Simulator (17.5) ({SIM_UDID_B})
"""


@dataclass
class Call:
    cmd: list[str]
    input: bytes | None
    timeout: float | None


class FakeRunner:
    """
    Scripted stand-in for run_cmd_silently.

    Responses are keyed by a prefix of the arguments after the executable,
    e.g. ("simctl", "openurl", SIM_UDID_A). The longest matching prefix wins;
    unmatched commands succeed with empty output.
    """

    def __init__(self):
        self.calls: list[Call] = []
        self._responses: dict[tuple[str, ...], CommandResult | BaseException] = {}

    def respond(self, *prefix: str, stdout: str = "", stderr: str = "", returncode: int = 0) -> None:
        self._responses[prefix] = CommandResult(
            returncode=returncode,
            stdout=stdout.encode("utf-8"),
            stderr=stderr.encode("utf-8"),
        )

    def raise_error(self, *prefix: str, error: BaseException) -> None:
        self._responses[prefix] = error

    def calls_for(self, *prefix: str) -> list[Call]:
        return [c for c in self.calls if tuple(c.cmd[1 : 1 + len(prefix)]) == prefix]

    async def __call__(
        self,
        cmd: Sequence[str],
        *,
        input: bytes | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        self.calls.append(Call(cmd=list(cmd), input=input, timeout=timeout))
        await asyncio.sleep(0)

        args = tuple(cmd[1:])
        matches = [p for p in self._responses if args[: len(p)] == p]
        if not matches:
            return CommandResult(returncode=0)

        response = self._responses[max(matches, key=len)]
        if isinstance(response, BaseException):
            raise response
        return response


def make_device(
    name: str,
    udid: str,
    source: DeviceSource = DeviceSource.SIMULATOR,
    state: DeviceState | None = None,
    os_version: str = "iOS 17 5",
) -> DeviceItem:
    if state is None:
        state = DeviceState.BOOTED if source == DeviceSource.SIMULATOR else DeviceState.CONNECTED
    return DeviceItem(id=udid, name=name, os_version=os_version, state=state, source=source)


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def audit_log() -> AuditLog:
    return AuditLog()


@pytest.fixture
def preferences(tmp_path) -> PreferencesStore:
    return PreferencesStore(path=tmp_path / "preferences.json")


@pytest.fixture
def loguru_messages():
    """Capture loguru output as plain strings."""
    from SimAction.logger import logger

    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(str(m)), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@dataclass
class Services:
    runner: FakeRunner
    device_manager: object
    dispatcher: object
    preferences: PreferencesStore


@pytest.fixture
def services(monkeypatch, runner, preferences) -> Services:
    """Install singletons wired to the fake runner for the HTTP layer."""
    from SimAction.action_dispatcher import ActionDispatcher
    from SimAction.device_discovery import PhysicalDeviceClient
    from SimAction.device_manager import DeviceManager
    from SimAction.simctl import SimctlClient

    runner.respond("simctl", "list", stdout=SIMCTL_PAYLOAD)
    runner.respond("xctrace", stdout=XCTRACE_OUTPUT)

    simctl = SimctlClient(runner=runner)
    device_manager = DeviceManager(
        simctl=simctl,
        physical=PhysicalDeviceClient(runner=runner),
        audit_log=AuditLog(),
    )
    dispatcher = ActionDispatcher(
        simctl=simctl,
        audit_log=device_manager.audit_log,
        preferences=preferences,
    )

    monkeypatch.setattr(DeviceManager, "_instance", device_manager)
    monkeypatch.setattr(ActionDispatcher, "_instance", dispatcher)
    monkeypatch.setattr(PreferencesStore, "_instance", preferences)

    return Services(runner, device_manager, dispatcher, preferences)


@pytest.fixture
def client(services):
    from fastapi.testclient import TestClient

    from SimAction.api import create_app

    with TestClient(create_app()) as test_client:
        yield test_client
