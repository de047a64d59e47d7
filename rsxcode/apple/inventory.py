#
# Copyright 2024 rsxcode Project Authors. All rights reserved.
# Use of this source code is governed by a MIT-style
# license that can be found at
#
# https://opensource.org/license/MIT
#
# The above copyright notice and this permission
# notice shall be included in all copies or
# substantial portions of the Software.

"""
Connected devices and iOS simulators.

Thin query layer over `xcrun devicectl` and `xcrun simctl`. Nothing is
cached: every call asks the tools again, since devices get plugged in and
simulators get booted between invocations.
"""

import json
import os
import re
import tempfile
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from rsxcode.errors import (
    STAGE_BOOT,
    STAGE_QUERY,
    BootError,
    BootTimeout,
    DestinationNotFound,
    ToolingError,
)
from rsxcode.utils.cmd.cmd_util import Command, Executor
from rsxcode.utils.console import print_debug, print_info, print_ok

BOOT_TIMEOUT_SECOND = 120
BOOT_POLL_INTERVAL_SECOND = 1.0

RUNTIME_KEY_RE = re.compile(r"\.iOS-(\d+(?:-\d+)*)$")
CONNECTED_TRANSPORTS = ("wired", "localNetwork")


class BootState(Enum):
    SHUTDOWN = "Shutdown"
    BOOTING = "Booting"
    BOOTED = "Booted"
    SHUTTING_DOWN = "Shutting Down"
    CREATING = "Creating"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: str) -> "BootState":
        for state in cls:
            if state.value == value:
                return state
        return cls.UNKNOWN


@dataclass(frozen=True)
class Device:
    id: str
    name: str
    os_version: str
    cpu_architecture: str = "arm64"
    connection: str = "wired"

    def __str__(self):
        return f"device `{self.name}` {self.id} (iOS {self.os_version}, {self.connection})"


@dataclass(frozen=True)
class Simulator:
    id: str
    name: str
    os_version: str
    boot_state: BootState = BootState.SHUTDOWN
    available: bool = True

    @property
    def is_booted(self) -> bool:
        return self.boot_state is BootState.BOOTED

    def __str__(self):
        return f"simulator `{self.name}` {self.id} (iOS {self.os_version}, {self.boot_state.value})"


Destination = Union[Device, Simulator]


def version_key(version: str) -> Tuple[int, ...]:
    parts = []
    for part in version.split("."):
        parts.append(int(part) if part.isdigit() else 0)
    return tuple(parts)


@dataclass(frozen=True)
class InventorySnapshot:
    """Devices and simulators as seen at one moment."""
    devices: Tuple[Device, ...] = ()
    simulators: Tuple[Simulator, ...] = ()

    @property
    def booted_simulators(self) -> Tuple[Simulator, ...]:
        return tuple(s for s in self.simulators if s.is_booted)

    def find(self, identifier: str) -> Optional[Destination]:
        """Look an id up among devices first, then simulators."""
        return self.find_device(identifier) or self.find_simulator(identifier)

    def find_device(self, identifier: str) -> Optional[Device]:
        for device in self.devices:
            if device.id == identifier:
                return device
        return None

    def find_simulator(self, identifier: str) -> Optional[Simulator]:
        for simulator in self.simulators:
            if simulator.id == identifier:
                return simulator
        return None

    def find_simulator_by_name(self, name: str) -> Optional[Simulator]:
        """Available simulator with this name on the newest runtime."""
        matches = [s for s in self.simulators if s.available and s.name == name]
        if not matches:
            return None
        return max(matches, key=lambda s: version_key(s.os_version))


def parse_simctl_devices(text: str) -> List[Simulator]:
    """
    Parse `xcrun simctl list devices iOS --json`.

    Only runtimes named `*.iOS-<major>-<minor>` are kept, in the order
    simctl prints them.
    """
    data = json.loads(text)
    simulators = []
    for runtime, raw_devices in data.get("devices", {}).items():
        match = RUNTIME_KEY_RE.search(runtime)
        if not match:
            continue
        os_version = match.group(1).replace("-", ".")
        for raw in raw_devices:
            simulators.append(Simulator(
                id=raw["udid"],
                name=raw.get("name", ""),
                os_version=os_version,
                boot_state=BootState.parse(raw.get("state", "")),
                available=raw.get("isAvailable", True),
            ))
    return simulators


def parse_devicectl_devices(data: Dict[str, Any]) -> List[Device]:
    """Parse the json written by `xcrun devicectl list devices --json-output`."""
    devices = []
    for raw in (data.get("result") or {}).get("devices") or []:
        hardware = raw.get("hardwareProperties") or {}
        if hardware.get("reality", "physical") != "physical":
            continue
        if hardware.get("platform", "iOS") != "iOS":
            continue
        transport = (raw.get("connectionProperties") or {}).get("transportType")
        if transport not in CONNECTED_TRANSPORTS:
            continue
        properties = raw.get("deviceProperties") or {}
        devices.append(Device(
            id=hardware.get("udid") or raw.get("identifier", ""),
            name=properties.get("name", ""),
            os_version=properties.get("osVersionNumber", ""),
            cpu_architecture=(hardware.get("cpuType") or {}).get("name") or "arm64",
            connection=transport,
        ))
    return devices


class Inventory:
    def __init__(self, executor: Executor, boot_timeout: float = BOOT_TIMEOUT_SECOND,
                 poll_interval: float = BOOT_POLL_INTERVAL_SECOND,
                 clock=time.monotonic, sleep=time.sleep):
        self.executor = executor
        self.boot_timeout = boot_timeout
        self.poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep

    def list_devices(self) -> Iterator[Device]:
        """Connected physical devices, queried when iterated."""
        with tempfile.TemporaryDirectory(prefix="rsxcode_") as tmp_dir:
            json_path = os.path.join(tmp_dir, "devices.json")
            outcome = self.executor.execute(Command(
                "xcrun",
                ("devicectl", "list", "devices", "--quiet", "--json-output", json_path),
                stage=STAGE_QUERY,
            ))
            if not outcome.success:
                raise ToolingError("Failed to list connected devices", tool="devicectl",
                                   exit_status=outcome.returncode, output=outcome.output,
                                   stage=STAGE_QUERY)
            if not os.path.isfile(json_path):
                raise ToolingError("devicectl wrote no device list", tool="devicectl",
                                   stage=STAGE_QUERY)
            try:
                with open(json_path, "r") as f:
                    devices = parse_devicectl_devices(json.load(f))
            except (ValueError, KeyError, AttributeError, TypeError) as e:
                raise ToolingError(f"Failed to parse devicectl output: {e}", tool="devicectl",
                                   stage=STAGE_QUERY)
        yield from devices

    def list_simulators(self) -> Iterator[Simulator]:
        """iOS simulators, queried when iterated."""
        outcome = self.executor.execute(Command(
            "xcrun", ("simctl", "list", "devices", "iOS", "--json"), stage=STAGE_QUERY,
        ))
        if not outcome.success:
            raise ToolingError("Failed to get iOS simulators list", tool="simctl",
                               exit_status=outcome.returncode, output=outcome.output,
                               stage=STAGE_QUERY)
        try:
            simulators = parse_simctl_devices(outcome.stdout)
        except (ValueError, KeyError) as e:
            raise ToolingError(f"Failed to parse simctl output: {e}", tool="simctl",
                               output=outcome.stdout, stage=STAGE_QUERY)
        yield from simulators

    def snapshot(self) -> InventorySnapshot:
        return InventorySnapshot(
            devices=tuple(self.list_devices()),
            simulators=tuple(self.list_simulators()),
        )

    def _find_simulator(self, simulator_id: str) -> Optional[Simulator]:
        for simulator in self.list_simulators():
            if simulator.id == simulator_id:
                return simulator
        return None

    def boot(self, simulator_id: str) -> Simulator:
        """
        Boot a simulator and bring up Simulator.app.

        Blocks until simctl reports the simulator as Booted, or fails with
        BootTimeout once `boot_timeout` seconds have passed. Booting an
        already booted simulator succeeds without touching it.
        """
        simulator = self._find_simulator(simulator_id)
        if simulator is None:
            raise DestinationNotFound(simulator_id)
        if simulator.is_booted:
            print_ok(f"{simulator.name} is already booted")
            return simulator

        if simulator.boot_state is not BootState.BOOTING:
            print_info(f"Booting {simulator}")
            outcome = self.executor.execute(Command(
                "xcrun", ("simctl", "boot", simulator_id), stage=STAGE_BOOT,
            ))
            # lost a race with another boot request
            if not outcome.success and "current state: Booted" not in outcome.output:
                raise BootError(
                    f"Failed to boot simulator with id: {simulator_id}\n{outcome.output}",
                    destination=simulator,
                )

        deadline = self._clock() + self.boot_timeout
        while True:
            current = self._find_simulator(simulator_id)
            if current is not None and current.is_booted:
                break
            if self._clock() >= deadline:
                raise BootTimeout(simulator_id, self.boot_timeout).with_destination(simulator)
            print_debug(f"Waiting for {simulator_id} to boot")
            self._sleep(self.poll_interval)

        outcome = self.executor.execute(Command("open", ("-a", "Simulator"), stage=STAGE_BOOT))
        if not outcome.success:
            raise BootError(f"Failed to open Simulator.app\n{outcome.output}", destination=current)

        print_ok(f"Booted {current.name}")
        return replace(current, boot_state=BootState.BOOTED)
