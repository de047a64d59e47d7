"""
Shared pytest fixtures for rsxcode tests.

Every external tool is replaced by FakeExecutor, which records the commands
it receives and answers with scripted outcomes. No test touches cargo,
xcodegen, xcodebuild, lipo or xcrun.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Callable

import pytest

from rsxcode.utils.cmd.cmd_util import Command, Executor, ExitOutcome


# =============================================================================
# Fake executor
# =============================================================================


class Rule:
    def __init__(self, prefix, outcome, effect=None, once=False):
        self.prefix = tuple(prefix)
        self.outcome = outcome
        self.effect = effect
        self.once = once

    def matches(self, command: Command) -> bool:
        return tuple(command.argv[: len(self.prefix)]) == self.prefix


class FakeExecutor(Executor):
    """Records commands and returns scripted outcomes.

    Rules are matched by argv prefix, most recently added first. A rule
    added with `once=True` is dropped after its first match, so a sequence
    of answers for the same command can be queued.
    """

    def __init__(self):
        self.commands: list[Command] = []
        self.rules: list[Rule] = []
        self.terminated = 0
        self._lock = threading.Lock()

    def on(self, *prefix, returncode=0, stdout="", stderr="", effect=None, once=False):
        self.rules.append(Rule(prefix, ExitOutcome(returncode, stdout, stderr), effect, once))
        return self

    def execute(self, command: Command) -> ExitOutcome:
        with self._lock:
            self.commands.append(command)
            rule = self._match(command)
        if rule is None:
            return ExitOutcome(0)
        if rule.effect is not None:
            rule.effect(command)
        return rule.outcome

    def _match(self, command: Command):
        # once-rules are consumed in the order they were queued
        for rule in self.rules:
            if rule.once and rule.matches(command):
                self.rules.remove(rule)
                return rule
        for rule in reversed(self.rules):
            if not rule.once and rule.matches(command):
                return rule
        return None

    def terminate_all(self):
        self.terminated += 1

    def calls(self, *prefix) -> list[Command]:
        return [c for c in self.commands if tuple(c.argv[: len(prefix)]) == prefix]

    @property
    def programs(self) -> list[str]:
        return [c.program for c in self.commands]


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


# =============================================================================
# Inventory data
# =============================================================================

RUNTIME_17 = "com.apple.CoreSimulator.SimRuntime.iOS-17-2"
RUNTIME_16 = "com.apple.CoreSimulator.SimRuntime.iOS-16-4"


def sim(udid: str, name: str = "iPhone 15", state: str = "Shutdown", available: bool = True) -> dict:
    return {"udid": udid, "name": name, "state": state, "isAvailable": available}


def simctl_json(runtimes: dict[str, list[dict]]) -> str:
    return json.dumps({"devices": runtimes})


def device(udid: str, name: str = "iPhone", os_version: str = "17.1", cpu: str = "arm64e",
           transport: str = "wired") -> dict:
    return {
        "identifier": f"core-{udid}",
        "connectionProperties": {"transportType": transport},
        "deviceProperties": {"name": name, "osVersionNumber": os_version},
        "hardwareProperties": {
            "udid": udid,
            "platform": "iOS",
            "reality": "physical",
            "cpuType": {"name": cpu},
        },
    }


def devicectl_writer(devices: list[dict]) -> Callable[[Command], None]:
    """Effect writing the device list where `--json-output` points."""

    def effect(command: Command):
        args = list(command.args)
        path = args[args.index("--json-output") + 1]
        Path(path).write_text(json.dumps({"result": {"devices": devices}}))

    return effect


def script_inventory(executor: FakeExecutor, devices: list[dict] | None = None,
                     runtimes: dict[str, list[dict]] | None = None) -> FakeExecutor:
    executor.on("xcrun", "devicectl", "list", "devices", effect=devicectl_writer(devices or []))
    executor.on("xcrun", "simctl", "list", "devices", stdout=simctl_json(runtimes or {}))
    return executor


# =============================================================================
# Manifests
# =============================================================================

IOS_SECTION = """
build_targets = ["aarch64-apple-ios", "aarch64-apple-ios-sim", "x86_64-apple-ios"]
dependencies = ["OpenGLES.framework", "GLKit.framework"]
"""


def write_manifest(root: Path, ios: str | None = IOS_SECTION, name: str = "my-app",
                   lib: str = 'crate-type = ["staticlib"]') -> Path:
    text = f'[package]\nname = "{name}"\nversion = "0.1.0"\nedition = "2021"\n\n'
    if lib is not None:
        text += f"[lib]\n{lib}\n\n"
    if ios is not None:
        text += f"[package.metadata.ios]\n{ios.strip()}\n"
    path = root / "Cargo.toml"
    path.write_text(text)
    return path


@pytest.fixture
def manifest_factory(tmp_path: Path):
    """Write a Cargo.toml into tmp_path and load it."""
    from rsxcode.apple.manifest import load_manifest

    def make(ios: str | None = IOS_SECTION, **kwargs):
        return load_manifest(write_manifest(tmp_path, ios, **kwargs))

    return make


@pytest.fixture(autouse=True)
def quiet_log(monkeypatch):
    monkeypatch.setenv("RSXCODE_LOG", "warn")
