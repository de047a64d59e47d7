"""Tests for installing and launching a built app."""

from __future__ import annotations

from pathlib import Path

import pytest

from rsxcode.apple.inventory import BootState, Device, Inventory, Simulator
from rsxcode.apple.resolver import ResolvedDestination, SigningSettings
from rsxcode.apple.targets import BuildTarget
from rsxcode.build_scripts.build_ios import ArtifactSet
from rsxcode.build_scripts.run_ios import RunOrchestrator
from rsxcode.errors import InstallFailed, LaunchFailed
from .conftest import RUNTIME_17, sim, simctl_json

APP = Path("/work/target/xcodegen/my_app/build/Build/Products/Debug-iphonesimulator/my_app.app")
BUNDLE_ID = "com.rust.my-app"


def artifacts(destination, targets=(BuildTarget.ARM_SIM,), signing=None) -> ArtifactSet:
    resolved = ResolvedDestination(destination, targets, signing)
    return ArtifactSet(APP, resolved, BUNDLE_ID, Path("/work/project.yml"))


BOOTED = Simulator("SIM-1", "iPhone 15", "17.2", BootState.BOOTED)
PHONE = Device("DEV-1", "Phone", "17.1", "arm64")


class TestSimulator:
    def test_install_then_launch(self, executor):
        RunOrchestrator(executor).run(artifacts(BOOTED))
        assert [c.args[:2] for c in executor.commands] == [("simctl", "install"), ("simctl", "launch")]
        assert executor.commands[0].args == ("simctl", "install", "SIM-1", str(APP))
        assert executor.commands[1].args == ("simctl", "launch", "SIM-1", BUNDLE_ID)

    def test_boots_shutdown_simulator_first(self, executor):
        executor.on("xcrun", "simctl", "list", stdout=simctl_json({RUNTIME_17: [sim("SIM-1")]}), once=True)
        executor.on("xcrun", "simctl", "list",
                    stdout=simctl_json({RUNTIME_17: [sim("SIM-1", state="Booted")]}))
        shutdown = Simulator("SIM-1", "iPhone 15", "17.2", BootState.SHUTDOWN)

        RunOrchestrator(executor, Inventory(executor)).run(artifacts(shutdown))

        boot_index = executor.commands.index(executor.calls("xcrun", "simctl", "boot")[0])
        install_index = executor.commands.index(executor.calls("xcrun", "simctl", "install")[0])
        assert boot_index < install_index

    def test_install_failure_skips_launch(self, executor):
        executor.on("xcrun", "simctl", "install", returncode=1, stderr="No such file")
        with pytest.raises(InstallFailed) as exc:
            RunOrchestrator(executor).run(artifacts(BOOTED))
        assert exc.value.stage == "install"
        assert exc.value.tool == "simctl"
        assert exc.value.destination == BOOTED
        assert executor.calls("xcrun", "simctl", "launch") == []

    def test_launch_failure_is_distinct(self, executor):
        executor.on("xcrun", "simctl", "launch", returncode=4, stderr="FBSOpenApplicationServiceErrorDomain")
        with pytest.raises(LaunchFailed) as exc:
            RunOrchestrator(executor).run(artifacts(BOOTED))
        assert not isinstance(exc.value, InstallFailed)
        assert exc.value.stage == "launch"
        assert exc.value.bundle_id == BUNDLE_ID


class TestDevice:
    def test_devicectl_install_then_launch(self, executor):
        signing = SigningSettings("iPhone Developer", "TEAM123")
        RunOrchestrator(executor).run(artifacts(PHONE, (BuildTarget.ARM,), signing))
        assert executor.commands[0].args == (
            "devicectl", "device", "install", "app", "--device", "DEV-1", str(APP),
        )
        assert executor.commands[1].args == (
            "devicectl", "device", "process", "launch", "--device", "DEV-1", BUNDLE_ID,
        )

    def test_device_install_failure(self, executor):
        executor.on("xcrun", "devicectl", "device", "install", returncode=1)
        with pytest.raises(InstallFailed) as exc:
            RunOrchestrator(executor).run(artifacts(PHONE, (BuildTarget.ARM,)))
        assert exc.value.tool == "devicectl"
        assert exc.value.destination == PHONE
