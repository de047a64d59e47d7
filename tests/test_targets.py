"""Tests for the build target triples and host architecture helpers."""

from __future__ import annotations

import pytest

from rsxcode.apple.targets import (
    BuildProfile,
    BuildTarget,
    device_target,
    host_arch,
    native_simulator_target,
    xcode_arch,
)
from rsxcode.errors import UnknownBuildTarget


class TestBuildTarget:
    @pytest.mark.parametrize(
        "triple, sdk, arch, simulator",
        [
            ("aarch64-apple-ios", "iphoneos", "arm64", False),
            ("aarch64-apple-ios-sim", "iphonesimulator", "arm64", True),
            ("x86_64-apple-ios", "iphonesimulator", "x86_64", True),
        ],
    )
    def test_attributes(self, triple, sdk, arch, simulator):
        target = BuildTarget.from_triple(triple)
        assert target.triple == triple
        assert target.sdk == sdk
        assert target.arch == arch
        assert target.is_simulator is simulator

    def test_unknown_triple_is_an_error(self):
        with pytest.raises(UnknownBuildTarget):
            BuildTarget.from_triple("aarch64-apple-darwin")


class TestArchitectures:
    @pytest.mark.parametrize("machine, expected", [("arm64", "arm64"), ("aarch64", "arm64"),
                                                   ("x86_64", "x86_64"), ("AMD64", "x86_64")])
    def test_host_arch(self, machine, expected):
        assert host_arch(machine) == expected

    def test_native_simulator_target(self):
        assert native_simulator_target("arm64") is BuildTarget.ARM_SIM
        assert native_simulator_target("x86_64") is BuildTarget.SIM
        assert native_simulator_target("riscv64") is None

    def test_device_target(self):
        assert device_target("arm64e") is BuildTarget.ARM
        assert device_target("arm64") is BuildTarget.ARM
        assert device_target("armv7") is None

    def test_xcode_arch_maps_arm64e(self):
        assert xcode_arch("arm64e") == "arm64"
        assert xcode_arch("arm64") == "arm64"


class TestBuildProfile:
    def test_configuration_names(self):
        assert BuildProfile.DEBUG.configuration == "Debug"
        assert BuildProfile.RELEASE.configuration == "Release"
