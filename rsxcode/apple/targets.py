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

"""The closed set of compiler target triples rsxcode can build for."""

import platform
from enum import Enum
from typing import Optional

from rsxcode.errors import UnknownBuildTarget

SDK_DEVICE = "iphoneos"
SDK_SIMULATOR = "iphonesimulator"


class BuildTarget(Enum):
    ARM = "aarch64-apple-ios"
    ARM_SIM = "aarch64-apple-ios-sim"
    SIM = "x86_64-apple-ios"

    @property
    def triple(self) -> str:
        return self.value

    @property
    def is_simulator(self) -> bool:
        return self is not BuildTarget.ARM

    @property
    def sdk(self) -> str:
        return SDK_SIMULATOR if self.is_simulator else SDK_DEVICE

    @property
    def arch(self) -> str:
        return "x86_64" if self is BuildTarget.SIM else "arm64"

    @classmethod
    def from_triple(cls, triple: str) -> "BuildTarget":
        for target in cls:
            if target.value == triple:
                return target
        raise UnknownBuildTarget(triple)

    def __str__(self):
        return self.value


SIMULATOR_TARGETS = (BuildTarget.ARM_SIM, BuildTarget.SIM)


def host_arch(machine: Optional[str] = None) -> str:
    """Normalized architecture of the build machine: `arm64` or `x86_64`."""
    machine = (machine or platform.machine()).lower()
    if machine in ("arm64", "aarch64"):
        return "arm64"
    if machine in ("x86_64", "amd64"):
        return "x86_64"
    return machine


def native_simulator_target(arch: str) -> Optional[BuildTarget]:
    """Simulator triple matching a host architecture."""
    for target in SIMULATOR_TARGETS:
        if target.arch == arch:
            return target
    return None


def device_target(cpu_architecture: str) -> Optional[BuildTarget]:
    """Device triple for a device's reported cpu architecture."""
    if cpu_architecture.lower().startswith("arm64"):
        return BuildTarget.ARM
    return None


def xcode_arch(cpu_architecture: str) -> str:
    """`-arch` value xcodebuild expects for a device cpu."""
    # arm64e devices run arm64 code
    if cpu_architecture == "arm64e":
        return "arm64"
    return cpu_architecture


class BuildProfile(Enum):
    DEBUG = "debug"
    RELEASE = "release"

    @property
    def configuration(self) -> str:
        """Xcode build configuration name."""
        return self.value.capitalize()
