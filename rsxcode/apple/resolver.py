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
Destination resolution.

Turns "run on X" or "run somewhere sensible" into one concrete Device or
Simulator, the triples to compile for it and, for devices, the signing
settings xcodebuild needs. Ambiguity is an error, never a guess.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from rsxcode.apple.inventory import (
    Destination,
    Device,
    Inventory,
    InventorySnapshot,
    Simulator,
    version_key,
)
from rsxcode.apple.manifest import DeviceType, ManifestModel
from rsxcode.apple.targets import (
    BuildTarget,
    SIMULATOR_TARGETS,
    device_target,
    host_arch,
    native_simulator_target,
)
from rsxcode.errors import (
    AmbiguousDestination,
    DestinationNotFound,
    MissingSigningIdentity,
    NoCompatibleBuildTarget,
)
from rsxcode.utils.console import print_debug, print_info

DEFAULT_CODE_SIGN_IDENTITY = "iPhone Developer"
DEFAULT_SIMULATOR_FAMILY = "iPhone"


@dataclass(frozen=True)
class DestinationRequest:
    """Either an explicit device/simulator id or `auto`, optionally restricted to one kind."""
    explicit_id: Optional[str] = None
    kind: Optional[DeviceType] = None

    @property
    def is_auto(self) -> bool:
        return self.explicit_id is None

    @classmethod
    def auto(cls, kind: Optional[DeviceType] = None) -> "DestinationRequest":
        return cls(None, kind)

    @classmethod
    def from_manifest(cls, manifest: ManifestModel, device_id: Optional[str] = None) -> "DestinationRequest":
        # --device on the command line beats the manifest hints
        if device_id:
            return cls(device_id)
        return cls(manifest.device_id, manifest.device_type)

    def __str__(self):
        kind = self.kind.value if self.kind else "device or simulator"
        return f"{self.explicit_id or 'auto'} ({kind})"


@dataclass(frozen=True)
class SigningSettings:
    identity: str
    team: str


def signing_for(manifest: ManifestModel, destination: Optional[Destination] = None) -> SigningSettings:
    if not manifest.development_team:
        raise MissingSigningIdentity(destination)
    return SigningSettings(
        identity=manifest.code_sign_identity or DEFAULT_CODE_SIGN_IDENTITY,
        team=manifest.development_team,
    )


@dataclass(frozen=True)
class ResolvedDestination:
    destination: Destination
    build_targets: Tuple[BuildTarget, ...]
    signing: Optional[SigningSettings] = None

    @property
    def is_device(self) -> bool:
        return isinstance(self.destination, Device)

    @property
    def sdk(self) -> str:
        return self.build_targets[0].sdk

    def __str__(self):
        return str(self.destination)


def build_targets_for(destination: Destination, declared: Sequence[BuildTarget],
                      arch: Optional[str] = None) -> Tuple[BuildTarget, ...]:
    """
    Triples to compile for a destination, picked from the declared ones.

    A device needs the triple of its cpu. A simulator gets a fat library of
    both simulator triples when both are declared, otherwise the triple
    native to the host. On Apple silicon an x86_64-only declaration is
    built as is; the native build then pins the simulator to x86_64 so the
    app runs under Rosetta.
    """
    if isinstance(destination, Device):
        target = device_target(destination.cpu_architecture)
        if target is None or target not in declared:
            raise NoCompatibleBuildTarget(destination, [BuildTarget.ARM.triple])
        return (target,)

    declared_simulators = tuple(t for t in SIMULATOR_TARGETS if t in declared)
    if len(declared_simulators) == len(SIMULATOR_TARGETS):
        return declared_simulators

    native = native_simulator_target(arch or host_arch())
    if native is not None and native in declared_simulators:
        return (native,)
    if native is BuildTarget.ARM_SIM and BuildTarget.SIM in declared_simulators:
        return (BuildTarget.SIM,)

    wanted = [native.triple] if native is not None else [t.triple for t in SIMULATOR_TARGETS]
    raise NoCompatibleBuildTarget(destination, wanted)


def platform_default_simulator(simulators: Sequence[Simulator]) -> Optional[Simulator]:
    """Newest-runtime iPhone simulator, ties broken by name."""
    candidates = [
        s for s in simulators if s.available and s.name.startswith(DEFAULT_SIMULATOR_FAMILY)
    ]
    if not candidates:
        return None
    newest = max(version_key(s.os_version) for s in candidates)
    candidates = sorted(
        (s for s in candidates if version_key(s.os_version) == newest),
        key=lambda s: (s.name, s.id),
    )
    return candidates[0]


class TargetResolver:
    def __init__(self, inventory: Inventory, arch: Optional[str] = None):
        self.inventory = inventory
        self.arch = arch

    def take_snapshot(self, kind: Optional[DeviceType] = None) -> InventorySnapshot:
        # simulator-only requests never touch devicectl
        if kind is DeviceType.SIMULATOR:
            return InventorySnapshot(simulators=tuple(self.inventory.list_simulators()))
        return self.inventory.snapshot()

    def resolve(self, request: DestinationRequest, manifest: ManifestModel,
                snapshot: Optional[InventorySnapshot] = None) -> ResolvedDestination:
        """
        Resolve a request against an inventory snapshot.

        Args:
            request: Explicit id or auto
            manifest: Loaded manifest
            snapshot: Inventory state to resolve against, queried when omitted

        Returns:
            ResolvedDestination

        Raises:
            ResolutionError subclasses, BootError when a default simulator fails to boot
        """
        # signing problems surface before the inventory is even queried
        if request.kind is DeviceType.DEVICE:
            signing_for(manifest)

        if snapshot is None:
            snapshot = self.take_snapshot(request.kind)

        if request.is_auto:
            destination = self._resolve_auto(request, manifest, snapshot)
        else:
            destination = self._resolve_explicit(request, snapshot)
        print_debug(f"Resolved {request} to {destination}")

        signing = None
        if isinstance(destination, Device):
            signing = signing_for(manifest, destination)
        build_targets = build_targets_for(destination, manifest.build_targets, self.arch)
        print_debug(f"Build targets: {', '.join(t.triple for t in build_targets)}")
        return ResolvedDestination(destination, build_targets, signing)

    @staticmethod
    def _resolve_explicit(request: DestinationRequest, snapshot: InventorySnapshot) -> Destination:
        if request.kind is DeviceType.DEVICE:
            destination = snapshot.find_device(request.explicit_id)
        elif request.kind is DeviceType.SIMULATOR:
            destination = snapshot.find_simulator(request.explicit_id)
        else:
            destination = snapshot.find(request.explicit_id)
        if destination is None:
            raise DestinationNotFound(request.explicit_id)
        return destination

    def _resolve_auto(self, request: DestinationRequest, manifest: ManifestModel,
                      snapshot: InventorySnapshot) -> Destination:
        if request.kind is not DeviceType.SIMULATOR:
            if len(snapshot.devices) == 1:
                return snapshot.devices[0]
            if len(snapshot.devices) > 1:
                raise AmbiguousDestination(snapshot.devices)
            if request.kind is DeviceType.DEVICE:
                raise DestinationNotFound("a connected device")

        booted = snapshot.booted_simulators
        if len(booted) == 1:
            return booted[0]
        if len(booted) > 1:
            preferred = self._match_default(manifest.default_simulator, booted)
            if preferred is None:
                raise AmbiguousDestination(booted)
            return preferred

        simulator = self._default_simulator(manifest, snapshot)
        print_info(f"No booted simulator, booting {simulator}")
        return self.inventory.boot(simulator.id)

    @staticmethod
    def _match_default(default: Optional[str], simulators: Sequence[Simulator]) -> Optional[Simulator]:
        if not default:
            return None
        for simulator in simulators:
            if simulator.id == default:
                return simulator
        named = [s for s in simulators if s.name == default]
        if len(named) == 1:
            return named[0]
        return None

    @staticmethod
    def _default_simulator(manifest: ManifestModel, snapshot: InventorySnapshot) -> Simulator:
        if manifest.default_simulator:
            simulator = (snapshot.find_simulator(manifest.default_simulator)
                         or snapshot.find_simulator_by_name(manifest.default_simulator))
            if simulator is None:
                raise DestinationNotFound(manifest.default_simulator)
            return simulator
        simulator = platform_default_simulator(snapshot.simulators)
        if simulator is None:
            raise DestinationNotFound(f"an available {DEFAULT_SIMULATOR_FAMILY} simulator")
        return simulator
