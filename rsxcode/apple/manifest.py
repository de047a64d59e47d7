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
Manifest model for rsxcode.

Reads the `[package.metadata.ios]` section of a Cargo.toml:

    [package.metadata.ios]
    build_targets = ["aarch64-apple-ios", "aarch64-apple-ios-sim"]
    dependencies = ["OpenGLES.framework", "GLKit.framework"]
    deployment_target = "12"            # default "12"
    bundle_id_prefix = "com.rust"       # default "com.rust"
    code_sign_identity = "Apple Development"
    development_team = "ABCDE12345"
    device_id = "4F57337E-1AF2-4D30-9726-87040063C016"
    device_type = "simulator"           # "device" or "simulator"
    default_simulator = "iPhone 15"
    assets = ["assets"]
    supported_interface_orientations = ["UIInterfaceOrientationPortrait"]

The model is validated once when loaded and never changes afterwards.
"""

import re
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

if sys.version_info >= (3, 11, 0, "alpha", 7):
    import tomllib
else:
    import tomli as tomllib

from rsxcode.apple.targets import BuildTarget
from rsxcode.errors import (
    ConfigError,
    InvalidAssetPath,
    InvalidDeviceType,
    InvalidOrientation,
    MalformedBundleId,
    ManifestNotFound,
    MissingBuildTargets,
    MissingIosMetadata,
    MissingStaticLib,
)

DEFAULT_DEPLOYMENT_TARGET = "12"
DEFAULT_BUNDLE_ID_PREFIX = "com.rust"

# reverse-domain fragment, e.g. `com.example` or `org.my-team`
BUNDLE_ID_PREFIX_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9-]*(\.[A-Za-z0-9][A-Za-z0-9-]*)*$")


class DeviceType(Enum):
    DEVICE = "device"
    SIMULATOR = "simulator"


class Orientation(Enum):
    UNKNOWN = "UIInterfaceOrientationUnknown"
    PORTRAIT = "UIInterfaceOrientationPortrait"
    PORTRAIT_UPSIDE_DOWN = "UIInterfaceOrientationPortraitUpsideDown"
    LANDSCAPE_LEFT = "UIInterfaceOrientationLandscapeLeft"
    LANDSCAPE_RIGHT = "UIInterfaceOrientationLandscapeRight"


@dataclass(frozen=True)
class ManifestModel:
    manifest_path: Path
    package_name: str
    version: str
    build_targets: Tuple[BuildTarget, ...]
    lib_name: Optional[str] = None
    crate_types: Tuple[str, ...] = ()
    dependencies: Tuple[str, ...] = ()
    deployment_target: str = DEFAULT_DEPLOYMENT_TARGET
    bundle_id_prefix: str = DEFAULT_BUNDLE_ID_PREFIX
    code_sign_identity: Optional[str] = None
    development_team: Optional[str] = None
    device_id: Optional[str] = None
    device_type: Optional[DeviceType] = None
    default_simulator: Optional[str] = None
    assets: Tuple[str, ...] = ()
    orientations: Tuple[Orientation, ...] = ()

    @property
    def package_root(self) -> Path:
        return self.manifest_path.parent

    @property
    def app_name(self) -> str:
        """Xcode target, scheme and library name."""
        return (self.lib_name or self.package_name).replace("-", "_")

    @property
    def bundle_identifier(self) -> str:
        return f"{self.bundle_id_prefix}.{self.app_name.replace('_', '-')}"

    def require_staticlib(self) -> "ManifestModel":
        if "staticlib" not in self.crate_types:
            raise MissingStaticLib()
        return self


def _unique(values: Iterable) -> tuple:
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return tuple(seen)


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def load(raw: Dict[str, Any], manifest_path) -> ManifestModel:
    """
    Validate a parsed Cargo.toml and build the manifest model.

    Args:
        raw: Parsed TOML document
        manifest_path: Path of the Cargo.toml, asset folders are relative to its directory

    Returns:
        ManifestModel

    Raises:
        ConfigError subclasses for every invalid option
    """
    manifest_path = Path(manifest_path)
    package = raw.get("package", {})
    lib = raw.get("lib", {}) or {}
    ios = (package.get("metadata") or {}).get("ios")
    if ios is None:
        raise MissingIosMetadata()

    build_targets = _unique(BuildTarget.from_triple(t) for t in ios.get("build_targets", []))
    if not build_targets:
        raise MissingBuildTargets()

    device_type = None
    if ios.get("device_type") is not None:
        try:
            device_type = DeviceType(ios["device_type"])
        except ValueError:
            raise InvalidDeviceType(ios["device_type"])

    bundle_id_prefix = str(ios.get("bundle_id_prefix", DEFAULT_BUNDLE_ID_PREFIX))
    if not BUNDLE_ID_PREFIX_RE.match(bundle_id_prefix):
        raise MalformedBundleId(bundle_id_prefix)

    assets = _unique(str(a) for a in ios.get("assets", []))
    for asset in assets:
        if not (manifest_path.parent / asset).is_dir():
            raise InvalidAssetPath(asset)

    orientations = []
    for value in ios.get("supported_interface_orientations", []):
        try:
            orientations.append(Orientation(value))
        except ValueError:
            raise InvalidOrientation(value)

    return ManifestModel(
        manifest_path=manifest_path,
        package_name=package.get("name", manifest_path.parent.name),
        version=str(package.get("version", "0.0.0")),
        build_targets=build_targets,
        lib_name=_optional_str(lib.get("name")),
        crate_types=tuple(lib.get("crate-type", [])),
        dependencies=_unique(str(d) for d in ios.get("dependencies", [])),
        deployment_target=str(ios.get("deployment_target", DEFAULT_DEPLOYMENT_TARGET)),
        bundle_id_prefix=bundle_id_prefix,
        code_sign_identity=_optional_str(ios.get("code_sign_identity")),
        development_team=_optional_str(ios.get("development_team")),
        device_id=_optional_str(ios.get("device_id")),
        device_type=device_type,
        default_simulator=_optional_str(ios.get("default_simulator")),
        assets=assets,
        orientations=_unique(orientations),
    )


def load_manifest(manifest_path) -> ManifestModel:
    """Read a Cargo.toml from disk and load it."""
    manifest_path = Path(manifest_path).resolve()
    if not manifest_path.is_file():
        raise ManifestNotFound(manifest_path)
    with open(manifest_path, "rb") as f:
        try:
            raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Failed to parse {manifest_path}: {e}")
    return load(raw, manifest_path)
