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
Project descriptor generator.

Builds the `project.yml` consumed by xcodegen from the manifest and the
libraries the build produced. The descriptor is rewritten from scratch on
every build, generate and check; nothing is merged into an existing file.

Layout of the generated project, relative to the project directory
`target/xcodegen/<app>`:

    ../src/            main.m, bindings.h and the generated Info.plist
    ../universal/...   merged simulator library
    ../../<triple>/... cargo output
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from rsxcode.apple.manifest import ManifestModel
from rsxcode.apple.resolver import ResolvedDestination, SigningSettings, signing_for
from rsxcode.apple.targets import BuildProfile, BuildTarget, SDK_DEVICE
from rsxcode.build_scripts.build_utils import GENERATED_DIR_LOCK, atomic_write_text
from rsxcode.errors import DescriptorIncomplete, GenerateFailed

INHERITED = "$(INHERITED)"
SOURCES_DIR = "../src/"
INFO_PLIST = "../src/Info.plist"
BUILD_TARGETS_SETTING = "RSXCODE_BUILD_TARGETS"

SCHEME_ENVIRONMENT = (
    ("RUST_BACKTRACE", "full"),
    ("RUST_LOG", "info"),
)


@dataclass(frozen=True)
class TargetLibrary:
    target: BuildTarget
    # None until the library has been built
    library_path: Optional[str] = None


@dataclass(frozen=True)
class AssetFolder:
    path: str
    subpath: str


@dataclass(frozen=True)
class ProjectDescriptor:
    name: str
    bundle_id_prefix: str
    bundle_identifier: str
    deployment_target: str
    libraries: Tuple[TargetLibrary, ...]
    dependencies: Tuple[str, ...] = ()
    assets: Tuple[AssetFolder, ...] = ()
    signing: Optional[SigningSettings] = None
    orientations: Tuple[str, ...] = ()
    profile: BuildProfile = BuildProfile.DEBUG

    @property
    def build_targets(self) -> Tuple[BuildTarget, ...]:
        return tuple(lib.target for lib in self.libraries)

    def require_artifacts(self) -> "ProjectDescriptor":
        """Fail unless every referenced target has a built library."""
        missing = [lib.target.triple for lib in self.libraries if not lib.library_path]
        if missing:
            raise DescriptorIncomplete(missing)
        return self


def generate(manifest: ManifestModel, build_outputs: Mapping[BuildTarget, Any],
             destination: Optional[ResolvedDestination] = None,
             profile: BuildProfile = BuildProfile.DEBUG) -> ProjectDescriptor:
    """
    Build the descriptor for a manifest.

    Args:
        manifest: Loaded manifest
        build_outputs: Library path per target, missing targets are left unbuilt
        destination: Resolved destination of a build, or None to reference
            every declared target as `generate` and `check` do
        profile: Build profile the library paths belong to

    Returns:
        ProjectDescriptor
    """
    if destination is not None:
        targets = destination.build_targets
        signing = destination.signing
    else:
        targets = manifest.build_targets
        signing = signing_for(manifest) if manifest.development_team else None

    libraries = []
    for target in targets:
        path = build_outputs.get(target)
        libraries.append(TargetLibrary(target, str(path) if path else None))

    assets = tuple(
        AssetFolder(str(manifest.package_root / asset), asset) for asset in manifest.assets
    )

    return ProjectDescriptor(
        name=manifest.app_name,
        bundle_id_prefix=manifest.bundle_id_prefix,
        bundle_identifier=manifest.bundle_identifier,
        deployment_target=manifest.deployment_target,
        libraries=tuple(libraries),
        dependencies=manifest.dependencies,
        assets=assets,
        signing=signing,
        orientations=tuple(o.value for o in manifest.orientations),
        profile=profile,
    )


def search_path_key(target: BuildTarget) -> str:
    if target.sdk == SDK_DEVICE:
        return f"LIBRARY_SEARCH_PATHS[sdk={SDK_DEVICE}*]"
    return f"LIBRARY_SEARCH_PATHS[sdk={target.sdk}*][arch={target.arch}]"


def _signing_settings(signing: Optional[SigningSettings]) -> Dict[str, str]:
    if signing is None:
        return {
            "CODE_SIGN_IDENTITY": "",
            "CODE_SIGNING_REQUIRED": "NO",
            "CODE_SIGN_ENTITLEMENTS": "",
            "CODE_SIGNING_ALLOWED": "NO",
        }
    return {
        "CODE_SIGN_STYLE": "Automatic",
        "CODE_SIGN_IDENTITY": signing.identity,
        "DEVELOPMENT_TEAM": signing.team,
    }


def to_xcodegen(descriptor: ProjectDescriptor, project_dir) -> Dict[str, Any]:
    """Render the descriptor in xcodegen's project spec schema."""
    project_dir = Path(project_dir)

    config_settings = {}
    for target in BuildTarget:
        config_settings[search_path_key(target)] = [INHERITED]
    for lib in descriptor.libraries:
        if lib.library_path:
            lib_dir = os.path.relpath(os.path.dirname(lib.library_path), project_dir)
            config_settings[search_path_key(lib.target)] = [INHERITED, lib_dir]

    sources = [SOURCES_DIR]
    for asset in descriptor.assets:
        sources.append({
            "path": asset.path,
            "buildPhase": {"copyFiles": {"destination": "resources", "subpath": asset.subpath}},
        })

    properties = {"UILaunchStoryboardName": "LaunchScreen"}
    if descriptor.orientations:
        properties["UISupportedInterfaceOrientations"] = list(descriptor.orientations)

    target = {
        "type": "application",
        "platform": "iOS",
        "deploymentTarget": descriptor.deployment_target,
        "sources": sources,
        "settings": {
            "base": {
                "ENABLE_BITCODE": "NO",
                "CLANG_CXX_LANGUAGE_STANDARD": "c++11",
                "CLANG_CXX_LIBRARY": "libc++",
                "OTHER_LDFLAGS": [INHERITED, "-lc++abi", f"-l{descriptor.name}"],
                "HEADER_SEARCH_PATHS": [INHERITED, SOURCES_DIR],
                "PRODUCT_BUNDLE_IDENTIFIER": descriptor.bundle_identifier,
                BUILD_TARGETS_SETTING: " ".join(t.triple for t in descriptor.build_targets),
            },
            "configs": {descriptor.profile.value: config_settings},
        },
        "dependencies": [{"sdk": name} for name in descriptor.dependencies],
        "info": {"path": INFO_PLIST, "properties": properties},
        "scheme": {
            "environmentVariables": [
                {"variable": name, "value": value, "isEnabled": True}
                for name, value in SCHEME_ENVIRONMENT
            ],
        },
    }

    return {
        "name": descriptor.name,
        "configs": {
            BuildProfile.DEBUG.configuration: BuildProfile.DEBUG.value,
            BuildProfile.RELEASE.configuration: BuildProfile.RELEASE.value,
        },
        "options": {"bundleIdPrefix": descriptor.bundle_id_prefix},
        "settings": _signing_settings(descriptor.signing),
        "targets": {descriptor.name: target},
    }


def write(descriptor: ProjectDescriptor, project_dir) -> Path:
    """Replace `<project_dir>/project.yml` with the descriptor."""
    path = Path(project_dir) / "project.yml"
    content = yaml.safe_dump(
        to_xcodegen(descriptor, project_dir), sort_keys=False, default_flow_style=False
    )
    with GENERATED_DIR_LOCK:
        atomic_write_text(path, content)
    return path


def read_descriptor(path) -> ProjectDescriptor:
    """
    Parse a project.yml written by `write` back into a descriptor.

    Raises:
        GenerateFailed: file missing or not produced by rsxcode
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        name = data["name"]
        target = data["targets"][name]
        settings = target["settings"]
        base = settings["base"]
        profile_value, config_settings = next(iter(settings["configs"].items()))
    except (OSError, yaml.YAMLError, KeyError, TypeError, StopIteration) as e:
        raise GenerateFailed(f"Can't read project descriptor {path}: {e}")

    project_dir = path.parent
    libraries = []
    for triple in base.get(BUILD_TARGETS_SETTING, "").split():
        build_target = BuildTarget.from_triple(triple)
        search_paths = config_settings.get(search_path_key(build_target), [])
        library_path = None
        if len(search_paths) > 1:
            lib_dir = os.path.normpath(project_dir / search_paths[-1])
            library_path = os.path.join(lib_dir, f"lib{name}.a")
        libraries.append(TargetLibrary(build_target, library_path))

    project_settings = data.get("settings") or {}
    signing = None
    if project_settings.get("DEVELOPMENT_TEAM"):
        signing = SigningSettings(
            identity=project_settings.get("CODE_SIGN_IDENTITY", ""),
            team=project_settings["DEVELOPMENT_TEAM"],
        )

    assets = tuple(
        AssetFolder(source["path"], source["buildPhase"]["copyFiles"]["subpath"])
        for source in target.get("sources", [])
        if isinstance(source, dict)
    )
    properties = (target.get("info") or {}).get("properties") or {}

    return ProjectDescriptor(
        name=name,
        bundle_id_prefix=data.get("options", {}).get("bundleIdPrefix", ""),
        bundle_identifier=base.get("PRODUCT_BUNDLE_IDENTIFIER", ""),
        deployment_target=str(target.get("deploymentTarget", "")),
        libraries=tuple(libraries),
        dependencies=tuple(d["sdk"] for d in target.get("dependencies", []) if "sdk" in d),
        assets=assets,
        signing=signing,
        orientations=tuple(properties.get("UISupportedInterfaceOrientations", [])),
        profile=BuildProfile(profile_value),
    )