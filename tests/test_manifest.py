"""Tests for loading and validating the `package.metadata.ios` manifest section."""

from __future__ import annotations

import dataclasses
from pathlib import Path

import pytest

from rsxcode.apple.manifest import DeviceType, Orientation, load, load_manifest
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
    UnknownBuildTarget,
)
from .conftest import write_manifest


def raw_manifest(**ios) -> dict:
    ios.setdefault("build_targets", ["aarch64-apple-ios"])
    return {
        "package": {"name": "my-app", "version": "0.1.0", "metadata": {"ios": ios}},
        "lib": {"crate-type": ["staticlib"]},
    }


# =============================================================================
# Defaults and derived values
# =============================================================================


class TestDefaults:
    def test_defaults_applied(self, tmp_path: Path):
        manifest = load(raw_manifest(), tmp_path / "Cargo.toml")
        assert manifest.deployment_target == "12"
        assert manifest.bundle_id_prefix == "com.rust"
        assert manifest.device_type is None
        assert manifest.assets == ()

    def test_app_name_replaces_dashes(self, tmp_path: Path):
        manifest = load(raw_manifest(), tmp_path / "Cargo.toml")
        assert manifest.app_name == "my_app"

    def test_lib_name_wins_over_package_name(self, tmp_path: Path):
        raw = raw_manifest()
        raw["lib"]["name"] = "engine-core"
        manifest = load(raw, tmp_path / "Cargo.toml")
        assert manifest.app_name == "engine_core"

    def test_bundle_identifier(self, tmp_path: Path):
        manifest = load(raw_manifest(bundle_id_prefix="org.example"), tmp_path / "Cargo.toml")
        assert manifest.bundle_identifier == "org.example.my-app"

    def test_duplicate_targets_collapsed(self, tmp_path: Path):
        raw = raw_manifest(build_targets=["aarch64-apple-ios", "aarch64-apple-ios", "x86_64-apple-ios"])
        manifest = load(raw, tmp_path / "Cargo.toml")
        assert manifest.build_targets == (BuildTarget.ARM, BuildTarget.SIM)

    def test_full_section(self, tmp_path: Path):
        (tmp_path / "assets").mkdir()
        raw = raw_manifest(
            build_targets=["aarch64-apple-ios-sim"],
            dependencies=["GLKit.framework"],
            deployment_target="15.0",
            code_sign_identity="Apple Development",
            development_team="ABCDE12345",
            device_id="SIM-1",
            device_type="simulator",
            default_simulator="iPhone 15",
            assets=["assets"],
            supported_interface_orientations=["UIInterfaceOrientationPortrait"],
        )
        manifest = load(raw, tmp_path / "Cargo.toml")
        assert manifest.dependencies == ("GLKit.framework",)
        assert manifest.deployment_target == "15.0"
        assert manifest.development_team == "ABCDE12345"
        assert manifest.device_type is DeviceType.SIMULATOR
        assert manifest.default_simulator == "iPhone 15"
        assert manifest.assets == ("assets",)
        assert manifest.orientations == (Orientation.PORTRAIT,)


# =============================================================================
# Validation
# =============================================================================


class TestValidation:
    def test_unknown_triple(self, tmp_path: Path):
        with pytest.raises(UnknownBuildTarget) as exc:
            load(raw_manifest(build_targets=["armv7-apple-ios"]), tmp_path / "Cargo.toml")
        assert exc.value.triple == "armv7-apple-ios"
        assert exc.value.exit_code == 2

    def test_empty_targets(self, tmp_path: Path):
        with pytest.raises(MissingBuildTargets):
            load(raw_manifest(build_targets=[]), tmp_path / "Cargo.toml")

    def test_missing_section(self, tmp_path: Path):
        with pytest.raises(MissingIosMetadata):
            load({"package": {"name": "x"}}, tmp_path / "Cargo.toml")

    def test_invalid_device_type(self, tmp_path: Path):
        with pytest.raises(InvalidDeviceType):
            load(raw_manifest(device_type="watch"), tmp_path / "Cargo.toml")

    def test_missing_asset_folder(self, tmp_path: Path):
        with pytest.raises(InvalidAssetPath) as exc:
            load(raw_manifest(assets=["missing"]), tmp_path / "Cargo.toml")
        assert exc.value.path == "missing"

    @pytest.mark.parametrize("prefix", ["", "com..rust", ".com", "com.rust!", "com rust"])
    def test_malformed_bundle_prefix(self, tmp_path: Path, prefix: str):
        with pytest.raises(MalformedBundleId):
            load(raw_manifest(bundle_id_prefix=prefix), tmp_path / "Cargo.toml")

    def test_invalid_orientation(self, tmp_path: Path):
        with pytest.raises(InvalidOrientation):
            load(raw_manifest(supported_interface_orientations=["Sideways"]), tmp_path / "Cargo.toml")

    def test_staticlib_required_on_demand(self, tmp_path: Path):
        raw = raw_manifest()
        raw["lib"]["crate-type"] = ["cdylib"]
        manifest = load(raw, tmp_path / "Cargo.toml")
        with pytest.raises(MissingStaticLib):
            manifest.require_staticlib()


# =============================================================================
# Reading from disk
# =============================================================================


class TestLoadManifest:
    def test_reads_file(self, tmp_path: Path):
        manifest = load_manifest(write_manifest(tmp_path))
        assert manifest.package_name == "my-app"
        assert manifest.package_root == tmp_path.resolve()
        assert len(manifest.build_targets) == 3

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ManifestNotFound):
            load_manifest(tmp_path / "Cargo.toml")

    def test_bad_toml(self, tmp_path: Path):
        path = tmp_path / "Cargo.toml"
        path.write_text("[package\nname = ")
        with pytest.raises(ConfigError):
            load_manifest(path)

    def test_model_is_immutable(self, manifest_factory):
        manifest = manifest_factory()
        with pytest.raises(dataclasses.FrozenInstanceError):
            manifest.deployment_target = "16"
