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
Error taxonomy of rsxcode.

Every error names the stage that failed and, once known, the destination
involved. The command line maps each family to its own exit code:

    ConfigError       2   bad manifest, raised before any external process
    ResolutionError   3   no/ambiguous destination or missing signing
    ToolingError      4   an external tool exited non-zero or is missing
    BootError         5   simulator could not be booted in time
    Cancelled       130   interrupted by the user
"""

from typing import Optional, Sequence

STAGE_CONFIG = "config"
STAGE_RESOLVE = "resolve"
STAGE_GENERATE = "generate"
STAGE_COMPILE = "compile"
STAGE_MERGE = "merge"
STAGE_NATIVE_BUILD = "native-build"
STAGE_INSTALL = "install"
STAGE_LAUNCH = "launch"
STAGE_BOOT = "boot"
STAGE_QUERY = "query"


class RsxcodeError(Exception):
    """Base class of every error rsxcode reports to the user."""

    exit_code = 1
    default_stage = None

    def __init__(self, message: str, stage: Optional[str] = None, destination=None):
        super().__init__(message)
        self.message = message
        self.stage = stage or self.default_stage
        self.destination = destination

    def with_destination(self, destination):
        if self.destination is None:
            self.destination = destination
        return self

    def __str__(self):
        text = self.message
        if self.stage:
            text = f"[{self.stage}] {text}"
        if self.destination is not None:
            text = f"{text} (destination: {self.destination})"
        return text


# ---------------------------------------------------------------- config


class ConfigError(RsxcodeError):
    exit_code = 2
    default_stage = STAGE_CONFIG


class ManifestNotFound(ConfigError):
    def __init__(self, path):
        super().__init__(f"Manifest not found: {path}")
        self.path = path


class MissingIosMetadata(ConfigError):
    def __init__(self):
        super().__init__(
            "Missing `package.metadata.ios` section. Please check Cargo.toml."
        )


class UnknownBuildTarget(ConfigError):
    def __init__(self, triple):
        super().__init__(f"Unknown build target `{triple}`")
        self.triple = triple


class MissingBuildTargets(ConfigError):
    def __init__(self):
        super().__init__(
            "Missing `build_targets` in `package.metadata.ios` section. Please check Cargo.toml."
        )


class MissingStaticLib(ConfigError):
    def __init__(self):
        super().__init__(
            "Missing `staticlib` crate-type in `lib` section. Please check Cargo.toml."
        )


class InvalidAssetPath(ConfigError):
    def __init__(self, path):
        super().__init__(f"Asset folder does not exist: {path}")
        self.path = path


class MalformedBundleId(ConfigError):
    def __init__(self, value):
        super().__init__(f"Malformed bundle id prefix `{value}`")
        self.value = value


class InvalidDeviceType(ConfigError):
    def __init__(self, value):
        super().__init__(f"Invalid device_type `{value}`, expected `device` or `simulator`")
        self.value = value


class InvalidOrientation(ConfigError):
    def __init__(self, value):
        super().__init__(f"Unknown interface orientation `{value}`")
        self.value = value


class ProjectNotFound(ConfigError):
    def __init__(self, path):
        super().__init__(f"Can't find xcodeproj at {path}. Build or generate it first")
        self.path = path


# ------------------------------------------------------------ resolution


class ResolutionError(RsxcodeError):
    exit_code = 3
    default_stage = STAGE_RESOLVE


class DestinationNotFound(ResolutionError):
    def __init__(self, identifier):
        super().__init__(f"No connected device or simulator matches `{identifier}`")
        self.identifier = identifier


class AmbiguousDestination(ResolutionError):
    def __init__(self, candidates: Sequence):
        self.candidates = tuple(candidates)
        listed = "\n".join(f"    {c}" for c in self.candidates)
        super().__init__(
            f"{len(self.candidates)} possible destinations, pass one with --device:\n{listed}"
        )


class MissingSigningIdentity(ResolutionError):
    def __init__(self, destination=None):
        super().__init__(
            "Installing on a device requires `development_team` in `package.metadata.ios`. "
            "Run `rsxcode teams` to list the available signing teams.",
            destination=destination,
        )


class NoCompatibleBuildTarget(ResolutionError):
    def __init__(self, destination, wanted: Sequence[str]):
        super().__init__(
            f"None of the declared build_targets can run here, add one of: {', '.join(wanted)}",
            destination=destination,
        )
        self.wanted = tuple(wanted)


# --------------------------------------------------------------- tooling


class ToolingError(RsxcodeError):
    exit_code = 4

    def __init__(self, message: str, tool: str, exit_status: Optional[int] = None,
                 output: str = "", stage: Optional[str] = None, destination=None):
        if exit_status is not None:
            message = f"{message} (`{tool}` exited with status {exit_status})"
        super().__init__(message, stage=stage, destination=destination)
        self.tool = tool
        self.exit_status = exit_status
        self.output = output


class ToolNotFound(ToolingError):
    def __init__(self, tool: str, stage: Optional[str] = None):
        super().__init__(f"`{tool}` is not installed or not in PATH", tool=tool, stage=stage)


class CompileFailed(ToolingError):
    default_stage = STAGE_COMPILE

    def __init__(self, triple: str, exit_status: int, output: str = ""):
        super().__init__(f"Failed to compile for `{triple}`", tool="cargo",
                         exit_status=exit_status, output=output)
        self.triple = triple


class MergeFailed(ToolingError):
    default_stage = STAGE_MERGE

    def __init__(self, message: str, exit_status: Optional[int] = None, output: str = ""):
        super().__init__(message, tool="lipo", exit_status=exit_status, output=output)


class GenerateFailed(ToolingError):
    default_stage = STAGE_GENERATE

    def __init__(self, message: str, exit_status: Optional[int] = None, output: str = ""):
        super().__init__(message, tool="xcodegen", exit_status=exit_status, output=output)


class DescriptorIncomplete(ToolingError):
    default_stage = STAGE_GENERATE

    def __init__(self, missing: Sequence[str]):
        super().__init__(
            f"No built library for: {', '.join(missing)}", tool="rsxcode"
        )
        self.missing = tuple(missing)


class NativeBuildFailed(ToolingError):
    default_stage = STAGE_NATIVE_BUILD

    def __init__(self, exit_status: int, output: str = ""):
        super().__init__("Failed to build project with xcodebuild", tool="xcodebuild",
                         exit_status=exit_status, output=output)


class InstallFailed(ToolingError):
    default_stage = STAGE_INSTALL

    def __init__(self, app_path, tool: str, exit_status: Optional[int] = None, output: str = ""):
        super().__init__(f"Failed to install {app_path}", tool=tool,
                         exit_status=exit_status, output=output)
        self.app_path = app_path


class LaunchFailed(ToolingError):
    default_stage = STAGE_LAUNCH

    def __init__(self, bundle_id: str, tool: str, exit_status: Optional[int] = None, output: str = ""):
        super().__init__(f"Installed, but failed to launch {bundle_id}", tool=tool,
                         exit_status=exit_status, output=output)
        self.bundle_id = bundle_id


# ------------------------------------------------------------------ boot


class BootError(RsxcodeError):
    exit_code = 5
    default_stage = STAGE_BOOT


class BootTimeout(BootError):
    def __init__(self, simulator_id: str, timeout: float):
        super().__init__(
            f"Simulator {simulator_id} did not reach the Booted state within {timeout:.0f}s"
        )
        self.simulator_id = simulator_id
        self.timeout = timeout


# ----------------------------------------------------------- cancellation


class Cancelled(RsxcodeError):
    exit_code = 130

    def __init__(self, command: str = "", stage: Optional[str] = None):
        message = "Interrupted"
        if command:
            message = f"Interrupted while running `{command}`"
        super().__init__(message, stage=stage)
