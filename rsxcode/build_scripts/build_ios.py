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
iOS app build orchestration.

Sequence of a build, aborting on the first failure:
- Compile the static library once per required target triple, in parallel
- Merge the simulator libraries into one universal library with lipo
- Write project.yml and the native sources, then run xcodegen
- Build the app with xcodebuild

`check` and `generate` run the descriptor part of the sequence without
building an app.

Output:
    - project: target/xcodegen/<app>/<app>.xcodeproj
    - app: target/xcodegen/<app>/build/Build/Products/<Config>-<sdk>/<app>.app
"""

import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Tuple

from rsxcode.apple import xcodegen
from rsxcode.apple.manifest import ManifestModel
from rsxcode.apple.resolver import ResolvedDestination
from rsxcode.apple.targets import BuildProfile, BuildTarget, xcode_arch
from rsxcode.build_scripts.build_utils import (
    GENERATED_DIR_LOCK,
    BuildLayout,
    lipo_libs,
    render_scaffold,
)
from rsxcode.errors import (
    STAGE_COMPILE,
    STAGE_GENERATE,
    STAGE_NATIVE_BUILD,
    Cancelled,
    CompileFailed,
    GenerateFailed,
    NativeBuildFailed,
    RsxcodeError,
)
from rsxcode.utils.cmd.cmd_util import Command, Executor, ExitOutcome
from rsxcode.utils.console import (
    print_debug,
    print_elapsed,
    print_error,
    print_info,
    print_ok,
    print_step,
    print_tool_output,
)


ABORT_POLL_SECOND = 0.2


@dataclass(frozen=True)
class BuildOptions:
    profile: BuildProfile = BuildProfile.DEBUG
    target_dir: Optional[str] = None
    # forwarded to cargo untouched
    cargo_args: Tuple[str, ...] = ()
    jobs: Optional[int] = None


@dataclass(frozen=True)
class ArtifactSet:
    app_bundle_path: Path
    destination: ResolvedDestination
    bundle_identifier: str
    descriptor_path: Path


class BuildOrchestrator:
    def __init__(self, executor: Executor, options: Optional[BuildOptions] = None):
        self.executor = executor
        self.options = options or BuildOptions()

    def layout(self, manifest: ManifestModel) -> BuildLayout:
        target_dir = self.options.target_dir or (manifest.package_root / "target")
        return BuildLayout(Path(target_dir).resolve(), manifest.app_name, self.options.profile)

    # ------------------------------------------------------------ modes

    def check(self, manifest: ManifestModel) -> xcodegen.ProjectDescriptor:
        """
        Write the descriptor for every declared target and `cargo check` each one.

        Neither xcodegen nor xcodebuild is run.
        """
        layout = self.layout(manifest)
        descriptor = xcodegen.generate(
            manifest, layout.cargo_libraries(manifest.build_targets), profile=self.options.profile
        )
        self.write_project(manifest, layout, descriptor)
        self.compile(manifest, manifest.build_targets, subcommand="check")
        print_ok(f"Checked {len(manifest.build_targets)} targets")
        return descriptor

    def generate(self, manifest: ManifestModel) -> Path:
        """Regenerate the Xcode project without compiling anything."""
        manifest.require_staticlib()
        layout = self.layout(manifest)
        self.check_xcodegen()
        descriptor = xcodegen.generate(
            manifest, layout.cargo_libraries(manifest.build_targets), profile=self.options.profile
        )
        self.write_project(manifest, layout, descriptor)
        self.run_xcodegen(layout)
        print_ok(f"Generated {layout.xcodeproj_path}")
        return layout.xcodeproj_path

    def build(self, manifest: ManifestModel, destination: ResolvedDestination) -> ArtifactSet:
        """
        Build the app for a resolved destination.

        Returns:
            ArtifactSet of the built app

        Raises:
            ToolingError subclasses naming the failed stage, Cancelled on interrupt
        """
        manifest.require_staticlib()
        start = time.time()
        layout = self.layout(manifest)
        try:
            self.check_xcodegen()

            outputs = self.compile(manifest, destination.build_targets)
            outputs = self.merge(layout, outputs)

            descriptor = xcodegen.generate(
                manifest, outputs, destination=destination, profile=self.options.profile
            ).require_artifacts()
            descriptor_path = self.write_project(manifest, layout, descriptor)
            self.run_xcodegen(layout)

            app_path = self.xcodebuild(layout, destination)
        except RsxcodeError as e:
            e.with_destination(destination)
            raise

        print_elapsed("Build finished", time.time() - start)
        print_ok(f"Built {app_path}")
        return ArtifactSet(app_path, destination, manifest.bundle_identifier, descriptor_path)

    # ----------------------------------------------------------- stages

    def compile(self, manifest: ManifestModel, targets: Sequence[BuildTarget],
                subcommand: str = "build") -> Dict[BuildTarget, Path]:
        """
        Run `cargo <subcommand>` once per target, in parallel.

        The first failure terminates the cargo processes still running and
        is raised. Output is streamed for a single target and captured when
        several run at once.
        """
        layout = self.layout(manifest)
        print_step(f"cargo {subcommand}: {', '.join(t.triple for t in targets)}")
        capture = len(targets) > 1
        jobs = self.options.jobs or os.cpu_count() or 1
        max_workers = max(1, min(len(targets), jobs))
        aborted = threading.Event()

        def run_cargo(target: BuildTarget) -> Optional[ExitOutcome]:
            if aborted.is_set():
                return None
            return self.executor.execute(self.cargo_command(manifest, layout, target, subcommand, capture))

        pool = ThreadPoolExecutor(max_workers=max_workers)
        futures = {pool.submit(run_cargo, target): target for target in targets}
        try:
            for future in as_completed(futures):
                target = futures[future]
                outcome = future.result()
                if outcome is None:
                    continue
                if not outcome.success:
                    print_error(f"cargo {subcommand} failed for {target.triple}")
                    if capture:
                        print_tool_output(outcome.stdout, outcome.stderr)
                    raise CompileFailed(target.triple, outcome.returncode, outcome.output)
                print_ok(f"{target.triple} finished")
        except KeyboardInterrupt:
            self._abort(futures, aborted)
            raise Cancelled(f"cargo {subcommand}", stage=STAGE_COMPILE)
        except BaseException:
            self._abort(futures, aborted)
            raise
        finally:
            pool.shutdown(wait=True)

        return layout.cargo_libraries(targets)

    def _abort(self, futures, aborted: threading.Event):
        aborted.set()
        for future in futures:
            future.cancel()
        # a worker may start cargo right after a terminate, so keep
        # terminating until every worker has returned
        pending = [future for future in futures if not future.done()]
        while True:
            self.executor.terminate_all()
            if not pending:
                break
            _, pending = wait(pending, timeout=ABORT_POLL_SECOND)

    def cargo_command(self, manifest: ManifestModel, layout: BuildLayout, target: BuildTarget,
                      subcommand: str = "build", capture: bool = False) -> Command:
        args = [subcommand, "--manifest-path", str(manifest.manifest_path), "--target", target.triple]
        if self.options.profile is BuildProfile.RELEASE:
            args.append("--release")
        args += ["--target-dir", str(layout.target_dir)]
        args += list(self.options.cargo_args)
        return Command("cargo", tuple(args), cwd=str(manifest.package_root),
                       capture=capture, stage=STAGE_COMPILE)

    def merge(self, layout: BuildLayout, outputs: Mapping[BuildTarget, Path]) -> Dict[BuildTarget, Path]:
        """Merge several simulator libraries into one universal library."""
        if len(outputs) < 2:
            return dict(outputs)
        print_step("lipo: universal simulator library")
        universal = lipo_libs(
            self.executor,
            list(outputs.values()),
            layout.universal_library,
            archs=[target.arch for target in outputs],
        )
        print_ok(f"Merged {layout.universal_library}")
        return {target: universal for target in outputs}

    def write_project(self, manifest: ManifestModel, layout: BuildLayout,
                      descriptor: xcodegen.ProjectDescriptor) -> Path:
        print_step(f"project: {layout.descriptor_path}")
        with GENERATED_DIR_LOCK:
            layout.src_dir.mkdir(parents=True, exist_ok=True)
            render_scaffold(layout.src_dir, manifest.app_name, manifest.bundle_identifier)
        path = xcodegen.write(descriptor, layout.project_dir)
        print_debug(f"Descriptor targets: {', '.join(t.triple for t in descriptor.build_targets)}")
        return path

    def check_xcodegen(self):
        outcome = self.executor.execute(Command("xcodegen", ("version",), stage=STAGE_GENERATE))
        if not outcome.success or not outcome.stdout.strip().startswith("Version:"):
            raise GenerateFailed(
                "`xcodegen` is not working, install it with `brew install xcodegen`",
                exit_status=outcome.returncode if not outcome.success else None,
                output=outcome.output,
            )
        print_debug(f"xcodegen {outcome.stdout.strip()}")

    def run_xcodegen(self, layout: BuildLayout):
        print_info("Generating xcode project")
        outcome = self.executor.execute(Command(
            "xcodegen", ("generate", "--use-cache"), cwd=str(layout.project_dir), stage=STAGE_GENERATE,
        ))
        if not outcome.success:
            print_tool_output(outcome.stdout, outcome.stderr)
            raise GenerateFailed("Failed to generate xcode project",
                                 exit_status=outcome.returncode, output=outcome.output)

    def xcodebuild_command(self, layout: BuildLayout, destination: ResolvedDestination) -> Command:
        args = [
            "-derivedDataPath", "build",
            "-scheme", layout.app_name,
            "-configuration", self.options.profile.configuration,
            "-allowProvisioningUpdates",
        ]
        if destination.is_device:
            args += ["-sdk", destination.sdk, "-arch", xcode_arch(destination.destination.cpu_architecture)]
            if destination.signing is not None:
                args += [
                    f"CODE_SIGN_IDENTITY={destination.signing.identity}",
                    f"DEVELOPMENT_TEAM={destination.signing.team}",
                ]
        else:
            selector = f"platform=iOS Simulator,id={destination.destination.id}"
            # a single-slice library only links when xcodebuild targets that slice,
            # x86_64 on Apple silicon included
            if len(destination.build_targets) == 1:
                selector += f",arch={destination.build_targets[0].arch}"
            args += ["-destination", selector]
        return Command("xcodebuild", tuple(args), cwd=str(layout.project_dir), stage=STAGE_NATIVE_BUILD)

    def xcodebuild(self, layout: BuildLayout, destination: ResolvedDestination) -> Path:
        print_step(f"xcodebuild: {destination}")
        print_info("This may take a while")
        outcome = self.executor.execute(self.xcodebuild_command(layout, destination))
        if not outcome.success:
            print_tool_output(outcome.stdout, outcome.stderr)
            raise NativeBuildFailed(outcome.returncode, outcome.output)
        return layout.app_bundle(destination.sdk)
