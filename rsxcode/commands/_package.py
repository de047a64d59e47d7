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

import argparse
import os

from rsxcode.apple.inventory import Inventory
from rsxcode.apple.manifest import ManifestModel, load_manifest
from rsxcode.apple.resolver import DestinationRequest, ResolvedDestination, TargetResolver
from rsxcode.apple.targets import BuildProfile
from rsxcode.build_scripts.build_ios import BuildOptions, BuildOrchestrator
from rsxcode.utils.context.command import CliCommand
from rsxcode.utils.context.context import CliContext
from rsxcode.utils.context.namespace import CliNameSpace


# Base class of the subcommands working on a Cargo package
class PackageCommand(CliCommand):
    # whether `--device` is accepted
    selects_destination = False

    def add_arguments(self, parser: argparse.ArgumentParser):
        parser.add_argument(
            "--manifest-path",
            type=str,
            default="Cargo.toml",
            help="Path to Cargo.toml (default: ./Cargo.toml)",
        )
        parser.add_argument(
            "--release",
            action="store_true",
            help="Build artifacts in release mode",
        )
        parser.add_argument(
            "--target-dir",
            type=str,
            default=None,
            help="Directory for all generated artifacts (default: <package>/target)",
        )
        parser.add_argument(
            "-j",
            "--jobs",
            type=int,
            default=None,
            help="Number of targets compiled at once (default: CPU count)",
        )
        if self.selects_destination:
            parser.add_argument(
                "--device",
                type=str,
                default=None,
                help="Device or simulator id to use instead of the manifest's or an automatic choice",
            )

    def load(self, context: CliContext, args: CliNameSpace) -> ManifestModel:
        return load_manifest(os.path.join(context.cwd, args.manifest_path))

    def orchestrator(self, context: CliContext, args: CliNameSpace) -> BuildOrchestrator:
        target_dir = None
        if args.target_dir:
            target_dir = os.path.join(context.cwd, args.target_dir)
        options = BuildOptions(
            profile=BuildProfile.RELEASE if args.release else BuildProfile.DEBUG,
            target_dir=target_dir,
            cargo_args=tuple(args.passthrough),
            jobs=args.jobs,
        )
        return BuildOrchestrator(context.executor, options)

    def resolve(self, context: CliContext, args: CliNameSpace,
                manifest: ManifestModel) -> ResolvedDestination:
        request = DestinationRequest.from_manifest(manifest, getattr(args, "device", None))
        resolver = TargetResolver(Inventory(context.executor))
        return resolver.resolve(request, manifest)
