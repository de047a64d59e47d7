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

from rsxcode.commands._package import PackageCommand
from rsxcode.utils.context.context import CliContext
from rsxcode.utils.context.namespace import CliNameSpace


class Build(PackageCommand):
    name = "build"
    aliases = ("b",)
    selects_destination = True

    def description(self) -> str:
        return """
        Compile the static library for the chosen device or simulator and
        build the app with xcodebuild.

        Without --device the destination comes from `device_id` in Cargo.toml,
        or else the single connected device, or else the booted simulator.

        Examples:
            rsxcode build
            rsxcode build --release
            rsxcode build --device 4F57337E-1AF2-4D30-9726-87040063C016
        """

    def exec(self, context: CliContext, args: CliNameSpace):
        manifest = self.load(context, args).require_staticlib()
        destination = self.resolve(context, args, manifest)
        return self.orchestrator(context, args).build(manifest, destination)
