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

from rsxcode.apple.inventory import Inventory
from rsxcode.build_scripts.run_ios import RunOrchestrator
from rsxcode.commands._package import PackageCommand
from rsxcode.utils.context.context import CliContext
from rsxcode.utils.context.namespace import CliNameSpace


class Run(PackageCommand):
    name = "run"
    aliases = ("r",)
    selects_destination = True

    def description(self) -> str:
        return """
        Build the app, install it on the chosen device or simulator and
        launch it. A simulator that is not running is booted first.

        Examples:
            rsxcode run
            rsxcode run --release --device booted-simulator-udid
        """

    def exec(self, context: CliContext, args: CliNameSpace):
        manifest = self.load(context, args).require_staticlib()
        destination = self.resolve(context, args, manifest)
        artifacts = self.orchestrator(context, args).build(manifest, destination)
        RunOrchestrator(context.executor, Inventory(context.executor)).run(artifacts)
