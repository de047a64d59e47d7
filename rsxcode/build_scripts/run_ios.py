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
Install and launch a built app.

Simulators go through `xcrun simctl`, devices through `xcrun devicectl`.
Install always completes before launch starts.
"""

from typing import Optional

from rsxcode.apple.inventory import Inventory, Simulator
from rsxcode.build_scripts.build_ios import ArtifactSet
from rsxcode.errors import STAGE_INSTALL, STAGE_LAUNCH, InstallFailed, LaunchFailed, RsxcodeError
from rsxcode.utils.cmd.cmd_util import Command, Executor
from rsxcode.utils.console import print_ok, print_step, print_tool_output


class RunOrchestrator:
    def __init__(self, executor: Executor, inventory: Optional[Inventory] = None):
        self.executor = executor
        self.inventory = inventory or Inventory(executor)

    def run(self, artifacts: ArtifactSet):
        resolved = artifacts.destination
        destination = resolved.destination
        app_path = str(artifacts.app_bundle_path)
        bundle_id = artifacts.bundle_identifier
        try:
            if isinstance(destination, Simulator):
                if not destination.is_booted:
                    destination = self.inventory.boot(destination.id)
                self._install(Command("xcrun", ("simctl", "install", destination.id, app_path),
                                      stage=STAGE_INSTALL), app_path, "simctl")
                self._launch(Command("xcrun", ("simctl", "launch", destination.id, bundle_id),
                                     stage=STAGE_LAUNCH), bundle_id, "simctl")
            else:
                self._install(Command("xcrun", ("devicectl", "device", "install", "app",
                                                "--device", destination.id, app_path),
                                      stage=STAGE_INSTALL), app_path, "devicectl")
                self._launch(Command("xcrun", ("devicectl", "device", "process", "launch",
                                               "--device", destination.id, bundle_id),
                                     stage=STAGE_LAUNCH), bundle_id, "devicectl")
        except RsxcodeError as e:
            e.with_destination(destination)
            raise
        print_ok(f"{bundle_id} is running on {destination}")

    def _install(self, command: Command, app_path: str, tool: str):
        print_step(f"install: {app_path}")
        outcome = self.executor.execute(command)
        if not outcome.success:
            print_tool_output(outcome.stdout, outcome.stderr)
            raise InstallFailed(app_path, tool, outcome.returncode, outcome.output)

    def _launch(self, command: Command, bundle_id: str, tool: str):
        print_step(f"launch: {bundle_id}")
        outcome = self.executor.execute(command)
        if not outcome.success:
            print_tool_output(outcome.stdout, outcome.stderr)
            raise LaunchFailed(bundle_id, tool, outcome.returncode, outcome.output)
