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

from rsxcode.apple.inventory import Inventory
from rsxcode.utils.context.command import CliCommand
from rsxcode.utils.context.context import CliContext
from rsxcode.utils.context.namespace import CliNameSpace


class Devices(CliCommand):
    name = "devices"
    aliases = ("d",)

    def description(self) -> str:
        return """
        List connected devices and booted simulators.

        Examples:
            rsxcode devices
            rsxcode devices --all      # include simulators that are shut down
        """

    def add_arguments(self, parser: argparse.ArgumentParser):
        parser.add_argument(
            "--all",
            action="store_true",
            help="List every available simulator, not only booted ones",
        )

    def exec(self, context: CliContext, args: CliNameSpace):
        snapshot = Inventory(context.executor).snapshot()
        simulators = snapshot.simulators if args.all else snapshot.booted_simulators

        print("Simulators:" if args.all else "Booted simulators:")
        if not simulators:
            print("    (none)")
        for simulator in simulators:
            print(f"    {simulator.name:<28} {simulator.id}  iOS {simulator.os_version}  {simulator.boot_state.value}")

        print("Connected devices:")
        if not snapshot.devices:
            print("    (none)")
        for device in snapshot.devices:
            print(f"    {device.name:<28} {device.id}  iOS {device.os_version}  {device.connection}")
        return snapshot
