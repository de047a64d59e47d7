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
import sys

from rsxcode.apple.inventory import Inventory
from rsxcode.utils.console import print_error
from rsxcode.utils.context.command import CliCommand
from rsxcode.utils.context.context import CliContext
from rsxcode.utils.context.namespace import CliNameSpace


class Boot(CliCommand):
    name = "boot"

    def description(self) -> str:
        return """
        Boot an iOS simulator and open Simulator.app. Booting a simulator that
        is already running succeeds without doing anything.

        Examples:
            rsxcode boot                                        # list simulators
            rsxcode boot 4F57337E-1AF2-4D30-9726-87040063C016
        """

    def add_arguments(self, parser: argparse.ArgumentParser):
        parser.add_argument(
            "device_id",
            type=str,
            nargs="?",
            default=None,
            help="UDID of the simulator, see `rsxcode devices --all`",
        )
        parser.add_argument(
            "--timeout",
            type=float,
            default=None,
            help="Seconds to wait for the simulator to boot (default: 120)",
        )

    def exec(self, context: CliContext, args: CliNameSpace):
        inventory = Inventory(context.executor)
        if args.timeout is not None:
            inventory.boot_timeout = args.timeout

        if not args.device_id:
            print_error("Missing simulator id. Available simulators:")
            for simulator in inventory.list_simulators():
                if simulator.available:
                    print(f"    {simulator.name:<28} {simulator.id}  iOS {simulator.os_version}  {simulator.boot_state.value}")
            sys.exit(1)

        return inventory.boot(args.device_id)
