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
import importlib
import os
import sys

from rsxcode.errors import STAGE_QUERY, RsxcodeError, ToolingError
from rsxcode.utils.console import print_error, print_tool_output
from rsxcode.utils.context.command import CliCommand
from rsxcode.utils.context.context import CliContext
from rsxcode.utils.context.namespace import CliNameSpace

SCRIPT_PATH = os.path.split(os.path.realpath(__file__))[0]

ALIASES = {
    "c": "check",
    "b": "build",
    "r": "run",
    "g": "generate",
    "o": "open",
    "d": "devices",
    "t": "teams",
}


# Root Class for Command Line Interface
class Cli(CliCommand):
    name = ""

    def description(self) -> str:
        return """rsxcode - Build and run Rust static libraries as iOS apps

Reads `package.metadata.ios` from Cargo.toml, compiles the library for every
required target, generates an Xcode project with xcodegen, builds it with
xcodebuild and installs it on a device or simulator.

USAGE:
    rsxcode <command> [options] [-- cargo options]

COMMANDS:
    check, c      Write the project descriptor and `cargo check` every target
    build, b      Build the app for a device or simulator
    run, r        Build, install and launch the app
    generate, g   Regenerate the Xcode project
    open, o       Open the generated project in Xcode
    devices, d    List connected devices and booted simulators
    teams, t      List signing teams in the keychain
    boot          Boot a simulator

ENVIRONMENT:
    RSXCODE_LOG   error | warn | info (default) | debug | trace

EXAMPLES:
    rsxcode run                      # build and run on the attached device or booted simulator
    rsxcode build --release          # release build
    rsxcode boot <simulator-udid>    # start a simulator

For more information on a specific command:
    rsxcode <command> --help
        """

    def get_command_list(self) -> list:
        arr = []
        for command in os.listdir(os.path.join(SCRIPT_PATH, "commands")):
            if not command.startswith("_") and command.endswith(".py"):
                arr.append(os.path.splitext(os.path.basename(command))[0])
        return sorted(arr)

    def create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="rsxcode",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
            add_help=False,
        )
        parser.add_argument(
            "subcommand",
            metavar=f"{self.get_command_list()}",
            type=str,
            nargs="?",
            choices=self.get_command_list() + sorted(ALIASES),
        )
        return parser

    def cli(self, argv=None) -> CliNameSpace:
        if argv is None:
            argv = sys.argv[1:]
        parser = self.create_parser()
        if len(argv) == 1 and argv[0] in ("--help", "-h"):
            parser.print_help()
            sys.exit(0)
        # everything after the subcommand belongs to it, --help included
        args = CliNameSpace()
        args.subcommand = None
        args.rest = []
        if argv and not argv[0].startswith("-"):
            parser.parse_args(argv[:1], namespace=args)
            args.rest = argv[1:]
        return args

    def exec(self, context: CliContext, args: CliNameSpace):
        if not args.subcommand:
            print_error("No command specified\n")
            self.create_parser().print_help()
            sys.exit(1)

        name = ALIASES.get(args.subcommand, args.subcommand)
        # get module name
        module_name = f"rsxcode.commands.{name}"
        # get class name
        class_name = name.capitalize()
        # import module
        module = importlib.import_module(module_name)
        # get class of module
        klass = getattr(module, class_name)
        # instance class
        sub_cmd = klass()
        # now execute the subcommand
        return sub_cmd.exec(context, sub_cmd.cli(args.rest))


def main(argv=None, context=None):
    cmd = Cli()
    context = context or CliContext()
    try:
        cmd.exec(context, cmd.cli(argv))
    except RsxcodeError as e:
        print_error(str(e))
        # orchestration stages print their own tool output
        if isinstance(e, ToolingError) and e.stage == STAGE_QUERY and e.output:
            print_tool_output(e.output, "")
        sys.exit(e.exit_code)
    except KeyboardInterrupt:
        context.executor.terminate_all()
        print_error("Interrupted")
        sys.exit(130)


if __name__ == "__main__":
    main()
