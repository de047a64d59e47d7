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

from rsxcode.utils.context.namespace import CliNameSpace
from rsxcode.utils.context.context import CliContext


# Base class of every subcommand
class CliCommand:
    # name used in `prog` and stripped from argv before parsing
    name = ""
    aliases = ()

    def description(self) -> str:
        return ""

    def add_arguments(self, parser: argparse.ArgumentParser):
        pass

    def create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog=f"rsxcode {self.name}",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
        )
        self.add_arguments(parser)
        return parser

    def cli(self, argv=None) -> CliNameSpace:
        if argv is None:
            argv = sys.argv[1:]
            if argv and (argv[0] == self.name or argv[0] in self.aliases):
                argv = argv[1:]
        parser = self.create_parser()
        args, unknown = parser.parse_known_args(argv, namespace=CliNameSpace())
        # unknown arguments are handed to cargo untouched
        args.passthrough = unknown
        return args

    def exec(self, context: CliContext, args: CliNameSpace):
        raise NotImplementedError
