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


class Check(PackageCommand):
    name = "check"
    aliases = ("c",)

    def description(self) -> str:
        return """
        Write the Xcode project descriptor and run `cargo check` for every
        declared build target. Nothing is linked and no app is built.

        Examples:
            rsxcode check
            rsxcode check --release
            rsxcode check --manifest-path examples/macroquad/Cargo.toml
        """

    def exec(self, context: CliContext, args: CliNameSpace):
        manifest = self.load(context, args)
        self.orchestrator(context, args).check(manifest)
