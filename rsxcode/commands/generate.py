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


class Generate(PackageCommand):
    name = "generate"
    aliases = ("g",)

    def description(self) -> str:
        return """
        Regenerate the Xcode project from Cargo.toml without compiling.

        Examples:
            rsxcode generate
            rsxcode generate && rsxcode open
        """

    def exec(self, context: CliContext, args: CliNameSpace):
        manifest = self.load(context, args)
        return self.orchestrator(context, args).generate(manifest)
