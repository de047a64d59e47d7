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
from rsxcode.errors import ProjectNotFound, ToolingError
from rsxcode.utils.cmd.cmd_util import Command
from rsxcode.utils.console import print_ok
from rsxcode.utils.context.context import CliContext
from rsxcode.utils.context.namespace import CliNameSpace


class Open(PackageCommand):
    name = "open"
    aliases = ("o",)

    def description(self) -> str:
        return """
        Open the generated project in Xcode. Run `rsxcode generate` or
        `rsxcode build` first.

        Examples:
            rsxcode open
        """

    def exec(self, context: CliContext, args: CliNameSpace):
        manifest = self.load(context, args)
        project = self.orchestrator(context, args).layout(manifest).xcodeproj_path
        if not project.is_dir():
            raise ProjectNotFound(project)
        outcome = context.executor.execute(Command("open", (str(project),)))
        if not outcome.success:
            raise ToolingError(f"Failed to open {project}", tool="open",
                               exit_status=outcome.returncode, output=outcome.output)
        print_ok(f"Opened {project}")
