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

from rsxcode.apple.teams import list_teams
from rsxcode.utils.console import print_warning
from rsxcode.utils.context.command import CliCommand
from rsxcode.utils.context.context import CliContext
from rsxcode.utils.context.namespace import CliNameSpace


class Teams(CliCommand):
    name = "teams"
    aliases = ("t",)

    def description(self) -> str:
        return """
        List the development teams of the signing certificates in the keychain.
        Put the team id into `development_team` of `package.metadata.ios`.

        Examples:
            rsxcode teams
        """

    def exec(self, context: CliContext, args: CliNameSpace):
        teams = list_teams(context.executor)
        if not teams:
            print_warning("No development certificates found in the keychain")
            return teams
        print(f"{'TEAM ID':<12} {'ORGANIZATION':<32} CERTIFICATE")
        for team in teams:
            print(f"{team.organization_unit:<12} {team.organization:<32} {team.common_name}")
        return teams
