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

import os

from rsxcode.utils.cmd.cmd_util import SubprocessExecutor


# This context data class to save the context of the command
class CliContext:
    def __init__(self, executor=None, cwd=None):
        self.executor = executor if executor is not None else SubprocessExecutor()
        self.cwd = cwd if cwd is not None else os.getcwd()
