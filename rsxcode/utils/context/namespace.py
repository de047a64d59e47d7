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


# Parsed arguments of a command, plus the arguments it did not recognize
class CliNameSpace(argparse.Namespace):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.passthrough = []
