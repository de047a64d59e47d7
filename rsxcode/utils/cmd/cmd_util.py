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

"""
External tool invocation.

All calls to cargo, lipo, xcodegen, xcodebuild, xcrun and security go
through an Executor, so the orchestration code can be driven by a fake
executor in tests.
"""

import shlex
import subprocess
import threading
from dataclasses import dataclass
from typing import List, Optional, Tuple

from rsxcode.errors import Cancelled, ToolNotFound
from rsxcode.utils.console import print_trace


@dataclass(frozen=True)
class Command:
    """One external process invocation."""
    program: str
    args: Tuple[str, ...] = ()
    cwd: Optional[str] = None
    # False streams the output straight to the terminal
    capture: bool = True
    stage: Optional[str] = None

    @property
    def argv(self) -> List[str]:
        return [self.program, *self.args]

    def __str__(self):
        return " ".join(shlex.quote(part) for part in self.argv)


@dataclass(frozen=True)
class ExitOutcome:
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


def decode_bytes(input: Optional[bytes]) -> str:
    if not input:
        return ""
    try:
        return bytes.decode(input, "UTF-8")
    except UnicodeDecodeError:
        return bytes.decode(input, "UTF-8", errors="replace")


class Executor:
    """Capability interface: run one command, report how it exited."""

    def execute(self, command: Command) -> ExitOutcome:
        raise NotImplementedError

    def terminate_all(self):
        """Stop every command this executor is still running."""


class SubprocessExecutor(Executor):
    """Runs commands as real child processes, without any timeout."""

    def __init__(self):
        self._lock = threading.Lock()
        self._running = set()

    def execute(self, command: Command) -> ExitOutcome:
        print_trace(f"cwd: {command.cwd or '.'}")
        print_trace(f"$ {command}")
        pipe = subprocess.PIPE if command.capture else None
        try:
            popen = subprocess.Popen(
                command.argv,
                cwd=command.cwd,
                stdout=pipe,
                stderr=pipe,
            )
        except FileNotFoundError:
            raise ToolNotFound(command.program, stage=command.stage)

        with self._lock:
            self._running.add(popen)
        try:
            stdout, stderr = popen.communicate()
        except KeyboardInterrupt:
            self._stop(popen)
            raise Cancelled(str(command), stage=command.stage)
        finally:
            with self._lock:
                self._running.discard(popen)

        return ExitOutcome(popen.returncode, decode_bytes(stdout), decode_bytes(stderr))

    def terminate_all(self):
        with self._lock:
            running = list(self._running)
        for popen in running:
            self._stop(popen)

    @staticmethod
    def _stop(popen: subprocess.Popen, grace_second: float = 5):
        if popen.poll() is not None:
            return
        popen.terminate()
        try:
            popen.wait(timeout=grace_second)
        except subprocess.TimeoutExpired:
            popen.kill()
            popen.wait()
