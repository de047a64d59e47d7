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
Terminal output helpers for rsxcode.

Verbosity is controlled by the RSXCODE_LOG environment variable:

    error   only failures
    warn    failures and warnings
    info    progress of every stage (default)
    debug   resolution and descriptor details
    trace   every external command line and its working directory
"""

import os
import sys

LOG_ENV_VAR = "RSXCODE_LOG"

LEVELS = {
    "error": 0,
    "warn": 1,
    "info": 2,
    "debug": 3,
    "trace": 4,
}

DEFAULT_LEVEL = "info"


class Colors:
    """ANSI color codes for terminal output."""
    HEADER = '\033[95m'
    OKBLUE = '\033[94m'
    OKCYAN = '\033[96m'
    OKGREEN = '\033[92m'
    WARNING = '\033[93m'
    FAIL = '\033[91m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'


def current_level() -> int:
    value = os.environ.get(LOG_ENV_VAR, DEFAULT_LEVEL).strip().lower()
    return LEVELS.get(value, LEVELS[DEFAULT_LEVEL])


def enabled(level: str) -> bool:
    return current_level() >= LEVELS[level]


def _colored(color: str, message: str) -> str:
    if not sys.stdout.isatty():
        return message
    return f"{color}{message}{Colors.ENDC}"


def print_step(message):
    """Print a stage header."""
    if not enabled("info"):
        return
    print(_colored(Colors.OKBLUE, f"\n{'=' * 70}"))
    print(_colored(Colors.OKBLUE + Colors.BOLD, f">>> {message}"))
    print(_colored(Colors.OKBLUE, "=" * 70))


def print_ok(message):
    if enabled("info"):
        print(_colored(Colors.OKGREEN, f"  ✅ {message}"))


def print_info(message):
    if enabled("info"):
        print(f"  ℹ️  {message}")


def print_warning(message):
    if enabled("warn"):
        print(_colored(Colors.WARNING, f"  ⚠️  {message}"))


def print_error(message):
    # errors are always shown
    print(_colored(Colors.FAIL, f"  ❌ {message}"), file=sys.stderr)


def print_debug(message):
    if enabled("debug"):
        print(f"  [debug] {message}")


def print_trace(message):
    if enabled("trace"):
        print(_colored(Colors.OKCYAN, f"  [trace] {message}"))


def print_elapsed(label: str, elapsed: float):
    """Print the elapsed time in a human-readable format."""
    if not enabled("info"):
        return
    if elapsed < 60:
        print(f"\n⏱ {label} in {elapsed:.2f} seconds")
    elif elapsed < 3600:
        minutes = int(elapsed // 60)
        seconds = elapsed % 60
        print(f"\n⏱ {label} in {minutes} min {seconds:.1f} sec")
    else:
        hours = int(elapsed // 3600)
        minutes = int((elapsed % 3600) // 60)
        seconds = elapsed % 60
        print(f"\n⏱ {label} in {hours} hr {minutes} min {seconds:.0f} sec")


ERROR_KEYWORDS = [
    "error:", "error[", "failed", "exception",
    "not found", "no such file", "permission denied",
    "fatal:", "undefined symbol", "linker command failed",
    "code signing", "provisioning profile", "** build failed **",
]


def extract_key_error_lines(stdout: str, stderr: str, max_lines: int = 10) -> list:
    """
    Extract key error lines from tool output, prioritizing important messages.

    Args:
        stdout: Standard output of the tool
        stderr: Standard error of the tool
        max_lines: Maximum number of lines to return

    Returns:
        List of important error lines to display
    """
    all_output = (stdout or "") + "\n" + (stderr or "")
    all_lines = all_output.strip().split('\n')

    important_lines = []
    for i, line in enumerate(all_lines):
        line_stripped = line.strip()
        if not line_stripped:
            continue

        if any(kw in line_stripped.lower() for kw in ERROR_KEYWORDS):
            important_lines.append(line_stripped)
            # keep up to 3 following lines for context
            for j in range(1, 4):
                if i + j < len(all_lines):
                    next_line = all_lines[i + j].strip()
                    if next_line:
                        important_lines.append(next_line)

    # Deduplicate while preserving order
    seen = set()
    unique_lines = []
    for line in important_lines:
        if line not in seen:
            seen.add(line)
            unique_lines.append(line)

    # If no important lines found, fall back to last few lines
    if not unique_lines:
        unique_lines = [l.strip() for l in all_lines[-max_lines:] if l.strip()]

    return unique_lines[:max_lines]


def print_tool_output(stdout: str, stderr: str, indent: str = "     "):
    """Print the summarized output of a failed tool."""
    for line in extract_key_error_lines(stdout, stderr):
        print(f"{indent}{line}", file=sys.stderr)
