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
Build utility functions shared by the iOS build and run scripts.

This module provides:
- Output locations under the cargo target directory
- Static library merging and architecture listing (lipo)
- Partial-file handling, so an interrupted step never leaves a file that
  looks complete
- Rendering of the native source scaffold from the packaged template
"""

import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, List, Sequence

from copier import run_copy

from rsxcode.apple.targets import BuildProfile, BuildTarget
from rsxcode.errors import STAGE_MERGE, MergeFailed
from rsxcode.utils.cmd.cmd_util import Command, Executor
from rsxcode.utils.console import print_debug, print_info

PARTIAL_SUFFIX = ".partial"

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "app"

# one invocation owns the generated project directory at a time
GENERATED_DIR_LOCK = threading.Lock()


class BuildLayout:
    """
    Deterministic output locations of one package.

        <target_dir>/<triple>/<profile>/lib<app>.a           cargo output
        <target_dir>/xcodegen/universal/<profile>/lib<app>.a merged simulator library
        <target_dir>/xcodegen/src/                           main.m, bindings.h
        <target_dir>/xcodegen/<app>/project.yml              xcodegen descriptor
    """

    def __init__(self, target_dir, app_name: str, profile: BuildProfile):
        self.target_dir = Path(target_dir)
        self.app_name = app_name
        self.profile = profile

    @property
    def static_lib_file(self) -> str:
        return f"lib{self.app_name}.a"

    @property
    def xcodegen_dir(self) -> Path:
        return self.target_dir / "xcodegen"

    @property
    def src_dir(self) -> Path:
        return self.xcodegen_dir / "src"

    @property
    def project_dir(self) -> Path:
        return self.xcodegen_dir / self.app_name

    @property
    def descriptor_path(self) -> Path:
        return self.project_dir / "project.yml"

    @property
    def xcodeproj_path(self) -> Path:
        return self.project_dir / f"{self.app_name}.xcodeproj"

    def cargo_library(self, target: BuildTarget) -> Path:
        return self.target_dir / target.triple / self.profile.value / self.static_lib_file

    def cargo_libraries(self, targets: Sequence[BuildTarget]) -> Dict[BuildTarget, Path]:
        return {target: self.cargo_library(target) for target in targets}

    @property
    def universal_library(self) -> Path:
        return self.xcodegen_dir / "universal" / self.profile.value / self.static_lib_file

    def app_bundle(self, sdk: str) -> Path:
        products = self.project_dir / "build" / "Build" / "Products"
        return products / f"{self.profile.configuration}-{sdk}" / f"{self.app_name}.app"


def partial_path(path) -> Path:
    path = Path(path)
    return path.with_name(path.name + PARTIAL_SUFFIX)


def remove_file(path):
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


@contextmanager
def partial_output(dst):
    """
    Yield a `<dst>.partial` path and move it over `dst` when the block succeeds.

    On any exception, KeyboardInterrupt included, the partial file is removed
    and `dst` keeps whatever it held before.
    """
    dst = Path(dst)
    dst.parent.mkdir(parents=True, exist_ok=True)
    tmp = partial_path(dst)
    remove_file(tmp)
    try:
        yield tmp
    except BaseException:
        remove_file(tmp)
        raise
    os.replace(tmp, dst)


def atomic_write_text(dst, content: str):
    with partial_output(dst) as tmp:
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(content)


def list_archs(executor: Executor, lib) -> List[str]:
    """Architecture slices of a library as reported by `lipo -archs`."""
    outcome = executor.execute(Command("lipo", ("-archs", str(lib)), stage=STAGE_MERGE))
    if not outcome.success:
        raise MergeFailed(f"Failed to list architectures of {lib}",
                          exit_status=outcome.returncode, output=outcome.output)
    return outcome.stdout.split()


def lipo_libs(executor: Executor, src_libs: Sequence, dst_lib, archs: Sequence[str] = ()) -> Path:
    """
    Create a universal (fat) static library from per-architecture libraries.

    Args:
        executor: Executor used to run lipo
        src_libs: Architecture-specific library file paths
        dst_lib: Destination path for the universal library
        archs: Slices the result must contain, checked with `lipo -archs`

    Returns:
        Path of the universal library

    Raises:
        MergeFailed: lipo failed or a slice is missing from the result
    """
    dst_lib = Path(dst_lib)
    for src_lib in src_libs:
        if not os.path.isfile(src_lib):
            raise MergeFailed(f"Missing library to merge: {src_lib}")

    with partial_output(dst_lib) as tmp:
        outcome = executor.execute(Command(
            "lipo",
            ("-create", *[str(lib) for lib in src_libs], "-output", str(tmp)),
            stage=STAGE_MERGE,
        ))
        if not outcome.success:
            raise MergeFailed(f"Failed to create universal library {dst_lib}",
                              exit_status=outcome.returncode, output=outcome.output)
        if archs:
            found = list_archs(executor, tmp)
            missing = [arch for arch in archs if arch not in found]
            if missing:
                raise MergeFailed(
                    f"Universal library {dst_lib} lacks slices: {', '.join(missing)}"
                )
    print_debug(f"Merged {len(src_libs)} libraries into {dst_lib}")
    return dst_lib


def render_scaffold(dst_dir, app_name: str, bundle_identifier: str):
    """Render main.m and bindings.h into `dst_dir` from the packaged template."""
    print_info(f"Writing sources to {dst_dir}")
    run_copy(
        str(TEMPLATE_DIR),
        str(dst_dir),
        data={
            "app_name": app_name,
            "bundle_identifier": bundle_identifier,
        },
        defaults=True,
        overwrite=True,
        quiet=True,
    )
