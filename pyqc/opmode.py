# Copyright 2024 inuex35
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Operating modes and their dispatch

Exactly one mode runs per invocation. File operations are terminal: they
write their products and never reach the report. Analysis modes return
the extra pages of the report.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional, Union

from . import fops, positioning, report
from .config import PositioningConfig
from .context.builder import AnalysisContext
from .report import ExtraPage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileGen:
    """Write the preprocessed dataset"""

    @property
    def is_file_operation(self) -> bool:
        return True


@dataclass(frozen=True)
class Merge:
    path: Path

    @property
    def is_file_operation(self) -> bool:
        return True


@dataclass(frozen=True)
class Split:
    epoch: datetime

    @property
    def is_file_operation(self) -> bool:
        return True


@dataclass(frozen=True)
class TimeBin:
    duration: timedelta

    @property
    def is_file_operation(self) -> bool:
        return True


@dataclass(frozen=True)
class Diff:
    path: Path

    @property
    def is_file_operation(self) -> bool:
        return True


@dataclass(frozen=True)
class Ppp:
    """Single receiver positioning"""
    config: PositioningConfig = field(default_factory=PositioningConfig)

    @property
    def is_file_operation(self) -> bool:
        return False


@dataclass(frozen=True)
class Rtk:
    """Differential positioning against the reference site"""
    config: PositioningConfig = field(default_factory=PositioningConfig)

    @property
    def is_file_operation(self) -> bool:
        return False


@dataclass(frozen=True)
class ReportOnly:
    """Default analysis: the report alone"""

    @property
    def is_file_operation(self) -> bool:
        return False


OperationMode = Union[FileGen, Merge, Split, TimeBin, Diff, Ppp, Rtk, ReportOnly]


def dispatch(ctx: AnalysisContext, mode: OperationMode) -> Optional[List[ExtraPage]]:
    """
    Run one operating mode

    Returns:
    --------
    None for file operations, else the extra report pages

    Raises:
    -------
    TypeError
        ``mode`` is not an operating mode
    """
    if isinstance(mode, FileGen):
        fops.filegen(ctx)
        return None
    if isinstance(mode, Merge):
        fops.merge(ctx, mode.path)
        return None
    if isinstance(mode, Split):
        fops.split(ctx, mode.epoch)
        return None
    if isinstance(mode, TimeBin):
        fops.time_binning(ctx, mode.duration)
        return None
    if isinstance(mode, Diff):
        fops.diff(ctx, mode.path)
        return None
    if isinstance(mode, Ppp):
        return [positioning.precise_positioning(ctx, False, mode.config)]
    if isinstance(mode, Rtk):
        return [positioning.precise_positioning(ctx, True, mode.config)]
    if isinstance(mode, ReportOnly):
        return []
    raise TypeError(f"unknown operating mode {mode!r}")


def run(ctx: AnalysisContext, mode: OperationMode) -> Optional[Path]:
    """Dispatch ``mode``, then assemble the report of analysis modes.

    Returns the report path, None for file operations.
    """
    if getattr(mode, 'is_file_operation', False):
        ctx.workspace.create_subdir(fops.OUTPUT_DIR)

    pages = dispatch(ctx, mode)
    if pages is None:
        return None
    return report.assemble(ctx, pages)
