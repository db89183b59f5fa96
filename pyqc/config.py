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

"""Run configuration: command line options, positioning settings, environment"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import toml

from .core.constants import CONSTELLATIONS, MAX_RECURSIVE_DEPTH

WORKSPACE_ENV = "PYQC_WORKSPACE"
DEFAULT_WORKSPACE = "WORKSPACE"


def workspace_root(base: Optional[str] = None) -> Path:
    """Workspace base directory: explicit, then $PYQC_WORKSPACE, then ./WORKSPACE"""
    if base:
        return Path(base)
    return Path(os.environ.get(WORKSPACE_ENV) or DEFAULT_WORKSPACE)


@dataclass(frozen=True)
class CliOptions:
    """Context inputs collected from the command line"""
    files: Tuple[str, ...] = ()
    directories: Tuple[str, ...] = ()
    max_depth: int = MAX_RECURSIVE_DEPTH
    manual_position: Optional[Tuple[float, float, float]] = None
    quiet: bool = False
    workspace: Optional[str] = None
    filters: Tuple[str, ...] = ()
    # base station inputs, differential runs only
    differential: bool = False
    base_files: Tuple[str, ...] = ()
    base_directories: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PositioningConfig:
    """Positioning settings, overridable from a TOML file"""
    systems: Tuple[str, ...] = ('G', 'E', 'C', 'J', 'R')
    elevation_mask: float = 10.0  # deg
    code_priority: Tuple[str, ...] = ('C1C', 'C1W', 'C1X', 'C2W', 'C2X', 'C5Q', 'C5X')
    max_iterations: int = 10
    min_satellites: int = 4
    troposphere: bool = True

    def __post_init__(self):
        unknown = set(self.systems) - set(CONSTELLATIONS)
        if not self.systems or unknown:
            raise ValueError(f"invalid constellations {sorted(unknown) or 'none'}")
        if not self.code_priority:
            raise ValueError("code priority list can't be empty")
        if not 0.0 <= self.elevation_mask < 90.0:
            raise ValueError(f"invalid elevation mask {self.elevation_mask}")
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        if self.min_satellites < 4:
            raise ValueError("min_satellites must be at least 4")

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "PositioningConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"unknown positioning settings: {', '.join(sorted(unknown))}")
        kwargs = dict(values)
        for key in ('systems', 'code_priority'):
            if key in kwargs:
                value = kwargs[key]
                if isinstance(value, str):
                    value = value.split(',')
                kwargs[key] = tuple(str(v).strip() for v in value if str(v).strip())
        return cls(**kwargs)

    @classmethod
    def from_toml(cls, path) -> "PositioningConfig":
        """Load settings from a TOML file (keys at top level or in a [positioning] table)"""
        try:
            document = toml.load(path)
        except (OSError, toml.TomlDecodeError) as exc:
            raise ValueError(f"failed to read configuration \"{path}\": {exc}") from exc
        return cls.from_dict(document.get('positioning', document))

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
