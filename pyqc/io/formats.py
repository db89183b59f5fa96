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


"""File classification.

Each supported format is a probe: a parser that either returns a record or
raises. Probes are tried in priority order and the first success wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from ..errors import FormatError
from .rinex import Rinex
from .sp3 import SP3

logger = logging.getLogger(__name__)


class FileKind(Enum):
    """Recognized file kinds"""
    RINEX = "RINEX"
    SP3 = "SP3"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class FormatProbe:
    """Parser attempt for one file kind"""
    kind: FileKind
    parse: Callable[[Path], Any]


@dataclass(frozen=True)
class FileEntry:
    """Candidate file and its recognized kind (record is None when unrecognized)"""
    path: Path
    kind: FileKind
    record: Optional[Any] = None

    @property
    def recognized(self) -> bool:
        return self.kind is not FileKind.UNRECOGNIZED


DEFAULT_PROBES = (
    FormatProbe(FileKind.RINEX, Rinex.from_path),
    FormatProbe(FileKind.SP3, SP3.from_path),
)


def classify(path, probes: Sequence[FormatProbe] = DEFAULT_PROBES) -> FileEntry:
    """Try every probe in order on ``path``"""
    path = Path(path)
    for probe in probes:
        try:
            record = probe.parse(path)
        except (FormatError, OSError) as exc:
            logger.debug("\"%s\" is not %s: %s", path, probe.kind.value, exc)
            continue
        return FileEntry(path, probe.kind, record)
    return FileEntry(path, FileKind.UNRECOGNIZED)
