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

"""SP3 (c/d) precise orbit records"""

from __future__ import annotations

import gzip
from collections import Counter
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Tuple

import numpy as np

from ..core.constants import is_sv, normalize_sv
from ..errors import FormatError, MergeError, SplitError
from .rinex import EpochBlock, read_text


@dataclass
class SP3:
    """SP3 record: header lines and one block per epoch"""
    version: str
    header: List[str]
    blocks: List[EpochBlock]
    agency: str = ''
    coord_system: str = ''
    time_system: str = 'GPS'
    interval: Optional[float] = None
    path: Optional[Path] = None

    @classmethod
    def from_path(cls, path) -> "SP3":
        sp3 = cls.parse(read_text(path))
        sp3.path = Path(path)
        return sp3

    @classmethod
    def parse(cls, text: str) -> "SP3":
        lines = text.splitlines()
        if len(lines) < 2 or not lines[0].startswith('#') or lines[0][1:2] not in ('a', 'b', 'c', 'd'):
            raise FormatError("not an SP3 file")
        if not lines[1].startswith('##'):
            raise FormatError("missing SP3 second header line")

        first = lines[0]
        sp3 = cls(version=first[1], header=[], blocks=[],
                  coord_system=first[46:51].strip(), agency=first[56:60].strip())
        try:
            sp3.interval = float(lines[1][24:38])
        except ValueError as exc:
            raise FormatError("invalid SP3 epoch interval") from exc

        current = None
        for line in lines:
            if line.startswith('EOF'):
                break
            if line.startswith('*'):
                tokens = line[1:].split()
                try:
                    epoch = (datetime(*map(int, tokens[:5]))
                             + timedelta(seconds=float(tokens[5])))
                except (ValueError, IndexError) as exc:
                    raise FormatError(f"invalid SP3 epoch {line!r}") from exc
                current = EpochBlock(epoch, [line])
                sp3.blocks.append(current)
            elif current is None:
                sp3.header.append(line)
                if line.startswith('%c') and not sp3.header[-2].startswith('%c'):
                    sp3.time_system = line[9:12].strip() or sp3.time_system
            elif line[:1] in ('P', 'V', 'E') and line.strip():
                current.lines.append(line)

        sp3.blocks.sort(key=lambda block: block.epoch)
        return sp3

    def is_empty(self) -> bool:
        return not self.blocks

    def epochs(self) -> List[datetime]:
        return [block.epoch for block in self.blocks]

    def first_epoch(self) -> Optional[datetime]:
        return self.blocks[0].epoch if self.blocks else None

    def last_epoch(self) -> Optional[datetime]:
        return self.blocks[-1].epoch if self.blocks else None

    def sampling_interval(self) -> Optional[float]:
        if self.interval:
            return self.interval
        epochs = self.epochs()
        if len(epochs) < 2:
            return None
        gaps = Counter((b - a).total_seconds() for a, b in zip(epochs[:-1], epochs[1:]))
        return gaps.most_common(1)[0][0]

    def satellites(self) -> List[str]:
        svs = {line[1:4] for block in self.blocks for line in block.lines[1:]
               if line.startswith('P') and is_sv(line[1:4])}
        return sorted(normalize_sv(sv) for sv in svs)

    def constellations(self) -> List[str]:
        return sorted({sv[0] for sv in self.satellites()})

    def positions(self) -> Iterator[Tuple[datetime, Dict[str, Tuple[np.ndarray, float]]]]:
        """Yield ``(epoch, {sv: (ecef [m], clock [us])})``"""
        for block in self.blocks:
            states = {}
            for line in block.lines[1:]:
                if not line.startswith('P') or not is_sv(line[1:4]):
                    continue
                tokens = line[4:].split()
                xyz = np.array([float(v) for v in tokens[:3]]) * 1e3
                clock = float(tokens[3]) if len(tokens) > 3 else float('nan')
                states[normalize_sv(line[1:4])] = (xyz, clock)
            yield block.epoch, states

    def filter_epochs(self, predicate: Callable[[datetime], bool]) -> "SP3":
        return replace(self, blocks=[b for b in self.blocks if predicate(b.epoch)])

    def retain_satellites(self, predicate: Callable[[str], bool]) -> "SP3":
        """New record keeping the satellites that satisfy ``predicate``.

        The header satellite list is left as is.
        """
        blocks = []
        for block in self.blocks:
            lines = [block.lines[0]]
            keep = True
            for line in block.lines[1:]:
                if line[:1] in ('P', 'V') and is_sv(line[1:4]):
                    keep = predicate(normalize_sv(line[1:4]))
                if keep:
                    lines.append(line)
            blocks.append(EpochBlock(block.epoch, lines))
        return replace(self, blocks=blocks)

    def merge(self, other: "SP3") -> "SP3":
        if self.agency != other.agency:
            raise MergeError(f"can't merge SP3 from {self.agency} and {other.agency}")
        if self.coord_system != other.coord_system:
            raise MergeError(f"can't merge SP3 in {self.coord_system} and {other.coord_system}")
        if self.time_system != other.time_system:
            raise MergeError(f"can't merge SP3 in {self.time_system} and {other.time_system}")
        epochs = {block.epoch for block in self.blocks}
        blocks = list(self.blocks) + [b for b in other.blocks if b.epoch not in epochs]
        blocks.sort(key=lambda block: block.epoch)
        return replace(self, blocks=blocks)

    def split(self, epoch: datetime) -> Tuple["SP3", "SP3"]:
        before = [b for b in self.blocks if b.epoch < epoch]
        after = [b for b in self.blocks if b.epoch >= epoch]
        if not before or not after:
            raise SplitError(f"{epoch} does not lie within {self.first_epoch()} - {self.last_epoch()}")
        return replace(self, blocks=before), replace(self, blocks=after)

    def split_duration(self, duration: timedelta) -> List["SP3"]:
        if duration.total_seconds() <= 0:
            raise SplitError("time bin duration must be positive")
        if not self.blocks:
            return []
        t0 = self.blocks[0].epoch
        batches: Dict[int, List[EpochBlock]] = {}
        for block in self.blocks:
            batches.setdefault(int((block.epoch - t0) / duration), []).append(block)
        return [replace(self, blocks=batches[idx]) for idx in sorted(batches)]

    def to_text(self) -> str:
        header = list(self.header)
        if self.blocks:
            t0 = self.blocks[0].epoch
            sec = t0.second + t0.microsecond * 1e-6
            start = f"{t0.year:4d} {t0.month:2d} {t0.day:2d} {t0.hour:2d} {t0.minute:2d} {sec:11.8f}"
            first = header[0].ljust(60)
            header[0] = (first[:3] + start + first[31:32] + f"{len(self.blocks):7d}" + first[39:]).rstrip()
        lines = header + [line for block in self.blocks for line in block.lines] + ['EOF']
        return "\n".join(lines) + "\n"

    def to_file(self, path) -> Path:
        path = Path(path)
        if path.suffix == '.gz':
            with gzip.open(path, 'wt', encoding='ascii') as fh:
                fh.write(self.to_text())
        else:
            with open(path, 'w', encoding='ascii') as fh:
                fh.write(self.to_text())
        return path
