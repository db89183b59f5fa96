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

"""RINEX (v3 / v4) records.

A record is kept close to the text it was read from: the header lines and a
list of epoch blocks, each block holding the raw lines of one epoch (or of
one navigation message / clock line). This is all the file operations need
(filtering, merging, splitting, re-writing) and keeps the output byte
compatible with the input. Observation values are decoded on demand by
:meth:`Rinex.observations`; navigation message bodies are decoded by cssrlib
(see :mod:`pyqc.gnss.geometry`).

Gzip and Hatanaka compressed (CRINEX) files are decompressed on read.
"""

from __future__ import annotations

import gzip
import re
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Tuple

import hatanaka
import numpy as np

from ..core.constants import is_sv, normalize_sv
from ..errors import FormatError, MergeError, SplitError

OBS_FIELD_WIDTH = 16
OBS_VALUE_WIDTH = 14

NAV_START = re.compile(r"^[GRECJSI][ \d]\d \d{4} ")
MET_START = re.compile(r"^ \d{4}( [ \d]\d){5}")
CLK_TYPES = ('AR', 'AS', 'CR', 'DR', 'MS')


class RinexType(Enum):
    """Supported RINEX file types (header column 21)"""
    OBSERVATION = 'O'
    NAVIGATION = 'N'
    METEO = 'M'
    CLOCK = 'C'


@dataclass
class EpochBlock:
    """Raw lines of one epoch.

    ``sv`` is the owner of navigation and clock blocks, None otherwise.
    """
    epoch: datetime
    lines: List[str]
    sv: Optional[str] = None


@dataclass
class RinexHeader:
    """Parsed RINEX header, raw lines included"""
    version: float
    rinex_type: RinexType
    lines: List[str]
    constellation: Optional[str] = None
    marker_name: Optional[str] = None
    approx_position: Optional[Tuple[float, float, float]] = None
    interval: Optional[float] = None
    time_system: str = 'GPS'
    obs_codes: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def major(self) -> int:
        return int(self.version)

    @classmethod
    def parse(cls, lines: List[str]) -> "RinexHeader":
        """Parse header lines (``END OF HEADER`` included)"""
        if not lines or _label(lines[0]) != 'RINEX VERSION / TYPE':
            raise FormatError("missing RINEX VERSION / TYPE")

        first = lines[0]
        try:
            version = float(first[0:9])
        except ValueError as exc:
            raise FormatError(f"invalid RINEX version: {first[0:9]!r}") from exc
        if version < 3.0:
            raise FormatError(f"RINEX {version:.2f} is not supported")

        try:
            rinex_type = RinexType(first[20:21])
        except ValueError as exc:
            raise FormatError(f"non supported RINEX type {first[20:21]!r}") from exc

        constellation = first[40:41].strip() or None
        header = cls(version=version, rinex_type=rinex_type, lines=list(lines),
                     constellation=constellation)

        current_sys = None
        for line in lines[1:]:
            label = _label(line)
            content = line[:60]
            if label == 'MARKER NAME':
                header.marker_name = content.strip() or None
            elif label == 'APPROX POSITION XYZ':
                tokens = content.split()
                if len(tokens) >= 3:
                    try:
                        header.approx_position = (float(tokens[0]), float(tokens[1]), float(tokens[2]))
                    except ValueError as exc:
                        raise FormatError("invalid APPROX POSITION XYZ") from exc
            elif label == 'INTERVAL':
                try:
                    header.interval = float(content[:10])
                except ValueError:
                    header.interval = None
            elif label == 'TIME OF FIRST OBS':
                header.time_system = content[48:51].strip() or header.time_system
            elif label == 'SYS / # / OBS TYPES':
                if content[0] != ' ':
                    current_sys = content[0]
                    header.obs_codes[current_sys] = content[7:].split()
                elif current_sys is not None:
                    header.obs_codes[current_sys].extend(content[7:].split())

        return header


@dataclass
class Rinex:
    """RINEX record: header and epoch blocks, sorted by epoch"""
    header: RinexHeader
    blocks: List[EpochBlock]
    path: Optional[Path] = None

    @classmethod
    def from_path(cls, path) -> "Rinex":
        """Read and parse a RINEX file, raising FormatError when it is not one"""
        rinex = cls.parse(read_text(path))
        rinex.path = Path(path)
        return rinex

    @classmethod
    def parse(cls, text: str) -> "Rinex":
        lines = text.splitlines()
        end = None
        for idx, line in enumerate(lines):
            if _label(line) == 'END OF HEADER':
                end = idx
                break
        if end is None:
            raise FormatError("END OF HEADER not found")

        header = RinexHeader.parse(lines[:end + 1])
        try:
            blocks = _parse_body(header.rinex_type, lines[end + 1:])
        except (ValueError, IndexError) as exc:
            raise FormatError(f"invalid RINEX record: {exc}") from exc
        blocks.sort(key=lambda block: block.epoch)
        return cls(header=header, blocks=blocks)

    @property
    def rinex_type(self) -> RinexType:
        return self.header.rinex_type

    @property
    def is_observation(self) -> bool:
        return self.rinex_type is RinexType.OBSERVATION

    @property
    def is_navigation(self) -> bool:
        return self.rinex_type is RinexType.NAVIGATION

    def is_empty(self) -> bool:
        return not self.blocks

    def epochs(self) -> List[datetime]:
        return sorted({block.epoch for block in self.blocks})

    def first_epoch(self) -> Optional[datetime]:
        return self.blocks[0].epoch if self.blocks else None

    def last_epoch(self) -> Optional[datetime]:
        return self.blocks[-1].epoch if self.blocks else None

    def sampling_interval(self) -> Optional[float]:
        """Header INTERVAL, or else the dominant epoch spacing in seconds"""
        if self.header.interval:
            return self.header.interval
        epochs = self.epochs()
        if len(epochs) < 2:
            return None
        gaps = Counter((b - a).total_seconds() for a, b in zip(epochs[:-1], epochs[1:]))
        return gaps.most_common(1)[0][0]

    def reference_position(self) -> Optional[np.ndarray]:
        """Declared geodetic marker (APPROX POSITION XYZ), None if absent or null"""
        pos = self.header.approx_position
        if pos is None or not any(pos):
            return None
        return np.array(pos, dtype=np.float64)

    def satellites(self) -> List[str]:
        svs = set()
        for block in self.blocks:
            if block.sv is not None:
                if is_sv(block.sv):
                    svs.add(block.sv)
            elif self.is_observation:
                svs.update(line[:3] for line in block.lines[1:] if is_sv(line[:3]))
        return sorted(normalize_sv(sv) for sv in svs)

    def constellations(self) -> List[str]:
        return sorted({sv[0] for sv in self.satellites()})

    def observations(self) -> Iterator[Tuple[datetime, Dict[str, Dict[str, float]]]]:
        """Yield ``(epoch, {sv: {code: value}})`` for every valid epoch"""
        if not self.is_observation:
            raise FormatError("not an observation RINEX")
        for block in self.blocks:
            flag, _, _ = _parse_obs_epoch_line(block.lines[0])
            if flag > 1:
                continue
            yield block.epoch, self._decode_block(block)

    def _decode_block(self, block: EpochBlock) -> Dict[str, Dict[str, float]]:
        values = {}
        for line in block.lines[1:]:
            sv = line[:3]
            if not is_sv(sv):
                continue
            codes = self.header.obs_codes.get(sv[0], [])
            values[normalize_sv(sv)] = _parse_sat_line(line, codes)
        return values

    def filter_epochs(self, predicate: Callable[[datetime], bool]) -> "Rinex":
        """New record retaining the blocks whose epoch satisfies ``predicate``"""
        return replace(self, blocks=[b for b in self.blocks if predicate(b.epoch)])

    def retain_satellites(self, predicate: Callable[[str], bool]) -> "Rinex":
        """New record retaining the satellites that satisfy ``predicate``"""
        blocks = []
        for block in self.blocks:
            if block.sv is not None:
                if not is_sv(block.sv) or predicate(normalize_sv(block.sv)):
                    blocks.append(block)
            elif self.is_observation:
                kept = _retain_obs_block(block, predicate)
                if kept is not None:
                    blocks.append(kept)
            else:
                blocks.append(block)
        return replace(self, blocks=blocks)

    def merge(self, other: "Rinex") -> "Rinex":
        """Merge ``other`` into a new record.

        Raises MergeError when the two records are not compatible. Blocks
        present in both (same epoch, same owner) are kept once.
        """
        if self.rinex_type is not other.rinex_type:
            raise MergeError(
                f"can't merge {self.rinex_type.name} and {other.rinex_type.name} RINEX")
        if self.header.major != other.header.major:
            raise MergeError(
                f"can't merge RINEX {self.header.version:.2f} and {other.header.version:.2f}")
        if self.is_observation:
            if (self.header.marker_name and other.header.marker_name
                    and self.header.marker_name != other.header.marker_name):
                raise MergeError(
                    f"can't merge markers {self.header.marker_name} and {other.header.marker_name}")
            for sys, codes in other.header.obs_codes.items():
                if sys in self.header.obs_codes and self.header.obs_codes[sys] != codes:
                    raise MergeError(f"observables mismatch for constellation {sys}")
            if set(other.header.obs_codes) - set(self.header.obs_codes):
                raise MergeError("observed constellations mismatch")

        seen = {_block_key(block) for block in self.blocks}
        blocks = list(self.blocks)
        for block in other.blocks:
            key = _block_key(block)
            if key not in seen:
                seen.add(key)
                blocks.append(block)
        blocks.sort(key=lambda block: block.epoch)
        return replace(self, blocks=blocks)

    def split(self, epoch: datetime) -> Tuple["Rinex", "Rinex"]:
        """Split into [first, epoch) and [epoch, last]"""
        before = [b for b in self.blocks if b.epoch < epoch]
        after = [b for b in self.blocks if b.epoch >= epoch]
        if not before or not after:
            raise SplitError(f"{epoch} does not lie within {self.first_epoch()} - {self.last_epoch()}")
        return replace(self, blocks=before), replace(self, blocks=after)

    def split_duration(self, duration: timedelta) -> List["Rinex"]:
        """Split into consecutive batches of ``duration``"""
        if duration.total_seconds() <= 0:
            raise SplitError("time bin duration must be positive")
        if not self.blocks:
            return []
        t0 = self.blocks[0].epoch
        batches: Dict[int, List[EpochBlock]] = {}
        for block in self.blocks:
            batches.setdefault(int((block.epoch - t0) / duration), []).append(block)
        return [replace(self, blocks=batches[idx]) for idx in sorted(batches)]

    def difference(self, other: "Rinex") -> "Rinex":
        """Observation differences ``self - other``.

        Only epochs, satellites and observables present in both records are
        kept.
        """
        if not (self.is_observation and other.is_observation):
            raise FormatError("differencing requires two observation RINEX")

        other_epochs = dict(other.observations())
        blocks = []
        for block in self.blocks:
            flag, _, clock = _parse_obs_epoch_line(block.lines[0])
            if flag > 1 or block.epoch not in other_epochs:
                continue
            rhs = other_epochs[block.epoch]
            lines = []
            for sv, values in self._decode_block(block).items():
                if sv not in rhs:
                    continue
                diff = {code: value - rhs[sv][code] for code, value in values.items()
                        if code in rhs[sv]}
                if diff:
                    lines.append(_format_sat_line(sv, self.header.obs_codes.get(sv[0], []), diff))
            if lines:
                epoch_line = _format_obs_epoch_line(block.epoch, flag, len(lines), clock)
                blocks.append(EpochBlock(block.epoch, [epoch_line] + lines))
        return replace(self, blocks=blocks)

    def to_text(self) -> str:
        header = list(self.header.lines)
        if self.is_observation and self.blocks:
            header = _refresh_time_of_obs(header, self.first_epoch(), self.last_epoch(),
                                          self.header.time_system)
        lines = header + [line for block in self.blocks for line in block.lines]
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


def read_text(path) -> str:
    """Read a (possibly gzip and/or Hatanaka compressed) text file"""
    with open(path, 'rb') as fh:
        content = fh.read()
    if content[:2] == b'\x1f\x8b':
        try:
            content = gzip.decompress(content)
        except OSError as exc:
            raise FormatError(f"corrupt gzip file: {exc}") from exc
    if b'CRINEX VERS' in content[:80]:
        try:
            content = hatanaka.decompress(content)
        except (ValueError, RuntimeError) as exc:
            raise FormatError(f"invalid CRINEX: {exc}") from exc
    return content.decode('ascii', errors='ignore')


def file_stem(path) -> str:
    """File name without any of the usual RINEX/SP3 extensions"""
    name = Path(path).name
    for suffix in ('.gz', '.Z', '.crx', '.CRX', '.rnx', '.RNX', '.sp3', '.SP3', '.txt'):
        if name.endswith(suffix):
            name = name[:-len(suffix)]
    # RINEX 2 style short names (.20o, .20d) are kept as is
    return name


def _label(line: str) -> str:
    return line[60:80].strip()


def _epoch(year: int, month: int, day: int, hour: int, minute: int, seconds: float) -> datetime:
    return datetime(year, month, day, hour, minute) + timedelta(seconds=seconds)


def _parse_body(rinex_type: RinexType, lines: List[str]) -> List[EpochBlock]:
    blocks: List[EpochBlock] = []
    current = None
    pending: List[str] = []
    for line in lines:
        if not line.strip():
            continue
        if rinex_type is RinexType.NAVIGATION and line.startswith('> '):
            # RINEX 4 record header, belongs to the next message
            pending = [line]
            continue
        start = _block_start(rinex_type, line)
        if start is None:
            if current is None:
                raise ValueError(f"unexpected line {line!r}")
            current.lines.append(line)
            continue
        epoch, sv = start
        current = EpochBlock(epoch, pending + [line], sv)
        pending = []
        blocks.append(current)
    return blocks


def _block_start(rinex_type: RinexType, line: str) -> Optional[Tuple[datetime, Optional[str]]]:
    if rinex_type is RinexType.OBSERVATION:
        if not line.startswith('>'):
            return None
        _parse_obs_epoch_line(line)
        tokens = line[1:].split()
        return _epoch(*map(int, tokens[:5]), float(tokens[5])), None

    if rinex_type is RinexType.NAVIGATION:
        if not NAV_START.match(line):
            return None
        tokens = line[4:23].split()
        return _epoch(*map(int, tokens[:5]), float(tokens[5])), normalize_sv(line[:3])

    if rinex_type is RinexType.METEO:
        if not MET_START.match(line):
            return None
        tokens = line[:20].split()
        return _epoch(*map(int, tokens[:5]), float(tokens[5])), None

    if line[:2] not in CLK_TYPES or line[2:3] != ' ':
        return None
    tokens = line[3:].split()
    owner = normalize_sv(tokens[0]) if is_sv(tokens[0]) else tokens[0]
    return _epoch(*map(int, tokens[1:6]), float(tokens[6])), owner


def _block_key(block: EpochBlock) -> tuple:
    return block.epoch, block.sv, block.lines[0][:2] if block.sv else None


def _parse_obs_epoch_line(line: str) -> Tuple[int, int, str]:
    """Return (flag, number of satellites, receiver clock field)"""
    return int(line[31:32]), int(line[32:35]), line[35:]


def _format_obs_epoch_line(epoch: datetime, flag: int, nsat: int, clock: str = "") -> str:
    sec = epoch.second + epoch.microsecond * 1e-6
    return (f"> {epoch.year:4d} {epoch.month:02d} {epoch.day:02d} "
            f"{epoch.hour:02d} {epoch.minute:02d}{sec:11.7f}  {flag:1d}{nsat:3d}{clock}")


def _parse_sat_line(line: str, codes: List[str]) -> Dict[str, float]:
    values = {}
    for idx, code in enumerate(codes):
        start = 3 + idx * OBS_FIELD_WIDTH
        text = line[start:start + OBS_VALUE_WIDTH].strip()
        if not text:
            continue
        try:
            values[code] = float(text)
        except ValueError as exc:
            raise FormatError(f"invalid {code} observation {text!r}") from exc
    return values


def _format_sat_line(sv: str, codes: List[str], values: Dict[str, float]) -> str:
    fields = []
    for code in codes:
        value = values.get(code)
        fields.append(" " * OBS_FIELD_WIDTH if value is None else f"{value:14.3f}  ")
    return (sv + "".join(fields)).rstrip()


def _retain_obs_block(block: EpochBlock, predicate: Callable[[str], bool]) -> Optional[EpochBlock]:
    flag, _, clock = _parse_obs_epoch_line(block.lines[0])
    if flag > 1:
        return block
    lines = [line for line in block.lines[1:]
             if not is_sv(line[:3]) or predicate(normalize_sv(line[:3]))]
    if not lines:
        return None
    if len(lines) == len(block.lines) - 1:
        return block
    return EpochBlock(block.epoch, [_format_obs_epoch_line(block.epoch, flag, len(lines), clock)] + lines)


def _format_time_of_obs(epoch: datetime, time_system: str, label: str) -> str:
    sec = epoch.second + epoch.microsecond * 1e-6
    content = (f"{epoch.year:6d}{epoch.month:6d}{epoch.day:6d}{epoch.hour:6d}"
               f"{epoch.minute:6d}{sec:13.7f}     {time_system:<3s}")
    return f"{content:<60}{label}"


def _refresh_time_of_obs(lines: List[str], first: datetime, last: datetime,
                         time_system: str) -> List[str]:
    refreshed = []
    for line in lines:
        label = _label(line)
        if label == 'TIME OF FIRST OBS':
            line = _format_time_of_obs(first, time_system, label)
        elif label == 'TIME OF LAST OBS':
            line = _format_time_of_obs(last, time_system, label)
        refreshed.append(line)
    return refreshed
