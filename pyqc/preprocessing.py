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


"""Dataset preprocessing.

Filters are declared on the command line (``-P``), one expression each:

=============================  ==============================================
``gnss:G,E``                   retain GPS and Galileo
``!gnss:R``                    drop Glonass
``start:2020-06-25T04:00:00``  drop epochs before (inclusive bound)
``end:2020-06-25T12:00:00``    drop epochs after (inclusive bound)
``decim:30s``                  keep epochs at least 30 s apart
``sv:!G08,R11``                drop satellites (``sv:G08`` retains only G08)
=============================  ==============================================

They are applied in declaration order to every record of a dataset.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import FrozenSet, List, Optional, Sequence, Union

from .core.constants import CONSTELLATIONS, is_sv, normalize_sv
from .io.rinex import Rinex, RinexType
from .io.sp3 import SP3

Record = Union[Rinex, SP3]

DURATION = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(d|h|min|s)?\s*$")
DURATION_UNITS = {'d': 86400.0, 'h': 3600.0, 'min': 60.0, 's': 1.0, None: 1.0}


def parse_duration(text: str) -> timedelta:
    """Parse ``1d``, ``2h``, ``30min``, ``15s`` or a bare number of seconds"""
    match = DURATION.match(text)
    if match is None:
        raise ValueError(f"invalid duration {text!r}")
    seconds = float(match.group(1)) * DURATION_UNITS[match.group(2)]
    if seconds <= 0:
        raise ValueError(f"duration must be positive: {text!r}")
    return timedelta(seconds=seconds)


def parse_epoch(text: str) -> datetime:
    """Parse an ISO 8601 epoch (``2020-06-25T12:00:00`` or ``2020-06-25 12:00:00``).

    An epoch with a UTC offset is converted to a naive epoch, record
    epochs carry no time zone.
    """
    try:
        epoch = datetime.fromisoformat(text.strip())
    except ValueError as exc:
        raise ValueError(f"invalid epoch {text!r}") from exc
    if epoch.tzinfo is not None:
        epoch = epoch.astimezone(timezone.utc).replace(tzinfo=None)
    return epoch


@dataclass(frozen=True)
class ConstellationFilter:
    systems: FrozenSet[str]
    exclude: bool = False

    def apply(self, record: Record) -> Record:
        return record.retain_satellites(lambda sv: (sv[0] in self.systems) != self.exclude)


@dataclass(frozen=True)
class SatelliteFilter:
    satellites: FrozenSet[str]
    exclude: bool = True

    def apply(self, record: Record) -> Record:
        return record.retain_satellites(lambda sv: (sv in self.satellites) != self.exclude)


@dataclass(frozen=True)
class TimeWindow:
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def apply(self, record: Record) -> Record:
        return record.filter_epochs(
            lambda t: (self.start is None or t >= self.start) and (self.end is None or t <= self.end))


@dataclass(frozen=True)
class Decimation:
    interval: timedelta

    def apply(self, record: Record) -> Record:
        # Navigation messages are not sampled data
        if isinstance(record, Rinex) and record.rinex_type in (RinexType.NAVIGATION, RinexType.CLOCK):
            return record
        kept = set()
        last = None
        for epoch in record.epochs():
            if last is None or epoch - last >= self.interval:
                kept.add(epoch)
                last = epoch
        return record.filter_epochs(lambda t: t in kept)


Filter = Union[ConstellationFilter, SatelliteFilter, TimeWindow, Decimation]


def _constellations(text: str) -> FrozenSet[str]:
    systems = frozenset(token.strip().upper() for token in text.split(',') if token.strip())
    unknown = systems - set(CONSTELLATIONS)
    if not systems or unknown:
        raise ValueError(f"invalid constellation list {text!r}")
    return systems


def _satellites(text: str) -> FrozenSet[str]:
    tokens = [token.strip() for token in text.split(',') if token.strip()]
    if not tokens or not all(is_sv(token) for token in tokens):
        raise ValueError(f"invalid satellite list {text!r}")
    return frozenset(normalize_sv(token) for token in tokens)


def parse_filter(expression: str) -> Filter:
    """Parse one filter expression, raising ValueError when it is invalid"""
    expression = expression.strip()
    negated = expression.startswith('!')
    if negated:
        expression = expression[1:]
    key, sep, value = expression.partition(':')
    key = key.strip().lower()
    if not sep or not value.strip():
        raise ValueError(f"invalid filter {expression!r}")

    if key == 'gnss':
        return ConstellationFilter(_constellations(value), exclude=negated)
    if negated:
        raise ValueError(f"{key} filter can't be negated")
    if key == 'sv':
        value = value.strip()
        exclude = value.startswith('!')
        return SatelliteFilter(_satellites(value.lstrip('!')), exclude=exclude)
    if key == 'start':
        return TimeWindow(start=parse_epoch(value))
    if key == 'end':
        return TimeWindow(end=parse_epoch(value))
    if key == 'decim':
        return Decimation(parse_duration(value))
    raise ValueError(f"unknown filter {key!r}")


def parse_filters(expressions: Sequence[str]) -> List[Filter]:
    return [parse_filter(expression) for expression in expressions]


def preprocess(record: Record, filters: Sequence[Filter]) -> Record:
    """Apply every filter, in order"""
    for f in filters:
        record = f.apply(record)
    return record
