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

"""Aggregate dataset: every record loaded for one side (rover or base station)"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..errors import ContextInitError
from ..io.rinex import Rinex, RinexType, file_stem
from ..io.sp3 import SP3
from ..preprocessing import Filter, parse_filters, preprocess

Record = Union[Rinex, SP3]


class ProductType(Enum):
    """Kind of product a record provides"""
    OBSERVATION = "Observation"
    NAVIGATION = "BrdcNavigation"
    METEO = "Meteo"
    CLOCK = "HighPrecisionClock"
    SP3 = "HighPrecisionOrbit"

    @classmethod
    def of(cls, record: Record) -> "ProductType":
        if isinstance(record, SP3):
            return cls.SP3
        return {
            RinexType.OBSERVATION: cls.OBSERVATION,
            RinexType.NAVIGATION: cls.NAVIGATION,
            RinexType.METEO: cls.METEO,
            RinexType.CLOCK: cls.CLOCK,
        }[record.rinex_type]


@dataclass
class DataSet:
    """Records indexed by product type.

    Files of the same product type are merged into one record as they are
    loaded. A failed merge leaves the dataset untouched. Once built, a
    dataset is only transformed into new datasets (see :meth:`preprocess`).
    """
    filters: Tuple[Filter, ...] = ()
    records: Dict[ProductType, Record] = field(default_factory=dict)
    files: Dict[ProductType, List[Path]] = field(default_factory=dict)

    @classmethod
    def new(cls, filters: Sequence[str] = ()) -> "DataSet":
        """Initialize an empty dataset with its preprocessing filters"""
        try:
            parsed = parse_filters(filters)
        except ValueError as exc:
            raise ContextInitError(f"failed to initialize a context: {exc}") from exc
        return cls(filters=tuple(parsed))

    def load_rinex(self, path, rinex: Rinex) -> None:
        self._load(path, rinex)

    def load_sp3(self, path, sp3: SP3) -> None:
        self._load(path, sp3)

    def _load(self, path, record: Record) -> None:
        product = ProductType.of(record)
        existing = self.records.get(product)
        # merge() raises before anything is stored
        merged = record if existing is None else existing.merge(record)
        self.records[product] = merged
        self.files.setdefault(product, []).append(Path(path))

    def get(self, product: ProductType) -> Optional[Record]:
        return self.records.get(product)

    def observation(self) -> Optional[Rinex]:
        return self.records.get(ProductType.OBSERVATION)

    def navigation(self) -> Optional[Rinex]:
        return self.records.get(ProductType.NAVIGATION)

    def meteo(self) -> Optional[Rinex]:
        return self.records.get(ProductType.METEO)

    def clock(self) -> Optional[Rinex]:
        return self.records.get(ProductType.CLOCK)

    def sp3(self) -> Optional[SP3]:
        return self.records.get(ProductType.SP3)

    def items(self) -> Iterator[Tuple[ProductType, Record]]:
        for product in ProductType:
            if product in self.records:
                yield product, self.records[product]

    def is_empty(self) -> bool:
        return not self.records

    def loaded_files(self) -> List[Path]:
        return [path for product in ProductType for path in self.files.get(product, [])]

    def reference_position(self) -> Optional[np.ndarray]:
        """Geodetic marker declared by the observation record, if any"""
        obs = self.observation()
        if obs is None:
            return None
        return obs.reference_position()

    def name(self) -> str:
        """Name of this dataset, derived from its primary file"""
        for product in (ProductType.OBSERVATION, ProductType.NAVIGATION, ProductType.SP3,
                        ProductType.METEO, ProductType.CLOCK):
            paths = self.files.get(product)
            if paths:
                return file_stem(paths[0])
        return "undefined"

    def preprocess(self) -> "DataSet":
        """New dataset with every filter applied to every record"""
        records = {product: preprocess(record, self.filters)
                   for product, record in self.records.items()}
        return DataSet(filters=self.filters, records=records,
                       files={product: list(paths) for product, paths in self.files.items()})

    def summary(self) -> pd.DataFrame:
        """One row per product type"""
        rows = []
        for product, record in self.items():
            rows.append({
                'product': product.value,
                'files': len(self.files.get(product, [])),
                'first epoch': record.first_epoch(),
                'last epoch': record.last_epoch(),
                'epochs': len(record.epochs()),
                'sampling [s]': record.sampling_interval(),
                'constellations': ", ".join(record.constellations()),
                'satellites': len(record.satellites()),
            })
        return pd.DataFrame(rows, columns=['product', 'files', 'first epoch', 'last epoch', 'epochs',
                                           'sampling [s]', 'constellations', 'satellites'])

    def __str__(self) -> str:
        if self.is_empty():
            return "DataSet(empty)"
        return "DataSet(\n{}\n)".format(self.summary().to_string(index=False))
