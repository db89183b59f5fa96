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

"""Receiver reference position"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from ..coordinate import ecef2geodetic_deg
from .dataset import DataSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeodeticPosition:
    """ECEF position in meters (WGS84).

    Latitude, longitude and altitude are derived on demand, for display.
    """
    x: float
    y: float
    z: float

    @classmethod
    def from_ecef(cls, xyz: Sequence[float]) -> "GeodeticPosition":
        if len(xyz) != 3:
            raise ValueError(f"expecting 3 ECEF coordinates, got {len(xyz)}")
        return cls(float(xyz[0]), float(xyz[1]), float(xyz[2]))

    @property
    def ecef(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z])

    @property
    def geodetic(self) -> Tuple[float, float, float]:
        """(latitude [deg], longitude [deg], altitude [m])"""
        return ecef2geodetic_deg(self.ecef)

    @property
    def latitude(self) -> float:
        return self.geodetic[0]

    @property
    def longitude(self) -> float:
        return self.geodetic[1]

    @property
    def altitude(self) -> float:
        return self.geodetic[2]

    def distance_to(self, other: "GeodeticPosition") -> float:
        """Euclidean distance in meters"""
        return float(np.linalg.norm(self.ecef - other.ecef))

    def __str__(self) -> str:
        lat, lon, alt = self.geodetic
        return (f"ECEF ({self.x:.3f}, {self.y:.3f}, {self.z:.3f}) m "
                f"lat={lat:.6f}° lon={lon:.6f}° alt={alt:.3f} m")


def resolve_position(manual: Optional[Sequence[float]],
                     dataset: DataSet) -> Optional[GeodeticPosition]:
    """
    Resolve the receiver position of a dataset

    A manual position always takes precedence over the geodetic marker
    declared by the dataset. Returns None when neither exists.
    """
    if manual is not None:
        position = GeodeticPosition.from_ecef(manual)
        lat, lon, _ = position.geodetic
        logger.info("Manually defined position: (%.3f, %.3f, %.3f) [ECEF] "
                    "(lat=%.5f°, lon=%.5f°)", position.x, position.y, position.z, lat, lon)
        return position

    marker = dataset.reference_position()
    if marker is not None:
        position = GeodeticPosition.from_ecef(marker)
        lat, lon, _ = position.geodetic
        logger.info("Position defined in dataset: (%.3f, %.3f, %.3f) [ECEF] "
                    "(lat=%.5f°, lon=%.5f°)", position.x, position.y, position.z, lat, lon)
        return position

    logger.warning("No RX position defined")
    return None
