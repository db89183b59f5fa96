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

"""Base station (reference site) of differential runs"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ..core.constants import BASELINE_KM_THRESHOLD, MAX_RECURSIVE_DEPTH
from ..errors import MissingGeodeticMarkerError
from ..io.formats import DEFAULT_PROBES, FormatProbe
from .dataset import DataSet
from .loader import load_user_data
from .position import GeodeticPosition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReferenceSite:
    """Base station dataset and its geodetic marker"""
    data: DataSet
    position: GeodeticPosition


def reference_site_from(data: DataSet,
                        rover_position: Optional[GeodeticPosition] = None) -> ReferenceSite:
    """Pair a loaded base station dataset with its declared marker"""
    marker = data.reference_position()
    if marker is None:
        raise MissingGeodeticMarkerError(
            "remote reference site does not have its geodetic marker defined")

    position = GeodeticPosition.from_ecef(marker)
    lat, lon, _ = position.geodetic
    logger.info("reference site: (%.3f, %.3f, %.3f) [ECEF] (lat=%.5f°, lon=%.5f°)",
                position.x, position.y, position.z, lat, lon)

    if rover_position is not None:
        baseline = rover_position.distance_to(position)
        if baseline > BASELINE_KM_THRESHOLD:
            logger.info("rtk baseline: %.3f km", baseline / 1000.0)
        else:
            logger.info("rtk baseline: %.3f m", baseline)

    return ReferenceSite(data=data, position=position)


def build_reference_site(files: Sequence = (),
                         directories: Sequence = (),
                         max_depth: int = MAX_RECURSIVE_DEPTH,
                         rover_position: Optional[GeodeticPosition] = None,
                         filters: Sequence[str] = (),
                         probes: Sequence[FormatProbe] = DEFAULT_PROBES) -> ReferenceSite:
    """
    Load the base station files and build the reference site

    Raises:
    -------
    MissingGeodeticMarkerError
        The base station data does not declare a geodetic marker
    ContextInitError
        The base station dataset could not be initialized
    """
    data = load_user_data(files, directories, max_depth, filters, probes, rover=False)
    return reference_site_from(data, rover_position)
