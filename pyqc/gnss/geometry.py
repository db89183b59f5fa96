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

"""Satellite geometry helpers backed by cssrlib."""

from __future__ import annotations

import logging
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Dict, Tuple

import numpy as np
from numpy.linalg import norm

from cssrlib.ephemeris import satpos as cssr_satpos
from cssrlib.gnss import Nav, epoch2time, gpst2bdt, gpst2utc, id2sat, timeadd, rCST
from cssrlib.rinex import rnxdec

from ..core.constants import CLIGHT, OMGE, SYS_BDS, SYS_GLO
from ..io.rinex import Rinex

logger = logging.getLogger(__name__)

SatelliteStates = Dict[str, Tuple[np.ndarray, float]]


def load_navigation(rinex: Rinex) -> Nav:
    """Decode a navigation record into a cssrlib Nav object."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = rinex.to_file(Path(tmpdir) / "BRDC.rnx")
        nav = Nav()
        decoder = rnxdec()
        decoder.decode_nav(str(path), nav, append=False)
    return nav


def _gtime(epoch: datetime):
    return epoch2time([epoch.year, epoch.month, epoch.day, epoch.hour, epoch.minute,
                       epoch.second + epoch.microsecond * 1e-6])


def _transmit_time(reception_time, pseudorange: float, sys_char: str):
    t_obs = reception_time
    if sys_char == SYS_BDS:  # BeiDou uses BDT
        t_obs = gpst2bdt(t_obs)
    elif sys_char == SYS_GLO:  # GLONASS uses UTC+3h
        t_obs = gpst2utc(t_obs)
        t_obs = timeadd(t_obs, 10800.0)
    return timeadd(t_obs, -pseudorange / rCST.CLIGHT)


def compute_satellite_positions(epoch: datetime, pseudoranges: Dict[str, float],
                                nav: Nav) -> SatelliteStates:
    """Return ``{sv: (ecef [m], clock offset [s])}`` of healthy satellites.

    ``epoch`` is the reception time (GPST).
    """
    t_rx = _gtime(epoch)
    states = {}
    for sv, pr in pseudoranges.items():
        sat = id2sat(sv)
        if sat <= 0:
            continue

        t_tx = _transmit_time(t_rx, pr, sv[0])
        rs, _, dts, svh = cssr_satpos(sat, t_tx, nav)
        if rs is None or np.isnan(rs).any() or dts is None or np.isnan(dts).any():
            continue
        if svh[0] != 0:
            logger.debug("%s %s is unhealthy", epoch, sv)
            continue

        states[sv] = (np.asarray(rs[0], dtype=float), float(dts[0]))
    return states


def sagnac_correction(sat_pos, rec_pos):
    """Sagnac effect correction"""
    return (OMGE / CLIGHT) * (sat_pos[0] * rec_pos[1] - sat_pos[1] * rec_pos[0])


def geodist(sat_pos, rec_pos):
    """Geometric distance and unit vector"""
    diff = np.asarray(sat_pos) - np.asarray(rec_pos)
    r = norm(diff)
    if r > 0:
        e = diff / r
    else:
        e = np.zeros(3)
    return r, e


def satazel(pos, e):
    """Satellite azimuth/elevation from receiver position (llh) and line-of-sight vector"""
    lat, lon = pos[0], pos[1]

    R = np.array([
        [-np.sin(lon), np.cos(lon), 0],
        [-np.sin(lat)*np.cos(lon), -np.sin(lat)*np.sin(lon), np.cos(lat)],
        [np.cos(lat)*np.cos(lon), np.cos(lat)*np.sin(lon), np.sin(lat)]
    ])
    enu = R @ e

    az = np.arctan2(enu[0], enu[1])
    if az < 0:
        az += 2 * np.pi
    el = np.arcsin(np.clip(enu[2], -1.0, 1.0))

    return az, el
