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

"""Single Point Positioning (SPP) core implementation"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np
from numpy.linalg import norm

from ..coordinate import ecef2llh
from ..core.constants import CLIGHT, RE_WGS84, SYS_BDS, SYS_GLO
from .geometry import SatelliteStates, geodist, sagnac_correction, satazel

logger = logging.getLogger(__name__)

# Constants
MAXITR = 10          # max iterations
MIN_EL = 5.0         # min elevation of the troposphere model in degrees


def tropmodel_simple(pos, el):
    """Simple tropospheric model (Saastamoinen-like)"""
    if el < np.deg2rad(MIN_EL):
        return 0.0

    # Standard atmosphere at sea level
    P0 = 1013.25  # hPa
    T0 = 288.15   # K
    e0 = 11.75    # hPa (water vapor pressure)

    h = min(max(pos[2], 0.0), 44330.0)

    base = 1 - 2.26e-5 * h
    P = P0 * base ** 5.225 if base > 0 else 0.0
    T = T0 - 6.5e-3 * h
    e = e0 * (T / T0) ** 4.0

    # Zenith delays
    zhd = 0.0022768 * P / (1 - 0.00266 * np.cos(2 * pos[0]) - 0.00028e-3 * h)
    zwd = 0.0022768 * (1255 / T + 0.05) * e

    return (zhd + zwd) / np.sin(el)


def varerr(sys, el):
    """Variance of pseudorange error"""
    a = 0.3  # Base error (m)
    b = 0.3  # Elevation-dependent error (m)

    s_el = np.sin(el)
    if s_el <= 0:
        return 100.0

    var = (a ** 2) + (b / s_el) ** 2

    if sys == SYS_GLO:
        var *= 1.5
    elif sys == SYS_BDS:
        var *= 1.2

    return var


@dataclass
class EpochSolution:
    """Single epoch position estimate"""
    position: np.ndarray
    clocks: Dict[str, float] = field(default_factory=dict)  # receiver clock per constellation [s]
    satellites: List[str] = field(default_factory=list)
    pdop: float = float('nan')
    residual_rms: float = float('nan')
    iterations: int = 0


def single_point_positioning(states: SatelliteStates,
                             pseudoranges: Dict[str, float],
                             initial_pos: Optional[np.ndarray] = None,
                             elevation_mask: float = 10.0,
                             max_iterations: int = MAXITR,
                             min_satellites: int = 4,
                             troposphere: bool = True) -> Optional[EpochSolution]:
    """
    Perform single point positioning using iterative weighted least squares

    Parameters:
    -----------
    states : SatelliteStates
        Satellite positions (ECEF, m) and clock offsets (s) at transmit time
    pseudoranges : Dict[str, float]
        Pseudorange per satellite (m)
    initial_pos : np.ndarray, optional
        Initial position estimate (ECEF)
    elevation_mask : float
        Elevation mask in degrees
    max_iterations : int
        Maximal number of iterations
    min_satellites : int
        Minimal number of satellites
    troposphere : bool
        Apply the troposphere model

    Returns:
    --------
    EpochSolution or None
        None when the geometry can't be solved or did not converge
    """
    svs = sorted(sv for sv in pseudoranges if sv in states and pseudoranges[sv] > 0)
    if len(svs) < min_satellites:
        return None

    systems = sorted({sv[0] for sv in svs})
    nx = 3 + len(systems)

    # [x, y, z, one receiver clock (m) per constellation]
    x = np.zeros(nx)
    if initial_pos is not None:
        x[:3] = initial_pos

    mask = np.deg2rad(elevation_mask)
    converged = False
    for iteration in range(max_iterations):
        pos = x[:3]
        # the elevation is meaningless until the estimate lies near the surface
        on_surface = norm(pos) > 0.9 * RE_WGS84
        llh = ecef2llh(pos) if on_surface else np.zeros(3)

        H, v, var, used = [], [], [], []
        for sv in svs:
            sat_pos, dts = states[sv]
            r, e = geodist(sat_pos, pos)
            if r <= 0:
                continue

            if on_surface:
                _, el = satazel(llh, e)
                if el < mask:
                    continue
            else:
                el = np.pi / 4

            k = systems.index(sv[0])
            dtrp = tropmodel_simple(llh, el) if troposphere and iteration > 0 else 0.0
            res = pseudoranges[sv] - (r + sagnac_correction(sat_pos, pos) + x[3 + k]
                                      - CLIGHT * dts + dtrp)

            row = np.zeros(nx)
            row[:3] = -e
            row[3 + k] = 1.0
            H.append(row)
            v.append(res)
            var.append(varerr(sv[0], el))
            used.append(sv)

        if len(v) < min_satellites:
            return None

        H = np.array(H)
        v = np.array(v)
        W = np.diag(1.0 / np.array(var))

        # Remove unused clock parameters
        active = np.where(np.any(H != 0.0, axis=0))[0]
        if len(v) < len(active):
            return None
        H_reduced = H[:, active]

        try:
            dx_reduced = np.linalg.solve(H_reduced.T @ W @ H_reduced, H_reduced.T @ W @ v)
        except np.linalg.LinAlgError:
            return None
        dx = np.zeros(nx)
        dx[active] = dx_reduced
        x += dx

        if norm(dx[:3]) < 1e-4:
            converged = True
            break

    if not converged:
        logger.debug("SPP did not converge after %d iterations", max_iterations)
        return None

    try:
        Q = np.linalg.inv(H_reduced.T @ H_reduced)
        pdop = float(np.sqrt(np.trace(Q[:3, :3])))
    except np.linalg.LinAlgError:
        pdop = float('nan')

    post_fit = v - H @ dx
    clocks = {sys: float(x[3 + k] / CLIGHT) for k, sys in enumerate(systems)
              if 3 + k in active}

    return EpochSolution(
        position=x[:3].copy(),
        clocks=clocks,
        satellites=used,
        pdop=pdop,
        residual_rms=float(np.sqrt(np.mean(post_fit ** 2))),
        iterations=iteration + 1,
    )
