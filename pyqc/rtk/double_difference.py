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

"""Double Difference Least Squares Solution for differential code positioning"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from ..coordinate import ecef2llh
from ..gnss.geometry import SatelliteStates, geodist, sagnac_correction, satazel

logger = logging.getLogger(__name__)

SatPair = Tuple[str, str]


@dataclass
class BaselineSolution:
    """Baseline (rover - base) estimate of one epoch"""
    baseline: np.ndarray
    rover_position: np.ndarray
    reference_satellites: Dict[str, str] = field(default_factory=dict)
    pairs: List[SatPair] = field(default_factory=list)
    residual_rms: float = float('nan')
    iterations: int = 0

    @property
    def satellites(self) -> List[str]:
        svs = set(self.reference_satellites.values())
        svs.update(other for _, other in self.pairs)
        return sorted(svs)


def _range(sat_pos, rec_pos) -> Tuple[float, np.ndarray]:
    r, e = geodist(sat_pos, rec_pos)
    return r + sagnac_correction(sat_pos, rec_pos), e


def form_double_differences(rover_pr: Dict[str, float],
                            base_pr: Dict[str, float],
                            elevations: Dict[str, float]) -> Tuple[Dict[str, str], List[SatPair], np.ndarray]:
    """
    Form code double differences per constellation

    The reference satellite of each constellation is the one with the
    highest elevation. Constellations with a single common satellite
    don't contribute.

    Returns:
    --------
    reference_satellites : Dict[str, str]
        Reference satellite per constellation
    pairs : List[Tuple[str, str]]
        (reference, other) satellite pairs
    dd : np.ndarray
        Observed double differences (m), in pair order
    """
    common = sorted(sv for sv in rover_pr if sv in base_pr and sv in elevations)
    by_system: Dict[str, List[str]] = {}
    for sv in common:
        by_system.setdefault(sv[0], []).append(sv)

    references = {}
    pairs = []
    dd = []
    for sys, svs in sorted(by_system.items()):
        if len(svs) < 2:
            continue
        ref = max(svs, key=lambda sv: elevations[sv])
        references[sys] = ref
        sd_ref = rover_pr[ref] - base_pr[ref]
        for sv in svs:
            if sv == ref:
                continue
            pairs.append((ref, sv))
            dd.append((rover_pr[sv] - base_pr[sv]) - sd_ref)

    return references, pairs, np.array(dd)


def dd_covariance(pairs: List[SatPair], sigma: float = 1.0) -> np.ndarray:
    """Covariance of double differences sharing their reference satellite"""
    n = len(pairs)
    C = np.zeros((n, n))
    for i, (ref_i, _) in enumerate(pairs):
        for j, (ref_j, _) in enumerate(pairs):
            if ref_i == ref_j:
                C[i, j] = 1.0
    return 2.0 * sigma ** 2 * (C + np.eye(n))


def solve_baseline(states: SatelliteStates,
                   rover_pr: Dict[str, float],
                   base_pr: Dict[str, float],
                   base_pos: np.ndarray,
                   initial_baseline: Optional[np.ndarray] = None,
                   elevation_mask: float = 10.0,
                   max_iter: int = 10,
                   convergence_threshold: float = 1e-4) -> Optional[BaselineSolution]:
    """
    Solve for baseline vector using DD least squares

    Parameters:
    -----------
    states : SatelliteStates
        Satellite positions (ECEF, m) and clock offsets (s)
    rover_pr, base_pr : Dict[str, float]
        Pseudoranges per satellite (m)
    base_pos : np.ndarray
        Base station position in ECEF
    initial_baseline : np.ndarray, optional
        Initial baseline estimate (default: zero)
    elevation_mask : float
        Elevation mask in degrees, seen from the base station
    max_iter : int
        Maximum iterations
    convergence_threshold : float
        Convergence threshold in meters

    Returns:
    --------
    BaselineSolution or None
        None with less than 3 double differences or without convergence
    """
    base_pos = np.asarray(base_pos, dtype=float)
    base_llh = ecef2llh(base_pos)
    mask = np.deg2rad(elevation_mask)

    elevations = {}
    base_ranges = {}
    for sv, (sat_pos, _) in states.items():
        rho, e = _range(sat_pos, base_pos)
        _, el = satazel(base_llh, e)
        if el >= mask:
            elevations[sv] = el
            base_ranges[sv] = rho

    references, pairs, dd = form_double_differences(rover_pr, base_pr, elevations)
    if len(pairs) < 3:
        logger.debug("not enough double differences: %d", len(pairs))
        return None

    W = np.linalg.inv(dd_covariance(pairs))
    baseline = np.zeros(3) if initial_baseline is None else np.array(initial_baseline, dtype=float)

    for iteration in range(max_iter):
        rover_pos = base_pos + baseline
        H = np.zeros((len(pairs), 3))
        residuals = np.zeros(len(pairs))
        for i, (ref, sv) in enumerate(pairs):
            rho_ref, e_ref = _range(states[ref][0], rover_pos)
            rho_sv, e_sv = _range(states[sv][0], rover_pos)
            computed = (rho_sv - base_ranges[sv]) - (rho_ref - base_ranges[ref])
            residuals[i] = dd[i] - computed
            H[i] = -e_sv + e_ref

        try:
            dx = np.linalg.solve(H.T @ W @ H, H.T @ W @ residuals)
        except np.linalg.LinAlgError:
            return None
        baseline += dx

        if np.linalg.norm(dx) < convergence_threshold:
            break
    else:
        logger.debug("baseline did not converge after %d iterations", max_iter)
        return None

    post_fit = residuals - H @ dx
    return BaselineSolution(
        baseline=baseline,
        rover_position=base_pos + baseline,
        reference_satellites=references,
        pairs=pairs,
        residual_rms=float(np.sqrt(np.mean(post_fit ** 2))),
        iterations=iteration + 1,
    )
