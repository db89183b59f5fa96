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

"""Positioning analysis: single receiver (ppp) and differential (rtk) runs"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd
import plotly.graph_objects as go

from .config import PositioningConfig
from .context.builder import AnalysisContext, require_position
from .context.position import GeodeticPosition
from .coordinate import ecef2enu, ecef2geodetic_deg
from .core.constants import SOLQ_DGPS, SOLQ_SINGLE
from .errors import (MissingNavigationError, MissingObservationError,
                     MissingReferenceSiteError, PositioningSolverError)
from .gnss import geometry
from .gnss.spp import single_point_positioning
from .report import ExtraPage
from .rtk.double_difference import solve_baseline

logger = logging.getLogger(__name__)

Observations = Iterable[Tuple[datetime, Dict[str, Dict[str, float]]]]
StateProvider = Callable[[datetime, Dict[str, float]], geometry.SatelliteStates]


@dataclass
class PositionSolution:
    """Position estimate of one epoch"""
    epoch: datetime
    position: np.ndarray
    satellites: int
    quality: int
    residual_rms: float = float('nan')
    pdop: float = float('nan')


def select_pseudoranges(values: Dict[str, Dict[str, float]],
                        cfg: PositioningConfig) -> Dict[str, float]:
    """First available code of the priority list, per satellite of the enabled constellations"""
    selected = {}
    for sv, codes in values.items():
        if sv[0] not in cfg.systems:
            continue
        for code in cfg.code_priority:
            value = codes.get(code)
            if value is not None and value > 0:
                selected[sv] = value
                break
    return selected


def single_receiver_solutions(observations: Observations,
                              states: StateProvider,
                              cfg: PositioningConfig,
                              initial_pos: Optional[np.ndarray] = None) -> List[PositionSolution]:
    """Run the single receiver solver on every epoch"""
    solutions = []
    x0 = initial_pos
    for epoch, values in observations:
        pseudoranges = select_pseudoranges(values, cfg)
        if len(pseudoranges) < cfg.min_satellites:
            logger.debug("%s: not enough pseudoranges (%d)", epoch, len(pseudoranges))
            continue

        solution = single_point_positioning(
            states(epoch, pseudoranges), pseudoranges,
            initial_pos=x0,
            elevation_mask=cfg.elevation_mask,
            max_iterations=cfg.max_iterations,
            min_satellites=cfg.min_satellites,
            troposphere=cfg.troposphere)
        if solution is None:
            logger.debug("%s: unresolved", epoch)
            continue

        solutions.append(PositionSolution(
            epoch=epoch,
            position=solution.position,
            satellites=len(solution.satellites),
            quality=SOLQ_SINGLE,
            residual_rms=solution.residual_rms,
            pdop=solution.pdop,
        ))
        x0 = solution.position
    return solutions


def differential_solutions(rover: Observations,
                           base: Dict[datetime, Dict[str, Dict[str, float]]],
                           states: StateProvider,
                           base_position: np.ndarray,
                           cfg: PositioningConfig,
                           initial_baseline: Optional[np.ndarray] = None) -> List[PositionSolution]:
    """Run the double difference solver on every epoch common to rover and base"""
    solutions = []
    baseline = initial_baseline
    for epoch, values in rover:
        if epoch not in base:
            continue
        rover_pr = select_pseudoranges(values, cfg)
        base_pr = select_pseudoranges(base[epoch], cfg)
        common = {sv: pr for sv, pr in rover_pr.items() if sv in base_pr}
        if len(common) < cfg.min_satellites:
            logger.debug("%s: not enough common satellites (%d)", epoch, len(common))
            continue

        solution = solve_baseline(
            states(epoch, common), rover_pr, base_pr, base_position,
            initial_baseline=baseline,
            elevation_mask=cfg.elevation_mask,
            max_iter=cfg.max_iterations)
        if solution is None:
            logger.debug("%s: unresolved", epoch)
            continue

        solutions.append(PositionSolution(
            epoch=epoch,
            position=solution.rover_position,
            satellites=len(solution.satellites),
            quality=SOLQ_DGPS,
            residual_rms=solution.residual_rms,
        ))
        baseline = solution.baseline
    return solutions


def solutions_frame(solutions: List[PositionSolution],
                    reference: Optional[GeodeticPosition] = None) -> pd.DataFrame:
    """Solution table, with ENU offsets when a reference position is known"""
    rows = []
    for sol in solutions:
        lat, lon, alt = ecef2geodetic_deg(sol.position)
        row = {
            'epoch': sol.epoch,
            'x [m]': sol.position[0], 'y [m]': sol.position[1], 'z [m]': sol.position[2],
            'latitude [deg]': lat, 'longitude [deg]': lon, 'altitude [m]': alt,
            'satellites': sol.satellites,
            'quality': sol.quality,
            'residual rms [m]': sol.residual_rms,
            'pdop': sol.pdop,
        }
        if reference is not None:
            east, north, up = ecef2enu(sol.position, reference.ecef)
            row.update({'east [m]': east, 'north [m]': north, 'up [m]': up})
        rows.append(row)
    return pd.DataFrame(rows)


def statistics_frame(frame: pd.DataFrame) -> pd.DataFrame:
    columns = [c for c in ('east [m]', 'north [m]', 'up [m]') if c in frame]
    if not columns:
        return pd.DataFrame()
    stats = frame[columns].agg(['mean', 'std', 'min', 'max']).T
    stats.insert(0, 'component', stats.index)
    return stats.reset_index(drop=True)


def solutions_figure(frame: pd.DataFrame, title: str) -> go.Figure:
    fig = go.Figure()
    if 'east [m]' in frame:
        for column in ('east [m]', 'north [m]', 'up [m]'):
            fig.add_trace(go.Scatter(x=frame['epoch'], y=frame[column], mode='markers', name=column))
        fig.update_layout(yaxis_title='offset [m]')
    else:
        fig.add_trace(go.Scatter(x=frame['longitude [deg]'], y=frame['latitude [deg]'],
                                 mode='markers', name='solutions'))
        fig.update_layout(xaxis_title='longitude [deg]', yaxis_title='latitude [deg]')
    fig.update_layout(title=title, font={'family': 'Times New Roman', 'size': 14})
    return fig


def _epoch_map(observations: Observations) -> Dict[datetime, Dict[str, Dict[str, float]]]:
    return {epoch: values for epoch, values in observations}


def precise_positioning(ctx: AnalysisContext, rtk: bool,
                        cfg: Optional[PositioningConfig] = None) -> ExtraPage:
    """
    Resolve the receiver position at every epoch

    Parameters:
    -----------
    ctx : AnalysisContext
        Analysis context
    rtk : bool
        Differential run against the context reference site
    cfg : PositioningConfig, optional
        Positioning settings (defaults when omitted)

    Returns:
    --------
    ExtraPage
        "RTK" or "PPP" report page

    Raises:
    -------
    MissingObservationError, MissingNavigationError
        Required input product is missing
    MissingReferenceSiteError
        Differential run without a reference site
    MissingPositionError
        Differential run without a rover position
    PositioningSolverError
        No epoch could be resolved
    """
    cfg = cfg or PositioningConfig()
    mode = "RTK" if rtk else "PPP"

    obs = ctx.data.observation()
    if obs is None:
        raise MissingObservationError()
    brdc = ctx.data.navigation()
    if brdc is None:
        raise MissingNavigationError()

    if rtk:
        if ctx.reference_site is None:
            raise MissingReferenceSiteError(
                "differential positioning requires a reference site that declares its position")
        base_obs = ctx.reference_site.data.observation()
        if base_obs is None:
            raise MissingObservationError("missing base station OBS RINEX")
        rx_position = require_position(ctx)

    nav = geometry.load_navigation(brdc)

    def states(epoch, pseudoranges):
        return geometry.compute_satellite_positions(epoch, pseudoranges, nav)

    logger.info("%s positioning: %s", mode, cfg.to_dict())
    if rtk:
        base_position = ctx.reference_site.position.ecef
        solutions = differential_solutions(
            obs.observations(), _epoch_map(base_obs.observations()), states, base_position, cfg,
            initial_baseline=rx_position.ecef - base_position)
    else:
        x0 = ctx.rx_position.ecef if ctx.rx_position is not None else None
        solutions = single_receiver_solutions(obs.observations(), states, cfg, initial_pos=x0)

    if not solutions:
        raise PositioningSolverError(f"{mode}: no epoch could be resolved")
    logger.info("%s: %d epoch(s) resolved", mode, len(solutions))

    frame = solutions_frame(solutions, ctx.rx_position)
    csv = ctx.workspace.path(f"{mode.lower()}-solutions.csv")
    frame.to_csv(csv, index=False)
    logger.info("%s solutions exported \"%s\"", mode, csv)

    tables = [("Solutions", frame)]
    stats = statistics_frame(frame)
    if not stats.empty:
        tables.insert(0, ("Statistics", stats))
    return ExtraPage(mode, tables=tables, figures=[solutions_figure(frame, f"{mode} solutions")])
