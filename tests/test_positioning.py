#!/usr/bin/env python3
"""Test suite for the positioning analysis"""

from datetime import datetime, timedelta

import numpy as np
import pandas as pd
import pytest

from pyqc import positioning
from pyqc.config import PositioningConfig
from pyqc.context.builder import AnalysisContext
from pyqc.context.dataset import DataSet
from pyqc.context.loader import load_user_data
from pyqc.context.position import GeodeticPosition
from pyqc.context.reference import ReferenceSite
from pyqc.context.workspace import Workspace
from pyqc.coordinate import enu2ecef
from pyqc.core.constants import SOLQ_DGPS, SOLQ_SINGLE
from pyqc.errors import (MissingNavigationError, MissingObservationError, MissingPositionError,
                         MissingReferenceSiteError)
from pyqc.positioning import (PositionSolution, differential_solutions, precise_positioning,
                              select_pseudoranges, single_receiver_solutions, solutions_frame,
                              statistics_frame)

T0 = datetime(2020, 6, 25)
SVS = ('G01', 'G02', 'G03', 'G04', 'G05', 'G06', 'E05', 'E07')
ROVER = (4027894.006, 307045.6, 4919474.91)
BASE = (4027881.3, 307016.8, 4919499.0)
CFG = PositioningConfig(troposphere=False)


def test_select_pseudoranges():
    values = {
        'G01': {'C1C': 2.1e7, 'C1W': 2.2e7},
        'G02': {'C1W': 2.3e7, 'L1C': 1.1e8},
        'G03': {'L1C': 1.1e8},
        'R05': {'C1C': 2.0e7},
        'E05': {'C1C': 0.0, 'C5Q': 2.4e7},
    }
    cfg = PositioningConfig(systems=('G', 'E'))

    assert select_pseudoranges(values, cfg) == {'G01': 2.1e7, 'G02': 2.3e7, 'E05': 2.4e7}


def _epochs(rx_xyz, states, make_pseudoranges, count=3, clocks=None):
    for idx in range(count):
        pseudoranges = make_pseudoranges(states, rx_xyz, clocks)
        yield T0 + timedelta(seconds=30 * idx), {sv: {'C1C': pr} for sv, pr in pseudoranges.items()}


def test_single_receiver_solutions(rover_xyz, make_sky, make_pseudoranges):
    states = make_sky(rover_xyz)

    solutions = single_receiver_solutions(
        _epochs(rover_xyz, states, make_pseudoranges, clocks={'G': 100.0, 'E': 120.0}),
        lambda epoch, pseudoranges: states, CFG)

    assert [sol.epoch for sol in solutions] == [T0, T0 + timedelta(seconds=30), T0 + timedelta(seconds=60)]
    for sol in solutions:
        np.testing.assert_allclose(sol.position, rover_xyz, atol=1e-3)
        assert sol.quality == SOLQ_SINGLE
        assert sol.satellites == len(SVS)


def test_single_receiver_skips_poor_epochs(rover_xyz, make_sky, make_pseudoranges):
    states = make_sky(rover_xyz)
    poor = [(T0, {'G01': {'C1C': 2.1e7}, 'G02': {'C1C': 2.2e7}})]

    assert single_receiver_solutions(poor, lambda epoch, pseudoranges: states, CFG) == []


def test_differential_solutions(rover_xyz, make_sky, make_pseudoranges):
    base = rover_xyz
    rover = enu2ecef(np.array([35.0, 12.0, -1.5]), base)
    states = make_sky(base)
    base_epochs = dict(_epochs(base, states, make_pseudoranges, count=2, clocks={'G': 40.0}))

    solutions = differential_solutions(
        _epochs(rover, states, make_pseudoranges, count=3, clocks={'G': -70.0}),
        base_epochs, lambda epoch, pseudoranges: states, base, CFG)

    # the third rover epoch has no base counterpart
    assert len(solutions) == 2
    for sol in solutions:
        np.testing.assert_allclose(sol.position, rover, atol=1e-3)
        assert sol.quality == SOLQ_DGPS


def test_solutions_frame(rover_xyz):
    reference = GeodeticPosition.from_ecef(rover_xyz)
    up = enu2ecef(np.array([0.0, 0.0, 2.0]), rover_xyz)
    solutions = [PositionSolution(T0, up, satellites=8, quality=SOLQ_SINGLE)]

    frame = solutions_frame(solutions, reference)

    assert frame['up [m]'].iloc[0] == pytest.approx(2.0, abs=1e-6)
    assert frame['east [m]'].iloc[0] == pytest.approx(0.0, abs=1e-6)
    assert frame['latitude [deg]'].iloc[0] == pytest.approx(45.0, abs=1e-6)

    stats = statistics_frame(frame)
    assert list(stats['component']) == ['east [m]', 'north [m]', 'up [m]']


def test_solutions_frame_without_reference(rover_xyz):
    frame = solutions_frame([PositionSolution(T0, rover_xyz, satellites=8, quality=SOLQ_SINGLE)])
    assert 'east [m]' not in frame
    assert statistics_frame(frame).empty


@pytest.fixture
def context(tmp_path, write_file, make_obs, make_nav):
    def _context(nav=True, reference_site=None, rx_position=None):
        files = [write_file('rover/ROVR.rnx', make_obs(svs=SVS, position=ROVER))]
        if nav:
            files.append(write_file('rover/BRDC.rnx', make_nav(svs=SVS)))
        data = load_user_data(files=files)
        workspace = Workspace(tmp_path / 'ws')
        workspace.root.mkdir(exist_ok=True)
        return AnalysisContext(name='ROVR', data=data, workspace=workspace, quiet=True,
                               reference_site=reference_site, rx_position=rx_position)
    return _context


@pytest.fixture
def base_site(write_file, make_obs):
    files = [write_file('base/BASE.rnx', make_obs(svs=SVS, marker='BASE', position=BASE, offset=3.0))]
    return ReferenceSite(data=load_user_data(files=files, rover=False), position=GeodeticPosition(*BASE))


@pytest.fixture
def fake_orbits(monkeypatch, make_sky):
    """Satellites placed on the sky at their pseudorange distance from the rover"""
    rover = np.array(ROVER)
    directions = {sv: (sat - rover) / np.linalg.norm(sat - rover)
                  for sv, (sat, _) in make_sky(rover).items()}

    def _states(epoch, pseudoranges, nav):
        return {sv: (rover + directions[sv] * pr, 0.0) for sv, pr in pseudoranges.items()
                if sv in directions}

    monkeypatch.setattr(positioning.geometry, 'load_navigation', lambda rinex: object())
    monkeypatch.setattr(positioning.geometry, 'compute_satellite_positions', _states)


def test_ppp_requires_observations(tmp_path):
    ctx = AnalysisContext(name='empty', data=DataSet(), workspace=Workspace(tmp_path))
    with pytest.raises(MissingObservationError):
        precise_positioning(ctx, rtk=False)


def test_ppp_requires_navigation(context):
    with pytest.raises(MissingNavigationError):
        precise_positioning(context(nav=False), rtk=False)


def test_rtk_requires_reference_site(context):
    with pytest.raises(MissingReferenceSiteError):
        precise_positioning(context(rx_position=GeodeticPosition(*ROVER)), rtk=True)


def test_rtk_requires_base_observations(context, write_file, make_nav):
    nav_only = load_user_data(files=[write_file('base/BRDC.rnx', make_nav())], rover=False)
    site = ReferenceSite(data=nav_only, position=GeodeticPosition(*BASE))
    with pytest.raises(MissingObservationError):
        precise_positioning(context(reference_site=site, rx_position=GeodeticPosition(*ROVER)), rtk=True)


def test_rtk_requires_rover_position(context, base_site):
    with pytest.raises(MissingPositionError):
        precise_positioning(context(reference_site=base_site), rtk=True)


def test_ppp_page(context, fake_orbits, tmp_path):
    ctx = context(rx_position=GeodeticPosition(*ROVER))

    page = precise_positioning(ctx, rtk=False, cfg=CFG)

    assert page.title == 'PPP'
    captions = [caption for caption, _ in page.tables]
    assert captions == ['Statistics', 'Solutions']
    assert len(page.figures) == 1
    frame = pd.read_csv(tmp_path / 'ws' / 'ppp-solutions.csv')
    assert len(frame) == 4
    assert 'east [m]' in frame


def test_ppp_without_position(context, fake_orbits, tmp_path):
    page = precise_positioning(context(), rtk=False, cfg=CFG)

    assert [caption for caption, _ in page.tables] == ['Solutions']
    assert 'east [m]' not in pd.read_csv(tmp_path / 'ws' / 'ppp-solutions.csv')


def test_rtk_page(context, base_site, fake_orbits, tmp_path):
    ctx = context(reference_site=base_site, rx_position=GeodeticPosition(*ROVER))

    page = precise_positioning(ctx, rtk=True, cfg=CFG)

    assert page.title == 'RTK'
    frame = pd.read_csv(tmp_path / 'ws' / 'rtk-solutions.csv')
    assert len(frame) == 4
    assert set(frame['quality']) == {SOLQ_DGPS}
