#!/usr/bin/env python3
"""Test suite for file operations"""

from datetime import datetime, timedelta

import pytest

from pyqc import fops
from pyqc.context.builder import AnalysisContext
from pyqc.context.loader import load_user_data
from pyqc.context.workspace import Workspace
from pyqc.errors import FormatError, MergeError, MissingObservationError, MissingProductError, SplitError
from pyqc.io.rinex import Rinex
from pyqc.io.sp3 import SP3

T0 = datetime(2020, 6, 25)


@pytest.fixture
def context(tmp_path):
    def _context(*paths, filters=()):
        data = load_user_data(files=paths, filters=filters)
        return AnalysisContext(name='test', data=data, workspace=Workspace(tmp_path / 'ws'), quiet=True)
    return _context


def test_filegen(context, write_file, make_obs, make_sp3, tmp_path):
    ctx = context(write_file('ROVR.rnx', make_obs()), write_file('IGS0.sp3', make_sp3()))

    outputs = fops.filegen(ctx)

    output = tmp_path / 'ws' / 'OUTPUT'
    assert sorted(outputs) == sorted([output / 'ROVR.rnx', output / 'IGS0.sp3'])
    assert Rinex.from_path(output / 'ROVR.rnx').epochs() == ctx.data.observation().epochs()
    assert SP3.from_path(output / 'IGS0.sp3').epochs() == ctx.data.sp3().epochs()


def test_filegen_applies_filters(context, write_file, make_obs, tmp_path):
    ctx = context(write_file('ROVR.rnx', make_obs()), filters=('gnss:G',))

    fops.filegen(ctx)

    generated = Rinex.from_path(tmp_path / 'ws' / 'OUTPUT' / 'ROVR.rnx')
    assert generated.constellations() == ['G']


def test_filegen_without_data(context, tmp_path):
    with pytest.raises(MissingProductError):
        fops.filegen(context())


def test_merge(context, write_file, make_obs, tmp_path):
    ctx = context(write_file('ROVR.rnx', make_obs(count=2)))
    later = write_file('later/ROVR.rnx', make_obs(start=T0 + timedelta(minutes=1), count=2))

    output = fops.merge(ctx, later)

    assert output == tmp_path / 'ws' / 'OUTPUT' / 'ROVR-merged.rnx'
    assert len(Rinex.from_path(output).epochs()) == 4


def test_merge_incompatible(context, write_file, make_obs):
    ctx = context(write_file('ROVR.rnx', make_obs(marker='ROVR')))
    other = write_file('other/BASE.rnx', make_obs(marker='BASE'))
    with pytest.raises(MergeError):
        fops.merge(ctx, other)


def test_merge_without_counterpart(context, write_file, make_obs, make_sp3):
    ctx = context(write_file('ROVR.rnx', make_obs()))
    with pytest.raises(MissingProductError):
        fops.merge(ctx, write_file('IGS0.sp3', make_sp3()))


def test_merge_unrecognized_file(context, write_file, make_obs):
    ctx = context(write_file('ROVR.rnx', make_obs()))
    with pytest.raises(FormatError):
        fops.merge(ctx, write_file('notes.txt', 'hello\n'))


def test_split(context, write_file, make_obs, tmp_path):
    ctx = context(write_file('ROVR.rnx', make_obs(count=4)))

    outputs = fops.split(ctx, T0 + timedelta(seconds=60))

    output = tmp_path / 'ws' / 'OUTPUT'
    assert outputs == [output / 'ROVR-0.rnx', output / 'ROVR-1.rnx']
    assert len(Rinex.from_path(outputs[0]).epochs()) == 2
    assert Rinex.from_path(outputs[1]).first_epoch() == T0 + timedelta(seconds=60)


def test_split_outside_record(context, write_file, make_obs):
    ctx = context(write_file('ROVR.rnx', make_obs(count=4)))
    with pytest.raises(SplitError):
        fops.split(ctx, T0 + timedelta(days=1))


def test_time_binning(context, write_file, make_obs, tmp_path):
    ctx = context(write_file('ROVR.rnx', make_obs(count=4)))

    outputs = fops.time_binning(ctx, timedelta(minutes=1))

    output = tmp_path / 'ws' / 'OUTPUT'
    assert outputs == [output / 'ROVR-20200625T000000.rnx', output / 'ROVR-20200625T000100.rnx']
    assert all(len(Rinex.from_path(path).epochs()) == 2 for path in outputs)


def test_diff(context, write_file, make_obs, tmp_path):
    ctx = context(write_file('ROVR.rnx', make_obs(offset=10.0)))
    other = write_file('other/ROVR.rnx', make_obs())

    output = fops.diff(ctx, other)

    assert output == tmp_path / 'ws' / 'OUTPUT' / 'DIFFERENCED-ROVR.rnx'
    for _, values in Rinex.from_path(output).observations():
        for codes in values.values():
            assert all(value == pytest.approx(10.0) for value in codes.values())


def test_diff_requires_observations(context, write_file, make_obs, make_sp3):
    with pytest.raises(MissingObservationError):
        fops.diff(context(write_file('IGS0.sp3', make_sp3())), write_file('ROVR.rnx', make_obs()))

    ctx = context(write_file('ROVR.rnx', make_obs()))
    with pytest.raises(MissingObservationError):
        fops.diff(ctx, write_file('other/IGS0.sp3', make_sp3()))
