#!/usr/bin/env python3
"""Test suite for user data loading"""

import logging
from datetime import datetime, timedelta

import pytest

from pyqc.context.dataset import DataSet, ProductType
from pyqc.context.loader import load_user_data, walk_files
from pyqc.errors import ContextInitError


def test_walk_files_respects_max_depth(tmp_path, write_file):
    write_file('a.txt', 'x')
    write_file('sub/b.txt', 'x')
    write_file('sub/deeper/c.txt', 'x')

    names = lambda depth: [p.name for p in walk_files(tmp_path, depth)]

    assert names(0) == []
    assert names(1) == ['a.txt']
    assert names(2) == ['a.txt', 'b.txt']
    assert names(5) == ['a.txt', 'b.txt', 'c.txt']


def test_walk_files_missing_directory(tmp_path, caplog):
    with caplog.at_level(logging.WARNING, logger='pyqc'):
        assert list(walk_files(tmp_path / 'missing', 5)) == []
    assert 'does not exist' in caplog.text


def test_load_directory(tmp_path, write_file, make_obs, make_nav, make_sp3):
    write_file('data/ROVR00XXX.rnx', make_obs())
    write_file('data/BRDC00XXX.rnx', make_nav())
    write_file('data/orbits/IGS0OPSFIN.sp3', make_sp3())

    dataset = load_user_data(directories=[tmp_path / 'data'])

    assert dataset.observation() is not None
    assert dataset.navigation() is not None
    assert dataset.sp3() is not None
    assert dataset.meteo() is None
    assert dataset.name() == 'ROVR00XXX'


def test_unsupported_files_are_skipped(tmp_path, write_file, make_obs, caplog):
    write_file('data/rover.rnx', make_obs())
    notes = write_file('data/notes.txt', 'not a GNSS file\n')

    with caplog.at_level(logging.WARNING, logger='pyqc'):
        dataset = load_user_data(directories=[tmp_path / 'data'])

    assert f'non supported file format "{notes}"' in caplog.text
    assert notes not in dataset.loaded_files()
    assert len(dataset.loaded_files()) == 1


def test_only_unsupported_files_gives_empty_dataset(write_file):
    path = write_file('notes.txt', 'not a GNSS file\n')

    dataset = load_user_data(files=[path])

    assert dataset.is_empty()
    assert dataset.name() == 'undefined'


CLK_HEADER = "\n".join([
    f"{'3.04':>9}{'':11}C{'':19}{'':20}RINEX VERSION / TYPE",
    f"{'':60}END OF HEADER",
])


@pytest.mark.parametrize("body", [
    "AR \n",
    "AR ESBC 2020 06 25\n",
])
def test_truncated_clock_record_is_skipped(write_file, caplog, body):
    bad = write_file('truncated.clk', CLK_HEADER + "\n" + body)

    with caplog.at_level(logging.WARNING, logger='pyqc'):
        dataset = load_user_data(files=[bad])

    assert dataset.is_empty()
    assert 'non supported file format' in caplog.text


def test_truncated_navigation_record_is_skipped(write_file, make_obs, caplog):
    header = f"{'3.04':>9}{'':11}N: GNSS NAV DATA    M: MIXED{'':12}RINEX VERSION / TYPE"
    bad = write_file('truncated.nav', "\n".join([header, f"{'':60}END OF HEADER", "G01 2020 06"]) + "\n")
    good = write_file('ROVR.rnx', make_obs())

    with caplog.at_level(logging.WARNING, logger='pyqc'):
        dataset = load_user_data(files=[bad, good])

    assert dataset.navigation() is None
    assert dataset.observation() is not None
    assert 'truncated.nav' in caplog.text


def test_files_of_same_type_are_merged(write_file, make_obs):
    t0 = datetime(2020, 6, 25)
    a = write_file('a.rnx', make_obs(start=t0, count=2))
    b = write_file('b.rnx', make_obs(start=t0 + timedelta(minutes=1), count=2))

    dataset = load_user_data(files=[a, b])

    assert len(dataset.observation().epochs()) == 4
    assert dataset.files[ProductType.OBSERVATION] == [a, b]


def test_merge_failure_leaves_dataset_unchanged(write_file, make_obs, caplog):
    a = write_file('a.rnx', make_obs(marker='ROVR', count=2))
    b = write_file('b.rnx', make_obs(marker='BASE', count=3))

    with caplog.at_level(logging.WARNING, logger='pyqc'):
        dataset = load_user_data(files=[a, b])

    assert 'failed to load' in caplog.text
    assert len(dataset.observation().epochs()) == 2
    assert dataset.files[ProductType.OBSERVATION] == [a]


def test_preprocessing_is_applied(write_file, make_obs):
    path = write_file('a.rnx', make_obs())
    dataset = load_user_data(files=[path], filters=['gnss:E'])
    assert dataset.observation().satellites() == ['E05']


def test_invalid_filter_is_a_context_error(write_file, make_obs):
    path = write_file('a.rnx', make_obs())
    with pytest.raises(ContextInitError):
        load_user_data(files=[path], filters=['gnss:X'])


def test_dataset_reference_position(write_file, make_obs):
    dataset = load_user_data(files=[write_file('a.rnx', make_obs(position=(1.0, 2.0, 3.0)))])
    assert list(dataset.reference_position()) == [1.0, 2.0, 3.0]
    assert DataSet().reference_position() is None


def test_dataset_summary(write_file, make_obs, make_nav):
    dataset = load_user_data(files=[write_file('a.rnx', make_obs()), write_file('n.rnx', make_nav())])

    summary = dataset.summary()

    assert list(summary['product']) == ['Observation', 'BrdcNavigation']
    assert list(summary['epochs']) == [4, 2]
