"""Shared fixtures: synthetic RINEX 3, SP3 files and satellite geometry"""

from datetime import datetime, timedelta

import numpy as np
import pytest

from pyqc.coordinate import enu2ecef, llh2ecef
from pyqc.core.constants import CLIGHT
from pyqc.gnss.geometry import geodist, sagnac_correction

ROVER_POSITION = (4027894.0060, 307045.6000, 4919474.9100)
BASE_POSITION = (4027881.3000, 307016.8000, 4919499.0000)
OBS_CODES = {'G': ['C1C', 'L1C', 'S1C'], 'E': ['C1C', 'C5Q']}
T0 = datetime(2020, 6, 25, 0, 0, 0)


def _header_line(content, label):
    return f"{content:<60}{label}"


def obs_text(start=T0, count=4, interval=30.0, svs=('G01', 'G02', 'E05'),
             marker='ROVR', position=ROVER_POSITION, codes=None, offset=0.0,
             version='3.04'):
    """Observation RINEX text. Values are ``2e7 + 1000 * prn + epoch index + offset``"""
    codes = codes or OBS_CODES
    lines = [
        _header_line(f"{version:>9}{'':11}O{'':19}M{'':19}", 'RINEX VERSION / TYPE'),
        _header_line('pyqc tests', 'PGM / RUN BY / DATE'),
        _header_line(marker, 'MARKER NAME'),
    ]
    if position is not None:
        lines.append(_header_line("{:14.4f}{:14.4f}{:14.4f}".format(*position), 'APPROX POSITION XYZ'))
    for sys, sys_codes in codes.items():
        lines.append(_header_line(f"{sys}  {len(sys_codes):3d} " + " ".join(sys_codes),
                                  'SYS / # / OBS TYPES'))
    lines.append(_header_line(f"{interval:10.3f}", 'INTERVAL'))
    lines.append(_header_line(f"{start.year:6d}{start.month:6d}{start.day:6d}{start.hour:6d}"
                              f"{start.minute:6d}{start.second:13.7f}     GPS", 'TIME OF FIRST OBS'))
    lines.append(_header_line('', 'END OF HEADER'))

    for idx in range(count):
        t = start + timedelta(seconds=idx * interval)
        sat_lines = []
        for sv in svs:
            sys_codes = codes.get(sv[0])
            if sys_codes is None:
                continue
            value = 2.0e7 + 1000.0 * int(sv[1:]) + idx + offset
            sat_lines.append(sv + "".join(f"{value:14.3f}  " for _ in sys_codes).rstrip())
        lines.append(f"> {t.year:4d} {t.month:02d} {t.day:02d} {t.hour:02d} {t.minute:02d}"
                     f"{t.second:11.7f}  0{len(sat_lines):3d}")
        lines.extend(sat_lines)
    return "\n".join(lines) + "\n"


def nav_text(start=T0, svs=('G01', 'G02', 'E05'), count=2, interval=7200.0):
    """Navigation RINEX text with placeholder message bodies"""
    lines = [
        _header_line(f"{'3.04':>9}{'':11}N: GNSS NAV DATA    M: MIXED", 'RINEX VERSION / TYPE'),
        _header_line('', 'END OF HEADER'),
    ]
    for idx in range(count):
        t = start + timedelta(seconds=idx * interval)
        for sv in svs:
            lines.append(f"{sv} {t.year:4d} {t.month:02d} {t.day:02d} {t.hour:02d} {t.minute:02d} "
                         f"{t.second:02d} 1.000000000000E-05 0.000000000000E+00 0.000000000000E+00")
            for _ in range(7):
                lines.append("     0.000000000000E+00 0.000000000000E+00 0.000000000000E+00 0.000000000000E+00")
    return "\n".join(lines) + "\n"


def sp3_text(start=T0, count=3, interval=900.0, svs=('G01', 'G02'), agency='IGS'):
    """SP3-d text"""
    lines = [
        f"#dP{start.year:4d} {start.month:2d} {start.day:2d} {start.hour:2d} {start.minute:2d}"
        f" {0.0:11.8f} {count:7d} ORBIT IGS14 HLM  {agency}",
        f"## 2111 345600.00000000 {interval:14.8f} 59025 0.0000000000000",
        "+    {:2d}   {}".format(len(svs), "".join(svs)),
        "%c G  cc GPS ccc cccc cccc cccc cccc ccccc ccccc ccccc ccccc",
        "%c cc cc ccc ccc cccc cccc cccc cccc ccccc ccccc ccccc ccccc",
        "/* synthetic",
    ]
    for idx in range(count):
        t = start + timedelta(seconds=idx * interval)
        lines.append(f"*  {t.year:4d} {t.month:2d} {t.day:2d} {t.hour:2d} {t.minute:2d} {t.second:11.8f}")
        for k, sv in enumerate(svs):
            lines.append(f"P{sv}{15000.0 + k:14.6f}{-20000.0 + idx:14.6f}{10000.0:14.6f}{12.5:14.6f}")
    lines.append("EOF")
    return "\n".join(lines) + "\n"


@pytest.fixture
def write_file(tmp_path):
    """Write ``text`` to ``tmp_path / name`` (sub directories created)"""
    def _write(name, text):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
        return path
    return _write


@pytest.fixture
def workspace_env(tmp_path, monkeypatch):
    """Route every workspace to a temporary directory"""
    root = tmp_path / 'WORKSPACE'
    monkeypatch.setenv('PYQC_WORKSPACE', str(root))
    return root


@pytest.fixture
def make_obs():
    return obs_text


@pytest.fixture
def make_nav():
    return nav_text


@pytest.fixture
def make_sp3():
    return sp3_text


# (sv, azimuth [deg], elevation [deg]) seen from the receiver
SKY = [('G01', 0.0, 62.0), ('G02', 55.0, 28.0), ('G03', 128.0, 47.0), ('G04', 196.0, 21.0),
       ('G05', 268.0, 53.0), ('G06', 321.0, 24.0), ('E05', 92.0, 71.0), ('E07', 243.0, 36.0)]


def sky_states(rx_xyz, sky=SKY, distance=2.2e7):
    """Satellite states placed around ``rx_xyz`` by azimuth and elevation"""
    states = {}
    for k, (sv, az, el) in enumerate(sky):
        az, el = np.radians(az), np.radians(el)
        los = np.array([np.cos(el) * np.sin(az), np.cos(el) * np.cos(az), np.sin(el)])
        sat = enu2ecef(los * (distance + 1.0e5 * k), rx_xyz)
        states[sv] = (sat, 1.0e-5 * (k - 3))
    return states


def simulated_pseudoranges(states, rx_xyz, clocks=None):
    """Error free pseudoranges, with a receiver clock bias [m] per constellation"""
    clocks = clocks or {}
    pseudoranges = {}
    for sv, (sat, dts) in states.items():
        r, _ = geodist(sat, rx_xyz)
        pseudoranges[sv] = r + sagnac_correction(sat, rx_xyz) + clocks.get(sv[0], 0.0) - CLIGHT * dts
    return pseudoranges


@pytest.fixture
def rover_xyz():
    return llh2ecef(np.array([np.radians(45.0), np.radians(7.0), 100.0]))


@pytest.fixture
def make_sky():
    return sky_states


@pytest.fixture
def make_pseudoranges():
    return simulated_pseudoranges
