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


"""GNSS Constants and System Parameters"""

import numpy as np

# Physical Constants
CLIGHT = 299792458.0  # speed of light (m/s)

# Earth Parameters (WGS84)
RE_WGS84 = 6378137.0           # earth semimajor axis (m)
FE_WGS84 = 1.0 / 298.257223563 # earth flattening
E2_WGS84 = FE_WGS84 * (2.0 - FE_WGS84)  # eccentricity squared
OMGE = 7.2921151467E-5         # earth angular velocity (rad/s)

# Unit conversions
R2D = 180.0 / np.pi            # radians to degrees
D2R = np.pi / 180.0            # degrees to radians

# Constellation identifiers used in RINEX/SP3 satellite ids
SYS_GPS = 'G'
SYS_GLO = 'R'
SYS_GAL = 'E'
SYS_BDS = 'C'
SYS_QZS = 'J'
SYS_SBS = 'S'
SYS_IRN = 'I'
SYS_MIXED = 'M'

CONSTELLATIONS = {
    SYS_GPS: 'GPS',
    SYS_GLO: 'Glonass',
    SYS_GAL: 'Galileo',
    SYS_BDS: 'BeiDou',
    SYS_QZS: 'QZSS',
    SYS_SBS: 'SBAS',
    SYS_IRN: 'IRNSS',
}

# Default directory recursion depth of the file loader
MAX_RECURSIVE_DEPTH = 5

# Baseline above which it is reported in km
BASELINE_KM_THRESHOLD = 1000.0

# Solution Status
SOLQ_NONE = 0       # no solution
SOLQ_DGPS = 4       # DGPS solution
SOLQ_SINGLE = 5     # single point positioning


def is_sv(token: str) -> bool:
    """Whether ``token`` is a satellite id such as ``G08`` or ``E 5``"""
    if len(token) != 3 or token[0] not in CONSTELLATIONS:
        return False
    return token[1:].strip().isdigit()


def normalize_sv(token: str) -> str:
    """Return the canonical ``X00`` form of a satellite id"""
    token = token.strip()
    return f"{token[0].upper()}{int(token[1:]):02d}"
