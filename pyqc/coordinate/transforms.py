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


"""Coordinate transformation utilities"""


import numpy as np

from ..core.constants import E2_WGS84, FE_WGS84, R2D, RE_WGS84


def ecef2llh(xyz: np.ndarray) -> np.ndarray:
    """Convert ECEF coordinates to geodetic coordinates

    Converts Earth-Centered Earth-Fixed (ECEF) Cartesian coordinates
    to geodetic coordinates using an iterative algorithm.

    Parameters
    ----------
    xyz : np.ndarray
        ECEF coordinates [x, y, z] in meters

    Returns
    -------
    np.ndarray
        Geodetic coordinates [lat, lon, height] where:
        - lat: latitude in radians (-π/2 to π/2)
        - lon: longitude in radians (-π to π)
        - height: height above WGS84 ellipsoid in meters

    Notes
    -----
    Uses the WGS84 ellipsoid parameters. The algorithm typically
    converges in 3-4 iterations with high precision.

    Examples
    --------
    >>> import numpy as np
    >>> ecef = np.array([3582105.291, 532589.7313, 5232754.8054])  # ESBC00DNK
    >>> llh = ecef2llh(ecef)
    >>> lat_deg, lon_deg = np.degrees(llh[0]), np.degrees(llh[1])
    """
    x, y, z = float(xyz[0]), float(xyz[1]), float(xyz[2])

    # Longitude
    lon = np.arctan2(y, x)

    # Iterative computation of latitude and height
    p = np.sqrt(x**2 + y**2)
    lat = np.arctan2(z, p * (1.0 - FE_WGS84))
    h = 0.0

    for _ in range(5):  # Usually converges in 3-4 iterations
        N = RE_WGS84 / np.sqrt(1.0 - E2_WGS84 * np.sin(lat)**2)
        if np.abs(np.cos(lat)) > 1e-12:
            h = p / np.cos(lat) - N
        else:
            # On the polar axis
            h = np.abs(z) - N * (1.0 - E2_WGS84)
        lat = np.arctan2(z, p * (1.0 - E2_WGS84 * N / (N + h)))

    return np.array([lat, lon, h])


def llh2ecef(llh: np.ndarray) -> np.ndarray:
    """Convert geodetic coordinates to ECEF coordinates

    Parameters
    ----------
    llh : np.ndarray
        Geodetic coordinates [lat, lon, height] where:
        - lat: latitude in radians
        - lon: longitude in radians
        - height: height above WGS84 ellipsoid in meters

    Returns
    -------
    np.ndarray
        ECEF coordinates [x, y, z] in meters

    Notes
    -----
    Uses the WGS84 ellipsoid parameters. This transformation is exact
    (no iterations required).
    """
    lat, lon, h = llh[0], llh[1], llh[2]

    sin_lat = np.sin(lat)
    cos_lat = np.cos(lat)
    sin_lon = np.sin(lon)
    cos_lon = np.cos(lon)

    N = RE_WGS84 / np.sqrt(1.0 - E2_WGS84 * sin_lat**2)

    x = (N + h) * cos_lat * cos_lon
    y = (N + h) * cos_lat * sin_lon
    z = (N * (1.0 - E2_WGS84) + h) * sin_lat

    return np.array([x, y, z])


def enu_rotation(llh: np.ndarray) -> np.ndarray:
    """ECEF to local ENU rotation matrix at ``llh`` (rad, rad, m)"""
    lat, lon = llh[0], llh[1]
    sin_lat = np.sin(lat)
    cos_lat = np.cos(lat)
    sin_lon = np.sin(lon)
    cos_lon = np.cos(lon)

    return np.array([
        [-sin_lon, cos_lon, 0],
        [-sin_lat * cos_lon, -sin_lat * sin_lon, cos_lat],
        [cos_lat * cos_lon, cos_lat * sin_lon, sin_lat]
    ])


def ecef2enu(xyz: np.ndarray, org_xyz: np.ndarray) -> np.ndarray:
    """Convert ECEF to local ENU coordinates

    Transforms ECEF coordinates to local East-North-Up (ENU) coordinates
    relative to an origin given in ECEF.

    Parameters
    ----------
    xyz : np.ndarray
        ECEF coordinates [x, y, z] in meters
    org_xyz : np.ndarray
        Origin ECEF coordinates [x, y, z] in meters

    Returns
    -------
    np.ndarray
        Local ENU coordinates [e, n, u] in meters
    """
    org_xyz = np.asarray(org_xyz, dtype=np.float64)
    R = enu_rotation(ecef2llh(org_xyz))
    return R @ (np.asarray(xyz, dtype=np.float64) - org_xyz)


def enu2ecef(enu: np.ndarray, org_xyz: np.ndarray) -> np.ndarray:
    """Convert local ENU (relative to an ECEF origin) to ECEF coordinates"""
    org_xyz = np.asarray(org_xyz, dtype=np.float64)
    R = enu_rotation(ecef2llh(org_xyz))
    return org_xyz + R.T @ np.asarray(enu, dtype=np.float64)


def ecef2geodetic_deg(xyz) -> tuple:
    """Return (latitude [deg], longitude [deg], altitude [m]) of an ECEF point"""
    lat, lon, h = ecef2llh(np.asarray(xyz, dtype=np.float64))
    return float(lat * R2D), float(lon * R2D), float(h)
