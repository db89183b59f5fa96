#!/usr/bin/env python3
"""Test suite for physical constants and satellite ids"""

import unittest

import numpy as np

from pyqc.core.constants import (
    CLIGHT, CONSTELLATIONS, D2R, E2_WGS84, FE_WGS84, OMGE, R2D, RE_WGS84,
    is_sv, normalize_sv
)


class TestPhysicalConstants(unittest.TestCase):
    """Test physical constants values"""

    def test_speed_of_light(self):
        """Test speed of light constant"""
        self.assertEqual(CLIGHT, 299792458.0)

    def test_earth_parameters(self):
        """Test WGS84 parameters"""
        self.assertEqual(RE_WGS84, 6378137.0)
        self.assertAlmostEqual(1.0 / FE_WGS84, 298.257223563)
        self.assertAlmostEqual(E2_WGS84, 6.69437999014e-3, places=12)
        self.assertAlmostEqual(OMGE, 7.2921151467e-5)

    def test_unit_conversions(self):
        self.assertAlmostEqual(90.0 * D2R, np.pi / 2)
        self.assertAlmostEqual(np.pi * R2D, 180.0)


class TestSatelliteIds(unittest.TestCase):
    """Test satellite id parsing"""

    def test_is_sv(self):
        for token in ('G01', 'E 5', 'C30', 'R24', 'J02'):
            self.assertTrue(is_sv(token), token)
        for token in ('G1', 'X01', 'GPS', '   ', 'G012'):
            self.assertFalse(is_sv(token), token)

    def test_normalize_sv(self):
        self.assertEqual(normalize_sv('E 5'), 'E05')
        self.assertEqual(normalize_sv('g08'), 'G08')
        self.assertEqual(normalize_sv('C30'), 'C30')

    def test_constellations(self):
        self.assertEqual(CONSTELLATIONS['G'], 'GPS')
        self.assertEqual(CONSTELLATIONS['E'], 'Galileo')
        self.assertNotIn('M', CONSTELLATIONS)


if __name__ == '__main__':
    unittest.main()
