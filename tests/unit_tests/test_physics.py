"""Tests for constants, unit conversions and Mason-Schamp physics."""

import math
import unittest

from imstracker.constants import (
    ABSOLUTE_ZERO_IN_KELVIN,
    MASON_SCHAMP_CONSTANT,
    N2_BUFFER_GAS_MASS,
    STANDARD_PRESSURE_IN_TORR,
    validate_constants,
)
from imstracker.physics import (
    celsius_to_kelvin,
    celsius_to_nondimensionalized,
    compute_cross_sectional_area,
    compute_reduced_mass,
    dalton_to_ppm,
    nondimensionalized_to_kelvin,
    nondimensionalized_to_torr,
    torr_to_nondimensionalized,
    torr_to_pascal,
)


class TestConstants(unittest.TestCase):

    def test_validate_constants(self):
        validate_constants()

    def test_n2_mass(self):
        self.assertAlmostEqual(N2_BUFFER_GAS_MASS, 28.006148008, places=9)


class TestUnitConversion(unittest.TestCase):

    def test_one_atmosphere(self):
        self.assertAlmostEqual(torr_to_nondimensionalized(STANDARD_PRESSURE_IN_TORR), 1.0, places=5)

    def test_pressure_round_trip(self):
        self.assertAlmostEqual(nondimensionalized_to_torr(torr_to_nondimensionalized(3.95)), 3.95)

    def test_torr_to_pascal(self):
        self.assertAlmostEqual(torr_to_pascal(1.0), 133.322368)

    def test_temperature(self):
        self.assertAlmostEqual(celsius_to_kelvin(25.0), 298.15)
        self.assertEqual(celsius_to_nondimensionalized(0.0), 1.0)
        self.assertAlmostEqual(
            nondimensionalized_to_kelvin(celsius_to_nondimensionalized(25.0)), 298.15)

    def test_ppm(self):
        self.assertAlmostEqual(dalton_to_ppm(0.001, 1000.0), 1.0)


class TestMasonSchamp(unittest.TestCase):

    def test_reduced_mass(self):
        # Heavy ion: reduced mass approaches the buffer gas mass
        self.assertAlmostEqual(compute_reduced_mass(1.0e9), N2_BUFFER_GAS_MASS, places=4)
        # Equal masses: half
        self.assertAlmostEqual(compute_reduced_mass(N2_BUFFER_GAS_MASS), N2_BUFFER_GAS_MASS / 2)

    def test_cross_section_formula(self):
        mu = compute_reduced_mass(622.0)
        ccs = compute_cross_sectional_area(ABSOLUTE_ZERO_IN_KELVIN, 1.2, 1, mu)
        expected = MASON_SCHAMP_CONSTANT / math.sqrt(mu * ABSOLUTE_ZERO_IN_KELVIN) / 1.2
        self.assertAlmostEqual(ccs, expected)

    def test_cross_section_scales_with_charge(self):
        mu = compute_reduced_mass(1244.0)
        single = compute_cross_sectional_area(300.0, 1.0, 1, mu)
        double = compute_cross_sectional_area(300.0, 1.0, 2, mu)
        self.assertAlmostEqual(double, 2 * single)

    def test_realistic_magnitude(self):
        """A ~600 Da singly charged ion with K0 ~ 1.2 has a CCS of a few hundred Å²."""
        mu = compute_reduced_mass(622.0)
        ccs = compute_cross_sectional_area(298.15, 1.2, 1, mu)
        self.assertTrue(100.0 < ccs < 400.0)
