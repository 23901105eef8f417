"""Unit conversions and ion mobility physics.

Converts instrument readbacks (Torr, °C) to the nondimensionalized values
stored on voltage groups, and derives reduced mass and collision cross
section (Mason-Schamp) from a fitted mobility.

Examples
--------
>>> from imstracker.physics import compute_reduced_mass, compute_cross_sectional_area
>>> mu = compute_reduced_mass(622.0)
>>> ccs = compute_cross_sectional_area(300.0, 1.2, 1, mu)
"""

import math

from .constants import (
    ABSOLUTE_ZERO_IN_KELVIN,
    ATMOSPHERIC_PRESSURE_IN_PASCAL,
    MASON_SCHAMP_CONSTANT,
    N2_BUFFER_GAS_MASS,
    TORR_IN_PASCAL,
)


def torr_to_pascal(pressure_torr: float) -> float:
    """Convert pressure from Torr to Pascal."""
    return TORR_IN_PASCAL * pressure_torr


def torr_to_nondimensionalized(pressure_torr: float) -> float:
    """Convert pressure in Torr to a fraction of one standard atmosphere."""
    return torr_to_pascal(pressure_torr) / ATMOSPHERIC_PRESSURE_IN_PASCAL


def nondimensionalized_to_torr(pressure: float) -> float:
    """Convert nondimensionalized pressure back to Torr."""
    return pressure * ATMOSPHERIC_PRESSURE_IN_PASCAL / TORR_IN_PASCAL


def celsius_to_kelvin(temperature_c: float) -> float:
    return ABSOLUTE_ZERO_IN_KELVIN + temperature_c


def celsius_to_nondimensionalized(temperature_c: float) -> float:
    """Convert °C to a fraction of 273.15 K."""
    return celsius_to_kelvin(temperature_c) / ABSOLUTE_ZERO_IN_KELVIN


def nondimensionalized_to_kelvin(temperature: float) -> float:
    return temperature * ABSOLUTE_ZERO_IN_KELVIN


def dalton_to_ppm(mass_difference_da: float, base_mass_da: float) -> float:
    """Express a mass difference in ppm of a base mass.

    Args:
        mass_difference_da: Mass difference in Da
        base_mass_da: Reference mass in Da

    Returns:
        Mass difference in ppm
    """
    return mass_difference_da / base_mass_da * 1e6


def compute_reduced_mass(target_mass: float, buffer_gas_mass: float = N2_BUFFER_GAS_MASS) -> float:
    """Reduced mass of the ion/buffer-gas collision pair.

    μ = m·M / (m + M)

    Args:
        target_mass: Ion mass (with adduct) in Da
        buffer_gas_mass: Buffer gas molecular mass in Da (default: N2)

    Returns:
        Reduced mass in Da
    """
    return (buffer_gas_mass * target_mass) / (buffer_gas_mass + target_mass)


def compute_cross_sectional_area(
    temperature_kelvin: float,
    mobility: float,
    charge_state: int,
    reduced_mass: float
) -> float:
    """Collision cross section from the Mason-Schamp equation.

    Ω = 18459 / sqrt(μ·T) · z / K

    Args:
        temperature_kelvin: Mean drift gas temperature (K)
        mobility: Ion mobility in cm²/(V·s)
        charge_state: Ion charge state
        reduced_mass: Reduced mass of ion and buffer gas (Da)

    Returns:
        Collision cross section in Å²
    """
    return MASON_SCHAMP_CONSTANT / math.sqrt(reduced_mass * temperature_kelvin) * charge_state / mobility
