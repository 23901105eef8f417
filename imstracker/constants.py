"""Physical constants for drift-tube ion mobility calculations.

This module provides the physical constants, unit conversion factors, and
buffer gas masses used throughout imstracker. Values are sourced from NIST
or from the drift-tube IMS literature.

Key Features
------------
- Correct PROTON_MASS (1.007276466622 Da, not hydrogen atom mass!)
- Nitrogen buffer gas mass for reduced-mass calculations
- Mason-Schamp constant for collision cross sections in Å²
- Standard pressure/temperature used for nondimensionalization

Sources
-------
- NIST physical constants: https://physics.nist.gov/cgi-bin/cuu/Value
- Mason & McDaniel, Transport Properties of Ions in Gases (1988)
"""

# =============================================================================
# Fundamental Physical Constants (NIST values)
# =============================================================================

# Proton mass (NOT hydrogen atom mass!)
# Source: NIST 2018 CODATA
PROTON_MASS = 1.007276466622  # Da

# Electron mass
# Source: NIST 2018 CODATA
ELECTRON_MASS = 0.000548579909  # Da

# Nitrogen atom (14N) monoisotopic mass
NITROGEN_MASS = 14.003074004  # Da

# =============================================================================
# Buffer Gas
# =============================================================================

# N2 buffer gas, the default for drift-tube IMS
# Calculated: 2 * 14.003074004 = 28.006148008
N2_BUFFER_GAS_MASS = 2 * NITROGEN_MASS  # Da

# =============================================================================
# Pressure and Temperature
# =============================================================================

# 0 °C in Kelvin, used to nondimensionalize temperature
ABSOLUTE_ZERO_IN_KELVIN = 273.15  # K

# Standard atmosphere in Pascal, used to nondimensionalize pressure
ATMOSPHERIC_PRESSURE_IN_PASCAL = 101325.0  # Pa

# 1 Torr in Pascal
TORR_IN_PASCAL = 133.322368  # Pa

# Standard atmosphere in Torr
STANDARD_PRESSURE_IN_TORR = 760.0  # Torr

# =============================================================================
# Ion Mobility
# =============================================================================

# Mason-Schamp prefactor giving CCS in Å² when mobility is in cm²/(V·s),
# reduced mass in Da and temperature in K
MASON_SCHAMP_CONSTANT = 18459.0

# Drift tube length of the Agilent 6560 style instrument
DEFAULT_DRIFT_TUBE_LENGTH_IN_CM = 78.0  # cm


def validate_constants():
    """Validate that constants are physically reasonable.

    Raises AssertionError if any constant is out of expected range.
    """
    assert 1.0072 < PROTON_MASS < 1.0073, f"PROTON_MASS is wrong: {PROTON_MASS}"
    assert 28.0 < N2_BUFFER_GAS_MASS < 28.01, f"N2 mass is wrong: {N2_BUFFER_GAS_MASS}"

    # 760 Torr should be one atmosphere
    atm = STANDARD_PRESSURE_IN_TORR * TORR_IN_PASCAL
    assert abs(atm - ATMOSPHERIC_PRESSURE_IN_PASCAL) < 1.0, \
        f"Torr/Pascal conversion inconsistent: {atm}"
