"""
Gas-Law Yield Calculations for the Capture Rig
===============================================

Converts a change in enclosure CO₂ concentration into the mass of
reaction product formed in the capture medium.

THEORETICAL FOUNDATION
=====================

1. Ideal Gas Law for the enclosure air:
   n_air = P * V / (R * T)

   Where:
   - P: Standard pressure = 101325 Pa (enclosure is sealed at 1 atm)
   - V: Enclosure volume [m³]
   - R: Universal gas constant = 8.314 J/(mol·K)
   - T: Enclosure temperature [K]

2. Mole fraction definition of ppm:
   n_CO2(1 ppm) = n_air * 1e-6

3. Capture stoichiometry (1:1 in carbon):
   2 NaOH + CO₂ → Na₂CO₃ + H₂O
   n_Na2CO3 = n_CO2

4. Yield factor:
   Y = n_air * 1e-6 * M_Na2CO3 * 1000   [mg per ppm]

The factor is linear in V and inversely proportional to T.

Author: Guilherme F. G. Santos
Date: January 2026
License: MIT
"""

import numpy as np

from .constants import PHYSICAL_CONSTANTS, PPM, MG_PER_G
from .errors import InvalidConfiguration


def celsius_to_kelvin(temp_c: float) -> float:
    """
    Convert Celsius to Kelvin with absolute-zero checking.

    Args:
        temp_c: Temperature in Celsius

    Returns:
        Temperature in Kelvin

    Raises:
        InvalidConfiguration: If temperature is at or below absolute zero
    """
    if not np.isfinite(temp_c):
        raise InvalidConfiguration(f"Temperature must be finite, got {temp_c}")
    temp_k = temp_c + PHYSICAL_CONSTANTS.KELVIN_OFFSET
    if temp_k <= 0:
        raise InvalidConfiguration(
            f"Temperature {temp_c}°C is at or below absolute zero"
        )
    return temp_k


def _check_gas_state(volume_m3: float, temperature_kelvin: float) -> None:
    if not np.isfinite(volume_m3) or volume_m3 <= 0:
        raise InvalidConfiguration(
            f"Enclosure volume must be positive, got {volume_m3} m³"
        )
    if not np.isfinite(temperature_kelvin) or temperature_kelvin <= 0:
        raise InvalidConfiguration(
            f"Absolute temperature must be positive, got {temperature_kelvin} K"
        )


def moles_of_air(volume_m3: float, temperature_kelvin: float) -> float:
    """
    Total moles of air in the enclosure at standard pressure.

    Args:
        volume_m3: Enclosure volume [m³]
        temperature_kelvin: Enclosure temperature [K]

    Returns:
        n_air [mol]

    Raises:
        InvalidConfiguration: If volume or temperature is not positive
    """
    _check_gas_state(volume_m3, temperature_kelvin)
    c = PHYSICAL_CONSTANTS
    return (c.STANDARD_PRESSURE_PA * volume_m3) / (c.R * temperature_kelvin)


def yield_factor_mg_per_ppm(volume_m3: float, temperature_kelvin: float) -> float:
    """
    Milligrams of Na₂CO₃ produced per 1 ppm CO₂ decrease.

    Args:
        volume_m3: Enclosure volume [m³]
        temperature_kelvin: Enclosure temperature [K]

    Returns:
        Yield factor [mg/ppm]

    Raises:
        InvalidConfiguration: If volume or temperature is not positive

    Example:
        >>> round(yield_factor_mg_per_ppm(1.0, 298.15), 3)
        4.332
    """
    moles_co2_per_ppm = moles_of_air(volume_m3, temperature_kelvin) * PPM
    # Moles Na₂CO₃ = moles CO₂
    return moles_co2_per_ppm * PHYSICAL_CONSTANTS.MOLAR_MASS_NA2CO3 * MG_PER_G


def co2_mass_factor_mg_per_ppm(volume_m3: float, temperature_kelvin: float) -> float:
    """
    Milligrams of CO₂ removed per 1 ppm concentration decrease.

    Same derivation as yield_factor_mg_per_ppm() using the CO₂ molar mass.
    """
    moles_co2_per_ppm = moles_of_air(volume_m3, temperature_kelvin) * PPM
    return moles_co2_per_ppm * PHYSICAL_CONSTANTS.MOLAR_MASS_CO2 * MG_PER_G


def validate_thermodynamics():
    """Validate gas-law and stoichiometry calculations."""
    PHYSICAL_CONSTANTS.validate()

    # Test 1: Regression fixture at 1 m³, 25°C
    y_ref = yield_factor_mg_per_ppm(1.0, 298.15)
    assert abs(y_ref - 4.3325) < 1e-3, f"Yield factor regression: {y_ref}"

    # Test 2: Linear in volume
    y_double = yield_factor_mg_per_ppm(2.0, 298.15)
    assert abs(y_double - 2 * y_ref) < 1e-12, "Yield factor should scale with V"

    # Test 3: Inverse in temperature
    y_hot = yield_factor_mg_per_ppm(1.0, 2 * 298.15)
    assert abs(y_hot - y_ref / 2) < 1e-12, "Yield factor should scale with 1/T"

    # Test 4: Mass ratio follows molar masses
    ratio = y_ref / co2_mass_factor_mg_per_ppm(1.0, 298.15)
    expected = PHYSICAL_CONSTANTS.MOLAR_MASS_NA2CO3 / PHYSICAL_CONSTANTS.MOLAR_MASS_CO2
    assert abs(ratio - expected) < 1e-12, f"Product/CO₂ mass ratio: {ratio}"

    # Test 5: Domain enforcement
    for volume, temp_k in [(0.0, 298.15), (-1.0, 298.15), (1.0, 0.0)]:
        try:
            yield_factor_mg_per_ppm(volume, temp_k)
            assert False, f"Should have raised for V={volume}, T={temp_k}"
        except InvalidConfiguration:
            pass  # Expected

    print("✓ All thermodynamic validations passed")


if __name__ == "__main__":
    """Yield factor table across the rig's operating envelope."""
    temperatures = [0, 10, 20, 22, 30, 40]
    volumes = [0.05, 0.15, 0.25, 0.4]

    print("Na₂CO₃ Yield Factor [mg/ppm]")
    print("=" * 60)
    print(f"{'T(°C)':<8}" + "".join(f"{f'V={v} m³':<13}" for v in volumes))
    print("-" * 60)
    for T in temperatures:
        T_K = celsius_to_kelvin(T)
        row = "".join(f"{yield_factor_mg_per_ppm(v, T_K):<13.4f}" for v in volumes)
        print(f"{T:<8.1f}{row}")
    print()

    validate_thermodynamics()
