"""
Physical Constants for the Capture Rig
======================================

Fixed scientific constants used by the gas-law and stoichiometry
calculations.

Reaction modelled by the capture medium:
    2 NaOH + CO₂ → Na₂CO₃ + H₂O

One mole of CO₂ consumed yields one mole of Na₂CO₃.

Author: Guilherme F. G. Santos
Date: January 2026
License: MIT
"""

from dataclasses import dataclass, fields


@dataclass(frozen=True)
class PhysicalConstants:
    """
    Process-wide physical constants.

    Attributes:
        R: Universal gas constant [J/(mol·K)]
        MOLAR_MASS_CO2: Carbon dioxide [g/mol]
        MOLAR_MASS_NA2CO3: Sodium carbonate [g/mol]
        MOLAR_MASS_AIR: Dry air, mean [g/mol]
        STANDARD_PRESSURE_PA: 1 atm [Pa]
        IDEAL_GAS_VOLUME_STP: Molar volume at 0°C, 1 atm [L/mol]
        AIR_DENSITY_STP: [kg/m³]
        KELVIN_OFFSET: 0°C expressed in Kelvin [K]
    """

    R: float = 8.314
    MOLAR_MASS_CO2: float = 44.01
    MOLAR_MASS_NA2CO3: float = 105.99
    MOLAR_MASS_AIR: float = 28.97
    STANDARD_PRESSURE_PA: float = 101325.0
    IDEAL_GAS_VOLUME_STP: float = 22.4
    AIR_DENSITY_STP: float = 1.225
    KELVIN_OFFSET: float = 273.15

    def validate(self) -> None:
        """All constants must be strictly positive."""
        for f in fields(self):
            value = getattr(self, f.name)
            if not value > 0:
                raise ValueError(f"Physical constant {f.name} must be positive: {value}")


PHYSICAL_CONSTANTS = PhysicalConstants()

# Parts-per-million as a mole fraction
PPM = 1e-6

# Milligrams per gram
MG_PER_G = 1000.0
