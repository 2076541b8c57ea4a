"""
Capture Rig Physics Core
========================

Direct-air-capture rig simulation.

This package provides:
- Constants: Gas constant, molar masses, standard pressure
- Thermodynamics: Ideal-gas yield factor (mg Na₂CO₃ per ppm CO₂)
- Config: Operating parameters and operator envelope
- History: Bounded trend buffer
- Rig: Discrete-time enclosure draw-down engine

USAGE EXAMPLE
============

```python
from dac_simulator.core import CaptureRig, SimParameters

rig = CaptureRig(SimParameters(
    enclosure_volume=0.15,   # m³
    fan_flow_rate=20.0,      # L/min
    capture_efficiency=0.85,
    initial_ppm=420.0,
    temperature_celsius=22.0,
))

rig.start()
for _ in range(300):
    telemetry = rig.tick()

print(telemetry.current_ppm, telemetry.cumulative_yield_mg)
trend = rig.get_history()
```

SCHEDULING
==========

The engine never reads the wall clock. Whoever owns the rig decides
when tick() is called (a paced loop in __main__, a timer, or a test
calling tick() directly) and must serialise tick(), reset() and reads.

EDGE CASES & LIMITATIONS
========================

1. **Large fan on a small enclosure:**
   - The processed fraction f = η*Q/V is not clamped by default
   - f > 1 drives the concentration negative; it is clamped to 0
   - RigOptions(clamp_fraction=True) clamps f itself to [0, 1]

2. **Invalid parameters:**
   - tick() raises InvalidConfiguration and commits nothing

3. **Not modelled:**
   - Sorbent capacity exhaustion
   - Spatial gradients, leaks, temperature effects on capture rate

Run validation: `python -m dac_simulator.core` or call `run_all_validations()`

Author: Guilherme F. G. Santos
Date: January 2026
License: MIT
"""

# Version
__version__ = "1.0.0"
__author__ = "Guilherme F. G. Santos"

from .constants import PhysicalConstants, PHYSICAL_CONSTANTS

from .errors import DACSimulatorError, InvalidConfiguration

from .thermodynamics import (
    celsius_to_kelvin,
    moles_of_air,
    yield_factor_mg_per_ppm,
    co2_mass_factor_mg_per_ppm,
    validate_thermodynamics,
)

from .config import (
    SimParameters,
    RigOptions,
    ParameterBounds,
    clamp_parameters,
)

from .history import (
    HistoryBuffer,
    HistoryPoint,
    HISTORY_CAPACITY,
    format_elapsed,
    validate_history,
)

from .rig import CaptureRig, RigStatus, Telemetry, validate_capture_rig

__all__ = [
    # Main engine
    "CaptureRig",
    "RigStatus",
    "Telemetry",
    # Configuration
    "SimParameters",
    "RigOptions",
    "ParameterBounds",
    "clamp_parameters",
    # History
    "HistoryBuffer",
    "HistoryPoint",
    "HISTORY_CAPACITY",
    "format_elapsed",
    # Physics
    "PhysicalConstants",
    "PHYSICAL_CONSTANTS",
    "celsius_to_kelvin",
    "moles_of_air",
    "yield_factor_mg_per_ppm",
    "co2_mass_factor_mg_per_ppm",
    # Errors
    "DACSimulatorError",
    "InvalidConfiguration",
    # Validation functions
    "validate_thermodynamics",
    "validate_history",
    "validate_capture_rig",
]


def run_all_validations():
    """
    Run all physics validation tests.

    This should be run after any code changes to ensure
    physics correctness is maintained.
    """
    print("Running Capture Rig Validation Suite")
    print("=" * 70)

    print("\n1. Thermodynamics...")
    validate_thermodynamics()

    print("\n2. History buffer...")
    validate_history()

    print("\n3. Capture rig...")
    validate_capture_rig()

    print("\n" + "=" * 70)
    print("ALL VALIDATIONS PASSED ✓")
    print("=" * 70)


if __name__ == "__main__":
    """Run all validations when package is executed."""
    run_all_validations()
