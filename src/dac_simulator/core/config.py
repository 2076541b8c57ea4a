"""
Rig Configuration
=================

Operating parameters of the capture rig and the operator-facing ranges
they are accepted in.

Two layers of checking:
- SimParameters.validate(): physical domain (volume > 0, T > 0 K, ...).
  Violations raise InvalidConfiguration. The rig enforces this on
  every tick regardless of where the parameters came from.
- ParameterBounds: operator envelope of the physical rig (fan range,
  enclosure sizes). External commands are clamped into it before they
  reach the rig.

Author: Guilherme F. G. Santos
Date: January 2026
License: MIT
"""

import math
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional, Tuple

from .constants import PHYSICAL_CONSTANTS
from .errors import InvalidConfiguration


@dataclass
class SimParameters:
    """
    Operating parameters of the capture rig.

    May change between ticks; initial_ppm is only read on reset.
    """

    enclosure_volume: float = 0.15  # [m³] 150 L enclosure
    fan_flow_rate: float = 20.0  # [L/min]
    capture_efficiency: float = 0.85  # [-] fraction of CO₂ removed per pass
    initial_ppm: float = 420.0  # [ppm] ambient starting concentration
    temperature_celsius: float = 22.0  # [°C]

    def validate(self) -> None:
        """
        Validate parameters against their physical domain.

        Raises:
            InvalidConfiguration: On the first out-of-domain parameter
        """
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, (int, float)) or not math.isfinite(value):
                raise InvalidConfiguration(f"{f.name} must be a finite number, got {value!r}")

        if self.enclosure_volume <= 0:
            raise InvalidConfiguration(
                f"Enclosure volume must be positive: {self.enclosure_volume} m³"
            )
        if self.fan_flow_rate < 0:
            raise InvalidConfiguration(
                f"Fan flow rate must be non-negative: {self.fan_flow_rate} L/min"
            )
        if not 0.0 <= self.capture_efficiency <= 1.0:
            raise InvalidConfiguration(
                f"Capture efficiency must be within [0, 1]: {self.capture_efficiency}"
            )
        if self.initial_ppm < 0:
            raise InvalidConfiguration(
                f"Initial concentration must be non-negative: {self.initial_ppm} ppm"
            )
        if self.temperature_celsius <= -PHYSICAL_CONSTANTS.KELVIN_OFFSET:
            raise InvalidConfiguration(
                f"Temperature {self.temperature_celsius}°C is at or below absolute zero"
            )

    @property
    def temperature_kelvin(self) -> float:
        return self.temperature_celsius + PHYSICAL_CONSTANTS.KELVIN_OFFSET

    @property
    def flow_rate_m3_per_s(self) -> float:
        """Fan flow converted from L/min to m³/s."""
        return self.fan_flow_rate / 1000 / 60

    def updated(self, **changes: Any) -> "SimParameters":
        """
        Copy with some fields replaced.

        Raises:
            InvalidConfiguration: If a field name is unknown
        """
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise InvalidConfiguration(f"Unknown parameter(s): {', '.join(sorted(unknown))}")
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class RigOptions:
    """
    Model options for the rig.

    Attributes:
        clamp_fraction: Clamp the per-tick processed fraction to [0, 1]
            instead of only clamping the resulting concentration at 0.
        history_capacity: Number of trend samples retained.
        sample_every: Tick interval for trend sampling.
    """

    clamp_fraction: bool = False
    history_capacity: int = 100
    sample_every: int = 2

    def validate(self) -> None:
        if self.history_capacity <= 0:
            raise ValueError(f"History capacity must be positive: {self.history_capacity}")
        if self.sample_every <= 0:
            raise ValueError(f"Sampling interval must be positive: {self.sample_every}")


@dataclass
class ParameterBounds:
    """
    Operator envelope of the physical rig.

    Temperature is left unconstrained here; only the physical check in
    SimParameters.validate() applies to it.
    """

    enclosure_volume: Tuple[float, float] = (0.05, 0.4)  # [m³]
    fan_flow_rate: Tuple[float, float] = (5.0, 60.0)  # [L/min]
    capture_efficiency: Tuple[float, float] = (0.1, 1.0)  # [-]
    initial_ppm: Tuple[float, float] = (0.0, 5000.0)  # [ppm]

    def validate(self) -> None:
        for f in fields(self):
            low, high = getattr(self, f.name)
            if low > high:
                raise ValueError(f"Bounds for {f.name} inverted: [{low}, {high}]")

    def limits(self, name: str) -> Optional[Tuple[float, float]]:
        return getattr(self, name, None)


def clamp_value(value: Any, low: float, high: float, fallback: float) -> float:
    """Clamp a value into [low, high]; non-numeric or non-finite values use the fallback."""
    if not isinstance(value, (int, float)):
        return fallback
    if not math.isfinite(value):
        return fallback
    return max(low, min(float(value), high))


def clamp_parameters(
    current: SimParameters,
    requested: Dict[str, Any],
    bounds: Optional[ParameterBounds] = None,
) -> SimParameters:
    """
    Apply an external parameter request, clamped to the operator envelope.

    Zero-trust: every requested value is sanitised before use. Values
    that cannot be interpreted fall back to the current setting.

    Args:
        current: Parameters currently in force
        requested: Partial update keyed by parameter name
        bounds: Operator envelope (defaults to ParameterBounds())

    Returns:
        New SimParameters with the sanitised changes applied

    Raises:
        InvalidConfiguration: If a parameter name is unknown
    """
    bounds = bounds or ParameterBounds()
    sanitised = {}

    for name, value in requested.items():
        fallback = getattr(current, name, None)
        if fallback is None:
            raise InvalidConfiguration(f"Unknown parameter: {name}")

        limits = bounds.limits(name)
        if limits is None:
            # Unbounded (temperature): reject non-finite, keep physical check downstream
            if isinstance(value, (int, float)) and math.isfinite(value):
                sanitised[name] = float(value)
            else:
                sanitised[name] = fallback
        else:
            sanitised[name] = clamp_value(value, limits[0], limits[1], fallback)

    return current.updated(**sanitised)
