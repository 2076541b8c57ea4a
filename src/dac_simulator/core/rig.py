"""
Closed-Loop Capture Rig Simulation Engine
=========================================

Discrete-time model of a sealed enclosure scrubbed by a fan-driven
capture medium.

MATHEMATICAL FOUNDATION
======================

Well-mixed, constant-volume, constant-temperature enclosure. Each tick
represents one second. The fan moves Q [m³/s] of enclosure air through
the medium, which removes a fraction η of its CO₂:

    f = η * Q / V                      (fraction of enclosure scrubbed)
    C_{k+1} = C_k * (1 - f)            (geometric decay)
    ΔC = C_k - C_{k+1}
    Y_{k+1} = Y_k + ΔC * Y_factor(V, T)
    N_{k+1} = N_k + ΔC

Conservation: for fixed parameters, C_k + N_k equals the concentration
at the last reset. Y_factor comes from the ideal gas law (see
thermodynamics.py).

STATE MACHINE
=============

    Idle ──start()──▶ Running
    Running ──stop()──▶ Idle
    any ──reset()──▶ Idle (telemetry reinitialised, history cleared)

tick() does not consult the Idle/Running flag; the scheduler decides
when to call it. Correctness depends on tick count only.

Author: Guilherme F. G. Santos
Date: January 2026
License: MIT
"""

import math
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from .config import RigOptions, SimParameters
from .errors import InvalidConfiguration
from .history import HistoryBuffer, HistoryPoint
from .thermodynamics import co2_mass_factor_mg_per_ppm, yield_factor_mg_per_ppm

logger = logging.getLogger(__name__)


class RigStatus(Enum):
    """Rig operational status."""

    IDLE = "idle"
    RUNNING = "running"


@dataclass(frozen=True)
class Telemetry:
    """
    Complete state of the rig at a point in time.

    Immutable: each tick commits a new instance in a single assignment,
    so readers never observe a partially-updated state.
    """

    time_elapsed_seconds: int = 0  # [s]
    current_ppm: float = 0.0  # [ppm]
    cumulative_yield_mg: float = 0.0  # [mg] Na₂CO₃
    cumulative_co2_captured_ppm: float = 0.0  # [ppm] removed, not a mass

    @classmethod
    def initial(cls, initial_ppm: float) -> "Telemetry":
        return cls(time_elapsed_seconds=0, current_ppm=float(initial_ppm))


class CaptureRig:
    """
    Simulation engine for the direct-air-capture rig.

    Owns the parameters, telemetry, run status and trend history.
    Single-writer: the caller must serialise tick(), reset() and reads.
    """

    def __init__(
        self,
        params: Optional[SimParameters] = None,
        options: Optional[RigOptions] = None,
    ):
        """
        Initialize the rig in the Idle state.

        Args:
            params: Operating parameters (defaults to SimParameters())
            options: Model options (defaults to RigOptions())
        """
        self.params = params or SimParameters()
        self.options = options or RigOptions()
        self.options.validate()

        self._status = RigStatus.IDLE
        self._history = HistoryBuffer(self.options.history_capacity)
        self._baseline_ppm = self._initial_ppm()
        self._telemetry = Telemetry.initial(self._baseline_ppm)

        logger.info(
            f"Capture rig initialized: V={self.params.enclosure_volume}m³, "
            f"Q={self.params.fan_flow_rate}L/min, η={self.params.capture_efficiency}, "
            f"C0={self.params.initial_ppm}ppm"
        )

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    @property
    def status(self) -> RigStatus:
        return self._status

    @property
    def is_running(self) -> bool:
        return self._status is RigStatus.RUNNING

    def start(self) -> None:
        if self._status is RigStatus.RUNNING:
            return
        self._status = RigStatus.RUNNING
        logger.info(f"Rig started at t={self._telemetry.time_elapsed_seconds}s")

    def stop(self) -> None:
        if self._status is RigStatus.IDLE:
            return
        self._status = RigStatus.IDLE
        logger.info(f"Rig stopped at t={self._telemetry.time_elapsed_seconds}s")

    def reset(self) -> None:
        """Return to Idle with initial telemetry and an empty history."""
        self._status = RigStatus.IDLE
        self._baseline_ppm = self._initial_ppm()
        self._telemetry = Telemetry.initial(self._baseline_ppm)
        self._history.clear()
        logger.info(f"Rig reset: C0={self._baseline_ppm}ppm")

    def _initial_ppm(self) -> float:
        value = self.params.initial_ppm
        if not isinstance(value, (int, float)) or not math.isfinite(value) or value < 0:
            logger.warning(f"Invalid initial concentration {value!r}, using 0 ppm")
            return 0.0
        return float(value)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def update_parameters(
        self, params: Optional[SimParameters] = None, **changes: Any
    ) -> SimParameters:
        """
        Replace parameters in full or in part.

        Takes effect on the next tick. Telemetry and history are not
        touched; initial_ppm is only read by reset().

        Args:
            params: Complete replacement parameter set
            **changes: Individual fields to change

        Returns:
            Parameters now in force

        Raises:
            InvalidConfiguration: If a field name is unknown
        """
        base = params if params is not None else self.params
        self.params = base.updated(**changes) if changes else base
        logger.debug(f"Parameters updated: {self.params.to_dict()}")
        return self.params

    # ------------------------------------------------------------------
    # Dynamics
    # ------------------------------------------------------------------

    def processed_fraction(self, params: Optional[SimParameters] = None) -> float:
        """Fraction of enclosure air scrubbed of CO₂ in one second."""
        p = params or self.params
        fraction = (p.capture_efficiency * p.flow_rate_m3_per_s) / p.enclosure_volume
        if self.options.clamp_fraction and not 0.0 <= fraction <= 1.0:
            logger.warning(f"Processed fraction {fraction:.4f} clamped to [0, 1]")
            fraction = min(max(fraction, 0.0), 1.0)
        return fraction

    def tick(self) -> Telemetry:
        """
        Advance the rig by one second.

        Returns:
            Updated telemetry

        Raises:
            InvalidConfiguration: If current parameters are outside their
                physical domain. Telemetry and history are left unchanged.
        """
        params = self.params
        params.validate()

        prev = self._telemetry
        fraction = self.processed_fraction(params)
        new_ppm = prev.current_ppm * (1 - fraction)
        new_ppm = self._enforce_physical_bounds(new_ppm)

        ppm_delta = prev.current_ppm - new_ppm
        factor = yield_factor_mg_per_ppm(params.enclosure_volume, params.temperature_kelvin)

        new_state = Telemetry(
            time_elapsed_seconds=prev.time_elapsed_seconds + 1,
            current_ppm=new_ppm,
            cumulative_yield_mg=prev.cumulative_yield_mg + ppm_delta * factor,
            cumulative_co2_captured_ppm=prev.cumulative_co2_captured_ppm + ppm_delta,
        )
        self._telemetry = new_state

        if new_state.time_elapsed_seconds % self.options.sample_every == 0 or not self._history:
            self._history.append(
                HistoryPoint.from_values(
                    new_state.time_elapsed_seconds,
                    new_state.current_ppm,
                    new_state.cumulative_yield_mg,
                )
            )

        return new_state

    def _enforce_physical_bounds(self, ppm: float) -> float:
        """Concentration cannot be negative."""
        if ppm < 0:
            logger.warning(f"Negative concentration {ppm:.3e} ppm clamped to 0")
            return 0.0
        return ppm

    # ------------------------------------------------------------------
    # Readout
    # ------------------------------------------------------------------

    @property
    def telemetry(self) -> Telemetry:
        return self._telemetry

    def get_telemetry(self) -> Telemetry:
        return self._telemetry

    def get_history(self) -> List[HistoryPoint]:
        return self._history.to_list()

    @property
    def history(self) -> HistoryBuffer:
        return self._history

    def yield_factor(self) -> float:
        """Yield factor [mg/ppm] for the current parameters."""
        return yield_factor_mg_per_ppm(
            self.params.enclosure_volume, self.params.temperature_kelvin
        )

    def captured_co2_mg(self) -> float:
        """Cumulative CO₂ captured, expressed as a mass for the current V and T."""
        factor = co2_mass_factor_mg_per_ppm(
            self.params.enclosure_volume, self.params.temperature_kelvin
        )
        return self._telemetry.cumulative_co2_captured_ppm * factor

    def validate_conservation(self) -> Dict[str, float]:
        """
        Validate the CO₂ balance since the last reset.

        Returns:
            Dictionary with conservation metrics
        """
        t = self._telemetry
        accounted = t.current_ppm + t.cumulative_co2_captured_ppm

        return {
            "baseline_ppm": self._baseline_ppm,
            "current_ppm": t.current_ppm,
            "captured_ppm": t.cumulative_co2_captured_ppm,
            "balance_residual_ppm": accounted - self._baseline_ppm,
            "yield_mg": t.cumulative_yield_mg,
            "timestamp": t.time_elapsed_seconds,
        }

    def print_diagnostics(self):
        """Print rig diagnostics."""
        t = self._telemetry
        print("\n" + "=" * 70)
        print("CAPTURE RIG DIAGNOSTICS")
        print("=" * 70)

        print(f"\nStatus: {self._status.value}")
        print(f"Time: {t.time_elapsed_seconds} s")
        print(f"Processed fraction: {self.processed_fraction():.6f} per s")
        print(f"Yield factor: {self.yield_factor():.4f} mg/ppm")

        print(f"\nCO₂ concentration: {t.current_ppm:.2f} ppm")
        print(f"Na₂CO₃ yield: {t.cumulative_yield_mg:.3f} mg")
        print(
            f"CO₂ captured: {t.cumulative_co2_captured_ppm:.3f} ppm "
            f"({self.captured_co2_mg():.3f} mg)"
        )

        conservation = self.validate_conservation()
        print("\nConservation:")
        print(f"  CO₂ balance residual: {conservation['balance_residual_ppm']:.2e} ppm")
        print(f"  History samples: {len(self._history)}/{self._history.capacity}")

        print("=" * 70 + "\n")


def validate_capture_rig():
    """Comprehensive validation of the capture rig."""
    rig = CaptureRig(SimParameters())

    # Test 1: Monotonic decay and non-decreasing accumulators
    previous = rig.telemetry
    for _ in range(300):
        state = rig.tick()
        assert state.current_ppm < previous.current_ppm, "PPM should strictly decrease"
        assert state.current_ppm >= 0, "PPM went negative"
        assert state.cumulative_yield_mg >= previous.cumulative_yield_mg, "Yield decreased"
        assert (
            state.cumulative_co2_captured_ppm >= previous.cumulative_co2_captured_ppm
        ), "Captured decreased"
        previous = state

    # Test 2: CO₂ balance
    conservation = rig.validate_conservation()
    assert abs(conservation["balance_residual_ppm"]) < 1e-9, "CO₂ balance violated"

    # Test 3: Bounded history
    assert len(rig.get_history()) == 100, "History should be at capacity"

    # Test 4: Reset restores initial state
    rig.reset()
    assert rig.telemetry == Telemetry.initial(rig.params.initial_ppm), "Reset mismatch"
    assert rig.get_history() == [], "Reset should clear history"

    # Test 5: Invalid configuration leaves state unchanged
    rig.update_parameters(enclosure_volume=0.0)
    before = rig.telemetry
    try:
        rig.tick()
        assert False, "Should have raised InvalidConfiguration"
    except InvalidConfiguration:
        pass  # Expected
    assert rig.telemetry == before, "Telemetry changed on failed tick"

    print("✓ All capture rig validations passed")


if __name__ == "__main__":
    """
    Demonstration of the capture rig draw-down.
    """
    import matplotlib.pyplot as plt

    rig = CaptureRig(SimParameters())

    print("Initial State:")
    rig.print_diagnostics()

    t_total = 3600  # 1 hour
    time_history = []
    ppm_history = []
    yield_history = []

    print("\nRunning simulation...")
    rig.start()
    for _ in range(t_total):
        state = rig.tick()
        time_history.append(state.time_elapsed_seconds)
        ppm_history.append(state.current_ppm)
        yield_history.append(state.cumulative_yield_mg)
    rig.stop()

    print("\nFinal State:")
    rig.print_diagnostics()

    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(12, 8))

    ax1.plot(time_history, ppm_history, linewidth=2)
    ax1.set_ylabel("CO₂ [ppm]")
    ax1.set_title("Enclosure CO₂ Draw-Down")
    ax1.grid(True, alpha=0.3)

    ax2.plot(time_history, yield_history, linewidth=2, color="tab:orange")
    ax2.set_xlabel("Time [s]")
    ax2.set_ylabel("Na₂CO₃ [mg]")
    ax2.set_title("Cumulative Na₂CO₃ Yield")
    ax2.grid(True, alpha=0.3)

    plt.tight_layout()
    plt.savefig("capture_rig_demo.png", dpi=150)
    print("\nPlot saved to capture_rig_demo.png")

    print("\nRunning validation tests...")
    validate_capture_rig()
