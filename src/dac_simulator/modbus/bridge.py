"""
Rig ↔ Modbus Bridge
===================

Moves data between the capture rig and the Modbus data blocks once per
loop iteration:

- publish_telemetry(): rig telemetry → input registers / discrete inputs
- seed_parameters(): rig parameters → holding registers (at startup)
- apply_commands(): holding registers / coils → rig (zero-trust clamped)

Works with any object exposing the ModbusSlave accessors, so the loop
can be exercised without a network listener.

Author: Guilherme F. G. Santos
Date: January 2026
License: MIT
"""

import logging
from dataclasses import fields
from typing import Optional

from ..core import (
    CaptureRig,
    InvalidConfiguration,
    ParameterBounds,
    SimParameters,
    clamp_parameters,
)

logger = logging.getLogger(__name__)

PARAMETER_REGISTERS = tuple(f.name for f in fields(SimParameters))


def _finite_or_zero(value: float) -> float:
    if value != value or value in (float("inf"), float("-inf")):
        return 0.0
    return value


def publish_telemetry(slave, rig: CaptureRig) -> bool:
    """
    Update input registers with the rig's current telemetry.

    Derived values (fraction, yield factor, captured mass) are published
    as 0 and config_fault is raised while the parameters are invalid.

    Returns:
        True if update succeeded, False otherwise
    """
    if slave is None or not slave.is_running:
        return False

    t = rig.telemetry
    try:
        rig.params.validate()
        config_fault = False
    except InvalidConfiguration:
        config_fault = True

    try:
        if config_fault:
            fraction = factor = captured_mg = 0.0
        else:
            fraction = rig.processed_fraction()
            factor = rig.yield_factor()
            captured_mg = rig.captured_co2_mg()

        slave.update_input_register("current_ppm", _finite_or_zero(t.current_ppm))
        slave.update_input_register("cumulative_yield_mg", _finite_or_zero(t.cumulative_yield_mg))
        slave.update_input_register(
            "cumulative_co2_captured_ppm", _finite_or_zero(t.cumulative_co2_captured_ppm)
        )
        slave.update_input_register("co2_captured_mg", _finite_or_zero(captured_mg))
        slave.update_input_register("yield_factor", _finite_or_zero(factor))
        slave.update_input_register("processed_fraction", _finite_or_zero(fraction))
        slave.update_input_register("simulation_time", float(t.time_elapsed_seconds))
        slave.update_input_register("rig_status", 1 if rig.is_running else 0)
        slave.update_input_register("history_length", len(rig.history))

        slave.update_discrete_input("config_fault", config_fault)
        return True

    except ValueError as e:
        logger.error(f"Modbus telemetry update failed: {e}")
        return False


def seed_parameters(slave, rig: CaptureRig) -> None:
    """Write the rig's parameters into the holding registers."""
    for name in PARAMETER_REGISTERS:
        slave.write_holding_register(name, getattr(rig.params, name))
    slave.write_coil("rig_running", rig.is_running)
    slave.write_coil("reset_request", False)


def apply_commands(slave, rig: CaptureRig, bounds: Optional[ParameterBounds] = None) -> bool:
    """
    Apply operator commands from Modbus to the rig.

    Parameter registers are clamped to the operator envelope before
    use. A set reset_request coil resets the rig and is cleared; the
    rig_running coil then drives start/stop.

    Returns:
        True if commands were read and applied, False otherwise
    """
    if slave is None or not slave.is_running:
        return False

    try:
        requested = {name: slave.read_holding_register(name) for name in PARAMETER_REGISTERS}
        run_command = slave.read_coil("rig_running")
        reset_command = slave.read_coil("reset_request")
    except ValueError as e:
        logger.error(f"Modbus command read failed: {e}")
        return False

    changed = {
        name: value
        for name, value in requested.items()
        # float32 registers lose precision; only act on real changes
        if abs(value - getattr(rig.params, name)) > 1e-6 * max(1.0, abs(value))
    }
    if changed:
        sanitised = clamp_parameters(rig.params, changed, bounds)
        rig.update_parameters(sanitised)
        logger.info(f"Parameters changed over Modbus: {sorted(changed)}")
        # Echo the clamped values back so the master sees what is in force
        for name in changed:
            slave.write_holding_register(name, getattr(rig.params, name))

    if reset_command:
        rig.reset()
        slave.write_coil("reset_request", False)
        slave.write_coil("rig_running", False)
        return True

    if run_command and not rig.is_running:
        rig.start()
    elif not run_command and rig.is_running:
        rig.stop()

    return True
