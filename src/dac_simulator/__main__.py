"""
Capture Rig Simulation Orchestrator
===================================

Entry point: owns the tick schedule for the capture rig and, unless
disabled, serves telemetry and accepts operator commands over
Modbus/TCP.

Author: Guilherme F. G. Santos
Date: January 2026
"""

import argparse
import time
import logging
import signal
import sys
from contextlib import suppress
from typing import List, Optional

from .core import (
    CaptureRig,
    InvalidConfiguration,
    ParameterBounds,
    RigOptions,
    SimParameters,
)
from .modbus import (
    ModbusRegisterMap,
    ModbusServerConfig,
    ModbusSlave,
    apply_commands,
    publish_telemetry,
    seed_parameters,
)

logger = logging.getLogger(__name__)

# Global running flag for graceful shutdown
running = True

# Seconds between command polls while the rig is idle outside real time
IDLE_POLL_INTERVAL = 0.1


def signal_handler(sig, frame):
    """Handle Ctrl+C for clean shutdown."""
    global running
    logger.info("Shutdown signal received. Stopping simulation...")
    running = False


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_parser() -> argparse.ArgumentParser:
    defaults = SimParameters()
    parser = argparse.ArgumentParser(description="Direct-Air-Capture Rig Simulation")
    parser.add_argument(
        "--volume", type=float, default=defaults.enclosure_volume, help="Enclosure volume [m³]"
    )
    parser.add_argument(
        "--flow", type=float, default=defaults.fan_flow_rate, help="Fan flow rate [L/min]"
    )
    parser.add_argument(
        "--efficiency",
        type=float,
        default=defaults.capture_efficiency,
        help="Capture efficiency [0-1]",
    )
    parser.add_argument(
        "--initial-ppm", type=float, default=defaults.initial_ppm, help="Starting CO₂ [ppm]"
    )
    parser.add_argument(
        "--temperature",
        type=float,
        default=defaults.temperature_celsius,
        help="Enclosure temperature [°C]",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=None,
        help="Number of ticks to simulate (default: run until stopped)",
    )
    parser.add_argument(
        "--realtime",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Pace ticks to one per wall-clock second",
    )
    parser.add_argument(
        "--log-interval", type=int, default=60, help="Ticks between progress log lines"
    )
    parser.add_argument(
        "--clamp-fraction",
        action="store_true",
        help="Clamp the per-tick processed fraction to [0, 1]",
    )
    parser.add_argument("--port", type=int, default=5020, help="Modbus TCP port")
    parser.add_argument(
        "--host", type=str, default="127.0.0.1", help="Modbus bind address"
    )
    parser.add_argument(
        "--no-modbus",
        action="store_true",
        help="Run without Modbus server",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def start_modbus(args) -> Optional[ModbusSlave]:
    """Start the Modbus server, or return None to continue without it."""
    config = ModbusServerConfig(host=args.host, port=args.port)
    try:
        slave = ModbusSlave(ModbusRegisterMap(), config)
        slave.start(blocking=False)
        return slave
    except (RuntimeError, ValueError) as e:
        logger.error(f"Modbus server startup failed: {e}")
        logger.warning("Continuing in no-Modbus mode")
        return None


def run(
    rig: CaptureRig,
    slave: Optional[ModbusSlave] = None,
    duration: Optional[int] = None,
    realtime: bool = True,
    log_interval: int = 60,
    bounds: Optional[ParameterBounds] = None,
) -> int:
    """
    Scheduler loop: one tick per iteration while the rig is running.

    Returns:
        Number of ticks applied
    """
    ticks = 0
    modbus_error_count = 0
    max_modbus_errors = 10

    while running and (duration is None or ticks < duration):
        step_start = time.monotonic()

        if slave and not apply_commands(slave, rig, bounds):
            modbus_error_count += 1

        ticked = False
        if rig.is_running:
            try:
                state = rig.tick()
            except InvalidConfiguration as e:
                # Hold time still until the configuration is corrected
                logger.error(f"Tick rejected: {e}")
                rig.stop()
                if slave:
                    # Mirror the engine-initiated stop on the run coil
                    slave.write_coil("rig_running", False)
            else:
                ticks += 1
                ticked = True
                if ticks % log_interval == 0:
                    logger.info(
                        f"t={state.time_elapsed_seconds}s | "
                        f"CO2={state.current_ppm:.2f}ppm | "
                        f"Na2CO3={state.cumulative_yield_mg:.3f}mg | "
                        f"captured={state.cumulative_co2_captured_ppm:.2f}ppm"
                    )
        elif slave is None:
            # Nothing can restart an idle rig without a command channel
            break

        if slave and not publish_telemetry(slave, rig):
            modbus_error_count += 1

        if slave and modbus_error_count >= max_modbus_errors:
            logger.error("Too many Modbus errors, disabling interface")
            with suppress(Exception):
                slave.stop()
            slave = None

        if realtime:
            elapsed = time.monotonic() - step_start
            sleep_time = max(0.0, 1.0 - elapsed)
            if sleep_time > 0:
                time.sleep(sleep_time)
        elif not ticked:
            # Idle, waiting on the command channel
            time.sleep(IDLE_POLL_INTERVAL)

    return ticks


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info("=" * 70)
    logger.info("DIRECT-AIR-CAPTURE RIG SIMULATION")
    logger.info("=" * 70)

    params = SimParameters(
        enclosure_volume=args.volume,
        fan_flow_rate=args.flow,
        capture_efficiency=args.efficiency,
        initial_ppm=args.initial_ppm,
        temperature_celsius=args.temperature,
    )
    try:
        params.validate()
        rig = CaptureRig(params, RigOptions(clamp_fraction=args.clamp_fraction))
    except (InvalidConfiguration, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    slave = None if args.no_modbus else start_modbus(args)
    if slave:
        seed_parameters(slave, rig)

    rig.start()
    if slave:
        slave.write_coil("rig_running", True)

    try:
        ticks = run(
            rig,
            slave,
            duration=args.duration,
            realtime=args.realtime,
            log_interval=max(1, args.log_interval),
        )
        logger.info(f"Simulation finished after {ticks} ticks")
        rig.print_diagnostics()

    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")

    finally:
        rig.stop()
        if slave:
            logger.info("Stopping Modbus server...")
            with suppress(Exception):
                slave.stop()
        logger.info("Simulation stopped cleanly")

    return 0


if __name__ == "__main__":
    sys.exit(main())
