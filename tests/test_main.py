"""Tests for the scheduler loop and command-line entry point."""

import dac_simulator.__main__ as entry
from dac_simulator.__main__ import IDLE_POLL_INTERVAL, build_parser, main, run
from dac_simulator.core import CaptureRig, SimParameters
from dac_simulator.modbus import seed_parameters


class RecordingSlave:
    """In-memory command channel with the ModbusSlave accessors."""

    is_running = True

    def __init__(self):
        self.holding_registers = {}
        self.coils = {}
        self.input_registers = {}
        self.discrete_inputs = {}

    def update_input_register(self, name, value):
        self.input_registers[name] = value

    def update_discrete_input(self, name, value):
        self.discrete_inputs[name] = value

    def write_holding_register(self, name, value):
        self.holding_registers[name] = value

    def read_holding_register(self, name):
        return self.holding_registers[name]

    def write_coil(self, name, value):
        self.coils[name] = value

    def read_coil(self, name):
        return self.coils[name]


def test_run_ticks_for_duration():
    rig = CaptureRig(SimParameters())
    rig.start()
    ticks = run(rig, duration=25, realtime=False, log_interval=10)
    assert ticks == 25
    assert rig.telemetry.time_elapsed_seconds == 25


def test_run_exits_when_idle_without_command_channel():
    rig = CaptureRig(SimParameters())
    assert run(rig, duration=10, realtime=False) == 0
    assert rig.telemetry.time_elapsed_seconds == 0


def test_run_stops_on_invalid_configuration():
    rig = CaptureRig(SimParameters())
    rig.start()
    rig.update_parameters(enclosure_volume=0.0)
    assert run(rig, duration=10, realtime=False) == 0
    assert not rig.is_running


def test_idle_rig_polls_commands_without_spinning(monkeypatch):
    rig = CaptureRig(SimParameters())
    slave = RecordingSlave()
    seed_parameters(slave, rig)
    sleeps = []

    def fake_sleep(seconds):
        sleeps.append(seconds)
        # Operator starts the rig while the loop waits
        slave.write_coil("rig_running", True)

    monkeypatch.setattr(entry.time, "sleep", fake_sleep)
    assert run(rig, slave=slave, duration=3, realtime=False) == 3
    assert sleeps == [IDLE_POLL_INTERVAL]
    assert rig.is_running


def test_rejected_tick_clears_run_coil(monkeypatch):
    rig = CaptureRig(SimParameters())
    slave = RecordingSlave()
    seed_parameters(slave, rig)
    slave.write_coil("rig_running", True)
    # Temperature has no operator envelope, so this reaches the engine
    slave.write_holding_register("temperature_celsius", -300.0)

    def fake_sleep(seconds):
        entry.running = False

    monkeypatch.setattr(entry, "running", True)
    monkeypatch.setattr(entry.time, "sleep", fake_sleep)
    assert run(rig, slave=slave, duration=5, realtime=False) == 0
    assert not rig.is_running
    assert slave.coils["rig_running"] is False
    assert slave.discrete_inputs["config_fault"] is True


def test_parser_defaults():
    args = build_parser().parse_args([])
    assert args.volume == 0.15
    assert args.flow == 20.0
    assert args.realtime is True
    assert build_parser().parse_args(["--no-realtime"]).realtime is False


def test_main_runs_headless():
    assert main(["--no-modbus", "--no-realtime", "--duration", "5"]) == 0


def test_main_rejects_invalid_configuration():
    assert main(["--no-modbus", "--no-realtime", "--duration", "5", "--volume", "0"]) == 1
