"""Tests for the Modbus layer: encoding, register layout, the data-block
accessors of the server (without opening a socket) and the rig bridge.
"""

import pytest

from dac_simulator.core import CaptureRig, SimParameters
from dac_simulator.modbus import (
    ModbusDecoder,
    ModbusEncoder,
    ModbusRegisterMap,
    ModbusSlave,
    RegisterDefinition,
    RegisterType,
    apply_commands,
    publish_telemetry,
    seed_parameters,
)


class FakeSlave:
    """In-memory stand-in exposing the ModbusSlave accessors."""

    def __init__(self, is_running=True):
        self.is_running = is_running
        self.input_registers = {}
        self.discrete_inputs = {}
        self.holding_registers = {}
        self.coils = {}

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


# ----------------------------------------------------------------------
# Encoding
# ----------------------------------------------------------------------


def test_float32_words():
    assert ModbusEncoder.float32_to_registers(420.0) == (17362, 0)
    assert ModbusDecoder.registers_to_float32(17362, 0) == 420.0


def test_float32_precision_at_rig_magnitudes():
    words = ModbusEncoder.encode(419.206667, "float32")
    assert ModbusDecoder.decode(words, "float32") == pytest.approx(419.206667, rel=1e-7)


def test_int16_sign_handling():
    assert ModbusEncoder.int16_to_register(-1) == 0xFFFF
    assert ModbusDecoder.register_to_int16(0xFFFF) == -1
    with pytest.raises(ValueError):
        ModbusEncoder.int16_to_register(40000)


def test_unknown_data_type():
    with pytest.raises(ValueError):
        ModbusEncoder.encode(1.0, "float64")


def test_series_encoding():
    registers = ModbusEncoder.array_to_registers([420.0, 410.5, 400.25])
    assert len(registers) == 6
    decoded = ModbusDecoder.registers_to_array(registers)
    assert decoded.tolist() == [420.0, 410.5, 400.25]
    with pytest.raises(ValueError):
        ModbusDecoder.registers_to_array(registers[:5])


# ----------------------------------------------------------------------
# Register map
# ----------------------------------------------------------------------


def test_register_map_layout():
    reg_map = ModbusRegisterMap()
    ppm = reg_map.get_register_by_name("current_ppm")
    assert ppm.register_type is RegisterType.INPUT_REGISTER
    assert ppm.conventional_address == 30001
    assert ppm.read_only

    flow = reg_map.get_register_by_name("fan_flow_rate")
    assert not flow.read_only
    # The low word of a float resolves to the same register
    assert reg_map.get_register_by_address(flow.address + 1, RegisterType.HOLDING_REGISTER) is flow

    assert reg_map.get_register_by_name("missing") is None
    assert {r.name for r in reg_map.coils} == {"rig_running", "reset_request"}


def test_address_conflict_detected():
    overlapping = [
        RegisterDefinition(0, "a", RegisterType.INPUT_REGISTER, "float32", "", ""),
        RegisterDefinition(1, "b", RegisterType.INPUT_REGISTER, "uint16", "", ""),
    ]
    with pytest.raises(ValueError):
        ModbusRegisterMap._check_address_conflicts(overlapping, "Input registers")


def test_register_type_must_match_data_type():
    with pytest.raises(ValueError):
        RegisterDefinition(0, "bad", RegisterType.COIL, "float32", "", "").validate()


# ----------------------------------------------------------------------
# Server data blocks (no socket)
# ----------------------------------------------------------------------


def test_slave_register_access_without_server():
    slave = ModbusSlave()
    assert not slave.is_running

    slave.write_holding_register("fan_flow_rate", 35.0)
    assert slave.read_holding_register("fan_flow_rate") == 35.0

    slave.write_coil("rig_running", True)
    assert slave.read_coil("rig_running") is True

    slave.update_input_register("history_length", 42)
    assert slave.read_input_register("history_length") == 42

    with pytest.raises(ValueError):
        slave.update_input_register("fan_flow_rate", 1.0)
    with pytest.raises(ValueError):
        slave.write_holding_register("fan_flow_rate", 1e12)


# ----------------------------------------------------------------------
# Bridge
# ----------------------------------------------------------------------


def test_publish_telemetry():
    rig = CaptureRig(SimParameters())
    rig.start()
    for _ in range(3):
        rig.tick()
    slave = FakeSlave()

    assert publish_telemetry(slave, rig)
    t = rig.telemetry
    assert slave.input_registers["current_ppm"] == t.current_ppm
    assert slave.input_registers["cumulative_yield_mg"] == t.cumulative_yield_mg
    assert slave.input_registers["simulation_time"] == 3.0
    assert slave.input_registers["rig_status"] == 1
    assert slave.input_registers["history_length"] == 2
    assert slave.input_registers["yield_factor"] == pytest.approx(rig.yield_factor())
    assert slave.discrete_inputs["config_fault"] is False


def test_publish_flags_invalid_configuration():
    rig = CaptureRig(SimParameters(enclosure_volume=0.0))
    slave = FakeSlave()
    assert publish_telemetry(slave, rig)
    assert slave.discrete_inputs["config_fault"] is True
    assert slave.input_registers["processed_fraction"] == 0.0


def test_bridge_inactive_without_server():
    rig = CaptureRig()
    assert not publish_telemetry(None, rig)
    assert not apply_commands(FakeSlave(is_running=False), rig)


def test_commands_start_and_stop_the_rig():
    rig = CaptureRig()
    slave = FakeSlave()
    seed_parameters(slave, rig)

    slave.write_coil("rig_running", True)
    assert apply_commands(slave, rig)
    assert rig.is_running

    slave.write_coil("rig_running", False)
    apply_commands(slave, rig)
    assert not rig.is_running


def test_parameter_commands_are_clamped_and_echoed():
    rig = CaptureRig()
    slave = FakeSlave()
    seed_parameters(slave, rig)

    slave.write_holding_register("fan_flow_rate", 500.0)
    slave.write_holding_register("capture_efficiency", 0.5)
    apply_commands(slave, rig)

    assert rig.params.fan_flow_rate == 60.0
    assert rig.params.capture_efficiency == 0.5
    assert slave.holding_registers["fan_flow_rate"] == 60.0
    # Parameter changes alone do not touch telemetry
    assert rig.telemetry.time_elapsed_seconds == 0


def test_reset_request_resets_and_clears_coil():
    rig = CaptureRig()
    slave = FakeSlave()
    seed_parameters(slave, rig)
    rig.start()
    for _ in range(5):
        rig.tick()

    slave.write_coil("rig_running", True)
    slave.write_coil("reset_request", True)
    apply_commands(slave, rig)

    assert not rig.is_running
    assert rig.telemetry.time_elapsed_seconds == 0
    assert rig.get_history() == []
    assert slave.coils["reset_request"] is False
    assert slave.coils["rig_running"] is False


def test_publish_leaves_run_coil_to_the_operator():
    rig = CaptureRig()
    slave = FakeSlave()
    seed_parameters(slave, rig)
    apply_commands(slave, rig)

    # Start request lands between command handling and publishing
    slave.write_coil("rig_running", True)
    publish_telemetry(slave, rig)
    assert slave.coils["rig_running"] is True
    assert slave.input_registers["rig_status"] == 0

    apply_commands(slave, rig)
    assert rig.is_running

    slave.write_coil("rig_running", False)
    publish_telemetry(slave, rig)
    apply_commands(slave, rig)
    assert not rig.is_running


def test_config_fault_describes_current_parameters():
    fault = ModbusRegisterMap().get_register_by_name("config_fault")
    assert fault.description == "Current parameters are outside their physical domain"


def test_encoding_validation_suite():
    from dac_simulator.modbus.protocols import validate_encoding

    validate_encoding()
