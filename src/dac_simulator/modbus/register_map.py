"""
Modbus Register Map
===================

Layout of the capture rig's Modbus address space.

This module contains ONLY the register layout - it does not read the
rig, apply commands or clamp values.

Register Types:
- Input Registers (FC 04): Telemetry (read-only)
- Holding Registers (FC 03/06/16): Operating parameters (read/write)
- Coils (FC 01/05/15): Run and reset commands (read/write)
- Discrete Inputs (FC 02): Fault bits (read-only)

Register Encoding:
- Floats are IEEE 754 single precision over 2 registers, big-endian

Author: Guilherme F. G. Santos
Date: January 2026
License: MIT
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, List, Optional

from .protocols import DATA_TYPES


class RegisterType(IntEnum):
    """Modbus register types."""

    COIL = 0  # Discrete output (read/write)
    DISCRETE_INPUT = 1  # Discrete input (read-only)
    INPUT_REGISTER = 3  # Analog input (read-only)
    HOLDING_REGISTER = 4  # Analog output (read/write)


# Modbus convention offsets used for documentation only
_CONVENTIONAL_BASE = {
    RegisterType.COIL: 1,
    RegisterType.DISCRETE_INPUT: 10001,
    RegisterType.INPUT_REGISTER: 30001,
    RegisterType.HOLDING_REGISTER: 40001,
}

_WRITABLE = {RegisterType.COIL, RegisterType.HOLDING_REGISTER}


@dataclass
class RegisterDefinition:
    """
    Definition of a single Modbus register (or register pair for floats).

    Attributes:
        address: Starting register address (0-based)
        name: Identifier used by the bridge
        register_type: Coil, discrete input, input register or holding register
        data_type: 'float32', 'int16', 'uint16', 'bool'
        units: Physical units (e.g. 'ppm', 'mg', 'L/min')
        description: What this register represents
    """

    address: int
    name: str
    register_type: RegisterType
    data_type: str
    units: str
    description: str

    @property
    def read_only(self) -> bool:
        return self.register_type not in _WRITABLE

    @property
    def size_words(self) -> int:
        """Number of 16-bit words this register occupies."""
        return 2 if self.data_type == "float32" else 1

    @property
    def conventional_address(self) -> int:
        return _CONVENTIONAL_BASE[self.register_type] + self.address

    def validate(self):
        if not 0 <= self.address <= 65535 - self.size_words + 1:
            raise ValueError(f"Register {self.name} address {self.address} out of range")
        if self.data_type not in DATA_TYPES:
            raise ValueError(f"Unknown data type for {self.name}: {self.data_type}")
        is_bit = self.register_type in (RegisterType.COIL, RegisterType.DISCRETE_INPUT)
        if is_bit != (self.data_type == "bool"):
            raise ValueError(
                f"{self.name}: {self.data_type} not allowed for {self.register_type.name}"
            )


def _ir(address, name, data_type, units, description):
    return RegisterDefinition(address, name, RegisterType.INPUT_REGISTER, data_type, units, description)


def _hr(address, name, units, description):
    return RegisterDefinition(address, name, RegisterType.HOLDING_REGISTER, "float32", units, description)


def _bit(address, name, register_type, description):
    return RegisterDefinition(address, name, register_type, "bool", "", description)


class ModbusRegisterMap:
    """
    Complete Modbus register map for the capture rig.

    Defines WHERE data goes in the address space; the bridge decides
    what goes there.
    """

    def __init__(self):
        """Initialize register map with standard layout."""
        self.input_registers: List[RegisterDefinition] = [
            _ir(0, "current_ppm", "float32", "ppm", "Enclosure CO₂ concentration"),
            _ir(2, "cumulative_yield_mg", "float32", "mg", "Cumulative Na₂CO₃ yield"),
            _ir(4, "cumulative_co2_captured_ppm", "float32", "ppm", "Cumulative CO₂ removed"),
            _ir(6, "co2_captured_mg", "float32", "mg", "Cumulative CO₂ removed as mass"),
            _ir(8, "yield_factor", "float32", "mg/ppm", "Na₂CO₃ per ppm at current V, T"),
            _ir(10, "processed_fraction", "float32", "1/s", "Fraction of enclosure scrubbed per tick"),
            _ir(100, "simulation_time", "float32", "s", "Simulated elapsed time"),
            _ir(102, "rig_status", "uint16", "", "0=idle, 1=running"),
            _ir(103, "history_length", "uint16", "", "Trend samples currently held"),
        ]

        self.holding_registers: List[RegisterDefinition] = [
            _hr(0, "enclosure_volume", "m³", "Enclosure volume"),
            _hr(2, "fan_flow_rate", "L/min", "Fan flow rate"),
            _hr(4, "capture_efficiency", "", "Capture efficiency (0-1)"),
            _hr(6, "initial_ppm", "ppm", "Concentration applied on reset"),
            _hr(8, "temperature_celsius", "°C", "Enclosure temperature"),
        ]

        self.coils: List[RegisterDefinition] = [
            _bit(0, "rig_running", RegisterType.COIL, "Run command (True=running, False=idle)"),
            _bit(1, "reset_request", RegisterType.COIL, "Write True to reset; cleared by the rig"),
        ]

        self.discrete_inputs: List[RegisterDefinition] = [
            _bit(0, "config_fault", RegisterType.DISCRETE_INPUT, "Current parameters are outside their physical domain"),
        ]

        self._by_name: Dict[str, RegisterDefinition] = {}
        self._validate_all()

    @property
    def all_registers(self) -> List[RegisterDefinition]:
        return self.input_registers + self.holding_registers + self.coils + self.discrete_inputs

    def registers_of(self, register_type: RegisterType) -> List[RegisterDefinition]:
        return {
            RegisterType.INPUT_REGISTER: self.input_registers,
            RegisterType.HOLDING_REGISTER: self.holding_registers,
            RegisterType.COIL: self.coils,
            RegisterType.DISCRETE_INPUT: self.discrete_inputs,
        }[register_type]

    def _validate_all(self):
        """Validate all register definitions and check for conflicts."""
        for reg in self.all_registers:
            reg.validate()
            if reg.name in self._by_name:
                raise ValueError(f"Duplicate register name: {reg.name}")
            self._by_name[reg.name] = reg

        for register_type in RegisterType:
            self._check_address_conflicts(self.registers_of(register_type), register_type.name)

    @staticmethod
    def _check_address_conflicts(registers: List[RegisterDefinition], type_name: str):
        """Check for overlapping register addresses."""
        ordered = sorted(registers, key=lambda r: r.address)
        for current, following in zip(ordered, ordered[1:]):
            if current.address + current.size_words > following.address:
                raise ValueError(
                    f"{type_name} address conflict: {current.name} "
                    f"[{current.address}-{current.address + current.size_words - 1}] "
                    f"overlaps with {following.name} [{following.address}]"
                )

    def block_size(self, register_type: RegisterType, minimum: int = 200) -> int:
        """Words needed to back this register type, with headroom."""
        top = max((r.address + r.size_words for r in self.registers_of(register_type)), default=0)
        return max(top + 10, minimum)

    def get_register_by_name(self, name: str) -> Optional[RegisterDefinition]:
        return self._by_name.get(name)

    def get_register_by_address(
        self, address: int, register_type: RegisterType
    ) -> Optional[RegisterDefinition]:
        for reg in self.registers_of(register_type):
            if reg.address <= address < reg.address + reg.size_words:
                return reg
        return None

    def print_register_map(self):
        """Print complete register map for documentation."""
        print("=" * 80)
        print("CAPTURE RIG MODBUS REGISTER MAP")
        print("=" * 80)
        for register_type in (
            RegisterType.INPUT_REGISTER,
            RegisterType.HOLDING_REGISTER,
            RegisterType.COIL,
            RegisterType.DISCRETE_INPUT,
        ):
            print(f"\n{register_type.name.replace('_', ' ')}S")
            print("-" * 80)
            print(f"{'Address':<13} {'Name':<30} {'Type':<8} {'Units':<8} Description")
            print("-" * 80)
            for reg in self.registers_of(register_type):
                start = reg.conventional_address
                addr = f"{start}-{start + 1}" if reg.size_words == 2 else str(start)
                print(
                    f"{addr:<13} {reg.name:<30} {reg.data_type:<8} {reg.units:<8} {reg.description}"
                )
        print("\n" + "=" * 80)


if __name__ == "__main__":
    ModbusRegisterMap().print_register_map()
