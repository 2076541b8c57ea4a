"""
Modbus Register Encoding
========================

Conversion between rig values and 16-bit Modbus words.

- float32: IEEE 754 single precision over two registers, big-endian
  (high word first)
- int16 / uint16: one register
- bool: coil / discrete input bit

Telemetry is float64 inside the rig; float32 keeps ~7 significant
digits, which covers ppm to 0.0001 and yield to the microgram.

Author: Guilherme F. G. Santos
Date: January 2026
License: MIT
"""

import struct
import numpy as np
from typing import List, Sequence, Tuple, Union

DATA_TYPES = ("float32", "int16", "uint16", "bool")


class ModbusEncoder:
    """Python values → register words."""

    @staticmethod
    def float32_to_registers(value: float) -> Tuple[int, int]:
        """
        Encode a float as (high, low) register words.

        Example:
            >>> ModbusEncoder.float32_to_registers(420.0)
            (17362, 0)
        """
        high, low = struct.unpack(">HH", struct.pack(">f", value))
        return high, low

    @staticmethod
    def int16_to_register(value: int) -> int:
        if not -32768 <= value <= 32767:
            raise ValueError(f"int16 value {value} out of range [-32768, 32767]")
        (word,) = struct.unpack(">H", struct.pack(">h", value))
        return word

    @staticmethod
    def uint16_to_register(value: int) -> int:
        if not 0 <= value <= 65535:
            raise ValueError(f"uint16 value {value} out of range [0, 65535]")
        return value

    @staticmethod
    def bool_to_coil(value: bool) -> int:
        return 1 if value else 0

    @classmethod
    def encode(cls, value: Union[float, int, bool], data_type: str) -> List[int]:
        """Encode one value into the words it occupies."""
        if data_type == "float32":
            return list(cls.float32_to_registers(float(value)))
        if data_type == "int16":
            return [cls.int16_to_register(int(value))]
        if data_type == "uint16":
            return [cls.uint16_to_register(int(value))]
        if data_type == "bool":
            return [cls.bool_to_coil(bool(value))]
        raise ValueError(f"Unknown data type: {data_type}")

    @classmethod
    def array_to_registers(
        cls, values: Union[Sequence[float], np.ndarray], data_type: str = "float32"
    ) -> List[int]:
        """Encode a series (e.g. a ppm trend) into consecutive words."""
        registers: List[int] = []
        for value in np.asarray(values).ravel():
            registers.extend(cls.encode(value.item(), data_type))
        return registers


class ModbusDecoder:
    """Register words → Python values."""

    @staticmethod
    def registers_to_float32(high: int, low: int) -> float:
        (value,) = struct.unpack(">f", struct.pack(">HH", high, low))
        return value

    @staticmethod
    def register_to_int16(word: int) -> int:
        (value,) = struct.unpack(">h", struct.pack(">H", word))
        return value

    @staticmethod
    def register_to_uint16(word: int) -> int:
        return word

    @staticmethod
    def coil_to_bool(value: int) -> bool:
        return bool(value)

    @classmethod
    def decode(cls, words: Sequence[int], data_type: str) -> Union[float, int, bool]:
        """Decode the words of a single value."""
        if data_type == "float32":
            return cls.registers_to_float32(words[0], words[1])
        if data_type == "int16":
            return cls.register_to_int16(words[0])
        if data_type == "uint16":
            return cls.register_to_uint16(words[0])
        if data_type == "bool":
            return cls.coil_to_bool(words[0])
        raise ValueError(f"Unknown data type: {data_type}")

    @classmethod
    def registers_to_array(cls, registers: Sequence[int], data_type: str = "float32") -> np.ndarray:
        """Decode consecutive words into a numpy series."""
        width = 2 if data_type == "float32" else 1
        if len(registers) % width:
            raise ValueError(f"{len(registers)} words do not divide into {data_type} values")
        values = [
            cls.decode(registers[i : i + width], data_type)
            for i in range(0, len(registers), width)
        ]
        return np.array(values, dtype=float)


def validate_encoding():
    """Validate encoding of representative rig values."""
    encoder = ModbusEncoder()
    decoder = ModbusDecoder()

    # Test 1: float32 at rig magnitudes (ppm, mg, m³)
    for original in [0.0, 419.2067, 0.5208, 0.15, 3600.0]:
        decoded = decoder.decode(encoder.encode(original, "float32"), "float32")
        if abs(decoded - original) > abs(original) * 1e-6 + 1e-9:
            raise AssertionError(f"float32 encoding failed: {original} -> {decoded}")

    # Test 2: Integer widths at their limits
    for original, data_type in [(-32768, "int16"), (32767, "int16"), (65535, "uint16")]:
        decoded = decoder.decode(encoder.encode(original, data_type), data_type)
        if decoded != original:
            raise AssertionError(f"{data_type} encoding failed: {original} -> {decoded}")

    # Test 3: Range enforcement
    try:
        encoder.uint16_to_register(70000)
        raise AssertionError("uint16 overflow not detected")
    except ValueError:
        pass  # Expected

    print("✓ All encoding/decoding validations passed")


if __name__ == "__main__":
    validate_encoding()
