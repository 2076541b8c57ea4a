"""
Modbus Interface Package
=========================

Modbus/TCP adapter exposing the capture rig to external controllers
and dashboards.

Components:
- slave.py: Modbus TCP server
- register_map.py: Address space definition
- protocols.py: Data encoding/decoding
- bridge.py: Rig telemetry out, operator commands in

Usage Example:
>>> from dac_simulator.core import CaptureRig
>>> from dac_simulator.modbus import ModbusSlave, publish_telemetry, apply_commands
>>>
>>> rig = CaptureRig()
>>> slave = ModbusSlave()
>>> slave.start(blocking=False)
>>>
>>> # Once per loop iteration
>>> apply_commands(slave, rig)
>>> if rig.is_running:
...     rig.tick()
>>> publish_telemetry(slave, rig)

Architecture:

┌─────────────────┐
│  HMI / SCADA    │  Operator dashboard
└────────┬────────┘
         │ Modbus/TCP
┌────────▼────────┐
│  ModbusSlave    │  Protocol adapter (this package)
└────────┬────────┘
         │
┌────────▼────────┐
│  CaptureRig     │  Simulation engine
└─────────────────┘

Author: Guilherme F. G. Santos
Date: January 2026
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Guilherme F. G. Santos"

from .register_map import ModbusRegisterMap, RegisterDefinition, RegisterType

from .protocols import ModbusEncoder, ModbusDecoder

from .slave import ModbusSlave, ModbusServerConfig

from .bridge import apply_commands, publish_telemetry, seed_parameters

__all__ = [
    # Register mapping
    "ModbusRegisterMap",
    "RegisterDefinition",
    "RegisterType",
    # Encoding/decoding
    "ModbusEncoder",
    "ModbusDecoder",
    # Server
    "ModbusSlave",
    "ModbusServerConfig",
    # Bridge
    "apply_commands",
    "publish_telemetry",
    "seed_parameters",
]
