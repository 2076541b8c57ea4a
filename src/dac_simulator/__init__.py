"""
DAC Rig Simulator
=================

Closed-loop direct-air-capture rig simulation: ideal-gas yield model,
discrete-time enclosure draw-down engine and a Modbus/TCP adapter.

Author: Guilherme F. G. Santos
Date: January 2026
License: MIT
"""

__version__ = "1.0.0"
