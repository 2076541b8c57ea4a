"""
Simulator Exceptions
====================

Author: Guilherme F. G. Santos
Date: January 2026
License: MIT
"""


class DACSimulatorError(Exception):
    """Base class for all simulator errors."""


class InvalidConfiguration(DACSimulatorError, ValueError):
    """
    A parameter lies outside its physical domain.

    Raised by the yield calculator, parameter validation and the tick
    update. The caller must not apply any telemetry produced from the
    offending parameters.
    """
