"""Unit tests for the gas-law yield calculations.

These cover the regression value at 1 m³ / 25 °C, the proportionality
of the yield factor to volume and inverse temperature, the Na₂CO₃/CO₂
mass ratio and rejection of non-physical inputs.
"""

import math

import pytest

from dac_simulator.core import (
    PHYSICAL_CONSTANTS,
    InvalidConfiguration,
    PhysicalConstants,
    celsius_to_kelvin,
    co2_mass_factor_mg_per_ppm,
    moles_of_air,
    yield_factor_mg_per_ppm,
)


def test_constants_positive():
    PHYSICAL_CONSTANTS.validate()
    assert PHYSICAL_CONSTANTS.R == 8.314
    assert PHYSICAL_CONSTANTS.STANDARD_PRESSURE_PA == 101325.0
    with pytest.raises(ValueError):
        PhysicalConstants(R=0.0).validate()


def test_constants_are_immutable():
    with pytest.raises(AttributeError):
        PHYSICAL_CONSTANTS.R = 1.0


def test_moles_of_air_ideal_gas():
    # n = PV / RT
    n = moles_of_air(1.0, 298.15)
    assert math.isclose(n, 101325.0 / (8.314 * 298.15))
    assert math.isclose(n, 40.876, rel_tol=1e-4)


def test_yield_factor_regression_fixture():
    assert yield_factor_mg_per_ppm(1.0, 298.15) == pytest.approx(4.3325, abs=1e-3)


def test_yield_factor_scales_with_volume():
    base = yield_factor_mg_per_ppm(0.15, 295.15)
    assert math.isclose(yield_factor_mg_per_ppm(0.30, 295.15), 2 * base)
    assert math.isclose(yield_factor_mg_per_ppm(0.05, 295.15), base / 3)


def test_yield_factor_inverse_with_temperature():
    base = yield_factor_mg_per_ppm(1.0, 250.0)
    assert math.isclose(yield_factor_mg_per_ppm(1.0, 500.0), base / 2)


def test_scenario_yield_factor():
    # 0.15 m³ at 22 °C
    assert yield_factor_mg_per_ppm(0.15, 295.15) == pytest.approx(0.65648, rel=1e-4)


def test_product_to_co2_mass_ratio():
    ratio = yield_factor_mg_per_ppm(0.2, 300.0) / co2_mass_factor_mg_per_ppm(0.2, 300.0)
    assert math.isclose(ratio, 105.99 / 44.01)


@pytest.mark.parametrize(
    "volume, temp_k",
    [(0.0, 298.15), (-0.1, 298.15), (1.0, 0.0), (1.0, -5.0), (float("nan"), 298.15)],
)
def test_yield_factor_rejects_invalid_state(volume, temp_k):
    with pytest.raises(InvalidConfiguration):
        yield_factor_mg_per_ppm(volume, temp_k)


def test_celsius_to_kelvin():
    assert math.isclose(celsius_to_kelvin(22.0), 295.15)
    with pytest.raises(InvalidConfiguration):
        celsius_to_kelvin(-273.15)
    with pytest.raises(InvalidConfiguration):
        celsius_to_kelvin(float("inf"))
