"""Unit tests for the bounded trend buffer."""

import numpy as np
import pytest

from dac_simulator.core import HISTORY_CAPACITY, HistoryBuffer, HistoryPoint, format_elapsed


def test_format_elapsed():
    assert format_elapsed(0) == "00:00"
    assert format_elapsed(9) == "00:09"
    assert format_elapsed(75) == "01:15"
    assert format_elapsed(3599) == "59:59"
    assert format_elapsed(6005) == "100:05"
    with pytest.raises(ValueError):
        format_elapsed(-1)


def test_history_point_rounds_values():
    point = HistoryPoint.from_values(1, 419.206667, 0.520807)
    assert point == HistoryPoint(label="00:01", ppm=419.21, yield_mg=0.52)


def test_buffer_evicts_oldest():
    buffer = HistoryBuffer()
    assert buffer.capacity == HISTORY_CAPACITY == 100
    for t in range(1, 151):
        buffer.append(HistoryPoint.from_values(t, float(t), 0.0))
    points = buffer.to_list()
    assert len(points) == 100
    assert points[0].label == format_elapsed(51)
    assert points[-1].label == format_elapsed(150)


def test_buffer_clear_and_snapshot_is_a_copy():
    buffer = HistoryBuffer(capacity=5)
    buffer.append(HistoryPoint.from_values(2, 400.0, 1.0))
    snapshot = buffer.to_list()
    snapshot.clear()
    assert len(buffer) == 1
    buffer.clear()
    assert len(buffer) == 0
    assert not buffer


def test_as_arrays():
    buffer = HistoryBuffer(capacity=3)
    for t, ppm in enumerate([420.0, 410.5, 400.25], start=1):
        buffer.append(HistoryPoint.from_values(t, ppm, t * 0.5))
    ppm, yield_mg = buffer.as_arrays()
    np.testing.assert_allclose(ppm, [420.0, 410.5, 400.25])
    np.testing.assert_allclose(yield_mg, [0.5, 1.0, 1.5])


def test_invalid_capacity():
    with pytest.raises(ValueError):
        HistoryBuffer(capacity=0)
