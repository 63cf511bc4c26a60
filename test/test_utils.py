import numpy as np
import pytest

from utils import Surface, TimeSeries


def test_time_series_grows_past_capacity():
    ts = TimeSeries(3, capacity=4)
    for k in range(5):
        t = np.arange(3) + 3 * k
        ts.append(t, np.column_stack((t, 2 * t, 3 * t)))

    assert len(ts) == 15
    assert ts.capacity == 16
    np.testing.assert_array_equal(ts.times, np.arange(15))
    np.testing.assert_array_equal(ts.states[:, 2], 3 * np.arange(15))


def test_time_series_single_row():
    ts = TimeSeries(2)
    ts.append(1.5, np.array([1.0, 2.0]))
    np.testing.assert_array_equal(ts.states, [[1.0, 2.0]])


def test_time_series_length_mismatch():
    with pytest.raises(ValueError):
        TimeSeries(2).append(np.arange(3), np.zeros((2, 2)))


def test_panel_geometry():
    s = Surface.panel([0.05, 0, 0], [0, 1, 0], [0, 0, 1], 0.1, 0.34, name="Panel +X")

    np.testing.assert_allclose(s.normal, [1, 0, 0])
    np.testing.assert_allclose(s.center, [0.05, 0, 0])
    assert s.area == pytest.approx(0.034)


def test_surface_rejects_reflection():
    with pytest.raises(ValueError):
        Surface(np.zeros(3), 0.1, 0.1, np.diag([1.0, 1.0, -1.0]))


def test_surface_rejects_non_orthonormal():
    with pytest.raises(ValueError):
        Surface(np.zeros(3), 0.1, 0.1, 2 * np.eye(3))


def test_surface_dict_keeps_coefficients():
    s = Surface.panel([0, 0, 0.17], [1, 0, 0], [0, 1, 0], 0.1, 0.1, name="nose", sigma_t=0.6, S=0.1)
    restored = Surface.from_dict("nose", s.to_dict())

    np.testing.assert_allclose(restored.center, s.center)
    np.testing.assert_allclose(restored.normal, s.normal)
    assert (restored.sigma_t, restored.sigma_n, restored.S) == (0.6, 0.8, 0.1)
