import numpy as np
import pytest

from dynamics import (MU, attitude_dynamics, orbit_dynamics, orbital_period, rotational_energy, specific_angular_momentum,
                      specific_energy)
from satellite import DART_INERTIA


def test_gravity_points_to_earth_center():
    r = np.array([6878.0, 100.0, -50.0])
    a = orbit_dynamics(r)
    assert np.linalg.norm(a) == pytest.approx(MU / np.dot(r, r))
    np.testing.assert_allclose(a / np.linalg.norm(a), -r / np.linalg.norm(r))


def test_circular_orbit_period():
    assert orbital_period(6878.0) == pytest.approx(5676.8, abs=0.1)


def test_specific_energy_circular_orbit():
    r = np.array([6878.0, 0.0, 0.0])
    v = np.array([0.0, 1.0, 1.0]) * np.sqrt(MU / 6878.0 / 2)
    assert specific_energy(r, v) == pytest.approx(-MU / (2 * 6878.0))
    assert specific_angular_momentum(r, v) == pytest.approx(np.sqrt(MU * 6878.0))


def test_pure_torque_from_rest():
    tau = np.array([1e-6, -2e-6, 3e-7])
    np.testing.assert_allclose(attitude_dynamics(tau, np.zeros(3), DART_INERTIA), tau / np.diag(DART_INERTIA))


def test_spin_about_principal_axis_is_steady():
    np.testing.assert_allclose(attitude_dynamics(np.zeros(3), np.array([0.0, 0.3, 0.0]), DART_INERTIA), np.zeros(3),
                               atol=1e-18)


def test_euler_equations():
    J = DART_INERTIA
    w = np.array([0.1, 0.25, 0.03])
    tau = np.array([1e-7, 2e-7, -5e-8])

    w_dot = attitude_dynamics(tau, w, J)

    np.testing.assert_allclose(J @ w_dot + np.cross(w, J @ w), tau, atol=1e-18)


def test_torque_free_motion_conserves_energy_and_momentum():
    J = DART_INERTIA
    w = np.array([0.1, 0.25, 0.03])
    w_dot = attitude_dynamics(np.zeros(3), w, J)

    # d/dt (w.Jw / 2) and d/dt |Jw|^2 / 2 in the body frame
    assert np.dot(w, J @ w_dot) == pytest.approx(0.0, abs=1e-18)
    assert np.dot(J @ w, J @ w_dot) == pytest.approx(0.0, abs=1e-18)


def test_rotational_energy():
    assert rotational_energy(np.array([0.1, 0.25, 0.03]), DART_INERTIA) == pytest.approx(
        0.5 * (0.038 * 0.01 + 0.04 * 0.0625 + 0.0066667 * 0.0009))
