import json

import numpy as np
import pytest

from controllers import BDot, ZeroInputs


B = np.array([2e-5, -1e-5, 3e-5])
OMEGA = np.array([0.1, 0.25, 0.03])


def test_bdot_dipole():
    ctrl = BDot(-1e4)
    np.testing.assert_allclose(ctrl.calc_dipole(B, OMEGA), -1e4 * np.cross(B, OMEGA))


def test_bdot_torque_removes_energy():
    ctrl = BDot(-1e4)
    rng = np.random.default_rng(0)
    for _ in range(50):
        b = rng.normal(scale=3e-5, size=3)
        w = rng.normal(scale=0.2, size=3)
        tau = ctrl.torque(b, w)
        assert np.dot(tau, w) <= 0
        # torque is perpendicular to the field
        assert np.dot(tau, b) == pytest.approx(0.0, abs=1e-24)


def test_bdot_no_field_no_torque():
    np.testing.assert_array_equal(BDot().torque(np.zeros(3), OMEGA), np.zeros(3))


def test_bdot_rotation_about_field_is_uncontrollable():
    np.testing.assert_allclose(BDot().torque(B, 4.0 * B), np.zeros(3), atol=1e-30)


@pytest.mark.parametrize("gain", [0.0, 1e4])
def test_bdot_rejects_non_negative_gain(gain):
    with pytest.raises(ValueError):
        BDot(gain)


def test_dipole_saturation():
    ctrl = BDot(-1e4)
    ctrl.update_actuator_limits(0.01)

    m = ctrl.calc_dipole(B, OMEGA)
    assert np.linalg.norm(m) > 0.01

    tau = ctrl.torque(B, OMEGA)
    np.testing.assert_allclose(tau, np.cross(0.01 * m / np.linalg.norm(m), B))
    assert np.dot(tau, OMEGA) < 0


def test_dipole_limit_must_be_positive():
    with pytest.raises(ValueError):
        BDot().update_actuator_limits(0.0)


def test_zero_inputs():
    ctrl = ZeroInputs()
    np.testing.assert_array_equal(ctrl.torque(B, OMEGA), np.zeros(3))
    assert ctrl.to_dict() == {"Type": "ZeroInputs"}


def test_bdot_to_dict():
    assert BDot(-500.0).to_dict()["Gain"] == -500.0


def test_bdot_to_dict_is_json_safe():
    ctrl = BDot(-1e4)
    assert json.loads(json.dumps(ctrl.to_dict(), allow_nan=False))["MaxDipole"] is None

    ctrl.update_actuator_limits(0.2)
    assert ctrl.to_dict()["MaxDipole"] == 0.2
