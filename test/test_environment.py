import datetime

import numpy as np
import pytest

from environment import MagneticFieldModel, atmosphere_density_static, decimal_year, magnetic_field_ned
from kinematics import quaternion_from_axis_angle, rotate_vector


EPOCH = datetime.datetime(2015, 12, 12)


def northward_field(year, lat, lon, alt):
    return np.array([1e4, 0.0, 0.0])


def test_static_density_at_layer_base():
    assert atmosphere_density_static(500e3) == pytest.approx(6.967e-13)


def test_static_density_decreases_with_altitude():
    rho = [atmosphere_density_static(h * 1e3) for h in (320, 480, 520, 650, 790)]
    assert all(a > b for a, b in zip(rho, rho[1:]))


@pytest.mark.parametrize("altitude", [250e3, 850e3])
def test_static_density_out_of_range(altitude):
    with pytest.raises(ValueError):
        atmosphere_density_static(altitude)


def test_decimal_year():
    assert decimal_year(EPOCH) == pytest.approx(2015 + 345 / 365, abs=1e-6)


def test_igrf_magnitude_in_leo():
    B = magnetic_field_ned(2015.95, 0.0, 0.0, 500.0)
    assert B.shape == (3,)
    assert 15000 < np.linalg.norm(B) < 65000


def test_field_orbital_frame_projection():
    model = MagneticFieldModel(EPOCH, field_ned=northward_field)
    model.gha0 = 0.0

    # on the equator below the prime meridian, north is the ECI z axis
    B = model.field_orbital(np.array([6878.0, 0.0, 0.0]), np.array([0.0, 5.38, 5.38]), 0.0)
    np.testing.assert_allclose(B, 1e-5 * np.array([np.sqrt(0.5), -np.sqrt(0.5), 0.0]), atol=1e-15)


def test_body_frame_field_follows_attitude():
    model = MagneticFieldModel(EPOCH, field_ned=northward_field)
    r, v = np.array([6878.0, 0.0, 0.0]), np.array([0.0, 5.38, 5.38])
    q = quaternion_from_axis_angle([0.3, -1.0, 0.2], 57.0)

    B_orb = model.field_orbital(r, v, 120.0)
    np.testing.assert_allclose(model.body_frame_magnetic_field(r, v, q, 120.0), rotate_vector(B_orb, q))
    # unnormalized attitude quaternion is tolerated
    np.testing.assert_allclose(model.body_frame_magnetic_field(r, v, 3 * q, 120.0), rotate_vector(B_orb, q))
    assert np.linalg.norm(B_orb) == pytest.approx(1e-5)


def test_field_changes_with_earth_rotation():
    calls = []

    def recording_field(year, lat, lon, alt):
        calls.append(lon)
        return np.array([2e4, 3e3, 4e4])

    model = MagneticFieldModel(EPOCH, field_ned=recording_field)
    r, v = np.array([6878.0, 0.0, 0.0]), np.array([0.0, 5.38, 5.38])
    model.field_orbital(r, v, 0.0)
    model.field_orbital(r, v, 3600.0)

    # the ground track moves west by about 15 deg per hour
    assert ((calls[0] - calls[1]) % 360) == pytest.approx(15.04, abs=0.01)
