import numpy as np
import pytest

from satellite import DART_INERTIA, ConfigurationError, Spacecraft, dart_surfaces, validate_inertia


def test_dart_geometry():
    surfaces = dart_surfaces()
    assert len(surfaces) == 14
    assert len({s.name for s in surfaces}) == 14

    for s in surfaces:
        assert np.linalg.norm(s.normal) == pytest.approx(1.0)

    # closed box: body panel normals cancel
    body = [s for s in surfaces if s.name.startswith("Panel")]
    np.testing.assert_allclose(sum(s.area * s.normal for s in body), np.zeros(3), atol=1e-15)

    # fins sit behind the center of mass
    assert all(s.center[2] < 0 for s in surfaces if s.name.startswith("Fin"))


def test_body_panel_normals_point_outward():
    for s in dart_surfaces():
        if s.name.startswith("Panel"):
            assert np.dot(s.center, s.normal) > 0


def test_default_inertia():
    sat = Spacecraft.dart()
    np.testing.assert_array_equal(sat.J_B, DART_INERTIA)


@pytest.mark.parametrize("J", [
    np.eye(2),
    np.diag([0.038, -0.04, 0.0066667]),
    np.diag([0.038, 0.0, 0.0066667]),
    np.diag([0.038, np.nan, 0.0066667]),
    [[0.038, 0.001, 0.0], [0.001, 0.04, 0.0], [0.0, 0.0, 0.0066667]],
    [["a", 0, 0], [0, 1, 0], [0, 0, 1]],
])
def test_invalid_inertia(J):
    with pytest.raises(ConfigurationError):
        validate_inertia(J)


def test_configuration_error_is_value_error():
    with pytest.raises(ValueError):
        Spacecraft(np.diag([1.0, 1.0, -1.0]), dart_surfaces())


def test_from_dict_keeps_surfaces():
    sat = Spacecraft.dart(np.diag([0.05, 0.05, 0.01]))
    restored = Spacecraft.from_dict(sat.to_dict())

    np.testing.assert_allclose(restored.J_B, sat.J_B)
    assert [s.name for s in restored.surfaces] == [s.name for s in sat.surfaces]
    np.testing.assert_allclose([s.center for s in restored.surfaces], [s.center for s in sat.surfaces])


def test_from_dict_defaults_to_dart():
    sat = Spacecraft.from_dict({})
    assert len(sat.surfaces) == 14
    np.testing.assert_array_equal(sat.J_B, DART_INERTIA)
