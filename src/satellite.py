import numpy as np

from dynamics import attitude_dynamics
from utils import Surface


class ConfigurationError(ValueError):
    """Invalid simulation input detected before the integration starts."""


# 3U body along the body z axis, fins swept back at the -z end
BODY_WIDTH = 0.1  # [m]
BODY_LENGTH = 0.34  # [m]
FIN_SPAN = 0.15  # [m]
FIN_CHORD = 0.1  # [m]

DART_INERTIA = np.diag([0.038, 0.04, 0.0066667])  # [kg*m^2]


def dart_surfaces() -> list[Surface]:
    """
    Panels of the dart spacecraft in the body frame. The long axis is +z,
    four fins extend radially at the rear so the center of pressure lies
    behind the center of mass (origin).
    """
    w, l = BODY_WIDTH / 2, BODY_LENGTH / 2
    ex, ey, ez = np.eye(3)

    surfaces = [
        Surface.panel([0, 0, l], ex, ey, BODY_WIDTH, BODY_WIDTH, name="Panel +Z"),
        Surface.panel([0, 0, -l], ey, ex, BODY_WIDTH, BODY_WIDTH, name="Panel -Z"),
        Surface.panel([w, 0, 0], ey, ez, BODY_WIDTH, BODY_LENGTH, name="Panel +X"),
        Surface.panel([-w, 0, 0], ez, ey, BODY_LENGTH, BODY_WIDTH, name="Panel -X"),
        Surface.panel([0, w, 0], ez, ex, BODY_LENGTH, BODY_WIDTH, name="Panel +Y"),
        Surface.panel([0, -w, 0], ex, ez, BODY_WIDTH, BODY_LENGTH, name="Panel -Y"),
    ]

    z_fin = -l + FIN_CHORD / 2
    r_fin = w + FIN_SPAN / 2
    for sign, label in ((1, "+"), (-1, "-")):
        # fins in the x-z plane, both faces
        surfaces.append(Surface.panel([sign * r_fin, 0, z_fin], ez, ex, FIN_CHORD, FIN_SPAN, name=f"Fin {label}X +Y"))
        surfaces.append(Surface.panel([sign * r_fin, 0, z_fin], ex, ez, FIN_SPAN, FIN_CHORD, name=f"Fin {label}X -Y"))
        # fins in the y-z plane, both faces
        surfaces.append(Surface.panel([0, sign * r_fin, z_fin], ey, ez, FIN_SPAN, FIN_CHORD, name=f"Fin {label}Y +X"))
        surfaces.append(Surface.panel([0, sign * r_fin, z_fin], ez, ey, FIN_CHORD, FIN_SPAN, name=f"Fin {label}Y -X"))

    return surfaces


def validate_inertia(J_B) -> np.ndarray:
    """
    Checks that the inertia tensor is a finite, diagonal 3x3 matrix with positive entries.

    Raises
    ------
    ConfigurationError
        If any of the checks fails.
    """
    try:
        J_B = np.asarray(J_B, dtype=float)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Inertia tensor is not numeric: {e}") from e

    if J_B.shape != (3, 3):
        raise ConfigurationError(f"Inertia tensor must be 3x3, got shape {J_B.shape}")
    if not np.all(np.isfinite(J_B)):
        raise ConfigurationError("Inertia tensor contains non-finite values")
    if np.any(J_B[~np.eye(3, dtype=bool)] != 0):
        raise ConfigurationError("Inertia tensor must be diagonal (principal axes body frame)")
    if np.any(np.diag(J_B) <= 0):
        raise ConfigurationError(f"Inertia tensor diagonal must be positive, got {np.diag(J_B)}")

    return J_B


class Spacecraft:
    """
    A class holding the physical parameters of the satellite. The state is managed externally.
    """

    def __init__(self, J_B, surfaces: list[Surface]) -> None:
        """
        Initialize the Spacecraft object.

        Parameters
        ----------
        J_B : np.ndarray
            Inertia tensor of the satellite in the body frame [kg*m^2].
        surfaces : list[Surface]
            List of surface elements defining the satellite geometry.
        """
        self.J_B = validate_inertia(J_B)
        self.surfaces = surfaces

    @classmethod
    def dart(cls, J_B=None) -> "Spacecraft":
        """The dart CubeSat, optionally with a different inertia tensor."""
        return cls(DART_INERTIA if J_B is None else J_B, dart_surfaces())

    @classmethod
    def from_dict(cls, data: dict) -> "Spacecraft":
        """
        Creates a Spacecraft instance from the "Spacecraft" section of a scenario file.

        Parameters
        ----------
        data : dict
            {"MomentOfInertia": 3x3 nested list, "Surfaces": {name: surface dict}}. Both keys are optional.

        Returns
        -------
        Spacecraft
            An initialized Spacecraft instance.
        """
        J_B = data.get("MomentOfInertia", DART_INERTIA)

        if "Surfaces" in data:
            surfaces = [Surface.from_dict(k, v) for k, v in data["Surfaces"].items()]
        else:
            surfaces = dart_surfaces()

        return cls(J_B, surfaces)

    def to_dict(self) -> dict:
        return {
            "MomentOfInertia": self.J_B.tolist(),
            "Surfaces": {s.name: s.to_dict() for s in self.surfaces},
        }

    def attitude_dynamics(self, torque: np.ndarray, omega: np.ndarray) -> np.ndarray:
        """
        Computes the attitude dynamics (angular acceleration) of the spacecraft.

        Parameters
        ----------
        torque : np.ndarray
            Net torque vector in the body frame [N*m].
        omega : np.ndarray
            Angular velocity vector in the body frame [rad/s].

        Returns
        -------
        np.ndarray
            Angular acceleration vector in the body frame [rad/s^2].
        """
        return attitude_dynamics(torque, omega, self.J_B)
