import datetime
from typing import Callable, List

import numpy as np

from environment import reference_density
from kinematics import quaternion_normalize, rotate_vector
from utils import Surface


def aerodynamic_drag(v_rel_B: np.ndarray, surfaces: List[Surface], rho: float) -> tuple[np.ndarray, np.ndarray]:
    """
    Calculates the aerodynamic drag force and torque on the satellite.

    This function iterates through the satellite's surfaces to compute the total
    aerodynamic force and torque based on a simplified impact model.

    Parameters
    ----------
    v_rel_B : np.ndarray, shape (3,)
        Velocity of the satellite relative to the atmosphere in the body frame [m/s].
    surfaces : List[Surface]
        A list of Surface objects representing the satellite's geometry.
    rho : float
        Atmospheric density at the satellite's position [kg/m^3].

    Returns
    -------
    tuple[np.ndarray, np.ndarray]
        A tuple containing the total aerodynamic force [N] and torque [N*m] vectors in the body frame.
    """
    F = np.zeros(3)
    tau = np.zeros(3)

    v_rel_B_norm = np.linalg.norm(v_rel_B)
    if v_rel_B_norm == 0:
        return F, tau

    v_rel_B_unit = v_rel_B / v_rel_B_norm

    for s in surfaces:
        cos_theta_i = np.dot(v_rel_B_unit, s.normal)

        if cos_theta_i < 0:
            continue

        F_i = -rho * v_rel_B_norm**2 * s.area * cos_theta_i * (s.sigma_t * v_rel_B_unit +
                                                            (s.sigma_n * s.S + (2 - s.sigma_n - s.sigma_t) * cos_theta_i) * s.normal)
        tau += np.cross(s.center, F_i)
        F += F_i

    return F, tau


class AerodynamicModel:
    """
    Aerodynamic force and torque on the spacecraft in the orbital flow.

    The spacecraft flies along the orbital x axis; the relative velocity is
    rotated into the body frame with the attitude quaternion. The returned
    force and torque are those the body exerts on the flow, the negatives of
    the force and torque acting on the spacecraft, so a caller forms the net
    torque on the spacecraft as control torque minus aerodynamic torque.
    """

    def __init__(self, surfaces: List[Surface], epoch: datetime.datetime,
                 density: Callable[[float, float], float] | None = None):
        """
        Parameters
        ----------
        surfaces : List[Surface]
            Panels of the spacecraft geometry in the body frame.
        epoch : datetime.datetime
            Date used for the density lookup.
        density : Callable[[float, float], float] | None
            density(altitude_km, f107) -> kg/m^3. Defaults to MSIS at the epoch.
        """
        self.surfaces = surfaces
        self.epoch = epoch
        if density is None:
            density = lambda alt_km, f107: reference_density(self.epoch, float(alt_km), float(f107))
        self.density = density

    def __call__(self, altitude_km: float, q_BO: np.ndarray, f107: float, speed: float) -> tuple[np.ndarray, np.ndarray]:
        """
        Parameters
        ----------
        altitude_km : float
            Altitude [km].
        q_BO : np.ndarray, shape (4,)
            Attitude quaternion, orbital to body frame.
        f107 : float
            F10.7 solar flux level of the density model.
        speed : float
            Orbital speed [km/s].

        Returns
        -------
        tuple[np.ndarray, np.ndarray]
            Drag force [N] and aerodynamic torque [N*m] in the body frame, in the reaction convention above.
        """
        rho = self.density(altitude_km, f107)
        v_rel_B = rotate_vector(np.array([1000.0 * speed, 0.0, 0.0]), quaternion_normalize(q_BO))

        F, tau = aerodynamic_drag(v_rel_B, self.surfaces, rho)

        return -F, -tau
