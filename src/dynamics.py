import numpy as np


MU = 398600.0  # gravitational parameter of the earth [km^3/s^2]


def orbit_dynamics(r: np.ndarray) -> np.ndarray:
    """
    Compute orbital acceleration of the center of mass of the satellite from two-body gravity.

    Parameters
    ----------
    r : np.ndarray, shape (3,)
        Position vector in the ECI frame [km].

    Returns
    -------
    np.ndarray, shape (3,)
        Acceleration vector (d^2r/dt^2) in the ECI frame [km/s^2].
    """
    r_norm = np.linalg.norm(r)
    return - (MU/r_norm**3) * r


def attitude_dynamics(torque: np.ndarray, omega: np.ndarray, J_B: np.ndarray) -> np.ndarray:
    """
    Compute the spacecrafts angular acceleration (omega_dot) from Euler's rotational dynamics.

    Parameters
    ----------
    torque : np.ndarray, shape (3,)
        Net external torque in the body frame [N*m].
    omega : np.ndarray, shape (3,)
        Angular velocity in body frame [wx, wy, wz] [rad/s].
    J_B : np.ndarray, shape (3, 3)
        Inertia tensor of the satellite in the body frame [kg*m^2].

    Returns
    -------
    np.ndarray, shape (3,)
        Angular acceleration in body frame [rad/s^2].
    """
    cross_term = np.cross(omega, J_B @ omega)
    return np.linalg.solve(J_B, torque - cross_term)


def orbital_period(radius: float) -> float:
    """Period of a circular orbit of the given radius [km] in seconds."""
    return 2 * np.pi * np.sqrt(radius**3 / MU)


def specific_energy(r: np.ndarray, v: np.ndarray) -> float:
    """Orbital specific energy [km^2/s^2]."""
    return float(0.5 * np.dot(v, v) - MU / np.linalg.norm(r))


def specific_angular_momentum(r: np.ndarray, v: np.ndarray) -> float:
    """Magnitude of the orbital specific angular momentum [km^2/s]."""
    return float(np.linalg.norm(np.cross(r, v)))


def rotational_energy(omega: np.ndarray, J_B: np.ndarray) -> float:
    return float(0.5 * omega @ J_B @ omega)
