import datetime

import numpy as np
import pymap3d
from astropy.time import Time
from astropy.utils import iers


# rad/s earth rotates about the z axis of the eci frame
OMEGA_E = 0.000_072_921_158_553

WGS84 = pymap3d.Ellipsoid.from_name("wgs84")


def quaternion_normalize(q: np.ndarray) -> np.ndarray:
    """
    Scale a quaternion to unit norm.

    Raises
    ------
    ValueError
        If the norm is zero or not finite.
    """
    q = np.asarray(q, dtype=float)
    qn = np.linalg.norm(q)
    if qn == 0 or not np.isfinite(qn):
        raise ValueError("Quaternion norm is zero or not finite.")
    return q / qn


def quaternion_from_axis_angle(axis: np.ndarray, angle_deg: float) -> np.ndarray:
    """
    Build the unit quaternion [q0, q1, q2, q3] (scalar first) for a rotation of
    `angle_deg` degrees about `axis`.

    Parameters
    ----------
    axis : np.ndarray, shape (3,)
        Rotation axis, does not have to be normalized.
    angle_deg : float
        Rotation angle [deg].

    Returns
    -------
    np.ndarray, shape (4,)
        Unit quaternion.
    """
    axis = np.asarray(axis, dtype=float).reshape(3)
    norm = np.linalg.norm(axis)
    if norm == 0.0:
        raise ValueError("Rotation axis must be non-zero!")

    half = np.deg2rad(angle_deg) / 2
    return np.concatenate(([np.cos(half)], np.sin(half) * axis / norm))


def quaternion_product(qa: np.ndarray, qb: np.ndarray) -> np.ndarray:
    """Hamilton product qa (x) qb, scalar first."""
    q_ret = np.empty(4)

    q_ret[0] = qa[0]*qb[0] - np.dot(qa[1:], qb[1:])
    q_ret[1:] = qa[0]*qb[1:] + qb[0]*qa[1:] + np.cross(qa[1:], qb[1:])

    return q_ret


def quaternion_inverse(q: np.ndarray) -> np.ndarray:
    """Conjugate over squared norm. For a unit quaternion this is the conjugate."""
    q = np.asarray(q, dtype=float)
    return np.concatenate(([q[0]], -q[1:])) / np.dot(q, q)


def rotate_vector(v: np.ndarray, q: np.ndarray) -> np.ndarray:
    """
    Express a vector given in the reference frame in the frame rotated by `q`.

    Uses the sandwich product q^-1 (x) [0, v] (x) q. With the attitude
    quaternion (orbital to body) this maps orbital frame coordinates to body
    frame coordinates; `rotate_vector(v, quaternion_inverse(q))` maps back.

    Parameters
    ----------
    v : np.ndarray, shape (3,)
        Vector in the reference frame.
    q : np.ndarray, shape (4,)
        Rotation quaternion, scalar first.

    Returns
    -------
    np.ndarray, shape (3,)
        The vector in the rotated frame.
    """
    v_quat = np.concatenate(([0.0], v))
    return quaternion_product(quaternion_product(quaternion_inverse(q), v_quat), q)[1:]


def relative_rotation(q_from: np.ndarray, q_to: np.ndarray) -> np.ndarray:
    """
    Quaternion q_rel with q_from (x) q_rel = q_to.

    If `q_from` is the orientation of a new reference frame relative to the old
    one and `q_to` the attitude relative to the old frame, q_rel is the same
    attitude relative to the new frame.
    """
    return quaternion_product(quaternion_inverse(q_from), q_to)


def quaternion_kinematics(q: np.ndarray, omega: np.ndarray) -> np.ndarray:
    """
    Compute the derivative of the quaternion. Using the scalar first convention: q = [q0, q1, q2, q3]

    Parameters
    ----------
    q : np.ndarray, shape (4,)
        Current attitude quaternion (orbital to body) [q0, q1, q2, q3].
    omega : np.ndarray, shape (3,)
        Angular velocity of the body frame represented in the body frame [wx, wy, wz] [rad/s].

    Returns
    -------
    np.ndarray, shape (4,)
        The time derivative of the quaternion (dq/dt).
    """
    q_ret = np.empty(4)

    q_ret[0] = -0.5 * np.dot(q[1:], omega)
    q_ret[1:] = 0.5 * (q[0] * omega + np.cross(q[1:], omega))

    return q_ret


def eci_to_orbital_dcm(r: np.ndarray, v: np.ndarray) -> np.ndarray:
    """
    Calculates the direction cosine matrix from the Earth-Centered Inertial (ECI) frame to the orbital frame.

    The orbital frame axes are z towards nadir, y along the negative orbit normal
    and x completing the right handed set (along track for a circular orbit).

    Parameters
    ----------
    r : np.ndarray, shape (3,)
        Position vector in the ECI frame.
    v : np.ndarray, shape (3,)
        Velocity vector in the ECI frame.

    Returns
    -------
    np.ndarray, shape (3, 3)
        C_OI with v_orbital = C_OI @ v_eci. Rows are the orbital axes in ECI.
    """
    r_norm = np.linalg.norm(r)
    h = np.cross(v, r)
    h_norm = np.linalg.norm(h)
    if r_norm == 0 or h_norm == 0:
        raise ValueError("Orbital frame undefined for zero or parallel position and velocity.")

    o_3 = - r / r_norm
    o_2 = h / h_norm
    o_1 = np.cross(o_2, o_3)

    return np.array([o_1, o_2, o_3])


def ned_to_eci_dcm(lat_deg: float, lon_deg: float, gha: float) -> np.ndarray:
    """
    Direction cosine matrix from the local North-East-Down frame to ECI.

    Parameters
    ----------
    lat_deg : float
        Geodetic latitude [deg].
    lon_deg : float
        Longitude [deg].
    gha : float
        Greenwich hour angle [rad].

    Returns
    -------
    np.ndarray, shape (3, 3)
        C_IN, columns are the north, east and down unit vectors in ECI.
    """
    lat = np.deg2rad(lat_deg)
    lon = np.deg2rad(lon_deg) + gha

    north = np.array([-np.sin(lat) * np.cos(lon), -np.sin(lat) * np.sin(lon), np.cos(lat)])
    east = np.array([-np.sin(lon), np.cos(lon), 0.0])
    down = np.array([-np.cos(lat) * np.cos(lon), -np.cos(lat) * np.sin(lon), -np.sin(lat)])

    return np.column_stack((north, east, down))


def epoch_sidereal_angle(epoch: datetime.datetime) -> float:
    """
    Greenwich mean sidereal angle at the epoch [rad].

    Uses the bundled earth orientation table only, no download.
    """
    with iers.conf.set_temp("auto_download", False), iers.conf.set_temp("iers_degraded_accuracy", "warn"):
        gmst = Time(epoch, scale="utc").sidereal_time("mean", "greenwich")

    return float(gmst.rad)


def greenwich_hour_angle(t: float, gha0: float = 0.0) -> float:
    """
    Greenwich hour angle [rad] `t` seconds after the epoch, `gha0` being its value at the epoch.
    """
    return float((gha0 + OMEGA_E * t) % (2 * np.pi))


def eci_to_geodetic(pos_eci: np.ndarray, gha: float) -> tuple[float, float, float]:
    """
    pos_eci [x, y, z] in km,
    return deg, deg, km
    """
    c, s = np.cos(gha), np.sin(gha)
    x, y, z = 1000.0 * np.asarray(pos_eci, dtype=float)
    x_ecef = c * x + s * y
    y_ecef = -s * x + c * y

    lat, lon, alt = pymap3d.ecef2geodetic(x_ecef, y_ecef, z, WGS84, deg=True)

    return float(lat), float(lon), float(alt) / 1000.0
