import datetime
from functools import lru_cache

import numpy as np
import pymsis
import pyIGRF
from astropy.time import Time

from kinematics import (eci_to_geodetic, eci_to_orbital_dcm, epoch_sidereal_angle, greenwich_hour_angle,
                        ned_to_eci_dcm, quaternion_normalize, rotate_vector)


NT_TO_T = 1e-9


def atmosphere_density_static(altitude: float) -> float:
    """
    Calculate atmospheric density using a simple static exponential model.

    This model is based on tabulated values from "Fundamentals of Spacecraft
    Attitude Determination and Control" by F. Markley and John Crassidis,
    Table D.1. It is a first-order approximation valid for altitudes
    between 300 and 800 km.

    Parameters
    ----------
    altitude : float
        Altitude [m].

    Returns
    -------
    float
        Atmospheric density in kg/m^3.

    Raises
    ------
    ValueError
        If the altitude is outside the valid range of 300 to 800 km.
    """
    altitude = altitude / 1000.0

    const = {"p_0":[2.418e-11, 9.158e-12, 3.725e-12, 1.585e-12, 6.967e-13, 1.454e-13, 3.614e-14],
                "h_0":[300, 350, 400, 450, 500, 600, 700],
                "H":[52.5, 56.4, 59.4, 62.2, 65.8, 79, 109]}
    if altitude < 300 or altitude > 800:
        raise ValueError(f"Altitude {altitude} km is outside the valid range for the static atmospheric model (300-800 km).")

    # the last layer reaches up to 800 km
    i = max(j for j, h_0 in enumerate(const["h_0"]) if h_0 <= altitude)

    return const["p_0"][i] * np.exp(-(altitude - const["h_0"][i])/const["H"][i])


def atmosphere_density_msis(dt_utc: datetime.datetime, lat_deg: float, lon_deg: float, alt_m: float,
                       f107: float = 150, f107a: float = 150, ap: int = 4) -> float:
    """
    Calculate atmospheric density using the pymsis library.

    This function calls the MSIS model to get atmospheric density for a
    specific time and location.

    Parameters
    ----------
    dt_utc : datetime.datetime
        The UTC datetime for the density calculation.
    lat_deg : float
        Latitude in degrees.
    lon_deg : float
        Longitude in degrees.
    alt_m : float
        Altitude in meters.
    f107 : float, optional
        Daily F10.7 solar flux, by default 150.
    f107a : float, optional
        81-day average of F10.7 solar flux, by default 150.
    ap : int, optional
        The Ap geomagnetic index, by default 4.

    Returns
    -------
    float
        The calculated total mass density in kg/m^3.

    """
    dates = np.array([np.datetime64(dt_utc.replace(tzinfo=None), "s")])
    alt_km = alt_m / 1000.0

    result = pymsis.calculate(dates, [lon_deg], [lat_deg], [alt_km],
                              f107s=[f107], f107as=[f107a], aps=[[ap] * 7])

    return float(np.ravel(np.asarray(result)[..., 0])[0])


def decimal_year(epoch: datetime.datetime) -> float:
    return float(Time(epoch, scale="utc").decimalyear)


def magnetic_field_ned(year: float, lat_deg: float, lon_deg: float, alt_km: float) -> np.ndarray:
    """
    Earth's magnetic field in the local North-East-Down frame from the IGRF model.

    Parameters
    ----------
    year : float
        Date as decimal year.
    lat_deg : float
        Geodetic latitude in degrees.
    lon_deg : float
        Longitude in degrees.
    alt_km : float
        Altitude above the WGS84 ellipsoid in kilometers.

    Returns
    -------
    np.ndarray, shape (3,)
        [Bn, Be, Bd] in nanoTeslas [nT].
    """
    D, I, H, Bn, Be, Bd, B_tot = pyIGRF.igrf_value(lat_deg, lon_deg, alt_km, year)

    return np.array([Bn, Be, Bd], dtype=float)


class MagneticFieldModel:
    """
    Magnetic field seen by the spacecraft, expressed in the body frame.

    Position dependent IGRF lookup at a fixed date; the Earth rotation angle
    advances with the simulation time.
    """

    def __init__(self, epoch: datetime.datetime, field_ned=magnetic_field_ned):
        self.epoch = epoch
        self.year = decimal_year(epoch)
        self.gha0 = epoch_sidereal_angle(epoch)
        self.field_ned = field_ned

    def field_orbital(self, r_eci: np.ndarray, v_eci: np.ndarray, t: float) -> np.ndarray:
        """
        Magnetic field in the orbital frame [T].

        Parameters
        ----------
        r_eci : np.ndarray, shape (3,)
            Position in the ECI frame [km].
        v_eci : np.ndarray, shape (3,)
            Velocity in the ECI frame [km/s].
        t : float
            Seconds since the epoch.
        """
        gha = greenwich_hour_angle(t, self.gha0)
        lat, lon, alt = eci_to_geodetic(r_eci, gha)

        B_ned = NT_TO_T * self.field_ned(self.year, lat, lon, alt)

        C_IN = ned_to_eci_dcm(lat, lon, gha)
        C_OI = eci_to_orbital_dcm(r_eci, v_eci)

        return C_OI @ C_IN @ B_ned

    def body_frame_magnetic_field(self, r_eci: np.ndarray, v_eci: np.ndarray, q_BO: np.ndarray, t: float) -> np.ndarray:
        """
        Magnetic field in the body frame [T], `q_BO` being the orbital to body attitude quaternion.
        """
        return rotate_vector(self.field_orbital(r_eci, v_eci, t), quaternion_normalize(q_BO))


@lru_cache(maxsize=32)
def reference_density(epoch: datetime.datetime, alt_km: float, f107: float) -> float:
    """MSIS density at a fixed altitude over the equator and prime meridian at the epoch [kg/m^3]."""
    return atmosphere_density_msis(epoch, 0.0, 0.0, alt_km * 1000.0, f107=f107, f107a=f107)
