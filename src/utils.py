import datetime

import numpy as np


class Surface:
    """
    Represents a flat rectangular surface of a satellite for aerodynamic calculations.

    Attributes
    ----------
    center : np.ndarray
        Center of the surface in the body frame [m].
    normal : np.ndarray
        Unit normal vector of the surface.
    x_len : float
        Width of the surface [m].
    y_len : float
        Height of the surface [m].
    x_axis : np.ndarray
        Edge vector along the width of the surface [m].
    y_axis : np.ndarray
        Edge vector along the height of the surface [m].
    sigma_t : float
        Tangential momentum accommodation coefficient.
    sigma_n : float
        Normal momentum accommodation coefficient.
    S : float
        Ratio of the diffusely re-emitted to the incident molecular speed.
    area : float
        Area of the surface (width * height) [m^2].

    """

    def __init__(self, position: np.ndarray, x_len: float, y_len: float, R_BS: np.ndarray,
                 sigma_t: float = 0.8, sigma_n: float = 0.8, S: float = 0.05, name: str = "-"):

        self.pos = np.asarray(position, dtype=float)
        self.x_len = x_len
        self.y_len = y_len

        self.R_BS = np.asarray(R_BS, dtype=float)

        if not np.allclose(self.R_BS.T @ self.R_BS, np.eye(3), atol=1e-6):
            raise ValueError(f"Surface {name}: orientation matrix is not orthonormal.")
        if np.linalg.det(self.R_BS) < 0.0:
            raise ValueError(f"Surface {name}: orientation matrix has det < 0 (reflection), expected proper rotation.")

        self.normal = self.R_BS[:, 2]
        self.x_axis = x_len * self.R_BS[:, 0]
        self.y_axis = y_len * self.R_BS[:, 1]

        self.center = self.pos + self.x_axis / 2 + self.y_axis / 2

        self.area = self.x_len * self.y_len

        self.sigma_t = sigma_t
        self.sigma_n = sigma_n
        self.S = S
        self.name = name

    @classmethod
    def panel(cls, center, u, v, x_len: float, y_len: float, name: str = "-", **kwargs) -> "Surface":
        """
        Rectangle centered at `center` with edges along the unit vectors `u` and `v`.
        The outward normal is u x v.
        """
        u = np.asarray(u, dtype=float)
        v = np.asarray(v, dtype=float)
        R_BS = np.column_stack((u, v, np.cross(u, v)))
        position = np.asarray(center, dtype=float) - x_len / 2 * u - y_len / 2 * v

        return cls(position, x_len, y_len, R_BS, name=name, **kwargs)

    @classmethod
    def from_dict(cls, name, dict: dict):
        R_BS = np.array(dict["Rotation (Surface frame to Body)"])

        kwargs = {k: dict[k] for k in ("sigma_t", "sigma_n", "S") if k in dict}

        return cls(np.array(dict["Origin"]), dict.get("DimX", 0.1), dict.get("DimY", 0.1), R_BS, name=name, **kwargs)

    def to_dict(self):
        return {
            "Origin": self.pos.tolist(),
            "DimX": self.x_len,
            "DimY": self.y_len,
            "Rotation (Surface frame to Body)": self.R_BS.tolist(),
            "sigma_t": self.sigma_t,
            "sigma_n": self.sigma_n,
            "S": self.S,
        }


def string_to_timedelta(total_time: str) -> datetime.timedelta:
    match tuple(map(float, total_time.split(':'))):
        case (hours, minutes, seconds):
            return datetime.timedelta(hours=hours, minutes=minutes, seconds=seconds)
        case (minutes, seconds):
            return datetime.timedelta(minutes=minutes, seconds=seconds)
        case (seconds,):
            return datetime.timedelta(seconds=seconds)
    raise ValueError(f"String '{total_time}' not in format h:m:s")


class TimeSeries:
    """
    Growable buffers of time stamps and state rows.

    Capacity doubles when full, so appending stays amortized O(1) per row.
    """

    def __init__(self, n_states: int, capacity: int = 1024):
        self._times = np.empty(capacity)
        self._states = np.empty((capacity, n_states))
        self._size = 0

    def __len__(self):
        return self._size

    @property
    def capacity(self) -> int:
        return self._times.shape[0]

    def _reserve(self, n: int) -> None:
        capacity = self.capacity
        if n <= capacity:
            return

        while capacity < n:
            capacity *= 2

        times = np.empty(capacity)
        states = np.empty((capacity, self._states.shape[1]))
        times[:self._size] = self._times[:self._size]
        states[:self._size] = self._states[:self._size]
        self._times, self._states = times, states

    def append(self, times: np.ndarray, states: np.ndarray) -> None:
        """
        Parameters
        ----------
        times : np.ndarray, shape (n,)
        states : np.ndarray, shape (n, n_states)
        """
        times = np.atleast_1d(times)
        states = np.atleast_2d(states)
        if states.shape[0] != times.shape[0]:
            raise ValueError(f"TimeSeries: got {times.shape[0]} time stamps but {states.shape[0]} state rows")

        n = times.shape[0]
        self._reserve(self._size + n)
        self._times[self._size:self._size + n] = times
        self._states[self._size:self._size + n] = states
        self._size += n

    @property
    def times(self) -> np.ndarray:
        return self._times[:self._size]

    @property
    def states(self) -> np.ndarray:
        return self._states[:self._size]
