from abc import ABC, abstractmethod

import numpy as np


class Controller(ABC):
    """
    Abstract base class for magnetic attitude controllers.

    A controller commands a magnetic dipole moment from the body frame magnetic
    field and angular velocity; the magnetorquers turn it into a torque m x B.
    """
    def __init__(self) -> None:
        self.max_dipole = np.inf

    @abstractmethod
    def to_dict(self) -> dict:
        """
        Converts the controller to a dictionary.

        Returns
        -------
        dict
            Dictionary representation of the controller.
        """
        raise NotImplementedError()

    def update_actuator_limits(self, max_dipole: float) -> None:
        """
        Updates the magnitude limit of the commanded dipole moment [A*m^2].
        """
        if max_dipole <= 0:
            raise ValueError("Dipole limit must be positive.")
        self.max_dipole = float(max_dipole)

    @abstractmethod
    def calc_dipole(self, B_body: np.ndarray, omega: np.ndarray) -> np.ndarray:
        """
        Calculates the commanded dipole moment.

        Parameters
        ----------
        B_body : np.ndarray, shape (3,)
            Magnetic field in the body frame [T].
        omega : np.ndarray, shape (3,)
            Angular velocity in the body frame [rad/s].

        Returns
        -------
        np.ndarray, shape (3,)
            Dipole moment [A*m^2].
        """
        raise NotImplementedError()

    def torque(self, B_body: np.ndarray, omega: np.ndarray) -> np.ndarray:
        """
        Control torque m x B in the body frame [N*m].
        """
        m = self.calc_dipole(B_body, omega)

        n = np.linalg.norm(m)
        if n > self.max_dipole:
            m = m * self.max_dipole / n

        return np.cross(m, B_body)


class ZeroInputs(Controller):
    """
    A controller that always outputs a zero dipole.
    """
    def __init__(self, *args, **kwargs) -> None:
        super().__init__()

    def to_dict(self) -> dict:
        return {"Type": "ZeroInputs"}

    def calc_dipole(self, B_body: np.ndarray, omega: np.ndarray) -> np.ndarray:
        return np.zeros(3)


class BDot(Controller):
    """
    B-dot rate damping.

    The field rate seen from the body is approximated from the rotation only,
    B_dot = B x omega, and the dipole m = k * B_dot with a negative gain k opposes it.
    The resulting torque m x B satisfies tau . omega <= 0; no attitude is targeted.
    """

    def __init__(self, gain: float = -1e4) -> None:
        super().__init__()
        if not gain < 0:
            raise ValueError(f"B-dot gain must be negative, got {gain}")
        self.gain = float(gain)

    def to_dict(self) -> dict:
        max_dipole = None if np.isinf(self.max_dipole) else self.max_dipole
        return {"Type": "BDot", "Gain": self.gain, "MaxDipole": max_dipole}

    def calc_dipole(self, B_body: np.ndarray, omega: np.ndarray) -> np.ndarray:
        b_dot = np.cross(B_body, omega)
        return self.gain * b_dot
