import json
import logging

import numpy as np
from scipy.integrate import solve_ivp
from tqdm import tqdm

from controllers import BDot, Controller, ZeroInputs
from disturbances import AerodynamicModel
from dynamics import orbit_dynamics, orbital_period, rotational_energy
from environment import MagneticFieldModel, atmosphere_density_static
from kinematics import (quaternion_from_axis_angle, quaternion_inverse, quaternion_kinematics, quaternion_normalize,
                        relative_rotation, rotate_vector)
from satellite import Spacecraft
from scenario import SimulationConfig
from utils import TimeSeries


logger = logging.getLogger(__name__)

N_STATES = 13

# state layout: [r_eci (km), v_eci (km/s), q_BO (scalar first), omega_B (rad/s)]
R_SLICE = slice(0, 3)
V_SLICE = slice(3, 6)
Q_SLICE = slice(6, 10)
OMEGA_SLICE = slice(10, 13)

ORBIT_ROTATION_AXIS = np.array([0.0, -1.0, 0.0])  # orbital frame -y


class PropagationError(RuntimeError):
    """
    The propagation could not be completed. `result` holds the samples collected before the failure.
    """

    def __init__(self, message: str, result: "SimulationResult | None" = None):
        super().__init__(message)
        self.result = result


class CoupledDynamics:
    """
    State derivative of the coupled orbit and attitude motion, f(t, x) -> dx/dt.

    Holds only fixed configuration (spacecraft, environment models, controller and
    aerodynamic constants); time and state are explicit arguments.
    """

    def __init__(self, sat: Spacecraft, controller: Controller, mag_model: MagneticFieldModel | None = None,
                 aero_model: AerodynamicModel | None = None, aero_altitude_km: float = 500.0, f107: float = 135.0):
        self.sat = sat
        self.controller = controller
        self.mag_model = mag_model
        self.aero_model = aero_model
        self.aero_altitude_km = aero_altitude_km
        self.f107 = f107

    def torques(self, t: float, x: np.ndarray) -> dict:
        """
        Transient quantities of one derivative evaluation.

        Parameters
        ----------
        t : float
            Seconds since the epoch.
        x : np.ndarray, shape (13,)
            Full state.

        Returns
        -------
        dict
            "B_body" [T], "control" [N*m], "aero" [N*m], "net" [N*m] and "H" angular momentum [N*m*s],
            all in the body frame.
        """
        r_eci = x[R_SLICE]
        v_eci = x[V_SLICE]
        q_BO = quaternion_normalize(x[Q_SLICE])
        omega = x[OMEGA_SLICE]

        if self.mag_model is None:
            B_body = np.zeros(3)
        else:
            B_body = self.mag_model.body_frame_magnetic_field(r_eci, v_eci, q_BO, t)

        tau_ctrl = self.controller.torque(B_body, omega)

        if self.aero_model is None:
            tau_aero = np.zeros(3)
        else:
            _, tau_aero = self.aero_model(self.aero_altitude_km, q_BO, self.f107, np.linalg.norm(v_eci))

        return {
            "B_body": B_body,
            "control": tau_ctrl,
            "aero": tau_aero,
            "net": tau_ctrl - tau_aero,
            "H": self.sat.J_B @ omega,
        }

    def attitude_rates(self, t: float, x: np.ndarray) -> np.ndarray:
        """
        Derivative of the attitude block [q_BO, omega_B], shape (7,).
        """
        q_BO = quaternion_normalize(x[Q_SLICE])
        omega = x[OMEGA_SLICE]

        torque = self.torques(t, x)["net"]

        d_q = quaternion_kinematics(q_BO, omega)
        d_omega = self.sat.attitude_dynamics(torque, omega)

        return np.concatenate((d_q, d_omega))

    def __call__(self, t: float, x: np.ndarray) -> np.ndarray:
        d_r = x[V_SLICE]
        d_v = orbit_dynamics(x[R_SLICE])

        return np.concatenate((d_r, d_v, self.attitude_rates(t, x)))


def orbit_rotation_quaternion(radius: float, increment: float) -> np.ndarray:
    """
    Orientation of the orbital frame after `increment` seconds relative to the orbital frame
    before, for a circular orbit of the given radius [km].
    """
    angle_change = increment / orbital_period(radius) * 360
    return quaternion_from_axis_angle(ORBIT_ROTATION_AXIS, angle_change)


def rebase_attitude(x: np.ndarray, increment: float) -> np.ndarray:
    """
    Re-express the attitude quaternion relative to the orbital frame that has rotated
    during the last `increment` seconds. Position, velocity and angular velocity are unchanged.
    """
    x = np.array(x, dtype=float)
    q_rot = orbit_rotation_quaternion(np.linalg.norm(x[R_SLICE]), increment)
    x[Q_SLICE] = quaternion_normalize(relative_rotation(q_rot, quaternion_normalize(x[Q_SLICE])))
    return x


def normalize_quaternions(states: np.ndarray) -> np.ndarray:
    states = np.array(states, dtype=float)
    q = states[:, Q_SLICE]
    qn = np.linalg.norm(q, axis=1, keepdims=True)
    if np.any(qn == 0) or not np.all(np.isfinite(qn)):
        raise ValueError("Quaternion norm became zero.")
    states[:, Q_SLICE] = q / qn
    return states


class SimulationResult:
    """
    Time series of a propagation run. Rows follow the state layout of the module.
    """

    def __init__(self, times: np.ndarray, states: np.ndarray, J_B: np.ndarray):
        self.times = times
        self.states = states
        self.J_B = J_B

    def __len__(self):
        return len(self.times)

    @property
    def positions(self) -> np.ndarray:
        return self.states[:, R_SLICE]

    @property
    def velocities(self) -> np.ndarray:
        return self.states[:, V_SLICE]

    @property
    def quaternions(self) -> np.ndarray:
        return self.states[:, Q_SLICE]

    @property
    def angular_velocity(self) -> np.ndarray:
        return self.states[:, OMEGA_SLICE]

    @property
    def angular_velocity_rpm(self) -> np.ndarray:
        return 60 * self.angular_velocity / (2 * np.pi)

    def long_axis_orbital(self) -> np.ndarray:
        """Body +z axis expressed in the orbital frame for every sample, shape (n, 3)."""
        z_B = np.array([0.0, 0.0, 1.0])
        return np.array([rotate_vector(z_B, quaternion_inverse(q)) for q in self.quaternions])

    def pointing_error_deg(self) -> np.ndarray:
        """
        Angle between the long axis and the orbital x axis, scaled by the largest x component
        reached during the run [deg]. Without any forward pointing sample there is nothing to
        scale by and the plain angle is returned.
        """
        x = self.long_axis_orbital()[:, 0]
        x_max = np.max(x)
        if x_max > 0:
            x = x / x_max
        return np.degrees(np.arccos(np.clip(x, -1.0, 1.0)))

    def summary(self) -> dict:
        omega = self.angular_velocity
        return {
            "final_time": float(self.times[-1]),
            "samples": len(self),
            "omega_initial": float(np.linalg.norm(omega[0])),
            "omega_final": float(np.linalg.norm(omega[-1])),
            "rotational_energy_initial": rotational_energy(omega[0], self.J_B),
            "rotational_energy_final": rotational_energy(omega[-1], self.J_B),
            "max_quaternion_norm_error": float(np.max(np.abs(np.linalg.norm(self.quaternions, axis=1) - 1))),
        }


def load_scenario(path: str) -> tuple[SimulationConfig, Spacecraft]:
    """
    Reads a scenario file into the run configuration and the spacecraft model.
    """
    with open(path, "r") as f:
        data = json.load(f)

    config = SimulationConfig.from_dict(data)
    sat = Spacecraft.from_dict({**data.get("Spacecraft", {}), "MomentOfInertia": config.inertia})

    return config, sat


class Simulation:
    def __init__(self, config: SimulationConfig, sat: Spacecraft | None = None,
                 field_ned=None, density=None):
        """
        Parameters
        ----------
        config : SimulationConfig
            Run configuration, validated here.
        sat : Spacecraft | None
            Spacecraft model. Defaults to the dart geometry with the configured inertia.
        field_ned : callable | None
            Replacement for the IGRF lookup, field_ned(year, lat, lon, alt_km) -> nT.
        density : callable | None
            Replacement for the configured density model, density(alt_km, f107) -> kg/m^3.
        """
        self.config = config.validate()
        self.sat = sat if sat is not None else Spacecraft.dart(config.inertia)
        self.dynamics = self.build_dynamics(field_ned, density)

    @classmethod
    def from_json(cls, path: str) -> "Simulation":
        return cls(*load_scenario(path))

    def build_dynamics(self, field_ned=None, density=None) -> CoupledDynamics:
        cfg = self.config

        controller = BDot(cfg.bdot_gain) if cfg.enable_control else ZeroInputs()
        if cfg.max_dipole is not None:
            controller.update_actuator_limits(cfg.max_dipole)

        mag_model = None
        if cfg.enable_magnetic_field:
            if field_ned is None:
                mag_model = MagneticFieldModel(cfg.epoch)
            else:
                mag_model = MagneticFieldModel(cfg.epoch, field_ned=field_ned)

        if density is None and cfg.density_model == "static":
            density = lambda alt_km, f107: atmosphere_density_static(1000.0 * alt_km)
        aero_model = AerodynamicModel(self.sat.surfaces, cfg.epoch, density) if cfg.enable_aero else None

        return CoupledDynamics(self.sat, controller, mag_model, aero_model, cfg.aero_altitude_km, cfg.f107)

    def integrate_segment(self, t_start: float, state: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """
        Integrate one segment of `increment` seconds and return every solver sample.

        Returns
        -------
        tuple[np.ndarray, np.ndarray]
            Sample times, shape (n,), and quaternion normalized states, shape (n, 13).
        """
        cfg = self.config
        sol = solve_ivp(self.dynamics, (t_start, t_start + cfg.increment), state,
                        method="RK45", rtol=cfg.rtol, atol=cfg.atol, max_step=cfg.max_step)

        if not sol.success:
            raise PropagationError(f"Solver failed at t = {sol.t[-1]:.3f} s: {sol.message}")

        return sol.t, normalize_quaternions(sol.y.T)

    def run(self) -> SimulationResult:
        """
        Propagate from the initial state until the segment start time reaches the horizon.

        Raises
        ------
        PropagationError
            If the solver fails or the state becomes degenerate. The samples collected up
            to the failing segment are attached to the exception.
        """
        cfg = self.config
        state = cfg.initial_state()
        state[Q_SLICE] = quaternion_normalize(state[Q_SLICE])

        buffer = TimeSeries(N_STATES, capacity=max(1024, int(4 * cfg.horizon / cfg.increment)))
        t = 0.0

        logger.info("Propagating %.1f s in %.1f s segments", cfg.horizon, cfg.increment)

        with tqdm(total=cfg.horizon, desc="Simulation time", unit="sim s", disable=not cfg.progress) as pbar:
            while t < cfg.horizon:
                try:
                    times, states = self.integrate_segment(t, state)
                except PropagationError as e:
                    e.result = SimulationResult(buffer.times.copy(), buffer.states.copy(), self.sat.J_B)
                    raise
                except ValueError as e:
                    raise PropagationError(f"Degenerate state in segment starting at t = {t:.3f} s: {e}",
                                           SimulationResult(buffer.times.copy(), buffer.states.copy(), self.sat.J_B)) from e

                # the first sample repeats the end of the previous segment
                if len(buffer):
                    times, states = times[1:], states[1:]
                buffer.append(times, states)

                logger.debug("Segment [%.1f, %.1f] s: %d samples", t, t + cfg.increment, len(times))

                state = rebase_attitude(states[-1], cfg.increment)
                pbar.update(min(cfg.increment, cfg.horizon - t))
                t += cfg.increment

        result = SimulationResult(buffer.times.copy(), buffer.states.copy(), self.sat.J_B)
        logger.info("Propagation finished at t = %.1f s with %d samples", result.times[-1], len(result))

        return result
