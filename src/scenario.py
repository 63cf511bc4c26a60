"""
Run configuration of the orbit and attitude propagation.

SimulationConfig is immutable; derive variations with dataclasses.replace().
Scenario files are JSON with the sections written by `to_dict`.
"""

import dataclasses
import datetime
import json
from dataclasses import dataclass

import numpy as np

from satellite import DART_INERTIA, ConfigurationError, validate_inertia
from utils import string_to_timedelta


CONTROLLER_TYPES = ("BDot", "ZeroInputs")
DENSITY_MODELS = ("msis", "static")


@dataclass(frozen=True)
class SimulationConfig:
    # ── initial state ────────────────────────────────────────────────────
    r0: tuple = (6878.0, 0.0, 0.0)          # ECI position [km]
    v0: tuple = (0.0, 5.38, 5.38)           # ECI velocity [km/s]
    q0: tuple = (1.0, 0.0, 0.0, 0.0)        # orbital to body quaternion, scalar first
    omega0: tuple = (0.1, 0.25, 0.03)       # body rates [rad/s]
    inertia: tuple = tuple(map(tuple, DART_INERTIA.tolist()))  # [kg*m^2]

    # ── timing ───────────────────────────────────────────────────────────
    epoch: datetime.datetime = datetime.datetime(2015, 12, 12)
    horizon: float = 80000.0                # simulated time [s]
    increment: float = 15.0                 # seconds between orbital frame re-basing

    # ── solver ───────────────────────────────────────────────────────────
    rtol: float = 1e-13
    atol: float = 1e-6
    max_step: float = 100.0

    # ── control / environment ────────────────────────────────────────────
    bdot_gain: float = -1e4
    max_dipole: float | None = None         # magnetorquer dipole limit [A*m^2], None for unlimited
    aero_altitude_km: float = 500.0         # fixed, no orbital decay coupling
    f107: float = 135.0
    density_model: str = "msis"             # "msis" or "static"
    enable_control: bool = True
    enable_aero: bool = True
    enable_magnetic_field: bool = True

    # ── misc ─────────────────────────────────────────────────────────────
    progress: bool = True

    def initial_state(self) -> np.ndarray:
        return np.concatenate((self.r0, self.v0, self.q0, self.omega0)).astype(float)

    def validate(self) -> "SimulationConfig":
        """
        Raises
        ------
        ConfigurationError
            For inputs that would make the propagation undefined.
        """
        if len(self.r0) != 3 or len(self.v0) != 3 or len(self.omega0) != 3 or len(self.q0) != 4:
            raise ConfigurationError("r0, v0 and omega0 need 3 components, q0 needs 4")

        for name in ("r0", "v0", "q0", "omega0"):
            vec = np.asarray(getattr(self, name), dtype=float)
            if not np.all(np.isfinite(vec)):
                raise ConfigurationError(f"{name} contains non-finite values")
            if np.linalg.norm(vec) == 0:
                raise ConfigurationError(f"{name} must not be a zero vector")

        if np.linalg.norm(np.cross(self.r0, self.v0)) == 0:
            raise ConfigurationError("r0 and v0 are parallel, the orbital frame is undefined")

        validate_inertia(self.inertia)

        for name in ("horizon", "increment", "rtol", "atol", "max_step", "aero_altitude_km"):
            value = getattr(self, name)
            if not (np.isfinite(value) and value > 0):
                raise ConfigurationError(f"{name} must be positive, got {value}")

        if self.enable_control and not self.bdot_gain < 0:
            raise ConfigurationError(f"B-dot gain must be negative for damping, got {self.bdot_gain}")

        if self.max_dipole is not None and not (np.isfinite(self.max_dipole) and self.max_dipole > 0):
            raise ConfigurationError(f"max_dipole must be positive or None, got {self.max_dipole}")

        if self.density_model not in DENSITY_MODELS:
            raise ConfigurationError(f"density_model must be one of {DENSITY_MODELS}, got {self.density_model!r}")
        if self.enable_aero and self.density_model == "static" and not 300 <= self.aero_altitude_km <= 800:
            raise ConfigurationError(
                f"The static density model covers 300-800 km, got {self.aero_altitude_km} km")

        return self

    @classmethod
    def from_dict(cls, data: dict) -> "SimulationConfig":
        """
        Build a configuration from a parsed scenario file. Missing entries keep their defaults.
        """
        kwargs = {}

        settings = data.get("Settings", {})
        if "SimulationStart" in settings:
            kwargs["epoch"] = datetime.datetime.fromisoformat(settings["SimulationStart"])
        if "SimulationDuration" in settings:
            kwargs["horizon"] = string_to_timedelta(settings["SimulationDuration"]).total_seconds()
        for key, field in (("SegmentIncrement", "increment"), ("RelTol", "rtol"), ("AbsTol", "atol"),
                           ("MaxStep", "max_step"), ("Progress", "progress")):
            if key in settings:
                kwargs[field] = settings[key]

        orbit = data.get("Orbit Model", {})
        if "Position" in orbit:
            kwargs["r0"] = tuple(orbit["Position"])
        if "Velocity" in orbit:
            kwargs["v0"] = tuple(orbit["Velocity"])

        kin = data.get("Kinematic Model", {})
        if "InitialQuaternion" in kin:
            kwargs["q0"] = tuple(kin["InitialQuaternion"])
        if "InitialRates" in kin:
            kwargs["omega0"] = tuple(kin["InitialRates"])

        spacecraft = data.get("Spacecraft", {})
        if "MomentOfInertia" in spacecraft:
            kwargs["inertia"] = tuple(map(tuple, spacecraft["MomentOfInertia"]))

        ctrl = data.get("Controller", {})
        if "Type" in ctrl:
            if ctrl["Type"] not in CONTROLLER_TYPES:
                raise ConfigurationError(f"Unknown controller type {ctrl['Type']!r}, expected one of {CONTROLLER_TYPES}")
            kwargs["enable_control"] = ctrl["Type"] == "BDot"
        if "Gain" in ctrl:
            kwargs["bdot_gain"] = ctrl["Gain"]
        if "MaxDipole" in ctrl:
            kwargs["max_dipole"] = ctrl["MaxDipole"]

        aero = data.get("Aerodynamics", {})
        if "Altitude" in aero:
            kwargs["aero_altitude_km"] = aero["Altitude"]
        if "F107" in aero:
            kwargs["f107"] = aero["F107"]
        if "DensityModel" in aero:
            kwargs["density_model"] = aero["DensityModel"]
        if "Enabled" in aero:
            kwargs["enable_aero"] = aero["Enabled"]

        mag = data.get("Magnetic Field", {})
        if "Enabled" in mag:
            kwargs["enable_magnetic_field"] = mag["Enabled"]

        return cls(**kwargs)

    @classmethod
    def from_json(cls, path: str) -> "SimulationConfig":
        with open(path, "r") as f:
            return cls.from_dict(json.load(f))

    def to_dict(self) -> dict:
        return {
            "Settings": {
                "SimulationStart": self.epoch.isoformat(),
                "SimulationDuration": format_duration(self.horizon),
                "SegmentIncrement": self.increment,
                "RelTol": self.rtol,
                "AbsTol": self.atol,
                "MaxStep": self.max_step,
                "Progress": self.progress,
            },
            "Orbit Model": {"Position": list(self.r0), "Velocity": list(self.v0)},
            "Kinematic Model": {"InitialQuaternion": list(self.q0), "InitialRates": list(self.omega0)},
            "Spacecraft": {"MomentOfInertia": [list(row) for row in self.inertia]},
            "Controller": {"Type": "BDot" if self.enable_control else "ZeroInputs", "Gain": self.bdot_gain,
                           "MaxDipole": self.max_dipole},
            "Aerodynamics": {"Altitude": self.aero_altitude_km, "F107": self.f107, "DensityModel": self.density_model,
                             "Enabled": self.enable_aero},
            "Magnetic Field": {"Enabled": self.enable_magnetic_field},
        }


def create_test_config(horizon: float = 60.0, **overrides) -> SimulationConfig:
    """Short, quiet configuration. Any SimulationConfig field can be overridden."""
    defaults = dict(horizon=horizon, progress=False)
    defaults.update(overrides)
    return dataclasses.replace(SimulationConfig(), **defaults)


def format_duration(seconds: float) -> str:
    """Seconds as h:m:s, the inverse of utils.string_to_timedelta."""
    hours, rest = divmod(seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{int(hours)}:{int(minutes):02d}:{seconds:g}"
