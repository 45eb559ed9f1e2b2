"""
Vehicle description for the thruster controller.

Holds the thruster roles, rigid-body constants, thrust limits and the
static thruster geometry, and loads them from the vehicle YAML file.
"""
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional

import numpy as np
import yaml


class ThrusterRole(IntEnum):
    """Thruster roles, in the order the allocator stores forces."""
    SURGE_PORT_HI = 0
    SURGE_STBD_HI = 1
    SURGE_PORT_LO = 2
    SURGE_STBD_LO = 3
    SWAY_FWD = 4
    SWAY_AFT = 5
    HEAVE_PORT_FWD = 6
    HEAVE_STBD_FWD = 7
    HEAVE_PORT_AFT = 8
    HEAVE_STBD_AFT = 9

    @property
    def key(self) -> str:
        """Lower-case role name used in config files and messages."""
        return self.name.lower()

    @property
    def frame(self) -> str:
        """tf frame of the thruster."""
        return f"{self.key}_link"


NUM_THRUSTERS = len(ThrusterRole)
THRUSTER_NAMES = tuple(role.key for role in ThrusterRole)

# Thrust limits (N)
MIN_THRUST = -5.0
MAX_THRUST = 5.0

# Vehicle mass (kg) and principal moments of inertia
MASS = 34.47940950
IXX = 1.335
IYY = 1.501
IZZ = 0.6189

MAX_ITERATIONS = 100


@dataclass(frozen=True)
class RigidBodyParameters:
    """Mass and principal moments of inertia of the vehicle."""
    mass: float = MASS
    ixx: float = IXX
    iyy: float = IYY
    izz: float = IZZ

    def __post_init__(self):
        if self.mass <= 0.0:
            raise ValueError("mass must be positive")
        if min(self.ixx, self.iyy, self.izz) <= 0.0:
            raise ValueError("Moments of inertia must be positive")

    @property
    def inertia(self) -> np.ndarray:
        """Principal moments as [Ixx, Iyy, Izz]."""
        return np.array([self.ixx, self.iyy, self.izz], dtype=float)


@dataclass(frozen=True)
class ThrustLimits:
    """Force bounds applied to every thruster [N]."""
    min_thrust: float = MIN_THRUST
    max_thrust: float = MAX_THRUST

    def __post_init__(self):
        if not self.min_thrust < self.max_thrust:
            raise ValueError("min_thrust must be less than max_thrust")


def _frozen_vector(values, length: int = 3) -> np.ndarray:
    vec = np.array(values, dtype=float).reshape(-1)
    if vec.shape[0] != length:
        raise ValueError(f"Expected a length-{length} vector, got {vec.shape[0]} values")
    vec.setflags(write=False)
    return vec


@dataclass(frozen=True, eq=False)
class ThrusterGeometry:
    """
    Thruster lever arms relative to the centre of mass.

    lever_arms is a (10, 3) array indexed by ThrusterRole. The sensor offset
    is kept alongside for completeness; the residual model does not use it.
    """
    lever_arms: np.ndarray
    sensor_offset: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        arms = np.array(self.lever_arms, dtype=float)
        if arms.shape != (NUM_THRUSTERS, 3):
            raise ValueError(f"lever_arms must have shape ({NUM_THRUSTERS}, 3), got {arms.shape}")
        arms.setflags(write=False)
        object.__setattr__(self, 'lever_arms', arms)
        object.__setattr__(self, 'sensor_offset', _frozen_vector(self.sensor_offset))

    @classmethod
    def from_mapping(cls, positions: dict, sensor_offset=(0.0, 0.0, 0.0)) -> 'ThrusterGeometry':
        """Build geometry from a {role name: [x, y, z]} mapping."""
        missing = [name for name in THRUSTER_NAMES if name not in positions]
        if missing:
            raise ValueError(f"Missing thruster positions: {', '.join(missing)}")
        arms = np.array([_frozen_vector(positions[name]) for name in THRUSTER_NAMES])
        return cls(lever_arms=arms, sensor_offset=sensor_offset)

    def position(self, role: ThrusterRole) -> np.ndarray:
        """Lever arm of a single thruster."""
        return self.lever_arms[int(role)]

    def as_dict(self) -> dict:
        return {name: self.lever_arms[i].tolist() for i, name in enumerate(THRUSTER_NAMES)}


@dataclass(frozen=True)
class VehicleConfig:
    """Everything read from the vehicle YAML file."""
    rigid_body: RigidBodyParameters = RigidBodyParameters()
    limits: ThrustLimits = ThrustLimits()
    max_iterations: int = MAX_ITERATIONS
    geometry: Optional[ThrusterGeometry] = None


def load_vehicle_config(yaml_path: str) -> VehicleConfig:
    """
    Load vehicle constants and (optionally) static geometry from YAML.

    Args:
        yaml_path: Path to the vehicle YAML file

    Returns:
        VehicleConfig; sections absent from the file keep their defaults
    """
    with open(yaml_path, 'r') as f:
        config = yaml.safe_load(f) or {}

    body = config.get('rigid_body', {})
    inertia = body.get('inertia', [IXX, IYY, IZZ])
    if len(inertia) != 3:
        raise ValueError("rigid_body.inertia must list [Ixx, Iyy, Izz]")
    rigid_body = RigidBodyParameters(
        mass=float(body.get('mass', MASS)),
        ixx=float(inertia[0]),
        iyy=float(inertia[1]),
        izz=float(inertia[2]),
    )

    limits_cfg = config.get('thrust_limits', {})
    limits = ThrustLimits(
        min_thrust=float(limits_cfg.get('min', MIN_THRUST)),
        max_thrust=float(limits_cfg.get('max', MAX_THRUST)),
    )

    max_iterations = int(config.get('solver', {}).get('max_iterations', MAX_ITERATIONS))

    geometry = None
    if config.get('thrusters'):
        geometry = geometry_from_config(config)

    return VehicleConfig(
        rigid_body=rigid_body,
        limits=limits,
        max_iterations=max_iterations,
        geometry=geometry,
    )


def geometry_from_config(config: dict) -> ThrusterGeometry:
    """Static geometry from the 'thrusters' and 'sensor_offset' sections."""
    thrusters = config.get('thrusters') or {}
    if not thrusters:
        raise ValueError("No thruster positions defined in vehicle config")
    return ThrusterGeometry.from_mapping(
        thrusters, sensor_offset=config.get('sensor_offset', [0.0, 0.0, 0.0])
    )
