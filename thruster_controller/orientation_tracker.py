"""
Latest orientation and angular velocity of the vehicle.
"""
from dataclasses import dataclass, field
import logging

import numpy as np
from scipy.spatial.transform import Rotation


@dataclass(frozen=True, eq=False)
class OrientationState:
    """Rotation matrix (body to world) and body angular velocity [rad/s]."""
    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))
    angular_velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        rotation = np.array(self.rotation, dtype=float).reshape(3, 3)
        angular_velocity = np.array(self.angular_velocity, dtype=float).reshape(3)
        rotation.setflags(write=False)
        angular_velocity.setflags(write=False)
        object.__setattr__(self, 'rotation', rotation)
        object.__setattr__(self, 'angular_velocity', angular_velocity)


class OrientationTracker:
    """
    Keeps the most recent inertial sample.

    Every sample replaces the stored OrientationState object wholesale, so a
    reader that grabs `state` once sees one consistent snapshot.
    """

    def __init__(self, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger(__name__)
        self._state = OrientationState()

    @property
    def state(self) -> OrientationState:
        return self._state

    def on_sample(self, orientation, angular_velocity) -> OrientationState:
        """
        Store a new inertial sample.

        Args:
            orientation: Quaternion [x, y, z, w]; normalized before use
            angular_velocity: [wx, wy, wz] in body frame (rad/s)

        Returns:
            The new snapshot

        Raises:
            ValueError: If the quaternion has zero norm; the previous
                snapshot is kept
        """
        q = np.asarray(orientation, dtype=float).reshape(4)
        norm = float(np.linalg.norm(q))
        if not np.isfinite(norm) or norm < 1e-12:
            raise ValueError("Orientation quaternion cannot be normalized")

        rotation = Rotation.from_quat(q / norm).as_matrix()
        self._state = OrientationState(rotation=rotation, angular_velocity=angular_velocity)
        return self._state
