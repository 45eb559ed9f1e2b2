"""
Startup resolution of thruster positions.

Each thruster frame (and the IMU frame) is looked up once against the
vehicle reference frame. Lookups block for a bounded time; a failed lookup
aborts startup, there is no retry.
"""
import logging
from typing import Callable, Sequence

import numpy as np

from thruster_controller.vehicle import ThrusterGeometry, ThrusterRole

REFERENCE_FRAME = 'base_link'
SENSOR_FRAME = 'imu_one_link'
LOOKUP_TIMEOUT = 10.0


class GeometryLookupError(RuntimeError):
    """A frame could not be resolved within the lookup timeout."""

    def __init__(self, frame: str, reason: str = ''):
        self.frame = frame
        message = f"Could not resolve frame '{frame}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


# (frame, timeout_sec) -> [x, y, z] translation of frame in the reference frame
FrameLookup = Callable[[str, float], Sequence[float]]


def resolve_geometry(
    lookup: FrameLookup,
    timeout_sec: float = LOOKUP_TIMEOUT,
    sensor_frame: str = SENSOR_FRAME,
    logger: logging.Logger = None
) -> ThrusterGeometry:
    """
    Resolve all thruster lever arms and the sensor offset.

    Args:
        lookup: Returns the translation of a frame, raising
            GeometryLookupError when the frame is unavailable
        timeout_sec: Bounded wait passed to every lookup (s)
        sensor_frame: Frame of the inertial sensor
        logger: Optional logger

    Returns:
        ThrusterGeometry

    Raises:
        GeometryLookupError: On the first frame that cannot be resolved
    """
    if timeout_sec <= 0.0:
        raise ValueError("timeout_sec must be positive")
    logger = logger or logging.getLogger(__name__)

    positions = {}
    for role in ThrusterRole:
        positions[role.key] = _translation(lookup, role.frame, timeout_sec)
        logger.debug(f"Resolved {role.frame}: {positions[role.key].tolist()}")

    sensor_offset = _translation(lookup, sensor_frame, timeout_sec)
    logger.debug(f"Resolved {sensor_frame}: {sensor_offset.tolist()}")

    return ThrusterGeometry.from_mapping(positions, sensor_offset=sensor_offset)


def _translation(lookup: FrameLookup, frame: str, timeout_sec: float) -> np.ndarray:
    translation = np.asarray(lookup(frame, timeout_sec), dtype=float).reshape(-1)
    if translation.shape[0] != 3:
        raise GeometryLookupError(frame, f"expected a 3-vector, got {translation.shape[0]} values")
    return translation
