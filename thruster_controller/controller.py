"""
Thruster controller core, independent of ROS.

Owns the orientation tracker and the thrust allocator. Inertial samples
update the tracker; each acceleration command runs exactly one solve on the
tracker's current snapshot.
"""
import logging

from thruster_controller.orientation_tracker import OrientationTracker
from thruster_controller.thrust_allocator import (
    AccelerationCommand,
    ThrustAllocator,
    ThrusterForceSolution,
)
from thruster_controller.vehicle import ThrusterGeometry, VehicleConfig


class ThrusterController:
    """Serial handlers for the two input streams."""

    def __init__(self, geometry: ThrusterGeometry, config: VehicleConfig = None,
                 logger: logging.Logger = None):
        config = config or VehicleConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.tracker = OrientationTracker(logger=self.logger)
        self.allocator = ThrustAllocator(
            geometry,
            rigid_body=config.rigid_body,
            limits=config.limits,
            max_iterations=config.max_iterations,
            logger=self.logger,
        )
        self.last_solution = None

    def on_inertial_sample(self, orientation, angular_velocity) -> bool:
        """
        Update orientation and rate.

        Returns:
            False if the sample was rejected (degenerate quaternion)
        """
        try:
            self.tracker.on_sample(orientation, angular_velocity)
        except ValueError as e:
            self.logger.warning(f"Dropping inertial sample: {e}")
            return False
        return True

    def on_command(self, linear, angular) -> ThrusterForceSolution:
        """Solve for thruster forces against the latest snapshot."""
        state = self.tracker.state
        command = AccelerationCommand(linear=linear, angular=angular)
        self.last_solution = self.allocator.allocate(state, command)
        return self.last_solution
