"""
Shared fixtures: a symmetric test vehicle.
"""
import pytest
from thruster_controller.thrust_allocator import ThrustAllocator
from thruster_controller.vehicle import RigidBodyParameters, ThrusterGeometry, ThrustLimits

# Low surge thrusters sit level with the centre of mass so a pure surge
# command can be met exactly.
TEST_POSITIONS = {
    'surge_port_hi': [-0.2, 0.15, 0.1],
    'surge_stbd_hi': [-0.2, -0.15, 0.1],
    'surge_port_lo': [-0.2, 0.15, 0.0],
    'surge_stbd_lo': [-0.2, -0.15, 0.0],
    'sway_fwd': [0.3, 0.0, 0.05],
    'sway_aft': [-0.3, 0.0, 0.05],
    'heave_port_fwd': [0.25, 0.2, 0.0],
    'heave_stbd_fwd': [0.25, -0.2, 0.0],
    'heave_port_aft': [-0.25, 0.2, 0.0],
    'heave_stbd_aft': [-0.25, -0.2, 0.0],
}


@pytest.fixture
def geometry():
    """Symmetric thruster layout."""
    return ThrusterGeometry.from_mapping(TEST_POSITIONS, sensor_offset=[0.05, 0.0, 0.07])


@pytest.fixture
def rigid_body():
    """Default vehicle constants."""
    return RigidBodyParameters()


@pytest.fixture
def allocator(geometry, rigid_body):
    """Allocator with the default +-5 N limits."""
    return ThrustAllocator(geometry, rigid_body=rigid_body, limits=ThrustLimits(-5.0, 5.0))
