"""
Tests for ThrustAllocator - bounded least-squares allocation over ten thrusters.
"""
import pytest
import numpy as np
from scipy.spatial.transform import Rotation
from thruster_controller.orientation_tracker import OrientationState
from thruster_controller.thrust_allocator import (
    AccelerationCommand,
    ThrustAllocator,
    ThrusterForceSolution,
)
from thruster_controller.vehicle import (
    IXX,
    IYY,
    IZZ,
    MASS,
    THRUSTER_NAMES,
    RigidBodyParameters,
    ThrusterRole,
    ThrustLimits,
)

SPL = int(ThrusterRole.SURGE_PORT_LO)
SSL = int(ThrusterRole.SURGE_STBD_LO)
HPF = int(ThrusterRole.HEAVE_PORT_FWD)
HSF = int(ThrusterRole.HEAVE_STBD_FWD)
FREE = [int(r) for r in (ThrusterRole.SURGE_PORT_HI, ThrusterRole.SURGE_STBD_HI,
                         ThrusterRole.SWAY_FWD, ThrusterRole.SWAY_AFT,
                         ThrusterRole.HEAVE_PORT_AFT, ThrusterRole.HEAVE_STBD_AFT)]


def command(surge=0.0, sway=0.0, heave=0.0, roll=0.0, pitch=0.0, yaw=0.0):
    return AccelerationCommand(linear=[surge, sway, heave], angular=[roll, pitch, yaw])


def state_from_quat(q, omega=(0.0, 0.0, 0.0)):
    q = np.asarray(q, dtype=float)
    return OrientationState(rotation=Rotation.from_quat(q / np.linalg.norm(q)).as_matrix(),
                            angular_velocity=omega)


LEVEL = OrientationState()


class TestThrustAllocatorInitialization:
    """Test ThrustAllocator initialization and parameter validation."""

    def test_default_initialization(self, geometry):
        """Test ThrustAllocator initializes with vehicle defaults."""
        allocator = ThrustAllocator(geometry)
        assert allocator.min_thrust == -5.0
        assert allocator.max_thrust == 5.0
        assert allocator.max_iterations == 100
        assert allocator.rigid_body.mass == MASS
        assert np.allclose(allocator.rigid_body.inertia, [IXX, IYY, IZZ])

    def test_custom_initialization(self, geometry):
        """Test ThrustAllocator with custom parameters."""
        allocator = ThrustAllocator(
            geometry,
            rigid_body=RigidBodyParameters(mass=20.0, ixx=1.0, iyy=2.0, izz=3.0),
            limits=ThrustLimits(-2.0, 8.0),
            max_iterations=25,
        )
        assert allocator.min_thrust == -2.0
        assert allocator.max_thrust == 8.0
        assert allocator.max_iterations == 25
        assert allocator.rigid_body.mass == 20.0

    def test_invalid_max_iterations(self, geometry):
        """Test that a non-positive iteration cap raises error."""
        with pytest.raises(ValueError, match="max_iterations must be positive"):
            ThrustAllocator(geometry, max_iterations=0)

    def test_invalid_limits(self):
        """Test that inverted thrust limits raise error."""
        with pytest.raises(ValueError):
            ThrustLimits(5.0, -5.0)
        with pytest.raises(ValueError):
            ThrustLimits(1.0, 1.0)

    def test_invalid_rigid_body(self):
        """Test that non-positive mass or inertia raise error."""
        with pytest.raises(ValueError, match="mass must be positive"):
            RigidBodyParameters(mass=0.0)
        with pytest.raises(ValueError):
            RigidBodyParameters(izz=-1.0)


class TestThrustAllocation:
    """Test allocation against the defining equations."""

    def test_zero_input(self, allocator):
        """Test with zero command, level vehicle, no rotation rate."""
        solution = allocator.allocate(LEVEL, command())

        assert solution.forces.shape == (10,)
        assert np.all(solution.forces == 0.0)
        assert solution.cost == 0.0
        assert solution.converged

    def test_pure_surge(self, allocator):
        """Test surge command is met by the low surge pair."""
        c = 0.1
        solution = allocator.allocate(LEVEL, command(surge=c))

        assert np.isclose(solution.forces[SPL] + solution.forces[SSL], MASS * c, atol=1e-3)
        # No yaw requested: the pair stays balanced
        assert np.isclose(solution.forces[SPL], solution.forces[SSL], atol=1e-3)
        assert np.allclose(solution.residuals, 0.0, atol=1e-5)
        assert solution.converged

    def test_pure_surge_repeatable(self, allocator):
        """Test re-running the surge solve reproduces the surge pair sum."""
        for _ in range(3):
            solution = allocator.allocate(LEVEL, command(surge=0.05))
            assert np.isclose(solution.forces[SPL] + solution.forces[SSL], MASS * 0.05, atol=1e-3)

    def test_free_thrusters_stay_at_initial_guess(self, allocator):
        """Test thrusters without a residual term are left at zero."""
        solution = allocator.allocate(LEVEL, command(surge=0.1, heave=-0.05, yaw=0.2))
        assert np.allclose(solution.forces[FREE], 0.0, atol=1e-6)

    def test_roll_command(self, allocator):
        """Test roll command drives the forward heave pair differentially."""
        solution = allocator.allocate(LEVEL, command(roll=0.2))
        f = solution.forces

        assert np.isclose(f[HPF] + f[HSF], 0.0, atol=1e-4)
        assert np.isclose(0.2 * (f[HPF] - f[HSF]) / IXX, 0.2, atol=1e-4)
        assert np.all(f[FREE] == 0.0)

    def test_yaw_command(self, allocator):
        """Test yaw command drives the surge pair differentially."""
        solution = allocator.allocate(LEVEL, command(yaw=0.5))
        f = solution.forces

        assert np.isclose(f[SPL] + f[SSL], 0.0, atol=1e-4)
        assert np.isclose(-0.15 * f[SPL] + 0.15 * f[SSL], 0.5 * IZZ, atol=1e-4)
        assert f[SSL] > f[SPL]
        assert np.all(f[FREE] == 0.0)

    def test_orientation_rotates_linear_equations(self, allocator):
        """Test a yawed vehicle meets a sway command with the surge pair."""
        yawed = state_from_quat([0.0, 0.0, np.sin(np.pi / 4), np.cos(np.pi / 4)])
        solution = allocator.allocate(yawed, command(sway=0.1))

        assert np.isclose(solution.forces[SPL] + solution.forces[SSL], MASS * 0.1, atol=1e-3)
        assert np.allclose(solution.residuals, 0.0, atol=1e-5)

    def test_angular_velocity_compensation(self, allocator):
        """Test the roll coupling term is cancelled by the forward heave pair."""
        spinning = OrientationState(angular_velocity=[0.0, 0.5, 0.5])
        solution = allocator.allocate(spinning, command())
        f = solution.forces

        assert np.allclose(solution.residuals, 0.0, atol=1e-5)
        assert np.isclose(f[HPF] + f[HSF], 0.0, atol=1e-4)
        assert np.isclose(0.2 * (f[HPF] - f[HSF]), -0.25 * (IYY - IZZ), atol=1e-4)

    def test_evaluate_matches_solution_residuals(self, allocator):
        """Test evaluate() reproduces the residuals of a solve."""
        cmd = command(surge=0.05, roll=0.1)
        solution = allocator.allocate(LEVEL, cmd)
        assert np.allclose(allocator.evaluate(LEVEL, cmd, solution.forces), solution.residuals, atol=1e-9)

    def test_evaluate_defaults_to_zero_forces(self, allocator):
        """Test evaluate() without forces returns minus the command."""
        cmd = command(surge=0.1, pitch=-0.3)
        assert np.allclose(allocator.evaluate(LEVEL, cmd), -cmd.as_vector())


class TestThrustSaturation:
    """Test thrust bounds."""

    def test_saturation_positive_limit(self, allocator):
        """Test an unreachable surge command saturates the surge pair."""
        solution = allocator.allocate(LEVEL, command(surge=1.0))

        assert np.isclose(solution.forces[SPL], 5.0, atol=1e-3)
        assert np.isclose(solution.forces[SSL], 5.0, atol=1e-3)
        assert np.all(solution.forces <= 5.0)
        # Best fit leaves the remaining surge acceleration unmet
        assert np.isclose(solution.residuals[0], 10.0 / MASS - 1.0, atol=1e-3)

    def test_saturation_negative_limit(self, allocator):
        """Test an unreachable reverse command saturates at the lower bound."""
        solution = allocator.allocate(LEVEL, command(surge=-1.0))

        assert np.isclose(solution.forces[SPL], -5.0, atol=1e-3)
        assert np.isclose(solution.forces[SSL], -5.0, atol=1e-3)
        assert np.all(solution.forces >= -5.0)

    def test_custom_limits_respected(self, geometry):
        """Test tighter limits bound the solution."""
        allocator = ThrustAllocator(geometry, limits=ThrustLimits(-1.0, 1.0))
        solution = allocator.allocate(LEVEL, command(surge=0.5, heave=-0.5, yaw=3.0))

        assert np.all(solution.forces >= -1.0)
        assert np.all(solution.forces <= 1.0)

    def test_bounds_hold_for_random_inputs(self, allocator):
        """Test every force stays in bounds over random snapshots and commands."""
        rng = np.random.default_rng(42)
        for _ in range(25):
            state = state_from_quat(rng.normal(size=4), omega=rng.uniform(-2.0, 2.0, size=3))
            cmd_vec = rng.uniform(-2.0, 2.0, size=6)
            solution = allocator.allocate(state, AccelerationCommand(cmd_vec[:3], cmd_vec[3:]))

            assert np.all(solution.forces >= allocator.min_thrust)
            assert np.all(solution.forces <= allocator.max_thrust)
            assert np.all(solution.forces[FREE] == 0.0)


class TestDeterminism:
    """Test repeatability of solves."""

    def test_identical_inputs_identical_outputs(self, allocator):
        """Test repeated solves on identical inputs agree."""
        state = state_from_quat([0.1, -0.2, 0.3, 0.9], omega=[0.2, -0.1, 0.4])
        cmd = command(surge=0.2, sway=-0.1, heave=0.05, roll=0.3, pitch=-0.2, yaw=0.1)

        first = allocator.allocate(state, cmd)
        second = allocator.allocate(state, cmd)

        assert np.allclose(first.forces, second.forces, atol=1e-12)

    def test_no_warm_start(self, allocator):
        """Test a previous solve does not influence the next one."""
        cmd = command(heave=0.05, yaw=-0.2)
        fresh = allocator.allocate(LEVEL, cmd)

        allocator.allocate(LEVEL, command(surge=1.0, roll=2.0))
        after = allocator.allocate(LEVEL, cmd)

        assert np.allclose(fresh.forces, after.forces, atol=1e-12)


class TestNonConvergence:
    """Test behaviour when the iteration cap is hit."""

    def test_iteration_cap_returns_last_iterate(self, geometry):
        """Test hitting the cap returns in-bounds forces flagged unconverged."""
        allocator = ThrustAllocator(geometry, max_iterations=1)
        solution = allocator.allocate(LEVEL, command(surge=0.1))

        assert not solution.converged
        assert solution.status == 0
        assert solution.iterations <= 1
        assert np.all(np.abs(solution.forces) <= 5.0)

    def test_non_finite_command(self, allocator):
        """Test a NaN command yields the initial guess instead of raising."""
        solution = allocator.allocate(LEVEL, command(surge=float('nan')))

        assert not solution.converged
        assert np.all(solution.forces == 0.0)


class TestThrusterForceSolution:
    """Test solution accessors."""

    def test_forces_by_name(self):
        """Test as_dict() keys forces by role name in role order."""
        forces = np.arange(10, dtype=float)
        solution = ThrusterForceSolution(forces=forces)

        assert solution.as_dict()['sway_fwd'] == 4.0
        assert solution.as_dict()['heave_stbd_aft'] == 9.0
        assert list(solution.as_dict().keys()) == list(THRUSTER_NAMES)
        assert solution.as_dict()['surge_port_lo'] == 2.0
