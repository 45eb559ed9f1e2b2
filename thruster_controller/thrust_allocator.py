"""
Thrust allocator for the ten-thruster vehicle.
Maps a commanded body acceleration to per-thruster forces.
"""
from dataclasses import dataclass, field
import logging
from typing import Optional

import numpy as np
from scipy.optimize import least_squares

from thruster_controller.equations import ACTIVE_THRUSTERS, jacobian_function, residual_function
from thruster_controller.orientation_tracker import OrientationState
from thruster_controller.vehicle import (
    MAX_ITERATIONS,
    NUM_THRUSTERS,
    THRUSTER_NAMES,
    RigidBodyParameters,
    ThrusterGeometry,
    ThrusterRole,
    ThrustLimits,
)


@dataclass(frozen=True, eq=False)
class AccelerationCommand:
    """Commanded body-frame acceleration (m/s^2 and rad/s^2)."""
    linear: np.ndarray = field(default_factory=lambda: np.zeros(3))
    angular: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        object.__setattr__(self, 'linear', np.array(self.linear, dtype=float).reshape(3))
        object.__setattr__(self, 'angular', np.array(self.angular, dtype=float).reshape(3))

    def as_vector(self) -> np.ndarray:
        """[surge, sway, heave, roll, pitch, yaw]"""
        return np.concatenate([self.linear, self.angular])


@dataclass
class AllocationSession:
    """Inputs and working forces of a single solve."""
    rotation: np.ndarray
    angular_velocity: np.ndarray
    command: np.ndarray
    forces: np.ndarray = field(default_factory=lambda: np.zeros(NUM_THRUSTERS))


@dataclass(frozen=True, eq=False)
class ThrusterForceSolution:
    """
    Thruster forces [N] ordered by ThrusterRole, plus solver diagnostics.

    The diagnostics stay inside the controller; only the forces are published.
    """
    forces: np.ndarray
    converged: bool = True
    status: int = 0
    message: str = ''
    iterations: int = 0
    cost: float = 0.0
    residuals: np.ndarray = field(default_factory=lambda: np.zeros(6))

    def as_dict(self) -> dict:
        return {name: float(self.forces[i]) for i, name in enumerate(THRUSTER_NAMES)}


class ThrustAllocator:
    """
    Allocates a 6-DOF acceleration command to ten bounded thrusters.

    Minimizes the sum of squared equation-of-motion residuals (see
    thruster_controller.equations) subject to
    min_thrust <= F_i <= max_thrust for every thruster. Only the four
    thrusters that appear in a residual are optimized; the other six have no
    effect on the fit and are held at the all-zero starting point.
    """

    def __init__(
        self,
        geometry: ThrusterGeometry,
        rigid_body: RigidBodyParameters = None,
        limits: ThrustLimits = None,
        max_iterations: int = MAX_ITERATIONS,
        logger: logging.Logger = None
    ):
        """
        Initialize thrust allocator.

        Args:
            geometry: Thruster lever arms relative to the centre of mass
            rigid_body: Vehicle mass and inertia (defaults to vehicle constants)
            limits: Per-thruster force bounds [N]
            max_iterations: Cap on residual evaluations per solve
            logger: Optional logger for solve diagnostics

        Raises:
            ValueError: If parameters are invalid
        """
        if max_iterations <= 0:
            raise ValueError("max_iterations must be positive")

        self.geometry = geometry
        self.rigid_body = rigid_body or RigidBodyParameters()
        self.limits = limits or ThrustLimits()
        self.max_iterations = int(max_iterations)
        self.logger = logger or logging.getLogger(__name__)

        self._lever_arms = np.asarray(geometry.lever_arms, dtype=float)
        self._inertia = self.rigid_body.inertia
        self._lower = np.full(NUM_THRUSTERS, self.limits.min_thrust)
        self._upper = np.full(NUM_THRUSTERS, self.limits.max_thrust)
        self._active = np.array(ACTIVE_THRUSTERS)

    @property
    def min_thrust(self) -> float:
        return self.limits.min_thrust

    @property
    def max_thrust(self) -> float:
        return self.limits.max_thrust

    def new_session(self, state: OrientationState, command: AccelerationCommand) -> AllocationSession:
        """Capture the snapshot and command for one solve, forces zeroed."""
        return AllocationSession(
            rotation=np.array(state.rotation, dtype=float),
            angular_velocity=np.array(state.angular_velocity, dtype=float),
            command=command.as_vector(),
        )

    def _residuals(self, session: AllocationSession, forces: np.ndarray) -> np.ndarray:
        return np.array(residual_function(
            forces, session.rotation, session.angular_velocity, session.command,
            self._lever_arms, self.rigid_body.mass, self._inertia
        ))

    def _jacobian(self, session: AllocationSession, forces: np.ndarray) -> np.ndarray:
        return np.array(jacobian_function(
            forces, session.rotation, session.angular_velocity, session.command,
            self._lever_arms, self.rigid_body.mass, self._inertia
        ))

    def _expand(self, session: AllocationSession, x: np.ndarray) -> np.ndarray:
        forces = session.forces.copy()
        forces[self._active] = x
        return forces

    def evaluate(self, state: OrientationState, command: AccelerationCommand,
                 forces: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Residuals [surge, sway, heave, roll, pitch, yaw] for a force vector.

        Args:
            state: Orientation snapshot
            command: Commanded acceleration
            forces: Thruster forces; zeros when omitted

        Returns:
            Residual vector (6,)
        """
        session = self.new_session(state, command)
        if forces is not None:
            session.forces = np.asarray(forces, dtype=float).reshape(NUM_THRUSTERS)
        return self._residuals(session, session.forces)

    def allocate(self, state: OrientationState, command: AccelerationCommand) -> ThrusterForceSolution:
        """
        Solve for thruster forces.

        Args:
            state: Orientation snapshot, read once for the whole solve
            command: Desired body acceleration

        Returns:
            ThrusterForceSolution with every force inside the thrust limits.
            If the iteration cap is hit the last iterate is returned and
            `converged` is False.
        """
        session = self.new_session(state, command)
        session.forces = np.clip(session.forces, self._lower, self._upper)

        initial = self._residuals(session, session.forces)
        if not np.all(np.isfinite(initial)):
            self.logger.warning("Non-finite allocation inputs; holding thrusters at the initial guess")
            return ThrusterForceSolution(
                forces=session.forces,
                converged=False,
                status=-1,
                message="Residuals are not finite at the initial guess",
                residuals=initial,
            )

        active = self._active
        result = least_squares(
            lambda x: self._residuals(session, self._expand(session, x)),
            session.forces[active],
            jac=lambda x: self._jacobian(session, self._expand(session, x))[:, active],
            bounds=(self._lower[active], self._upper[active]),
            method='trf',
            max_nfev=self.max_iterations,
        )

        # Apply saturation limits
        session.forces = np.clip(self._expand(session, result.x), self._lower, self._upper)

        solution = ThrusterForceSolution(
            forces=session.forces,
            converged=bool(result.status > 0),
            status=int(result.status),
            message=str(result.message),
            iterations=int(result.nfev),
            cost=float(result.cost),
            residuals=np.asarray(result.fun, dtype=float),
        )

        if not solution.converged:
            self.logger.warning(
                f"Thrust allocation stopped after {solution.iterations} evaluations "
                f"without converging (cost={solution.cost:.3e})"
            )
        self.logger.debug(
            f"cmd={np.round(session.command, 3).tolist()}, "
            f"forces={np.round(session.forces, 3).tolist()}, "
            f"cost={solution.cost:.3e}, nfev={solution.iterations}, status={solution.status}"
        )
        return solution

    def log_geometry(self):
        """Log the lever arms of the thrusters the residual model uses."""
        for role in (ThrusterRole.SURGE_PORT_LO, ThrusterRole.SURGE_STBD_LO,
                     ThrusterRole.HEAVE_PORT_FWD, ThrusterRole.HEAVE_STBD_FWD):
            x, y, z = self.geometry.position(role)
            self.logger.info(f"{role.key} transform: {x:.4f}, {y:.4f}, {z:.4f}")
