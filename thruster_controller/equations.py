"""
Equations of motion used by the thrust allocator.

Each residual is the difference between the body acceleration produced by a
set of thruster forces and the commanded acceleration on one axis:

    r = [surge, sway, heave, roll, pitch, yaw]

Only the low surge thrusters and the forward heave thrusters contribute to
the linear equations. The sway thrusters and the high/aft thrusters are free
variables that no residual depends on.

Residuals are linear in the forces for a fixed orientation and angular
velocity, so the Jacobian is constant per solve. It is obtained exactly with
forward-mode autodiff.
"""
import jax
import jax.numpy as jnp

from thruster_controller.vehicle import ThrusterRole

# Solves need double precision; JAX defaults to float32.
jax.config.update("jax_enable_x64", True)

SPL = int(ThrusterRole.SURGE_PORT_LO)
SSL = int(ThrusterRole.SURGE_STBD_LO)
HPF = int(ThrusterRole.HEAVE_PORT_FWD)
HSF = int(ThrusterRole.HEAVE_STBD_FWD)

# Thrusters with a term in at least one residual; the rest have zero Jacobian columns
ACTIVE_THRUSTERS = (SPL, SSL, HPF, HSF)

NUM_RESIDUALS = 6


def allocation_residuals(forces, rotation, angular_velocity, command, lever_arms, mass, inertia):
    """
    Evaluate the six equation-of-motion residuals.

    Args:
        forces: Thruster forces (10,) ordered by ThrusterRole [N]
        rotation: Body orientation as a 3x3 rotation matrix
        angular_velocity: Body angular velocity [wx, wy, wz] (rad/s)
        command: Commanded acceleration [surge, sway, heave, roll, pitch, yaw]
        lever_arms: Thruster positions relative to the centre of mass (10, 3) [m]
        mass: Vehicle mass [kg]
        inertia: Principal moments [Ixx, Iyy, Izz]

    Returns:
        jnp.ndarray of shape (6,)
    """
    f = forces
    R = rotation
    w = angular_velocity
    r = lever_arms
    ixx, iyy, izz = inertia[0], inertia[1], inertia[2]

    surge_lo = f[SPL] + f[SSL]
    heave_fwd = f[HPF] + f[HSF]

    # Linear: row i of R picks the x part of the surge pair and z part of the heave pair
    linear = (R[:, 0] * surge_lo + R[:, 2] * heave_fwd) / mass - command[:3]

    roll = (
        f[HPF] * r[HPF, 1] + f[HSF] * r[HSF, 1]
        + w[1] * w[2] * (iyy - izz)
    ) / ixx - command[3]

    pitch = (
        f[SPL] * r[SPL, 2] + f[SSL] * r[SSL, 2]
        - f[HPF] * r[HPF, 0] - f[HSF] * r[HSF, 0]
        + w[0] * w[2] * (izz - ixx)
    ) / iyy - command[4]

    yaw = (
        -f[SPL] * r[SPL, 1] - f[SSL] * r[SSL, 1]
        + w[0] * w[1] * (ixx - iyy)
    ) / izz - command[5]

    return jnp.concatenate([linear, jnp.stack([roll, pitch, yaw])])


residual_function = jax.jit(allocation_residuals)
jacobian_function = jax.jit(jax.jacfwd(allocation_residuals, argnums=0))
