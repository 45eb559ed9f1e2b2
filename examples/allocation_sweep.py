"""
Standalone plotting script - sweeps acceleration commands through the allocator
"""
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from thruster_controller.orientation_tracker import OrientationTracker
from thruster_controller.thrust_allocator import AccelerationCommand, ThrustAllocator
from thruster_controller.vehicle import THRUSTER_NAMES, load_vehicle_config
import numpy as np
import matplotlib.pyplot as plt

print("="*60)
print("THRUST ALLOCATION - COMMAND SWEEPS")
print("="*60)

# Create plots directory
os.makedirs('plots', exist_ok=True)

config_path = os.path.join(os.path.dirname(__file__), '..', 'config', 'vehicle.yaml')
vehicle = load_vehicle_config(config_path)
allocator = ThrustAllocator(
    vehicle.geometry,
    rigid_body=vehicle.rigid_body,
    limits=vehicle.limits,
    max_iterations=vehicle.max_iterations,
)
tracker = OrientationTracker()

print(f"\nMass: {vehicle.rigid_body.mass:.3f} kg")
print(f"Thrust limits: [{vehicle.limits.min_thrust}, {vehicle.limits.max_thrust}] N")

# (axis index, label, sweep range)
sweeps = [
    (0, 'surge [m/s²]', np.linspace(-0.5, 0.5, 41)),
    (2, 'heave [m/s²]', np.linspace(-0.5, 0.5, 41)),
    (5, 'yaw [rad/s²]', np.linspace(-3.0, 3.0, 41)),
]

# ===== PLOT 1: Forces vs command, level vehicle =====
print("\n1. Sweeping commands at identity orientation...")
fig, axes = plt.subplots(2, len(sweeps), figsize=(18, 9), sharex='col')
fig.suptitle('Thruster Forces vs Commanded Acceleration', fontsize=16, fontweight='bold')

for col, (axis, label, values) in enumerate(sweeps):
    forces = []
    costs = []
    for value in values:
        cmd = np.zeros(6)
        cmd[axis] = value
        solution = allocator.allocate(tracker.state, AccelerationCommand(cmd[:3], cmd[3:]))
        forces.append(solution.forces)
        costs.append(solution.cost)
    forces = np.array(forces)

    ax = axes[0, col]
    for i, name in enumerate(THRUSTER_NAMES):
        if np.any(np.abs(forces[:, i]) > 1e-9):
            ax.plot(values, forces[:, i], linewidth=2, label=name)
    ax.axhline(vehicle.limits.max_thrust, color='k', linestyle='--', alpha=0.5)
    ax.axhline(vehicle.limits.min_thrust, color='k', linestyle='--', alpha=0.5)
    ax.set_ylabel('force [N]')
    ax.set_title(label)
    ax.grid(True, alpha=0.3)
    ax.legend(fontsize=8)

    ax = axes[1, col]
    ax.semilogy(values, np.maximum(costs, 1e-16), 'r-', linewidth=2)
    ax.set_xlabel(label)
    ax.set_ylabel('cost (½‖r‖²)')
    ax.grid(True, alpha=0.3)

    print(f"  {label}: max |F| = {np.max(np.abs(forces)):.3f} N, max cost = {max(costs):.3e}")

plt.tight_layout()
plt.savefig('plots/allocation_sweep.png', dpi=150)
print("  Saved plots/allocation_sweep.png")

# ===== PLOT 2: Surge command while pitched =====
print("\n2. Holding a surge command while the vehicle pitches...")
pitch_angles = np.linspace(-np.pi / 2, np.pi / 2, 61)
surge_cmd = 0.1
forces = []
for theta in pitch_angles:
    q = [0.0, np.sin(theta / 2), 0.0, np.cos(theta / 2)]
    state = tracker.on_sample(q, [0.0, 0.0, 0.0])
    forces.append(allocator.allocate(state, AccelerationCommand([surge_cmd, 0.0, 0.0])).forces)
forces = np.array(forces)

fig, ax = plt.subplots(figsize=(10, 6))
for i, name in enumerate(THRUSTER_NAMES):
    if np.any(np.abs(forces[:, i]) > 1e-9):
        ax.plot(np.degrees(pitch_angles), forces[:, i], linewidth=2, label=name)
ax.set_xlabel('pitch [deg]')
ax.set_ylabel('force [N]')
ax.set_title(f'Forces for surge command {surge_cmd} m/s²')
ax.grid(True, alpha=0.3)
ax.legend()
plt.tight_layout()
plt.savefig('plots/allocation_pitch.png', dpi=150)
print("  Saved plots/allocation_pitch.png")

print("\nDone.")
