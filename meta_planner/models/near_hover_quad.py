"""
Near-Hover Quadrotor Model (no yaw)
===================================

Implements the near-hover quadrotor model used by the tracker.

State Vector:
    x = [p_x, v_x, p_y, v_y, p_z, v_z]^T

Control Inputs:
    u = [pitch, roll, thrust]^T

Continuous-Time Dynamics:
    ṗ_x = v_x      v̇_x = g·tan(pitch)
    ṗ_y = v_y      v̇_y = g·tan(roll)
    ṗ_z = v_z      v̇_z = thrust - g

The model is linear in the velocity channels for fixed control, so the
optimal control for a given value gradient is bang-bang and independent
of the state.
"""

from typing import List, Optional, Sequence

import numpy as np

from .dynamics import Dynamics


# Gravitational acceleration (m/s^2)
G = 9.81


class NearHoverQuadNoYaw(Dynamics):
    """
    Near-hover quadrotor kinematic model without yaw.

    Provides:
    - State derivatives for value function construction
    - Puncture of full states to positions and the axis-to-index mapping
    - Lifting of geometric paths into full-state trajectories
    - Forward simulation with Euler/RK4 integration

    Example:
        quad = NearHoverQuadNoYaw(lower_u=[-0.1, -0.1, 7.81],
                                  upper_u=[0.1, 0.1, 11.81])
        x_dot = quad.evaluate(np.zeros(6), quad.upper_u)
        position = quad.puncture(state)
    """

    X_DIM = 6  # [px, vx, py, vy, pz, vz]
    U_DIM = 3  # [pitch, roll, thrust]
    P_DIM = 3  # [x, y, z]

    def evaluate(self, state: np.ndarray, control: np.ndarray) -> np.ndarray:
        """
        Compute the continuous-time state derivative.

        Args:
            state: Current state [px, vx, py, vy, pz, vz]
            control: Control input [pitch, roll, thrust]

        Returns:
            State derivative
        """
        x_dot = np.array([
            state[1],
            G * np.tan(control[0]),
            state[3],
            G * np.tan(control[1]),
            state[5],
            control[2] - G,
        ])

        return x_dot

    def optimal_control(self, state: np.ndarray, value_gradient: np.ndarray) -> np.ndarray:
        """
        Bang-bang control that drives the value down.

        Every control channel increases the acceleration along its axis, so
        the channel goes to its lower bound wherever the gradient with respect
        to that axis' velocity is positive.

        Args:
            state: Current (relative) state, unused for this linear model
            value_gradient: Gradient of the value function at the state

        Returns:
            Control [pitch, roll, thrust]
        """
        u = np.zeros(self.U_DIM)
        for axis in range(self.P_DIM):
            dv = value_gradient[self.velocity_dimension(axis)]
            u[axis] = self.lower_u[axis] if dv > 0.0 else self.upper_u[axis]

        return u

    def puncture(self, state: np.ndarray) -> np.ndarray:
        """Return the position [px, py, pz] of a full state."""
        state = np.asarray(state, dtype=float)
        return state[[self.spatial_dimension(axis) for axis in range(self.P_DIM)]]

    def spatial_dimension(self, axis: int) -> int:
        if not 0 <= axis < self.P_DIM:
            raise ValueError(f"Spatial axis must be in [0, {self.P_DIM}), got {axis}")
        return 2 * axis

    def velocity_dimension(self, axis: int) -> int:
        if not 0 <= axis < self.P_DIM:
            raise ValueError(f"Spatial axis must be in [0, {self.P_DIM}), got {axis}")
        return 2 * axis + 1

    def lift_geometric_trajectory(self, positions: Sequence[np.ndarray],
                                  times: Sequence[float]) -> List[np.ndarray]:
        """
        Translate a geometric trajectory into full states.

        Velocities are forward differences between consecutive waypoints,
        and the final waypoint is reached at rest.

        Args:
            positions: Waypoints, each [x, y, z]
            times: Time stamp of each waypoint (seconds, increasing)

        Returns:
            List of full states, one per waypoint
        """
        if len(positions) != len(times):
            raise ValueError(
                f"Got {len(positions)} positions but {len(times)} times"
            )

        states = []
        for k, position in enumerate(positions):
            state = np.zeros(self.X_DIM)
            for axis in range(self.P_DIM):
                state[self.spatial_dimension(axis)] = position[axis]

            if k + 1 < len(positions):
                dt = times[k + 1] - times[k]
                if dt > 0.0:
                    velocity = (np.asarray(positions[k + 1]) - np.asarray(position)) / dt
                    for axis in range(self.P_DIM):
                        state[self.velocity_dimension(axis)] = velocity[axis]

            states.append(state)

        return states

    def simulate_step(self, state: np.ndarray, control: np.ndarray, dt: float,
                      disturbance: Optional[np.ndarray] = None,
                      method: str = 'euler') -> np.ndarray:
        """
        Simulate one time step of quadrotor motion.

        Args:
            state: Current state
            control: Control input [pitch, roll, thrust]
            dt: Time step (seconds)
            disturbance: Optional acceleration disturbance [d_x, d_y, d_z]
            method: Integration method ('euler' or 'rk4')

        Returns:
            Next state after time step dt
        """
        control = self.clip_control(control)

        def f(x: np.ndarray) -> np.ndarray:
            dx = self.evaluate(x, control)
            if disturbance is not None:
                for axis in range(self.P_DIM):
                    dx[self.velocity_dimension(axis)] += disturbance[axis]
            return dx

        if method == 'euler':
            # Euler integration: x_{k+1} = x_k + dt * f(x_k, u_k)
            next_state = state + dt * f(state)
        elif method == 'rk4':
            k1 = f(state)
            k2 = f(state + 0.5 * dt * k1)
            k3 = f(state + 0.5 * dt * k2)
            k4 = f(state + dt * k3)
            next_state = state + (dt / 6.0) * (k1 + 2*k2 + 2*k3 + k4)
        else:
            raise ValueError(f"Unknown integration method: {method}")

        return next_state

    def hover_control(self) -> np.ndarray:
        """Control that holds the quadrotor at rest."""
        return self.clip_control(np.array([0.0, 0.0, G]))
