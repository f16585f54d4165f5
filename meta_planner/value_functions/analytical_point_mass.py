"""
Analytical Point-Mass Value Function
====================================

Closed-form tracking-error value function between the near-hover
quadrotor (tracker) and a point-mass planner moving at most v_ref along
each axis. Axes are treated independently.

Per axis, with relative position x, relative velocity v and
a = a_max - d_a (net acceleration authority):

Acceleration surface:
    V_A = -x + (½(v - v_ref)² - v_ref²(1 + e)) / a

Braking surface:
    V_B =  x - (-½(v + v_ref)² + v_ref²(1 + e)) / a

Value:
    V = max over axes of max(V_A, V_B)

Tracking bound (position where the two parabolas intersect):
    TEB = ½(v_ref + d_v)²(1 + e) / a

where e = e_v(2·v_ref + ½·e_v) / a expands the set boundaries by the
expansion velocity e_v.
"""

from typing import Sequence, Tuple

import numpy as np

from ..models.dynamics import Dynamics
from .value_function import ValueFunction


# Floor for denominators in the closed-form surfaces
EPSILON = 1e-8

# Priority thresholds as fractions of the value at the zero relative state
PRIORITY_RELATIVE_HIGH = 0.20
PRIORITY_RELATIVE_LOW = 0.05


class AnalyticalPointMassValueFunction(ValueFunction):
    """
    Point-mass value function with closed-form value, gradient and control.

    All derived constants are computed once at construction; the object is
    immutable afterwards.

    Attributes:
        max_planner_speed: Maximum planner speed per axis (m/s)
        u_max, u_min: Tracker control bounds
        d_v, d_a: Velocity and acceleration disturbance bounds
        a_max: Maximum tracker acceleration per axis
        u2a: Control-to-acceleration gain per axis
        expand: Boundary expansion factor per axis

    Example:
        value = AnalyticalPointMassValueFunction(
            max_planner_speed=[1.0, 1.0, 1.0],
            max_tracker_control=[0.1, 0.1, 11.81],
            min_tracker_control=[-0.1, -0.1, 7.81],
            max_vel_disturbance=[0.1, 0.1, 0.1],
            max_acc_disturbance=[0.1, 0.1, 0.1],
            expansion_vel=[0.1, 0.1, 0.1],
            dynamics=quad, value_id=0)

        u = value.optimal_control(tracker_state - planner_state)
    """

    X_DIM = 6
    U_DIM = 3

    def __init__(self,
                 max_planner_speed: Sequence[float],
                 max_tracker_control: Sequence[float],
                 min_tracker_control: Sequence[float],
                 max_vel_disturbance: Sequence[float],
                 max_acc_disturbance: Sequence[float],
                 expansion_vel: Sequence[float],
                 dynamics: Dynamics,
                 value_id: int = 0):
        """
        Initialize the value function.

        Args:
            max_planner_speed: Maximum planner speed per axis (m/s)
            max_tracker_control: Upper tracker control bound
            min_tracker_control: Lower tracker control bound
            max_vel_disturbance: Velocity disturbance bound per axis
            max_acc_disturbance: Acceleration disturbance bound per axis
            expansion_vel: Velocity margin expanding the set boundaries
            dynamics: Tracker dynamics
            value_id: Identifier of this fidelity level

        Raises:
            ValueError: If dynamics is missing or a vector has the wrong length
        """
        super().__init__(dynamics, self.X_DIM, self.U_DIM, value_id)

        p_dim = dynamics.P_DIM
        self.max_planner_speed = self._as_vector(max_planner_speed, p_dim, 'max_planner_speed')
        self.u_max = self._as_vector(max_tracker_control, self.U_DIM, 'max_tracker_control')
        self.u_min = self._as_vector(min_tracker_control, self.U_DIM, 'min_tracker_control')
        self.d_v = self._as_vector(max_vel_disturbance, p_dim, 'max_vel_disturbance')
        self.d_a = self._as_vector(max_acc_disturbance, p_dim, 'max_acc_disturbance')
        expansion_vel = self._as_vector(expansion_vel, p_dim, 'expansion_vel')

        if np.any(self.max_planner_speed < 0.0):
            raise ValueError(f"max_planner_speed must be non-negative, got {self.max_planner_speed}")

        # Max acceleration (assumed symmetric even if u_max != -u_min)
        x_dot_max = dynamics.evaluate(np.zeros(dynamics.X_DIM), self.u_max)
        accel_max = np.array([x_dot_max[dynamics.velocity_dimension(axis)]
                              for axis in range(p_dim)])
        self.a_max = np.abs(accel_max)

        # Control gains
        half_range = np.maximum(0.5 * (self.u_max - self.u_min), EPSILON)
        self.u2a = accel_max / half_range

        # Net acceleration authority against the worst disturbance
        self._authority = np.maximum(self.a_max - self.d_a, EPSILON)

        # Expansion of set boundaries in the position dimension
        self.expand = (expansion_vel * (2.0 * self.max_planner_speed + 0.5 * expansion_vel)
                       / self._authority)

        # Tracking bounds depend only on the constants above
        self._tracking_bounds = (0.5 * (self.max_planner_speed + self.d_v)**2
                                 * (1.0 + self.expand) / self._authority)

    @staticmethod
    def _as_vector(values: Sequence[float], dim: int, name: str) -> np.ndarray:
        if values is None:
            raise ValueError(f"{name} is required")
        vector = np.asarray(values, dtype=float)
        if vector.shape != (dim,):
            raise ValueError(f"{name} must have length {dim}, got shape {vector.shape}")
        return vector

    def _surfaces(self, state: np.ndarray, axis: int) -> Tuple[float, float, float, float]:
        """Relative position, velocity and the (V_A, V_B) surfaces on one axis."""
        x = state[self._dynamics.spatial_dimension(axis)]
        v = state[self._dynamics.velocity_dimension(axis)]
        v_ref = self.max_planner_speed[axis]
        a = self._authority[axis]
        reach = v_ref * v_ref * (1.0 + self.expand[axis])

        # + for x "below" the convex acceleration parabola
        V_A = -x + (0.5 * (v - v_ref)**2 - reach) / a

        # + for x "above" the concave braking parabola
        V_B = x - (-0.5 * (v + v_ref)**2 + reach) / a

        return x, v, V_A, V_B

    def value(self, state: np.ndarray) -> float:
        """
        Evaluate the value at a relative state.

        The worst axis dominates: the result is the maximum over axes of the
        larger of the two surfaces.

        Args:
            state: Relative state (tracker minus planner)

        Returns:
            Signed margin to the safety boundary (negative is inside)
        """
        V = -np.inf
        for axis in range(self._dynamics.P_DIM):
            _, _, V_A, V_B = self._surfaces(state, axis)
            V = max(V, V_A, V_B)

        return float(V)

    def gradient(self, state: np.ndarray) -> np.ndarray:
        """
        Per-axis gradient of the active surface.

        Every axis contributes the partials of its own larger surface, not
        only the axis attaining the overall maximum. Ties use the braking
        surface.

        Args:
            state: Relative state

        Returns:
            Gradient vector of length x_dim
        """
        grad_V = np.zeros(self._x_dim)

        for axis in range(self._dynamics.P_DIM):
            _, v, V_A, V_B = self._surfaces(state, axis)
            v_ref = self.max_planner_speed[axis]
            a = self._authority[axis]
            pos_idx = self._dynamics.spatial_dimension(axis)
            vel_idx = self._dynamics.velocity_dimension(axis)

            if V_A > V_B:
                # On the acceleration side the gradient points towards -pos
                grad_V[pos_idx] = -1.0
                grad_V[vel_idx] = (v - v_ref) / a
            else:
                grad_V[pos_idx] = 1.0
                grad_V[vel_idx] = (v + v_ref) / a

        return grad_V

    def optimal_control(self, state: np.ndarray) -> np.ndarray:
        """
        Optimal tracking control at a relative state.

        Per axis, only the outside rule is applied:
            x >= 0: brake while the acceleration surface is negative,
                    otherwise accelerate
            x <  0: accelerate while the braking surface is negative,
                    otherwise brake

        Args:
            state: Relative state

        Returns:
            Control [pitch, roll, thrust] at the bound chosen per axis
        """
        u_opt = np.zeros(self._u_dim)

        for axis in range(self._dynamics.P_DIM):
            x, _, V_A, V_B = self._surfaces(state, axis)

            # Acceleration and deceleration input along this axis
            u_acc = self.u_max[axis] if self.u2a[axis] > 0.0 else self.u_min[axis]
            u_dec = self.u_min[axis] if self.u2a[axis] > 0.0 else self.u_max[axis]

            if x >= 0.0:
                u_opt[axis] = u_dec if V_A < 0.0 else u_acc
            else:
                u_opt[axis] = u_acc if V_B < 0.0 else u_dec

        return u_opt

    def priority(self, state: np.ndarray) -> float:
        """
        Blend weight of the safety control.

        Interpolates the value between two thresholds taken as fractions
        of the value at the zero relative state, clamped to [0, 1] and
        inverted.

        NOTE: the thresholds scale the value at the zero state, which is the
        minimum of the value over the safe set rather than its maximum.

        Args:
            state: Relative state

        Returns:
            Priority in [0, 1]
        """
        V = self.value(state)
        V_safest = self.value(np.zeros(self._x_dim))

        V_high = PRIORITY_RELATIVE_HIGH * V_safest
        V_low = PRIORITY_RELATIVE_LOW * V_safest

        span = V_high - V_low
        if abs(span) < EPSILON:
            span = -EPSILON if span <= 0.0 else EPSILON

        return 1.0 - min(max(0.0, (V - V_low) / span), 1.0)

    def planner_speed(self, axis: int) -> float:
        return float(self.max_planner_speed[axis])

    def tracking_bound(self, axis: int) -> float:
        """
        Tracking error bound along a spatial axis.

        Semi-length of the interval centred on zero, equal to the position
        at the intersection of the two parabolas.
        """
        return float(self._tracking_bounds[axis])

    def switching_tracking_bound(self, axis: int, incoming: ValueFunction) -> float:
        """
        Tracking bound while switching from `incoming` into this value function.

        For point-mass to point-mass switching the position error carries
        over, so the bound is the incoming value function's own bound.
        """
        if incoming is None:
            raise ValueError("Switching bound requires an incoming value function")
        return incoming.tracking_bound(axis)
