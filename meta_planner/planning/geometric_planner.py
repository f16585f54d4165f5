"""
Geometric Planner
=================

Planner that finds a piecewise-linear path with RRT-Connect and lifts it
into a timed full-state trajectory. Each segment is traversed in the time
the planner model needs along its slowest axis:

    dt_k = max_i |p_{k+1,i} - p_{k,i}| / v_ref_i
"""

import logging
from typing import List, Optional, Sequence

import numpy as np

from ..environment.collision_space import CollisionSpace
from ..models.dynamics import Dynamics
from ..trajectory.trajectory import Trajectory
from ..value_functions.value_function import ValueFunction
from .planner import Planner
from .rrt_connect import RRTConnect


logger = logging.getLogger(__name__)

# Minimum duration of a path segment (seconds)
MIN_SEGMENT_TIME = 1e-3


class GeometricPlanner(Planner):
    """
    RRT-Connect planner for a point-mass planner model.

    Example:
        planner = GeometricPlanner(value, space, quad, step_size=1.0,
                                   resolution=0.1, seed=0)
        traj = planner.plan(start, goal, start_time=0.0)
    """

    def __init__(self,
                 value: ValueFunction,
                 space: CollisionSpace,
                 dynamics: Dynamics,
                 dimensions: Sequence[int] = (0, 1, 2),
                 step_size: float = 1.0,
                 resolution: float = 0.1,
                 max_iterations: int = 2000,
                 goal_bias: float = 0.05,
                 seed: Optional[int] = None):
        super().__init__(value, space, dimensions)

        if dynamics is None:
            raise ValueError("GeometricPlanner requires a dynamics instance")
        for axis in self.dimensions:
            if value.planner_speed(axis) <= 0.0:
                raise ValueError(f"Planner speed along axis {axis} must be positive")

        self._dynamics = dynamics
        self._search = RRTConnect(
            self._is_position_valid, space.lower, space.upper,
            dimensions=self.dimensions, step_size=step_size,
            resolution=resolution, max_iterations=max_iterations,
            goal_bias=goal_bias, seed=seed,
        )

    def _is_position_valid(self, position: np.ndarray, margin: float) -> bool:
        return self.space.is_valid(position, self.value, self.value, margin)

    def segment_time(self, a: np.ndarray, b: np.ndarray) -> float:
        """Time for the planner model to move from a to b."""
        dt = max(abs(b[axis] - a[axis]) / self.value.planner_speed(axis)
                 for axis in self.dimensions)
        return max(dt, MIN_SEGMENT_TIME)

    def _plan(self, start: np.ndarray, stop: np.ndarray, start_time: float) -> Trajectory:
        path = self._search.search(start, stop)
        if path is None:
            logger.debug("Planner %d found no path from %s to %s",
                         self.value.id, start, stop)
            return Trajectory()

        times: List[float] = [start_time]
        for a, b in zip(path[:-1], path[1:]):
            times.append(times[-1] + self.segment_time(a, b))

        states = self._dynamics.lift_geometric_trajectory(path, times)
        return Trajectory.from_states(times, states, self.value)
