"""
Meta Planner
============

Combines planners of different fidelity into one trajectory.

Planners are passed in priority order, fastest (largest tracking bound)
first. The meta planner first asks each planner for the whole path. If
none succeeds, it grows a tree of switch points rooted at the start:
every iteration steers a goal-biased sample to within
max_connection_radius of the nearest switch point and asks the planners,
in order, for that segment. A segment is only accepted if its start is
valid while switching from the value function that reached the switch
point (see CollisionSpace.is_valid). When a new switch point reaches the
goal, the segments along its branch are concatenated.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
from scipy.spatial.distance import cdist

from ..environment.collision_space import CollisionSpace
from ..models.dynamics import Dynamics
from ..trajectory.trajectory import Trajectory
from ..value_functions.value_function import ValueFunction
from .planner import Planner


logger = logging.getLogger(__name__)

# Distance below which two switch points coincide (meters)
SWITCH_TOLERANCE = 1e-6


@dataclass
class SwitchPoint:
    """Node of the switch point tree."""
    position: np.ndarray
    time: float
    value: Optional[ValueFunction]        # Value function that reached this point
    parent: int                           # Index of the parent node, -1 at the root
    segment: Optional[Trajectory] = None  # Trajectory from the parent


class MetaPlanner:
    """
    Sequences planners into a single trajectory with valid switch points.

    Example:
        meta = MetaPlanner(space, quad, max_connection_radius=5.0, seed=0)
        traj = meta.plan(start_state, goal_state, planners, start_time=now)
        if not traj.is_valid:
            ...  # keep the previous trajectory
    """

    def __init__(self,
                 space: CollisionSpace,
                 dynamics: Dynamics,
                 max_iterations: int = 200,
                 max_connection_radius: float = 5.0,
                 goal_bias: float = 0.2,
                 seed: Optional[int] = None):
        if space is None or dynamics is None:
            raise ValueError("MetaPlanner requires a collision space and dynamics")
        if max_connection_radius <= 0.0:
            raise ValueError(
                f"max_connection_radius must be positive, got {max_connection_radius}"
            )
        if not 0.0 <= goal_bias <= 1.0:
            raise ValueError(f"goal_bias must be in [0, 1], got {goal_bias}")

        self._space = space
        self._dynamics = dynamics
        self.max_iterations = max_iterations
        self.max_connection_radius = max_connection_radius
        self.goal_bias = goal_bias
        self._rng = np.random.default_rng(seed)

    def _as_position(self, point: np.ndarray) -> np.ndarray:
        point = np.asarray(point, dtype=float)
        if point.shape == (self._dynamics.X_DIM,):
            return self._dynamics.puncture(point)
        if point.shape == (self._dynamics.P_DIM,):
            return point.copy()
        raise ValueError(
            f"Expected a state of length {self._dynamics.X_DIM} or a position of "
            f"length {self._dynamics.P_DIM}, got shape {point.shape}"
        )

    def plan(self, start: np.ndarray, goal: np.ndarray,
             planners: Sequence[Planner], start_time: float = 0.0) -> Trajectory:
        """
        Plan from start to goal.

        Args:
            start: Start state or position
            goal: Goal state or position
            planners: Planners in priority order
            start_time: Time stamp of the first sample (seconds)

        Returns:
            Trajectory, empty if planning failed
        """
        if not planners:
            raise ValueError("MetaPlanner requires at least one planner")

        start_pos = self._as_position(start)
        goal_pos = self._as_position(goal)

        for planner in planners:
            traj = planner.plan(start_pos, goal_pos, start_time)
            if traj.is_valid:
                logger.debug("Planner %d found the whole path", planner.value.id)
                return traj

        traj = self._plan_with_switching(start_pos, goal_pos, planners, start_time)
        if not traj.is_valid:
            logger.warning("Meta planner found no trajectory from %s to %s",
                           start_pos, goal_pos)
        return traj

    def _plan_with_switching(self, start: np.ndarray, goal: np.ndarray,
                             planners: Sequence[Planner], start_time: float) -> Trajectory:
        tree: List[SwitchPoint] = [
            SwitchPoint(position=start.copy(), time=start_time, value=None, parent=-1)
        ]

        for _ in range(self.max_iterations):
            if self._rng.uniform() < self.goal_bias:
                target = goal.copy()
            else:
                target = self._space.sample_position(self._rng)

            positions = np.array([node.position for node in tree])
            idx_near = int(np.argmin(cdist(positions, target.reshape(1, -1))[:, 0]))
            near = tree[idx_near]

            candidate = self._steer(near.position, target)
            if np.linalg.norm(candidate - near.position) < SWITCH_TOLERANCE:
                continue

            node = self._extend(tree, idx_near, candidate, planners)
            if node is None:
                continue

            tree.append(node)
            idx_new = len(tree) - 1

            if np.linalg.norm(goal - node.position) < SWITCH_TOLERANCE:
                return self._assemble(tree, idx_new)

            if np.linalg.norm(goal - node.position) <= self.max_connection_radius:
                goal_node = self._extend(tree, idx_new, goal, planners)
                if goal_node is not None:
                    tree.append(goal_node)
                    return self._assemble(tree, len(tree) - 1)

        return Trajectory()

    def _steer(self, source: np.ndarray, target: np.ndarray) -> np.ndarray:
        diff = target - source
        dist = np.linalg.norm(diff)
        if dist <= self.max_connection_radius:
            return target.copy()
        return source + (self.max_connection_radius / dist) * diff

    def _extend(self, tree: List[SwitchPoint], idx_from: int, target: np.ndarray,
                planners: Sequence[Planner]) -> Optional[SwitchPoint]:
        """Try planners in order from a switch point to a target."""
        source = tree[idx_from]
        for planner in planners:
            segment = planner.plan(source.position, target, source.time,
                                   incoming_value=source.value)
            if segment.is_valid:
                return SwitchPoint(position=target.copy(), time=segment.last_time(),
                                   value=planner.value, parent=idx_from, segment=segment)
        return None

    @staticmethod
    def _assemble(tree: List[SwitchPoint], idx: int) -> Trajectory:
        segments = []
        while tree[idx].parent >= 0:
            segments.append(tree[idx].segment)
            idx = tree[idx].parent

        traj = Trajectory()
        for segment in reversed(segments):
            traj.concatenate(segment)

        logger.debug("Meta planner switched value functions along %d segments", len(segments))
        return traj
