"""
RRT-Connect Search
==================

Bidirectional rapidly-exploring random tree over an axis-aligned box with a
point validity callback.

Search procedure:
    1. Try the straight segment start -> goal.
    2. Grow one tree from each end point. Every iteration extends the active
       tree towards a random sample (or, with probability goal_bias, the
       other tree's root) by at most step_size, then greedily connects the
       other tree to the new node. Trees swap roles after each iteration.
    3. Simplify the joined path by greedy shortcutting.

Segments are checked at points spaced at most `resolution` apart with an
extra clearance of resolution / 2. Every point on a checked segment then
lies within resolution / 2 of a checked point, so the continuous segment is
valid as long as the validity margin is 1-Lipschitz in position.
"""

import logging
from typing import Callable, List, Optional, Sequence

import numpy as np
from scipy.spatial.distance import cdist


logger = logging.getLogger(__name__)

# Validity callback: (position, margin) -> valid
ValidityChecker = Callable[[np.ndarray, float], bool]

# Distance below which two nodes coincide (meters)
CONNECT_TOLERANCE = 1e-9


class _Tree:
    """Tree of positions with parent links."""

    def __init__(self, root: np.ndarray):
        self.nodes: List[np.ndarray] = [root.copy()]
        self.parents: List[int] = [-1]

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def root(self) -> np.ndarray:
        return self.nodes[0]

    def add(self, node: np.ndarray, parent: int) -> int:
        self.nodes.append(node.copy())
        self.parents.append(parent)
        return len(self.nodes) - 1

    def nearest(self, target: np.ndarray) -> int:
        distances = cdist(np.asarray(self.nodes), target.reshape(1, -1))
        return int(np.argmin(distances[:, 0]))

    def path_to_root(self, idx: int) -> List[np.ndarray]:
        path = []
        while idx >= 0:
            path.append(self.nodes[idx].copy())
            idx = self.parents[idx]
        return path


class RRTConnect:
    """
    Bidirectional RRT over a box.

    Attributes:
        step_size: Maximum extension length (meters)
        resolution: Spacing of validity checks along segments (meters)
        max_iterations: Iteration budget of one search
        goal_bias: Probability of steering towards the other tree's root

    Example:
        rrt = RRTConnect(checker, lower, upper, step_size=1.0,
                         resolution=0.1, max_iterations=2000, seed=0)
        path = rrt.search(start, goal)  # None on failure
    """

    def __init__(self,
                 is_valid: ValidityChecker,
                 lower: Sequence[float],
                 upper: Sequence[float],
                 dimensions: Sequence[int] = (0, 1, 2),
                 step_size: float = 1.0,
                 resolution: float = 0.1,
                 max_iterations: int = 2000,
                 goal_bias: float = 0.05,
                 seed: Optional[int] = None):
        if step_size <= 0.0 or resolution <= 0.0:
            raise ValueError(
                f"step_size and resolution must be positive, got {step_size}, {resolution}"
            )
        if max_iterations < 0:
            raise ValueError(f"max_iterations must be non-negative, got {max_iterations}")
        if not 0.0 <= goal_bias <= 1.0:
            raise ValueError(f"goal_bias must be in [0, 1], got {goal_bias}")

        self._is_valid = is_valid
        self._lower = np.asarray(lower, dtype=float)
        self._upper = np.asarray(upper, dtype=float)
        self._dimensions = list(dimensions)

        self.step_size = step_size
        self.resolution = resolution
        self.max_iterations = max_iterations
        self.goal_bias = goal_bias

        self._rng = np.random.default_rng(seed)

    def is_point_valid(self, point: np.ndarray) -> bool:
        return self._is_valid(point, 0.5 * self.resolution)

    def is_segment_valid(self, a: np.ndarray, b: np.ndarray) -> bool:
        """Check points spaced at most `resolution` apart along a -> b."""
        length = float(np.linalg.norm(b - a))
        num_steps = max(1, int(np.ceil(length / self.resolution)))
        for k in range(num_steps + 1):
            if not self.is_point_valid(a + (k / num_steps) * (b - a)):
                return False
        return True

    def _sample(self, fixed: np.ndarray) -> np.ndarray:
        sample = fixed.copy()
        for axis in self._dimensions:
            sample[axis] = self._rng.uniform(self._lower[axis], self._upper[axis])
        return sample

    def _steer(self, source: np.ndarray, target: np.ndarray) -> np.ndarray:
        diff = target - source
        dist = np.linalg.norm(diff)
        if dist <= self.step_size:
            return target.copy()
        return source + (self.step_size / dist) * diff

    def _extend(self, tree: _Tree, target: np.ndarray) -> Optional[int]:
        idx_near = tree.nearest(target)
        node = self._steer(tree.nodes[idx_near], target)
        if not self.is_segment_valid(tree.nodes[idx_near], node):
            return None
        return tree.add(node, idx_near)

    def _connect(self, tree: _Tree, target: np.ndarray) -> Optional[int]:
        """Extend repeatedly until the target is reached or blocked."""
        while True:
            idx = self._extend(tree, target)
            if idx is None:
                return None
            if np.linalg.norm(tree.nodes[idx] - target) < CONNECT_TOLERANCE:
                return idx

    def search(self, start: np.ndarray, goal: np.ndarray) -> Optional[List[np.ndarray]]:
        """
        Find a valid piecewise-linear path.

        Args:
            start: Start position
            goal: Goal position

        Returns:
            Waypoints from start to goal, or None if none was found within
            the iteration budget
        """
        start = np.asarray(start, dtype=float)
        goal = np.asarray(goal, dtype=float)

        if np.linalg.norm(goal - start) < CONNECT_TOLERANCE:
            return [start.copy()] if self.is_point_valid(start) else None

        if self.is_segment_valid(start, goal):
            return [start.copy(), goal.copy()]

        if not self.is_point_valid(start) or not self.is_point_valid(goal):
            return None

        tree_a = _Tree(start)
        tree_b = _Tree(goal)
        swapped = False  # True while tree_a is rooted at the goal

        for iteration in range(self.max_iterations):
            if self._rng.uniform() < self.goal_bias:
                target = tree_b.root.copy()
            else:
                target = self._sample(start)

            idx_a = self._extend(tree_a, target)
            if idx_a is not None:
                idx_b = self._connect(tree_b, tree_a.nodes[idx_a])
                if idx_b is not None:
                    path_a = tree_a.path_to_root(idx_a)[::-1]
                    path_b = tree_b.path_to_root(idx_b)
                    path = path_a + path_b[1:]
                    if swapped:
                        path.reverse()

                    logger.debug("RRT-Connect found a path after %d iterations (%d nodes)",
                                 iteration + 1, len(tree_a) + len(tree_b))
                    return self.shortcut(path)

            tree_a, tree_b = tree_b, tree_a
            swapped = not swapped

        logger.debug("RRT-Connect exhausted %d iterations", self.max_iterations)
        return None

    def shortcut(self, path: List[np.ndarray]) -> List[np.ndarray]:
        """Greedy simplification: jump to the furthest directly reachable waypoint."""
        if len(path) <= 2:
            return path

        result = [path[0]]
        i = 0
        while i < len(path) - 1:
            j = len(path) - 1
            while j > i + 1 and not self.is_segment_valid(path[i], path[j]):
                j -= 1
            result.append(path[j])
            i = j

        return result
