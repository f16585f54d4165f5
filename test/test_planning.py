"""test/test_planning.py - RRT-Connect, geometric planner and meta planner tests"""

import numpy as np
import pytest

from meta_planner.environment.balls_in_box import BallsInBox
from meta_planner.planning import GeometricPlanner, MetaPlanner, Planner, RRTConnect
from meta_planner.trajectory.trajectory import Trajectory


def make_space(half_width):
    space = BallsInBox()
    space.set_bounds(np.full(3, -half_width), np.full(3, half_width))
    return space


def lifted(quad, position):
    """Full state at rest at a position."""
    return quad.lift_geometric_trajectory([np.asarray(position, dtype=float)], [0.0])[0]


def assert_never_invalid(traj, space, quad, num_samples=500):
    for t in np.linspace(traj.first_time(), traj.last_time(), num_samples):
        position = quad.puncture(traj.get_state(t))
        value = traj.get_value_function(t)
        assert space.is_valid(position, value, value), f"invalid at t={t:.3f}: {position}"


class StraightLinePlanner(Planner):
    """Connects end points directly, up to a maximum distance."""

    def __init__(self, value, space, dynamics, max_length):
        super().__init__(value, space)
        self.dynamics = dynamics
        self.max_length = max_length

    def _plan(self, start, stop, start_time):
        if np.linalg.norm(stop - start) > self.max_length:
            return Trajectory()
        dt = max(max(abs(stop - start)) / self.value.planner_speed(0), 1e-3)
        times = [start_time, start_time + dt]
        states = self.dynamics.lift_geometric_trajectory([start, stop], times)
        return Trajectory.from_states(times, states, self.value)


# =========================================================================
# RRT-Connect
# =========================================================================

class TestRRTConnect:

    def test_straight_segment_in_free_space(self):
        rrt = RRTConnect(lambda p, margin: True, np.full(3, -5.0), np.full(3, 5.0), seed=0)
        path = rrt.search(np.zeros(3), np.array([3.0, 0.0, 0.0]))
        assert len(path) == 2

    def test_routes_around_wall(self):
        # Slab at x in [-0.5, 0.5] with a gap above y = 2
        def is_valid(p, margin):
            return not (abs(p[0]) <= 0.5 + margin and p[1] < 2.0 + margin)

        rrt = RRTConnect(is_valid, np.full(3, -5.0), np.full(3, 5.0),
                         dimensions=(0, 1), seed=0)
        start = np.array([-3.0, 0.0, 0.0])
        goal = np.array([3.0, 0.0, 0.0])

        path = rrt.search(start, goal)

        assert path is not None
        np.testing.assert_array_equal(path[0], start)
        np.testing.assert_array_equal(path[-1], goal)
        assert all(p[2] == 0.0 for p in path)
        for a, b in zip(path[:-1], path[1:]):
            assert rrt.is_segment_valid(a, b)

    def test_identical_end_points(self):
        rrt = RRTConnect(lambda p, margin: True, np.full(3, -5.0), np.full(3, 5.0))
        path = rrt.search(np.ones(3), np.ones(3))
        assert len(path) == 1

    def test_invalid_goal_fails(self):
        rrt = RRTConnect(lambda p, margin: p[0] < 2.0, np.full(3, -5.0), np.full(3, 5.0),
                         max_iterations=50, seed=0)
        assert rrt.search(np.zeros(3), np.array([3.0, 0.0, 0.0])) is None

    @pytest.mark.parametrize("kwargs", [
        {'step_size': 0.0},
        {'resolution': -0.1},
        {'goal_bias': 1.5},
        {'max_iterations': -1},
    ])
    def test_bad_parameters_raise(self, kwargs):
        with pytest.raises(ValueError):
            RRTConnect(lambda p, margin: True, np.zeros(3), np.ones(3), **kwargs)


# =========================================================================
# Geometric planner
# =========================================================================

class TestGeometricPlanner:

    def test_straight_line_in_empty_space(self, quad, fast_value, space):
        planner = GeometricPlanner(fast_value, space, quad, seed=0)

        traj = planner.plan(np.zeros(3), np.array([5.0, 0.0, 0.0]), start_time=2.0)

        assert traj.is_valid
        assert len(traj) == 2
        assert traj.first_time() == 2.0
        assert traj.duration == pytest.approx(5.0)
        np.testing.assert_allclose(quad.puncture(traj.states[-1]), [5.0, 0.0, 0.0])
        np.testing.assert_allclose(traj.states[-1][[1, 3, 5]], np.zeros(3))
        assert all(value is fast_value for value in traj.values)

    def test_slow_planner_takes_longer(self, quad, slow_value, space):
        planner = GeometricPlanner(slow_value, space, quad, seed=0)
        traj = planner.plan(np.zeros(3), np.array([0.0, 3.0, 0.0]))
        assert traj.duration == pytest.approx(6.0)

    def test_invalid_start_returns_empty(self, quad, fast_value, space):
        space.add_obstacle(np.zeros(3), 1.0)
        planner = GeometricPlanner(fast_value, space, quad, seed=0)
        traj = planner.plan(np.zeros(3), np.array([5.0, 0.0, 0.0]))
        assert not traj.is_valid

    def test_invalid_goal_returns_empty(self, quad, fast_value, space):
        space.add_obstacle(np.array([5.0, 0.0, 0.0]), 1.0)
        planner = GeometricPlanner(fast_value, space, quad, seed=0)
        traj = planner.plan(np.zeros(3), np.array([5.0, 0.0, 0.0]))
        assert not traj.is_valid

    def test_frozen_axis_must_match(self, quad, fast_value, space):
        planner = GeometricPlanner(fast_value, space, quad, dimensions=(0, 1), seed=0)

        moved = planner.plan(np.zeros(3), np.array([3.0, 3.0, 1.0]))
        level = planner.plan(np.zeros(3), np.array([3.0, 3.0, 0.0]))

        assert not moved.is_valid
        assert level.is_valid
        np.testing.assert_array_equal(level.states[:, 4], 0.0)

    def test_routes_around_obstacle(self, quad, fast_value, space):
        space.add_obstacle(np.array([2.5, 0.0, 0.0]), 1.0)
        planner = GeometricPlanner(fast_value, space, quad, seed=0)

        traj = planner.plan(np.zeros(3), np.array([5.0, 0.0, 0.0]))

        assert traj.is_valid
        assert len(traj) > 2
        assert_never_invalid(traj, space, quad)

    def test_bad_dimensions_raise(self, quad, fast_value, space):
        with pytest.raises(ValueError):
            GeometricPlanner(fast_value, space, quad, dimensions=(0, 3))
        with pytest.raises(ValueError):
            GeometricPlanner(fast_value, space, quad, dimensions=(1, 1))


# =========================================================================
# Meta planner
# =========================================================================

class TestMetaPlanner:

    def test_single_planner_empty_space(self, quad, fast_value):
        space = make_space(12.0)
        planner = GeometricPlanner(fast_value, space, quad, seed=0)
        meta = MetaPlanner(space, quad, seed=0)

        start = lifted(quad, [-10.0, 0.0, 0.0])
        goal = lifted(quad, [10.0, 0.0, 0.0])
        traj = meta.plan(start, goal, [planner])

        assert traj.is_valid
        np.testing.assert_allclose(quad.puncture(traj.states[0]), [-10.0, 0.0, 0.0], atol=1e-9)
        np.testing.assert_allclose(quad.puncture(traj.states[-1]), [10.0, 0.0, 0.0], atol=1e-9)

    def test_replan_around_blocking_obstacle(self, quad, fast_value):
        space = make_space(12.0)
        space.add_obstacle(np.zeros(3), 2.0)
        planner = GeometricPlanner(fast_value, space, quad, seed=0)
        meta = MetaPlanner(space, quad, seed=0)

        traj = meta.plan(lifted(quad, [-10.0, 0.0, 0.0]), lifted(quad, [10.0, 0.0, 0.0]),
                         [planner])

        assert traj.is_valid
        assert_never_invalid(traj, space, quad)

    def test_falls_back_to_slower_planner(self, quad, fast_value, slow_value, space):
        # The fast tube around the goal touches the obstacle, the slow one does not
        space.add_obstacle(np.array([5.0, 5.0, 5.0]), 1.0)
        fast = GeometricPlanner(fast_value, space, quad, seed=0)
        slow = GeometricPlanner(slow_value, space, quad, seed=0)
        meta = MetaPlanner(space, quad, seed=0)

        traj = meta.plan(np.zeros(3), np.array([4.0, 4.0, 4.0]), [fast, slow])

        assert traj.is_valid
        assert all(value is slow_value for value in traj.values)

    def test_switches_between_planners(self, quad, fast_value, slow_value, space):
        space.add_obstacle(np.array([5.0, 5.0, 5.0]), 1.0)
        fast = GeometricPlanner(fast_value, space, quad, seed=0)
        short_range = StraightLinePlanner(slow_value, space, quad, max_length=2.0)
        meta = MetaPlanner(space, quad, goal_bias=1.0, seed=0)
        goal = np.array([4.0, 4.0, 4.0])

        traj = meta.plan(np.zeros(3), goal, [fast, short_range])

        assert traj.is_valid
        values = traj.values
        assert values[0] is fast_value
        assert values[-1] is slow_value
        np.testing.assert_allclose(quad.puncture(traj.states[-1]), goal)

        # The switch point is valid under the incoming (fast) tube
        switch = next(k for k, value in enumerate(values) if value is slow_value)
        position = quad.puncture(traj.states[switch])
        assert space.is_valid(position, fast_value, slow_value)

    def test_times_increase_across_segments(self, quad, fast_value, slow_value, space):
        space.add_obstacle(np.array([5.0, 5.0, 5.0]), 1.0)
        fast = GeometricPlanner(fast_value, space, quad, seed=0)
        short_range = StraightLinePlanner(slow_value, space, quad, max_length=2.0)
        meta = MetaPlanner(space, quad, goal_bias=1.0, seed=0)

        traj = meta.plan(np.zeros(3), np.array([4.0, 4.0, 4.0]), [fast, short_range],
                         start_time=10.0)

        assert traj.first_time() == 10.0
        assert np.all(np.diff(traj.times) > 0.0)

    def test_unreachable_goal_returns_empty(self, quad, fast_value, space):
        space.add_obstacle(np.array([5.0, 0.0, 0.0]), 1.0)
        planner = GeometricPlanner(fast_value, space, quad, seed=0)
        meta = MetaPlanner(space, quad, max_iterations=20, seed=0)

        traj = meta.plan(np.zeros(3), np.array([5.0, 0.0, 0.0]), [planner])

        assert not traj.is_valid

    def test_requires_planners(self, quad, space):
        with pytest.raises(ValueError):
            MetaPlanner(space, quad).plan(np.zeros(3), np.ones(3), [])

    def test_rejects_wrong_shape(self, quad, fast_value, space):
        planner = GeometricPlanner(fast_value, space, quad)
        with pytest.raises(ValueError):
            MetaPlanner(space, quad).plan(np.zeros(4), np.ones(3), [planner])
