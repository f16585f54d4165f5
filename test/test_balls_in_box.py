"""test/test_balls_in_box.py - BallsInBox collision space tests"""

import numpy as np
import pytest

from meta_planner.environment.balls_in_box import BallsInBox


class TestBounds:

    def test_bounds_set_once(self, space):
        with pytest.raises(RuntimeError):
            space.set_bounds(np.zeros(3), np.ones(3))

    def test_inverted_bounds_raise(self):
        with pytest.raises(ValueError):
            BallsInBox().set_bounds(np.ones(3), np.zeros(3))

    def test_query_without_bounds_raises(self, fast_value):
        with pytest.raises(RuntimeError):
            BallsInBox().is_valid(np.zeros(3), fast_value, fast_value)


class TestObstacles:

    def test_is_obstacle_after_add(self, space):
        space.add_obstacle(np.array([1.0, 2.0, 3.0]), 0.5)
        assert space.is_obstacle(np.array([1.0, 2.0, 3.0]), 0.5)

    def test_zero_radius_is_reflexive(self, space):
        space.add_obstacle(np.array([1.0, 2.0, 3.0]), 0.0)
        assert space.is_obstacle(np.array([1.0, 2.0, 3.0]), 0.0)

    def test_different_radius_is_new(self, space):
        space.add_obstacle(np.array([1.0, 2.0, 3.0]), 0.5)
        assert not space.is_obstacle(np.array([1.0, 2.0, 3.0]), 0.75)
        assert not space.is_obstacle(np.array([1.0, 2.0, 3.5]), 0.5)

    def test_guarded_add_keeps_count(self, space):
        point = np.array([4.0, 0.0, 0.0])
        for _ in range(3):
            if not space.is_obstacle(point, 1.0):
                space.add_obstacle(point, 1.0)
        assert space.num_obstacles == 1

    def test_wrong_point_dimension_raises(self, space):
        with pytest.raises(ValueError):
            space.add_obstacle(np.zeros(2), 1.0)


class TestValidity:

    def test_obstacle_centre_invalid(self, space, fast_value):
        space.add_obstacle(np.zeros(3), 1.0)
        assert not space.is_valid(np.zeros(3), fast_value, fast_value)

    def test_far_position_valid(self, space, fast_value):
        space.add_obstacle(np.zeros(3), 1.0)
        assert space.is_valid(np.array([5.0, 5.0, 5.0]), fast_value, fast_value)

    def test_tube_must_fit_in_box(self, space, fast_value):
        # 9.5 + 0.84 > 10
        assert not space.is_valid(np.array([9.5, 0.0, 0.0]), fast_value, fast_value)
        assert space.is_valid(np.array([9.0, 0.0, 0.0]), fast_value, fast_value)

    def test_tube_corner_hits_obstacle(self, space, fast_value, slow_value):
        space.add_obstacle(np.array([5.0, 5.0, 5.0]), 1.0)
        position = np.array([4.0, 4.0, 4.0])

        assert not space.is_valid(position, fast_value, fast_value)
        assert space.is_valid(position, slow_value, slow_value)

    def test_switch_uses_incoming_bound(self, space, fast_value, slow_value):
        space.add_obstacle(np.array([5.0, 5.0, 5.0]), 1.0)
        position = np.array([4.0, 4.0, 4.0])

        assert not space.is_valid(position, fast_value, slow_value)
        assert space.is_valid(position, slow_value, fast_value)

    def test_margin_shrinks_free_space(self, space, fast_value):
        assert space.is_valid(np.array([9.0, 0.0, 0.0]), fast_value, fast_value)
        assert not space.is_valid(np.array([9.0, 0.0, 0.0]), fast_value, fast_value,
                                  margin=0.5)

    def test_missing_value_raises(self, space, fast_value):
        with pytest.raises(ValueError):
            space.is_valid(np.zeros(3), None, fast_value)


class TestSensing:

    def test_nothing_sensed(self, space):
        found, positions, radii = space.sense_obstacles(np.zeros(3), 3.0)
        assert not found
        assert positions == []
        assert radii == []

    def test_boundary_included(self, space):
        space.add_obstacle(np.array([3.0, 0.0, 0.0]), 1.0)

        found, positions, radii = space.sense_obstacles(np.zeros(3), 2.0)

        assert found
        np.testing.assert_array_equal(positions[0], [3.0, 0.0, 0.0])
        assert radii == [1.0]

    def test_just_out_of_range(self, space):
        space.add_obstacle(np.array([3.0, 0.0, 0.0]), 1.0)
        found, _, _ = space.sense_obstacles(np.zeros(3), 1.999)
        assert not found

    def test_only_obstacles_in_range(self, space):
        space.add_obstacle(np.array([2.0, 0.0, 0.0]), 0.5)
        space.add_obstacle(np.array([-8.0, 0.0, 0.0]), 0.5)

        found, positions, _ = space.sense_obstacles(np.zeros(3), 3.0)

        assert found
        assert len(positions) == 1


class TestVisualize:

    class Sink:
        def __init__(self, subscribers=1):
            self.subscribers = subscribers
            self.published = []

        def get_subscription_count(self):
            return self.subscribers

        def publish(self, marker):
            self.published.append(marker)

    def test_publishes_box_and_spheres(self, space):
        space.add_obstacle(np.array([1.0, 1.0, 1.0]), 0.5)
        space.add_obstacle(np.array([-1.0, 1.0, 1.0]), 0.5)
        sink = self.Sink()

        assert space.visualize(sink, 'world') == 3
        assert [m.type for m in sink.published] == ['cube', 'sphere', 'sphere']

    def test_skips_without_subscribers(self, space):
        sink = self.Sink(subscribers=0)
        assert space.visualize(sink, 'world') == 0
        assert sink.published == []
