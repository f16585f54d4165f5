"""test/test_markers.py - display marker helpers"""

import numpy as np

from meta_planner.utils.markers import (
    CUBE, SPHERE, color_for_value_id, environment_markers, has_subscribers,
    publish_all, tracking_bound_marker, trajectory_markers,
)


class CountingSink:

    def __init__(self, subscribers=None):
        self.subscribers = subscribers
        self.published = []
        if subscribers is not None:
            self.get_subscription_count = lambda: self.subscribers

    def publish(self, marker):
        self.published.append(marker)


def test_has_subscribers():
    assert not has_subscribers(None)
    assert has_subscribers(CountingSink())
    assert has_subscribers(CountingSink(subscribers=2))
    assert not has_subscribers(CountingSink(subscribers=0))


def test_publish_all_respects_subscribers():
    markers = [tracking_bound_marker([1.0, 1.0, 1.0], 'tracker')]

    listening = CountingSink(subscribers=1)
    idle = CountingSink(subscribers=0)

    assert publish_all(listening, markers) == 1
    assert publish_all(idle, markers) == 0
    assert idle.published == []


def test_environment_markers():
    markers = environment_markers(np.full(3, -2.0), np.full(3, 4.0),
                                  [(np.array([1.0, 0.0, 0.0]), 0.5)], 'world')

    assert [m.type for m in markers] == [CUBE, SPHERE]
    np.testing.assert_allclose(markers[0].position, [1.0, 1.0, 1.0])
    np.testing.assert_allclose(markers[0].scale, [6.0, 6.0, 6.0])
    np.testing.assert_allclose(markers[1].scale, [1.0, 1.0, 1.0])
    assert all(m.frame_id == 'world' for m in markers)


def test_tracking_bound_marker_is_full_width():
    marker = tracking_bound_marker([0.5, 0.5, 0.25], 'tracker')
    np.testing.assert_allclose(marker.scale, [1.0, 1.0, 0.5])
    np.testing.assert_allclose(marker.position, np.zeros(3))


def test_trajectory_markers():
    assert trajectory_markers([], [], 'world') == []

    markers = trajectory_markers([np.zeros(3), np.ones(3)], [0, 1], 'world')
    assert len(markers) == 1
    assert markers[0].colors == [color_for_value_id(0), color_for_value_id(1)]


def test_colors_cycle():
    assert color_for_value_id(0) == color_for_value_id(4)
