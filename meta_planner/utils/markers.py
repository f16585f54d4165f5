"""
Display Markers
===============

Middleware-neutral marker descriptions for the three display channels
(environment, trajectory, tracking bound). The ROS2 tracker node converts
them to visualization_msgs/Marker; offline runs simply collect them.

A sink is any object with a `publish(marker)` method. If it also exposes
`get_subscription_count()` (as rclpy publishers do), publishing is
skipped while nobody listens.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np


Color = Tuple[float, float, float, float]  # (r, g, b, a)

CUBE = 'cube'
SPHERE = 'sphere'
LINE_STRIP = 'line_strip'

# One colour per value function id, cycled
VALUE_FUNCTION_COLORS: Sequence[Color] = (
    (0.2, 0.4, 0.9, 0.9),
    (0.9, 0.3, 0.2, 0.9),
    (0.2, 0.8, 0.3, 0.9),
    (0.9, 0.7, 0.1, 0.9),
)


@dataclass
class Marker:
    """Single display primitive."""
    ns: str
    id: int
    type: str
    frame_id: str
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    scale: np.ndarray = field(default_factory=lambda: np.ones(3))
    color: Color = (1.0, 1.0, 1.0, 1.0)
    points: List[np.ndarray] = field(default_factory=list)
    colors: List[Color] = field(default_factory=list)


def has_subscribers(sink: Optional[Any]) -> bool:
    """True if publishing to the sink can reach anyone."""
    if sink is None:
        return False
    counter = getattr(sink, 'get_subscription_count', None)
    if counter is None:
        return True
    return counter() > 0


def publish_all(sink: Optional[Any], markers: Sequence[Marker]) -> int:
    """Publish markers to a sink. Returns the number published."""
    if not has_subscribers(sink):
        return 0
    for marker in markers:
        sink.publish(marker)
    return len(markers)


def color_for_value_id(value_id: int) -> Color:
    return VALUE_FUNCTION_COLORS[value_id % len(VALUE_FUNCTION_COLORS)]


def environment_markers(lower: np.ndarray, upper: np.ndarray,
                        obstacles: Sequence[Tuple[np.ndarray, float]],
                        frame_id: str) -> List[Marker]:
    """
    Box and obstacle markers.

    Args:
        lower, upper: Box corners
        obstacles: (centre, radius) pairs
        frame_id: Fixed frame

    Returns:
        One cube marker followed by one sphere marker per obstacle
    """
    lower = np.asarray(lower, dtype=float)
    upper = np.asarray(upper, dtype=float)

    markers = [Marker(
        ns='cube', id=0, type=CUBE, frame_id=frame_id,
        position=lower + 0.5 * (upper - lower),
        scale=upper - lower,
        color=(0.3, 0.7, 0.7, 0.5),
    )]

    for ii, (point, radius) in enumerate(obstacles):
        markers.append(Marker(
            ns='sphere', id=ii, type=SPHERE, frame_id=frame_id,
            position=np.asarray(point, dtype=float).copy(),
            scale=np.full(3, 2.0 * radius),
            color=(0.7, 0.5, 0.5, 0.9),
        ))

    return markers


def trajectory_markers(positions: Sequence[np.ndarray], value_ids: Sequence[int],
                       frame_id: str) -> List[Marker]:
    """
    Trajectory path coloured by the value function active at each sample.

    Returns:
        A single line strip marker, or no marker for an empty trajectory
    """
    if len(positions) == 0:
        return []

    return [Marker(
        ns='trajectory', id=0, type=LINE_STRIP, frame_id=frame_id,
        scale=np.array([0.05, 0.0, 0.0]),
        color=(0.2, 0.4, 0.9, 0.9),
        points=[np.asarray(p, dtype=float).copy() for p in positions],
        colors=[color_for_value_id(value_id) for value_id in value_ids],
    )]


def tracking_bound_marker(bounds: Sequence[float], frame_id: str) -> Marker:
    """Cube of the current tracking bound half-widths, centred on the tracker."""
    return Marker(
        ns='bound', id=0, type=CUBE, frame_id=frame_id,
        scale=2.0 * np.asarray(bounds, dtype=float),
        color=(0.9, 0.2, 0.9, 0.3),
    )
