"""
Balls In Box
============

Box environment with spherical obstacles. Collision queries scan every
obstacle; no spatial index is kept since obstacle counts stay small.

Validity of a position p for a switch from value function V_in into
V_out, with b_i = V_out.switching_tracking_bound(i, V_in):

    lower_i + b_i <= p_i <= upper_i - b_i      (every axis)
    |p - c| > r                                (every obstacle (c, r))
    |corner(p) - c| > r                        (nearest tube corner)

where corner(p)_i = p_i - b_i if p_i > c_i else p_i + b_i. The corner test
assumes the tracking tube is no larger than twice the obstacle diameter.
"""

import threading
from dataclasses import dataclass
from typing import Any, List, Sequence, Tuple

import numpy as np

from ..utils.markers import environment_markers, has_subscribers, publish_all
from ..value_functions.value_function import ValueFunction
from .collision_space import CollisionSpace


# Smallest admissible radius and tolerance for obstacle identity
SMALL_NUMBER = 1e-8


@dataclass(frozen=True)
class Obstacle:
    """Spherical obstacle representation."""
    center: Tuple[float, float, float]  # centre (meters)
    radius: float  # radius (meters)

    def distance_to(self, point: np.ndarray) -> float:
        """Compute distance from point to obstacle center."""
        return float(np.linalg.norm(np.asarray(point, dtype=float) - np.asarray(self.center)))

    def matches(self, point: np.ndarray, radius: float) -> bool:
        """Whether (point, radius) describes this obstacle."""
        return (self.distance_to(point) < SMALL_NUMBER and
                abs(max(radius, SMALL_NUMBER) - self.radius) < SMALL_NUMBER)


class BallsInBox(CollisionSpace):
    """
    Axis-aligned box with an append-only list of spherical obstacles.

    Obstacle insertion and every query hold the same lock, so a planning
    run concurrent with sensing sees each obstacle either entirely or not
    at all.

    Example:
        space = BallsInBox()
        space.set_bounds([-20, -20, -20], [20, 20, 20])
        space.add_obstacle(np.array([0.0, 0.0, 0.0]), 2.0)
        space.is_valid(np.array([5.0, 0.0, 0.0]), value, value)
    """

    def __init__(self):
        super().__init__()
        self._obstacles: List[Obstacle] = []
        self._lock = threading.RLock()

    @property
    def obstacles(self) -> List[Obstacle]:
        """Snapshot of the known obstacles in insertion order."""
        with self._lock:
            return list(self._obstacles)

    @property
    def num_obstacles(self) -> int:
        with self._lock:
            return len(self._obstacles)

    def add_obstacle(self, point: Sequence[float], radius: float) -> Obstacle:
        """
        Add a spherical obstacle of the given radius.

        Radii are floored at a small positive number.

        Returns:
            The stored obstacle
        """
        point = np.asarray(point, dtype=float)
        if point.shape != (self.P_DIM,):
            raise ValueError(f"Obstacle centre must have length {self.P_DIM}, got {point.shape}")

        obstacle = Obstacle(center=tuple(float(c) for c in point),
                            radius=max(float(radius), SMALL_NUMBER))
        with self._lock:
            self._obstacles.append(obstacle)
        return obstacle

    def is_obstacle(self, point: Sequence[float], radius: float) -> bool:
        """Check if an obstacle with this centre and radius is already known."""
        with self._lock:
            return any(obs.matches(point, radius) for obs in self._obstacles)

    def is_valid(self, position: np.ndarray,
                 incoming_value: ValueFunction,
                 outgoing_value: ValueFunction,
                 margin: float = 0.0) -> bool:
        """
        Collision check of the tracking tube around a position.

        Args:
            position: Query position [x, y, z]
            incoming_value: Value function being switched from
            outgoing_value: Value function being switched into
            margin: Extra clearance added to faces and obstacle radii

        Returns:
            True if the position is valid
        """
        self._require_bounds()
        if incoming_value is None or outgoing_value is None:
            raise ValueError("Validity queries require incoming and outgoing value functions")

        position = np.asarray(position, dtype=float)
        bounds = np.array([outgoing_value.switching_tracking_bound(axis, incoming_value)
                           for axis in range(self.P_DIM)])

        # Check bounds
        if np.any(position < self._lower + bounds + margin) or \
           np.any(position > self._upper - bounds - margin):
            return False

        with self._lock:
            obstacles = list(self._obstacles)

        for obs in obstacles:
            center = np.asarray(obs.center)
            clearance = obs.radius + margin

            # Start by checking the position directly against the centre
            if np.linalg.norm(position - center) <= clearance:
                return False

            # Corner of the tracking box closest to this obstacle
            corner = np.where(position - center > 0.0,
                              position - bounds, position + bounds)
            if np.linalg.norm(corner - center) <= clearance:
                return False

        return True

    def sense_obstacles(self, position: Sequence[float],
                        sensor_radius: float) -> Tuple[bool, List[np.ndarray], List[float]]:
        """
        Find obstacles within a sensing radius.

        An obstacle is sensed when its sphere touches the sensing sphere,
        boundary included.

        Args:
            position: Sensor position [x, y, z]
            sensor_radius: Sensing radius (meters)

        Returns:
            Tuple of (found, positions, radii); positions and radii are
            empty when nothing was found
        """
        position = np.asarray(position, dtype=float)
        positions: List[np.ndarray] = []
        radii: List[float] = []

        with self._lock:
            obstacles = list(self._obstacles)

        for obs in obstacles:
            if obs.distance_to(position) <= obs.radius + sensor_radius:
                positions.append(np.asarray(obs.center))
                radii.append(obs.radius)

        return len(positions) > 0, positions, radii

    def visualize(self, sink: Any, frame_id: str) -> int:
        """
        Publish the box and obstacle spheres.

        Returns:
            Number of markers published (0 without subscribers)
        """
        if not self.has_bounds or not has_subscribers(sink):
            return 0
        markers = environment_markers(
            self._lower, self._upper,
            [(np.asarray(obs.center), obs.radius) for obs in self.obstacles],
            frame_id,
        )
        return publish_all(sink, markers)
