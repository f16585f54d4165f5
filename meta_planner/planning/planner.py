"""
Planner Interface
=================

A planner finds a collision-free trajectory between two positions inside a
collision space, inflated by the tracking bound of its value function. It
searches only over its configured spatial dimensions; all other coordinates
are frozen at the start position.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Sequence

import numpy as np

from ..environment.collision_space import CollisionSpace
from ..trajectory.trajectory import Trajectory
from ..value_functions.value_function import ValueFunction


logger = logging.getLogger(__name__)

# Tolerance on frozen coordinates between start and goal (meters)
FROZEN_AXIS_TOLERANCE = 1e-8


class Planner(ABC):
    """
    Abstract planner bound to one value function.

    Failure to plan is reported as an empty Trajectory, never by raising.

    Attributes:
        value: Value function tagging every produced sample
        space: Collision space queried during search
        dimensions: Spatial axes the planner searches over
    """

    def __init__(self, value: ValueFunction, space: CollisionSpace,
                 dimensions: Sequence[int] = (0, 1, 2)):
        if value is None:
            raise ValueError("Planner requires a value function")
        if space is None:
            raise ValueError("Planner requires a collision space")

        dimensions = tuple(int(axis) for axis in dimensions)
        if not dimensions or any(not 0 <= axis < space.P_DIM for axis in dimensions):
            raise ValueError(f"Invalid planner dimensions {dimensions}")
        if len(set(dimensions)) != len(dimensions):
            raise ValueError(f"Duplicate planner dimensions {dimensions}")

        self._value = value
        self._space = space
        self._dimensions = dimensions

    @property
    def value(self) -> ValueFunction:
        return self._value

    @property
    def space(self) -> CollisionSpace:
        return self._space

    @property
    def dimensions(self) -> tuple:
        return self._dimensions

    def plan(self, start: np.ndarray, stop: np.ndarray, start_time: float = 0.0,
             incoming_value: Optional[ValueFunction] = None) -> Trajectory:
        """
        Plan a trajectory from start to stop.

        Args:
            start: Start position [x, y, z]
            stop: Goal position [x, y, z]
            start_time: Time stamp of the first sample (seconds)
            incoming_value: Value function active before start, if switching

        Returns:
            Trajectory, empty if no path was found
        """
        start = np.asarray(start, dtype=float)
        stop = np.asarray(stop, dtype=float)

        frozen = [axis for axis in range(self._space.P_DIM) if axis not in self._dimensions]
        for axis in frozen:
            if abs(start[axis] - stop[axis]) > FROZEN_AXIS_TOLERANCE:
                logger.debug("Planner %d cannot move along frozen axis %d", self._value.id, axis)
                return Trajectory()

        incoming = incoming_value if incoming_value is not None else self._value
        if not self._space.is_valid(start, incoming, self._value):
            logger.debug("Planner %d: start %s is not valid", self._value.id, start)
            return Trajectory()
        if not self._space.is_valid(stop, self._value, self._value):
            logger.debug("Planner %d: goal %s is not valid", self._value.id, stop)
            return Trajectory()

        return self._plan(start, stop, start_time)

    @abstractmethod
    def _plan(self, start: np.ndarray, stop: np.ndarray, start_time: float) -> Trajectory:
        """Search between two checked end points."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(value={self._value!r}, dimensions={self._dimensions})"
