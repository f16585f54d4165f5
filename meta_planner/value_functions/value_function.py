"""
Value Function Interface
========================

A value function solves the pursuit problem between the tracker (true
vehicle) and one planner model. It is evaluated on the relative state
(tracker minus planner) and is immutable after construction, so it is
shared freely between planners, trajectories and the tracker.
"""

from abc import ABC, abstractmethod

import numpy as np

from ..models.dynamics import Dynamics


class ValueFunction(ABC):
    """
    Abstract tracking-error value function.

    Attributes:
        dynamics: Tracker dynamics this value function was computed for
        x_dim: Relative state dimension
        u_dim: Control dimension
        id: Opaque identifier of the planner fidelity level
    """

    def __init__(self, dynamics: Dynamics, x_dim: int, u_dim: int, value_id: int):
        if dynamics is None:
            raise ValueError("Value function requires a dynamics instance")
        if x_dim != dynamics.X_DIM or u_dim != dynamics.U_DIM:
            raise ValueError(
                f"Value function dimensions ({x_dim}, {u_dim}) do not match "
                f"dynamics ({dynamics.X_DIM}, {dynamics.U_DIM})"
            )

        self._dynamics = dynamics
        self._x_dim = x_dim
        self._u_dim = u_dim
        self._id = value_id

    @property
    def dynamics(self) -> Dynamics:
        return self._dynamics

    @property
    def x_dim(self) -> int:
        return self._x_dim

    @property
    def u_dim(self) -> int:
        return self._u_dim

    @property
    def id(self) -> int:
        return self._id

    @abstractmethod
    def value(self, state: np.ndarray) -> float:
        """Signed margin to the safety boundary (negative is inside)."""

    @abstractmethod
    def gradient(self, state: np.ndarray) -> np.ndarray:
        """Gradient of the value with respect to the relative state."""

    @abstractmethod
    def optimal_control(self, state: np.ndarray) -> np.ndarray:
        """Locally optimal tracking control at the relative state."""

    @abstractmethod
    def priority(self, state: np.ndarray) -> float:
        """Blend weight in [0, 1] for the safety control."""

    @abstractmethod
    def planner_speed(self, axis: int) -> float:
        """Maximum speed of the planner model along a spatial axis."""

    @abstractmethod
    def tracking_bound(self, axis: int) -> float:
        """Half-width of the invariant tracking tube along a spatial axis."""

    @abstractmethod
    def switching_tracking_bound(self, axis: int, incoming: 'ValueFunction') -> float:
        """Tube half-width while switching into this value function."""

    def tracking_bounds(self) -> np.ndarray:
        """Tracking bound along every spatial axis."""
        return np.array([self.tracking_bound(axis)
                         for axis in range(self._dynamics.P_DIM)])

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self._id})"
