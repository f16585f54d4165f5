"""
Dynamics Interface
==================

Capability interface for tracker dynamics. Implementations are pure:
they hold only their control bounds and never mutate after construction,
so one instance may be shared by every value function and planner.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence

import numpy as np


class Dynamics(ABC):
    """
    Abstract tracker dynamics.

    Subclasses define the class constants X_DIM (state dimension),
    U_DIM (control dimension) and P_DIM (spatial dimension).
    """

    X_DIM = 0
    U_DIM = 0
    P_DIM = 3

    def __init__(self, lower_u: Sequence[float], upper_u: Sequence[float]):
        """
        Initialize dynamics with control bounds.

        Args:
            lower_u: Lower control bound per channel
            upper_u: Upper control bound per channel

        Raises:
            ValueError: If the bounds have the wrong length or are inverted
        """
        lower_u = np.asarray(lower_u, dtype=float)
        upper_u = np.asarray(upper_u, dtype=float)

        if lower_u.shape != (self.U_DIM,) or upper_u.shape != (self.U_DIM,):
            raise ValueError(
                f"Control bounds must have length {self.U_DIM}, got "
                f"{lower_u.shape} and {upper_u.shape}"
            )
        if np.any(lower_u > upper_u):
            raise ValueError(f"Lower control bound {lower_u} exceeds upper bound {upper_u}")

        self.lower_u = lower_u
        self.upper_u = upper_u

    @abstractmethod
    def evaluate(self, state: np.ndarray, control: np.ndarray) -> np.ndarray:
        """Time derivative of state at the given state and control."""

    @abstractmethod
    def optimal_control(self, state: np.ndarray, value_gradient: np.ndarray) -> np.ndarray:
        """Control minimizing the value derivative for the given gradient."""

    @abstractmethod
    def puncture(self, state: np.ndarray) -> np.ndarray:
        """Project a full state onto its spatial position."""

    @abstractmethod
    def spatial_dimension(self, axis: int) -> int:
        """Full state index holding the position along a spatial axis."""

    @abstractmethod
    def velocity_dimension(self, axis: int) -> int:
        """Full state index holding the velocity along a spatial axis."""

    @abstractmethod
    def lift_geometric_trajectory(self, positions: Sequence[np.ndarray],
                                  times: Sequence[float]) -> List[np.ndarray]:
        """Turn a timed sequence of positions into full states."""

    def clip_control(self, control: np.ndarray) -> np.ndarray:
        """Clip control inputs to actuator limits."""
        return np.clip(np.asarray(control, dtype=float), self.lower_u, self.upper_u)
