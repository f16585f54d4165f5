"""
Collision Space Interface
=========================

An axis-aligned box in which planners search. Validity queries are
inflated by the tracking bound of the value functions involved, so a
position is valid only if the whole tracking tube around it is free.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

import numpy as np

from ..value_functions.value_function import ValueFunction


class CollisionSpace(ABC):
    """
    Abstract box-bounded collision space.

    Bounds are set exactly once, before any validity query.
    """

    P_DIM = 3

    def __init__(self):
        self._lower: Optional[np.ndarray] = None
        self._upper: Optional[np.ndarray] = None

    def set_bounds(self, lower: Sequence[float], upper: Sequence[float]) -> None:
        """
        Configure the box bounds.

        Raises:
            ValueError: On wrong dimension or inverted bounds
            RuntimeError: If bounds were already set
        """
        if self._lower is not None:
            raise RuntimeError("Collision space bounds can only be set once")

        lower = np.asarray(lower, dtype=float)
        upper = np.asarray(upper, dtype=float)
        if lower.shape != (self.P_DIM,) or upper.shape != (self.P_DIM,):
            raise ValueError(
                f"Bounds must have length {self.P_DIM}, got {lower.shape} and {upper.shape}"
            )
        if np.any(lower >= upper):
            raise ValueError(f"Lower bound {lower} must be below upper bound {upper}")

        self._lower = lower
        self._upper = upper

    @property
    def has_bounds(self) -> bool:
        return self._lower is not None

    @property
    def lower(self) -> np.ndarray:
        self._require_bounds()
        return self._lower.copy()

    @property
    def upper(self) -> np.ndarray:
        self._require_bounds()
        return self._upper.copy()

    def _require_bounds(self) -> None:
        if self._lower is None:
            raise RuntimeError("Collision space bounds have not been set")

    def sample_position(self, rng: np.random.Generator,
                        dimensions: Sequence[int] = (0, 1, 2),
                        fixed: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Uniform sample inside the box.

        Args:
            rng: Random generator
            dimensions: Axes to sample; the others are copied from `fixed`
            fixed: Position supplying the non-sampled axes

        Returns:
            Sampled position [x, y, z]
        """
        self._require_bounds()
        sample = np.zeros(self.P_DIM) if fixed is None else np.array(fixed, dtype=float)
        for axis in dimensions:
            sample[axis] = rng.uniform(self._lower[axis], self._upper[axis])
        return sample

    @abstractmethod
    def is_valid(self, position: np.ndarray,
                 incoming_value: ValueFunction,
                 outgoing_value: ValueFunction,
                 margin: float = 0.0) -> bool:
        """Whether the tracking tube around a position is collision free."""

    @abstractmethod
    def visualize(self, sink: Any, frame_id: str) -> int:
        """Publish the environment to a display sink."""
