"""
Trajectory
==========

Time-indexed sequence of full states produced by the planners. Every
sample carries the value function of the planner that produced it, so
the tracker can look up the tracking bound that applies at any time.

Sample k's value function is active over [t_k, t_{k+1}); the last sample's
value function stays active from its time stamp on. States are linearly
interpolated between samples and clamped to the end points outside
[first_time, last_time].
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

import numpy as np
from scipy.interpolate import interp1d

from ..models.dynamics import Dynamics
from ..utils.markers import has_subscribers, publish_all, trajectory_markers
from ..value_functions.value_function import ValueFunction


# Tolerance for matching time stamps at segment seams (seconds)
TIME_TOLERANCE = 1e-9


@dataclass
class TrajectoryPoint:
    """Single sample of a trajectory."""
    t: float                        # Time (seconds)
    state: np.ndarray               # Full state
    value: ValueFunction            # Value function active from t


class Trajectory:
    """
    Planned reference trajectory.

    A Trajectory is built by a single planning run and handed to the
    tracker as a whole; it is not modified after hand-over.

    Example:
        traj = Trajectory.from_states(times, states, value)
        x_ref = traj.get_state(t)
        bound = traj.get_value_function(t).tracking_bound(0)
    """

    def __init__(self):
        self._times: List[float] = []
        self._states: List[np.ndarray] = []
        self._values: List[ValueFunction] = []

        # Cached interpolant, rebuilt lazily after samples change
        self._interpolant: Optional[interp1d] = None

    @classmethod
    def from_states(cls, times: Sequence[float], states: Sequence[np.ndarray],
                    value: ValueFunction) -> 'Trajectory':
        """
        Build a trajectory whose samples all share one value function.

        Args:
            times: Increasing time stamps (seconds)
            states: Full state at each time stamp
            value: Value function of the producing planner

        Returns:
            New trajectory
        """
        if len(times) != len(states):
            raise ValueError(f"Got {len(times)} times but {len(states)} states")

        traj = cls()
        for t, state in zip(times, states):
            traj.add(t, state, value)
        return traj

    def add(self, t: float, state: np.ndarray, value: ValueFunction) -> None:
        """
        Append a sample.

        Raises:
            ValueError: If time does not increase or the state dimension changes
        """
        if value is None:
            raise ValueError("Trajectory samples require a value function")
        if self._times and t <= self._times[-1]:
            raise ValueError(
                f"Trajectory time stamps must increase: {t} after {self._times[-1]}"
            )

        state = np.array(state, dtype=float)
        if self._states and state.shape != self._states[0].shape:
            raise ValueError(
                f"State shape {state.shape} does not match {self._states[0].shape}"
            )

        self._times.append(float(t))
        self._states.append(state)
        self._values.append(value)
        self._interpolant = None

    def concatenate(self, other: 'Trajectory') -> None:
        """
        Append another trajectory that starts where this one ends.

        When the other trajectory's first sample coincides in time with this
        trajectory's last sample, the seam sample is taken from `other`, so
        the incoming value function becomes active exactly at the switch.
        """
        if len(other) == 0:
            return

        if self._times and abs(other.first_time() - self._times[-1]) <= TIME_TOLERANCE:
            self._times.pop()
            self._states.pop()
            self._values.pop()

        for point in other:
            self.add(point.t, point.state, point.value)

    def __len__(self) -> int:
        return len(self._times)

    def __iter__(self):
        for t, state, value in zip(self._times, self._states, self._values):
            yield TrajectoryPoint(t=t, state=state.copy(), value=value)

    @property
    def is_valid(self) -> bool:
        """A trajectory is usable once it holds at least one sample."""
        return len(self._times) > 0

    def _require_samples(self) -> None:
        if not self._times:
            raise RuntimeError("Trajectory is empty")

    def first_time(self) -> float:
        self._require_samples()
        return self._times[0]

    def last_time(self) -> float:
        self._require_samples()
        return self._times[-1]

    @property
    def duration(self) -> float:
        return self.last_time() - self.first_time()

    @property
    def times(self) -> np.ndarray:
        return np.array(self._times)

    @property
    def states(self) -> np.ndarray:
        return np.array(self._states)

    @property
    def values(self) -> List[ValueFunction]:
        return list(self._values)

    def get_state(self, t: float) -> np.ndarray:
        """
        Interpolated state at time t, clamped to the end points.

        Args:
            t: Time in seconds

        Returns:
            Full state
        """
        self._require_samples()
        if len(self._times) == 1:
            return self._states[0].copy()

        if self._interpolant is None:
            states = np.array(self._states)
            self._interpolant = interp1d(
                np.array(self._times), states, axis=0, assume_sorted=True,
                bounds_error=False, fill_value=(states[0], states[-1]),
            )

        return np.asarray(self._interpolant(t), dtype=float)

    def get_value_function(self, t: float) -> ValueFunction:
        """Value function active at time t."""
        self._require_samples()
        idx = int(np.searchsorted(self._times, t, side='right')) - 1
        idx = min(max(idx, 0), len(self._times) - 1)
        return self._values[idx]

    def positions(self, dynamics: Dynamics) -> List[np.ndarray]:
        """Spatial positions of all samples."""
        return [dynamics.puncture(state) for state in self._states]

    def visualize(self, sink: Any, frame_id: str, dynamics: Dynamics) -> int:
        """
        Publish the path coloured by active value function.

        Returns:
            Number of markers published (0 without subscribers)
        """
        if not has_subscribers(sink):
            return 0
        markers = trajectory_markers(
            self.positions(dynamics), [value.id for value in self._values], frame_id)
        return publish_all(sink, markers)

    def __repr__(self) -> str:
        if not self._times:
            return "Trajectory(empty)"
        return (f"Trajectory(samples={len(self)}, t=[{self._times[0]:.3f}, "
                f"{self._times[-1]:.3f}])")
