"""Trajectory - Time-indexed reference trajectories."""

from .trajectory import Trajectory, TrajectoryPoint

__all__ = ['Trajectory', 'TrajectoryPoint']
