"""Tracking - Meta-planning tracker control loop."""

from .tracker import ControlTick, Tracker, TrackerState

__all__ = ['Tracker', 'TrackerState', 'ControlTick']
