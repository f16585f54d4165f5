"""Dynamics Models - Quadrotor kinematics."""

from .dynamics import Dynamics
from .near_hover_quad import NearHoverQuadNoYaw

__all__ = ['Dynamics', 'NearHoverQuadNoYaw']
