"""Environment - Collision space with spherical obstacles."""

from .collision_space import CollisionSpace
from .balls_in_box import BallsInBox, Obstacle

__all__ = ['CollisionSpace', 'BallsInBox', 'Obstacle']
