"""
conftest.py - pytest fixtures shared across the test suite.

Provides the quadrotor model, two value functions of different fidelity,
an empty collision box and a complete tracker configuration so that the
individual test modules stay short.
"""

import copy

import numpy as np
import pytest

from meta_planner.config.loader import config_from_dict
from meta_planner.environment.balls_in_box import BallsInBox
from meta_planner.models.near_hover_quad import NearHoverQuadNoYaw
from meta_planner.value_functions.analytical_point_mass import AnalyticalPointMassValueFunction


CONTROL_LOWER = [-0.1, -0.1, 7.81]
CONTROL_UPPER = [0.1, 0.1, 11.81]

BASE_CONFIG = {
    'meta': {
        'control': {
            'time_step': 0.02,
            'dim': 3,
            'upper': CONTROL_UPPER,
            'lower': CONTROL_LOWER,
        },
        'state': {
            'dim': 6,
            'upper': [10.0] * 6,
            'lower': [-10.0] * 6,
        },
        'planners': {
            'values': [
                {'id': 0, 'name': 'fast',
                 'max_planner_speed': [1.0, 1.0, 1.0],
                 'max_vel_disturbance': [0.1, 0.1, 0.1],
                 'max_acc_disturbance': [0.1, 0.1, 0.1],
                 'expansion_vel': [0.1, 0.1, 0.1]},
                {'id': 1, 'name': 'slow',
                 'max_planner_speed': [0.5, 0.5, 0.5],
                 'max_vel_disturbance': [0.1, 0.1, 0.1],
                 'max_acc_disturbance': [0.1, 0.1, 0.1],
                 'expansion_vel': [0.1, 0.1, 0.1]},
            ],
            'rrt': {'step_size': 1.0, 'resolution': 0.1,
                    'max_iterations': 2000, 'goal_bias': 0.05, 'seed': 0},
            'meta': {'max_iterations': 200, 'max_connection_radius': 5.0,
                     'goal_bias': 0.2, 'seed': 0},
        },
        'sensor': {'radius': 3.0},
        'replanning': {'asynchronous': False},
        'topics': {
            'control': '/meta/control',
            'sensor': '/meta/sensor',
            'known_environment': '/meta/known_environment',
            'traj': '/meta/traj',
            'tracking_bound': '/meta/tracking_bound',
        },
        'frames': {'fixed': 'world', 'tracker': 'tracker', 'planner': 'planner'},
        'logging': {'level': 'WARNING', 'directory': None},
    }
}


# =========================================================================
# Model fixtures
# =========================================================================

@pytest.fixture
def quad() -> NearHoverQuadNoYaw:
    """Near-hover quadrotor with symmetric attitude bounds."""
    return NearHoverQuadNoYaw(lower_u=CONTROL_LOWER, upper_u=CONTROL_UPPER)


def make_value(quad, speed: float, value_id: int) -> AnalyticalPointMassValueFunction:
    return AnalyticalPointMassValueFunction(
        max_planner_speed=[speed] * 3,
        max_tracker_control=CONTROL_UPPER,
        min_tracker_control=CONTROL_LOWER,
        max_vel_disturbance=[0.1] * 3,
        max_acc_disturbance=[0.1] * 3,
        expansion_vel=[0.1] * 3,
        dynamics=quad,
        value_id=value_id,
    )


@pytest.fixture
def fast_value(quad) -> AnalyticalPointMassValueFunction:
    """Value function for a 1 m/s planner (id 0)."""
    return make_value(quad, 1.0, 0)


@pytest.fixture
def slow_value(quad) -> AnalyticalPointMassValueFunction:
    """Value function for a 0.5 m/s planner (id 1)."""
    return make_value(quad, 0.5, 1)


# =========================================================================
# Environment fixtures
# =========================================================================

@pytest.fixture
def space() -> BallsInBox:
    """Empty 20 m cube centred on the origin."""
    box = BallsInBox()
    box.set_bounds(np.full(3, -10.0), np.full(3, 10.0))
    return box


# =========================================================================
# Configuration fixtures
# =========================================================================

@pytest.fixture
def config_dict() -> dict:
    """Fresh copy of the base configuration mapping."""
    return copy.deepcopy(BASE_CONFIG)


@pytest.fixture
def config(config_dict):
    """Validated tracker configuration."""
    return config_from_dict(config_dict)
