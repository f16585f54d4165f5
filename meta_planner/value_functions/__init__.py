"""Value Functions - Tracking-error reachability solutions."""

from .value_function import ValueFunction
from .analytical_point_mass import AnalyticalPointMassValueFunction

__all__ = ['ValueFunction', 'AnalyticalPointMassValueFunction']
