"""Planning - Geometric planners and the meta-planner."""

from .planner import Planner
from .rrt_connect import RRTConnect
from .geometric_planner import GeometricPlanner
from .meta_planner import MetaPlanner

__all__ = ['Planner', 'RRTConnect', 'GeometricPlanner', 'MetaPlanner']
