"""
Exceptions
==========

Error taxonomy for the meta-planning stack.

Planning failures are not exceptions: planners return an empty
Trajectory and callers keep their previous one.
"""


class MetaPlannerError(Exception):
    """Base class for all meta_planner errors."""


class ConfigurationError(MetaPlannerError, ValueError):
    """Missing or malformed parameter, or a dimension mismatch."""


class LocalizationError(MetaPlannerError):
    """The current pose of the tracker could not be determined."""
