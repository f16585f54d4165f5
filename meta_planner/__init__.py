"""
Meta Planner Package
====================

Meta-planning and safety tracking for a quadrotor flying through a
partially known field of spherical obstacles.

This package implements:
- Closed-form point-mass reachability value functions (tracking bounds,
  optimal tracking control)
- A box-bounded obstacle map with tracking-bound-inflated collision checks
- Fidelity-ordered planners composed by a meta-planner
- A tracker control loop that replans on new obstacles or stale trajectories

Modules:
    - models: Quadrotor dynamics
    - value_functions: Tracking-error value functions
    - environment: Collision space with spherical obstacles
    - trajectory: Time-indexed reference trajectories
    - planning: Geometric planners and the meta-planner
    - tracking: Tracker control loop
    - config: YAML configuration loading and validation
    - nodes: ROS2 node implementations
    - logging: Structured tracking logs
    - utils: Markers and plotting helpers
"""

__version__ = "1.0.0"
__author__ = "Developer"
