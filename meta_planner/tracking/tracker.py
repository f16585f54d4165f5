"""
Tracker
=======

Control loop around the meta planner. The tracker owns the dynamics, the
collision space, one value function and planner per configured fidelity
level, and the current reference trajectory.

Event sources:
    sensor_callback(point, radius)  new obstacle -> replan
    timer_callback()                one control tick per time step

Control tick:
    1. Replan once if there is no trajectory or time is past its end
    2. Read the tracker position; velocity by finite difference
    3. Reference state and active value function at the current time
    4. u = value.optimal_control(state - reference)
    5. Publish control, tracking bound, environment and trajectory

The tracker is middleware-free: pose source, clock and output sinks are
injected, so the same class runs inside the ROS2 node and offline.
"""

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

import numpy as np

from ..config.loader import TrackerConfig
from ..environment.balls_in_box import BallsInBox
from ..exceptions import LocalizationError
from ..logging.tracking_logger import TrackingLogger
from ..models.near_hover_quad import NearHoverQuadNoYaw
from ..planning.geometric_planner import GeometricPlanner
from ..planning.meta_planner import MetaPlanner
from ..trajectory.trajectory import Trajectory
from ..utils.markers import publish_all, tracking_bound_marker
from ..value_functions.analytical_point_mass import AnalyticalPointMassValueFunction


# Offset of the default goal below the upper state bound (meters)
DEFAULT_GOAL_OFFSET = 1.5

PoseSource = Callable[[], Sequence[float]]
Clock = Callable[[], float]


class TrackerState(Enum):
    """Lifecycle of the tracker."""
    UNINITIALIZED = "uninitialized"
    PLANNING = "planning"
    TRACKING = "tracking"
    REPLANNING = "replanning"


@dataclass
class ControlTick:
    """Record of one control tick."""
    t: float
    state: np.ndarray
    reference: np.ndarray
    relative: np.ndarray
    control: np.ndarray
    value_id: int
    tracking_bound: np.ndarray


class Tracker:
    """
    Meta-planning tracker.

    Attributes:
        config: Validated configuration
        dynamics: Near-hover quadrotor model
        space: Known obstacle map
        values: Value functions in planner priority order
        planners: Planners in priority order
        replan_count: Number of meta planner runs so far

    Example:
        tracker = Tracker(config, pose_source=lambda: quad_position,
                          clock=sim_clock, control_sink=control_out)
        tracker.initialize()
        tracker.sensor_callback(obstacle_center, obstacle_radius)
        tick = tracker.timer_callback()
    """

    def __init__(self, config: TrackerConfig,
                 pose_source: PoseSource,
                 clock: Clock = time.time,
                 control_sink: Optional[Any] = None,
                 environment_sink: Optional[Any] = None,
                 trajectory_sink: Optional[Any] = None,
                 bound_sink: Optional[Any] = None,
                 logger: Optional[TrackingLogger] = None):
        """
        Initialize the tracker. No planning happens until initialize().

        Args:
            config: Validated configuration
            pose_source: Returns the tracker position [x, y, z] in the fixed
                frame; raises LocalizationError when unavailable
            clock: Returns the current time in seconds
            control_sink: Receives one control vector per tick via publish()
            environment_sink: Receives environment markers
            trajectory_sink: Receives trajectory markers
            bound_sink: Receives the tracking bound marker
            logger: Structured logger; created from config when omitted
        """
        self.config = config
        self._pose_source = pose_source
        self._clock = clock

        self._control_sink = control_sink
        self._environment_sink = environment_sink
        self._trajectory_sink = trajectory_sink
        self._bound_sink = bound_sink

        self.log = logger or TrackingLogger(
            log_dir=config.logging.directory,
            log_level=config.logging.level,
            node_name='tracker',
            max_history=config.logging.max_history
        )

        self.dynamics: Optional[NearHoverQuadNoYaw] = None
        self.space: Optional[BallsInBox] = None
        self.values: List[AnalyticalPointMassValueFunction] = []
        self.planners: List[GeometricPlanner] = []
        self._meta: Optional[MetaPlanner] = None

        self._status = TrackerState.UNINITIALIZED
        self._lock = threading.Lock()
        self._trajectory: Optional[Trajectory] = None
        self._state: Optional[np.ndarray] = None
        self._goal: Optional[np.ndarray] = None
        self._first_time = True
        self._generation = 0
        self.replan_count = 0

        self._executor: Optional[ThreadPoolExecutor] = None
        self._pending: Optional[Future] = None
        if config.asynchronous_replanning:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='replan')

    @property
    def status(self) -> TrackerState:
        return self._status

    @property
    def trajectory(self) -> Optional[Trajectory]:
        """Current reference trajectory (None before the first successful plan)."""
        with self._lock:
            return self._trajectory

    @property
    def state(self) -> Optional[np.ndarray]:
        with self._lock:
            return None if self._state is None else self._state.copy()

    @property
    def goal(self) -> Optional[np.ndarray]:
        return None if self._goal is None else self._goal.copy()

    def _full_state(self, position: Sequence[float]) -> np.ndarray:
        state = np.zeros(self.dynamics.X_DIM)
        for axis in range(self.dynamics.P_DIM):
            state[self.dynamics.spatial_dimension(axis)] = position[axis]
        return state

    def initialize(self) -> None:
        """
        Build the planning stack and run the meta planner once.

        Raises:
            RuntimeError: If the tracker was already initialized
        """
        if self._status != TrackerState.UNINITIALIZED:
            raise RuntimeError("Tracker is already initialized")

        control = self.config.control
        state_cfg = self.config.state

        self.dynamics = NearHoverQuadNoYaw(lower_u=control.lower, upper_u=control.upper)

        state_lower = np.array(state_cfg.lower)
        state_upper = np.array(state_cfg.upper)
        self.space = BallsInBox()
        self.space.set_bounds(self.dynamics.puncture(state_lower),
                              self.dynamics.puncture(state_upper))

        rrt = self.config.rrt
        for ii, params in enumerate(self.config.values):
            value = AnalyticalPointMassValueFunction(
                max_planner_speed=params.max_planner_speed,
                max_tracker_control=control.upper,
                min_tracker_control=control.lower,
                max_vel_disturbance=params.max_vel_disturbance,
                max_acc_disturbance=params.max_acc_disturbance,
                expansion_vel=params.expansion_vel,
                dynamics=self.dynamics,
                value_id=params.id,
            )
            self.values.append(value)
            self.planners.append(GeometricPlanner(
                value, self.space, self.dynamics,
                step_size=rrt.step_size,
                resolution=rrt.resolution,
                max_iterations=rrt.max_iterations,
                goal_bias=rrt.goal_bias,
                seed=None if rrt.seed is None else rrt.seed + ii,
            ))

        meta = self.config.meta
        self._meta = MetaPlanner(
            self.space, self.dynamics,
            max_iterations=meta.max_iterations,
            max_connection_radius=meta.max_connection_radius,
            goal_bias=meta.goal_bias,
            seed=meta.seed,
        )

        # Start at the centre of the box and aim for its upper corner, at rest
        if state_cfg.start is not None:
            start = self._full_state(state_cfg.start)
        else:
            start = self._full_state(self.dynamics.puncture(0.5 * (state_lower + state_upper)))
        if state_cfg.goal is not None:
            goal = self._full_state(state_cfg.goal)
        else:
            goal = self._full_state(self.dynamics.puncture(state_upper) - DEFAULT_GOAL_OFFSET)

        with self._lock:
            self._state = start
        self._goal = goal
        self._first_time = True

        self.log.log_simulation_event("Tracker initialized", {
            "planners": len(self.planners),
            "start": np.round(self.dynamics.puncture(start), 3).tolist(),
            "goal": np.round(self.dynamics.puncture(goal), 3).tolist(),
        })

        self._status = TrackerState.PLANNING
        self._run_meta_planner('initial', self._next_generation())
        self.space.visualize(self._environment_sink, self.config.frames.fixed)
        self._status = TrackerState.TRACKING

    def _next_generation(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def _run_meta_planner(self, trigger: str, generation: int) -> bool:
        """Plan from the current state to the goal and adopt the result if current."""
        now = self._clock()
        with self._lock:
            start = self._state.copy()
            self.replan_count += 1

        traj = self._meta.plan(start, self._goal, self.planners, start_time=now)

        adopted = False
        with self._lock:
            if traj.is_valid and generation == self._generation:
                self._trajectory = traj
                adopted = True

        if traj.is_valid and not adopted:
            self.log.logger.info(f"Discarding outdated {trigger} replan result")
        self.log.log_replan(now, trigger, traj.is_valid, num_samples=len(traj),
                            duration=traj.duration if traj.is_valid else None)
        return adopted

    def _request_replan(self, trigger: str) -> bool:
        generation = self._next_generation()
        if self._executor is None:
            return self._run_meta_planner(trigger, generation)

        self._pending = self._executor.submit(self._run_meta_planner, trigger, generation)
        return True

    def wait_for_replan(self, timeout: Optional[float] = None) -> bool:
        """Block until a background replan finishes. Returns whether it was adopted."""
        pending = self._pending
        if pending is None:
            return False
        return pending.result(timeout=timeout)

    def sensor_callback(self, point: Sequence[float], radius: float) -> bool:
        """
        Handle a sensed obstacle.

        Unknown obstacles are added to the map and trigger a replan.

        Args:
            point: Obstacle centre [x, y, z]
            radius: Obstacle radius (meters)

        Returns:
            True if a replan was triggered
        """
        if self._status == TrackerState.UNINITIALIZED:
            raise RuntimeError("Tracker must be initialized before sensing")

        point = np.asarray(point, dtype=float)
        t = self._clock()
        if self.space.is_obstacle(point, radius):
            return False

        self.space.add_obstacle(point, radius)
        self.log.log_obstacle(t, point, radius, is_new=True)

        self._status = TrackerState.REPLANNING
        self._request_replan('obstacle')
        self._status = TrackerState.TRACKING

        self.space.visualize(self._environment_sink, self.config.frames.fixed)
        return True

    def timer_callback(self) -> Optional[ControlTick]:
        """
        Run one control tick.

        Returns:
            Tick record, or None if the tick was skipped
        """
        if self._status == TrackerState.UNINITIALIZED:
            raise RuntimeError("Tracker must be initialized before the control loop runs")

        now = self._clock()
        traj = self.trajectory
        if traj is None or not traj.is_valid or now > traj.last_time():
            self.log.logger.warning(
                f"t={now:.3f} | Current time is past the end of the planned trajectory"
            )
            self._status = TrackerState.REPLANNING
            self._run_meta_planner('stale', self._next_generation())
            self._status = TrackerState.TRACKING

            now = self._clock()
            traj = self.trajectory

        if traj is None:
            self.log.logger.warning("No trajectory available, skipping control tick")
            return None

        try:
            position = np.asarray(self._pose_source(), dtype=float)
        except LocalizationError as e:
            self.log.logger.warning(f"Could not determine current state: {e}")
            return None

        state = self._update_state(position)

        reference = traj.get_state(now)
        value = traj.get_value_function(now)
        relative = state - reference

        control = value.optimal_control(relative)
        if not np.all(np.isfinite(control)):
            self.log.log_error("tracker", "NumericError", f"Non-finite control {control}",
                               recovery_action="Skipping control tick")
            return None

        if self._control_sink is not None:
            self._control_sink.publish(control)

        bounds = value.tracking_bounds()
        frames = self.config.frames
        publish_all(self._bound_sink, [tracking_bound_marker(bounds, frames.tracker)])
        self.space.visualize(self._environment_sink, frames.fixed)
        traj.visualize(self._trajectory_sink, frames.fixed, self.dynamics)

        self.log.log_state(now, state, reference, relative,
                           positions=[self.dynamics.spatial_dimension(axis)
                                      for axis in range(self.dynamics.P_DIM)])
        self.log.log_control(now, control, value.id, tracking_bound=bounds)

        return ControlTick(t=now, state=state, reference=reference, relative=relative,
                           control=control, value_id=value.id, tracking_bound=bounds)

    def _update_state(self, position: np.ndarray) -> np.ndarray:
        """Store the measured position and its finite-difference velocity."""
        time_step = self.config.control.time_step
        with self._lock:
            previous = self._state
            state = np.zeros(self.dynamics.X_DIM)
            for axis in range(self.dynamics.P_DIM):
                pos_idx = self.dynamics.spatial_dimension(axis)
                vel_idx = self.dynamics.velocity_dimension(axis)
                state[pos_idx] = position[axis]
                if not self._first_time:
                    state[vel_idx] = (position[axis] - previous[pos_idx]) / time_step

            self._first_time = False
            self._state = state
            return state.copy()

    def shutdown(self) -> None:
        """Stop background replanning."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
