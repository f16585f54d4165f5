"""
Configuration Loader
====================

Typed configuration for the tracker, the planners and the nodes, loaded
from YAML with a `meta:` root:

    meta:
      control: {time_step, dim, upper, lower}
      state:   {dim, upper, lower, start?, goal?}
      planners:
        values: [{id, name, max_planner_speed, max_vel_disturbance,
                  max_acc_disturbance, expansion_vel}, ...]
        rrt:    {step_size, resolution, max_iterations, goal_bias, seed?}
        meta:   {max_iterations, max_connection_radius, goal_bias, seed?}
      sensor:      {radius, rate?, obstacles?}
      replanning:  {asynchronous?}
      topics:  {control, sensor, known_environment, traj, tracking_bound}
      frames:  {fixed, tracker, planner}
      logging: {level?, directory?, max_history?}

State bounds are full states; the collision box is their spatial part.
Start and goal, when given, are positions.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import yaml

from ..exceptions import ConfigurationError


CONTROL_DIM = 3
STATE_DIM = 6
POSITION_DIM = 3

Vector = Tuple[float, ...]


@dataclass(frozen=True)
class ControlConfig:
    time_step: float
    lower: Vector
    upper: Vector


@dataclass(frozen=True)
class StateConfig:
    lower: Vector
    upper: Vector
    start: Optional[Vector] = None
    goal: Optional[Vector] = None


@dataclass(frozen=True)
class ValueFunctionConfig:
    """Parameters of one planner fidelity level."""
    id: int
    name: str
    max_planner_speed: Vector
    max_vel_disturbance: Vector
    max_acc_disturbance: Vector
    expansion_vel: Vector


@dataclass(frozen=True)
class RRTConfig:
    step_size: float = 1.0
    resolution: float = 0.1
    max_iterations: int = 2000
    goal_bias: float = 0.05
    seed: Optional[int] = None


@dataclass(frozen=True)
class MetaConfig:
    max_iterations: int = 200
    max_connection_radius: float = 5.0
    goal_bias: float = 0.2
    seed: Optional[int] = None


@dataclass(frozen=True)
class ObstacleConfig:
    center: Vector
    radius: float


@dataclass(frozen=True)
class SensorConfig:
    radius: float
    rate: float = 10.0
    obstacles: Tuple[ObstacleConfig, ...] = ()


@dataclass(frozen=True)
class TopicsConfig:
    control: str = '/meta/control'
    sensor: str = '/meta/sensor'
    known_environment: str = '/meta/known_environment'
    traj: str = '/meta/traj'
    tracking_bound: str = '/meta/tracking_bound'


@dataclass(frozen=True)
class FramesConfig:
    fixed: str = 'world'
    tracker: str = 'tracker'
    planner: str = 'planner'


@dataclass(frozen=True)
class LoggingConfig:
    level: str = 'INFO'
    directory: Optional[str] = None
    max_history: int = 10000


@dataclass(frozen=True)
class TrackerConfig:
    """Complete validated configuration."""
    control: ControlConfig
    state: StateConfig
    values: Tuple[ValueFunctionConfig, ...]
    sensor: SensorConfig
    rrt: RRTConfig = field(default_factory=RRTConfig)
    meta: MetaConfig = field(default_factory=MetaConfig)
    asynchronous_replanning: bool = False
    topics: TopicsConfig = field(default_factory=TopicsConfig)
    frames: FramesConfig = field(default_factory=FramesConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _section(data: Dict[str, Any], key: str, path: str, required: bool = True) -> Dict[str, Any]:
    value = data.get(key)
    if value is None:
        if required:
            raise ConfigurationError(f"Missing configuration key '{path}{key}'")
        return {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"Configuration key '{path}{key}' must be a mapping")
    return value


def _require(data: Dict[str, Any], key: str, path: str) -> Any:
    if key not in data or data[key] is None:
        raise ConfigurationError(f"Missing configuration key '{path}{key}'")
    return data[key]


def _number(value: Any, name: str, positive: bool = False) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"'{name}' must be a number, got {value!r}")
    if positive and number <= 0.0:
        raise ConfigurationError(f"'{name}' must be positive, got {number}")
    return number


def _vector(value: Any, dim: int, name: str) -> Vector:
    if not isinstance(value, (list, tuple)):
        raise ConfigurationError(f"'{name}' must be a list of {dim} numbers")
    if len(value) != dim:
        raise ConfigurationError(
            f"'{name}' has the wrong dimension: expected {dim}, got {len(value)}"
        )
    return tuple(_number(v, name) for v in value)


def _optional_int(value: Any, name: str) -> Optional[int]:
    if value is None:
        return None
    return _int(value, name)


def _int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"'{name}' must be an integer, got {value!r}")
    return value


def _dimension(section: Dict[str, Any], expected: int, path: str) -> None:
    dim = _require(section, 'dim', path)
    if dim != expected:
        raise ConfigurationError(f"'{path}dim' must be {expected}, got {dim}")


def _parse_control(data: Dict[str, Any]) -> ControlConfig:
    path = 'meta.control.'
    _dimension(data, CONTROL_DIM, path)
    lower = _vector(_require(data, 'lower', path), CONTROL_DIM, path + 'lower')
    upper = _vector(_require(data, 'upper', path), CONTROL_DIM, path + 'upper')
    if any(lo > hi for lo, hi in zip(lower, upper)):
        raise ConfigurationError(f"'{path}lower' exceeds '{path}upper'")

    return ControlConfig(
        time_step=_number(_require(data, 'time_step', path), path + 'time_step', positive=True),
        lower=lower,
        upper=upper,
    )


def _parse_state(data: Dict[str, Any]) -> StateConfig:
    path = 'meta.state.'
    _dimension(data, STATE_DIM, path)
    lower = _vector(_require(data, 'lower', path), STATE_DIM, path + 'lower')
    upper = _vector(_require(data, 'upper', path), STATE_DIM, path + 'upper')
    if any(lo >= hi for lo, hi in zip(lower, upper)):
        raise ConfigurationError(f"'{path}lower' must be below '{path}upper'")

    start = data.get('start')
    goal = data.get('goal')
    return StateConfig(
        lower=lower,
        upper=upper,
        start=None if start is None else _vector(start, POSITION_DIM, path + 'start'),
        goal=None if goal is None else _vector(goal, POSITION_DIM, path + 'goal'),
    )


def _parse_values(entries: Any) -> Tuple[ValueFunctionConfig, ...]:
    path = 'meta.planners.values'
    if not isinstance(entries, list) or not entries:
        raise ConfigurationError(f"'{path}' must list at least one value function")

    values: List[ValueFunctionConfig] = []
    for ii, entry in enumerate(entries):
        item = f"{path}[{ii}]."
        if not isinstance(entry, dict):
            raise ConfigurationError(f"'{path}[{ii}]' must be a mapping")

        value_id = _int(entry.get('id', ii), item + 'id')
        values.append(ValueFunctionConfig(
            id=value_id,
            name=str(entry.get('name', f"value_{value_id}")),
            max_planner_speed=_vector(_require(entry, 'max_planner_speed', item),
                                      POSITION_DIM, item + 'max_planner_speed'),
            max_vel_disturbance=_vector(_require(entry, 'max_vel_disturbance', item),
                                        POSITION_DIM, item + 'max_vel_disturbance'),
            max_acc_disturbance=_vector(_require(entry, 'max_acc_disturbance', item),
                                        POSITION_DIM, item + 'max_acc_disturbance'),
            expansion_vel=_vector(entry.get('expansion_vel', [0.0] * POSITION_DIM),
                                  POSITION_DIM, item + 'expansion_vel'),
        ))

    ids = [value.id for value in values]
    if len(set(ids)) != len(ids):
        raise ConfigurationError(f"'{path}' ids must be unique, got {ids}")

    return tuple(values)


def _parse_rrt(data: Dict[str, Any]) -> RRTConfig:
    path = 'meta.planners.rrt.'
    defaults = RRTConfig()
    return RRTConfig(
        step_size=_number(data.get('step_size', defaults.step_size),
                          path + 'step_size', positive=True),
        resolution=_number(data.get('resolution', defaults.resolution),
                           path + 'resolution', positive=True),
        max_iterations=_int(data.get('max_iterations', defaults.max_iterations),
                            path + 'max_iterations'),
        goal_bias=_number(data.get('goal_bias', defaults.goal_bias), path + 'goal_bias'),
        seed=_optional_int(data.get('seed'), path + 'seed'),
    )


def _parse_meta(data: Dict[str, Any]) -> MetaConfig:
    path = 'meta.planners.meta.'
    defaults = MetaConfig()
    return MetaConfig(
        max_iterations=_int(data.get('max_iterations', defaults.max_iterations),
                            path + 'max_iterations'),
        max_connection_radius=_number(
            data.get('max_connection_radius', defaults.max_connection_radius),
            path + 'max_connection_radius', positive=True),
        goal_bias=_number(data.get('goal_bias', defaults.goal_bias), path + 'goal_bias'),
        seed=_optional_int(data.get('seed'), path + 'seed'),
    )


def _parse_names(data: Dict[str, Any], kind, path: str):
    return kind(**{name: str(_require(data, name, path))
                   for name in kind.__dataclass_fields__})


def _parse_logging(data: Dict[str, Any]) -> LoggingConfig:
    path = 'meta.logging.'
    defaults = LoggingConfig()
    max_history = _int(data.get('max_history', defaults.max_history), path + 'max_history')
    if max_history <= 0:
        raise ConfigurationError(f"'{path}max_history' must be positive, got {max_history}")
    return LoggingConfig(
        level=str(data.get('level', defaults.level)),
        directory=data.get('directory'),
        max_history=max_history,
    )


def _parse_sensor(data: Dict[str, Any]) -> SensorConfig:
    path = 'meta.sensor.'
    obstacles = []
    for ii, entry in enumerate(data.get('obstacles') or []):
        item = f"{path}obstacles[{ii}]."
        if not isinstance(entry, dict):
            raise ConfigurationError(f"'{path}obstacles[{ii}]' must be a mapping")
        obstacles.append(ObstacleConfig(
            center=_vector(_require(entry, 'center', item), POSITION_DIM, item + 'center'),
            radius=_number(_require(entry, 'radius', item), item + 'radius'),
        ))

    return SensorConfig(
        radius=_number(_require(data, 'radius', path), path + 'radius'),
        rate=_number(data.get('rate', 10.0), path + 'rate', positive=True),
        obstacles=tuple(obstacles),
    )


def config_from_dict(data: Dict[str, Any]) -> TrackerConfig:
    """
    Build a validated configuration from a parsed YAML document.

    Args:
        data: Mapping with a `meta` root key

    Returns:
        TrackerConfig

    Raises:
        ConfigurationError: On a missing key, wrong dimension or bad value
    """
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration must be a mapping")
    root = _section(data, 'meta', '')

    planners = _section(root, 'planners', 'meta.')
    replanning = _section(root, 'replanning', 'meta.', required=False)
    topics = _section(root, 'topics', 'meta.')
    frames = _section(root, 'frames', 'meta.')
    logging_section = _section(root, 'logging', 'meta.', required=False)

    return TrackerConfig(
        control=_parse_control(_section(root, 'control', 'meta.')),
        state=_parse_state(_section(root, 'state', 'meta.')),
        values=_parse_values(_require(planners, 'values', 'meta.planners.')),
        sensor=_parse_sensor(_section(root, 'sensor', 'meta.')),
        rrt=_parse_rrt(_section(planners, 'rrt', 'meta.planners.', required=False)),
        meta=_parse_meta(_section(planners, 'meta', 'meta.planners.', required=False)),
        asynchronous_replanning=bool(replanning.get('asynchronous', False)),
        topics=_parse_names(topics, TopicsConfig, 'meta.topics.'),
        frames=_parse_names(frames, FramesConfig, 'meta.frames.'),
        logging=_parse_logging(logging_section),
    )


def load_config(path: str) -> TrackerConfig:
    """
    Load and validate a YAML configuration file.

    Raises:
        ConfigurationError: If the file cannot be read or is invalid
    """
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    return config_from_dict(data)
