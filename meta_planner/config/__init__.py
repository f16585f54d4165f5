"""Configuration - Typed YAML configuration."""

from .loader import (
    ControlConfig,
    FramesConfig,
    LoggingConfig,
    MetaConfig,
    ObstacleConfig,
    RRTConfig,
    SensorConfig,
    StateConfig,
    TopicsConfig,
    TrackerConfig,
    ValueFunctionConfig,
    config_from_dict,
    load_config,
)

__all__ = [
    'ControlConfig', 'FramesConfig', 'LoggingConfig', 'MetaConfig',
    'ObstacleConfig', 'RRTConfig', 'SensorConfig', 'StateConfig',
    'TopicsConfig', 'TrackerConfig', 'ValueFunctionConfig',
    'config_from_dict', 'load_config',
]
