"""test/test_config.py - YAML configuration loading and validation"""

import os

import pytest
import yaml

from meta_planner.config.loader import config_from_dict, load_config
from meta_planner.exceptions import ConfigurationError, MetaPlannerError


CONFIG_FILE = os.path.join(os.path.dirname(__file__), '..', 'config', 'meta_planner.yaml')


class TestConfigFromDict:

    def test_valid_config(self, config):
        assert config.control.time_step == 0.02
        assert config.control.upper == (0.1, 0.1, 11.81)
        assert config.state.lower == (-10.0,) * 6
        assert [value.name for value in config.values] == ['fast', 'slow']
        assert config.values[1].max_planner_speed == (0.5, 0.5, 0.5)
        assert config.sensor.radius == 3.0
        assert config.rrt.seed == 0
        assert not config.asynchronous_replanning
        assert config.logging.directory is None

    def test_defaults_for_optional_sections(self, config_dict):
        root = config_dict['meta']
        for key in ('replanning', 'logging'):
            del root[key]
        del root['planners']['rrt']

        config = config_from_dict(config_dict)

        assert config.rrt.step_size == 1.0
        assert config.rrt.seed is None
        assert config.frames.fixed == 'world'
        assert config.topics.control == '/meta/control'
        assert config.logging.level == 'INFO'
        assert config.logging.max_history == 10000

    def test_expansion_velocity_defaults_to_zero(self, config_dict):
        del config_dict['meta']['planners']['values'][0]['expansion_vel']
        config = config_from_dict(config_dict)
        assert config.values[0].expansion_vel == (0.0, 0.0, 0.0)

    def test_missing_root(self):
        with pytest.raises(ConfigurationError, match="'meta'"):
            config_from_dict({'control': {}})

    @pytest.mark.parametrize("section", ['control', 'state', 'planners', 'sensor',
                                         'topics', 'frames'])
    def test_missing_section(self, config_dict, section):
        del config_dict['meta'][section]
        with pytest.raises(ConfigurationError, match=f"meta.{section}"):
            config_from_dict(config_dict)

    @pytest.mark.parametrize("section, key", [('topics', 'traj'), ('frames', 'planner')])
    def test_missing_name_is_named(self, config_dict, section, key):
        del config_dict['meta'][section][key]
        with pytest.raises(ConfigurationError, match=f"meta.{section}.{key}"):
            config_from_dict(config_dict)

    @pytest.mark.parametrize("planner", ['rrt', 'meta'])
    def test_null_max_iterations(self, config_dict, planner):
        config_dict['meta']['planners'][planner]['max_iterations'] = None
        with pytest.raises(ConfigurationError, match=f"planners.{planner}.max_iterations"):
            config_from_dict(config_dict)

    def test_non_positive_max_history(self, config_dict):
        config_dict['meta']['logging']['max_history'] = 0
        with pytest.raises(ConfigurationError, match="max_history"):
            config_from_dict(config_dict)

    def test_missing_key_is_named(self, config_dict):
        del config_dict['meta']['planners']['values'][1]['max_acc_disturbance']
        with pytest.raises(ConfigurationError, match=r"values\[1\]\.max_acc_disturbance"):
            config_from_dict(config_dict)

    def test_wrong_control_dimension(self, config_dict):
        config_dict['meta']['control']['dim'] = 4
        with pytest.raises(ConfigurationError, match="dim"):
            config_from_dict(config_dict)

    def test_wrong_vector_length(self, config_dict):
        config_dict['meta']['state']['upper'] = [10.0] * 3
        with pytest.raises(ConfigurationError, match="meta.state.upper"):
            config_from_dict(config_dict)

    def test_inverted_state_bounds(self, config_dict):
        config_dict['meta']['state']['lower'][2] = 10.0
        with pytest.raises(ConfigurationError):
            config_from_dict(config_dict)

    def test_duplicate_value_ids(self, config_dict):
        config_dict['meta']['planners']['values'][1]['id'] = 0
        with pytest.raises(ConfigurationError, match="unique"):
            config_from_dict(config_dict)

    def test_empty_value_list(self, config_dict):
        config_dict['meta']['planners']['values'] = []
        with pytest.raises(ConfigurationError):
            config_from_dict(config_dict)

    def test_non_positive_time_step(self, config_dict):
        config_dict['meta']['control']['time_step'] = 0.0
        with pytest.raises(ConfigurationError, match="time_step"):
            config_from_dict(config_dict)

    def test_error_hierarchy(self, config_dict):
        del config_dict['meta']['control']
        with pytest.raises(MetaPlannerError):
            config_from_dict(config_dict)
        with pytest.raises(ValueError):
            config_from_dict(config_dict)


class TestLoadConfig:

    def test_shipped_config(self):
        config = load_config(CONFIG_FILE)

        assert len(config.values) == 2
        assert config.values[0].id == 0
        assert config.sensor.rate == 10.0
        assert len(config.sensor.obstacles) == 3
        assert config.frames.planner == 'planner'

    def test_round_trip_through_file(self, tmp_path, config_dict):
        path = tmp_path / 'config.yaml'
        path.write_text(yaml.safe_dump(config_dict))

        config = load_config(str(path))

        assert config.values[1].name == 'slow'

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Cannot read"):
            load_config(str(tmp_path / 'missing.yaml'))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / 'broken.yaml'
        path.write_text("meta: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(str(path))

    def test_non_mapping_document(self, tmp_path):
        path = tmp_path / 'list.yaml'
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigurationError):
            load_config(str(path))
