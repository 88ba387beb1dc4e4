"""Tests for SkyGuard configuration profiles and YAML loading.

pytest tests/test_config.py -v
"""

import pytest
import sys, os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from skyguard.skyguard_config import (
    ConfigError, EngineConfig, PROFILES, SkyguardError, config_from_dict, load_config,
)

CONFIG_DIR = os.path.join(os.path.dirname(__file__), '..', 'config')


class TestProfiles:

    def test_client_local_defaults(self):
        cfg = EngineConfig.client_local()
        assert cfg.profile == "client_local"
        assert cfg.population.initial_count == 15
        assert cfg.population.max_count == 20
        assert cfg.engagement.initial_interceptors == 30
        assert cfg.engagement.restock_on_kill is True
        assert cfg.engagement.auto_launch_probability == 0.8
        assert cfg.cadence.missile_period_s == pytest.approx(0.1)

    def test_authoritative_diverges(self):
        cfg = EngineConfig.authoritative()
        assert cfg.population.initial_count == 8
        assert cfg.population.respawn_on_exit is True
        assert cfg.engagement.initial_interceptors == 12
        assert cfg.engagement.restock_on_kill is False
        assert cfg.engagement.interceptor_designation == "Interceptor"
        assert cfg.cadence.engagement_period_range_s == (8.0, 15.0)

    def test_profile_overrides(self):
        cfg = EngineConfig.authoritative(seed=5, theater="uzbekistan")
        assert cfg.seed == 5 and cfg.theater == "uzbekistan"
        assert cfg.profile == "authoritative"

    def test_registry(self):
        assert set(PROFILES) == {"client_local", "authoritative"}
        for factory in PROFILES.values():
            factory().validate()


class TestValidation:

    def test_probability_out_of_range(self):
        with pytest.raises(ConfigError):
            config_from_dict({"engagement": {"auto_launch_probability": 1.5}})

    def test_bad_population_bounds(self):
        with pytest.raises(ConfigError):
            config_from_dict({"population": {"min_count": 30, "max_count": 10}})

    def test_bad_period_range(self):
        with pytest.raises(ConfigError):
            config_from_dict({"cadence": {"alert_period_range_s": [8.0, 3.0]}})

    def test_interceptors_above_max(self):
        with pytest.raises(ConfigError):
            config_from_dict({"engagement": {"initial_interceptors": 40}})

    def test_anomaly_threshold_positive(self):
        with pytest.raises(ConfigError):
            config_from_dict({"anomaly_threshold_fraction": 0.0})
        with pytest.raises(ConfigError):
            config_from_dict({"anomaly_min_threshold_km": -1.0})

    def test_error_hierarchy(self):
        assert issubclass(ConfigError, SkyguardError)


class TestConfigFromDict:

    def test_empty_is_client_local(self):
        assert config_from_dict({}) == EngineConfig.client_local()

    def test_sections_merge_field_by_field(self):
        cfg = config_from_dict({"profile": "authoritative",
                                "engagement": {"initial_interceptors": 4}})
        assert cfg.engagement.initial_interceptors == 4
        assert cfg.engagement.max_interceptors == 12
        assert cfg.engagement.restock_on_kill is False

    def test_lists_become_tuples(self):
        cfg = config_from_dict({"population": {"spawn_probabilities": [0.5]}})
        assert cfg.population.spawn_probabilities == (0.5,)

    def test_unknown_top_level_key(self):
        with pytest.raises(ConfigError, match="bogus"):
            config_from_dict({"bogus": 1})

    def test_unknown_section_key(self):
        with pytest.raises(ConfigError, match="cadence"):
            config_from_dict({"cadence": {"tick_rate": 3}})

    def test_unknown_profile(self):
        with pytest.raises(ConfigError):
            config_from_dict({"profile": "turbo"})

    def test_section_not_mapping(self):
        with pytest.raises(ConfigError):
            config_from_dict({"population": [1, 2]})

    def test_root_not_mapping(self):
        with pytest.raises(ConfigError):
            config_from_dict([1, 2, 3])


class TestLoadConfig:

    def test_shipped_client_profile(self):
        cfg = load_config(os.path.join(CONFIG_DIR, 'skyguard_client.yaml'))
        assert cfg.profile == "client_local"
        assert cfg.cadence.alert_period_range_s == (3.0, 8.0)
        assert cfg.population.spawn_probabilities == (0.35, 0.15)

    def test_shipped_authoritative_profile(self):
        cfg = load_config(os.path.join(CONFIG_DIR, 'skyguard_authoritative.yaml'))
        assert cfg == EngineConfig.authoritative()

    def test_yaml_roundtrip(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text("profile: client_local\nseed: 11\ntheater: uzbekistan\n"
                        "engagement:\n  initial_interceptors: 5\n")
        cfg = load_config(str(path))
        assert cfg.seed == 11
        assert cfg.theater == "uzbekistan"
        assert cfg.engagement.initial_interceptors == 5

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(str(path)) == EngineConfig.client_local()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("population: [unclosed\n")
        with pytest.raises(ConfigError):
            load_config(str(path))
