"""Tests for configuration loading and checks."""

from pathlib import Path

import pytest

from fantasymap.config import (
    DEFAULT_SETTLEMENT_NAMES,
    ClassificationConfig,
    GenerationConfig,
    HeightMethod,
    ThresholdMethod,
    load_config,
    validate_config,
)
from fantasymap.exceptions import ConfigurationError
from fantasymap.tile_types import Taxonomy

REPO_ROOT = Path(__file__).parent.parent


class TestDefaults:
    """Tests for default configuration values."""

    def test_generation_defaults(self) -> None:
        """Defaults describe a valid spherical 1024x1024 map."""
        config = GenerationConfig()
        assert config.map_width == config.map_height == 1024
        assert config.spherical_world
        assert config.height_map.method == HeightMethod.SIMPLEX
        assert config.classification.threshold_method == ThresholdMethod.APPROXIMATE
        assert not config.cleanup.enabled
        assert config.rivers.count == 40
        assert [s.name for s in config.settlements.locations] == list(DEFAULT_SETTLEMENT_NAMES)
        validate_config(config)

    def test_width_height_override(self) -> None:
        """An explicit width overrides size for that axis only."""
        config = GenerationConfig(size=100, width=40)
        assert (config.map_width, config.map_height) == (40, 100)

    def test_resolved_parts(self) -> None:
        """Parts default per taxonomy unless given."""
        simple = ClassificationConfig(taxonomy=Taxonomy.SIMPLE)
        assert simple.resolved_parts() == [0.45, 0.40, 0.10]
        assert ClassificationConfig(parts=[0.5]).resolved_parts() == [0.5]


class TestValidateConfig:
    """Tests for range checks before generation."""

    @pytest.mark.parametrize(
        "values",
        [
            {"size": 0},
            {"size": 10, "width": -1},
            {"height_map": {"octaves": 0}},
            {"height_map": {"workers": 0}},
            {"classification": {"parts": [0.6, 0.6]}},
            {"classification": {"parts": []}},
            {"classification": {"parts": [0.1] * 6}},
            {"classification": {"taxonomy": "simple", "parts": [0.2] * 4}},
            {"classification": {"thresholds": [0.5, 0.2]}},
            {"classification": {"thresholds": [1.5]}},
            {"classification": {"threshold_step": 0.0}},
            {"cleanup": {"min_lake_size": -1}},
            {"forests": {"fraction": 1.5}},
            {"rivers": {"count": -1}},
            {"rivers": {"min_height": 2.0}},
            {"settlements": {"rejection_chance": -0.1}},
            {"settlements": {"max_attempts": 0}},
        ],
    )
    def test_rejects(self, values) -> None:
        """Out-of-range values raise ConfigurationError."""
        config = GenerationConfig.model_validate(values)
        with pytest.raises(ConfigurationError):
            validate_config(config)

    def test_accepts_exact_thresholds(self) -> None:
        """Thresholds matching the taxonomy band count are accepted."""
        config = GenerationConfig.model_validate(
            {"classification": {"taxonomy": "simple", "thresholds": [0.3, 0.7]}}
        )
        validate_config(config)


class TestLoadConfig:
    """Tests for TOML loading."""

    def test_load_toml(self, tmp_path) -> None:
        """Values from a TOML file override the defaults."""
        path = tmp_path / "map.toml"
        path.write_text(
            "size = 64\n"
            "seed = 3\n"
            "[height_map]\n"
            'method = "plasma"\n'
            "[[settlements.locations]]\n"
            'name = "Only"\n'
            "connected = false\n"
        )
        config = load_config(path)
        assert config.size == 64
        assert config.seed == 3
        assert config.height_map.method == HeightMethod.PLASMA
        assert len(config.settlements.locations) == 1
        assert not config.settlements.locations[0].connected

    def test_invalid_type(self, tmp_path) -> None:
        """An unknown enum value raises ConfigurationError."""
        path = tmp_path / "map.toml"
        path.write_text('[height_map]\nmethod = "voronoi"\n')
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_invalid_range(self, tmp_path) -> None:
        """An out-of-range value raises ConfigurationError."""
        path = tmp_path / "map.toml"
        path.write_text("[forests]\nfraction = 2.0\n")
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_missing_file(self, tmp_path) -> None:
        """A missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.toml")

    def test_repository_default(self) -> None:
        """The shipped default configuration loads."""
        config = load_config(REPO_ROOT / "configs" / "default.toml")
        assert config.size == 512
        assert config.cleanup.enabled
        assert len(config.settlements.locations) == 7
        kuo_toans = config.settlements.locations[4]
        assert kuo_toans.name == "Kuo Toans"
        assert not kuo_toans.connected
