"""Map generation configuration models."""

import tomllib
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from .exceptions import ConfigurationError
from .tile_types import Taxonomy


class HeightMethod(str, Enum):
    """Height field synthesis strategy."""

    SIMPLEX = "simplex"
    GAUSSIAN = "gaussian"
    PLASMA = "plasma"


class ThresholdMethod(str, Enum):
    """How classification thresholds are selected."""

    APPROXIMATE = "approximate"
    EXACT = "exact"


class HeightMapConfig(BaseModel):
    """Height field synthesis parameters."""

    method: HeightMethod = Field(
        default=HeightMethod.SIMPLEX, description="Synthesis strategy"
    )
    octaves: int = Field(default=6, description="Number of noise octaves")
    frequency: float = Field(default=1.25, description="Base noise frequency")
    lacunarity: float = Field(default=2.0, description="Frequency multiplier per octave")
    gain: float = Field(default=0.5, description="Amplitude multiplier per octave")
    base_wavelength: float = Field(
        default=256.0, description="Base wavelength in tiles (gaussian method)"
    )
    roughness: float = Field(
        default=1.0, description="Initial displacement scale (plasma method)"
    )
    variability: float = Field(
        default=2.0, description="Displacement divisor per subdivision level (plasma)"
    )
    surrounded_by_water: bool = Field(
        default=False, description="Seed plasma corners at zero"
    )
    workers: int | None = Field(
        default=None, description="Column worker threads (None = CPU count)"
    )


class ClassificationConfig(BaseModel):
    """Height band fractions and threshold selection."""

    taxonomy: Taxonomy = Field(default=Taxonomy.ELEVATION, description="Tile taxonomy")
    parts: list[float] | None = Field(
        default=None,
        description="Fraction of tiles per height band, lowest first (None = profile default)",
    )
    threshold_method: ThresholdMethod = Field(
        default=ThresholdMethod.APPROXIMATE, description="Threshold selection policy"
    )
    threshold_step: float = Field(
        default=0.01, description="Scan step for approximate thresholds"
    )
    thresholds: list[float] | None = Field(
        default=None,
        description="Explicit ascending thresholds, bypassing the parts scan",
    )

    def resolved_parts(self) -> list[float]:
        """Band fractions, falling back to the taxonomy default."""
        if self.parts is not None:
            return list(self.parts)
        return list(DEFAULT_PARTS[self.taxonomy])


class CleanupConfig(BaseModel):
    """Small region and speckle removal parameters."""

    enabled: bool = Field(
        default=False, description="Remove small islands, lakes and mountains"
    )
    min_island_size: int = Field(default=1000, description="Minimum island size in tiles")
    min_lake_size: int = Field(default=1000, description="Minimum lake size in tiles")
    min_mountain_size: int = Field(
        default=1000, description="Minimum mountain size in tiles"
    )
    min_forest_size: int = Field(default=1000, description="Minimum forest size in tiles")


class ForestConfig(BaseModel):
    """Forest growth parameters."""

    fraction: float = Field(default=0.1, description="Target forest fraction of all tiles")
    seeds_per_cycle: int = Field(default=10, description="Seeds picked per growth cycle")
    seed_attempts: int = Field(default=100, description="Rejection attempts per seed")
    branches: int = Field(default=4, description="Candidates enqueued per grown tile")
    max_jump: int = Field(default=25, description="Exclusive upper bound of jump distance")
    max_cycles: int = Field(default=100_000, description="Hard cap on growth cycles")


class RiverConfig(BaseModel):
    """River tracing and acceptance parameters."""

    count: int = Field(default=40, description="Number of rivers to generate")
    min_height: float = Field(default=0.6, description="Minimum source height")
    max_attempts: int = Field(default=1000, description="Maximum source attempts")
    min_turns: int = Field(default=18, description="Minimum turns of an accepted river")
    min_length: int = Field(default=20, description="Minimum length of an accepted river")
    max_intersections: int = Field(
        default=2, description="Maximum intersections of an accepted river"
    )
    epsilon: float = Field(
        default=0.1, description="Tie window for keeping the flow axis"
    )


class SettlementConfig(BaseModel):
    """A single settlement to place."""

    name: str
    connected: bool = True


class SettlementsConfig(BaseModel):
    """Settlement placement and road parameters."""

    locations: list[SettlementConfig] = Field(
        default_factory=lambda: [
            SettlementConfig(name=name) for name in DEFAULT_SETTLEMENT_NAMES
        ]
    )
    min_distance: float = Field(
        default=50.0, description="Minimum distance between settlements"
    )
    max_attempts: int = Field(default=100, description="Placement attempts per settlement")
    clearance_radius: int = Field(
        default=1, description="Radius kept free of water and mountains"
    )
    rejection_chance: float = Field(
        default=0.05, description="Chance to reject an otherwise valid site"
    )


class GenerationConfig(BaseModel):
    """Complete map generation configuration."""

    size: int = Field(default=1024, description="World size in tiles (square)")
    width: int | None = Field(default=None, description="Override width")
    height: int | None = Field(default=None, description="Override height")
    seed: int | None = Field(
        default=None, description="Random seed (None = non-reproducible)"
    )
    spherical_world: bool = Field(
        default=True, description="Wrap neighbours around both axes"
    )

    height_map: HeightMapConfig = Field(default_factory=HeightMapConfig)
    classification: ClassificationConfig = Field(default_factory=ClassificationConfig)
    cleanup: CleanupConfig = Field(default_factory=CleanupConfig)
    forests: ForestConfig = Field(default_factory=ForestConfig)
    rivers: RiverConfig = Field(default_factory=RiverConfig)
    settlements: SettlementsConfig = Field(default_factory=SettlementsConfig)

    @property
    def map_width(self) -> int:
        return self.width if self.width is not None else self.size

    @property
    def map_height(self) -> int:
        return self.height if self.height is not None else self.size


DEFAULT_PARTS: dict[Taxonomy, tuple[float, ...]] = {
    Taxonomy.SIMPLE: (0.45, 0.40, 0.10),
    Taxonomy.ELEVATION: (0.1, 0.3, 0.05, 0.4, 0.1),
}

DEFAULT_SETTLEMENT_NAMES = (
    "Bal Harbor",
    "Westwood",
    "Goblin Mountain",
    "Kobolds Village",
    "Kuo Toans",
    "Atlantis",
    "Wagoneers",
)


def _check_fraction(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ConfigurationError(f"{name} must be within [0, 1], got {value}")


def validate_config(config: GenerationConfig) -> None:
    """Check a configuration before any generation work starts.

    Args:
        config: Configuration to check.

    Raises:
        ConfigurationError: If any parameter is out of range.
    """
    if config.map_width <= 0 or config.map_height <= 0:
        raise ConfigurationError(
            f"Map size must be positive, got {config.map_width}x{config.map_height}"
        )

    hm = config.height_map
    if hm.octaves <= 0:
        raise ConfigurationError(f"octaves must be positive, got {hm.octaves}")
    if hm.frequency <= 0 or hm.base_wavelength <= 0:
        raise ConfigurationError("Noise frequency and wavelength must be positive")
    if hm.variability <= 0:
        raise ConfigurationError(f"variability must be positive, got {hm.variability}")
    if hm.workers is not None and hm.workers <= 0:
        raise ConfigurationError(f"workers must be positive, got {hm.workers}")

    cls = config.classification
    parts = cls.resolved_parts()
    max_bands = len(cls.taxonomy.height_bands) - 1
    if not 1 <= len(parts) <= max_bands:
        raise ConfigurationError(
            f"Taxonomy '{cls.taxonomy.value}' takes 1 to {max_bands} parts, got {len(parts)}"
        )
    if cls.thresholds is not None:
        if not 1 <= len(cls.thresholds) <= max_bands:
            raise ConfigurationError(
                f"Taxonomy '{cls.taxonomy.value}' takes 1 to {max_bands} thresholds, "
                f"got {len(cls.thresholds)}"
            )
        if any(b < a for a, b in zip(cls.thresholds, cls.thresholds[1:])):
            raise ConfigurationError("thresholds must be ascending")
        for i, value in enumerate(cls.thresholds):
            _check_fraction(f"thresholds[{i}]", value)
    for i, part in enumerate(parts):
        _check_fraction(f"parts[{i}]", part)
    if sum(parts) > 1.0 + 1e-6:
        raise ConfigurationError(f"parts must sum to at most 1, got {sum(parts):.3f}")
    if not 0.0 < cls.threshold_step < 1.0:
        raise ConfigurationError(
            f"threshold_step must be within (0, 1), got {cls.threshold_step}"
        )

    cleanup = config.cleanup
    for name in ("min_island_size", "min_lake_size", "min_mountain_size", "min_forest_size"):
        if getattr(cleanup, name) < 0:
            raise ConfigurationError(f"{name} must not be negative")

    forests = config.forests
    _check_fraction("forests.fraction", forests.fraction)
    if forests.max_jump <= 0 or forests.max_cycles <= 0:
        raise ConfigurationError("Forest jump and cycle limits must be positive")

    rivers = config.rivers
    if rivers.count < 0 or rivers.max_attempts < 0:
        raise ConfigurationError("River count and attempts must not be negative")
    _check_fraction("rivers.min_height", rivers.min_height)

    settlements = config.settlements
    _check_fraction("settlements.rejection_chance", settlements.rejection_chance)
    if settlements.min_distance < 0 or settlements.max_attempts <= 0:
        raise ConfigurationError("Settlement distance and attempts are out of range")
    if settlements.clearance_radius < 0:
        raise ConfigurationError("clearance_radius must not be negative")


def load_config(config_path: Path) -> GenerationConfig:
    """Load configuration from a TOML file.

    Args:
        config_path: Path to the TOML config file.

    Returns:
        Parsed and validated GenerationConfig.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        tomllib.TOMLDecodeError: If TOML is malformed.
        ConfigurationError: If values are invalid.
    """
    with open(config_path, "rb") as f:
        data = tomllib.load(f)
    try:
        config = GenerationConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e
    validate_config(config)
    return config
