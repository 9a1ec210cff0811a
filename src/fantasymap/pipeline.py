"""Main map generation orchestration."""

from typing import Callable

import numpy as np
import structlog
from numpy.typing import NDArray

from .classification import classify_grid
from .cleanup import cleaned_region_types, remove_noise, remove_small_regions
from .config import GenerationConfig, validate_config
from .exceptions import ConfigurationError, GenerationCancelled, PlacementExhaustedError
from .forests import grow_forests
from .grid import Grid
from .heightfield import generate_height_field, normalize_heights
from .rivers import build_river_groups, carve_river_groups, generate_rivers
from .settlements import connect_settlements, place_settlements
from .tile_types import TileType

logger = structlog.get_logger()

ProgressSink = Callable[[str], None]


class StageReporter:
    """Announces stage boundaries to the caller.

    Every boundary is logged, passed to the progress sink and then to the
    continuation gate. The gate may block for as long as it likes; no other
    code touches the grid meanwhile. A gate raising ``GenerationCancelled``
    abandons the run.
    """

    def __init__(
        self,
        progress: ProgressSink | None = None,
        gate: ProgressSink | None = None,
    ):
        self.progress = progress
        self.gate = gate
        self.current: str | None = None
        self.stages: list[str] = []

    def __call__(self, stage: str) -> None:
        self.current = stage
        self.stages.append(stage)
        logger.info("stage", name=stage)
        if self.progress is not None:
            self.progress(stage)
        if self.gate is not None:
            self.gate(stage)


class GenerationResult:
    """Result of map generation with per-stage statistics."""

    def __init__(self, grid: Grid, config: GenerationConfig):
        self.grid = grid
        self.config = config
        self.tiles_replaced: dict[str, int] = {}
        self.forest_tiles = 0
        self.rivers_requested = config.rivers.count
        self.rivers_accepted = 0
        self.settlements_placed = 0
        self.roads_built = 0
        self.aborted_stage: str | None = None

    @property
    def completed(self) -> bool:
        return self.aborted_stage is None

    @property
    def total_tiles_replaced(self) -> int:
        return sum(self.tiles_replaced.values())

    def summary(self) -> dict[str, object]:
        """Plain statistics, suitable for logging."""
        return {
            "width": self.grid.width,
            "height": self.grid.height,
            "tiles_replaced": self.total_tiles_replaced,
            "forest_tiles": self.forest_tiles,
            "rivers": f"{self.rivers_accepted}/{self.rivers_requested}",
            "settlements": self.settlements_placed,
            "roads": self.roads_built,
        }


def _clean_regions(
    grid: Grid,
    result: GenerationResult,
    report: StageReporter,
    stage: str,
    tile_types: tuple[TileType, ...],
    min_size: int,
    replacement: TileType | None = None,
) -> None:
    report(stage)
    replaced = remove_small_regions(grid, tile_types, min_size, replacement)
    result.tiles_replaced[stage] = replaced


def _clean_noise(
    grid: Grid,
    result: GenerationResult,
    report: StageReporter,
    stage: str,
    tile_type: TileType,
) -> None:
    report(stage)
    _, replaced = remove_noise(grid, tile_type)
    result.tiles_replaced[stage] = replaced


def _run_cleanup(grid: Grid, config: GenerationConfig, result: GenerationResult, report: StageReporter) -> None:
    """Remove small islands, lakes and mountains, then smooth speckles."""
    cleanup = config.cleanup
    recognized = grid.taxonomy.recognized_types
    regions = cleaned_region_types(grid.taxonomy)

    _clean_regions(grid, result, report, "Removing small islands", regions["island"], cleanup.min_island_size)
    _clean_regions(grid, result, report, "Removing small lakes", regions["lake"], cleanup.min_lake_size)

    if TileType.SHALLOW_WATER in recognized:
        _clean_noise(grid, result, report, "Removing water noise", TileType.SHALLOW_WATER)

    (mountain,) = regions["mountain"]
    _clean_regions(grid, result, report, "Removing small mountains", regions["mountain"], cleanup.min_mountain_size)
    _clean_noise(grid, result, report, "Removing mountain noise", mountain)

    if TileType.SNOW in recognized:
        _clean_noise(grid, result, report, "Removing snow noise", TileType.SNOW)


def generate_map(
    config: GenerationConfig,
    progress: ProgressSink | None = None,
    gate: ProgressSink | None = None,
    rng: np.random.Generator | None = None,
    heights: NDArray[np.floating] | None = None,
) -> GenerationResult:
    """Generate a complete map from configuration.

    Stages run in a fixed order: height map, classification, optional
    cleanup, forests, rivers, then settlements and roads. Each stage
    mutates the same grid.

    Args:
        config: Generation configuration; checked before any work starts.
        progress: Called with a readable name at every stage boundary.
        gate: Called after ``progress``; may block, or raise
            ``GenerationCancelled`` to abandon the run.
        rng: Random number generator; defaults to one seeded from
            ``config.seed``.
        heights: Precomputed raw height field of shape (height, width) used
            instead of synthesis. It is normalized like a synthesized one.

    Returns:
        GenerationResult holding the grid. When the gate cancels, the result
        holds whatever the finished stages produced and names the stage that
        was abandoned.

    Raises:
        ConfigurationError: If the configuration or the heights are invalid.
    """
    validate_config(config)
    width, height = config.map_width, config.map_height
    if heights is not None and heights.shape != (height, width):
        raise ConfigurationError(
            f"Height field shape {heights.shape} does not match {width}x{height}"
        )

    if rng is None:
        rng = np.random.default_rng(config.seed)

    grid = Grid(
        width,
        height,
        spherical=config.spherical_world,
        taxonomy=config.classification.taxonomy,
    )
    result = GenerationResult(grid, config)
    report = StageReporter(progress, gate)

    logger.info(
        "generation_started",
        width=width,
        height=height,
        seed=config.seed,
        method=config.height_map.method.value,
        taxonomy=grid.taxonomy.value,
    )

    try:
        _run_stages(grid, config, result, report, rng, heights)
    except GenerationCancelled:
        result.aborted_stage = report.current
        logger.warning("generation_cancelled", stage=report.current)
        return result

    logger.info("generation_finished", **result.summary())
    return result


def _run_stages(
    grid: Grid,
    config: GenerationConfig,
    result: GenerationResult,
    report: StageReporter,
    rng: np.random.Generator,
    heights: NDArray[np.floating] | None,
) -> None:
    report("Generating height map...")
    if heights is None:
        grid.heights[:] = generate_height_field(grid.width, grid.height, config.height_map, rng)
    else:
        grid.heights[:] = normalize_heights(np.asarray(heights, dtype=np.float64))

    report("Calculating thresholds")
    classify_grid(grid, config.classification)

    if config.cleanup.enabled:
        _run_cleanup(grid, config, result, report)

    report("Generating forests...")
    result.forest_tiles = grow_forests(grid, config.forests, rng)
    if config.cleanup.enabled:
        _clean_regions(
            grid,
            result,
            report,
            "Removing small forests",
            cleaned_region_types(grid.taxonomy)["forest"],
            config.cleanup.min_forest_size,
            replacement=grid.taxonomy.land_type,
        )
        _clean_noise(grid, result, report, "Removing forest noise", TileType.FOREST)

    forest_fraction = grid.fraction(TileType.FOREST)
    if forest_fraction < config.forests.fraction:
        report(
            f"Grew forest on {forest_fraction:.1%} of tiles, "
            f"target {config.forests.fraction:.1%}"
        )

    report("Generating rivers...")
    result.rivers_accepted = len(generate_rivers(grid, config.rivers, rng))
    if result.rivers_accepted < config.rivers.count:
        report(f"Generated {result.rivers_accepted} of {config.rivers.count} rivers")

    report("Building river groups")
    build_river_groups(grid)

    report("Digging river groups")
    carve_river_groups(grid, rng)

    requested = len(config.settlements.locations)
    try:
        place_settlements(grid, rng, config.settlements, report)
    except PlacementExhaustedError:
        result.settlements_placed = len(grid.locations)
        report(f"Placed {result.settlements_placed} of {requested} settlements")
        return

    result.settlements_placed = len(grid.locations)
    result.roads_built = connect_settlements(grid, report)
