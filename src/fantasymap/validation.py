"""Post-generation validation."""

import itertools

import numpy as np
import structlog
from scipy import ndimage

from .cleanup import cleaned_region_types
from .config import CleanupConfig, GenerationConfig
from .grid import Grid
from .tile_types import TileType

logger = structlog.get_logger()


class ValidationResult:
    """Result of map validation."""

    def __init__(self) -> None:
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.passed = True

    def add_error(self, message: str) -> None:
        """Add validation error."""
        self.errors.append(message)
        self.passed = False

    def add_warning(self, message: str) -> None:
        """Add validation warning."""
        self.warnings.append(message)


def validate_map(grid: Grid, config: GenerationConfig) -> ValidationResult:
    """Validate a generated map against its configuration.

    Args:
        grid: Generated grid.
        config: Configuration the grid was generated with.

    Returns:
        ValidationResult with any errors/warnings.
    """
    result = ValidationResult()

    _check_heights(grid, result)
    if config.cleanup.enabled:
        _check_cleaned_regions(grid, config.cleanup, result)
    _check_settlement_spacing(grid, config.settlements.min_distance, result)
    _check_settlement_tiles(grid, result)
    _check_recognized_types(grid, result)

    if result.passed:
        logger.info("map_validation_passed", warnings=len(result.warnings))
    else:
        logger.warning("map_validation_failed", errors=result.errors)
    for warning in result.warnings:
        logger.warning("map_validation_warning", message=warning)

    return result


def _check_heights(grid: Grid, result: ValidationResult) -> None:
    """Check that heights are finite and within [0, 1]."""
    heights = grid.heights
    non_finite = int(np.count_nonzero(~np.isfinite(heights)))
    if non_finite:
        result.add_error(f"{non_finite} heights are not finite")
        return

    out_of_range = int(np.count_nonzero((heights < 0.0) | (heights > 1.0)))
    if out_of_range:
        result.add_error(f"{out_of_range} heights outside [0, 1]")


def region_sizes(grid: Grid, tile_types: tuple[TileType, ...]) -> np.ndarray:
    """Sizes of the 4-connected regions formed by the given types."""
    mask = grid.mask(tile_types)
    structure = ndimage.generate_binary_structure(2, 1)  # 4-connected
    labeled, num_features = ndimage.label(mask, structure=structure)
    if num_features == 0:
        return np.zeros(0, dtype=np.int64)
    return np.bincount(labeled.ravel())[1:]


def _check_cleaned_regions(
    grid: Grid,
    cleanup: CleanupConfig,
    result: ValidationResult,
) -> None:
    """Warn about islands, lakes, mountains and forests below their minimum.

    Cleanup removes all of them, but rivers and roads laid afterwards can
    split a region again, so these are warnings rather than errors.
    """
    for kind, tile_types in cleaned_region_types(grid.taxonomy).items():
        min_size = getattr(cleanup, f"min_{kind}_size")
        sizes = region_sizes(grid, tile_types)
        small = int(np.count_nonzero(sizes < min_size))
        if small:
            result.add_warning(f"{small} {kind} regions smaller than {min_size} tiles")


def _check_settlement_spacing(
    grid: Grid,
    min_distance: float,
    result: ValidationResult,
) -> None:
    """Check that settlements keep their distance from each other."""
    for a, b in itertools.combinations(grid.locations, 2):
        distance = a.distance_to(b.x, b.y)
        if distance < min_distance:
            result.add_error(
                f"Settlements '{a.name}' and '{b.name}' are {distance:.1f} apart "
                f"(minimum {min_distance})"
            )


def _check_settlement_tiles(grid: Grid, result: ValidationResult) -> None:
    """Check that each settlement sits on a road tile."""
    for settlement in grid.locations:
        if not grid.in_bounds(settlement.x, settlement.y):
            result.add_error(f"Settlement '{settlement.name}' is off the map")
            continue
        tile_type = grid.type_at(settlement.x, settlement.y)
        if tile_type != TileType.ROAD:
            result.add_warning(
                f"Settlement '{settlement.name}' is on {tile_type.name.lower()}, not road"
            )


def _check_recognized_types(grid: Grid, result: ValidationResult) -> None:
    """Check that only types of the grid's taxonomy appear."""
    present = np.unique(grid.types)
    recognized = {int(t) for t in grid.taxonomy.recognized_types}
    unknown = [int(v) for v in present if int(v) not in recognized]
    if unknown:
        result.add_error(
            f"Types {unknown} are not part of the '{grid.taxonomy.value}' taxonomy"
        )
