"""Height band thresholds and tile type classification."""

from typing import Sequence

import numpy as np
import structlog
from numpy.typing import NDArray

from .config import ClassificationConfig, ThresholdMethod
from .grid import Grid
from .tile_types import TileType

logger = structlog.get_logger()


def scan_threshold(
    sorted_heights: NDArray[np.float32],
    minimum: float,
    part: float,
    step: float = 0.01,
) -> float:
    """Find the upper threshold of a band by scanning upward.

    Candidates ``minimum + step, minimum + 2*step, ...`` are tried until the
    fraction of tiles with ``minimum <= h <= candidate`` reaches ``part`` or
    the candidate passes 1.0. This is a greedy, fixed-step approximation of
    a percentile: reproducible for a given field, but not exact.

    Args:
        sorted_heights: Flattened heights in ascending order.
        minimum: Lower threshold of the band.
        part: Requested fraction of all tiles.
        step: Candidate step.

    Returns:
        The selected threshold.
    """
    total = sorted_heights.size
    low_index = np.searchsorted(sorted_heights, minimum, side="left")

    k = 1
    maximum = minimum + step
    while maximum < 1.0:
        high_index = np.searchsorted(sorted_heights, maximum, side="right")
        if (high_index - low_index) / total >= part:
            break
        k += 1
        maximum = minimum + k * step

    return float(maximum)


def compute_thresholds(
    heights: NDArray[np.float32],
    parts: Sequence[float],
    method: ThresholdMethod = ThresholdMethod.APPROXIMATE,
    step: float = 0.01,
) -> list[float]:
    """Compute ascending thresholds so each band holds its requested part.

    Args:
        heights: Normalized height field.
        parts: Fraction of tiles per band, lowest band first.
        method: Approximate scan or exact quantiles.
        step: Scan step for the approximate method.

    Returns:
        One threshold per part, non-decreasing.
    """
    flat = np.sort(heights, axis=None)

    thresholds: list[float] = []
    if method == ThresholdMethod.EXACT:
        cumulative = np.clip(np.cumsum(parts), 0.0, 1.0)
        for q in cumulative:
            thresholds.append(float(np.quantile(flat, q)))
    else:
        minimum = 0.0
        for part in parts:
            minimum = scan_threshold(flat, minimum, part, step)
            thresholds.append(minimum)

    # Quantiles of repeated values may tie; keep the sequence monotonic
    return [float(t) for t in np.maximum.accumulate(thresholds)]


def classify(
    heights: NDArray[np.float32],
    thresholds: Sequence[float],
    bands: Sequence[TileType],
) -> NDArray[np.uint8]:
    """Map each height to the band containing it.

    Band ``i`` covers ``[thresholds[i-1], thresholds[i])``. Heights at or
    above the last threshold fall into the highest band used.

    Args:
        heights: Height field.
        thresholds: Ascending thresholds.
        bands: Tile types, lowest first; only the first
            ``len(thresholds) + 1`` are used.

    Returns:
        Array of TileType values as uint8.
    """
    used = np.array([int(b) for b in bands[: len(thresholds) + 1]], dtype=np.uint8)
    index = np.searchsorted(np.asarray(thresholds, dtype=np.float64), heights, side="right")
    return used[np.minimum(index, used.size - 1)]


def classify_grid(grid: Grid, config: ClassificationConfig) -> list[float]:
    """Compute thresholds for a grid and assign every tile's type.

    Args:
        grid: Grid with normalized heights.
        config: Classification configuration.

    Returns:
        The thresholds used, also stored on ``grid.thresholds``.
    """
    if config.thresholds is not None:
        thresholds = list(config.thresholds)
    else:
        thresholds = compute_thresholds(
            grid.heights,
            config.resolved_parts(),
            method=config.threshold_method,
            step=config.threshold_step,
        )

    grid.thresholds = thresholds
    grid.types[:] = classify(grid.heights, thresholds, config.taxonomy.height_bands)

    logger.info(
        "tiles_classified",
        taxonomy=config.taxonomy.value,
        thresholds=[round(t, 3) for t in thresholds],
    )
    return thresholds
