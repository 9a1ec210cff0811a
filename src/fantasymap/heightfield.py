"""Height field synthesis and normalization."""

import os
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import structlog
from numpy.typing import NDArray
from opensimplex import OpenSimplex

from .config import HeightMapConfig, HeightMethod
from .exceptions import ConfigurationError
from .noise import gaussian_fbm, plasma_fractal, torus_column

logger = structlog.get_logger()


def normalize_heights(field: NDArray[np.floating]) -> NDArray[np.float32]:
    """Rescale a field to cover [0, 1].

    Non-finite samples are replaced by the finite minimum first. A flat field
    (max == min) normalizes to all zeros.

    Args:
        field: Raw height values.

    Returns:
        New float32 array with values in [0, 1].
    """
    result = np.asarray(field, dtype=np.float32).copy()

    finite = np.isfinite(result)
    if not finite.all():
        fill = float(result[finite].min()) if finite.any() else 0.0
        result[~finite] = fill
        logger.warning("non_finite_heights_replaced", count=int((~finite).sum()))

    low = float(result.min())
    high = float(result.max())
    if high == low:
        logger.warning("flat_height_field", value=low)
        return np.zeros_like(result)

    result = (result - low) / (high - low)
    return np.clip(result, 0.0, 1.0).astype(np.float32)


def simplex_height_field(
    width: int,
    height: int,
    seed: int,
    config: HeightMapConfig,
) -> NDArray[np.float32]:
    """Sample torus-mapped 4D simplex fBm, one worker task per column.

    Each task returns its own column and writes nothing shared, so the
    result does not depend on scheduling.
    """
    generator = OpenSimplex(seed=seed)
    workers = config.workers or os.cpu_count() or 1

    field = np.empty((height, width), dtype=np.float32)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        columns = pool.map(
            lambda x: torus_column(
                generator,
                x,
                width,
                height,
                config.octaves,
                config.frequency,
                config.lacunarity,
                config.gain,
            ),
            range(width),
        )
        for x, column in enumerate(columns):
            field[:, x] = column

    return field


def generate_height_field(
    width: int,
    height: int,
    config: HeightMapConfig,
    rng: np.random.Generator,
) -> NDArray[np.float32]:
    """Synthesize a normalized height field.

    Args:
        width: Map width in tiles.
        height: Map height in tiles.
        config: Height map parameters.
        rng: Random number generator for this run.

    Returns:
        2D array of shape (height, width) with values in [0, 1].

    Raises:
        ConfigurationError: If the size is not positive.
    """
    if width <= 0 or height <= 0:
        raise ConfigurationError(f"Map size must be positive, got {width}x{height}")

    seed = int(rng.integers(0, 2**31 - 1))
    logger.info(
        "height_field_started",
        method=config.method.value,
        width=width,
        height=height,
        seed=seed,
    )

    if config.method == HeightMethod.SIMPLEX:
        raw = simplex_height_field(width, height, seed, config)
    elif config.method == HeightMethod.GAUSSIAN:
        raw = gaussian_fbm(
            width,
            height,
            rng,
            config.base_wavelength,
            octaves=config.octaves,
            lacunarity=config.lacunarity,
            gain=config.gain,
        )
    else:
        raw = plasma_fractal(
            width,
            height,
            rng,
            roughness=config.roughness,
            variability=config.variability,
            surrounded_by_water=config.surrounded_by_water,
        )

    return normalize_heights(raw)
