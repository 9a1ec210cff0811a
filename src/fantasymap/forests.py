"""Forest growth: seeded clusters spreading by random polar jumps."""

import math
from collections import deque

import numpy as np
import structlog

from .config import ForestConfig
from .grid import Grid
from .tile_types import TileType

logger = structlog.get_logger()

# Consecutive cycles without growth before giving up
STALE_CYCLE_LIMIT = 1000


def pick_seeds(
    grid: Grid,
    rng: np.random.Generator,
    count: int,
    attempts: int,
) -> deque[tuple[int, int]]:
    """Pick up to ``count`` random land tiles by rejection sampling."""
    land = int(grid.taxonomy.land_type)
    seeds: deque[tuple[int, int]] = deque()

    for _ in range(count):
        for _ in range(attempts):
            x = int(rng.integers(0, grid.width))
            y = int(rng.integers(0, grid.height))
            if grid.types[y, x] == land:
                seeds.append((x, y))
                break

    return seeds


def grow_forests(
    grid: Grid,
    config: ForestConfig,
    rng: np.random.Generator,
) -> int:
    """Convert land to forest until the forest fraction reaches the target.

    Each cycle picks a handful of seeds and grows them breadth-first. A grown
    tile enqueues a few candidates at a random distance and angle, which
    gives clusters ragged, organic outlines instead of uniform scatter.
    Tiles next to water or mountains stay land.

    Args:
        grid: Classified grid, modified in place.
        config: Forest growth configuration.
        rng: Random number generator.

    Returns:
        Number of tiles converted to forest.
    """
    land = int(grid.taxonomy.land_type)
    forest_value = int(TileType.FOREST)
    avoid = grid.taxonomy.water_types + grid.taxonomy.mountain_types

    total = grid.size
    forest = grid.count(TileType.FOREST)
    grown = 0
    cycles = 0
    stale = 0

    while forest / total < config.fraction:
        if cycles >= config.max_cycles or stale >= STALE_CYCLE_LIMIT:
            logger.warning(
                "forest_growth_stopped",
                cycles=cycles,
                fraction=round(forest / total, 4),
                target=config.fraction,
            )
            break
        cycles += 1

        queue = pick_seeds(grid, rng, config.seeds_per_cycle, config.seed_attempts)
        if not queue and not np.any(grid.types == land):
            logger.warning("forest_growth_no_land", fraction=round(forest / total, 4))
            break

        grown_before = grown
        while queue and forest / total < config.fraction:
            x, y = queue.popleft()

            if grid.types[y, x] != land or grid.is_near(x, y, avoid, radius=1):
                continue

            grid.types[y, x] = forest_value
            forest += 1
            grown += 1

            for _ in range(config.branches):
                distance = int(rng.integers(0, config.max_jump))
                angle = math.radians(int(rng.integers(0, 360)))
                nx = x + int(math.cos(angle) * distance)
                ny = y + int(math.sin(angle) * distance)

                if not grid.in_bounds(nx, ny):
                    continue
                if grid.types[ny, nx] == land:
                    queue.append((nx, ny))

        stale = stale + 1 if grown == grown_before else 0

    logger.info(
        "forests_grown",
        tiles=grown,
        cycles=cycles,
        fraction=round(forest / total, 4),
    )
    return grown
