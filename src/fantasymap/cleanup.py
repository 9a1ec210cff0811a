"""Region cleanup: flood fill removal of small regions and speckle smoothing."""

from collections import Counter
from typing import Iterable

import numpy as np
import structlog
from numpy.typing import NDArray

from .grid import FOUR_NEIGHBORS, Grid
from .tile_types import Taxonomy, TileType

logger = structlog.get_logger()

# Offsets checked together with their mirror: N/S, W/E and both diagonals
NOISE_OFFSETS: tuple[tuple[int, int], ...] = ((0, -1), (-1, 0), (-1, -1), (1, -1))


def cleaned_region_types(taxonomy: Taxonomy) -> dict[str, tuple[TileType, ...]]:
    """Types that form one region for each kind of small-region cleanup.

    Keys are ``island``, ``lake``, ``mountain`` and ``forest``, matching the
    ``min_<kind>_size`` cleanup settings.
    """
    recognized = taxonomy.recognized_types
    if TileType.SAND in recognized:
        islands = (TileType.SAND, taxonomy.land_type)
        lakes = (TileType.DEEP_WATER, TileType.SHALLOW_WATER, TileType.SAND)
    else:
        islands = (taxonomy.land_type,)
        lakes = (TileType.WATER,)
    mountain = TileType.ROCK if TileType.ROCK in recognized else TileType.MOUNTAIN

    return {
        "island": islands,
        "lake": lakes,
        "mountain": (mountain,),
        "forest": (TileType.FOREST,),
    }


def flood_fill(
    mask: NDArray[np.bool_],
    x: int,
    y: int,
    visited: NDArray[np.bool_],
) -> list[tuple[int, int]]:
    """Collect the 4-connected region of ``mask`` containing (x, y).

    Uses an explicit stack, so region size is not limited by recursion
    depth. Every collected tile is marked in ``visited``; tiles already
    visited are never collected again.

    Args:
        mask: Boolean mask of tiles that belong to regions.
        x: Seed column.
        y: Seed row.
        visited: Visited mask, updated in place.

    Returns:
        List of (x, y) coordinates in discovery order.
    """
    height, width = mask.shape
    region: list[tuple[int, int]] = []
    stack = [(x, y)]

    while stack:
        px, py = stack.pop()
        if not (0 <= px < width and 0 <= py < height):
            continue
        if visited[py, px] or not mask[py, px]:
            continue

        visited[py, px] = True
        region.append((px, py))

        stack.append((px - 1, py))
        stack.append((px, py - 1))
        stack.append((px + 1, py))
        stack.append((px, py + 1))

    return region


def _replacement_for(
    grid: Grid,
    region: list[tuple[int, int]],
    targets: frozenset[int],
) -> TileType | None:
    """Pick the type that swallows a removed region.

    Prefers the left neighbour of the region's first tile; falls back to the
    most common non-target type on the region's border.
    """
    seed_x, seed_y = region[0]
    left = grid.type_at(seed_x - 1, seed_y)
    if left is not None and int(left) not in targets:
        return left

    border: Counter[int] = Counter()
    for x, y in region:
        for dx, dy in FOUR_NEIGHBORS:
            nx, ny = x + dx, y + dy
            if grid.in_bounds(nx, ny):
                value = int(grid.types[ny, nx])
                if value not in targets:
                    border[value] += 1

    if not border:
        return None
    return TileType(border.most_common(1)[0][0])


def remove_small_regions(
    grid: Grid,
    tile_types: Iterable[TileType],
    min_size: int,
    replacement: TileType | None = None,
) -> int:
    """Overwrite connected regions smaller than ``min_size``.

    Regions are 4-connected groups of tiles whose type is any of
    ``tile_types``. Each tile is assigned to exactly one region per call.

    Args:
        grid: Grid to clean, modified in place.
        tile_types: Types that form the regions.
        min_size: Minimum region size in tiles; smaller regions are removed.
        replacement: Type written over removed regions. When None, the
            surrounding terrain is used.

    Returns:
        Number of tiles replaced.
    """
    types = tuple(tile_types)
    targets = frozenset(int(t) for t in types)
    mask = grid.mask(types)
    visited = np.zeros_like(mask)

    replaced = 0
    removed_regions = 0
    ys, xs = np.nonzero(mask)
    for y, x in zip(ys.tolist(), xs.tolist()):
        if visited[y, x]:
            continue

        region = flood_fill(mask, x, y, visited)
        if len(region) >= min_size:
            continue

        new_type = replacement if replacement is not None else _replacement_for(
            grid, region, targets
        )
        if new_type is None or int(new_type) in targets:
            continue

        for px, py in region:
            grid.types[py, px] = int(new_type)
        replaced += len(region)
        removed_regions += 1

    logger.debug(
        "small_regions_removed",
        types=[t.name for t in types],
        regions=removed_regions,
        tiles_replaced=replaced,
    )
    return replaced


def _shift(padded: NDArray[np.bool_], dx: int, dy: int) -> NDArray[np.bool_]:
    """View of a 1-padded mask where cell (x, y) holds the value at (x+dx, y+dy)."""
    height = padded.shape[0] - 2
    width = padded.shape[1] - 2
    return padded[1 + dy : 1 + dy + height, 1 + dx : 1 + dx + width]


def remove_noise(grid: Grid, tile_type: TileType) -> tuple[int, int]:
    """Fill single-tile speckles inside areas of ``tile_type``.

    A tile converts when, for any offset pair, both the tile at the offset and
    the tile at the mirrored offset already match. Off-grid tiles count as
    matching on a bounded grid and wrap on a spherical one. Passes repeat
    until one converts nothing.

    Args:
        grid: Grid to smooth, modified in place.
        tile_type: Type to grow into speckles.

    Returns:
        Tuple of (passes run, tiles replaced).
    """
    value = int(tile_type)
    passes = 0
    replaced = 0

    while True:
        passes += 1
        match = grid.types == value
        if grid.spherical:
            padded = np.pad(match, 1, mode="wrap")
        else:
            padded = np.pad(match, 1, mode="constant", constant_values=True)

        convert = np.zeros_like(match)
        for dx, dy in NOISE_OFFSETS:
            convert |= _shift(padded, dx, dy) & _shift(padded, -dx, -dy)
        convert &= ~match

        count = int(np.count_nonzero(convert))
        if count == 0:
            break

        grid.types[convert] = value
        replaced += count

    logger.debug(
        "noise_removed", type=tile_type.name, passes=passes, tiles_replaced=replaced
    )
    return passes, replaced
