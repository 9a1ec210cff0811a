"""Rivers: greedy flow tracing, grouping of intersecting rivers, carving.

A river is traced tile by tile towards the lowest neighbour until no
neighbour qualifies. Accepted rivers that share tiles are grouped; the
longest river of a group (the trunk) is carved first and the others taper
to the trunk's width where they join it.
"""

import math
from dataclasses import dataclass, field
from enum import Enum, IntEnum

import numpy as np
import structlog

from .config import RiverConfig
from .grid import Grid
from .tile_types import TileType

logger = structlog.get_logger()


class RiverDirection(IntEnum):
    """Flow direction between 4-connected tiles."""

    LEFT = 0
    RIGHT = 1
    TOP = 2
    BOTTOM = 3

    @property
    def offset(self) -> tuple[int, int]:
        return _DIRECTION_OFFSETS[self]

    @property
    def horizontal(self) -> bool:
        return self in (RiverDirection.LEFT, RiverDirection.RIGHT)


_DIRECTION_OFFSETS = {
    RiverDirection.LEFT: (-1, 0),
    RiverDirection.RIGHT: (1, 0),
    RiverDirection.TOP: (0, -1),
    RiverDirection.BOTTOM: (0, 1),
}

# Order in which tied minimum values are resolved
_MOVE_ORDER = (
    RiverDirection.LEFT,
    RiverDirection.RIGHT,
    RiverDirection.BOTTOM,
    RiverDirection.TOP,
)


class RiverState(str, Enum):
    """Lifecycle of a traced river."""

    SEEKING = "seeking"
    VALIDATED = "validated"
    REJECTED = "rejected"


@dataclass
class River:
    """A traced river path with its tracing statistics."""

    river_id: int
    tiles: list[tuple[int, int]] = field(default_factory=list)  # (x, y), source first
    turns: int = 0
    intersections: int = 0
    direction: RiverDirection = RiverDirection.BOTTOM
    state: RiverState = RiverState.SEEKING
    carved: bool = False
    _visited: set[tuple[int, int]] = field(default_factory=set, repr=False)

    @property
    def length(self) -> int:
        return len(self.tiles)

    def __contains__(self, position: object) -> bool:
        return position in self._visited

    def add_tile(self, grid: Grid, x: int, y: int) -> None:
        """Append a tile to the path and record the membership on the grid."""
        if TileType(int(grid.types[y, x])).collidable:
            grid.add_river_membership(x, y, self.river_id)
        self.tiles.append((x, y))
        self._visited.add((x, y))


@dataclass
class RiverGroup:
    """Rivers connected through shared tiles."""

    rivers: list[River] = field(default_factory=list)

    @property
    def trunk(self) -> River | None:
        """Longest river of the group; the first one wins ties."""
        longest = None
        for river in self.rivers:
            if longest is None or river.length > longest.length:
                longest = river
        return longest


def lowest_neighbor(grid: Grid, x: int, y: int) -> RiverDirection:
    """Direction of the strictly lowest neighbour, BOTTOM when there is none."""
    values = {}
    for direction in RiverDirection:
        dx, dy = direction.offset
        pos = grid.wrap(x + dx, y + dy)
        values[direction] = math.inf if pos is None else float(grid.heights[pos[1], pos[0]])

    for direction in (
        RiverDirection.LEFT,
        RiverDirection.RIGHT,
        RiverDirection.TOP,
        RiverDirection.BOTTOM,
    ):
        others = [v for d, v in values.items() if d != direction]
        if all(values[direction] < v for v in others):
            return direction
    return RiverDirection.BOTTOM


def river_neighbor_count(grid: Grid, x: int, y: int, river_id: int) -> int:
    """Number of 4-neighbours of (x, y) that carry the river."""
    return sum(
        1 for nx, ny in grid.neighbors4(x, y) if river_id in grid.rivers_at(nx, ny)
    )


def trace_river(
    grid: Grid,
    river: River,
    x: int,
    y: int,
    epsilon: float = 0.1,
) -> River:
    """Trace a river greedily downhill from (x, y).

    At each step the four neighbours are scored by height. A neighbour is
    excluded when it already touches the river on two sides or is on the
    path. Untouched water scores 0 so the river flows into it, which ends
    the trace because water cannot be entered. When left and right (or top
    and bottom) are within ``epsilon`` of each other, the one opposing the
    river's starting direction is dropped to avoid zig-zags. The trace stops
    when no neighbour qualifies.

    Args:
        grid: Classified grid; memberships are recorded on it.
        river: River to extend; its ``direction`` is the starting direction.
        x: Source column.
        y: Source row.
        epsilon: Tie window for the direction persistence rule.

    Returns:
        The same river, extended.
    """
    preferred = river.direction
    position: tuple[int, int] | None = (x, y)

    while position is not None:
        cx, cy = position
        position = None

        if (cx, cy) in river:
            break

        if grid.rivers_at(cx, cy):
            river.intersections += 1
        river.add_tile(grid, cx, cy)

        neighbors: dict[RiverDirection, tuple[int, int] | None] = {}
        values: dict[RiverDirection, float] = {}
        for direction in RiverDirection:
            dx, dy = direction.offset
            pos = grid.wrap(cx + dx, cy + dy)
            neighbors[direction] = pos
            values[direction] = math.inf
            if pos is None:
                continue

            nx, ny = pos
            if (
                river_neighbor_count(grid, nx, ny, river.river_id) < 2
                and pos not in river
            ):
                values[direction] = float(grid.heights[ny, nx])

            # Flow into open water that no river has claimed yet
            if not grid.rivers_at(nx, ny) and not TileType(int(grid.types[ny, nx])).collidable:
                values[direction] = 0.0

        left, right = values[RiverDirection.LEFT], values[RiverDirection.RIGHT]
        top, bottom = values[RiverDirection.TOP], values[RiverDirection.BOTTOM]
        if preferred == RiverDirection.LEFT and abs(right - left) < epsilon:
            values[RiverDirection.RIGHT] = math.inf
        elif preferred == RiverDirection.RIGHT and abs(right - left) < epsilon:
            values[RiverDirection.LEFT] = math.inf
        elif preferred == RiverDirection.TOP and abs(top - bottom) < epsilon:
            values[RiverDirection.BOTTOM] = math.inf
        elif preferred == RiverDirection.BOTTOM and abs(top - bottom) < epsilon:
            values[RiverDirection.TOP] = math.inf

        lowest = min(values.values())
        if lowest == math.inf:
            break

        chosen = next(d for d in _MOVE_ORDER if values[d] == lowest)
        target = neighbors[chosen]
        if target is None or not TileType(int(grid.types[target[1], target[0]])).collidable:
            break

        if river.direction != chosen:
            river.turns += 1
            river.direction = chosen
        position = target

    return river


def validate_river(river: River, config: RiverConfig) -> bool:
    """Check a traced river against the acceptance policy."""
    return (
        river.turns >= config.min_turns
        and river.length >= config.min_length
        and river.intersections <= config.max_intersections
    )


def detach_river(grid: Grid, river: River) -> None:
    """Remove every membership a rejected river left on the grid."""
    for x, y in river.tiles:
        grid.remove_river_membership(x, y, river.river_id)
    river.state = RiverState.REJECTED


def generate_rivers(
    grid: Grid,
    config: RiverConfig,
    rng: np.random.Generator,
) -> list[River]:
    """Trace up to ``config.count`` accepted rivers.

    Sources are random collidable tiles above ``config.min_height`` that no
    river passes through yet. Every random pick counts as an attempt;
    rejected rivers are rolled back and do not count towards the target.

    Args:
        grid: Classified grid; accepted rivers are appended to ``grid.rivers``.
        config: River configuration.
        rng: Random number generator.

    Returns:
        The rivers accepted by this call.
    """
    accepted: list[River] = []
    attempts = 0
    rejected = 0

    while len(accepted) < config.count and attempts < config.max_attempts:
        attempts += 1
        x = int(rng.integers(0, grid.width))
        y = int(rng.integers(0, grid.height))

        if not TileType(int(grid.types[y, x])).collidable:
            continue
        if grid.rivers_at(x, y):
            continue
        if grid.heights[y, x] <= config.min_height:
            continue

        river = River(river_id=len(grid.rivers) + 1)
        river.direction = lowest_neighbor(grid, x, y)
        trace_river(grid, river, x, y, epsilon=config.epsilon)

        if validate_river(river, config):
            river.state = RiverState.VALIDATED
            grid.rivers.append(river)
            accepted.append(river)
        else:
            detach_river(grid, river)
            rejected += 1

    if len(accepted) < config.count:
        logger.warning(
            "rivers_below_target",
            accepted=len(accepted),
            requested=config.count,
            attempts=attempts,
        )
    logger.info(
        "rivers_generated", accepted=len(accepted), rejected=rejected, attempts=attempts
    )
    return accepted


def build_river_groups(grid: Grid) -> list[RiverGroup]:
    """Group rivers that share at least one tile.

    Merges are transitive: if A meets B and B meets C, all three end up in
    one group. Rivers meeting no other river are not grouped.

    Args:
        grid: Grid with accepted rivers and their memberships.

    Returns:
        The groups, also stored on ``grid.river_groups``.
    """
    parent: dict[int, int] = {}

    def find(river_id: int) -> int:
        root = river_id
        while parent[root] != root:
            root = parent[root]
        while parent[river_id] != root:
            parent[river_id], river_id = root, parent[river_id]
        return root

    for _, river_ids in grid.membership_items():
        if len(river_ids) < 2:
            continue
        for river_id in river_ids:
            parent.setdefault(river_id, river_id)
        first = find(river_ids[0])
        for river_id in river_ids[1:]:
            root = find(river_id)
            if root != first:
                parent[root] = first

    groups_by_root: dict[int, RiverGroup] = {}
    for river in grid.rivers:
        if river.river_id not in parent:
            continue
        root = find(river.river_id)
        groups_by_root.setdefault(root, RiverGroup()).rivers.append(river)

    grid.river_groups = list(groups_by_root.values())
    logger.info("river_groups_built", groups=len(grid.river_groups))
    return grid.river_groups


def _random_range(rng: np.random.Generator, low: int, high: int) -> int:
    """Random int in [low, high), or ``low`` when the range is empty."""
    if high <= low:
        return low
    return int(rng.integers(low, high))


def carve_schedule(length: int, size: int, rng: np.random.Generator) -> list[int]:
    """Split a river into width bands, counted from the mouth.

    Band lengths come from halving the river length repeatedly (1/2, 1/4,
    1/8, 1/16), each randomized between a third of its length and its full
    length. Wider bands are dropped when ``size`` is small.

    Args:
        length: Number of tiles in the river.
        size: Widest width to use (1-4).
        rng: Random number generator.

    Returns:
        Cumulative band ends ``[c1, c2, c3, c4]``: the ``c1`` tiles nearest the
        mouth get width 4, up to ``c2`` width 3, up to ``c3`` width 2, up to
        ``c4`` width 1 and the rest width 0.
    """
    two = length // 2
    three = two // 2
    four = three // 2
    five = four // 2

    c1 = _random_range(rng, five // 3, five)
    if size < 4:
        c1 = 0
    c2 = c1 + _random_range(rng, four // 3, four)
    if size < 3:
        c1 = c2 = 0
    c3 = c2 + _random_range(rng, three // 3, three)
    if size < 2:
        c1 = c2 = c3 = 0
    c4 = c3 + _random_range(rng, two // 3, two)

    counts = [c1, c2, c3, c4]
    extra = c4 - length
    while extra > 0:
        # Shrink the widest non-empty band first
        start = next((i for i, c in enumerate(counts) if c > 0), None)
        if start is None:
            break
        for i in range(start, 4):
            counts[i] -= 1
        extra -= 1

    return counts


def confluence_schedule(
    river: River,
    parent: River,
    grid: Grid,
    rng: np.random.Generator,
) -> list[int]:
    """Band schedule for a tributary that tapers to the trunk's width.

    The last tile the tributary shares with the trunk is the confluence. The
    stretch from there to the tributary's end takes the trunk's carved width
    at that point.
    """
    parent_tiles = set(parent.tiles)
    intersection_index = 0
    intersection_size = 0
    for i, pos in enumerate(river.tiles):
        if pos in parent_tiles:
            intersection_index = i
            intersection_size = max(int(grid.river_width[pos[1], pos[0]]), 0)

    intersection_count = river.length - intersection_index
    size = _random_range(rng, intersection_size, 5)
    c1, c2, c3, c4 = carve_schedule(river.length, size, rng)

    if intersection_size == 1:
        c4 = intersection_count
        c1 = c2 = c3 = 0
    elif intersection_size == 2:
        c3 = intersection_count
        c1 = c2 = 0
    elif intersection_size == 3:
        c2 = intersection_count
        c1 = 0
    elif intersection_size == 4:
        c1 = intersection_count
    else:
        c1 = c2 = c3 = c4 = 0

    return [c1, c2, c3, c4]


# Tiles touched around a centre tile for each channel width, as (dx, dy)
CHANNEL_FOOTPRINTS: dict[int, tuple[tuple[int, int], ...]] = {
    0: ((0, 0),),
    1: ((0, 0), (0, 1), (1, 1), (1, 0)),
    2: (
        (0, 0),
        (0, 1), (1, 1),
        (1, 0),
        (0, -1), (-1, -1), (1, -1),
        (-1, 0), (-1, 1),
    ),
    3: (
        (0, 0),
        (0, 1), (1, 1), (0, 2), (1, 2),
        (1, 0), (2, 0), (2, 1),
        (0, -1), (-1, -1), (1, -1),
        (-1, 0), (-1, 1),
    ),
    4: (
        (0, 0),
        (0, 1), (1, 1), (0, 2), (1, 2),
        (1, 0), (2, 0), (2, 1),
        (0, -1), (1, -1), (2, -1), (0, -2), (1, -2),
        (-1, 0), (-1, 1), (-1, 2),
        (-2, 0), (-2, 1), (-2, -1),
        (-1, -1), (-1, -2),
    ),
}


def dig_tile(grid: Grid, river_id: int, x: int, y: int, width: int) -> None:
    """Carve a channel of ``width`` around (x, y).

    Every touched tile becomes RIVER with height 0 and, if it was still
    land-like, joins the river. The centre records the carved width.
    """
    river_value = int(TileType.RIVER)
    for dx, dy in CHANNEL_FOOTPRINTS[width]:
        pos = grid.wrap(x + dx, y + dy)
        if pos is None:
            continue
        px, py = pos
        if TileType(int(grid.types[py, px])).collidable:
            grid.add_river_membership(px, py, river_id)
        grid.types[py, px] = river_value
        grid.heights[py, px] = 0.0

    grid.river_width[y, x] = width


def carve_river(
    grid: Grid,
    river: River,
    rng: np.random.Generator,
    parent: River | None = None,
) -> None:
    """Carve a river's channel, widest at the mouth.

    Args:
        grid: Grid to carve, modified in place.
        river: River to carve; carving an already carved river does nothing.
        rng: Random number generator.
        parent: Trunk this river flows into, if it is a tributary.
    """
    if river.carved:
        return

    if parent is None:
        size = _random_range(rng, 1, 5)
        c1, c2, c3, c4 = carve_schedule(river.length, size, rng)
    else:
        c1, c2, c3, c4 = confluence_schedule(river, parent, grid, rng)

    for counter, (x, y) in enumerate(reversed(river.tiles)):
        if counter < c1:
            width = 4
        elif counter < c2:
            width = 3
        elif counter < c3:
            width = 2
        elif counter < c4:
            width = 1
        else:
            width = 0
        dig_tile(grid, river.river_id, x, y, width)

    river.carved = True


def carve_river_groups(grid: Grid, rng: np.random.Generator) -> int:
    """Carve every accepted river, trunks before their tributaries.

    Rivers that meet no other river are carved as their own trunk.

    Returns:
        Number of rivers carved.
    """
    carved = 0
    for group in grid.river_groups:
        trunk = group.trunk
        if trunk is None:
            continue
        carve_river(grid, trunk, rng)
        carved += 1
        for river in group.rivers:
            if river is not trunk:
                carve_river(grid, river, rng, parent=trunk)
                carved += 1

    for river in grid.rivers:
        if not river.carved:
            carve_river(grid, river, rng)
            carved += 1

    logger.info("rivers_carved", rivers=carved)
    return carved
