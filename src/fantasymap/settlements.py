"""Settlement placement and road building."""

import math
from typing import Callable

import numpy as np
import structlog
from pydantic import BaseModel, Field

from .config import SettlementConfig, SettlementsConfig
from .exceptions import PlacementExhaustedError, UnreachableError
from .grid import Grid
from .pathfinding import astar
from .tile_types import TileType

logger = structlog.get_logger()

# Types a settlement may be founded on
SITE_TYPES = frozenset({TileType.SAND, TileType.LAND, TileType.FOREST})


class Settlement(BaseModel):
    """A named settlement with its assigned position."""

    name: str
    connected: bool = True
    x: int = Field(default=-1, description="Column, -1 until placed")
    y: int = Field(default=-1, description="Row, -1 until placed")

    @property
    def position(self) -> tuple[int, int]:
        return (self.x, self.y)

    def distance_to(self, x: int, y: int) -> float:
        return math.hypot(self.x - x, self.y - y)


def is_settlement_site(
    grid: Grid,
    x: int,
    y: int,
    config: SettlementsConfig,
    rng: np.random.Generator,
) -> bool:
    """Check whether a settlement may be founded at (x, y).

    The tile must be land-like with no water or mountains within
    ``config.clearance_radius``. Valid sites are still turned down with
    ``config.rejection_chance`` so placement does not favour the first
    suitable area.
    """
    if grid.type_at(x, y) not in SITE_TYPES:
        return False

    avoid = grid.taxonomy.water_types + grid.taxonomy.mountain_types
    if grid.is_near(x, y, avoid, radius=config.clearance_radius):
        return False

    return rng.random() >= config.rejection_chance


def _place_one(
    grid: Grid,
    location: SettlementConfig,
    rng: np.random.Generator,
    config: SettlementsConfig,
) -> Settlement:
    # Random coordinates stay one short of the far edges
    max_x = max(grid.width - 1, 1)
    max_y = max(grid.height - 1, 1)

    for _ in range(config.max_attempts):
        x = int(rng.integers(0, max_x))
        y = int(rng.integers(0, max_y))

        if not is_settlement_site(grid, x, y, config, rng):
            continue
        if any(s.distance_to(x, y) < config.min_distance for s in grid.locations):
            continue

        return Settlement(name=location.name, connected=location.connected, x=x, y=y)

    raise PlacementExhaustedError(
        f"No site found for '{location.name}' after {config.max_attempts} attempts"
    )


def place_settlements(
    grid: Grid,
    rng: np.random.Generator,
    config: SettlementsConfig,
    report: Callable[[str], None] | None = None,
) -> list[Settlement]:
    """Place the configured settlements in order.

    Each settlement gets up to ``config.max_attempts`` random positions. When
    one cannot be placed, placement stops; the settlements placed so far stay
    on the grid.

    Args:
        grid: Grid to place on; placed tiles become ROAD.
        rng: Random number generator.
        config: Settlement configuration.
        report: Optional stage reporter called before each placement.

    Returns:
        The placed settlements, also appended to ``grid.locations``.

    Raises:
        PlacementExhaustedError: If a settlement found no site. Callers end
            the settlement stage here, without building roads.
    """
    placed: list[Settlement] = []
    for location in config.locations:
        if report is not None:
            report(f"Placing settlement {location.name}...")
        try:
            settlement = _place_one(grid, location, rng, config)
        except PlacementExhaustedError as e:
            logger.warning(
                "settlement_placement_exhausted",
                name=location.name,
                placed=len(placed),
                remaining=len(config.locations) - len(placed),
                error=str(e),
            )
            raise

        grid.set_type(settlement.x, settlement.y, TileType.ROAD)
        grid.locations.append(settlement)
        placed.append(settlement)
        logger.debug("settlement_placed", name=settlement.name, x=settlement.x, y=settlement.y)

    logger.info("settlements_placed", count=len(placed), requested=len(config.locations))
    return placed


def road_passable(grid: Grid) -> Callable[[int, int], bool]:
    """Predicate for tiles a road may cross: land-like and clear of mountains."""
    mountains = grid.taxonomy.mountain_types

    def passable(x: int, y: int) -> bool:
        tile_type = grid.type_at(x, y)
        return (
            tile_type is not None
            and tile_type.passable
            and not grid.is_near(x, y, mountains, radius=1)
        )

    return passable


class RoadNetwork:
    """Road tiles laid so far, used to branch new roads off existing ones."""

    def __init__(self, grid: Grid):
        self.grid = grid
        self._tiles: set[tuple[int, int]] = set()
        self._coords = np.empty((0, 2), dtype=np.int64)
        self._dirty = False

    def __len__(self) -> int:
        return len(self._tiles)

    def __contains__(self, position: object) -> bool:
        return position in self._tiles

    def add(self, x: int, y: int) -> None:
        if (x, y) not in self._tiles:
            self._tiles.add((x, y))
            self._dirty = True

    def closest_to(self, x: int, y: int) -> tuple[int, int]:
        """Road tile nearest (x, y) by straight-line distance.

        Ties go to the tile that comes first in row-major order.
        """
        if not self._tiles:
            raise UnreachableError("Road network is empty")
        if self._dirty:
            self._coords = np.array(
                sorted(self._tiles, key=lambda p: (p[1], p[0])), dtype=np.int64
            )
            self._dirty = False

        d2 = (self._coords[:, 0] - x) ** 2 + (self._coords[:, 1] - y) ** 2
        best = self._coords[int(np.argmin(d2))]
        return (int(best[0]), int(best[1]))


def build_road(
    grid: Grid,
    network: RoadNetwork,
    source: Settlement,
    dest: Settlement,
) -> list[tuple[int, int]]:
    """Lay a road from the network towards ``dest``.

    The source settlement joins the network first. The search starts from
    the network tile closest to the destination, so later roads branch off
    earlier ones.

    Raises:
        UnreachableError: If no passable path reaches the destination.
    """
    network.add(source.x, source.y)
    start = network.closest_to(dest.x, dest.y)

    path = astar(
        start,
        dest.position,
        road_passable(grid),
        grid.width,
        grid.height,
        spherical=grid.spherical,
    )
    if path is None:
        raise UnreachableError(f"No road from {start} to '{dest.name}' at {dest.position}")

    for x, y in path:
        grid.set_type(x, y, TileType.ROAD)
        network.add(x, y)
    return path


def connect_settlements(
    grid: Grid,
    report: Callable[[str], None] | None = None,
) -> int:
    """Connect consecutive settlements by road.

    Settlements flagged as not connected are left out of the chain, so their
    neighbours are joined to each other instead. Pairs with no passable path
    between them are skipped.

    Returns:
        Number of roads built.
    """
    network = RoadNetwork(grid)
    built = 0
    skipped = 0

    chain = [s for s in grid.locations if s.connected]
    for source, dest in zip(chain, chain[1:]):
        if report is not None:
            report(f"Building road between '{source.name}' and '{dest.name}'...")
        try:
            path = build_road(grid, network, source, dest)
        except UnreachableError as e:
            logger.warning("road_unreachable", source=source.name, dest=dest.name, error=str(e))
            skipped += 1
            continue

        built += 1
        logger.debug("road_built", source=source.name, dest=dest.name, length=len(path))

    logger.info(
        "roads_built",
        roads=built,
        skipped=skipped,
        bypassed=len(grid.locations) - len(chain),
        road_tiles=len(network),
    )
    return built
