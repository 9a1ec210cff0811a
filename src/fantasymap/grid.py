"""The tile grid shared by every generation stage."""

from typing import TYPE_CHECKING, Iterable

import numpy as np
from numpy.typing import NDArray

from .exceptions import ConfigurationError
from .tile_types import Taxonomy, TileType

if TYPE_CHECKING:
    from .rivers import River, RiverGroup
    from .settlements import Settlement


# Coordinate system: +X is right, +Y is down (bottom)
TOP = (0, -1)
BOTTOM = (0, 1)
LEFT = (-1, 0)
RIGHT = (1, 0)

FOUR_NEIGHBORS: tuple[tuple[int, int], ...] = (LEFT, RIGHT, TOP, BOTTOM)


class Tile:
    """View of one grid cell.

    Holds only the coordinates and a handle to the owning grid; all state
    lives in the grid arrays.
    """

    __slots__ = ("grid", "x", "y")

    def __init__(self, grid: "Grid", x: int, y: int):
        self.grid = grid
        self.x = x
        self.y = y

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Tile):
            return NotImplemented
        return self.grid is other.grid and self.x == other.x and self.y == other.y

    def __hash__(self) -> int:
        return hash((self.x, self.y))

    def __repr__(self) -> str:
        return f"Tile(x={self.x}, y={self.y}, type={self.type.name})"

    @property
    def position(self) -> tuple[int, int]:
        return (self.x, self.y)

    @property
    def height(self) -> float:
        return float(self.grid.heights[self.y, self.x])

    @height.setter
    def height(self, value: float) -> None:
        self.grid.heights[self.y, self.x] = value

    @property
    def type(self) -> TileType:
        return TileType(int(self.grid.types[self.y, self.x]))

    @type.setter
    def type(self, value: TileType) -> None:
        self.grid.types[self.y, self.x] = int(value)

    @property
    def collidable(self) -> bool:
        """Land-like tile that a river can still cross."""
        return self.type.collidable

    @property
    def rivers(self) -> list[int]:
        """Ids of rivers passing through this tile."""
        return self.grid.rivers_at(self.x, self.y)

    @property
    def carved_width(self) -> int:
        """Channel width carved with this tile as centre, -1 if never carved."""
        return int(self.grid.river_width[self.y, self.x])

    def _neighbor(self, offset: tuple[int, int]) -> "Tile | None":
        pos = self.grid.wrap(self.x + offset[0], self.y + offset[1])
        if pos is None:
            return None
        return Tile(self.grid, pos[0], pos[1])

    @property
    def top(self) -> "Tile | None":
        return self._neighbor(TOP)

    @property
    def bottom(self) -> "Tile | None":
        return self._neighbor(BOTTOM)

    @property
    def left(self) -> "Tile | None":
        return self._neighbor(LEFT)

    @property
    def right(self) -> "Tile | None":
        return self._neighbor(RIGHT)


class Grid:
    """A width x height map of tiles.

    Arrays are indexed ``[y, x]``. When ``spherical`` is set, neighbour
    lookups wrap around both axes; otherwise they stop at the edges.
    """

    def __init__(
        self,
        width: int,
        height: int,
        spherical: bool = False,
        taxonomy: Taxonomy = Taxonomy.ELEVATION,
    ):
        if width <= 0 or height <= 0:
            raise ConfigurationError(f"Grid size must be positive, got {width}x{height}")

        self.width = width
        self.height = height
        self.spherical = spherical
        self.taxonomy = taxonomy

        self.heights: NDArray[np.float32] = np.zeros((height, width), dtype=np.float32)
        self.types: NDArray[np.uint8] = np.zeros((height, width), dtype=np.uint8)
        self.river_width: NDArray[np.int8] = np.full((height, width), -1, dtype=np.int8)
        self.thresholds: list[float] = []

        self.rivers: list["River"] = []
        self.river_groups: list["RiverGroup"] = []
        self.locations: list["Settlement"] = []

        self._river_memberships: dict[tuple[int, int], list[int]] = {}

    @property
    def size(self) -> int:
        """Total number of tiles."""
        return self.width * self.height

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def wrap(self, x: int, y: int) -> tuple[int, int] | None:
        """Resolve a coordinate, wrapping on a spherical world.

        Returns:
            The in-grid coordinate, or None if it falls off a bounded grid.
        """
        if self.spherical:
            return (x % self.width, y % self.height)
        if self.in_bounds(x, y):
            return (x, y)
        return None

    def tile(self, x: int, y: int) -> Tile:
        return Tile(self, x, y)

    def tiles(self) -> Iterable[Tile]:
        """Iterate every tile in row-major order."""
        for y in range(self.height):
            for x in range(self.width):
                yield Tile(self, x, y)

    def type_at(self, x: int, y: int, default: TileType | None = None) -> TileType | None:
        """Tile type at a coordinate, or ``default`` off a bounded grid."""
        pos = self.wrap(x, y)
        if pos is None:
            return default
        return TileType(int(self.types[pos[1], pos[0]]))

    def set_type(self, x: int, y: int, tile_type: TileType) -> None:
        self.types[y, x] = int(tile_type)

    def height_at(self, x: int, y: int) -> float:
        return float(self.heights[y, x])

    def neighbors4(self, x: int, y: int) -> list[tuple[int, int]]:
        """Left, right, top and bottom neighbours that exist."""
        result = []
        for dx, dy in FOUR_NEIGHBORS:
            pos = self.wrap(x + dx, y + dy)
            if pos is not None:
                result.append(pos)
        return result

    def is_near(
        self,
        x: int,
        y: int,
        tile_types: Iterable[TileType],
        radius: int = 1,
    ) -> bool:
        """Check whether any tile within ``radius`` has one of the types.

        The square window around (x, y) is inspected; it wraps on a
        spherical world and is clipped on a bounded one.
        """
        xs = np.arange(x - radius, x + radius + 1)
        ys = np.arange(y - radius, y + radius + 1)
        if self.spherical:
            xs %= self.width
            ys %= self.height
        else:
            xs = xs[(xs >= 0) & (xs < self.width)]
            ys = ys[(ys >= 0) & (ys < self.height)]

        window = self.types[np.ix_(ys, xs)]
        return bool(np.isin(window, [int(t) for t in tile_types]).any())

    def mask(self, tile_types: Iterable[TileType]) -> NDArray[np.bool_]:
        """Boolean mask of tiles having one of the types."""
        return np.isin(self.types, [int(t) for t in tile_types])

    def count(self, tile_type: TileType) -> int:
        return int(np.count_nonzero(self.types == int(tile_type)))

    def fraction(self, tile_type: TileType) -> float:
        """Fraction of all tiles having the type."""
        return self.count(tile_type) / self.size

    # River memberships

    def rivers_at(self, x: int, y: int) -> list[int]:
        return self._river_memberships.get((x, y), [])

    def add_river_membership(self, x: int, y: int, river_id: int) -> None:
        members = self._river_memberships.setdefault((x, y), [])
        if river_id not in members:
            members.append(river_id)

    def remove_river_membership(self, x: int, y: int, river_id: int) -> None:
        members = self._river_memberships.get((x, y))
        if not members or river_id not in members:
            return
        members.remove(river_id)
        if not members:
            del self._river_memberships[(x, y)]

    def membership_items(self) -> list[tuple[tuple[int, int], list[int]]]:
        """All (position, river ids) pairs in row-major order."""
        return sorted(
            self._river_memberships.items(), key=lambda item: (item[0][1], item[0][0])
        )

    def clear(self) -> None:
        """Reset all per-run state."""
        self.heights.fill(0.0)
        self.types.fill(0)
        self.river_width.fill(-1)
        self.thresholds = []
        self.rivers.clear()
        self.river_groups.clear()
        self.locations.clear()
        self._river_memberships.clear()
