"""Tile types, taxonomy profiles and their properties."""

from enum import Enum, IntEnum


class TileType(IntEnum):
    """Discrete terrain class of a tile, stored as uint8 in the grid."""

    WATER = 0
    DEEP_WATER = 1
    SHALLOW_WATER = 2
    SAND = 3
    LAND = 4
    FOREST = 5
    MOUNTAIN = 6
    HIGH_MOUNTAIN = 7
    ROCK = 8
    SNOW = 9
    WALL = 10
    ROAD = 11
    RIVER = 12

    @property
    def collidable(self) -> bool:
        """Whether this is land-like terrain a river can flow across."""
        return self not in _NON_COLLIDABLE_TYPES

    @property
    def is_water(self) -> bool:
        """Whether this is any kind of open water."""
        return self in WATER_TYPES

    @property
    def passable(self) -> bool:
        """Whether a road may be laid across this terrain."""
        return self in PASSABLE_TYPES


class Taxonomy(str, Enum):
    """Versioned tile taxonomy profiles."""

    SIMPLE = "simple"
    ELEVATION = "elevation"

    @property
    def version(self) -> int:
        """Profile version number."""
        return _TAXONOMY_VERSIONS[self]

    @property
    def recognized_types(self) -> tuple[TileType, ...]:
        """All tile types that may appear on a map of this profile."""
        return _RECOGNIZED_TYPES[self]

    @property
    def height_bands(self) -> tuple[TileType, ...]:
        """Types assigned by elevation, lowest first."""
        return _HEIGHT_BANDS[self]

    @property
    def land_type(self) -> TileType:
        return TileType.LAND

    @property
    def water_types(self) -> tuple[TileType, ...]:
        """Types that forests and settlements keep their distance from."""
        if self is Taxonomy.SIMPLE:
            return (TileType.WATER,)
        return (TileType.DEEP_WATER, TileType.SHALLOW_WATER, TileType.RIVER)

    @property
    def mountain_types(self) -> tuple[TileType, ...]:
        if self is Taxonomy.SIMPLE:
            return (TileType.MOUNTAIN, TileType.HIGH_MOUNTAIN, TileType.WALL)
        return (TileType.ROCK, TileType.SNOW)


WATER_TYPES = frozenset({
    TileType.WATER,
    TileType.DEEP_WATER,
    TileType.SHALLOW_WATER,
})

_NON_COLLIDABLE_TYPES = WATER_TYPES | {TileType.RIVER}

PASSABLE_TYPES = frozenset({
    TileType.SAND,
    TileType.LAND,
    TileType.FOREST,
    TileType.ROAD,
})

_TAXONOMY_VERSIONS = {
    Taxonomy.SIMPLE: 1,
    Taxonomy.ELEVATION: 2,
}

_RECOGNIZED_TYPES = {
    Taxonomy.SIMPLE: (
        TileType.WATER,
        TileType.LAND,
        TileType.FOREST,
        TileType.MOUNTAIN,
        TileType.HIGH_MOUNTAIN,
        TileType.WALL,
        TileType.RIVER,
        TileType.ROAD,
    ),
    Taxonomy.ELEVATION: (
        TileType.DEEP_WATER,
        TileType.SHALLOW_WATER,
        TileType.SAND,
        TileType.LAND,
        TileType.FOREST,
        TileType.ROCK,
        TileType.SNOW,
        TileType.RIVER,
        TileType.ROAD,
    ),
}

_HEIGHT_BANDS = {
    Taxonomy.SIMPLE: (
        TileType.WATER,
        TileType.LAND,
        TileType.MOUNTAIN,
        TileType.HIGH_MOUNTAIN,
    ),
    Taxonomy.ELEVATION: (
        TileType.DEEP_WATER,
        TileType.SHALLOW_WATER,
        TileType.SAND,
        TileType.LAND,
        TileType.ROCK,
        TileType.SNOW,
    ),
}

# Colors for each tile type (RGB)
TILE_COLORS: dict[TileType, tuple[int, int, int]] = {
    TileType.WATER: (30, 80, 200),
    TileType.DEEP_WATER: (20, 60, 140),
    TileType.SHALLOW_WATER: (60, 130, 180),
    TileType.SAND: (230, 210, 140),
    TileType.LAND: (60, 150, 60),
    TileType.FOREST: (20, 100, 20),
    TileType.MOUNTAIN: (120, 120, 120),
    TileType.HIGH_MOUNTAIN: (240, 240, 240),
    TileType.ROCK: (128, 128, 128),
    TileType.SNOW: (250, 250, 250),
    TileType.WALL: (188, 143, 143),
    TileType.ROAD: (139, 69, 19),
    TileType.RIVER: (70, 110, 220),
}
