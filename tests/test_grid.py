"""Tests for the tile grid."""

import numpy as np
import pytest

from fantasymap.exceptions import ConfigurationError
from fantasymap.grid import Grid
from fantasymap.tile_types import TileType


class TestGridConstruction:
    """Tests for grid creation."""

    def test_array_shapes(self) -> None:
        """Arrays are indexed [y, x]."""
        grid = Grid(8, 5)
        assert grid.heights.shape == (5, 8)
        assert grid.types.shape == (5, 8)
        assert grid.river_width.shape == (5, 8)
        assert grid.size == 40

    def test_uncarved_width(self) -> None:
        """Tiles start with no carved channel."""
        grid = Grid(4, 4)
        assert np.all(grid.river_width == -1)
        assert grid.tile(1, 1).carved_width == -1

    @pytest.mark.parametrize("width,height", [(0, 5), (5, 0), (-3, 3)])
    def test_non_positive_size_rejected(self, width: int, height: int) -> None:
        """Zero or negative dimensions raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            Grid(width, height)

    def test_clear_resets_state(self, make_grid) -> None:
        """clear() resets heights, types, channels and memberships."""
        grid = make_grid(4, 4)
        grid.heights[:] = 0.5
        grid.river_width[1, 1] = 2
        grid.add_river_membership(1, 1, 7)
        grid.clear()
        assert np.all(grid.heights == 0.0)
        assert np.all(grid.types == 0)
        assert np.all(grid.river_width == -1)
        assert grid.rivers_at(1, 1) == []


class TestNeighbors:
    """Tests for wrapping and bounded neighbour lookups."""

    def test_wrap_bounded(self) -> None:
        """Bounded grids have no position past the edge."""
        grid = Grid(5, 4)
        assert grid.wrap(2, 3) == (2, 3)
        assert grid.wrap(-1, 0) is None
        assert grid.wrap(0, 4) is None

    def test_wrap_spherical(self) -> None:
        """Spherical grids wrap on both axes."""
        grid = Grid(5, 4, spherical=True)
        assert grid.wrap(-1, 0) == (4, 0)
        assert grid.wrap(5, -1) == (0, 3)

    def test_tile_neighbors_bounded(self) -> None:
        """Edge tiles have no neighbour beyond the edge."""
        grid = Grid(5, 5)
        corner = grid.tile(0, 0)
        assert corner.left is None
        assert corner.top is None
        assert corner.right.position == (1, 0)
        assert corner.bottom.position == (0, 1)

    def test_tile_neighbors_spherical(self) -> None:
        """Corner tiles of a spherical grid see the far edges."""
        grid = Grid(5, 5, spherical=True)
        corner = grid.tile(0, 0)
        assert corner.left.position == (4, 0)
        assert corner.top.position == (0, 4)

    def test_neighbors4_count(self) -> None:
        """Bounded corners have two neighbours, everything else four."""
        bounded = Grid(5, 5)
        assert len(bounded.neighbors4(0, 0)) == 2
        assert len(bounded.neighbors4(2, 2)) == 4
        assert len(Grid(5, 5, spherical=True).neighbors4(0, 0)) == 4

    def test_type_at_default_off_grid(self, make_grid) -> None:
        """Off-grid lookups return the given default."""
        grid = make_grid(3, 3)
        assert grid.type_at(1, 1) == TileType.LAND
        assert grid.type_at(-1, 1) is None
        assert grid.type_at(-1, 1, TileType.WATER) == TileType.WATER


class TestTileView:
    """Tests for Tile views writing through to the grid."""

    def test_setters_write_arrays(self) -> None:
        """Setting tile attributes writes the grid arrays."""
        grid = Grid(3, 3)
        tile = grid.tile(2, 1)
        tile.height = 0.75
        tile.type = TileType.FOREST
        assert grid.heights[1, 2] == pytest.approx(0.75)
        assert grid.types[1, 2] == int(TileType.FOREST)

    def test_equality_by_position(self) -> None:
        """Tiles compare and hash by position."""
        grid = Grid(3, 3)
        assert grid.tile(1, 2) == grid.tile(1, 2)
        assert grid.tile(1, 2) != grid.tile(2, 1)
        assert len({grid.tile(0, 0), grid.tile(0, 0)}) == 1

    def test_tiles_row_major(self) -> None:
        """Tiles are visited row by row."""
        grid = Grid(3, 2)
        positions = [t.position for t in grid.tiles()]
        assert positions[:4] == [(0, 0), (1, 0), (2, 0), (0, 1)]
        assert len(positions) == 6


class TestIsNear:
    """Tests for proximity checks."""

    def test_detects_type_in_window(self, make_grid) -> None:
        """Types inside the square window are found."""
        grid = make_grid(10, 10)
        grid.set_type(2, 2, TileType.ROCK)
        assert grid.is_near(3, 3, [TileType.ROCK])
        assert grid.is_near(2, 2, [TileType.ROCK])
        assert not grid.is_near(4, 4, [TileType.ROCK])
        assert grid.is_near(4, 4, [TileType.ROCK], radius=2)

    def test_wraps_on_spherical(self, make_grid) -> None:
        """The window wraps around a spherical grid."""
        grid = make_grid(10, 10, spherical=True)
        grid.set_type(9, 9, TileType.SHALLOW_WATER)
        assert grid.is_near(0, 0, [TileType.SHALLOW_WATER])

    def test_clips_on_bounded(self, make_grid) -> None:
        """The window stops at the edge of a bounded grid."""
        grid = make_grid(10, 10)
        grid.set_type(9, 9, TileType.SHALLOW_WATER)
        assert not grid.is_near(0, 0, [TileType.SHALLOW_WATER])


class TestRiverMemberships:
    """Tests for per-tile river membership bookkeeping."""

    def test_add_is_idempotent(self) -> None:
        """Adding the same river twice records it once."""
        grid = Grid(4, 4)
        grid.add_river_membership(1, 1, 3)
        grid.add_river_membership(1, 1, 3)
        grid.add_river_membership(1, 1, 5)
        assert grid.rivers_at(1, 1) == [3, 5]
        assert grid.tile(1, 1).rivers == [3, 5]

    def test_remove_drops_empty_entries(self) -> None:
        """Removing the last river drops the tile entry."""
        grid = Grid(4, 4)
        grid.add_river_membership(1, 1, 3)
        grid.remove_river_membership(1, 1, 3)
        grid.remove_river_membership(2, 2, 3)
        assert grid.rivers_at(1, 1) == []
        assert grid.membership_items() == []

    def test_membership_items_row_major(self) -> None:
        """Membership entries are listed row by row."""
        grid = Grid(4, 4)
        grid.add_river_membership(3, 0, 1)
        grid.add_river_membership(0, 2, 1)
        grid.add_river_membership(1, 0, 2)
        positions = [pos for pos, _ in grid.membership_items()]
        assert positions == [(1, 0), (3, 0), (0, 2)]


class TestCounts:
    """Tests for type counts and masks."""

    def test_count_and_fraction(self, make_grid) -> None:
        """Counts and fractions cover tiles of the given type."""
        grid = make_grid(4, 5)
        grid.types[0, :] = int(TileType.FOREST)
        assert grid.count(TileType.FOREST) == 4
        assert grid.fraction(TileType.FOREST) == pytest.approx(0.2)
        assert grid.mask([TileType.FOREST, TileType.LAND]).all()
