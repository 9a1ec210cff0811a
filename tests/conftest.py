"""Shared test fixtures for map generation tests."""

import numpy as np
import pytest

from fantasymap.grid import Grid
from fantasymap.tile_types import Taxonomy, TileType


def filled_grid(
    width: int,
    height: int,
    tile_type: TileType = TileType.LAND,
    spherical: bool = False,
    taxonomy: Taxonomy = Taxonomy.ELEVATION,
) -> Grid:
    """Grid with every tile set to one type."""
    grid = Grid(width, height, spherical=spherical, taxonomy=taxonomy)
    grid.types[:] = int(tile_type)
    return grid


@pytest.fixture
def make_grid():
    """Factory for grids with every tile set to one type."""
    return filled_grid


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture
def land_grid() -> Grid:
    """20x20 bounded grid, all land."""
    return filled_grid(20, 20)


@pytest.fixture
def slope_grid() -> Grid:
    """5x10 bounded grid sloping down towards a water row at the bottom.

    Heights drop by 0.1 per row (1.0 at y=0); every row is flat across x.
    Row y=9 is shallow water.
    """
    grid = filled_grid(5, 10)
    for y in range(10):
        grid.heights[y, :] = 1.0 - y / 10
    grid.types[9, :] = int(TileType.SHALLOW_WATER)
    return grid
