"""Tests for saving and loading maps."""

import json

import numpy as np
import pytest

from fantasymap.config import GenerationConfig
from fantasymap.persistence import FORMAT_VERSION, load_map, save_map
from fantasymap.settlements import Settlement
from fantasymap.tile_types import Taxonomy, TileType


@pytest.fixture
def saved_grid(make_grid):
    """12x8 spherical map with a river tile and two settlements."""
    grid = make_grid(12, 8, spherical=True, taxonomy=Taxonomy.ELEVATION)
    grid.heights[:] = np.linspace(0.0, 1.0, 96, dtype=np.float32).reshape(8, 12)
    grid.types[0, :] = int(TileType.DEEP_WATER)
    grid.types[4, 5] = int(TileType.RIVER)
    grid.river_width[4, 5] = 2
    grid.thresholds = [0.1, 0.4, 0.45, 0.85, 0.95]
    grid.locations.append(Settlement(name="Westwood", x=3, y=6))
    grid.locations.append(Settlement(name="Kuo Toans", connected=False, x=9, y=2))
    return grid


class TestSaveLoad:
    """Tests for the .npz map format."""

    def test_round_trip(self, saved_grid, tmp_path) -> None:
        """A saved map loads back with the same arrays and settlements."""
        path = save_map(tmp_path / "world.npz", saved_grid, GenerationConfig(seed=5))
        loaded = load_map(path)

        assert (loaded.width, loaded.height) == (12, 8)
        assert loaded.spherical
        assert loaded.taxonomy == Taxonomy.ELEVATION
        np.testing.assert_array_equal(loaded.types, saved_grid.types)
        np.testing.assert_array_equal(loaded.heights, saved_grid.heights)
        np.testing.assert_array_equal(loaded.river_width, saved_grid.river_width)
        assert loaded.thresholds == saved_grid.thresholds
        assert loaded.locations == saved_grid.locations
        assert loaded.rivers == []

    def test_metadata(self, saved_grid, tmp_path) -> None:
        """Metadata records the format version, seed and configuration."""
        path = save_map(tmp_path / "world.npz", saved_grid, GenerationConfig(seed=5))
        with np.load(path) as data:
            metadata = json.loads(data["metadata"].tobytes().decode("utf-8"))
        assert metadata["version"] == FORMAT_VERSION
        assert metadata["seed"] == 5
        assert metadata["taxonomy_version"] == Taxonomy.ELEVATION.version
        assert metadata["config"]["seed"] == 5

    def test_suffix_appended(self, saved_grid, tmp_path) -> None:
        """A missing .npz suffix is added."""
        path = save_map(tmp_path / "maps" / "world", saved_grid)
        assert path == tmp_path / "maps" / "world.npz"
        assert path.exists()

    def test_missing_file(self, tmp_path) -> None:
        """Loading a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_map(tmp_path / "nope.npz")

    def test_missing_arrays(self, tmp_path) -> None:
        """Archives without map arrays are rejected."""
        path = tmp_path / "other.npz"
        np.savez(path, foo=np.zeros(3))
        with pytest.raises(ValueError, match="types"):
            load_map(path)

    def test_shape_mismatch(self, tmp_path) -> None:
        """Arrays of different shapes are rejected."""
        path = tmp_path / "bad.npz"
        np.savez(path, types=np.zeros((4, 4), dtype=np.uint8), heights=np.zeros((4, 5)))
        with pytest.raises(ValueError):
            load_map(path)

    def test_bare_arrays_load_with_defaults(self, tmp_path) -> None:
        """Archives without metadata load as bounded maps."""
        path = tmp_path / "bare.npz"
        np.savez(path, types=np.full((3, 4), 4, dtype=np.uint8), heights=np.zeros((3, 4)))
        grid = load_map(path)
        assert (grid.width, grid.height) == (4, 3)
        assert not grid.spherical
        assert grid.count(TileType.LAND) == 12
        assert np.all(grid.river_width == -1)
