"""Tests for preview rendering and terrain statistics."""

from PIL import Image

from fantasymap.render import SETTLEMENT_COLOR, render_map, save_preview, terrain_stats
from fantasymap.settlements import Settlement
from fantasymap.tile_types import TILE_COLORS, TileType


class TestRenderMap:
    """Tests for the preview image."""

    def test_tile_colors(self, make_grid) -> None:
        """Each pixel takes the colour of its tile type."""
        grid = make_grid(8, 6)
        grid.types[2, 5] = int(TileType.DEEP_WATER)
        img = render_map(grid)

        assert img.size == (8, 6)
        assert img.mode == "RGB"
        assert img.getpixel((0, 0)) == TILE_COLORS[TileType.LAND]
        assert img.getpixel((5, 2)) == TILE_COLORS[TileType.DEEP_WATER]

    def test_settlement_marker(self, land_grid) -> None:
        """Settlements are drawn over the terrain."""
        land_grid.locations.append(Settlement(name="A", x=10, y=10))
        img = render_map(land_grid)
        assert img.getpixel((10, 10)) == SETTLEMENT_COLOR
        assert img.getpixel((0, 0)) == TILE_COLORS[TileType.LAND]

    def test_markers_disabled(self, land_grid) -> None:
        """A zero marker radius draws terrain only."""
        land_grid.locations.append(Settlement(name="A", x=10, y=10))
        img = render_map(land_grid, marker_radius=0)
        assert img.getpixel((10, 10)) == TILE_COLORS[TileType.LAND]

    def test_save_preview(self, land_grid, tmp_path) -> None:
        """Previews are written as PNG, creating parent directories."""
        path = save_preview(land_grid, tmp_path / "out" / "map.png")
        assert path.exists()
        with Image.open(path) as img:
            assert img.size == (20, 20)


class TestTerrainStats:
    """Tests for per-type tile statistics."""

    def test_counts_and_percentages(self, make_grid) -> None:
        """Only types present are listed, with count and percentage."""
        grid = make_grid(10, 10)
        grid.types[:3, :] = int(TileType.FOREST)
        stats = terrain_stats(grid)
        assert stats["land"] == {"count": 70, "percentage": 70.0}
        assert stats["forest"] == {"count": 30, "percentage": 30.0}
        assert "rock" not in stats
