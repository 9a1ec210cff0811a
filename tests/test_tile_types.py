"""Tests for tile types and taxonomy profiles."""

from fantasymap.tile_types import (
    PASSABLE_TYPES,
    TILE_COLORS,
    WATER_TYPES,
    Taxonomy,
    TileType,
)


class TestTileType:
    """Tests for tile type properties."""

    def test_values_fit_uint8(self) -> None:
        """Every type is storable in a uint8 grid."""
        for tile_type in TileType:
            assert 0 <= int(tile_type) <= 255

    def test_water_and_river_not_collidable(self) -> None:
        """Rivers cannot cross open water or other river channels."""
        for tile_type in WATER_TYPES | {TileType.RIVER}:
            assert not tile_type.collidable

    def test_land_like_collidable(self) -> None:
        """Land-like types can still be crossed by a river."""
        for tile_type in (TileType.SAND, TileType.LAND, TileType.FOREST, TileType.ROCK):
            assert tile_type.collidable

    def test_passable(self) -> None:
        """Roads cross land-like terrain only."""
        assert TileType.ROAD.passable
        assert TileType.FOREST.passable
        assert not TileType.ROCK.passable
        assert not TileType.SHALLOW_WATER.passable
        assert not TileType.RIVER.passable
        assert PASSABLE_TYPES == {t for t in TileType if t.passable}

    def test_every_type_has_color(self) -> None:
        """Every type has a preview colour."""
        assert set(TILE_COLORS) == set(TileType)


class TestTaxonomy:
    """Tests for taxonomy profiles."""

    def test_versions_distinct(self) -> None:
        """Each profile has its own version number."""
        assert Taxonomy.SIMPLE.version != Taxonomy.ELEVATION.version

    def test_elevation_bands(self) -> None:
        """Elevation profile bands run from deep water to snow."""
        bands = Taxonomy.ELEVATION.height_bands
        assert bands[0] == TileType.DEEP_WATER
        assert bands[-1] == TileType.SNOW
        assert len(bands) == 6

    def test_simple_bands(self) -> None:
        """The simple profile starts with water then land."""
        bands = Taxonomy.SIMPLE.height_bands
        assert bands[:2] == (TileType.WATER, TileType.LAND)

    def test_bands_are_recognized(self) -> None:
        """Every band type and generated type belongs to its profile."""
        for taxonomy in Taxonomy:
            recognized = set(taxonomy.recognized_types)
            assert set(taxonomy.height_bands) <= recognized
            for generated in (TileType.FOREST, TileType.RIVER, TileType.ROAD):
                assert generated in recognized

    def test_water_and_mountain_types_disjoint(self) -> None:
        """No type is both water and mountain."""
        for taxonomy in Taxonomy:
            assert not set(taxonomy.water_types) & set(taxonomy.mountain_types)

    def test_from_string(self) -> None:
        """Profiles parse from their configuration names."""
        assert Taxonomy("elevation") is Taxonomy.ELEVATION
