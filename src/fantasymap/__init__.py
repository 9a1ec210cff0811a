"""Procedural fantasy world map generation.

This package synthesizes a tile map from a fractal height field, classifies
it into terrain bands, cleans up small artifacts, grows forests, traces and
carves rivers, and places settlements connected by roads.
"""

from .config import GenerationConfig, load_config, validate_config
from .exceptions import (
    ConfigurationError,
    GenerationCancelled,
    MapGenError,
    PlacementExhaustedError,
    UnreachableError,
)
from .grid import Grid, Tile
from .persistence import load_map, save_map
from .pipeline import GenerationResult, StageReporter, generate_map
from .render import render_map, save_preview
from .settlements import Settlement
from .tile_types import Taxonomy, TileType
from .validation import ValidationResult, validate_map

__all__ = [
    "ConfigurationError",
    "GenerationCancelled",
    "GenerationConfig",
    "GenerationResult",
    "Grid",
    "MapGenError",
    "PlacementExhaustedError",
    "Settlement",
    "StageReporter",
    "Taxonomy",
    "Tile",
    "TileType",
    "UnreachableError",
    "ValidationResult",
    "generate_map",
    "load_config",
    "load_map",
    "render_map",
    "save_map",
    "save_preview",
    "validate_config",
    "validate_map",
]
