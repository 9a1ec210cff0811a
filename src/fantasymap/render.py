"""Preview images and terrain statistics for generated maps."""

from collections import Counter
from pathlib import Path

import numpy as np
import structlog
from PIL import Image, ImageDraw

from .grid import Grid
from .tile_types import TILE_COLORS, TileType

logger = structlog.get_logger()

UNKNOWN_COLOR = (255, 0, 255)  # Magenta
SETTLEMENT_COLOR = (200, 30, 30)
SETTLEMENT_OUTLINE = (0, 0, 0)


def _palette() -> np.ndarray:
    """Lookup table from tile type value to RGB."""
    palette = np.empty((256, 3), dtype=np.uint8)
    palette[:] = UNKNOWN_COLOR
    for tile_type, color in TILE_COLORS.items():
        palette[int(tile_type)] = color
    return palette


def render_map(grid: Grid, marker_radius: int = 2) -> Image.Image:
    """Render one pixel per tile, with settlements as small markers.

    Args:
        grid: Grid to render.
        marker_radius: Settlement marker radius in pixels; 0 disables markers.

    Returns:
        RGB image of size (width, height).
    """
    rgb = _palette()[grid.types]
    img = Image.fromarray(rgb)

    if marker_radius > 0 and grid.locations:
        draw = ImageDraw.Draw(img)
        for settlement in grid.locations:
            x, y = settlement.x, settlement.y
            draw.rectangle(
                (x - marker_radius, y - marker_radius, x + marker_radius, y + marker_radius),
                fill=SETTLEMENT_COLOR,
                outline=SETTLEMENT_OUTLINE,
            )

    return img


def save_preview(grid: Grid, path: Path, marker_radius: int = 2) -> Path:
    """Render a grid and save it as an image."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    render_map(grid, marker_radius).save(path)
    logger.info("preview_saved", path=str(path), width=grid.width, height=grid.height)
    return path


def terrain_stats(grid: Grid) -> dict[str, dict[str, float]]:
    """Tile count and percentage per present tile type."""
    total = grid.size
    counts = Counter(grid.types.ravel().tolist())

    stats: dict[str, dict[str, float]] = {}
    for value in sorted(counts):
        name = TileType(value).name.lower()
        stats[name] = {
            "count": counts[value],
            "percentage": round(100 * counts[value] / total, 2),
        }
    return stats
