"""Map persistence: save and load generated grids."""

import json
from datetime import datetime, timezone
from pathlib import Path

import numpy as np
import structlog

from .config import GenerationConfig
from .grid import Grid
from .settlements import Settlement
from .tile_types import Taxonomy

logger = structlog.get_logger()

FORMAT_VERSION = 1

_REQUIRED_ARRAYS = ("types", "heights")


def save_map(path: Path, grid: Grid, config: GenerationConfig | None = None) -> Path:
    """Save a generated grid to disk.

    Uses numpy's compressed .npz format; settlements and run parameters go
    into a JSON metadata blob.

    Args:
        path: Output path; ``.npz`` is appended when missing.
        grid: Grid to save.
        config: Generation configuration used, recorded for reference.

    Returns:
        The path actually written.
    """
    path = Path(path)
    if path.suffix != ".npz":
        path = path.with_name(path.name + ".npz")

    settlements = [s.model_dump() for s in grid.locations]
    metadata = {
        "version": FORMAT_VERSION,
        "width": grid.width,
        "height": grid.height,
        "spherical": grid.spherical,
        "taxonomy": grid.taxonomy.value,
        "taxonomy_version": grid.taxonomy.version,
        "thresholds": list(grid.thresholds),
        "seed": config.seed if config is not None else None,
        "generated_at": datetime.now(timezone.utc).isoformat(),
    }
    if config is not None:
        metadata["config"] = config.model_dump(mode="json")

    path.parent.mkdir(parents=True, exist_ok=True)
    np.savez_compressed(
        path,
        types=grid.types,
        heights=grid.heights,
        river_width=grid.river_width,
        settlements=np.frombuffer(json.dumps(settlements).encode("utf-8"), dtype=np.uint8),
        metadata=np.frombuffer(json.dumps(metadata).encode("utf-8"), dtype=np.uint8),
    )

    file_size = path.stat().st_size / 1024
    logger.info("map_saved", path=str(path), size_kb=round(file_size, 1))
    return path


def _read_json(data, key: str, default):
    if key not in data:
        return default
    return json.loads(data[key].tobytes().decode("utf-8"))


def load_map(path: Path) -> Grid:
    """Load a grid saved by ``save_map``.

    River paths are not stored; the loaded grid keeps the carved tiles and
    widths but has no River objects.

    Args:
        path: Path to .npz file.

    Returns:
        The restored grid with settlements in ``grid.locations``.

    Raises:
        FileNotFoundError: If file doesn't exist.
        ValueError: If file format is invalid.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Map file not found: {path}")

    with np.load(path) as data:
        for key in _REQUIRED_ARRAYS:
            if key not in data:
                raise ValueError(f"Invalid map file: missing '{key}' array")

        types = data["types"]
        heights = data["heights"]
        if types.ndim != 2 or types.shape != heights.shape:
            raise ValueError(
                f"Invalid map file: types {types.shape} and heights {heights.shape} differ"
            )

        metadata = _read_json(data, "metadata", {})
        settlements = _read_json(data, "settlements", [])
        river_width = data["river_width"] if "river_width" in data else None

    height, width = types.shape
    grid = Grid(
        width,
        height,
        spherical=bool(metadata.get("spherical", False)),
        taxonomy=Taxonomy(metadata.get("taxonomy", Taxonomy.ELEVATION.value)),
    )
    grid.types[:] = types
    grid.heights[:] = heights
    if river_width is not None:
        grid.river_width[:] = river_width
    grid.thresholds = list(metadata.get("thresholds", []))
    grid.locations.extend(Settlement.model_validate(s) for s in settlements)

    logger.info(
        "map_loaded",
        path=str(path),
        width=width,
        height=height,
        settlements=len(grid.locations),
    )
    return grid
