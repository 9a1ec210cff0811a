"""Command-line interface for map generation."""

import argparse
import sys
import time
from pathlib import Path

import structlog


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate a procedural fantasy world map"
    )
    parser.add_argument(
        "--config", type=str, default=None, help="Path to a TOML config file"
    )
    parser.add_argument(
        "--size", type=int, default=None, help="World size in tiles (overrides config)"
    )
    parser.add_argument(
        "--seed", type=int, default=None, help="Random seed (overrides config)"
    )
    parser.add_argument(
        "--rivers", type=int, default=None, help="Number of rivers (overrides config)"
    )
    parser.add_argument(
        "--forest",
        type=float,
        default=None,
        help="Target forest fraction (overrides config)",
    )
    parser.add_argument(
        "--method",
        choices=["simplex", "gaussian", "plasma"],
        default=None,
        help="Height map method (overrides config)",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=str,
        default="maps/world.npz",
        help="Output path (default: maps/world.npz)",
    )
    parser.add_argument(
        "--image", type=str, default=None, help="Also save a PNG preview here"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Verbose logging"
    )
    return parser


def configure_logging(verbose: bool) -> None:
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(10 if verbose else 20),
    )


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for map generation."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    logger = structlog.get_logger()

    # Import here to avoid slow startup for --help
    from .config import GenerationConfig, HeightMethod, load_config
    from .exceptions import ConfigurationError
    from .persistence import save_map
    from .pipeline import generate_map
    from .render import save_preview, terrain_stats
    from .validation import validate_map

    try:
        config = load_config(Path(args.config)) if args.config else GenerationConfig()
    except FileNotFoundError:
        logger.error("config_not_found", path=args.config)
        return 1
    except ConfigurationError as e:
        logger.error("config_invalid", path=args.config, error=str(e))
        return 1

    # Apply CLI overrides
    if args.size is not None:
        config.size = args.size
        config.width = None
        config.height = None
    if args.seed is not None:
        config.seed = args.seed
    if args.rivers is not None:
        config.rivers.count = args.rivers
    if args.forest is not None:
        config.forests.fraction = args.forest
    if args.method is not None:
        config.height_map.method = HeightMethod(args.method)

    print(f"Generating {config.map_width}x{config.map_height} map with seed {config.seed}")
    print(f"Output: {args.output}")
    print()

    start_time = time.time()
    try:
        result = generate_map(config)
    except ConfigurationError as e:
        logger.error("config_invalid", error=str(e))
        return 1
    gen_time = time.time() - start_time

    print()
    print(f"Generation complete in {gen_time:.1f}s")
    for key, value in result.summary().items():
        print(f"  {key}: {value}")

    print("\nTerrain:")
    for name, data in terrain_stats(result.grid).items():
        print(f"  {name:15} {data['count']:>10,} tiles ({data['percentage']:>5.1f}%)")

    validation = validate_map(result.grid, config)
    if not validation.passed:
        print("\nValidation errors:")
        for error in validation.errors:
            print(f"  - {error}")

    saved = save_map(Path(args.output), result.grid, config)
    print(f"\nSaved map to {saved}")

    if args.image:
        preview = save_preview(result.grid, Path(args.image))
        print(f"Saved preview to {preview}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
