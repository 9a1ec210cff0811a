"""Custom exceptions for map generation."""


class MapGenError(Exception):
    """Base exception for map generation errors."""

    pass


class ConfigurationError(MapGenError):
    """Raised when generation parameters are invalid."""

    pass


class PlacementExhaustedError(MapGenError):
    """Raised when a placement search runs out of attempts."""

    pass


class UnreachableError(MapGenError):
    """Raised when no path exists between two points."""

    pass


class GenerationCancelled(MapGenError):
    """Raised by a continuation gate to abandon a generation run."""

    pass
