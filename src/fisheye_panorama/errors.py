"""Exception types raised by the panorama engine."""
from __future__ import annotations


class PanoramaError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(PanoramaError):
    """Raised when the renderer cannot be constructed or configured."""


class ImageValidationError(PanoramaError, ValueError):
    """Raised when a decoded image has unsupported dimensions."""

    def __init__(self, message: str, width: int, height: int) -> None:
        super().__init__(message)
        self.width = width
        self.height = height


class ImageLoadError(PanoramaError):
    """Raised when an image cannot be fetched or decoded."""

    def __init__(self, message: str, source: str | None = None) -> None:
        super().__init__(message)
        self.source = source


class GeometryError(PanoramaError, ValueError):
    """Raised when a render target is resized below the supported minimum."""
