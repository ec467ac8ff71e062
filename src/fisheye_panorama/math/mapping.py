"""Coordinate mapping between viewport pixels and equirectangular pixels.

Camera angles (``yaw``, ``pitch``) and ``fov`` are in radians here. Longitude
spans the image width from ``-pi`` at ``x = 0`` to ``pi`` at ``x = width``;
latitude spans the height from ``-pi/2`` at ``y = 0`` to ``pi/2``.
"""
from __future__ import annotations

import math
from typing import Optional, Tuple

import numpy as np

from ..models.camera_state import ProjectionType
from .projection import get_projection_strategy, normalize_angle, TWO_PI

# Overscan tolerances for the inverse mapping. A corner slightly outside the
# viewport still contributes to label bounding boxes.
NORMALIZED_OVERSCAN = 1.2
PIXEL_OVERSCAN = 100.0


def _lonlat_to_source(lon, lat, image_width: int, image_height: int):
    src_x = ((lon + math.pi) / TWO_PI) * image_width
    src_y = ((lat + math.pi / 2.0) / math.pi) * image_height
    return src_x, src_y


def project_to_source(
    x: float,
    y: float,
    width: int,
    height: int,
    image_width: int,
    image_height: int,
    yaw: float,
    pitch: float,
    zoom: float,
    fov: float,
    projection_type: ProjectionType | str = ProjectionType.STEREOGRAPHIC,
) -> Tuple[float, float]:
    """Project a viewport pixel to a (fractional) source image coordinate."""
    nx = (2.0 * x / width) - 1.0
    ny = (2.0 * y / height) - 1.0

    aspect_ratio = width / height
    strategy = get_projection_strategy(projection_type)
    theta, phi = strategy.viewport_to_angles(nx / zoom, ny / zoom, fov, aspect_ratio)

    lon = normalize_angle(theta + yaw)
    lat = min(math.pi / 2.0, max(-math.pi / 2.0, phi + pitch))
    return _lonlat_to_source(lon, lat, image_width, image_height)


def project_grid_to_source(
    width: int,
    height: int,
    image_width: int,
    image_height: int,
    yaw: float,
    pitch: float,
    zoom: float,
    fov: float,
    projection_type: ProjectionType | str = ProjectionType.STEREOGRAPHIC,
) -> Tuple[np.ndarray, np.ndarray]:
    """Vectorised :func:`project_to_source` over every pixel of a viewport.

    Returns two ``(height, width)`` float64 arrays holding the sample X and Y.
    """
    xs = np.arange(width, dtype=np.float64)
    ys = np.arange(height, dtype=np.float64)
    nx = (2.0 * xs / width) - 1.0
    ny = (2.0 * ys / height) - 1.0
    nx_grid, ny_grid = np.meshgrid(nx / zoom, ny / zoom)

    aspect_ratio = width / height
    strategy = get_projection_strategy(projection_type)
    theta, phi = strategy.viewport_to_angles(nx_grid, ny_grid, fov, aspect_ratio)

    lon = normalize_angle(np.asarray(theta) + yaw)
    lat = np.clip(np.asarray(phi) + pitch, -math.pi / 2.0, math.pi / 2.0)
    return _lonlat_to_source(lon, lat, image_width, image_height)


def project_to_viewport(
    src_x: float,
    src_y: float,
    image_width: int,
    image_height: int,
    width: int,
    height: int,
    yaw: float,
    pitch: float,
    zoom: float,
    fov: float,
    projection_type: ProjectionType | str = ProjectionType.STEREOGRAPHIC,
) -> Optional[Tuple[float, float]]:
    """Project a source image coordinate into the viewport.

    Returns ``None`` when the point falls outside the angular overscan window
    or lands more than :data:`PIXEL_OVERSCAN` pixels outside the viewport.
    """
    lon = (src_x / image_width) * TWO_PI - math.pi
    lat = (src_y / image_height) * math.pi - math.pi / 2.0

    theta = normalize_angle(lon - yaw)
    phi = lat - pitch

    aspect_ratio = width / height
    strategy = get_projection_strategy(projection_type)
    nx, ny = strategy.angles_to_viewport(theta, phi, fov, aspect_ratio)

    if abs(nx) > NORMALIZED_OVERSCAN or abs(ny) > NORMALIZED_OVERSCAN:
        return None

    x = ((nx * zoom + 1.0) / 2.0) * width
    y = ((ny * zoom + 1.0) / 2.0) * height

    if (
        x < -PIXEL_OVERSCAN
        or x > width + PIXEL_OVERSCAN
        or y < -PIXEL_OVERSCAN
        or y > height + PIXEL_OVERSCAN
    ):
        return None
    return x, y
