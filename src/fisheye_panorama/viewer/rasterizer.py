"""Nearest-neighbour resampling of an equirectangular image into a viewport."""
from __future__ import annotations

import math
from typing import Optional

import cv2
import numpy as np
from loguru import logger

from ..math.mapping import project_grid_to_source
from ..models.camera_state import CameraState, ProjectionType


def to_rgba(image: np.ndarray) -> np.ndarray:
    """Return a contiguous RGBA copy of a grey, RGB or RGBA uint8 image."""
    if image.dtype != np.uint8:
        raise ValueError("Panorama image must be uint8 data")
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    channels = image.shape[2]
    if channels == 1:
        return cv2.cvtColor(image[..., 0], cv2.COLOR_GRAY2RGBA)
    if channels == 3:
        return cv2.cvtColor(image, cv2.COLOR_RGB2RGBA)
    if channels == 4:
        return np.array(image, dtype=np.uint8, order="C", copy=True)
    raise ValueError(f"Unsupported channel count: {channels}")


def sample_nearest(snapshot: np.ndarray, sample_x, sample_y) -> np.ndarray:
    """Gather pixels at fractional source coordinates.

    Coordinates are floored; X wraps around the horizontal seam and Y is
    clamped at the poles. The alpha channel of the result is forced opaque.
    """
    image_height, image_width = snapshot.shape[:2]
    src_x = np.floor(np.asarray(sample_x, dtype=np.float64)).astype(np.int64)
    src_y = np.floor(np.asarray(sample_y, dtype=np.float64)).astype(np.int64)
    wrapped_x = np.mod(src_x, image_width)
    clamped_y = np.clip(src_y, 0, image_height - 1)
    pixels = snapshot[clamped_y, wrapped_x].copy()
    pixels[..., 3] = 255
    return pixels


class Rasterizer:
    """Caches a full-resolution RGBA snapshot and resamples it per frame."""

    def __init__(self) -> None:
        self._snapshot: Optional[np.ndarray] = None

    @property
    def has_snapshot(self) -> bool:
        return self._snapshot is not None

    def invalidate(self) -> None:
        self._snapshot = None

    def snapshot(self, source: np.ndarray) -> np.ndarray:
        if self._snapshot is None:
            self._snapshot = to_rgba(source)
            logger.debug(
                "Cached source snapshot {}x{}", self._snapshot.shape[1], self._snapshot.shape[0]
            )
        return self._snapshot

    def rasterize(
        self,
        source: np.ndarray,
        width: int,
        height: int,
        camera: CameraState,
        fov: float,
        projection_type: ProjectionType,
    ) -> np.ndarray:
        """Return a ``(height, width, 4)`` frame for the given camera.

        ``camera`` angles are degrees and ``fov`` is radians.
        """
        snapshot = self.snapshot(source)
        image_height, image_width = snapshot.shape[:2]
        sample_x, sample_y = project_grid_to_source(
            width,
            height,
            image_width,
            image_height,
            math.radians(camera.yaw),
            math.radians(camera.pitch),
            camera.zoom,
            fov,
            projection_type,
        )
        return sample_nearest(snapshot, sample_x, sample_y)
