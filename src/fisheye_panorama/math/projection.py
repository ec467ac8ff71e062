"""Lens projection models for fisheye panorama viewing.

Each projection maps a camera-relative angle pair ``(theta, phi)`` to a
normalised viewport coordinate ``(nx, ny)`` in ``[-1, 1]`` and back. All
functions accept Python floats or numpy arrays; scalar inputs return floats so
the per-pixel rasterizer and the per-corner label projector share one code
path.

The radial models (stereographic, equidistant, equisolid) warp the aspect
corrected radius ``r = sqrt((nx * aspect)^2 + ny^2)`` into an angular
magnitude and split it back along the direction of ``(nx * aspect, ny)``.

The stereographic inverse is the exact inverse of its forward warp. Label
boxes therefore land half as far from the centre as in viewers that scale the
inverse radius by an extra factor of two.
"""
from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Any, Callable, Tuple, Union

import numpy as np

from ..models.camera_state import ProjectionType

TWO_PI = 2.0 * math.pi
RADIAL_EPSILON = 1e-4

ArrayLike = Union[float, np.ndarray]
AnglePair = Tuple[ArrayLike, ArrayLike]


def _finish(value: Any) -> ArrayLike:
    if np.ndim(value) == 0:
        return float(value)
    return value


def _split_radial(angle, adjusted_nx, ny, r) -> AnglePair:
    degenerate = r < RADIAL_EPSILON
    safe_r = np.where(degenerate, 1.0, r)
    theta = np.where(degenerate, 0.0, angle * (adjusted_nx / safe_r))
    phi = np.where(degenerate, 0.0, angle * (ny / safe_r))
    return _finish(theta), _finish(phi)


def _join_radial(radius_fn: Callable[[Any], Any], theta, phi, aspect_ratio: float) -> AnglePair:
    theta = np.asarray(theta, dtype=np.float64)
    phi = np.asarray(phi, dtype=np.float64)
    angle = np.sqrt(theta * theta + phi * phi)
    degenerate = angle < RADIAL_EPSILON
    safe_angle = np.where(degenerate, 1.0, angle)
    r = radius_fn(angle)
    nx = np.where(degenerate, 0.0, (r * (theta / safe_angle)) / aspect_ratio)
    ny = np.where(degenerate, 0.0, r * (phi / safe_angle))
    return _finish(nx), _finish(ny)


def _radius(nx, ny, aspect_ratio: float):
    adjusted_nx = np.asarray(nx, dtype=np.float64) * aspect_ratio
    ny = np.asarray(ny, dtype=np.float64)
    return adjusted_nx, ny, np.sqrt(adjusted_nx * adjusted_nx + ny * ny)


# Rectilinear ----------------------------------------------------------------
def _rectilinear_forward(nx, ny, fov: float, aspect_ratio: float) -> AnglePair:
    half = math.tan(fov / 2.0)
    theta = np.arctan(np.asarray(nx, dtype=np.float64) * aspect_ratio * half)
    phi = np.arctan(np.asarray(ny, dtype=np.float64) * half)
    return _finish(theta), _finish(phi)


def _rectilinear_inverse(theta, phi, fov: float, aspect_ratio: float) -> AnglePair:
    half = math.tan(fov / 2.0)
    nx = np.tan(np.asarray(theta, dtype=np.float64)) / (aspect_ratio * half)
    ny = np.tan(np.asarray(phi, dtype=np.float64)) / half
    return _finish(nx), _finish(ny)


def _rectilinear_drag(nx, ny, base: float) -> Tuple[float, float]:
    return base, base


# Stereographic --------------------------------------------------------------
def _stereographic_forward(nx, ny, fov: float, aspect_ratio: float) -> AnglePair:
    adjusted_nx, ny, r = _radius(nx, ny, aspect_ratio)
    max_angle = fov / 2.0
    angle = 2.0 * np.arctan(r / (2.0 * math.tan(max_angle / 2.0)))
    return _split_radial(angle, adjusted_nx, ny, r)


def _stereographic_inverse(theta, phi, fov: float, aspect_ratio: float) -> AnglePair:
    # Exact inverse of the forward warp: r = tan(angle / 2) * 2 * tan(fov / 4).
    max_angle = fov / 2.0
    scale = 2.0 * math.tan(max_angle / 2.0)
    return _join_radial(lambda angle: np.tan(angle / 2.0) * scale, theta, phi, aspect_ratio)


def _stereographic_drag(nx, ny, base: float) -> Tuple[float, float]:
    r = math.sqrt(nx * nx + ny * ny)
    falloff = math.cos(r * math.pi / 4.0)
    return base * falloff, base * falloff


# Equidistant ----------------------------------------------------------------
def _max_radius(aspect_ratio: float) -> float:
    return math.sqrt(aspect_ratio * aspect_ratio + 1.0)


def _equidistant_forward(nx, ny, fov: float, aspect_ratio: float) -> AnglePair:
    adjusted_nx, ny, r = _radius(nx, ny, aspect_ratio)
    angle = r * (fov / 2.0) / _max_radius(aspect_ratio)
    return _split_radial(angle, adjusted_nx, ny, r)


def _equidistant_inverse(theta, phi, fov: float, aspect_ratio: float) -> AnglePair:
    max_r = _max_radius(aspect_ratio)
    return _join_radial(lambda angle: angle * max_r / (fov / 2.0), theta, phi, aspect_ratio)


def _equidistant_drag(nx, ny, base: float) -> Tuple[float, float]:
    r = math.sqrt(nx * nx + ny * ny)
    falloff = max(0.5, 1.0 - r * 0.15)
    return base * falloff, base * falloff


# Equisolid ------------------------------------------------------------------
def _equisolid_forward(nx, ny, fov: float, aspect_ratio: float) -> AnglePair:
    adjusted_nx, ny, r = _radius(nx, ny, aspect_ratio)
    angle = 2.0 * np.arcsin(np.minimum(r / 2.0, 1.0))
    return _split_radial(angle, adjusted_nx, ny, r)


def _equisolid_inverse(theta, phi, fov: float, aspect_ratio: float) -> AnglePair:
    return _join_radial(lambda angle: 2.0 * np.sin(angle / 2.0), theta, phi, aspect_ratio)


def _equisolid_drag(nx, ny, base: float) -> Tuple[float, float]:
    r = math.sqrt(nx * nx + ny * ny)
    falloff = max(0.6, 1.0 - r * 0.2)
    return base * falloff, base * falloff


@dataclass(frozen=True, slots=True)
class ProjectionStrategy:
    """Forward, inverse and drag-falloff functions of one lens model."""

    projection_type: ProjectionType
    viewport_to_angles: Callable[[ArrayLike, ArrayLike, float, float], AnglePair]
    angles_to_viewport: Callable[[ArrayLike, ArrayLike, float, float], AnglePair]
    drag_velocity: Callable[[float, float, float], Tuple[float, float]]


PROJECTION_STRATEGIES: dict[ProjectionType, ProjectionStrategy] = {
    ProjectionType.RECTILINEAR: ProjectionStrategy(
        ProjectionType.RECTILINEAR,
        _rectilinear_forward,
        _rectilinear_inverse,
        _rectilinear_drag,
    ),
    ProjectionType.STEREOGRAPHIC: ProjectionStrategy(
        ProjectionType.STEREOGRAPHIC,
        _stereographic_forward,
        _stereographic_inverse,
        _stereographic_drag,
    ),
    ProjectionType.EQUIDISTANT: ProjectionStrategy(
        ProjectionType.EQUIDISTANT,
        _equidistant_forward,
        _equidistant_inverse,
        _equidistant_drag,
    ),
    ProjectionType.EQUISOLID: ProjectionStrategy(
        ProjectionType.EQUISOLID,
        _equisolid_forward,
        _equisolid_inverse,
        _equisolid_drag,
    ),
}


def get_projection_strategy(projection: ProjectionType | str | None) -> ProjectionStrategy:
    """Return the strategy for ``projection``, defaulting to stereographic."""
    resolved = ProjectionType.parse(projection)
    if resolved is None:
        return PROJECTION_STRATEGIES[ProjectionType.STEREOGRAPHIC]
    return PROJECTION_STRATEGIES[resolved]


# Angle helpers --------------------------------------------------------------
def normalize_angle(angle: ArrayLike) -> ArrayLike:
    """Wrap radians into ``[-pi, pi]`` by repeated full turns."""
    if np.ndim(angle) == 0:
        value = float(angle)
        while value > math.pi:
            value -= TWO_PI
        while value < -math.pi:
            value += TWO_PI
        return value

    result = np.array(angle, dtype=np.float64, copy=True)
    while True:
        over = result > math.pi
        if not over.any():
            break
        result[over] -= TWO_PI
    while True:
        under = result < -math.pi
        if not under.any():
            break
        result[under] += TWO_PI
    return result


def normalize_yaw(degrees: float) -> float:
    """Wrap a yaw angle in degrees into ``[-180, 180)``."""
    value = (float(degrees) + 180.0) % 360.0 - 180.0
    # Float modulo can round up to exactly 360 for tiny negative inputs.
    if value >= 180.0:
        value -= 360.0
    return value


def clamp(value: float, minimum: float, maximum: float) -> float:
    return max(minimum, min(maximum, value))


def deg_to_rad(degrees: float) -> float:
    return degrees * (math.pi / 180.0)


def rad_to_deg(radians: float) -> float:
    return radians * (180.0 / math.pi)
