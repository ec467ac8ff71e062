"""Camera state and renderer configuration models."""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
import math
from typing import Any, Mapping, Optional

from ..errors import ConfigurationError


class ProjectionType(str, Enum):
    """Lens model used to map camera angles onto the viewport."""

    RECTILINEAR = "rectilinear"
    STEREOGRAPHIC = "stereographic"
    EQUIDISTANT = "equidistant"
    EQUISOLID = "equisolid"

    @classmethod
    def parse(cls, value: Any) -> Optional["ProjectionType"]:
        """Return the projection named by ``value`` or ``None`` when unknown."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        normalized = value.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return None


class Constraints:
    """Hard limits shared by the renderer components."""

    MIN_CANVAS_SIZE = 100
    MIN_IMAGE_WIDTH = 512
    MIN_IMAGE_HEIGHT = 256
    MAX_IMAGE_WIDTH = 8192
    MAX_IMAGE_HEIGHT = 4096
    DEFAULT_FOV = 90.0
    DEFAULT_MIN_ZOOM = 0.5
    DEFAULT_MAX_ZOOM = 3.0
    MIN_PITCH = -90.0
    MAX_PITCH = 90.0


@dataclass(slots=True)
class CameraState:
    """Current camera orientation. Angles are in degrees."""

    yaw: float = 0.0
    pitch: float = 0.0
    zoom: float = 1.0
    is_dragging: bool = False

    def copy(self) -> "CameraState":
        return replace(self)

    def to_dict(self) -> dict[str, float | bool]:
        """Return a serialisable mapping."""
        return {
            "yaw": self.yaw,
            "pitch": self.pitch,
            "zoom": self.zoom,
            "is_dragging": self.is_dragging,
        }


@dataclass(frozen=True, slots=True)
class RendererConfig:
    """Immutable renderer options. Angles are in degrees."""

    initial_yaw: float = 0.0
    initial_pitch: float = 0.0
    initial_zoom: float = 1.0
    min_zoom: float = Constraints.DEFAULT_MIN_ZOOM
    max_zoom: float = Constraints.DEFAULT_MAX_ZOOM
    field_of_view: float = Constraints.DEFAULT_FOV
    enable_keyboard: bool = True
    sensitivity: float = 0.5
    projection_type: ProjectionType = ProjectionType.EQUIDISTANT

    def __post_init__(self) -> None:
        if self.min_zoom <= 0.0 or self.max_zoom <= 0.0:
            raise ConfigurationError(
                f"Zoom bounds must be positive, got {self.min_zoom}..{self.max_zoom}"
            )
        if self.min_zoom > self.max_zoom:
            raise ConfigurationError(
                f"min_zoom ({self.min_zoom}) exceeds max_zoom ({self.max_zoom})"
            )
        if not 0.0 < self.field_of_view < 360.0:
            raise ConfigurationError(f"Field of view out of range: {self.field_of_view}")

    @property
    def fov_rad(self) -> float:
        """Horizontal field of view in radians."""
        return math.radians(self.field_of_view)

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "RendererConfig":
        """Build a config from loosely-typed options such as parsed JSON.

        Keys may be camelCase or snake_case. Numbers that fail to parse fall
        back to the default, and the initial view is clamped to sane ranges.
        """

        def pick(*keys: str) -> Any:
            for key in keys:
                if key in options and options[key] is not None:
                    return options[key]
            return None

        defaults = cls()
        projection = ProjectionType.parse(pick("projectionType", "projection_type", "projection"))
        keyboard = pick("enableKeyboard", "enable_keyboard")
        return cls(
            initial_yaw=parse_number(
                pick("initialYaw", "initial_yaw"), defaults.initial_yaw, -180.0, 180.0
            ),
            initial_pitch=parse_number(
                pick("initialPitch", "initial_pitch"),
                defaults.initial_pitch,
                Constraints.MIN_PITCH,
                Constraints.MAX_PITCH,
            ),
            initial_zoom=parse_number(
                pick("initialZoom", "initial_zoom"),
                defaults.initial_zoom,
                Constraints.DEFAULT_MIN_ZOOM,
                Constraints.DEFAULT_MAX_ZOOM,
            ),
            min_zoom=parse_number(pick("minZoom", "min_zoom"), defaults.min_zoom, 0.1),
            max_zoom=parse_number(pick("maxZoom", "max_zoom"), defaults.max_zoom, 0.1),
            field_of_view=parse_number(
                pick("fov", "fieldOfView", "field_of_view"), defaults.field_of_view
            ),
            enable_keyboard=defaults.enable_keyboard if keyboard is None else bool(keyboard),
            sensitivity=parse_number(pick("sensitivity"), defaults.sensitivity, 0.0),
            projection_type=projection or defaults.projection_type,
        )


def parse_number(
    value: Any,
    default: float,
    minimum: Optional[float] = None,
    maximum: Optional[float] = None,
) -> float:
    """Parse ``value`` as a float, clamping to the optional bounds."""
    if value is None or value == "" or isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(result):
        return default
    if minimum is not None and result < minimum:
        result = minimum
    if maximum is not None and result > maximum:
        result = maximum
    return result
