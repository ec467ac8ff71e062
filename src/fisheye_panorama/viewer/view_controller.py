"""Camera state machine driven by platform-neutral input events."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import math
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple

from loguru import logger

from ..math.projection import clamp, get_projection_strategy, normalize_yaw
from ..models.camera_state import CameraState, Constraints, RendererConfig


def as_finite(value: Any) -> Optional[float]:
    """Return ``value`` as a finite float, or ``None`` when it is not one."""
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result):
        return None
    return result


def _parse_touches(entries: Iterable[Any]) -> List[Tuple[float, float]]:
    touches: List[Tuple[float, float]] = []
    for entry in entries:
        if isinstance(entry, Mapping):
            x, y = as_finite(entry.get("x")), as_finite(entry.get("y"))
        elif isinstance(entry, (tuple, list)) and len(entry) >= 2:
            x, y = as_finite(entry[0]), as_finite(entry[1])
        else:
            x = y = None
        if x is None or y is None:
            logger.debug("Ignoring malformed touch point {}", entry)
            continue
        touches.append((x, y))
    return touches


class InputType(str, Enum):
    """Normalised input event kinds accepted by :meth:`ViewController.handle_input`."""

    POINTER_DOWN = "pointer-down"
    POINTER_MOVE = "pointer-move"
    POINTER_UP = "pointer-up"
    POINTER_LEAVE = "pointer-leave"
    WHEEL = "wheel"
    TOUCH_START = "touch-start"
    TOUCH_MOVE = "touch-move"
    TOUCH_END = "touch-end"
    KEY_DOWN = "key-down"


@dataclass(slots=True)
class InputData:
    """Payload of an input event; only the fields relevant to its type are set."""

    x: Optional[float] = None
    y: Optional[float] = None
    dx: Optional[float] = None
    dy: Optional[float] = None
    delta_y: Optional[float] = None
    key: Optional[str] = None
    touches: List[Tuple[float, float]] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "InputData":
        """Build a payload from loosely-typed data; unusable fields become ``None``."""
        raw_touches = data.get("touches")
        key = data.get("key")
        return cls(
            x=as_finite(data.get("x")),
            y=as_finite(data.get("y")),
            dx=as_finite(data.get("dx")),
            dy=as_finite(data.get("dy")),
            delta_y=as_finite(data.get("delta_y", data.get("deltaY"))),
            key=key if isinstance(key, str) else None,
            touches=_parse_touches(raw_touches) if isinstance(raw_touches, (list, tuple)) else [],
        )


KEYBOARD_STEP = 5.0
WHEEL_STEP = 0.1


class ViewController:
    """Owns the camera state and applies input transitions to it.

    ``on_change`` is invoked after every transition that touches yaw, pitch or
    zoom; the renderer uses it to mark the frame dirty.
    """

    def __init__(
        self,
        config: RendererConfig,
        on_change: Optional[Callable[[], None]] = None,
    ) -> None:
        self._config = config
        self._on_change = on_change
        self._strategy = get_projection_strategy(config.projection_type)
        self._anchor: Optional[Tuple[float, float]] = None
        self._state = CameraState(
            yaw=normalize_yaw(config.initial_yaw),
            pitch=clamp(config.initial_pitch, Constraints.MIN_PITCH, Constraints.MAX_PITCH),
            zoom=clamp(config.initial_zoom, config.min_zoom, config.max_zoom),
            is_dragging=False,
        )

    # ------------------------------------------------------------------
    @property
    def state(self) -> CameraState:
        """Live camera state; callers must not mutate it."""
        return self._state

    def snapshot(self) -> CameraState:
        return self._state.copy()

    @property
    def drag_anchor(self) -> Optional[Tuple[float, float]]:
        return self._anchor

    # ------------------------------------------------------------------
    def handle_input(self, event_type: InputType | str, data: InputData | Mapping | None = None) -> None:
        try:
            kind = InputType(event_type)
        except ValueError:
            logger.debug("Ignoring unknown input type {}", event_type)
            return
        if data is None:
            data = InputData()
        elif not isinstance(data, InputData):
            data = InputData.from_mapping(data)

        if kind is InputType.POINTER_DOWN:
            self._pointer_down(data.x, data.y)
        elif kind is InputType.POINTER_MOVE:
            self._pointer_move(data)
        elif kind in (InputType.POINTER_UP, InputType.POINTER_LEAVE, InputType.TOUCH_END):
            self._pointer_up()
        elif kind is InputType.WHEEL:
            self._wheel(data.delta_y)
        elif kind is InputType.TOUCH_START:
            touches = _parse_touches(data.touches)
            if touches:
                self._pointer_down(*touches[0])
        elif kind is InputType.TOUCH_MOVE:
            touches = _parse_touches(data.touches)
            if touches and self._anchor is not None:
                self._drag_to(*touches[0])
        elif kind is InputType.KEY_DOWN:
            self._key_down(data.key)

    def set_state(
        self,
        yaw: Optional[float] = None,
        pitch: Optional[float] = None,
        zoom: Optional[float] = None,
    ) -> None:
        """Apply a partial update; always reports a change.

        Components that are not finite numbers are ignored.
        """
        yaw, pitch, zoom = as_finite(yaw), as_finite(pitch), as_finite(zoom)
        if yaw is not None:
            self._state.yaw = normalize_yaw(yaw)
        if pitch is not None:
            self._state.pitch = clamp(pitch, Constraints.MIN_PITCH, Constraints.MAX_PITCH)
        if zoom is not None:
            self._state.zoom = clamp(zoom, self._config.min_zoom, self._config.max_zoom)
        self._changed()

    # ------------------------------------------------------------------
    def _pointer_down(self, x: Any, y: Any) -> None:
        x, y = as_finite(x), as_finite(y)
        if x is None or y is None:
            return
        self._anchor = (x, y)
        self._state.is_dragging = True

    def _pointer_move(self, data: InputData) -> None:
        if not self._state.is_dragging:
            return
        dx, dy = as_finite(data.dx), as_finite(data.dy)
        x, y = as_finite(data.x), as_finite(data.y)
        if dx is not None and dy is not None:
            self._rotate(dx, dy)
        elif x is not None and y is not None and self._anchor is not None:
            self._drag_to(x, y)

    def _drag_to(self, x: float, y: float) -> None:
        anchor_x, anchor_y = self._anchor
        self._anchor = (x, y)
        if self._state.is_dragging:
            self._rotate(x - anchor_x, y - anchor_y)

    def _rotate(self, dx: float, dy: float) -> None:
        # Velocity is sampled at the viewport centre rather than the cursor.
        velocity_x, velocity_y = self._strategy.drag_velocity(0.0, 0.0, self._config.sensitivity)
        yaw = self._state.yaw - dx * velocity_x
        pitch = self._state.pitch - dy * velocity_y
        if not (math.isfinite(yaw) and math.isfinite(pitch)):
            logger.debug("Ignoring non-finite drag step ({}, {})", dx, dy)
            return
        self._state.yaw = normalize_yaw(yaw)
        self._state.pitch = clamp(pitch, Constraints.MIN_PITCH, Constraints.MAX_PITCH)
        self._changed()

    def _pointer_up(self) -> None:
        self._anchor = None
        self._state.is_dragging = False

    def _wheel(self, delta_y: Any) -> None:
        delta_y = as_finite(delta_y)
        if delta_y is None:
            return
        step = -WHEEL_STEP if delta_y > 0 else WHEEL_STEP
        self._state.zoom = clamp(
            self._state.zoom + step, self._config.min_zoom, self._config.max_zoom
        )
        self._changed()

    def _key_down(self, key: Optional[str]) -> None:
        if not self._config.enable_keyboard:
            return
        state = self._state
        if key == "ArrowLeft":
            state.yaw -= KEYBOARD_STEP
        elif key == "ArrowRight":
            state.yaw += KEYBOARD_STEP
        elif key == "ArrowUp":
            state.pitch = min(Constraints.MAX_PITCH, state.pitch + KEYBOARD_STEP)
        elif key == "ArrowDown":
            state.pitch = max(Constraints.MIN_PITCH, state.pitch - KEYBOARD_STEP)
        else:
            return
        state.yaw = normalize_yaw(state.yaw)
        self._changed()

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()
