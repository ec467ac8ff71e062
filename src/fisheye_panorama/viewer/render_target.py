"""In-memory RGBA render target with a small 2D drawing API."""
from __future__ import annotations

from typing import Optional, Protocol, Tuple

import cv2
import numpy as np

Color = Tuple[int, int, int, float]  # r, g, b in 0..255, alpha in 0..1


class DrawingContext(Protocol):
    """Subset of a 2D canvas context used by the renderer."""

    def clear(self, color: Color = (0, 0, 0, 1.0)) -> None:
        ...

    def put_image_data(self, pixels: np.ndarray) -> None:
        ...

    def fill_rect(self, x: float, y: float, w: float, h: float, color: Color) -> None:
        ...

    def stroke_rect(
        self, x: float, y: float, w: float, h: float, color: Color, line_width: int = 1
    ) -> None:
        ...

    def fill_text(self, text: str, cx: float, cy: float, color: Color, font_size: int = 14) -> None:
        ...


class RenderTarget(Protocol):
    width: int
    height: int

    def get_context(self) -> Optional[DrawingContext]:
        ...

    def resize(self, width: int, height: int) -> None:
        ...


class ArrayRenderTarget:
    """Render target backed by a ``(height, width, 4)`` uint8 numpy buffer."""

    def __init__(self, width: int, height: int) -> None:
        self._buffer = np.zeros((int(height), int(width), 4), dtype=np.uint8)
        self._context: Optional[ArrayDrawingContext] = None

    @property
    def width(self) -> int:
        return int(self._buffer.shape[1])

    @property
    def height(self) -> int:
        return int(self._buffer.shape[0])

    @property
    def buffer(self) -> np.ndarray:
        return self._buffer

    def get_context(self) -> "ArrayDrawingContext":
        if self._context is None:
            self._context = ArrayDrawingContext(self)
        return self._context

    def resize(self, width: int, height: int) -> None:
        self._buffer = np.zeros((int(height), int(width), 4), dtype=np.uint8)


class ArrayDrawingContext:
    """Draws into an :class:`ArrayRenderTarget` using OpenCV primitives."""

    def __init__(self, target: ArrayRenderTarget) -> None:
        self._target = target

    def clear(self, color: Color = (0, 0, 0, 1.0)) -> None:
        self._target.buffer[:] = _rgba(color)

    def put_image_data(self, pixels: np.ndarray) -> None:
        buffer = self._target.buffer
        if pixels.shape != buffer.shape:
            raise ValueError(
                f"Image data shape {pixels.shape} does not match target {buffer.shape}"
            )
        np.copyto(buffer, pixels)

    def fill_rect(self, x: float, y: float, w: float, h: float, color: Color) -> None:
        bounds = self._clip(x, y, x + w, y + h)
        if bounds is None:
            return
        x0, y0, x1, y1 = bounds
        region = self._target.buffer[y0:y1, x0:x1]
        alpha = float(color[3])
        blended = region[..., :3].astype(np.float32) * (1.0 - alpha) + np.array(
            color[:3], dtype=np.float32
        ) * alpha
        region[..., :3] = np.clip(np.rint(blended), 0, 255).astype(np.uint8)
        region[..., 3] = 255

    def stroke_rect(
        self, x: float, y: float, w: float, h: float, color: Color, line_width: int = 1
    ) -> None:
        pad = line_width
        bounds = self._clip(x - pad, y - pad, x + w + pad, y + h + pad)
        if bounds is None:
            return
        x0, y0, x1, y1 = bounds
        buffer = self._target.buffer
        region = buffer[y0:y1, x0:x1].copy()
        overlay = region.copy()
        cv2.rectangle(
            overlay,
            (int(round(x)) - x0, int(round(y)) - y0),
            (int(round(x + w)) - x0, int(round(y + h)) - y0),
            _rgba(color),
            thickness=line_width,
            lineType=cv2.LINE_8,
        )
        alpha = float(color[3])
        blended = cv2.addWeighted(overlay, alpha, region, 1.0 - alpha, 0.0)
        blended[..., 3] = 255
        buffer[y0:y1, x0:x1] = blended

    def fill_text(self, text: str, cx: float, cy: float, color: Color, font_size: int = 14) -> None:
        if not text:
            return
        font = cv2.FONT_HERSHEY_SIMPLEX
        scale = font_size / 28.0
        thickness = 1
        (text_w, text_h), baseline = cv2.getTextSize(text, font, scale, thickness)
        origin = (int(round(cx - text_w / 2.0)), int(round(cy + text_h / 2.0)))
        cv2.putText(
            self._target.buffer,
            text,
            origin,
            font,
            scale,
            _rgba(color),
            thickness,
            cv2.LINE_AA,
        )

    def _clip(self, x0: float, y0: float, x1: float, y1: float) -> Optional[Tuple[int, int, int, int]]:
        width, height = self._target.width, self._target.height
        left = max(0, int(np.floor(min(x0, x1))))
        top = max(0, int(np.floor(min(y0, y1))))
        right = min(width, int(np.ceil(max(x0, x1))))
        bottom = min(height, int(np.ceil(max(y0, y1))))
        if right <= left or bottom <= top:
            return None
        return left, top, right, bottom


def _rgba(color: Color) -> Tuple[int, int, int, int]:
    r, g, b, a = color
    return int(r), int(g), int(b), int(round(float(a) * 255))
