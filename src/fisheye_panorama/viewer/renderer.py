"""Fisheye panorama renderer.

The renderer ties the camera state machine, the rasterizer and the label
overlay together over a render target. Mutations mark the frame dirty and
request a single render from the frame scheduler; extra mutations before that
frame runs are coalesced into it.
"""
from __future__ import annotations

from dataclasses import dataclass
import math
import time
from typing import Any, Callable, Hashable, Iterable, Mapping, Optional

import numpy as np
from loguru import logger

from ..errors import ConfigurationError, GeometryError, ImageLoadError, ImageValidationError
from ..io.loader import load_failure_message, load_source_image
from ..models.camera_state import CameraState, Constraints, RendererConfig
from ..models.label import Label
from .label_overlay import LabelOverlay
from .rasterizer import Rasterizer
from .render_target import DrawingContext, RenderTarget
from .scheduling import FrameScheduler, ManualFrameScheduler
from .view_controller import InputData, InputType, ViewController

ImageProvider = Callable[[Any], np.ndarray]


@dataclass(slots=True)
class RendererCallbacks:
    """Observer hooks invoked by the renderer."""

    on_load: Optional[Callable[[], None]] = None
    on_error: Optional[Callable[[Exception], None]] = None
    on_view_change: Optional[Callable[[CameraState], None]] = None


def validate_image_size(width: int, height: int) -> None:
    """Raise :class:`ImageValidationError` when dimensions are out of bounds."""
    if width < Constraints.MIN_IMAGE_WIDTH or height < Constraints.MIN_IMAGE_HEIGHT:
        raise ImageValidationError(
            f"Image too small: {width}x{height}. "
            f"Minimum: {Constraints.MIN_IMAGE_WIDTH}x{Constraints.MIN_IMAGE_HEIGHT}",
            width,
            height,
        )
    if width > Constraints.MAX_IMAGE_WIDTH or height > Constraints.MAX_IMAGE_HEIGHT:
        raise ImageValidationError(
            f"Image too large: {width}x{height}. "
            f"Maximum: {Constraints.MAX_IMAGE_WIDTH}x{Constraints.MAX_IMAGE_HEIGHT}",
            width,
            height,
        )


def _as_load_error(handle: Any, exc: Exception) -> ImageLoadError:
    if isinstance(exc, ImageLoadError):
        return exc
    return ImageLoadError(load_failure_message(str(handle), str(exc)), str(handle))


class PanoramaRenderer:
    """Renders an equirectangular panorama through a fisheye lens model."""

    def __init__(
        self,
        render_target: RenderTarget,
        config: Optional[RendererConfig] = None,
        callbacks: Optional[RendererCallbacks] = None,
        *,
        image_provider: ImageProvider = load_source_image,
        scheduler: Optional[FrameScheduler] = None,
    ) -> None:
        context = render_target.get_context()
        if context is None:
            raise ConfigurationError("Failed to get 2D context from render target")

        self._target = render_target
        self._context: Optional[DrawingContext] = context
        self._config = config or RendererConfig()
        self._callbacks = callbacks or RendererCallbacks()
        self._image_provider = image_provider
        self._scheduler: FrameScheduler = scheduler or ManualFrameScheduler()

        self._source: Optional[np.ndarray] = None
        self._rasterizer = Rasterizer()
        self._labels = LabelOverlay()
        self._controller = ViewController(self._config, on_change=self._mark_dirty)

        self._dirty = True
        self._frame_token: Optional[Hashable] = None
        self._destroyed = False

    # ------------------------------------------------------------------
    @property
    def config(self) -> RendererConfig:
        return self._config

    @property
    def scheduler(self) -> FrameScheduler:
        return self._scheduler

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def has_pending_frame(self) -> bool:
        return self._frame_token is not None

    @property
    def has_image(self) -> bool:
        return self._source is not None

    @property
    def image_size(self) -> Optional[tuple[int, int]]:
        if self._source is None:
            return None
        return int(self._source.shape[1]), int(self._source.shape[0])

    @property
    def labels(self) -> tuple[Label, ...]:
        return tuple(self._labels.labels)

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    # ------------------------------------------------------------------
    def load_image(self, handle: Any) -> None:
        """Make ``handle`` the active source image.

        ``handle`` is either a decoded ``numpy`` array or anything the image
        provider accepts. On failure ``on_error`` is invoked, the error is
        re-raised and the previously active image stays in place.
        """
        if self._destroyed:
            return
        try:
            image = self._decode(handle)
            height, width = image.shape[:2]
            validate_image_size(width, height)
        except (ImageLoadError, ImageValidationError) as exc:
            self._notify_error(exc)
            raise

        self._source = image
        self._rasterizer.invalidate()
        logger.info(
            "Image loaded: {}x{} (aspect {:.3f})", width, height, width / float(height)
        )
        self._dirty = True
        self.render()
        if self._callbacks.on_load is not None:
            self._callbacks.on_load()

    def report_load_failure(self, handle: Any, exc: Exception) -> ImageLoadError:
        """Surface a failure from a load performed outside the renderer.

        Used by hosts that decode on a worker thread. The active image is kept.
        """
        error = _as_load_error(handle, exc)
        self._notify_error(error)
        return error

    def _notify_error(self, exc: Exception) -> None:
        logger.error("Panorama load failed: {}", exc)
        if self._callbacks.on_error is not None:
            self._callbacks.on_error(exc)

    def _decode(self, handle: Any) -> np.ndarray:
        if isinstance(handle, np.ndarray):
            image = handle
        else:
            try:
                image = self._image_provider(handle)
            except ImageLoadError:
                raise
            except Exception as exc:  # noqa: BLE001
                raise _as_load_error(handle, exc) from exc
        channels = 1 if image.ndim == 2 else (image.shape[2] if image.ndim == 3 else 0)
        if image.dtype != np.uint8 or channels not in (1, 3, 4):
            raise ImageLoadError(
                f"Unsupported image data: dtype {image.dtype}, shape {image.shape}. "
                "Expected uint8 grey, RGB or RGBA pixels"
            )
        return image

    # ------------------------------------------------------------------
    def handle_input(self, event_type: InputType | str, data: InputData | Mapping | None = None) -> None:
        if self._destroyed:
            return
        self._controller.handle_input(event_type, data)

    def get_state(self) -> CameraState:
        return self._controller.snapshot()

    def set_state(
        self,
        yaw: Optional[float] = None,
        pitch: Optional[float] = None,
        zoom: Optional[float] = None,
    ) -> None:
        if self._destroyed:
            return
        self._controller.set_state(yaw=yaw, pitch=pitch, zoom=zoom)

    def set_labels(self, labels: Iterable[Label]) -> None:
        if self._destroyed:
            return
        self._labels.set_labels(labels)
        self._mark_dirty()

    def resize(self, width: int, height: int) -> None:
        if width < Constraints.MIN_CANVAS_SIZE or height < Constraints.MIN_CANVAS_SIZE:
            raise GeometryError(
                f"Canvas too small: {width}x{height}. "
                f"Minimum: {Constraints.MIN_CANVAS_SIZE}x{Constraints.MIN_CANVAS_SIZE}"
            )
        if self._destroyed:
            return
        self._target.resize(int(width), int(height))
        logger.debug("Render target resized to {}x{}", width, height)
        self._mark_dirty()

    # ------------------------------------------------------------------
    def render(self) -> bool:
        """Rasterize the current view if the frame is dirty.

        Returns ``True`` when a frame was produced.
        """
        if self._destroyed or not self._dirty or self._source is None:
            return False

        started = time.perf_counter()
        width, height = self._target.width, self._target.height
        state = self._controller.state
        fov = self._config.fov_rad
        projection = self._config.projection_type

        frame = self._rasterizer.rasterize(self._source, width, height, state, fov, projection)
        self._context.put_image_data(frame)

        image_width, image_height = self.image_size
        commands = self._labels.project(
            width,
            height,
            image_width,
            image_height,
            math.radians(state.yaw),
            math.radians(state.pitch),
            state.zoom,
            fov,
            projection,
        )
        self._labels.draw(self._context, commands)

        self._dirty = False
        logger.debug(
            "Rendered {}x{} frame with {} labels in {:.1f} ms",
            width,
            height,
            len(commands),
            (time.perf_counter() - started) * 1000.0,
        )
        return True

    def _mark_dirty(self) -> None:
        self._dirty = True
        self._schedule_render()

    def _schedule_render(self) -> None:
        if self._destroyed or self._frame_token is not None:
            return
        self._frame_token = self._scheduler.schedule(self._run_frame)

    def _run_frame(self) -> None:
        self._frame_token = None
        if self._destroyed:
            return
        self.render()
        if self._callbacks.on_view_change is not None:
            self._callbacks.on_view_change(self.get_state())

    # ------------------------------------------------------------------
    def destroy(self) -> None:
        """Release the source image and cancel any pending frame."""
        if self._destroyed:
            return
        if self._frame_token is not None:
            self._scheduler.cancel(self._frame_token)
            self._frame_token = None
        self._source = None
        self._rasterizer.invalidate()
        self._labels.clear()
        self._context = None
        self._destroyed = True
        logger.debug("Renderer destroyed")
