"""Qt widget hosting the fisheye panorama renderer."""
from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Optional

import numpy as np
from loguru import logger
from PyQt6.QtCore import QEvent, QTimer, Qt, pyqtSignal
from PyQt6.QtGui import QColor, QImage, QKeyEvent, QMouseEvent, QPainter, QWheelEvent
from PyQt6.QtWidgets import QWidget

from ..errors import PanoramaError
from ..io.loader import load_source_image
from ..models.camera_state import CameraState, Constraints, RendererConfig
from ..models.label import Label
from ..workers.task_runner import ImageLoadTask, TaskRunner
from .render_target import ArrayRenderTarget
from .renderer import PanoramaRenderer, RendererCallbacks
from .view_controller import InputData, InputType

FRAME_INTERVAL_MS = 16

_KEY_NAMES = {
    Qt.Key.Key_Left: "ArrowLeft",
    Qt.Key.Key_Right: "ArrowRight",
    Qt.Key.Key_Up: "ArrowUp",
    Qt.Key.Key_Down: "ArrowDown",
}


class QtFrameScheduler:
    """Runs frame callbacks from single-shot timers at display cadence."""

    def __init__(self, parent: QWidget, interval_ms: int = FRAME_INTERVAL_MS) -> None:
        self._parent = parent
        self._interval_ms = interval_ms
        self._timers: Dict[int, QTimer] = {}

    def schedule(self, callback: Callable[[], None]) -> int:
        timer = QTimer(self._parent)
        timer.setSingleShot(True)
        timer.setInterval(self._interval_ms)
        token = id(timer)

        def fire() -> None:
            self._timers.pop(token, None)
            timer.deleteLater()
            callback()

        timer.timeout.connect(fire)
        self._timers[token] = timer
        timer.start()
        return token

    def cancel(self, token: int) -> None:
        timer = self._timers.pop(token, None)
        if timer is not None:
            timer.stop()
            timer.deleteLater()


class PanoramaWidget(QWidget):
    """Interactive fisheye panorama viewer.

    Qt mouse, wheel, touch and key events are translated into renderer input
    events. Images decode on the Qt thread pool; only the newest request is
    applied, older results are dropped.
    """

    viewChanged = pyqtSignal(object)  # CameraState
    loaded = pyqtSignal()
    loadFailed = pyqtSignal(str)

    def __init__(self, config: Optional[RendererConfig] = None, parent=None) -> None:
        super().__init__(parent)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setAttribute(Qt.WidgetAttribute.WA_AcceptTouchEvents, True)
        self.setMinimumSize(Constraints.MIN_CANVAS_SIZE, Constraints.MIN_CANVAS_SIZE)
        self.setMouseTracking(False)

        size = max(Constraints.MIN_CANVAS_SIZE, self.width()), max(
            Constraints.MIN_CANVAS_SIZE, self.height()
        )
        self._target = ArrayRenderTarget(*size)
        self._renderer = PanoramaRenderer(
            self._target,
            config,
            RendererCallbacks(
                on_load=self._on_renderer_loaded,
                on_error=self._on_renderer_error,
                on_view_change=self._on_renderer_view_change,
            ),
            scheduler=QtFrameScheduler(self),
        )
        self._task_runner = TaskRunner()
        self._active_tasks: set[ImageLoadTask] = set()
        self._generation = 0

    # ------------------------------------------------------------------
    @property
    def renderer(self) -> PanoramaRenderer:
        return self._renderer

    def load_image(self, handle: Any) -> None:
        """Start decoding ``handle`` in the background."""
        self._generation += 1
        task = ImageLoadTask(load_source_image, handle, self._generation)
        self._active_tasks.add(task)
        task.signals.finished.connect(lambda gen, image, t=task: self._on_decoded(t, gen, image))
        task.signals.failed.connect(lambda gen, exc, t=task: self._on_decode_failed(t, gen, exc))
        self._task_runner.submit(task)
        logger.info("Loading panorama {}", handle)

    def set_labels(self, labels: Iterable[Label]) -> None:
        self._renderer.set_labels(labels)

    def set_view(
        self,
        yaw: Optional[float] = None,
        pitch: Optional[float] = None,
        zoom: Optional[float] = None,
    ) -> None:
        self._renderer.set_state(yaw=yaw, pitch=pitch, zoom=zoom)

    def view_state(self) -> CameraState:
        return self._renderer.get_state()

    # ------------------------------------------------------------------
    def _on_decoded(self, task: ImageLoadTask, generation: int, image: np.ndarray) -> None:
        self._active_tasks.discard(task)
        if generation != self._generation:
            logger.debug("Discarding superseded load {}", generation)
            return
        try:
            self._renderer.load_image(image)
        except PanoramaError as exc:
            logger.warning("Keeping previous panorama: {}", exc)
        self.update()

    def _on_decode_failed(self, task: ImageLoadTask, generation: int, exc: Exception) -> None:
        self._active_tasks.discard(task)
        if generation != self._generation:
            return
        self._renderer.report_load_failure(task.handle, exc)

    def _on_renderer_loaded(self) -> None:
        self.loaded.emit()

    def _on_renderer_error(self, exc: Exception) -> None:
        self.loadFailed.emit(str(exc))

    def _on_renderer_view_change(self, state: CameraState) -> None:
        self.update()
        self.viewChanged.emit(state)

    # ------------------------------------------------------------------
    def paintEvent(self, event) -> None:  # noqa: N802
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor(0, 0, 0))
        if self._renderer.has_image:
            buffer = self._target.buffer
            height, width = buffer.shape[:2]
            image = QImage(buffer.data, width, height, width * 4, QImage.Format.Format_RGBA8888)
            painter.drawImage(0, 0, image)
        painter.end()

    def resizeEvent(self, event) -> None:  # noqa: N802
        width = max(Constraints.MIN_CANVAS_SIZE, event.size().width())
        height = max(Constraints.MIN_CANVAS_SIZE, event.size().height())
        self._renderer.resize(width, height)
        super().resizeEvent(event)

    def mousePressEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        if event.button() == Qt.MouseButton.LeftButton:
            pos = event.position()
            self._renderer.handle_input(InputType.POINTER_DOWN, InputData(x=pos.x(), y=pos.y()))
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        pos = event.position()
        self._renderer.handle_input(InputType.POINTER_MOVE, InputData(x=pos.x(), y=pos.y()))
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        if event.button() == Qt.MouseButton.LeftButton:
            self._renderer.handle_input(InputType.POINTER_UP)
        super().mouseReleaseEvent(event)

    def leaveEvent(self, event) -> None:  # noqa: N802
        self._renderer.handle_input(InputType.POINTER_LEAVE)
        super().leaveEvent(event)

    def wheelEvent(self, event: QWheelEvent) -> None:  # noqa: N802
        # Qt reports scrolling away from the user as a positive angle.
        delta = -event.angleDelta().y()
        if delta != 0:
            self._renderer.handle_input(InputType.WHEEL, InputData(delta_y=float(delta)))
        event.accept()

    def keyPressEvent(self, event: QKeyEvent) -> None:  # noqa: N802
        key = _KEY_NAMES.get(Qt.Key(event.key()))
        if key is None:
            super().keyPressEvent(event)
            return
        self._renderer.handle_input(InputType.KEY_DOWN, InputData(key=key))
        event.accept()

    def event(self, event) -> bool:
        kind = event.type()
        if kind in (QEvent.Type.TouchBegin, QEvent.Type.TouchUpdate, QEvent.Type.TouchEnd):
            touches = [(p.position().x(), p.position().y()) for p in event.points()]
            if kind == QEvent.Type.TouchBegin:
                self._renderer.handle_input(InputType.TOUCH_START, InputData(touches=touches))
            elif kind == QEvent.Type.TouchUpdate:
                self._renderer.handle_input(InputType.TOUCH_MOVE, InputData(touches=touches))
            else:
                self._renderer.handle_input(InputType.TOUCH_END)
            event.accept()
            return True
        return super().event(event)

    def closeEvent(self, event) -> None:  # noqa: N802
        self._renderer.destroy()
        super().closeEvent(event)
