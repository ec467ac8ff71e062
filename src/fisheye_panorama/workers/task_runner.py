"""Background decoding of panorama images on the Qt thread pool."""
from __future__ import annotations

from typing import Any, Callable

import numpy as np
from PyQt6.QtCore import QObject, QRunnable, QThreadPool, pyqtSignal


class LoadSignals(QObject):
    """Signals emitted by an image load task, tagged with its generation."""

    finished = pyqtSignal(int, object)
    failed = pyqtSignal(int, object)


class ImageLoadTask(QRunnable):
    """Decode an image handle off the GUI thread.

    The generation number lets the receiver discard results of loads that
    were superseded while they ran.
    """

    def __init__(self, provider: Callable[[Any], np.ndarray], handle: Any, generation: int) -> None:
        super().__init__()
        self.provider = provider
        self.handle = handle
        self.generation = generation
        self.signals = LoadSignals()

    def run(self) -> None:
        try:
            image = self.provider(self.handle)
        except Exception as exc:  # noqa: BLE001
            self.signals.failed.emit(self.generation, exc)
        else:
            self.signals.finished.emit(self.generation, image)


class TaskRunner:
    """Thin wrapper around QThreadPool for convenience."""

    def __init__(self, max_threads: int | None = None) -> None:
        self._pool = QThreadPool.globalInstance()
        if max_threads is not None:
            self._pool.setMaxThreadCount(max_threads)

    def submit(self, task: ImageLoadTask) -> None:
        self._pool.start(task)
