"""Projection of source-space labels into viewport draw commands."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from loguru import logger

from ..math.mapping import project_to_viewport
from ..models.camera_state import ProjectionType
from ..models.label import Label, ensure_unique_ids
from .render_target import Color, DrawingContext

FILL_COLOR: Color = (255, 200, 0, 0.3)
STROKE_COLOR: Color = (255, 200, 0, 0.8)
TEXT_COLOR: Color = (255, 255, 255, 1.0)
STROKE_WIDTH = 2
FONT_SIZE = 14
MIN_TITLE_WIDTH = 50.0
MIN_TITLE_HEIGHT = 20.0


@dataclass(frozen=True, slots=True)
class LabelDrawCommand:
    """Viewport rectangle for one visible label."""

    label_id: str
    x: float
    y: float
    width: float
    height: float
    title: Optional[str] = None

    @property
    def show_title(self) -> bool:
        return bool(self.title) and self.width >= MIN_TITLE_WIDTH and self.height >= MIN_TITLE_HEIGHT

    @property
    def center(self) -> tuple[float, float]:
        return self.x + self.width / 2.0, self.y + self.height / 2.0


class LabelOverlay:
    """Holds the active label set and projects it for each frame.

    The visible part of a label is approximated by the axis-aligned box of
    its visible corners, not the warped quadrilateral.
    """

    def __init__(self) -> None:
        self._labels: List[Label] = []

    @property
    def labels(self) -> Sequence[Label]:
        return tuple(self._labels)

    def set_labels(self, labels: Iterable[Label]) -> None:
        self._labels = ensure_unique_ids(labels)
        logger.debug("Label set replaced with {} labels", len(self._labels))

    def clear(self) -> None:
        self._labels = []

    def project(
        self,
        viewport_width: int,
        viewport_height: int,
        image_width: int,
        image_height: int,
        yaw: float,
        pitch: float,
        zoom: float,
        fov: float,
        projection_type: ProjectionType = ProjectionType.STEREOGRAPHIC,
    ) -> List[LabelDrawCommand]:
        """Return draw commands for labels with at least one visible corner.

        ``yaw``, ``pitch`` and ``fov`` are in radians.
        """
        commands: List[LabelDrawCommand] = []
        for label in self._labels:
            visible = []
            for corner_x, corner_y in label.corners():
                point = project_to_viewport(
                    corner_x,
                    corner_y,
                    image_width,
                    image_height,
                    viewport_width,
                    viewport_height,
                    yaw,
                    pitch,
                    zoom,
                    fov,
                    projection_type,
                )
                if point is not None:
                    visible.append(point)
            if not visible:
                continue

            xs = [point[0] for point in visible]
            ys = [point[1] for point in visible]
            min_x, min_y = min(xs), min(ys)
            commands.append(
                LabelDrawCommand(
                    label_id=label.id,
                    x=min_x,
                    y=min_y,
                    width=max(xs) - min_x,
                    height=max(ys) - min_y,
                    title=label.title,
                )
            )
        return commands

    @staticmethod
    def draw(context: DrawingContext, commands: Iterable[LabelDrawCommand]) -> None:
        for command in commands:
            context.fill_rect(command.x, command.y, command.width, command.height, FILL_COLOR)
            context.stroke_rect(
                command.x,
                command.y,
                command.width,
                command.height,
                STROKE_COLOR,
                line_width=STROKE_WIDTH,
            )
            if command.show_title:
                center_x, center_y = command.center
                context.fill_text(command.title, center_x, center_y, TEXT_COLOR, FONT_SIZE)
