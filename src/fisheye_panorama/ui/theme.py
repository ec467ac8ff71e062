"""Viewer window theme.

The window background matches the renderer's clear colour and the accent
reuses the label outline colour, so selection and tooltips read as labels.
"""
from __future__ import annotations

from PyQt6.QtGui import QColor, QPalette

from ..viewer.label_overlay import STROKE_COLOR


def _accent() -> QColor:
    r, g, b, _ = STROKE_COLOR
    return QColor(int(r), int(g), int(b))


def build_viewer_palette() -> QPalette:
    accent = _accent()
    palette = QPalette()
    for role, color in (
        (QPalette.ColorRole.Window, QColor(0, 0, 0)),
        (QPalette.ColorRole.WindowText, QColor(230, 230, 230)),
        (QPalette.ColorRole.Base, QColor(12, 12, 14)),
        (QPalette.ColorRole.Text, QColor(235, 235, 235)),
        (QPalette.ColorRole.ToolTipBase, accent),
        (QPalette.ColorRole.ToolTipText, QColor(0, 0, 0)),
        (QPalette.ColorRole.Highlight, accent),
        (QPalette.ColorRole.HighlightedText, QColor(0, 0, 0)),
    ):
        palette.setColor(role, color)
    return palette


def apply_viewer_theme(app) -> None:
    app.setPalette(build_viewer_palette())
    app.setStyle("Fusion")
    app.setStyleSheet(f"QToolTip {{ border: 1px solid {_accent().name()}; }}")
