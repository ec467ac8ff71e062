"""Application bootstrap utilities."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

from loguru import logger
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QGuiApplication
from PyQt6.QtWidgets import QApplication

from .io.loader import load_labels
from .logging import configure_logging
from .models.camera_state import ProjectionType, RendererConfig
from .ui.theme import apply_viewer_theme
from .viewer.panorama_widget import PanoramaWidget


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="View an equirectangular panorama through a fisheye lens.")
    parser.add_argument("image", help="Panorama file path or http(s) URL")
    parser.add_argument("--labels", type=Path, help="JSON file with label rectangles")
    parser.add_argument(
        "--projection",
        choices=[member.value for member in ProjectionType],
        help="Lens model (default: equidistant)",
    )
    parser.add_argument("--fov", type=float, help="Horizontal field of view in degrees")
    parser.add_argument("--yaw", type=float, help="Initial yaw in degrees")
    parser.add_argument("--pitch", type=float, help="Initial pitch in degrees")
    parser.add_argument("--zoom", type=float, help="Initial zoom")
    parser.add_argument("--size", default="800x600", help="Initial window size, WIDTHxHEIGHT")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", type=Path, help="Also write debug logs to this file")
    return parser


def _parse_size(text: str) -> tuple[int, int]:
    width, _, height = text.lower().partition("x")
    return int(width), int(height)


def main(argv: Optional[list[str]] = None) -> int:
    """Launch the fisheye panorama viewer."""
    args = build_parser().parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging("DEBUG" if args.verbose else "INFO", args.log_file)

    config = RendererConfig.from_mapping(
        {
            "projection": args.projection,
            "fov": args.fov,
            "initialYaw": args.yaw,
            "initialPitch": args.pitch,
            "initialZoom": args.zoom,
        }
    )

    QGuiApplication.setHighDpiScaleFactorRoundingPolicy(
        Qt.HighDpiScaleFactorRoundingPolicy.PassThrough
    )
    app = QApplication(sys.argv[:1])
    apply_viewer_theme(app)

    widget = PanoramaWidget(config)
    widget.setWindowTitle(f"Fisheye Panorama - {args.image}")
    widget.resize(*_parse_size(args.size))
    widget.loadFailed.connect(lambda message: logger.error("{}", message))
    if args.labels is not None:
        widget.set_labels(load_labels(args.labels))
    widget.show()
    widget.load_image(args.image)

    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
