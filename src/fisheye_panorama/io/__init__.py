"""Input helpers for panorama images and label files."""

from .loader import load_failure_message, load_labels, load_source_image, parse_labels

__all__ = [
    "load_failure_message",
    "load_labels",
    "load_source_image",
    "parse_labels",
]
