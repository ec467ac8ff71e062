"""Image and label loading utilities."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union
from urllib.parse import urlparse
from urllib.request import urlopen

import cv2
import numpy as np
from loguru import logger

from ..errors import ImageLoadError
from ..models.label import Label

ImageHandle = Union[str, Path]


def is_remote_source(source: str) -> bool:
    return source.startswith("http://") or source.startswith("https://")


def load_failure_message(source: str, reason: Optional[str] = None) -> str:
    """Build a human-readable load failure message.

    Remote sources get an advisory hint about cross-origin configuration.
    """
    message = f"Failed to load image: {source}"
    if reason:
        message += f" ({reason})"
    if is_remote_source(source):
        hostname = urlparse(source).hostname or source
        message += (
            "\n\nPossible causes:\n"
            f"1. CORS not configured on {hostname}\n"
            "2. Image doesn't exist or is inaccessible\n"
            "3. Network connectivity issues\n\n"
            "For OSS/AWS S3/CloudFront: Configure CORS rules to allow GET requests from your domain."
        )
    return message


def _to_rgb_order(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


def _normalise_depth(image: np.ndarray) -> np.ndarray:
    if image.dtype == np.uint8:
        return image
    if image.dtype == np.uint16:
        logger.debug("Down-converting 16-bit panorama to 8-bit")
        return (image >> 8).astype(np.uint8)
    return np.clip(image, 0, 255).astype(np.uint8)


def load_source_image(handle: ImageHandle) -> np.ndarray:
    """Decode a local file or http(s) URL into an RGB(A) uint8 array."""
    source = str(handle)
    if is_remote_source(source):
        try:
            with urlopen(source) as response:
                payload = response.read()
        except OSError as exc:
            raise ImageLoadError(load_failure_message(source, str(exc)), source) from exc
        buffer = np.frombuffer(payload, dtype=np.uint8)
        image = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED) if buffer.size else None
    else:
        path = Path(source)
        if not path.exists():
            raise ImageLoadError(load_failure_message(source, "file not found"), source)
        image = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)

    if image is None:
        raise ImageLoadError(load_failure_message(source, "unable to decode image"), source)

    image = _to_rgb_order(_normalise_depth(image))
    logger.debug("Loaded panorama image {} with shape {}", source, image.shape)
    return image


# Labels ---------------------------------------------------------------------
def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _sanitise_title(title: Any) -> Optional[str]:
    if title is None:
        return None
    return str(title).replace("<", "").replace(">", "")


def parse_labels(entries: Iterable[Any]) -> List[Label]:
    """Convert decoded JSON entries into labels, skipping malformed ones."""
    labels: List[Label] = []
    for entry in entries:
        if not isinstance(entry, dict):
            logger.warning("Invalid label structure, skipping: {}", entry)
            continue
        title = entry.get("title")
        valid = (
            isinstance(entry.get("id"), str)
            and all(_is_number(entry.get(key)) for key in ("x", "y", "w", "h"))
            and (title is None or isinstance(title, str))
        )
        if not valid:
            logger.warning("Invalid label structure, skipping: {}", entry)
            continue
        labels.append(
            Label(
                id=entry["id"],
                x=float(entry["x"]),
                y=float(entry["y"]),
                w=float(entry["w"]),
                h=float(entry["h"]),
                title=_sanitise_title(title),
            )
        )
    return labels


def load_labels(path: Path) -> List[Label]:
    """Load a JSON array of labels from ``path``."""
    with Path(path).open("r", encoding="utf-8") as stream:
        data = json.load(stream)
    if not isinstance(data, list):
        raise ValueError(f"Labels file must contain a JSON array: {path}")
    labels = parse_labels(data)
    logger.debug("Loaded {} labels from {}", len(labels), path)
    return labels
