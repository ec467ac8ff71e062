"""Label overlay domain models."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple


@dataclass(frozen=True, slots=True)
class Label:
    """Rectangular annotation in source-image pixel coordinates."""

    id: str
    x: float
    y: float
    w: float
    h: float
    title: Optional[str] = None

    def corners(self) -> Tuple[Tuple[float, float], ...]:
        """Return the four corners in top-left, top-right, bottom-left, bottom-right order."""
        return (
            (self.x, self.y),
            (self.x + self.w, self.y),
            (self.x, self.y + self.h),
            (self.x + self.w, self.y + self.h),
        )

    def to_dict(self) -> dict[str, float | str | None]:
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "w": self.w,
            "h": self.h,
            "title": self.title,
        }


def ensure_unique_ids(labels: Iterable[Label]) -> list[Label]:
    """Return the labels as a list, rejecting duplicate identifiers."""
    result = list(labels)
    seen: set[str] = set()
    for label in result:
        if label.id in seen:
            raise ValueError(f"Duplicate label id: {label.id!r}")
        seen.add(label.id)
    return result
