"""
object_counter/models.py
------------------------
Value types exchanged between the pipeline stages and with callers.

Pixel-space results are `BoundingBox`; everything handed to the outside world
is a `Detection` with coordinates normalised to the image size.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Optional, Tuple, Union

import numpy as np

from .config import BackgroundPolicy

OBJECT_LABEL = "object"


@dataclass(frozen=True)
class BackgroundDescriptor:
    """
    Summary of the backdrop of one image.

    Adaptive-colour estimates fill `hue`, `saturation`, `value` with the
    dominant histogram bin centres; the global-threshold estimate only sets
    `threshold`.
    """

    policy: BackgroundPolicy
    hue: int = 0
    saturation: int = 0
    value: int = 0
    threshold: Optional[float] = None
    neutral: bool = True


class BoundingBox(NamedTuple):
    """Axis-aligned box in pixels; (x, y) is the top-left corner."""

    x: int
    y: int
    width: int
    height: int

    @property
    def area(self) -> int:
        return self.width * self.height

    def normalized(self, img_width: int, img_height: int) -> "Detection":
        return Detection(
            x=self.x / img_width,
            y=self.y / img_height,
            width=self.width / img_width,
            height=self.height / img_height,
        )


@dataclass(frozen=True)
class Detection:
    """One counted unit. Coordinates are fractions of the image size."""

    x: float
    y: float
    width: float
    height: float
    label: str = OBJECT_LABEL
    confidence: float = 1.0

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def iou(self, other: "Detection") -> float:
        inter_w = max(0.0, min(self.right, other.right) - max(self.x, other.x))
        inter_h = max(0.0, min(self.bottom, other.bottom) - max(self.y, other.y))
        inter = inter_w * inter_h
        union = self.area + other.area - inter
        return inter / union if union > 0 else 0.0

    def union(self, other: "Detection") -> "Detection":
        x = min(self.x, other.x)
        y = min(self.y, other.y)
        return Detection(
            x=x,
            y=y,
            width=max(self.right, other.right) - x,
            height=max(self.bottom, other.bottom) - y,
        )

    def to_pixels(self, img_width: int, img_height: int) -> BoundingBox:
        return BoundingBox(
            int(round(self.x * img_width)),
            int(round(self.y * img_height)),
            int(round(self.width * img_width)),
            int(round(self.height * img_height)),
        )


@dataclass(frozen=True)
class SensorFrame:
    """
    Raw camera frame in NV21 layout (full Y plane, then interleaved V/U at
    half resolution) plus the clockwise rotation needed to make it upright.
    """

    data: Union[bytes, bytearray, memoryview, np.ndarray]
    width: int
    height: int
    rotation: int = 0


class CountResult(NamedTuple):
    detections: Tuple[Detection, ...]
    count: int
