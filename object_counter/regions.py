"""
object_counter/regions.py
-------------------------
Label map → bounding boxes → normalised detections.
"""

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

import numpy as np
from scipy import ndimage

from .models import BoundingBox, Detection
from .segmentation import BACKGROUND

log = logging.getLogger(__name__)


def _discovery_order(objects: np.ndarray) -> List[int]:
    """Object labels in the order a raster scan first meets them."""
    present, first_index = np.unique(objects.ravel(), return_index=True)
    ranked = sorted(zip(first_index.tolist(), present.tolist()))
    return [lbl for _, lbl in ranked if lbl != 0]


def extract_boxes(labels: np.ndarray, min_area: int = 0) -> List[BoundingBox]:
    """
    One box per object label (> 1) whose area reaches `min_area`.

    Boundary (-1) and background (1) pixels never contribute. Boxes come out
    in discovery order, not sorted by position.
    """
    objects = np.where(labels > BACKGROUND, labels, 0)
    if not objects.any():
        return []

    # two passes: np.unique fixes the raster order, find_objects the extents
    extents = ndimage.find_objects(objects)
    boxes: List[BoundingBox] = []
    dropped = 0
    for lbl in _discovery_order(objects):
        rows, cols = extents[lbl - 1]
        box = BoundingBox(
            int(cols.start),
            int(rows.start),
            int(cols.stop - cols.start),
            int(rows.stop - rows.start),
        )
        if box.area < min_area:
            dropped += 1
            continue
        boxes.append(box)

    log.debug("Region extraction: kept %d boxes, dropped %d below %d px²", len(boxes), dropped, min_area)
    return boxes


def to_detections(boxes: Sequence[BoundingBox], img_shape: Tuple[int, ...]) -> Tuple[Detection, ...]:
    height, width = img_shape[:2]
    return tuple(box.normalized(width, height) for box in boxes)
