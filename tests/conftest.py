from __future__ import annotations

from typing import List, Sequence, Tuple

import cv2
import numpy as np
import pytest

from object_counter.models import Detection

LIGHT = (220, 220, 220)
DARK = (40, 40, 40)
GRAY = (128, 128, 128)
RED = (0, 0, 200)

CANVAS = (320, 400)  # (height, width)
RADIUS = 20
GRID = [(40 + 80 * i, 40 + 80 * j) for j in range(4) for i in range(5)]


def draw_discs(
    centers: Sequence[Tuple[int, int]],
    radius: int = RADIUS,
    shape: Tuple[int, int] = CANVAS,
    fg: Tuple[int, int, int] = DARK,
    bg: Tuple[int, int, int] = LIGHT,
) -> np.ndarray:
    img = np.empty((*shape, 3), dtype=np.uint8)
    img[:] = bg
    for cx, cy in centers:
        cv2.circle(img, (cx, cy), radius, fg, -1)
    return img


def disc_truth(
    centers: Sequence[Tuple[int, int]], radius: int = RADIUS, shape: Tuple[int, int] = CANVAS
) -> List[Detection]:
    height, width = shape
    side = 2 * radius + 1
    return [
        Detection(x=(cx - radius) / width, y=(cy - radius) / height, width=side / width, height=side / height)
        for cx, cy in centers
    ]


@pytest.fixture
def discs():
    """Factory: solid discs on a uniform backdrop (BGR, uint8)."""
    return draw_discs


@pytest.fixture
def truth():
    """Factory: ground-truth normalised boxes for `discs`."""
    return disc_truth


@pytest.fixture
def grid():
    return list(GRID)


@pytest.fixture
def touching_pair():
    """Two r=40 dark discs whose centres are 70 px apart: one merged blob."""
    return draw_discs([(100, 100), (170, 100)], radius=40, shape=(200, 300))
