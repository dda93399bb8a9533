"""
object_counter/mask_utils.py
----------------------------
Binary foreground masks: construction from a background model, morphological
clean-up, and visualisation helpers for debugging artefacts.

All masks are 8-bit single-channel arrays with values {0, 255}; every
function returns a new array.
"""

from __future__ import annotations

from typing import Iterable, Tuple

import cv2
import numpy as np

from .background import blurred_gray, to_hsv
from .config import BackgroundPolicy, CounterConfig
from .models import BackgroundDescriptor, Detection

HUE_MAX = 179
HUE_GOLDEN_RATIO_DEGREES = 137  # golden-ratio hue stepping ⇒ distinct colours
BOX_COLOUR = (0, 255, 0)


# --------------------------------------------------------------------------- #
# 1. foreground mask
# --------------------------------------------------------------------------- #
def _inside_colour_window(hsv: np.ndarray, desc: BackgroundDescriptor, cfg: CounterConfig) -> np.ndarray:
    s_lo = max(0, desc.saturation - cfg.saturation_tolerance)
    s_hi = min(255, desc.saturation + cfg.saturation_tolerance)
    v_lo = max(0, desc.value - cfg.value_tolerance)
    v_hi = min(255, desc.value + cfg.value_tolerance)
    h_lo = desc.hue - cfg.hue_tolerance
    h_hi = desc.hue + cfg.hue_tolerance

    inside = cv2.inRange(
        hsv,
        (max(0, h_lo), s_lo, v_lo),
        (min(HUE_MAX, h_hi), s_hi, v_hi),
    )
    # hue is circular: a window around red spills over 0 / 180
    if h_lo < 0:
        inside |= cv2.inRange(hsv, (HUE_MAX + 1 + h_lo, s_lo, v_lo), (HUE_MAX, s_hi, v_hi))
    if h_hi > HUE_MAX:
        inside |= cv2.inRange(hsv, (0, s_lo, v_lo), (h_hi - HUE_MAX - 1, s_hi, v_hi))
    return inside


def build_foreground_mask(
    bgr: np.ndarray, desc: BackgroundDescriptor, cfg: CounterConfig
) -> np.ndarray:
    """
    Separate candidate object pixels (255) from the backdrop (0).

    Parameters
    ----------
    bgr : np.ndarray
        Normalised BGR image.
    desc : BackgroundDescriptor
        Output of `estimate_background` for the same image.
    cfg : CounterConfig
        Floors and tolerance windows.

    Returns
    -------
    np.ndarray
        uint8 mask with the image's height and width.
    """
    if desc.policy is BackgroundPolicy.GLOBAL_THRESHOLD:
        gray = blurred_gray(bgr, cfg.gray_blur_ksize)
        if gray.min() == gray.max():
            # no variance: Otsu has nothing to split
            return np.zeros(gray.shape, dtype=np.uint8)
        _, mask = cv2.threshold(gray, desc.threshold, 255, cv2.THRESH_BINARY_INV)
        return mask

    hsv = to_hsv(bgr)
    if desc.neutral:
        # gray backdrop: anything saturated and not black is an object
        return cv2.inRange(
            hsv,
            (0, cfg.saturation_floor + 1, cfg.value_floor + 1),
            (HUE_MAX, 255, 255),
        )
    return cv2.bitwise_not(_inside_colour_window(hsv, desc, cfg))


# --------------------------------------------------------------------------- #
# 2. morphological refinement
# --------------------------------------------------------------------------- #
def ellipse(size: int) -> np.ndarray:
    return cv2.getStructuringElement(cv2.MORPH_ELLIPSE, (size, size))


def refine_mask(mask: np.ndarray, cfg: CounterConfig) -> np.ndarray:
    """
    Close internal gaps (creases, glare) first, then open to strip speckle and
    thin bridges between lightly touching objects.
    """
    closed = cv2.morphologyEx(
        mask, cv2.MORPH_CLOSE, ellipse(cfg.close_kernel), iterations=cfg.close_iterations
    )
    return cv2.morphologyEx(
        closed, cv2.MORPH_OPEN, ellipse(cfg.open_kernel), iterations=cfg.open_iterations
    )


# --------------------------------------------------------------------------- #
# 3. visualisation
# --------------------------------------------------------------------------- #
def create_coloured_overlay(bgr: np.ndarray, labels: np.ndarray, alpha: float = 0.45) -> np.ndarray:
    """
    Paint every object label (> 1) in its own colour and alpha-blend it over
    `bgr`; watershed boundaries (-1) are drawn white.
    """
    overlay = np.zeros_like(bgr)
    ids = [lbl for lbl in np.unique(labels) if lbl > 1]
    for i, lbl in enumerate(ids, 1):
        hue = (i * HUE_GOLDEN_RATIO_DEGREES) % 180
        colour = cv2.cvtColor(np.uint8([[[hue, 200, 255]]]), cv2.COLOR_HSV2BGR)[0, 0].tolist()
        overlay[labels == lbl] = colour

    blended = cv2.addWeighted(bgr, 1.0, overlay, alpha, 0.0)
    blended[labels == -1] = (255, 255, 255)
    return blended


def draw_detections(
    bgr: np.ndarray,
    detections: Iterable[Detection],
    colour: Tuple[int, int, int] = BOX_COLOUR,
    thickness: int = 2,
) -> np.ndarray:
    """Copy of `bgr` with one rectangle per detection and the count in the corner."""
    canvas = bgr.copy()
    height, width = canvas.shape[:2]
    total = 0
    for det in detections:
        box = det.to_pixels(width, height)
        cv2.rectangle(
            canvas,
            (box.x, box.y),
            (box.x + box.width - 1, box.y + box.height - 1),
            colour,
            thickness,
        )
        total += 1
    cv2.putText(
        canvas, f"Count: {total}", (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 1.0, colour, 2, cv2.LINE_AA
    )
    return canvas
