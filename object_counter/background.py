"""
object_counter/background.py
----------------------------
Background model estimation.

Two interchangeable policies, chosen through `CounterConfig.background_policy`:

* adaptive colour – coarse HSV histograms over a strided sample of the frame;
  the fullest bin of each channel describes the backdrop.
* global threshold – one Otsu threshold on the blurred grayscale image, for
  dark objects on a light surface.
"""

from __future__ import annotations

import logging

import cv2
import numpy as np

from .config import (
    HUE_BINS,
    SAT_BINS,
    VAL_BINS,
    BackgroundPolicy,
    CounterConfig,
)
from .models import BackgroundDescriptor

log = logging.getLogger(__name__)


def to_hsv(bgr: np.ndarray) -> np.ndarray:
    return cv2.cvtColor(bgr, cv2.COLOR_BGR2HSV)


def blurred_gray(bgr: np.ndarray, ksize: int) -> np.ndarray:
    """Grayscale copy, Gaussian-smoothed when `ksize` ≥ 3."""
    gray = cv2.cvtColor(bgr, cv2.COLOR_BGR2GRAY)
    if ksize and ksize >= 3:
        gray = cv2.GaussianBlur(gray, (ksize, ksize), 0)
    return gray


def _dominant_bin_center(channel: np.ndarray, bins: int, upper: int) -> int:
    hist = cv2.calcHist([channel], [0], None, [bins], [0, upper]).ravel()
    width = upper / bins
    # argmax picks the first maximum, and bin 0 for an empty histogram
    peak = int(np.argmax(hist))
    return int(peak * width + width / 2)


def _estimate_adaptive_color(bgr: np.ndarray, stride: int, neutral_saturation: int) -> BackgroundDescriptor:
    hsv = to_hsv(bgr)
    sample = np.ascontiguousarray(hsv[::stride, ::stride])
    h, s, v = cv2.split(sample)

    hue = _dominant_bin_center(h, HUE_BINS, 180)
    sat = _dominant_bin_center(s, SAT_BINS, 256)
    val = _dominant_bin_center(v, VAL_BINS, 256)

    return BackgroundDescriptor(
        policy=BackgroundPolicy.ADAPTIVE_COLOR,
        hue=hue,
        saturation=sat,
        value=val,
        neutral=sat < neutral_saturation,
    )


def _estimate_global_threshold(bgr: np.ndarray, blur_ksize: int) -> BackgroundDescriptor:
    gray = blurred_gray(bgr, blur_ksize)
    threshold, _ = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY_INV + cv2.THRESH_OTSU)
    return BackgroundDescriptor(
        policy=BackgroundPolicy.GLOBAL_THRESHOLD,
        threshold=float(threshold),
        # the light-surface model assumes a neutral backdrop
        neutral=True,
    )


def estimate_background(bgr: np.ndarray, cfg: CounterConfig) -> BackgroundDescriptor:
    """Describe the backdrop of `bgr` using the configured policy."""
    if cfg.background_policy is BackgroundPolicy.ADAPTIVE_COLOR:
        desc = _estimate_adaptive_color(bgr, cfg.sample_stride, cfg.neutral_saturation)
        log.debug(
            "Background HSV=(%d,%d,%d) neutral=%s",
            desc.hue,
            desc.saturation,
            desc.value,
            desc.neutral,
        )
    else:
        desc = _estimate_global_threshold(bgr, cfg.gray_blur_ksize)
        log.debug("Background Otsu threshold=%.1f", desc.threshold)
    return desc
