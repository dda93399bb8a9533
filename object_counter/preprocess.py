"""
object_counter/preprocess.py
----------------------------
Turns whatever the acquisition side hands over into the one layout the
pipeline works on: an upright, contiguous, 8-bit, 3-channel BGR array.

Three entry routes:
    • decoded buffers in a known channel order     → normalize_buffer
    • raw NV21 camera frames with a rotation hint  → decode_sensor_frame
    • image files (gallery / batch use)            → load_image
"""

from __future__ import annotations

import logging
import pathlib
from typing import Optional

import cv2
import imutils
import numpy as np

from .errors import ImageDecodeError
from .models import SensorFrame

log = logging.getLogger(__name__)

_TO_BGR = {
    "BGR": None,
    "RGB": cv2.COLOR_RGB2BGR,
    "BGRA": cv2.COLOR_BGRA2BGR,
    "RGBA": cv2.COLOR_RGBA2BGR,
}

_ROTATIONS = {
    0: None,
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


def normalize_buffer(pixels: np.ndarray, channel_order: str = "BGR") -> np.ndarray:
    """
    Validate a decoded image buffer and convert it to BGR.

    Args:
        pixels: uint8 array of shape (H, W, 3) or (H, W, 4).
        channel_order: one of "BGR", "RGB", "BGRA", "RGBA".

    Returns:
        A new contiguous BGR array; the input is never modified.

    Raises:
        ImageDecodeError: empty, wrongly typed or wrongly shaped buffers.
    """
    order = channel_order.upper()
    if order not in _TO_BGR:
        raise ImageDecodeError(f"unsupported channel order {channel_order!r}")
    if not isinstance(pixels, np.ndarray):
        raise ImageDecodeError(f"expected a numpy array, got {type(pixels).__name__}")
    if pixels.size == 0 or pixels.ndim != 3:
        raise ImageDecodeError(f"expected an (H, W, C) image, got shape {pixels.shape}")
    if pixels.dtype != np.uint8:
        raise ImageDecodeError(f"expected uint8 pixels, got {pixels.dtype}")

    channels = pixels.shape[2]
    if channels != len(order):
        raise ImageDecodeError(
            f"channel order {order} needs {len(order)} channels, buffer has {channels}"
        )

    code = _TO_BGR[order]
    if code is None:
        return np.ascontiguousarray(pixels).copy()
    return cv2.cvtColor(np.ascontiguousarray(pixels), code)


def rotate_upright(img: np.ndarray, rotation: int) -> np.ndarray:
    """Rotate clockwise by `rotation` degrees (0, 90, 180 or 270)."""
    try:
        code = _ROTATIONS[int(rotation) % 360]
    except (KeyError, TypeError, ValueError):
        raise ImageDecodeError(f"rotation must be one of 0/90/180/270, got {rotation!r}") from None
    if code is None:
        return img
    return cv2.rotate(img, code)


def decode_sensor_frame(frame: SensorFrame) -> np.ndarray:
    """
    Convert an NV21 camera frame to an upright BGR image.

    Raises:
        ImageDecodeError: odd or non-positive dimensions, or a payload whose
        length does not match width × height × 1.5.
    """
    width, height = frame.width, frame.height
    if width <= 0 or height <= 0 or width % 2 or height % 2:
        raise ImageDecodeError(f"NV21 frames need positive even dimensions, got {width}x{height}")

    if isinstance(frame.data, np.ndarray):
        raw = frame.data.astype(np.uint8, copy=False).ravel()
    else:
        raw = np.frombuffer(frame.data, dtype=np.uint8)

    expected = width * height * 3 // 2
    if raw.size != expected:
        raise ImageDecodeError(
            f"NV21 payload has {raw.size} bytes, expected {expected} for {width}x{height}"
        )

    yuv = raw.reshape(height * 3 // 2, width)
    bgr = cv2.cvtColor(yuv, cv2.COLOR_YUV2BGR_NV21)
    return rotate_upright(bgr, frame.rotation)


def limit_size(img: np.ndarray, max_side: Optional[int]) -> np.ndarray:
    """Downscale so the longer side is at most `max_side`; smaller images pass through."""
    if not max_side:
        return img
    height, width = img.shape[:2]
    if max(height, width) <= max_side:
        return img
    log.debug("Downscaling %dx%d to a %d px long side", width, height, max_side)
    if width >= height:
        return imutils.resize(img, width=max_side, inter=cv2.INTER_AREA)
    return imutils.resize(img, height=max_side, inter=cv2.INTER_AREA)


def load_image(path: str | pathlib.Path) -> np.ndarray:
    """Decode an image file to BGR (alpha dropped, grayscale expanded)."""
    path = pathlib.Path(path)
    img = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if img is None:
        raise ImageDecodeError(f"OpenCV failed to read image: {path}")
    return img
