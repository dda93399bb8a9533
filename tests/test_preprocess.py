from __future__ import annotations

import cv2
import numpy as np
import pytest

from object_counter.errors import ImageDecodeError
from object_counter.models import SensorFrame
from object_counter.preprocess import (
    decode_sensor_frame,
    limit_size,
    load_image,
    normalize_buffer,
    rotate_upright,
)


def _nv21(rotation=0, width=40, height=20):
    """Dark luma frame with a bright 4x4 block in the top-left corner, neutral chroma."""
    y_plane = np.full((height, width), 16, dtype=np.uint8)
    y_plane[:4, :4] = 235
    vu = np.full(width * height // 2, 128, dtype=np.uint8)
    return SensorFrame(np.concatenate([y_plane.ravel(), vu]).tobytes(), width, height, rotation)


def test_rgb_and_rgba_are_converted_to_bgr() -> None:
    rgb = np.zeros((4, 5, 3), dtype=np.uint8)
    rgb[..., 0], rgb[..., 1], rgb[..., 2] = 10, 20, 30
    rgba = np.dstack([rgb, np.full((4, 5), 255, dtype=np.uint8)])

    assert tuple(normalize_buffer(rgb, "RGB")[0, 0]) == (30, 20, 10)
    bgr = normalize_buffer(rgba, "rgba")
    assert bgr.shape == (4, 5, 3)
    assert tuple(bgr[0, 0]) == (30, 20, 10)


def test_bgr_buffer_is_copied() -> None:
    src = np.zeros((4, 5, 3), dtype=np.uint8)
    out = normalize_buffer(src)
    out[0, 0] = 255

    assert src[0, 0, 0] == 0


@pytest.mark.parametrize(
    "pixels, order",
    [
        ([[1, 2, 3]], "BGR"),
        (np.zeros((0, 0, 3), dtype=np.uint8), "BGR"),
        (np.zeros((4, 5), dtype=np.uint8), "BGR"),
        (np.zeros((4, 5, 3), dtype=np.float32), "BGR"),
        (np.zeros((4, 5, 4), dtype=np.uint8), "BGR"),
        (np.zeros((4, 5, 3), dtype=np.uint8), "YUV"),
    ],
)
def test_malformed_buffers_fail_fast(pixels, order) -> None:
    with pytest.raises(ImageDecodeError):
        normalize_buffer(pixels, order)


def test_decode_error_is_a_value_error() -> None:
    assert issubclass(ImageDecodeError, ValueError)


@pytest.mark.parametrize(
    "rotation, shape, bright",
    [
        (0, (20, 40), (1, 1)),
        (90, (40, 20), (1, 18)),
        (180, (20, 40), (18, 38)),
        (270, (40, 20), (38, 1)),
    ],
)
def test_nv21_frames_are_decoded_upright(rotation, shape, bright) -> None:
    bgr = decode_sensor_frame(_nv21(rotation))

    assert bgr.shape == (*shape, 3)
    assert bgr.dtype == np.uint8
    assert bgr[bright].min() > 200
    assert bgr.mean() < 40


def test_nv21_accepts_numpy_payload() -> None:
    frame = _nv21()
    as_array = SensorFrame(np.frombuffer(frame.data, dtype=np.uint8), frame.width, frame.height)

    np.testing.assert_array_equal(decode_sensor_frame(as_array), decode_sensor_frame(frame))


def test_nv21_size_mismatch_and_odd_dimensions() -> None:
    frame = _nv21()
    with pytest.raises(ImageDecodeError):
        decode_sensor_frame(SensorFrame(frame.data[:-1], frame.width, frame.height))
    with pytest.raises(ImageDecodeError):
        decode_sensor_frame(SensorFrame(b"\x00" * 21, 3, 5))


def test_unsupported_rotation() -> None:
    with pytest.raises(ImageDecodeError):
        rotate_upright(np.zeros((4, 4, 3), dtype=np.uint8), 45)


def test_limit_size_keeps_aspect_ratio() -> None:
    landscape = np.zeros((400, 800, 3), dtype=np.uint8)
    portrait = np.zeros((800, 400, 3), dtype=np.uint8)
    small = np.zeros((50, 60, 3), dtype=np.uint8)

    assert limit_size(landscape, 200).shape == (100, 200, 3)
    assert limit_size(portrait, 200).shape == (200, 100, 3)
    assert limit_size(small, 200) is small
    assert limit_size(landscape, None) is landscape


def test_load_image_roundtrip_and_failure(tmp_path) -> None:
    img = np.zeros((30, 40, 3), dtype=np.uint8)
    img[5:10, 5:10] = (0, 0, 255)
    path = tmp_path / "sample.png"
    cv2.imwrite(str(path), img)

    np.testing.assert_array_equal(load_image(path), img)
    with pytest.raises(ImageDecodeError):
        load_image(tmp_path / "missing.png")
