from __future__ import annotations

import numpy as np

from object_counter.background import estimate_background
from object_counter.config import BackgroundPolicy, CounterConfig

ADAPTIVE = CounterConfig(background_policy="adaptive_color")


def _uniform(bgr, shape=(64, 80)):
    img = np.empty((*shape, 3), dtype=np.uint8)
    img[:] = bgr
    return img


def test_neutral_backdrop_is_flagged() -> None:
    desc = estimate_background(_uniform((128, 128, 128)), ADAPTIVE)

    assert desc.policy is BackgroundPolicy.ADAPTIVE_COLOR
    assert desc.hue == 5          # bin 0 of 18 over 0..180
    assert desc.saturation == 16  # bin 0 of 8 over 0..256
    assert desc.value == 144      # 128 falls into [128, 160)
    assert desc.neutral


def test_coloured_backdrop_uses_bin_centres() -> None:
    # pure green BGR(0,160,0) → HSV(60, 255, 160)
    desc = estimate_background(_uniform((0, 160, 0)), ADAPTIVE)

    assert desc.hue == 65
    assert desc.saturation == 240
    assert desc.value == 176
    assert not desc.neutral


def test_dominant_colour_ignores_minority_objects(discs) -> None:
    img = discs([(60, 60), (200, 160)], fg=(0, 0, 200), bg=(0, 160, 0))
    desc = estimate_background(img, ADAPTIVE)

    assert desc.hue == 65
    assert not desc.neutral


def test_global_threshold_splits_dark_and_light() -> None:
    img = _uniform((220, 220, 220))
    img[:, :40] = 30
    desc = estimate_background(img, CounterConfig())

    assert desc.policy is BackgroundPolicy.GLOBAL_THRESHOLD
    assert 30 <= desc.threshold < 220
