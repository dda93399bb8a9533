from __future__ import annotations

from dataclasses import FrozenInstanceError, replace

import pytest

from object_counter import config
from object_counter.config import (
    PRESET_NAMES,
    BackgroundPolicy,
    CounterConfig,
    Landscape,
    ReconcilePolicy,
    get_preset,
)


def test_defaults_follow_module_constants() -> None:
    cfg = CounterConfig()

    assert cfg.background_policy is BackgroundPolicy.GLOBAL_THRESHOLD
    assert cfg.reconcile_policy is ReconcilePolicy.OVERLAP_MERGE
    assert cfg.landscape is Landscape.INTENSITY
    assert cfg.min_area == config.MIN_AREA == 500
    assert cfg.stabilization_window == 10
    assert cfg.stabilization_min_samples == 5
    assert cfg.max_side is None


def test_string_policies_are_coerced() -> None:
    cfg = CounterConfig(background_policy="adaptive_color", reconcile_policy="mode_split", landscape="distance")

    assert cfg.background_policy is BackgroundPolicy.ADAPTIVE_COLOR
    assert cfg.reconcile_policy is ReconcilePolicy.MODE_SPLIT
    assert cfg.landscape is Landscape.DISTANCE


def test_config_is_immutable() -> None:
    cfg = CounterConfig()
    with pytest.raises(FrozenInstanceError):
        cfg.min_area = 10
    assert replace(cfg, min_area=10).min_area == 10


@pytest.mark.parametrize(
    "overrides",
    [
        {"background_policy": "sky"},
        {"close_kernel": 0},
        {"gray_blur_ksize": 6},
        {"min_peak_distance": 255},
        {"min_area": -1},
        {"mode_tolerance": 1.0},
        {"merge_iou": 1.5},
        {"stabilization_window": 4, "stabilization_min_samples": 5},
        {"max_side": 0},
    ],
)
def test_invalid_values_are_rejected(overrides) -> None:
    with pytest.raises(ValueError):
        CounterConfig(**overrides)


def test_presets() -> None:
    assert set(PRESET_NAMES) == {"default", "fine", "coarse"}
    assert get_preset("default") == CounterConfig()

    fine = get_preset("fine")
    assert fine.peak_kernel < CounterConfig().peak_kernel
    assert fine.min_area == 100

    tweaked = get_preset("coarse", min_area=50, reconcile_policy="mode_split")
    assert tweaked.min_area == 50
    assert tweaked.reconcile_policy is ReconcilePolicy.MODE_SPLIT


def test_unknown_preset() -> None:
    with pytest.raises(ValueError, match="unknown preset"):
        get_preset("huge")
