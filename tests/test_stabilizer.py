from __future__ import annotations

import pytest

from object_counter.models import Detection
from object_counter.stabilizer import CountStabilizer


def _dets(n):
    return tuple(Detection(x=0.1 * i, y=0.1, width=0.05, height=0.05) for i in range(n))


def test_tie_goes_to_first_seen_count() -> None:
    stab = CountStabilizer()
    for raw in [3, 3, 3, 3, 3, 7, 7, 7, 7, 7]:
        result = stab.update(raw, _dets(raw))

    assert stab.full
    assert stab.history == (3, 3, 3, 3, 3, 7, 7, 7, 7, 7)
    assert result.count == 3


def test_raw_count_passes_through_until_enough_samples() -> None:
    stab = CountStabilizer()
    assert stab.update(4).count == 4
    assert stab.update(6).count == 6
    assert stab.update(6).count == 6
    assert stab.update(4).count == 4
    # fifth sample switches to the majority vote: three 6s against two 4s
    assert stab.update(6).count == 6


def test_single_outlier_does_not_flicker() -> None:
    stab = CountStabilizer()
    for _ in range(5):
        stab.update(5, _dets(5))

    result = stab.update(6, _dets(6))

    assert result.count == 5
    assert len(result.detections) == 5


def test_detections_only_replaced_on_change_or_full_history() -> None:
    stab = CountStabilizer(capacity=4, min_samples=2)
    first, second = _dets(2), tuple(reversed(_dets(2)))

    assert stab.update(2, first).detections == first
    assert stab.update(2, second).detections == first   # same count, history not full
    stab.update(2, first)
    assert stab.update(2, second).detections == second  # history full


def test_oldest_count_is_evicted() -> None:
    stab = CountStabilizer(capacity=10)
    for raw in range(12):
        stab.update(raw)

    assert stab.history == tuple(range(2, 12))


def test_reset_clears_state() -> None:
    stab = CountStabilizer()
    for _ in range(6):
        stab.update(9, _dets(9))

    stab.reset()

    assert stab.history == ()
    assert stab.count == 0
    assert stab.detections == ()


def test_rejects_bad_window() -> None:
    with pytest.raises(ValueError):
        CountStabilizer(capacity=0)
    with pytest.raises(ValueError):
        CountStabilizer(capacity=5, min_samples=6)
