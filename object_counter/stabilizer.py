"""
object_counter/stabilizer.py
----------------------------
Majority-vote smoothing of per-frame counts for live streams.

Not thread-safe: one stabilizer belongs to one streaming session and must be
fed from a single worker.
"""

from __future__ import annotations

import collections
import logging
from typing import Deque, Sequence, Tuple

from .config import STABILIZATION_MIN, STABILIZATION_WINDOW
from .models import CountResult, Detection

log = logging.getLogger(__name__)


class CountStabilizer:
    """
    Keeps the last `capacity` raw counts. Once `min_samples` are present the
    reported count is the most frequent one (ties go to the value seen first
    in the history). The reported result only changes when the count changes
    or the history is full, so one noisy frame cannot make the display flicker.
    """

    def __init__(self, capacity: int = STABILIZATION_WINDOW, min_samples: int = STABILIZATION_MIN):
        if capacity < 1 or not 1 <= min_samples <= capacity:
            raise ValueError(f"invalid window: capacity={capacity}, min_samples={min_samples}")
        self.capacity = capacity
        self.min_samples = min_samples
        self._history: Deque[int] = collections.deque(maxlen=capacity)
        self._count = 0
        self._detections: Tuple[Detection, ...] = ()

    @property
    def history(self) -> Tuple[int, ...]:
        return tuple(self._history)

    @property
    def count(self) -> int:
        return self._count

    @property
    def detections(self) -> Tuple[Detection, ...]:
        return self._detections

    @property
    def full(self) -> bool:
        return len(self._history) == self.capacity

    def majority(self) -> int:
        """Most frequent count in the history; first-seen value wins a tie."""
        # Counter preserves insertion order and most_common sorts stably
        return collections.Counter(self._history).most_common(1)[0][0]

    def update(self, raw_count: int, detections: Sequence[Detection] = ()) -> CountResult:
        self._history.append(int(raw_count))

        stable = self.majority() if len(self._history) >= self.min_samples else int(raw_count)
        if stable != self._count or self.full:
            if stable != self._count:
                log.debug("Stabilized count %d → %d (raw %d)", self._count, stable, raw_count)
            self._count = stable
            self._detections = tuple(detections)

        return CountResult(self._detections, self._count)

    def reset(self) -> None:
        self._history.clear()
        self._count = 0
        self._detections = ()
