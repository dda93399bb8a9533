"""
object_counter/session.py
-------------------------
Live-counting session: raw frames in, stabilised counts out.

The session owns the only cross-frame state of the package (the count
history). Drive it from one worker thread; if several producers exist,
serialise them before `submit`.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

import numpy as np

from .config import CounterConfig
from .counter import ObjectCounter
from .models import CountResult, SensorFrame
from .stabilizer import CountStabilizer

log = logging.getLogger(__name__)


class StreamingSession:
    def __init__(self, cfg: Optional[CounterConfig] = None):
        self.counter = ObjectCounter(cfg)
        cfg = self.counter.cfg
        self.stabilizer = CountStabilizer(cfg.stabilization_window, cfg.stabilization_min_samples)
        self._active = False
        self.frames_processed = 0

    @property
    def active(self) -> bool:
        return self._active

    def start(self) -> None:
        """Begin (or restart) live detection with an empty count history."""
        self.stabilizer.reset()
        self.frames_processed = 0
        self._active = True
        log.info("Streaming session started")

    def stop(self) -> None:
        if self._active:
            log.info("Streaming session stopped after %d frames", self.frames_processed)
        self._active = False

    def submit(
        self, frame: Union[SensorFrame, np.ndarray], channel_order: str = "BGR"
    ) -> Optional[CountResult]:
        """
        Process one frame and return the stabilised result.

        Frames arriving while the session is stopped are dropped (None).
        Decoding or pipeline errors propagate; the history is left as it was,
        so the caller can log and simply wait for the next frame.
        """
        if not self._active:
            return None

        if isinstance(frame, SensorFrame):
            raw = self.counter.count_frame(frame)
        else:
            raw = self.counter.count(frame, channel_order)

        self.frames_processed += 1
        return self.stabilizer.update(raw.count, raw.detections)
