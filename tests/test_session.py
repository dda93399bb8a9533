from __future__ import annotations

import numpy as np

from object_counter import SensorFrame, StreamingSession


def test_frames_are_dropped_while_stopped(discs, grid) -> None:
    session = StreamingSession()

    assert not session.active
    assert session.submit(discs(grid[:3])) is None
    assert session.frames_processed == 0
    assert session.stabilizer.history == ()


def test_active_session_returns_stabilised_counts(discs, grid) -> None:
    session = StreamingSession()
    session.start()

    counts = [session.submit(discs(grid[:3])).count for _ in range(4)]
    # one dropped object for a single frame does not change the reported count
    for _ in range(3):
        session.submit(discs(grid[:3]))
    flicker = session.submit(discs(grid[:2]))

    assert counts == [3, 3, 3, 3]
    assert flicker.count == 3
    assert session.frames_processed == 8

    session.stop()
    assert not session.active
    assert session.submit(discs(grid[:3])) is None


def test_restart_clears_history(discs, grid) -> None:
    session = StreamingSession()
    session.start()
    for _ in range(6):
        session.submit(discs(grid[:4]))

    session.stop()
    session.start()

    assert session.stabilizer.history == ()
    assert session.frames_processed == 0
    assert session.submit(discs(grid[:2])).count == 2


def test_sensor_frames_are_accepted() -> None:
    luma = np.full((120, 160), 220, dtype=np.uint8)
    luma[40:80, 60:100] = 30
    payload = np.concatenate([luma.ravel(), np.full(160 * 120 // 2, 128, dtype=np.uint8)])

    session = StreamingSession()
    session.start()
    result = session.submit(SensorFrame(payload.tobytes(), 160, 120))

    assert result.count == 1
