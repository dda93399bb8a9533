"""
object_counter/reconcile.py
---------------------------
Post-watershed size reconciliation.

Two opposite failure modes, two policies – exactly one runs per pipeline:

* MODE_SPLIT    – watershed under-segmented a clump of touching objects.
                  Boxes far above the typical (modal) area are counted as
                  several objects, boxes far below it are dropped as noise.
* OVERLAP_MERGE – watershed over-segmented one object into several labels.
                  Heavily overlapping boxes are fused into their union.
"""

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

import numpy as np

from .config import MERGE_IOU, MODE_BINS, MODE_TOLERANCE, CounterConfig, ReconcilePolicy
from .models import Detection

log = logging.getLogger(__name__)


# --------------------------------------------------------------------------- #
# 1. mode-based splitting
# --------------------------------------------------------------------------- #
def modal_area(areas: Sequence[float], bins: int = MODE_BINS) -> float:
    """Centre of the most populated bin of an area histogram over [min, max]."""
    values = np.asarray(areas, dtype=np.float64)
    lo, hi = float(values.min()), float(values.max())
    if hi <= lo:
        return lo
    counts, edges = np.histogram(values, bins=bins, range=(lo, hi))
    peak = int(np.argmax(counts))
    return float((edges[peak] + edges[peak + 1]) / 2.0)


def split_by_mode(
    detections: Sequence[Detection],
    bins: int = MODE_BINS,
    tolerance: float = MODE_TOLERANCE,
) -> Tuple[Detection, ...]:
    """
    Keep detections near the modal area, repeat oversized ones
    floor(area / mode) times (at least twice) and drop undersized ones.

    The repeats share one box: the clump is counted, not subdivided.
    """
    if not detections:
        return ()

    areas = [d.area for d in detections]
    mode = modal_area(areas, bins)
    if mode <= 0.0:
        return tuple(detections)

    out: List[Detection] = []
    split = dropped = 0
    for det, area in zip(detections, areas):
        ratio = area / mode
        if ratio > 1.0 + tolerance:
            multiplicity = max(2, int(area // mode))
            out.extend([det] * multiplicity)
            split += 1
        elif ratio < 1.0 - tolerance:
            dropped += 1
        else:
            out.append(det)

    log.debug(
        "Mode split: mode=%.5f, %d clumps expanded, %d fragments dropped → %d detections",
        mode,
        split,
        dropped,
        len(out),
    )
    return tuple(out)


# --------------------------------------------------------------------------- #
# 2. overlap merging
# --------------------------------------------------------------------------- #
def _merge_pass(detections: List[Detection], iou_threshold: float) -> List[Detection]:
    merged: List[Detection] = []
    used = [False] * len(detections)
    for i, det in enumerate(detections):
        if used[i]:
            continue
        current = det
        used[i] = True
        for j in range(i + 1, len(detections)):
            if not used[j] and current.iou(detections[j]) > iou_threshold:
                current = current.union(detections[j])
                used[j] = True
        merged.append(current)
    return merged


def merge_overlapping(
    detections: Sequence[Detection], iou_threshold: float = MERGE_IOU
) -> Tuple[Detection, ...]:
    """
    Fuse detections whose IoU exceeds `iou_threshold` into their union box,
    repeating until no pair overlaps that much. A fused box keeps the slot of
    its earliest member.
    """
    current = list(detections)
    while len(current) > 1:
        merged = _merge_pass(current, iou_threshold)
        if len(merged) == len(current):
            break
        current = merged
    return tuple(current)


# --------------------------------------------------------------------------- #
# 3. dispatcher
# --------------------------------------------------------------------------- #
def reconcile(detections: Sequence[Detection], cfg: CounterConfig) -> Tuple[Detection, ...]:
    if cfg.reconcile_policy is ReconcilePolicy.MODE_SPLIT:
        return split_by_mode(detections, cfg.mode_bins, cfg.mode_tolerance)
    if cfg.reconcile_policy is ReconcilePolicy.OVERLAP_MERGE:
        out = merge_overlapping(detections, cfg.merge_iou)
        if len(out) != len(detections):
            log.debug("Overlap merge: %d → %d detections", len(detections), len(out))
        return out
    return tuple(detections)
