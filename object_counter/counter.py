"""
object_counter/counter.py
=========================

Coordinator for a *single* image or frame:

    background model → foreground mask → morphology → markers
        → watershed → boxes → size reconciliation

Every stage returns a fresh array, so `ObjectCounter.trace` can hand all
intermediates back for inspection. Any stage failure propagates: there are
no partial results.
"""

from __future__ import annotations

import logging
import pathlib
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from .background import estimate_background
from .config import CounterConfig
from .mask_utils import build_foreground_mask, refine_mask
from .models import BackgroundDescriptor, BoundingBox, CountResult, Detection, SensorFrame
from .preprocess import decode_sensor_frame, limit_size, load_image, normalize_buffer
from .reconcile import reconcile
from .regions import extract_boxes, to_detections
from .segmentation import MarkerSet, generate_markers, watershed_labels

log = logging.getLogger(__name__)


@dataclass
class PipelineTrace:
    """Every intermediate of one pipeline run, in stage order."""

    image: np.ndarray
    descriptor: BackgroundDescriptor
    mask: np.ndarray
    refined: np.ndarray
    markers: MarkerSet
    labels: np.ndarray
    boxes: List[BoundingBox]
    raw_detections: Tuple[Detection, ...]
    detections: Tuple[Detection, ...]

    @property
    def count(self) -> int:
        return len(self.detections)

    def result(self) -> CountResult:
        return CountResult(self.detections, self.count)


class ObjectCounter:
    """
    Stateless pipeline bound to one configuration. Safe to reuse across
    images; run one image at a time per instance.
    """

    def __init__(self, cfg: Optional[CounterConfig] = None):
        self.cfg = cfg or CounterConfig()

    def trace(self, bgr: np.ndarray) -> PipelineTrace:
        """Run every stage on an already normalised BGR image."""
        cfg = self.cfg

        descriptor = estimate_background(bgr, cfg)
        mask = build_foreground_mask(bgr, descriptor, cfg)
        refined = refine_mask(mask, cfg)
        if not refined.any():
            log.debug("Empty foreground after refinement")

        marker_set = generate_markers(refined, cfg)
        labels = watershed_labels(bgr, marker_set, cfg.landscape)

        boxes = extract_boxes(labels, cfg.min_area)
        raw = to_detections(boxes, bgr.shape)
        detections = reconcile(raw, cfg)

        log.debug(
            "Pipeline: %d seeds → %d boxes → %d detections (%s)",
            marker_set.seed_count,
            len(boxes),
            len(detections),
            cfg.reconcile_policy.value,
        )
        return PipelineTrace(
            image=bgr,
            descriptor=descriptor,
            mask=mask,
            refined=refined,
            markers=marker_set,
            labels=labels,
            boxes=boxes,
            raw_detections=raw,
            detections=detections,
        )

    def prepare(self, pixels: np.ndarray, channel_order: str = "BGR") -> np.ndarray:
        """Normalise a decoded buffer and apply the gallery size limit."""
        return limit_size(normalize_buffer(pixels, channel_order), self.cfg.max_side)

    def count(self, pixels: np.ndarray, channel_order: str = "BGR") -> CountResult:
        """Count objects in a decoded image buffer (photo mode, raw count)."""
        return self.trace(self.prepare(pixels, channel_order)).result()

    def count_frame(self, frame: SensorFrame) -> CountResult:
        """Count objects in a raw NV21 camera frame."""
        return self.trace(decode_sensor_frame(frame)).result()

    def count_file(self, path: str | pathlib.Path) -> CountResult:
        return self.count(load_image(path))


def process_image(image_path: str | pathlib.Path, cfg: Optional[CounterConfig] = None) -> CountResult:
    """
    Full pipeline for one image file.

    Raises:
        ImageDecodeError: the file could not be read as an image.
    """
    path = pathlib.Path(image_path)
    log.info("Processing image: %s", path.name)
    result = ObjectCounter(cfg).count_file(path)
    log.info("Detected %d objects in %s", result.count, path.name)
    return result
