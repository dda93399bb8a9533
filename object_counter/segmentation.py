# object_counter/segmentation.py
"""
Marker generation and marker-controlled watershed.

Pipeline inside this module:
    mask ─► distance field ─► local maxima ─► seed labels ─┐
    mask ─► sure background ─► unknown band ───────────────┴─► marker map
    marker map + image (or distance field) ─► watershed ─► label map

Marker / label conventions:
    -1  watershed boundary (label map only)
     0  unknown, left for the watershed to resolve (marker map only)
     1  background
    ≥2  one object seed / region
"""

from __future__ import annotations

import logging
from typing import NamedTuple

import cv2
import numpy as np
from skimage.segmentation import watershed as _skimage_watershed

from .config import CounterConfig, Landscape
from .mask_utils import ellipse

log = logging.getLogger(__name__)

BOUNDARY = -1
UNKNOWN = 0
BACKGROUND = 1
FIRST_OBJECT = 2

DIST_MASK_SIZE = 5


class MarkerSet(NamedTuple):
    distance: np.ndarray  # uint8, 0..255
    seeds: np.ndarray     # uint8 {0,255}, coalesced peaks
    markers: np.ndarray   # int32 marker map
    seed_count: int


# --------------------------------------------------------------------------- #
# distance field & peaks
# --------------------------------------------------------------------------- #
def distance_field(mask: np.ndarray) -> np.ndarray:
    """
    Euclidean distance of every foreground pixel to the nearest background
    pixel, min-max normalised to 0..255. A zero-range field (empty or
    all-foreground mask) comes back as zeros.
    """
    if not mask.any() or mask.all():
        return np.zeros(mask.shape, dtype=np.uint8)

    dist = cv2.distanceTransform(mask, cv2.DIST_L2, DIST_MASK_SIZE)
    lo, hi = float(dist.min()), float(dist.max())
    if hi - lo <= 0.0:
        return np.zeros(mask.shape, dtype=np.uint8)
    return cv2.normalize(dist, None, 0, 255, cv2.NORM_MINMAX, dtype=cv2.CV_8U)


def find_peaks(field: np.ndarray, kernel: int, min_distance: int) -> np.ndarray:
    """
    Local maxima of `field`: pixels equal to the dilated field (no larger
    value within the elliptical kernel) and strictly above `min_distance`.
    """
    dilated = cv2.dilate(field, ellipse(kernel))
    peaks = (field == dilated) & (field > min_distance)
    return peaks.astype(np.uint8) * 255


def label_seeds(peaks: np.ndarray, merge_kernel: int) -> tuple[np.ndarray, np.ndarray, int]:
    """
    Coalesce neighbouring peaks and number the resulting blobs.

    Returns the dilated seed mask, the int32 label image (background 1,
    seeds from 2) and the number of seeds.
    """
    seeds = cv2.dilate(peaks, ellipse(merge_kernel))
    n_labels, labels = cv2.connectedComponents(seeds)
    return seeds, labels.astype(np.int32) + 1, n_labels - 1


def unknown_region(
    mask: np.ndarray, seeds: np.ndarray, kernel: int = 3, iterations: int = 3
) -> np.ndarray:
    """
    Boolean field of pixels the watershed must decide: inside the generously
    dilated foreground ("sure background" boundary) but not part of a seed.
    """
    sure_bg = cv2.dilate(mask, ellipse(kernel), iterations=iterations)
    return (sure_bg > 0) & (seeds == 0)


def generate_markers(mask: np.ndarray, cfg: CounterConfig) -> MarkerSet:
    """Build the marker map for `mask`: one seed label per likely object."""
    distance = distance_field(mask)
    peaks = find_peaks(distance, cfg.peak_kernel, cfg.min_peak_distance)
    seeds, markers, seed_count = label_seeds(peaks, cfg.peak_merge_kernel)

    unknown = unknown_region(mask, seeds, cfg.background_kernel, cfg.background_iterations)
    markers[unknown] = UNKNOWN

    log.debug("Marker generation: %d seeds, %d unknown px", seed_count, int(unknown.sum()))
    return MarkerSet(distance=distance, seeds=seeds, markers=markers, seed_count=seed_count)


# --------------------------------------------------------------------------- #
# watershed
# --------------------------------------------------------------------------- #
def watershed_labels(
    bgr: np.ndarray, marker_set: MarkerSet, landscape: Landscape = Landscape.INTENSITY
) -> np.ndarray:
    """
    Flood the unknown band from the seeds and return the label map.

    The INTENSITY landscape uses the colour image (OpenCV's Meyer flooding);
    the DISTANCE landscape floods the inverted distance field so that
    basins sit at object centres. The marker map of `marker_set` is left
    untouched.

    OpenCV marks the outermost row and column of the image as boundary
    (-1), so on the INTENSITY landscape an object touching the frame edge
    comes out one pixel short on that side.
    """
    labels = marker_set.markers.copy()

    if marker_set.seed_count == 0:
        # no object seed: everything resolves to background
        labels[labels == UNKNOWN] = BACKGROUND
        return labels

    if landscape is Landscape.DISTANCE:
        relief = -marker_set.distance.astype(np.float32)
        flooded = _skimage_watershed(relief, markers=labels, watershed_line=True)
        labels = flooded.astype(np.int32)
        labels[labels == UNKNOWN] = BOUNDARY
    else:
        cv2.watershed(np.ascontiguousarray(bgr), labels)

    log.debug("Watershed (%s) produced %d regions", landscape.value, marker_set.seed_count)
    return labels
