"""
object_counter/config.py  –  central configuration & logging

Holds every tunable of the counting pipeline:

1.  Module-level constants are the defaults (one block per pipeline stage).
2.  `CounterConfig` bundles them into an immutable object handed to the
    pipeline at construction; `dataclasses.replace` derives variants.
3.  `get_preset` returns configurations tuned for small or large objects.
"""

from __future__ import annotations

import enum
import logging
import os
import pathlib as _pl
from dataclasses import dataclass, replace
from typing import Dict, Optional

# --------------------------------------------------------------------------- #
# I/O paths – artefacts default to <project>/outputs, created on demand by cli
# --------------------------------------------------------------------------- #
ROOT = _pl.Path(__file__).resolve().parents[1]
OUT_DIR = ROOT / "outputs"

IMAGE_SUFFIXES = (".jpg", ".jpeg", ".png", ".bmp", ".tif", ".tiff")
GROUND_TRUTH_FILENAME = "ground_truth.json"
SUMMARY_FILENAME_PREFIX = "summary_"


# --------------------------------------------------------------------------- #
# Strategy selection
# --------------------------------------------------------------------------- #
class BackgroundPolicy(str, enum.Enum):
    ADAPTIVE_COLOR = "adaptive_color"      # dominant HSV colour of the frame
    GLOBAL_THRESHOLD = "global_threshold"  # Otsu on grayscale, dark objects


class ReconcilePolicy(str, enum.Enum):
    MODE_SPLIT = "mode_split"          # under-segmentation: count merged blobs
    OVERLAP_MERGE = "overlap_merge"    # over-segmentation: fuse split objects
    NONE = "none"


class Landscape(str, enum.Enum):
    INTENSITY = "intensity"  # flood the colour image
    DISTANCE = "distance"    # flood the inverted distance field


# --------------------------------------------------------------------------- #
# Constants / tunables
# --------------------------------------------------------------------------- #

# ---- Background model ---------------------------------------------------- #
SAMPLE_STRIDE        : int = 4     # every 4th pixel in x and y
HUE_BINS             : int = 18    # over 0..180 (OpenCV hue range)
SAT_BINS             : int = 8     # over 0..256
VAL_BINS             : int = 8
NEUTRAL_SATURATION   : int = 50    # dominant saturation below ⇒ gray-ish backdrop
GRAY_BLUR_KSIZE      : int = 7     # pre-blur for the Otsu threshold (odd)

# ---- Foreground mask ----------------------------------------------------- #
SATURATION_FLOOR     : int = 40    # neutral backdrop: "has colour"
VALUE_FLOOR          : int = 30    #                   "is not black"
HUE_TOLERANCE        : int = 15    # coloured backdrop window half-widths
SATURATION_TOLERANCE : int = 50
VALUE_TOLERANCE      : int = 50

# ---- Morphology ---------------------------------------------------------- #
CLOSE_KERNEL         : int = 15    # fills creases inside an object
CLOSE_ITERATIONS     : int = 2
OPEN_KERNEL          : int = 5     # strips speckle and thin bridges
OPEN_ITERATIONS      : int = 2

# ---- Markers ------------------------------------------------------------- #
PEAK_KERNEL          : int = 25    # ~ expected minimum object diameter
MIN_PEAK_DISTANCE    : int = 50    # on the 0..255 normalised distance field
PEAK_MERGE_KERNEL    : int = 5
BACKGROUND_KERNEL    : int = 3
BACKGROUND_ITERATIONS: int = 3

# ---- Regions & reconciliation -------------------------------------------- #
MIN_AREA             : int   = 500   # px², bounding-box area
MODE_BINS            : int   = 10
MODE_TOLERANCE       : float = 0.30  # ±30 % of the modal area
MERGE_IOU            : float = 0.30

# ---- Streaming ----------------------------------------------------------- #
STABILIZATION_WINDOW : int = 10
STABILIZATION_MIN    : int = 5       # samples before the majority vote kicks in


# --------------------------------------------------------------------------- #
# Logging
# --------------------------------------------------------------------------- #
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )


# --------------------------------------------------------------------------- #
# Configuration object
# --------------------------------------------------------------------------- #
@dataclass(frozen=True)
class CounterConfig:
    """All knobs of one pipeline instance. Policies are fixed per instance."""

    background_policy: BackgroundPolicy = BackgroundPolicy.GLOBAL_THRESHOLD
    reconcile_policy: ReconcilePolicy = ReconcilePolicy.OVERLAP_MERGE
    landscape: Landscape = Landscape.INTENSITY

    sample_stride: int = SAMPLE_STRIDE
    neutral_saturation: int = NEUTRAL_SATURATION
    gray_blur_ksize: int = GRAY_BLUR_KSIZE

    saturation_floor: int = SATURATION_FLOOR
    value_floor: int = VALUE_FLOOR
    hue_tolerance: int = HUE_TOLERANCE
    saturation_tolerance: int = SATURATION_TOLERANCE
    value_tolerance: int = VALUE_TOLERANCE

    close_kernel: int = CLOSE_KERNEL
    close_iterations: int = CLOSE_ITERATIONS
    open_kernel: int = OPEN_KERNEL
    open_iterations: int = OPEN_ITERATIONS

    peak_kernel: int = PEAK_KERNEL
    min_peak_distance: int = MIN_PEAK_DISTANCE
    peak_merge_kernel: int = PEAK_MERGE_KERNEL
    background_kernel: int = BACKGROUND_KERNEL
    background_iterations: int = BACKGROUND_ITERATIONS

    min_area: int = MIN_AREA
    mode_bins: int = MODE_BINS
    mode_tolerance: float = MODE_TOLERANCE
    merge_iou: float = MERGE_IOU

    stabilization_window: int = STABILIZATION_WINDOW
    stabilization_min_samples: int = STABILIZATION_MIN

    max_side: Optional[int] = None  # downscale gallery images above this

    def __post_init__(self) -> None:
        # accept plain strings, e.g. straight from argparse
        object.__setattr__(self, "background_policy", BackgroundPolicy(self.background_policy))
        object.__setattr__(self, "reconcile_policy", ReconcilePolicy(self.reconcile_policy))
        object.__setattr__(self, "landscape", Landscape(self.landscape))

        for name in (
            "sample_stride",
            "close_kernel",
            "close_iterations",
            "open_kernel",
            "open_iterations",
            "peak_kernel",
            "peak_merge_kernel",
            "background_kernel",
            "background_iterations",
            "mode_bins",
            "stabilization_window",
            "stabilization_min_samples",
        ):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1, got {getattr(self, name)}")

        if self.gray_blur_ksize and self.gray_blur_ksize % 2 == 0:
            raise ValueError(f"gray_blur_ksize must be odd or 0, got {self.gray_blur_ksize}")
        if not 0 <= self.min_peak_distance < 255:
            raise ValueError(f"min_peak_distance must be in [0, 255), got {self.min_peak_distance}")
        if self.min_area < 0:
            raise ValueError(f"min_area must be >= 0, got {self.min_area}")
        if not 0.0 < self.mode_tolerance < 1.0:
            raise ValueError(f"mode_tolerance must be in (0, 1), got {self.mode_tolerance}")
        if not 0.0 <= self.merge_iou < 1.0:
            raise ValueError(f"merge_iou must be in [0, 1), got {self.merge_iou}")
        if self.stabilization_min_samples > self.stabilization_window:
            raise ValueError("stabilization_min_samples cannot exceed stabilization_window")
        if self.max_side is not None and self.max_side < 1:
            raise ValueError(f"max_side must be >= 1, got {self.max_side}")


# --------------------------------------------------------------------------- #
# Presets
# --------------------------------------------------------------------------- #
_PRESETS: Dict[str, Dict[str, object]] = {
    "default": {},
    # small beads, seeds, pills: finer elements, more sensitive peaks
    "fine": {
        "close_kernel": 9,
        "close_iterations": 1,
        "open_kernel": 3,
        "open_iterations": 1,
        "peak_kernel": 15,
        "min_peak_distance": 20,
        "peak_merge_kernel": 3,
        "min_area": 100,
    },
    # large objects with internal texture (coins, chickpeas, cookies)
    "coarse": {
        "close_kernel": 15,
        "close_iterations": 2,
        "open_kernel": 5,
        "open_iterations": 3,
        "peak_kernel": 25,
        "min_peak_distance": 50,
        "min_area": 800,
    },
}

PRESET_NAMES = tuple(_PRESETS)


def get_preset(name: str, **overrides) -> CounterConfig:
    """
    Return the named configuration, optionally with individual fields
    overridden (``get_preset("fine", min_area=50)``).
    """
    try:
        values = _PRESETS[name]
    except KeyError:
        raise ValueError(f"unknown preset {name!r}; expected one of {PRESET_NAMES}") from None
    return replace(CounterConfig(**values), **overrides)
