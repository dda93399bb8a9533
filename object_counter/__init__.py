# object_counter/__init__.py
"""
Model-free object counting: background modelling, morphology, distance-peak
markers and watershed separation of touching objects, built on OpenCV.
"""

from . import config
from .config import BackgroundPolicy, CounterConfig, Landscape, ReconcilePolicy, get_preset
from .counter import ObjectCounter, PipelineTrace, process_image
from .errors import CounterError, ImageDecodeError
from .models import BoundingBox, CountResult, Detection, SensorFrame
from .session import StreamingSession
from .stabilizer import CountStabilizer

__all__ = [
    "config",
    "BackgroundPolicy",
    "CounterConfig",
    "Landscape",
    "ReconcilePolicy",
    "get_preset",
    "ObjectCounter",
    "PipelineTrace",
    "process_image",
    "CounterError",
    "ImageDecodeError",
    "BoundingBox",
    "CountResult",
    "Detection",
    "SensorFrame",
    "StreamingSession",
    "CountStabilizer",
]

import logging
log = logging.getLogger(__name__)
log.debug("OpenCV object counting package loaded")
