"""
object_counter/errors.py
------------------------
Exceptions raised by the counting pipeline.

Degenerate results (no objects found) are *not* errors; they come back as an
empty detection tuple with count 0.
"""


class CounterError(Exception):
    """Base class for every error raised by object_counter."""


class ImageDecodeError(CounterError, ValueError):
    """The input buffer, frame or file could not be turned into a BGR image."""
