"""Errors raised by the vision pipeline components."""
from __future__ import annotations


class VisionError(Exception):
    """Base class for frame-level vision errors."""


class InputShapeError(VisionError):
    """Raw detector tensor does not have the ``[1, 4+C, P]`` layout.

    Fatal for the frame: nothing is decoded and tracks are not aged.
    """

    def __init__(self, shape: tuple[int, ...], reason: str) -> None:
        self.shape = tuple(shape)
        super().__init__(f"Unexpected detector output shape {self.shape}: {reason}")


class EmptyFrameError(VisionError):
    """No frame, or a frame with zero pixels, was supplied."""


class ClassIndexOutOfRange(VisionError):
    """A class index has no entry in the label table."""

    def __init__(self, class_id: int, num_labels: int) -> None:
        self.class_id = class_id
        self.num_labels = num_labels
        super().__init__(f"Class index {class_id} outside label table of size {num_labels}")
