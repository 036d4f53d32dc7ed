"""Pydantic v2 schemas for what the vision pipeline hands to its consumers.

A renderer draws ``FrameDetections.detections`` on the frame it was computed
from; a language-model consumer can take ``model_dump_json()`` as scene
context.
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class Box(_FrozenModel):
    """Integer pixel rectangle, top-left origin."""

    x: int
    y: int
    width: int
    height: int

    @property
    def area(self) -> int:
        return self.width * self.height


class Detection(_FrozenModel):
    """One labeled box in one frame."""

    label: str
    score: float = Field(description="Detector confidence [0,1]")
    box: Box


class FrameDetections(_FrozenModel):
    """Stabilized detections for one processed frame, in survival order."""

    frame_seq: int = Field(description="Monotonically increasing frame counter")
    timestamp_ns: int = Field(description="Monotonic nanosecond timestamp")
    width: int
    height: int
    detections: list[Detection] = Field(default_factory=list)
