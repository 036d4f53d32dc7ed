"""Vision pipeline configuration."""
from __future__ import annotations

from dataclasses import dataclass

from vision.class_catalog import ClassCatalog, load_class_catalog


@dataclass(frozen=True)
class VisionConfig:
    """Configuration shared by decoder, NMS and track store.

    Passed to each component at construction; nothing reads global state.
    """

    catalog: ClassCatalog

    # Detector model input (the coordinate space of the raw tensor)
    model_input_width: int = 640
    model_input_height: int = 640

    # Decoding
    global_min_confidence: float = 0.25
    min_box_side: int = 5  # boxes with a side <= this many pixels are dropped

    # Suppression
    cross_class_iou_ceiling: float = 0.8

    # Tracking
    track_match_iou_threshold: float = 0.3
    track_eviction_miss_count: int = 5
    box_smoothing_alpha: float = 0.3

    # Throughput logging interval (frames)
    log_interval: int = 100

    def __post_init__(self) -> None:
        if self.model_input_width <= 0 or self.model_input_height <= 0:
            raise ValueError("Model input dimensions must be positive")
        if not 0.0 < self.box_smoothing_alpha <= 1.0:
            raise ValueError(
                f"box_smoothing_alpha must be in (0, 1], got {self.box_smoothing_alpha}"
            )
        if self.track_eviction_miss_count < 0:
            raise ValueError("track_eviction_miss_count must be >= 0")
        if self.log_interval < 1:
            raise ValueError("log_interval must be >= 1")


def build_config(settings) -> VisionConfig:
    """Build VisionConfig from shared Settings."""
    return VisionConfig(
        catalog=load_class_catalog(settings.vision_class_catalog),
        model_input_width=settings.vision_model_input_width,
        model_input_height=settings.vision_model_input_height,
        global_min_confidence=settings.vision_global_min_confidence,
        cross_class_iou_ceiling=settings.vision_cross_class_iou,
        track_match_iou_threshold=settings.vision_track_match_iou,
        track_eviction_miss_count=settings.vision_track_max_missed,
        box_smoothing_alpha=settings.vision_box_smoothing_alpha,
        log_interval=settings.vision_log_interval,
    )
