from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_CATALOG = (
    Path(__file__).resolve().parents[3] / "services" / "vision" / "data" / "coco.yaml"
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Detector model
    vision_class_catalog: str = Field(
        default=str(_DEFAULT_CATALOG),
        description="YAML file with class labels and per-class filter rules",
    )
    vision_model_input_width: int = Field(default=640)
    vision_model_input_height: int = Field(default=640)

    # Decoding / suppression
    vision_global_min_confidence: float = Field(default=0.25)
    vision_cross_class_iou: float = Field(
        default=0.8,
        description="IoU above which boxes of different classes are merged",
    )

    # Tracking
    vision_track_match_iou: float = Field(default=0.3)
    vision_track_max_missed: int = Field(
        default=5,
        description="Consecutive missed frames a track survives before eviction",
    )
    vision_box_smoothing_alpha: float = Field(default=0.3)

    # Throughput logging interval (frames)
    vision_log_interval: int = Field(default=100)

    # Logging
    log_format: str = Field(default="console")
    log_level: str = Field(default="INFO")
