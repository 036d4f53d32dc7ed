"""Vision pipeline: frame → preprocess → infer → decode → NMS → track.

One pipeline per video source. Every call runs to completion on the calling
thread; a frame either yields a full result or is skipped:

1. Empty frame: detection is skipped, tracks still age with no detections.
2. Malformed detector output: the frame is logged and skipped, tracks are
   left exactly as they were.
"""
from __future__ import annotations

import time
from typing import Protocol

import numpy as np

from agent_shared.events.schemas import Detection, FrameDetections
from agent_shared.logging import bind_frame, configure_logging, get_logger, unbind_frame

from vision.config import VisionConfig, build_config
from vision.decoder import DetectionDecoder
from vision.errors import EmptyFrameError, InputShapeError
from vision.nms import NonMaxSuppressor
from vision.preprocess import preprocess_frame
from vision.tracker import TrackedObject, TrackStore

log = get_logger(__name__)


class InferenceEngine(Protocol):
    """Anything that maps a [1, 3, H, W] blob to a [1, 4+C, P] score tensor."""

    def infer(self, blob: np.ndarray) -> np.ndarray: ...


class VisionPipeline:
    """Runs decode, suppression and tracking for a single video source.

    Args:
        config: Vision configuration shared by all stages.
        engine: Detector used by ``process_frame``. Not needed when raw
            tensors are fed directly through ``process_tensor``.
    """

    def __init__(self, config: VisionConfig, engine: InferenceEngine | None = None) -> None:
        self._cfg = config
        self._engine = engine
        self._decoder = DetectionDecoder(config)
        self._nms = NonMaxSuppressor(config)
        self._tracks = TrackStore(config)
        self._frame_seq = 0
        self._frame_count = 0
        self._t_start = time.monotonic()

    def process_tensor(
        self,
        raw: np.ndarray,
        frame_width: int,
        frame_height: int,
    ) -> list[Detection]:
        """Decode, suppress and track one raw detector output.

        Zero frame dimensions skip detection but still age the tracks.

        Raises:
            InputShapeError: before any track state is touched.
        """
        try:
            candidates = self._decoder.decode(raw, frame_width, frame_height)
        except EmptyFrameError as exc:
            log.warning("pipeline_empty_frame", error=str(exc))
            return self._tracks.update_tracks([])
        detections = self._nms.suppress(candidates)
        return self._tracks.update_tracks(detections)

    def process_frame(
        self,
        frame: np.ndarray | None,
        timestamp_ns: int | None = None,
    ) -> FrameDetections | None:
        """Run the full pipeline on one BGR frame.

        Returns:
            The stabilized detections for the frame, or None when the frame
            had to be skipped (malformed detector output).
        """
        if self._engine is None:
            raise RuntimeError("process_frame needs an inference engine")

        seq = self._frame_seq
        self._frame_seq += 1
        if timestamp_ns is None:
            timestamp_ns = time.monotonic_ns()

        bind_frame(seq)
        try:
            try:
                blob = preprocess_frame(
                    frame, self._cfg.model_input_width, self._cfg.model_input_height
                )
            except EmptyFrameError as exc:
                log.warning("pipeline_empty_frame", error=str(exc))
                stabilized = self._tracks.update_tracks([])
                self._log_throughput(0)
                return FrameDetections(
                    frame_seq=seq, timestamp_ns=timestamp_ns, width=0, height=0,
                    detections=stabilized,
                )

            h, w = frame.shape[:2]
            raw = self._engine.infer(blob)
            try:
                stabilized = self.process_tensor(raw, w, h)
            except InputShapeError as exc:
                log.error("pipeline_frame_error", error=str(exc), shape=list(exc.shape))
                return None

            self._log_throughput(len(stabilized))
            return FrameDetections(
                frame_seq=seq, timestamp_ns=timestamp_ns, width=w, height=h,
                detections=stabilized,
            )
        finally:
            unbind_frame()

    def tracks(self) -> list[TrackedObject]:
        """Copy of the live tracks, safe to hand to another reader."""
        return self._tracks.snapshot()

    @property
    def frames_processed(self) -> int:
        return self._frame_count

    def _log_throughput(self, objects: int) -> None:
        self._frame_count += 1
        if self._frame_count % self._cfg.log_interval == 0:
            elapsed = time.monotonic() - self._t_start
            fps = self._frame_count / elapsed if elapsed > 0 else 0
            log.info(
                "pipeline_throughput",
                frames=self._frame_count,
                fps=round(fps, 1),
                objects_this_frame=objects,
                live_tracks=len(self._tracks),
            )


def build_pipeline(settings, engine: InferenceEngine | None = None) -> VisionPipeline:
    """Configure logging and build a pipeline from shared Settings."""
    configure_logging(settings.log_format, settings.log_level)
    config = build_config(settings)
    log.info(
        "vision_pipeline_starting",
        classes=len(config.catalog),
        model_input=[config.model_input_width, config.model_input_height],
        eviction_misses=config.track_eviction_miss_count,
    )
    return VisionPipeline(config, engine)
