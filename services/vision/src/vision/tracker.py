"""Frame-to-frame identity tracker with exponential box smoothing.

Each frame, every live track is tentatively aged by one miss and then tries
to claim the best-overlapping unclaimed detection with the same label.
Tracks are visited in ascending id order, so when two tracks want the same
detection the older one wins. A matched track's box moves 30% (by default)
of the way toward the detection; a track that misses more than the eviction
threshold in a row is dropped; unclaimed detections start new tracks.

Not thread-safe: callers must serialize ``update_tracks`` and read through
``snapshot()``.
"""
from __future__ import annotations

from dataclasses import dataclass, replace

from agent_shared.events.schemas import Box, Detection
from agent_shared.logging import get_logger

from vision.config import VisionConfig
from vision.geometry import iou, smooth_box

log = get_logger(__name__)


@dataclass
class TrackedObject:
    """A persistent identity for one physical object."""

    id: int
    box: Box
    label: str
    confidence: float
    missed_frames: int = 0


class TrackStore:
    """Owns all live tracks and the identity counter.

    Args:
        config: Vision configuration (match IoU, eviction count, smoothing).
    """

    def __init__(self, config: VisionConfig) -> None:
        self._match_iou = config.track_match_iou_threshold
        self._max_missed = config.track_eviction_miss_count
        self._alpha = config.box_smoothing_alpha
        self._tracks: dict[int, TrackedObject] = {}
        self._next_id = 0

    def __len__(self) -> int:
        return len(self._tracks)

    @property
    def next_id(self) -> int:
        return self._next_id

    def update_tracks(self, detections: list[Detection]) -> list[Detection]:
        """Advance every track by one frame and return the stabilized detections.

        Args:
            detections: This frame's post-NMS detections (may be empty).
        Returns:
            Detections for matched tracks (ascending track id, smoothed boxes)
            followed by this frame's unmatched detections, unchanged. Tracks
            that missed this frame produce nothing.
        """
        consumed = [False] * len(detections)
        stabilized: list[Detection] = []

        for track_id in sorted(self._tracks):
            track = self._tracks[track_id]
            track.missed_frames += 1

            best_iou = 0.0
            best_idx = -1
            for idx, det in enumerate(detections):
                if consumed[idx] or det.label != track.label:
                    continue
                overlap = iou(track.box, det.box)
                if overlap > self._match_iou and overlap > best_iou:
                    best_iou = overlap
                    best_idx = idx

            if best_idx < 0:
                continue

            det = detections[best_idx]
            consumed[best_idx] = True
            track.missed_frames = 0
            track.box = smooth_box(track.box, det.box, self._alpha)
            track.confidence = det.score
            stabilized.append(Detection(label=track.label, score=track.confidence, box=track.box))

        for track_id in [tid for tid, t in self._tracks.items() if t.missed_frames > self._max_missed]:
            evicted = self._tracks.pop(track_id)
            log.debug("track_evicted", track_id=track_id, label=evicted.label)

        for idx, det in enumerate(detections):
            if consumed[idx]:
                continue
            track = TrackedObject(
                id=self._next_id,
                box=det.box,
                label=det.label,
                confidence=det.score,
            )
            self._tracks[track.id] = track
            self._next_id += 1
            log.debug("track_created", track_id=track.id, label=track.label)
            stabilized.append(det)

        return stabilized

    def snapshot(self) -> list[TrackedObject]:
        """Independent copies of all live tracks, in ascending id order."""
        return [replace(self._tracks[tid]) for tid in sorted(self._tracks)]
