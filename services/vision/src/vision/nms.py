"""Greedy, class-aware non-maximum suppression."""
from __future__ import annotations

from agent_shared.events.schemas import Detection
from agent_shared.logging import get_logger

from vision.config import VisionConfig
from vision.decoder import Candidate
from vision.errors import ClassIndexOutOfRange
from vision.geometry import iou

log = get_logger(__name__)


class NonMaxSuppressor:
    """Removes duplicate candidates and labels the survivors.

    A candidate suppresses any weaker one of the same class whose IoU with it
    exceeds that class's NMS threshold, and any weaker one of any class whose
    IoU exceeds the cross-class ceiling.

    Args:
        config: Vision configuration (class catalog, cross-class ceiling).
    """

    def __init__(self, config: VisionConfig) -> None:
        self._catalog = config.catalog
        self._cross_class_ceiling = config.cross_class_iou_ceiling

    def suppress(self, candidates: list[Candidate]) -> list[Detection]:
        """Return the surviving detections, highest score first.

        Equal scores keep their decode order (the sort is stable).
        """
        ordered = sorted(candidates, key=lambda c: c.score, reverse=True)
        removed = [False] * len(ordered)
        detections: list[Detection] = []

        for i, current in enumerate(ordered):
            if removed[i]:
                continue
            try:
                label = self._catalog.label_for(current.class_id)
            except ClassIndexOutOfRange as exc:
                log.debug("nms_unknown_class_dropped", class_id=exc.class_id)
            else:
                detections.append(Detection(label=label, score=current.score, box=current.box))

            class_threshold = self._catalog.rule_for(current.class_id).nms_threshold
            for j in range(i + 1, len(ordered)):
                if removed[j]:
                    continue
                other = ordered[j]
                overlap = iou(current.box, other.box)
                if other.class_id == current.class_id and overlap > class_threshold:
                    removed[j] = True
                elif overlap > self._cross_class_ceiling:
                    removed[j] = True

        log.debug("nms_frame_suppressed", candidates=len(ordered), detections=len(detections))
        return detections
