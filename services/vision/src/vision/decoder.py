"""Detection decoder — raw YOLO-style output tensor to per-frame Candidates.

The detector emits ``[1, 4+C, P]``: for each of P predictions, rows 0-3 hold
center x, center y, width and height in model-input pixels and rows 4.. hold
one score per class. The decoder keeps predictions whose best class clears
both the global confidence floor and that class's own threshold, maps the
box into frame pixels and drops boxes of implausible size for their class.
"""
from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from agent_shared.events.schemas import Box
from agent_shared.logging import get_logger

from vision.config import VisionConfig
from vision.errors import ClassIndexOutOfRange, EmptyFrameError, InputShapeError
from vision.geometry import clip_box

log = get_logger(__name__)

# x, y, w, h rows ahead of the class scores
_BOX_ROWS = 4


@dataclass
class Candidate:
    """A pre-suppression hypothesis, valid for one frame only."""

    box: Box
    score: float
    class_id: int


def check_output_shape(shape: tuple[int, ...]) -> None:
    """Raise InputShapeError unless ``shape`` is ``[1, 4+C, P]`` with C >= 1."""
    if len(shape) != 3:
        raise InputShapeError(shape, f"expected rank 3, got rank {len(shape)}")
    if shape[0] != 1:
        raise InputShapeError(shape, f"expected batch size 1, got {shape[0]}")
    if shape[1] <= _BOX_ROWS:
        raise InputShapeError(
            shape, f"expected at least {_BOX_ROWS + 1} rows (box + one class), got {shape[1]}"
        )


class DetectionDecoder:
    """Turns one raw detector tensor into Candidates in frame pixel space.

    Stateless between calls; identical input always yields identical output.

    Args:
        config: Vision configuration (model input size, floors, class catalog).
    """

    def __init__(self, config: VisionConfig) -> None:
        self._cfg = config
        self._catalog = config.catalog
        self._threshold_cache: dict[int, np.ndarray] = {}

    def decode(
        self,
        raw: np.ndarray,
        frame_width: int,
        frame_height: int,
    ) -> list[Candidate]:
        """Decode one frame's detector output.

        Args:
            raw: Detector output of shape [1, 4+C, P].
            frame_width: Width of the frame the boxes are mapped onto.
            frame_height: Height of that frame.
        Returns:
            Candidates in prediction (column) order.
        Raises:
            InputShapeError: ``raw`` does not have the [1, 4+C, P] layout.
            EmptyFrameError: the frame has no pixels.
        """
        output = np.asarray(raw)
        check_output_shape(output.shape)
        if frame_width <= 0 or frame_height <= 0:
            raise EmptyFrameError(f"Frame has no pixels: {frame_width}x{frame_height}")

        preds = output[0]
        num_classes = preds.shape[0] - _BOX_ROWS
        num_preds = preds.shape[1]
        if num_preds == 0:
            log.debug("decoder_frame_decoded", predictions=0, candidates=0)
            return []

        scores = preds[_BOX_ROWS:]
        class_ids = scores.argmax(axis=0)  # first index wins ties
        max_scores = scores[class_ids, np.arange(num_preds)]
        passed = (max_scores > self._cfg.global_min_confidence) & (
            max_scores > self._class_thresholds(num_classes)[class_ids]
        )

        scale_x = frame_width / self._cfg.model_input_width
        scale_y = frame_height / self._cfg.model_input_height
        frame_area = float(frame_width * frame_height)

        candidates: list[Candidate] = []
        unknown_class = 0
        for col in np.flatnonzero(passed):
            class_id = int(class_ids[col])
            try:
                self._catalog.label_for(class_id)
            except ClassIndexOutOfRange:
                unknown_class += 1
                continue

            cx = float(preds[0, col]) * scale_x
            cy = float(preds[1, col]) * scale_y
            w = float(preds[2, col]) * scale_x
            h = float(preds[3, col]) * scale_y
            box = clip_box(cx - w / 2.0, cy - h / 2.0, w, h, frame_width, frame_height)

            if box.width <= self._cfg.min_box_side or box.height <= self._cfg.min_box_side:
                continue

            rule = self._catalog.rule_for(class_id)
            area_ratio = box.area / frame_area
            if not rule.min_area_ratio < area_ratio < rule.max_area_ratio:
                continue

            candidates.append(
                Candidate(box=box, score=float(max_scores[col]), class_id=class_id)
            )

        if unknown_class:
            log.debug(
                "decoder_unknown_class_dropped",
                dropped=unknown_class,
                num_labels=len(self._catalog),
                num_classes=num_classes,
            )
        log.debug(
            "decoder_frame_decoded",
            predictions=num_preds,
            above_threshold=int(passed.sum()),
            candidates=len(candidates),
        )
        return candidates

    def _class_thresholds(self, num_classes: int) -> np.ndarray:
        """Per-class confidence thresholds indexed by class id."""
        thresholds = self._threshold_cache.get(num_classes)
        if thresholds is None:
            thresholds = np.array(
                [self._catalog.rule_for(c).confidence_threshold for c in range(num_classes)],
                dtype=np.float64,
            )
            self._threshold_cache[num_classes] = thresholds
        return thresholds
