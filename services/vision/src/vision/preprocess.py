"""Frame preprocessing for the detector: BGR frame → NCHW float blob."""
from __future__ import annotations

import cv2
import numpy as np

from vision.errors import EmptyFrameError


def preprocess_frame(frame: np.ndarray | None, input_width: int, input_height: int) -> np.ndarray:
    """Resize, convert to RGB, scale to [0, 1] and lay out as [1, 3, H, W].

    Args:
        frame: HxWx3 uint8 BGR image as delivered by OpenCV capture.
        input_width: Detector input width.
        input_height: Detector input height.
    Returns:
        float32 array of shape (1, 3, input_height, input_width).
    Raises:
        EmptyFrameError: ``frame`` is None or has no pixels.
    """
    if frame is None or frame.size == 0:
        raise EmptyFrameError("Empty frame provided to preprocess")

    resized = cv2.resize(frame, (input_width, input_height))
    rgb = cv2.cvtColor(resized, cv2.COLOR_BGR2RGB)
    blob = rgb.astype(np.float32) / 255.0
    return np.ascontiguousarray(blob.transpose(2, 0, 1)[np.newaxis, ...])
