"""Unit tests for frame preprocessing."""
from __future__ import annotations

import numpy as np
import pytest

from vision.errors import EmptyFrameError
from vision.preprocess import preprocess_frame


def test_blob_layout_and_range():
    frame = np.full((480, 640, 3), 255, dtype=np.uint8)
    blob = preprocess_frame(frame, 640, 640)
    assert blob.shape == (1, 3, 640, 640)
    assert blob.dtype == np.float32
    assert blob.max() == pytest.approx(1.0)
    assert blob.flags["C_CONTIGUOUS"]


def test_channels_swapped_to_rgb():
    frame = np.zeros((64, 64, 3), dtype=np.uint8)
    frame[..., 0] = 255  # blue in BGR
    blob = preprocess_frame(frame, 32, 32)
    assert np.all(blob[0, 2] == 1.0)
    assert np.all(blob[0, 0] == 0.0)


def test_non_square_input_size():
    blob = preprocess_frame(np.zeros((100, 50, 3), dtype=np.uint8), 320, 256)
    assert blob.shape == (1, 3, 256, 320)


@pytest.mark.parametrize("frame", [None, np.zeros((0, 0, 3), dtype=np.uint8)])
def test_empty_frame_raises(frame):
    with pytest.raises(EmptyFrameError):
        preprocess_frame(frame, 640, 640)
