"""Shared fixtures and tensor builders for vision tests."""
from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from vision.class_catalog import ClassCatalog, ClassRule
from vision.config import VisionConfig

COCO_YAML = Path(__file__).parent.parent / "data" / "coco.yaml"

# Small three-class catalog: person / cup / chair
PERSON, CUP, CHAIR = 0, 1, 2


def make_catalog() -> ClassCatalog:
    return ClassCatalog(
        labels=("person", "cup", "chair"),
        default_rule=ClassRule(),
        overrides={
            PERSON: ClassRule(
                confidence_threshold=0.5,
                min_area_ratio=0.01,
                max_area_ratio=0.8,
                nms_threshold=0.3,
            ),
            CHAIR: ClassRule(
                confidence_threshold=0.2,
                min_area_ratio=0.005,
                max_area_ratio=0.9,
                nms_threshold=0.7,
            ),
        },
    )


def make_tensor(columns: list[tuple], num_classes: int = 3) -> np.ndarray:
    """Build a [1, 4+C, P] tensor.

    Each column is ``(cx, cy, w, h, {class_id: score})`` in model pixels.
    """
    raw = np.zeros((1, 4 + num_classes, len(columns)), dtype=np.float32)
    for p, (cx, cy, w, h, scores) in enumerate(columns):
        raw[0, 0:4, p] = (cx, cy, w, h)
        for class_id, score in scores.items():
            raw[0, 4 + class_id, p] = score
    return raw


@pytest.fixture()
def catalog() -> ClassCatalog:
    return make_catalog()


@pytest.fixture()
def config(catalog) -> VisionConfig:
    return VisionConfig(catalog=catalog)
