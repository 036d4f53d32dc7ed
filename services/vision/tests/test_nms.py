"""Unit tests for class-aware non-maximum suppression."""
from __future__ import annotations

import itertools

import numpy as np
import pytest

from agent_shared.events.schemas import Box
from vision.decoder import Candidate, DetectionDecoder
from vision.geometry import iou
from vision.nms import NonMaxSuppressor

from conftest import CHAIR, CUP, PERSON, make_tensor


def _cand(x, y, w, h, score, class_id) -> Candidate:
    return Candidate(box=Box(x=x, y=y, width=w, height=h), score=score, class_id=class_id)


@pytest.fixture()
def nms(config) -> NonMaxSuppressor:
    return NonMaxSuppressor(config)


# ── Same-class suppression ────────────────────────────────────────────────────

def test_overlapping_persons_keep_higher_score(nms):
    low = _cand(25, 0, 100, 100, 0.7, PERSON)
    high = _cand(0, 0, 100, 100, 0.9, PERSON)
    assert iou(low.box, high.box) == pytest.approx(0.6)

    (det,) = nms.suppress([low, high])
    assert det.label == "person"
    assert det.score == 0.9
    assert det.box == high.box


def test_threshold_is_per_class(nms):
    # IoU 0.6 is above the person threshold (0.3) but below chair's (0.7)
    chairs = [_cand(0, 0, 100, 100, 0.9, CHAIR), _cand(25, 0, 100, 100, 0.8, CHAIR)]
    assert len(nms.suppress(chairs)) == 2


def test_default_threshold_for_class_without_override(nms):
    # cup uses the default 0.4; IoU 0.6 suppresses, IoU 1/3 does not
    cups = [
        _cand(0, 0, 100, 100, 0.9, CUP),
        _cand(25, 0, 100, 100, 0.8, CUP),
        _cand(200, 0, 100, 100, 0.7, CUP),
        _cand(250, 0, 100, 100, 0.6, CUP),
    ]
    kept = [d.box.x for d in nms.suppress(cups)]
    assert kept == [0, 200, 250]


def test_suppressed_candidate_does_not_suppress_others(nms):
    # b is removed by a; c only overlaps b, so it survives
    a = _cand(0, 0, 100, 100, 0.9, PERSON)
    b = _cand(40, 0, 100, 100, 0.8, PERSON)
    c = _cand(100, 0, 100, 100, 0.7, PERSON)
    kept = [d.box.x for d in nms.suppress([c, b, a])]
    assert kept == [0, 100]


# ── Cross-class suppression ───────────────────────────────────────────────────

def test_near_identical_boxes_suppressed_across_classes(nms):
    person = _cand(0, 0, 100, 100, 0.9, PERSON)
    cup = _cand(5, 0, 100, 100, 0.6, CUP)
    assert iou(person.box, cup.box) > 0.8
    (det,) = nms.suppress([cup, person])
    assert det.label == "person"


def test_moderate_overlap_across_classes_kept(nms):
    person = _cand(0, 0, 100, 100, 0.9, PERSON)
    cup = _cand(25, 0, 100, 100, 0.6, CUP)
    labels = [d.label for d in nms.suppress([person, cup])]
    assert labels == ["person", "cup"]


# ── Ordering ──────────────────────────────────────────────────────────────────

def test_output_sorted_by_score(nms):
    cands = [
        _cand(0, 0, 50, 50, 0.3, CUP),
        _cand(100, 0, 50, 50, 0.9, CUP),
        _cand(200, 0, 50, 50, 0.6, CUP),
    ]
    assert [d.score for d in nms.suppress(cands)] == [0.9, 0.6, 0.3]


def test_equal_scores_keep_decode_order(nms):
    cands = [
        _cand(0, 0, 100, 100, 0.8, PERSON),
        _cand(25, 0, 100, 100, 0.8, PERSON),
    ]
    (det,) = nms.suppress(cands)
    assert det.box.x == 0


def test_empty_input(nms):
    assert nms.suppress([]) == []


def test_unlabelled_class_not_emitted(nms):
    assert nms.suppress([_cand(0, 0, 100, 100, 0.9, 9)]) == []


# ── Properties ────────────────────────────────────────────────────────────────

def test_no_same_label_pair_above_its_threshold(config, nms):
    rng = np.random.default_rng(11)
    cands = []
    for _ in range(150):
        x, y = (int(v) for v in rng.integers(0, 500, size=2))
        w, h = (int(v) for v in rng.integers(20, 140, size=2))
        cands.append(_cand(x, y, w, h, float(rng.uniform(0.3, 1.0)), int(rng.integers(0, 3))))

    detections = nms.suppress(cands)
    catalog = config.catalog
    for a, b in itertools.combinations(detections, 2):
        overlap = iou(a.box, b.box)
        assert overlap <= config.cross_class_iou_ceiling
        if a.label == b.label:
            class_id = catalog.labels.index(a.label)
            assert overlap <= catalog.rule_for(class_id).nms_threshold


def test_decode_and_suppress_are_deterministic(config):
    raw = make_tensor([
        (320, 320, 100, 200, {PERSON: 0.9}),
        (330, 320, 100, 200, {PERSON: 0.8}),
        (100, 100, 40, 40, {CUP: 0.5}),
        (102, 100, 40, 40, {CUP: 0.5}),
        (500, 400, 120, 120, {CHAIR: 0.7}),
    ])
    runs = []
    for _ in range(2):
        cands = DetectionDecoder(config).decode(raw, 1280, 720)
        runs.append([d.model_dump_json() for d in NonMaxSuppressor(config).suppress(cands)])
    assert runs[0] == runs[1]
    assert len(runs[0]) == 3
