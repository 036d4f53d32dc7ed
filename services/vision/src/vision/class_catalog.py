"""Class catalog — labels plus per-class filter rules, loaded from YAML.

Every class shares one default ``ClassRule``; the YAML ``classes`` section
overrides individual fields for individual class ids.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Mapping

import yaml

from agent_shared.logging import get_logger

from vision.errors import ClassIndexOutOfRange

log = get_logger(__name__)

_RULE_FIELDS = ("confidence_threshold", "min_area_ratio", "max_area_ratio", "nms_threshold")


@dataclass(frozen=True)
class ClassRule:
    confidence_threshold: float = 0.25
    min_area_ratio: float = 0.0005  # box area / frame area
    max_area_ratio: float = 0.95
    nms_threshold: float = 0.4


@dataclass(frozen=True)
class ClassCatalog:
    """Ordered class labels and the rule table indexed by class id."""

    labels: tuple[str, ...]
    default_rule: ClassRule = field(default_factory=ClassRule)
    overrides: Mapping[int, ClassRule] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.labels:
            raise ValueError("Class catalog needs at least one label")
        for class_id, rule in self.overrides.items():
            if not 0 <= class_id < len(self.labels):
                raise ValueError(
                    f"Rule override for class {class_id} but only {len(self.labels)} labels"
                )
            _check_rule(rule, f"class {class_id}")
        _check_rule(self.default_rule, "default")

    def __len__(self) -> int:
        return len(self.labels)

    def rule_for(self, class_id: int) -> ClassRule:
        return self.overrides.get(class_id, self.default_rule)

    def label_for(self, class_id: int) -> str:
        if not 0 <= class_id < len(self.labels):
            raise ClassIndexOutOfRange(class_id, len(self.labels))
        return self.labels[class_id]


def _check_rule(rule: ClassRule, where: str) -> None:
    if not 0.0 <= rule.min_area_ratio < rule.max_area_ratio:
        raise ValueError(
            f"Invalid area window for {where}: "
            f"[{rule.min_area_ratio}, {rule.max_area_ratio}]"
        )
    for name in ("confidence_threshold", "nms_threshold"):
        value = getattr(rule, name)
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"{name} for {where} must be in [0, 1], got {value}")


def _parse_rule(entry: dict, base: ClassRule) -> ClassRule:
    unknown = set(entry) - set(_RULE_FIELDS)
    if unknown:
        raise ValueError(f"Unknown class rule fields: {sorted(unknown)}")
    return replace(base, **{k: float(v) for k, v in entry.items()})


def load_class_catalog(yaml_path: str | Path) -> ClassCatalog:
    """Load a class catalog file.

    Layout::

        labels: [person, bicycle, ...]
        default: {confidence_threshold: 0.25, ...}
        classes:
          0: {confidence_threshold: 0.5, nms_threshold: 0.3}

    Per-class entries may name any subset of the rule fields; missing fields
    come from ``default``.
    """
    path = Path(yaml_path)
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    labels = tuple(str(label) for label in data.get("labels", []))
    default_rule = _parse_rule(data.get("default") or {}, ClassRule())
    overrides = {
        int(class_id): _parse_rule(entry or {}, default_rule)
        for class_id, entry in (data.get("classes") or {}).items()
    }

    catalog = ClassCatalog(labels=labels, default_rule=default_rule, overrides=overrides)
    log.info(
        "class_catalog_loaded",
        path=str(path),
        classes=len(catalog),
        overrides=len(overrides),
    )
    return catalog
