"""Integer pixel-box geometry shared by the decoder, NMS and tracker."""
from __future__ import annotations

import math
from fractions import Fraction

from agent_shared.events.schemas import Box

_ALPHA_DENOMINATOR = 1_000_000


def intersection_area(a: Box, b: Box) -> int:
    x1 = max(a.x, b.x)
    y1 = max(a.y, b.y)
    x2 = min(a.x + a.width, b.x + b.width)
    y2 = min(a.y + a.height, b.y + b.height)
    if x2 <= x1 or y2 <= y1:
        return 0
    return (x2 - x1) * (y2 - y1)


def iou(a: Box, b: Box) -> float:
    """Intersection-over-union of two boxes, in [0, 1]."""
    inter = intersection_area(a, b)
    union = a.area + b.area - inter
    return inter / union if union > 0 else 0.0


def clip_box(
    left: float,
    top: float,
    width: float,
    height: float,
    frame_width: int,
    frame_height: int,
) -> Box:
    """Truncate a float rectangle to integers and clamp it into the frame.

    The origin is clamped to >= 0 and the size to what remains of the frame
    from there; a box starting beyond the frame edge ends up with a
    non-positive size, which callers reject.
    """
    x = max(0, math.trunc(left))
    y = max(0, math.trunc(top))
    w = min(math.trunc(width), frame_width - x)
    h = min(math.trunc(height), frame_height - y)
    return Box(x=x, y=y, width=w, height=h)


def smooth_box(old: Box, new: Box, alpha: float) -> Box:
    """Exponential moving average of two boxes, truncated toward zero.

    Each field becomes ``(1 - alpha) * old + alpha * new``, computed exactly
    so that blending a box with itself returns it unchanged.
    """
    weight = Fraction(alpha).limit_denominator(_ALPHA_DENOMINATOR)
    keep = 1 - weight

    def blend(a: int, b: int) -> int:
        return math.trunc(keep * a + weight * b)

    return Box(
        x=blend(old.x, new.x),
        y=blend(old.y, new.y),
        width=blend(old.width, new.width),
        height=blend(old.height, new.height),
    )
