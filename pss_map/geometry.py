"""
Letterbox transform between a viewport and a stadium plan image.

Stored coordinates are normalized to [0,1] relative to the plan's intrinsic
size. The same Letterbox is used to place markers and to interpret taps, so
both directions always agree.
"""
from typing import NamedTuple, Optional, Sequence

import numpy as np


MARKER_RADIUS = 12.0


class Offset(NamedTuple):
    dx: float
    dy: float


class Letterbox(NamedTuple):
    scale: float
    offset_x: float
    offset_y: float


def scale_to_fit(source_w, source_h, viewport_w, viewport_h):
    """Shrink (never enlarge) the source to fit the viewport and center it."""
    if source_w <= 0 or source_h <= 0:
        raise ValueError(f"invalid source size {source_w}x{source_h}")
    if viewport_w < 0 or viewport_h < 0:
        raise ValueError(f"invalid viewport size {viewport_w}x{viewport_h}")
    scale = min(viewport_w / source_w, viewport_h / source_h, 1.0)
    offset_x = (viewport_w - source_w * scale) / 2
    offset_y = (viewport_h - source_h * scale) / 2
    return Letterbox(scale, offset_x, offset_y)


def screen_to_normalized(px, py, box: Letterbox, source_w, source_h) -> Optional[Offset]:
    """Returns None for taps outside the letterboxed image; they are never clamped."""
    image_w = source_w * box.scale
    image_h = source_h * box.scale
    if image_w <= 0 or image_h <= 0:
        return None
    if not (box.offset_x <= px <= box.offset_x + image_w):
        return None
    if not (box.offset_y <= py <= box.offset_y + image_h):
        return None
    return Offset((px - box.offset_x) / image_w, (py - box.offset_y) / image_h)


def normalized_to_screen(nx, ny, box: Letterbox, source_w, source_h):
    return (box.offset_x + nx * source_w * box.scale,
            box.offset_y + ny * source_h * box.scale)


def polygon_centroid(vertices: Sequence[Offset]) -> Offset:
    """
    Arithmetic mean of the vertices. Used for label and marker placement only,
    not an area-weighted centroid.
    """
    if not vertices:
        raise ValueError("cannot place a marker for a polygon without vertices")
    mean = np.asarray(vertices, dtype=float).mean(axis=0)
    return Offset(float(mean[0]), float(mean[1]))


def in_marker(px, py, cx, cy, radius=MARKER_RADIUS):
    # Square hitbox, same as the rendered marker widget
    return abs(px - cx) <= radius and abs(py - cy) <= radius


def is_normalized(pos: Offset):
    return 0.0 <= pos.dx <= 1.0 and 0.0 <= pos.dy <= 1.0
