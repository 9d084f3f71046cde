"""
Marker layout of one plan for one actor, and tap hit-testing on it.
"""
from dataclasses import dataclass
from typing import Optional

from .geometry import (
    MARKER_RADIUS, in_marker, normalized_to_screen, polygon_centroid, scale_to_fit,
)
from .policy import can_see, can_toggle


@dataclass(frozen=True)
class MarkerView:
    kind: str
    id: str
    name: str
    is_ready: bool
    x: float
    y: float
    can_toggle: bool
    color_value: Optional[int] = None

    def to_dict(self):
        data = {"kind": self.kind, "id": self.id, "name": self.name, "isReady": self.is_ready,
                "x": self.x, "y": self.y, "canToggle": self.can_toggle}
        if self.color_value is not None:
            data["color"] = self.color_value
        return data


def build_map_view(repository, plan, viewport_w, viewport_h, actor):
    """
    Returns (letterbox, markers) for the plan. Areas are drawn first so that
    point markers end up on top.
    """
    box = scale_to_fit(plan.width, plan.height, viewport_w, viewport_h)
    markers = []

    for area in repository.areas:
        if not can_see(actor.role, actor.username, area):
            continue
        vertices = area.vertices_for(plan.index)
        if not vertices:
            continue
        center = polygon_centroid(vertices)
        x, y = normalized_to_screen(center.dx, center.dy, box, plan.width, plan.height)
        markers.append(MarkerView("area", area.id, area.name, area.is_ready, x, y,
                                  can_toggle(actor.role, actor.username, area), area.color_value))

    for point in repository.points:
        if not can_see(actor.role, actor.username, point):
            continue
        pos = point.position_for(plan.index)
        if pos is None:
            continue
        x, y = normalized_to_screen(pos.dx, pos.dy, box, plan.width, plan.height)
        markers.append(MarkerView("point", point.id, point.name, point.is_ready, x, y,
                                  can_toggle(actor.role, actor.username, point)))

    return box, markers


def marker_at(markers, px, py, radius=MARKER_RADIUS):
    """Topmost marker whose hitbox contains the tap, or None."""
    for marker in reversed(markers):
        if in_marker(px, py, marker.x, marker.y, radius):
            return marker
    return None
