"""
Point and Area records shown on the stadium plans.

Both are immutable; use copy_with() to derive a modified record. Positions
hold one entry per plan, in plan order.
"""
import math
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional

from .errors import ValidationError
from .geometry import Offset, is_normalized

MIN_AREA_VERTICES = 3

# Packed ARGB values offered by the area editor
AREA_COLORS = {
    "red": 0xFFF44336,
    "green": 0xFF4CAF50,
    "blue": 0xFF2196F3,
    "orange": 0xFFFF9800,
    "purple": 0xFF9C27B0,
    "teal": 0xFF009688,
}
DEFAULT_AREA_COLOR = AREA_COLORS["red"]


class PointType(str, Enum):
    EINFAHRT = "einfahrt"  # vehicle entry
    EINGANG = "eingang"  # pedestrian entry
    TOR = "tor"
    BLOCK = "block"
    ORDNER = "ordner"  # steward post

    @property
    def display_name(self):
        return self.value.capitalize()

    @classmethod
    def parse(cls, value):
        try:
            return cls(value)
        except ValueError:
            return cls.EINFAHRT


DEFAULT_POINT_TYPE = PointType.EINFAHRT


def new_resource_id():
    """Creation timestamp in milliseconds, as the editors assign it."""
    return str(int(time.time() * 1000))


def _offset_to_json(pos):
    return {"dx": pos.dx, "dy": pos.dy}


def _offset_from_json(raw):
    if not isinstance(raw, dict):
        return None
    dx, dy = raw.get("dx"), raw.get("dy")
    if isinstance(dx, bool) or isinstance(dy, bool):
        return None
    if not isinstance(dx, (int, float)) or not isinstance(dy, (int, float)):
        return None
    try:
        dx, dy = float(dx), float(dy)
    except OverflowError:
        return None
    if not (math.isfinite(dx) and math.isfinite(dy)):
        return None
    return Offset(dx, dy)


def _users_from_json(raw):
    users = []
    if isinstance(raw, list):
        for name in raw:
            if isinstance(name, str) and name not in users:
                users.append(name)
    return users


def _required_str(data, key):
    value = data.get(key)
    if not isinstance(value, str):
        raise ValueError(f"missing or invalid '{key}'")
    return value


def _check_name(name):
    if not name or not name.strip():
        raise ValidationError("name must not be empty")


@dataclass(frozen=True)
class Point:
    id: str
    name: str
    type: PointType = DEFAULT_POINT_TYPE
    positions: List[Offset] = field(default_factory=list)
    is_ready: bool = False
    assigned_users: List[str] = field(default_factory=list)

    def copy_with(self, **changes):
        changes.setdefault("positions", list(self.positions))
        changes.setdefault("assigned_users", list(self.assigned_users))
        return replace(self, **changes)

    def position_for(self, plan_index) -> Optional[Offset]:
        if plan_index < len(self.positions):
            return self.positions[plan_index]
        return self.positions[0] if self.positions else None

    def padded(self, plan_count):
        """Fill missing plans with the last known coordinate."""
        if not self.positions or len(self.positions) >= plan_count:
            return self
        positions = list(self.positions)
        positions.extend([positions[-1]] * (plan_count - len(positions)))
        return self.copy_with(positions=positions)

    def validate(self, plan_count):
        _check_name(self.name)
        if len(self.positions) != plan_count:
            raise ValidationError(
                f"point needs a position on each of the {plan_count} plans, got {len(self.positions)}")
        for index, pos in enumerate(self.positions, start=1):
            if not is_normalized(pos):
                raise ValidationError(f"position on plan {index} is outside the plan")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "positions": [_offset_to_json(p) for p in self.positions],
            "isReady": self.is_ready,
            "assignedUsers": list(self.assigned_users),
        }

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValueError("point record is not an object")
        positions = []
        if isinstance(data.get("positions"), list):
            for raw in data["positions"]:
                pos = _offset_from_json(raw)
                if pos is not None:
                    positions.append(pos)
        is_ready = data.get("isReady")
        return cls(
            id=_required_str(data, "id"),
            name=_required_str(data, "name"),
            type=PointType.parse(data.get("type")),
            positions=positions,
            is_ready=is_ready if isinstance(is_ready, bool) else False,
            assigned_users=_users_from_json(data.get("assignedUsers")),
        )


@dataclass(frozen=True)
class Area:
    id: str
    name: str
    positions: List[List[Offset]] = field(default_factory=list)
    color_value: int = DEFAULT_AREA_COLOR
    is_ready: bool = False
    assigned_users: List[str] = field(default_factory=list)

    def copy_with(self, **changes):
        changes.setdefault("positions", [list(vertices) for vertices in self.positions])
        changes.setdefault("assigned_users", list(self.assigned_users))
        return replace(self, **changes)

    def vertices_for(self, plan_index) -> List[Offset]:
        # Falls back to the first plan so a marker can still be placed
        if plan_index < len(self.positions) and self.positions[plan_index]:
            return self.positions[plan_index]
        return self.positions[0] if self.positions else []

    def is_drawable(self, plan_index):
        return (plan_index < len(self.positions)
                and len(self.positions[plan_index]) >= MIN_AREA_VERTICES)

    def padded(self, plan_count):
        """Missing plans become empty (incomplete) vertex lists."""
        if len(self.positions) >= plan_count:
            return self
        positions = [list(vertices) for vertices in self.positions]
        positions.extend([] for _ in range(plan_count - len(positions)))
        return self.copy_with(positions=positions)

    def validate(self, plan_count):
        _check_name(self.name)
        if len(self.positions) != plan_count:
            raise ValidationError(
                f"area needs vertices on each of the {plan_count} plans, got {len(self.positions)}")
        for index, vertices in enumerate(self.positions, start=1):
            if len(vertices) < MIN_AREA_VERTICES:
                raise ValidationError(
                    f"plan {index} has {len(vertices)} vertices "
                    f"(at least {MIN_AREA_VERTICES} required)")
            if not all(is_normalized(v) for v in vertices):
                raise ValidationError(f"a vertex on plan {index} is outside the plan")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "positions": [[_offset_to_json(v) for v in vertices] for vertices in self.positions],
            "color": self.color_value,
            "assignedUsers": list(self.assigned_users),
            "isReady": self.is_ready,
        }

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValueError("area record is not an object")
        positions = []
        if isinstance(data.get("positions"), list):
            for raw_list in data["positions"]:
                vertices = []
                if isinstance(raw_list, list):
                    for raw in raw_list:
                        pos = _offset_from_json(raw)
                        if pos is not None:
                            vertices.append(pos)
                positions.append(vertices)
        color = data.get("color")
        is_ready = data.get("isReady")
        return cls(
            id=_required_str(data, "id"),
            name=_required_str(data, "name"),
            positions=positions,
            color_value=color if isinstance(color, int) and not isinstance(color, bool) else DEFAULT_AREA_COLOR,
            is_ready=is_ready if isinstance(is_ready, bool) else False,
            assigned_users=_users_from_json(data.get("assignedUsers")),
        )
