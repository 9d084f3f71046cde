import json
import unittest

from pss_map.errors import ValidationError
from pss_map.geometry import Offset
from pss_map.resources import (
    DEFAULT_AREA_COLOR, Area, Point, PointType, new_resource_id,
)


def make_point(**overrides):
    values = dict(
        id="1700000000000", name="Gate 3", type=PointType.TOR,
        positions=[Offset(0.2, 0.3), Offset(0.25, 0.35), Offset(0.4, 0.1)],
        is_ready=True, assigned_users=["ordner1", "ordner2"],
    )
    values.update(overrides)
    return Point(**values)


def make_area(**overrides):
    triangle = [Offset(0.1, 0.1), Offset(0.5, 0.1), Offset(0.3, 0.4)]
    values = dict(
        id="a1", name="Block A", positions=[list(triangle), list(triangle), list(triangle)],
        color_value=0xFF4CAF50, is_ready=False, assigned_users=["ordner1"],
    )
    values.update(overrides)
    return Area(**values)


class TestPointSerialization(unittest.TestCase):
    def test_round_trip(self):
        point = make_point()
        self.assertEqual(Point.from_dict(json.loads(json.dumps(point.to_dict()))), point)

    def test_wire_shape(self):
        data = make_point().to_dict()
        self.assertEqual(set(data), {"id", "name", "type", "positions", "isReady", "assignedUsers"})
        self.assertEqual(data["type"], "tor")
        self.assertEqual(data["positions"][0], {"dx": 0.2, "dy": 0.3})

    def test_defaults_for_missing_fields(self):
        point = Point.from_dict({"id": "p", "name": "P", "type": "helipad"})
        self.assertEqual(point.type, PointType.EINFAHRT)
        self.assertEqual(point.positions, [])
        self.assertFalse(point.is_ready)
        self.assertEqual(point.assigned_users, [])

    def test_malformed_positions(self):
        point = Point.from_dict({"id": "p", "name": "P", "type": "block",
                                 "positions": [{"dx": 0.5}, "x", {"dx": 1, "dy": 0}]})
        self.assertEqual(point.positions, [Offset(1.0, 0.0)])
        point = Point.from_dict({"id": "p", "name": "P", "positions": "nope"})
        self.assertEqual(point.positions, [])

    def test_missing_id_is_rejected(self):
        with self.assertRaises(ValueError):
            Point.from_dict({"name": "no id"})

    def test_display_names(self):
        self.assertEqual(PointType.EINGANG.display_name, "Eingang")
        self.assertEqual(PointType.parse("ordner"), PointType.ORDNER)


class TestAreaSerialization(unittest.TestCase):
    def test_round_trip(self):
        area = make_area()
        self.assertEqual(Area.from_dict(json.loads(json.dumps(area.to_dict()))), area)

    def test_wire_shape(self):
        data = make_area().to_dict()
        self.assertEqual(set(data), {"id", "name", "positions", "color", "assignedUsers", "isReady"})
        self.assertEqual(len(data["positions"]), 3)
        self.assertEqual(data["positions"][0][1], {"dx": 0.5, "dy": 0.1})

    def test_tolerates_missing_fields(self):
        area = Area.from_dict({"id": "a", "name": "A", "positions": [None, [{"dx": 0.1, "dy": 0.2}]]})
        self.assertEqual(area.positions, [[], [Offset(0.1, 0.2)]])
        self.assertEqual(area.color_value, DEFAULT_AREA_COLOR)
        self.assertFalse(area.is_ready)
        self.assertEqual(area.assigned_users, [])


class TestCopyWith(unittest.TestCase):
    def test_point_copy_is_equal_but_not_aliased(self):
        point = make_point()
        copy = point.copy_with()
        self.assertEqual(copy, point)
        self.assertIsNot(copy.positions, point.positions)
        self.assertIsNot(copy.assigned_users, point.assigned_users)
        copy.assigned_users.append("someone")
        self.assertNotIn("someone", point.assigned_users)

    def test_area_copy_copies_inner_lists(self):
        area = make_area()
        copy = area.copy_with()
        self.assertEqual(copy, area)
        self.assertIsNot(copy.positions[0], area.positions[0])
        copy.positions[0].append(Offset(0.9, 0.9))
        self.assertEqual(len(area.positions[0]), 3)

    def test_override(self):
        point = make_point()
        toggled = point.copy_with(is_ready=False)
        self.assertFalse(toggled.is_ready)
        self.assertTrue(point.is_ready)
        self.assertEqual(toggled.name, point.name)


class TestPaddingAndValidation(unittest.TestCase):
    def test_point_pads_last_known_position(self):
        point = make_point(positions=[Offset(0.4, 0.6)]).padded(3)
        self.assertEqual(len(point.positions), 3)
        self.assertEqual(point.positions[1], point.positions[0])
        self.assertEqual(point.positions[2], point.positions[0])

    def test_point_pads_from_last_entry(self):
        point = make_point(positions=[Offset(0.1, 0.1), Offset(0.2, 0.2)]).padded(3)
        self.assertEqual(point.positions[2], Offset(0.2, 0.2))

    def test_point_without_positions_stays_empty(self):
        self.assertEqual(make_point(positions=[]).padded(3).positions, [])

    def test_area_pads_with_incomplete_plans(self):
        area = make_area(positions=[[Offset(0.1, 0.1)]]).padded(3)
        self.assertEqual(area.positions, [[Offset(0.1, 0.1)], [], []])

    def test_area_missing_vertices_fails_validation(self):
        area = Area.from_dict({
            "id": "a1", "name": "North stand",
            "positions": [[{"dx": .1, "dy": .1}, {"dx": .5, "dy": .1}, {"dx": .3, "dy": .4}], [], []],
            "color": 0xFFF44336,
        })
        with self.assertRaises(ValidationError) as ctx:
            area.validate(3)
        self.assertIn("plan 2", ctx.exception.reason)

    def test_complete_area_validates(self):
        make_area().validate(3)

    def test_point_needs_every_plan(self):
        with self.assertRaises(ValidationError):
            make_point(positions=[Offset(0.1, 0.1)]).validate(3)
        make_point().validate(3)

    def test_point_outside_plan(self):
        with self.assertRaises(ValidationError):
            make_point(positions=[Offset(1.2, 0.1)] * 3).validate(3)

    def test_empty_name(self):
        with self.assertRaises(ValidationError):
            make_point(name="  ").validate(3)


class TestRenderLookup(unittest.TestCase):
    def test_point_position_for_falls_back_to_first(self):
        point = make_point(positions=[Offset(0.3, 0.3)])
        self.assertEqual(point.position_for(2), Offset(0.3, 0.3))
        self.assertIsNone(make_point(positions=[]).position_for(0))

    def test_area_vertices_for_falls_back_to_first(self):
        triangle = [Offset(0.1, 0.1), Offset(0.5, 0.1), Offset(0.3, 0.4)]
        area = make_area(positions=[triangle, [], []])
        self.assertEqual(area.vertices_for(1), triangle)
        self.assertTrue(area.is_drawable(0))
        self.assertFalse(area.is_drawable(1))

    def test_new_ids_are_timestamps(self):
        self.assertTrue(new_resource_id().isdigit())


if __name__ == '__main__':
    unittest.main()
