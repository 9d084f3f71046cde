import json
import unittest
from unittest.mock import patch

from pss_map.errors import AuthorizationError, NotFoundError, StoreError, ValidationError
from pss_map.geometry import Offset
from pss_map.policy import Actor, Role
from pss_map.repository import AREAS_KEY, POINTS_KEY, ResourceRepository
from pss_map.resources import Area, Point, PointType
from pss_map.stores import MemoryStore

TRIANGLE = [Offset(0.1, 0.1), Offset(0.5, 0.1), Offset(0.3, 0.4)]
ADMIN = Actor("admin", Role.ADMIN)


def point(pid="p1", **kw):
    values = dict(id=pid, name=f"Point {pid}", type=PointType.EINGANG,
                  positions=[Offset(0.1, 0.2), Offset(0.3, 0.4), Offset(0.5, 0.6)])
    values.update(kw)
    return Point(**values)


def area(aid="a1", **kw):
    values = dict(id=aid, name=f"Area {aid}", positions=[list(TRIANGLE) for _ in range(3)])
    values.update(kw)
    return Area(**values)


class FailingStore(MemoryStore):
    def __init__(self, initial=None):
        super().__init__(initial)
        self.fail_writes = False

    def set_string(self, key, value):
        if self.fail_writes:
            raise StoreError("disk full")
        super().set_string(key, value)


class TestLoadAndSave(unittest.TestCase):
    def setUp(self):
        self.store = MemoryStore()
        self.repo = ResourceRepository(self.store, plan_count=3).load()

    def test_empty_store(self):
        self.assertEqual(len(self.repo.points), 0)
        self.assertEqual(len(self.repo.areas), 0)

    def test_upsert_then_fresh_load(self):
        p = point(assigned_users=["o1"], is_ready=True)
        a = area()
        self.repo.points.upsert(p)
        self.repo.areas.upsert(a)

        fresh = ResourceRepository(self.store, plan_count=3).load()
        self.assertEqual(list(fresh.points), [p])
        self.assertEqual(list(fresh.areas), [a])

    def test_upsert_replaces_by_id(self):
        self.repo.points.upsert(point())
        self.repo.points.upsert(point(name="Renamed"))
        self.assertEqual(len(self.repo.points), 1)
        self.assertEqual(self.repo.points.get("p1").name, "Renamed")
        stored = json.loads(self.store.get_string(POINTS_KEY))
        self.assertEqual([e["name"] for e in stored], ["Renamed"])

    def test_remove(self):
        self.repo.points.upsert(point())
        self.repo.areas.upsert(area())
        self.assertTrue(self.repo.points.remove("p1"))
        self.assertTrue(self.repo.areas.remove("a1"))
        self.assertIsNone(self.repo.points.get("p1"))
        self.assertIsNone(self.repo.areas.get("a1"))
        fresh = ResourceRepository(self.store).load()
        self.assertIsNone(fresh.points.get("p1"))
        self.assertIsNone(fresh.areas.get("a1"))

    def test_remove_unknown_id(self):
        self.assertFalse(self.repo.points.remove("nope"))

    def test_toggle_ready(self):
        self.repo.points.upsert(point())
        self.assertTrue(self.repo.points.toggle_ready("p1").is_ready)
        self.assertFalse(self.repo.points.toggle_ready("p1").is_ready)
        with self.assertRaises(NotFoundError):
            self.repo.areas.toggle_ready("missing")

    def test_incomplete_area_is_not_saved(self):
        draft = area(positions=[list(TRIANGLE), [], []])
        with self.assertRaises(ValidationError):
            self.repo.areas.upsert(draft)
        self.assertEqual(len(self.repo.areas), 0)
        self.assertIsNone(self.store.get_string(AREAS_KEY))

    def test_next_id_skips_taken_ids(self):
        with patch("pss_map.repository.new_resource_id", return_value="1700000000000"):
            self.repo.points.upsert(point("1700000000000"))
            self.repo.points.upsert(point("1700000000001"))
            self.assertEqual(self.repo.points.next_id(), "1700000000002")
            self.assertEqual(self.repo.areas.next_id(), "1700000000000")

    def test_wrong_record_type(self):
        with self.assertRaises(ValidationError):
            self.repo.points.upsert(area())


class TestLegacyData(unittest.TestCase):
    def test_single_position_is_padded_on_load(self):
        store = MemoryStore({POINTS_KEY: json.dumps([
            {"id": "old", "name": "Legacy", "type": "tor", "positions": [{"dx": 0.4, "dy": 0.5}]},
        ])})
        repo = ResourceRepository(store, plan_count=3).load()
        legacy = repo.points.get("old")
        self.assertEqual(len(legacy.positions), 3)
        self.assertEqual(legacy.positions[1], legacy.positions[0])
        self.assertEqual(legacy.positions[2], legacy.positions[0])

    def test_malformed_entries_are_skipped(self):
        store = MemoryStore({POINTS_KEY: json.dumps([
            {"id": "ok", "name": "Fine", "type": "block", "positions": []},
            {"name": "no id"},
            "garbage",
            {"id": "ok2", "name": "Also fine", "type": "unknown-type"},
        ])})
        with self.assertLogs("pss_map.repository", level="WARNING") as logs:
            repo = ResourceRepository(store).load()
        self.assertEqual([p.id for p in repo.points], ["ok", "ok2"])
        self.assertEqual(repo.points.get("ok2").type, PointType.EINFAHRT)
        self.assertEqual(len(logs.output), 2)

    def test_oversized_or_non_finite_coordinates_do_not_abort_load(self):
        huge = "9" * 400
        store = MemoryStore({
            POINTS_KEY: '[{"id": "ok", "name": "Fine", "type": "tor", "positions": [{"dx": 0.2, "dy": 0.3}]},'
                        ' {"id": "big", "name": "Huge", "type": "tor", "positions": [{"dx": %s, "dy": 0}]}]' % huge,
            AREAS_KEY: '[{"id": "a", "name": "Odd", "positions": [[{"dx": NaN, "dy": 0.1},'
                       ' {"dx": 0.1, "dy": Infinity}, {"dx": 0.2, "dy": 0.2}]]}]',
        })
        repo = ResourceRepository(store, plan_count=3).load()
        self.assertEqual([p.id for p in repo.points], ["ok", "big"])
        self.assertEqual(repo.points.get("big").positions, [])
        self.assertEqual(repo.areas.get("a").positions[0], [Offset(0.2, 0.2)])

    def test_invalid_json_starts_empty(self):
        store = MemoryStore({AREAS_KEY: "{not json"})
        repo = ResourceRepository(store).load()
        self.assertEqual(len(repo.areas), 0)

    def test_legacy_record_can_still_be_toggled(self):
        store = MemoryStore({AREAS_KEY: json.dumps([
            {"id": "a", "name": "Half done", "color": 1, "positions": [[{"dx": 0.1, "dy": 0.1}]]},
        ])})
        repo = ResourceRepository(store).load()
        self.assertTrue(repo.areas.toggle_ready("a").is_ready)


class TestStoreFailure(unittest.TestCase):
    def test_failed_write_keeps_previous_state(self):
        store = FailingStore()
        repo = ResourceRepository(store).load()
        repo.points.upsert(point())
        store.fail_writes = True
        with self.assertRaises(StoreError):
            repo.points.upsert(point("p2"))
        with self.assertRaises(StoreError):
            repo.points.toggle_ready("p1")
        self.assertEqual([p.id for p in repo.points], ["p1"])
        self.assertFalse(repo.points.get("p1").is_ready)

    def test_read_failure_is_reported(self):
        class BrokenStore(MemoryStore):
            def get_string(self, key):
                raise OSError("connection refused")

        with self.assertRaises(StoreError):
            ResourceRepository(BrokenStore()).load()


class TestAuthorization(unittest.TestCase):
    def setUp(self):
        self.repo = ResourceRepository(MemoryStore()).load()
        self.repo.points.upsert(point(assigned_users=["o1"]))
        self.repo.areas.upsert(area())

    def test_only_editors_mutate(self):
        lead = Actor("lead", Role.BEREICHSLEITER)
        with self.assertRaises(AuthorizationError):
            self.repo.points.upsert(point("p9"), actor=lead)
        with self.assertRaises(AuthorizationError):
            self.repo.areas.remove("a1", actor=Actor("o1", Role.ORDNER))
        self.repo.points.upsert(point("p9"), actor=Actor("boss", Role.EINSATZLEITER))

    def test_ordner_toggles_only_assigned(self):
        ordner = Actor("o1", Role.ORDNER)
        self.assertTrue(self.repo.points.toggle_ready("p1", actor=ordner).is_ready)
        with self.assertRaises(AuthorizationError):
            self.repo.areas.toggle_ready("a1", actor=ordner)
        with self.assertRaises(AuthorizationError):
            self.repo.points.toggle_ready("p1", actor=Actor("lead", Role.BEREICHSLEITER))


class TestAssignments(unittest.TestCase):
    def setUp(self):
        self.store = MemoryStore()
        self.repo = ResourceRepository(self.store).load()
        for pid in ("p1", "p2", "p3"):
            self.repo.points.upsert(point(pid))
        self.repo.areas.upsert(area("a1", assigned_users=["o1", "o2"]))
        self.repo.areas.upsert(area("a2"))

    def test_assign_exact_set(self):
        self.repo.assign("o1", ["p1", "p3"], ["a2"], actor=ADMIN)
        points, areas = self.repo.resources_for("o1")
        self.assertEqual([p.id for p in points], ["p1", "p3"])
        self.assertEqual([a.id for a in areas], ["a2"])
        # Other users keep their assignments
        self.assertEqual(self.repo.areas.get("a1").assigned_users, ["o2"])

        fresh = ResourceRepository(self.store).load()
        self.assertEqual([p.id for p in fresh.points.assigned_to("o1")], ["p1", "p3"])

    def test_unknown_id_changes_nothing(self):
        with self.assertRaises(NotFoundError):
            self.repo.assign("o1", ["p1", "nope"], [])
        self.assertEqual(self.repo.points.assigned_to("o1"), [])

    def test_ids_must_be_strings(self):
        with self.assertRaises(ValidationError):
            self.repo.assign("o1", [1], [], actor=ADMIN)
        self.assertEqual(self.repo.points.assigned_to("o1"), [])

    def test_areas_write_failure_restores_points(self):
        store = FailingStore()
        repo = ResourceRepository(store).load()
        repo.points.upsert(point())
        repo.areas.upsert(area())

        original = MemoryStore.set_string

        def flaky(key, value):
            if key == AREAS_KEY:
                raise StoreError("timeout")
            original(store, key, value)

        store.set_string = flaky
        with self.assertRaises(StoreError):
            repo.assign("o1", ["p1"], ["a1"])
        self.assertEqual(repo.points.get("p1").assigned_users, [])
        self.assertEqual(json.loads(store.values[POINTS_KEY])[0]["assignedUsers"], [])


if __name__ == '__main__':
    unittest.main()
