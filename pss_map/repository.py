"""
In-memory authoritative collections of points and areas.

Every mutation rewrites the whole collection to the Resource Store. The
in-memory list is only replaced after the write succeeded, so a failed
write leaves the previous state in place. There is no merge and no version
check: across processes the last save wins.
"""
import json
import logging

from .errors import NotFoundError, StoreError, ValidationError
from .policy import require_edit, require_toggle
from .resources import Area, Point, new_resource_id

logger = logging.getLogger(__name__)

POINTS_KEY = "points_all"
AREAS_KEY = "areas_all"


class ResourceCollection:
    def __init__(self, store, key, record_cls, plan_count):
        self.store = store
        self.key = key
        self.record_cls = record_cls
        self.plan_count = plan_count
        self.items = []

    def __iter__(self):
        return iter(self.items)

    def __len__(self):
        return len(self.items)

    def load(self):
        try:
            raw = self.store.get_string(self.key)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"cannot read '{self.key}': {e}") from e

        self.items = []
        if not raw:
            return self.items
        try:
            entries = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Stored '%s' is not valid JSON, starting empty: %s", self.key, e)
            return self.items
        if not isinstance(entries, list):
            logger.warning("Stored '%s' is not a list, starting empty", self.key)
            return self.items

        for index, entry in enumerate(entries):
            try:
                record = self.record_cls.from_dict(entry)
            except ValueError as e:
                logger.warning("Skipping entry %d of '%s': %s", index, self.key, e)
                continue
            self.items.append(record.padded(self.plan_count))
        return self.items

    def get(self, resource_id):
        for item in self.items:
            if item.id == resource_id:
                return item
        return None

    def require(self, resource_id):
        item = self.get(resource_id)
        if item is None:
            raise NotFoundError(f"no {self.record_cls.__name__.lower()} with id '{resource_id}'")
        return item

    def _write(self, items):
        payload = json.dumps([item.to_dict() for item in items])
        try:
            self.store.set_string(self.key, payload)
        except StoreError:
            logger.exception("Writing '%s' failed", self.key)
            raise
        except Exception as e:
            logger.exception("Writing '%s' failed", self.key)
            raise StoreError(f"cannot write '{self.key}': {e}") from e
        self.items = list(items)

    def save(self):
        self._write(self.items)

    def _replace(self, resource):
        items = list(self.items)
        for i, item in enumerate(items):
            if item.id == resource.id:
                items[i] = resource
                break
        else:
            items.append(resource)
        self._write(items)
        return resource

    def upsert(self, resource, actor=None):
        if not isinstance(resource, self.record_cls):
            raise ValidationError(f"expected a {self.record_cls.__name__}")
        if actor is not None:
            require_edit(actor)
        resource.validate(self.plan_count)
        self._replace(resource)
        logger.info("Saved %s '%s' (%s)", self.record_cls.__name__.lower(), resource.name, resource.id)
        return resource

    def remove(self, resource_id, actor=None):
        if actor is not None:
            require_edit(actor)
        items = [item for item in self.items if item.id != resource_id]
        removed = len(items) != len(self.items)
        self._write(items)
        if removed:
            logger.info("Removed %s %s", self.record_cls.__name__.lower(), resource_id)
        return removed

    def toggle_ready(self, resource_id, actor=None):
        current = self.require(resource_id)
        if actor is not None:
            require_toggle(actor, current)
        # Status changes skip finalize validation so legacy records stay toggleable
        return self._replace(current.copy_with(is_ready=not current.is_ready))

    def next_id(self):
        """Timestamp id, bumped past ids already taken within the same millisecond."""
        candidate = int(new_resource_id())
        taken = {item.id for item in self.items}
        while str(candidate) in taken:
            candidate += 1
        return str(candidate)

    def assigned_to(self, username):
        return [item for item in self.items if username in item.assigned_users]

    def _with_assignment(self, username, selected_ids):
        selected = set(selected_ids)
        unknown = selected - {item.id for item in self.items}
        if unknown:
            raise NotFoundError(
                f"no {self.record_cls.__name__.lower()} with id {', '.join(sorted(unknown))}")
        items = []
        for item in self.items:
            users = list(item.assigned_users)
            if item.id in selected and username not in users:
                users.append(username)
            elif item.id not in selected and username in users:
                users.remove(username)
            else:
                items.append(item)
                continue
            items.append(item.copy_with(assigned_users=users))
        return items


class ResourceRepository:
    def __init__(self, store, plan_count=3):
        if plan_count < 1:
            raise ValueError("at least one plan is required")
        self.store = store
        self.plan_count = plan_count
        self.points = ResourceCollection(store, POINTS_KEY, Point, plan_count)
        self.areas = ResourceCollection(store, AREAS_KEY, Area, plan_count)

    def load(self):
        self.points.load()
        self.areas.load()
        return self

    def save(self):
        self.points.save()
        self.areas.save()

    def collection(self, kind):
        if kind in ("point", "points"):
            return self.points
        if kind in ("area", "areas"):
            return self.areas
        raise ValueError(f"unknown resource kind '{kind}'")

    def resources_for(self, username):
        return self.points.assigned_to(username), self.areas.assigned_to(username)

    def assign(self, username, point_ids=(), area_ids=(), actor=None):
        """Assign the user to exactly the given points and areas."""
        if actor is not None:
            require_edit(actor)
        point_ids, area_ids = list(point_ids), list(area_ids)
        if not all(isinstance(i, str) for i in point_ids + area_ids):
            raise ValidationError("resource ids must be strings")
        points = self.points._with_assignment(username, point_ids)
        areas = self.areas._with_assignment(username, area_ids)
        previous_points = list(self.points.items)
        self.points._write(points)
        try:
            self.areas._write(areas)
        except StoreError:
            # Put the points snapshot back so both keys stay consistent
            self.points._write(previous_points)
            raise
        logger.info("Assigned '%s' to %d points and %d areas", username, len(point_ids), len(area_ids))
