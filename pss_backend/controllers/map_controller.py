import logging

from flask import jsonify, request

from pss_map.errors import NotFoundError, ValidationError
from pss_map.geometry import scale_to_fit, screen_to_normalized
from pss_map.mapview import build_map_view, marker_at
from pss_map.policy import Role, require_edit, visible
from pss_map.resources import Area, Point
from pss_backend.services import current_actor, get_catalog, get_directory, get_repository

logger = logging.getLogger(__name__)

RECORD_TYPES = {'points': Point, 'areas': Area}


def _parse(kind, payload, resource_id, is_ready):
    if not isinstance(payload, dict):
        raise ValidationError("expected a JSON object")
    try:
        return RECORD_TYPES[kind].from_dict({**payload, "id": resource_id, "isReady": is_ready})
    except ValueError as e:
        raise ValidationError(str(e))


def _json_object():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("expected a JSON object")
    return data


def _check_assignees(resource):
    directory = get_directory()
    for username in resource.assigned_users:
        user = directory.get(username)
        if user is None:
            raise ValidationError(f"unknown user '{username}'")
        if user.role is not Role.ORDNER:
            raise ValidationError(f"only Ordner can be assigned, '{username}' is {user.role.value}")


def _viewport(data):
    try:
        width, height = float(data['width']), float(data['height'])
    except (KeyError, TypeError, ValueError):
        raise ValidationError("viewport width and height are required")
    if width <= 0 or height <= 0:
        raise ValidationError("viewport width and height must be positive")
    return width, height


def _tap(data):
    try:
        return float(data['x']), float(data['y'])
    except (KeyError, TypeError, ValueError):
        raise ValidationError("tap x and y are required")


class MapController:
    # --- Points & Areas ---
    @staticmethod
    def list_resources(kind):
        actor = current_actor()
        collection = get_repository().collection(kind)
        return jsonify([r.to_dict() for r in visible(actor, collection)]), 200

    @staticmethod
    def create_resource(kind):
        actor = current_actor()
        require_edit(actor)
        collection = get_repository().collection(kind)
        resource = _parse(kind, request.get_json(silent=True), collection.next_id(), False)
        _check_assignees(resource)
        collection.upsert(resource, actor=actor)
        return jsonify(resource.to_dict()), 201

    @staticmethod
    def update_resource(kind, resource_id):
        actor = current_actor()
        require_edit(actor)
        collection = get_repository().collection(kind)
        existing = collection.require(resource_id)
        # Editing never changes the readiness status
        resource = _parse(kind, request.get_json(silent=True), existing.id, existing.is_ready)
        _check_assignees(resource)
        collection.upsert(resource, actor=actor)
        return jsonify(resource.to_dict()), 200

    @staticmethod
    def delete_resource(kind, resource_id):
        actor = current_actor()
        collection = get_repository().collection(kind)
        existing = collection.require(resource_id)
        collection.remove(existing.id, actor=actor)
        return jsonify({"message": f"'{existing.name}' deleted"}), 200

    @staticmethod
    def toggle_resource(kind, resource_id):
        actor = current_actor()
        resource = get_repository().collection(kind).toggle_ready(resource_id, actor=actor)
        return jsonify(resource.to_dict()), 200

    # --- Assignments ---
    @staticmethod
    def get_assignments(username):
        actor = current_actor()
        if actor.username != username:
            require_edit(actor)
        get_directory().require(username)
        points, areas = get_repository().resources_for(username)
        return jsonify(points=[p.id for p in points], areas=[a.id for a in areas]), 200

    @staticmethod
    def update_assignments(username):
        actor = current_actor()
        require_edit(actor)
        user = get_directory().require(username)
        if user.role is not Role.ORDNER:
            raise ValidationError(f"only Ordner can be assigned, '{username}' is {user.role.value}")
        data = _json_object()
        point_ids, area_ids = data.get('points', []), data.get('areas', [])
        if not isinstance(point_ids, list) or not isinstance(area_ids, list) \
                or not all(isinstance(i, str) for i in point_ids + area_ids):
            raise ValidationError("points and areas must be lists of ids")
        repository = get_repository()
        repository.assign(username, point_ids, area_ids, actor=actor)
        points, areas = repository.resources_for(username)
        return jsonify(points=[p.id for p in points], areas=[a.id for a in areas]), 200

    # --- Map Geometry ---
    @staticmethod
    def map_view(index):
        actor = current_actor()
        plan = get_catalog().get(index)
        width, height = _viewport(request.args)
        box, markers = build_map_view(get_repository(), plan, width, height, actor)
        return jsonify(
            plan=plan.index,
            scale=box.scale, offsetX=box.offset_x, offsetY=box.offset_y,
            imageWidth=plan.width * box.scale, imageHeight=plan.height * box.scale,
            markers=[m.to_dict() for m in markers],
        ), 200

    @staticmethod
    def locate(index):
        current_actor()
        plan = get_catalog().get(index)
        data = _json_object()
        width, height = _viewport(data)
        x, y = _tap(data)
        box = scale_to_fit(plan.width, plan.height, width, height)
        pos = screen_to_normalized(x, y, box, plan.width, plan.height)
        if pos is None:
            return jsonify({"msg": "The tap is outside of the plan"}), 422
        return jsonify(plan=plan.index, dx=pos.dx, dy=pos.dy), 200

    @staticmethod
    def tap(index):
        actor = current_actor()
        plan = get_catalog().get(index)
        data = _json_object()
        width, height = _viewport(data)
        x, y = _tap(data)
        repository = get_repository()
        _, markers = build_map_view(repository, plan, width, height, actor)
        marker = marker_at(markers, x, y)
        if marker is None:
            raise NotFoundError("no marker at this position")
        resource = repository.collection(marker.kind).toggle_ready(marker.id, actor=actor)
        return jsonify(kind=marker.kind, resource=resource.to_dict()), 200
