from flask import Blueprint
from flask_jwt_extended import jwt_required
from pss_backend.controllers.map_controller import MapController

map_bp = Blueprint('map', __name__)

KINDS = '<any(points, areas):kind>'


@map_bp.route(f'/{KINDS}', methods=['GET'])
@jwt_required()
def list_resources(kind):
    return MapController.list_resources(kind)

@map_bp.route(f'/{KINDS}', methods=['POST'])
@jwt_required()
def create_resource(kind):
    return MapController.create_resource(kind)

@map_bp.route(f'/{KINDS}/<resource_id>', methods=['PUT'])
@jwt_required()
def update_resource(kind, resource_id):
    return MapController.update_resource(kind, resource_id)

@map_bp.route(f'/{KINDS}/<resource_id>', methods=['DELETE'])
@jwt_required()
def delete_resource(kind, resource_id):
    return MapController.delete_resource(kind, resource_id)

@map_bp.route(f'/{KINDS}/<resource_id>/toggle', methods=['POST'])
@jwt_required()
def toggle_resource(kind, resource_id):
    return MapController.toggle_resource(kind, resource_id)

@map_bp.route('/assignments/<username>', methods=['GET'])
@jwt_required()
def get_assignments(username):
    return MapController.get_assignments(username)

@map_bp.route('/assignments/<username>', methods=['PUT'])
@jwt_required()
def update_assignments(username):
    return MapController.update_assignments(username)

# Plan Geometry
@map_bp.route('/plans/<int:index>/view', methods=['GET'])
@jwt_required()
def map_view(index):
    return MapController.map_view(index)

@map_bp.route('/plans/<int:index>/locate', methods=['POST'])
@jwt_required()
def locate(index):
    return MapController.locate(index)

@map_bp.route('/plans/<int:index>/tap', methods=['POST'])
@jwt_required()
def tap(index):
    return MapController.tap(index)
