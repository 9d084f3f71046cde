from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required, get_jwt
from pss_backend.controllers.admin_controller import AdminController

admin_bp = Blueprint('admin', __name__)


def _role_in(*roles):
    return get_jwt().get('role') in roles


@admin_bp.route('/auth/login', methods=['POST'])
def login():
    return AdminController.login()

@admin_bp.route('/profile', methods=['GET'])
@jwt_required()
def profile():
    return AdminController.get_profile()

@admin_bp.route('/users', methods=['GET'])
@jwt_required()
def list_users():
    if not _role_in('admin', 'einsatzleiter'):
        return jsonify({'msg': 'Admins and Einsatzleiter only!'}), 403
    return AdminController.list_users()

@admin_bp.route('/users', methods=['POST'])
@jwt_required()
def create_user():
    if not _role_in('admin'):
        return jsonify({'msg': 'Admins only!'}), 403
    return AdminController.create_user()

@admin_bp.route('/users/<username>', methods=['DELETE'])
@jwt_required()
def delete_user(username):
    if not _role_in('admin'):
        return jsonify({'msg': 'Admins only!'}), 403
    return AdminController.delete_user(username)

@admin_bp.route('/settings', methods=['GET'])
@jwt_required()
def get_settings():
    return AdminController.get_match_settings()

@admin_bp.route('/settings', methods=['PUT'])
@jwt_required()
def update_settings():
    if not _role_in('admin'):
        return jsonify({'msg': 'Admins only!'}), 403
    return AdminController.update_match_settings()

@admin_bp.route('/plans', methods=['GET'])
@jwt_required()
def list_plans():
    return AdminController.list_plans()

@admin_bp.route('/plans/<int:index>/file', methods=['POST'])
@jwt_required()
def upload_plan_file(index):
    return AdminController.upload_plan_file(index)

@admin_bp.route('/plans/<int:index>/file', methods=['GET'])
@jwt_required()
def get_plan_file(index):
    return AdminController.get_plan_file(index)
