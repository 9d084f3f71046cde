import io
import logging

from flask import current_app, jsonify, request, send_file
from flask_jwt_extended import create_access_token

from pss_map.errors import AuthorizationError, ValidationError
from pss_map.plans import read_plan_file, store_plan_file
from pss_map.policy import can_edit
from pss_map.settings import save_settings
from pss_backend.services import (
    blob_stores, current_user, get_catalog, get_directory, get_settings, get_store,
)

logger = logging.getLogger(__name__)


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _user_json(user):
    return {"username": user.username, "role": user.role.value}


def _plan_json(plan):
    data = plan.to_dict()
    if plan.file:
        # Inline data is served through /plans/<index>/file, not in listings
        data['file'] = {
            "name": plan.file.name,
            "contentType": plan.file.content_type,
            "locator": plan.file.locator,
            "inline": plan.file.inline_data is not None,
        }
    return data


class AdminController:
    # --- Auth ---
    @staticmethod
    def login():
        data = _json_body()
        username, password = data.get('username'), data.get('password')
        if not isinstance(username, str) or not isinstance(password, str):
            return jsonify({"msg": "Invalid credentials"}), 401
        username = username.strip()
        user = get_directory().authenticate(username, password)
        if user is None:
            logger.info("Failed login for '%s'", username)
            return jsonify({"msg": "Invalid credentials"}), 401

        if not get_settings().login_allowed(user.role):
            return jsonify({"msg": "The app is deactivated, only administrators can log in"}), 403

        token = create_access_token(identity=user.username, additional_claims={"role": user.role.value})
        logger.info("User '%s' logged in", user.username)
        return jsonify(token=token, role=user.role.value, username=user.username), 200

    @staticmethod
    def get_profile():
        return jsonify(_user_json(current_user())), 200

    # --- User Management ---
    @staticmethod
    def list_users():
        role = request.args.get('role')
        directory = get_directory()
        users = directory.by_role(role) if role else directory.all()
        return jsonify([_user_json(u) for u in users]), 200

    @staticmethod
    def create_user():
        data = _json_body()
        user = get_directory().add(data.get('username'), data.get('password'), data.get('role', 'ordner'))
        return jsonify(_user_json(user)), 201

    @staticmethod
    def delete_user(username):
        if username == current_user().username:
            raise ValidationError("you cannot delete your own account")
        get_directory().remove(username)
        return jsonify({"message": f"User '{username}' deleted"}), 200

    # --- Match Settings ---
    @staticmethod
    def get_match_settings():
        settings = get_settings()
        return jsonify(settings=settings.to_dict(), summary=settings.summary()), 200

    @staticmethod
    def update_match_settings():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("expected a JSON object")
        settings = save_settings(get_store(), get_settings().updated(**data))
        logger.info("Match settings updated: %s", settings.to_dict())
        return jsonify(settings=settings.to_dict(), summary=settings.summary()), 200

    # --- Plans ---
    @staticmethod
    def list_plans():
        return jsonify([_plan_json(p) for p in get_catalog().plans]), 200

    @staticmethod
    def upload_plan_file(index):
        if not can_edit(current_user().role):
            raise AuthorizationError("only admins and Einsatzleiter can upload plans")
        catalog = get_catalog()
        catalog.get(index)
        upload = request.files.get('file')
        if upload is None or not upload.filename:
            raise ValidationError("no file uploaded")
        data = upload.read()
        if not data:
            raise ValidationError("the uploaded file is empty")

        plan_file = store_plan_file(data, upload.filename, blob_stores())
        plan = catalog.attach_file(index, plan_file)
        return jsonify(_plan_json(plan)), 201

    @staticmethod
    def get_plan_file(index):
        plan = get_catalog().get(index)
        if plan.file is None:
            return jsonify({"msg": f"No file uploaded for {plan.name}"}), 404
        data = read_plan_file(plan.file, root=current_app.config['BLOB_ROOT'])
        return send_file(io.BytesIO(data), mimetype=plan.file.content_type,
                         download_name=plan.file.name)
