import logging
import os

from flask import Flask, jsonify
from flask_cors import CORS

from pss_backend.extensions import db, jwt
from pss_map.errors import AuthorizationError, NotFoundError, StoreError, ValidationError
from pss_map.plans import DEFAULT_PLAN_SIZES

logger = logging.getLogger(__name__)


def setup_logging(level=logging.INFO):
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def register_error_handlers(app):
    @app.errorhandler(ValidationError)
    def handle_validation(e):
        return jsonify({"msg": e.reason}), 400

    @app.errorhandler(AuthorizationError)
    def handle_forbidden(e):
        return jsonify({"msg": str(e)}), 403

    @app.errorhandler(NotFoundError)
    def handle_not_found(e):
        return jsonify({"msg": str(e)}), 404

    @app.errorhandler(StoreError)
    def handle_store(e):
        logger.error("Store failure: %s", e)
        return jsonify({"msg": "Storage is unavailable, nothing was changed"}), 503


def create_app(config=None):
    app = Flask(__name__)

    # Config
    config = dict(config or {})
    basedir = os.path.abspath(os.path.dirname(__file__))
    database_uri = config.get('SQLALCHEMY_DATABASE_URI') or os.environ.get('PSS_DATABASE_URI')
    if not database_uri:
        os.makedirs(os.path.join(basedir, 'instance'), exist_ok=True)
        database_uri = 'sqlite:///' + os.path.join(basedir, 'instance/pss_security.db')
    app.config['SQLALCHEMY_DATABASE_URI'] = database_uri
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['JWT_SECRET_KEY'] = os.environ.get('PSS_JWT_SECRET', 'pss-dev-secret-change-this')
    app.config['JWT_ACCESS_TOKEN_EXPIRES'] = 86400  # 24 hours
    app.config['BLOB_ROOT'] = os.environ.get('PSS_BLOB_ROOT', os.getcwd())
    app.config['BLOB_UPLOAD_URL'] = os.environ.get('PSS_BLOB_UPLOAD_URL')
    app.config['BLOB_PUBLIC_URL'] = os.environ.get('PSS_BLOB_PUBLIC_URL')
    app.config['STADIUM_PLANS'] = list(DEFAULT_PLAN_SIZES)
    app.config['LOG_LEVEL'] = os.environ.get('PSS_LOG_LEVEL', 'INFO')
    app.config.update(config)

    setup_logging(app.config['LOG_LEVEL'])

    # Init
    db.init_app(app)
    jwt.init_app(app)
    CORS(app)

    # Blueprints
    from pss_backend.routes.admin_routes import admin_bp
    from pss_backend.routes.map_routes import map_bp
    app.register_blueprint(admin_bp, url_prefix='/admin')
    app.register_blueprint(map_bp, url_prefix='/map')

    register_error_handlers(app)

    # Create Tables
    with app.app_context():
        db.create_all()

    return app


if __name__ == '__main__':
    app = create_app()
    app.run(debug=True, port=5001, use_reloader=False)
