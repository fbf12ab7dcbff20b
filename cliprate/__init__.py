import os

from flask import Flask, jsonify
from flask_migrate import Migrate
from .extensions import db, login_manager, rq, core
from .errors import ClipRateError

migrate = Migrate()

# error kind -> HTTP status for the JSON API
STATUS = {
    "invalid_transition": 409,
    "quota_exceeded": 429,
    "device_unavailable": 503,
    "upload_failed": 502,
    "metadata_write_failed": 502,
    "invalid_score": 400,
    "comment_too_long": 400,
    "self_rating_forbidden": 403,
    "item_not_found": 404,
    "not_item_author": 403,
    "rating_write_failed": 502,
    "feed_unavailable": 503,
    "record_conflict": 409,
    "record_not_found": 404,
}


def create_app(overrides=None, blobs=None, records=None):
    """App factory.

    ``overrides`` is applied on top of ``config.Config``; ``blobs``/``records``
    replace the configured stores (tests).
    """
    app = Flask(__name__)
    app.config.from_object('config.Config')
    if overrides:
        app.config.update(overrides)

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    rq.init_app(app)
    core.init_app(app, blobs=blobs, records=records)

    @login_manager.user_loader
    def load_user(user_id):
        from .models.user import User
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "unauthorized", "message": "Sign in first"}), 401

    @app.errorhandler(ClipRateError)
    def handle_engine_error(err):
        app.logger.info("request failed with %s: %s", err.kind, err)
        body = {"error": err.kind, "message": err.message}
        if getattr(err, "blob_path", None):
            body["blob_path"] = err.blob_path
        return jsonify(body), STATUS.get(err.kind, 500)

    from .blueprints.auth import bp as auth_bp
    app.register_blueprint(auth_bp, url_prefix="/auth")
    from .blueprints.studio import bp as studio_bp
    app.register_blueprint(studio_bp, url_prefix="/studio")
    from .blueprints.tribunal import bp as tribunal_bp
    app.register_blueprint(tribunal_bp, url_prefix="/tribunal")

    @app.get('/')
    def index():
        return jsonify({"service": "cliprate", "status": "ok"})

    if not os.environ.get("SKIP_CREATE_ALL"):
        with app.app_context():
            from . import models  # noqa: F401
            db.create_all()

    return app
