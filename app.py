import logging

from flask import Flask, jsonify

from cli import register_commands
from config import Config
from errors import register_error_handlers
from json_store import JSONStore
from models import db
from routes import (
    interactions_bp,
    logs_bp,
    meds_bp,
    schedules_bp,
    stats_bp,
    STORE_EXTENSION,
)
from sql_store import SQLStore

logger = logging.getLogger(__name__)


def build_store(app):
    backend = app.config["STORE_BACKEND"]
    if backend == "sql":
        return SQLStore(db)
    if backend == "json":
        return JSONStore(app.config["JSON_STORE_PATH"])
    if backend == "memory":
        return JSONStore()
    raise ValueError(f"Unknown STORE_BACKEND: {backend!r}")


def create_app(test_config=None, store=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    db.init_app(app)
    if app.config["STORE_BACKEND"] == "sql":
        with app.app_context():
            db.create_all()

    if store is None:
        store = build_store(app)
    app.extensions[STORE_EXTENSION] = store
    logger.info(f"Using {type(store).__name__}")

    # BLUEPRINTS
    app.register_blueprint(meds_bp)
    app.register_blueprint(schedules_bp)
    app.register_blueprint(logs_bp)
    app.register_blueprint(stats_bp)
    app.register_blueprint(interactions_bp)

    register_error_handlers(app, db)

    register_commands(app)

    @app.get("/")
    def root():
        return jsonify({"name": "medication-manager", "status": "ok"})

    return app


if __name__ == "__main__":
    create_app().run(debug=True)
