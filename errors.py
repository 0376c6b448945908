import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class MedicationManagerError(Exception):
    status_code = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {"error": self.message}


class RecordNotFound(MedicationManagerError):
    status_code = 404

    def __init__(self, kind, record_id):
        super().__init__(f"{kind.capitalize()} not found")
        self.kind = kind
        self.record_id = record_id


class ValidationFailure(MedicationManagerError):
    status_code = 400

    def __init__(self, errors):
        if isinstance(errors, str):
            errors = [errors]
        super().__init__("; ".join(errors))
        self.errors = list(errors)

    def to_dict(self):
        return {"error": "Validation failed", "errors": self.errors}


class StoreFailure(MedicationManagerError):
    status_code = 500


def register_error_handlers(app, db=None):
    @app.errorhandler(MedicationManagerError)
    def handle_app_error(e):
        if e.status_code >= 500:
            logger.error(f"Store failure: {e.message}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({"error": e.description}), e.code

    @app.errorhandler(500)
    def server_error(e):
        if db is not None:
            db.session.rollback()
        logger.error(f"Unhandled server error: {e}")
        return jsonify({"error": "Internal server error"}), 500
