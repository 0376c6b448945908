from flask import current_app, jsonify

from validation import validate_log
from . import get_store, json_body, logs_bp, query_date, query_int


@logs_bp.post("/")
def create_log():
    """
    Record a dose as taken, missed or skipped. A "taken" dose uses up one
    unit of the medication's remaining quantity.
    """
    data = validate_log(json_body())
    log = get_store().add_log(data)
    return jsonify({"success": True, "log_id": log["id"]}), 201


@logs_bp.get("/")
def list_logs():
    limit = query_int("limit", current_app.config["HISTORY_LIMIT"])
    history = get_store().list_logs(
        medication_id=query_int("medication_id"),
        start_date=query_date("start_date"),
        end_date=query_date("end_date"),
        limit=max(limit, 0),
    )
    return jsonify({"history": history})
