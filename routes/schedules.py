from flask import jsonify

from validation import validate_schedule
from . import get_store, json_body, query_bool, query_int, schedules_bp


@schedules_bp.get("/")
def list_schedules():
    schedules = get_store().list_schedules(
        medication_id=query_int("medication_id"),
        active_only=query_bool("active_only"),
    )
    return jsonify({"schedules": schedules})


@schedules_bp.get("/<int:schedule_id>")
def get_schedule(schedule_id):
    return jsonify({"schedule": get_store().require_schedule(schedule_id)})


@schedules_bp.post("/")
def create_schedule():
    data = validate_schedule(json_body())
    schedule = get_store().add_schedule(data)
    return jsonify({"success": True, "schedule_id": schedule["id"]}), 201


@schedules_bp.put("/<int:schedule_id>")
def update_schedule(schedule_id):
    updates = validate_schedule(json_body(), partial=True)
    get_store().update_schedule(schedule_id, updates)
    return jsonify({"success": True})


@schedules_bp.delete("/<int:schedule_id>")
def delete_schedule(schedule_id):
    get_store().delete_schedule(schedule_id)
    return jsonify({"success": True})
