import logging

from flask import jsonify, request

from validation import validate_medication, validate_quantity_change
from . import get_store, json_body, meds_bp, query_bool

logger = logging.getLogger(__name__)


@meds_bp.get("/")
def list_meds():
    medications = get_store().list_medications(
        search=request.args.get("search") or None,
        active_only=query_bool("active_only"),
    )
    return jsonify({"medications": medications})


@meds_bp.get("/<int:med_id>")
def get_med(med_id):
    """
    Medication detail: the record, its schedules and the 10 most recent
    logs (newest first).
    """
    return jsonify(get_store().medication_detail(med_id))


@meds_bp.post("/")
def create_med():
    data = validate_medication(json_body())
    med = get_store().add_medication(data)
    return jsonify({"success": True, "medication_id": med["id"]}), 201


@meds_bp.put("/<int:med_id>")
def update_med(med_id):
    updates = validate_medication(json_body(), partial=True)
    get_store().update_medication(med_id, updates)
    return jsonify({"success": True})


@meds_bp.delete("/<int:med_id>")
def delete_med(med_id):
    get_store().delete_medication(med_id)
    return jsonify({"success": True})


@meds_bp.post("/<int:med_id>/quantity")
def update_quantity(med_id):
    """
    Adjust remaining_quantity by a signed amount (never below zero).
    With is_refill the refill counter is incremented as well.
    """
    change, is_refill = validate_quantity_change(json_body())
    med = get_store().adjust_quantity(med_id, change, is_refill)
    if is_refill:
        logger.info(f"Medication {med_id} refilled: +{change}")
    return jsonify({
        "success": True,
        "remaining_quantity": med["remaining_quantity"],
        "refill_count": med["refill_count"],
    })
