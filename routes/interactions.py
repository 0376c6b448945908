from flask import jsonify

from validation import validate_interaction
from . import get_store, interactions_bp, json_body, query_int


@interactions_bp.get("/")
def list_interactions():
    interactions = get_store().list_interactions(medication_id=query_int("medication_id"))
    return jsonify({"interactions": interactions})


@interactions_bp.post("/")
def create_interaction():
    data = validate_interaction(json_body())
    interaction = get_store().add_interaction(data)
    return jsonify({"success": True, "interaction_id": interaction["id"]}), 201
