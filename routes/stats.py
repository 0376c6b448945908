from flask import current_app, jsonify

from scheduling import today_utc, window_start
from validation import validate_window_days
from . import get_store, query_int, stats_bp


@stats_bp.get("/schedule/today")
def today_schedule():
    """
    Today's doses (UTC date), sorted by time, each with the status logged
    for it today or "pending".
    """
    today = today_utc()
    return jsonify({
        "date": today.isoformat(),
        "schedules": get_store().today_schedule(today),
    })


@stats_bp.get("/refill-alerts")
def refill_alerts():
    threshold = query_int("threshold", current_app.config["REFILL_THRESHOLD"])
    return jsonify({
        "threshold": threshold,
        "medications": get_store().refill_alerts(threshold),
    })


@stats_bp.get("/stats/adherence")
def adherence():
    today = today_utc()
    days = validate_window_days(query_int("days", current_app.config["ADHERENCE_DAYS"]), today)
    medication_id = query_int("medication_id")

    return jsonify({
        "period_days": days,
        "start_date": window_start(today, days).isoformat(),
        "statistics": get_store().adherence(days, today, medication_id),
    })
