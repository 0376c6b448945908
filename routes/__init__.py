from flask import Blueprint, current_app, request

from errors import ValidationFailure
from validation import parse_bool, parse_date, parse_int

STORE_EXTENSION = "medication_store"

meds_bp = Blueprint("meds", __name__, url_prefix="/api/medications")
schedules_bp = Blueprint("schedules", __name__, url_prefix="/api/schedules")
logs_bp = Blueprint("logs", __name__, url_prefix="/api/logs")
stats_bp = Blueprint("stats", __name__, url_prefix="/api")
interactions_bp = Blueprint("interactions", __name__, url_prefix="/api/interactions")


def get_store():
    return current_app.extensions[STORE_EXTENSION]


def json_body():
    data = request.get_json(silent=True)
    if data is None:
        raise ValidationFailure("Request body must be JSON")
    return data


def query_arg(name, parser, default=None):
    """Parse an optional query-string argument; a bad value is a 400."""
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return parser(raw)
    except ValueError:
        raise ValidationFailure(f"{name}: Invalid value {raw!r}")


def query_int(name, default=None):
    return query_arg(name, parse_int, default)


def query_bool(name, default=False):
    return query_arg(name, parse_bool, default)


def query_date(name):
    return query_arg(name, parse_date)


from . import meds, schedules, logs, stats, interactions  # noqa: E402,F401
