"""
Request payload validation.

Each validator takes the decoded JSON body and returns a clean dict with
Python values (dates, times, naive UTC datetimes). Every problem found is
collected and raised together as a single ValidationFailure before any
record is touched.
"""
from datetime import datetime

from errors import ValidationFailure
from scheduling import (
    DAY_ABBREVIATIONS,
    FOOD_TIMINGS,
    FREQUENCIES,
    LOG_STATUSES,
    max_window_days,
    normalize_food_timing,
    utc_timestamp,
)

MEDICATION_REQUIRED = ("name", "dosage", "form")
MEDICATION_TEXT = ("purpose", "prescribing_doctor", "side_effects", "notes")
MEDICATION_QUANTITIES = ("total_quantity", "remaining_quantity", "refill_count")

TRUE_STRINGS = {"1", "true", "yes", "on"}
FALSE_STRINGS = {"0", "false", "no", "off", ""}


# ---------------------------- PARSERS ----------------------------
def parse_bool(value):
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        v = value.strip().lower()
        if v in TRUE_STRINGS:
            return True
        if v in FALSE_STRINGS:
            return False
    raise ValueError(f"not a boolean: {value!r}")


def parse_int(value):
    if isinstance(value, bool):
        raise ValueError("booleans are not integers")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValueError(f"not an integer: {value!r}")


def parse_date(value):
    return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()


def parse_time(value):
    return datetime.strptime(str(value).strip(), "%H:%M").time()


def parse_timestamp(value):
    return utc_timestamp(value)


def parse_days_of_week(value):
    if isinstance(value, (list, tuple)):
        items = value
    else:
        items = str(value).split(",")

    days = []
    for item in items:
        item = str(item).strip()
        if not item:
            continue
        abbrev = item[:3].title()
        if abbrev not in DAY_ABBREVIATIONS:
            raise ValueError(f"unknown day: {item!r}")
        if abbrev not in days:
            days.append(abbrev)
    return ",".join(sorted(days, key=DAY_ABBREVIATIONS.index))


# ---------------------------- HELPERS ----------------------------
def _require_object(data):
    if not isinstance(data, dict):
        raise ValidationFailure("Request body must be a JSON object")


def _text(data, field, clean, errors, required=False):
    if field not in data:
        if required:
            errors.append(f"{field}: Required field missing")
        return
    value = data[field]
    if value is None:
        if required:
            errors.append(f"{field}: Required field missing")
        else:
            clean[field] = None
        return
    if not isinstance(value, str):
        errors.append(f"{field}: Must be a string")
        return
    value = value.strip()
    if required and not value:
        errors.append(f"{field}: Must not be empty")
        return
    clean[field] = value or None


def _convert(data, field, clean, errors, parser, message, required=False):
    if field not in data or data[field] is None or data[field] == "":
        if required:
            errors.append(f"{field}: Required field missing")
        elif field in data:
            clean[field] = None
        return
    try:
        clean[field] = parser(data[field])
    except (TypeError, ValueError):
        errors.append(f"{field}: {message}")


def _non_negative(clean, field, errors):
    if clean.get(field) is not None and clean[field] < 0:
        errors.append(f"{field}: Must not be negative")
        del clean[field]


def _positive_id(clean, field, errors):
    if clean.get(field) is not None and clean[field] < 1:
        errors.append(f"{field}: Invalid ID")
        del clean[field]


# ---------------------------- VALIDATORS ----------------------------
def validate_medication(data, partial=False):
    _require_object(data)
    errors = []
    clean = {}

    for field in MEDICATION_REQUIRED:
        if partial and field not in data:
            continue
        _text(data, field, clean, errors, required=True)

    for field in MEDICATION_TEXT:
        _text(data, field, clean, errors)

    _convert(data, "prescription_date", clean, errors,
             lambda v: parse_date(v).isoformat(), "Invalid date format (YYYY-MM-DD required)")

    for field in MEDICATION_QUANTITIES:
        if field == "refill_count" and not partial:
            continue
        _convert(data, field, clean, errors, parse_int, "Must be an integer")
        _non_negative(clean, field, errors)

    if errors:
        raise ValidationFailure(errors)
    return clean


def validate_schedule(data, partial=False):
    _require_object(data)
    errors = []
    clean = {}
    required = not partial

    _convert(data, "medication_id", clean, errors, parse_int, "Invalid medication ID", required)
    _positive_id(clean, "medication_id", errors)
    _convert(data, "time", clean, errors, parse_time, "Invalid time format (HH:MM required)", required)
    _convert(data, "start_date", clean, errors, parse_date,
             "Invalid date format (YYYY-MM-DD required)", required)
    _convert(data, "end_date", clean, errors, parse_date, "Invalid date format (YYYY-MM-DD required)")
    _convert(data, "days_of_week", clean, errors, parse_days_of_week,
             f"Invalid days (use {', '.join(DAY_ABBREVIATIONS)})")
    _convert(data, "active", clean, errors, parse_bool, "Must be a boolean")
    _text(data, "special_instructions", clean, errors)

    if "frequency" in data or required:
        frequency = data.get("frequency")
        if not frequency:
            errors.append("frequency: Required field missing")
        elif not isinstance(frequency, str) or frequency.strip().lower() not in FREQUENCIES:
            errors.append(f"frequency: Invalid value (allowed: {', '.join(FREQUENCIES)})")
        else:
            clean["frequency"] = frequency.strip().lower()

    if "food_timing" in data or "with_food" in data or required:
        try:
            with_food = parse_bool(data["with_food"]) if data.get("with_food") is not None else None
            food_timing = normalize_food_timing(data.get("food_timing"), with_food)
        except (AttributeError, ValueError):
            food_timing = None
        if food_timing not in FOOD_TIMINGS:
            errors.append(f"food_timing: Invalid value (allowed: {', '.join(FOOD_TIMINGS)})")
        else:
            clean["food_timing"] = food_timing

    for field in ("medication_id", "time", "start_date", "active"):
        if field in clean and clean[field] is None:
            errors.append(f"{field}: Must not be empty")

    if clean.get("frequency") == "weekly" and not partial and not clean.get("days_of_week"):
        errors.append("days_of_week: Required for weekly schedules")

    if clean.get("start_date") and clean.get("end_date") and clean["end_date"] < clean["start_date"]:
        errors.append("end_date: Must not be before start_date")

    if errors:
        raise ValidationFailure(errors)
    return clean


def validate_log(data):
    _require_object(data)
    errors = []
    clean = {}

    _convert(data, "medication_id", clean, errors, parse_int, "Invalid medication ID", required=True)
    _positive_id(clean, "medication_id", errors)
    _convert(data, "schedule_id", clean, errors, parse_int, "Invalid schedule ID")
    _positive_id(clean, "schedule_id", errors)
    _convert(data, "taken_at", clean, errors, parse_timestamp, "Invalid timestamp (ISO-8601 required)")
    _text(data, "notes", clean, errors)

    status = data.get("status")
    if not status:
        errors.append("status: Required field missing")
    elif not isinstance(status, str) or status.strip().lower() not in LOG_STATUSES:
        errors.append(f"status: Invalid value (allowed: {', '.join(LOG_STATUSES)})")
    else:
        clean["status"] = status.strip().lower()

    if errors:
        raise ValidationFailure(errors)
    return clean


def validate_interaction(data):
    _require_object(data)
    errors = []
    clean = {}

    for field in ("medication1_id", "medication2_id"):
        _convert(data, field, clean, errors, parse_int, "Invalid medication ID", required=True)
        _positive_id(clean, field, errors)
    for field in ("severity", "description", "recommendations"):
        _text(data, field, clean, errors)

    if errors:
        raise ValidationFailure(errors)
    return clean


def validate_quantity_change(data):
    _require_object(data)
    errors = []
    clean = {}

    _convert(data, "quantity_change", clean, errors, parse_int, "Must be an integer", required=True)
    _convert(data, "is_refill", clean, errors, parse_bool, "Must be a boolean")

    if errors:
        raise ValidationFailure(errors)
    return clean["quantity_change"], bool(clean.get("is_refill"))


def validate_window_days(days, today):
    if days < 0:
        raise ValidationFailure("days: Must not be negative")
    if days > max_window_days(today):
        raise ValidationFailure("days: Out of range")
    return days
