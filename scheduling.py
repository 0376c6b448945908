from datetime import date, datetime, timedelta, timezone

DAY_ABBREVIATIONS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
FREQUENCIES = ("daily", "weekly", "as_needed")
LOG_STATUSES = ("taken", "missed", "skipped")
FOOD_TIMINGS = ("before_food", "after_food", "none")
LEGACY_FOOD_TIMINGS = {"with_food": "before_food"}

DEFAULT_REFILL_THRESHOLD = 7
DEFAULT_ADHERENCE_DAYS = 30
UNKNOWN_MEDICATION = "Unknown"


# ---------------------------- HELPERS ----------------------------
def today_utc():
    return datetime.now(timezone.utc).date()


def day_abbreviation(day):
    """Three-letter English weekday for a date, independent of the locale."""
    return DAY_ABBREVIATIONS[day.weekday()]


def utc_timestamp(value):
    """ISO-8601 timestamp to a naive UTC datetime. A trailing "Z" is accepted."""
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_date(value):
    """
    UTC date of a date, datetime or ISO string ("YYYY-MM-DD" or a full
    timestamp, possibly with an offset). Returns None for empty values.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if len(text) > 10:
        return utc_timestamp(text).date()
    return date.fromisoformat(text)


def parse_days(days_of_week):
    if not days_of_week:
        return set()
    return {d.strip()[:3].title() for d in days_of_week.split(",") if d.strip()}


def normalize_food_timing(value, with_food=None):
    """
    Canonical food timing. "with_food" (and the older boolean with_food flag)
    both mean "before_food".
    """
    if value:
        value = value.strip().lower()
        return LEGACY_FOOD_TIMINGS.get(value, value)
    if with_food:
        return "before_food"
    return "none"


def index_by_id(records):
    return {r["id"]: r for r in records}


def find_medication(medications_by_id, medication_id):
    # Dangling references are resolved to None, never raised.
    return medications_by_id.get(medication_id)


def medication_name(medication):
    return medication["name"] if medication else UNKNOWN_MEDICATION


# ---------------------------- SCHEDULE RESOLVER ----------------------------
def is_applicable(schedule, today, day_abbrev):
    if not schedule.get("active", True):
        return False

    start = to_date(schedule.get("start_date"))
    if start is None or start > today:
        return False

    end = to_date(schedule.get("end_date"))
    if end is not None and end < today:
        return False

    frequency = schedule.get("frequency")
    if frequency == "daily":
        return True
    if frequency == "weekly":
        return day_abbrev in parse_days(schedule.get("days_of_week"))
    return False


def resolve_today(schedules, medications, logs, today, day_abbrev):
    """
    Schedules that apply on `today`, each joined with its medication and
    annotated with the status logged for it today ("pending" when nothing
    has been logged yet). Sorted by time of day.
    """
    meds_by_id = index_by_id(medications)

    logged = {}
    for log in logs:
        if to_date(log.get("taken_at")) != today:
            continue
        key = (log.get("medication_id"), log.get("schedule_id"))
        # First one found wins.
        logged.setdefault(key, log.get("status"))

    resolved = []
    for schedule in schedules:
        if not is_applicable(schedule, today, day_abbrev):
            continue

        med = find_medication(meds_by_id, schedule["medication_id"])
        item = dict(schedule)
        item.update({
            "name": medication_name(med),
            "dosage": med["dosage"] if med else "",
            "form": med["form"] if med else "",
            "remaining_quantity": med.get("remaining_quantity") if med else None,
            "food_timing": normalize_food_timing(schedule.get("food_timing")),
            "status": logged.get((schedule["medication_id"], schedule["id"]), "pending"),
        })
        resolved.append(item)

    return sorted(resolved, key=lambda s: s["time"])


def due_reminders(resolved, at):
    """Pending entries of a resolved schedule that are due at "HH:MM"."""
    return [s for s in resolved if s["time"] == at and s["status"] == "pending"]


# ---------------------------- ADHERENCE ----------------------------
def max_window_days(today):
    """Longest look-back that still lands on a representable date."""
    return (today - date.min).days


def window_start(today, days):
    return today - timedelta(days=days)


def adherence_rate(taken, total):
    if total == 0:
        return "0.00"
    return f"{taken / total * 100:.2f}"


def compute_adherence(logs, medications, window_days, today, medication_id=None):
    start = window_start(today, window_days)
    meds_by_id = index_by_id(medications)

    stats = {}
    for log in logs:
        taken_on = to_date(log.get("taken_at"))
        if taken_on is None or taken_on < start:
            continue
        if medication_id is not None and log["medication_id"] != medication_id:
            continue

        med_id = log["medication_id"]
        if med_id not in stats:
            stats[med_id] = {
                "medication_id": med_id,
                "medication_name": medication_name(find_medication(meds_by_id, med_id)),
                "total_logs": 0,
                "taken_count": 0,
                "missed_count": 0,
                "skipped_count": 0,
            }

        entry = stats[med_id]
        entry["total_logs"] += 1
        status = log.get("status")
        if status == "taken":
            entry["taken_count"] += 1
        elif status == "missed":
            entry["missed_count"] += 1
        elif status == "skipped":
            entry["skipped_count"] += 1

    results = []
    for entry in stats.values():
        entry["adherence_rate"] = adherence_rate(entry["taken_count"], entry["total_logs"])
        results.append(entry)
    return results


# ---------------------------- REFILLS ----------------------------
def refill_alerts(medications, threshold=DEFAULT_REFILL_THRESHOLD):
    """Medications running low: 0 < remaining_quantity <= threshold, lowest first."""
    low = [
        m for m in medications
        if m.get("remaining_quantity") is not None
        and 0 < m["remaining_quantity"] <= threshold
    ]
    return sorted(low, key=lambda m: m["remaining_quantity"])
