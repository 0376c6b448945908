"""
Record store interface.

A store keeps four collections (medications, schedules, logs, interactions)
with one id sequence per collection. Backends implement the raw CRUD
primitives and return plain dicts; the joins with medication names and the
derived views (today's schedule, refill alerts, adherence) are shared here and
delegate to the pure functions in `scheduling`.
"""
import abc

from errors import RecordNotFound, ValidationFailure
from scheduling import (
    DEFAULT_REFILL_THRESHOLD,
    compute_adherence,
    day_abbreviation,
    index_by_id,
    medication_name,
    refill_alerts,
    resolve_today,
    to_date,
)

MEDICATION_FIELDS = (
    "name", "dosage", "form", "purpose", "prescribing_doctor", "prescription_date",
    "side_effects", "notes", "total_quantity", "remaining_quantity", "refill_count",
)
SCHEDULE_FIELDS = (
    "medication_id", "time", "frequency", "days_of_week", "start_date", "end_date",
    "food_timing", "special_instructions", "active",
)
LOG_FIELDS = ("medication_id", "schedule_id", "status", "notes", "taken_at")
INTERACTION_FIELDS = (
    "medication1_id", "medication2_id", "severity", "description", "recommendations",
)


def pick(data, fields):
    return {k: v for k, v in data.items() if k in fields}


def clamp_quantity(value):
    if value is None:
        return None
    return max(0, value)


def check_schedule_dates(start_date, end_date):
    start, end = to_date(start_date), to_date(end_date)
    if start and end and end < start:
        raise ValidationFailure("end_date: Must not be before start_date")


class RecordStore(abc.ABC):

    # ---------------------------- MEDICATIONS ----------------------------
    @abc.abstractmethod
    def add_medication(self, data):
        """Create a medication; remaining_quantity defaults to total_quantity."""

    @abc.abstractmethod
    def get_medication(self, medication_id):
        """The medication as a dict, or None."""

    @abc.abstractmethod
    def all_medications(self):
        pass

    @abc.abstractmethod
    def update_medication(self, medication_id, updates):
        pass

    @abc.abstractmethod
    def delete_medication(self, medication_id):
        """Delete the medication together with its schedules and logs."""

    @abc.abstractmethod
    def adjust_quantity(self, medication_id, change, is_refill=False):
        pass

    # ---------------------------- SCHEDULES ----------------------------
    @abc.abstractmethod
    def add_schedule(self, data):
        pass

    @abc.abstractmethod
    def get_schedule(self, schedule_id):
        pass

    @abc.abstractmethod
    def all_schedules(self):
        pass

    @abc.abstractmethod
    def update_schedule(self, schedule_id, updates):
        pass

    @abc.abstractmethod
    def delete_schedule(self, schedule_id):
        pass

    # ---------------------------- LOGS ----------------------------
    @abc.abstractmethod
    def add_log(self, data):
        """
        Append a log. A "taken" log decrements the medication's
        remaining_quantity by one when it is above zero, in the same
        transaction as the insert.
        """

    @abc.abstractmethod
    def all_logs(self):
        pass

    # ---------------------------- INTERACTIONS ----------------------------
    @abc.abstractmethod
    def add_interaction(self, data):
        pass

    @abc.abstractmethod
    def all_interactions(self):
        pass

    # ---------------------------- LOOKUPS ----------------------------
    def require_medication(self, medication_id):
        med = self.get_medication(medication_id)
        if med is None:
            raise RecordNotFound("medication", medication_id)
        return med

    def require_schedule(self, schedule_id):
        schedule = self.get_schedule(schedule_id)
        if schedule is None:
            raise RecordNotFound("schedule", schedule_id)
        return schedule

    def list_medications(self, search=None, active_only=False):
        meds = self.all_medications()

        if search:
            needle = search.lower()
            meds = [
                m for m in meds
                if needle in m["name"].lower()
                or (m.get("purpose") and needle in m["purpose"].lower())
            ]

        if active_only:
            meds = [m for m in meds if (m.get("remaining_quantity") or 0) > 0]

        return sorted(meds, key=lambda m: (m["name"].lower(), m["id"]))

    def list_schedules(self, medication_id=None, active_only=False):
        meds_by_id = index_by_id(self.all_medications())
        schedules = self.all_schedules()

        if medication_id is not None:
            schedules = [s for s in schedules if s["medication_id"] == medication_id]
        if active_only:
            schedules = [s for s in schedules if s["active"]]

        joined = []
        for s in sorted(schedules, key=lambda s: (s["time"], s["id"])):
            item = dict(s)
            item["medication_name"] = medication_name(meds_by_id.get(s["medication_id"]))
            joined.append(item)
        return joined

    def list_logs(self, medication_id=None, start_date=None, end_date=None, limit=None):
        """
        Logs joined with medication name and dosage, newest first.
        `end_date` is inclusive of the whole day.
        """
        meds_by_id = index_by_id(self.all_medications())
        logs = self.all_logs()

        if medication_id is not None:
            logs = [l for l in logs if l["medication_id"] == medication_id]
        if start_date is not None:
            logs = [l for l in logs if to_date(l["taken_at"]) >= start_date]
        if end_date is not None:
            logs = [l for l in logs if to_date(l["taken_at"]) <= end_date]

        logs = sorted(logs, key=lambda l: (l["taken_at"], l["id"]), reverse=True)
        if limit is not None:
            logs = logs[:limit]

        joined = []
        for log in logs:
            med = meds_by_id.get(log["medication_id"])
            item = dict(log)
            item["medication_name"] = medication_name(med)
            item["dosage"] = med["dosage"] if med else ""
            joined.append(item)
        return joined

    def list_interactions(self, medication_id=None):
        meds_by_id = index_by_id(self.all_medications())
        interactions = self.all_interactions()

        if medication_id is not None:
            interactions = [
                i for i in interactions
                if medication_id in (i["medication1_id"], i["medication2_id"])
            ]

        joined = []
        for i in interactions:
            item = dict(i)
            item["medication1_name"] = medication_name(meds_by_id.get(i["medication1_id"]))
            item["medication2_name"] = medication_name(meds_by_id.get(i["medication2_id"]))
            joined.append(item)
        return joined

    def medication_detail(self, medication_id, recent=10):
        med = self.require_medication(medication_id)
        return {
            "medication": med,
            "schedules": self.list_schedules(medication_id=medication_id),
            "recent_logs": self.list_logs(medication_id=medication_id, limit=recent),
        }

    # ---------------------------- DERIVED VIEWS ----------------------------
    def today_schedule(self, today):
        return resolve_today(
            self.all_schedules(),
            self.all_medications(),
            self.all_logs(),
            today,
            day_abbreviation(today),
        )

    def refill_alerts(self, threshold=DEFAULT_REFILL_THRESHOLD):
        return refill_alerts(self.all_medications(), threshold)

    def adherence(self, days, today, medication_id=None):
        return compute_adherence(
            self.all_logs(), self.all_medications(), days, today, medication_id
        )

