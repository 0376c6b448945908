"""
Single-document store: four arrays plus the id counters, kept in memory and,
when a path is given, mirrored to a JSON file.

Mutations are serialized by a lock. Each one works on a copy of the document,
the copy is written to disk (temp file + rename) and only then replaces the
in-memory document, so a failed write leaves both on the previous state.
"""
import copy
import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from datetime import date, datetime, time

from errors import RecordNotFound, StoreFailure
from models import utcnow
from scheduling import normalize_food_timing
from store import (
    INTERACTION_FIELDS,
    LOG_FIELDS,
    MEDICATION_FIELDS,
    SCHEDULE_FIELDS,
    RecordStore,
    check_schedule_dates,
    clamp_quantity,
    pick,
)

logger = logging.getLogger(__name__)

COLLECTIONS = {
    "medication": "medications",
    "schedule": "schedules",
    "log": "logs",
    "interaction": "interactions",
}


def empty_document():
    doc = {name: [] for name in COLLECTIONS.values()}
    doc["next_id"] = {kind: 1 for kind in COLLECTIONS}
    return doc


def to_json_value(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        return value.strftime("%H:%M")
    return value


def serialize(data):
    return {k: to_json_value(v) for k, v in data.items()}


class JSONStore(RecordStore):

    def __init__(self, path=None):
        self.path = path
        self._lock = threading.RLock()
        self._doc = self._load()

    # ---------------------------- PERSISTENCE ----------------------------
    def _load(self):
        if self.path is None:
            return empty_document()

        if not os.path.exists(self.path):
            doc = empty_document()
            self._write(doc)
            return doc

        try:
            with open(self.path, encoding="utf-8") as f:
                doc = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading store {self.path}: {e}")
            raise StoreFailure(f"Could not load store file {self.path}") from e

        # documents written by older versions keep the counters under "nextId"
        if "next_id" not in doc and "nextId" in doc:
            doc["next_id"] = doc.pop("nextId")
        base = empty_document()
        for key, value in base.items():
            doc.setdefault(key, value)
        for kind in COLLECTIONS:
            doc["next_id"].setdefault(kind, 1)
        return doc

    def _write(self, doc):
        if self.path is None:
            return

        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".medications-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(doc, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            logger.error(f"Error saving store {self.path}: {e}")
            raise StoreFailure(f"Could not save store file {self.path}") from e

    @contextmanager
    def _transaction(self):
        with self._lock:
            working = copy.deepcopy(self._doc)
            yield working
            self._write(working)
            self._doc = working

    def _next_id(self, doc, kind):
        new_id = doc["next_id"][kind]
        doc["next_id"][kind] = new_id + 1
        return new_id

    # ---------------------------- LOOKUPS ----------------------------
    @staticmethod
    def _find(records, record_id):
        for record in records:
            if record["id"] == record_id:
                return record
        return None

    def _find_or_404(self, doc, kind, record_id):
        record = self._find(doc[COLLECTIONS[kind]], record_id)
        if record is None:
            raise RecordNotFound(kind, record_id)
        return record

    @staticmethod
    def _schedule_out(record):
        item = dict(record)
        item["food_timing"] = normalize_food_timing(item.get("food_timing"), item.pop("with_food", None))
        item.setdefault("active", True)
        item.setdefault("days_of_week", None)
        item.setdefault("end_date", None)
        return item

    # ---------------------------- MEDICATIONS ----------------------------
    def add_medication(self, data):
        data = serialize(pick(data, MEDICATION_FIELDS))
        with self._transaction() as doc:
            now = utcnow().isoformat()
            med = {
                "id": self._next_id(doc, "medication"),
                "purpose": None,
                "prescribing_doctor": None,
                "prescription_date": None,
                "side_effects": None,
                "notes": None,
                "total_quantity": None,
                **data,
                "refill_count": 0,
                "created_at": now,
                "updated_at": now,
            }
            if med.get("remaining_quantity") is None:
                med["remaining_quantity"] = med["total_quantity"]
            med["remaining_quantity"] = clamp_quantity(med["remaining_quantity"])
            doc["medications"].append(med)

        logger.info(f"Medication {med['id']} created: {med['name']}")
        return dict(med)

    def get_medication(self, medication_id):
        med = self._find(self._doc["medications"], medication_id)
        return dict(med) if med else None

    def all_medications(self):
        return [dict(m) for m in self._doc["medications"]]

    def update_medication(self, medication_id, updates):
        updates = serialize(pick(updates, MEDICATION_FIELDS))
        with self._transaction() as doc:
            med = self._find_or_404(doc, "medication", medication_id)
            med.update(updates)
            med["remaining_quantity"] = clamp_quantity(med.get("remaining_quantity"))
            med["updated_at"] = utcnow().isoformat()
        return dict(med)

    def delete_medication(self, medication_id):
        with self._transaction() as doc:
            med = self._find_or_404(doc, "medication", medication_id)
            doc["medications"].remove(med)
            doc["schedules"] = [s for s in doc["schedules"] if s["medication_id"] != medication_id]
            doc["logs"] = [l for l in doc["logs"] if l["medication_id"] != medication_id]
        logger.info(f"Medication {medication_id} deleted with its schedules and logs")

    def adjust_quantity(self, medication_id, change, is_refill=False):
        with self._transaction() as doc:
            med = self._find_or_404(doc, "medication", medication_id)
            med["remaining_quantity"] = clamp_quantity((med.get("remaining_quantity") or 0) + change)
            if is_refill:
                med["refill_count"] = (med.get("refill_count") or 0) + 1
            med["updated_at"] = utcnow().isoformat()
        return dict(med)

    # ---------------------------- SCHEDULES ----------------------------
    def add_schedule(self, data):
        data = serialize(pick(data, SCHEDULE_FIELDS))
        with self._transaction() as doc:
            self._find_or_404(doc, "medication", data["medication_id"])
            schedule = {
                "id": self._next_id(doc, "schedule"),
                "days_of_week": None,
                "end_date": None,
                "food_timing": "none",
                "special_instructions": None,
                "active": True,
                **data,
                "created_at": utcnow().isoformat(),
            }
            doc["schedules"].append(schedule)

        logger.info(f"Schedule {schedule['id']} created for medication {schedule['medication_id']}")
        return self._schedule_out(schedule)

    def get_schedule(self, schedule_id):
        schedule = self._find(self._doc["schedules"], schedule_id)
        return self._schedule_out(schedule) if schedule else None

    def all_schedules(self):
        return [self._schedule_out(s) for s in self._doc["schedules"]]

    def update_schedule(self, schedule_id, updates):
        updates = serialize(pick(updates, SCHEDULE_FIELDS))
        with self._transaction() as doc:
            schedule = self._find_or_404(doc, "schedule", schedule_id)
            if "medication_id" in updates:
                self._find_or_404(doc, "medication", updates["medication_id"])
            check_schedule_dates(
                updates.get("start_date", schedule.get("start_date")),
                updates.get("end_date", schedule.get("end_date")),
            )
            schedule.update(updates)
            schedule.pop("with_food", None)
        return self._schedule_out(schedule)

    def delete_schedule(self, schedule_id):
        with self._transaction() as doc:
            schedule = self._find_or_404(doc, "schedule", schedule_id)
            doc["schedules"].remove(schedule)
            for log in doc["logs"]:
                if log.get("schedule_id") == schedule_id:
                    log["schedule_id"] = None

    # ---------------------------- LOGS ----------------------------
    def add_log(self, data):
        data = serialize(pick(data, LOG_FIELDS))
        with self._transaction() as doc:
            med = self._find_or_404(doc, "medication", data["medication_id"])
            if data.get("schedule_id") is not None:
                self._find_or_404(doc, "schedule", data["schedule_id"])

            now = utcnow().isoformat()
            log = {
                "id": self._next_id(doc, "log"),
                "schedule_id": None,
                "notes": None,
                **data,
                "created_at": now,
            }
            if not log.get("taken_at"):
                log["taken_at"] = now
            doc["logs"].append(log)

            if log["status"] == "taken" and (med.get("remaining_quantity") or 0) > 0:
                med["remaining_quantity"] -= 1
                med["updated_at"] = now

        logger.info(f"Log {log['id']}: medication {log['medication_id']} {log['status']}")
        return dict(log)

    def all_logs(self):
        return [dict(l) for l in self._doc["logs"]]

    # ---------------------------- INTERACTIONS ----------------------------
    def add_interaction(self, data):
        data = serialize(pick(data, INTERACTION_FIELDS))
        with self._transaction() as doc:
            self._find_or_404(doc, "medication", data["medication1_id"])
            self._find_or_404(doc, "medication", data["medication2_id"])
            interaction = {
                "id": self._next_id(doc, "interaction"),
                "severity": None,
                "description": None,
                "recommendations": None,
                **data,
                "created_at": utcnow().isoformat(),
            }
            doc["interactions"].append(interaction)
        return dict(interaction)

    def all_interactions(self):
        return [dict(i) for i in self._doc["interactions"]]
