import logging

from sqlalchemy import case, func, update
from sqlalchemy.exc import SQLAlchemyError

from errors import RecordNotFound, StoreFailure
from models import Interaction, Medication, MedicationLog, Schedule, utcnow
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


class SQLStore(RecordStore):
    """
    Store backed by the Flask-SQLAlchemy models. Must be used inside an
    application context. Every mutation is one session transaction that is
    rolled back on failure.
    """

    def __init__(self, db):
        self.db = db

    def _commit(self, action):
        try:
            self.db.session.commit()
        except SQLAlchemyError as e:
            self.db.session.rollback()
            logger.error(f"Error {action}: {e}")
            raise StoreFailure(f"Error {action}") from e

    def _get_or_404(self, model, kind, record_id):
        record = self.db.session.get(model, record_id)
        if record is None:
            raise RecordNotFound(kind, record_id)
        return record

    # ---------------------------- MEDICATIONS ----------------------------
    def add_medication(self, data):
        data = pick(data, MEDICATION_FIELDS)
        data["refill_count"] = 0
        if data.get("remaining_quantity") is None:
            data["remaining_quantity"] = data.get("total_quantity")
        data["remaining_quantity"] = clamp_quantity(data["remaining_quantity"])

        med = Medication(**data)
        self.db.session.add(med)
        self._commit("adding medication")
        logger.info(f"Medication {med.id} created: {med.name}")
        return med.to_dict()

    def get_medication(self, medication_id):
        med = self.db.session.get(Medication, medication_id)
        return med.to_dict() if med else None

    def all_medications(self):
        return [m.to_dict() for m in Medication.query.order_by(Medication.id).all()]

    def update_medication(self, medication_id, updates):
        med = self._get_or_404(Medication, "medication", medication_id)

        for field, value in pick(updates, MEDICATION_FIELDS).items():
            setattr(med, field, value)
        med.remaining_quantity = clamp_quantity(med.remaining_quantity)
        med.updated_at = utcnow()

        self._commit("updating medication")
        return med.to_dict()

    def delete_medication(self, medication_id):
        med = self._get_or_404(Medication, "medication", medication_id)

        MedicationLog.query.filter_by(medication_id=med.id).delete()
        Schedule.query.filter_by(medication_id=med.id).delete()
        self.db.session.delete(med)

        self._commit("deleting medication")
        logger.info(f"Medication {medication_id} deleted with its schedules and logs")

    def adjust_quantity(self, medication_id, change, is_refill=False):
        new_quantity = func.coalesce(Medication.remaining_quantity, 0) + change
        values = {
            "remaining_quantity": case((new_quantity < 0, 0), else_=new_quantity),
            "updated_at": utcnow(),
        }
        if is_refill:
            values["refill_count"] = func.coalesce(Medication.refill_count, 0) + 1

        stmt = update(Medication).where(Medication.id == medication_id).values(**values)
        try:
            result = self.db.session.execute(stmt.execution_options(synchronize_session=False))
        except SQLAlchemyError as e:
            self.db.session.rollback()
            logger.error(f"Error adjusting quantity: {e}")
            raise StoreFailure("Error adjusting quantity") from e

        if result.rowcount == 0:
            self.db.session.rollback()
            raise RecordNotFound("medication", medication_id)

        self._commit("adjusting quantity")
        return self.get_medication(medication_id)

    # ---------------------------- SCHEDULES ----------------------------
    def add_schedule(self, data):
        data = pick(data, SCHEDULE_FIELDS)
        self._get_or_404(Medication, "medication", data["medication_id"])
        data.setdefault("active", True)
        data.setdefault("food_timing", "none")

        schedule = Schedule(**data)
        self.db.session.add(schedule)
        self._commit("adding schedule")
        logger.info(f"Schedule {schedule.id} created for medication {schedule.medication_id}")
        return schedule.to_dict()

    def get_schedule(self, schedule_id):
        schedule = self.db.session.get(Schedule, schedule_id)
        return schedule.to_dict() if schedule else None

    def all_schedules(self):
        return [s.to_dict() for s in Schedule.query.order_by(Schedule.id).all()]

    def update_schedule(self, schedule_id, updates):
        schedule = self._get_or_404(Schedule, "schedule", schedule_id)
        updates = pick(updates, SCHEDULE_FIELDS)
        if "medication_id" in updates:
            self._get_or_404(Medication, "medication", updates["medication_id"])

        check_schedule_dates(
            updates.get("start_date", schedule.start_date),
            updates.get("end_date", schedule.end_date),
        )
        for field, value in updates.items():
            setattr(schedule, field, value)

        self._commit("updating schedule")
        return schedule.to_dict()

    def delete_schedule(self, schedule_id):
        schedule = self._get_or_404(Schedule, "schedule", schedule_id)

        # logs stay in the history as ad-hoc doses
        MedicationLog.query.filter_by(schedule_id=schedule.id).update({"schedule_id": None})
        self.db.session.delete(schedule)

        self._commit("deleting schedule")

    # ---------------------------- LOGS ----------------------------
    def add_log(self, data):
        data = pick(data, LOG_FIELDS)
        self._get_or_404(Medication, "medication", data["medication_id"])
        if data.get("schedule_id") is not None:
            self._get_or_404(Schedule, "schedule", data["schedule_id"])
        if data.get("taken_at") is None:
            data["taken_at"] = utcnow()

        log = MedicationLog(**data)
        self.db.session.add(log)

        if log.status == "taken":
            # Single conditional UPDATE: two concurrent "taken" logs cannot both
            # consume the last unit.
            self.db.session.execute(
                update(Medication)
                .where(Medication.id == log.medication_id, Medication.remaining_quantity > 0)
                .values(
                    remaining_quantity=Medication.remaining_quantity - 1,
                    updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )

        self._commit("logging dose")
        logger.info(f"Log {log.id}: medication {log.medication_id} {log.status}")
        return log.to_dict()

    def all_logs(self):
        return [l.to_dict() for l in MedicationLog.query.order_by(MedicationLog.id).all()]

    # ---------------------------- INTERACTIONS ----------------------------
    def add_interaction(self, data):
        data = pick(data, INTERACTION_FIELDS)
        self._get_or_404(Medication, "medication", data["medication1_id"])
        self._get_or_404(Medication, "medication", data["medication2_id"])

        interaction = Interaction(**data)
        self.db.session.add(interaction)
        self._commit("adding interaction")
        return interaction.to_dict()

    def all_interactions(self):
        return [i.to_dict() for i in Interaction.query.order_by(Interaction.id).all()]
