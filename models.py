from datetime import datetime, timezone
from flask_sqlalchemy import SQLAlchemy

from scheduling import normalize_food_timing

db = SQLAlchemy()


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def iso(value):
    return value.isoformat() if value is not None else None


class Medication(db.Model):
    # AUTOINCREMENT so SQLite never hands out the id of a deleted row again
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False, index=True)
    dosage = db.Column(db.String(100), nullable=False)
    form = db.Column(db.String(50), nullable=False)

    purpose = db.Column(db.String(500))
    prescribing_doctor = db.Column(db.String(200))
    prescription_date = db.Column(db.String(10))
    side_effects = db.Column(db.String(1000))
    notes = db.Column(db.String(1000))

    total_quantity = db.Column(db.Integer)
    remaining_quantity = db.Column(db.Integer)
    refill_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    schedules = db.relationship("Schedule", backref="medication", lazy=True,
                                cascade="all, delete-orphan")
    logs = db.relationship("MedicationLog", backref="medication", lazy=True,
                           cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "dosage": self.dosage,
            "form": self.form,
            "purpose": self.purpose,
            "prescribing_doctor": self.prescribing_doctor,
            "prescription_date": self.prescription_date,
            "side_effects": self.side_effects,
            "notes": self.notes,
            "total_quantity": self.total_quantity,
            "remaining_quantity": self.remaining_quantity,
            "refill_count": self.refill_count or 0,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }


class Schedule(db.Model):
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    medication_id = db.Column(db.Integer, db.ForeignKey("medication.id"), nullable=False, index=True)
    time = db.Column(db.Time, nullable=False)
    frequency = db.Column(db.String(10), nullable=False)  # daily/weekly/as_needed
    days_of_week = db.Column(db.String(30))               # "Mon,Wed,Fri"
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date)
    food_timing = db.Column(db.String(12), nullable=False, default="none")
    special_instructions = db.Column(db.String(500))
    active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "medication_id": self.medication_id,
            "time": self.time.strftime("%H:%M"),
            "frequency": self.frequency,
            "days_of_week": self.days_of_week,
            "start_date": iso(self.start_date),
            "end_date": iso(self.end_date),
            # rows written before food_timing existed may still hold "with_food"
            "food_timing": normalize_food_timing(self.food_timing),
            "special_instructions": self.special_instructions,
            "active": bool(self.active),
            "created_at": iso(self.created_at),
        }


class MedicationLog(db.Model):
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    medication_id = db.Column(db.Integer, db.ForeignKey("medication.id"), nullable=False, index=True)
    schedule_id = db.Column(db.Integer, db.ForeignKey("schedule.id"), index=True)
    status = db.Column(db.String(10), nullable=False)  # taken/missed/skipped
    notes = db.Column(db.String(1000))
    taken_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "medication_id": self.medication_id,
            "schedule_id": self.schedule_id,
            "status": self.status,
            "notes": self.notes,
            "taken_at": iso(self.taken_at),
            "created_at": iso(self.created_at),
        }


class Interaction(db.Model):
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    # plain columns: an interaction outlives either medication and shows "Unknown"
    medication1_id = db.Column(db.Integer, nullable=False, index=True)
    medication2_id = db.Column(db.Integer, nullable=False, index=True)
    severity = db.Column(db.String(20))
    description = db.Column(db.String(1000))
    recommendations = db.Column(db.String(1000))
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "medication1_id": self.medication1_id,
            "medication2_id": self.medication2_id,
            "severity": self.severity,
            "description": self.description,
            "recommendations": self.recommendations,
            "created_at": iso(self.created_at),
        }
