"""
Command-line tools, available as `flask <command>`.

They mirror the HTTP API so the same operations can be driven from a shell
or by an assistant without going through the web server.
"""
import json
import logging
from datetime import datetime, timezone

import click
from flask import current_app

from errors import MedicationManagerError
from models import db
from routes import get_store
from scheduling import (
    FOOD_TIMINGS,
    FREQUENCIES,
    LOG_STATUSES,
    due_reminders,
    today_utc,
    window_start,
)
from validation import (
    parse_date,
    validate_log,
    validate_medication,
    validate_schedule,
    validate_window_days,
)

logger = logging.getLogger(__name__)


def options_payload(**options):
    return {k: v for k, v in options.items() if v is not None}


def echo_json(data):
    click.echo(json.dumps(data, indent=2))


def run(action):
    try:
        return action()
    except MedicationManagerError as e:
        raise click.ClickException(e.message)


def register_commands(app):

    @app.cli.command("init-db")
    def init_db_command():
        """Drops and creates all database tables."""
        db.drop_all()
        db.create_all()
        click.echo("Database initialized.")

    @app.cli.command("add-medication")
    @click.option("--name", required=True)
    @click.option("--dosage", required=True)
    @click.option("--form", "form_", required=True, help="tablet, capsule, syrup...")
    @click.option("--purpose")
    @click.option("--total-quantity", type=int)
    def add_medication_command(name, dosage, form_, purpose, total_quantity):
        """Add a medication."""
        payload = options_payload(name=name, dosage=dosage, form=form_, purpose=purpose,
                                  total_quantity=total_quantity)
        med = run(lambda: get_store().add_medication(validate_medication(payload)))
        echo_json({"success": True, "medication_id": med["id"]})

    @app.cli.command("list-medications")
    @click.option("--search")
    @click.option("--active-only", is_flag=True)
    def list_medications_command(search, active_only):
        echo_json({"medications": get_store().list_medications(search, active_only)})

    @app.cli.command("get-medication")
    @click.argument("medication_id", type=int)
    def get_medication_command(medication_id):
        """Medication detail with its schedules and most recent logs."""
        echo_json(run(lambda: get_store().medication_detail(medication_id)))

    @app.cli.command("update-medication")
    @click.argument("medication_id", type=int)
    @click.option("--name")
    @click.option("--dosage")
    @click.option("--form", "form_")
    @click.option("--purpose")
    @click.option("--total-quantity", type=int)
    @click.option("--remaining-quantity", type=int)
    @click.option("--notes")
    def update_medication_command(medication_id, name, dosage, form_, purpose,
                                  total_quantity, remaining_quantity, notes):
        """Change the given fields of a medication."""
        payload = options_payload(name=name, dosage=dosage, form=form_, purpose=purpose,
                                  total_quantity=total_quantity,
                                  remaining_quantity=remaining_quantity, notes=notes)
        run(lambda: get_store().update_medication(
            medication_id, validate_medication(payload, partial=True)))
        echo_json({"success": True})

    @app.cli.command("delete-medication")
    @click.argument("medication_id", type=int)
    def delete_medication_command(medication_id):
        """Delete a medication with its schedules and logs."""
        run(lambda: get_store().delete_medication(medication_id))
        echo_json({"success": True})

    @app.cli.command("add-schedule")
    @click.argument("medication_id", type=int)
    @click.option("--time", "at", required=True, help="HH:MM")
    @click.option("--frequency", type=click.Choice(FREQUENCIES), default="daily", show_default=True)
    @click.option("--days", help="Comma separated, e.g. Mon,Wed,Fri (weekly only)")
    @click.option("--start-date", help="YYYY-MM-DD, defaults to today (UTC)")
    @click.option("--end-date", help="YYYY-MM-DD")
    @click.option("--food-timing", type=click.Choice(FOOD_TIMINGS))
    @click.option("--instructions")
    def add_schedule_command(medication_id, at, frequency, days, start_date, end_date,
                             food_timing, instructions):
        """Schedule a dose of a medication."""
        payload = options_payload(medication_id=medication_id, time=at, frequency=frequency,
                                  days_of_week=days,
                                  start_date=start_date or today_utc().isoformat(),
                                  end_date=end_date, food_timing=food_timing,
                                  special_instructions=instructions)
        schedule = run(lambda: get_store().add_schedule(validate_schedule(payload)))
        echo_json({"success": True, "schedule_id": schedule["id"]})

    @app.cli.command("list-schedules")
    @click.option("--medication-id", type=int)
    @click.option("--active-only", is_flag=True)
    def list_schedules_command(medication_id, active_only):
        echo_json({"schedules": get_store().list_schedules(medication_id, active_only)})

    @app.cli.command("history")
    @click.option("--medication-id", type=int)
    @click.option("--start-date", type=click.DateTime(formats=["%Y-%m-%d"]))
    @click.option("--end-date", type=click.DateTime(formats=["%Y-%m-%d"]))
    @click.option("--limit", type=click.IntRange(min=0))
    def history_command(medication_id, start_date, end_date, limit):
        """Logged doses, newest first."""
        if limit is None:
            limit = current_app.config["HISTORY_LIMIT"]
        history = get_store().list_logs(
            medication_id=medication_id,
            start_date=start_date.date() if start_date else None,
            end_date=end_date.date() if end_date else None,
            limit=limit,
        )
        echo_json({"history": history})

    @app.cli.command("log-dose")
    @click.argument("medication_id", type=int)
    @click.argument("status", type=click.Choice(LOG_STATUSES))
    @click.option("--schedule-id", type=int)
    @click.option("--notes")
    def log_dose_command(medication_id, status, schedule_id, notes):
        """Log a dose as taken, missed or skipped."""
        payload = {"medication_id": medication_id, "status": status,
                   "schedule_id": schedule_id, "notes": notes}
        log = run(lambda: get_store().add_log(validate_log(payload)))
        echo_json({"success": True, "log_id": log["id"]})

    @app.cli.command("today")
    @click.option("--date", "on", help="YYYY-MM-DD, defaults to today (UTC)")
    def today_command(on):
        """Show today's medication schedule."""
        try:
            day = parse_date(on) if on else today_utc()
        except ValueError:
            raise click.BadParameter("expected YYYY-MM-DD", param_hint="--date")
        echo_json({"date": day.isoformat(), "schedules": get_store().today_schedule(day)})

    @app.cli.command("refill-alerts")
    @click.option("--threshold", type=int)
    def refill_alerts_command(threshold):
        """Medications running low."""
        if threshold is None:
            threshold = current_app.config["REFILL_THRESHOLD"]
        echo_json({"threshold": threshold,
                   "medications_needing_refill": get_store().refill_alerts(threshold)})

    @app.cli.command("adherence")
    @click.option("--days", type=int)
    @click.option("--medication-id", type=int)
    def adherence_command(days, medication_id):
        """Adherence statistics per medication."""
        if days is None:
            days = current_app.config["ADHERENCE_DAYS"]
        today = today_utc()
        run(lambda: validate_window_days(days, today))
        echo_json({
            "period_days": days,
            "start_date": window_start(today, days).isoformat(),
            "statistics": get_store().adherence(days, today, medication_id),
        })

    @app.cli.command("reminders")
    @click.option("--at", "at", help="HH:MM, defaults to the current UTC time")
    def reminders_command(at):
        """Doses due now that have not been logged yet."""
        now = datetime.now(timezone.utc)
        at = at or now.strftime("%H:%M")
        due = due_reminders(get_store().today_schedule(now.date()), at)

        for s in due:
            logger.info(f"Reminder: time to take {s['name']} ({s['dosage']}) at {s['time']}")
        echo_json({"time": at, "reminders": due})
