import pytest


def remaining(client, med_id):
    return client.get(f"/api/medications/{med_id}").get_json()["medication"]["remaining_quantity"]


def log_dose(client, med_id, status="taken", **fields):
    return client.post("/api/logs/", json={"medication_id": med_id, "status": status, **fields})


def test_taken_decrements_by_one(client, add_med):
    med_id = add_med(total_quantity=5)

    response = log_dose(client, med_id)

    assert response.status_code == 201
    assert response.get_json()["success"] is True
    assert remaining(client, med_id) == 4


@pytest.mark.parametrize("status", ["missed", "skipped"])
def test_other_statuses_do_not_touch_quantity(client, add_med, status):
    med_id = add_med(total_quantity=5)
    log_dose(client, med_id, status)
    assert remaining(client, med_id) == 5


def test_quantity_never_goes_negative(client, add_med):
    med_id = add_med(total_quantity=1)

    log_dose(client, med_id)
    log_dose(client, med_id)

    assert remaining(client, med_id) == 0
    assert len(client.get("/api/logs/").get_json()["history"]) == 2


def test_untracked_quantity_stays_null(client, add_med):
    med_id = add_med()
    log_dose(client, med_id)
    assert remaining(client, med_id) is None


def test_log_validation(client, add_med):
    med_id = add_med(total_quantity=5)

    assert client.post("/api/logs/", json={"status": "taken"}).status_code == 400
    assert client.post("/api/logs/", json={"medication_id": med_id}).status_code == 400
    assert log_dose(client, med_id, "forgot").status_code == 400
    assert log_dose(client, med_id, taken_at="yesterday").status_code == 400

    assert remaining(client, med_id) == 5
    assert client.get("/api/logs/").get_json()["history"] == []


def test_log_for_missing_records(client, add_med):
    med_id = add_med(total_quantity=5)

    assert log_dose(client, 42).status_code == 404
    assert log_dose(client, med_id, schedule_id=42).status_code == 404
    assert remaining(client, med_id) == 5


def test_explicit_taken_at_is_kept(client, add_med):
    med_id = add_med()
    log_dose(client, med_id, taken_at="2026-10-14T06:30:00Z", notes="with breakfast")

    entry = client.get("/api/logs/").get_json()["history"][0]
    assert entry["taken_at"].startswith("2026-10-14T06:30:00")
    assert entry["notes"] == "with breakfast"


def test_history_is_newest_first_and_joined(client, add_med):
    med_id = add_med()
    for day in ("05", "01", "09"):
        log_dose(client, med_id, taken_at=f"2026-10-{day}T08:00:00")

    history = client.get("/api/logs/").get_json()["history"]

    assert [h["taken_at"][:10] for h in history] == ["2026-10-09", "2026-10-05", "2026-10-01"]
    assert history[0]["medication_name"] == "Metformin"
    assert history[0]["dosage"] == "500mg"


def test_history_filters(client, add_med):
    first = add_med()
    second = add_med(name="Aspirin")
    for day in range(1, 8):
        log_dose(client, first, taken_at=f"2026-10-{day:02d}T23:30:00")
    log_dose(client, second, taken_at="2026-10-03T08:00:00")

    by_med = client.get(f"/api/logs/?medication_id={second}").get_json()["history"]
    assert [h["medication_id"] for h in by_med] == [second]

    limited = client.get("/api/logs/?limit=3").get_json()["history"]
    assert len(limited) == 3

    ranged = client.get(
        f"/api/logs/?medication_id={first}&start_date=2026-10-03&end_date=2026-10-05"
    ).get_json()["history"]
    assert [h["taken_at"][:10] for h in ranged] == ["2026-10-05", "2026-10-04", "2026-10-03"]


def test_history_default_limit(client, add_med):
    client.application.config["HISTORY_LIMIT"] = 4
    med_id = add_med()
    for day in range(1, 7):
        log_dose(client, med_id, "missed", taken_at=f"2026-10-{day:02d}T08:00:00")

    assert len(client.get("/api/logs/").get_json()["history"]) == 4


def test_history_bad_query(client):
    assert client.get("/api/logs/?limit=many").status_code == 400
    assert client.get("/api/logs/?start_date=today").status_code == 400
