from errors import StoreFailure


def test_root_reports_ok(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"


def test_create_medication_and_get_detail(client, add_med):
    med_id = add_med(total_quantity=30, purpose="Diabetes")

    response = client.get(f"/api/medications/{med_id}")

    assert response.status_code == 200
    body = response.get_json()
    assert body["medication"]["name"] == "Metformin"
    assert body["medication"]["remaining_quantity"] == 30
    assert body["medication"]["refill_count"] == 0
    assert body["schedules"] == []
    assert body["recent_logs"] == []


def test_create_medication_missing_required_fields(client):
    response = client.post("/api/medications/", json={"name": "Ibuprofen"})

    assert response.status_code == 400
    errors = response.get_json()["errors"]
    assert any(e.startswith("dosage") for e in errors)
    assert any(e.startswith("form") for e in errors)

    assert client.get("/api/medications/").get_json()["medications"] == []


def test_create_medication_without_json(client):
    response = client.post("/api/medications/", data="nope", content_type="text/plain")
    assert response.status_code == 400


def test_missing_medication_returns_404(client):
    assert client.get("/api/medications/99").status_code == 404
    assert client.put("/api/medications/99", json={"name": "X"}).status_code == 404
    assert client.delete("/api/medications/99").status_code == 404
    assert client.get("/api/medications/99").get_json() == {"error": "Medication not found"}


def test_list_with_search_and_active_only(client, add_med):
    add_med(name="Metformin", purpose="Diabetes", total_quantity=10)
    add_med(name="Lisinopril", purpose="Blood pressure", total_quantity=0)
    add_med(name="Aspirin", purpose=None)

    names = lambda r: [m["name"] for m in r.get_json()["medications"]]

    assert names(client.get("/api/medications/")) == ["Aspirin", "Lisinopril", "Metformin"]
    assert names(client.get("/api/medications/?search=BLOOD")) == ["Lisinopril"]
    assert names(client.get("/api/medications/?search=metf")) == ["Metformin"]
    assert names(client.get("/api/medications/?active_only=true")) == ["Metformin"]


def test_partial_update(client, add_med):
    med_id = add_med(total_quantity=10)

    response = client.put(f"/api/medications/{med_id}", json={"dosage": "850mg", "medication_id": 5})
    assert response.status_code == 200
    assert response.get_json() == {"success": True}

    med = client.get(f"/api/medications/{med_id}").get_json()["medication"]
    assert med["dosage"] == "850mg"
    assert med["name"] == "Metformin"


def test_update_with_blank_name_fails(client, add_med):
    med_id = add_med()
    response = client.put(f"/api/medications/{med_id}", json={"name": "  "})
    assert response.status_code == 400


def test_delete_cascades_schedules_and_logs(client, add_med, add_schedule):
    med_id = add_med(total_quantity=10)
    other_id = add_med(name="Aspirin")
    add_schedule(med_id)
    add_schedule(other_id)
    client.post("/api/logs/", json={"medication_id": med_id, "status": "taken"})
    client.post("/api/logs/", json={"medication_id": other_id, "status": "taken"})

    response = client.delete(f"/api/medications/{med_id}")
    assert response.status_code == 200

    assert client.get(f"/api/medications/{med_id}").status_code == 404
    schedules = client.get("/api/schedules/").get_json()["schedules"]
    assert [s["medication_id"] for s in schedules] == [other_id]
    history = client.get("/api/logs/").get_json()["history"]
    assert [l["medication_id"] for l in history] == [other_id]


def test_ids_are_never_reused(client, add_med):
    first = add_med()
    second = add_med(name="Aspirin")
    client.delete(f"/api/medications/{second}")

    third = add_med(name="Ibuprofen")
    assert third not in (first, second)
    assert third > second


def test_refill_increments_counter(client, add_med):
    med_id = add_med(total_quantity=30, remaining_quantity=2)

    response = client.post(f"/api/medications/{med_id}/quantity",
                           json={"quantity_change": 30, "is_refill": True})

    assert response.status_code == 200
    assert response.get_json() == {"success": True, "remaining_quantity": 32, "refill_count": 1}


def test_quantity_adjustment_floors_at_zero(client, add_med):
    med_id = add_med(total_quantity=3)

    response = client.post(f"/api/medications/{med_id}/quantity", json={"quantity_change": -10})

    body = response.get_json()
    assert body["remaining_quantity"] == 0
    assert body["refill_count"] == 0


def test_quantity_adjustment_without_prior_quantity(client, add_med):
    med_id = add_med()

    response = client.post(f"/api/medications/{med_id}/quantity", json={"quantity_change": 5})
    assert response.get_json()["remaining_quantity"] == 5


def test_invalid_quantity_adjustment(client, add_med):
    med_id = add_med()

    assert client.post(f"/api/medications/{med_id}/quantity", json={}).status_code == 400
    assert client.post(f"/api/medications/{med_id}/quantity",
                       json={"quantity_change": "a lot"}).status_code == 400
    assert client.post("/api/medications/99/quantity",
                       json={"quantity_change": 1}).status_code == 404


def test_detail_shows_ten_most_recent_logs(client, add_med):
    med_id = add_med()
    for day in range(1, 13):
        client.post("/api/logs/", json={
            "medication_id": med_id,
            "status": "missed",
            "taken_at": f"2026-10-{day:02d}T08:00:00",
        })

    logs = client.get(f"/api/medications/{med_id}").get_json()["recent_logs"]

    assert len(logs) == 10
    assert logs[0]["taken_at"].startswith("2026-10-12")
    assert logs[-1]["taken_at"].startswith("2026-10-03")


def test_store_failure_is_a_json_500(client, app, monkeypatch):
    def broken(data):
        raise StoreFailure("Error adding medication")

    monkeypatch.setattr(app.extensions["medication_store"], "add_medication", broken)

    response = client.post("/api/medications/", json={"name": "A", "dosage": "1", "form": "tablet"})

    assert response.status_code == 500
    assert response.get_json() == {"error": "Error adding medication"}


def test_unknown_route_is_json_404(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert "error" in response.get_json()
