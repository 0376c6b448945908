import pytest

from app import create_app
from models import db


@pytest.fixture(params=["sql", "memory"])
def app(request):

    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "STORE_BACKEND": request.param,
    })

    with app.app_context():
        db.drop_all()
        db.create_all()

    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    with app.app_context():
        yield app.extensions["medication_store"]


@pytest.fixture
def add_med(client):
    def _add(**fields):
        payload = {"name": "Metformin", "dosage": "500mg", "form": "tablet"}
        payload.update(fields)
        response = client.post("/api/medications/", json=payload)
        assert response.status_code == 201, response.get_json()
        return response.get_json()["medication_id"]
    return _add


@pytest.fixture
def add_schedule(client):
    def _add(medication_id, **fields):
        payload = {
            "medication_id": medication_id,
            "time": "08:00",
            "frequency": "daily",
            "start_date": "2026-01-01",
        }
        payload.update(fields)
        response = client.post("/api/schedules/", json=payload)
        assert response.status_code == 201, response.get_json()
        return response.get_json()["schedule_id"]
    return _add
