from fastapi import FastAPI
from fastapi.testclient import TestClient

from pocketledger.api.routes import router

app = FastAPI()
app.include_router(router)
client = TestClient(app)


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_user_message_round_trip():
    created = client.post(
        "/users", json={"display_name": "Dani", "phone": "5541977776666"}
    )
    assert created.status_code == 200
    user_id = created.json()["id"]

    duplicate = client.post("/users", json={"display_name": "Dani", "phone": "41977776666"})
    assert duplicate.status_code == 409

    found = client.get("/users/phone/+55 41 97777-6666")
    assert found.json()["id"] == user_id

    reply = client.post("/messages", json={"phone": "5541977776666", "text": "spent 12,50 on coffee"})
    assert reply.status_code == 200
    assert "Expense recorded" in reply.json()["reply"]

    transactions = client.get(f"/transactions/{user_id}").json()
    assert len(transactions) == 1
    assert transactions[0]["description"] == "coffee"

    balance = client.get(f"/balance/{user_id}").json()
    assert balance["expense"] == "12.50"


def test_unknown_phone_is_rejected():
    reply = client.post("/messages", json={"phone": "000", "text": "hello"})
    assert "contact support" in reply.json()["reply"]


def test_bad_range():
    response = client.get("/balance/1", params={"start_date": "2025-07-10", "end_date": "2025-07-01"})
    assert response.status_code == 400


def test_app_starts_without_a_bot_token():
    from main import app as main_app

    with TestClient(main_app) as running:
        assert running.get("/health").status_code == 200
        assert getattr(main_app.state, "bot", None) is None
