from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from ..core import db
from ..core.db import get_session, set_engine
from ..main import app, settings
from ..models import OrderStatus
from ..services import OrderRepository, OrderService

ALICE = {"X-User-ID": "alice"}
BOB = {"X-User-ID": "bob"}


@pytest.fixture
def client(engine, monkeypatch) -> TestClient:
    monkeypatch.setattr(settings, "accrual_system_address", None)
    original_engine = db.engine
    set_engine(engine)

    def _get_session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session_override

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    set_engine(original_engine)


def _process(engine, number: str, accrual: str) -> None:
    with Session(engine) as session:
        order = OrderRepository(session).get_order(number)
        OrderService(session).apply_status(order, OrderStatus.PROCESSED, Decimal(accrual))


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_requests_without_user_are_rejected(client: TestClient) -> None:
    assert client.get("/api/user/balance").status_code == 401
    assert client.post("/api/user/orders", content="12345678903").status_code == 401


def test_open_account(client: TestClient) -> None:
    response = client.post("/api/user/account", headers=ALICE)
    assert response.status_code == 201
    assert response.json() == {"user_id": "alice", "current": 0.0, "withdrawn": 0.0}

    again = client.post("/api/user/account", headers=ALICE)
    assert again.status_code == 409


def test_upload_order_status_codes(client: TestClient) -> None:
    headers = {**ALICE, "Content-Type": "text/plain"}
    first = client.post("/api/user/orders", content="12345678903", headers=headers)
    assert first.status_code == 202

    repeat = client.post("/api/user/orders", content="12345678903", headers=headers)
    assert repeat.status_code == 200

    conflict = client.post(
        "/api/user/orders", content="12345678903", headers={**BOB, "Content-Type": "text/plain"}
    )
    assert conflict.status_code == 409

    invalid = client.post("/api/user/orders", content="12345678904", headers=headers)
    assert invalid.status_code == 422

    empty = client.post("/api/user/orders", content="", headers=headers)
    assert empty.status_code == 400


def test_list_orders(client: TestClient, engine) -> None:
    client.post("/api/user/account", headers=ALICE)
    client.post("/api/user/orders", content="79927398713", headers=ALICE)
    client.post("/api/user/orders", content="12345678903", headers=ALICE)
    _process(engine, "79927398713", "500")

    response = client.get("/api/user/orders", headers=ALICE)
    assert response.status_code == 200
    orders = response.json()
    assert [o["number"] for o in orders] == ["12345678903", "79927398713"]
    assert orders[0]["status"] == "NEW"
    assert "accrual" not in orders[0]
    assert orders[1] == {
        "number": "79927398713",
        "status": "PROCESSED",
        "accrual": 500.0,
        "uploaded_at": orders[1]["uploaded_at"],
    }

    assert client.get("/api/user/orders", headers=BOB).json() == []


def test_balance_requires_account(client: TestClient) -> None:
    response = client.get("/api/user/balance", headers=BOB)
    assert response.status_code == 404


def test_withdraw_flow(client: TestClient, engine) -> None:
    client.post("/api/user/account", headers=ALICE)
    client.post("/api/user/orders", content="79927398713", headers=ALICE)
    _process(engine, "79927398713", "500")

    assert client.get("/api/user/balance", headers=ALICE).json() == {
        "current": 500.0,
        "withdrawn": 0.0,
    }

    withdraw = client.post(
        "/api/user/balance/withdraw",
        json={"order": "2377225624", "sum": 751},
        headers=ALICE,
    )
    assert withdraw.status_code == 402

    withdraw = client.post(
        "/api/user/balance/withdraw",
        json={"order": "2377225624", "sum": 120.5},
        headers=ALICE,
    )
    assert withdraw.status_code == 200
    assert withdraw.json()["order"] == "2377225624"
    assert withdraw.json()["sum"] == 120.5

    assert client.get("/api/user/balance", headers=ALICE).json() == {
        "current": 379.5,
        "withdrawn": 120.5,
    }

    listed = client.get("/api/user/withdrawals", headers=ALICE)
    assert listed.status_code == 200
    assert [(w["order"], w["sum"]) for w in listed.json()] == [("2377225624", 120.5)]


def test_withdraw_rejects_bad_input(client: TestClient) -> None:
    client.post("/api/user/account", headers=ALICE)

    bad_number = client.post(
        "/api/user/balance/withdraw",
        json={"order": "2377225625", "sum": 1},
        headers=ALICE,
    )
    assert bad_number.status_code == 422

    bad_sum = client.post(
        "/api/user/balance/withdraw",
        json={"order": "2377225624", "sum": -3},
        headers=ALICE,
    )
    assert bad_sum.status_code == 422


def test_withdrawals_empty_list(client: TestClient) -> None:
    client.post("/api/user/account", headers=ALICE)
    response = client.get("/api/user/withdrawals", headers=ALICE)
    assert response.status_code == 200
    assert response.json() == []


def test_withdraw_full_fractional_balance(client: TestClient, engine) -> None:
    client.post("/api/user/account", headers=ALICE)
    client.post("/api/user/orders", content="18", headers=ALICE)
    client.post("/api/user/orders", content="26", headers=ALICE)
    _process(engine, "18", "0.1")
    _process(engine, "26", "0.2")

    shown = client.get("/api/user/balance", headers=ALICE).json()
    assert shown == {"current": 0.3, "withdrawn": 0.0}

    withdraw = client.post(
        "/api/user/balance/withdraw",
        json={"order": "2377225624", "sum": shown["current"]},
        headers=ALICE,
    )
    assert withdraw.status_code == 200
    assert withdraw.json()["sum"] == 0.3

    assert client.get("/api/user/balance", headers=ALICE).json() == {
        "current": 0.0,
        "withdrawn": 0.3,
    }
