"""HTTP tests: routes, identity header and error mapping over a real database."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from brokerage_ledger.db.models import Symbol
from brokerage_ledger.identity import USER_ID_HEADER
from brokerage_ledger.ledger import LedgerStore
from brokerage_ledger.main import create_app


@pytest.fixture
def client(db_engine):
    with TestClient(create_app(db_engine, lock_timeout=5.0)) as c:
        yield c


def auth(user_id: int) -> dict[str, str]:
    return {USER_ID_HEADER: str(user_id)}


class _SerializationFailure(Exception):
    sqlstate = "40001"


def test_health(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


class TestIdentity:
    @pytest.mark.parametrize("headers", [{}, {USER_ID_HEADER: "abc"}, {USER_ID_HEADER: "999"}])
    def test_unauthenticated(self, client, headers):
        response = client.get("/balances", headers=headers)
        assert response.status_code == 401
        assert response.json() == {"detail": {"error": "Unauthorized"}}

    def test_trade_requires_identity(self, client):
        response = client.post("/buy", json={"symbol": "AAPL", "name": "Apple", "price": 1, "shares": 1})
        assert response.status_code == 401

    def test_me(self, client, make_user):
        user_id = make_user(email="alice@example.com")
        response = client.get("/me", headers=auth(user_id))
        assert response.status_code == 200
        assert response.json() == {"id": user_id, "email": "alice@example.com"}


class TestTradeFlow:
    def test_deposit_buy_sell(self, client, make_user):
        headers = auth(make_user())

        balances = client.get("/balances", headers=headers).json()
        assert balances == {"wallet_balance": None, "brokerage_value": "0.00"}

        deposit = client.post("/deposit", json={"amount": "10000"}, headers=headers)
        assert deposit.status_code == 200
        assert deposit.json()["new_wallet_balance"] == "10000.00"

        buy = client.post(
            "/buy",
            json={"symbol": "aapl", "name": "Apple Inc.", "price": "100", "shares": 10},
            headers=headers,
        )
        assert buy.status_code == 200
        bought = buy.json()
        assert bought["success"] is True
        assert bought["new_wallet_balance"] == "9000.00"
        assert bought["new_brokerage_value"] == "1000.00"
        assert bought["purchase"]["symbol"] == "AAPL"
        assert bought["purchase"]["total_cost"] == "1000.00"

        sell = client.post(
            "/sell", json={"positionId": bought["position_id"], "shares": 4}, headers=headers
        )
        assert sell.status_code == 200
        sold = sell.json()
        assert sold["new_wallet_balance"] == "9400.00"
        assert sold["new_brokerage_value"] == "600.00"
        assert sold["sale"]["total_value"] == "400.00"
        assert sold["sale"]["realized_pnl"] == "0.00"
        assert sold["sale"]["remaining_shares"] == 6
        assert sold["sale"]["position_closed"] is False

        [position] = client.get("/positions", headers=headers).json()
        assert position["id"] == bought["position_id"]
        assert position["shares"] == 6
        assert position["avg_price"] == "100.00"
        assert position["market_value"] == "600.00"

        assert client.get("/balances", headers=headers).json() == {
            "wallet_balance": "9400.00",
            "brokerage_value": "600.00",
        }

        wallet = client.get("/wallet-balances", headers=headers).json()
        assert [w["balance"] for w in wallet] == ["10000.00", "9000.00", "9400.00"]
        brokerage = client.get("/brokerage-values", headers=headers).json()
        assert [b["value"] for b in brokerage] == ["1000.00", "600.00"]

        transactions = client.get("/transactions", headers=headers).json()
        assert [t["type"] for t in transactions] == ["SELL", "BUY", "DEPOSIT"]
        assert transactions[0]["from"] == "BROKERAGE"
        assert transactions[0]["to"] == "WALLET"
        assert transactions[0]["price_per_share"] == "100.00"
        assert transactions[2]["from"] == "EXTERNAL"
        assert transactions[2]["symbol"] is None

        limited = client.get("/transactions", params={"limit": 1}, headers=headers).json()
        assert [t["type"] for t in limited] == ["SELL"]

    def test_sell_all_closes_position(self, client, make_user):
        headers = auth(make_user(balance="500"))
        bought = client.post(
            "/buy",
            json={"symbol": "MSFT", "name": "Microsoft", "price": "50", "shares": 2},
            headers=headers,
        ).json()

        sold = client.post(
            "/sell", json={"position_id": bought["position_id"], "shares": 2}, headers=headers
        ).json()

        assert sold["sale"]["position_closed"] is True
        assert client.get("/positions", headers=headers).json() == []

    def test_withdraw(self, client, make_user):
        headers = auth(make_user(balance="100"))
        response = client.post("/withdraw", json={"amount": 40.5}, headers=headers)
        assert response.status_code == 200
        assert response.json()["new_wallet_balance"] == "59.50"


class TestErrors:
    def test_insufficient_funds(self, client, make_user):
        headers = auth(make_user(balance="100"))
        response = client.post(
            "/buy",
            json={"symbol": "TSLA", "name": "Tesla", "price": "600", "shares": 1},
            headers=headers,
        )
        assert response.status_code == 400
        assert response.json() == {
            "detail": {
                "error": "Insufficient funds",
                "code": "insufficient_funds",
                "details": {"required": "600.00", "available": "100.00", "shortfall": "500.00"},
            }
        }
        assert client.get("/transactions", headers=headers).json() == []

    def test_other_users_position_is_not_found(self, client, make_user):
        owner = auth(make_user(balance="1000"))
        intruder = auth(make_user(balance="1000"))
        bought = client.post(
            "/buy",
            json={"symbol": "NVDA", "name": "NVIDIA", "price": "10", "shares": 5},
            headers=owner,
        ).json()

        response = client.post(
            "/sell", json={"positionId": bought["position_id"], "shares": 1}, headers=intruder
        )

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "Position not found"
        [position] = client.get("/positions", headers=owner).json()
        assert position["shares"] == 5

    def test_oversell(self, client, make_user):
        headers = auth(make_user(balance="1000"))
        bought = client.post(
            "/buy",
            json={"symbol": "NVDA", "name": "NVIDIA", "price": "10", "shares": 5},
            headers=headers,
        ).json()
        response = client.post(
            "/sell", json={"positionId": bought["position_id"], "shares": 6}, headers=headers
        )
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "insufficient_shares"
        assert response.json()["detail"]["details"] == {"requested": 6, "available": 5}

    @pytest.mark.parametrize(
        "body",
        [
            {"symbol": "AAPL", "name": "Apple", "price": "10", "shares": 1.5},
            {"symbol": "AAPL", "name": "Apple", "price": "0", "shares": 1},
            {"symbol": "", "name": "Apple", "price": "10", "shares": 1},
            {"symbol": "AAPL", "name": "Apple", "price": "ten", "shares": 1},
            {"symbol": "AAPL", "name": "Apple", "price": 1e30, "shares": 1},
            {"symbol": "AAPL", "name": "Apple", "price": "10", "shares": 2**63},
            {},
        ],
    )
    def test_validation_is_400(self, client, make_user, body):
        headers = auth(make_user(balance="1000"))
        response = client.post("/buy", json=body, headers=headers)
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "validation_error"

    def test_oversized_deposit_is_400(self, client, make_user):
        response = client.post(
            "/deposit", json={"amount": "100000000000000000"}, headers=auth(make_user())
        )
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "validation_error"

    def test_withdraw_without_wallet(self, client, make_user):
        response = client.post("/withdraw", json={"amount": "1"}, headers=auth(make_user()))
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "wallet_not_found"

    def test_conflict_is_409_with_retry_after(self, client, make_user, monkeypatch):
        headers = auth(make_user(balance="1000"))

        def conflict(*args, **kwargs):
            raise OperationalError("INSERT", {}, _SerializationFailure("could not serialize"))

        monkeypatch.setattr(LedgerStore, "append_wallet_balance", conflict)
        response = client.post("/deposit", json={"amount": "5"}, headers=headers)

        assert response.status_code == 409
        assert response.headers["Retry-After"] == "1"
        assert response.json()["detail"]["retryable"] is True

    def test_unexpected_failure_is_generic_500(self, client, make_user, monkeypatch):
        headers = auth(make_user(balance="1000"))

        def boom(*args, **kwargs):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(LedgerStore, "append_transaction", boom)
        response = client.post("/withdraw", json={"amount": "5"}, headers=headers)

        assert response.status_code == 500
        assert response.json() == {
            "detail": {"error": "Internal server error", "code": "internal_error"}
        }
        assert client.get("/balances", headers=headers).json()["wallet_balance"] == "1000.00"

    def test_transactions_limit_bounds(self, client, make_user):
        response = client.get("/transactions", params={"limit": 0}, headers=auth(make_user()))
        assert response.status_code == 422


def test_symbols_sorted(client, db_engine):
    with Session(db_engine) as session, session.begin():
        session.add(Symbol(symbol="TSLA", name="Tesla Inc.", price_cents=24_850))
        session.add(Symbol(symbol="AAPL", name="Apple Inc.", price_cents=18_245))

    response = client.get("/symbols")

    assert response.status_code == 200
    assert response.json() == [
        {"symbol": "AAPL", "name": "Apple Inc.", "price": "182.45"},
        {"symbol": "TSLA", "name": "Tesla Inc.", "price": "248.50"},
    ]
