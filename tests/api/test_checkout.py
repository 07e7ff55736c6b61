"""Tests for /api/checkout endpoints."""

from tests.builders import CUSTOMER


def _quote_body(**modifiers):
    return {
        "line_items": [
            {"kind": "service", "id": "svc-1", "name": "Colour", "unit_price_cents": 10000},
            {"kind": "product", "id": "prd-1", "name": "Shampoo", "unit_price_cents": 2500, "quantity": 2},
        ],
        "modifiers": {"tax_rate_percent": "5", **modifiers},
    }


class TestQuote:

    def test_prices_cart(self, client):
        response = client.post("/api/checkout/quote", json=_quote_body())

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["subtotal_before_discount_cents"] == 15000
        assert data["tax_amount_cents"] == 750
        assert data["grand_total_cents"] == 15750

    def test_percentage_discount_and_tip(self, client):
        body = _quote_body(discount={"kind": "percentage", "amount": "10"}, service_tip_cents=500)

        data = client.post("/api/checkout/quote", json=body).json()["data"]

        assert data["discount_amount_cents"] == 1500
        assert data["grand_total_cents"] == 13500 + 675 + 500

    def test_negative_price_rejected(self, client):
        body = {"line_items": [{"kind": "service", "id": "s", "name": "Cut", "unit_price_cents": -1}]}

        response = client.post("/api/checkout/quote", json=body)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_INPUT"

    def test_line_item_needs_kind(self, client):
        body = {"line_items": [{"id": "s", "name": "Cut", "unit_price_cents": 100}]}

        response = client.post("/api/checkout/quote", json=body)

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestAllocation:

    def test_enter_spends_wallet_first(self, client, wallet_repo):
        wallet_repo.seed(CUSTOMER, 5000)

        response = client.post(
            "/api/checkout/allocation/enter",
            json={"customer_id": CUSTOMER, "grand_total_cents": 15750},
        )

        state = response.json()["data"]
        assert state == {
            "grand_total_cents": 15750,
            "wallet_balance_cents": 5000,
            "wallet_cents": 5000,
            "cash_cents": 10750,
        }

    def test_enter_for_new_customer_is_all_cash(self, client):
        state = client.post(
            "/api/checkout/allocation/enter",
            json={"customer_id": "cust-new", "grand_total_cents": 1000},
        ).json()["data"]

        assert state["wallet_cents"] == 0
        assert state["cash_cents"] == 1000

    def test_wallet_edit_is_clamped_to_balance(self, client):
        state = {"grand_total_cents": 15750, "wallet_balance_cents": 5000, "wallet_cents": 5000, "cash_cents": 10750}

        data = client.post(
            "/api/checkout/allocation/edit",
            json={"state": state, "field": "wallet", "amount_cents": 9000},
        ).json()["data"]

        assert data["wallet_cents"] == 5000
        assert data["cash_cents"] == 10750

    def test_cash_edit_recomputes_wallet(self, client):
        state = {"grand_total_cents": 15750, "wallet_balance_cents": 20000, "wallet_cents": 15750, "cash_cents": 0}

        data = client.post(
            "/api/checkout/allocation/edit",
            json={"state": state, "field": "cash", "amount_cents": 5750},
        ).json()["data"]

        assert data["wallet_cents"] == 10000
        assert data["cash_cents"] == 5750

    def test_unknown_field_rejected(self, client):
        state = {"grand_total_cents": 100, "wallet_balance_cents": 0, "wallet_cents": 0, "cash_cents": 100}

        response = client.post(
            "/api/checkout/allocation/edit",
            json={"state": state, "field": "card", "amount_cents": 100},
        )

        assert response.status_code == 422
