"""API tests through the FastAPI test client."""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_transaction
from stockrecon.api.deps import pos_client as pos_client_dependency
from stockrecon.core.business_day import business_date
from stockrecon.main import app

API = "/api/v1"


def open_shift(client, **extra):
    return client.post(f"{API}/shifts/open", json={"openedBy": "Asha", "openingFloat": 1000, **extra})


def completed_count(client, count_type, items):
    count = client.post(f"{API}/stock-counts", json={
        "location": "shop", "countType": count_type, "countedBy": "Asha",
    }).json()
    client.post(f"{API}/stock-counts/{count['id']}/items", json={"items": items})
    return client.post(f"{API}/stock-counts/{count['id']}/complete").json()


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_readiness(self, client):
        data = client.get("/health/ready").json()
        assert data["checks"]["scheduler"] == "stopped"
        assert data["checks"]["pos"] == "not configured"


class TestShiftEndpoints:
    def test_open_and_close(self, client):
        response = open_shift(client, staffOnDuty=["Asha"])
        assert response.status_code == 201
        shift = response.json()
        assert shift["status"] == "open"
        assert float(shift["opening_float"]) == 1000

        assert client.get(f"{API}/shifts/current").json()["id"] == shift["id"]

        response = client.post(f"{API}/shifts/{shift['id']}/close", json={"closedBy": "Asha", "closingCash": 900})
        assert response.status_code == 200
        closed = response.json()
        assert closed["status"] == "closed"
        assert float(closed["cash_variance"]) == -100
        assert client.get(f"{API}/shifts/current").json() is None
        assert client.get(f"{API}/shifts", params={"status": "closed"}).json()["total"] == 1

    def test_second_open_shift_is_a_conflict(self, client):
        open_shift(client)

        response = open_shift(client)

        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"

    def test_snake_case_body_is_accepted(self, client):
        response = client.post(f"{API}/shifts/open", json={"opened_by": "Asha", "opening_float": "50.5"})
        assert response.status_code == 201

    def test_negative_float_is_rejected(self, client):
        assert open_shift(client, openingFloat=-1).status_code == 422

    def test_control_gate(self, client):
        response = client.put(f"{API}/settings/shift_controls", json={"value": {"require_opening_count": True}})
        assert response.status_code == 200
        assert response.json()["value"]["require_opening_count"] is True

        response = open_shift(client)

        assert response.status_code == 400
        assert response.json()["code"] == "COUNT_REQUIRED"

    def test_cash_reconciliation_of_unknown_shift(self, client):
        response = client.post(f"{API}/shifts/999/cash-reconciliation")
        assert response.status_code == 200
        assert response.json()["success"] is False

    def test_close_unknown_shift(self, client):
        response = client.post(f"{API}/shifts/999/close", json={"closedBy": "Asha", "closingCash": 1})
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"


class TestStockCountAndReconciliationEndpoints:
    def test_count_lifecycle(self, client, ingredients):
        count = client.post(f"{API}/stock-counts", json={
            "location": "shop", "countType": "closing", "countedBy": "Asha",
        })
        assert count.status_code == 201
        count_id = count.json()["id"]

        response = client.post(f"{API}/stock-counts/{count_id}/items", json={"items": [
            {"ingredientId": ingredients["milk"].id, "countedQuantity": 750},
            {"itemName": "Paper cups", "countedQuantity": 40, "unit": "pcs"},
        ]})
        assert response.status_code == 200
        assert len(response.json()["items"]) == 2

        completed = client.post(f"{API}/stock-counts/{count_id}/complete").json()
        assert completed["status"] == "completed"
        assert completed["item_count"] == 2

        response = client.post(f"{API}/stock-counts/{count_id}/items", json={"items": [
            {"itemName": "Lids", "countedQuantity": 1},
        ]})
        assert response.status_code == 409

    def test_item_needs_a_reference(self, client):
        count = client.post(f"{API}/stock-counts", json={
            "location": "shop", "countType": "closing", "countedBy": "Asha",
        }).json()
        response = client.post(f"{API}/stock-counts/{count['id']}/items", json={"items": [{"countedQuantity": 1}]})
        assert response.status_code == 422

    def test_unknown_count(self, client):
        assert client.get(f"{API}/stock-counts/999").status_code == 404

    def test_reconciliation_flow(self, client, ingredients):
        coffee, milk = ingredients["coffee"], ingredients["milk"]
        completed_count(client, "opening", [
            {"ingredientId": coffee.id, "countedQuantity": 10},
            {"ingredientId": milk.id, "countedQuantity": 1000},
        ])
        completed_count(client, "closing", [
            {"ingredientId": coffee.id, "countedQuantity": 8},
            {"ingredientId": milk.id, "countedQuantity": 1000},
        ])
        today = business_date().isoformat()

        outcome = client.post(f"{API}/reconciliation/calculate", json={"date": today, "location": "shop"})
        assert outcome.status_code == 200
        data = outcome.json()
        assert data["item_count"] == 2
        assert data["under_count"] == 1
        assert data["matched_count"] == 1
        assert data["total_variance_value"] == -4.0
        rec_id = data["reconciliation_id"]

        listing = client.get(f"{API}/reconciliation", params={"location": "shop"}).json()
        assert [r["id"] for r in listing["items"]] == [rec_id]

        detail = client.get(f"{API}/reconciliation/{rec_id}").json()
        assert len(detail["items"]) == 2

        variance = client.get(f"{API}/reconciliation/{rec_id}/variance").json()
        assert [i["ingredient_name"] for i in variance["items"]] == ["Coffee Beans"]

        history = client.get(f"{API}/reports/variance-history").json()
        assert history["total"] == 1

        ack = client.post(f"{API}/reconciliation/{rec_id}/acknowledge", json={"acknowledgedBy": "Manager"})
        assert ack.status_code == 200
        assert ack.json()["status"] == "acknowledged"

        again = client.post(f"{API}/reconciliation/calculate", json={"date": today, "location": "shop"})
        assert again.status_code == 409

    def test_calculate_without_counts(self, client):
        response = client.post(f"{API}/reconciliation/calculate", json={
            "date": business_date().isoformat(), "location": "shop",
        })
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_FAILED"

    def test_inverted_list_range(self, client):
        response = client.get(f"{API}/reconciliation", params={"from": "2024-03-02", "to": "2024-03-01"})
        assert response.status_code == 400


class TestSyncEndpoints:
    def test_sync_transactions_then_query(self, client, fake_pos, latte_recipe):
        now = datetime.now(timezone.utc)
        fake_pos.transactions = [
            make_transaction(1, products=[{"product_id": "10", "num": "1"}], payed_sum=30000,
                             payed_cash=30000, pay_type="0", closed_at=now - timedelta(minutes=2)),
        ]

        response = client.post(f"{API}/sync/transactions")

        assert response.status_code == 200
        assert response.json()["transactions_synced"] == 1
        assert response.json()["consumption_records_created"] == 2

        listing = client.get(f"{API}/transactions").json()
        assert listing["total"] == 1
        assert listing["has_more"] is False
        assert listing["items"][0]["pos_transaction_id"] == "1"

        summary = client.get(f"{API}/transactions/summary").json()
        assert summary["transaction_count"] == 1
        assert float(summary["cash_sales"]) == 300

        consumption = client.get(f"{API}/consumption").json()
        assert consumption["total"] == 2

    def test_status(self, client):
        data = client.get(f"{API}/sync/status").json()
        assert data["pos_configured"] is True
        assert set(data["syncs"]) == {"transactions", "backfill", "recipes"}
        assert data["scheduler"]["running"] is False

    def test_backfill(self, client, fake_pos):
        fake_pos.transactions = [make_transaction(5, closed_at=datetime.now(timezone.utc) - timedelta(days=2))]

        response = client.post(f"{API}/sync/backfill", json={"days": 7})

        assert response.status_code == 200
        assert response.json()["transactions"]["transactions_synced"] == 1
        assert response.json()["recipes"]["success"] is True

    def test_backfill_days_must_be_positive(self, client):
        assert client.post(f"{API}/sync/backfill", json={"days": 0}).status_code == 422

    def test_start_without_pos(self, client):
        app.dependency_overrides[pos_client_dependency] = lambda: None

        data = client.post(f"{API}/sync/start").json()

        assert data["started"] is False
        assert client.post(f"{API}/sync/stop").json()["stopped"] is False


class TestStockEndpoints:
    def test_dispatch_flow(self, client, ingredients):
        response = client.post(f"{API}/dispatches", json={
            "dispatchedBy": "Store keeper",
            "items": [{"ingredientId": ingredients["milk"].id, "quantity": 2000}],
        })
        assert response.status_code == 201
        dispatch = response.json()
        assert dispatch["status"] == "in_transit"

        pending = client.get(f"{API}/dispatches/pending", params={"to_location": "shop"}).json()
        assert pending["total"] == 1

        confirmed = client.post(f"{API}/dispatches/{dispatch['id']}/confirm", json={"receivedBy": "Asha"})
        assert confirmed.status_code == 200
        assert confirmed.json()["status"] == "received"

        movements = client.get(f"{API}/ingredients/{ingredients['milk'].id}/movements").json()
        assert {m["movement_type"] for m in movements["items"]} == {"dispatch_out", "dispatch_in"}

    def test_par_and_below_par(self, client, ingredients):
        milk = ingredients["milk"]
        response = client.put(f"{API}/ingredients/{milk.id}/par", json={"parLevel": 1000})
        assert response.status_code == 200
        assert float(response.json()["par_level"]) == 1000

        report = client.get(f"{API}/reports/below-par").json()
        assert [row["name"] for row in report["items"]] == ["Milk"]

    def test_wastage(self, client, ingredients):
        response = client.post(f"{API}/stock/wastage", json={
            "items": [{"ingredientId": ingredients["syrup"].id, "quantity": 30, "reason": "expired"}],
            "performedBy": "Asha",
        })
        assert response.status_code == 200
        assert response.json() == {"success": True, "count": 1, "errors": []}

    def test_ingredient_search(self, client, ingredients):
        data = client.get(f"{API}/ingredients", params={"search": "mil"}).json()
        assert [i["name"] for i in data["items"]] == ["Milk"]

    def test_reorders(self, client, ingredients):
        response = client.post(f"{API}/reorders", json={
            "ingredientId": ingredients["coffee"].id, "quantity": 1000, "requestedBy": "Asha",
        })
        assert response.status_code == 201
        assert client.get(f"{API}/reorders").json()["total"] == 1


class TestExpenseAndReportEndpoints:
    def test_expenses(self, client):
        shift = open_shift(client).json()

        response = client.post(f"{API}/expenses", json={"description": "Ice", "amount": 150})
        assert response.status_code == 201
        assert response.json()["shift_id"] == shift["id"]

        today = client.get(f"{API}/expenses/today").json()
        assert today["total"] == 1

    @pytest.mark.parametrize("amount", [0, -10])
    def test_expense_amount_must_be_positive(self, client, amount):
        response = client.post(f"{API}/expenses", json={"description": "Ice", "amount": amount})
        assert response.status_code == 422

    def test_daily_summary(self, client):
        assert client.get(f"{API}/reports/daily-summary").status_code == 404

        generated = client.post(f"{API}/reports/daily-summary/generate", json={})
        assert generated.status_code == 200
        assert generated.json()["summary_date"] == business_date().isoformat()

        assert client.get(f"{API}/reports/daily-summary").status_code == 200

    def test_settings(self, client):
        data = client.get(f"{API}/settings").json()
        assert data["shift_controls"]["require_cash_declaration"] is False

        response = client.put(f"{API}/settings/shift_controls", json={"value": {"bogus": True}})
        assert response.status_code == 400
