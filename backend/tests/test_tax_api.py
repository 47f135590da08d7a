"""
API tests for the payments, expenses and tax routes.

Run with: pytest tests/test_tax_api.py -v
"""

import pytest
from fastapi.testclient import TestClient

from rentdesk.core.database import get_db
from rentdesk.core.scheduler import RecomputeScheduler
from rentdesk.main import app
from rentdesk.modules.payments.events import get_event_bus
from rentdesk.modules.tax.coordinator import RecomputeCoordinator


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    coordinator = RecomputeCoordinator(
        session_factory=session_factory,
        scheduler=RecomputeScheduler(run_async=False),
    ).attach(get_event_bus())
    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        coordinator.detach(get_event_bus())


def _pay(client, amount, label, status="paid", due_date="2025-01-01"):
    response = client.post("/api/v1/payments", json={
        "amount": amount,
        "due_date": due_date,
        "period_label": label,
        "status": status,
        "tenant_name": "Unit 2B",
    })
    assert response.status_code == 201, response.text
    return response.json()


def _expense(client, category, amount, expense_date):
    response = client.post("/api/v1/expenses", json={
        "category": category,
        "amount": amount,
        "expense_date": expense_date,
    })
    assert response.status_code == 201, response.text
    return response.json()


def _calculate(client, month, year, tax_rate=None):
    body = {"month": month, "year": year}
    if tax_rate is not None:
        body["tax_rate"] = tax_rate
    return client.post("/api/v1/tax/summaries/calculate", json=body)


class TestHealth:

    def test_health(self, client):
        assert client.get("/api/health").json() == {"status": "healthy"}

    def test_root(self, client):
        assert client.get("/").json()["status"] == "running"


class TestCalculate:

    def test_zero_record_period(self, client):
        response = _calculate(client, "December", 2099)
        assert response.status_code == 200
        summary = response.json()["summary"]
        assert summary["month"] == "December"
        assert summary["year"] == 2099
        assert summary["total_revenue"] == 0
        assert summary["total_utilities"] == 0
        assert summary["net_income"] == 0
        assert summary["tax_amount"] == 0
        assert summary["tax_rate"] == 25.0

    def test_full_month(self, client):
        _pay(client, "1200.00", "January 2025")
        _pay(client, "999.00", "January 2025", status="unpaid")
        _expense(client, "utilities", "150.00", "2025-01-05")
        _expense(client, "maintenance", "50.00", "2025-01-12")
        _expense(client, "insurance", "100.00", "2025-01-28")
        _expense(client, "utilities", "75.00", "2025-02-01")

        response = _calculate(client, "January", 2025, 25)
        assert response.status_code == 200
        summary = response.json()["summary"]
        assert summary["total_revenue"] == 1200.0
        assert summary["electricity"] == 150.0
        assert summary["water"] == 0.0
        assert summary["gas"] == 0.0
        assert summary["maintenance"] == 50.0
        assert summary["other_expenses"] == 100.0
        assert summary["total_utilities"] == 300.0
        assert summary["net_income"] == 900.0
        assert summary["tax_amount"] == 225.0

    def test_numeric_month(self, client):
        response = _calculate(client, 3, 2025)
        assert response.status_code == 200
        assert response.json()["summary"]["month"] == "March"

    def test_recalculate_keeps_single_row(self, client):
        _calculate(client, "January", 2025)
        _calculate(client, "January", 2025, 10)
        listing = client.get("/api/v1/tax/summaries", params={"year": 2025}).json()
        assert listing["count"] == 1
        assert listing["summaries"][0]["tax_rate"] == 10.0

    @pytest.mark.parametrize("rate", [-5, "abc", "nan"])
    def test_invalid_rate(self, client, rate):
        response = _calculate(client, "January", 2025, rate)
        assert response.status_code == 422
        assert client.get("/api/v1/tax/summaries").json()["count"] == 0

    @pytest.mark.parametrize("month", ["Smarch", 13, 0])
    def test_invalid_month(self, client, month):
        assert _calculate(client, month, 2025).status_code == 422

    def test_skipped_facts_reported(self, client):
        _pay(client, "1200.00", "January 2025")
        _pay(client, "300.00", "2025")

        body = _calculate(client, "January", 2025).json()
        assert body["summary"]["total_revenue"] == 1200.0
        assert len(body["skipped"]) == 1
        assert body["skipped"][0]["kind"] == "payment"


class TestListing:

    def test_calendar_order(self, client):
        for month in ("January", "March", "December"):
            assert _calculate(client, month, 2025).status_code == 200

        summaries = client.get("/api/v1/tax/summaries", params={"year": 2025}).json()["summaries"]
        assert [s["month"] for s in summaries] == ["December", "March", "January"]

    def test_year_filter(self, client):
        _calculate(client, "January", 2024)
        _calculate(client, "January", 2025)
        body = client.get("/api/v1/tax/summaries", params={"year": 2024}).json()
        assert body["count"] == 1
        assert body["summaries"][0]["year"] == 2024

    def test_totals(self, client):
        _pay(client, "1000.00", "January 2025")
        _pay(client, "2000.00", "February 2025", due_date="2025-02-01")

        totals = client.get("/api/v1/tax/summaries/totals", params={"year": 2025}).json()
        assert totals["period_count"] == 2
        assert totals["total_revenue"] == 3000.0
        assert totals["total_tax_amount"] == 750.0


class TestUpdateSummary:

    def test_new_rate(self, client):
        _pay(client, "1200.00", "January 2025")
        _expense(client, "utilities", "300.00", "2025-01-05")
        summary_id = _calculate(client, "January", 2025).json()["summary"]["id"]

        response = client.put(f"/api/v1/tax/summaries/{summary_id}", json={"tax_rate": 10})
        assert response.status_code == 200
        summary = response.json()["summary"]
        assert summary["id"] == summary_id
        assert summary["tax_rate"] == 10.0
        assert summary["tax_amount"] == 90.0

    def test_missing_summary(self, client):
        response = client.put("/api/v1/tax/summaries/9999", json={"tax_rate": 10})
        assert response.status_code == 404

    def test_get_missing_summary(self, client):
        assert client.get("/api/v1/tax/summaries/9999").status_code == 404


class TestReactiveApi:

    def test_marking_paid_updates_summary(self, client):
        payment = _pay(client, "1200.00", "January 2025", status="unpaid")
        assert client.get("/api/v1/tax/summaries").json()["count"] == 0

        response = client.patch(f"/api/v1/payments/{payment['id']}", json={"status": "paid"})
        assert response.status_code == 200
        assert response.json()["paid_date"] is not None

        summaries = client.get("/api/v1/tax/summaries").json()["summaries"]
        assert summaries[0]["total_revenue"] == 1200.0

        client.delete(f"/api/v1/payments/{payment['id']}")
        summaries = client.get("/api/v1/tax/summaries").json()["summaries"]
        assert summaries[0]["total_revenue"] == 0.0

    def test_malformed_payment_listed_as_failure(self, client):
        payment = _pay(client, "500.00", "sometime 2025")

        body = client.get("/api/v1/tax/recompute-failures").json()
        assert body["count"] == 1
        failure = body["failures"][0]
        assert failure["payment_id"] == payment["id"]
        assert failure["error_type"] == "MalformedPeriodLabel"
        assert failure["created_at"].endswith("Z")

    def test_list_payments_for_period(self, client):
        _pay(client, "100.00", "January 2025")
        _pay(client, "200.00", "February 2025", due_date="2025-02-01")

        body = client.get("/api/v1/payments", params={"month": "jan", "year": 2025}).json()
        assert body["count"] == 1
        assert body["payments"][0]["amount"] == 100.0

    def test_negative_amount_rejected(self, client):
        response = client.post("/api/v1/payments", json={
            "amount": "-1.00", "due_date": "2025-01-01", "status": "paid",
        })
        assert response.status_code == 422
