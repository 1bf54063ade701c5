from datetime import date

import pytest

from alerts import ALERT_TYPE, check_budget_alerts, period_bounds
from database import Budget, Notification


@pytest.fixture
def factory(app):
    return app.state.session_factory


def _spend(client, headers, amount, category="Food & Dining", day="2026-10-10"):
    response = client.post(
        "/api/expenses",
        json={"amount": amount, "description": "x", "category": category, "date": day},
        headers=headers,
    )
    assert response.status_code == 200


def _budget(client, headers, **fields):
    payload = {"name": "Food", "category": "Food & Dining", "amount": 100, "startDate": "2026-01-01"}
    payload.update(fields)
    response = client.post("/api/budgets", json=payload, headers=headers)
    assert response.status_code == 200
    return response.json()


def _alerts(factory, user_id):
    with factory() as db:
        return (
            db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.type == ALERT_TYPE)
            .all()
        )


class TestPeriodBounds:
    def test_monthly(self):
        budget = Budget(period="monthly", start_date=date(2026, 1, 1))
        assert period_bounds(budget, date(2026, 2, 14)) == (date(2026, 2, 1), date(2026, 2, 28))

    def test_weekly_starts_on_monday(self):
        budget = Budget(period="weekly", start_date=date(2026, 1, 1))
        assert period_bounds(budget, date(2026, 10, 17)) == (date(2026, 10, 12), date(2026, 10, 18))

    def test_yearly_clipped_to_budget_window(self):
        budget = Budget(period="yearly", start_date=date(2026, 3, 1), end_date=date(2026, 6, 30))
        assert period_bounds(budget, date(2026, 4, 1)) == (date(2026, 3, 1), date(2026, 6, 30))


class TestBudgetAlerts:
    def test_no_alert_below_threshold(self, client, alice, factory):
        _budget(client, alice["headers"])
        _spend(client, alice["headers"], 50)
        assert check_budget_alerts(factory, today=date(2026, 10, 17)) == 0

    def test_warning_at_eighty_percent(self, client, alice, factory):
        _budget(client, alice["headers"])
        _spend(client, alice["headers"], 85)
        assert check_budget_alerts(factory, today=date(2026, 10, 17)) == 1
        [alert] = _alerts(factory, alice["id"])
        assert alert.title.startswith("Budget 80% used: Food")

    def test_exceeded_alert_and_no_duplicates(self, client, alice, factory):
        _budget(client, alice["headers"])
        _spend(client, alice["headers"], 120)
        assert check_budget_alerts(factory, today=date(2026, 10, 17)) == 1
        assert check_budget_alerts(factory, today=date(2026, 10, 18)) == 0
        [alert] = _alerts(factory, alice["id"])
        assert alert.title.startswith("Budget exceeded")

    def test_only_matching_category_and_owner_counted(self, client, alice, bob, factory):
        _budget(client, alice["headers"])
        _spend(client, alice["headers"], 90, category="Shopping")
        _spend(client, bob["headers"], 500)
        assert check_budget_alerts(factory, today=date(2026, 10, 17)) == 0

    def test_alert_goes_to_budget_owner(self, client, alice, bob, factory):
        _budget(client, bob["headers"])
        _spend(client, bob["headers"], 100)
        check_budget_alerts(factory, today=date(2026, 10, 17))
        assert _alerts(factory, alice["id"]) == []
        assert len(_alerts(factory, bob["id"])) == 1
        listed = client.get("/api/notifications", headers=bob["headers"]).json()
        assert listed[0]["type"] == ALERT_TYPE

    def test_inactive_budgets_are_skipped(self, client, alice, factory):
        _budget(client, alice["headers"], isActive=False)
        _spend(client, alice["headers"], 500)
        assert check_budget_alerts(factory, today=date(2026, 10, 17)) == 0
