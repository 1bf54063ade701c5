from datetime import date
from types import SimpleNamespace

import pytest

from currency import CurrencyService
from errors import ValidationError
from insights import InsightService


def _expense(amount, category="Other", type="debit", day=date(2026, 10, 5)):
    return SimpleNamespace(amount=amount, category=category, type=type, date=day)


class TestInsightService:
    def test_categorizes_by_keyword(self):
        analysis = InsightService().analyze_expense("Uber to airport", 42.0)
        assert analysis.suggested_category == "Transportation"
        assert "uber" in analysis.tags

    def test_unknown_description_falls_back(self):
        analysis = InsightService().analyze_expense("zzz qqq", 5)
        assert analysis.suggested_category == "Other"
        assert analysis.confidence < 0.5

    def test_large_purchase_tag(self):
        analysis = InsightService().analyze_expense("New laptop from store", 1200)
        assert "large-purchase" in analysis.tags

    def test_advice_flags_low_savings(self):
        expenses = [_expense(900, "Shopping"), _expense(1000, "Income", type="credit")]
        advice = InsightService().get_financial_advice(expenses, "How am I doing?")
        assert advice.question == "How am I doing?"
        assert "10%" in advice.advice
        assert any("20%" in tip for tip in advice.tips)

    def test_advice_without_data(self):
        advice = InsightService().get_financial_advice([], "Help?")
        assert advice.tips == []

    def test_spending_insights(self):
        expenses = [
            _expense(300, "Food & Dining", day=date(2026, 10, 3)),
            _expense(100, "Shopping", day=date(2026, 9, 10)),
            _expense(600, "Travel", day=date(2026, 10, 6)),
        ]
        insights = InsightService().generate_spending_insights(expenses, today=date(2026, 10, 17))
        kinds = {i.type for i in insights}
        assert {"top_category", "monthly_change", "large_transactions"} <= kinds
        assert insights[0].title == "Most spending goes to Travel"

    def test_no_insights_without_spending(self):
        assert InsightService().generate_spending_insights([]) == []

    def test_zero_amount_spending_yields_no_insights(self):
        expenses = [_expense(0.0, "Shopping"), _expense(0.0, "Travel", day=date(2026, 10, 10))]
        assert InsightService().generate_spending_insights(expenses, today=date(2026, 10, 17)) == []


class TestCurrencyService:
    def test_convert(self):
        result = CurrencyService().convert(100, "usd", "EUR")
        assert result.from_currency == "USD"
        assert result.converted_amount == 92.0

    def test_rate_is_inverse(self):
        service = CurrencyService()
        rate = service.get_exchange_rate("EUR", "USD")
        assert rate == pytest.approx(1 / 0.92, rel=1e-5)

    def test_unsupported_currency(self):
        with pytest.raises(ValidationError):
            CurrencyService().get_exchange_rate("USD", "XXX")


class TestServiceRoutes:
    def test_currencies_are_public(self, client):
        response = client.get("/api/currencies")
        assert response.status_code == 200
        assert {"code": "USD", "name": "US Dollar", "symbol": "$"} in response.json()

    def test_rates_endpoint(self, client):
        response = client.get("/api/currency/rates", params={"from": "USD", "to": "USD"})
        assert response.json() == {"rate": 1.0}

    def test_convert_requires_auth(self, client, alice):
        payload = {"amount": 10, "from": "USD", "to": "GBP"}
        assert client.post("/api/currencies/convert", json=payload).status_code == 401
        response = client.post("/api/currencies/convert", json=payload, headers=alice["headers"])
        assert response.status_code == 200
        assert response.json()["convertedAmount"] == 7.9
        assert response.json()["to"] == "GBP"

    def test_convert_unsupported_is_400(self, client, alice):
        payload = {"amount": 10, "from": "USD", "to": "ABC"}
        response = client.post("/api/currencies/convert", json=payload, headers=alice["headers"])
        assert response.status_code == 400

    def test_analyze_expense_route(self, client, alice):
        response = client.post(
            "/api/ai/analyze-expense", json={"description": "Pizza dinner", "amount": 20}, headers=alice["headers"]
        )
        assert response.status_code == 200
        assert response.json()["suggestedCategory"] == "Food & Dining"

    def test_insights_use_only_own_expenses(self, client, alice, bob, make_expense):
        make_expense(bob["headers"], amount=5000, category="Travel")
        make_expense(alice["headers"], amount=50, category="Shopping")
        insights = client.get("/api/ai/spending-insights", headers=alice["headers"]).json()
        assert insights[0]["title"] == "Most spending goes to Shopping"

    def test_spending_insights_with_zero_amounts(self, client, alice, make_expense):
        make_expense(alice["headers"], amount=0.0)
        response = client.get("/api/ai/spending-insights", headers=alice["headers"])
        assert response.status_code == 200
        assert response.json() == []

    def test_financial_advice_route(self, client, alice):
        response = client.post("/api/ai/financial-advice", json={"question": "Tips?"}, headers=alice["headers"])
        assert response.status_code == 200
        assert response.json()["question"] == "Tips?"
