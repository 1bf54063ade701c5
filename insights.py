"""
Spending analysis collaborator.

``InsightService`` suggests categories and tags for new expenses and derives
plain-language insights from a user's history. The shipped implementation is
keyword and rule based; the app resolves it through ``get_insight_service`` so
another implementation can be swapped in with a dependency override.
"""

from collections import defaultdict
from datetime import date
from typing import Iterable, Optional

import structlog
from dateutil.relativedelta import relativedelta
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from auth import AuthContext, get_auth_context
from crud import get_expenses
from database import get_db
from schemas import (
    AdviceOut,
    AdviceRequest,
    ExpenseAnalysis,
    ExpenseAnalysisRequest,
    SpendingInsight,
)

logger = structlog.get_logger(__name__)

FALLBACK_CATEGORY = "Other"
LARGE_PURCHASE_THRESHOLD = 500.0

CATEGORY_KEYWORDS = {
    "Transportation": {
        "uber", "lyft", "taxi", "cab", "bus", "train", "metro", "subway",
        "fuel", "gas", "petrol", "parking", "toll", "ride",
    },
    "Food & Dining": {
        "restaurant", "cafe", "coffee", "starbucks", "pizza", "burger",
        "lunch", "dinner", "breakfast", "grocery", "groceries", "supermarket",
        "doordash", "ubereats", "bakery", "food",
    },
    "Shopping": {
        "amazon", "mall", "clothes", "shoes", "store", "walmart", "target",
        "ikea", "electronics", "gift",
    },
    "Entertainment": {
        "netflix", "spotify", "movie", "cinema", "concert", "game", "games",
        "theatre", "theater", "hulu", "disney",
    },
    "Bills & Utilities": {
        "electricity", "water", "internet", "phone", "mobile", "rent",
        "utility", "utilities", "insurance", "bill",
    },
    "Healthcare": {
        "pharmacy", "doctor", "hospital", "dentist", "clinic", "medicine",
        "gym", "health",
    },
    "Travel": {
        "flight", "airline", "airport", "hotel", "airbnb", "booking",
        "vacation", "trip", "travel",
    },
    "Education": {
        "course", "tuition", "book", "books", "udemy", "school", "college",
        "university", "class",
    },
}


def _tokens(text: str) -> list[str]:
    cleaned = "".join(ch.lower() if ch.isalnum() else " " for ch in text)
    return cleaned.split()


class InsightService:
    def __init__(self, keywords: Optional[dict] = None):
        self.keywords = keywords or CATEGORY_KEYWORDS

    def analyze_expense(
        self, description: str, amount: float = 0.0, location: Optional[str] = None
    ) -> ExpenseAnalysis:
        words = _tokens(description)
        scores = defaultdict(int)
        matched = []
        for word in words:
            for category, keywords in self.keywords.items():
                if word in keywords:
                    scores[category] += 1
                    if word not in matched:
                        matched.append(word)

        if scores:
            # ties resolve to the category listed first
            order = list(self.keywords)
            category = max(scores, key=lambda c: (scores[c], -order.index(c)))
            confidence = min(0.95, 0.5 + 0.15 * scores[category])
        else:
            category = FALLBACK_CATEGORY
            confidence = 0.3

        tags = matched[:5]
        if abs(amount or 0) >= LARGE_PURCHASE_THRESHOLD:
            tags.append("large-purchase")
        if location:
            tags.append("location-tagged")

        return ExpenseAnalysis(
            suggested_category=category,
            tags=tags,
            confidence=round(confidence, 2),
            insights=f"Looks like {category.lower()} spending.",
        )

    def get_financial_advice(self, expenses: Iterable, question: str) -> AdviceOut:
        expenses = list(expenses)
        spent = sum(abs(e.amount) for e in expenses if e.type == "debit")
        income = sum(abs(e.amount) for e in expenses if e.type == "credit")
        by_category = _totals_by_category(expenses)

        tips = []
        if not expenses:
            advice = "Start by recording your expenses so there is data to analyse."
            return AdviceOut(question=question, advice=advice, tips=tips)

        if income > 0:
            savings_rate = (income - spent) / income
            advice = f"You are saving {savings_rate:.0%} of your recorded income."
            if savings_rate < 0.2:
                tips.append("Aim to save at least 20% of your income.")
        else:
            advice = f"You have recorded {spent:.2f} in spending and no income yet."
            tips.append("Record your income to track your savings rate.")

        if by_category:
            top, top_total = max(by_category.items(), key=lambda item: item[1])
            if spent and top_total / spent >= 0.3:
                tips.append(
                    f"{top} makes up {top_total / spent:.0%} of your spending; "
                    "consider setting a budget for it."
                )
        return AdviceOut(question=question, advice=advice, tips=tips)

    def generate_spending_insights(
        self, expenses: Iterable, today: Optional[date] = None
    ) -> list[SpendingInsight]:
        today = today or date.today()
        expenses = [e for e in expenses if e.type == "debit"]
        if not expenses:
            return []

        spent = sum(abs(e.amount) for e in expenses)
        if not spent:
            return []

        insights = []
        by_category = _totals_by_category(expenses)
        top, top_total = max(by_category.items(), key=lambda item: item[1])
        insights.append(
            SpendingInsight(
                type="top_category",
                title=f"Most spending goes to {top}",
                message=f"{top} accounts for {top_total / spent:.0%} of your spending.",
            )
        )

        this_month = today.replace(day=1)
        last_month = this_month - relativedelta(months=1)
        current = sum(abs(e.amount) for e in expenses if e.date >= this_month)
        previous = sum(abs(e.amount) for e in expenses if last_month <= e.date < this_month)
        if previous > 0:
            change = (current - previous) / previous
            direction = "up" if change > 0 else "down"
            insights.append(
                SpendingInsight(
                    type="monthly_change",
                    title=f"Spending is {direction} this month",
                    message=f"This month you spent {abs(change):.0%} {'more' if change > 0 else 'less'} than last month.",
                )
            )

        large = [e for e in expenses if abs(e.amount) >= LARGE_PURCHASE_THRESHOLD]
        if large:
            insights.append(
                SpendingInsight(
                    type="large_transactions",
                    title="Large purchases",
                    message=f"You made {len(large)} purchase(s) of {LARGE_PURCHASE_THRESHOLD:.0f} or more.",
                )
            )

        weekend = sum(abs(e.amount) for e in expenses if e.date.weekday() >= 5)
        if weekend / spent >= 0.4:
            insights.append(
                SpendingInsight(
                    type="weekend_spending",
                    title="Weekend spending",
                    message=f"{weekend / spent:.0%} of your spending happens on weekends.",
                )
            )
        return insights


def _totals_by_category(expenses) -> dict:
    totals = defaultdict(float)
    for e in expenses:
        if e.type == "debit":
            totals[e.category] += abs(e.amount)
    return dict(totals)


def get_insight_service(request: Request) -> InsightService:
    return request.app.state.insights


ai_router = APIRouter()


@ai_router.post("/analyze-expense", response_model=ExpenseAnalysis)
async def analyze_expense(
    payload: ExpenseAnalysisRequest,
    ctx: AuthContext = Depends(get_auth_context),
    insights: InsightService = Depends(get_insight_service),
):
    return insights.analyze_expense(payload.description, payload.amount, payload.location)


@ai_router.post("/financial-advice", response_model=AdviceOut)
async def financial_advice(
    payload: AdviceRequest,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
    insights: InsightService = Depends(get_insight_service),
):
    return insights.get_financial_advice(get_expenses(db, ctx.user_id), payload.question)


@ai_router.get("/spending-insights", response_model=list[SpendingInsight])
async def spending_insights(
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
    insights: InsightService = Depends(get_insight_service),
):
    return insights.generate_spending_insights(get_expenses(db, ctx.user_id))
