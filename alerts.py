"""
Budget alert job.

Once a day every active budget is compared with the owner's debit spending in
the budget's current period. Crossing 80% or 100% of the budget produces one
``budget_alert`` notification per budget, threshold and period.
"""

from datetime import date, timedelta
from typing import Optional

import structlog
from apscheduler.schedulers.background import BackgroundScheduler
from dateutil.relativedelta import relativedelta
from sqlalchemy import func

from crud import create_notification
from database import Budget, Expense, Notification

logger = structlog.get_logger(__name__)

ALERT_TYPE = "budget_alert"
# checked highest first
THRESHOLDS = ((1.0, "exceeded"), (0.8, "80% used"))


def period_bounds(budget: Budget, today: date):
    if budget.period == "weekly":
        start = today - timedelta(days=today.weekday())
        end = start + timedelta(days=6)
    elif budget.period == "yearly":
        start = date(today.year, 1, 1)
        end = date(today.year, 12, 31)
    else:
        start = today.replace(day=1)
        end = start + relativedelta(months=1, days=-1)

    if budget.start_date and budget.start_date > start:
        start = budget.start_date
    if budget.end_date and budget.end_date < end:
        end = budget.end_date
    return start, end


def budget_spending(db, budget: Budget, start: date, end: date) -> float:
    query = db.query(func.coalesce(func.sum(func.abs(Expense.amount)), 0.0)).filter(
        Expense.user_id == budget.user_id,
        Expense.type == "debit",
        Expense.date >= start,
        Expense.date <= end,
    )
    if budget.category:
        query = query.filter(Expense.category == budget.category)
    return float(query.scalar() or 0.0)


def check_budget_alerts(session_factory, today: Optional[date] = None) -> int:
    today = today or date.today()
    created = 0
    with session_factory() as db:
        budgets = db.query(Budget).filter(Budget.is_active.is_(True)).all()
        for budget in budgets:
            if budget.amount <= 0 or budget.start_date > today:
                continue
            if budget.end_date and budget.end_date < today:
                continue

            start, end = period_bounds(budget, today)
            spent = budget_spending(db, budget, start, end)
            ratio = spent / budget.amount

            label = next((label for limit, label in THRESHOLDS if ratio >= limit), None)
            if label is None:
                continue

            title = f"Budget {label}: {budget.name} ({start.isoformat()})"
            exists = (
                db.query(Notification.id)
                .filter(
                    Notification.user_id == budget.user_id,
                    Notification.type == ALERT_TYPE,
                    Notification.title == title,
                )
                .first()
            )
            if exists:
                continue

            create_notification(
                db,
                budget.user_id,
                title=title,
                message=(
                    f"You have spent {spent:.2f} of your {budget.amount:.2f} "
                    f"{budget.period} budget '{budget.name}' ({ratio:.0%})."
                ),
                type=ALERT_TYPE,
            )
            created += 1

    logger.info("budget_alerts_checked", created=created, day=today.isoformat())
    return created


def start_alert_scheduler(session_factory, hour: int = 0) -> BackgroundScheduler:
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        check_budget_alerts, "cron", hour=hour, minute=0, args=[session_factory]
    )  # Run daily
    scheduler.start()
    logger.info("alert_scheduler_started", hour=hour)
    return scheduler
