import datetime as dt
from collections import OrderedDict
from typing import Optional

from dateutil.relativedelta import relativedelta
from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from auth import AuthContext, get_auth_context
from database import get_db, Budget, Expense, Goal, Notification
from errors import ValidationError

dashboard_router = APIRouter()


def month_bounds(day: dt.date):
    start = day.replace(day=1)
    return start, start + relativedelta(months=1, days=-1)


def get_dashboard_stats(db: Session, user_id: str, today: Optional[dt.date] = None) -> dict:
    today = today or dt.date.today()
    start, end = month_bounds(today)

    totals = {"debit": (0.0, 0), "credit": (0.0, 0)}
    rows = (
        db.query(
            Expense.type,
            func.coalesce(func.sum(func.abs(Expense.amount)), 0.0),
            func.count(Expense.id),
        )
        .filter(Expense.user_id == user_id, Expense.date >= start, Expense.date <= end)
        .group_by(Expense.type)
        .all()
    )
    for kind, total, count in rows:
        totals[kind] = (float(total), count)

    spent, spent_count = totals["debit"]
    income, income_count = totals["credit"]
    return {
        "periodStart": start.isoformat(),
        "periodEnd": end.isoformat(),
        "totalSpent": round(spent, 2),
        "totalIncome": round(income, 2),
        "netBalance": round(income - spent, 2),
        "transactionCount": spent_count + income_count,
        "activeBudgets": db.query(Budget)
        .filter(Budget.user_id == user_id, Budget.is_active.is_(True))
        .count(),
        "activeGoals": db.query(Goal)
        .filter(Goal.user_id == user_id, Goal.is_completed.is_(False))
        .count(),
        "unreadNotifications": db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .count(),
    }


def get_category_breakdown(
    db: Session, user_id: str, start_date: dt.date, end_date: dt.date
) -> list[dict]:
    rows = (
        db.query(
            Expense.category,
            func.sum(func.abs(Expense.amount)).label("total"),
            func.count(Expense.id).label("count"),
        )
        .filter(
            Expense.user_id == user_id,
            Expense.type == "debit",
            Expense.date >= start_date,
            Expense.date <= end_date,
        )
        .group_by(Expense.category)
        .order_by(func.sum(func.abs(Expense.amount)).desc())
        .all()
    )
    grand_total = sum(float(row.total or 0) for row in rows)
    return [
        {
            "category": row.category,
            "total": round(float(row.total or 0), 2),
            "count": row.count,
            "percentage": round(float(row.total or 0) / grand_total * 100, 2) if grand_total else 0.0,
        }
        for row in rows
    ]


def get_spending_trends(
    db: Session, user_id: str, months: int = 6, today: Optional[dt.date] = None
) -> list[dict]:
    today = today or dt.date.today()
    first_month = today.replace(day=1) - relativedelta(months=months - 1)
    _, last_day = month_bounds(today)

    buckets = OrderedDict()
    for offset in range(months):
        month = first_month + relativedelta(months=offset)
        buckets[month.strftime("%Y-%m")] = {"spent": 0.0, "income": 0.0, "count": 0}

    rows = (
        db.query(Expense.date, Expense.type, Expense.amount)
        .filter(
            Expense.user_id == user_id,
            Expense.date >= first_month,
            Expense.date <= last_day,
        )
        .all()
    )
    for day, kind, amount in rows:
        bucket = buckets[day.strftime("%Y-%m")]
        bucket["spent" if kind == "debit" else "income"] += abs(amount)
        bucket["count"] += 1

    return [
        {
            "month": month,
            "spent": round(values["spent"], 2),
            "income": round(values["income"], 2),
            "count": values["count"],
        }
        for month, values in buckets.items()
    ]


@dashboard_router.get("/stats")
async def dashboard_stats(
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return get_dashboard_stats(db, ctx.user_id)


@dashboard_router.get("/category-breakdown")
async def category_breakdown(
    start_date: Optional[dt.date] = Query(None, alias="startDate"),
    end_date: Optional[dt.date] = Query(None, alias="endDate"),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    today = dt.date.today()
    start_date = start_date or today.replace(day=1)
    end_date = end_date or today
    if start_date > end_date:
        raise ValidationError("startDate must not be after endDate")
    return get_category_breakdown(db, ctx.user_id, start_date, end_date)


@dashboard_router.get("/spending-trends")
async def spending_trends(
    months: int = Query(6, ge=1, le=36),
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return get_spending_trends(db, ctx.user_id, months)
