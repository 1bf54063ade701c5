import datetime as dt
import json
import time
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

import crud
from auth import AuthContext, get_auth_context
from crud import ExpenseFilters
from database import get_db, utcnow
from insights import FALLBACK_CATEGORY, InsightService, get_insight_service
from schemas import (
    BudgetCreate,
    BudgetOut,
    BudgetUpdate,
    CategoryCreate,
    CategoryOut,
    CategoryUpdate,
    ExpenseCreate,
    ExpenseOut,
    ExpenseUpdate,
    GoalCreate,
    GoalOut,
    GoalUpdate,
    MessageOut,
    NotificationOut,
    ReceiptOut,
    UserOut,
)

logger = structlog.get_logger(__name__)

router = APIRouter()


def _split_tags(tags: Optional[str]) -> list[str]:
    if not tags:
        return []
    return [tag.strip() for tag in tags.split(",") if tag.strip()]


# ---------- Expenses ----------
@router.get("/expenses", response_model=list[ExpenseOut])
async def get_expenses(
    category: Optional[str] = None,
    start_date: Optional[dt.date] = Query(None, alias="startDate"),
    end_date: Optional[dt.date] = Query(None, alias="endDate"),
    tags: Optional[str] = None,
    search: Optional[str] = None,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    filters = ExpenseFilters(
        category=category,
        start_date=start_date,
        end_date=end_date,
        tags=_split_tags(tags),
        search=search,
    )
    return crud.get_expenses(db, ctx.user_id, filters)


@router.get("/expenses/{expense_id}", response_model=ExpenseOut)
async def get_expense(
    expense_id: str,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return crud.get_expense(db, ctx.user_id, expense_id)


@router.post("/expenses", response_model=ExpenseOut)
async def create_expense(
    expense: ExpenseCreate,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
    insights: InsightService = Depends(get_insight_service),
):
    data = expense.model_dump()
    if not data.get("category"):
        analysis = insights.analyze_expense(expense.description, expense.amount, expense.location)
        data["category"] = analysis.suggested_category or FALLBACK_CATEGORY
        if not data.get("tags"):
            data["tags"] = analysis.tags
        logger.info(
            "expense_categorized",
            user_id=ctx.user_id,
            category=data["category"],
            confidence=analysis.confidence,
        )
    return crud.create_expense(db, ctx.user_id, data)


@router.patch("/expenses/{expense_id}", response_model=ExpenseOut)
async def update_expense(
    expense_id: str,
    updates: ExpenseUpdate,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return crud.update_expense(db, ctx.user_id, expense_id, updates.model_dump(exclude_unset=True))


@router.delete("/expenses/{expense_id}", response_model=MessageOut)
async def delete_expense(
    expense_id: str,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    crud.delete_expense(db, ctx.user_id, expense_id)
    return {"message": "Expense deleted successfully"}


@router.get("/receipts/search", response_model=list[ReceiptOut])
async def search_receipts(
    query: Optional[str] = None,
    category: Optional[str] = None,
    date_from: Optional[dt.date] = Query(None, alias="dateFrom"),
    date_to: Optional[dt.date] = Query(None, alias="dateTo"),
    tags: Optional[str] = None,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    filters = ExpenseFilters(
        category=category,
        start_date=date_from,
        end_date=date_to,
        tags=_split_tags(tags),
        search=query,
    )
    return [e for e in crud.get_expenses(db, ctx.user_id, filters) if e.receipt_url]


# ---------- Budgets ----------
@router.get("/budgets", response_model=list[BudgetOut])
async def get_budgets(
    active: Optional[bool] = None,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return crud.get_budgets(db, ctx.user_id, active)


@router.get("/budgets/{budget_id}", response_model=BudgetOut)
async def get_budget(
    budget_id: str,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return crud.get_budget(db, ctx.user_id, budget_id)


@router.post("/budgets", response_model=BudgetOut)
async def create_budget(
    budget: BudgetCreate,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return crud.create_budget(db, ctx.user_id, budget.model_dump())


@router.patch("/budgets/{budget_id}", response_model=BudgetOut)
async def update_budget(
    budget_id: str,
    updates: BudgetUpdate,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return crud.update_budget(db, ctx.user_id, budget_id, updates.model_dump(exclude_unset=True))


@router.delete("/budgets/{budget_id}", response_model=MessageOut)
async def delete_budget(
    budget_id: str,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    crud.delete_budget(db, ctx.user_id, budget_id)
    return {"message": "Budget deleted successfully"}


# ---------- Goals ----------
@router.get("/goals", response_model=list[GoalOut])
async def get_goals(
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return crud.get_goals(db, ctx.user_id)


@router.get("/goals/{goal_id}", response_model=GoalOut)
async def get_goal(
    goal_id: str,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return crud.get_goal(db, ctx.user_id, goal_id)


@router.post("/goals", response_model=GoalOut)
async def create_goal(
    goal: GoalCreate,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return crud.create_goal(db, ctx.user_id, goal.model_dump())


@router.patch("/goals/{goal_id}", response_model=GoalOut)
async def update_goal(
    goal_id: str,
    updates: GoalUpdate,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return crud.update_goal(db, ctx.user_id, goal_id, updates.model_dump(exclude_unset=True))


@router.delete("/goals/{goal_id}", response_model=MessageOut)
async def delete_goal(
    goal_id: str,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    crud.delete_goal(db, ctx.user_id, goal_id)
    return {"message": "Goal deleted successfully"}


# ---------- Categories ----------
@router.get("/categories", response_model=list[CategoryOut])
async def get_categories(
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return crud.get_categories(db, ctx.user_id)


@router.get("/categories/{category_id}", response_model=CategoryOut)
async def get_category(
    category_id: str,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return crud.get_category(db, ctx.user_id, category_id)


@router.post("/categories", response_model=CategoryOut)
async def create_category(
    category: CategoryCreate,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return crud.create_category(db, ctx.user_id, category.model_dump())


@router.patch("/categories/{category_id}", response_model=CategoryOut)
async def update_category(
    category_id: str,
    updates: CategoryUpdate,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return crud.update_category(db, ctx.user_id, category_id, updates.model_dump(exclude_unset=True))


@router.delete("/categories/{category_id}", response_model=MessageOut)
async def delete_category(
    category_id: str,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    crud.delete_category(db, ctx.user_id, category_id)
    return {"message": "Category deleted successfully"}


# ---------- Notifications ----------
@router.get("/notifications", response_model=list[NotificationOut])
async def get_notifications(
    unread: Optional[bool] = None,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return crud.get_notifications(db, ctx.user_id, unread)


@router.patch("/notifications/{notification_id}/read", response_model=NotificationOut)
async def mark_notification_read(
    notification_id: str,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return crud.mark_notification_read(db, ctx.user_id, notification_id)


@router.delete("/notifications/{notification_id}", response_model=MessageOut)
async def delete_notification(
    notification_id: str,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    crud.delete_notification(db, ctx.user_id, notification_id)
    return {"message": "Notification deleted successfully"}


# ---------- Data management ----------
@router.delete("/user/data", response_model=MessageOut)
async def delete_user_data(
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    crud.delete_all_user_data(db, ctx.user_id)
    return {"message": "All user data deleted successfully"}


@router.get("/user/export")
async def export_user_data(
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    data = crud.export_user_data(db, ctx.user_id)

    def dump(schema, rows):
        return [schema.model_validate(row).model_dump(mode="json", by_alias=True) for row in rows]

    content = {
        "user": UserOut.model_validate(data["user"]).model_dump(mode="json", by_alias=True),
        "expenses": dump(ExpenseOut, data["expenses"]),
        "budgets": dump(BudgetOut, data["budgets"]),
        "goals": dump(GoalOut, data["goals"]),
        "categories": dump(CategoryOut, data["categories"]),
        "notifications": dump(NotificationOut, data["notifications"]),
        "exportedAt": utcnow().isoformat(),
    }
    return Response(
        content=json.dumps(content),
        media_type="application/json",
        headers={
            "Content-Disposition": f'attachment; filename="expense-data-{int(time.time() * 1000)}.json"'
        },
    )
