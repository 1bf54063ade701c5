"""
Resource access layer.

Every function takes the owning user's id and scopes each query on it. The
owner filter is added here, never taken from caller-supplied filters, and
updates/deletes are issued as statements filtered on both id and owner, so an
id belonging to another user behaves exactly like a missing one.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

import structlog
from sqlalchemy.orm import Session

from database import (
    OWNED_MODELS,
    Budget,
    Category,
    Expense,
    Goal,
    Notification,
    User,
    utcnow,
)
from errors import NotFound

logger = structlog.get_logger(__name__)

DEFAULT_CATEGORIES = [
    ("Food & Dining", "utensils", "#f97316"),
    ("Transportation", "car", "#3b82f6"),
    ("Shopping", "shopping-bag", "#ec4899"),
    ("Entertainment", "film", "#8b5cf6"),
    ("Bills & Utilities", "file-text", "#eab308"),
    ("Healthcare", "heart", "#ef4444"),
    ("Travel", "plane", "#06b6d4"),
    ("Education", "book", "#10b981"),
    ("Other", "more-horizontal", "#6b7280"),
]

# never writable through an update payload
_PROTECTED_FIELDS = {"id", "user_id", "created_at", "updated_at"}


@dataclass
class ExpenseFilters:
    category: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    tags: list[str] = field(default_factory=list)
    search: Optional[str] = None


def _scoped(db: Session, model, user_id: str):
    return db.query(model).filter(model.user_id == user_id)


def _get_owned(db: Session, model, user_id: str, item_id: str, label: str):
    item = _scoped(db, model, user_id).filter(model.id == item_id).first()
    if item is None:
        raise NotFound(f"{label} not found")
    return item


def _clean_changes(model, changes: dict, protected=_PROTECTED_FIELDS) -> dict:
    columns = model.__table__.columns
    values = {}
    for key, value in changes.items():
        if key in protected or key not in columns:
            continue
        # null on a required column means "leave unchanged"
        if value is None and not columns[key].nullable:
            continue
        values[key] = value
    return values


def _update_owned(db: Session, model, user_id: str, item_id: str, changes: dict, label: str):
    values = _clean_changes(model, changes)
    if not values:
        return _get_owned(db, model, user_id, item_id, label)
    if hasattr(model, "updated_at"):
        values["updated_at"] = utcnow()

    updated = (
        _scoped(db, model, user_id)
        .filter(model.id == item_id)
        .update(values, synchronize_session=False)
    )
    if not updated:
        db.rollback()
        raise NotFound(f"{label} not found")
    db.commit()
    return _get_owned(db, model, user_id, item_id, label)


def _delete_owned(db: Session, model, user_id: str, item_id: str, label: str):
    deleted = (
        _scoped(db, model, user_id)
        .filter(model.id == item_id)
        .delete(synchronize_session=False)
    )
    if not deleted:
        db.rollback()
        raise NotFound(f"{label} not found")
    db.commit()


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# ---------- Users ----------
def get_user(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def update_user_preferences(db: Session, user_id: str, changes: dict) -> User:
    values = _clean_changes(User, changes, _PROTECTED_FIELDS | {"email", "password"})
    values["updated_at"] = utcnow()
    updated = db.query(User).filter(User.id == user_id).update(values, synchronize_session=False)
    if not updated:
        db.rollback()
        raise NotFound("User not found")
    db.commit()
    return get_user(db, user_id)


def seed_default_categories(db: Session, user_id: str):
    for name, icon, color in DEFAULT_CATEGORIES:
        db.add(Category(user_id=user_id, name=name, icon=icon, color=color, is_default=True))


# ---------- Expenses ----------
def get_expenses(db: Session, user_id: str, filters: Optional[ExpenseFilters] = None) -> list[Expense]:
    filters = filters or ExpenseFilters()
    query = _scoped(db, Expense, user_id)

    if filters.category:
        query = query.filter(Expense.category == filters.category)
    if filters.start_date:
        query = query.filter(Expense.date >= filters.start_date)
    if filters.end_date:
        query = query.filter(Expense.date <= filters.end_date)
    if filters.search:
        query = query.filter(
            Expense.description.ilike(f"%{_escape_like(filters.search)}%", escape="\\")
        )

    expenses = query.order_by(Expense.date.desc(), Expense.created_at.desc()).all()

    # tags live in a JSON column, so the intersection is applied to the scoped rows
    if filters.tags:
        wanted = set(filters.tags)
        expenses = [e for e in expenses if wanted.intersection(e.tags or [])]
    return expenses


def get_expense(db: Session, user_id: str, expense_id: str) -> Expense:
    return _get_owned(db, Expense, user_id, expense_id, "Expense")


def create_expense(db: Session, user_id: str, data: dict) -> Expense:
    values = {k: v for k, v in data.items() if k not in _PROTECTED_FIELDS}
    values["tags"] = values.get("tags") or []
    expense = Expense(user_id=user_id, **values)
    db.add(expense)
    db.commit()
    db.refresh(expense)
    return expense


def update_expense(db: Session, user_id: str, expense_id: str, changes: dict) -> Expense:
    if "tags" in changes and changes["tags"] is None:
        changes = {**changes, "tags": []}
    return _update_owned(db, Expense, user_id, expense_id, changes, "Expense")


def delete_expense(db: Session, user_id: str, expense_id: str):
    _delete_owned(db, Expense, user_id, expense_id, "Expense")


# ---------- Budgets ----------
def get_budgets(db: Session, user_id: str, active: Optional[bool] = None) -> list[Budget]:
    query = _scoped(db, Budget, user_id)
    if active is not None:
        query = query.filter(Budget.is_active.is_(active))
    return query.order_by(Budget.created_at.desc()).all()


def get_budget(db: Session, user_id: str, budget_id: str) -> Budget:
    return _get_owned(db, Budget, user_id, budget_id, "Budget")


def create_budget(db: Session, user_id: str, data: dict) -> Budget:
    budget = Budget(user_id=user_id, **{k: v for k, v in data.items() if k not in _PROTECTED_FIELDS})
    db.add(budget)
    db.commit()
    db.refresh(budget)
    return budget


def update_budget(db: Session, user_id: str, budget_id: str, changes: dict) -> Budget:
    return _update_owned(db, Budget, user_id, budget_id, changes, "Budget")


def delete_budget(db: Session, user_id: str, budget_id: str):
    _delete_owned(db, Budget, user_id, budget_id, "Budget")


# ---------- Goals ----------
def get_goals(db: Session, user_id: str) -> list[Goal]:
    return _scoped(db, Goal, user_id).order_by(Goal.created_at.desc()).all()


def get_goal(db: Session, user_id: str, goal_id: str) -> Goal:
    return _get_owned(db, Goal, user_id, goal_id, "Goal")


def create_goal(db: Session, user_id: str, data: dict) -> Goal:
    values = {k: v for k, v in data.items() if k not in _PROTECTED_FIELDS}
    goal = Goal(user_id=user_id, **values)
    goal.is_completed = (goal.current_amount or 0) >= goal.target_amount
    db.add(goal)
    db.commit()
    db.refresh(goal)
    return goal


def update_goal(db: Session, user_id: str, goal_id: str, changes: dict) -> Goal:
    goal = get_goal(db, user_id, goal_id)
    target = changes.get("target_amount") or goal.target_amount
    current = changes.get("current_amount")
    if current is None:
        current = goal.current_amount or 0
    if "is_completed" not in changes and current >= target:
        changes = {**changes, "is_completed": True}
    return _update_owned(db, Goal, user_id, goal_id, changes, "Goal")


def delete_goal(db: Session, user_id: str, goal_id: str):
    _delete_owned(db, Goal, user_id, goal_id, "Goal")


# ---------- Categories ----------
def get_categories(db: Session, user_id: str) -> list[Category]:
    return (
        _scoped(db, Category, user_id)
        .order_by(Category.is_default.desc(), Category.name)
        .all()
    )


def get_category(db: Session, user_id: str, category_id: str) -> Category:
    return _get_owned(db, Category, user_id, category_id, "Category")


def create_category(db: Session, user_id: str, data: dict) -> Category:
    values = {k: v for k, v in data.items() if k not in _PROTECTED_FIELDS | {"is_default"}}
    category = Category(user_id=user_id, is_default=False, **values)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def update_category(db: Session, user_id: str, category_id: str, changes: dict) -> Category:
    return _update_owned(db, Category, user_id, category_id, changes, "Category")


def delete_category(db: Session, user_id: str, category_id: str):
    _delete_owned(db, Category, user_id, category_id, "Category")


# ---------- Notifications ----------
def get_notifications(db: Session, user_id: str, unread: Optional[bool] = None) -> list[Notification]:
    query = _scoped(db, Notification, user_id)
    if unread is not None:
        query = query.filter(Notification.is_read.is_(not unread))
    return query.order_by(Notification.created_at.desc()).all()


def create_notification(db: Session, user_id: str, title: str, message: str, type: str) -> Notification:
    notification = Notification(user_id=user_id, title=title, message=message, type=type)
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def mark_notification_read(db: Session, user_id: str, notification_id: str) -> Notification:
    return _update_owned(
        db, Notification, user_id, notification_id, {"is_read": True}, "Notification"
    )


def delete_notification(db: Session, user_id: str, notification_id: str):
    _delete_owned(db, Notification, user_id, notification_id, "Notification")


# ---------- Bulk operations ----------
def delete_all_user_data(db: Session, user_id: str):
    counts = {}
    for model in OWNED_MODELS:
        counts[model.__tablename__] = _scoped(db, model, user_id).delete(synchronize_session=False)
    db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
    db.commit()
    logger.info("user_data_deleted", user_id=user_id, **counts)


def export_user_data(db: Session, user_id: str) -> dict:
    user = get_user(db, user_id)
    if user is None:
        raise NotFound("User not found")
    return {
        "user": user,
        "expenses": get_expenses(db, user_id),
        "budgets": get_budgets(db, user_id),
        "goals": get_goals(db, user_id),
        "categories": get_categories(db, user_id),
        "notifications": get_notifications(db, user_id),
    }
