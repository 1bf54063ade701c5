import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# ---------- Users ----------
class UserRegister(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)


class UserLogin(CamelModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UserOut(CamelModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    language: str
    currency: str
    timezone: str
    theme: str
    onboarding_completed: bool
    created_at: Optional[dt.datetime] = None


class UserUpdate(CamelModel):
    first_name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = Field(None, min_length=1)
    profile_image_url: Optional[str] = None
    language: Optional[str] = Field(None, min_length=2, max_length=10)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    timezone: Optional[str] = None
    theme: Optional[Literal["light", "dark", "system"]] = None
    onboarding_completed: Optional[bool] = None


class AuthResponse(CamelModel):
    message: str
    token: str
    user: UserOut


class MessageOut(BaseModel):
    message: str


# ---------- Expenses ----------
class ExpenseCreate(CamelModel):
    amount: float
    type: Literal["debit", "credit"] = "debit"
    description: str = Field(..., min_length=1)
    category: Optional[str] = None
    date: dt.date = Field(default_factory=dt.date.today)
    location: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    mood: Optional[str] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    receipt_url: Optional[str] = None
    tags: Optional[list[str]] = None


class ExpenseUpdate(CamelModel):
    amount: Optional[float] = None
    type: Optional[Literal["debit", "credit"]] = None
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1)
    date: Optional[dt.date] = None
    location: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    mood: Optional[str] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    receipt_url: Optional[str] = None
    tags: Optional[list[str]] = None


class ExpenseOut(CamelModel):
    id: str
    user_id: str
    amount: float
    type: str
    description: str
    category: str
    date: dt.date
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    mood: Optional[str] = None
    rating: Optional[int] = None
    receipt_url: Optional[str] = None
    tags: list[str] = []
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_default(cls, value):
        return value or []


class ReceiptOut(CamelModel):
    id: str
    description: str
    category: str
    amount: float
    date: dt.date
    receipt_url: str
    tags: list[str] = []
    location: Optional[str] = None

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_default(cls, value):
        return value or []


# ---------- Budgets ----------
class BudgetCreate(CamelModel):
    name: str = Field(..., min_length=1)
    category: Optional[str] = None
    amount: float = Field(..., gt=0)
    period: Literal["weekly", "monthly", "yearly"] = "monthly"
    start_date: dt.date = Field(default_factory=dt.date.today)
    end_date: Optional[dt.date] = None
    is_active: bool = True


class BudgetUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = None
    amount: Optional[float] = Field(None, gt=0)
    period: Optional[Literal["weekly", "monthly", "yearly"]] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    is_active: Optional[bool] = None


class BudgetOut(CamelModel):
    id: str
    user_id: str
    name: str
    category: Optional[str] = None
    amount: float
    period: str
    start_date: dt.date
    end_date: Optional[dt.date] = None
    is_active: bool
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


# ---------- Goals ----------
class GoalCreate(CamelModel):
    name: str = Field(..., min_length=1)
    target_amount: float = Field(..., gt=0)
    current_amount: float = Field(0.0, ge=0)
    category: Optional[str] = None
    deadline: Optional[dt.date] = None


class GoalUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    target_amount: Optional[float] = Field(None, gt=0)
    current_amount: Optional[float] = Field(None, ge=0)
    category: Optional[str] = None
    deadline: Optional[dt.date] = None
    is_completed: Optional[bool] = None


class GoalOut(CamelModel):
    id: str
    user_id: str
    name: str
    target_amount: float
    current_amount: float
    category: Optional[str] = None
    deadline: Optional[dt.date] = None
    is_completed: bool
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


# ---------- Categories ----------
class CategoryCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    icon: Optional[str] = None
    color: Optional[str] = None


class CategoryUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    icon: Optional[str] = None
    color: Optional[str] = None


class CategoryOut(CamelModel):
    id: str
    user_id: str
    name: str
    icon: Optional[str] = None
    color: Optional[str] = None
    is_default: bool
    created_at: Optional[dt.datetime] = None


# ---------- Notifications ----------
class NotificationOut(CamelModel):
    id: str
    user_id: str
    title: str
    message: str
    type: str
    is_read: bool
    created_at: Optional[dt.datetime] = None


# ---------- Uploads ----------
class UploadOut(CamelModel):
    url: str
    original_name: Optional[str] = None
    filename: str
    size: int
    mimetype: str
    uploaded_at: dt.datetime


# ---------- AI insights ----------
class ExpenseAnalysisRequest(CamelModel):
    description: str = Field(..., min_length=1)
    amount: float = 0.0
    location: Optional[str] = None


class ExpenseAnalysis(CamelModel):
    suggested_category: str
    tags: list[str] = []
    confidence: float
    insights: Optional[str] = None


class AdviceRequest(CamelModel):
    question: str = Field(..., min_length=1)


class AdviceOut(CamelModel):
    question: str
    advice: str
    tips: list[str] = []


class SpendingInsight(CamelModel):
    type: str
    title: str
    message: str


# ---------- Currency ----------
class CurrencyOut(CamelModel):
    code: str
    name: str
    symbol: str


class ConvertRequest(CamelModel):
    amount: float
    from_currency: str = Field(..., alias="from", min_length=3, max_length=3)
    to_currency: str = Field(..., alias="to", min_length=3, max_length=3)


class ConversionOut(CamelModel):
    amount: float
    from_currency: str = Field(..., alias="from")
    to_currency: str = Field(..., alias="to")
    rate: float
    converted_amount: float
