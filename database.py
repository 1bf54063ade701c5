import uuid
from datetime import datetime, timezone

from fastapi import Request
from sqlalchemy import (
    create_engine,
    event,
    Column,
    Integer,
    String,
    Float,
    Date,
    DateTime,
    ForeignKey,
    Boolean,
    Text,
    JSON,
)
from sqlalchemy.orm import sessionmaker, declarative_base, relationship
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def new_id():
    return str(uuid.uuid4())


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _owner_column():
    return Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


def _owned_relationship(name):
    return relationship(
        name, back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )


class User(Base):
    __tablename__ = "users"
    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password = Column(Text, nullable=False)
    first_name = Column(String(120))
    last_name = Column(String(120))
    profile_image_url = Column(String(500))
    language = Column(String(10), default="en", nullable=False)
    currency = Column(String(3), default="USD", nullable=False)
    timezone = Column(String(64), default="UTC", nullable=False)
    theme = Column(String(20), default="light", nullable=False)
    onboarding_completed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    expenses = _owned_relationship("Expense")
    budgets = _owned_relationship("Budget")
    goals = _owned_relationship("Goal")
    categories = _owned_relationship("Category")
    notifications = _owned_relationship("Notification")


class Expense(Base):
    __tablename__ = "expenses"
    id = Column(String(36), primary_key=True, default=new_id)
    user_id = _owner_column()
    amount = Column(Float, nullable=False)
    type = Column(String(10), nullable=False, default="debit")  # debit | credit
    description = Column(Text, nullable=False)
    category = Column(String(100), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    location = Column(Text)
    latitude = Column(Float)
    longitude = Column(Float)
    mood = Column(String(30))
    rating = Column(Integer)
    receipt_url = Column(String(500))
    tags = Column(JSON, default=list)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="expenses")


class Budget(Base):
    __tablename__ = "budgets"
    id = Column(String(36), primary_key=True, default=new_id)
    user_id = _owner_column()
    name = Column(String(120), nullable=False)
    category = Column(String(100))
    amount = Column(Float, nullable=False)
    period = Column(String(10), nullable=False)  # weekly | monthly | yearly
    start_date = Column(Date, nullable=False)
    end_date = Column(Date)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="budgets")


class Goal(Base):
    __tablename__ = "goals"
    id = Column(String(36), primary_key=True, default=new_id)
    user_id = _owner_column()
    name = Column(String(120), nullable=False)
    target_amount = Column(Float, nullable=False)
    current_amount = Column(Float, default=0.0, nullable=False)
    category = Column(String(100))
    deadline = Column(Date)
    is_completed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="goals")


class Category(Base):
    __tablename__ = "categories"
    id = Column(String(36), primary_key=True, default=new_id)
    user_id = _owner_column()
    name = Column(String(100), nullable=False)
    icon = Column(String(50))
    color = Column(String(20))
    is_default = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="categories")


class Notification(Base):
    __tablename__ = "notifications"
    id = Column(String(36), primary_key=True, default=new_id)
    user_id = _owner_column()
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(30), nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="notifications")


# Bearer tokens are stateless; this table only exists for server-side
# session stores sharing the schema.
class SessionRecord(Base):
    __tablename__ = "sessions"
    sid = Column(String(255), primary_key=True)
    sess = Column(JSON, nullable=False)
    expire = Column(DateTime, nullable=False, index=True)


OWNED_MODELS = (Expense, Budget, Goal, Category, Notification)


def create_db_engine(database_url: str):
    kwargs = {}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    engine = create_engine(database_url, **kwargs)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(database_url: str):
    engine = create_db_engine(database_url)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
