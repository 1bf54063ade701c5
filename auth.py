from dataclasses import dataclass
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.security import OAuth2PasswordBearer
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import crud
from database import get_db, User
from errors import Conflict, NotFound, Unauthorized
from schemas import AuthResponse, MessageOut, UserLogin, UserOut, UserRegister, UserUpdate
from tokens import InvalidToken, TokenService

logger = structlog.get_logger(__name__)

auth_router = APIRouter()
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/login", auto_error=False)

INVALID_CREDENTIALS = "Invalid credentials"


@dataclass
class AuthContext:
    user_id: str
    user: User


def create_password_context(rounds: int = 12) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def get_password_context(request: Request) -> CryptContext:
    return request.app.state.pwd_context


async def get_auth_context(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> AuthContext:
    if not token:
        logger.info("unauthorized", reason="missing_token")
        raise Unauthorized("No token provided")

    try:
        user_id = tokens.verify(token)
    except InvalidToken as exc:
        logger.info("unauthorized", reason=str(exc))
        raise Unauthorized("Invalid token")

    user = crud.get_user(db, user_id)
    if user is None:
        logger.info("unauthorized", reason="user_not_found", user_id=user_id)
        raise Unauthorized("User not found")
    return AuthContext(user_id=user.id, user=user)


@auth_router.post("/register", response_model=AuthResponse)
def register(
    payload: UserRegister,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    pwd_context: CryptContext = Depends(get_password_context),
):
    if crud.get_user_by_email(db, payload.email):
        raise Conflict("User already exists")

    user = User(
        email=payload.email,
        password=pwd_context.hash(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
    )
    db.add(user)
    try:
        db.flush()
        crud.seed_default_categories(db, user.id)
        db.commit()
    except IntegrityError:
        # lost a race against a concurrent registration with the same email
        db.rollback()
        raise Conflict("User already exists")
    db.refresh(user)

    logger.info("user_registered", user_id=user.id)
    return AuthResponse(
        message="User created successfully",
        token=tokens.issue(user.id),
        user=UserOut.model_validate(user),
    )


@auth_router.post("/login", response_model=AuthResponse)
def login(
    payload: UserLogin,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    pwd_context: CryptContext = Depends(get_password_context),
):
    user = crud.get_user_by_email(db, payload.email)
    if user is None:
        # keep the timing of unknown emails close to that of wrong passwords
        pwd_context.dummy_verify()
        logger.info("login_failed", email=payload.email)
        raise Unauthorized(INVALID_CREDENTIALS)

    if not pwd_context.verify(payload.password, user.password):
        logger.info("login_failed", email=payload.email)
        raise Unauthorized(INVALID_CREDENTIALS)

    return AuthResponse(
        message="Login successful",
        token=tokens.issue(user.id),
        user=UserOut.model_validate(user),
    )


@auth_router.post("/logout", response_model=MessageOut)
async def logout():
    # tokens are stateless, the client discards its copy
    return {"message": "Logged out successfully"}


@auth_router.get("/auth/user", response_model=UserOut)
async def get_user(
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    user = crud.get_user(db, ctx.user_id)
    if user is None:
        raise NotFound("User not found")
    return user


@auth_router.patch("/auth/user", response_model=UserOut)
async def update_user(
    updates: UserUpdate,
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return crud.update_user_preferences(db, ctx.user_id, updates.model_dump(exclude_unset=True))
