from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

import structlog

from backoffice.database.connection import get_db
from backoffice.dependencies.auth import get_user_by_username
from backoffice.models.customer import Customer
from backoffice.models.user import User
from backoffice.schemas.user import UserCreate, UserResponse, Token
from backoffice.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    decode_refresh_token,
    create_refresh_token
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/register", response_model=UserResponse)
def register_user(data: UserCreate, db: Session = Depends(get_db)):
    if get_user_by_username(db, data.username):
        raise HTTPException(status_code=400, detail="Username already taken")
    if data.customer_id is not None and not db.get(Customer, data.customer_id):
        raise HTTPException(status_code=400, detail="Customer not found")

    user = User(
        username=data.username,
        email=data.email,
        hashed_password=get_password_hash(data.password),
        role=data.role,
        customer_id=data.customer_id,
    )

    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("user_registered", username=user.username, role=user.role)
    return user


@router.post("/login", response_model=Token)
def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    user = get_user_by_username(db, form_data.username)

    if not user or not verify_password(form_data.password, user.hashed_password):
        logger.warning("login_failed", username=form_data.username)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    claims = {"sub": user.username, "role": user.role}
    return Token(
        access_token=create_access_token(dict(claims)),
        refresh_token=create_refresh_token(dict(claims)),
    )


@router.post("/refresh", response_model=Token)
def refresh_token(refresh_token: str):
    payload = decode_refresh_token(refresh_token)

    if not payload.username:
        raise HTTPException(status_code=401, detail="Invalid or expired refresh token")

    return Token(
        access_token=create_access_token({"sub": payload.username, "role": payload.role})
    )
