import logging

import sqlalchemy
from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, EmailStr, Field

from vroom import database as db
from vroom.api.common import utcnow
from vroom.security import create_access_token, hash_password, verify_password

log = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1",
    tags=["auth"]
)


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=5)


class LoginRequest(BaseModel):
    email: str
    password: str


class MessageResponse(BaseModel):
    message: str


class TokenResponse(BaseModel):
    token: str


@router.post("/register", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def register(body: RegisterRequest):
    """Create an account with email and password"""
    with db.engine.begin() as connection:
        existing = connection.execute(
            sqlalchemy.text("SELECT id FROM users WHERE lower(email) = lower(:email)"),
            {"email": body.email}
        ).fetchone()

        if existing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already exists"
            )

        now = utcnow().isoformat()
        connection.execute(
            sqlalchemy.text(
                """
                INSERT INTO users (name, email, password, created_at, updated_at)
                VALUES (:name, :email, :password, :created_at, :updated_at)
                """
            ),
            {
                "name": body.name,
                "email": body.email,
                "password": hash_password(body.password),
                "created_at": now,
                "updated_at": now,
            }
        )

    log.info(f"[Auth] Registered {body.email}")
    return MessageResponse(message="Register success")


@router.post("/login", response_model=TokenResponse)
def login(body: LoginRequest):
    """Exchange email and password for a bearer token"""
    with db.engine.begin() as connection:
        user = connection.execute(
            sqlalchemy.text("SELECT id, email, password FROM users WHERE lower(email) = lower(:email)"),
            {"email": body.email}
        ).fetchone()

    if not user or not verify_password(body.password, user.password):
        log.info(f"[Auth] Failed login for {body.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email/password"
        )

    return TokenResponse(token=create_access_token(user.id, user.email))
