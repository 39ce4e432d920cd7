"""Authentication endpoints."""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from core import UnauthorizedError, create_access_token, hash_password, needs_rehash
from models import User
from services.auth import register_user, resolve_login_user

from .schemas import UserResponse

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"


class RegisterRequest(BaseModel):
    first_name: str = Field(max_length=80)
    last_name: str = Field(max_length=80)
    email: str = Field(max_length=255)
    password: str = Field(max_length=128)
    birthday: date
    gender: str = Field(max_length=32)
    nickname: str = Field(max_length=30)


class LoginRequest(BaseModel):
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=128)


class AuthResponse(BaseModel):
    user: UserResponse
    token: str


class MeResponse(BaseModel):
    user: UserResponse


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=AuthResponse)
async def register(
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_db),
) -> AuthResponse:
    user = await register_user(
        session,
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        password=payload.password,
        birthday=payload.birthday,
        gender=payload.gender,
        nickname=payload.nickname,
    )
    logger.info("User registered", extra={"user_id": user.id})
    return AuthResponse(
        user=UserResponse.model_validate(user),
        token=create_access_token(user.id),
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginRequest,
    session: AsyncSession = Depends(get_db),
) -> AuthResponse:
    user = await resolve_login_user(
        session,
        email=payload.email,
        password=payload.password,
    )
    if user is None:
        raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE)

    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(payload.password)
        session.add(user)
        await session.commit()
        await session.refresh(user)

    return AuthResponse(
        user=UserResponse.model_validate(user),
        token=create_access_token(user.id),
    )


@router.get("/me", response_model=MeResponse)
async def me(current_user: User = Depends(get_current_user)) -> MeResponse:
    return MeResponse(user=UserResponse.model_validate(current_user))
