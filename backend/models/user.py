"""User domain model."""

from __future__ import annotations

from datetime import date, datetime
from uuid import uuid4

from sqlalchemy import Column, Date, DateTime, Integer, String, Text, func
from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    """Registered application user."""

    __tablename__ = "users"

    id: str = Field(default_factory=lambda: str(uuid4()), sa_column=Column(String(36), primary_key=True))
    first_name: str = Field(sa_column=Column(String(80), nullable=False))
    last_name: str = Field(sa_column=Column(String(80), nullable=False))
    email: str = Field(
        sa_column=Column(String(255), unique=True, nullable=False, index=True)
    )
    nickname: str = Field(
        sa_column=Column(String(30), unique=True, nullable=False, index=True)
    )
    password_hash: str = Field(
        sa_column=Column(String(255), nullable=False)
    )
    birthday: date = Field(sa_column=Column(Date, nullable=False))
    # Snapshot taken at registration; not recomputed afterwards.
    age: int = Field(sa_column=Column(Integer, nullable=False))
    gender: str = Field(sa_column=Column(String(32), nullable=False))
    avatar_url: str | None = Field(
        default=None, sa_column=Column(Text, nullable=True)
    )
    # Object-store key backing avatar_url when the avatar lives in our bucket.
    avatar_key: str | None = Field(
        default=None, sa_column=Column(String(255), nullable=True)
    )
    created_at: datetime | None = Field(
        default=None,
        sa_column=Column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        ),
    )
    updated_at: datetime | None = Field(
        default=None,
        sa_column=Column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        ),
    )
