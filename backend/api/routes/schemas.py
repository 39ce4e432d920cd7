"""Response models shared by several routers."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict


class UserResponse(BaseModel):
    """Public view of a user; never carries the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    first_name: str
    last_name: str
    email: str
    nickname: str
    birthday: date
    age: int
    gender: str
    avatar_url: str | None = None
