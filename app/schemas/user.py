# app/schemas/user.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, EmailStr, field_validator
from sqlmodel import Field, SQLModel

Role = Literal["user", "admin"]


class _ProfileFields(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=50)
    phone: str | None = Field(default=None, max_length=30)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("name cannot be blank")
        return v


class UserCreate(_ProfileFields):
    """
    Profile completion after sign-up. `email` is accepted only so the
    client can echo it back; it has to match the token.
    """

    email: EmailStr | None = None


class UserUpdate(_ProfileFields):
    pass


class UserRoleUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    role: Role


class UserRead(SQLModel):
    id: uuid.UUID
    email: EmailStr
    name: str
    phone: str | None = None
    role: Role
    created_at: datetime
