# app/models/user.py
import uuid
from datetime import datetime, timezone

from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    """
    Shop account mirrored from Supabase Auth.

    The primary key is the JWT `sub`, so a row exists only for people who
    have signed in at least once. Guests never get a row. Credentials stay
    in Supabase; `role` is the shop's own authorization flag.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(primary_key=True, index=True)
    email: str = Field(unique=True, index=True)

    # Defaults to the local part of the email on first sign-in.
    name: str = Field(max_length=50)
    phone: str | None = Field(default=None, max_length=30)

    role: str = Field(default="user", index=True)  # "user" | "admin"

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
