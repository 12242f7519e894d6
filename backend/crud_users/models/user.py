import uuid
from datetime import UTC, datetime
from enum import Enum

from sqlmodel import Field, SQLModel


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(UTC)


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    name: str = Field(max_length=40)
    last_name: str = Field(max_length=40)
    mother_last_name: str | None = Field(default=None, max_length=40)
    phone_number: str = Field(unique=True, index=True, max_length=10)
    email: str = Field(unique=True, index=True, max_length=40)
    username: str = Field(unique=True, index=True, max_length=30)
    password_hash: str
    role: Role = Field(default=Role.USER)
    is_active: bool = Field(default=True)
    last_login: datetime | None = Field(default=None)
    # Reserved for a password-reset flow; never read or exposed.
    reset_password_token: str | None = Field(default=None)
    reset_password_expire: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column_kwargs={"onupdate": utcnow},
    )
