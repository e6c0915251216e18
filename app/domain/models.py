from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any
from urllib.parse import urlsplit
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import Field as PydanticField
from pydantic.alias_generators import to_camel
from sqlalchemy import JSON, Column, Index, text
from sqlmodel import Field, SQLModel

SYSTEM_ACCOUNT_ID = "000000000000000000000000"
DEFAULT_NODE_PHOTO = (
    "https://res.cloudinary.com/dymwgac6m/image/upload/v1765210908/"
    "296fe121-5dfa-43f4-98b5-db50019738a7_bxzq63.jpg"
)


def now_utc() -> datetime:
    return datetime.now(UTC)


class EventRecord(SQLModel, table=True):
    __tablename__ = "events"

    event_id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    event_type: str = Field(index=True)
    ts: datetime = Field(default_factory=now_utc, index=True)
    actor_id: str | None = Field(default=None, index=True)
    correlation_id: str | None = Field(default=None, index=True)
    payload: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
    )


class AuditLog(SQLModel, table=True):
    __tablename__ = "audit_logs"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    actor_id: str | None = Field(default=None, index=True)
    action: str = Field(index=True)
    node_id: str | None = Field(default=None, index=True)
    outcome: str
    status_code: int
    ts: datetime = Field(default_factory=now_utc, index=True)
    detail: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
    )


class AccountRole(StrEnum):
    USER = "USER"
    ADMIN = "ADMIN"


class Account(SQLModel, table=True):
    __tablename__ = "accounts"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    username: str = Field(index=True, unique=True)
    email: str = Field(index=True, unique=True)
    password_hash: str
    role: AccountRole = Field(default=AccountRole.USER, index=True)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=now_utc, index=True)


class OrgNodeType(StrEnum):
    DIVISION = "DIVISION"
    PERSON = "PERSON"


class OrgNode(SQLModel, table=True):
    __tablename__ = "org_nodes"
    __table_args__ = (
        Index(
            "uq_org_nodes_person_user",
            "user_id",
            unique=True,
            sqlite_where=text("node_type = 'PERSON'"),
            postgresql_where=text("node_type = 'PERSON'"),
        ),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    parent_id: str | None = Field(default=None, index=True)
    name: str = Field(index=True)
    role_title: str
    department: str | None = None
    description: str | None = None
    photo_url: str | None = None
    node_type: OrgNodeType = Field(default=OrgNodeType.PERSON, index=True)
    created_by_id: str = Field(index=True)
    linked_user_id: str | None = Field(default=None, index=True)
    user_id: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=now_utc, index=True)
    updated_at: datetime = Field(default_factory=now_utc)


class EventEnvelope(BaseModel):
    event_id: str = PydanticField(default_factory=lambda: str(uuid4()))
    event_type: str
    ts: datetime = PydanticField(default_factory=now_utc)
    actor_id: str | None = None
    correlation_id: str | None = None
    payload: dict[str, Any]


class ORMReadModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AccountRegister(CamelModel):
    username: str = PydanticField(min_length=2, max_length=64)
    email: str = PydanticField(min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = PydanticField(min_length=8, max_length=256)


class LoginRequest(CamelModel):
    identifier: str = PydanticField(min_length=1, max_length=254)
    password: str = PydanticField(min_length=1, max_length=256)


class AccountRead(ORMReadModel):
    id: str
    username: str
    email: str
    role: AccountRole
    is_active: bool
    created_at: datetime


class TokenResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    role: AccountRole


class OrgNodeRead(ORMReadModel):
    id: str
    parent_id: str | None = None
    name: str
    role_title: str
    department: str | None = None
    description: str | None = None
    photo_url: str | None = None
    node_type: OrgNodeType
    created_by_id: str
    linked_user_id: str | None = None
    user_id: str | None = None
    created_at: datetime
    updated_at: datetime


class DeleteResult(BaseModel):
    ok: bool = True


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def _blank_to_none(value: Any) -> Any:
    value = _strip(value)
    if value == "":
        return None
    return value


def _check_photo_url(value: str | None) -> str | None:
    if value is None:
        return None
    parsed = urlsplit(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError("photoUrl must be an http(s) URL")
    return value


class OrgNodeCreate(CamelModel):
    name: str = PydanticField(min_length=2, max_length=120)
    role_title: str = PydanticField(min_length=2, max_length=160)
    department: str | None = PydanticField(default=None, max_length=160)
    description: str | None = PydanticField(default=None, max_length=500)
    photo_url: str | None = PydanticField(default=None, max_length=512)
    parent_id: str | None = PydanticField(default=None, max_length=64)
    linked_user_id: str | None = PydanticField(default=None, max_length=64)

    strip_required = field_validator("name", "role_title", mode="before")(_strip)
    clear_optional = field_validator(
        "department",
        "description",
        "photo_url",
        "parent_id",
        "linked_user_id",
        mode="before",
    )(_blank_to_none)
    check_photo = field_validator("photo_url")(_check_photo_url)


class OrgNodeUpdate(CamelModel):
    node_id: str = PydanticField(min_length=1, max_length=64)
    name: str | None = PydanticField(default=None, min_length=2, max_length=120)
    role_title: str | None = PydanticField(default=None, min_length=2, max_length=160)
    department: str | None = PydanticField(default=None, max_length=160)
    description: str | None = PydanticField(default=None, max_length=500)
    photo_url: str | None = PydanticField(default=None, max_length=512)
    parent_id: str | None = PydanticField(default=None, max_length=64)
    linked_user_id: str | None = PydanticField(default=None, max_length=64)

    strip_required = field_validator("node_id", "name", "role_title", mode="before")(_strip)
    clear_optional = field_validator(
        "department",
        "description",
        "photo_url",
        "parent_id",
        "linked_user_id",
        mode="before",
    )(_blank_to_none)
    check_photo = field_validator("photo_url")(_check_photo_url)
