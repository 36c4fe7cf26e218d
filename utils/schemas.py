"""
Pydantic request schemas for every endpoint.

Field names on the wire are camelCase; Python attributes are snake_case.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Annotated, Literal, Optional

from pydantic import (
    AfterValidator,
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
    model_validator,
)

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

Priority = Literal["low", "medium", "high"]


def _strip(value):
    return value.strip() if isinstance(value, str) else value


def _check_due_date(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    if not _DATE_RE.match(value):
        raise ValueError("Date must be in YYYY-MM-DD format")
    try:
        date.fromisoformat(value)
    except ValueError as exc:
        raise ValueError("Enter a valid date") from exc
    return value


# email-validator lowercases the domain only; the local part keeps its case
Email = Annotated[EmailStr, BeforeValidator(_strip)]
DueDate = Annotated[Optional[str], AfterValidator(_check_due_date)]


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ═══════════════════════════════════════════════════════════════════════════════
# Auth
# ═══════════════════════════════════════════════════════════════════════════════


class RegisterRequest(_CamelModel):
    email: Email
    password: str = Field(..., min_length=8, max_length=128)
    confirm_password: Optional[str] = Field(None, alias="confirmPassword")
    first_name: str = Field(..., alias="firstName", min_length=1, max_length=128)
    last_name: str = Field(..., alias="lastName", min_length=1, max_length=128)
    phone_number: Optional[str] = Field(None, alias="phoneNumber", max_length=32)

    @model_validator(mode="after")
    def passwords_match(self) -> "RegisterRequest":
        if self.confirm_password is not None and self.confirm_password != self.password:
            raise ValueError("Passwords do not match")
        return self


class LoginRequest(_CamelModel):
    email: str = Field(..., validation_alias=AliasChoices("email", "username"))
    password: str = Field(..., min_length=1)


class RefreshRequest(_CamelModel):
    refresh_token: str = Field(..., alias="refreshToken", min_length=1)


class ForgotPasswordRequest(_CamelModel):
    email: Email


class ResetPasswordRequest(_CamelModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8, max_length=128)


# ═══════════════════════════════════════════════════════════════════════════════
# To-dos
# ═══════════════════════════════════════════════════════════════════════════════


class TodoCreateRequest(_CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    priority: Priority = "medium"
    due_date: DueDate = Field(None, alias="dueDate")

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Title is required")
        return value

    @field_validator("description")
    @classmethod
    def strip_description(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class TodoUpdateRequest(_CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    completed: Optional[bool] = None
    priority: Optional[Priority] = None
    due_date: DueDate = Field(None, alias="dueDate")

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("Title is required")
        return value
