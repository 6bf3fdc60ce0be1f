"""
Auth Schemas
============
Pydantic models for the auth API. Field names follow the mobile client's
wire format (``refreshToken``, ``fcmToken``) via aliases.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator

from vitalgate.core.security import TokenPair

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _check_email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip().lower()
    if not _EMAIL_RE.match(value):
        raise ValueError("Invalid email format")
    return value


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=254)
    password: str = Field(..., min_length=6, max_length=128)

    @field_validator("email")
    @classmethod
    def valid_email(cls, value: Optional[str]) -> Optional[str]:
        return _check_email(value)


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(..., alias="refreshToken", min_length=1)


class FcmTokenRequest(BaseModel):
    fcm_token: str = Field(..., alias="fcmToken", min_length=1)


class UpdateProfileRequest(BaseModel):
    full_name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    email: Optional[str] = Field(default=None, max_length=254)
    birthdate: Optional[date] = None

    @field_validator("email")
    @classmethod
    def valid_email(cls, value: Optional[str]) -> Optional[str]:
        return _check_email(value)

    @field_validator("birthdate")
    @classmethod
    def birthdate_not_in_future(cls, value: Optional[date]) -> Optional[date]:
        if value is not None and value > datetime.now(timezone.utc).date():
            raise ValueError("Birthdate cannot be in the future")
        return value

    @model_validator(mode="after")
    def at_least_one_field(self) -> UpdateProfileRequest:
        if not self.changes():
            raise ValueError("At least one field is required")
        return self

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude_none=True, mode="json")


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)
    password_confirmation: str = Field(..., min_length=1)

    @field_validator("password_confirmation")
    @classmethod
    def matches_new_password(cls, value: str, info: ValidationInfo) -> str:
        if "new_password" in info.data and value != info.data["new_password"]:
            raise ValueError("Password confirmation does not match")
        return value


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class UserSummary(BaseModel):
    id: str
    email: str
    full_name: str


class UserProfile(UserSummary):
    fcm_token: Optional[str] = None
    birthdate: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LoginResult(BaseModel):
    user: UserSummary
    tokens: TokenPair
