"""
Auth Service
============
Login, token refresh/revocation and account maintenance.

Revoked refresh tokens are kept in memory for the lifetime of the
process. ``get_auth_service()`` hands every request the same instance so
a token revoked on one request stays revoked on the next.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from vitalgate.core.security import (
    TokenPair,
    TokenPayload,
    generate_token_pair,
    hash_password,
    verify_password,
    verify_refresh_token,
)
from vitalgate.db.entities import User
from vitalgate.models.auth import (
    ChangePasswordRequest,
    LoginResult,
    UpdateProfileRequest,
    UserProfile,
    UserSummary,
)
from vitalgate.validation import ensure_unique

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class AuthError(Exception):
    """Base class for auth failures; ``str(exc)`` is the client message."""


class InvalidCredentialsError(AuthError):
    pass


class InvalidTokenError(AuthError):
    pass


class UserNotFoundError(AuthError):
    def __init__(self, message: str = "User not found") -> None:
        super().__init__(message)


class UserExistsError(AuthError):
    pass


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class AuthService:
    def __init__(self) -> None:
        self._revoked_tokens: set[str] = set()

    # ---- Tokens ----------------------------------------------------------

    def login(self, email: str, password: str) -> LoginResult:
        user = User.find_one(email=email)
        if user is None or not verify_password(password, user.password):
            logger.info("Failed login for %s", email)
            raise InvalidCredentialsError("Invalid email or password")

        tokens = generate_token_pair(TokenPayload(user_id=user.id, email=user.email))
        return LoginResult(
            user=UserSummary(id=user.id, email=user.email, full_name=user.full_name),
            tokens=tokens,
        )

    def refresh_token(self, refresh_token: str) -> TokenPair:
        if self.is_revoked(refresh_token):
            raise InvalidTokenError("Token is invalid")

        payload = verify_refresh_token(refresh_token)
        if payload is None:
            raise InvalidTokenError("Refresh token is invalid or expired")

        user = User.find(payload.user_id)
        if user is None:
            raise UserNotFoundError()

        return generate_token_pair(TokenPayload(user_id=user.id, email=user.email))

    def revoke_token(self, refresh_token: str) -> None:
        if verify_refresh_token(refresh_token) is None:
            raise InvalidTokenError("Token is invalid")
        self._revoked_tokens.add(refresh_token)

    def is_revoked(self, refresh_token: str) -> bool:
        return refresh_token in self._revoked_tokens

    # ---- Account ---------------------------------------------------------

    def create_user(
        self,
        email: str,
        password: str,
        full_name: str,
        fcm_token: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> User:
        email = email.strip().lower()
        if User.where("email", email).exists():
            raise UserExistsError(f"User already exists: {email}")

        now = _now()
        user = User.create(
            id=user_id or str(uuid4()),
            email=email,
            password=hash_password(password),
            full_name=full_name,
            fcm_token=fcm_token or "",
            created_at=now,
            updated_at=now,
        )
        logger.info("Created user %s", user.id)
        return user

    def update_fcm_token(self, user_id: str, fcm_token: str) -> None:
        updated = User.update_where({"fcm_token": fcm_token, "updated_at": _now()}, id=user_id)
        if not updated:
            raise UserNotFoundError()

    def update_profile(self, user: User, changes: UpdateProfileRequest) -> UserProfile:
        values = changes.changes()
        ensure_unique(User, values, ["email"], exclude_id=user.id)

        updated = User.update_where({**values, "updated_at": _now()}, id=user.id)
        if not updated:
            raise UserNotFoundError()
        return to_profile(updated[0])

    def change_password(self, user: User, request: ChangePasswordRequest) -> None:
        if not verify_password(request.current_password, user.password):
            raise InvalidCredentialsError("Current password is incorrect")

        updated = User.update_where(
            {"password": hash_password(request.new_password), "updated_at": _now()},
            id=user.id,
        )
        if not updated:
            raise UserNotFoundError()
        logger.info("Password changed for user %s", user.id)


def to_profile(user: User) -> UserProfile:
    return UserProfile(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        fcm_token=user.fcm_token,
        birthdate=user.birthdate,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_default_service: AuthService | None = None


def get_auth_service() -> AuthService:
    global _default_service
    if _default_service is None:
        _default_service = AuthService()
    return _default_service
