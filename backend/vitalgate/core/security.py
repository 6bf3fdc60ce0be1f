"""
Security Primitives
===================
Password hashing and JWT issuance/verification.

Passwords are stored as ``pbkdf2_sha256$<iterations>$<salt>$<hash>``.
Access and refresh tokens are HS256 JWTs signed with *separate* secrets,
so a refresh token can never be replayed as an access token (and vice
versa). Every token carries a ``jti`` so two tokens minted in the same
second are still distinct, which the revocation set relies on.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import uuid4

from jose import JWTError, jwt
from pydantic import BaseModel, Field

from vitalgate.config import get_settings

_PBKDF2_ALG = "sha256"
_PBKDF2_ITERATIONS = 200_000


# ---------------------------------------------------------------------------
# Token shapes
# ---------------------------------------------------------------------------


class TokenPayload(BaseModel):
    user_id: str = Field(..., alias="userId")
    email: str

    model_config = {"populate_by_name": True}


class TokenPair(BaseModel):
    access_token: str = Field(..., serialization_alias="accessToken")
    refresh_token: str = Field(..., serialization_alias="refreshToken")
    expires_in: int = Field(..., serialization_alias="expiresIn")


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------


def hash_password(password: str) -> str:
    salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac(_PBKDF2_ALG, password.encode("utf-8"), salt, _PBKDF2_ITERATIONS)
    return f"pbkdf2_{_PBKDF2_ALG}${_PBKDF2_ITERATIONS}${_b64url_encode(salt)}${_b64url_encode(dk)}"


def verify_password(password: str, password_hash: str) -> bool:
    try:
        scheme, iter_s, salt_b64, dk_b64 = password_hash.split("$", 3)
        if not scheme.startswith("pbkdf2_"):
            return False
        alg = scheme.split("_", 1)[1]
        expected = _b64url_decode(dk_b64)
        actual = hashlib.pbkdf2_hmac(alg, password.encode("utf-8"), _b64url_decode(salt_b64), int(iter_s))
    except (ValueError, TypeError):
        return False
    return hmac.compare_digest(actual, expected)


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _b64url_decode(data: str) -> bytes:
    pad = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode((data + pad).encode("ascii"))


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------


def _encode(payload: TokenPayload, secret: str, ttl_seconds: int) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    claims: dict[str, Any] = {
        "userId": payload.user_id,
        "email": payload.email,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
        "jti": uuid4().hex,
    }
    return jwt.encode(claims, secret, algorithm=settings.jwt_algorithm)


def _decode(token: str, secret: str) -> Optional[TokenPayload]:
    settings = get_settings()
    try:
        claims = jwt.decode(token, secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    if not claims.get("userId"):
        return None
    return TokenPayload(user_id=str(claims["userId"]), email=str(claims.get("email", "")))


def generate_access_token(payload: TokenPayload) -> str:
    settings = get_settings()
    return _encode(payload, settings.jwt_secret, settings.access_token_expiry_seconds)


def generate_refresh_token(payload: TokenPayload) -> str:
    settings = get_settings()
    return _encode(payload, settings.jwt_refresh_secret, settings.refresh_token_expiry_seconds)


def generate_token_pair(payload: TokenPayload) -> TokenPair:
    return TokenPair(
        access_token=generate_access_token(payload),
        refresh_token=generate_refresh_token(payload),
        expires_in=get_settings().access_token_expiry_seconds,
    )


def verify_access_token(token: str) -> Optional[TokenPayload]:
    """Return the payload of a valid, unexpired access token, else None."""
    return _decode(token, get_settings().jwt_secret)


def verify_refresh_token(token: str) -> Optional[TokenPayload]:
    """Return the payload of a valid, unexpired refresh token, else None."""
    return _decode(token, get_settings().jwt_refresh_secret)


def extract_token_from_header(auth_header: Optional[str]) -> Optional[str]:
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.removeprefix("Bearer ").strip()
    return token or None
