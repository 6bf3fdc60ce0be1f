"""
Router Dependencies
===================
``get_current_user`` resolves the Bearer access token on a request to a
``User`` row. Routers that need auth declare
``user: User = Depends(get_current_user)``.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Header, HTTPException, status

from vitalgate.core.security import extract_token_from_header, verify_access_token
from vitalgate.db.entities import User

logger = logging.getLogger(__name__)


def _unauthorised(message: str, code: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"message": message, "code": code},
    )


def get_current_user(
    authorization: Optional[str] = Header(default=None, description="Bearer access token"),
) -> User:
    """Verify the access token and return the user it belongs to.

    Raises HTTPException 401 when the header is missing, the token does
    not verify, or the user no longer exists.
    """
    token = extract_token_from_header(authorization)
    if token is None:
        raise _unauthorised("Authorization token is required", "auth_required")

    payload = verify_access_token(token)
    if payload is None:
        raise _unauthorised("Token is invalid or expired", "auth_invalid")

    user = User.find(payload.user_id)
    if user is None:
        logger.warning("Access token for missing user %s", payload.user_id)
        raise _unauthorised("User not found", "user_not_found")

    return user
