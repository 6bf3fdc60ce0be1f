"""
Auth Router
===========
POST   /api/v1/auth/login          email + password → user + token pair
POST   /api/v1/auth/refresh-token  refresh token → new token pair
DELETE /api/v1/auth/revoke-token   revoke a refresh token
PUT    /api/v1/auth/fcm-token      store the device push token (auth)
GET    /api/v1/auth/me             current user's profile (auth)
PUT    /api/v1/auth/profile        update name / email / birthdate (auth)
PUT    /api/v1/auth/password       change password (auth)
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from vitalgate.core.security import TokenPair
from vitalgate.db.entities import User
from vitalgate.models.auth import (
    ChangePasswordRequest,
    FcmTokenRequest,
    LoginRequest,
    LoginResult,
    RefreshTokenRequest,
    UpdateProfileRequest,
    UserProfile,
)
from vitalgate.models.common import ApiResponse
from vitalgate.routers.deps import get_current_user
from vitalgate.services.auth import (
    AuthService,
    InvalidCredentialsError,
    InvalidTokenError,
    UserNotFoundError,
    get_auth_service,
    to_profile,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _error(status_code: int, exc: Exception, code: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"message": str(exc), "code": code})


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


@router.post("/login", response_model=ApiResponse[LoginResult], summary="Log in")
async def login(
    body: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[LoginResult]:
    try:
        result = service.login(body.email, body.password)
    except InvalidCredentialsError as exc:
        raise _error(status.HTTP_401_UNAUTHORIZED, exc, "invalid_credentials") from exc
    return ApiResponse(message="Login successful", data=result)


@router.post("/refresh-token", response_model=ApiResponse[TokenPair], summary="Refresh tokens")
async def refresh_token(
    body: RefreshTokenRequest,
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[TokenPair]:
    try:
        tokens = service.refresh_token(body.refresh_token)
    except InvalidTokenError as exc:
        raise _error(status.HTTP_401_UNAUTHORIZED, exc, "token_invalid") from exc
    except UserNotFoundError as exc:
        raise _error(status.HTTP_401_UNAUTHORIZED, exc, "user_not_found") from exc
    return ApiResponse(message="Token refreshed successfully", data=tokens)


@router.delete("/revoke-token", response_model=ApiResponse[None], summary="Revoke a refresh token")
async def revoke_token(
    body: RefreshTokenRequest,
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[None]:
    try:
        service.revoke_token(body.refresh_token)
    except InvalidTokenError as exc:
        raise _error(status.HTTP_401_UNAUTHORIZED, exc, "token_invalid") from exc
    return ApiResponse(message="Token revoked successfully")


# ---------------------------------------------------------------------------
# Account
# ---------------------------------------------------------------------------


@router.put("/fcm-token", response_model=ApiResponse[None], summary="Store the FCM token")
async def update_fcm_token(
    body: FcmTokenRequest,
    user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[None]:
    try:
        service.update_fcm_token(user.id, body.fcm_token)
    except UserNotFoundError as exc:
        raise _error(status.HTTP_404_NOT_FOUND, exc, "user_not_found") from exc
    return ApiResponse(message="FCM token updated successfully")


@router.get("/me", response_model=ApiResponse[UserProfile], summary="Current user")
async def me(user: User = Depends(get_current_user)) -> ApiResponse[UserProfile]:
    return ApiResponse(data=to_profile(user))


@router.put("/profile", response_model=ApiResponse[UserProfile], summary="Update profile")
async def update_profile(
    body: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[UserProfile]:
    try:
        profile = service.update_profile(user, body)
    except UserNotFoundError as exc:
        raise _error(status.HTTP_404_NOT_FOUND, exc, "user_not_found") from exc
    return ApiResponse(message="Profile updated successfully", data=profile)


@router.put("/password", response_model=ApiResponse[None], summary="Change password")
async def change_password(
    body: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> ApiResponse[None]:
    try:
        service.change_password(user, body)
    except InvalidCredentialsError as exc:
        raise _error(status.HTTP_400_BAD_REQUEST, exc, "invalid_password") from exc
    except UserNotFoundError as exc:
        raise _error(status.HTTP_404_NOT_FOUND, exc, "user_not_found") from exc
    return ApiResponse(message="Password changed successfully")
