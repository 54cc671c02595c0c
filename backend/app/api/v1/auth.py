"""Auth: login, logout, refresh, change password, forgot password (OTP)."""

import logging
from typing import Annotated

from fastapi import APIRouter, Body, Depends

from app.api.deps import get_auth_service, get_current_user
from app.core.auth import UserClaims
from app.schemas.auth import (
    ChangePasswordBody,
    ForgotPasswordBody,
    ForgotPasswordChangeBody,
    LoginBody,
    TokenBody,
)
from app.schemas.common import ApiResponse, respond
from app.services.auth import AuthService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["auth"])


@router.post(
    "/login",
    response_model=ApiResponse,
    summary="Login with email and password",
    responses={
        400: {"description": "Validation error"},
        401: {"description": "Invalid credentials"},
    },
)
async def login(
    service: Annotated[AuthService, Depends(get_auth_service)],
    body: LoginBody,
):
    tokens = await service.login(body)
    return respond("Login successfully", tokens)


@router.post(
    "/logout",
    response_model=ApiResponse,
    summary="Revoke a refresh token",
    responses={
        401: {"description": "Access or refresh token missing"},
        403: {"description": "Invalid access token"},
    },
)
async def logout(
    service: Annotated[AuthService, Depends(get_auth_service)],
    user: Annotated[UserClaims, Depends(get_current_user)],
    body: Annotated[TokenBody, Body()] = TokenBody(),
):
    await service.logout(body.token)
    logger.info("Logout: user_id=%s", user.id)
    return respond("Logged out successfully")


@router.post(
    "/refresh-token",
    response_model=ApiResponse,
    summary="Exchange a refresh token for a new access token",
    responses={
        400: {"description": "Token missing, invalid or expired"},
    },
)
async def refresh_token(
    service: Annotated[AuthService, Depends(get_auth_service)],
    body: Annotated[TokenBody, Body()] = TokenBody(),
):
    tokens = await service.refresh(body.token)
    return respond("Token generated", tokens)


@router.post(
    "/change-password",
    response_model=ApiResponse,
    summary="Change the password of the authenticated user",
    responses={
        400: {"description": "Validation error"},
        401: {"description": "Invalid credential"},
        403: {"description": "Invalid access token"},
    },
)
async def change_password(
    service: Annotated[AuthService, Depends(get_auth_service)],
    user: Annotated[UserClaims, Depends(get_current_user)],
    body: ChangePasswordBody,
):
    await service.change_password(user.id, body)
    return respond("Password changed")


@router.post(
    "/forgot-password",
    response_model=ApiResponse,
    summary="Email a one-time password reset code",
    responses={
        400: {"description": "Validation error"},
        500: {"description": "Mail could not be sent"},
    },
)
async def forgot_password(
    service: Annotated[AuthService, Depends(get_auth_service)],
    body: ForgotPasswordBody,
):
    message = await service.forgot_password(body)
    return respond(message)


@router.post(
    "/forgot-password-change",
    response_model=ApiResponse,
    summary="Set a new password using the emailed code",
    responses={
        400: {"description": "Validation error, invalid or expired code"},
    },
)
async def forgot_password_change(
    service: Annotated[AuthService, Depends(get_auth_service)],
    body: ForgotPasswordChangeBody,
):
    await service.forgot_password_change(body)
    return respond("Password changed")
