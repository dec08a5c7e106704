"""Authentication endpoints: signup, login, refresh, logout, password reset."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import get_current_user
from app.core.rate_limit import clear_failed_logins, is_account_locked, record_failed_login
from app.database import get_db
from app.models.user import User
from app.schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    RefreshRequest,
    ResetPasswordRequest,
    SignupRequest,
    TokenResponse,
)
from app.schemas.user import UserRead
from app.services.auth import AuthService, TokenPair

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_payload(tokens: TokenPair, user: User | None = None) -> dict:
    response = TokenResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.expires_in,
        user=UserRead.model_validate(user) if user is not None else None,
    )
    return response.model_dump(mode="json", by_alias=True, exclude_none=True)


@router.post("/signup", response_model=dict, status_code=status.HTTP_201_CREATED)
async def signup(
    data: SignupRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Register a student account and sign it in."""
    svc = AuthService(db)
    result = await svc.signup(email=data.email, password=data.password, name=data.name)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered.",
        )
    user, tokens = result
    return {"success": True, "data": _token_payload(tokens, user)}


@router.post("/login", response_model=dict)
async def login(
    data: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Authenticate user and return an access/refresh token pair."""
    if is_account_locked(data.email):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Account temporarily locked due to too many failed attempts. Please try again in 15 minutes.",
        )

    svc = AuthService(db)
    result = await svc.login(email=data.email, password=data.password)
    if result is None:
        record_failed_login(data.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
        )

    clear_failed_logins(data.email)
    user, tokens = result
    return {"success": True, "data": _token_payload(tokens, user)}


@router.post("/refresh", response_model=dict)
async def refresh_token(
    data: RefreshRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Exchange a refresh token for a new pair. The old refresh token is revoked."""
    svc = AuthService(db)
    result = await svc.refresh(data.refresh_token)
    if result is None:
        logger.info("Rejected refresh with invalid or expired token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token.",
        )
    _, tokens = result
    return {"success": True, "data": _token_payload(tokens)}


@router.post("/logout", response_model=dict)
async def logout(
    request: Request,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Revoke the access token used for this request."""
    svc = AuthService(db)
    await svc.revoke_token(request.state.access_token)
    logger.info("User %s logged out", current_user.id)
    return {"success": True, "data": {"message": "Logged out successfully."}}


@router.post("/forgot-password", response_model=dict)
async def forgot_password(
    data: ForgotPasswordRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Email a password reset link if the account exists.

    Always returns success to prevent email enumeration.
    """
    svc = AuthService(db)
    await svc.initiate_password_reset(email=data.email)
    return {
        "success": True,
        "data": {"message": "If the email exists, a reset link has been sent."},
    }


@router.post("/reset-password", response_model=dict)
async def reset_password(
    data: ResetPasswordRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Reset password using a reset token."""
    svc = AuthService(db)
    success = await svc.complete_password_reset(token=data.token, new_password=data.password)
    if not success:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired reset token.",
        )
    return {
        "success": True,
        "data": {"message": "Password reset successfully."},
    }


@router.get("/me", response_model=dict)
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Get the current authenticated user's profile."""
    return {
        "success": True,
        "data": UserRead.model_validate(current_user).model_dump(mode="json", by_alias=True),
    }
