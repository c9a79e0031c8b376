"""Authentication API endpoints."""

from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Response, status
from loguru import logger

from ..config import settings
from ..core.exceptions import InvalidTokenError
from ..database import User
from ..dependencies import get_auth_service, get_current_user, get_user_service
from ..schemas.auth import (
    AccessTokenResponse,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RegisterRequest,
    StatusMessage,
)
from ..schemas.user import MeResponse, UserResponse
from ..services import AuthService, UserService


router = APIRouter(tags=["Authentication"])


def set_refresh_cookie(response: Response, refresh_token: str) -> None:
    """Store the refresh token in an HTTP-only cookie."""
    response.set_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        value=refresh_token,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        path="/",
    )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Register a new user with email and password.

    Returns the created user. Sign in with /login afterwards.
    """
    user = await auth_service.register(
        name=request.name,
        email=request.email,
        password=request.password,
    )
    logger.info(f"Registered user {user.id}")
    return UserResponse.model_validate(user)


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Login with email and password.

    Returns access and refresh tokens and sets the refresh token cookie.
    """
    user, tokens = await auth_service.login(request.email, request.password)
    set_refresh_cookie(response, tokens.refresh_token)
    return LoginResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type=tokens.token_type,
        user=UserResponse.model_validate(user),
    )


@router.post("/refresh-token", response_model=AccessTokenResponse)
async def refresh_token(
    request: Optional[RefreshRequest] = None,
    refresh_cookie: Optional[str] = Cookie(None, alias=settings.REFRESH_COOKIE_NAME),
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Get a new access token.

    Uses the refresh token from the body, or from the cookie when the body has none.
    """
    token = (request.refresh_token if request else None) or refresh_cookie
    if not token:
        raise InvalidTokenError("Refresh token required")

    access_token = await auth_service.refresh_access_token(token)
    return AccessTokenResponse(access_token=access_token)


@router.post("/logout", response_model=StatusMessage)
async def logout(response: Response):
    """Clear the refresh token cookie."""
    response.delete_cookie(key=settings.REFRESH_COOKIE_NAME, path="/")
    return StatusMessage(message="Logout successful")


@router.get("/me", response_model=MeResponse)
async def get_me(
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
):
    """Get the authenticated user's profile."""
    return await user_service.get_me(current_user)
