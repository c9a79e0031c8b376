"""OAuth sign-in and account linking endpoints."""

from typing import Optional
from urllib.parse import urlencode
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..core.exceptions import ChatlineException, ConflictError
from ..core.security import verify_oauth_state
from ..database import User, get_session
from ..dependencies import get_current_user, get_oauth_service, get_user_service
from ..schemas.auth import AuthorizationUrlResponse
from ..schemas.user import MeResponse
from ..services import AuthService, OAuthService, UserService
from ..services.oauth_service import get_provider_config
from .auth import set_refresh_cookie


router = APIRouter(prefix="/auth", tags=["OAuth"])


def _frontend_redirect(path: str, **params) -> RedirectResponse:
    url = f"{settings.FRONTEND_URL.rstrip('/')}{path}"
    if params:
        url = f"{url}?{urlencode(params)}"
    return RedirectResponse(url=url, status_code=302)


@router.get("/{provider}")
async def start_login(
    provider: str,
    oauth_service: OAuthService = Depends(get_oauth_service),
):
    """Redirect the browser to the provider's consent page."""
    return RedirectResponse(url=oauth_service.authorization_url(provider), status_code=307)


@router.get("/{provider}/callback")
async def oauth_callback(
    provider: str,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    oauth_service: OAuthService = Depends(get_oauth_service),
    session: AsyncSession = Depends(get_session),
):
    """
    Finish an OAuth flow.

    Signs the user in (or links the provider account when the flow was
    started from /auth/link) and redirects back to the frontend.
    """
    get_provider_config(provider)

    state_payload = verify_oauth_state(state, provider) if state else None
    if error or not code or state_payload is None:
        logger.warning(f"Rejected {provider} callback (error={error})")
        return _frontend_redirect("/login", error="oauth_failed")

    try:
        profile = await oauth_service.fetch_profile(provider, code)

        if state_payload.link_user_id:
            try:
                await oauth_service.link_account(UUID(state_payload.link_user_id), profile)
            except ConflictError:
                await session.rollback()
                return _frontend_redirect("/settings", error="already_linked")
            await session.commit()
            return _frontend_redirect("/settings", linked=provider)

        user = await oauth_service.login_or_register(profile)
        await session.commit()
    except ChatlineException as exc:
        await session.rollback()
        logger.warning(f"{provider} sign-in failed: {exc.message}")
        return _frontend_redirect("/login", error="oauth_failed")

    tokens = AuthService.issue_tokens(user)
    response = _frontend_redirect("/auth/callback", token=tokens.access_token)
    set_refresh_cookie(response, tokens.refresh_token)
    logger.info(f"User {user.id} signed in with {provider}")
    return response


@router.post("/link/{provider}", response_model=AuthorizationUrlResponse)
async def link_provider(
    provider: str,
    current_user: User = Depends(get_current_user),
    oauth_service: OAuthService = Depends(get_oauth_service),
):
    """Start an OAuth flow that attaches the provider account to the current user."""
    url = oauth_service.authorization_url(provider, link_user_id=current_user.id)
    return AuthorizationUrlResponse(authorization_url=url)


@router.post("/unlink/{provider}", response_model=MeResponse)
async def unlink_provider(
    provider: str,
    current_user: User = Depends(get_current_user),
    oauth_service: OAuthService = Depends(get_oauth_service),
    user_service: UserService = Depends(get_user_service),
):
    """Detach a provider account from the current user."""
    user = await oauth_service.unlink_account(current_user, provider)
    return await user_service.get_me(user)
