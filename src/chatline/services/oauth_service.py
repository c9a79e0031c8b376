"""Google and Facebook sign-in over the OAuth 2.0 authorization code flow."""

from typing import Dict, Optional
from urllib.parse import urlencode
from uuid import UUID

import httpx
from loguru import logger
from pydantic import BaseModel

from ..config import settings
from ..core.exceptions import (
    ConflictError,
    InvalidCredentialsError,
    ResourceNotFoundError,
    ServiceUnavailableError,
    ValidationError,
)
from ..core.security import create_oauth_state
from ..database import User, utcnow
from ..repositories.user_repository import PROVIDER_ID_COLUMNS, UserRepository

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"

FACEBOOK_GRAPH_VERSION = "v19.0"
FACEBOOK_AUTH_URL = f"https://www.facebook.com/{FACEBOOK_GRAPH_VERSION}/dialog/oauth"
FACEBOOK_TOKEN_URL = f"https://graph.facebook.com/{FACEBOOK_GRAPH_VERSION}/oauth/access_token"
FACEBOOK_PROFILE_URL = f"https://graph.facebook.com/{FACEBOOK_GRAPH_VERSION}/me"

SUPPORTED_PROVIDERS = tuple(PROVIDER_ID_COLUMNS)


class OAuthProviderConfig(BaseModel):
    """Client credentials of one provider."""
    name: str
    client_id: str
    client_secret: str
    redirect_uri: str


class OAuthProfile(BaseModel):
    """The parts of a provider profile Chatline uses."""
    provider: str
    provider_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    avatar_url: Optional[str] = None


def get_provider_config(provider: str) -> OAuthProviderConfig:
    """
    Resolve a provider's credentials from settings.

    Raises:
        ResourceNotFoundError: Unknown provider
        ServiceUnavailableError: Provider has no credentials configured
    """
    if provider == "google":
        client_id, client_secret = settings.GOOGLE_CLIENT_ID, settings.GOOGLE_CLIENT_SECRET
        redirect_uri = settings.GOOGLE_CALLBACK_URL
    elif provider == "facebook":
        client_id, client_secret = settings.FACEBOOK_APP_ID, settings.FACEBOOK_APP_SECRET
        redirect_uri = settings.FACEBOOK_CALLBACK_URL
    else:
        raise ResourceNotFoundError("OAuth provider", provider)

    if not client_id or not client_secret:
        raise ServiceUnavailableError(f"{provider.capitalize()} sign-in is not configured")

    return OAuthProviderConfig(
        name=provider,
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=redirect_uri or f"{settings.API_URL.rstrip('/')}/auth/{provider}/callback",
    )


class OAuthService:
    """Builds authorization URLs, exchanges codes and maps profiles to users."""

    def __init__(self, user_repo: UserRepository, http_client: httpx.AsyncClient):
        self.user_repo = user_repo
        self.http = http_client

    def authorization_url(self, provider: str, link_user_id: Optional[UUID] = None) -> str:
        """URL of the provider consent page, carrying a signed state."""
        config = get_provider_config(provider)
        state = create_oauth_state(provider, link_user_id)

        if provider == "google":
            params = {
                "client_id": config.client_id,
                "redirect_uri": config.redirect_uri,
                "response_type": "code",
                "scope": "openid email profile",
                "state": state,
                "prompt": "select_account",
            }
            return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

        params = {
            "client_id": config.client_id,
            "redirect_uri": config.redirect_uri,
            "response_type": "code",
            "scope": "email,public_profile",
            "state": state,
        }
        return f"{FACEBOOK_AUTH_URL}?{urlencode(params)}"

    async def fetch_profile(self, provider: str, code: str) -> OAuthProfile:
        """
        Exchange an authorization code and fetch the signed-in profile.

        Raises:
            InvalidCredentialsError: Provider rejected the code or returned no id
        """
        config = get_provider_config(provider)
        try:
            if provider == "google":
                profile = await self._fetch_google_profile(config, code)
            else:
                profile = await self._fetch_facebook_profile(config, code)
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            logger.warning(f"OAuth exchange with {provider} failed: {exc}")
            raise InvalidCredentialsError("OAuth sign-in failed") from exc

        if not profile.provider_id:
            raise InvalidCredentialsError("OAuth sign-in failed")
        return profile

    async def _fetch_google_profile(self, config: OAuthProviderConfig, code: str) -> OAuthProfile:
        token_response = await self.http.post(
            GOOGLE_TOKEN_URL,
            data={
                "code": code,
                "client_id": config.client_id,
                "client_secret": config.client_secret,
                "redirect_uri": config.redirect_uri,
                "grant_type": "authorization_code",
            },
        )
        token_response.raise_for_status()
        access_token = token_response.json()["access_token"]

        info_response = await self.http.get(
            GOOGLE_USERINFO_URL,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        info_response.raise_for_status()
        info = info_response.json()

        return OAuthProfile(
            provider="google",
            provider_id=str(info["sub"]),
            email=info.get("email") if info.get("email_verified", True) else None,
            name=info.get("name"),
            avatar_url=info.get("picture"),
        )

    async def _fetch_facebook_profile(self, config: OAuthProviderConfig, code: str) -> OAuthProfile:
        token_response = await self.http.get(
            FACEBOOK_TOKEN_URL,
            params={
                "client_id": config.client_id,
                "client_secret": config.client_secret,
                "redirect_uri": config.redirect_uri,
                "code": code,
            },
        )
        token_response.raise_for_status()
        access_token = token_response.json()["access_token"]

        profile_response = await self.http.get(
            FACEBOOK_PROFILE_URL,
            params={"fields": "id,name,email,picture.type(large)", "access_token": access_token},
        )
        profile_response.raise_for_status()
        info = profile_response.json()
        picture: Dict = info.get("picture", {}).get("data", {})

        return OAuthProfile(
            provider="facebook",
            provider_id=str(info["id"]),
            email=info.get("email"),
            name=info.get("name"),
            avatar_url=picture.get("url"),
        )

    async def login_or_register(self, profile: OAuthProfile) -> User:
        """
        Find the user behind a provider profile, creating one if needed.

        Matches on provider id first, then on email (linking the provider id
        to that account).
        """
        id_field = PROVIDER_ID_COLUMNS[profile.provider].key

        user = await self.user_repo.get_by_provider_id(profile.provider, profile.provider_id)
        if user is None and profile.email:
            user = await self.user_repo.get_by_email(profile.email)
            if user is not None:
                logger.info(f"Linking {profile.provider} account to existing user {user.id}")
                await self.user_repo.update(user, **{id_field: profile.provider_id})

        if user is None:
            user = await self.user_repo.create(
                name=profile.name or (profile.email.split("@")[0] if profile.email else "User"),
                email=profile.email.lower() if profile.email else None,
                password_hash=None,
                provider=profile.provider,
                email_verified=True,
                avatar_url=profile.avatar_url,
                **{id_field: profile.provider_id},
            )
            logger.info(f"Created user {user.id} from {profile.provider} sign-in")

        await self.user_repo.update(user, last_seen_at=utcnow())
        return user

    async def link_account(self, user_id: UUID, profile: OAuthProfile) -> User:
        """Attach a provider account to an existing user."""
        user = await self.user_repo.get_or_raise(user_id)

        owner = await self.user_repo.get_by_provider_id(profile.provider, profile.provider_id)
        if owner is not None and owner.id != user.id:
            raise ConflictError(
                f"This {profile.provider} account is already linked to another user"
            )

        id_field = PROVIDER_ID_COLUMNS[profile.provider].key
        return await self.user_repo.update(user, **{id_field: profile.provider_id})

    async def unlink_account(self, user: User, provider: str) -> User:
        """Detach a provider account, keeping at least one way to sign in."""
        if provider not in SUPPORTED_PROVIDERS:
            raise ResourceNotFoundError("OAuth provider", provider)

        id_field = PROVIDER_ID_COLUMNS[provider].key
        if getattr(user, id_field) is None:
            raise ValidationError(f"No {provider} account is linked")

        other_providers = [
            name for name in SUPPORTED_PROVIDERS
            if name != provider and getattr(user, PROVIDER_ID_COLUMNS[name].key)
        ]
        if not user.password_hash and not other_providers:
            raise ValidationError("Cannot unlink the only sign-in method")

        data = {id_field: None}
        if user.provider == provider:
            data["provider"] = "local" if user.password_hash else other_providers[0]
        return await self.user_repo.update(user, **data)
