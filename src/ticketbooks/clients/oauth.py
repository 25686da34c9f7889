"""OAuth2 authorization-code flow for pretix and Exact Online."""

from urllib.parse import quote

import httpx
import structlog

from ticketbooks.clients.base import APIError, AuthenticationError
from ticketbooks.clients.exact import EXACT_URL
from ticketbooks.config import get_settings
from ticketbooks.config.run_config import OAuthTokenPair

logger = structlog.get_logger(__name__)


def pretix_login_url(client_id: str, redirect_uri: str, pretix_url: str) -> str:
    """URL the user opens to authorize the pretix client."""
    return (
        f"{pretix_url.rstrip('/')}/api/v1/oauth/authorize"
        f"?client_id={client_id}&response_type=code&scope=read+write"
        f"&redirect_uri={quote(redirect_uri, safe='')}"
    )


def exact_login_url(client_id: str, redirect_uri: str) -> str:
    """URL the user opens to authorize the Exact Online client."""
    return (
        f"{EXACT_URL}/api/oauth2/auth"
        f"?client_id={client_id}&redirect_uri={quote(redirect_uri, safe='')}"
        "&response_type=code&force_login=0"
    )


async def _exchange(
    url: str, data: dict[str, str], auth: tuple[str, str] | None = None
) -> OAuthTokenPair:
    settings = get_settings()
    async with httpx.AsyncClient(timeout=httpx.Timeout(settings.http_timeout)) as client:
        try:
            response = await client.post(url, data=data, auth=auth)
        except httpx.RequestError as e:
            raise APIError(f"Token request failed: {e}") from e

    if response.status_code in (400, 401):
        raise AuthenticationError(
            "Authorization code rejected",
            status_code=response.status_code,
            details=response.text[:500],
        )
    if response.status_code >= 400:
        raise APIError(
            f"Token endpoint error: {response.status_code}",
            status_code=response.status_code,
            details=response.text[:500],
        )

    return OAuthTokenPair.model_validate(response.json())


async def exchange_pretix_code(
    code: str,
    client_id: str,
    client_secret: str,
    redirect_uri: str,
    pretix_url: str,
) -> OAuthTokenPair:
    """Exchange a pretix authorization code for a token pair."""
    tokens = await _exchange(
        f"{pretix_url.rstrip('/')}/api/v1/oauth/token",
        {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
        },
        auth=(client_id, client_secret),
    )
    logger.info("pretix_code_exchanged")
    return tokens


async def exchange_exact_code(
    code: str,
    client_id: str,
    client_secret: str,
    redirect_uri: str,
) -> OAuthTokenPair:
    """Exchange an Exact Online authorization code for a token pair."""
    tokens = await _exchange(
        f"{EXACT_URL}/api/oauth2/token",
        {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "client_id": client_id,
            "client_secret": client_secret,
        },
    )
    logger.info("exact_code_exchanged")
    return tokens
