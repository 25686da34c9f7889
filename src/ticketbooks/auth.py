"""Make sure both platforms have a working access token before a run."""

import structlog

from ticketbooks.callback_server import wait_for_callback
from ticketbooks.clients.base import AuthenticationError
from ticketbooks.clients.exact import ExactClient
from ticketbooks.clients.oauth import (
    exact_login_url,
    exchange_exact_code,
    exchange_pretix_code,
    pretix_login_url,
)
from ticketbooks.clients.pretix import PretixClient
from ticketbooks.config import get_settings
from ticketbooks.config.run_config import RunConfig

logger = structlog.get_logger(__name__)


async def is_pretix_authorized(config: RunConfig) -> bool:
    """Whether pretix credentials exist and are still accepted."""
    tokens = config.credentials_for("pretix")
    if tokens is None:
        return False

    logger.debug("checking_pretix_credentials")
    async with PretixClient(tokens.access_token, config.pretix.url) as client:
        try:
            await client.list_organizers()
        except AuthenticationError:
            logger.info("pretix_credentials_expired")
            return False
    return True


async def is_exact_authorized(config: RunConfig) -> bool:
    """Whether Exact Online credentials exist and are still accepted."""
    tokens = config.credentials_for("exact")
    if tokens is None:
        return False

    logger.debug("checking_exact_credentials")
    async with ExactClient(tokens.access_token) as client:
        try:
            await client.accounting_division()
        except AuthenticationError:
            logger.info("exact_credentials_expired")
            return False
    return True


async def _wait_for_code(config: RunConfig) -> str:
    settings = get_settings()
    return await wait_for_callback(
        config.web_server.ssl_cert,
        config.web_server.ssl_key,
        settings.callback_host,
        settings.callback_port,
    )


async def ensure_pretix_authentication(config: RunConfig) -> None:
    """Ask the user to log in to pretix if there is no valid token."""
    if await is_pretix_authorized(config):
        return

    oauth = config.pretix.oauth
    logger.info(
        "pretix_authorization_required",
        login_url=pretix_login_url(oauth.client_id, oauth.redirect_uri, config.pretix.url),
    )
    code = await _wait_for_code(config)
    tokens = await exchange_pretix_code(
        code, oauth.client_id, oauth.client_secret, oauth.redirect_uri, config.pretix.url
    )
    config.store_credentials("pretix", tokens)
    logger.info("pretix_login_successful")


async def ensure_exact_authentication(config: RunConfig) -> None:
    """Ask the user to log in to Exact Online if there is no valid token."""
    if await is_exact_authorized(config):
        return

    oauth = config.exact.oauth
    logger.info(
        "exact_authorization_required",
        login_url=exact_login_url(oauth.client_id, oauth.redirect_uri),
    )
    code = await _wait_for_code(config)
    tokens = await exchange_exact_code(
        code, oauth.client_id, oauth.client_secret, oauth.redirect_uri
    )
    config.store_credentials("exact", tokens)
    logger.info("exact_login_successful")


async def ensure_authentication(config: RunConfig) -> None:
    """Ensure all required services have a working access token.

    New tokens are stored in `config`; the caller writes it back to disk.
    """
    logger.info("checking_authorizations")
    await ensure_exact_authentication(config)
    await ensure_pretix_authentication(config)
    logger.info("authorizations_present")
