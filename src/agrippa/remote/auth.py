"""Token acquisition against the identity provider (OAuth2 password grant)."""

from __future__ import annotations

import logging

import httpx

from agrippa.core.errors import ConnectError
from agrippa.utils.config import AUTH_FIELDS, CredentialStore, WorkspaceConfig, ensure_config

logger = logging.getLogger(__name__)


async def get_token(
    config: WorkspaceConfig, transport: httpx.AsyncBaseTransport | None = None
) -> str:
    """Request a fresh access token with the configured user and client credentials.

    Raises:
        ConfigurationError: an identity provider field is missing.
        ConnectError: the provider was unreachable or refused the grant.
    """
    ensure_config(config, AUTH_FIELDS)
    form = {
        "username": config.keycloak_user,
        "password": config.keycloak_password,
        "client_id": config.keycloak_client_id,
        "client_secret": config.keycloak_client_secret,
        "grant_type": "password",
    }
    try:
        async with httpx.AsyncClient(timeout=30.0, transport=transport) as http:
            response = await http.post(config.keycloak_url, data=form)
    except httpx.HTTPError as e:
        raise ConnectError(config.keycloak_url, 0, str(e) or type(e).__name__) from e
    if response.status_code != 200:
        raise ConnectError(str(response.url), response.status_code, response.text)
    try:
        return response.json()["access_token"]
    except (ValueError, KeyError, TypeError) as e:
        raise ConnectError(str(response.url), 0, f"no access_token in response: {e!r}") from e


async def refresh_token(
    credentials: CredentialStore, transport: httpx.AsyncBaseTransport | None = None
) -> WorkspaceConfig:
    """Fetch a token and persist it; returns the updated config."""
    token = await get_token(credentials.load(), transport=transport)
    logger.debug("Obtained a new auth token")
    return credentials.update(auth_token=token)
