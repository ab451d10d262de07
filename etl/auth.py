"""
Tenant token exchange.

Trades the app id and secret for a short-lived tenant access token.
"""

import logging

import requests

from etl.client import FeishuClient
from etl.errors import AuthenticationError

logger = logging.getLogger(__name__)

TOKEN_ENDPOINT = "/auth/v3/tenant_access_token/internal"


def fetch_tenant_access_token(client: FeishuClient, app_id: str, app_secret: str) -> str:
    """
    Exchange app credentials for a tenant access token.

    Args:
        client: Shared Feishu client
        app_id: Feishu app id
        app_secret: Feishu app secret

    Returns:
        Bearer token string, valid for this run only

    Raises:
        AuthenticationError: If the exchange is rejected or cannot be made
    """
    logger.info("Requesting tenant access token")
    try:
        response = client.call(
            "POST",
            TOKEN_ENDPOINT,
            json={"app_id": app_id, "app_secret": app_secret},
        )
    except requests.RequestException as e:
        raise AuthenticationError(
            f"Token request failed: {e}", detail={"error": type(e).__name__}
        ) from e

    if not response.ok:
        raise AuthenticationError(
            f"Failed to obtain tenant access token: {response.message or 'unknown error'} "
            f"(code {response.code}, HTTP {response.status_code})",
            detail=response.describe(),
        )

    token = response.payload.get("tenant_access_token")
    if not token:
        raise AuthenticationError(
            "Token response did not include tenant_access_token",
            detail=response.describe(),
        )

    logger.info("Successfully authenticated with Feishu API")
    return token
