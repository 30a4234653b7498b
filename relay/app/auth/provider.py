"""
Identity provider client for the Auth0 passwordless flow.

Each method sends exactly one request with a fixed method, path and JSON
payload, and returns the parsed response body. Non-2xx responses raise
ProviderError (ProviderUnauthorized for 401/403). There is no retry and no
caching.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from ..config import Settings
from ..errors import ProviderError

logger = logging.getLogger("relay.auth.provider")

PASSWORDLESS_OTP_GRANT = "http://auth0.com/oauth/grant-type/passwordless/otp"
PASSWORDLESS_SCOPE = "openid profile email offline_access"


class IdentityProviderClient:
    """
    Thin wrapper over a shared httpx.AsyncClient bound to the provider URL.

    Attributes:
        client_id: Application client ID sent on every token call
        client_secret: Client secret for refresh and revoke
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        client_id: str,
        client_secret: Optional[str] = None,
    ):
        self._http = http_client
        self.client_id = client_id
        self.client_secret = client_secret

    @classmethod
    def from_settings(cls, settings: Settings) -> "IdentityProviderClient":
        http_client = httpx.AsyncClient(
            base_url=settings.provider_url_str,
            headers={"content-type": "application/json"},
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        )
        return cls(
            http_client,
            client_id=settings.AUTH0_CLIENT_ID,
            client_secret=settings.AUTH0_CLIENT_SECRET,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    # =========================================================================
    # Provider Operations
    # =========================================================================

    async def start_passwordless(self, email: str) -> Dict[str, Any]:
        """Ask the provider to email a one-time code to ``email``."""
        return await self._request(
            "POST",
            "/passwordless/start",
            json={
                "connection": "email",
                "send": "code",
                "client_id": self.client_id,
                "email": email,
            },
        )

    async def exchange_code(self, email: str, code: str) -> Dict[str, Any]:
        """
        Exchange an email + one-time code for an access/refresh token pair.

        Returns:
            Token response containing access_token and refresh_token
        """
        return await self._request(
            "POST",
            "/oauth/token",
            json={
                "grant_type": PASSWORDLESS_OTP_GRANT,
                "realm": "email",
                "scope": PASSWORDLESS_SCOPE,
                "client_id": self.client_id,
                "username": email,
                "otp": code,
            },
        )

    async def refresh(self, refresh_token: Optional[str]) -> Dict[str, Any]:
        """Trade a refresh token for a new (rotated) token pair."""
        return await self._request(
            "POST",
            "/oauth/token",
            json={
                "grant_type": "refresh_token",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": refresh_token,
            },
        )

    async def revoke(self, refresh_token: Optional[str]) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/oauth/revoke",
            json={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "token": refresh_token,
            },
        )

    async def user_info(self, access_token: Optional[str]) -> Dict[str, Any]:
        """Fetch the profile for ``access_token``. Never cached."""
        return await self._request(
            "GET",
            "/userinfo",
            headers={"authorization": f"Bearer {access_token}"},
        )

    # =========================================================================
    # Transport
    # =========================================================================

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        try:
            response = await self._http.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.error(
                f"Provider request failed: {e}",
                extra={"method": method, "path": path},
            )
            raise ProviderError(f"Provider request failed: {e}") from e

        if not response.is_success:
            logger.warning(
                "Provider rejected request",
                extra={"method": method, "path": path, "status_code": response.status_code},
            )
            raise ProviderError.from_status(response.status_code)

        # /oauth/revoke answers 200 with an empty body
        if not response.content:
            return {}

        try:
            return response.json()
        except ValueError as e:
            logger.warning(
                "Provider returned a non-JSON body",
                extra={"method": method, "path": path, "status_code": response.status_code},
            )
            raise ProviderError(f"Invalid provider response: {e}", response.status_code) from e


__all__ = ["IdentityProviderClient"]
