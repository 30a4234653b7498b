"""
Per-request relay context.

Handlers receive one RelayContext through FastAPI dependency injection
instead of reaching into middleware-managed globals. It bundles the request
cookies and session, the outgoing response (for Set-Cookie), the settings,
and the shared identity provider client.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request, Response, status

from ..config import Settings
from .provider import IdentityProviderClient

# Name of the http-only cookie carrying the refresh token
REFRESH_COOKIE = "auth0token"


# =============================================================================
# Application State Dependencies
# =============================================================================

def get_app_settings(request: Request) -> Settings:
    """Settings the running app was created with."""
    return request.app.state.settings


def get_identity_client(request: Request) -> IdentityProviderClient:
    """
    Dependency to get the identity provider client from app state.

    Raises:
        HTTPException: 503 if the client was not initialized
    """
    client = getattr(request.app.state, "identity_client", None)
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Identity provider client not available",
        )
    return client


# =============================================================================
# Relay Context
# =============================================================================

@dataclass
class RelayContext:
    request: Request
    response: Response
    settings: Settings
    provider: IdentityProviderClient

    @property
    def refresh_token(self) -> Optional[str]:
        """Refresh token from the incoming cookie, never from the body."""
        return self.request.cookies.get(REFRESH_COOKIE)

    @property
    def session(self) -> Dict[str, Any]:
        return self.request.session

    def store_refresh_token(self, refresh_token: str) -> None:
        """Write the (rotated) refresh token into the http-only cookie."""
        self.response.set_cookie(
            key=REFRESH_COOKIE,
            value=refresh_token,
            max_age=self.settings.REFRESH_COOKIE_MAX_AGE_SECONDS,
            httponly=True,
            secure=self.settings.SECURE_COOKIES,
            samesite="lax",
            path="/",
        )

    def clear_refresh_token(self) -> None:
        self.response.delete_cookie(
            key=REFRESH_COOKIE,
            httponly=True,
            secure=self.settings.SECURE_COOKIES,
            samesite="lax",
            path="/",
        )


async def get_relay_context(
    request: Request,
    response: Response,
    settings: Settings = Depends(get_app_settings),
    provider: IdentityProviderClient = Depends(get_identity_client),
) -> RelayContext:
    return RelayContext(
        request=request,
        response=response,
        settings=settings,
        provider=provider,
    )


__all__ = [
    "REFRESH_COOKIE",
    "RelayContext",
    "get_app_settings",
    "get_identity_client",
    "get_relay_context",
]
