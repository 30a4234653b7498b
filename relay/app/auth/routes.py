"""
Authentication routes for the passwordless cookie/token relay.

The refresh token only ever travels in the http-only ``auth0token`` cookie;
the access token is returned in the JSON body so the browser can keep it in
memory. Endpoints:

    POST /send        email a one-time code
    POST /verify      exchange email + code for tokens
    GET  /token       rotate the refresh cookie, return a new access token
    GET  /disconnect  revoke the refresh token and clear the cookie
    GET  /info        user info plus the current token pair
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, status
from fastapi.responses import JSONResponse

from ..errors import ProviderError
from ..models import (
    ErrorResponse,
    MessageResponse,
    SendCodeRequest,
    TokenResponse,
    VerifyCodeRequest,
)
from .context import RelayContext, get_relay_context

logger = logging.getLogger("relay.auth.routes")

auth_router = APIRouter(tags=["authentication"])

# Prefix the browser client puts in front of the access token
AUTH_HEADER_PREFIX = "token "

REDACTED = "redacted"


# =============================================================================
# Passwordless Flow
# =============================================================================

@auth_router.post("/send", response_model=MessageResponse)
async def send_code(
    body: SendCodeRequest,
    ctx: RelayContext = Depends(get_relay_context),
):
    """
    Send the user an email with a one-time code.

    The address is not validated here; the provider enforces its own rules.
    """
    await ctx.provider.start_passwordless(body.email)
    return {"message": "email sent"}


@auth_router.post("/verify", response_model=TokenResponse)
async def verify_code(
    body: VerifyCodeRequest,
    ctx: RelayContext = Depends(get_relay_context),
):
    """
    Exchange the email and one-time code for access and refresh tokens.

    The refresh token goes into the http-only cookie and survives browser
    restarts; the access token is only returned in the body. A rejected
    code raises ProviderUnauthorized, answered by the global 401 handler.
    """
    result = await ctx.provider.exchange_code(body.email, body.code)

    if result.get("refresh_token"):
        ctx.store_refresh_token(result["refresh_token"])

    logger.info("Passwordless code verified")

    return {"token": result["access_token"]}


# =============================================================================
# Token Lifecycle
# =============================================================================

@auth_router.get(
    "/token",
    response_model=TokenResponse,
    responses={500: {"model": ErrorResponse}},
)
async def refresh_token(ctx: RelayContext = Depends(get_relay_context)):
    """
    Exchange the refresh cookie for a new access token.

    Called when the in-memory access token is missing or expired. Failures
    are answered here with a JSON 500 so the client can always parse the body.
    """
    try:
        result = await ctx.provider.refresh(ctx.refresh_token)
        # rotation is optional on the provider side
        if result.get("refresh_token"):
            ctx.store_refresh_token(result["refresh_token"])
        return {"token": result["access_token"]}
    except (ProviderError, KeyError) as e:
        logger.warning(
            f"Token refresh failed: {e}",
            extra={"has_cookie": ctx.refresh_token is not None},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(e)},
        )


@auth_router.get("/disconnect", response_model=MessageResponse)
async def disconnect(ctx: RelayContext = Depends(get_relay_context)):
    """
    Revoke the refresh token and clear it from the browser.

    Revocation failures are logged, never surfaced: the cookie is cleared
    either way, so the client is disconnected regardless.
    """
    try:
        await ctx.provider.revoke(ctx.refresh_token)
    except ProviderError as e:
        logger.warning(
            f"Refresh token revocation failed: {e}",
            extra={"status_code": e.status_code},
        )
    except Exception:
        logger.exception("Unexpected error revoking refresh token")

    ctx.clear_refresh_token()
    ctx.session.clear()

    return {"message": "disconnected"}


# =============================================================================
# User Info
# =============================================================================

def extract_access_token(authorization: Optional[str]) -> str:
    """
    Strip the ``token `` prefix from an Authorization header value.

    Args:
        authorization: Raw header value (may be missing)

    Returns:
        The access token, or an empty string when the header is absent
    """
    header = authorization or ""
    if header.startswith(AUTH_HEADER_PREFIX):
        return header[len(AUTH_HEADER_PREFIX):]
    return header


@auth_router.get("/info")
async def user_info(
    authorization: Optional[str] = Header(None),
    ctx: RelayContext = Depends(get_relay_context),
) -> Dict[str, Any]:
    """
    Get the user's profile from the provider along with the current tokens.

    ``tokens.refresh`` carries the cookie value only in secure-cookie mode;
    otherwise it is the literal ``"redacted"``. Provider errors propagate to
    the global handlers.
    """
    access_token = extract_access_token(authorization)

    result = await ctx.provider.user_info(access_token)

    result["tokens"] = {
        "refresh": ctx.refresh_token if ctx.settings.SECURE_COOKIES else REDACTED,
        "access": access_token,
    }

    return result


__all__ = ["auth_router", "extract_access_token"]
