"""
Authentication Package

This package relays the Auth0 passwordless flow for the browser client.

Key responsibilities:
- Emailing one-time codes and exchanging them for tokens
- Keeping the refresh token in an http-only cookie
- Rotating and revoking refresh tokens
- Returning user info for a bearer access token

Modules:
- provider: Identity provider HTTP client
- context: Per-request context (cookies, session, settings, provider)
- routes: Public endpoints (/send, /verify, /token, /disconnect, /info)

The authentication flow:
1. Client posts an email to /send and receives a code by email
2. Client posts email + code to /verify
3. Relay stores the refresh token in a cookie and returns the access token
4. Client calls /token whenever the access token is lost or expired
5. Client calls /disconnect to revoke and clear the refresh token
"""

from .routes import auth_router

__all__ = [
    "auth_router",
]
