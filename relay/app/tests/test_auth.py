"""
Unit Tests for the Cookie/Token Relay
=====================================

Tests for relay/app/auth/routes.py

Test Coverage:
--------------
1. /send acknowledges after starting the passwordless flow
2. /verify sets the http-only refresh cookie and returns the access token
3. /token rotates the cookie, and answers every failure with a JSON 500
4. /disconnect always clears the cookie, even when revocation fails
5. /info merges user info with the token pair (refresh redacted when insecure)
6. Provider 401/403 map to a 401 error envelope

Run tests:
----------
    pytest relay/app/tests/test_auth.py -v
"""

import httpx
import pytest
from fastapi import status
from fastapi.testclient import TestClient

from relay.app.auth.context import REFRESH_COOKIE
from relay.app.auth.provider import IdentityProviderClient
from relay.app.auth.routes import extract_access_token
from relay.app.errors import ProviderError
from relay.app.main import create_app


def refresh_cookie_headers(response):
    """Set-Cookie headers for the refresh-token cookie only"""
    return [
        header for header in response.headers.get_list("set-cookie")
        if header.startswith(f"{REFRESH_COOKIE}=")
    ]


def provider_replying(response: httpx.Response) -> IdentityProviderClient:
    """Real provider client whose every request gets ``response``"""
    http_client = httpx.AsyncClient(
        base_url="https://tenant.example.auth0.com",
        transport=httpx.MockTransport(lambda request: response),
    )
    return IdentityProviderClient(http_client, client_id="cid", client_secret="csecret")


@pytest.fixture
def insecure_client(mock_settings, mock_provider):
    """Client for an app running with SECURE_COOKIES off"""
    settings = mock_settings.model_copy(update={"SECURE_COOKIES": False})
    app = create_app(settings)
    app.state.identity_client = mock_provider
    return TestClient(app)


# ============================================================================
# /send
# ============================================================================

def test_send_starts_passwordless_flow(client, mock_provider):
    response = client.post("/send", json={"email": "user@example.com"})

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "email sent"}
    mock_provider.start_passwordless.assert_awaited_once_with("user@example.com")


def test_send_does_not_validate_email_format(client, mock_provider):
    """The provider decides what a valid address is"""
    response = client.post("/send", json={"email": "not-an-email"})

    assert response.status_code == status.HTTP_200_OK
    mock_provider.start_passwordless.assert_awaited_once_with("not-an-email")


def test_send_provider_failure_returns_error_envelope(client, mock_provider):
    mock_provider.start_passwordless.side_effect = ProviderError.from_status(400)

    response = client.post("/send", json={"email": "user@example.com"})

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"error": "Request failed with status code 400"}


# ============================================================================
# /verify
# ============================================================================

def test_verify_sets_cookie_and_returns_access_token(client, mock_provider):
    mock_provider.exchange_code.return_value = {
        "access_token": "access-1",
        "refresh_token": "refresh-1",
        "token_type": "Bearer",
    }

    response = client.post("/verify", json={"email": "user@example.com", "code": "123456"})

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"token": "access-1"}
    mock_provider.exchange_code.assert_awaited_once_with("user@example.com", "123456")

    cookies = refresh_cookie_headers(response)
    assert len(cookies) == 1
    assert cookies[0].startswith(f"{REFRESH_COOKIE}=refresh-1")
    assert "HttpOnly" in cookies[0]
    assert "Secure" in cookies[0]


def test_verify_never_returns_refresh_token_in_body(client, mock_provider):
    mock_provider.exchange_code.return_value = {
        "access_token": "access-1",
        "refresh_token": "refresh-1",
    }

    response = client.post("/verify", json={"email": "user@example.com", "code": "123456"})

    assert "refresh-1" not in response.text


def test_verify_wrong_code_returns_401(client, mock_provider):
    mock_provider.exchange_code.side_effect = ProviderError.from_status(403)

    response = client.post("/verify", json={"email": "user@example.com", "code": "000000"})

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Request failed with status code 403"}
    assert refresh_cookie_headers(response) == []


def test_verify_insecure_mode_omits_secure_flag(insecure_client, mock_provider):
    mock_provider.exchange_code.return_value = {
        "access_token": "access-1",
        "refresh_token": "refresh-1",
    }

    response = insecure_client.post("/verify", json={"email": "user@example.com", "code": "1"})

    cookies = refresh_cookie_headers(response)
    assert "HttpOnly" in cookies[0]
    assert "Secure" not in cookies[0]


def test_verify_without_refresh_token_sets_no_cookie(client, mock_provider):
    mock_provider.exchange_code.return_value = {"access_token": "access-1"}

    response = client.post("/verify", json={"email": "user@example.com", "code": "123456"})

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"token": "access-1"}
    assert refresh_cookie_headers(response) == []


def test_verify_writes_no_session_state(client, mock_provider):
    mock_provider.exchange_code.return_value = {
        "access_token": "access-1",
        "refresh_token": "refresh-1",
    }

    response = client.post("/verify", json={"email": "user@example.com", "code": "123456"})

    assert "session" not in response.cookies


# ============================================================================
# /token
# ============================================================================

def test_token_rotates_cookie(client, mock_provider):
    mock_provider.refresh.return_value = {
        "access_token": "access-2",
        "refresh_token": "refresh-2",
    }
    client.cookies.set(REFRESH_COOKIE, "refresh-1")

    response = client.get("/token")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"token": "access-2"}
    mock_provider.refresh.assert_awaited_once_with("refresh-1")
    assert refresh_cookie_headers(response)[0].startswith(f"{REFRESH_COOKIE}=refresh-2")


def test_token_without_cookie_returns_500(client, mock_provider):
    mock_provider.refresh.side_effect = ProviderError.from_status(403)

    response = client.get("/token")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"error": "Request failed with status code 403"}
    mock_provider.refresh.assert_awaited_once_with(None)
    assert refresh_cookie_headers(response) == []


def test_token_with_revoked_cookie_returns_500(client, mock_provider):
    """Unauthorized from the provider is still a 500 on this path"""
    mock_provider.refresh.side_effect = ProviderError.from_status(401)
    client.cookies.set(REFRESH_COOKIE, "revoked")

    response = client.get("/token")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert "error" in response.json()


def test_token_network_failure_returns_500(client, mock_provider):
    mock_provider.refresh.side_effect = ProviderError("Provider request failed: connection refused")
    client.cookies.set(REFRESH_COOKIE, "refresh-1")

    response = client.get("/token")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"error": "Provider request failed: connection refused"}


def test_token_without_rotation_keeps_cookie(client, mock_provider):
    mock_provider.refresh.return_value = {"access_token": "access-2"}
    client.cookies.set(REFRESH_COOKIE, "refresh-1")

    response = client.get("/token")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"token": "access-2"}
    assert refresh_cookie_headers(response) == []


def test_token_non_json_provider_body_returns_error_message(client, app):
    app.state.identity_client = provider_replying(httpx.Response(200, text="<html>"))
    client.cookies.set(REFRESH_COOKIE, "refresh-1")

    response = client.get("/token")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json()["error"].startswith("Invalid provider response")


# ============================================================================
# /disconnect
# ============================================================================

def test_disconnect_revokes_and_clears_cookie(client, mock_provider):
    client.cookies.set(REFRESH_COOKIE, "refresh-1")

    response = client.get("/disconnect")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "disconnected"}
    mock_provider.revoke.assert_awaited_once_with("refresh-1")

    cookies = refresh_cookie_headers(response)
    assert len(cookies) == 1
    assert "Max-Age=0" in cookies[0]


def test_disconnect_swallows_revocation_failure(client, mock_provider):
    mock_provider.revoke.side_effect = ProviderError.from_status(500)
    client.cookies.set(REFRESH_COOKIE, "refresh-1")

    response = client.get("/disconnect")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "disconnected"}
    assert "Max-Age=0" in refresh_cookie_headers(response)[0]


def test_disconnect_clears_cookie_on_unexpected_error(client, mock_provider):
    mock_provider.revoke.side_effect = RuntimeError("boom")
    client.cookies.set(REFRESH_COOKIE, "refresh-1")

    response = client.get("/disconnect")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "disconnected"}
    assert "Max-Age=0" in refresh_cookie_headers(response)[0]


def test_disconnect_clears_cookie_on_plain_text_revoke_reply(client, app):
    app.state.identity_client = provider_replying(
        httpx.Response(200, text="OK", headers={"content-type": "text/plain"})
    )
    client.cookies.set(REFRESH_COOKIE, "refresh-1")

    response = client.get("/disconnect")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "disconnected"}
    assert "Max-Age=0" in refresh_cookie_headers(response)[0]


def test_disconnect_twice_is_idempotent(client, mock_provider):
    mock_provider.revoke.side_effect = [None, ProviderError.from_status(400)]

    first = client.get("/disconnect")
    second = client.get("/disconnect")

    assert first.status_code == second.status_code == status.HTTP_200_OK
    assert first.json() == second.json() == {"message": "disconnected"}
    assert mock_provider.revoke.await_count == 2


# ============================================================================
# /info
# ============================================================================

def test_info_merges_tokens_in_secure_mode(client, mock_provider):
    mock_provider.user_info.return_value = {"sub": "email|abc", "email": "user@example.com"}
    client.cookies.set(REFRESH_COOKIE, "refresh-1")

    response = client.get("/info", headers={"Authorization": "token access-1"})

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "sub": "email|abc",
        "email": "user@example.com",
        "tokens": {"refresh": "refresh-1", "access": "access-1"},
    }
    mock_provider.user_info.assert_awaited_once_with("access-1")


def test_info_redacts_refresh_token_in_insecure_mode(insecure_client, mock_provider):
    mock_provider.user_info.return_value = {"sub": "email|abc"}
    insecure_client.cookies.set(REFRESH_COOKIE, "refresh-1")

    response = insecure_client.get("/info", headers={"Authorization": "token access-1"})

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["tokens"] == {"refresh": "redacted", "access": "access-1"}
    assert "refresh-1" not in response.text


def test_info_unauthorized_returns_401(client, mock_provider):
    mock_provider.user_info.side_effect = ProviderError.from_status(401)

    response = client.get("/info", headers={"Authorization": "token expired"})

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Request failed with status code 401"}


def test_info_other_provider_error_returns_500(client, mock_provider):
    mock_provider.user_info.side_effect = ProviderError.from_status(502)

    response = client.get("/info", headers={"Authorization": "token access-1"})

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"error": "Request failed with status code 502"}


def test_info_without_header_sends_empty_token(client, mock_provider):
    mock_provider.user_info.side_effect = ProviderError.from_status(401)

    response = client.get("/info")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    mock_provider.user_info.assert_awaited_once_with("")


@pytest.mark.parametrize(
    "header,expected",
    [
        ("token abc", "abc"),
        ("abc", "abc"),
        (None, ""),
        ("", ""),
    ],
)
def test_extract_access_token(header, expected):
    assert extract_access_token(header) == expected


# ============================================================================
# System Endpoints
# ============================================================================

def test_health(client):
    response = client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "ok"


def test_missing_provider_client_returns_503(client, app):
    app.state.identity_client = None

    response = client.post("/send", json={"email": "user@example.com"})

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
