"""
Configuration module for the Passwordless Auth Relay.

This module uses Pydantic Settings to load and validate environment variables
for the identity provider (Auth0), cookie and session handling, CRM access,
CORS, and the listening server.

Environment variables are loaded from .env file or system environment.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All configuration for the identity provider, cookies, CRM access and
    the HTTP/socket server is defined here.
    """

    # =========================================================================
    # Identity Provider (Auth0 passwordless)
    # =========================================================================

    AUTH0_URL: str = Field(
        ...,
        description="Identity provider base URL (e.g., https://tenant.eu.auth0.com)",
        min_length=1,
    )

    AUTH0_CLIENT_ID: str = Field(
        ...,
        description="Application client ID registered with the provider",
        min_length=1,
    )

    AUTH0_CLIENT_SECRET: Optional[str] = Field(
        None,
        description="Client secret (needed for refresh and revoke)",
    )

    PROVIDER_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Timeout applied to outbound provider and CRM requests",
        gt=0,
    )

    # =========================================================================
    # Cookies & Session
    # =========================================================================

    SESSION_SECRET: str = Field(
        ...,
        description="Secret key for signing the session cookie",
        min_length=32,
    )

    SESSION_MAX_AGE_MS: int = Field(
        default=60000,
        description="Session cookie max-age in milliseconds",
        ge=1000,
    )

    SECURE_COOKIES: bool = Field(
        default=True,
        description="Mark cookies Secure; when off, /info redacts the refresh token",
    )

    REFRESH_COOKIE_MAX_AGE_SECONDS: Optional[int] = Field(
        None,
        description="Refresh-token cookie max-age (unset means a browser-session cookie)",
        ge=1,
    )

    # =========================================================================
    # CRM (Salesforce REST)
    # =========================================================================

    CRM_INSTANCE_URL: Optional[str] = Field(
        None,
        description="CRM instance URL (e.g., https://acme.my.salesforce.com)",
    )

    CRM_ACCESS_TOKEN: Optional[str] = Field(
        None,
        description="Bearer token used for CRM queries",
    )

    CRM_API_VERSION: str = Field(
        default="v58.0",
        description="CRM REST API version",
    )

    # =========================================================================
    # Server Configuration
    # =========================================================================

    HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the relay server",
    )

    PORT: int = Field(
        default=80,
        description="Port to bind the relay server",
        ge=1,
        le=65535,
    )

    ALLOWED_ORIGINS: Optional[str] = Field(
        None,
        description="Comma-separated list of allowed CORS origins (leave empty for no CORS)",
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def allowed_origins_list(self) -> List[str]:
        """
        Parse and return ALLOWED_ORIGINS as a list.

        Returns:
            List of allowed origin URLs, or empty list if not configured.
        """
        if not self.ALLOWED_ORIGINS:
            return []

        return [
            origin.strip()
            for origin in self.ALLOWED_ORIGINS.split(",")
            if origin.strip()
        ]

    @property
    def provider_url_str(self) -> str:
        """Provider base URL without trailing slash."""
        return self.AUTH0_URL.rstrip("/")

    @property
    def session_max_age_seconds(self) -> int:
        """Session max-age converted for Starlette, which counts seconds."""
        return max(1, self.SESSION_MAX_AGE_MS // 1000)

    @property
    def crm_configured(self) -> bool:
        return bool(self.CRM_INSTANCE_URL and self.CRM_ACCESS_TOKEN)

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("AUTH0_URL", "CRM_INSTANCE_URL")
    @classmethod
    def validate_base_url(cls, v: Optional[str]) -> Optional[str]:
        """
        Require an explicit http(s) scheme on base URLs.

        Raises:
            ValueError: If the URL has no http/https scheme
        """
        if v is None:
            return v

        if not v.startswith(("http://", "https://")):
            raise ValueError(
                f"Invalid URL: '{v}'. Expected format: 'https://host'"
            )

        return v.rstrip("/")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

        if v.upper() not in allowed_levels:
            raise ValueError(
                f"LOG_LEVEL must be one of {allowed_levels}, got: {v}"
            )

        return v.upper()


# =============================================================================
# Settings Singleton
# =============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    This function is cached so that the settings are loaded only once
    during the application lifecycle.

    Returns:
        Settings instance with all configuration loaded and validated.

    Raises:
        ValidationError: If required environment variables are missing
                        or invalid.
    """
    return Settings()


# =============================================================================
# Configuration Helpers
# =============================================================================

def validate_configuration(settings: Settings) -> dict:
    """
    Validate critical configuration settings and return a status report.

    Called during application startup so misconfiguration shows up in the
    logs before the first request.

    Returns:
        Dictionary with validation status and any warnings.
    """
    errors = []
    warnings = []

    if not settings.AUTH0_CLIENT_SECRET:
        errors.append("AUTH0_CLIENT_SECRET is not set (refresh and revoke will fail)")

    if not settings.SECURE_COOKIES:
        warnings.append("SECURE_COOKIES is off; cookies will be sent over plain HTTP")

    if not settings.crm_configured:
        warnings.append("CRM_INSTANCE_URL/CRM_ACCESS_TOKEN not set; /connecting will fail")

    if not settings.allowed_origins_list:
        warnings.append("ALLOWED_ORIGINS is empty; browsers on other origins are blocked")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "session_max_age_seconds": settings.session_max_age_seconds,
    }
