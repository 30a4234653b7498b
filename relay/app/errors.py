"""
Upstream error types shared by the provider and CRM clients.

Handlers dispatch on these types (see ``main.create_app``) instead of
matching on message text.
"""

from typing import Optional


class UpstreamError(Exception):
    """Base exception for failed calls to an external service"""

    service = "upstream"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @classmethod
    def from_status(cls, status_code: int) -> "UpstreamError":
        return cls(f"Request failed with status code {status_code}", status_code)


class ProviderError(UpstreamError):
    """Identity provider returned a non-2xx response or was unreachable"""

    service = "identity_provider"

    @classmethod
    def from_status(cls, status_code: int) -> "ProviderError":
        error_cls = ProviderUnauthorized if status_code in (401, 403) else ProviderError
        return error_cls(f"Request failed with status code {status_code}", status_code)


class ProviderUnauthorized(ProviderError):
    """Provider rejected the credential (bad code, expired or revoked token)"""


class CrmQueryError(UpstreamError):
    """CRM query failed"""

    service = "crm"


__all__ = [
    "UpstreamError",
    "ProviderError",
    "ProviderUnauthorized",
    "CrmQueryError",
]
