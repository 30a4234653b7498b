"""
Data Models Module

This module defines Pydantic models for request/response validation
and serialization throughout the relay.

Models are organized by functional area:
- Authentication models (code delivery, code exchange, token responses)
- Acknowledgement and error envelopes
- Health check models
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# ============================================================================
# Authentication Models
# ============================================================================

class SendCodeRequest(BaseModel):
    """Request model for starting the passwordless flow."""
    email: str = Field(..., description="Address the one-time code is emailed to")


class VerifyCodeRequest(BaseModel):
    """Request model for exchanging an emailed code for tokens."""
    email: str = Field(..., description="Address the code was sent to")
    code: str = Field(..., description="One-time code from the email")


class TokenResponse(BaseModel):
    """Access token handed to the browser (kept in memory only)."""
    token: str = Field(..., description="Provider-issued access token")


class MessageResponse(BaseModel):
    """Static acknowledgement."""
    message: str


# ============================================================================
# Health Check Models
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service health status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Check timestamp")


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Error envelope returned by the relay."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error detail")
