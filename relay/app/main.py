"""
FastAPI Relay Application Factory
=================================

This is the main entry point for the relay that sits between the browser
client and the Auth0 tenant (plus the CRM).

Architecture:
    Browser → Relay (this service) → Auth0 / CRM

Routers:
    - /send, /verify, /token, /disconnect, /info : passwordless auth relay
    - /connecting                                : CRM object counts
    - /socket.io                                 : Socket.IO gate
    - /health                                    : Health check endpoint

Environment Variables Required:
    - AUTH0_URL: Provider base URL
    - AUTH0_CLIENT_ID / AUTH0_CLIENT_SECRET: Provider application credentials
    - SESSION_SECRET: Secret for signing the session cookie
    - SESSION_MAX_AGE_MS: Session cookie max-age (default: 60000)
    - SECURE_COOKIES: Secure cookie toggle (default: true)
    - ALLOWED_ORIGINS: Comma-separated CORS origins
    - CRM_INSTANCE_URL / CRM_ACCESS_TOKEN: CRM access for /connecting
    - PORT: Listen port (default: 80)
    - LOG_LEVEL: Logging level (default: INFO)

Running the Service:
    Development:
        uvicorn relay.app.main:app --reload --host 0.0.0.0 --port 8080

    Production:
        uvicorn relay.app.main:app --host 0.0.0.0 --port 80
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Dict, Optional

import socketio
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from .auth.provider import IdentityProviderClient
from .auth.routes import auth_router
from .config import Settings, get_settings, validate_configuration
from .crm.client import CrmClient
from .crm.routes import crm_router
from .errors import ProviderUnauthorized, UpstreamError
from .models import HealthResponse
from .realtime.gate import create_socket_server

SERVICE_NAME = "relay"
SERVICE_VERSION = "1.0.0"


# Configure structured JSON logging
def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s", "module": "%(module)s", "function": "%(funcName)s"}',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup tasks:
        - Configure logging
        - Report configuration problems

    Shutdown tasks:
        - Close the shared provider and CRM HTTP clients
    """
    settings: Settings = app.state.settings

    setup_logging(settings.LOG_LEVEL)
    logger = logging.getLogger("relay.main")

    report = validate_configuration(settings)
    for error in report["errors"]:
        logger.error(f"Configuration error: {error}")
    for warning in report["warnings"]:
        logger.warning(f"Configuration warning: {warning}")

    logger.info(
        "Relay service started",
        extra={
            "provider_url": settings.provider_url_str,
            "secure_cookies": settings.SECURE_COOKIES,
            "crm_configured": settings.crm_configured,
        }
    )

    yield

    logger.info("Shutting down relay service")

    await app.state.identity_client.aclose()
    if app.state.crm_client is not None:
        await app.state.crm_client.aclose()

    logger.info("Relay service shutdown complete")


# Create FastAPI application
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory function.

    Creates and configures the FastAPI application instance with:
        - Lifespan management
        - Session and CORS middleware
        - Shared provider/CRM clients on app.state
        - Route handlers
        - Exception handlers

    Args:
        settings: Settings to use instead of the environment-loaded singleton

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Passwordless Auth Relay",
        description="Cookie/token relay for Auth0 passwordless login",
        version=SERVICE_VERSION,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.identity_client = IdentityProviderClient.from_settings(settings)
    app.state.crm_client = CrmClient.from_settings(settings) if settings.crm_configured else None

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SESSION_SECRET,
        max_age=settings.session_max_age_seconds,
        https_only=settings.SECURE_COOKIES,
        same_site="lax",
    )

    # set-cookie is exposed so the browser client can observe cookie rotation
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["set-cookie"],
    )

    app.include_router(auth_router)
    app.include_router(crm_router)

    @app.get("/health", tags=["System"], response_model=HealthResponse)
    async def health_check() -> Dict[str, str]:
        """
        Health check endpoint.

        Returns:
            dict: Service health information
        """
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
        }

    @app.get("/", tags=["System"])
    async def root() -> Dict[str, object]:
        return {
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "endpoints": {
                "health": "/health",
                "auth": ["/send", "/verify", "/token", "/disconnect", "/info"],
                "crm": "/connecting",
                "realtime": "/socket.io",
            },
        }

    @app.exception_handler(ProviderUnauthorized)
    async def provider_unauthorized_handler(request: Request, exc: ProviderUnauthorized) -> JSONResponse:
        """Provider rejected the caller's credential."""
        return JSONResponse(status_code=401, content={"error": exc.message})

    @app.exception_handler(UpstreamError)
    async def upstream_error_handler(request: Request, exc: UpstreamError) -> JSONResponse:
        logging.getLogger("relay.main").error(
            f"Upstream error: {exc.message}",
            extra={
                "path": request.url.path,
                "service": exc.service,
                "status_code": exc.status_code,
            }
        )
        return JSONResponse(status_code=500, content={"error": exc.message})

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Global exception handler for unhandled errors.

        Logs the error and returns a standardized error response.
        """
        logger = logging.getLogger("relay.main")
        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra={
                "path": request.url.path,
                "method": request.method,
                "exception_type": type(exc).__name__
            },
            exc_info=True
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "detail": str(exc) if settings.LOG_LEVEL == "DEBUG" else None
            }
        )

    return app


def create_asgi_app(settings: Optional[Settings] = None) -> socketio.ASGIApp:
    """
    Wrap the FastAPI app with the Socket.IO gate.

    Socket.IO traffic (long-polling and WebSocket upgrades) is served under
    /socket.io; everything else, including lifespan, goes to FastAPI.
    """
    settings = settings or get_settings()
    api = create_app(settings)
    sio = create_socket_server(settings, api.state.identity_client)
    return socketio.ASGIApp(sio, other_asgi_app=api)


# Create app instance for uvicorn
app = create_asgi_app()


if __name__ == "__main__":
    settings = get_settings()

    uvicorn.run(
        "relay.app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower()
    )
