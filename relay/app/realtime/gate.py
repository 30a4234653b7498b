"""
Socket.IO gate for real-time clients.

The browser connects with ``io(url, { auth: { token } })`` using the same
in-memory access token it sends to ``/info``. The token is checked exactly
once, when the connection opens, with a single user-info lookup:

- success: the connection stays open and the handshake token is kept in the
  socket session
- any failure: emit ``"unauthorized"`` with ``"Invalid Token"`` and refuse
  the connection, which closes it

The server runs with ``always_connect=True`` so the client has already
joined the namespace when the handler runs; the unauthorized event reaches
it before the disconnect packet.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import socketio

from ..auth.provider import IdentityProviderClient
from ..config import Settings
from ..errors import ProviderError

logger = logging.getLogger("relay.realtime.gate")

UNAUTHORIZED_EVENT = "unauthorized"
INVALID_TOKEN = "Invalid Token"


def extract_handshake_token(auth: Any | None) -> str | None:
    """Read ``token`` from the Socket.IO handshake auth payload."""
    if isinstance(auth, dict):
        token = auth.get("token")
        if isinstance(token, str) and token:
            return token
    return None


class SocketGate:
    """
    Connection-time token check plus the diagnostic ``test`` event.

    Attributes:
        sio: Socket.IO server the handlers are registered on
        identity_client: Provider client used for the user-info lookup
    """

    def __init__(self, sio: socketio.AsyncServer, identity_client: IdentityProviderClient):
        self.sio = sio
        self.identity_client = identity_client

    def register(self) -> None:
        self.sio.on("connect", self.connect)
        self.sio.on("disconnect", self.disconnect)
        self.sio.on("test", self.test)

    async def connect(self, sid: str, environ: dict[str, Any], auth: Any | None = None) -> bool:
        token = extract_handshake_token(auth)

        try:
            if not token:
                raise ProviderError("Missing handshake token")
            user = await self.identity_client.user_info(token)
        except ProviderError as exc:
            logger.warning("Socket connection refused: %s", exc.message, extra={"sid": sid})
            return await self._reject(sid)
        except Exception:
            logger.exception("Socket connect error", extra={"sid": sid})
            return await self._reject(sid)

        await self.sio.save_session(sid, {"token": token, "sub": user.get("sub")})
        logger.info("User connected", extra={"sid": sid, "user_sub": user.get("sub")})
        return True

    async def _reject(self, sid: str) -> bool:
        await self.sio.emit(UNAUTHORIZED_EVENT, INVALID_TOKEN, to=sid)
        return False

    async def disconnect(self, sid: str, reason: Any = None) -> None:
        logger.info("User disconnected", extra={"sid": sid, "reason": str(reason)})

    async def test(self, sid: str, data: Any) -> None:
        """
        Diagnostic hook: compare the token in a JSON string payload with the
        handshake token. Logs only; the message token is not re-validated.
        """
        try:
            options = json.loads(data)
        except (TypeError, ValueError):
            logger.warning("Ignoring malformed test payload", extra={"sid": sid})
            return

        if not isinstance(options, dict):
            logger.warning("Ignoring non-object test payload", extra={"sid": sid})
            return

        session = await self.sio.get_session(sid)
        logger.debug(
            "Diagnostic token check",
            extra={
                "sid": sid,
                "tokens_match": options.get("token") == session.get("token"),
            },
        )


def create_socket_server(
    settings: Settings,
    identity_client: IdentityProviderClient,
) -> socketio.AsyncServer:
    """Build the Socket.IO server with the gate handlers registered."""
    sio = socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=settings.allowed_origins_list or None,
        always_connect=True,
        logger=False,
        engineio_logger=False,
    )
    SocketGate(sio, identity_client).register()
    return sio


__all__ = [
    "INVALID_TOKEN",
    "UNAUTHORIZED_EVENT",
    "SocketGate",
    "create_socket_server",
    "extract_handshake_token",
]
