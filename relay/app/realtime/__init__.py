"""
Realtime Package

Socket.IO server whose only policy is a one-shot access token check when a
connection opens.

Modules:
- gate: connect/disconnect/test handlers and the server factory
"""

from .gate import create_socket_server

__all__ = [
    "create_socket_server",
]
