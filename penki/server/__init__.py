"""
Room management and transport for penki.

`RoomRegistry` owns the games, `RoomService` serializes intents per room and
maps rule violations to acknowledgments, and `websocket_server` exposes the
service over WebSockets.
"""

from penki.server.rooms import RoomRegistry
from penki.server.service import RoomService

__all__ = ["RoomRegistry", "RoomService"]
