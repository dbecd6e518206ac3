#!/usr/bin/env python3
"""
WebSocket server for penki.

Clients send JSON messages ``{"type": <intent>, "data": {...}, "request_id": ...}``
and get an ``ack`` back carrying the same ``request_id``. After every
successful mutation each connected player of the room receives a
``game_state`` message with their own view; room membership changes are
pushed as ``room_update`` and ``room_list_update``.
"""

import argparse
import asyncio
import json
import logging
import signal
import uuid
from typing import Any, Dict, Optional

import websockets
from websockets.exceptions import ConnectionClosed

from penki.server.service import RoomService

logger = logging.getLogger("penki.server")

MUTATING_INTENTS = {"start_game", "play_card", "defend_with", "take_bottom"}


class ClientMessage:
    """Message types that clients can send to the server."""

    CREATE_ROOM = "create_room"
    JOIN_ROOM = "join_room"
    GET_ROOMS = "get_rooms"
    START_GAME = "start_game"
    PLAY_CARD = "play_card"
    DEFEND_WITH = "defend_with"
    TAKE_BOTTOM = "take_bottom"
    GET_STATE = "get_state"


class ServerMessage:
    """Message types that the server can send to clients."""

    ACK = "ack"
    GAME_STATE = "game_state"
    ROOM_UPDATE = "room_update"
    ROOM_LIST_UPDATE = "room_list_update"
    ERROR = "error"


class WebSocketServer:
    """
    WebSocket transport in front of a `RoomService`.

    The server owns connection bookkeeping only; every rule decision is made
    by the game core behind the service.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 3000,
        service: Optional[RoomService] = None,
    ):
        """
        Initialize the WebSocket server.

        Args:
            host: Host to bind to
            port: Port to bind to
            service: Room service to dispatch intents to
        """
        self.host = host
        self.port = port
        self.service = service or RoomService()
        self.clients: Dict[str, Any] = {}
        self._stop: Optional[asyncio.Future] = None

    async def start(self) -> None:
        """Serve until `shutdown` is called or a termination signal arrives."""
        loop = asyncio.get_running_loop()
        self._stop = loop.create_future()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self.shutdown)

        async with websockets.serve(self.handle_client, self.host, self.port):
            logger.info(f"WebSocket server started on ws://{self.host}:{self.port}")
            await self._stop

        logger.info("WebSocket server stopped")

    def shutdown(self) -> None:
        if self._stop is not None and not self._stop.done():
            logger.info("Shutting down WebSocket server...")
            self._stop.set_result(None)

    async def handle_client(self, websocket) -> None:
        """
        Handle a WebSocket client connection for its whole lifetime.

        Args:
            websocket: WebSocket connection
        """
        connection_ref = str(uuid.uuid4())
        self.clients[connection_ref] = websocket
        logger.info("Client %s connected", connection_ref)

        try:
            async for raw in websocket:
                try:
                    message = json.loads(raw)
                except json.JSONDecodeError:
                    await self._send(
                        connection_ref, ServerMessage.ERROR, {"error": "invalid_json"}
                    )
                    continue
                await self.handle_message(connection_ref, message)
        except ConnectionClosed:
            logger.info("Client %s connection closed", connection_ref)
        finally:
            self.clients.pop(connection_ref, None)
            for room_id in await self.service.disconnect(connection_ref):
                await self.broadcast_room_update(room_id)
            await self.broadcast_room_list()
            logger.info("Client %s disconnected", connection_ref)

    async def handle_message(self, connection_ref: str, message: Dict[str, Any]) -> None:
        """Dispatch one client message and acknowledge it."""
        if not isinstance(message, dict):
            await self._reject_malformed(connection_ref, None)
            return
        message_type = message.get("type", "")
        data = message.get("data") or {}
        request_id = message.get("request_id")
        if (
            not isinstance(data, dict)
            or not isinstance(data.get("room_id"), (str, type(None)))
            or not isinstance(data.get("config"), (dict, type(None)))
        ):
            await self._reject_malformed(connection_ref, request_id)
            return
        room_id = data.get("room_id")
        service = self.service

        if message_type == ClientMessage.CREATE_ROOM:
            ack = await service.create_room(
                data.get("name", ""), connection_ref, data.get("config")
            )
            room_id = ack.get("room_id")
        elif message_type == ClientMessage.JOIN_ROOM:
            ack = await service.join_room(room_id, data.get("name", ""), connection_ref)
        elif message_type == ClientMessage.GET_ROOMS:
            ack = {"ok": True, "rooms": service.registry.list_rooms()}
        elif message_type == ClientMessage.START_GAME:
            ack = await service.start_game(room_id, connection_ref)
        elif message_type == ClientMessage.PLAY_CARD:
            ack = await service.play_card(
                room_id, data.get("player_id"), data.get("card_id"), connection_ref
            )
        elif message_type == ClientMessage.DEFEND_WITH:
            ack = await service.defend_with(
                room_id, data.get("player_id"), data.get("card_id"), connection_ref
            )
        elif message_type == ClientMessage.TAKE_BOTTOM:
            ack = await service.take_bottom(
                room_id, data.get("player_id"), connection_ref
            )
        elif message_type == ClientMessage.GET_STATE:
            ack = await service.get_state(
                room_id, data.get("player_id"), connection_ref
            )
            if ack.get("ok"):
                await self._send(connection_ref, ServerMessage.GAME_STATE, ack["state"])
        else:
            ack = {"ok": False, "error": "unknown_message", "message": message_type}

        await self._send(
            connection_ref, ServerMessage.ACK, {"request_id": request_id, **ack}
        )

        if not ack.get("ok"):
            return
        if message_type in (ClientMessage.CREATE_ROOM, ClientMessage.JOIN_ROOM):
            await self.broadcast_room_update(room_id)
            await self.broadcast_room_list()
        if message_type in MUTATING_INTENTS:
            await self.broadcast_state(room_id)
        if message_type == ClientMessage.START_GAME:
            await self.broadcast_room_update(room_id)

    async def _reject_malformed(self, connection_ref: str, request_id: Any) -> None:
        await self._send(
            connection_ref,
            ServerMessage.ACK,
            {
                "request_id": request_id,
                "ok": False,
                "error": "invalid_message",
                "message": "malformed message",
            },
        )

    async def broadcast_state(self, room_id: str) -> None:
        for connection_ref, view in self.service.views(room_id).items():
            await self._send(connection_ref, ServerMessage.GAME_STATE, view)

    async def broadcast_room_update(self, room_id: str) -> None:
        roster = {"room_id": room_id, "players": self.service.roster(room_id)}
        for connection_ref in self.service.views(room_id):
            await self._send(connection_ref, ServerMessage.ROOM_UPDATE, roster)

    async def broadcast_room_list(self) -> None:
        rooms = self.service.registry.list_rooms()
        for connection_ref in list(self.clients):
            await self._send(connection_ref, ServerMessage.ROOM_LIST_UPDATE, {"rooms": rooms})

    async def _send(self, connection_ref: str, message_type: str, data: Any) -> None:
        websocket = self.clients.get(connection_ref)
        if websocket is None:
            return
        try:
            await websocket.send(json.dumps({"type": message_type, "data": data}))
        except ConnectionClosed:
            logger.warning("Dropping message to closed client %s", connection_ref)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Penki WebSocket game server")
    parser.add_argument("--host", default="localhost", help="Host to bind to")
    parser.add_argument("--port", type=int, default=3000, help="Port to bind to")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    return parser.parse_args(argv)


def main(argv=None) -> None:
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    server = WebSocketServer(args.host, args.port)
    asyncio.run(server.start())


if __name__ == "__main__":
    main()
