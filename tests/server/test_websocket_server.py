"""Tests for the WebSocket transport, driven with an in-memory socket."""

import json
import random

import pytest

from penki.server.rooms import RoomRegistry
from penki.server.service import RoomService
from penki.server.websocket_server import (
    ServerMessage,
    WebSocketServer,
    parse_args,
)


class FakeSocket:
    def __init__(self):
        self.sent = []

    async def send(self, raw):
        self.sent.append(json.loads(raw))

    def of_type(self, message_type):
        return [m["data"] for m in self.sent if m["type"] == message_type]


@pytest.fixture
def server():
    registry = RoomRegistry(rng_factory=lambda: random.Random(7))
    return WebSocketServer(service=RoomService(registry))


def connect(server, connection_ref):
    socket = FakeSocket()
    server.clients[connection_ref] = socket
    return socket


@pytest.mark.asyncio
async def test_create_room_acks_with_request_id(server):
    host = connect(server, "c1")

    await server.handle_message(
        "c1", {"type": "create_room", "data": {"name": "Alice"}, "request_id": 5}
    )

    ack = host.of_type(ServerMessage.ACK)[0]
    assert ack["request_id"] == 5
    assert ack["ok"] is True
    assert host.of_type(ServerMessage.ROOM_UPDATE)[0]["players"][0]["name"] == "Alice"
    assert host.of_type(ServerMessage.ROOM_LIST_UPDATE)


@pytest.mark.asyncio
async def test_start_broadcasts_private_views(server):
    host = connect(server, "c1")
    guest = connect(server, "c2")
    await server.handle_message("c1", {"type": "create_room", "data": {"name": "Alice"}})
    room_id = host.of_type(ServerMessage.ACK)[0]["room_id"]
    await server.handle_message(
        "c2", {"type": "join_room", "data": {"room_id": room_id, "name": "Bob"}}
    )

    await server.handle_message("c1", {"type": "start_game", "data": {"room_id": room_id}})

    host_view = host.of_type(ServerMessage.GAME_STATE)[-1]
    guest_view = guest.of_type(ServerMessage.GAME_STATE)[-1]
    assert host_view["started"] is True
    assert "##" not in host_view["players"][0]["hand"]
    assert host_view["players"][1]["hand"] == ["##"] * 6
    assert guest_view["players"][0]["hand"] == ["##"] * 6


@pytest.mark.asyncio
async def test_rejected_intent_is_not_broadcast(server):
    host = connect(server, "c1")
    await server.handle_message("c1", {"type": "create_room", "data": {"name": "Alice"}})
    room_id = host.of_type(ServerMessage.ACK)[0]["room_id"]

    await server.handle_message("c1", {"type": "start_game", "data": {"room_id": room_id}})

    ack = host.of_type(ServerMessage.ACK)[-1]
    assert ack["ok"] is False
    assert ack["error"] == "not_enough_players"
    assert host.of_type(ServerMessage.GAME_STATE) == []


@pytest.mark.asyncio
async def test_unknown_message(server):
    host = connect(server, "c1")
    await server.handle_message("c1", {"type": "shuffle_everything"})
    ack = host.of_type(ServerMessage.ACK)[0]
    assert ack["error"] == "unknown_message"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "message",
    [
        ["create_room"],
        "join_room",
        {"type": "join_room", "data": ["x"], "request_id": 3},
        {"type": "join_room", "data": {"room_id": ["x"]}, "request_id": 3},
        {"type": "create_room", "data": {"config": "big"}, "request_id": 3},
    ],
)
async def test_malformed_message_is_rejected(server, message):
    host = connect(server, "c1")

    await server.handle_message("c1", message)

    ack = host.of_type(ServerMessage.ACK)[0]
    assert ack["ok"] is False
    assert ack["error"] == "invalid_message"
    if isinstance(message, dict):
        assert ack["request_id"] == 3
    assert len(server.service.registry) == 0


@pytest.mark.asyncio
async def test_get_state_for_another_seat_is_refused(server):
    host = connect(server, "c1")
    guest = connect(server, "c2")
    await server.handle_message("c1", {"type": "create_room", "data": {"name": "Alice"}})
    ack = host.of_type(ServerMessage.ACK)[0]
    room_id, alice_id = ack["room_id"], ack["player_id"]
    await server.handle_message(
        "c2", {"type": "join_room", "data": {"room_id": room_id, "name": "Bob"}}
    )

    await server.handle_message(
        "c2", {"type": "get_state", "data": {"room_id": room_id, "player_id": alice_id}}
    )

    assert guest.of_type(ServerMessage.ACK)[-1]["error"] == "not_in_room"
    assert guest.of_type(ServerMessage.GAME_STATE) == []


def test_parse_args_defaults():
    args = parse_args([])
    assert (args.host, args.port, args.log_level) == ("localhost", 3000, "INFO")
