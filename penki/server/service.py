"""
Room service: the collaborator between a transport and the game core.

Each intent is validated against the registry, run on the room's game under
that room's `asyncio.Lock` (one writer per room, rooms independent), and
answered with an acknowledgment dict. Rule violations become
``{"ok": False, "error": <kind>, "message": ...}``; they never escape to the
transport. Intents that act for a player, or read their view, are only accepted
from the connection seated as that player (`not_in_room` otherwise). After a
successful mutation the transport asks `views` for the
per-player snapshots to send out.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional
import asyncio
import logging

from penki.errors import GameError
from penki.game import PenkiGame
from penki.server.rooms import RoomRegistry

logger = logging.getLogger("penki.server.service")

NO_ROOM = "no_room"
NOT_IN_ROOM = "not_in_room"


def _error(code: str, message: str = "") -> Dict[str, Any]:
    return {"ok": False, "error": code, "message": message or code.replace("_", " ")}


def _holds_seat(game: PenkiGame, player_id: Any, connection_ref: Optional[str]) -> bool:
    """Whether ``player_id`` is seated in ``game`` by ``connection_ref``."""
    if connection_ref is None or not isinstance(player_id, str):
        return False
    player = game.get_player(player_id)
    return player is not None and player.connection_ref == connection_ref


class RoomService:
    """Async intent dispatcher over a `RoomRegistry`."""

    def __init__(self, registry: Optional[RoomRegistry] = None):
        self.registry = registry or RoomRegistry()
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, room_id: str) -> asyncio.Lock:
        lock = self._locks.get(room_id)
        if lock is None:
            lock = self._locks[room_id] = asyncio.Lock()
        return lock

    async def _run(
        self, room_id: str, action: Callable[[PenkiGame], Dict[str, Any]]
    ) -> Dict[str, Any]:
        game = self.registry.get(room_id)
        if game is None:
            return _error(NO_ROOM)
        async with self._lock_for(room_id):
            try:
                return action(game)
            except GameError as err:
                logger.info("Room %s rejected intent: %s", room_id, err)
                return _error(err.kind.value, str(err))

    async def _run_as(
        self,
        room_id: str,
        player_id: str,
        connection_ref: str,
        action: Callable[[PenkiGame], Dict[str, Any]],
    ) -> Dict[str, Any]:
        """Like `_run`, for intents a connection may only send for its own seat."""

        def guarded(game: PenkiGame) -> Dict[str, Any]:
            if not _holds_seat(game, player_id, connection_ref):
                return _error(NOT_IN_ROOM)
            return action(game)

        return await self._run(room_id, guarded)

    async def create_room(
        self,
        name: str,
        connection_ref: str,
        config: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Create a room and seat its host."""
        try:
            game = self.registry.create(config)
        except GameError as err:
            return _error(err.kind.value, str(err))
        player_id = self.registry.new_player_id(game)
        async with self._lock_for(game.id):
            game.add_player(player_id, name or "Host", connection_ref)
        return {"ok": True, "room_id": game.id, "player_id": player_id}

    async def join_room(
        self, room_id: str, name: str, connection_ref: str
    ) -> Dict[str, Any]:
        """Seat a connection in a room; a connection already seated keeps its id."""

        def join(game: PenkiGame) -> Dict[str, Any]:
            for player in game.state.players:
                if player.connection_ref == connection_ref:
                    return {"ok": True, "room_id": room_id, "player_id": player.id}
            player_id = self.registry.new_player_id(game)
            game.add_player(player_id, name or "Guest", connection_ref)
            return {"ok": True, "room_id": room_id, "player_id": player_id}

        return await self._run(room_id, join)

    async def start_game(self, room_id: str, connection_ref: str) -> Dict[str, Any]:
        """Start the game; only a connection seated in the room may do so."""

        def start(game: PenkiGame) -> Dict[str, Any]:
            if connection_ref is None or not any(
                p.connection_ref == connection_ref for p in game.state.players
            ):
                return _error(NOT_IN_ROOM)
            game.start()
            return {"ok": True}

        return await self._run(room_id, start)

    async def play_card(
        self, room_id: str, player_id: str, card_id: str, connection_ref: str
    ) -> Dict[str, Any]:
        return await self._run_as(
            room_id,
            player_id,
            connection_ref,
            lambda game: {"ok": True, "res": game.play_card(player_id, card_id).to_dict()},
        )

    async def defend_with(
        self, room_id: str, player_id: str, card_id: str, connection_ref: str
    ) -> Dict[str, Any]:
        return await self._run_as(
            room_id,
            player_id,
            connection_ref,
            lambda game: {
                "ok": True,
                "res": game.defend_with(player_id, card_id).to_dict(),
            },
        )

    async def take_bottom(
        self, room_id: str, player_id: str, connection_ref: str
    ) -> Dict[str, Any]:
        return await self._run_as(
            room_id,
            player_id,
            connection_ref,
            lambda game: {"ok": True, "res": game.take_bottom(player_id).to_dict()},
        )

    async def get_state(
        self, room_id: str, player_id: str, connection_ref: str
    ) -> Dict[str, Any]:
        """Re-project one player's view for the connection holding that seat."""
        return await self._run_as(
            room_id,
            player_id,
            connection_ref,
            lambda game: {"ok": True, "state": game.project_for(player_id)},
        )

    async def disconnect(self, connection_ref: str) -> List[str]:
        """
        Release every seat held by a connection.

        Players of a forming game are removed; in a started game the seat is
        kept and only the connection is detached. Rooms left without any
        connected player are destroyed.

        Returns:
            Ids of the rooms that still exist and changed
        """
        touched = []
        for game, player_id in self.registry.find_by_connection(connection_ref):
            async with self._lock_for(game.id):
                if game.started:
                    game.set_connection(player_id, None)
                else:
                    game.remove_player(player_id)
            if self.registry.destroy_if_empty(game.id):
                self._locks.pop(game.id, None)
            else:
                touched.append(game.id)
        return touched

    def roster(self, room_id: str) -> List[Dict[str, str]]:
        game = self.registry.get(room_id)
        if game is None:
            return []
        return [{"id": p.id, "name": p.name} for p in game.state.players]

    def views(self, room_id: str) -> Dict[str, Dict[str, Any]]:
        """Snapshot for every connected player of a room, keyed by connection."""
        game = self.registry.get(room_id)
        if game is None:
            return {}
        return {
            player.connection_ref: game.project_for(player.id)
            for player in game.state.players
            if player.connection_ref is not None
        }
