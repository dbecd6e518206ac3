"""
Room registry.

Owns the mapping from room id to `PenkiGame` and the id generation for rooms
and players. The registry is an explicit object handed to the transport
rather than module-level state.
"""

from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple
import logging
import random
import uuid

from penki.game import GameConfig, PenkiGame

logger = logging.getLogger("penki.server.rooms")


class RoomRegistry:
    """Create, look up and dispose of rooms."""

    def __init__(self, rng_factory=None):
        """
        Args:
            rng_factory: Callable returning a ``random.Random`` for each new
                game; tests pass a seeded one
        """
        self._rooms: Dict[str, PenkiGame] = {}
        self._rng_factory = rng_factory or random.Random

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

    def __iter__(self) -> Iterator[PenkiGame]:
        return iter(list(self._rooms.values()))

    def __len__(self) -> int:
        return len(self._rooms)

    def _new_room_id(self) -> str:
        room_id = uuid.uuid4().hex[:6]
        while room_id in self._rooms:
            room_id = "r" + uuid.uuid4().hex[:6]
        return room_id

    @staticmethod
    def new_player_id(game: PenkiGame) -> str:
        """Player id unique within ``game``."""
        player_id = "p" + uuid.uuid4().hex[:5]
        while game.get_player(player_id) is not None:
            player_id = "p" + uuid.uuid4().hex[:5]
        return player_id

    def create(
        self, config: Optional[Mapping[str, Any]] = None
    ) -> PenkiGame:
        """Create an empty room; ``config`` is validated before anything is stored."""
        game_config = GameConfig.from_dict(config)
        room_id = self._new_room_id()
        game = PenkiGame(room_id, game_config, rng=self._rng_factory())
        self._rooms[room_id] = game
        logger.info("Room %s created (%s-card deck)", room_id, game_config.deck_variant)
        return game

    def get(self, room_id: str) -> Optional[PenkiGame]:
        return self._rooms.get(room_id)

    def destroy(self, room_id: str) -> None:
        if self._rooms.pop(room_id, None) is not None:
            logger.info("Room %s destroyed", room_id)

    def destroy_if_empty(self, room_id: str) -> bool:
        """
        Drop a room nobody is connected to anymore.

        Returns:
            True if the room was destroyed
        """
        game = self._rooms.get(room_id)
        if game is None:
            return False
        if any(p.connection_ref is not None for p in game.state.players):
            return False
        self.destroy(room_id)
        return True

    def find_by_connection(self, connection_ref: str) -> List[Tuple[PenkiGame, str]]:
        """Every (game, player id) the connection is seated as."""
        seats = []
        for game in self:
            for player in game.state.players:
                if player.connection_ref == connection_ref:
                    seats.append((game, player.id))
        return seats

    def list_rooms(self) -> List[Dict[str, Any]]:
        return [
            {
                "room_id": room_id,
                "players": len(game.state.players),
                "max_players": game.config.max_players,
                "started": game.started,
            }
            for room_id, game in self._rooms.items()
        ]
