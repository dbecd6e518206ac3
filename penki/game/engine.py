"""
Game handle for the penki rules engine.

`PenkiGame` is what the transport collaborator holds for a room. It keeps the
current immutable `GameState` and replaces it only when a transition
succeeds, so a raised `GameError` always leaves the game as it was. The
handle does no locking: callers must serialize mutating calls per game.
"""

from typing import Any, Dict, Mapping, Optional, Union
import logging
import random
import uuid

from penki.events import EventEmitter, GameEventType
from penki.game.projection import project_for
from penki.game.state import ActionResult, GameConfig, GameState, PlayerState
from penki.game.transitions import StateTransitionEngine

logger = logging.getLogger("penki.game.engine")


class PenkiGame:
    """
    Mutable handle around the immutable game state.

    Example:
        ```python
        game = PenkiGame("room1", {"deck_variant": 36})
        game.add_player("p1", "Alice")
        game.add_player("p2", "Bob")
        game.start()
        attacker = game.state.current_attacker
        game.play_card(attacker.id, attacker.hand[0].id)
        view = game.project_for("p2")
        ```
    """

    def __init__(
        self,
        game_id: Optional[str] = None,
        config: Union[GameConfig, Mapping[str, Any], None] = None,
        rng: Optional[random.Random] = None,
        events: Optional[EventEmitter] = None,
    ):
        """
        Create an empty game in the forming stage.

        Args:
            game_id: Identifier of the game (the room id); random if omitted
            config: A GameConfig, or a partial mapping merged over the defaults
            rng: Random source used to shuffle the deck
            events: Emitter for this game's events; a new one if omitted
        """
        if not isinstance(config, GameConfig):
            config = GameConfig.from_dict(config)
        self.rng = rng or random.Random()
        self.events = events or EventEmitter()
        self.state = GameState(id=game_id or str(uuid.uuid4()), config=config)

        self.events.emit(
            GameEventType.GAME_CREATED,
            {
                "game_id": self.state.id,
                "deck_variant": config.deck_variant,
                "target_hand_size": config.target_hand_size,
            },
        )

    @property
    def id(self) -> str:
        return self.state.id

    @property
    def config(self) -> GameConfig:
        return self.state.config

    @property
    def started(self) -> bool:
        return self.state.started

    @property
    def game_over(self) -> bool:
        return self.state.game_over

    def get_player(self, player_id: str) -> Optional[PlayerState]:
        index = self.state.player_index(player_id)
        return None if index is None else self.state.players[index]

    def add_player(
        self,
        player_id: str,
        name: str = "Player",
        connection_ref: Optional[str] = None,
    ) -> PlayerState:
        """Add a player to the turn order and return them."""
        self.state = StateTransitionEngine.add_player(
            self.state, player_id, name, connection_ref, self.events
        )
        return self.state.players[-1]

    def remove_player(self, player_id: str) -> None:
        self.state = StateTransitionEngine.remove_player(
            self.state, player_id, self.events
        )

    def set_connection(self, player_id: str, connection_ref: Optional[str]) -> None:
        self.state = StateTransitionEngine.set_connection(
            self.state, player_id, connection_ref
        )

    def start(self) -> None:
        """Deal, determine the drawer, reveal trump and open the first round."""
        self.state = StateTransitionEngine.start(self.state, self.rng, self.events)

    def play_card(self, player_id: str, card_id: str) -> ActionResult:
        new_state, result = StateTransitionEngine.play_card(
            self.state, player_id, card_id, self.events
        )
        return self._apply(new_state, result)

    def defend_with(self, player_id: str, card_id: str) -> ActionResult:
        new_state, result = StateTransitionEngine.defend_with(
            self.state, player_id, card_id, self.events
        )
        return self._apply(new_state, result)

    def take_bottom(self, player_id: str) -> ActionResult:
        new_state, result = StateTransitionEngine.take_bottom(
            self.state, player_id, self.events
        )
        return self._apply(new_state, result)

    def project_for(self, viewer_id: Optional[str]) -> Dict[str, Any]:
        """Snapshot of the game as ``viewer_id`` is allowed to see it."""
        return project_for(self.state, viewer_id)

    def _apply(self, new_state: GameState, result: ActionResult) -> ActionResult:
        self.state = new_state
        logger.info(
            "Game %s: %s (attacker=%s, defender=%s)",
            self.state.id,
            result.status.value,
            result.attacker_index,
            result.defender_index,
        )
        return result
