"""
Immutable state models for the penki card game.

This module provides dataclasses for representing the state of a game in an
immutable manner. These classes are designed to be used with pure transition
functions that create new state instances rather than modifying existing
ones, which is what makes a rejected operation leave the game untouched.
"""

from dataclasses import dataclass, field, fields
from enum import Enum, auto
from typing import Any, Dict, List, Mapping, Optional, Tuple
import uuid

from penki.common.card import Card, Suit
from penki.errors import InvalidConfig

MAX_PLAYERS = {36: 4, 52: 6}


class GameStage(Enum):
    """Possible stages of a game."""

    FORMING = auto()
    ACTIVE = auto()


class ActionStatus(Enum):
    """Outcome tag of a successful player intent."""

    OK = "ok"
    DEFENDED = "defended"
    TOOK = "took"
    CLOSED = "closed"


@dataclass(frozen=True)
class GameConfig:
    """
    Immutable configuration for one game.

    Attributes:
        deck_variant: 36 (Six through Ace) or 52 (Two through Ace)
        target_hand_size: Hands are replenished up to this many cards
        event_log_limit: Number of event log lines kept, oldest dropped first
    """

    deck_variant: int = 36
    target_hand_size: int = 6
    event_log_limit: int = 200

    def __post_init__(self):
        if self.deck_variant not in MAX_PLAYERS:
            raise InvalidConfig(
                f"deck_variant must be 36 or 52, got {self.deck_variant!r}"
            )
        if not isinstance(self.target_hand_size, int) or self.target_hand_size < 1:
            raise InvalidConfig(
                f"target_hand_size must be a positive integer, got {self.target_hand_size!r}"
            )
        if not isinstance(self.event_log_limit, int) or self.event_log_limit < 1:
            raise InvalidConfig(
                f"event_log_limit must be a positive integer, got {self.event_log_limit!r}"
            )

    @property
    def max_players(self) -> int:
        """Seat limit for the deck variant."""
        return MAX_PLAYERS[self.deck_variant]

    @classmethod
    def from_dict(cls, config: Optional[Mapping[str, Any]] = None) -> "GameConfig":
        """
        Build a config from a partial mapping merged over the defaults.

        The legacy ``use52`` flag is accepted in place of ``deck_variant``.
        """
        values = dict(config or {})
        if "use52" in values:
            values.setdefault("deck_variant", 52 if values.pop("use52") else 36)

        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise InvalidConfig(f"Unknown config keys: {', '.join(sorted(unknown))}")
        return cls(**values)


@dataclass(frozen=True)
class PlayerState:
    """
    Immutable representation of a player's state.

    Attributes:
        id: Unique identifier for this player, stable for the game's lifetime
        name: Display name of the player
        connection_ref: Opaque handle the transport uses to reach the player
        hand: Cards in the player's hand (order is irrelevant)
        reserve: The two face-down "penki" cards, empty once revealed
        open_card: Card dealt face up into the hand to decide who draws the
            trump; cleared when the first round closes
        is_out: Whether this player is out of the game; never reset once set
        games_won_count: Games won, carried by the collaborator between games
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = "Player"
    connection_ref: Optional[str] = None
    hand: List[Card] = field(default_factory=list)
    reserve: List[Card] = field(default_factory=list)
    open_card: Optional[Card] = None
    is_out: bool = False
    games_won_count: int = 0

    @property
    def card_count(self) -> int:
        """Get the number of cards in the player's hand."""
        return len(self.hand)

    @property
    def reserve_count(self) -> int:
        return len(self.reserve)

    def find_card(self, card_id: str) -> Optional[int]:
        """Index of the card with ``card_id`` in hand, or None."""
        for i, card in enumerate(self.hand):
            if card.id == card_id:
                return i
        return None


@dataclass(frozen=True)
class ActionResult:
    """
    Descriptor returned by a successful player intent.

    Attributes:
        status: What happened (ok, defended, took, closed)
        attacker_index: Attacker after the action
        defender_index: Defender after the action
        stack: Cards left on the table, bottom first
        taken: Card the acting defender took, for ``took``
        closer_index: Player who closed the round, for ``closed``
    """

    status: ActionStatus
    attacker_index: int
    defender_index: int
    stack: Tuple[Card, ...] = ()
    taken: Optional[Card] = None
    closer_index: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "status": self.status.value,
            "current_attacker": self.attacker_index,
            "current_defender": self.defender_index,
            "stack": [str(card) for card in self.stack],
        }
        if self.taken is not None:
            result["taken"] = str(self.taken)
        if self.closer_index is not None:
            result["closer"] = self.closer_index
        return result


@dataclass(frozen=True)
class GameState:
    """
    Immutable representation of the game state.

    The stack is ordered bottom (oldest, index 0) to top (most recent). The
    deck's top card is its last element.

    Attributes:
        id: Identifier of the game (the room id)
        config: Validated configuration
        players: Players in turn order (circular)
        stage: FORMING until started, then ACTIVE
        deck: Cards not yet drawn
        stack: Cards laid on the table this round
        discard: Cards removed from play
        trump_suit: Trump for this game; None when the revealed card was a spade
        trump_card: The card revealed to decide trump
        drawer_index: Player who won the first-drawer determination
        attacker_index: Index of the current attacker
        defender_index: Index of the current defender
        event_log: Bounded human-readable log, oldest first
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    config: GameConfig = field(default_factory=GameConfig)
    players: List[PlayerState] = field(default_factory=list)
    stage: GameStage = GameStage.FORMING
    deck: List[Card] = field(default_factory=list)
    stack: List[Card] = field(default_factory=list)
    discard: List[Card] = field(default_factory=list)
    trump_suit: Optional[Suit] = None
    trump_card: Optional[Card] = None
    drawer_index: Optional[int] = None
    attacker_index: int = 0
    defender_index: int = 1
    event_log: Tuple[str, ...] = ()

    @property
    def started(self) -> bool:
        return self.stage == GameStage.ACTIVE

    @property
    def pinned_card(self) -> Optional[Card]:
        """The trump-revealing card while it still lies under the stack."""
        if self.stack and self.trump_card is not None and self.stack[0] == self.trump_card:
            return self.stack[0]
        return None

    @property
    def attack_cards(self) -> List[Card]:
        """Stack cards in play this round, bottom first, without the pinned card."""
        return self.stack[1:] if self.pinned_card is not None else list(self.stack)

    @property
    def top_of_stack(self) -> Optional[Card]:
        cards = self.attack_cards
        return cards[-1] if cards else None

    @property
    def bottom_of_stack(self) -> Optional[Card]:
        cards = self.attack_cards
        return cards[0] if cards else None

    @property
    def current_attacker(self) -> Optional[PlayerState]:
        """Get the current attacker if any."""
        if 0 <= self.attacker_index < len(self.players):
            return self.players[self.attacker_index]
        return None

    @property
    def current_defender(self) -> Optional[PlayerState]:
        """Get the current defender if any."""
        if 0 <= self.defender_index < len(self.players):
            return self.players[self.defender_index]
        return None

    @property
    def players_in_game(self) -> List[PlayerState]:
        """Get the list of players not yet out."""
        return [p for p in self.players if not p.is_out]

    @property
    def game_over(self) -> bool:
        """An active game is over once fewer than two players remain in it."""
        return self.started and len(self.players_in_game) < 2

    def player_index(self, player_id: str) -> Optional[int]:
        for i, player in enumerate(self.players):
            if player.id == player_id:
                return i
        return None

    def next_index(self, index: int) -> int:
        """
        Next player in turn order after ``index``, skipping players who are out.

        Falls back to the plain next seat when fewer than two players remain.
        """
        count = len(self.players)
        if count == 0:
            return -1
        candidate = (index + 1) % count
        if len(self.players_in_game) < 2:
            return candidate
        while self.players[candidate].is_out:
            candidate = (candidate + 1) % count
        return candidate

    def all_cards(self) -> List[Card]:
        """Every card the game owns, wherever it currently sits."""
        cards = list(self.deck) + list(self.stack) + list(self.discard)
        for player in self.players:
            cards.extend(player.hand)
            cards.extend(player.reserve)
        return cards
