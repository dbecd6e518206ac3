"""
State transition functions for the penki card game.

This module provides pure functions for transitioning between game states,
without modifying the original state objects. Player intents return the new
state together with an ``ActionResult``; rule violations raise a
``GameError`` before anything is committed, so the caller keeps its old
state untouched.
"""

from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple
import logging
import random

from penki.common.card import Card, Suit
from penki.common.deck import Deck, build_deck
from penki.errors import (
    AlreadyStarted,
    CardNotInHand,
    DuplicatePlayer,
    EmptyStack,
    GameNotStarted,
    IllegalDefense,
    NotEnoughPlayers,
    NothingToDefend,
    NotYourTurn,
    PlayerNotFound,
    RoomFull,
)
from penki.events import EventEmitter, GameEventType
from penki.game.rules import can_beat, can_beat_any, is_seven_of_spades
from penki.game.state import (
    ActionResult,
    ActionStatus,
    GameStage,
    GameState,
    PlayerState,
)

logger = logging.getLogger("penki.game")

RESERVE_SIZE = 2


class _Draft:
    """
    Mutable working copy of a GameState.

    Transitions move cards around on the draft and only build a new
    GameState in ``commit``. Events are buffered and emitted on commit so a
    rejected operation emits nothing.
    """

    def __init__(self, state: GameState, events: Optional[EventEmitter] = None):
        self.state = state
        self.emitter = events
        self.deck = Deck(state.deck)
        self.stack: List[Card] = list(state.stack)
        self.discard: List[Card] = list(state.discard)
        self.hands: List[List[Card]] = [list(p.hand) for p in state.players]
        self.reserves: List[List[Card]] = [list(p.reserve) for p in state.players]
        self.open_cards: List[Optional[Card]] = [p.open_card for p in state.players]
        self.out: List[bool] = [p.is_out for p in state.players]
        self.trump_suit = state.trump_suit
        self.trump_card = state.trump_card
        self.drawer_index = state.drawer_index
        self.attacker = state.attacker_index
        self.defender = state.defender_index
        self.stage = state.stage
        self.log: List[str] = list(state.event_log)
        self.pending: List[Tuple[GameEventType, Dict[str, Any]]] = []

    @property
    def player_count(self) -> int:
        return len(self.state.players)

    def name(self, index: int) -> str:
        return self.state.players[index].name

    def in_game_count(self) -> int:
        return sum(1 for is_out in self.out if not is_out)

    def next_index(self, index: int) -> int:
        """Next seat after ``index`` that is still in the game."""
        count = self.player_count
        candidate = (index + 1) % count
        if self.in_game_count() < 2:
            return candidate
        while self.out[candidate]:
            candidate = (candidate + 1) % count
        return candidate

    def record(
        self,
        line: str,
        event_type: Optional[GameEventType] = None,
        **data: Any,
    ) -> None:
        logger.debug("[%s] %s", self.state.id, line)
        self.log.append(line)
        if event_type is not None:
            data.setdefault("game_id", self.state.id)
            self.pending.append((event_type, data))

    def bottom_position(self) -> int:
        """Index of the oldest attack card; the pinned trump card is skipped."""
        pinned = (
            self.stack
            and self.trump_card is not None
            and self.stack[0] == self.trump_card
        )
        return 1 if pinned else 0

    def has_attack_cards(self) -> bool:
        return len(self.stack) > self.bottom_position()

    def replenish_hands(self) -> None:
        """Draw for every player in turn order until the target size or an empty deck."""
        target = self.state.config.target_hand_size
        for i in range(self.player_count):
            if self.out[i]:
                continue
            hand = self.hands[i]
            hand.extend(self.deck.draw_up_to(target - len(hand)))

    def commit(self) -> GameState:
        players = [
            replace(
                player,
                hand=self.hands[i],
                reserve=self.reserves[i],
                open_card=self.open_cards[i],
                is_out=self.out[i],
            )
            for i, player in enumerate(self.state.players)
        ]
        limit = self.state.config.event_log_limit
        new_state = replace(
            self.state,
            players=players,
            stage=self.stage,
            deck=self.deck.cards,
            stack=self.stack,
            discard=self.discard,
            trump_suit=self.trump_suit,
            trump_card=self.trump_card,
            drawer_index=self.drawer_index,
            attacker_index=self.attacker,
            defender_index=self.defender,
            event_log=tuple(self.log[-limit:]),
        )

        if self.emitter is not None:
            for event_type, data in self.pending:
                self.emitter.emit(event_type, data)
        return new_state

    def result(self, status: ActionStatus, **extra: Any) -> ActionResult:
        return ActionResult(
            status=status,
            attacker_index=self.attacker,
            defender_index=self.defender,
            stack=tuple(self.stack),
            **extra,
        )


def _require_active(state: GameState) -> None:
    if state.stage != GameStage.ACTIVE:
        raise GameNotStarted("Game not started")


def _card_in_hand(player: PlayerState, card_id: str) -> int:
    position = player.find_card(card_id)
    if position is None:
        raise CardNotInHand(f"Card {card_id} is not in {player.name}'s hand")
    return position


class StateTransitionEngine:
    """
    Pure functions for state transitions.

    Each method takes a state and returns a new state, without modifying the
    original. Methods that change the game take an optional ``events``
    emitter and publish their events on it once the new state is built.
    """

    @staticmethod
    def add_player(
        state: GameState,
        player_id: str,
        name: str = "Player",
        connection_ref: Optional[str] = None,
        events: Optional[EventEmitter] = None,
    ) -> GameState:
        """
        Append a player to the turn order.

        Raises:
            AlreadyStarted: the game is no longer forming
            DuplicatePlayer: the id already joined
            RoomFull: the seat limit for the deck variant is reached
        """
        if state.stage != GameStage.FORMING:
            raise AlreadyStarted("Game already started")
        if state.player_index(player_id) is not None:
            raise DuplicatePlayer(f"Player {player_id} already joined")
        if len(state.players) >= state.config.max_players:
            raise RoomFull(
                f"Room is full ({state.config.max_players} players "
                f"for a {state.config.deck_variant}-card deck)"
            )

        new_player = PlayerState(id=player_id, name=name, connection_ref=connection_ref)
        draft = _Draft(
            replace(state, players=list(state.players) + [new_player]), events
        )
        draft.record(
            f"{name} joined",
            GameEventType.PLAYER_JOINED,
            player_id=player_id,
            player_name=name,
        )
        return draft.commit()

    @staticmethod
    def remove_player(
        state: GameState, player_id: str, events: Optional[EventEmitter] = None
    ) -> GameState:
        """Remove a player before the game starts."""
        if state.stage != GameStage.FORMING:
            raise AlreadyStarted("Players cannot leave a started game")
        index = state.player_index(player_id)
        if index is None:
            raise PlayerNotFound(f"Player {player_id} not found")

        players = list(state.players)
        removed = players.pop(index)
        draft = _Draft(replace(state, players=players), events)
        draft.record(
            f"{removed.name} left",
            GameEventType.PLAYER_LEFT,
            player_id=removed.id,
            player_name=removed.name,
        )
        return draft.commit()

    @staticmethod
    def set_connection(
        state: GameState, player_id: str, connection_ref: Optional[str]
    ) -> GameState:
        """Attach or detach the transport handle of a player."""
        index = state.player_index(player_id)
        if index is None:
            raise PlayerNotFound(f"Player {player_id} not found")
        players = list(state.players)
        players[index] = replace(players[index], connection_ref=connection_ref)
        return replace(state, players=players)

    @staticmethod
    def start(
        state: GameState,
        rng: Optional[random.Random] = None,
        events: Optional[EventEmitter] = None,
    ) -> GameState:
        """
        Deal, pick the first drawer, reveal trump and open the first round.

        Every player gets two reserve cards and one open card (dealt face up
        into the hand), then hands are filled to the target size in turn
        order. The drawer takes one more card: its suit is trump unless it is
        a spade. That card lies pinned under the stack, visible to all, until
        the first round closes; taking the bottom card never takes it.
        """
        if state.stage != GameStage.FORMING:
            raise AlreadyStarted("Game already started")
        if len(state.players) < 2:
            raise NotEnoughPlayers("Need at least 2 players")

        draft = _Draft(state, events)
        draft.deck = build_deck(state.config.deck_variant, rng)
        draft.record(
            f"Game started with {draft.player_count} players "
            f"and a {state.config.deck_variant}-card deck",
            GameEventType.GAME_STARTED,
            players=[p.id for p in state.players],
            deck_variant=state.config.deck_variant,
        )

        for i in range(draft.player_count):
            draft.reserves[i] = [draft.deck.draw_top() for _ in range(RESERVE_SIZE)]
        for i in range(draft.player_count):
            card = draft.deck.draw_top()
            draft.open_cards[i] = card
            draft.hands[i].append(card)
        draft.replenish_hands()

        drawer = StateTransitionEngine._determine_first_drawer(draft)
        draft.drawer_index = drawer

        if not draft.deck.is_empty():
            revealed = draft.deck.draw_top()
            draft.trump_card = revealed
            draft.trump_suit = None if revealed.suit == Suit.SPADES else revealed.suit
            draft.stack.append(revealed)
            draft.record(
                f"{draft.name(drawer)} revealed {revealed}: "
                f"trump is {draft.trump_suit or 'none'}",
                GameEventType.TRUMP_REVEALED,
                card=str(revealed),
                trump_suit=draft.trump_suit.name if draft.trump_suit else None,
            )
        else:
            draft.record("Deck exhausted before the trump reveal: no trump this game")

        draft.attacker = drawer
        draft.defender = draft.next_index(drawer)
        draft.stage = GameStage.ACTIVE
        logger.info(
            "Game %s started: drawer=%s trump=%s",
            state.id,
            drawer,
            draft.trump_suit,
        )
        return draft.commit()

    @staticmethod
    def _determine_first_drawer(draft: _Draft) -> int:
        """
        Highest open card draws the trump.

        Tied players each draw one more card (to discard) until one of them is
        strictly highest. When the deck cannot cover another tie-break round,
        the first tied player in turn order wins.
        """
        candidates = StateTransitionEngine._highest(
            [(i, draft.open_cards[i]) for i in range(draft.player_count)]
        )
        while len(candidates) > 1 and draft.deck.size >= len(candidates):
            revealed = []
            for i in candidates:
                card = draft.deck.draw_top()
                draft.discard.append(card)
                revealed.append((i, card))
            draft.record(
                "Tie-break: "
                + ", ".join(f"{draft.name(i)} {card}" for i, card in revealed)
            )
            candidates = StateTransitionEngine._highest(revealed)

        drawer = candidates[0]
        draft.record(
            f"{draft.name(drawer)} draws the trump",
            GameEventType.FIRST_DRAWER_DETERMINED,
            drawer_index=drawer,
            player_id=draft.state.players[drawer].id,
            tied=len(candidates) > 1,
        )
        return drawer

    @staticmethod
    def _highest(entries: List[Tuple[int, Card]]) -> List[int]:
        best = max(card.rank for _, card in entries)
        return [i for i, card in entries if card.rank == best]

    @staticmethod
    def play_card(
        state: GameState,
        player_id: str,
        card_id: str,
        events: Optional[EventEmitter] = None,
    ) -> Tuple[GameState, ActionResult]:
        """
        The current attacker lays a card on top of the stack.

        The 7♠ closes the round at once with the attacker as closer.
        """
        _require_active(state)
        index = state.player_index(player_id)
        if index is None or index != state.attacker_index:
            raise NotYourTurn("Not your turn to attack")
        position = _card_in_hand(state.players[index], card_id)

        draft = _Draft(state, events)
        card = draft.hands[index].pop(position)
        draft.stack.append(card)
        draft.record(
            f"{draft.name(index)} attacks with {card}",
            GameEventType.CARD_PLAYED,
            player_id=player_id,
            card=str(card),
            remaining_hand_size=len(draft.hands[index]),
        )

        if is_seven_of_spades(card):
            draft.record(f"{card} played: instant close by {draft.name(index)}")
            return StateTransitionEngine._close_round(draft, index)

        return draft.commit(), draft.result(ActionStatus.OK)

    @staticmethod
    def defend_with(
        state: GameState,
        player_id: str,
        card_id: str,
        events: Optional[EventEmitter] = None,
    ) -> Tuple[GameState, ActionResult]:
        """
        The current defender beats the top of the stack.

        After a successful defense the defender holds the attack and the
        players after them are swept in turn order: whoever cannot beat the
        bottom card of the stack takes it and passes defense on. The sweep
        stops at the first player able to answer, who becomes the defender.
        If no attack card is left or the sweep comes back round to the
        successful defender, the round closes with the original attacker as
        closer.
        """
        _require_active(state)
        index = state.player_index(player_id)
        if index is None or index != state.defender_index:
            raise NotYourTurn("Not your turn to defend")
        if not state.attack_cards:
            raise NothingToDefend("Nothing to defend")
        position = _card_in_hand(state.players[index], card_id)

        attack_card = state.top_of_stack
        defence_card = state.players[index].hand[position]

        if is_seven_of_spades(defence_card):
            draft = _Draft(state, events)
            draft.stack.append(draft.hands[index].pop(position))
            draft.record(
                f"{draft.name(index)} defended with {defence_card}: instant close",
                GameEventType.CARD_DEFENDED,
                player_id=player_id,
                card=str(defence_card),
                against_card=str(attack_card),
            )
            return StateTransitionEngine._close_round(draft, index)

        if not can_beat(attack_card, defence_card, state.trump_suit):
            raise IllegalDefense(f"{defence_card} cannot beat {attack_card}")

        draft = _Draft(state, events)
        draft.stack.append(draft.hands[index].pop(position))
        draft.record(
            f"{draft.name(index)} beat {attack_card} with {defence_card}",
            GameEventType.CARD_DEFENDED,
            player_id=player_id,
            card=str(defence_card),
            against_card=str(attack_card),
        )

        original_attacker = draft.attacker
        draft.attacker = index
        candidate = draft.next_index(index)
        answered = False
        for _ in range(draft.player_count):
            if not draft.has_attack_cards() or candidate == index:
                break
            bottom = draft.stack[draft.bottom_position()]
            if can_beat_any(bottom, draft.hands[candidate], draft.trump_suit):
                answered = True
                break
            draft.hands[candidate].append(draft.stack.pop(draft.bottom_position()))
            draft.record(
                f"{draft.name(candidate)} cannot beat {bottom} and takes it",
                GameEventType.BOTTOM_TAKEN,
                player_id=draft.state.players[candidate].id,
                card=str(bottom),
                chain=True,
            )
            candidate = draft.next_index(candidate)

        if not answered:
            return StateTransitionEngine._close_round(draft, original_attacker)

        draft.defender = candidate
        return draft.commit(), draft.result(ActionStatus.DEFENDED)

    @staticmethod
    def take_bottom(
        state: GameState, player_id: str, events: Optional[EventEmitter] = None
    ) -> Tuple[GameState, ActionResult]:
        """
        The current defender gives up and takes the bottom card of the stack.

        Attacker and defender each move one seat on. Cards left on the stack
        stay on the table.
        """
        _require_active(state)
        index = state.player_index(player_id)
        if index is None or index != state.defender_index:
            raise NotYourTurn("Not your turn to take")
        if not state.attack_cards:
            raise EmptyStack("No cards on the stack to take")

        draft = _Draft(state, events)
        bottom = draft.stack.pop(draft.bottom_position())
        draft.hands[index].append(bottom)
        draft.record(
            f"{draft.name(index)} could not defend and took bottom {bottom}",
            GameEventType.BOTTOM_TAKEN,
            player_id=player_id,
            card=str(bottom),
            chain=False,
        )

        draft.attacker = draft.next_index(draft.attacker)
        draft.defender = draft.next_index(draft.defender)
        if draft.defender == draft.attacker:
            draft.defender = draft.next_index(draft.attacker)

        return draft.commit(), draft.result(ActionStatus.TOOK, taken=bottom)

    @staticmethod
    def _close_round(draft: _Draft, closer: int) -> Tuple[GameState, ActionResult]:
        """
        Discard the stack, re-anchor the turn on ``closer`` and refill hands.

        Hands are replenished first; a player still empty-handed then gets
        their reserve, and a player with neither is out for good. Open
        cards stop being public once a round has closed.
        """
        draft.discard.extend(draft.stack)
        draft.stack = []
        draft.open_cards = [None] * draft.player_count
        draft.replenish_hands()

        for i in range(draft.player_count):
            if not draft.hands[i] and draft.reserves[i]:
                draft.hands[i].extend(draft.reserves[i])
                draft.reserves[i] = []
                draft.record(
                    f"{draft.name(i)} took penki into hand",
                    GameEventType.RESERVE_REVEALED,
                    player_id=draft.state.players[i].id,
                )

        was_playing = draft.in_game_count() >= 2
        for i in range(draft.player_count):
            if not draft.hands[i] and not draft.reserves[i] and not draft.out[i]:
                draft.out[i] = True
                draft.record(
                    f"{draft.name(i)} is out",
                    GameEventType.PLAYER_OUT,
                    player_id=draft.state.players[i].id,
                )

        draft.attacker = closer
        if draft.out[closer] and draft.in_game_count() >= 2:
            draft.attacker = draft.next_index(closer)
        draft.defender = draft.next_index(draft.attacker)

        draft.record(
            f"Round closed by {draft.name(closer)}. "
            f"Trump remains {draft.trump_suit or 'none'}",
            GameEventType.ROUND_CLOSED,
            closer_index=closer,
            trump_suit=draft.trump_suit.name if draft.trump_suit else None,
            discard_size=len(draft.discard),
        )

        if was_playing and draft.in_game_count() < 2:
            remaining = [
                draft.state.players[i].id
                for i in range(draft.player_count)
                if not draft.out[i]
            ]
            draft.record(
                "Game over",
                GameEventType.GAME_OVER,
                remaining_players=remaining,
            )

        return draft.commit(), draft.result(ActionStatus.CLOSED, closer_index=closer)
