"""
Tests for the PenkiGame handle: a full game from join to take, room limits,
projections and event emission.
"""

from collections import Counter
import random
from unittest.mock import MagicMock

import pytest

from penki.common.card import Card, Rank, Suit
from penki.common.deck import build_deck
from penki.errors import (
    ErrorKind,
    GameError,
    IllegalDefense,
    InvalidConfig,
    PlayerNotFound,
    RoomFull,
)
from penki.events import EventEmitter, GameEventType
from penki.game import ActionStatus, GameConfig, PenkiGame
from penki.game.projection import HIDDEN_CARD

ACE_CLUBS = Card(Suit.CLUBS, Rank.ACE)

# Cards in the order they leave the deck when two players start.
DEAL = [
    # reserves
    Card(Suit.CLUBS, Rank.SIX), Card(Suit.CLUBS, Rank.SEVEN),
    Card(Suit.CLUBS, Rank.EIGHT), Card(Suit.CLUBS, Rank.NINE),
    # open cards
    ACE_CLUBS, Card(Suit.DIAMONDS, Rank.EIGHT),
    # replenish P1 then P2
    Card(Suit.CLUBS, Rank.KING), Card(Suit.CLUBS, Rank.QUEEN),
    Card(Suit.DIAMONDS, Rank.JACK), Card(Suit.HEARTS, Rank.TEN),
    Card(Suit.HEARTS, Rank.SIX),
    Card(Suit.SPADES, Rank.EIGHT), Card(Suit.SPADES, Rank.NINE),
    Card(Suit.SPADES, Rank.TEN), Card(Suit.DIAMONDS, Rank.SIX),
    Card(Suit.DIAMONDS, Rank.SEVEN),
    # trump reveal
    Card(Suit.HEARTS, Rank.NINE),
]


class StackedDeck:
    """Random source that arranges the deck so ``DEAL`` comes off the top."""

    def __init__(self, deal):
        self.deal = deal

    def shuffle(self, cards):
        rest = [card for card in cards if card not in self.deal]
        cards[:] = rest + list(reversed(self.deal))


@pytest.fixture
def game():
    game = PenkiGame("room1", {"deck_variant": 36}, rng=StackedDeck(DEAL))
    game.add_player("p1", "Alice")
    game.add_player("p2", "Bob")
    return game


@pytest.fixture
def started(game):
    game.start()
    return game


class TestFullGame:
    def test_start(self, started):
        state = started.state
        assert state.trump_suit == Suit.HEARTS
        assert state.drawer_index == 0
        assert state.current_attacker.id == "p1"
        assert state.current_defender.id == "p2"
        for player in state.players:
            assert len(player.hand) == 6
            assert len(player.reserve) == 2
        assert ACE_CLUBS in state.players[0].hand

    def test_attack_illegal_defenses_then_take(self, started):
        result = started.play_card("p1", ACE_CLUBS.id)
        assert result.status == ActionStatus.OK

        before = started.state
        for card in before.players[1].hand:
            with pytest.raises(IllegalDefense):
                started.defend_with("p2", card.id)
            assert started.state is before

        result = started.take_bottom("p2")

        assert result.status == ActionStatus.TOOK
        assert result.taken == ACE_CLUBS
        assert ACE_CLUBS in started.state.players[1].hand
        assert ACE_CLUBS not in started.state.players[0].hand
        assert started.state.current_attacker.id == "p2"
        assert started.state.current_defender.id == "p1"
        # The trump card stays pinned under the stack
        assert started.state.stack == [Card(Suit.HEARTS, Rank.NINE)]

    def test_result_descriptor(self, started):
        started.play_card("p1", ACE_CLUBS.id)
        res = started.take_bottom("p2").to_dict()
        assert res == {
            "status": "took",
            "current_attacker": 1,
            "current_defender": 0,
            "stack": ["9♥"],
            "taken": "A♣",
        }

    def test_rejections_are_typed(self, started):
        with pytest.raises(GameError) as excinfo:
            started.play_card("p2", "♦_8")
        assert excinfo.value.kind == ErrorKind.NOT_YOUR_TURN

        with pytest.raises(GameError) as excinfo:
            started.play_card("p1", "♠_8")
        assert excinfo.value.kind == ErrorKind.CARD_NOT_IN_HAND

        with pytest.raises(GameError) as excinfo:
            started.take_bottom("p2")
        assert excinfo.value.kind == ErrorKind.EMPTY_STACK

        with pytest.raises(GameError) as excinfo:
            started.start()
        assert excinfo.value.kind == ErrorKind.ALREADY_STARTED


class TestRoomLimits:
    @pytest.mark.parametrize("variant,seats", [(36, 4), (52, 6)])
    def test_join_limit(self, variant, seats):
        game = PenkiGame(config={"deck_variant": variant})
        for i in range(seats):
            game.add_player(f"p{i}", f"P{i}")

        with pytest.raises(RoomFull):
            game.add_player("late", "Late")
        assert len(game.state.players) == seats

    def test_fifth_join_succeeds_on_52_cards(self):
        game = PenkiGame(config={"use52": True})
        for i in range(5):
            game.add_player(f"p{i}", f"P{i}")
        assert len(game.state.players) == 5

    def test_invalid_config(self):
        with pytest.raises(InvalidConfig):
            PenkiGame(config={"deck_variant": 40})


class TestProjection:
    def test_idempotent(self, started):
        assert started.project_for("p1") == started.project_for("p1")

    def test_own_hand_visible_others_hidden(self, started):
        view = started.project_for("p2")
        me, other = view["players"][1], view["players"][0]

        assert me["hand"] == [str(card) for card in started.state.players[1].hand]
        assert me["hand_ids"] == [card.id for card in started.state.players[1].hand]
        assert other["hand"] == [HIDDEN_CARD] * 6
        assert other["hand_ids"] == []
        assert other["hand_count"] == 6

    def test_reserves_never_shown(self, started):
        view = started.project_for("p1")
        for player in view["players"]:
            assert player["reserve_count"] == 2
            assert "reserve" not in player

    def test_public_fields(self, started):
        view = started.project_for("p1")
        assert view["started"] is True
        assert view["game_over"] is False
        assert view["trump"] == "♥"
        assert view["trump_card"] == "9♥"
        assert view["stack"] == ["9♥"]
        assert view["deck_size"] == 36 - 4 - 12 - 1
        assert view["current_attacker"] == 0
        assert view["current_defender"] == 1
        assert view["players"][0]["open_card"] == "A♣"

    def test_open_card_hidden_once_played(self, started):
        started.play_card("p1", ACE_CLUBS.id)

        view = started.project_for("p2")

        assert view["players"][0]["open_card"] is None
        assert view["players"][1]["open_card"] == "8♦"

    def test_open_card_hidden_after_first_close(self, started):
        started.play_card("p1", ACE_CLUBS.id)
        started.take_bottom("p2")
        # P1 beats 8♦ with J♦; P2 cannot answer the bottom card and the round closes
        started.play_card("p2", "♦_8")
        started.defend_with("p1", "♦_11")

        view = started.project_for("p1")
        assert all(p["open_card"] is None for p in view["players"])

    def test_before_start(self, game):
        view = game.project_for("p1")
        assert view["started"] is False
        assert view["current_attacker"] is None
        assert view["trump"] is None
        assert view["stack"] == []

    def test_spectator_sees_no_hand(self, started):
        view = started.project_for(None)
        assert all(HIDDEN_CARD in p["hand"] for p in view["players"])

    def test_unknown_viewer(self, started):
        with pytest.raises(PlayerNotFound):
            started.project_for("nobody")


class TestEvents:
    def test_game_created(self):
        callback = MagicMock()
        events = EventEmitter()
        events.on(GameEventType.GAME_CREATED, callback)

        PenkiGame("room9", GameConfig(deck_variant=52), events=events)

        callback.assert_called_once()
        assert callback.call_args[0][0]["game_id"] == "room9"
        assert callback.call_args[0][0]["deck_variant"] == 52

    def test_start_events_in_order(self, game):
        seen = []
        game.events.on_any(lambda event: seen.append(event[0]))

        game.start()

        assert seen == [
            "GAME_STARTED",
            "FIRST_DRAWER_DETERMINED",
            "TRUMP_REVEALED",
        ]

    def test_only_successful_intents_emit(self, started):
        seen = []
        started.events.on_any(lambda event: seen.append(event[0]))

        started.play_card("p1", ACE_CLUBS.id)
        with pytest.raises(IllegalDefense):
            started.defend_with("p2", "♠_8")
        started.take_bottom("p2")

        assert seen == ["CARD_PLAYED", "BOTTOM_TAKEN"]


def _candidate_intents(state):
    attacker = state.current_attacker
    defender = state.current_defender
    intents = [("play_card", attacker.id, card.id) for card in attacker.hand]
    intents += [("defend_with", defender.id, card.id) for card in defender.hand]
    intents.append(("take_bottom", defender.id))
    return intents


@pytest.mark.parametrize("seed", range(40))
def test_random_play_keeps_invariants(seed):
    """Cards are conserved and rejected intents change nothing, whatever is played."""
    chooser = random.Random(seed)
    variant = 52 if seed % 2 else 36
    game = PenkiGame(f"room{seed}", {"deck_variant": variant}, rng=random.Random(seed))
    for i in range(2 + seed % 3):
        game.add_player(f"p{i}", f"P{i}")
    game.start()
    full_deck = Counter(card.id for card in build_deck(variant).cards)

    for _ in range(300):
        if game.game_over:
            break
        intents = _candidate_intents(game.state)
        chooser.shuffle(intents)
        for name, *args in intents:
            before = game.state
            try:
                getattr(game, name)(*args)
            except GameError:
                assert game.state is before
                continue
            break
        else:
            break

        assert Counter(card.id for card in game.state.all_cards()) == full_deck
        if not game.game_over:
            assert game.state.attacker_index != game.state.defender_index
