import pytest
from dataclasses import FrozenInstanceError

from penki.common.card import Card, Rank, Suit, card_to_string


def test_card_initialization():
    card = Card(Suit.HEARTS, Rank.EIGHT)
    assert card.suit == Suit.HEARTS
    assert card.rank == Rank.EIGHT
    assert card.rank == 8


def test_card_repr():
    card = Card(Suit.HEARTS, Rank.EIGHT)
    assert repr(card) == "Card(Suit.HEARTS, Rank.EIGHT)"


@pytest.mark.parametrize(
    "card,expected",
    [
        (Card(Suit.CLUBS, Rank.ACE), "A♣"),
        (Card(Suit.SPADES, Rank.SEVEN), "7♠"),
        (Card(Suit.HEARTS, Rank.TEN), "10♥"),
        (Card(Suit.DIAMONDS, Rank.JACK), "J♦"),
        (Card(Suit.DIAMONDS, Rank.QUEEN), "Q♦"),
        (Card(Suit.CLUBS, Rank.KING), "K♣"),
    ],
)
def test_card_str(card, expected):
    assert str(card) == expected
    assert card_to_string(card) == expected


def test_missing_card_renders_placeholder():
    assert card_to_string(None) == "??"


def test_card_id_is_suit_and_rank():
    assert Card(Suit.SPADES, Rank.SEVEN).id == "♠_7"
    assert Card(Suit.CLUBS, Rank.ACE).id == "♣_14"


def test_card_is_immutable():
    card = Card(Suit.HEARTS, Rank.EIGHT)
    with pytest.raises(FrozenInstanceError):
        card.rank = Rank.NINE


def test_invalid_suit():
    with pytest.raises(TypeError):
        Card("Z", Rank.EIGHT)


def test_invalid_rank():
    with pytest.raises(TypeError):
        Card(Suit.HEARTS, 8)


def test_card_equality():
    assert Card(Suit.HEARTS, Rank.ACE) == Card(Suit.HEARTS, Rank.ACE)
    assert Card(Suit.HEARTS, Rank.ACE) != Card(Suit.SPADES, Rank.ACE)
    assert len({Card(Suit.HEARTS, Rank.ACE), Card(Suit.HEARTS, Rank.ACE)}) == 1


def test_ranks_compare_numerically():
    assert Rank.ACE > Rank.KING > Rank.QUEEN > Rank.JACK > Rank.TEN
    assert Rank.TWO.rank_str == "2"
    assert str(Rank.ACE) == "A"
