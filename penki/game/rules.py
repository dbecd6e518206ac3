"""
Beat relation for the penki variant.

Spades are an immune suit: a spade attack can only be beaten by a higher
spade, and trump does not apply against it. Any other attack is beaten by a
higher card of its own suit or by any trump card.
"""

from typing import Iterable, Optional

from penki.common.card import Card, Rank, Suit


def is_seven_of_spades(card: Optional[Card]) -> bool:
    """The 7♠ closes a round outright, whether attacking or defending."""
    return card is not None and card.suit == Suit.SPADES and card.rank == Rank.SEVEN


def can_beat(
    attacking: Optional[Card], defending: Optional[Card], trump_suit: Optional[Suit]
) -> bool:
    """
    Return True if ``defending`` legally counters ``attacking``.

    >>> can_beat(Card(Suit.HEARTS, Rank.ACE), Card(Suit.CLUBS, Rank.SIX), Suit.CLUBS)
    True
    >>> can_beat(Card(Suit.SPADES, Rank.SIX), Card(Suit.CLUBS, Rank.ACE), Suit.CLUBS)
    False
    """
    if attacking is None or defending is None:
        return False

    if attacking.suit == Suit.SPADES:
        return defending.suit == Suit.SPADES and defending.rank > attacking.rank

    if defending.suit == attacking.suit and defending.rank > attacking.rank:
        return True
    return trump_suit is not None and defending.suit == trump_suit


def can_beat_any(
    attacking: Optional[Card], hand: Iterable[Card], trump_suit: Optional[Suit]
) -> bool:
    """Check whether any card in ``hand`` can answer ``attacking``, 7♠ included."""
    if attacking is None:
        return False
    return any(
        is_seven_of_spades(card) or can_beat(attacking, card, trump_suit)
        for card in hand
    )
