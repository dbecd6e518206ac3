"""
This module defines the `Suit`, `Rank`, and `Card` classes, which are used to represent playing cards.

- `Suit`: An enum representing the four suits. Spades come first because they
are the immune suit of the game.

- `Rank`: An integer enum for ranks Two through Ace (2..14). Ranks compare
numerically; Ace is always high.

- `Card`: An immutable value object with a suit, a rank and a deterministic id.

`card_to_string` is the display adapter shared by the event log and any
external renderer.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum, unique
from typing import Optional


@unique
class Suit(Enum):
    """
    Enum for suits in a card deck.
    """

    SPADES = "♠"
    HEARTS = "♥"
    DIAMONDS = "♦"
    CLUBS = "♣"

    def __str__(self) -> str:
        return self.value


_FACE_SYMBOLS = {11: "J", 12: "Q", 13: "K", 14: "A"}


@unique
class Rank(IntEnum):
    """
    Enum for ranks in a card deck, valued for direct numeric comparison.
    """

    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13
    ACE = 14

    @property
    def rank_str(self) -> str:
        """A short string representation of the rank (J/Q/K/A for faces)."""
        return _FACE_SYMBOLS.get(self.value, str(self.value))

    def __str__(self) -> str:
        return self.rank_str


@dataclass(frozen=True)
class Card:
    """
    Class representing a playing card.

    >>> card = Card(Suit.CLUBS, Rank.ACE)
    >>> print(card)
    A♣
    >>> card.id
    '♣_14'
    """

    suit: Suit
    rank: Rank

    def __post_init__(self):
        match self.suit:
            case Suit():
                pass
            case _:
                raise TypeError(f"Invalid suit: {self.suit}")
        if not isinstance(self.rank, Rank):
            raise TypeError(f"Invalid rank: {self.rank}")

    @property
    def id(self) -> str:
        """Deterministic identifier, unique within one deck."""
        return f"{self.suit.value}_{self.rank.value}"

    def __repr__(self) -> str:
        """
        Provide a machine-readable representation of the card.

        :return: A string representation of the card.
        """
        return f"Card(Suit.{self.suit.name}, Rank.{self.rank.name})"

    def __str__(self) -> str:
        """
        Provide a human-readable representation of the card.

        :return: A string representation of the card.
        """
        return f"{self.rank.rank_str}{self.suit.value}"


def card_to_string(card: Optional[Card]) -> str:
    """Render a card for logs and clients; a missing card renders as ``??``."""
    if card is None:
        return "??"
    return str(card)
