"""
This module contains the Deck class, which represents a deck of cards.

>>> deck = build_deck(36, random.Random(7))
>>> deck.size
36
>>> card = deck.draw_top()
>>> deck.size
35
"""

import random
from typing import List, Optional, Sequence

from penki.common.card import Card, Rank, Suit
from penki.errors import EmptyDeck

RANKS_36 = [rank for rank in Rank if rank >= Rank.SIX]
RANKS_52 = list(Rank)

DECK_RANKS = {36: RANKS_36, 52: RANKS_52}


class Deck:
    """
    An ordered deck of cards. The top of the deck is the end of the list.
    """

    def __init__(self, cards: Optional[Sequence[Card]] = None):
        """
        Initialize a Deck instance.

        :param cards: Cards to populate the deck with (copied). Empty if omitted.
        """
        self.cards: List[Card] = list(cards) if cards is not None else []

    def shuffle(self, rng: Optional[random.Random] = None):
        """
        Apply a uniform random permutation to the deck.

        :param rng: Random source to shuffle with; the module-level one if omitted.
        """
        (rng or random).shuffle(self.cards)
        return self

    def draw_top(self) -> Card:
        """
        Remove and return the top card.

        :raises EmptyDeck: if no cards remain.
        """
        if not self.cards:
            raise EmptyDeck("No cards left in the deck")
        return self.cards.pop()

    def draw_up_to(self, count: int) -> List[Card]:
        """Draw at most ``count`` cards, stopping early when the deck runs out."""
        drawn = []
        while len(drawn) < count and self.cards:
            drawn.append(self.cards.pop())
        return drawn

    @property
    def size(self) -> int:
        """
        Return the number of remaining cards in the deck.
        """
        return len(self.cards)

    def is_empty(self) -> bool:
        return len(self.cards) == 0

    def __len__(self) -> int:
        return len(self.cards)

    def __repr__(self) -> str:
        return f"Deck({[repr(card) for card in self.cards]})"

    def __str__(self) -> str:
        return f"Deck of {len(self.cards)} cards"


def build_deck(variant: int = 36, rng: Optional[random.Random] = None) -> Deck:
    """
    Generate one card per (rank, suit) pair for the variant and shuffle it.

    :param variant: 36 (Six through Ace) or 52 (Two through Ace).
    :param rng: Random source for the shuffle, injectable for tests.
    """
    try:
        ranks = DECK_RANKS[variant]
    except KeyError:
        raise ValueError(f"Unsupported deck variant: {variant}") from None
    deck = Deck([Card(suit, rank) for rank in ranks for suit in Suit])
    return deck.shuffle(rng)
