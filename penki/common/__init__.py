"""Card and deck primitives shared by the game core and the transport layer."""

from penki.common.card import Card, Rank, Suit, card_to_string
from penki.common.deck import Deck, build_deck

__all__ = ["Card", "Rank", "Suit", "card_to_string", "Deck", "build_deck"]
