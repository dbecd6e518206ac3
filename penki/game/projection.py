"""
Per-viewer snapshots of a game.

This is the only sanctioned way state leaves the core. Hands of everyone but
the viewer are replaced by placeholders of matching count, and reserve
contents are never shown to anybody. The stack is public table information.
"""

from typing import Any, Dict, Optional

from penki.common.card import card_to_string
from penki.errors import PlayerNotFound
from penki.game.state import GameState, PlayerState

HIDDEN_CARD = "##"
LOG_TAIL = 30


def _open_card(player: PlayerState) -> Optional[str]:
    """The face-up card from the deal, while it is still in hand in the first round."""
    if player.open_card is not None and player.open_card in player.hand:
        return card_to_string(player.open_card)
    return None


def project_for(state: GameState, viewer_id: Optional[str]) -> Dict[str, Any]:
    """
    Build the snapshot ``viewer_id`` may see.

    Args:
        state: Game state to project
        viewer_id: Player the snapshot is for; None for a spectator who sees
            no hand at all

    Returns:
        JSON-ready dictionary. Two calls on the same state are equal.
    """
    if viewer_id is not None and state.player_index(viewer_id) is None:
        raise PlayerNotFound(f"Player {viewer_id} is not in game {state.id}")

    return {
        "id": state.id,
        "started": state.started,
        "game_over": state.game_over,
        "trump": state.trump_suit.value if state.trump_suit else None,
        "trump_card": str(state.trump_card) if state.trump_card else None,
        "deck_size": len(state.deck),
        "discard_size": len(state.discard),
        "stack": [card_to_string(card) for card in state.stack],
        "players": [
            {
                "id": player.id,
                "name": player.name,
                "hand_count": player.card_count,
                "hand": (
                    [card_to_string(card) for card in player.hand]
                    if player.id == viewer_id
                    else [HIDDEN_CARD] * player.card_count
                ),
                "hand_ids": (
                    [card.id for card in player.hand] if player.id == viewer_id else []
                ),
                "reserve_count": player.reserve_count,
                "open_card": _open_card(player),
                "out": player.is_out,
                "games_won_count": player.games_won_count,
            }
            for player in state.players
        ],
        "current_attacker": state.attacker_index if state.started else None,
        "current_defender": state.defender_index if state.started else None,
        "drawer_index": state.drawer_index,
        "logs": list(state.event_log[-LOG_TAIL:]),
    }
