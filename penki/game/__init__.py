"""
Game core for penki.

This package provides the immutable state models, the pure state
transitions, the beat relation, the per-viewer projector and the
`PenkiGame` handle that ties them together.
"""

from penki.game.state import (
    ActionResult as ActionResult,
    ActionStatus as ActionStatus,
    GameConfig as GameConfig,
    GameStage as GameStage,
    GameState as GameState,
    PlayerState as PlayerState,
)
from penki.game.rules import can_beat as can_beat, is_seven_of_spades as is_seven_of_spades
from penki.game.transitions import StateTransitionEngine as StateTransitionEngine
from penki.game.projection import project_for as project_for
from penki.game.engine import PenkiGame as PenkiGame

__all__ = [
    "ActionResult",
    "ActionStatus",
    "GameConfig",
    "GameStage",
    "GameState",
    "PlayerState",
    "can_beat",
    "is_seven_of_spades",
    "StateTransitionEngine",
    "project_for",
    "PenkiGame",
]
