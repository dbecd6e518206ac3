"""
Error taxonomy for the penki rules engine.

Every error is a caller-input or turn-sequencing error: it is raised before
any state is replaced, so a rejected operation leaves the game untouched.
Callers can branch on ``err.kind`` instead of parsing messages::

    try:
        game.defend_with(player_id, card_id)
    except GameError as err:
        match err.kind:
            case ErrorKind.ILLEGAL_DEFENSE:
                ...
"""

from enum import Enum


class ErrorKind(Enum):
    """Tag identifying which rule an operation violated."""

    ALREADY_STARTED = "already_started"
    ROOM_FULL = "room_full"
    NOT_ENOUGH_PLAYERS = "not_enough_players"
    GAME_NOT_STARTED = "game_not_started"
    DUPLICATE_PLAYER = "duplicate_player"
    PLAYER_NOT_FOUND = "player_not_found"
    NOT_YOUR_TURN = "not_your_turn"
    CARD_NOT_IN_HAND = "card_not_in_hand"
    NOTHING_TO_DEFEND = "nothing_to_defend"
    EMPTY_STACK = "empty_stack"
    ILLEGAL_DEFENSE = "illegal_defense"
    EMPTY_DECK = "empty_deck"
    INVALID_CONFIG = "invalid_config"


class GameError(Exception):
    """Base class for all recoverable rule violations."""

    kind: ErrorKind

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind.value.replace("_", " "))

    @property
    def message(self) -> str:
        return str(self)


class AlreadyStarted(GameError):
    kind = ErrorKind.ALREADY_STARTED


class RoomFull(GameError):
    kind = ErrorKind.ROOM_FULL


class NotEnoughPlayers(GameError):
    kind = ErrorKind.NOT_ENOUGH_PLAYERS


class GameNotStarted(GameError):
    kind = ErrorKind.GAME_NOT_STARTED


class DuplicatePlayer(GameError):
    kind = ErrorKind.DUPLICATE_PLAYER


class PlayerNotFound(GameError):
    kind = ErrorKind.PLAYER_NOT_FOUND


class NotYourTurn(GameError):
    kind = ErrorKind.NOT_YOUR_TURN


class CardNotInHand(GameError):
    kind = ErrorKind.CARD_NOT_IN_HAND


class NothingToDefend(GameError):
    kind = ErrorKind.NOTHING_TO_DEFEND


class EmptyStack(GameError):
    kind = ErrorKind.EMPTY_STACK


class IllegalDefense(GameError):
    kind = ErrorKind.ILLEGAL_DEFENSE


class EmptyDeck(GameError):
    kind = ErrorKind.EMPTY_DECK


class InvalidConfig(GameError, ValueError):
    kind = ErrorKind.INVALID_CONFIG
