"""
Event emitter for game transitions.

Every `PenkiGame` owns one emitter, so listeners registered for one room
never see another room's events. Handlers run synchronously after a
transition has committed; a handler that raises is logged and skipped.
"""

from collections import defaultdict
from enum import Enum
from typing import Any, Callable, Dict, List, Tuple, Union
import logging

logger = logging.getLogger("penki.events")

EventHandler = Callable[[Dict[str, Any]], None]


class GameEventType(Enum):
    """Events emitted by game transitions."""

    GAME_CREATED = "game_created"
    GAME_STARTED = "game_started"
    PLAYER_JOINED = "player_joined"
    PLAYER_LEFT = "player_left"
    FIRST_DRAWER_DETERMINED = "first_drawer_determined"
    TRUMP_REVEALED = "trump_revealed"
    CARD_PLAYED = "card_played"
    CARD_DEFENDED = "card_defended"
    BOTTOM_TAKEN = "bottom_taken"
    ROUND_CLOSED = "round_closed"
    RESERVE_REVEALED = "reserve_revealed"
    PLAYER_OUT = "player_out"
    GAME_OVER = "game_over"


def _event_name(event_type: Union[str, GameEventType]) -> str:
    return event_type.name if isinstance(event_type, GameEventType) else event_type


class EventEmitter:
    """
    Publish/subscribe hub for one game.

    `on` listeners get the event data; `on_any` listeners get an
    ``(event_name, data)`` tuple. Both return a function that unsubscribes.
    """

    def __init__(self):
        self._listeners: Dict[str, List[EventHandler]] = defaultdict(list)
        self._any_listeners: List[Callable[[Tuple[str, Dict[str, Any]]], None]] = []

    def on(
        self, event_type: Union[str, GameEventType], callback: EventHandler
    ) -> Callable[[], None]:
        """Subscribe ``callback`` to one event type."""
        name = _event_name(event_type)
        self._listeners[name].append(callback)

        def unsubscribe():
            if callback in self._listeners[name]:
                self._listeners[name].remove(callback)

        return unsubscribe

    def on_any(self, callback: Callable) -> Callable[[], None]:
        """Subscribe ``callback`` to every event of the game."""
        self._any_listeners.append(callback)

        def unsubscribe():
            if callback in self._any_listeners:
                self._any_listeners.remove(callback)

        return unsubscribe

    def emit(self, event_type: Union[str, GameEventType], data: Dict[str, Any]) -> None:
        name = _event_name(event_type)
        calls = [(callback, data) for callback in self._listeners.get(name, [])]
        calls.extend((callback, (name, data)) for callback in self._any_listeners)

        for callback, payload in calls:
            try:
                callback(payload)
            except Exception:
                logger.exception("Error in event handler for %s", name)
