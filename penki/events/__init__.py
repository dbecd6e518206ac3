"""
Event system for the penki engine.

Each game emits typed events on its own `EventEmitter`; the transport layer
and tests subscribe to them.
"""

from penki.events.emitter import EventEmitter, GameEventType

__all__ = ["EventEmitter", "GameEventType"]
