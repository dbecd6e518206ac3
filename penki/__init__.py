"""
Penki: an authoritative rules engine for the "penki" variant of Fool.

The package is split into the card model (``penki.common``), the game core
(``penki.game``), the event bus (``penki.events``) and a thin room/transport
layer (``penki.server``).
"""

__version__ = "0.1.0"
