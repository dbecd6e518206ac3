"""
Pytest configuration for tests at the root level.

This module contains pytest fixtures shared by the card, game and server
tests.
"""

import random

import pytest

from penki.events import EventEmitter


@pytest.fixture
def rng():
    """Seeded random source so deals are reproducible."""
    return random.Random(1234)


@pytest.fixture
def events():
    """Fresh emitter to hand to transitions under test."""
    return EventEmitter()
