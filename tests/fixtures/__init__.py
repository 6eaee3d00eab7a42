"""Test fixtures and mock data generators."""

from .mock_events import (
    MARKERS,
    create_ladder_events,
    create_mixture_events,
    create_random_events,
)

__all__ = [
    "MARKERS",
    "create_ladder_events",
    "create_mixture_events",
    "create_random_events",
]
