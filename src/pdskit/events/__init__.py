"""Registered events and their storage."""
from .event import DEFAULT_EPOCH_SECONDS, EpochClock, Event
from .event_storage import EventSelector, EventStorage, InMemoryEventStorage, RelevantEventSequence
from .relevant_events import RelevantEvents

__all__ = [
    "DEFAULT_EPOCH_SECONDS",
    "EpochClock",
    "Event",
    "EventSelector",
    "EventStorage",
    "InMemoryEventStorage",
    "RelevantEventSequence",
    "RelevantEvents",
]
