"""Core framework components for CRUISE."""

from .state import RoundPhase, StateMachine
from .events import EventBus, Event, EventType

__all__ = ["RoundPhase", "StateMachine", "EventBus", "Event", "EventType"]
