from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    """What a timeline did during one game tick."""

    TICK_START = "TICK_START"
    RULE_FIRED = "RULE_FIRED"
    TIMELINE_RESET = "TIMELINE_RESET"
    TIMER_ADVANCED = "TIMER_ADVANCED"


@dataclass(frozen=True, slots=True)
class Event:
    """
    One recorded fact of playback.

    `tick` is the player's game tick. `seq` counts within (tick, timeline),
    so every timeline's events read 1, 2, 3... on each tick no matter how
    many other timelines ran before it. Player-wide events have no timeline.
    """

    tick: int
    timeline: str | None
    seq: int
    type: EventType
    data: dict[str, Any] = field(default_factory=dict)


class EventSink(ABC):
    """Destination for playback events. Playback works without one."""

    @abstractmethod
    def record(self, event: Event) -> None: ...


@dataclass
class InMemoryEventSink(EventSink):
    events: list[Event] = field(default_factory=list)

    def record(self, event: Event) -> None:
        self.events.append(event)

    def at_tick(self, tick: int) -> list[Event]:
        return [e for e in self.events if e.tick == tick]

    def for_timeline(self, name: str) -> list[Event]:
        return [e for e in self.events if e.timeline == name]


@dataclass
class EventStamper:
    """Numbers the events of one timeline (or of the player) within one game tick."""

    sink: EventSink | None
    tick: int
    timeline: str | None = None
    seq: int = 0

    def emit(self, event_type: EventType, **data: Any) -> None:
        if self.sink is None:
            return
        self.seq += 1
        self.sink.record(Event(self.tick, self.timeline, self.seq, event_type, dict(data)))
