from __future__ import annotations

from dataclasses import dataclass, field

from dispa_timeline.actions import (
    Action,
    MergeTransform,
    RawCommand,
    SetBlock,
    SetEntityState,
    SummonEntity,
    describe,
)
from dispa_timeline.boundary import GameEngine
from dispa_timeline.events import EventSink, EventStamper, EventType
from dispa_timeline.logging import get_logger
from dispa_timeline.models import RuleTable, Timeline

logger = get_logger("player")

RESET_SENTINEL = -1


@dataclass(frozen=True, slots=True)
class TickOutcome:
    timeline: str
    timer_before: int
    timer_after: int
    fired: tuple[Action, ...]
    reset: bool


def dispatch_action(action: Action, engine: GameEngine) -> None:
    """Hand one action to the engine. Fire-and-forget."""
    if isinstance(action, MergeTransform):
        engine.merge_transform(
            action.target,
            action.channel,
            action.value,
            interpolation_duration=action.interpolation_duration,
            start_interpolation=action.start_interpolation,
        )
    elif isinstance(action, SummonEntity):
        engine.summon(action.kind, action.tags, at=action.at)
    elif isinstance(action, SetEntityState):
        engine.set_entity_state(action.target, action.state, action.payload)
    elif isinstance(action, SetBlock):
        engine.set_block(action.position, action.block_id)
    elif isinstance(action, RawCommand):
        engine.run_command(action.command)
    else:
        raise TypeError(f"unknown action type: {type(action).__name__}")


def tick(
    timeline: Timeline,
    table: RuleTable,
    engine: GameEngine,
    event_sink: EventSink | None = None,
    *,
    game_tick: int = 0,
) -> TickOutcome:
    """
    Advance one timeline by one tick.

    Rules:
    - Every rule whose offset equals the current timer fires, in registration order.
    - If the timer has reached max_offset (or passed it, e.g. it was fast-forwarded
      from outside), flags is zeroed and the timer is set to the -1 sentinel.
    - The timer is then incremented unconditionally, so a reset lands on 0.

    Nothing here raises for odd timer values; they self-correct at the next reset.
    Events are stamped with `game_tick` and numbered per timeline.
    """
    timer_before = timeline.timer
    events = EventStamper(event_sink, game_tick, timeline.name)

    # 1) dispatch every rule keyed on this timer value
    fired = tuple(table.actions_at(timer_before))
    for action in fired:
        dispatch_action(action, engine)
        events.emit(EventType.RULE_FIRED, timer=timer_before, action=describe(action))

    # 2) loop reset ("matches N.."), tolerant of skipped values
    reset = timeline.timer >= table.max_offset
    if reset:
        timeline.flags = 0
        timeline.timer = RESET_SENTINEL
        logger.debug("timeline %s reset at timer=%d (max_offset=%d)", timeline.name, timer_before, table.max_offset)
        events.emit(EventType.TIMELINE_RESET, timer=timer_before, max_offset=table.max_offset)

    # 3) advance
    timeline.timer += 1
    events.emit(EventType.TIMER_ADVANCED, timer=timeline.timer)

    return TickOutcome(
        timeline=timeline.name,
        timer_before=timer_before,
        timer_after=timeline.timer,
        fired=fired,
        reset=reset,
    )


@dataclass
class TimelinePlayer:
    """
    Owns the per-timeline counters and their static rule tables.

    Timelines are independent: step() advances each registered one once,
    in registration order.
    """

    engine: GameEngine
    event_sink: EventSink | None = None
    _tables: dict[str, RuleTable] = field(default_factory=dict, init=False)
    _timelines: dict[str, Timeline] = field(default_factory=dict, init=False)
    # Game ticks played so far; the first step() is tick 1.
    game_tick: int = field(default=0, init=False)

    def register(self, name: str, table: RuleTable) -> Timeline:
        self._tables[name] = table
        return self.timeline(name)

    def timeline(self, name: str) -> Timeline:
        """Return the named timeline, creating it with zeroed counters on first reference."""
        found = self._timelines.get(name)
        if found is None:
            found = Timeline(name=name)
            self._timelines[name] = found
        return found

    def table(self, name: str) -> RuleTable:
        return self._tables[name]

    @property
    def names(self) -> list[str]:
        return list(self._tables)

    def step(self) -> list[TickOutcome]:
        self.game_tick += 1
        EventStamper(self.event_sink, self.game_tick).emit(EventType.TICK_START, timelines=len(self._tables))

        return [
            tick(self.timeline(name), table, self.engine, self.event_sink, game_tick=self.game_tick)
            for name, table in self._tables.items()
        ]

    def run(self, num_ticks: int) -> list[list[TickOutcome]]:
        return [self.step() for _ in range(int(num_ticks))]
