from __future__ import annotations

from dataclasses import dataclass

from dispa_timeline.actions import describe
from dispa_timeline.player import TickOutcome, TimelinePlayer


@dataclass(frozen=True)
class TimelineTrace:
    name: str
    # Value the rules were matched against
    timer_before: int
    # Value after reset/advance (what the next tick will match)
    timer_after: int
    flags_after: int
    fired: list[str]
    reset: bool


@dataclass(frozen=True)
class TickTrace:
    tick: int
    timelines: list[TimelineTrace]

    @property
    def fired_count(self) -> int:
        return sum(len(t.fired) for t in self.timelines)


def snapshot_tick(tick: int, player: TimelinePlayer, outcomes: list[TickOutcome]) -> TickTrace:
    """
    Create a trace snapshot for the current tick.

    This function does not modify playback behavior.
    """
    traces: list[TimelineTrace] = []
    for outcome in outcomes:
        timeline = player.timeline(outcome.timeline)
        traces.append(
            TimelineTrace(
                name=outcome.timeline,
                timer_before=outcome.timer_before,
                timer_after=outcome.timer_after,
                flags_after=timeline.flags,
                fired=[describe(a) for a in outcome.fired],
                reset=outcome.reset,
            )
        )
    return TickTrace(tick=tick, timelines=traces)


def run_ticks_with_trace(player: TimelinePlayer, num_ticks: int) -> list[TickTrace]:
    """
    Run the player for num_ticks game ticks, returning a per-tick trace log.

    Notes:
    - Uses TimelinePlayer.step() for behavior (same rules).
    - Adds observability only (no rule changes).
    """
    log: list[TickTrace] = []
    for _ in range(num_ticks):
        outcomes = player.step()
        log.append(snapshot_tick(player.game_tick, player, outcomes))
    return log


def render_trace(log: list[TickTrace], *, only_active: bool = False) -> str:
    out: list[str] = []
    for entry in log:
        if only_active and entry.fired_count == 0 and not any(t.reset for t in entry.timelines):
            continue
        out.append(f"Tick {entry.tick:4d}")
        for t in entry.timelines:
            marker = " (reset)" if t.reset else ""
            out.append(f"  {t.name}: timer {t.timer_before} -> {t.timer_after}{marker}")
            for label in t.fired:
                out.append(f"    - {label}")
    return "\n".join(out) + ("\n" if out else "")
