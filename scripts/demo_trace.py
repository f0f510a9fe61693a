from __future__ import annotations

from pathlib import Path

from dispa_timeline.actions import EntityKind
from dispa_timeline.boundary import InMemoryGameEngine
from dispa_timeline.compiler import compile_file
from dispa_timeline.player import TimelinePlayer
from dispa_timeline.trace import run_ticks_with_trace

SAMPLES = Path(__file__).resolve().parents[1] / "samples"


def main() -> None:
    engine = InMemoryGameEngine()
    engine.add_entity(EntityKind.BLOCK_DISPLAY, "dtest", "dtest-a")
    engine.add_entity(EntityKind.BLOCK_DISPLAY, "test_obj", "test_obj-root", position=(0.0, 64.0, 0.0))

    player = TimelinePlayer(engine=engine)
    for name in ("dtest.dspa", "test_obj.dspa"):
        compiled = compile_file(SAMPLES / name)
        player.register(compiled.name, compiled.table)

    log = run_ticks_with_trace(player, 130)

    for entry in log:
        if entry.fired_count == 0 and not any(t.reset for t in entry.timelines):
            continue
        print(f"\nTick {entry.tick:3d}")
        for t in entry.timelines:
            # Only show timelines that did something this tick
            if not t.fired and not t.reset:
                continue
            marker = "  reset" if t.reset else ""
            print(f"  {t.name:<20s} timer={t.timer_before:4d} -> {t.timer_after:4d}{marker}")
            for label in t.fired:
                print(f"    {label}")

    print("\nEntities:")
    for e in engine.entities:
        print(
            f"  #{e.id} {e.kind.value:<13s} tags={sorted(e.tags)} "
            f"pos={e.position} translation={e.translation} scale={e.scale}"
        )


if __name__ == "__main__":
    main()
