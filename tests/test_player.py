import pytest

from dispa_timeline.actions import Channel, EntityKind, MergeTransform
from dispa_timeline.boundary import InMemoryGameEngine
from dispa_timeline.models import RuleTable, Timeline
from dispa_timeline.player import TimelinePlayer, tick
from dispa_timeline.rotation import f32

ARM = "dtest-a"


def make_dtest_table() -> RuleTable:
    return RuleTable.from_pairs(
        [
            (0, MergeTransform(ARM, Channel.TRANSLATION, (1, 0, 0), interpolation_duration=20)),
            (100, MergeTransform(ARM, Channel.TRANSLATION, (0, 0, 0), interpolation_duration=10)),
            (100, MergeTransform(ARM, Channel.LEFT_ROTATION, (0, 0.70710677, 0, 0.70710677), interpolation_duration=10)),
            (100, MergeTransform(ARM, Channel.SCALE, (2, 2, 2), interpolation_duration=10)),
        ]
    )


def test_max_offset_is_the_last_rule_offset():
    assert make_dtest_table().max_offset == 100


def test_first_tick_merges_translation():
    engine = InMemoryGameEngine()
    timeline = Timeline("dtest-atest")

    outcome = tick(timeline, make_dtest_table(), engine)

    assert [c.name for c in engine.calls] == ["merge_transform"]
    assert engine.calls[0].args["selector"] == ARM
    assert engine.calls[0].args["channel"] == Channel.TRANSLATION
    assert engine.calls[0].args["value"] == (1.0, 0.0, 0.0)
    assert engine.calls[0].args["interpolation_duration"] == 20
    assert timeline.timer == 1
    assert outcome.reset is False


def test_timer_cycles_back_to_zero_after_max_offset_plus_one_ticks():
    engine = InMemoryGameEngine()
    table = make_dtest_table()
    timeline = Timeline("dtest-atest")

    seen = []
    for _ in range(table.max_offset + 1):
        seen.append(timeline.timer)
        tick(timeline, table, engine)

    assert seen == list(range(101))
    assert timeline.timer == 0


def test_no_dispatch_on_ticks_without_rules():
    engine = InMemoryGameEngine()
    timeline = Timeline("dtest-atest", timer=1)

    for _ in range(99):
        outcome = tick(timeline, make_dtest_table(), engine)
        assert outcome.fired == ()

    assert engine.calls == []
    assert timeline.timer == 100


def test_same_offset_rules_fire_in_registration_order():
    engine = InMemoryGameEngine()
    timeline = Timeline("dtest-atest", timer=100)

    tick(timeline, make_dtest_table(), engine)

    assert [c.args["channel"] for c in engine.calls] == [
        Channel.TRANSLATION,
        Channel.LEFT_ROTATION,
        Channel.SCALE,
    ]


def test_reset_at_max_offset_zeroes_flags_and_lands_on_zero():
    engine = InMemoryGameEngine()
    timeline = Timeline("dtest-atest", timer=100, flags=1)

    outcome = tick(timeline, make_dtest_table(), engine)

    assert outcome.reset is True
    assert outcome.timer_before == 100
    assert len(outcome.fired) == 3
    assert timeline.flags == 0
    assert timeline.timer == 0


@pytest.mark.parametrize("skipped_to", [101, 150, 10_000])
def test_timer_fast_forwarded_past_the_end_resets_on_next_tick(skipped_to):
    engine = InMemoryGameEngine()
    timeline = Timeline("dtest-atest", timer=skipped_to, flags=7)

    outcome = tick(timeline, make_dtest_table(), engine)

    assert outcome.reset is True
    assert outcome.fired == ()
    assert engine.calls == []
    assert timeline.timer == 0
    assert timeline.flags == 0


def test_sentinel_value_advances_to_zero_without_dispatch():
    engine = InMemoryGameEngine()
    timeline = Timeline("dtest-atest", timer=-1)

    outcome = tick(timeline, make_dtest_table(), engine)

    assert outcome.fired == ()
    assert outcome.reset is False
    assert timeline.timer == 0


def test_merge_keeps_unnamed_fields_on_matching_entities():
    engine = InMemoryGameEngine()
    arm = engine.add_entity(EntityKind.BLOCK_DISPLAY, ARM)
    other = engine.add_entity(EntityKind.BLOCK_DISPLAY, "dtest-b")
    table = make_dtest_table()
    timeline = Timeline("dtest-atest")

    tick(timeline, table, engine)
    assert arm.translation == (1.0, 0.0, 0.0)
    assert arm.scale == (1.0, 1.0, 1.0)

    timeline.timer = 100
    tick(timeline, table, engine)

    assert arm.translation == (0.0, 0.0, 0.0)
    assert arm.left_rotation == (0.0, f32(0.70710677), 0.0, f32(0.70710677))
    assert arm.scale == (2.0, 2.0, 2.0)
    assert arm.interpolation_duration == 10
    # untouched entity keeps its defaults
    assert other.translation == (0.0, 0.0, 0.0)


def test_empty_table_holds_timer_at_zero():
    engine = InMemoryGameEngine()
    timeline = Timeline("idle")

    for _ in range(5):
        outcome = tick(timeline, RuleTable(), engine)
        assert outcome.reset is True

    assert timeline.timer == 0
    assert engine.calls == []


def test_player_creates_timelines_on_first_reference():
    player = TimelinePlayer(engine=InMemoryGameEngine())

    timeline = player.timeline("never-registered")

    assert timeline.timer == 0
    assert timeline.flags == 0
    assert player.timeline("never-registered") is timeline
    assert player.names == []


def test_player_advances_timelines_independently():
    engine = InMemoryGameEngine()
    player = TimelinePlayer(engine=engine)
    long = player.register("dtest-atest", make_dtest_table())
    short = player.register(
        "blink-on",
        RuleTable.from_pairs([(2, MergeTransform("blink-x", Channel.SCALE, (0, 0, 0)))]),
    )
    long.timer = 50

    player.run(4)

    assert long.timer == 54
    # timer before each tick: 0, 1, 2 (fires and resets), 0
    assert short.timer == 1
    assert [c.args["selector"] for c in engine.calls] == ["blink-x"]
