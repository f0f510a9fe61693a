from pathlib import Path

import pytest

from dispa_timeline.actions import EntityKind
from dispa_timeline.parser import (
    Block,
    CompileErrorGroup,
    Coordinate,
    Item,
    ObjectName,
    PlaceBlock,
    Raw,
    Rotate,
    Scale,
    Spawn,
    Teleport,
    Text,
    Translate,
    Wait,
    parse_file,
    parse_source,
)
from dispa_timeline.stream_io import InputFormatError


def test_keywords_and_aliases():
    source = "\n".join(
        [
            "anim dtest:atest",
            "MOVE a 1 0 0 20",
            "delay 5",
            "turn a x 90 4",
            "size a 2 2 2 3",
            "tp a 0 1 0",
        ]
    )

    program = parse_source(source)

    assert program.statements == [
        ObjectName("dtest", "atest"),
        Translate("a", (Coordinate(1.0), Coordinate(0.0), Coordinate(0.0)), 20),
        Wait(5),
        Rotate("a", (1.0, 0.0, 0.0), 90.0, 4),
        Scale("a", (Coordinate(2.0), Coordinate(2.0), Coordinate(2.0)), 3),
        Teleport("a", (0.0, 1.0, 0.0)),
    ]


def test_comments_blank_lines_and_quoted_hashes():
    source = '# header\n\n  wait 3   # trailing\ntext t "a # b" # gone\n'

    program = parse_source(source)

    assert program.statements == [Wait(3), Text("t", '"a # b"')]


def test_relative_coordinates():
    program = parse_source("m a ~ ~-1.5 2 0")
    assert program.statements[0].coords == (
        Coordinate(0.0, relative=True),
        Coordinate(-1.5, relative=True),
        Coordinate(2.0),
    )


def test_bracketed_axis_survives_spaces():
    program = parse_source("rotate a [0, 1, 1] 30 2")
    assert program.statements == [Rotate("a", (0.0, 1.0, 1.0), 30.0, 2)]


def test_display_statements():
    source = "\n".join(
        [
            "spawn root minecraft:item_display gem",
            "item gem minecraft:diamond",
            "block blk minecraft:oak_stairs[facing=east, half=top]",
            "block blk2 minecraft:stone",
            "setblock 1 -2 3 minecraft:glass",
        ]
    )

    program = parse_source(source)

    assert program.statements == [
        Spawn("root", EntityKind.ITEM_DISPLAY, "gem"),
        Item("gem", "minecraft:diamond"),
        Block("blk", "minecraft:oak_stairs", (("facing", "east"), ("half", "top"))),
        Block("blk2", "minecraft:stone"),
        PlaceBlock((1, -2, 3), "minecraft:glass"),
    ]


def test_raw_commands_keep_hashes_and_mark_undelayed_lines():
    program = parse_source("/say #1 done\n//particle minecraft:end_rod ~ ~1 ~")
    assert program.statements == [
        Raw("say #1 done", delayed=True),
        Raw("particle minecraft:end_rod ~ ~1 ~", delayed=False),
    ]


def test_every_error_in_a_file_is_reported_with_position():
    source = "\n".join(
        [
            "object x:y",
            "bogus a",
            "translate a 1 x 0 5",
            "wait -3",
            "spawn root armor_stand new",
        ]
    )

    with pytest.raises(CompileErrorGroup) as info:
        parse_source(source, path="broken.dspa")

    errors = info.value.errors
    assert [(e.line, e.column) for e in errors] == [(2, 1), (3, 15), (4, 6), (5, 12)]
    assert errors[0].message == "Keyword 'bogus' is invalid."
    assert "'x' is not a valid coordinate." in str(errors[1])
    assert "File: broken.dspa" in str(errors[1])
    assert "armor_stand" in errors[3].message


def test_argument_count_is_checked():
    with pytest.raises(CompileErrorGroup) as info:
        parse_source("translate a 1 0 0")
    assert "expects 5 arguments, found 4" in info.value.errors[0].message


def test_object_name_rules():
    with pytest.raises(CompileErrorGroup) as info:
        parse_source("object nocolon\nobject bad name:x\nobject ok:a\nobject ok:b")
    messages = [e.message for e in info.value.errors]
    assert "no animation name" in messages[0]
    assert "expects 1 arguments" in messages[1]
    assert "already declared on line 3" in messages[2]


def test_unclosed_block_state():
    with pytest.raises(CompileErrorGroup) as info:
        parse_source("block b minecraft:stairs[facing=east")
    assert "closing ']'" in info.value.errors[0].message


def test_parse_file_missing_path(tmp_path: Path):
    with pytest.raises(InputFormatError):
        parse_file(tmp_path / "nope.dspa")


def test_numbers_must_fit_in_a_float32():
    source = "\n".join(
        [
            "m e 1e39 0 0 1",
            "r e z inf 1",
            "tp e nan 0 0",
            "turn e [1e40, 0, 0] 90 1",
            "size e ~3.5e38 1 1 1",
        ]
    )

    with pytest.raises(CompileErrorGroup) as info:
        parse_source(source)

    errors = info.value.errors
    assert [(e.line, e.column) for e in errors] == [(1, 5), (2, 7), (3, 6), (4, 8), (5, 8)]
    assert "'1e39' is out of range for a float32 value." == errors[0].message
    assert "'inf' is not a valid number." == errors[1].message
    assert "'nan' is not a valid number." == errors[2].message
    assert "out of range" in errors[3].message
    assert "out of range" in errors[4].message


def test_largest_float32_is_accepted():
    program = parse_source("m e 3.4028234e38 -1.5e-3 .5 1")
    (statement,) = program.statements
    assert [c.value for c in statement.coords] == [3.4028234e38, -1.5e-3, 0.5]


@pytest.mark.parametrize("line", ["wait +5", "wait 1_000", "m e 0 0 0 +2", "setblock 0 +64 0 minecraft:stone", "m e 1_0 0 0 1"])
def test_only_plain_decimal_numbers_are_accepted(line):
    with pytest.raises(CompileErrorGroup) as info:
        parse_source(line)
    assert "is not a valid" in info.value.errors[0].message


def test_setblock_accepts_negative_coordinates():
    (statement,) = parse_source("setblock -3 -60 12 minecraft:stone").statements
    assert statement == PlaceBlock((-3, -60, 12), "minecraft:stone")
