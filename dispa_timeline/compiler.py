from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from dispa_timeline.actions import (
    Action,
    Channel,
    MergeTransform,
    RawCommand,
    SetBlock,
    SetEntityState,
    StateKind,
    SummonEntity,
)
from dispa_timeline.models import RuleTable
from dispa_timeline.parser import (
    NAME_PATTERN,
    Block,
    Item,
    ObjectName,
    PlaceBlock,
    Program,
    Raw,
    Rotate,
    Scale,
    Spawn,
    Teleport,
    Text,
    Translate,
    Wait,
    parse_file,
)
from dispa_timeline.rotation import IDENTITY, Quat, Vec3, quat_from_axis_angle, quat_multiply
from dispa_timeline.stream_io import InputFormatError, TimelineDocument


@dataclass
class _TrackedEntity:
    translation: Vec3 = (0.0, 0.0, 0.0)
    rotation: Quat = IDENTITY
    scale: Vec3 = (1.0, 1.0, 1.0)


@dataclass(frozen=True)
class CompiledTimeline:
    object_name: str
    animation_name: str
    table: RuleTable
    every_tick: tuple[str, ...] = ()
    source_path: str | None = None

    @property
    def name(self) -> str:
        return timeline_name(self.object_name, self.animation_name)

    def document(self) -> TimelineDocument:
        return TimelineDocument(name=self.name, table=self.table, every_tick=self.every_tick)


def timeline_name(object_name: str, animation_name: str) -> str:
    return f"{object_name}-{animation_name}"


def entity_tag(object_name: str, entity: str) -> str:
    return f"{object_name}-{entity}"


@dataclass
class _Baker:
    object_name: str
    path: str = "<string>"
    delay: int = 0
    rules: list[tuple[int, Action]] = field(default_factory=list)
    every_tick: list[str] = field(default_factory=list)
    entities: dict[str, _TrackedEntity] = field(default_factory=dict)

    def tag(self, entity: str) -> str:
        return entity_tag(self.object_name, entity)

    def tracked(self, entity: str) -> _TrackedEntity:
        return self.entities.setdefault(entity, _TrackedEntity())

    def add(self, action: Action) -> None:
        self.rules.append((self.delay, action))

    def merge(self, entity: str, channel: Channel, value: tuple[float, ...], duration: int) -> None:
        try:
            action = MergeTransform(
                target=self.tag(entity),
                channel=channel,
                value=value,
                interpolation_duration=duration,
            )
        except ValueError as e:
            # Relative steps can push a tracked value past the float32 range.
            raise InputFormatError(f"{self.path}: entity '{entity}' at tick {self.delay}: {e}") from None
        self.add(action)

    def bake(self, statement: object) -> None:
        if isinstance(statement, ObjectName):
            return
        if isinstance(statement, Wait):
            self.delay += statement.ticks
            return

        if isinstance(statement, Translate):
            entity = self.tracked(statement.entity)
            x, y, z = (c.resolve(cur) for c, cur in zip(statement.coords, entity.translation))
            entity.translation = (x, y, z)
            self.merge(statement.entity, Channel.TRANSLATION, entity.translation, statement.duration)
        elif isinstance(statement, Rotate):
            entity = self.tracked(statement.entity)
            # Rotations are relative: each one composes onto what the entity already has.
            step = quat_from_axis_angle(statement.axis, statement.angle)
            entity.rotation = quat_multiply(step, entity.rotation)
            self.merge(statement.entity, Channel.LEFT_ROTATION, entity.rotation, statement.duration)
        elif isinstance(statement, Scale):
            entity = self.tracked(statement.entity)
            x, y, z = (c.resolve(cur) for c, cur in zip(statement.coords, entity.scale))
            entity.scale = (x, y, z)
            self.merge(statement.entity, Channel.SCALE, entity.scale, statement.duration)
        elif isinstance(statement, Spawn):
            self.entities[statement.entity] = _TrackedEntity()
            self.add(
                SummonEntity(
                    kind=statement.kind,
                    tags=frozenset({self.object_name, self.tag(statement.entity)}),
                    at=self.tag(statement.source),
                )
            )
        elif isinstance(statement, Item):
            self.add(SetEntityState(self.tag(statement.entity), StateKind.ITEM, {"item": statement.item}))
        elif isinstance(statement, Block):
            self.add(
                SetEntityState(
                    self.tag(statement.entity),
                    StateKind.BLOCK,
                    {"id": statement.block_id, "properties": dict(statement.properties)},
                )
            )
        elif isinstance(statement, Text):
            self.add(SetEntityState(self.tag(statement.entity), StateKind.TEXT, {"text": statement.text}))
        elif isinstance(statement, Teleport):
            self.add(
                SetEntityState(self.tag(statement.entity), StateKind.POSITION, {"offset": list(statement.offset)})
            )
        elif isinstance(statement, PlaceBlock):
            self.add(SetBlock(statement.position, statement.block_id))
        elif isinstance(statement, Raw):
            if statement.delayed:
                self.add(RawCommand(statement.command))
            else:
                self.every_tick.append(statement.command)
        else:
            raise TypeError(f"unknown statement type: {type(statement).__name__}")


def _names(program: Program) -> tuple[str, str]:
    for statement in program.statements:
        if isinstance(statement, ObjectName):
            return statement.object_name, statement.animation_name

    # No object line: fall back to the file name for both parts.
    stem = Path(program.path).stem
    if not NAME_PATTERN.match(stem):
        raise InputFormatError(
            f"{program.path}: no 'object' line and the file name {stem!r} is not a valid name"
        )
    return stem, stem


def compile_program(program: Program) -> CompiledTimeline:
    """
    Bake a parsed program into a static rule table.

    `wait` moves the running offset forward; every other statement becomes a
    rule at the current offset, in source order. A trailing wait stretches
    the cycle past the last rule.
    """
    object_name, animation_name = _names(program)
    baker = _Baker(object_name=object_name, path=program.path)
    for statement in program.statements:
        baker.bake(statement)

    last_rule = max((offset for offset, _ in baker.rules), default=0)
    end_offset = baker.delay if baker.delay > last_rule else None

    return CompiledTimeline(
        object_name=object_name,
        animation_name=animation_name,
        table=RuleTable.from_pairs(baker.rules, end_offset=end_offset),
        every_tick=tuple(baker.every_tick),
        source_path=program.path,
    )


def compile_file(path: Path) -> CompiledTimeline:
    return compile_program(parse_file(path))
