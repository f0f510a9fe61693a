from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from dispa_timeline.actions import Channel, EntityKind, StateKind
from dispa_timeline.rotation import IDENTITY, Vec3


class GameEngine(ABC):
    """
    The narrow engine surface the player writes to.

    Every call is fire-and-forget: the player never inspects a result, and an
    engine-side miss (no entity matches the selector) is not an error.
    """

    @abstractmethod
    def merge_transform(
        self,
        selector: str,
        channel: Channel,
        value: tuple[float, ...],
        *,
        interpolation_duration: int = 0,
        start_interpolation: int = 0,
    ) -> None: ...

    @abstractmethod
    def summon(self, kind: EntityKind, tags: frozenset[str], at: str | None = None) -> None: ...

    @abstractmethod
    def set_entity_state(self, selector: str, state: StateKind, payload: dict[str, Any]) -> None: ...

    @abstractmethod
    def set_block(self, position: tuple[int, int, int], block_id: str) -> None: ...

    @abstractmethod
    def run_command(self, command: str) -> None: ...


@dataclass
class DisplayEntity:
    id: int
    kind: EntityKind
    tags: set[str]
    position: Vec3 = (0.0, 0.0, 0.0)
    translation: tuple[float, ...] = (0.0, 0.0, 0.0)
    left_rotation: tuple[float, ...] = IDENTITY
    scale: tuple[float, ...] = (1.0, 1.0, 1.0)
    interpolation_duration: int = 0
    start_interpolation: int = 0
    state: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class EngineCall:
    name: str
    args: dict[str, Any]


@dataclass
class InMemoryGameEngine(GameEngine):
    """
    Minimal engine for tests/demos.

    Keeps display entities with tags and a transform, applies merges to every
    entity matching a tag, and records each call in order.
    """

    entities: list[DisplayEntity] = field(default_factory=list)
    calls: list[EngineCall] = field(default_factory=list)
    blocks: dict[tuple[int, int, int], str] = field(default_factory=dict)
    commands: list[str] = field(default_factory=list)
    _next_id: int = field(default=1, init=False)

    def add_entity(self, kind: EntityKind, *tags: str, position: Vec3 = (0.0, 0.0, 0.0)) -> DisplayEntity:
        """Place an entity that exists before any timeline runs."""
        entity = DisplayEntity(id=self._next_id, kind=EntityKind(kind), tags=set(tags), position=position)
        self._next_id += 1
        self.entities.append(entity)
        return entity

    def select(self, tag: str) -> list[DisplayEntity]:
        return [e for e in self.entities if tag in e.tags]

    def calls_named(self, name: str) -> list[EngineCall]:
        return [c for c in self.calls if c.name == name]

    def merge_transform(
        self,
        selector: str,
        channel: Channel,
        value: tuple[float, ...],
        *,
        interpolation_duration: int = 0,
        start_interpolation: int = 0,
    ) -> None:
        self.calls.append(
            EngineCall(
                "merge_transform",
                {
                    "selector": selector,
                    "channel": channel,
                    "value": tuple(value),
                    "interpolation_duration": interpolation_duration,
                    "start_interpolation": start_interpolation,
                },
            )
        )
        for e in self.select(selector):
            # Only the named channel changes; the rest keeps its prior value.
            setattr(e, channel.value, tuple(value))
            e.interpolation_duration = interpolation_duration
            e.start_interpolation = start_interpolation

    def summon(self, kind: EntityKind, tags: frozenset[str], at: str | None = None) -> None:
        self.calls.append(EngineCall("summon", {"kind": kind, "tags": frozenset(tags), "at": at}))
        position: Vec3 = (0.0, 0.0, 0.0)
        if at is not None:
            anchors = self.select(at)
            if anchors:
                position = anchors[0].position
        self.add_entity(kind, *sorted(tags), position=position)

    def set_entity_state(self, selector: str, state: StateKind, payload: dict[str, Any]) -> None:
        self.calls.append(
            EngineCall("set_entity_state", {"selector": selector, "state": state, "payload": dict(payload)})
        )
        for e in self.select(selector):
            if state == StateKind.POSITION:
                dx, dy, dz = payload["offset"]
                x, y, z = e.position
                e.position = (x + dx, y + dy, z + dz)
            else:
                e.state[state.value] = dict(payload)

    def set_block(self, position: tuple[int, int, int], block_id: str) -> None:
        self.calls.append(EngineCall("set_block", {"position": tuple(position), "block_id": block_id}))
        self.blocks[tuple(position)] = block_id

    def run_command(self, command: str) -> None:
        self.calls.append(EngineCall("run_command", {"command": command}))
        self.commands.append(command)
