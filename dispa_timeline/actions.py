from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from dispa_timeline.rotation import f32_tuple, is_f32_finite


class Channel(str, Enum):
    """Transformation field written by a MergeTransform."""

    TRANSLATION = "translation"
    LEFT_ROTATION = "left_rotation"
    SCALE = "scale"

    @property
    def arity(self) -> int:
        return 4 if self is Channel.LEFT_ROTATION else 3


class EntityKind(str, Enum):
    BLOCK_DISPLAY = "block_display"
    ITEM_DISPLAY = "item_display"
    TEXT_DISPLAY = "text_display"


class StateKind(str, Enum):
    """
    Which opaque write a SetEntityState carries.

    Payload shapes:
      BLOCK:    {"id": str, "properties": {name: value}}
      ITEM:     {"item": str}
      TEXT:     {"text": str}
      POSITION: {"offset": [dx, dy, dz]}
    """

    BLOCK = "block"
    ITEM = "item"
    TEXT = "text"
    POSITION = "position"


@dataclass(frozen=True, slots=True)
class MergeTransform:
    target: str
    channel: Channel
    value: tuple[float, ...]
    interpolation_duration: int = 0
    start_interpolation: int = 0

    def __post_init__(self) -> None:
        channel = Channel(self.channel)
        if not all(is_f32_finite(v) for v in self.value):
            raise ValueError(f"{channel.value} components must be finite float32 values")
        values = f32_tuple(self.value)
        if len(values) != channel.arity:
            raise ValueError(
                f"{channel.value} needs {channel.arity} components (got {len(values)})"
            )
        if self.interpolation_duration < 0 or self.start_interpolation < 0:
            raise ValueError("interpolation ticks must be >= 0")
        object.__setattr__(self, "channel", channel)
        object.__setattr__(self, "value", values)


@dataclass(frozen=True, slots=True)
class SummonEntity:
    kind: EntityKind
    tags: frozenset[str]
    # Tag of the entity whose position the new entity is summoned at.
    at: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", EntityKind(self.kind))
        object.__setattr__(self, "tags", frozenset(self.tags))


@dataclass(frozen=True, slots=True)
class SetEntityState:
    target: str
    state: StateKind
    payload: dict[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "state", StateKind(self.state))


@dataclass(frozen=True, slots=True)
class SetBlock:
    position: tuple[int, int, int]
    block_id: str

    def __post_init__(self) -> None:
        x, y, z = (int(c) for c in self.position)
        object.__setattr__(self, "position", (x, y, z))


@dataclass(frozen=True, slots=True)
class RawCommand:
    command: str


Action = Union[MergeTransform, SummonEntity, SetEntityState, SetBlock, RawCommand]


def describe(action: Action) -> str:
    """Short one-line label used by traces and logs."""
    if isinstance(action, MergeTransform):
        return f"merge {action.channel.value} @{action.target}"
    if isinstance(action, SummonEntity):
        return f"summon {action.kind.value} [{','.join(sorted(action.tags))}]"
    if isinstance(action, SetEntityState):
        return f"state {action.state.value} @{action.target}"
    if isinstance(action, SetBlock):
        x, y, z = action.position
        return f"setblock {x} {y} {z} {action.block_id}"
    if isinstance(action, RawCommand):
        return f"raw {action.command}"
    raise TypeError(f"unknown action type: {type(action).__name__}")
