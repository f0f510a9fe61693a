from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence

from dispa_timeline.actions import Action


@dataclass
class Timeline:
    name: str
    # -1 is the reset sentinel; it becomes 0 on the same tick's advance.
    timer: int = 0
    # Secondary register, only ever zeroed alongside a timer reset.
    flags: int = 0


@dataclass(frozen=True, slots=True)
class Rule:
    tick_offset: int
    action: Action

    def __post_init__(self) -> None:
        if not isinstance(self.tick_offset, int) or self.tick_offset < 0:
            raise ValueError(f"tick_offset must be an int >= 0 (got {self.tick_offset!r})")


@dataclass(frozen=True)
class RuleTable:
    """
    Static rules of one timeline, indexed by tick offset.

    Rules sharing an offset keep their registration order. `end_offset`
    stretches the cycle past the last rule (a trailing wait); it never
    shortens it.
    """

    rules: tuple[Rule, ...] = ()
    end_offset: int | None = None
    _by_offset: dict[int, tuple[Action, ...]] = field(init=False, repr=False, compare=False)
    _max_offset: int = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        rules = tuple(self.rules)
        if self.end_offset is not None and self.end_offset < 0:
            raise ValueError("end_offset must be >= 0")

        by_offset: dict[int, list[Action]] = {}
        for r in rules:
            by_offset.setdefault(r.tick_offset, []).append(r.action)

        max_offset = max(by_offset, default=0)
        if self.end_offset is not None:
            max_offset = max(max_offset, self.end_offset)

        object.__setattr__(self, "rules", rules)
        object.__setattr__(self, "_by_offset", {k: tuple(v) for k, v in by_offset.items()})
        object.__setattr__(self, "_max_offset", max_offset)

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[int, Action]], end_offset: int | None = None) -> RuleTable:
        return cls(rules=tuple(Rule(o, a) for o, a in pairs), end_offset=end_offset)

    @property
    def max_offset(self) -> int:
        return self._max_offset

    @property
    def offsets(self) -> list[int]:
        return sorted(self._by_offset)

    def actions_at(self, tick_offset: int) -> Sequence[Action]:
        return self._by_offset.get(tick_offset, ())

    def __len__(self) -> int:
        return len(self.rules)
