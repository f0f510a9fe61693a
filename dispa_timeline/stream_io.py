from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from dispa_timeline.actions import (
    Action,
    Channel,
    EntityKind,
    MergeTransform,
    RawCommand,
    SetBlock,
    SetEntityState,
    StateKind,
    SummonEntity,
)
from dispa_timeline.events import Event
from dispa_timeline.models import Rule, RuleTable
from dispa_timeline.rotation import is_f32_finite


class InputFormatError(ValueError):
    """Raised when an input file (rule table, config, source) fails validation."""


@dataclass(frozen=True)
class TimelineDocument:
    name: str
    table: RuleTable
    # Raw commands that run every tick; only the command script emitter uses them.
    every_tick: tuple[str, ...] = ()


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise InputFormatError(f"file not found: {path}")
    if not path.is_file():
        raise InputFormatError(f"not a file: {path}")

    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise InputFormatError(
            f"invalid JSON: {e.msg} (line {e.lineno}, col {e.colno})"
        ) from e


def load_timeline(path: Path) -> TimelineDocument:
    """Load and validate a baked timeline rule table.

    Format:
      {
        "timeline": "dtest-atest",
        "end_offset": 100,            (optional)
        "every_tick": ["..."],        (optional)
        "rules": [
          {"offset": 0, "action": {"type": "merge_transform", "target": "dtest-a",
                                   "channel": "translation", "value": [1, 0, 0],
                                   "interpolation_duration": 20}},
          ...
        ]
      }

    Rules keep file order; rules sharing an offset fire in that order.
    """
    return parse_timeline(_read_json(path))


def parse_timeline(raw: Any) -> TimelineDocument:
    if not isinstance(raw, dict):
        raise InputFormatError("root must be a JSON object")

    name = raw.get("timeline")
    if not isinstance(name, str) or not name.strip():
        raise InputFormatError("timeline must be a non-empty string")

    end_offset = raw.get("end_offset", None)
    if end_offset is not None and (not isinstance(end_offset, int) or end_offset < 0):
        raise InputFormatError("end_offset must be an int >= 0 when provided")

    every_tick = raw.get("every_tick", [])
    if not isinstance(every_tick, list) or not all(isinstance(c, str) and c.strip() for c in every_tick):
        raise InputFormatError("every_tick must be an array of non-empty strings")

    rules_raw = raw.get("rules")
    if not isinstance(rules_raw, list):
        raise InputFormatError("rules must be an array")

    rules: list[Rule] = []
    for i, item in enumerate(rules_raw):
        if not isinstance(item, dict):
            raise InputFormatError(f"rules[{i}] must be an object")
        offset = item.get("offset")
        if not isinstance(offset, int) or isinstance(offset, bool) or offset < 0:
            raise InputFormatError(f"rules[{i}].offset must be an int >= 0")
        action_raw = item.get("action")
        if not isinstance(action_raw, dict):
            raise InputFormatError(f"rules[{i}].action must be an object")
        rules.append(Rule(offset, _parse_action(action_raw, label=f"rules[{i}].action")))

    return TimelineDocument(
        name=str(name),
        table=RuleTable(rules=tuple(rules), end_offset=end_offset),
        every_tick=tuple(every_tick),
    )


def _require_str(raw: dict[str, Any], key: str, *, label: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not value.strip():
        raise InputFormatError(f"{label}.{key} must be a non-empty string")
    return value


def _require_numbers(raw: dict[str, Any], key: str, *, label: str) -> list[float]:
    value = raw.get(key)
    if not isinstance(value, list) or not all(
        isinstance(v, (int, float)) and not isinstance(v, bool) for v in value
    ):
        raise InputFormatError(f"{label}.{key} must be an array of numbers")
    if not all(is_f32_finite(v) for v in value):
        raise InputFormatError(f"{label}.{key} must hold finite float32 values")
    return [float(v) for v in value]


def _parse_action(raw: dict[str, Any], *, label: str) -> Action:
    kind = raw.get("type")

    if kind == "merge_transform":
        target = _require_str(raw, "target", label=label)
        try:
            channel = Channel(raw.get("channel"))
        except ValueError as e:
            raise InputFormatError(
                f"{label}.channel must be one of: {', '.join(c.value for c in Channel)}"
            ) from e
        value = _require_numbers(raw, "value", label=label)
        duration = raw.get("interpolation_duration", 0)
        start = raw.get("start_interpolation", 0)
        for key, v in (("interpolation_duration", duration), ("start_interpolation", start)):
            if not isinstance(v, int) or v < 0:
                raise InputFormatError(f"{label}.{key} must be an int >= 0")
        try:
            return MergeTransform(
                target=target,
                channel=channel,
                value=tuple(value),
                interpolation_duration=duration,
                start_interpolation=start,
            )
        except ValueError as e:
            raise InputFormatError(f"{label}: {e}") from e

    if kind == "summon":
        try:
            entity_kind = EntityKind(raw.get("kind"))
        except ValueError as e:
            raise InputFormatError(
                f"{label}.kind must be one of: {', '.join(k.value for k in EntityKind)}"
            ) from e
        tags = raw.get("tags")
        if not isinstance(tags, list) or not tags or not all(isinstance(t, str) and t for t in tags):
            raise InputFormatError(f"{label}.tags must be a non-empty array of strings")
        at = raw.get("at", None)
        if at is not None and (not isinstance(at, str) or not at.strip()):
            raise InputFormatError(f"{label}.at must be a non-empty string when provided")
        return SummonEntity(kind=entity_kind, tags=frozenset(tags), at=at)

    if kind == "set_entity_state":
        target = _require_str(raw, "target", label=label)
        try:
            state = StateKind(raw.get("state"))
        except ValueError as e:
            raise InputFormatError(
                f"{label}.state must be one of: {', '.join(s.value for s in StateKind)}"
            ) from e
        payload = raw.get("payload", {})
        if not isinstance(payload, dict):
            raise InputFormatError(f"{label}.payload must be an object")
        return SetEntityState(target=target, state=state, payload=payload)

    if kind == "set_block":
        position = raw.get("position")
        if (
            not isinstance(position, list)
            or len(position) != 3
            or not all(isinstance(c, int) and not isinstance(c, bool) for c in position)
        ):
            raise InputFormatError(f"{label}.position must be an array of three ints")
        block_id = _require_str(raw, "block_id", label=label)
        return SetBlock(position=(position[0], position[1], position[2]), block_id=block_id)

    if kind == "raw":
        return RawCommand(command=_require_str(raw, "command", label=label))

    raise InputFormatError(f"{label}.type is not a valid action type: {kind!r}")


def dump_action(action: Action) -> dict[str, Any]:
    if isinstance(action, MergeTransform):
        return {
            "type": "merge_transform",
            "target": action.target,
            "channel": action.channel.value,
            "value": list(action.value),
            "interpolation_duration": action.interpolation_duration,
            "start_interpolation": action.start_interpolation,
        }
    if isinstance(action, SummonEntity):
        d: dict[str, Any] = {"type": "summon", "kind": action.kind.value, "tags": sorted(action.tags)}
        if action.at is not None:
            d["at"] = action.at
        return d
    if isinstance(action, SetEntityState):
        return {
            "type": "set_entity_state",
            "target": action.target,
            "state": action.state.value,
            "payload": dict(action.payload),
        }
    if isinstance(action, SetBlock):
        return {"type": "set_block", "position": list(action.position), "block_id": action.block_id}
    if isinstance(action, RawCommand):
        return {"type": "raw", "command": action.command}
    raise TypeError(f"unknown action type: {type(action).__name__}")


def dump_timeline(document: TimelineDocument) -> dict[str, Any]:
    """Return a JSON-serializable rule table (inverse of parse_timeline)."""
    out: dict[str, Any] = {"timeline": document.name}
    if document.table.end_offset is not None:
        out["end_offset"] = document.table.end_offset
    if document.every_tick:
        out["every_tick"] = list(document.every_tick)
    out["rules"] = [
        {"offset": r.tick_offset, "action": dump_action(r.action)} for r in document.table.rules
    ]
    return out


def dump_event_stream(events: list[Event]) -> list[dict[str, Any]]:
    """Return a JSON-serializable event stream, in recording order."""
    raw: list[dict[str, Any]] = []
    for e in events:
        d = asdict(e)
        d["type"] = str(e.type.value)
        raw.append(d)
    return raw
