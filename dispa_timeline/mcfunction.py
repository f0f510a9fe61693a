from __future__ import annotations

import json

from dispa_timeline.actions import (
    Action,
    MergeTransform,
    RawCommand,
    SetBlock,
    SetEntityState,
    StateKind,
    SummonEntity,
)
from dispa_timeline.compiler import CompiledTimeline
from dispa_timeline.rotation import format_f32

DISCLAIMER = (
    "# File generated using DiSPA\n"
    "# Edit the .dspa source and recompile instead of changing this file.\n"
)

TIMER = "timer"
FLAGS = "flags"


def holder(timeline: str) -> str:
    """Fake scoreboard player that carries a timeline's registers."""
    return f"${timeline}"


def _if_timer(timeline: str, offset: int) -> str:
    return f"if score {holder(timeline)} {TIMER} matches {offset}"


def _floats(values: tuple[float, ...]) -> str:
    return ",".join(f"{format_f32(v)}f" for v in values)


def _snbt_single_quoted(text: str) -> str:
    return "'" + text.replace("\\", "\\\\").replace("'", "\\'") + "'"


def _text_component(text: str) -> str:
    # Already a JSON text component? Pass it through untouched.
    if text[:1] in {'"', "{", "["}:
        return text
    return json.dumps(text)


def _state_command(action: SetEntityState) -> str:
    payload = action.payload
    if action.state == StateKind.BLOCK:
        properties = payload.get("properties") or {}
        inner = f'Name:"{payload["id"]}"'
        if properties:
            props = ",".join(f'{k}:"{v}"' for k, v in properties.items())
            inner += f",Properties:{{{props}}}"
        return f"data merge entity @s {{block_state:{{{inner}}}}}"
    if action.state == StateKind.ITEM:
        return f"item replace entity @s contents with {payload['item']}"
    if action.state == StateKind.TEXT:
        return f"data merge entity @s {{text:{_snbt_single_quoted(_text_component(payload['text']))}}}"
    if action.state == StateKind.POSITION:
        dx, dy, dz = (format_f32(v) for v in payload["offset"])
        return f"tp @s ~{dx} ~{dy} ~{dz}"
    raise ValueError(f"unknown entity state kind: {action.state!r}")


def render_action(timeline: str, offset: int, action: Action) -> str:
    """One conditional command line for a rule."""
    condition = _if_timer(timeline, offset)

    if isinstance(action, MergeTransform):
        return (
            f"execute as @e[tag={action.target}] {condition} run "
            f"data merge entity @s {{start_interpolation:{action.start_interpolation},"
            f"interpolation_duration:{action.interpolation_duration},"
            f"transformation:{{{action.channel.value}:[{_floats(action.value)}]}}}}"
        )
    if isinstance(action, SummonEntity):
        anchor = f"at @e[tag={action.at},limit=1] " if action.at else ""
        tags = ",".join(f'"{t}"' for t in sorted(action.tags))
        return f"execute {anchor}{condition} run summon minecraft:{action.kind.value} ~ ~ ~ {{Tags:[{tags}]}}"
    if isinstance(action, SetEntityState):
        return f"execute as @e[tag={action.target}] {condition} run {_state_command(action)}"
    if isinstance(action, SetBlock):
        x, y, z = action.position
        return f"execute {condition} run setblock {x} {y} {z} {action.block_id}"
    if isinstance(action, RawCommand):
        return f"execute {condition} run {action.command}"
    raise TypeError(f"unknown action type: {type(action).__name__}")


def render_reset(timeline: str, max_offset: int) -> list[str]:
    guard = f"execute if score {holder(timeline)} {TIMER} matches {max_offset}.. run"
    return [
        f"{guard} scoreboard players set {holder(timeline)} {FLAGS} 0",
        f"{guard} scoreboard players set {holder(timeline)} {TIMER} -1",
    ]


def render_increment(timeline: str) -> str:
    return f"scoreboard players add {holder(timeline)} {TIMER} 1"


def render_timeline(compiled: CompiledTimeline) -> str:
    """Render the whole command script for one timeline."""
    name = compiled.name
    lines: list[str] = [DISCLAIMER]
    lines.extend(compiled.every_tick)
    lines.extend(render_action(name, r.tick_offset, r.action) for r in compiled.table.rules)
    lines.append("")
    lines.extend(render_reset(name, compiled.table.max_offset))
    lines.append(render_increment(name))
    return "\n".join(lines) + "\n"


def tick_function_line(timeline: str, namespace: str, function_path: str) -> str:
    return f"execute if score {holder(timeline)} {FLAGS} matches 1.. run function {namespace}:{function_path}"
