from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from dispa_timeline.actions import EntityKind
from dispa_timeline.rotation import AXES, Vec3, is_f32_finite
from dispa_timeline.stream_io import InputFormatError

NAME_PATTERN = re.compile(r"^[A-Za-z0-9_\-]+$")
TOKEN_PATTERN = re.compile(r"\S+")
INT_PATTERN = re.compile(r"^-?\d+$")
NUMBER_PATTERN = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
RAW_PREFIX = "/"
COMMENT = "#"

KEYWORDS: dict[str, str] = {
    "object": "object",
    "anim": "object",
    "wait": "wait",
    "delay": "wait",
    "translate": "translate",
    "move": "translate",
    "m": "translate",
    "rotate": "rotate",
    "turn": "rotate",
    "r": "rotate",
    "scale": "scale",
    "size": "scale",
    "s": "scale",
    "spawn": "spawn",
    "item": "item",
    "block": "block",
    "text": "text",
    "teleport": "teleport",
    "tp": "teleport",
    "setblock": "setblock",
}


class CompileError(InputFormatError):
    """A single malformed line of a .dspa source file."""

    def __init__(self, path: str, line: int, column: int, message: str) -> None:
        self.path = path
        self.line = line
        self.column = column
        self.message = message
        super().__init__(str(self))

    def __str__(self) -> str:
        return (
            "Compilation Error:\n"
            f"  File: {self.path}\n"
            f"  Line: {self.line}, Column: {self.column}\n"
            f"  Error: {self.message}"
        )


class CompileErrorGroup(InputFormatError):
    """Every CompileError found in one run, reported together."""

    def __init__(self, errors: list[CompileError]) -> None:
        self.errors = list(errors)
        super().__init__(str(self))

    def __str__(self) -> str:
        return "\n".join(f"{i}: {e}" for i, e in enumerate(self.errors))


# ----------------------------
# Statements
# ----------------------------


@dataclass(frozen=True, slots=True)
class Coordinate:
    value: float
    # "~" prefix: offset from the entity's tracked value
    relative: bool = False

    def resolve(self, current: float) -> float:
        return current + self.value if self.relative else self.value


@dataclass(frozen=True, slots=True)
class ObjectName:
    object_name: str
    animation_name: str


@dataclass(frozen=True, slots=True)
class Wait:
    ticks: int


@dataclass(frozen=True, slots=True)
class Translate:
    entity: str
    coords: tuple[Coordinate, Coordinate, Coordinate]
    duration: int


@dataclass(frozen=True, slots=True)
class Rotate:
    entity: str
    axis: Vec3
    angle: float
    duration: int


@dataclass(frozen=True, slots=True)
class Scale:
    entity: str
    coords: tuple[Coordinate, Coordinate, Coordinate]
    duration: int


@dataclass(frozen=True, slots=True)
class Spawn:
    source: str
    kind: EntityKind
    entity: str


@dataclass(frozen=True, slots=True)
class Item:
    entity: str
    item: str


@dataclass(frozen=True, slots=True)
class Block:
    entity: str
    block_id: str
    properties: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True, slots=True)
class Text:
    entity: str
    text: str


@dataclass(frozen=True, slots=True)
class Teleport:
    entity: str
    offset: Vec3


@dataclass(frozen=True, slots=True)
class PlaceBlock:
    position: tuple[int, int, int]
    block_id: str


@dataclass(frozen=True, slots=True)
class Raw:
    command: str
    # False for "//" lines, which run every tick instead of at an offset
    delayed: bool = True


Statement = Union[
    ObjectName, Wait, Translate, Rotate, Scale, Spawn, Item, Block, Text, Teleport, PlaceBlock, Raw
]


@dataclass
class Program:
    path: str
    statements: list[Statement] = field(default_factory=list)


# ----------------------------
# Line handling
# ----------------------------


@dataclass(frozen=True)
class _Token:
    text: str
    column: int  # 1-based


@dataclass(frozen=True)
class _Line:
    path: str
    number: int
    text: str
    keyword: _Token
    args: list[_Token]

    def error(self, message: str, token: _Token | None = None) -> CompileError:
        column = token.column if token is not None else self.keyword.column
        return CompileError(self.path, self.number, column, message)

    def rest(self, start: int) -> str:
        """Source text from argument `start` to the end of the line, spacing kept."""
        return self.text[self.args[start].column - 1:].strip()


def strip_comment(line: str) -> str:
    quoted = False
    for i, ch in enumerate(line):
        if ch == '"':
            quoted = not quoted
        elif ch == COMMENT and not quoted:
            return line[:i]
    return line


def _tokens(text: str) -> list[_Token]:
    return [_Token(m.group(), m.start() + 1) for m in TOKEN_PATTERN.finditer(text)]


def _expect_args(line: _Line, count: int, *, at_least: bool = False) -> None:
    got = len(line.args)
    if (got < count) if at_least else (got != count):
        qualifier = "at least " if at_least else ""
        raise line.error(
            f"Keyword '{line.keyword.text}' expects {qualifier}{count} arguments, found {got}."
        )


def _name(line: _Line, token: _Token) -> str:
    if not NAME_PATTERN.match(token.text):
        raise line.error(f"Name '{token.text}' contains invalid characters.", token)
    return token.text


def _int(line: _Line, token: _Token) -> int:
    if not INT_PATTERN.match(token.text):
        raise line.error(f"'{token.text}' is not a valid integer.", token)
    return int(token.text)


def _number(line: _Line, token: _Token, text: str, message: str) -> float:
    """Parse a decimal number that fits in a float32."""
    if not NUMBER_PATTERN.match(text):
        raise line.error(message, token)
    value = float(text)
    if not is_f32_finite(value):
        raise line.error(f"'{token.text}' is out of range for a float32 value.", token)
    return value


def _ticks(line: _Line, token: _Token) -> int:
    value = _int(line, token)
    if value < 0:
        raise line.error(f"Tick count '{token.text}' must not be negative.", token)
    return value


def _float(line: _Line, token: _Token) -> float:
    return _number(line, token, token.text, f"'{token.text}' is not a valid number.")


def _coordinate(line: _Line, token: _Token) -> Coordinate:
    text = token.text
    relative = text.startswith("~")
    body = text[1:] if relative else text
    if relative and not body:
        return Coordinate(0.0, relative=True)
    value = _number(line, token, body, f"'{text}' is not a valid coordinate.")
    return Coordinate(value, relative=relative)


def _coordinates(line: _Line, tokens: list[_Token]) -> tuple[Coordinate, Coordinate, Coordinate]:
    x, y, z = (_coordinate(line, t) for t in tokens)
    return (x, y, z)


def _axis(line: _Line, token: _Token) -> Vec3:
    text = token.text.lower()
    if text in AXES:
        return AXES[text]
    if not (text.startswith("[") and text.endswith("]")):
        raise line.error(f"Axis '{token.text}' must be x, y, z or [a,b,c].", token)
    parts = text[1:-1].replace(" ", "").split(",")
    invalid = f"Axis '{token.text}' must be x, y, z or [a,b,c]."
    values = [_number(line, token, p, invalid) for p in parts]
    if len(values) != 3:
        raise line.error(f"Axis '{token.text}' needs exactly three components.", token)
    if not any(values):
        raise line.error(f"Axis '{token.text}' must not be the zero vector.", token)
    return (values[0], values[1], values[2])


def _join_brackets(tokens: list[_Token]) -> list[_Token]:
    """Re-join a bracketed axis like "[1, 0, 0]" that whitespace split apart."""
    out: list[_Token] = []
    pending: _Token | None = None
    for t in tokens:
        if pending is not None:
            pending = _Token(pending.text + t.text, pending.column)
            if "]" in t.text:
                out.append(pending)
                pending = None
            continue
        if t.text.startswith("[") and "]" not in t.text:
            pending = t
            continue
        out.append(t)
    if pending is not None:
        out.append(pending)
    return out


# ----------------------------
# Per-keyword parsers
# ----------------------------


def _parse_object(line: _Line) -> ObjectName:
    _expect_args(line, 1)
    token = line.args[0]
    if ":" not in token.text:
        raise line.error(f"'{token.text}' has no animation name (expected OBJECT:ANIMATION).", token)
    object_name, animation_name = token.text.split(":", 1)
    for part in (object_name, animation_name):
        if not NAME_PATTERN.match(part):
            raise line.error(f"Name '{part}' contains invalid characters.", token)
    return ObjectName(object_name, animation_name)


def _parse_wait(line: _Line) -> Wait:
    _expect_args(line, 1)
    return Wait(_ticks(line, line.args[0]))


def _parse_translate(line: _Line) -> Translate:
    _expect_args(line, 5)
    a = line.args
    return Translate(_name(line, a[0]), _coordinates(line, a[1:4]), _ticks(line, a[4]))


def _parse_rotate(line: _Line) -> Rotate:
    line = _Line(line.path, line.number, line.text, line.keyword, _join_brackets(line.args))
    _expect_args(line, 4)
    a = line.args
    return Rotate(_name(line, a[0]), _axis(line, a[1]), _float(line, a[2]), _ticks(line, a[3]))


def _parse_scale(line: _Line) -> Scale:
    _expect_args(line, 5)
    a = line.args
    return Scale(_name(line, a[0]), _coordinates(line, a[1:4]), _ticks(line, a[4]))


def _parse_spawn(line: _Line) -> Spawn:
    _expect_args(line, 3)
    a = line.args
    try:
        kind = EntityKind(a[1].text.lower().removeprefix("minecraft:"))
    except ValueError:
        allowed = ", ".join(k.value for k in EntityKind)
        raise line.error(f"Entity type '{a[1].text}' is invalid (expected one of: {allowed}).", a[1]) from None
    return Spawn(_name(line, a[0]), kind, _name(line, a[2]))


def _parse_item(line: _Line) -> Item:
    _expect_args(line, 2, at_least=True)
    return Item(_name(line, line.args[0]), line.rest(1))


def _parse_block(line: _Line) -> Block:
    _expect_args(line, 2, at_least=True)
    entity = _name(line, line.args[0])
    state_token = line.args[1]
    block_state = line.rest(1)
    if "[" not in block_state:
        return Block(entity, block_state)

    block_id, state = block_state.split("[", 1)
    if not state.endswith("]"):
        raise line.error(f"Block state '{block_state}' is missing a closing ']'.", state_token)
    properties: list[tuple[str, str]] = []
    body = state[:-1].strip()
    for part in body.split(",") if body else []:
        if "=" not in part:
            raise line.error(f"Block state '{block_state}' has a property without '='.", state_token)
        name, value = part.split("=", 1)
        properties.append((name.strip(), value.strip()))
    return Block(entity, block_id.strip(), tuple(properties))


def _parse_text(line: _Line) -> Text:
    _expect_args(line, 2, at_least=True)
    return Text(_name(line, line.args[0]), line.rest(1))


def _parse_teleport(line: _Line) -> Teleport:
    _expect_args(line, 4)
    a = line.args
    x, y, z = (_float(line, t) for t in a[1:4])
    return Teleport(_name(line, a[0]), (x, y, z))


def _parse_setblock(line: _Line) -> PlaceBlock:
    _expect_args(line, 4)
    a = line.args
    x, y, z = (_int(line, t) for t in a[0:3])
    return PlaceBlock((x, y, z), a[3].text)


_PARSERS = {
    "object": _parse_object,
    "wait": _parse_wait,
    "translate": _parse_translate,
    "rotate": _parse_rotate,
    "scale": _parse_scale,
    "spawn": _parse_spawn,
    "item": _parse_item,
    "block": _parse_block,
    "text": _parse_text,
    "teleport": _parse_teleport,
    "setblock": _parse_setblock,
}


def parse_line(path: str, number: int, raw_line: str) -> Statement | None:
    """Parse one source line. Returns None for blank and comment-only lines."""
    stripped = raw_line.strip()
    if stripped.startswith(RAW_PREFIX):
        delayed = not stripped.startswith(RAW_PREFIX * 2)
        command = stripped.lstrip(RAW_PREFIX).strip()
        if not command:
            column = raw_line.index(RAW_PREFIX) + 1
            raise CompileError(path, number, column, "Raw command is empty.")
        return Raw(command, delayed=delayed)

    text = strip_comment(raw_line)
    tokens = _tokens(text)
    if not tokens:
        return None

    keyword, args = tokens[0], tokens[1:]
    line = _Line(path, number, text, keyword, args)
    canonical = KEYWORDS.get(keyword.text.lower())
    if canonical is None:
        raise line.error(f"Keyword '{keyword.text}' is invalid.")
    return _PARSERS[canonical](line)


def parse_source(source: str, path: str = "<string>") -> Program:
    """
    Parse .dspa source text.

    Every line is parsed even after a failure; all errors are raised together
    as a CompileErrorGroup.
    """
    program = Program(path=path)
    errors: list[CompileError] = []
    object_line: int | None = None

    for number, raw_line in enumerate(source.splitlines(), start=1):
        try:
            statement = parse_line(path, number, raw_line)
        except CompileError as e:
            errors.append(e)
            continue
        if statement is None:
            continue
        if isinstance(statement, ObjectName):
            if object_line is not None:
                column = len(raw_line) - len(raw_line.lstrip()) + 1
                errors.append(
                    CompileError(path, number, column, f"Object name already declared on line {object_line}.")
                )
                continue
            object_line = number
        program.statements.append(statement)

    if errors:
        raise CompileErrorGroup(errors)
    return program


def parse_file(path: Path) -> Program:
    if not path.exists():
        raise InputFormatError(f"file not found: {path}")
    if not path.is_file():
        raise InputFormatError(f"not a file: {path}")
    return parse_source(path.read_text(encoding="utf-8"), path=str(path))
