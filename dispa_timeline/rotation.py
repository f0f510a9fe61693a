from __future__ import annotations

import math
import struct
from decimal import Decimal
from typing import Iterable

Vec3 = tuple[float, float, float]
Quat = tuple[float, float, float, float]  # [x, y, z, w], the display entity order

IDENTITY: Quat = (0.0, 0.0, 0.0, 1.0)

AXES: dict[str, Vec3] = {
    "x": (1.0, 0.0, 0.0),
    "y": (0.0, 1.0, 0.0),
    "z": (0.0, 0.0, 1.0),
}


def f32(value: float) -> float:
    """Round a Python float through IEEE-754 single precision."""
    return struct.unpack("<f", struct.pack("<f", float(value)))[0]


def f32_tuple(values: Iterable[float]) -> tuple[float, ...]:
    return tuple(f32(v) for v in values)


def is_f32_finite(value: float) -> bool:
    """True when `value` is still a finite number after rounding through float32."""
    try:
        return math.isfinite(f32(value))
    except OverflowError:
        return False


def format_f32(value: float) -> str:
    """
    Shortest decimal that reads back as the same float32.

    Never uses exponent notation: 1/sqrt(2) -> "0.70710677", 1.0 -> "1",
    1e-7 -> "0.0000001".
    """
    v = f32(value)
    if v == 0.0:
        # -0.0 collapses to "0"
        return "0"
    if math.isnan(v) or math.isinf(v):
        raise ValueError(f"cannot format non-finite float32: {v!r}")

    text = repr(v)
    for digits in range(1, 10):
        candidate = f"{v:.{digits}g}"
        if f32(float(candidate)) == v:
            text = candidate
            break

    plain = format(Decimal(text), "f")
    if "." in plain:
        plain = plain.rstrip("0").rstrip(".")
    return plain


def normalize_axis(axis: Iterable[float]) -> Vec3:
    x, y, z = (float(c) for c in axis)
    length = math.sqrt(x * x + y * y + z * z)
    if length == 0.0:
        raise ValueError("rotation axis must not be the zero vector")
    return (x / length, y / length, z / length)


def quat_from_axis_angle(axis: Iterable[float], degrees: float) -> Quat:
    """Quaternion [x, y, z, w] for a rotation of `degrees` around `axis`."""
    ax, ay, az = normalize_axis(axis)
    half = math.radians(float(degrees)) / 2.0
    s = math.sin(half)
    return (ax * s, ay * s, az * s, math.cos(half))


def quat_multiply(a: Quat, b: Quat) -> Quat:
    """Hamilton product a * b (apply b first, then a)."""
    ax, ay, az, aw = a
    bx, by, bz, bw = b
    return (
        aw * bx + ax * bw + ay * bz - az * by,
        aw * by - ax * bz + ay * bw + az * bx,
        aw * bz + ax * by - ay * bx + az * bw,
        aw * bw - ax * bx - ay * by - az * bz,
    )
