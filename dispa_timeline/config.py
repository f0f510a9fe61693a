from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from dispa_timeline.logging import get_logger
from dispa_timeline.stream_io import InputFormatError

logger = get_logger("config")

CONFIG_PATH = Path("dspa_config.json")


@dataclass(frozen=True)
class CompilerConfig:
    source_folder: str = "./src"
    target_folder: str = "./objects"
    tick_function: str = "./tick.mcfunction"
    namespace: str = "de"


def initialize_config(path: Path) -> CompilerConfig:
    """Write the default config to `path` and return it."""
    config = CompilerConfig()
    path.write_text(json.dumps(asdict(config), indent=4) + "\n", encoding="utf-8")
    logger.info("Wrote default config to %s", path)
    return config


def load_config(path: Path = CONFIG_PATH) -> CompilerConfig:
    """Load and validate the compiler config, creating it with defaults when missing.

    Format:
      {
        "source_folder": "./src",
        "target_folder": "./objects",
        "tick_function": "./tick.mcfunction",
        "namespace": "de"
      }

    Missing keys take their default; unknown keys are rejected.
    """
    if not path.exists():
        return initialize_config(path)
    if not path.is_file():
        raise InputFormatError(f"not a file: {path}")

    try:
        raw: Any = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise InputFormatError(
            f"invalid JSON: {e.msg} (line {e.lineno}, col {e.colno})"
        ) from e

    if not isinstance(raw, dict):
        raise InputFormatError("config root must be a JSON object")

    known = set(asdict(CompilerConfig()))
    unknown = sorted(set(raw) - known)
    if unknown:
        raise InputFormatError(f"unknown config keys: {', '.join(unknown)}")

    for key, value in raw.items():
        if not isinstance(value, str) or not value.strip():
            raise InputFormatError(f"{key} must be a non-empty string")

    return CompilerConfig(**raw)
