from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from dispa_timeline.compiler import CompiledTimeline, compile_file
from dispa_timeline.config import CompilerConfig
from dispa_timeline.logging import get_logger
from dispa_timeline.mcfunction import render_timeline, tick_function_line
from dispa_timeline.parser import CompileError, CompileErrorGroup
from dispa_timeline.stream_io import InputFormatError

logger = get_logger("build")

DISPA_EXTENSION = ".dspa"
MINECRAFT_EXTENSION = ".mcfunction"


@dataclass(frozen=True)
class BuildOutput:
    source: Path
    target: Path
    # Function path relative to the datapack function root, no extension.
    function_path: str
    compiled: CompiledTimeline
    # Rendered command script, ready to write.
    script: str


def find_sources(folder: Path) -> list[Path]:
    """All .dspa files under `folder`, in a stable order."""
    if not folder.is_dir():
        raise InputFormatError(f"source folder not found: {folder}")
    return sorted(p for p in folder.rglob(f"*{DISPA_EXTENSION}") if p.is_file())


def compile_tree(config: CompilerConfig) -> list[BuildOutput]:
    """
    Compile every source under config.source_folder.

    Every script is rendered here and nothing is written. If any file fails,
    every error from every file is raised together as one CompileErrorGroup.
    """
    source_root = Path(config.source_folder)
    target_root = Path(config.target_folder)

    outputs: list[BuildOutput] = []
    errors: list[CompileError] = []
    for source in find_sources(source_root):
        try:
            compiled = compile_file(source)
            script = render_timeline(compiled)
        except CompileErrorGroup as e:
            errors.extend(e.errors)
            continue
        except CompileError as e:
            errors.append(e)
            continue
        except ValueError as e:
            # Whole-file failures (no usable name, unrenderable values) carry no line.
            errors.append(CompileError(str(source), 1, 1, str(e)))
            continue

        relative = source.relative_to(source_root)
        target = target_root / relative.with_suffix(MINECRAFT_EXTENSION)
        outputs.append(
            BuildOutput(
                source=source,
                target=target,
                function_path=(target_root / relative.with_suffix("")).as_posix(),
                compiled=compiled,
                script=script,
            )
        )

    if errors:
        raise CompileErrorGroup(errors)
    return outputs


def write_outputs(outputs: list[BuildOutput], config: CompilerConfig) -> None:
    """Write each command script and rewrite the tick function from scratch."""
    tick_lines = [tick_function_line(out.compiled.name, config.namespace, out.function_path) for out in outputs]

    for out in outputs:
        out.target.parent.mkdir(parents=True, exist_ok=True)
        out.target.write_text(out.script, encoding="utf-8")
        logger.info("Compiled file: %s", out.function_path)

    tick_path = Path(config.tick_function)
    tick_path.parent.mkdir(parents=True, exist_ok=True)
    tick_path.write_text("".join(line + "\n" for line in tick_lines), encoding="utf-8")
