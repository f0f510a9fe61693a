from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from dispa_timeline.boundary import InMemoryGameEngine
from dispa_timeline.build import compile_tree, write_outputs
from dispa_timeline.compiler import compile_file
from dispa_timeline.config import CONFIG_PATH, load_config
from dispa_timeline.events import InMemoryEventSink
from dispa_timeline.logging import get_logger, setup_logging
from dispa_timeline.player import TimelinePlayer
from dispa_timeline.stream_io import (
    InputFormatError,
    TimelineDocument,
    dump_event_stream,
    dump_timeline,
    load_timeline,
)
from dispa_timeline.trace import render_trace, run_ticks_with_trace

logger = get_logger("cli")

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _load_document(args: argparse.Namespace) -> TimelineDocument:
    if args.source:
        return compile_file(Path(str(args.source))).document()
    return load_timeline(Path(str(args.table)))


def _cmd_compile(args: argparse.Namespace) -> int:
    try:
        config = load_config(Path(str(args.config)))
        outputs = compile_tree(config)
    except InputFormatError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    write_outputs(outputs, config)
    for out in outputs:
        print(f"Successfully compiled file: {out.function_path}")
    if not outputs:
        print(f"(No {config.source_folder}/**/*.dspa files found.)")
    return 0


def _cmd_play(args: argparse.Namespace) -> int:
    chosen = sum(1 for v in [bool(args.source), bool(args.table)] if v)
    if chosen != 1:
        print("ERROR: choose exactly one of --source or --table.", file=sys.stderr)
        return 2
    if args.ticks < 0:
        print("ERROR: --ticks must be >= 0.", file=sys.stderr)
        return 2

    try:
        document = _load_document(args)
    except InputFormatError as e:
        print(f"ERROR: invalid input: {e}", file=sys.stderr)
        return 2

    sink = InMemoryEventSink()
    player = TimelinePlayer(engine=InMemoryGameEngine(), event_sink=sink)
    timeline = player.register(document.name, document.table)
    if args.start_timer is not None:
        timeline.timer = int(args.start_timer)
    if document.every_tick:
        logger.info("%s: %d every-tick raw command(s) are not played", document.name, len(document.every_tick))

    log = run_ticks_with_trace(player, int(args.ticks))
    sys.stdout.write(render_trace(log, only_active=bool(args.only_active)))

    if args.events_out:
        path = Path(str(args.events_out))
        path.write_text(json.dumps(dump_event_stream(sink.events), indent=2) + "\n", encoding="utf-8")
    return 0


def _cmd_table(args: argparse.Namespace) -> int:
    try:
        document = compile_file(Path(str(args.source))).document()
    except InputFormatError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    text = json.dumps(dump_timeline(document), indent=2) + "\n"
    if args.out:
        Path(str(args.out)).write_text(text, encoding="utf-8")
    else:
        sys.stdout.write(text)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="dispa_timeline",
        description=(
            "DiSPA timeline toolkit.\n"
            "\n"
            "Compiles .dspa animation sources into command scripts and plays\n"
            "baked rule tables tick by tick."
        ),
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default="WARNING",
        help="Logging level written to stderr.",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    comp = sub.add_parser("compile", help="Compile every .dspa file under the configured source folder.")
    comp.add_argument(
        "--config",
        type=str,
        default=str(CONFIG_PATH),
        help="Config JSON (created with defaults when missing).",
    )
    comp.set_defaults(func=_cmd_compile)

    play = sub.add_parser("play", help="Play a timeline and print a per-tick trace.")
    play.add_argument("--source", type=str, help="Compile and play a .dspa file.")
    play.add_argument("--table", type=str, help="Play a baked rule table JSON.")
    play.add_argument("--ticks", type=int, default=50, help="Number of game ticks to run.")
    play.add_argument("--start-timer", type=int, default=None, help="Optional: initial timer value.")
    play.add_argument("--only-active", action="store_true", help="Only print ticks where something fired or reset.")
    play.add_argument("--events-out", type=str, default=None, help="Optional: write the event stream as JSON.")
    play.set_defaults(func=_cmd_play)

    table = sub.add_parser("table", help="Print the baked rule table of a .dspa file as JSON.")
    table.add_argument("--source", type=str, required=True, help="The .dspa file to bake.")
    table.add_argument("--out", type=str, default=None, help="Optional: write to this path instead of stdout.")
    table.set_defaults(func=_cmd_table)

    return parser


def main(argv: list[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
