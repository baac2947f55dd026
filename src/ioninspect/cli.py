from __future__ import annotations

import argparse
import sys
from typing import TextIO

from rich.console import Console

from ioninspect.core.config import COLOR_MODES, ConfigError, load_config
from ioninspect.core.inspector import InspectionWindow, inspect_input
from ioninspect.core.io import InputBuffer, InputError
from ioninspect.core.table import OutputError, TableWriter
from ioninspect.ion.binary import IonDecodeError

ABOUT = "Displays hex-encoded binary Ion alongside its equivalent text for human-friendly debugging."

SKIP_BYTES_HELP = """Do not display any user values for the first N bytes of Ion data.
System values like Ion version markers and symbol tables in the skipped
bytes are still displayed. If N falls in the middle of a value, the whole
value (with field ID and annotations) is displayed, along with any
containers it is nested in."""

LIMIT_BYTES_HELP = """Only display the next N bytes of Ion data. If N falls within a value,
the complete value is displayed. 0 means no limit."""


def _byte_count(flag: str):
    def parse(value: str) -> int:
        try:
            count = int(value)
        except ValueError:
            count = -1
        if count < 0:
            raise argparse.ArgumentTypeError(f"Invalid value for '{flag}': '{value}'")
        return count

    return parse


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ioninspect", description=ABOUT)
    parser.add_argument("-o", "--output", help="Output file [default: STDOUT]")
    parser.add_argument(
        "-i",
        "--input",
        action="append",
        default=[],
        help="Input file (may be repeated); reads STDIN when no inputs are given",
    )
    parser.add_argument("paths", nargs="*", metavar="INPUT", help="Input file")
    parser.add_argument(
        "-s", "--skip-bytes", type=_byte_count("--skip-bytes"), metavar="N", help=SKIP_BYTES_HELP
    )
    parser.add_argument(
        "-l", "--limit-bytes", type=_byte_count("--limit-bytes"), metavar="N", help=LIMIT_BYTES_HELP
    )
    parser.add_argument("--color", choices=COLOR_MODES, help="Colorize output [default: auto]")
    parser.add_argument("--config", help="YAML file with default options")
    return parser


def make_console(file: TextIO | None, color: str) -> Console:
    options = {"file": file, "highlight": False, "markup": False, "emoji": False}
    if color == "never":
        return Console(color_system=None, **options)
    if color == "always":
        return Console(force_terminal=True, **options)
    return Console(**options)


def _inputs_as_positionals(argv: list[str]) -> list[str]:
    """Rewrite `-i X`, `-iX` and `--input=X` as a bare `X`.

    parse_intermixed_args() reads optionals before positionals, so inputs given
    both ways would lose their relative order otherwise. Values starting with
    `-` are left for argparse to handle.
    """
    result: list[str] = []
    tokens = iter(argv)
    for token in tokens:
        if token == "--":
            result.append(token)
            result.extend(tokens)
            break
        original = [token]
        if token in ("-i", "--input"):
            value = next(tokens, None)
            if value is not None:
                original.append(value)
        elif token.startswith("--input="):
            value = token.partition("=")[2]
        elif token.startswith("-i"):
            value = token[2:]
        else:
            result.append(token)
            continue
        if value and not value.startswith("-"):
            result.append(value)
        else:
            result.extend(original)
    return result


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    if argv is None:
        argv = sys.argv[1:]
    args = parser.parse_intermixed_args(_inputs_as_positionals(argv))

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        print(f"ioninspect: invalid config: {exc}", file=sys.stderr)
        return 1

    skip_bytes = args.skip_bytes if args.skip_bytes is not None else config.skip_bytes
    limit_bytes = args.limit_bytes if args.limit_bytes is not None else config.limit_bytes
    window = InspectionWindow(bytes_to_skip=skip_bytes, limit_bytes=limit_bytes)
    color = args.color or config.color
    inputs = [*args.input, *args.paths]

    out = None
    if args.output:
        try:
            out = open(args.output, "w", encoding="utf-8")  # noqa: SIM115
        except OSError as exc:
            print(f"ioninspect: Could not open '{args.output}': {exc.strerror or exc}", file=sys.stderr)
            return 1

    table = TableWriter(make_console(out, color))
    try:
        if inputs:
            for path in inputs:
                with InputBuffer.open(path) as source:
                    inspect_input(source, table, window)
        else:
            with InputBuffer.from_stdin() as source:
                inspect_input(source, table, window)
    except InputError as exc:
        print(f"ioninspect: {exc}", file=sys.stderr)
        return 2
    except (IonDecodeError, OutputError) as exc:
        print(f"ioninspect: {exc}", file=sys.stderr)
        return 1
    finally:
        if out is not None:
            out.close()
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
