from __future__ import annotations

import argparse
import contextlib
import io
import logging
import sys
import tempfile
from pathlib import Path
from typing import BinaryIO, ContextManager, Optional

from .backend import BuildError, CCompilerBackend
from .bf_interpreter import BrainfuckInterpreter, StepLimitExceeded
from .config import CELL_WIDTHS, Settings
from .transpiler import BracketError, CTranspiler


logger = logging.getLogger(__name__)


def _open_source(path: Optional[str]) -> ContextManager[BinaryIO]:
    if path is None:
        return contextlib.nullcontext(sys.stdin.buffer)
    return open(path, "rb")


def _open_output(path: Optional[Path]) -> ContextManager[BinaryIO]:
    if path is None:
        return contextlib.nullcontext(sys.stdout.buffer)
    return open(path, "wb")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        stream=sys.stderr,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Translate Brainfuck source into C")
    parser.add_argument("source", nargs="?", help="Brainfuck source file (default: stdin)")
    parser.add_argument("output", nargs="?", help="Destination C file (default: stdout)")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Reject unbalanced '[' / ']' instead of emitting them as-is",
    )
    parser.add_argument(
        "--cell-width",
        type=int,
        choices=CELL_WIDTHS,
        default=1,
        help="Bytes per tape cell in the generated program (default: 1)",
    )
    parser.add_argument(
        "--build",
        action="store_true",
        help="Compile the generated C into an executable",
    )
    parser.add_argument(
        "--run",
        action="store_true",
        help="Compile and execute the generated program",
    )
    parser.add_argument(
        "--interpret",
        action="store_true",
        help="Execute the source with the built-in interpreter instead of a C toolchain",
    )
    parser.add_argument(
        "--input",
        default=None,
        help="Input string supplied to the program when running (default: inherit stdin)",
    )
    parser.add_argument("--cc", default=None, help="C compiler to use (default: $BFCC_CC, $CC or gcc)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    if args.interpret:
        return _interpret(args)

    transpiler = CTranspiler(cell_width=args.cell_width, strict=args.strict)
    wants_build = args.build or args.run

    with contextlib.ExitStack() as stack:
        output_path = Path(args.output) if args.output else None
        if output_path is None and wants_build:
            workdir = Path(stack.enter_context(tempfile.TemporaryDirectory(prefix="bfcc-")))
            output_path = workdir / "program.c"

        try:
            source = stack.enter_context(_open_source(args.source))
        except OSError as exc:
            print(f"Error: Could not open file {args.source} for reading: {exc.strerror}", file=sys.stderr)
            return 1
        if args.source:
            logger.info("Compiling %s", args.source)

        generated = io.BytesIO()
        try:
            transpiler.translate(source, generated)
        except BracketError as exc:
            print(f"Translation error: {exc}", file=sys.stderr)
            return 1

        try:
            with _open_output(output_path) as sink:
                if output_path is not None:
                    logger.info("Writing to %s", output_path)
                sink.write(generated.getvalue())
                sink.flush()
        except OSError as exc:
            print(f"Error: Could not write to {output_path}: {exc.strerror}", file=sys.stderr)
            return 1

        if not wants_build:
            return 0
        return _build(args, output_path)


def _build(args: argparse.Namespace, source_path: Path) -> int:
    settings = Settings.from_env()
    if args.cc:
        settings.compiler = args.cc
    backend = CCompilerBackend.from_settings(settings)
    input_data = args.input.encode("utf-8") if args.input is not None else None
    try:
        if not args.run:
            executable = backend.build(source_path)
            logger.info("Built %s", executable)
            return 0
        result = backend.build_and_run(source_path, input_data=input_data, capture=False)
    except BuildError as exc:
        print(f"Build error: {exc}", file=sys.stderr)
        return 1
    return result.returncode


def _interpret(args: argparse.Namespace) -> int:
    try:
        with _open_source(args.source) as source:
            code = source.read()
    except OSError as exc:
        print(f"Error: Could not open file {args.source} for reading: {exc.strerror}", file=sys.stderr)
        return 1

    if args.input is not None:
        input_data = args.input.encode("utf-8")
    elif args.source is not None:
        input_data = sys.stdin.buffer.read()
    else:
        input_data = b""

    interpreter = BrainfuckInterpreter(cell_width=args.cell_width)
    try:
        output = interpreter.run(code, input_data=input_data)
    except BracketError as exc:
        print(f"Translation error: {exc}", file=sys.stderr)
        return 1
    except (IndexError, StepLimitExceeded) as exc:
        print(f"Runtime error: {exc}", file=sys.stderr)
        return 1
    sys.stdout.buffer.write(output)
    sys.stdout.flush()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
