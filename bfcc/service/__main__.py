from __future__ import annotations

import argparse
import logging
from typing import Optional

import uvicorn

from bfcc.config import DEFAULT_MAX_STEPS, DEFAULT_RUN_TIMEOUT

from .app import create_app


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Serve Brainfuck translation and execution over HTTP")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port to listen on (default: 8000)")
    parser.add_argument(
        "--step-cap",
        type=int,
        default=DEFAULT_MAX_STEPS,
        help=f"Interpreter step limit when a request sets none (default: {DEFAULT_MAX_STEPS})",
    )
    parser.add_argument(
        "--run-timeout",
        type=float,
        default=DEFAULT_RUN_TIMEOUT,
        help=f"Seconds a compiled program may run (default: {DEFAULT_RUN_TIMEOUT})",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.step_cap < 1 or args.run_timeout <= 0:
        logger.error("--step-cap and --run-timeout must be positive")
        return 2

    app = create_app(step_cap=args.step_cap, run_timeout=args.run_timeout)
    logger.info("Serving on http://%s:%d", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    raise SystemExit(main())
