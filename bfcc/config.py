from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple


TAPE_SIZE = 30000
DUMP_CELLS = 0x100
DUMP_ROW_WIDTH = 16
CELL_WIDTHS = (1, 2, 4)

DEFAULT_COMPILER = "gcc"
DEFAULT_CFLAGS: Tuple[str, ...] = ("-O3",)

DEFAULT_RUN_TIMEOUT = 10.0
DEFAULT_MAX_STEPS = 10_000_000


@dataclass
class Settings:
    """Toolchain settings, resolved from the environment by ``from_env``."""

    compiler: str = DEFAULT_COMPILER
    cflags: Tuple[str, ...] = field(default=DEFAULT_CFLAGS)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        compiler = env.get("BFCC_CC") or env.get("CC") or DEFAULT_COMPILER
        raw_flags = env.get("BFCC_CFLAGS")
        cflags = tuple(shlex.split(raw_flags)) if raw_flags is not None else DEFAULT_CFLAGS
        return cls(compiler=compiler, cflags=cflags)


__all__ = [
    "CELL_WIDTHS",
    "DEFAULT_CFLAGS",
    "DEFAULT_COMPILER",
    "DEFAULT_MAX_STEPS",
    "DEFAULT_RUN_TIMEOUT",
    "DUMP_CELLS",
    "DUMP_ROW_WIDTH",
    "Settings",
    "TAPE_SIZE",
]
