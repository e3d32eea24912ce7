from __future__ import annotations

import io
import logging
from typing import BinaryIO, Dict, List, Optional, Tuple, Union

from .config import CELL_WIDTHS, DUMP_CELLS, DUMP_ROW_WIDTH, TAPE_SIZE


logger = logging.getLogger(__name__)


class TranslationError(Exception):
    pass


class BracketError(TranslationError):
    """Unbalanced loop delimiter, reported in strict mode only."""

    def __init__(self, message: str, offset: int) -> None:
        super().__init__(message)
        self.offset = offset


INDENT = "    "

CELL_TYPES: Dict[int, str] = {
    1: "unsigned char",
    2: "unsigned short",
    4: "unsigned int",
}

# Symbol -> emitted statements, before indentation.
STATEMENTS: Dict[str, Tuple[str, ...]] = {
    ">": ("ptr++;",),
    "<": ("ptr--;",),
    "+": ("(*ptr)++;",),
    "-": ("(*ptr)--;",),
    ".": ("putchar(*ptr);",),
    ",": ("*ptr = (ch = getchar()) == EOF ? 0 : ch;",),
    "[": ("while (*ptr) {",),
    "]": ("}",),
}

HEX_DUMP = "#"
DEC_DUMP = "$"


def dump_block(cell_format: str) -> Tuple[str, ...]:
    """C statements printing the first DUMP_CELLS cells, one row per DUMP_ROW_WIDTH."""
    return (
        f"for (int i = 0; i < {DUMP_CELLS:#x}; i++) {{",
        f"{INDENT}if (i % {DUMP_ROW_WIDTH} == 0) {{",
        f'{INDENT * 2}printf("%03d-%03d: ", i, i + {DUMP_ROW_WIDTH - 1});',
        f"{INDENT}}}",
        f'{INDENT}printf("{cell_format} ", tape[i]);',
        f"{INDENT}if ((i + 1) % {DUMP_ROW_WIDTH} == 0) {{",
        f'{INDENT * 2}printf("\\n");',
        f"{INDENT}}}",
        "}",
    )


class CTranspiler:
    """Single-pass Brainfuck to C transducer.

    Every recognised symbol maps to a fixed block of C statements. Loops are
    expressed as nested ``while`` blocks, so the transducer itself keeps no
    loop stack unless ``strict`` is set, in which case unbalanced brackets
    raise :class:`BracketError` instead of producing C that will not compile.
    """

    def __init__(
        self,
        *,
        cell_width: int = 1,
        strict: bool = False,
        tape_size: int = TAPE_SIZE,
    ) -> None:
        if cell_width not in CELL_WIDTHS:
            raise ValueError(
                f"Unsupported cell width {cell_width}; expected one of {', '.join(map(str, CELL_WIDTHS))}"
            )
        if tape_size < DUMP_CELLS:
            raise ValueError(f"tape_size must be at least {DUMP_CELLS}")
        self.cell_width = cell_width
        self.strict = strict
        self.tape_size = tape_size
        self.cell_type = CELL_TYPES[cell_width]
        self._templates = self._build_templates()

    def instruction_table(self) -> Dict[str, List[str]]:
        decimal = "%3u" if self.cell_width == 4 else "%3d"
        table = {symbol: list(lines) for symbol, lines in STATEMENTS.items()}
        table[HEX_DUMP] = list(dump_block("%02x"))
        table[DEC_DUMP] = list(dump_block(decimal))
        return table

    def prologue(self) -> List[str]:
        return [
            "#include <stdio.h>",
            "#include <stdlib.h>",
            "int main(int argc, char *argv[]) {",
            f"{INDENT}{self.cell_type} *tape = calloc({self.tape_size}, sizeof({self.cell_type}));",
            f"{INDENT}{self.cell_type} *ptr = tape;",
            f"{INDENT}int ch = 0;",
        ]

    def epilogue(self) -> List[str]:
        return [
            f"{INDENT}free(tape);",
            f"{INDENT}return 0;",
            "}",
        ]

    def translate(self, source: BinaryIO, sink: BinaryIO, chunk_size: int = 4096) -> None:
        sink.write(_encode_lines(self.prologue()))
        open_loops: List[int] = []
        offset = 0
        emitted = 0
        for chunk in iter(lambda: source.read(chunk_size), b""):
            for byte in chunk:
                template = self._templates.get(byte)
                if template is not None:
                    if self.strict:
                        self._track_loop(byte, offset, open_loops)
                    sink.write(template)
                    emitted += 1
                offset += 1
        if self.strict and open_loops:
            position = open_loops.pop()
            raise BracketError(f"Unmatched '[' at offset {position}", position)
        sink.write(_encode_lines(self.epilogue()))
        sink.flush()
        logger.debug("Translated %d instructions from %d source bytes", emitted, offset)

    def transpile(self, source: Union[str, bytes]) -> str:
        data = source.encode("utf-8") if isinstance(source, str) else source
        sink = io.BytesIO()
        self.translate(io.BytesIO(data), sink)
        return sink.getvalue().decode("ascii")

    # --- Helpers ---

    def _build_templates(self) -> Dict[int, bytes]:
        templates: Dict[int, bytes] = {}
        for symbol, lines in self.instruction_table().items():
            templates[ord(symbol)] = _encode_lines(f"{INDENT}{line}" for line in lines)
        return templates

    def _track_loop(self, byte: int, offset: int, open_loops: List[int]) -> None:
        if byte == ord("["):
            open_loops.append(offset)
        elif byte == ord("]"):
            if not open_loops:
                raise BracketError(f"Unmatched ']' at offset {offset}", offset)
            open_loops.pop()


def _encode_lines(lines) -> bytes:
    return "".join(f"{line}\n" for line in lines).encode("ascii")


def translate(
    source: BinaryIO,
    sink: BinaryIO,
    *,
    strict: bool = False,
    cell_width: int = 1,
    tape_size: Optional[int] = None,
) -> None:
    transpiler = CTranspiler(
        cell_width=cell_width,
        strict=strict,
        tape_size=TAPE_SIZE if tape_size is None else tape_size,
    )
    transpiler.translate(source, sink)


__all__ = [
    "BracketError",
    "CELL_TYPES",
    "CTranspiler",
    "STATEMENTS",
    "TranslationError",
    "dump_block",
    "translate",
]
