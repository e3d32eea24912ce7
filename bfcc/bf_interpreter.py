from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Union

from .config import CELL_WIDTHS, DUMP_CELLS, DUMP_ROW_WIDTH, TAPE_SIZE
from .transpiler import BracketError


INSTRUCTIONS = frozenset("><+-.,[]#$")


class StepLimitExceeded(RuntimeError):
    """Raised when Brainfuck execution exceeds the configured step budget."""


def render_dump(tape: Sequence[int], hexadecimal: bool) -> str:
    """Text printed by the generated program for ``#`` (hex) or ``$`` (decimal)."""
    rows: List[str] = []
    for start in range(0, DUMP_CELLS, DUMP_ROW_WIDTH):
        cells = tape[start : start + DUMP_ROW_WIDTH]
        if hexadecimal:
            rendered = "".join(f"{value:02x} " for value in cells)
        else:
            rendered = "".join(f"{value:3d} " for value in cells)
        rows.append(f"{start:03d}-{start + DUMP_ROW_WIDTH - 1:03d}: {rendered}\n")
    return "".join(rows)


@dataclass
class BrainfuckInterpreter:
    """Pure-Python counterpart of the generated C program.

    Output is collected as raw bytes, reading past the end of input stores 0,
    and ``#``/``$`` append the same dump text the C code prints.
    """

    tape_length: int = TAPE_SIZE
    cell_width: int = 1

    tape: List[int] = field(init=False, repr=False)
    pointer: int = field(init=False, repr=False)
    output_buffer: bytearray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.cell_width not in CELL_WIDTHS:
            raise ValueError(f"Unsupported cell width {self.cell_width}")
        if self.tape_length < DUMP_CELLS:
            raise ValueError(f"tape_length must be at least {DUMP_CELLS}")
        self.cell_modulus = 1 << (8 * self.cell_width)
        self.reset()

    def reset(self) -> None:
        self.tape = [0] * self.tape_length
        self.pointer = 0
        self.output_buffer = bytearray()

    def run(
        self,
        code: Union[str, bytes],
        input_data: bytes = b"",
        max_steps: Optional[int] = None,
    ) -> bytes:
        self.reset()
        if isinstance(code, bytes):
            code = code.decode("latin-1")
        jump_map = self._build_jump_map(code)
        input_iter = iter(input_data)
        pc = 0
        steps = 0
        code_length = len(code)

        while pc < code_length:
            if code[pc] not in INSTRUCTIONS:
                pc += 1
                continue
            if max_steps is not None and steps >= max_steps:
                raise StepLimitExceeded("Brainfuck program exceeded allowed step count")
            pc = self._execute_instruction(code[pc], pc, jump_map, input_iter)
            steps += 1
        return bytes(self.output_buffer)

    def _execute_instruction(
        self,
        command: str,
        pc: int,
        jump_map: Dict[int, int],
        input_iter: Iterator[int],
    ) -> int:
        new_pc = pc + 1
        if command == ">":
            self.pointer += 1
            if self.pointer >= self.tape_length:
                raise IndexError("Pointer moved beyond the tape length.")
        elif command == "<":
            self.pointer -= 1
            if self.pointer < 0:
                raise IndexError("Pointer moved before start of tape.")
        elif command == "+":
            self.tape[self.pointer] = (self.tape[self.pointer] + 1) % self.cell_modulus
        elif command == "-":
            self.tape[self.pointer] = (self.tape[self.pointer] - 1) % self.cell_modulus
        elif command == ".":
            # putchar() truncates to unsigned char
            self.output_buffer.append(self.tape[self.pointer] & 0xFF)
        elif command == ",":
            self.tape[self.pointer] = next(input_iter, 0)
        elif command == "[":
            if self.tape[self.pointer] == 0:
                new_pc = jump_map[pc] + 1
        elif command == "]":
            if self.tape[self.pointer] != 0:
                new_pc = jump_map[pc] + 1
        elif command == "#":
            self.output_buffer.extend(render_dump(self.tape, hexadecimal=True).encode("ascii"))
        elif command == "$":
            self.output_buffer.extend(render_dump(self.tape, hexadecimal=False).encode("ascii"))
        return new_pc

    def _build_jump_map(self, code: str) -> Dict[int, int]:
        jump_map: Dict[int, int] = {}
        stack: List[int] = []
        for index, char in enumerate(code):
            if char == "[":
                stack.append(index)
            elif char == "]":
                if not stack:
                    raise BracketError("Unmatched ']' at offset {}".format(index), index)
                start = stack.pop()
                jump_map[start] = index
                jump_map[index] = start
        if stack:
            position = stack.pop()
            raise BracketError("Unmatched '[' at offset {}".format(position), position)
        return jump_map


__all__ = [
    "BrainfuckInterpreter",
    "StepLimitExceeded",
    "render_dump",
]
