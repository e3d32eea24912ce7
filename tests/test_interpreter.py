import re
import unittest

from bfcc import BracketError, BrainfuckInterpreter, StepLimitExceeded, render_dump


HEX_ROW = re.compile(r"^(\d{3})-(\d{3}): ((?:[0-9a-f]{2} ){16})$")
DEC_ROW = re.compile(r"^(\d{3})-(\d{3}): ((?:[ \d]{3} ){16})$")


def dump_cells(text: str, row_pattern: "re.Pattern[str]", base: int) -> list:
    cells = []
    for row in text.splitlines():
        match = row_pattern.match(row)
        if match is None:
            raise AssertionError(f"malformed dump row: {row!r}")
        cells.extend(int(value, base) for value in match.group(3).split())
    return cells


class BrainfuckInterpreterTests(unittest.TestCase):
    def setUp(self) -> None:
        self.interpreter = BrainfuckInterpreter()

    def test_simple_output(self) -> None:
        program = "+" * 65 + "."
        self.assertEqual(self.interpreter.run(program, max_steps=1000), b"A")

    def test_echo_reads_input(self) -> None:
        self.assertEqual(self.interpreter.run(",.", input_data=b"A"), b"A")

    def test_end_of_input_stores_zero(self) -> None:
        self.assertEqual(self.interpreter.run("+,.", input_data=b""), b"\x00")

    def test_clear_loop_terminates(self) -> None:
        self.interpreter.run("+++++[-]", max_steps=100)
        self.assertEqual(self.interpreter.tape[0], 0)

    def test_byte_cells_wrap(self) -> None:
        self.interpreter.run("-")
        self.assertEqual(self.interpreter.tape[0], 255)
        self.interpreter.run("-+")
        self.assertEqual(self.interpreter.tape[0], 0)

    def test_wide_cells_wrap_at_their_width(self) -> None:
        interpreter = BrainfuckInterpreter(cell_width=2)
        interpreter.run("-")
        self.assertEqual(interpreter.tape[0], 0xFFFF)
        self.assertEqual(interpreter.run("-."), b"\xff")

    def test_step_limit_exceeded(self) -> None:
        with self.assertRaises(StepLimitExceeded):
            self.interpreter.run("+[]", max_steps=10)

    def test_unbalanced_brackets(self) -> None:
        with self.assertRaises(BracketError):
            self.interpreter.run("]")
        with self.assertRaises(BracketError):
            self.interpreter.run("[")

    def test_pointer_bounds(self) -> None:
        with self.assertRaises(IndexError):
            self.interpreter.run("<")

    def test_ignores_comment_characters(self) -> None:
        self.assertEqual(self.interpreter.run("add one: + then print: ."), b"\x01")

    def test_comment_characters_do_not_count_as_steps(self) -> None:
        source = "increment the cell then print it +."
        self.assertEqual(self.interpreter.run(source, max_steps=2), b"\x01")
        with self.assertRaises(StepLimitExceeded):
            self.interpreter.run(source, max_steps=1)


class DumpTests(unittest.TestCase):
    def test_decimal_dump_after_single_increment(self) -> None:
        output = BrainfuckInterpreter().run("+$").decode("ascii")
        cells = dump_cells(output, DEC_ROW, 10)
        self.assertEqual(len(cells), 256)
        self.assertEqual(cells[0], 1)
        self.assertEqual(set(cells[1:]), {0})

    def test_hex_dump_has_sixteen_rows(self) -> None:
        output = BrainfuckInterpreter().run(">" + "+" * 171 + "#").decode("ascii")
        rows = output.split("\n")
        self.assertEqual(rows[-1], "")
        rows = rows[:-1]
        self.assertEqual(len(rows), 16)
        for index, row in enumerate(rows):
            match = HEX_ROW.match(row)
            self.assertIsNotNone(match, row)
            self.assertEqual(int(match.group(1)), index * 16)
            self.assertEqual(int(match.group(2)), index * 16 + 15)
        self.assertTrue(rows[0].startswith("000-015: 00 ab 00 "))

    def test_render_dump_formats(self) -> None:
        tape = [0] * 256
        tape[17] = 200
        hex_text = render_dump(tape, hexadecimal=True)
        dec_text = render_dump(tape, hexadecimal=False)
        self.assertEqual(hex_text.splitlines()[1][:15], "016-031: 00 c8 ")
        self.assertEqual(dec_text.splitlines()[1][:17], "016-031:   0 200 ")
        self.assertTrue(dec_text.splitlines()[-1].startswith("240-255: "))


if __name__ == "__main__":
    unittest.main()
