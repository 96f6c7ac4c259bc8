# tests/conftest.py
"""
Shared sample programs and fixtures for the alu_shims test-suite.

Every program but the fourteen-block checker is small enough for a
brute-force cross-check; the expected answers were worked out by hand.
"""

from typing import Sequence

import pytest

from alu_shims.instructions import Program, parse_program


# ═══════════════════════════════════════════════════════════════════════════
#  Sample programs
# ═══════════════════════════════════════════════════════════════════════════

# Splits one digit into bits: z = bit0, y = bit1, x = bit2, w = bit3.
BITS_PROGRAM = """\
inp w
add z w
mod z 2
div w 2
add y w
mod y 2
div w 2
add x w
mod x 2
div w 2
mod w 2
"""

# y = 1 exactly when the two digits spell 56.
TWO_DIGIT_PROGRAM = """\
inp w
mul w 10
inp x
add w x
add y w
eql y 56
"""

# y = 0 / (d0 - 9) faults for d0 == 9; z = d1 - 4.
DIV_FAULT_PROGRAM = """\
inp w
add x w
add x -9
div y x
inp z
add z -4
"""

# (d0 - 5) mod 3 faults for d0 < 5; z = d1 - 1.
MOD_FAULT_PROGRAM = """\
inp w
add x w
add x -5
mod x 3
inp z
add z -1
"""

# x always ends at -1, but the uncorrelated forward pass thinks 0 is possible.
CORRELATED_PROGRAM = """\
inp w
add x w
add x 1
mul x -1
add x w
"""

PAIR_OFFSETS = (2, -3, 0, 5, -1, 4, -8)
PAIR_LARGEST = 79969949985991
PAIR_SMALLEST = 13411116211591

MONAD_BLOCKS = ((1, 12, 4), (1, 11, 10), (26, -6, 7), (26, -9, 2))
MONAD_LARGEST = 9594
MONAD_SMALLEST = 6151

# Seven push blocks and seven pop blocks, nested like a full-size checker:
# pairs (0, 7), (1, 2), (3, 6), (4, 5), (8, 13), (9, 10), (11, 12).
MONAD14_BLOCKS = (
    (1, 11, 7), (1, 13, 5), (26, -8, 1), (1, 10, 10), (1, 12, 2),
    (26, -2, 9), (26, -4, 3), (26, -12, 6), (1, 15, 14), (1, 14, 3),
    (26, 4, 2), (1, 10, 0), (26, -1, 8), (26, -14, 4),
)
MONAD14_LARGEST = 99639994929989
MONAD14_SMALLEST = 64111171118211


def make_pair_validator(offsets: Sequence[int]) -> str:
    """Each offset ``k`` reads digits ``(a, b)`` and bumps z unless ``b == a + k``."""
    lines = []
    for k in offsets:
        lines += ["inp x", f"add x {k}", "inp w", "eql x w", "eql x 0", "add z x"]
    return "\n".join(lines) + "\n"


def make_monad(blocks: Sequence[Sequence[int]]) -> str:
    """Build a digit checker from ``(divisor, check, offset)`` blocks.

    A block with divisor 1 pushes ``digit + offset`` onto the base-26 stack
    in z; a block with divisor 26 pops it and requires
    ``popped + check == digit``.
    """
    lines = []
    for a, b, c in blocks:
        lines += [
            "inp w",
            "mul x 0",
            "add x z",
            "mod x 26",
            f"div z {a}",
            f"add x {b}",
            "eql x w",
            "eql x 0",
            "mul y 0",
            "add y 25",
            "mul y x",
            "add y 1",
            "mul z y",
            "mul y 0",
            "add y w",
            f"add y {c}",
            "mul y x",
            "add z y",
        ]
    return "\n".join(lines) + "\n"


PAIR_VALIDATOR = make_pair_validator(PAIR_OFFSETS)
MONAD_PROGRAM = make_monad(MONAD_BLOCKS)
MONAD14_PROGRAM = make_monad(MONAD14_BLOCKS)


def matched_pops_constraint(blocks: Sequence[Sequence[int]]) -> list:
    """Comparison outcomes of a run where every pop block matches."""
    constraint = []
    for a, _b, _c in blocks:
        constraint += [False, True] if a == 1 else [True, False]
    return constraint


# ═══════════════════════════════════════════════════════════════════════════
#  Fixtures
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def bits_program() -> Program:
    return parse_program(BITS_PROGRAM)


@pytest.fixture
def two_digit_program() -> Program:
    return parse_program(TWO_DIGIT_PROGRAM)


@pytest.fixture
def pair_validator() -> Program:
    return parse_program(PAIR_VALIDATOR)


@pytest.fixture
def monad_program() -> Program:
    return parse_program(MONAD_PROGRAM)


@pytest.fixture
def monad14_program() -> Program:
    return parse_program(MONAD14_PROGRAM)


@pytest.fixture
def program_file(tmp_path):
    """Write program text to a temp file and return its path as a string."""
    def _write(text: str, name: str = "program.txt") -> str:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return str(path)
    return _write
