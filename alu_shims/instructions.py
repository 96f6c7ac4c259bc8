"""
alu_shims/instructions.py
═════════════════════════

Instruction model for the ALU register machine.

The machine has four integer registers (``w``, ``x``, ``y``, ``z``, all
starting at ``0``) and six opcodes:

  Mnemonic   Operands          Semantics
  ─────────  ────────────────  ─────────────────────────────────────────────
  inp        a                 a ← next input digit
  add        a, b              a ← a + b
  mul        a, b              a ← a * b
  div        a, b              a ← a / b    (truncating; fails if b = 0)
  mod        a, b              a ← a % b    (fails if a < 0 or b ≤ 0)
  eql        a, b              a ← 1 if a = b else 0

``a`` is always a register, ``b`` is a register or an integer literal.

Every ``inp`` carries its input sequence id and every ``eql`` a unique
comparison id, both assigned 0.. in appearance order (separately).  The
comparison id is the index used by breadcrumbs in
:mod:`alu_shims.abstract_domains`.
"""

from __future__ import annotations

import enum
import itertools
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple, Union

from alu_shims.errors import ErrorCode, ParseError


# ═══════════════════════════════════════════════════════════════════════════
# 1. REGISTERS AND OPERANDS
# ═══════════════════════════════════════════════════════════════════════════


class Register(enum.Enum):
    """One of the four fixed register slots."""

    W = 0
    X = 1
    Y = 2
    Z = 3

    @property
    def index(self) -> int:
        return self.value

    @classmethod
    def parse(cls, text: str, line: Optional[int] = None) -> Register:
        try:
            return cls[text.strip().upper()]
        except KeyError:
            raise ParseError(
                f"unknown register {text!r}",
                code=ErrorCode.UNKNOWN_REGISTER,
                line=line,
            ) from None

    def __str__(self) -> str:
        return self.name


NUM_REGISTERS = len(Register)


@dataclass(frozen=True, slots=True)
class Literal:
    """An integer literal operand."""

    value: int

    def __str__(self) -> str:
        return str(self.value)


Operand = Union[Literal, Register]


def parse_operand(text: str, line: Optional[int] = None) -> Operand:
    """Parse ``text`` as an integer literal, falling back to a register."""
    try:
        return Literal(int(text))
    except ValueError:
        return Register.parse(text, line)


# ═══════════════════════════════════════════════════════════════════════════
# 2. INSTRUCTIONS
# ═══════════════════════════════════════════════════════════════════════════


class Opcode(enum.Enum):
    """Every opcode of the ALU."""

    INP = "inp"
    ADD = "add"
    MUL = "mul"
    DIV = "div"
    MOD = "mod"
    EQL = "eql"


_BINARY_OPCODES = frozenset(
    {Opcode.ADD, Opcode.MUL, Opcode.DIV, Opcode.MOD, Opcode.EQL}
)


@dataclass(frozen=True, slots=True)
class Instruction:
    """A single ALU instruction.

    Parameters
    ----------
    opcode : Opcode
        The operation.
    dest : Register
        Destination register; also the left operand of binary opcodes.
    operand : Optional[Operand]
        Right operand for binary opcodes, ``None`` for ``inp``.
    seq_id : Optional[int]
        Input sequence id for ``inp``, comparison id for ``eql``,
        ``None`` otherwise.
    """

    opcode: Opcode
    dest: Register
    operand: Optional[Operand] = None
    seq_id: Optional[int] = None

    # Factories --------------------------------------------------------------

    @classmethod
    def input(cls, seq_id: int, dest: Register) -> Instruction:
        return cls(Opcode.INP, dest, None, seq_id)

    @classmethod
    def add(cls, dest: Register, operand: Operand) -> Instruction:
        return cls(Opcode.ADD, dest, operand)

    @classmethod
    def mul(cls, dest: Register, operand: Operand) -> Instruction:
        return cls(Opcode.MUL, dest, operand)

    @classmethod
    def div(cls, dest: Register, operand: Operand) -> Instruction:
        return cls(Opcode.DIV, dest, operand)

    @classmethod
    def mod(cls, dest: Register, operand: Operand) -> Instruction:
        return cls(Opcode.MOD, dest, operand)

    @classmethod
    def equal(cls, comparison_id: int, dest: Register, operand: Operand) -> Instruction:
        return cls(Opcode.EQL, dest, operand, comparison_id)

    # Queries ----------------------------------------------------------------

    @property
    def is_input(self) -> bool:
        return self.opcode is Opcode.INP

    @property
    def is_comparison(self) -> bool:
        return self.opcode is Opcode.EQL

    def __str__(self) -> str:
        name = self.opcode.value
        if self.seq_id is not None:
            name = f"{name}_{self.seq_id}"
        if self.operand is None:
            return f"{name}({self.dest})"
        return f"{name}({self.dest}, {self.operand})"


@dataclass(frozen=True)
class Program:
    """An immutable, parsed instruction sequence."""

    instructions: Tuple[Instruction, ...]

    @property
    def num_inputs(self) -> int:
        return sum(1 for i in self.instructions if i.is_input)

    @property
    def num_comparisons(self) -> int:
        return sum(1 for i in self.instructions if i.is_comparison)

    def __len__(self) -> int:
        return len(self.instructions)

    def __iter__(self) -> Iterator[Instruction]:
        return iter(self.instructions)

    def __getitem__(self, index: int) -> Instruction:
        return self.instructions[index]

    def format(self) -> str:
        return "\n".join(str(i) for i in self.instructions)


# ═══════════════════════════════════════════════════════════════════════════
# 3. PARSER
# ═══════════════════════════════════════════════════════════════════════════


def parse_statement(
    text: str,
    line: int,
    next_input: Iterator[int],
    next_equal: Iterator[int],
) -> Instruction:
    """Parse one non-blank line into an :class:`Instruction`."""
    words = text.split()
    try:
        opcode = Opcode(words[0].lower())
    except ValueError:
        raise ParseError(
            f"unknown opcode {words[0]!r}",
            code=ErrorCode.UNKNOWN_OPCODE,
            line=line,
        ) from None

    expected = 3 if opcode in _BINARY_OPCODES else 2
    if len(words) != expected:
        raise ParseError(
            f"{opcode.value} expects {expected - 1} operand(s), got {len(words) - 1}",
            code=ErrorCode.OPERAND_COUNT,
            line=line,
        )

    dest = Register.parse(words[1], line)
    if opcode is Opcode.INP:
        return Instruction.input(next(next_input), dest)
    operand = parse_operand(words[2], line)
    if opcode is Opcode.EQL:
        return Instruction.equal(next(next_equal), dest, operand)
    return Instruction(opcode, dest, operand)


def parse_program(text: str) -> Program:
    """Parse a whole program, one instruction per line.

    Blank lines and ``#`` comments are skipped.  Any malformed line raises
    :class:`ParseError` before anything is executed.
    """
    next_input = itertools.count()
    next_equal = itertools.count()
    result: List[Instruction] = []
    for lineno, raw in enumerate(text.splitlines(), start=1):
        stripped = raw.split("#", 1)[0].strip()
        if stripped:
            result.append(parse_statement(stripped, lineno, next_input, next_equal))
    return Program(tuple(result))
