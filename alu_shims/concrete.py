"""
alu_shims/concrete.py
═════════════════════

Concrete executor for ALU programs.

The executor runs an instruction sequence against concrete digits.  Where
the digits come from, when a branch must be given up and which final
states are acceptable is decided by an *execution environment*.  There are
exactly two:

    SimpleEnvironment        one fixed digit per input, never abandons,
                             accepts any final state (plain simulation)
    ConstrainedEnvironment   every input tries 9..1 (or 1..9), abandons a
                             branch when an ``eql`` contradicts the required
                             outcome, accepts only target-valued final states

Search model
────────────

Execution is a depth-first search with an explicit stack of choice points,
one per ``inp`` reached.  Each branch owns a private copy of the state::

    Running ──► Continue            (next instruction)
            ──► Choice              (``inp``: push a choice point)
            ──► Abandon             (mismatch / fault / final state rejected)
            ──► Accept              (terminal success)

Abandon resumes the most recent choice point with its next candidate digit;
exhausting the outermost choice point is terminal failure and raises
:class:`~alu_shims.errors.NoSolutionError`.  Arithmetic faults abandon only
the branch that raised them.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Union

from alu_shims.errors import (
    DivisionByZeroError,
    ErrorCode,
    ExecutionError,
    InvalidModuloError,
    NoSolutionError,
)
from alu_shims.instructions import (
    NUM_REGISTERS,
    Instruction,
    Literal,
    Opcode,
    Operand,
    Program,
    Register,
)

_log = logging.getLogger(__name__)

DIGITS_ASCENDING: tuple = tuple(range(1, 10))
DIGITS_DESCENDING: tuple = tuple(range(9, 0, -1))


# ═══════════════════════════════════════════════════════════════════════════
# 1. ARITHMETIC
# ═══════════════════════════════════════════════════════════════════════════


def truncating_div(left: int, right: int) -> int:
    """Integer division rounding toward zero."""
    quotient = abs(left) // abs(right)
    return -quotient if (left < 0) != (right < 0) else quotient


def is_valid(opcode: Opcode, left: int, right: int) -> bool:
    """Would ``left <opcode> right`` execute without a fault?"""
    if opcode is Opcode.DIV:
        return right != 0
    if opcode is Opcode.MOD:
        return left >= 0 and right > 0
    return True


def apply(opcode: Opcode, left: int, right: int) -> int:
    """Evaluate one binary opcode on concrete operands.

    Raises
    ------
    DivisionByZeroError
        ``div`` by zero.
    InvalidModuloError
        ``mod`` with ``left < 0`` or ``right <= 0``.
    """
    if opcode is Opcode.ADD:
        return left + right
    if opcode is Opcode.MUL:
        return left * right
    if opcode is Opcode.DIV:
        if right == 0:
            raise DivisionByZeroError(f"div {left} by zero")
        return truncating_div(left, right)
    if opcode is Opcode.MOD:
        if left < 0 or right <= 0:
            raise InvalidModuloError(f"mod {left} by {right}")
        return left % right
    if opcode is Opcode.EQL:
        return 1 if left == right else 0
    raise ValueError(f"{opcode} is not a binary opcode")


# ═══════════════════════════════════════════════════════════════════════════
# 2. STATE
# ═══════════════════════════════════════════════════════════════════════════


@dataclass
class ConcreteState:
    """Registers, digits consumed so far and the program counter."""

    registers: List[int] = field(default_factory=lambda: [0] * NUM_REGISTERS)
    inputs: List[int] = field(default_factory=list)
    pc: int = 0

    def copy(self) -> ConcreteState:
        return ConcreteState(list(self.registers), list(self.inputs), self.pc)

    def register(self, reg: Register) -> int:
        return self.registers[reg.index]

    def get(self, operand: Operand) -> int:
        if isinstance(operand, Literal):
            return operand.value
        return self.registers[operand.index]


# ═══════════════════════════════════════════════════════════════════════════
# 3. ENVIRONMENTS
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class SimpleEnvironment:
    """Run a single, fully specified digit sequence."""

    inputs: Sequence[int]

    def get_input(self, seq_id: int) -> Sequence[int]:
        if seq_id < len(self.inputs):
            return (self.inputs[seq_id],)
        return ()

    def should_abandon(self, instr: Instruction, result: int) -> bool:
        return False

    def can_finish(self, state: ConcreteState) -> bool:
        return True


@dataclass(frozen=True)
class ConstrainedEnvironment:
    """Try every digit, pruning with required comparison outcomes.

    Parameters
    ----------
    constraint : Sequence[Optional[bool]]
        Required outcome per comparison id; ``None`` or a missing position
        means "don't care".
    descending : bool
        Try ``9..1`` (largest answer first) instead of ``1..9``.
    target_register, target_value
        A finished state is accepted only when the register holds the value.
    """

    constraint: Sequence[Optional[bool]]
    descending: bool = True
    target_register: Register = Register.Z
    target_value: int = 0

    def get_input(self, seq_id: int) -> Sequence[int]:
        return DIGITS_DESCENDING if self.descending else DIGITS_ASCENDING

    def should_abandon(self, instr: Instruction, result: int) -> bool:
        if instr.opcode is not Opcode.EQL:
            return False
        idx = instr.seq_id
        if idx is None or idx >= len(self.constraint):
            return False
        required = self.constraint[idx]
        return required is not None and required != (result == 1)

    def can_finish(self, state: ConcreteState) -> bool:
        return state.register(self.target_register) == self.target_value


Environment = Union[SimpleEnvironment, ConstrainedEnvironment]


# ═══════════════════════════════════════════════════════════════════════════
# 4. EXECUTOR
# ═══════════════════════════════════════════════════════════════════════════


class Outcome(enum.Enum):
    """Result of running a branch until it stops."""

    CHOICE = "choice"
    ABANDON = "abandon"
    ACCEPT = "accept"


@dataclass
class _ChoicePoint:
    state: ConcreteState
    dest: Register
    candidates: Iterator[int]


class Executor:
    """Depth-first concrete executor over a :class:`Program`.

    Parameters
    ----------
    program : Program
        The instructions to run.
    environment : Environment
        Input policy, pruning rule and acceptance rule.
    """

    def __init__(self, program: Program, environment: Environment) -> None:
        self.program = program
        self.environment = environment
        self.branches = 0
        self.abandoned = 0
        self.faults = 0
        self._last_fault: Optional[ExecutionError] = None

    def run(self, state: Optional[ConcreteState] = None) -> ConcreteState:
        """Search for an accepted final state.

        Returns
        -------
        ConcreteState
            The accepted state; ``inputs`` holds the chosen digits.

        Raises
        ------
        NoSolutionError
            Every candidate at every choice point was abandoned.
        """
        self.branches = 0
        self.abandoned = 0
        self.faults = 0
        self._last_fault = None
        current: Optional[ConcreteState] = state.copy() if state else ConcreteState()
        stack: List[_ChoicePoint] = []

        while current is not None:
            outcome = self._advance(current)
            if outcome is Outcome.ACCEPT:
                _log.debug(
                    "accepted %s after %d branches (%d abandoned, %d faults)",
                    current.inputs, self.branches, self.abandoned, self.faults,
                )
                return current
            if outcome is Outcome.CHOICE:
                instr = self.program[current.pc]
                candidates = self.environment.get_input(instr.seq_id or 0)
                if not candidates:
                    self._last_fault = ExecutionError(
                        f"no digit available for {instr}",
                        code=ErrorCode.INPUT_EXHAUSTED,
                    )
                stack.append(_ChoicePoint(current, instr.dest, iter(candidates)))
            current = self._next_branch(stack)

        _log.debug(
            "search exhausted after %d branches (%d abandoned, %d faults)",
            self.branches, self.abandoned, self.faults,
        )
        # a simple environment has one branch, so its fault is the reason
        cause = self._last_fault if isinstance(self.environment, SimpleEnvironment) else None
        raise NoSolutionError(
            "no digit sequence satisfies the program",
            code=ErrorCode.SEARCH_EXHAUSTED,
        ) from cause

    def _next_branch(self, stack: List[_ChoicePoint]) -> Optional[ConcreteState]:
        """Pop exhausted choice points and start the next candidate branch."""
        while stack:
            point = stack[-1]
            digit = next(point.candidates, None)
            if digit is None:
                stack.pop()
                continue
            child = point.state.copy()
            child.inputs.append(digit)
            child.registers[point.dest.index] = digit
            child.pc += 1
            self.branches += 1
            return child
        return None

    def _advance(self, state: ConcreteState) -> Outcome:
        """Run ``state`` forward until an input, an abandon or the end."""
        program = self.program
        env = self.environment
        while state.pc < len(program):
            instr = program[state.pc]
            if instr.opcode is Opcode.INP:
                return Outcome.CHOICE
            left = state.registers[instr.dest.index]
            try:
                result = apply(instr.opcode, left, state.get(instr.operand))
            except ExecutionError as exc:
                self.faults += 1
                self._last_fault = exc
                _log.debug("fault at pc=%d %s: %s", state.pc, instr, exc)
                return Outcome.ABANDON
            state.registers[instr.dest.index] = result
            if env.should_abandon(instr, result):
                self.abandoned += 1
                return Outcome.ABANDON
            state.pc += 1
        if env.can_finish(state):
            return Outcome.ACCEPT
        self.abandoned += 1
        return Outcome.ABANDON


def run_program(program: Program, digits: Sequence[int]) -> ConcreteState:
    """Execute ``program`` on exactly ``digits``.

    Raises
    ------
    NoSolutionError
        The run faulted (the arithmetic error is chained as ``__cause__``)
        or ran out of digits.
    """
    return Executor(program, SimpleEnvironment(tuple(digits))).run()
