"""
alu_shims/solver.py
═══════════════════

Inverting an ALU program: find the digit sequences that drive the target
register (``z`` by default) to the target value (``0``).

    ┌──────────┐  forward pass   ┌──────────────┐  crumb of target   ┌────────────┐
    │ Program  │ ──────────────► │ SymbolicState│ ─────────────────► │ constraint │
    └──────────┘                 └──────────────┘                    └─────┬──────┘
                                                                           │
                                      ConstrainedEnvironment (9..1 / 1..9) │
                                                                           ▼
                                                                   ┌──────────────┐
                                                                   │   Executor   │ ──► digits
                                                                   └──────────────┘

The constraint is only a *necessary* condition on the comparison outcomes.
It does not encode which digits can hold simultaneously, so the search still
backtracks; it just gets to abandon a branch at the first comparison that
goes the wrong way.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from alu_shims.concrete import ConstrainedEnvironment, Executor
from alu_shims.errors import ErrorCode, NoSolutionError
from alu_shims.instructions import Program, Register
from alu_shims.symbolic_exec import SymbolicState

_log = logging.getLogger(__name__)

Constraint = List[Optional[bool]]


@dataclass
class SolverConfig:
    """Tuning knobs for the solver."""

    target_register: Register = Register.Z
    target_value: int = 0
    max_values: Optional[int] = None
    record_history: bool = False

    def validate(self) -> List[str]:
        """Return a list of validation warnings (empty if valid)."""
        warnings: List[str] = []
        if self.max_values is not None and self.max_values <= 0:
            warnings.append("max_values must be positive")
        if not isinstance(self.target_register, Register):
            warnings.append("target_register must be a Register")
        return warnings


@dataclass
class Solution:
    """Largest and smallest accepted digit sequences."""

    largest: List[int]
    smallest: List[int]
    constraint: Constraint = field(default_factory=list)

    @property
    def largest_number(self) -> int:
        return digits_to_int(self.largest)

    @property
    def smallest_number(self) -> int:
        return digits_to_int(self.smallest)


def digits_to_int(digits: Sequence[int]) -> int:
    result = 0
    for digit in digits:
        result = result * 10 + digit
    return result


def forward_pass(program: Program, config: Optional[SolverConfig] = None) -> SymbolicState:
    """Run the symbolic pass over the whole program."""
    config = config or SolverConfig()
    state = SymbolicState(
        max_values=config.max_values,
        record_history=config.record_history,
    )
    return state.evaluate(program)


def compute_symbolic(program: Program, config: Optional[SolverConfig] = None) -> Constraint:
    """Derive the per-comparison constraint for reaching the target.

    Raises
    ------
    NoSolutionError
        The target value is not among the values the target register can
        hold at the end of the program.
    """
    config = config or SolverConfig()
    state = forward_pass(program, config)
    final = state.register(config.target_register)
    crumb = final.get(config.target_value)
    if crumb is None:
        raise NoSolutionError(
            f"{config.target_register} can never be {config.target_value} "
            f"({len(final)} reachable value(s))",
            code=ErrorCode.TARGET_UNREACHABLE,
        )
    constraint = crumb.get_constraint()
    _log.info("constraint for %s=%d: %s", config.target_register, config.target_value, crumb)
    return constraint


def find_answer(
    program: Program,
    constraint: Sequence[Optional[bool]],
    descending: bool,
    config: Optional[SolverConfig] = None,
) -> List[int]:
    """Backtracking search for the first accepted digit sequence.

    Digits are tried ``9..1`` when ``descending`` (the largest answer comes
    first) and ``1..9`` otherwise.
    """
    config = config or SolverConfig()
    env = ConstrainedEnvironment(
        constraint=tuple(constraint),
        descending=descending,
        target_register=config.target_register,
        target_value=config.target_value,
    )
    executor = Executor(program, env)
    state = executor.run()
    _log.info(
        "%s answer %s (%d branches, %d abandoned, %d faults)",
        "largest" if descending else "smallest",
        "".join(map(str, state.inputs)),
        executor.branches, executor.abandoned, executor.faults,
    )
    return state.inputs


def largest_model_number(program: Program, config: Optional[SolverConfig] = None) -> int:
    constraint = compute_symbolic(program, config)
    return digits_to_int(find_answer(program, constraint, True, config))


def smallest_model_number(program: Program, config: Optional[SolverConfig] = None) -> int:
    constraint = compute_symbolic(program, config)
    return digits_to_int(find_answer(program, constraint, False, config))


def solve(program: Program, config: Optional[SolverConfig] = None) -> Solution:
    """Run the forward pass once and search in both directions."""
    constraint = compute_symbolic(program, config)
    return Solution(
        largest=find_answer(program, constraint, True, config),
        smallest=find_answer(program, constraint, False, config),
        constraint=constraint,
    )
