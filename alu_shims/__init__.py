"""
alu_shims: Symbolic Inversion of ALU Programs
==============================================

This package analyses straight-line programs for the four-register ALU
(``inp``, ``add``, ``mul``, ``div``, ``mod``, ``eql``) and finds the digit
inputs that drive a register to a target value.

Core modules
------------
errors
    Error hierarchy and ``ALU-NNNN`` error codes.
instructions
    Registers, operands, instructions and the program text parser.
concrete
    Concrete executor with simple and constraint-pruned environments.
abstract_domains
    The ``SymbolicBoolean`` lattice and ``BreadCrumb`` vectors.
symbolic_exec
    Set-valued symbolic values and the forward pass.
solver
    Constraint extraction and the largest / smallest answer search.

Quick start
-----------
>>> from alu_shims import parse_program, solve
>>> program = parse_program(open("monad.txt").read())
>>> solution = solve(program)
>>> solution.largest_number, solution.smallest_number

Package layout
--------------
::

    alu_shims/
    ├── __init__.py            ← this file
    ├── errors.py
    ├── instructions.py
    ├── concrete.py
    ├── abstract_domains.py
    ├── symbolic_exec.py
    ├── solver.py
    ├── main.py
    └── __main__.py
"""

from __future__ import annotations

from alu_shims.abstract_domains import BreadCrumb, SymbolicBoolean
from alu_shims.concrete import (
    ConcreteState,
    ConstrainedEnvironment,
    Executor,
    SimpleEnvironment,
    run_program,
)
from alu_shims.errors import (
    AluError,
    AnalysisError,
    DivisionByZeroError,
    ErrorCode,
    ExecutionError,
    InternalError,
    InvalidModuloError,
    NoSolutionError,
    ParseError,
    StateExplosionError,
)
from alu_shims.instructions import (
    Instruction,
    Literal,
    Opcode,
    Program,
    Register,
    parse_program,
)
from alu_shims.symbolic_exec import SymbolicState, SymbolicValue
from alu_shims.solver import (
    Solution,
    SolverConfig,
    compute_symbolic,
    find_answer,
    largest_model_number,
    smallest_model_number,
    solve,
)

__version__ = "0.2.0"
__author__ = "alu-shims contributors"
__license__ = "MIT"

__all__ = [
    # errors
    "AluError",
    "ErrorCode",
    "ParseError",
    "ExecutionError",
    "DivisionByZeroError",
    "InvalidModuloError",
    "AnalysisError",
    "NoSolutionError",
    "StateExplosionError",
    "InternalError",
    # instructions
    "Register",
    "Literal",
    "Opcode",
    "Instruction",
    "Program",
    "parse_program",
    # concrete
    "ConcreteState",
    "SimpleEnvironment",
    "ConstrainedEnvironment",
    "Executor",
    "run_program",
    # abstract_domains
    "SymbolicBoolean",
    "BreadCrumb",
    # symbolic_exec
    "SymbolicValue",
    "SymbolicState",
    # solver
    "SolverConfig",
    "Solution",
    "compute_symbolic",
    "find_answer",
    "largest_model_number",
    "smallest_model_number",
    "solve",
    "__version__",
]
