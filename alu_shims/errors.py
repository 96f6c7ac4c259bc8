# alu_shims/errors.py
"""
ALU Error Types

Error handling infrastructure for the ALU program pipeline: parsing the
instruction text, concrete execution, symbolic analysis and the
constrained search.

Architecture Overview:
─────────────────────
┌─────────────────────────────────────────────────────────────────────────────┐
│                          Error Hierarchy                                     │
├─────────────────────────────────────────────────────────────────────────────┤
│  AluError (base)                                                            │
│  ├── ParseError            - Malformed instruction text                     │
│  ├── ExecutionError        - Concrete arithmetic faults (branch-local)      │
│  │   ├── DivisionByZeroError                                                │
│  │   └── InvalidModuloError                                                 │
│  ├── AnalysisError         - Symbolic pass / search outcomes                │
│  │   ├── NoSolutionError                                                    │
│  │   └── StateExplosionError                                                │
│  └── InternalError         - Engine bugs (should never happen)              │
└─────────────────────────────────────────────────────────────────────────────┘

Error Codes:
────────────
Each error has a unique code ALU-XXXX where XXXX is a 4-digit number:
  - 1000-1999: Parse errors
  - 5000-5999: Runtime (concrete execution) errors
  - 6000-6999: Analysis errors
  - 9000-9999: Internal errors

Parse errors are fatal and abort before any execution starts.  Runtime
errors only ever kill the execution branch that raised them; the search
treats them as "abandon and backtrack".  ``NoSolutionError`` is an expected
outcome, not a defect.
"""

from __future__ import annotations

from enum import Enum, unique
from typing import Any, Dict, Optional


@unique
class ErrorSeverity(Enum):
    """Severity levels for ALU errors."""

    FATAL = "fatal"
    ERROR = "error"
    WARNING = "warning"

    def is_error(self) -> bool:
        return self in (ErrorSeverity.FATAL, ErrorSeverity.ERROR)


@unique
class ErrorPhase(Enum):
    """Pipeline phase where the error occurred."""

    PARSE = "parse"
    RUNTIME = "runtime"
    ANALYSIS = "analysis"
    INTERNAL = "internal"


@unique
class ErrorCode(Enum):
    """
    Structured error codes.

    The value is ``(number, phase, default severity)``; :attr:`code` renders
    the public ``ALU-NNNN`` form.
    """

    # ═══════════════════════════════════════════════════════════════════════
    # PARSE ERRORS (1000-1999)
    # ═══════════════════════════════════════════════════════════════════════

    UNKNOWN_OPCODE = (1001, ErrorPhase.PARSE, ErrorSeverity.FATAL)
    UNKNOWN_REGISTER = (1002, ErrorPhase.PARSE, ErrorSeverity.FATAL)
    OPERAND_COUNT = (1003, ErrorPhase.PARSE, ErrorSeverity.FATAL)

    # ═══════════════════════════════════════════════════════════════════════
    # RUNTIME ERRORS (5000-5999)
    # ═══════════════════════════════════════════════════════════════════════

    DIVISION_BY_ZERO = (5001, ErrorPhase.RUNTIME, ErrorSeverity.ERROR)
    INVALID_MODULO = (5002, ErrorPhase.RUNTIME, ErrorSeverity.ERROR)
    INPUT_EXHAUSTED = (5003, ErrorPhase.RUNTIME, ErrorSeverity.ERROR)

    # ═══════════════════════════════════════════════════════════════════════
    # ANALYSIS ERRORS (6000-6999)
    # ═══════════════════════════════════════════════════════════════════════

    TARGET_UNREACHABLE = (6001, ErrorPhase.ANALYSIS, ErrorSeverity.FATAL)
    SEARCH_EXHAUSTED = (6002, ErrorPhase.ANALYSIS, ErrorSeverity.FATAL)
    STATE_EXPLOSION = (6003, ErrorPhase.ANALYSIS, ErrorSeverity.FATAL)

    # ═══════════════════════════════════════════════════════════════════════
    # INTERNAL ERRORS (9000-9999)
    # ═══════════════════════════════════════════════════════════════════════

    INTERNAL_ERROR = (9000, ErrorPhase.INTERNAL, ErrorSeverity.FATAL)

    @property
    def number(self) -> int:
        return self.value[0]

    @property
    def phase(self) -> ErrorPhase:
        return self.value[1]

    @property
    def default_severity(self) -> ErrorSeverity:
        return self.value[2]

    @property
    def code(self) -> str:
        """Get the full error code string."""
        return f"ALU-{self.number:04d}"


class AluError(Exception):
    """
    Base exception for all ALU errors.

    Carries a structured :class:`ErrorCode`, a human readable message and,
    for parse errors, the 1-based source line.
    """

    default_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        line: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.line = line

    @property
    def severity(self) -> ErrorSeverity:
        return self.code.default_severity

    @property
    def phase(self) -> ErrorPhase:
        return self.code.phase

    def to_dict(self) -> Dict[str, Any]:
        """Serialise for JSON output."""
        data: Dict[str, Any] = {
            "code": self.code.code,
            "phase": self.phase.value,
            "severity": self.severity.value,
            "message": self.message,
        }
        if self.line is not None:
            data["line"] = self.line
        return data

    def __str__(self) -> str:
        where = f" line {self.line}:" if self.line is not None else ""
        return f"[{self.code.code}]{where} {self.message}"


# ───────────────────────────────────────────────────────────────────────────────
# PARSE ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class ParseError(AluError):
    """Malformed instruction text."""

    default_code = ErrorCode.UNKNOWN_OPCODE


# ───────────────────────────────────────────────────────────────────────────────
# RUNTIME ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class ExecutionError(AluError):
    """A concrete execution branch failed."""

    default_code = ErrorCode.INPUT_EXHAUSTED


class DivisionByZeroError(ExecutionError):
    """``div`` with a zero-valued operand."""

    default_code = ErrorCode.DIVISION_BY_ZERO


class InvalidModuloError(ExecutionError):
    """``mod`` with a negative left operand or a non-positive right operand."""

    default_code = ErrorCode.INVALID_MODULO


# ───────────────────────────────────────────────────────────────────────────────
# ANALYSIS ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class AnalysisError(AluError):
    """Base class for symbolic pass and search failures."""

    default_code = ErrorCode.TARGET_UNREACHABLE


class NoSolutionError(AnalysisError):
    """No digit sequence reaches the target value."""

    default_code = ErrorCode.SEARCH_EXHAUSTED


class StateExplosionError(AnalysisError):
    """A symbolic value grew past the configured limit."""

    default_code = ErrorCode.STATE_EXPLOSION


class InternalError(AluError):
    """Engine bug."""

    default_code = ErrorCode.INTERNAL_ERROR
