#!/usr/bin/env python3
"""alu_shims/main.py: CLI entry-point for the ALU program solver.

Usage examples
--------------
    # Largest and smallest digit sequences that zero register z
    python -m alu_shims solve monad.txt

    # Only the largest, as JSON
    python -m alu_shims solve monad.txt --largest -f json

    # Run the program concretely on one digit sequence
    python -m alu_shims run monad.txt 13579246899999

    # Show what a register can hold at the end, and the derived constraint
    python -m alu_shims analyze monad.txt --register z

    # Parse and pretty-print the instruction list (debugging aid)
    python -m alu_shims parse monad.txt

Exit codes
----------
    0   Success.
    1   No solution: the target value is unreachable or the search failed.
    2   Infrastructure failure (bad file, parse error, etc.).

``PROGRAM`` may be ``-`` to read the program from standard input.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import textwrap
import time
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, TextIO

from alu_shims.concrete import run_program
from alu_shims.errors import AluError, NoSolutionError
from alu_shims.instructions import Program, Register, parse_program
from alu_shims.solver import (
    SolverConfig,
    compute_symbolic,
    digits_to_int,
    find_answer,
    forward_pass,
)

_log = logging.getLogger("alu_shims")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_NO_SOLUTION: int = 1
EXIT_INFRA: int = 2


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``alu_shims`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    root = logging.getLogger("alu_shims")
    root.setLevel(level)
    # main() may run many times in one process
    if root.handlers:
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root.addHandler(handler)


def _read_program(raw: str, stdin: TextIO) -> Program:
    """Load and parse a program from a path, or from *stdin* for ``-``."""
    if raw == "-":
        text = stdin.read()
    else:
        p = Path(raw).expanduser().resolve()
        if not p.exists():
            _log.error("program not found: %s", p)
            raise SystemExit(EXIT_INFRA)
        text = p.read_text(encoding="utf-8")
    program = parse_program(text)
    _log.info(
        "parsed %d instruction(s): %d input(s), %d comparison(s)",
        len(program), program.num_inputs, program.num_comparisons,
    )
    return program


def _config_from_args(args: argparse.Namespace) -> SolverConfig:
    config = SolverConfig(
        target_register=Register.parse(args.target_register),
        target_value=args.target_value,
        max_values=args.max_values,
    )
    for warning in config.validate():
        _log.warning("config: %s", warning)
    return config


def _emit(payload: Dict[str, Any], fmt: str, stream: TextIO) -> None:
    if fmt == "json":
        stream.write(json.dumps(payload) + "\n")
        return
    for key, value in payload.items():
        stream.write(f"{key}: {value}\n")


# ===========================================================================
# Sub-command implementations
# ===========================================================================

def cmd_solve(args: argparse.Namespace) -> int:
    """Forward pass once, then search for the requested answers."""
    program = _read_program(args.program, args.stdin)
    config = _config_from_args(args)

    t0 = time.monotonic()
    constraint = compute_symbolic(program, config)
    _log.info("forward pass completed in %.3fs", time.monotonic() - t0)

    payload: Dict[str, Any] = {}
    if args.which in ("largest", "both"):
        payload["largest"] = digits_to_int(find_answer(program, constraint, True, config))
    if args.which in ("smallest", "both"):
        payload["smallest"] = digits_to_int(find_answer(program, constraint, False, config))
    _log.info("search completed in %.3fs", time.monotonic() - t0)

    _emit(payload, args.format, args.stdout)
    return EXIT_OK


def cmd_run(args: argparse.Namespace) -> int:
    """Execute the program concretely on one digit sequence."""
    program = _read_program(args.program, args.stdin)
    if not args.digits or any(c not in "0123456789" for c in args.digits):
        _log.error("digits must be a string of decimal digits: %r", args.digits)
        return EXIT_INFRA
    state = run_program(program, [int(c) for c in args.digits])
    payload = {str(reg).lower(): state.register(reg) for reg in Register}
    _emit(payload, args.format, args.stdout)
    return EXIT_OK


def cmd_analyze(args: argparse.Namespace) -> int:
    """Print the final symbolic value of a register."""
    program = _read_program(args.program, args.stdin)
    config = _config_from_args(args)
    state = forward_pass(program, config)
    value = state.register(Register.parse(args.register))
    crumb = state.register(config.target_register).get(config.target_value)

    payload: Dict[str, Any] = {
        "register": args.register.lower(),
        "count": len(value),
        "values": value.values() if args.format == "json" else str(value),
        "constraint": crumb.get_constraint() if crumb is not None else None,
    }
    _emit(payload, args.format, args.stdout)
    return EXIT_OK


def cmd_parse(args: argparse.Namespace) -> int:
    """Pretty-print the parsed instruction list."""
    program = _read_program(args.program, args.stdin)
    args.stdout.write(program.format() + "\n")
    return EXIT_OK


# ===========================================================================
# Argument parser construction
# ===========================================================================

def build_parser() -> argparse.ArgumentParser:
    """Construct the full CLI argument parser with subcommands."""
    from alu_shims import __version__

    parser = argparse.ArgumentParser(
        prog="alu-shims",
        description=(
            "Symbolic inversion of ALU programs: find the digit inputs\n"
            "that drive a register to a target value."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              alu-shims solve monad.txt
              alu-shims run monad.txt 13579246899999
              alu-shims analyze monad.txt --register z -f json
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug).",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    def _add_program_arg(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "program",
            metavar="PROGRAM",
            help='ALU program file ("-" for stdin).',
        )

    def _add_format_arg(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "-f", "--format",
            choices=["text", "json"],
            default="text",
            help="Output format (default: text).",
        )

    def _add_solver_args(p: argparse.ArgumentParser) -> None:
        g = p.add_argument_group("solver tuning")
        g.add_argument(
            "--target-register",
            default="z",
            metavar="REG",
            help="Register that must reach the target value (default: z).",
        )
        g.add_argument(
            "--target-value",
            type=int,
            default=0,
            metavar="N",
            help="Value the target register must hold at the end (default: 0).",
        )
        g.add_argument(
            "--max-values",
            type=int,
            default=None,
            metavar="N",
            help="Abort if a symbolic value grows past N concrete values.",
        )

    # --- solve -------------------------------------------------------------
    p_solve = subparsers.add_parser(
        "solve",
        help="Find the largest and/or smallest accepted digit sequence.",
    )
    _add_program_arg(p_solve)
    which = p_solve.add_mutually_exclusive_group()
    which.add_argument(
        "--largest", dest="which", action="store_const", const="largest",
        help="Only search for the largest answer.",
    )
    which.add_argument(
        "--smallest", dest="which", action="store_const", const="smallest",
        help="Only search for the smallest answer.",
    )
    which.add_argument(
        "--both", dest="which", action="store_const", const="both",
        help="Search for both answers (default).",
    )
    p_solve.set_defaults(which="both", func=cmd_solve)
    _add_format_arg(p_solve)
    _add_solver_args(p_solve)

    # --- run ---------------------------------------------------------------
    p_run = subparsers.add_parser(
        "run",
        help="Execute the program on one digit sequence.",
    )
    _add_program_arg(p_run)
    p_run.add_argument(
        "digits",
        metavar="DIGITS",
        help="Input digits, e.g. 13579246899999.",
    )
    _add_format_arg(p_run)
    p_run.set_defaults(func=cmd_run)

    # --- analyze -----------------------------------------------------------
    p_analyze = subparsers.add_parser(
        "analyze",
        aliases=["analyse"],
        help="Show the final symbolic value of a register.",
    )
    _add_program_arg(p_analyze)
    p_analyze.add_argument(
        "-r", "--register",
        default="z",
        metavar="REG",
        help="Register to show (default: z).",
    )
    _add_format_arg(p_analyze)
    _add_solver_args(p_analyze)
    p_analyze.set_defaults(func=cmd_analyze)

    # --- parse -------------------------------------------------------------
    p_parse = subparsers.add_parser(
        "parse",
        help="Parse a program and print the instruction list.",
    )
    _add_program_arg(p_parse)
    p_parse.set_defaults(func=cmd_parse)

    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def main(
    argv: Optional[Sequence[str]] = None,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
) -> int:
    """Run the CLI.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` → ``sys.argv[1:]``.
    stdin, stdout:
        Streams for ``-`` programs and for results.

    Returns
    -------
    int
        Exit code (see module docstring for semantics).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    args.stdin = stdin or sys.stdin
    args.stdout = stdout or sys.stdout

    _configure_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    try:
        return args.func(args)
    except NoSolutionError as exc:
        _log.error("%s", exc)
        if getattr(args, "format", "text") == "json":
            _emit({"error": exc.to_dict()}, "json", args.stdout)
        else:
            args.stdout.write("no solution\n")
        return EXIT_NO_SOLUTION
    except AluError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
