"""
alu_shims.symbolic_exec
=======================

Set-valued symbolic execution of ALU programs.

Every register holds a :class:`SymbolicValue`: the map from each concrete
value the register can hold at that point to a
:class:`~alu_shims.abstract_domains.BreadCrumb` telling which comparison
outcomes are necessary to reach it.  The forward pass evaluates the whole
program once, left to right, and never revisits an instruction.

Transfer functions
------------------
A binary instruction ``a <op> b`` iterates every pair
``(va, ca) × (vb, cb)`` of the operand values, computes ``va <op> vb`` and
files the result under a combined crumb.  Several pairs landing on the same
result are merged with ``join``.

========  ==================================================================
``add``   ``ca ∧ cb``
``mul``   ``ca ∨ cb`` if both are 0; ``ca`` if only ``va`` is 0; ``cb`` if
          only ``vb`` is 0; ``ca ∧ cb`` otherwise
``div``   ``ca`` if ``va`` is 0, ``ca ∧ cb`` otherwise
``mod``   same as ``div``
``eql``   ``ca ∧ cb``, then position ``id`` is set to ``result == 1``
``inp``   ``{1..9 ↦ ∅}``
========  ==================================================================

A zero operand decides a product by itself, so the other side's history is
irrelevant to it.  That rule keeps accumulator registers from combining
every unrelated constraint of the program.

Pairs that would fault concretely (``div`` by zero, ``mod`` with a negative
dividend or non-positive modulus) are dropped: no execution survives them.
When both operands are the same register only the diagonal ``(v, v)`` pairs
are combined.

Sharing
-------
A register may hold millions of values but only a handful of distinct
crumbs.  A :class:`CrumbCache` lives for one forward pass: it interns every
crumb by content and memoizes ``meet``, ``join`` and ``set`` on the
identities of interned crumbs.  Operand values are grouped by crumb, so each
``(left crumb, right crumb)`` combination is computed once per instruction
and every value filed under it points at the same object.

Published values are never mutated, so the four registers of a state, and
states across instructions, share values and crumbs freely.
"""

from __future__ import annotations

import logging
import operator
from types import MappingProxyType
from typing import (
    Callable,
    Dict,
    ItemsView,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
)

from alu_shims.abstract_domains import BreadCrumb
from alu_shims.concrete import is_valid, truncating_div
from alu_shims.errors import ErrorCode, InternalError, StateExplosionError
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

CrumbOp = Callable[[BreadCrumb, BreadCrumb], BreadCrumb]


# ═══════════════════════════════════════════════════════════════════════════
#  CRUMB CACHE
# ═══════════════════════════════════════════════════════════════════════════


class CrumbCache:
    """Interned breadcrumbs and memoized combinations for one forward pass.

    Every crumb handed out is the canonical instance for its contents, so
    equal crumbs are identical and the memo tables can key on ``id()``.
    The cache keeps every canonical crumb alive, which keeps those ids
    stable for its lifetime.
    """

    __slots__ = ("_canonical", "_ids", "_meets", "_joins", "_sets")

    def __init__(self) -> None:
        self._canonical: Dict[BreadCrumb, BreadCrumb] = {}
        self._ids: Dict[int, BreadCrumb] = {}
        self._meets: Dict[Tuple[int, int], BreadCrumb] = {}
        self._joins: Dict[Tuple[int, int], BreadCrumb] = {}
        self._sets: Dict[Tuple[int, int, bool], BreadCrumb] = {}
        self.intern(BreadCrumb.empty())

    def __len__(self) -> int:
        return len(self._canonical)

    def intern(self, crumb: BreadCrumb) -> BreadCrumb:
        """Return the canonical crumb equal to ``crumb``."""
        if self._ids.get(id(crumb)) is crumb:
            return crumb
        canonical = self._canonical.setdefault(crumb, crumb)
        self._ids[id(canonical)] = canonical
        return canonical

    def meet(self, a: BreadCrumb, b: BreadCrumb) -> BreadCrumb:
        if a is b:
            return a
        key = (id(a), id(b))
        result = self._meets.get(key)
        if result is None:
            result = self._meets[key] = self.intern(a.meet(b))
        return result

    def join(self, a: BreadCrumb, b: BreadCrumb) -> BreadCrumb:
        if a is b:
            return a
        key = (id(a), id(b))
        result = self._joins.get(key)
        if result is None:
            result = self._joins[key] = self.intern(a.join(b))
        return result

    def set(self, crumb: BreadCrumb, equal_idx: int, value: bool) -> BreadCrumb:
        key = (id(crumb), equal_idx, value)
        result = self._sets.get(key)
        if result is None:
            result = self._sets[key] = self.intern(crumb.set(equal_idx, value))
        return result

    def combine(
        self,
        opcode: Opcode,
        left_val: int,
        left_crumb: BreadCrumb,
        right_val: int,
        right_crumb: BreadCrumb,
    ) -> BreadCrumb:
        return combine_crumbs(
            opcode, left_val, left_crumb, right_val, right_crumb,
            meet=self.meet, join=self.join,
        )


# ═══════════════════════════════════════════════════════════════════════════
#  SYMBOLIC VALUE
# ═══════════════════════════════════════════════════════════════════════════


class SymbolicValue:
    """Immutable map from concrete value to the breadcrumb that reaches it."""

    __slots__ = ("_values",)

    def __init__(self, values: Optional[Mapping[int, BreadCrumb]] = None) -> None:
        self._values: Mapping[int, BreadCrumb] = MappingProxyType(dict(values or {}))

    @classmethod
    def _wrap(cls, values: Dict[int, BreadCrumb]) -> SymbolicValue:
        """Take ownership of ``values`` without copying it."""
        obj = cls.__new__(cls)
        obj._values = MappingProxyType(values)
        return obj

    @classmethod
    def literal(cls, value: int) -> SymbolicValue:
        return cls({value: BreadCrumb.empty()})

    @classmethod
    def input_digits(cls) -> SymbolicValue:
        return cls({digit: BreadCrumb.empty() for digit in range(1, 10)})

    def values(self) -> List[int]:
        """Sorted list of every reachable concrete value."""
        return sorted(self._values)

    def get(self, value: int) -> Optional[BreadCrumb]:
        return self._values.get(value)

    def items(self) -> ItemsView[int, BreadCrumb]:
        return self._values.items()

    def crumbs(self) -> List[BreadCrumb]:
        """Every crumb, one entry per value."""
        return list(self._values.values())

    def __contains__(self, value: object) -> bool:
        return value in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[int]:
        return iter(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SymbolicValue):
            return NotImplemented
        return dict(self._values) == dict(other._values)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"SymbolicValue({self})"

    def __str__(self) -> str:
        return "; ".join(f"{v}: [{self._values[v]}]" for v in self.values())


class SymbolicValueBuilder:
    """Accumulates ``(value, crumb)`` pairs into a new :class:`SymbolicValue`."""

    __slots__ = ("_values", "_join")

    def __init__(self, cache: Optional[CrumbCache] = None) -> None:
        self._values: Dict[int, BreadCrumb] = {}
        self._join: CrumbOp = cache.join if cache is not None else BreadCrumb.join

    def add(self, value: int, crumb: BreadCrumb) -> None:
        old = self._values.get(value)
        if old is None:
            self._values[value] = crumb
        elif old is not crumb:
            self._values[value] = self._join(old, crumb)

    def __len__(self) -> int:
        return len(self._values)

    def build(self) -> SymbolicValue:
        values, self._values = self._values, {}
        return SymbolicValue._wrap(values)


_ZERO = SymbolicValue.literal(0)
_DIGITS = SymbolicValue.input_digits()


# ═══════════════════════════════════════════════════════════════════════════
#  TRANSFER FUNCTIONS
# ═══════════════════════════════════════════════════════════════════════════


_OPERATORS: Dict[Opcode, Callable[[int, int], int]] = {
    Opcode.ADD: operator.add,
    Opcode.MUL: operator.mul,
    Opcode.DIV: truncating_div,
    Opcode.MOD: operator.mod,  # only reached with left >= 0, right > 0
    Opcode.EQL: lambda left, right: 1 if left == right else 0,
}


def combine_crumbs(
    opcode: Opcode,
    left_val: int,
    left_crumb: BreadCrumb,
    right_val: int,
    right_crumb: BreadCrumb,
    meet: CrumbOp = BreadCrumb.meet,
    join: CrumbOp = BreadCrumb.join,
) -> BreadCrumb:
    """Breadcrumb for one ``(left, right)`` pair of a binary instruction."""
    if opcode is Opcode.MUL:
        if left_val == 0 and right_val == 0:
            return join(left_crumb, right_crumb)
        if left_val == 0:
            return left_crumb
        if right_val == 0:
            return right_crumb
    elif opcode is Opcode.DIV or opcode is Opcode.MOD:
        if left_val == 0:
            return left_crumb
    return meet(left_crumb, right_crumb)


def _group_by_crumb(
    value: SymbolicValue,
    cache: CrumbCache,
) -> List[Tuple[BreadCrumb, List[int]]]:
    """Values of ``value`` bucketed by their (interned) crumb."""
    groups: Dict[int, Tuple[BreadCrumb, List[int]]] = {}
    for val, crumb in value.items():
        crumb = cache.intern(crumb)
        group = groups.get(id(crumb))
        if group is None:
            groups[id(crumb)] = (crumb, [val])
        else:
            group[1].append(val)
    return list(groups.values())


def evaluate_binary(
    instr: Instruction,
    left: SymbolicValue,
    right: SymbolicValue,
    same_register: bool = False,
    cache: Optional[CrumbCache] = None,
) -> SymbolicValue:
    """Apply a binary instruction to two symbolic operands.

    Parameters
    ----------
    instr : Instruction
        Any instruction but ``inp``.
    left, right : SymbolicValue
        Destination register value and operand value.
    same_register : bool
        The operand is the destination register itself.
    cache : Optional[CrumbCache]
        Crumb cache of the running forward pass; a private one is used when
        omitted.
    """
    opcode = instr.opcode
    op = _OPERATORS.get(opcode)
    if op is None:
        raise InternalError(f"{instr} is not a binary instruction")
    if cache is None:
        cache = CrumbCache()
    builder = SymbolicValueBuilder(cache)

    if same_register:
        for val, crumb in left.items():
            if is_valid(opcode, val, val):
                crumb = cache.intern(crumb)
                builder.add(op(val, val), cache.combine(opcode, val, crumb, val, crumb))
    else:
        left_groups = _group_by_crumb(left, cache)
        check_left = opcode is Opcode.MOD
        for right_val, right_crumb in right.items():
            # right side of a fault does not depend on the left value
            if not is_valid(opcode, 0, right_val):
                continue
            right_crumb = cache.intern(right_crumb)
            for left_crumb, left_vals in left_groups:
                met = cache.meet(left_crumb, right_crumb)
                for left_val in left_vals:
                    if check_left and left_val < 0:
                        continue
                    if left_val and right_val:
                        crumb = met
                    else:
                        crumb = cache.combine(opcode, left_val, left_crumb, right_val, right_crumb)
                    builder.add(op(left_val, right_val), crumb)

    result = builder.build()
    if opcode is Opcode.EQL:
        if instr.seq_id is None:
            raise InternalError(f"{instr} has no comparison id")
        # record which branch of this comparison was taken
        seq_id = instr.seq_id
        result = SymbolicValue._wrap({
            val: cache.set(crumb, seq_id, val == 1) for val, crumb in result.items()
        })
    return result


# ═══════════════════════════════════════════════════════════════════════════
#  SYMBOLIC STATE
# ═══════════════════════════════════════════════════════════════════════════


class SymbolicState:
    """Symbolic register file and the forward pass over a program.

    Parameters
    ----------
    max_values : Optional[int]
        Raise :class:`StateExplosionError` if any instruction produces more
        than this many distinct values.  ``None`` disables the check.
    record_history : bool
        Keep ``(instruction, result)`` for every evaluated instruction in
        :attr:`history`.
    """

    def __init__(
        self,
        max_values: Optional[int] = None,
        record_history: bool = False,
    ) -> None:
        self.pc = 0
        self.registers: List[SymbolicValue] = [_ZERO] * NUM_REGISTERS
        self.max_values = max_values
        self.record_history = record_history
        self.history: List[Tuple[Instruction, SymbolicValue]] = []
        self.crumbs = CrumbCache()

    def register(self, reg: Register) -> SymbolicValue:
        return self.registers[reg.index]

    def get_value(self, operand: Operand) -> SymbolicValue:
        if isinstance(operand, Literal):
            return _ZERO if operand.value == 0 else SymbolicValue.literal(operand.value)
        return self.registers[operand.index]

    def step(self, instr: Instruction) -> SymbolicValue:
        """Evaluate one instruction and store its result."""
        if instr.opcode is Opcode.INP:
            result = _DIGITS
        elif instr.operand is None:
            raise InternalError(f"{instr} at pc={self.pc} has no operand")
        else:
            result = evaluate_binary(
                instr,
                self.registers[instr.dest.index],
                self.get_value(instr.operand),
                same_register=instr.operand is instr.dest,
                cache=self.crumbs,
            )
        if self.max_values is not None and len(result) > self.max_values:
            raise StateExplosionError(
                f"{instr} at pc={self.pc} produced {len(result)} values "
                f"(limit {self.max_values})",
                code=ErrorCode.STATE_EXPLOSION,
            )
        self.registers[instr.dest.index] = result
        if self.record_history:
            self.history.append((instr, result))
        _log.debug(
            "pc=%d %s -> %d value(s), %d distinct crumb(s) so far",
            self.pc, instr, len(result), len(self.crumbs),
        )
        self.pc += 1
        return result

    def evaluate(self, program: Program) -> SymbolicState:
        """Run the forward pass from :attr:`pc` to the end of ``program``."""
        while self.pc < len(program):
            self.step(program[self.pc])
        _log.info(
            "forward pass done: %s",
            ", ".join(f"{r}={len(self.registers[r.index])}" for r in Register),
        )
        return self
