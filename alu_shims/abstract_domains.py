"""
alu_shims/abstract_domains.py
═════════════════════════════

Constraint lattice used by the symbolic pass.

    ┌─────────────────────────────────────────────────────────────┐
    │  SymbolicBoolean   : {ANY, TRUE, FALSE, INVALID}            │
    │  BreadCrumb        : comparison id → SymbolicBoolean        │
    │                      (sparse, missing positions are ANY)    │
    └─────────────────────────────────────────────────────────────┘

A breadcrumb is attached to one concrete value of one register at one
point of the program.  Position ``i`` says what comparison ``eql_i`` must
have evaluated to for that value to be reached:

    ANY       no requirement
    TRUE      eql_i must have produced 1
    FALSE     eql_i must have produced 0
    INVALID   this derivation needed both outcomes at once

Two derivations that must hold together are combined with ``meet``;
two alternative derivations of the same value are combined with ``join``.

Lattice laws that MUST hold:

    1. join(a, a) = a,  meet(a, a) = a        (idempotence)
    2. join(a, b) = join(b, a)               (commutativity of join)
    3. meet(a, b) = meet(b, a)               (commutativity of meet)
    4. meet(ANY, a) = a                      (ANY is identity for meet)
    5. join(INVALID, a) = a                  (INVALID is identity for join)

``INVALID`` produced by ``meet`` only disappears through a later ``join``
with another derivation of the same value: one path is contradictory, but
another may still reach it.
"""

from __future__ import annotations

import enum
import itertools
from dataclasses import dataclass
from typing import ClassVar, Iterator, List, Optional, Tuple


# ═══════════════════════════════════════════════════════════════════════════
#  PART 1: SYMBOLIC BOOLEAN
# ═══════════════════════════════════════════════════════════════════════════


class SymbolicBoolean(enum.Enum):
    """Four-valued requirement on the outcome of a single comparison."""

    ANY = "ANY"
    TRUE = "TRUE"
    FALSE = "FALSE"
    INVALID = "INVALID"

    @classmethod
    def from_bool(cls, value: bool) -> SymbolicBoolean:
        return cls.TRUE if value else cls.FALSE

    def join(self, other: SymbolicBoolean) -> SymbolicBoolean:
        """Alternative derivations: ``self ∨ other``."""
        if self is other:
            return self
        if self is SymbolicBoolean.INVALID:
            return other
        if other is SymbolicBoolean.INVALID:
            return self
        return SymbolicBoolean.ANY

    def meet(self, other: SymbolicBoolean) -> SymbolicBoolean:
        """Simultaneous requirements: ``self ∧ other``."""
        if self is other:
            return self
        if self is SymbolicBoolean.ANY:
            return other
        if other is SymbolicBoolean.ANY:
            return self
        return SymbolicBoolean.INVALID

    def get_single(self) -> Optional[bool]:
        """The pinned outcome, or ``None`` when this is not exactly one boolean."""
        if self is SymbolicBoolean.TRUE:
            return True
        if self is SymbolicBoolean.FALSE:
            return False
        return None

    def __or__(self, other: SymbolicBoolean) -> SymbolicBoolean:
        return self.join(other)

    def __and__(self, other: SymbolicBoolean) -> SymbolicBoolean:
        return self.meet(other)


_ANY = SymbolicBoolean.ANY


# ═══════════════════════════════════════════════════════════════════════════
#  PART 2: BREADCRUMB
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class BreadCrumb:
    """
    Immutable per-comparison vector of :class:`SymbolicBoolean`.

    Positions past the end of ``crumbs`` are implicitly ``ANY``.  Every
    combining operation returns a new breadcrumb, so a crumb placed in a
    :class:`~alu_shims.symbolic_exec.SymbolicValue` can be shared freely.
    """

    crumbs: Tuple[SymbolicBoolean, ...] = ()

    _EMPTY: ClassVar[Optional[BreadCrumb]] = None

    @classmethod
    def empty(cls) -> BreadCrumb:
        if cls._EMPTY is None:
            cls._EMPTY = cls()
        return cls._EMPTY

    def __len__(self) -> int:
        return len(self.crumbs)

    def __getitem__(self, idx: int) -> SymbolicBoolean:
        if 0 <= idx < len(self.crumbs):
            return self.crumbs[idx]
        return _ANY

    def __iter__(self) -> Iterator[SymbolicBoolean]:
        return iter(self.crumbs)

    def set(self, equal_idx: int, value: bool) -> BreadCrumb:
        """Copy with position ``equal_idx`` replaced by ``TRUE``/``FALSE``."""
        crumbs = list(self.crumbs)
        if len(crumbs) <= equal_idx:
            crumbs.extend([_ANY] * (equal_idx + 1 - len(crumbs)))
        crumbs[equal_idx] = SymbolicBoolean.from_bool(value)
        return BreadCrumb(tuple(crumbs))

    def join(self, other: BreadCrumb) -> BreadCrumb:
        """Position-wise ``or``; the shorter vector is padded with ``ANY``."""
        if self is other:
            return self
        return BreadCrumb(tuple(
            a.join(b)
            for a, b in itertools.zip_longest(self.crumbs, other.crumbs, fillvalue=_ANY)
        ))

    def meet(self, other: BreadCrumb) -> BreadCrumb:
        """Position-wise ``and``; the shorter vector is padded with ``ANY``."""
        if self is other or not other.crumbs:
            return self
        if not self.crumbs:
            return other
        return BreadCrumb(tuple(
            a.meet(b)
            for a, b in itertools.zip_longest(self.crumbs, other.crumbs, fillvalue=_ANY)
        ))

    def __or__(self, other: BreadCrumb) -> BreadCrumb:
        return self.join(other)

    def __and__(self, other: BreadCrumb) -> BreadCrumb:
        return self.meet(other)

    def pinned(self) -> Iterator[Tuple[int, bool]]:
        """Yield ``(comparison id, outcome)`` for every pinned position."""
        for idx, crumb in enumerate(self.crumbs):
            single = crumb.get_single()
            if single is not None:
                yield idx, single

    def get_constraint(self) -> List[Optional[bool]]:
        """Build the list of comparison outcomes that lead to this value.

        A ``bool`` at position ``i`` means ``eql_i`` must have that result;
        ``None`` means "don't care".
        """
        return [crumb.get_single() for crumb in self.crumbs]

    def __str__(self) -> str:
        return "; ".join(
            f"eql_{idx}: {crumb.value}"
            for idx, crumb in enumerate(self.crumbs)
            if crumb is not _ANY
        )
