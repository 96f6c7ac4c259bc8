# tests/test_symbolic_exec.py
"""
Tests for symbolic values, the transfer functions and the forward pass.
"""

import itertools

import pytest

from alu_shims.abstract_domains import BreadCrumb
from alu_shims.concrete import run_program
from alu_shims.errors import ErrorCode, InternalError, NoSolutionError, StateExplosionError
from alu_shims.instructions import (
    Instruction,
    Literal,
    Opcode,
    Program,
    Register,
    parse_program,
)
from alu_shims.symbolic_exec import (
    CrumbCache,
    SymbolicState,
    SymbolicValue,
    SymbolicValueBuilder,
    combine_crumbs,
    evaluate_binary,
)
from tests.conftest import (
    BITS_PROGRAM,
    MONAD14_BLOCKS,
    MONAD_PROGRAM,
    PAIR_VALIDATOR,
    make_monad,
)

EMPTY = BreadCrumb.empty()
A = EMPTY.set(0, True)
B = EMPTY.set(1, True)
C = EMPTY.set(0, False)
D = EMPTY.set(1, False)

MUL = Instruction.mul(Register.W, Register.X)
DIV = Instruction.div(Register.W, Register.X)
MOD = Instruction.mod(Register.W, Register.X)
ADD = Instruction.add(Register.W, Register.X)

# no register is combined with a value derived from the same digit
INDEPENDENT_PROGRAM = """\
inp w
inp x
mul w 3
add w x
mod w 5
eql w 2
"""


def _value(mapping):
    return SymbolicValue(mapping)


def _brute_force(program: Program, steps: int):
    """Every concrete value each register takes after ``steps`` instructions."""
    prefix = Program(program.instructions[:steps])
    seen = [set() for _ in Register]
    for digits in itertools.product(range(1, 10), repeat=prefix.num_inputs):
        try:
            state = run_program(prefix, digits)
        except NoSolutionError:
            continue
        for reg in Register:
            seen[reg.index].add(state.register(reg))
    return seen


class TestSymbolicValue:

    def test_literal(self):
        value = SymbolicValue.literal(-4)
        assert value.values() == [-4]
        assert value.get(-4) == EMPTY
        assert value.get(0) is None

    def test_input_digits(self):
        value = SymbolicValue.input_digits()
        assert value.values() == list(range(1, 10))
        assert 0 not in value
        assert len(value) == 9

    def test_immutable(self):
        value = SymbolicValue.literal(1)
        with pytest.raises(TypeError):
            value._values[2] = EMPTY  # type: ignore[index]

    def test_equality(self):
        assert SymbolicValue({1: A}) == SymbolicValue({1: A})
        assert SymbolicValue({1: A}) != SymbolicValue({1: C})

    def test_str(self):
        value = SymbolicValue({1: A, 0: C})
        assert str(value) == "0: [eql_0: FALSE]; 1: [eql_0: TRUE]"

    def test_builder_joins_collisions(self):
        builder = SymbolicValueBuilder()
        builder.add(5, A)
        builder.add(5, C)
        builder.add(6, B)
        value = builder.build()
        assert len(builder) == 2
        assert value.get(5).get_constraint() == [None]
        assert value.get(6) == B


class TestCombineCrumbs:

    def test_mul_left_zero(self):
        assert combine_crumbs(MUL.opcode, 0, A, 3, D) is A

    def test_mul_right_zero(self):
        assert combine_crumbs(MUL.opcode, 2, B, 0, C) is C

    def test_mul_both_zero(self):
        assert combine_crumbs(MUL.opcode, 0, A, 0, C) == A.join(C)

    def test_mul_nonzero(self):
        assert combine_crumbs(MUL.opcode, 2, B, 3, D) == B.meet(D)

    def test_div_left_zero(self):
        assert combine_crumbs(DIV.opcode, 0, A, 5, D) is A
        assert combine_crumbs(MOD.opcode, 0, A, 5, D) is A

    def test_div_right_zero_is_not_special(self):
        assert combine_crumbs(DIV.opcode, 5, A, 0, D) == A.meet(D)

    def test_add_always_meets(self):
        assert combine_crumbs(ADD.opcode, 0, A, 0, D) == A.meet(D)


class TestCrumbCache:

    def test_intern_returns_canonical(self):
        cache = CrumbCache()
        before = len(cache)
        first = cache.intern(EMPTY.set(0, True))
        assert cache.intern(EMPTY.set(0, True)) is first
        assert first == A
        assert len(cache) == before + 1

    def test_empty_is_preinterned(self):
        cache = CrumbCache()
        assert cache.intern(BreadCrumb()) is BreadCrumb.empty()

    def test_meet_is_memoized(self):
        cache = CrumbCache()
        a, d = cache.intern(A), cache.intern(D)
        met = cache.meet(a, d)
        assert met == A.meet(D)
        assert cache.meet(a, d) is met
        assert cache.meet(a, a) is a

    def test_join_is_interned(self):
        cache = CrumbCache()
        a, c = cache.intern(A), cache.intern(C)
        assert cache.join(a, c) is cache.intern(A.join(C))

    def test_set_is_interned(self):
        cache = CrumbCache()
        empty = cache.intern(EMPTY)
        stamped = cache.set(empty, 0, True)
        assert stamped == A
        assert cache.set(empty, 0, True) is stamped
        assert cache.intern(EMPTY.set(0, True)) is stamped

    def test_combine_goes_through_memo(self):
        cache = CrumbCache()
        b, d = cache.intern(B), cache.intern(D)
        assert cache.combine(Opcode.MUL, 2, b, 3, d) is cache.meet(b, d)
        assert cache.combine(Opcode.MUL, 0, b, 3, d) is b


class TestEvaluateBinary:

    def test_equal_crumbs_are_shared(self):
        left = _value({v: EMPTY.set(0, True) for v in range(1, 51)})
        right = _value({v: EMPTY.set(1, False) for v in range(1, 4)})
        crumbs = evaluate_binary(ADD, left, right).crumbs()
        assert len(crumbs) == 52
        assert len({id(crumb) for crumb in crumbs}) == 1
        assert crumbs[0] == A.meet(D)

    def test_eql_collapses_to_one_stamped_crumb(self):
        instr = Instruction.equal(0, Register.W, Literal(0))
        left = _value({v: EMPTY.set(1, True) for v in range(1, 10)})
        result = evaluate_binary(instr, left, SymbolicValue.literal(0))
        assert result.values() == [0]
        assert result.get(0) == B.set(0, False)

    def test_input_is_rejected(self):
        digits = SymbolicValue.input_digits()
        with pytest.raises(InternalError):
            evaluate_binary(Instruction.input(0, Register.W), digits, digits)

    def test_eql_without_comparison_id(self):
        instr = Instruction(Opcode.EQL, Register.W, Literal(1))
        with pytest.raises(InternalError) as exc_info:
            evaluate_binary(instr, SymbolicValue.input_digits(), SymbolicValue.literal(1))
        assert exc_info.value.code is ErrorCode.INTERNAL_ERROR

    def test_mul_zero_keeps_one_side(self):
        result = evaluate_binary(MUL, _value({0: A}), _value({3: D}))
        assert result == _value({0: A})
        result = evaluate_binary(MUL, _value({2: B}), _value({0: C}))
        assert result == _value({0: C})

    def test_mul_general(self):
        result = evaluate_binary(MUL, _value({2: B}), _value({3: D}))
        assert result.values() == [6]
        assert str(result.get(6)) == "eql_1: INVALID"

    def test_add_collisions_join(self):
        result = evaluate_binary(ADD, _value({1: A, 2: C}), _value({0: EMPTY, 1: EMPTY}))
        assert result.values() == [1, 2, 3]
        assert result.get(1) == A
        assert result.get(2).get_constraint() == [None]
        assert result.get(3) == C

    def test_add_conflict_is_invalid(self):
        result = evaluate_binary(ADD, _value({1: A}), _value({2: C}))
        assert str(result.get(3)) == "eql_0: INVALID"

    def test_div(self):
        result = evaluate_binary(DIV, _value({0: A, 10: B, -7: EMPTY}), _value({5: D}))
        assert result.get(0) == A
        assert result.get(2) == B.meet(D)
        # truncating, not flooring
        assert result.get(-1) == D
        assert result.get(-2) is None

    def test_div_by_zero_pairs_dropped(self):
        result = evaluate_binary(DIV, _value({3: A}), _value({0: D, 3: EMPTY}))
        assert result.values() == [1]

    def test_div_only_zero_is_empty(self):
        result = evaluate_binary(DIV, _value({3: A}), _value({0: D}))
        assert len(result) == 0

    def test_mod_drops_invalid_pairs(self):
        result = evaluate_binary(MOD, _value({-3: A, 7: B, 0: C}), _value({5: D, -5: EMPTY}))
        assert result.values() == [0, 2]
        assert result.get(0) == C
        assert result.get(2) == B.meet(D)

    def test_eql_stamps_comparison(self):
        instr = Instruction.equal(0, Register.W, Literal(5))
        result = evaluate_binary(instr, SymbolicValue.input_digits(), SymbolicValue.literal(5))
        assert str(result) == "0: [eql_0: FALSE]; 1: [eql_0: TRUE]"

    def test_eql_without_match(self):
        instr = Instruction.equal(2, Register.W, Literal(0))
        result = evaluate_binary(instr, SymbolicValue.input_digits(), SymbolicValue.literal(0))
        assert result.values() == [0]
        assert result.get(0).get_constraint() == [None, None, False]

    def test_same_register_is_diagonal(self):
        digits = SymbolicValue.input_digits()
        result = evaluate_binary(Instruction.add(Register.W, Register.W), digits, digits,
                                 same_register=True)
        assert result.values() == list(range(2, 19, 2))


class TestSymbolicState:

    def test_initial_registers(self):
        state = SymbolicState()
        for reg in Register:
            assert state.register(reg) == SymbolicValue.literal(0)
        assert state.pc == 0

    def test_symbolic_add(self):
        state = SymbolicState()
        state.step(Instruction.input(0, Register.W))
        state.step(Instruction.input(1, Register.X))
        result = evaluate_binary(ADD, state.register(Register.W), state.register(Register.X))
        assert result.values() == list(range(2, 19))

    def test_bits(self):
        state = SymbolicState().evaluate(parse_program(BITS_PROGRAM))
        assert state.register(Register.W).values() == [0, 1]
        assert state.register(Register.Z).values() == [0, 1]

    def test_same_register_program(self):
        state = SymbolicState().evaluate(parse_program("inp w\nmul w w\n"))
        assert state.register(Register.W).values() == [d * d for d in range(1, 10)]

    def test_literal_operand(self):
        state = SymbolicState()
        assert state.get_value(Literal(0)) == SymbolicValue.literal(0)
        assert state.get_value(Literal(26)).values() == [26]

    def test_evaluate_returns_self(self):
        program = parse_program(BITS_PROGRAM)
        state = SymbolicState()
        assert state.evaluate(program) is state
        assert state.pc == len(program)

    def test_evaluate_resumes_from_pc(self):
        program = parse_program(BITS_PROGRAM)
        state = SymbolicState()
        state.step(program[0])
        state.evaluate(program)
        assert state.pc == len(program)
        assert state.register(Register.Z).values() == [0, 1]

    def test_history(self):
        program = parse_program(BITS_PROGRAM)
        state = SymbolicState(record_history=True).evaluate(program)
        assert len(state.history) == len(program)
        assert state.history[0][0] is program[0]
        assert state.history[0][1].values() == list(range(1, 10))

    def test_no_history_by_default(self):
        state = SymbolicState().evaluate(parse_program(BITS_PROGRAM))
        assert state.history == []

    def test_state_explosion(self):
        program = parse_program("inp w\ninp x\nmul w 10\nadd w x\n")
        with pytest.raises(StateExplosionError) as exc_info:
            SymbolicState(max_values=50).evaluate(program)
        assert exc_info.value.code is ErrorCode.STATE_EXPLOSION

    def test_missing_operand(self):
        with pytest.raises(InternalError):
            SymbolicState().step(Instruction(Opcode.ADD, Register.W))

    def test_equal_crumbs_are_one_object(self):
        # first four blocks of the fourteen-block checker: three pushes, one pop
        program = parse_program(make_monad(MONAD14_BLOCKS[:4]))
        state = SymbolicState().evaluate(program)
        crumbs = state.register(Register.Z).crumbs()
        assert len(crumbs) > 100
        assert len({id(crumb) for crumb in crumbs}) == len(set(crumbs))
        assert len(state.crumbs) < len(crumbs)

    def test_limit_not_reached(self):
        program = parse_program("inp w\ninp x\nmul w 10\nadd w x\n")
        state = SymbolicState(max_values=81).evaluate(program)
        assert len(state.register(Register.W)) == 81


class TestForwardPassExactness:

    @pytest.mark.parametrize("text", [INDEPENDENT_PROGRAM, BITS_PROGRAM])
    def test_matches_brute_force(self, text):
        program = parse_program(text)
        state = SymbolicState()
        for steps in range(1, len(program) + 1):
            state.step(program[steps - 1])
            expected = _brute_force(program, steps)
            for reg in Register:
                assert set(state.register(reg)) == expected[reg.index], (steps, reg)

    def test_pair_validator_final_z(self):
        state = SymbolicState().evaluate(parse_program(PAIR_VALIDATOR))
        z = state.register(Register.Z)
        assert z.values() == list(range(8))
        assert z.get(0).get_constraint() == [True, False] * 7

    def test_monad_constraint_is_consistent(self):
        # comparison outcomes of the accepted runs
        expected = [False, True, False, True, True, False, True, False]
        state = SymbolicState().evaluate(parse_program(MONAD_PROGRAM))
        crumb = state.register(Register.Z).get(0)
        assert crumb is not None
        constraint = crumb.get_constraint()
        assert len(constraint) <= 8
        for pinned, outcome in zip(constraint, expected):
            assert pinned is None or pinned == outcome
