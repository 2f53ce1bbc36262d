## tinyfl — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

from pathlib import Path

import pytest

from tinyfl.module import Module
from tinyfl.parser import parse_definitions
from tinyfl.interpreter import Evaluator, State, run
from tinyfl.types import Definition, Num, Ptr, Unit, Var, Lit, Call, Papp, PartialApplication
from tinyfl.errors import TinyResourceError, TinyUnboundError, TinyUnknownFunction, TinyTagError, \
                         TinyArityError, TinyMatchError, TinyArithmeticError


LIBRARY = """
fn (id x) { x }
fn (add x y) { (+ x y) }
fn (add3 x y z) { let s = (+ x y); (+ s z) }
fn (adder x) { (papp add x) }
fn (curried x) { (papp add3 x) }
fn (nil n c) { n }
fn (cons x xs n c) { (apply c x xs) }
fn (sumStep x) { (papp sumStepRest x) }
fn (sumStepRest x ys) { let s = (sumList ys); (+ x s) }
fn (sumList xs) { let k = (papp sumStep); (apply xs 0 k) }
"""


def _load(source: str, check: bool = True) -> Module:
    return Module.from_definitions(parse_definitions(source, filename="<test>"), check=check)

def _run(source: str, **kwargs):
    return run(_load(LIBRARY + source), **kwargs)


# Examples ────────────────────────────────────────────────────────────────────────────────────
def test_call_identity():
    module = _load(LIBRARY)
    assert State().call('id', [Num(7)], module) == Num(7)


def test_papp_then_exact_apply():
    assert _run("fn (main) { let f = (papp add 3); (apply f 4) }") == Num(7)


def test_three_element_list_folds_through_oversaturated_apply():
    result = _run("""
    fn (main) {
      let l0 = (papp nil);
      let l1 = (papp cons 3 l0);
      let l2 = (papp cons 2 l1);
      let l3 = (papp cons 1 l2);
      (sumList l3)
    }""")
    assert result == Num(6)


def test_recursion_beyond_stack_capacity_faults():
    source = """
    fn (down n) { match n { 0 => { 0 } _ => { let m = (- n 1); let r = (down m); (+ r 1) } } }
    fn (main) { (down 200) }
    """
    with pytest.raises(TinyResourceError) as e:
        run(_load(source), stack_size=100)
    assert e.value.resource == "stack"
    assert e.value.capacity == 100
    assert e.value.tiny_function == "down"


def test_match_default_and_non_exhaustive():
    assert _run("fn (main) { let x = 5; match x { 0 => { 1 } _ => { 0 } } }") == Num(0)
    assert _run("fn (main) { let x = 0; match x { 0 => { 1 } _ => { 0 } } }") == Num(1)
    with pytest.raises(TinyMatchError) as e:
        _run("fn (main) { let x = 5; match x { 0 => { 1 } } }")
    assert e.value.tiny_token == 5
    assert e.value.tiny_function == "main"


def test_church_list_example():
    module = _load(Path(__file__).resolve().parents[1].joinpath('examples', 'lists.tfl').read_text())
    assert Evaluator().run(module) == Num(5050)


# Resolution algorithm ────────────────────────────────────────────────────────────────────────
def test_saturation_equivalence():
    module = _load(LIBRARY)
    for k in range(3):
        state = State()
        args = [Num(10), Num(20), Num(30)]
        ptr = state.papp('add3', args[:k], module)
        assert state.apply(ptr, args[k:], module) == state.call('add3', args, module) == Num(60)


def test_undersaturated_apply_builds_new_closure():
    module = _load(LIBRARY)
    state = State()
    ptr = state.papp('add3', [Num(1)], module)
    partial = state.apply(ptr, [Num(2)], module)
    assert isinstance(partial, Ptr) and partial != ptr
    assert state.retrieve_ptr(partial) == PartialApplication('add3', (Num(1), Num(2)))
    # The first record is left untouched.
    assert state.retrieve_ptr(ptr) == PartialApplication('add3', (Num(1),))


@pytest.mark.parametrize("groups", [
    [[1, 2, 3]], [[1], [2, 3]], [[1, 2], [3]], [[1], [2], [3]],
])
def test_currying_associativity(groups):
    module = _load(LIBRARY)
    state = State()
    value = state.papp('curried', [], module)
    for group in groups:
        value = state.apply(value, [Num(n) for n in group], module)
    assert value == Num(6)


def test_oversaturated_call_consumes_returned_closure():
    assert _run("fn (main) { let mk = (papp adder); (apply mk 3 4) }") == Num(7)
    assert _run("fn (main) { let mk = (papp curried); (apply mk 1 2 3) }") == Num(6)


def test_oversaturated_call_must_return_closure():
    with pytest.raises(TinyTagError):
        _run("fn (main) { let f = (papp id); (apply f 1 2) }")


def test_apply_on_number_is_tag_fault():
    with pytest.raises(TinyTagError) as e:
        _run("fn (main) { let x = 5; (apply x 1) }")
    assert e.value.tiny_token == Num(5)


def test_terminal_value_may_be_unconsumed_closure():
    result = _run("fn (main) { (papp add 1) }")
    assert isinstance(result, Ptr)


def test_arena_indices_are_never_reused():
    module = _load(LIBRARY)
    state = State()
    expr = Papp('add', (Lit(1),))
    pointers = [state.eval(expr, module) for _ in range(5)]
    assert len(set(pointers)) == 5
    assert [p.index for p in pointers] == [0, 1, 2, 3, 4]


def test_match_is_order_independent():
    cases = ["0 => { 10 }", "1 => { 11 }", "2 => { 12 }"]
    for permutation in (cases, cases[::-1], [cases[1], cases[2], cases[0]]):
        module = _load(f"fn (pick x) {{ match x {{ {' '.join(permutation)} _ => {{ 99 }} }} }}")
        assert [State().call('pick', [Num(i)], module) for i in range(4)] == [Num(10), Num(11), Num(12), Num(99)]


def test_let_binds_in_current_frame_after_nested_calls():
    assert _run("fn (main) { let a = (add 1 2); let b = (add a a); let c = (id b); (+ c a) }") == Num(9)


# Faults ──────────────────────────────────────────────────────────────────────────────────────
def test_closure_arena_exhaustion_faults():
    source = """
    fn (build n) { match n { 0 => { (papp nil) } _ => { let m = (- n 1); let t = (build m); (papp cons n t) } } }
    fn (main) { (build 20) }
    """
    with pytest.raises(TinyResourceError) as e:
        run(_load(LIBRARY + source), heap_size=10)
    assert e.value.resource == "arena"
    assert run(_load(LIBRARY + source), heap_size=21) == Ptr(20)


def test_deep_recursion_does_not_depend_on_host_recursion_limit():
    source = """
    fn (down n) { match n { 0 => { 0 } _ => { let m = (- n 1); let r = (down m); (+ r 1) } } }
    fn (main) { (down 20000) }
    """
    assert run(_load(source)) == Num(20000)


def test_unbound_variable_at_run_time():
    module = Module.from_definitions([Definition('main', (), Unit(Var('y')))], check=False)
    with pytest.raises(TinyUnboundError) as e:
        run(module)
    assert e.value.tiny_token == 'y'
    assert e.value.tiny_function == 'main'
    assert e.value.tiny_depth == 1


def test_unknown_function_at_run_time():
    module = Module.from_definitions([Definition('main', (), Call('nope', ()))], check=False)
    with pytest.raises(TinyUnknownFunction) as e:
        run(module)
    assert e.value.tiny_token == 'nope'


def test_missing_main():
    with pytest.raises(TinyUnknownFunction):
        run(_load(LIBRARY))


def test_main_with_parameters():
    with pytest.raises(TinyArityError):
        run(_load("fn (main x) { x }"))


def test_call_with_wrong_argument_count():
    with pytest.raises(TinyArityError):
        State().call('add', [Num(1)], _load(LIBRARY))


def test_papp_operation_rejects_saturated_closure():
    with pytest.raises(TinyArityError):
        State().papp('add', [Num(1), Num(2)], _load(LIBRARY))


def test_apply_operation_rejects_number():
    with pytest.raises(TinyTagError):
        State().apply(Num(3), [Num(1)], _load(LIBRARY))


def test_arithmetic_on_closure_is_tag_fault():
    with pytest.raises(TinyTagError):
        _run("fn (main) { let f = (papp add 1); (+ f 1) }")


@pytest.mark.parametrize("op", ['/', '%'])
def test_division_by_zero_faults(op):
    with pytest.raises(TinyArithmeticError) as e:
        _run(f"fn (main) {{ let z = 0; ({op} 7 z) }}")
    assert e.value.tiny_function == 'main'


def test_word_wrapping_in_programs():
    assert _run("fn (main) { (- 0 1) }") == Num(2**64 - 1)
    assert _run("fn (main) { (<< 1 64) }") == Num(0)


def test_eval_restores_caller_frame():
    module = _load(LIBRARY)
    state = State()
    state.frame.insert('q', Num(1))
    assert state.eval(Call('add', (Var('q'), Lit(2))), module) == Num(3)
    assert state.frame.function == '<root>' and len(state.stack) == 0


# Observability ───────────────────────────────────────────────────────────────────────────────
def test_stats_are_collected():
    module = _load(Path(__file__).resolve().parents[1].joinpath('examples', 'lists.tfl').read_text())
    stats = {}
    Evaluator().run(module, stats=stats)
    assert stats['closures'] == 202
    assert stats['calls'] > 300
    assert stats['steps'] > stats['calls']
    assert stats['max_depth'] > 100


def test_stats_are_collected_on_fault():
    stats = {}
    with pytest.raises(TinyMatchError):
        Evaluator().run(_load("fn (main) { match 3 { 0 => { 0 } } }"), stats=stats)
    assert stats['calls'] == 1


def test_verbose_trace_shows_calls(capsys):
    Evaluator(verbosity=1).run(_load(LIBRARY + "fn (main) { (add 1 2) }"))
    out = capsys.readouterr().out
    assert "main" in out
    assert "add" in out and "1 2" in out


def test_very_verbose_trace_shows_steps(capsys):
    Evaluator(verbosity=2).run(_load(LIBRARY + "fn (main) { let y = (add 1 2); y }"))
    out = capsys.readouterr().out
    assert "(add 1 2)" in out


def test_each_run_uses_fresh_memory():
    evaluator = Evaluator(heap_size=1)
    module = _load(LIBRARY + "fn (main) { (papp add 1) }")
    assert evaluator.run(module) == Ptr(0)
    assert evaluator.run(module) == Ptr(0)
