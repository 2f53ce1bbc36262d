## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘
#
# Evaluator for validated modules.  Evaluation runs as an explicit loop over a list of
# continuations rather than host recursion, so the depth of calls is bounded only by the
# configured call stack capacity.
#

from dataclasses import dataclass

from .types import Atom, Var, Lit, Expression, Unit, Let, Call, Apply, Papp, Match, Operate, \
                   Value, Num, Ptr, PartialApplication, Frame
from .errors import TinyFault, TinyMatchError, TinyArityError
from .memory import Arena, CallStack, HEAP_SIZE, STACK_SIZE
from .module import Module
from .operators import run_operator
from .formatting import show_call, show_step


## CONTINUATIONS
class _Return:
    """Restore the caller's frame once a function body has produced its value."""
    __slots__ = ()

RETURN = _Return()

@dataclass(frozen=True, slots=True)
class _Bind:
    name: str
    body: Expression

@dataclass(frozen=True, slots=True)
class _ApplyRest:
    args: tuple[Value, ...]


## SYNTHETIC NODES, carrying arguments that are already evaluated.
@dataclass(frozen=True, slots=True)
class _Invoke(Expression):
    function: str
    args: tuple[Value, ...]

@dataclass(frozen=True, slots=True)
class _Resolve(Expression):
    ptr: Ptr
    args: tuple[Value, ...]


class State:
    """Call stack, closure arena and current frame of one run."""

    def __init__(self, heap_size: int = HEAP_SIZE, stack_size: int = STACK_SIZE, verbosity: int = 0):
        self.heap: Arena[PartialApplication] = Arena(heap_size, resource="arena")
        self.stack: CallStack[Frame] = CallStack(stack_size, resource="stack")
        self.frame = Frame('<root>')
        self.verbosity = verbosity
        self.steps = 0
        self.calls = 0
        self.max_depth = 0

    # Memory ──────────────────────────────────────────────────────────────────────────────────
    def alloc_papp(self, function: str, args: tuple[Value, ...]) -> Ptr:
        return Ptr(self.heap.alloc(PartialApplication(function, args)))

    def retrieve_ptr(self, ptr: Ptr) -> PartialApplication:
        return self.heap[ptr.index]

    def retrieve_atom(self, atom: Atom) -> Value:
        match atom:
            case Var(name): return self.frame.get(name)
            case Lit(value): return Num(value)
        raise TypeError(f"Not an atom: {atom!r}")

    def retrieve_atoms(self, atoms) -> tuple[Value, ...]:
        return tuple(self.retrieve_atom(a) for a in atoms)

    # Operations ──────────────────────────────────────────────────────────────────────────────
    def run(self, module: Module) -> Value:
        return self.call('main', (), module)

    def call(self, function: str, args, module: Module) -> Value:
        return self._evaluate(_Invoke(function, tuple(args)), module)

    def apply(self, ptr: Value, args, module: Module) -> Value:
        return self._evaluate(_Resolve(ptr.expect_ptr(), tuple(args)), module)

    def papp(self, function: str, args, module: Module) -> Ptr:
        """Build a closure record directly; `args` must be fewer than the function's arity."""
        if len(args := tuple(args)) >= module.arity(function):
            raise TinyArityError(f"Partial application of `{function}` exceeds its arity of {module.arity(function)}.",
                                 tiny_token=function)
        return self.alloc_papp(function, args)

    def eval(self, expr: Expression, module: Module) -> Value:
        return self._evaluate(expr, module)

    # Machinery ───────────────────────────────────────────────────────────────────────────────
    def _enter(self, function: str, args: tuple[Value, ...], module: Module, konts: list) -> Expression:
        definition = module.lookup(function)
        if len(args) != definition.arity:
            raise TinyArityError(f"Function `{function}` expects {definition.arity} argument(s), got {len(args)}.",
                                 tiny_token=function, tiny_meta=definition.meta)

        if self.verbosity > 0:
            show_call(self.steps, len(self.stack), function, args, self.heap)
        frame = Frame(function, zip(definition.params, args))
        self.stack.push(self.frame)
        self.frame = frame
        konts.append(RETURN)

        self.calls += 1
        self.max_depth = max(self.max_depth, len(self.stack))
        return definition.body

    def _resolve(self, ptr: Ptr, more_args: tuple[Value, ...], module: Module, konts: list) -> Expression | Value:
        papp = self.retrieve_ptr(ptr)
        args = papp.args + more_args
        arity = module.arity(papp.function)

        if len(args) < arity:
            return self.alloc_papp(papp.function, args)
        if len(args) > arity:
            # Runs after the call returns, in the caller's frame.
            konts.append(_ApplyRest(args[arity:]))
            args = args[:arity]
        return self._enter(papp.function, args, module, konts)

    def _step(self, expr: Expression, module: Module, konts: list) -> Expression | Value:
        self.steps += 1
        if self.verbosity > 1:
            show_step(self.steps, len(self.stack), expr)

        match expr:
            case Unit(atom):
                return self.retrieve_atom(atom)
            case Let(name, value, body):
                konts.append(_Bind(name, body))
                return value
            case Call(function, args):
                return self._enter(function, self.retrieve_atoms(args), module, konts)
            case Apply(closure, args):
                ptr = self.frame.get(closure).expect_ptr()
                return self._resolve(ptr, self.retrieve_atoms(args), module, konts)
            case Papp(function, args):
                return self.alloc_papp(function, self.retrieve_atoms(args))
            case Match(atom, cases, default):
                x = self.retrieve_atom(atom).expect_num()
                for pattern, branch in cases:
                    if pattern == x: return branch
                if default is not None:
                    return default
                raise TinyMatchError(f"Match in `{self.frame.function}` has no branch for `{x}`.", tiny_token=x)
            case Operate(op, x, y):
                x_num = self.retrieve_atom(x).expect_num()
                y_num = self.retrieve_atom(y).expect_num()
                return Num(run_operator(op, x_num, y_num))
            case _Invoke(function, args):
                return self._enter(function, args, module, konts)
            case _Resolve(ptr, args):
                return self._resolve(ptr, args, module, konts)
        raise NotImplementedError(f"Unexpected expression node `{type(expr).__name__}`.")

    def _resume(self, kont, value: Value, module: Module, konts: list) -> Expression | Value:
        if kont is RETURN:
            self.frame = self.stack.pop()
            return value
        if isinstance(kont, _Bind):
            self.frame.insert(kont.name, value)
            return kont.body
        assert isinstance(kont, _ApplyRest)
        return self._resolve(value.expect_ptr(), kont.args, module, konts)

    def _evaluate(self, todo: Expression, module: Module) -> Value:
        konts = []
        try:
            while True:
                if isinstance(todo, Expression):
                    todo = self._step(todo, module, konts)
                elif konts:
                    todo = self._resume(konts.pop(), todo, module, konts)
                else:
                    return todo
        except TinyFault as exc:
            if exc.tiny_function is None:
                exc.tiny_function = self.frame.function
                exc.tiny_depth = len(self.stack)
            raise


class Evaluator:
    """Configuration shared by runs; each run gets a fresh `State` that is discarded afterwards."""

    def __init__(self, heap_size: int = HEAP_SIZE, stack_size: int = STACK_SIZE, verbosity: int = 0):
        self.heap_size = heap_size
        self.stack_size = stack_size
        self.verbosity = verbosity

    def new_state(self) -> State:
        return State(heap_size=self.heap_size, stack_size=self.stack_size, verbosity=self.verbosity)

    def run(self, module: Module, stats: dict | None = None) -> Value:
        state = self.new_state()
        try:
            return state.run(module)
        finally:
            _collect_stats(state, stats)

    def call(self, module: Module, function: str, *args: Value, stats: dict | None = None) -> Value:
        state = self.new_state()
        try:
            return state.call(function, args, module)
        finally:
            _collect_stats(state, stats)


def _collect_stats(state: State, stats: dict | None) -> None:
    if stats is None: return
    stats['steps'] = stats.get('steps', 0) + state.steps
    stats['calls'] = stats.get('calls', 0) + state.calls
    stats['closures'] = stats.get('closures', 0) + len(state.heap)
    stats['max_depth'] = max(stats.get('max_depth', 0), state.max_depth)


def run(module: Module, *, heap_size: int = HEAP_SIZE, stack_size: int = STACK_SIZE,
        verbosity: int = 0, stats: dict | None = None) -> Value:
    return Evaluator(heap_size=heap_size, stack_size=stack_size, verbosity=verbosity).run(module, stats=stats)
