## tinyfl — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

from .types import Definition, Expression, Value, Num
from .module import Module
from .parser import parse_definitions, parse_expression
from .memory import HEAP_SIZE, STACK_SIZE
from .formatting import format_module, format_value
from .operators import fits_word
from .errors import TinyCheckError
from .interpreter import Evaluator


class Runtime:
    """Minimal runtime facade focused on embedding: parse, check and run programs."""

    def __init__(self, heap_size: int = HEAP_SIZE, stack_size: int = STACK_SIZE):
        self.heap_size = heap_size
        self.stack_size = stack_size

    def evaluator(self, verbosity: int = 0) -> Evaluator:
        return Evaluator(heap_size=self.heap_size, stack_size=self.stack_size, verbosity=verbosity)

    # Loading ─────────────────────────────────────────────────────────────────────────────────
    def parse(self, source: str, filename: str | None = None) -> list[Definition]:
        return parse_definitions(source, filename=filename)

    def load(self, source: str, filename: str | None = None, check: bool = True) -> Module:
        return Module.from_definitions(self.parse(source, filename=filename), check=check)

    # Execution ───────────────────────────────────────────────────────────────────────────────
    def run(self, program: str | Module, filename: str | None = None,
            verbosity: int = 0, stats: dict | None = None) -> Value:
        module = program if isinstance(program, Module) else self.load(program, filename=filename)
        return self.evaluator(verbosity).run(module, stats=stats)

    def call(self, module: Module, name: str, *args: Value | int,
             verbosity: int = 0, stats: dict | None = None) -> Value:
        values = tuple(self._to_value(name, a) for a in args)
        return self.evaluator(verbosity).call(module, name, *values, stats=stats)

    @staticmethod
    def _to_value(name: str, arg: Value | int) -> Value:
        if isinstance(arg, Value): return arg
        if not isinstance(arg, int) or not fits_word(arg):
            raise TinyCheckError(f"Argument `{arg!r}` passed to `{name}` is not an unsigned 64-bit word.",
                                 tiny_token=arg, function=name)
        return Num(arg)

    def evaluate(self, module: Module, source: str, filename: str | None = None,
                 verbosity: int = 0, stats: dict | None = None) -> Value:
        """Evaluate a bare expression against the functions of `module`, as the body of a fresh function."""
        expr: Expression = parse_expression(source, filename=filename)
        entry = Definition('<expr>', (), expr, {'filename': filename})
        return self.call(module.extended([entry]), entry.name, verbosity=verbosity, stats=stats)

    # Introspection ───────────────────────────────────────────────────────────────────────────
    def pretty(self, module: Module) -> str:
        return format_module(module)

    def show(self, value: Value) -> str:
        return format_value(value)
