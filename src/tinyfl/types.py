## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

from enum import Enum
from dataclasses import dataclass, field

from .errors import TinyTagError, TinyUnboundError


## ATOMS
@dataclass(frozen=True, slots=True)
class Var:
    name: str

@dataclass(frozen=True, slots=True)
class Lit:
    value: int

Atom = Var | Lit


class Operator(Enum):
    """Binary primitives; the value is the operator's spelling in source code."""
    ADD = '+'
    SUB = '-'
    MUL = '*'
    DIV = '/'
    MOD = '%'
    EQ = '=='
    LT = '<'
    LE = '<='
    GT = '>'
    GE = '>='
    AND = '&&'
    OR = '||'
    XOR = '^'
    SR = '>>'
    SL = '<<'

    def __repr__(self):
        return self.value


## EXPRESSIONS
class Expression:
    __slots__ = ()

@dataclass(frozen=True, slots=True)
class Unit(Expression):
    atom: Atom

@dataclass(frozen=True, slots=True)
class Let(Expression):
    name: str
    value: Expression
    body: Expression

@dataclass(frozen=True, slots=True)
class Call(Expression):
    function: str
    args: tuple[Atom, ...]

@dataclass(frozen=True, slots=True)
class Apply(Expression):
    closure: str
    args: tuple[Atom, ...]

@dataclass(frozen=True, slots=True)
class Papp(Expression):
    function: str
    args: tuple[Atom, ...]

@dataclass(frozen=True, slots=True)
class Match(Expression):
    atom: Atom
    cases: tuple[tuple[int, Expression], ...]
    default: Expression | None = None

@dataclass(frozen=True, slots=True)
class Operate(Expression):
    op: Operator
    x: Atom
    y: Atom


@dataclass(frozen=True)
class Definition:
    name: str
    params: tuple[str, ...]
    body: Expression
    meta: dict = field(default_factory=dict, compare=False, repr=False)  # filename, start/finish lines

    @property
    def arity(self) -> int:
        return len(self.params)


## VALUES
class Value:
    __slots__ = ()

    def expect_num(self) -> int:
        raise TinyTagError(f"Expected a number, got closure pointer `{self!r}`.", tiny_token=self)

    def expect_ptr(self) -> "Ptr":
        raise TinyTagError(f"Expected a closure pointer, got number `{self!r}`.", tiny_token=self)

@dataclass(frozen=True, slots=True)
class Num(Value):
    value: int

    def expect_num(self) -> int:
        return self.value

@dataclass(frozen=True, slots=True)
class Ptr(Value):
    index: int

    def expect_ptr(self) -> "Ptr":
        return self


@dataclass(frozen=True, slots=True)
class PartialApplication:
    """Closure record: a known function paired with a prefix of its arguments."""
    function: str
    args: tuple[Value, ...]


class Frame:
    """Bindings visible during one function activation.  Programs are single-assignment,
    so a name is inserted at most once and never needs shadowing.
    """
    __slots__ = ('function', 'bindings')

    def __init__(self, function: str, bindings=()):
        self.function = function
        self.bindings: dict[str, Value] = dict(bindings)

    def insert(self, name: str, value: Value) -> None:
        self.bindings[name] = value

    def get(self, name: str) -> Value:
        try:
            return self.bindings[name]
        except KeyError:
            raise TinyUnboundError(f"Variable `{name}` is not bound in `{self.function}`.", tiny_token=name) from None

    def __contains__(self, name: str) -> bool:
        return name in self.bindings

    def __repr__(self):
        return f"Frame({self.function}, {self.bindings!r})"
