## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘
#
# Structural checks run once over a whole module before it can be evaluated.  Everything
# the evaluator assumes but does not check again is established here, except for match
# exhaustiveness and arithmetic faults which are left to run time.
#

from typing import Iterable

from .types import Definition, Expression, Unit, Let, Call, Apply, Papp, Match, Operate, Var, Lit, Atom
from .errors import TinyCheckError
from .operators import fits_word


ARGS_MAX_SIZE = 8


def check_module(toplevel: dict[str, Definition]) -> None:
    for name, definition in toplevel.items():
        check_definition(name, definition, toplevel)


def check_definition(name: str, definition: Definition, toplevel: dict[str, Definition]) -> None:
    def fail(message, token=None):
        raise TinyCheckError(message, tiny_token=token if token is not None else name,
                             tiny_meta=definition.meta, function=name)

    if name != definition.name:
        fail(f"Function `{definition.name}` is registered under the name `{name}`.")
    if len(definition.params) > ARGS_MAX_SIZE:
        fail(f"Function `{name}` has more than {ARGS_MAX_SIZE} arguments.")

    # Names are unique across the whole function, but only visible in the branch binding them.
    defined: set[str] = set()

    def define(var: str, visible: frozenset) -> frozenset:
        if var in defined:
            fail(f"Variable `{var}` has already been defined in `{name}`; functions must be in single-assignment form.", var)
        defined.add(var)
        return visible | {var}

    def check_atoms(atoms: Iterable[Atom], visible: frozenset):
        for atom in atoms:
            match atom:
                case Var(var) if var not in visible:
                    fail(f"Unbound variable `{var}` in `{name}`.", var)
                case Lit(value) if not fits_word(value):
                    fail(f"Literal `{value}` in `{name}` does not fit in a machine word.", value)

    def lookup(func: str) -> Definition:
        if (target := toplevel.get(func)) is None:
            fail(f"Unbound function `{func}` called from `{name}`.", func)
        return target

    def check_expr(expr: Expression, visible: frozenset):
        match expr:
            case Unit(atom):
                check_atoms((atom,), visible)
            case Let(var, value, body):
                check_expr(value, visible)
                check_expr(body, define(var, visible))
            case Apply(closure, args):
                # The closure itself takes one argument slot.
                if len(args) >= ARGS_MAX_SIZE:
                    fail(f"Application in `{name}` has more than {ARGS_MAX_SIZE} arguments.", closure)
                check_atoms((Var(closure), *args), visible)
            case Call(func, args):
                if len(args) > ARGS_MAX_SIZE:
                    fail(f"Application in `{name}` has more than {ARGS_MAX_SIZE} arguments.", func)
                target = lookup(func)
                if target.arity != len(args):
                    fail(f"Function `{func}` expects {target.arity} argument(s) but `{name}` passes {len(args)}.", func)
                check_atoms(args, visible)
            case Papp(func, args):
                if len(args) >= ARGS_MAX_SIZE:
                    fail(f"Partial application in `{name}` has more than {ARGS_MAX_SIZE} arguments.", func)
                target = lookup(func)
                if len(args) >= target.arity:
                    fail(f"Partial application of `{func}` in `{name}` exceeds its arity of {target.arity}.", func)
                check_atoms(args, visible)
            case Match(atom, cases, default):
                check_atoms((atom,), visible)
                seen = set()
                for pattern, branch in cases:
                    if pattern in seen:
                        fail(f"Repeated pattern `{pattern}` in match of `{name}`.", pattern)
                    if not fits_word(pattern):
                        fail(f"Pattern `{pattern}` in `{name}` does not fit in a machine word.", pattern)
                    seen.add(pattern)
                    check_expr(branch, visible)
                if default is not None:
                    check_expr(default, visible)
            case Operate(_, x, y):
                check_atoms((x, y), visible)
            case _:
                raise NotImplementedError(f"Unexpected expression node `{type(expr).__name__}`.")

    visible = frozenset()
    for param in definition.params:
        visible = define(param, visible)
    check_expr(definition.body, visible)
