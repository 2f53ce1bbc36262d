## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import re

from .types import Atom, Var, Lit, Expression, Unit, Let, Call, Apply, Papp, Match, Operate, \
                   Definition, Value, Num, Ptr, PartialApplication


def write_without_ansi(write_fn):
    """Wrapper function that strips ANSI codes before calling the original writer."""
    ansi_re = re.compile(r'\033\[[0-9;]*m')
    return lambda text: write_fn(ansi_re.sub('', text))


def format_atom(atom: Atom) -> str:
    match atom:
        case Var(name): return name
        case Lit(value): return str(value)
    raise TypeError(f"Not an atom: {atom!r}")

def _format_app(head: str, args) -> str:
    return '(' + ' '.join([head, *args]) + ')'

def _newline(indent: int) -> str:
    return '\n' + '  ' * indent

def _format_expr(expr: Expression, indent: int, newline: bool) -> str:
    prefix = _newline(indent) if newline else ''
    match expr:
        case Unit(atom):
            return prefix + format_atom(atom)
        case Let(name, value, body):
            return prefix + f"let {name} = {_format_expr(value, indent + 1, False)};" + _format_expr(body, indent, True)
        case Call(func, args):
            return prefix + _format_app(func, map(format_atom, args))
        case Apply(closure, args):
            return prefix + _format_app('apply', [closure, *map(format_atom, args)])
        case Papp(func, args):
            return prefix + _format_app('papp', [func, *map(format_atom, args)])
        case Match(atom, cases, default):
            branches = [(str(pattern), branch) for pattern, branch in cases]
            if default is not None:
                branches.append(('_', default))
            text = prefix + f"match {format_atom(atom)} {{"
            for pattern, branch in branches:
                text += _newline(indent + 1) + f"{pattern} => {{"
                text += _format_expr(branch, indent + 2, True)
                text += _newline(indent + 1) + "}"
            return text + _newline(indent) + "}"
        case Operate(op, x, y):
            return prefix + _format_app(op.value, [format_atom(x), format_atom(y)])
    raise TypeError(f"Not an expression: {expr!r}")

def format_expression(expr: Expression, indent: int = 0) -> str:
    return _format_expr(expr, indent, False)

def format_definition(definition: Definition) -> str:
    header = _format_app(definition.name, definition.params)
    return f"fn {header} {{" + _format_expr(definition.body, 1, True) + "\n}"

def format_module(module) -> str:
    return '\n\n'.join(format_definition(d) for d in module) + '\n'


def format_value(value: Value, heap=None, depth: int = 4) -> str:
    match value:
        case Num(n):
            return str(n)
        case Ptr(index) if heap is not None and depth > 0 and 0 <= index < len(heap):
            record: PartialApplication = heap[index]
            items = [record.function, *(format_value(v, heap, depth - 1) for v in record.args)]
            return f"<papp #{index} " + ' '.join(items) + ">"
        case Ptr(index):
            return f"<papp #{index}>"
    return repr(value)


def show_call(step: int, depth: int, name: str, args, heap=None, file=None):
    args_str = ' '.join(format_value(a, heap) for a in args)
    print(f"\033[90m{step:>5} :\033[0m {'  ' * min(depth, 32)}\033[97m{name}\033[0m {args_str}", file=file)

def show_step(step: int, depth: int, expr: Expression, width=72, file=None):
    expr_str = ' '.join(format_expression(expr).split())
    if len(expr_str) > width:
        expr_str = expr_str[:width-2] + ' …'
    print(f"\033[90m{step:>5} :\033[0m {'  ' * min(depth, 32)}\033[36m{expr_str}\033[0m", file=file)
