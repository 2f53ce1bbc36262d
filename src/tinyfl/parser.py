## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import os
import sys
import textwrap
from functools import cache

import lark
from .types import Var, Lit, Operator, Expression, Unit, Let, Call, Apply, Papp, Match, Operate, Definition
from .errors import TinyParseError, TinyIncompleteParse
from .operators import fits_word


GRAMMAR = r"""?start: definition*
definition: FN LPAREN NAME NAME* RPAREN LBRACE expr RBRACE

?expr: let | match | operate | apply | papp | call | unit
let: LET NAME ASSIGN expr SEMICOLON expr
match: MATCH atom LBRACE case* default? RBRACE
case: NUMBER ARROW LBRACE expr RBRACE
default: UNDERSCORE ARROW LBRACE expr RBRACE
operate: LPAREN OPERATOR atom atom RPAREN
apply: LPAREN APPLY NAME atom* RPAREN
papp: LPAREN PAPP NAME atom* RPAREN
call: LPAREN NAME atom* RPAREN
unit: atom
atom: NAME | NUMBER

// COMMENTS
COMMENT.11: /\/\/[^\r\n]*/

// KEYWORDS
FN: "fn"
LET: "let"
MATCH: "match"
APPLY: "apply"
PAPP: "papp"

// TOKENS
OPERATOR: /==|<=|>=|<<|>>|&&|\|\||[+\-*\/%<>^]/
ARROW: "=>"
ASSIGN: "="
SEMICOLON: ";"
UNDERSCORE: "_"
LPAREN: "("
RPAREN: ")"
LBRACE: "{"
RBRACE: "}"
NUMBER: /\d+(?![A-Za-z0-9_])/
NAME: /[A-Za-z][A-Za-z0-9_]*/

// WHITESPACE
%import common.WS
%ignore WS
%ignore COMMENT
"""

KEYWORDS = {'fn', 'let', 'match', 'apply', 'papp'}
_OPERATORS = {op.value: op for op in Operator}


@cache
def _make_parser() -> lark.Lark:
    return lark.Lark(GRAMMAR, start=['start', 'expr'], parser="lalr", lexer="contextual", propagate_positions=True)


def parse(source: str, start='start', filename=None):
    """Yield the definitions found in `source`, or a single expression when `start` is 'expr'."""
    parser = _make_parser()

    def _tokens(tree: lark.Tree, type_: str) -> list[lark.Token]:
        return [ch for ch in tree.children if isinstance(ch, lark.Token) and ch.type == type_]

    def _trees(tree: lark.Tree) -> list[lark.Tree]:
        return [ch for ch in tree.children if isinstance(ch, lark.Tree)]

    def _error(message, token: lark.Token):
        return TinyParseError(message, filename=filename, line=token.line, column=token.column, token=token.value)

    def _number(token: lark.Token) -> int:
        if not fits_word(value := int(token.value)):
            raise _error(f"Number `{token.value}` does not fit in a machine word.", token)
        return value

    def _name(token: lark.Token) -> str:
        # Keywords are reserved, even where the contextual lexer would accept them as names.
        if token.value in KEYWORDS:
            raise _error(f"Keyword `{token.value}` cannot be used as a name.", token)
        return token.value

    def _atom(tree: lark.Tree):
        assert tree.data == 'atom'
        [token] = tree.children
        return Var(_name(token)) if token.type == 'NAME' else Lit(_number(token))

    def _atoms(tree: lark.Tree) -> tuple:
        return tuple(_atom(ch) for ch in _trees(tree))

    def _expr(tree: lark.Tree) -> Expression:
        match tree.data:
            case 'unit':
                return Unit(_atom(tree.children[0]))
            case 'let':
                [name] = _tokens(tree, 'NAME')
                value, body = _trees(tree)
                return Let(_name(name), _expr(value), _expr(body))
            case 'match':
                atom, *branches = _trees(tree)
                cases, default = [], None
                for branch in branches:
                    [body] = _trees(branch)
                    if branch.data == 'case':
                        cases.append((_number(_tokens(branch, 'NUMBER')[0]), _expr(body)))
                    else:
                        default = _expr(body)
                return Match(_atom(atom), tuple(cases), default)
            case 'operate':
                [op] = _tokens(tree, 'OPERATOR')
                x, y = _trees(tree)
                return Operate(_OPERATORS[op.value], _atom(x), _atom(y))
            case 'apply':
                [name] = _tokens(tree, 'NAME')
                return Apply(_name(name), _atoms(tree))
            case 'papp':
                [name] = _tokens(tree, 'NAME')
                return Papp(_name(name), _atoms(tree))
            case 'call':
                [name] = _tokens(tree, 'NAME')
                return Call(_name(name), _atoms(tree))
        raise NotImplementedError(f"Unexpected node `{tree.data}` from parser in expression.")

    def _definition(tree: lark.Tree) -> Definition:
        name, *params = _tokens(tree, 'NAME')
        [body] = _trees(tree)
        meta = {'filename': filename, 'start': tree.meta.line, 'finish': tree.meta.end_line}
        return Definition(_name(name), tuple(_name(p) for p in params), _expr(body), meta)

    def _traverse(it):
        if isinstance(it, lark.Tree) and it.data == 'definition':
            yield _definition(it)
        elif isinstance(it, lark.Tree) and it.data == 'start':
            for ch in it.children:
                yield from _traverse(ch)
        elif isinstance(it, lark.Tree):
            yield _expr(it)

    try:
        tree = parser.parse(source, start=start)
    except (lark.exceptions.UnexpectedInput, lark.exceptions.ParseError) as exc:
        def attr(k): return getattr(exc, k, None)
        token_val = getattr(token, 'value', '') if (token := attr('token')) is not None else (attr('char') or '')
        error_class = TinyIncompleteParse if isinstance(exc, lark.exceptions.UnexpectedEOF) or \
            getattr(token, 'type', None) == '$END' else TinyParseError
        raise error_class(str(exc), filename=filename, line=attr('line'), column=attr('column'), token=token_val) from None
    yield from _traverse(tree)


def parse_definitions(source: str, filename=None) -> list[Definition]:
    return list(parse(source, start='start', filename=filename))

def parse_expression(source: str, filename=None) -> Expression:
    [expr] = parse(source, start='expr', filename=filename)
    return expr


def load_source_lines(meta, keyword, line):
    if meta.get('filename') is None or not os.path.isfile(meta['filename']): return ""
    with open(meta['filename'], 'r', encoding='utf-8') as f:
        source = f.read()
    lines = [l for l in source.split('\n')[meta['start']-1:meta['finish']]]
    j = line - meta['start']
    if 0 <= j < len(lines):
        lines[j] = lines[j].replace(keyword, f"\033[48;5;30m\033[1;97m{keyword}\033[0m", 1)
    return '\n'.join(lines)

def print_source_lines(meta, identifier, file=sys.stderr):
    if not meta or meta.get('start') is None: return
    print(format_source_lines(meta, identifier), end='\n', file=file)

def format_source_lines(meta: dict, identifier: str) -> str:
    header = f"\033[97m  File \"{meta['filename']}\", lines {meta['start']}-{meta['finish']}, in {identifier}\033[0m\n"
    lines = load_source_lines(meta, keyword=identifier, line=meta['start'])
    return header + (textwrap.indent(textwrap.dedent(lines), prefix='    ') + "\n" if lines else "")


def format_parse_error_context(filename, line, column, token_value, source=None):
    lines = source.splitlines(keepends=True) if source else open(filename, 'r').readlines()
    if line is None: line, column = len(lines), 0
    start_line, end_line = max(0, line - 3), min(len(lines), line + 2)
    result = [f"\033[97m  File \"{filename}\", line {line}\033[0m"]

    for i in range(start_line, end_line):
        line_content = lines[i].rstrip('\n')
        line_color = '\033[90m'
        if i+1 == line:
            line_color = '\033[97m'
            if column and 0 < column <= len(line_content):
                line_content = (
                    line_content[:column-1] +
                    f"\033[48;5;30m\033[1;97m{line_content[column-1:column+len(token_value)-1]}\033[0m" +
                    line_content[column+len(token_value)-1:]
                )
        result.append(f"{line_color}{i+1:>5} |\033[0m {line_content}")
    return '\n' + '\n'.join(result) + '\n'
