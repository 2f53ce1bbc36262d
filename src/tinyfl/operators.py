## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘
#
# Primitive operators on unsigned machine words.  Arithmetic wraps modulo 2**64, shifting
# by the word size or more yields zero, and only division/modulo by zero trap.
#

from typing import Callable

from .types import Operator
from .errors import TinyArithmeticError


WORD_BITS = 64
WORD_MASK = (1 << WORD_BITS) - 1

word = int

## ARITHMETIC
def op_add(x: word, y: word) -> word: return (x + y) & WORD_MASK
def op_sub(x: word, y: word) -> word: return (x - y) & WORD_MASK
def op_mul(x: word, y: word) -> word: return (x * y) & WORD_MASK
def op_div(x: word, y: word) -> word:
    if y == 0: raise TinyArithmeticError(f"Division by zero in `{x} / {y}`.", tiny_token=Operator.DIV)
    return x // y
def op_mod(x: word, y: word) -> word:
    if y == 0: raise TinyArithmeticError(f"Modulo by zero in `{x} % {y}`.", tiny_token=Operator.MOD)
    return x % y
## COMPARISON
def op_eq(x: word, y: word) -> word: return int(x == y)
def op_lt(x: word, y: word) -> word: return int(x < y)
def op_le(x: word, y: word) -> word: return int(x <= y)
def op_gt(x: word, y: word) -> word: return int(x > y)
def op_ge(x: word, y: word) -> word: return int(x >= y)
## BITWISE
def op_and(x: word, y: word) -> word: return x & y
def op_or(x: word, y: word) -> word: return x | y
def op_xor(x: word, y: word) -> word: return x ^ y
def op_sr(x: word, y: word) -> word: return x >> y if y < WORD_BITS else 0
def op_sl(x: word, y: word) -> word: return (x << y) & WORD_MASK if y < WORD_BITS else 0


OPERATORS: dict[Operator, Callable[[word, word], word]] = {
    op: globals()[f"op_{op.name.lower()}"] for op in Operator
}


def fits_word(n: int) -> bool:
    return 0 <= n <= WORD_MASK


def run_operator(op: Operator, x: word, y: word) -> word:
    return OPERATORS[op](x, y)
