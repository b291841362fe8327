"""Arithmetic-logic unit: stateless bit-level operations.

Every function takes and returns bit lists (MSB first) and has no hidden
state. Results are *raw*: `add` may grow by one bit on carry-out and
`multiply` returns an unbounded product. Capturing CARRY/ZERO/SIGN and
truncating back to the architecture width is the CPU's job.

Comparisons here are unsigned magnitude comparisons. Callers that need signed
ordering must look at the sign bit themselves.
"""

from typing import List, Sequence, Tuple

from .codec import Bits, fill_zeros


def _pad_pair(a: Sequence[bool], b: Sequence[bool]) -> Tuple[Bits, Bits]:
    """Zero-extend both operands to the longer of the two lengths."""
    m = max(len(a), len(b))
    return fill_zeros(a, m), fill_zeros(b, m)


# ══════════════════════════════════════════════
# Single-bit logic
# ══════════════════════════════════════════════

def bit_not(a: bool) -> bool:
    return not a


def bit_and(a: bool, b: bool) -> bool:
    return a and b


def bit_or(a: bool, b: bool) -> bool:
    return a or b


def bit_nand(a: bool, b: bool) -> bool:
    return not (a and b)


def bit_nor(a: bool, b: bool) -> bool:
    return not (a or b)


def bit_xor(a: bool, b: bool) -> bool:
    return (a or b) and not (a and b)


def and_mask(a: Sequence[bool], mask: Sequence[bool]) -> Bits:
    """Bitwise AND of two bit sequences, zero-extended to equal length."""
    a_, mask_ = _pad_pair(a, mask)
    return [bit_and(x, m) for x, m in zip(a_, mask_)]


def is_zero(a: Sequence[bool]) -> bool:
    """True if no bit is set (an empty sequence counts as zero)."""
    return not any(a)


# ══════════════════════════════════════════════
# Arithmetic
# ══════════════════════════════════════════════

def full_adder(a: bool, b: bool, carry: bool) -> Tuple[bool, bool]:
    """1-bit full adder. Returns (sum, carry_out)."""
    a_xor_b = bit_xor(a, b)
    return bit_xor(a_xor_b, carry), (a_xor_b and carry) or (a and b)


def add(a: Sequence[bool], b: Sequence[bool]) -> Bits:
    """Ripple-carry addition.

    Operands are zero-extended to equal length and added from the least
    significant bit up. A carry out of the most significant bit extends the
    result by one leading 1 bit.
    """
    a_, b_ = _pad_pair(a, b)
    total: List[bool] = []
    carry = False
    for x, y in zip(reversed(a_), reversed(b_)):
        s, carry = full_adder(x, y, carry)
        total.append(s)
    if carry:
        total.append(True)
    total.reverse()
    return total


def increment(a: Sequence[bool]) -> Bits:
    return add(a, [True])


def complement(a: Sequence[bool], width: int) -> Bits:
    """One's complement, zero-padded to `width` bits."""
    return fill_zeros([not bit for bit in a], width)


def negate(a: Sequence[bool], width: int) -> Bits:
    """Two's complement negation modulo 2**width.

    The operand is zero-padded to `width`, inverted, and one is added. The
    carry produced when negating zero is dropped, so the result always has
    exactly `width` bits and -2**(width-1) maps to itself.
    """
    total = add(complement(fill_zeros(a, width), width), [True])
    return total[-width:]


def subtract(a: Sequence[bool], b: Sequence[bool], width: int) -> Bits:
    """a - b as a + negate(b). Raw result: may carry past `width` bits."""
    return add(a, negate(b, width))


def shift_left(a: Sequence[bool]) -> Bits:
    """Logical shift left: append a zero bit (the byte grows by one)."""
    return list(a) + [False]


def shift_right(a: Sequence[bool]) -> Bits:
    """Logical shift right: drop the last bit, prepend a zero."""
    if not a:
        return []
    return [False] + list(a[:-1])


def multiply(a: Sequence[bool], b: Sequence[bool]) -> Bits:
    """Shift-and-add multiplication of two unsigned operands.

    The multiplier `b` is walked from its least significant bit upward.
    Whenever the current bit is set the shifted multiplicand is added into
    the running sum; the multiplicand is shifted left after every bit.
    Returns the raw product, which may be up to len(a) + len(b) bits long.
    """
    multiplicand, multiplier = _pad_pair(a, b)
    total: Bits = [False]
    for bit in reversed(multiplier):
        if bit:
            total = add(total, multiplicand)
        multiplicand = shift_left(multiplicand)
    return total


# ══════════════════════════════════════════════
# Unsigned comparisons
# ══════════════════════════════════════════════

def _compare(a: Sequence[bool], b: Sequence[bool]) -> int:
    """-1, 0 or 1 for a <, ==, > b (unsigned)."""
    a_, b_ = _pad_pair(a, b)
    for x, y in zip(a_, b_):
        if x != y:
            return 1 if x else -1
    return 0


def less_than(a: Sequence[bool], b: Sequence[bool]) -> bool:
    return _compare(a, b) < 0


def less_or_equal(a: Sequence[bool], b: Sequence[bool]) -> bool:
    return _compare(a, b) <= 0


def greater_or_equal(a: Sequence[bool], b: Sequence[bool]) -> bool:
    return not less_than(a, b)


def greater_than(a: Sequence[bool], b: Sequence[bool]) -> bool:
    return not less_or_equal(a, b)


def equal(a: Sequence[bool], b: Sequence[bool]) -> bool:
    return _compare(a, b) == 0
