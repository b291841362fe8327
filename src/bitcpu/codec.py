"""Bit/Byte codec: conversions between integers, bit lists and text.

A byte is a list of bools, most-significant bit first. Its length is the
architecture's bit width W; nothing in this module assumes W == 8.

Signed values use two's complement. Negative numbers are built the way the
hardware would: the zero-padded magnitude is inverted and one is added.
"""

from typing import List, Optional, Sequence

from .errors import CodecError

Bit = bool
Bits = List[bool]


def fill_zeros(bits: Sequence[bool], count: int, backwards: bool = False) -> Bits:
    """Pad a bit sequence with zero bits up to `count` bits.

    Args:
        bits: Bits to pad (never truncated)
        count: Target length
        backwards: Append zeros at the end instead of the front

    Returns:
        New padded list
    """
    padding = [False] * max(0, count - len(bits))
    if backwards:
        return list(bits) + padding
    return padding + list(bits)


def bits_to_str(bits: Sequence[bool]) -> str:
    """Render bits as a '0'/'1' string."""
    return "".join("1" if bit else "0" for bit in bits)


def str_to_bits(text: str) -> Bits:
    """Parse a '0'/'1' string. Whitespace is ignored."""
    bits = []
    for char in text:
        if char in "01":
            bits.append(char == "1")
        elif not char.isspace():
            raise CodecError(f"Invalid binary digit: {char!r}")
    return bits


def bits_to_uint(bits: Sequence[bool]) -> int:
    """Unsigned value of a bit sequence (0 for an empty sequence)."""
    value = 0
    for bit in bits:
        value = (value << 1) | int(bit)
    return value


def bits_to_int(bits: Sequence[bool]) -> int:
    """Signed (two's complement) value of a byte.

    The first bit is the sign. For a negative byte the unsigned value of the
    remaining bits has 2**(W-1) subtracted from it.
    """
    if not bits:
        return 0
    magnitude = bits_to_uint(bits[1:])
    if not bits[0]:
        return magnitude
    return magnitude - (1 << (len(bits) - 1))


def int_to_bits(value: int, width: int) -> Bits:
    """Encode a signed integer as a two's-complement byte of `width` bits.

    Non-negative values may use the full unsigned range (0 .. 2**width - 1);
    negative values must not be below -2**(width-1).

    Raises:
        CodecError: If width < 1 or the value is outside both ranges
    """
    if width < 1:
        raise CodecError(f"Incorrect byte length: {width}")

    magnitude = str_to_bits(format(abs(value), "b"))
    if len(magnitude) > width or (value < 0 and -value > 1 << (width - 1)):
        raise CodecError(f"Cannot store {value} in {width} bits")

    bits = fill_zeros(magnitude, width)
    if value >= 0:
        return bits

    inverted = [not bit for bit in bits]
    negated = str_to_bits(format(bits_to_uint(inverted) + 1, "b"))
    return fill_zeros(negated, width)


def uint_to_bits(value: int, width: int) -> Bits:
    """Encode a non-negative integer in exactly `width` bits."""
    if value < 0:
        raise CodecError(f"Expected an unsigned value, got {value}")
    return int_to_bits(value, width)


def bits_to_hex(bits: Sequence[bool]) -> str:
    """Render bits as upper-case hex, one digit per (left-padded) nibble."""
    if not bits:
        return ""
    digits = (len(bits) + 3) // 4
    return format(bits_to_uint(bits), "X").zfill(digits)


def hex_to_bits(text: str, width: Optional[int] = None) -> Bits:
    """Parse hex text (optionally `$` or `0x` prefixed) into bits.

    Args:
        text: Hex digits
        width: Output width; defaults to four bits per digit

    Raises:
        CodecError: If the text is not hex or does not fit in width
    """
    digits = text.strip()
    if digits.startswith("$"):
        digits = digits[1:]
    elif digits.lower().startswith("0x"):
        digits = digits[2:]
    try:
        value = int(digits, 16)
    except ValueError:
        raise CodecError(f"Invalid hex value: {text!r}")
    if width is None:
        width = 4 * len(digits)
    return uint_to_bits(value, width)


def split_bytes(bits: Sequence[bool], width: int) -> List[Bits]:
    """Slice a flat bit stream into consecutive `width`-bit chunks.

    The last chunk may be shorter if the stream is not a whole number of
    bytes.
    """
    return [list(bits[i:i + width]) for i in range(0, len(bits), width)]


def bytes_equal(a: Sequence[bool], b: Sequence[bool]) -> bool:
    """Exact equality: same length and same bits."""
    return len(a) == len(b) and all(x == y for x, y in zip(a, b))


def necessary_bit_count(n: int) -> int:
    """Minimum number of bits needed to represent unsigned `n`."""
    if n == 0:
        return 1
    return n.bit_length()
