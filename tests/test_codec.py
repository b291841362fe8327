"""Tests for bit/integer/text conversions."""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from bitcpu.codec import (
    bits_to_hex, bits_to_int, bits_to_str, bits_to_uint, bytes_equal, fill_zeros,
    hex_to_bits, int_to_bits, necessary_bit_count, split_bytes, str_to_bits,
    uint_to_bits,
)
from bitcpu.errors import CodecError


def b(text):
    return str_to_bits(text)


class TestPadding:
    """Test zero padding."""

    def test_fill_front(self):
        assert fill_zeros([True], 4) == b("0001")

    def test_fill_back(self):
        assert fill_zeros([True], 4, backwards=True) == b("1000")

    def test_never_truncates(self):
        assert fill_zeros(b("10101"), 3) == b("10101")


class TestStrings:
    """Test '0'/'1' string conversion."""

    def test_round_trip(self):
        assert bits_to_str(str_to_bits("0110")) == "0110"

    def test_whitespace_ignored(self):
        assert str_to_bits("01 10\n") == b("0110")

    def test_bad_digit(self):
        with pytest.raises(CodecError):
            str_to_bits("0120")


class TestIntegers:
    """Test signed and unsigned integer encoding."""

    def test_uint(self):
        assert bits_to_uint(b("11111111")) == 255
        assert bits_to_uint([]) == 0

    def test_signed_positive(self):
        assert int_to_bits(5, 8) == b("00000101")
        assert bits_to_int(b("00000101")) == 5

    def test_signed_negative(self):
        assert int_to_bits(-1, 8) == b("11111111")
        assert int_to_bits(-5, 8) == b("11111011")
        assert bits_to_int(b("11111011")) == -5

    def test_most_negative(self):
        assert int_to_bits(-128, 8) == b("10000000")
        assert bits_to_int(b("10000000")) == -128

    def test_unsigned_range_accepted(self):
        """Magnitudes up to W bits are accepted, e.g. 200 in 8 bits."""
        assert int_to_bits(200, 8) == b("11001000")
        assert bits_to_int(int_to_bits(200, 8)) == -56

    def test_too_wide(self):
        with pytest.raises(CodecError):
            int_to_bits(256, 8)

    def test_negative_below_signed_range(self):
        """-200 is neither a signed nor an unsigned 8-bit value."""
        with pytest.raises(CodecError):
            int_to_bits(-200, 8)
        with pytest.raises(CodecError):
            int_to_bits(-129, 8)

    def test_bad_width(self):
        with pytest.raises(CodecError):
            int_to_bits(0, 0)

    def test_uint_rejects_negative(self):
        with pytest.raises(CodecError):
            uint_to_bits(-1, 8)

    def test_codec_error_is_value_error(self):
        with pytest.raises(ValueError):
            int_to_bits(1000, 4)


class TestHex:
    """Test hex rendering and parsing."""

    def test_bits_to_hex(self):
        assert bits_to_hex(b("11111111")) == "FF"
        assert bits_to_hex(b("000000001010")) == "00A"

    def test_hex_prefixes(self):
        assert hex_to_bits("$0F") == b("00001111")
        assert hex_to_bits("0xf") == b("1111")

    def test_hex_width(self):
        assert hex_to_bits("A", width=8) == b("00001010")

    def test_invalid_hex(self):
        with pytest.raises(CodecError):
            hex_to_bits("$XZ")


class TestHelpers:
    """Test byte splitting and comparison helpers."""

    def test_split_bytes(self):
        assert split_bytes(b("0001001000"), 4) == [b("0001"), b("0010"), b("00")]

    def test_bytes_equal(self):
        assert bytes_equal(b("0101"), b("0101"))
        assert not bytes_equal(b("0101"), b("101"))

    def test_necessary_bit_count(self):
        assert necessary_bit_count(0) == 1
        assert necessary_bit_count(5) == 3
        assert necessary_bit_count(256) == 9
