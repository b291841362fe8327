"""Tests for sparse Memory and Architecture configuration."""

import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from bitcpu.codec import str_to_bits, uint_to_bits
from bitcpu.config import Architecture, STEP_LIMIT
from bitcpu.errors import ConfigurationError
from bitcpu.memory import Memory


def b(text):
    return str_to_bits(text)


class TestMemoryReadWrite:
    """Test zero defaults, padding and cell identity."""

    @pytest.fixture
    def errors(self):
        return []

    @pytest.fixture
    def ram(self, errors):
        return Memory("RAM", 8, 16, on_error=errors.append)

    def test_unwritten_reads_zero(self, ram):
        assert ram.read(b("0101")) == b("00000000")
        assert len(ram) == 0

    def test_write_pads_value(self, ram):
        ram.write(b("0011"), b("101"))
        assert ram.read(b("00000011")) == b("00000101")

    def test_leading_zeros_same_cell(self, ram):
        ram.write(b("1"), b("11110000"))
        assert ram.read(b("00000001")) == b("11110000")
        assert 1 in ram

    def test_read_returns_copy(self, ram):
        ram.write(b("0"), b("00000001"))
        value = ram.read(b("0"))
        value[0] = True
        assert ram.read(b("0")) == b("00000001")

    def test_clear(self, ram):
        ram.write(b("0"), b("1"))
        ram.clear()
        assert len(ram) == 0
        assert ram.read(b("0")) == b("00000000")

    def test_dump_sorted(self, ram):
        ram.write(uint_to_bits(9, 8), b("1"))
        ram.write(uint_to_bits(2, 8), b("10"))
        assert list(ram.dump()) == [2, 9]
        assert ram.dump()[2] == b("00000010")


class TestMemoryFaults:
    """Faults are reported, never raised, and leave memory untouched."""

    @pytest.fixture
    def errors(self):
        return []

    @pytest.fixture
    def ram(self, errors):
        return Memory("RAM", 8, 16, on_error=errors.append)

    def test_address_too_long(self, ram, errors):
        assert ram.read(b("100000000")) == b("00000000")
        assert errors == ["Incorrect RAM address: 100000000"]

    def test_address_past_capacity(self, ram, errors):
        ram.write(uint_to_bits(16, 8), b("1"))
        assert len(ram) == 0
        assert "out of range" in errors[0]

    def test_value_too_wide(self, ram, errors):
        ram.write(b("0"), b("111111111"))
        assert len(ram) == 0
        assert errors == ["Cannot store 9 bits of data in RAM, since 1 byte = 8"]

    def test_logs_without_handler(self, caplog):
        registers = Memory("register", 4, 4)
        with caplog.at_level(logging.WARNING, logger="bitcpu.memory"):
            registers.read(b("0100"))
        assert "register address 4 out of range" in caplog.text


class TestArchitecture:
    """Test configuration validation."""

    def test_defaults(self):
        arch = Architecture()
        assert (arch.bits, arch.register_count, arch.ram_bytes) == (8, 4, 256)
        assert arch.address_space == 256

    @pytest.mark.parametrize("kwargs", [
        {"bits": 0}, {"register_count": 0}, {"ram_bytes": 0},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ConfigurationError):
            Architecture(**kwargs)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            Architecture(bits=-1)

    def test_oversized_ram_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="bitcpu.config"):
            Architecture(bits=4, ram_bytes=32)
        assert "reach only 16" in caplog.text

    def test_from_dict(self):
        arch = Architecture.from_dict({"bits": "16", "register_count": 8})
        assert arch.bits == 16
        assert arch.register_count == 8
        assert arch.to_dict() == {"bits": 16, "register_count": 8, "ram_bytes": 256}

    def test_from_dict_unknown_key(self):
        with pytest.raises(ConfigurationError):
            Architecture.from_dict({"word": 8})

    def test_frozen(self):
        with pytest.raises(AttributeError):
            Architecture().bits = 16

    def test_step_limit(self):
        assert STEP_LIMIT == 100000
