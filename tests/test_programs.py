"""Integration tests for example programs."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from bitcpu import CPU, Architecture, CPUEvents
from bitcpu.codec import bits_to_int


@pytest.fixture
def outputs():
    return []


@pytest.fixture
def cpu(outputs):
    return CPU(events=CPUEvents(on_output=lambda value: outputs.append(bits_to_int(value))))


class TestArithmeticPrograms:
    """Straight-line programs on the default 8-bit machine."""

    def test_add_and_output(self, cpu, outputs):
        """5 + 3 is printed as 8."""
        cpu.load_source("""
            MOV %0, #5
            ADD %0, #3
            OUT %0
            HLT
        """)
        cpu.run()

        assert outputs == [8]
        assert cpu.is_halted() is True
        assert cpu.get_step_count() == 4

    def test_multiply_and_output(self, cpu, outputs):
        """6 * 7 is printed as 42 and ZERO stays clear."""
        cpu.load_source("""
            MOV %0, #6
            MUL %0, #7
            OUT %0
            HLT
        """)
        cpu.run()

        assert outputs == [42]
        assert cpu.get_flags()["ZERO"] is False

    def test_compare_and_skip(self, cpu):
        """CMP 5,5 sets ZERO so JEQ skips the MOV into register 2."""
        cpu.load_source("""
            MOV %0, #5
            CMP %0, #5
            JEQ !2
            MOV %2, #1
            HLT
        """)
        cpu.run()

        assert cpu.register_value(2) == 0
        assert cpu.get_flags()["ZERO"] is True
        assert cpu.get_step_count() == 4

    def test_compare_and_skip_compact_syntax(self, cpu):
        """Same branch written with the sigils glued to the mnemonics."""
        cpu.load_source("""
            MOV%#0,5
            MOV%#1,5
            CMP%%0,1
            JEQ!2
            MOV%#2,9
            HLT
        """)
        cpu.run()

        assert cpu.errors == []
        assert cpu.register_value(2) == 0
        assert cpu.get_flags()["ZERO"] is True

    def test_add_compact_syntax(self, cpu, outputs):
        cpu.load_source("MOV%#0,5\nMOV%#1,3\nADD%%0,1\nOUT%0\nHLT")
        cpu.run()

        assert cpu.errors == []
        assert outputs == [8]

    def test_subtract_goes_negative(self, cpu):
        cpu.load_source("MOV %0, #3\nSUB %0, #5\nHLT")
        cpu.run()

        assert cpu.register_value(0) == -2
        assert cpu.get_flags() == {"CARRY": False, "ZERO": False, "SIGN": True}

    def test_add_carry_out(self, cpu):
        """255 + 1 wraps to zero with CARRY and ZERO set."""
        cpu.load_source("MOV %0, #255\nADD %0, #1\nHLT")
        cpu.run()

        assert cpu.register_value(0) == 0
        assert cpu.get_flags()["CARRY"] is True
        assert cpu.get_flags()["ZERO"] is True

    def test_negative_multiply_leaves_sign(self, cpu):
        cpu.load_source("MOV %0, #-6\nMUL %0, #7\nHLT")
        cpu.run()

        assert cpu.register_value(0) == -42
        assert cpu.get_flags()["SIGN"] is False

    def test_multiply_overflow_sets_carry(self, cpu):
        cpu.load_source("MOV %0, #16\nMUL %0, #16\nHLT")
        cpu.run()

        assert cpu.register_value(0) == 0
        assert cpu.get_flags()["CARRY"] is True
        assert cpu.get_flags()["ZERO"] is False

    def test_multiply_by_zero_sets_zero(self, cpu):
        cpu.load_source("MOV %0, #9\nMOV %1, #0\nMUL %0, %1\nHLT")
        cpu.run()

        assert cpu.register_value(0) == 0
        assert cpu.get_flags()["ZERO"] is True

    def test_memory_operands(self, cpu, outputs):
        cpu.load_source("""
            MOV @100, #7
            MOV %1, @100
            ADD %1, @100
            MOV @101, %1
            OUT @101
            HLT
        """)
        cpu.run()

        assert outputs == [14]
        assert bits_to_int(cpu.read_ram(101)) == 14


class TestLoopPrograms:
    """Programs with labels and backward jumps."""

    def test_sum_5_to_1(self, cpu, outputs):
        """Sum of 5 down to 1 is 15."""
        cpu.load_source("""
            MOV %0, #0      ; sum
            MOV %1, #5      ; counter
        loop:
            ADD %0, %1
            DEC %1
            JNZ loop
            OUT %0
            HLT
        """)
        cpu.run()

        assert outputs == [15]
        assert cpu.register_value(1) == 0
        # 2 init + 5 * 3 loop + OUT + HLT
        assert cpu.get_step_count() == 19

    def test_fibonacci(self, cpu, outputs):
        cpu.load_source("""
            MOV %0, #0
            MOV %1, #1
            MOV %3, #6
        loop:
            OUT %0
            MOV %2, %0
            ADD %2, %1
            MOV %0, %1
            MOV %1, %2
            DEC %3
            JNZ loop
            HLT
        """)
        cpu.run()

        assert outputs == [0, 1, 1, 2, 3, 5]

    def test_count_up_with_compare(self, cpu, outputs):
        cpu.load_source("""
            MOV %0, #1
        next:
            OUT %0
            INC %0
            CMP %0, #4
            JLSS next
            HLT
        """)
        cpu.run()

        assert outputs == [1, 2, 3]

    def test_absolute_jump(self, cpu):
        """JMP %9 lands on the fourth instruction (byte address 9)."""
        cpu.load_source("""
            MOV %0, #1
            JMP %9
            MOV %0, #2
            HLT
        """)
        cpu.run()

        assert cpu.register_value(0) == 1

    def test_jgtr_not_taken_on_negative(self, cpu):
        cpu.load_source("""
            MOV %0, #1
            CMP %0, #3
            JGTR !2
            MOV %1, #9
            HLT
        """)
        cpu.run()

        assert cpu.register_value(1) == 9


class TestAssemblyFaults:
    """Programs that contain lines the assembler rejects."""

    def test_jump_over_broken_line(self, cpu):
        cpu.load_source("""
            MOV %0, #1
            JMP done
            FROB %0
            MOV %0, #2
        done:
            OUT %0
            HLT
        """)
        cpu.run()

        assert len(cpu.errors) == 1
        assert cpu.register_value(0) == 1

    def test_broken_line_halts(self, cpu):
        cpu.load_source("MOV %0, #1\nFROB %0\nMOV %0, #2\nHLT")
        cpu.run()

        assert cpu.register_value(0) == 1
        assert cpu.get_pc() == 3


class TestOtherArchitectures:
    """Programs on non-default widths."""

    def test_16_bit_add(self):
        outputs = []
        cpu = CPU(Architecture(bits=16, register_count=2, ram_bytes=64),
                  events=CPUEvents(on_output=lambda value: outputs.append(bits_to_int(value))))
        cpu.load_source("MOV %0, #1000\nADD %0, #1000\nOUT %0\nHLT")
        cpu.run()

        assert outputs == [2000]

    def test_4_bit_wraps(self):
        cpu = CPU(Architecture(bits=4, register_count=2, ram_bytes=16))
        cpu.load_source("MOV %0, #7\nADD %0, #1\nHLT")
        cpu.run()

        assert cpu.register_value(0) == -8
        assert cpu.get_flags()["SIGN"] is True
        assert cpu.get_flags()["CARRY"] is False
