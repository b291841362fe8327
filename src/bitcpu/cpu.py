"""CPU: fetch-decode-execute engine for the bit-level machine.

    RAM[PC] -> IR -> opcode table -> REGISTRY handler -> registers/RAM/flags
                                                  |
                                           ALU (bit lists)

PC, IR, register indices, addresses and data all share one representation
(W-bit bytes) and one arithmetic unit: advancing PC is an ALU addition that
wraps at W bits exactly like user data does.

Faults found while assembling or running are reported on the error channel
(`CPUEvents.on_error`) and recorded in `CPU.errors`; they never stop
execution. Only HLT, halt() or the step limit end a run.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from . import alu
from .assembler import Assembler, decode_instruction
from .codec import (
    Bits, bits_to_int, bits_to_str, bits_to_uint, fill_zeros, int_to_bits,
    split_bytes, str_to_bits, uint_to_bits,
)
from .config import STEP_LIMIT, Architecture
from .events import CPUEvents
from .memory import Memory
from .opcodes import form_for_opcode
from .registry import CPURegistry, get_registry
from .state import CPUState, RunState, create_initial_state

logger = logging.getLogger(__name__)

# 3, the byte length of one instruction
INSTRUCTION_STRIDE: Bits = [True, True]


@dataclass
class ExecutionTraceEntry:
    """Single entry in the execution trace.

    Attributes:
        step: Step number within the current run (1-based)
        pc: Address of the executed instruction
        instruction: Disassembled instruction text
        pre_state: State snapshot before execution
        post_state: State snapshot after execution
        errors: Errors reported while executing this step
    """
    step: int
    pc: int
    instruction: str
    pre_state: dict
    post_state: dict
    errors: List[str] = field(default_factory=list)


class CPU:
    """Configurable-width CPU with RAM, a register file and status flags.

    Attributes:
        arch: Immutable architecture configuration
        width: Byte width W (shortcut for arch.bits)
        registers: Register file (Memory of register_count cells)
        ram: Main memory (Memory of ram_bytes cells)
        state: PC, IR, flags and run state
        events: Single-slot notification callbacks
        registry: Frozen opcode -> handler registry
        max_steps: Steps allowed per run() before it is declared an infinite loop
        trace: Execution trace entries (only filled when tracing is enabled)
        errors: Every error message reported by this CPU
    """

    STEP_LIMIT = STEP_LIMIT

    def __init__(
        self,
        arch: Optional[Architecture] = None,
        max_steps: int = STEP_LIMIT,
        trace: bool = False,
        events: Optional[CPUEvents] = None,
    ):
        """Initialize the CPU.

        Args:
            arch: Architecture configuration (8 bits, 4 registers, 256 bytes if None)
            max_steps: Safety limit for run()
            trace: Record an ExecutionTraceEntry for every step
            events: Notification callbacks (a fresh, empty CPUEvents if None)
        """
        self.arch = arch if arch is not None else Architecture()
        self.width = self.arch.bits
        self.events = events if events is not None else CPUEvents()
        self.registry: CPURegistry = get_registry()
        self.registers = Memory("register", self.width, self.arch.register_count,
                                on_error=self._report_error)
        self.ram = Memory("RAM", self.width, self.arch.ram_bytes,
                          on_error=self._report_error)
        self.state: CPUState = create_initial_state(self.width)
        self.max_steps = max_steps
        self.trace_enabled = trace
        self.trace: List[ExecutionTraceEntry] = []
        self.errors: List[str] = []
        self.assembler = Assembler(self.width, on_error=self._report_error)

    # =========================================================================
    # Assembly and loading
    # =========================================================================

    def compile(self, source: str, strict: bool = False) -> Bits:
        """Assemble source text for this CPU's width.

        Args:
            source: Assembly source code
            strict: Raise AssemblerError if any line failed

        Returns:
            Flat bit stream, three bytes per instruction
        """
        return self.assembler.assemble(source, strict=strict)

    def load_program(self, program: Sequence[bool], address: int = 0) -> None:
        """Write a binary program into RAM starting at `address`.

        The write address is advanced with the ALU after each byte and wraps
        at W bits.
        """
        cursor = self._address_bits(address)
        if cursor is None:
            return
        for chunk in split_bytes(program, self.width):
            self.ram.write(cursor, chunk)
            cursor = self._fit(alu.increment(cursor))
        logger.debug("loaded %d bits at address %d", len(program), address)

    def load_program_text(self, binary_text: str, address: int = 0) -> None:
        """Load a program given as a '0'/'1' string."""
        self.load_program(str_to_bits(binary_text), address)

    def load_source(self, source: str, address: int = 0, strict: bool = False) -> Bits:
        """Assemble `source` and load the result at `address`.

        Returns:
            The assembled program
        """
        program = self.compile(source, strict=strict)
        self.load_program(program, address)
        return program

    # =========================================================================
    # Execution
    # =========================================================================

    def step(self) -> Optional[ExecutionTraceEntry]:
        """Execute a single instruction: fetch at PC, decode, dispatch.

        Returns:
            The trace entry for this step when tracing is enabled, else None
        """
        pc = list(self.state.pc)
        error_mark = len(self.errors)
        pre_state = self.state.snapshot() if self.trace_enabled else None

        # FETCH
        self.state.ir = self.ram.read(pc)
        form = form_for_opcode(bits_to_uint(self.state.ir))

        operands: List[Bits] = []
        address = pc
        for _ in (form.modes if form is not None else ()):
            address = self._fit(alu.increment(address))
            operands.append(self.ram.read(address))
        operands += [fill_zeros([], self.width)] * (2 - len(operands))
        a, b = operands

        # DECODE
        decoded = decode_instruction(self.state.ir, a, b)

        # EXECUTE
        if decoded.valid:
            self.registry.execute(self, decoded.form.opcode, a, b)
        else:
            self._report_error(f"{decoded.error} at address {bits_to_uint(pc)}")
            self.advance()

        self.state.step_count += 1
        logger.debug("%5d  %s  %-16s %s", self.state.step_count, bits_to_str(pc),
                     decoded.text, self.state)

        entry = None
        if self.trace_enabled:
            entry = ExecutionTraceEntry(
                step=self.state.step_count,
                pc=bits_to_uint(pc),
                instruction=decoded.text,
                pre_state=pre_state,
                post_state=self.state.snapshot(),
                errors=self.errors[error_mark:],
            )
            self.trace.append(entry)

        self.events.emit_step(self.state.pc)
        return entry

    def run(self, start_address: int = 0, clean: bool = False) -> int:
        """Run from `start_address` until HLT or the step limit.

        Args:
            start_address: Initial PC value
            clean: Reset registers and flags (not RAM) once the run ends

        Returns:
            Number of steps executed
        """
        start = self._address_bits(start_address)
        if start is None:
            return 0

        self.state.pc = start
        self.state.status = RunState.RUNNING
        self.state.step_count = 0
        self.trace = []
        self.events.emit_run()

        steps = 0
        while self.state.running:
            self.step()
            steps += 1
            if steps > self.max_steps:
                self._report_error("Infinite loop detected")
                self.state.status = RunState.HALTED
                break

        logger.info("run finished after %d steps", steps)

        if clean:
            self.reset(clear_ram=False)
        return steps

    def halt(self, message: str = "") -> None:
        """Stop execution; a non-empty message is reported as an error."""
        self.state.status = RunState.HALTED
        if message:
            self._report_error(f"Computer halted: {message}")

    def reset(self, clear_ram: bool = True) -> None:
        """Clear registers, flags, PC and IR, and RAM unless told otherwise."""
        self.registers.clear()
        if clear_ram:
            self.ram.clear()
        self.state.clear()
        self.events.emit_reset()

    # =========================================================================
    # Primitives used by instruction handlers
    # =========================================================================

    def _fit(self, value: Sequence[bool]) -> Bits:
        """Left-pad to W bits, keeping the low W bits of longer values."""
        return fill_zeros(value, self.width)[-self.width:]

    def get_register_bits(self, address: Sequence[bool]) -> Bits:
        return self.registers.read(address)

    def set_register_bits(self, address: Sequence[bool], value: Sequence[bool]) -> None:
        self.registers.write(address, value)

    def add(self, a: Sequence[bool], b: Sequence[bool], flags: bool = True) -> Bits:
        """W-bit addition. CARRY is the carry out of the top bit."""
        raw = alu.add(self._fit(a), self._fit(b))
        result = self._fit(raw)
        if flags:
            self.state.set_flags(result, carry=len(raw) > self.width)
        return result

    def subtract(self, a: Sequence[bool], b: Sequence[bool]) -> Bits:
        """W-bit a - b via two's complement addition; sets all three flags."""
        raw = alu.subtract(self._fit(a), self._fit(b), self.width)
        result = self._fit(raw)
        self.state.set_flags(result, carry=len(raw) > self.width)
        return result

    def multiply(self, a: Sequence[bool], b: Sequence[bool]) -> Bits:
        """Signed W-bit multiplication.

        When the operand signs differ the negative one is negated, the
        magnitudes are multiplied and the product negated back. ZERO reports
        a zero operand, CARRY a magnitude product wider than W bits. SIGN is
        not touched.
        """
        a, b = self._fit(a), self._fit(b)
        negative = a[0] != b[0]
        if negative:
            if a[0]:
                a = alu.negate(a, self.width)
            else:
                b = alu.negate(b, self.width)

        product = alu.multiply(a, b)

        self.state.flags["ZERO"] = alu.is_zero(a) or alu.is_zero(b)
        self.state.flags["CARRY"] = any(product[:-self.width])

        if negative:
            product = alu.negate(product, len(product))
        return self._fit(product)

    def advance(self) -> None:
        """Move PC to the next instruction (three bytes on)."""
        self.state.pc = self.add(self.state.pc, INSTRUCTION_STRIDE, flags=False)

    def jump(self, displacement: Sequence[bool]) -> None:
        """Relative jump: PC += 3 * displacement, wrapping at W bits."""
        offset = alu.multiply(self._fit(displacement), INSTRUCTION_STRIDE)
        self.state.pc = self.add(self.state.pc, offset, flags=False)

    def branch(self, target: Sequence[bool]) -> None:
        """Absolute jump: PC = target."""
        self.state.pc = self._fit(target)

    def output(self, value: Sequence[bool]) -> None:
        self.events.emit_output(list(value))

    def _address_bits(self, address: int) -> Optional[Bits]:
        """W-bit form of an integer address; reported and None when it has none."""
        if not 0 <= address < (1 << self.width):
            self._report_error(
                f"Incorrect address: {address} (valid range 0..{(1 << self.width) - 1})"
            )
            return None
        return uint_to_bits(address, self.width)

    def _report_error(self, message: str) -> None:
        self.errors.append(message)
        self.events.emit_error(message)

    # =========================================================================
    # Inspection
    # =========================================================================

    def get_register(self, index: int) -> Bits:
        """Raw bits of register `index`."""
        address = self._address_bits(index)
        if address is None:
            return fill_zeros([], self.width)
        return self.registers.read(address)

    def register_value(self, index: int) -> int:
        """Signed value of register `index`."""
        return bits_to_int(self.get_register(index))

    def set_register(self, index: int, value: int) -> None:
        address = self._address_bits(index)
        if address is not None:
            self.registers.write(address, int_to_bits(value, self.width))

    def read_ram(self, address: int) -> Bits:
        cell = self._address_bits(address)
        if cell is None:
            return fill_zeros([], self.width)
        return self.ram.read(cell)

    def write_ram(self, address: int, value: int) -> None:
        cell = self._address_bits(address)
        if cell is not None:
            self.ram.write(cell, int_to_bits(value, self.width))

    def dump_registers(self) -> Dict[int, int]:
        """Signed values of every register, by index."""
        return {index: self.register_value(index) for index in range(self.arch.register_count)}

    def get_flags(self) -> Dict[str, bool]:
        return dict(self.state.flags)

    def get_pc(self) -> int:
        return bits_to_uint(self.state.pc)

    def get_step_count(self) -> int:
        return self.state.step_count

    def is_halted(self) -> bool:
        return self.state.halted

    def get_summary(self) -> Dict:
        """Execution statistics and final state."""
        return {
            "steps": self.get_step_count(),
            "status": self.state.status.value,
            "registers": self.dump_registers(),
            "flags": self.get_flags(),
            "pc": self.get_pc(),
            "trace_length": len(self.trace),
            "errors": list(self.errors),
        }

    def format_trace(self) -> str:
        """Human-readable execution trace."""
        lines = []
        for entry in self.trace:
            status = "OK" if not entry.errors else "ERROR: " + "; ".join(entry.errors)
            lines.append(f"[Step {entry.step}] {entry.pc:>5}  {entry.instruction:<16} {status}")
            pre_flags = entry.pre_state["flags"]
            post_flags = entry.post_state["flags"]
            changes = [f"{name}: {int(pre_flags[name])} -> {int(post_flags[name])}"
                       for name in post_flags if pre_flags[name] != post_flags[name]]
            if changes:
                lines.append(f"    Flags: {', '.join(changes)}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (f"CPU(bits={self.arch.bits}, registers={self.arch.register_count}, "
                f"ram={self.arch.ram_bytes}, {self.state.status.value})")
