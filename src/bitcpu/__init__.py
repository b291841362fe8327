"""BitCPU: Bit-Level CPU Emulator with a Two-Pass Assembler.

This package models a small configurable computer where every value (data,
addresses, register indices, opcodes) is a list of bits, and all arithmetic
is done by a software ALU built from single-bit logic.

Architecture:
    SOURCE -> ASSEMBLER -> BITS -> RAM -> FETCH -> DECODE -> REGISTRY -> EXECUTE
                 |                         |          |           |
            [two-pass]                  [PC/IR]   [Opcode]   [ALU + flags]

Modules:
    codec: Conversions between bit lists, integers, strings and hex
    alu: Bit-level logic and arithmetic (ripple-carry add, shift-add multiply)
    memory: Sparse, zero-defaulted fixed-width storage
    config: Architecture configuration
    opcodes: Closed opcode table and instruction forms
    assembler: Two-pass assembler and disassembler
    state: CPUState (PC, IR, flags, run state)
    registry: Opcode -> handler table
    events: Single-slot notification callbacks
    cpu: Main CPU orchestrator
"""

__version__ = "0.1.0"
__author__ = "BitCPU Project"

from .config import STEP_LIMIT, Architecture
from .errors import AssemblerError, BitCPUError, CodecError, ConfigurationError
from .events import CPUEvents
from .memory import Memory
from .opcodes import Mode, Opcode
from .state import CPUState, RunState
from .registry import CPURegistry
from .assembler import Assembler, disassemble
from .cpu import CPU, ExecutionTraceEntry

__all__ = [
    "STEP_LIMIT", "Architecture",
    "AssemblerError", "BitCPUError", "CodecError", "ConfigurationError",
    "CPUEvents", "Memory", "Mode", "Opcode", "CPUState", "RunState",
    "CPURegistry", "Assembler", "disassemble", "CPU", "ExecutionTraceEntry",
]
