"""CPUState: program counter, instruction register, flags and run state.

State Components:
    - PC: address of the current instruction (a W-bit byte)
    - IR: opcode byte fetched by the last step
    - Flags: CARRY, ZERO, SIGN
    - Status: idle, running or halted
    - Step count: steps executed since the last run() or reset()

Registers and RAM live in Memory instances owned by the CPU, not here.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict

from .codec import Bits, bits_to_str, bits_to_uint, fill_zeros

FLAG_NAMES = ("CARRY", "ZERO", "SIGN")


class RunState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    HALTED = "halted"


def _clear_flags() -> Dict[str, bool]:
    return {name: False for name in FLAG_NAMES}


@dataclass
class CPUState:
    """Mutable CPU control state.

    Attributes:
        width: Byte width W of PC and IR
        pc: Program counter (W bits)
        ir: Instruction register (W bits)
        flags: CARRY / ZERO / SIGN status flags
        status: Current RunState
        step_count: Steps executed since the last run() or reset()
    """
    width: int
    pc: Bits = field(default_factory=list)
    ir: Bits = field(default_factory=list)
    flags: Dict[str, bool] = field(default_factory=_clear_flags)
    status: RunState = RunState.IDLE
    step_count: int = 0

    def __post_init__(self):
        self.pc = fill_zeros(self.pc, self.width)
        self.ir = fill_zeros(self.ir, self.width)

    @property
    def running(self) -> bool:
        return self.status is RunState.RUNNING

    @property
    def halted(self) -> bool:
        return self.status is RunState.HALTED

    def set_flags(self, result: Bits, carry: bool) -> None:
        """Update all three flags from a W-bit result and its carry-out."""
        self.flags["CARRY"] = carry
        self.flags["ZERO"] = not any(result)
        self.flags["SIGN"] = bool(result[0]) if result else False

    def clear(self) -> None:
        """Back to the power-on state."""
        self.pc = fill_zeros([], self.width)
        self.ir = fill_zeros([], self.width)
        self.flags = _clear_flags()
        self.status = RunState.IDLE
        self.step_count = 0

    def snapshot(self) -> dict:
        """Plain-data copy of the state for tracing."""
        return {
            "pc": bits_to_uint(self.pc),
            "ir": bits_to_uint(self.ir),
            "flags": dict(self.flags),
            "status": self.status.value,
            "step_count": self.step_count,
        }

    def validate(self) -> bool:
        """Check structural integrity (widths, flag set, counters)."""
        if len(self.pc) != self.width or len(self.ir) != self.width:
            return False
        if set(self.flags) != set(FLAG_NAMES):
            return False
        if not all(isinstance(value, bool) for value in self.flags.values()):
            return False
        return self.step_count >= 0

    def __str__(self) -> str:
        flags = " ".join(f"{name}={int(value)}" for name, value in self.flags.items())
        return (f"[Step {self.step_count}] PC={bits_to_str(self.pc)} "
                f"IR={bits_to_str(self.ir)} {flags} {self.status.value.upper()}")


def create_initial_state(width: int) -> CPUState:
    """Fresh idle state with zeroed PC, IR and flags."""
    return CPUState(width=width)
