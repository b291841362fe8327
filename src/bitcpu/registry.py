"""CPURegistry: instruction handlers keyed by opcode.

Each canonical Opcode has exactly one handler. Handlers receive the CPU and
the two raw operand bytes of the instruction and act through the CPU's
primitives (register/RAM access, flag-affecting arithmetic, jumps, output).

Handler Groups:
    Data movement:  MOV %%, %#, %@, @%, @#
    Arithmetic:     ADD / SUB / MUL with %%, %@, %#; INC %; DEC %
    Comparison:     CMP %%, %@, %#
    Control flow:   JMP, JC, JNC, JZ, JNZ, JGTR, JLSS (absolute and relative)
    Output:         OUT %, OUT @
    Special:        HLT, NOP

Aliased mnemonics (JEQ, JNE, JNGTR) decode to their canonical opcode and so
share a handler.

The registry is frozen after initialization; it refuses to freeze while any
opcode lacks a handler.
"""

from typing import TYPE_CHECKING, Callable, Dict, Optional, Set

from .codec import Bits
from .opcodes import Opcode

if TYPE_CHECKING:
    from .cpu import CPU

Handler = Callable[["CPU", Bits, Bits], None]


class CPURegistry:
    """Verified registry of instruction handlers.

    Attributes:
        _handlers: Dictionary mapping opcodes to handler functions
        _frozen: Whether the registry is locked against modifications
    """

    def __init__(self):
        """Initialize registry with every instruction handler."""
        self._handlers: Dict[Opcode, Handler] = {}
        self._frozen = False
        self._register_all_handlers()
        self.freeze()

    def _register_all_handlers(self) -> None:
        # Data movement
        self.register(Opcode.MOV_REG_REG, self._op_mov_reg_reg)
        self.register(Opcode.MOV_REG_IMM, self._op_mov_reg_imm)
        self.register(Opcode.MOV_REG_MEM, self._op_mov_reg_mem)
        self.register(Opcode.MOV_MEM_REG, self._op_mov_mem_reg)
        self.register(Opcode.MOV_MEM_IMM, self._op_mov_mem_imm)

        # Output
        self.register(Opcode.OUT_REG, self._op_out_reg)
        self.register(Opcode.OUT_MEM, self._op_out_mem)

        # Arithmetic
        self.register(Opcode.ADD_REG_REG, self._binary("add", "reg"))
        self.register(Opcode.ADD_REG_MEM, self._binary("add", "mem"))
        self.register(Opcode.ADD_REG_IMM, self._binary("add", "imm"))
        self.register(Opcode.SUB_REG_REG, self._binary("subtract", "reg"))
        self.register(Opcode.SUB_REG_MEM, self._binary("subtract", "mem"))
        self.register(Opcode.SUB_REG_IMM, self._binary("subtract", "imm"))
        self.register(Opcode.MUL_REG_REG, self._binary("multiply", "reg"))
        self.register(Opcode.MUL_REG_MEM, self._binary("multiply", "mem"))
        self.register(Opcode.MUL_REG_IMM, self._binary("multiply", "imm"))
        self.register(Opcode.INC_REG, self._op_inc)
        self.register(Opcode.DEC_REG, self._op_dec)

        # Comparison
        self.register(Opcode.CMP_REG_REG, self._compare("reg"))
        self.register(Opcode.CMP_REG_MEM, self._compare("mem"))
        self.register(Opcode.CMP_REG_IMM, self._compare("imm"))

        # Control flow
        self.register(Opcode.JMP_ABS, self._jump(lambda flags: True, relative=False))
        self.register(Opcode.JMP_REL, self._jump(lambda flags: True, relative=True))
        self.register(Opcode.JC_ABS, self._jump(lambda flags: flags["CARRY"], relative=False))
        self.register(Opcode.JC_REL, self._jump(lambda flags: flags["CARRY"], relative=True))
        self.register(Opcode.JNC_ABS, self._jump(lambda flags: not flags["CARRY"], relative=False))
        self.register(Opcode.JNC_REL, self._jump(lambda flags: not flags["CARRY"], relative=True))
        self.register(Opcode.JZ_ABS, self._jump(lambda flags: flags["ZERO"], relative=False))
        self.register(Opcode.JZ_REL, self._jump(lambda flags: flags["ZERO"], relative=True))
        self.register(Opcode.JNZ_ABS, self._jump(lambda flags: not flags["ZERO"], relative=False))
        self.register(Opcode.JNZ_REL, self._jump(lambda flags: not flags["ZERO"], relative=True))
        self.register(Opcode.JGTR_ABS, self._jump(lambda flags: not flags["SIGN"], relative=False))
        self.register(Opcode.JGTR_REL, self._jump(lambda flags: not flags["SIGN"], relative=True))
        self.register(Opcode.JLSS_ABS, self._jump(lambda flags: flags["SIGN"], relative=False))
        self.register(Opcode.JLSS_REL, self._jump(lambda flags: flags["SIGN"], relative=True))

        # Special
        self.register(Opcode.HLT, self._op_hlt)
        self.register(Opcode.NOP, self._op_nop)

    def register(self, opcode: Opcode, handler: Handler) -> None:
        """Register a handler for an opcode.

        Raises:
            RuntimeError: If registry is frozen
            ValueError: If opcode already registered
        """
        if self._frozen:
            raise RuntimeError("Cannot register handlers: registry is frozen")
        if opcode in self._handlers:
            raise ValueError(f"Handler already registered: {opcode.name}")
        self._handlers[opcode] = handler

    def freeze(self) -> None:
        """Freeze the registry to prevent further modifications.

        Raises:
            RuntimeError: If any opcode has no handler
        """
        missing = [op.name for op in Opcode if op not in self._handlers]
        if missing:
            raise RuntimeError(f"Opcodes without a handler: {missing}")
        self._frozen = True

    def is_frozen(self) -> bool:
        return self._frozen

    def get_valid_opcodes(self) -> Set[Opcode]:
        return set(self._handlers)

    def execute(self, cpu: "CPU", opcode: Opcode, a: Bits, b: Bits) -> None:
        """Run the handler for `opcode` against `cpu`.

        Raises:
            KeyError: If opcode not in registry
        """
        if opcode not in self._handlers:
            raise KeyError(f"Unknown opcode: {opcode}")
        self._handlers[opcode](cpu, a, b)

    # =========================================================================
    # Data Movement
    # =========================================================================

    @staticmethod
    def _op_mov_reg_reg(cpu: "CPU", a: Bits, b: Bits) -> None:
        """MOV %a, %b - copy register b into register a."""
        cpu.set_register_bits(a, cpu.get_register_bits(b))
        cpu.advance()

    @staticmethod
    def _op_mov_reg_imm(cpu: "CPU", a: Bits, b: Bits) -> None:
        """MOV %a, #b - load an immediate into register a."""
        cpu.set_register_bits(a, b)
        cpu.advance()

    @staticmethod
    def _op_mov_reg_mem(cpu: "CPU", a: Bits, b: Bits) -> None:
        """MOV %a, @b - load RAM[b] into register a."""
        cpu.set_register_bits(a, cpu.ram.read(b))
        cpu.advance()

    @staticmethod
    def _op_mov_mem_reg(cpu: "CPU", a: Bits, b: Bits) -> None:
        """MOV @a, %b - store register b at RAM[a]."""
        cpu.ram.write(a, cpu.get_register_bits(b))
        cpu.advance()

    @staticmethod
    def _op_mov_mem_imm(cpu: "CPU", a: Bits, b: Bits) -> None:
        """MOV @a, #b - store an immediate at RAM[a]."""
        cpu.ram.write(a, b)
        cpu.advance()

    # =========================================================================
    # Output
    # =========================================================================

    @staticmethod
    def _op_out_reg(cpu: "CPU", a: Bits, b: Bits) -> None:
        cpu.output(cpu.get_register_bits(a))
        cpu.advance()

    @staticmethod
    def _op_out_mem(cpu: "CPU", a: Bits, b: Bits) -> None:
        cpu.output(cpu.ram.read(a))
        cpu.advance()

    # =========================================================================
    # Arithmetic and Comparison
    # =========================================================================

    @staticmethod
    def _source(cpu: "CPU", b: Bits, kind: str) -> Bits:
        """Fetch the second operand as a register, RAM cell or immediate."""
        if kind == "reg":
            return cpu.get_register_bits(b)
        if kind == "mem":
            return cpu.ram.read(b)
        return b

    def _binary(self, operation: str, kind: str) -> Handler:
        """OP %a, <b> - register a = cpu.<operation>(register a, source b)."""
        def handler(cpu: "CPU", a: Bits, b: Bits) -> None:
            arithmetic = getattr(cpu, operation)
            result = arithmetic(cpu.get_register_bits(a), self._source(cpu, b, kind))
            cpu.set_register_bits(a, result)
            cpu.advance()
        return handler

    def _compare(self, kind: str) -> Handler:
        """CMP %a, <b> - subtract for the flags, discard the difference."""
        def handler(cpu: "CPU", a: Bits, b: Bits) -> None:
            cpu.subtract(cpu.get_register_bits(a), self._source(cpu, b, kind))
            cpu.advance()
        return handler

    @staticmethod
    def _op_inc(cpu: "CPU", a: Bits, b: Bits) -> None:
        cpu.set_register_bits(a, cpu.add(cpu.get_register_bits(a), [True]))
        cpu.advance()

    @staticmethod
    def _op_dec(cpu: "CPU", a: Bits, b: Bits) -> None:
        cpu.set_register_bits(a, cpu.subtract(cpu.get_register_bits(a), [True]))
        cpu.advance()

    # =========================================================================
    # Control Flow
    # =========================================================================

    @staticmethod
    def _jump(condition: Callable[[Dict[str, bool]], bool], relative: bool) -> Handler:
        """Branch when `condition(flags)` holds, otherwise fall through.

        Absolute forms load PC from the operand byte; relative forms move PC
        by three bytes per instruction of displacement.
        """
        def handler(cpu: "CPU", a: Bits, b: Bits) -> None:
            if not condition(cpu.state.flags):
                cpu.advance()
            elif relative:
                cpu.jump(a)
            else:
                cpu.branch(a)
        return handler

    # =========================================================================
    # Special
    # =========================================================================

    @staticmethod
    def _op_hlt(cpu: "CPU", a: Bits, b: Bits) -> None:
        cpu.halt()

    @staticmethod
    def _op_nop(cpu: "CPU", a: Bits, b: Bits) -> None:
        cpu.advance()


# Singleton registry instance
_registry: Optional[CPURegistry] = None


def get_registry() -> CPURegistry:
    """Get the singleton CPU registry instance."""
    global _registry
    if _registry is None:
        _registry = CPURegistry()
    return _registry
