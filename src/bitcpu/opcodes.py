"""Opcode table: the closed set of instruction forms.

An instruction form is a mnemonic plus one addressing mode per operand, e.g.
ADD with (REGISTER, IMMEDIATE) written `ADD %0, #5`. Each form maps to a
numeric opcode stored in the first byte of a three-byte instruction.

Synonyms share an opcode through enum aliases (JEQ is JZ, JNE is JNZ, JNGTR is
JLSS). Decoding a shared number always yields the canonical member, i.e. the
first one defined.

The table is checked when this module is imported.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict, Optional, Tuple


class Mode(Enum):
    """Operand addressing mode, keyed by its sigil."""
    REGISTER = "%"
    MEMORY = "@"
    IMMEDIATE = "#"
    RELATIVE = "!"

    @property
    def sigil(self) -> str:
        return self.value


SIGILS = frozenset(mode.value for mode in Mode)


class Opcode(IntEnum):
    HLT = 0
    MOV_REG_IMM = 1
    MOV_REG_MEM = 2
    MOV_MEM_IMM = 3
    MOV_MEM_REG = 4
    MOV_REG_REG = 5
    OUT_REG = 6
    OUT_MEM = 7
    ADD_REG_REG = 8
    ADD_REG_MEM = 9
    ADD_REG_IMM = 10
    SUB_REG_REG = 11
    SUB_REG_MEM = 12
    SUB_REG_IMM = 13
    INC_REG = 14
    CMP_REG_REG = 15
    CMP_REG_MEM = 16
    CMP_REG_IMM = 17
    JMP_ABS = 18
    JMP_REL = 19
    JC_ABS = 20         # carry set
    JC_REL = 21
    JNC_ABS = 22        # carry clear
    JNC_REL = 23
    JZ_ABS = 24         # zero set
    JZ_REL = 25
    JEQ_ABS = 24
    JEQ_REL = 25
    JNZ_ABS = 26        # zero clear
    JNZ_REL = 27
    JNE_ABS = 26
    JNE_REL = 27
    DEC_REG = 29
    JGTR_ABS = 30       # sign clear
    JGTR_REL = 31
    JLSS_ABS = 32       # sign set
    JLSS_REL = 33
    JNGTR_ABS = 32
    JNGTR_REL = 33
    MUL_REG_REG = 34
    MUL_REG_MEM = 35
    MUL_REG_IMM = 36
    NOP = 37


@dataclass(frozen=True)
class InstructionForm:
    """One assemblable (mnemonic, modes) combination."""
    mnemonic: str
    modes: Tuple[Mode, ...]
    opcode: Opcode

    @property
    def key(self) -> str:
        """Mnemonic with its sigils appended, e.g. 'MOV%#'."""
        return self.mnemonic + "".join(mode.sigil for mode in self.modes)


_R, _M, _I, _J = Mode.REGISTER, Mode.MEMORY, Mode.IMMEDIATE, Mode.RELATIVE


def _form(mnemonic: str, modes: Tuple[Mode, ...], name: str) -> InstructionForm:
    return InstructionForm(mnemonic, modes, Opcode[name])


INSTRUCTION_SET: Tuple[InstructionForm, ...] = (
    _form("HLT", (), "HLT"),
    _form("NOP", (), "NOP"),

    # Data movement
    _form("MOV", (_R, _I), "MOV_REG_IMM"),
    _form("MOV", (_R, _M), "MOV_REG_MEM"),
    _form("MOV", (_M, _I), "MOV_MEM_IMM"),
    _form("MOV", (_M, _R), "MOV_MEM_REG"),
    _form("MOV", (_R, _R), "MOV_REG_REG"),

    # Output
    _form("OUT", (_R,), "OUT_REG"),
    _form("OUT", (_M,), "OUT_MEM"),

    # Arithmetic
    _form("ADD", (_R, _R), "ADD_REG_REG"),
    _form("ADD", (_R, _M), "ADD_REG_MEM"),
    _form("ADD", (_R, _I), "ADD_REG_IMM"),
    _form("SUB", (_R, _R), "SUB_REG_REG"),
    _form("SUB", (_R, _M), "SUB_REG_MEM"),
    _form("SUB", (_R, _I), "SUB_REG_IMM"),
    _form("MUL", (_R, _R), "MUL_REG_REG"),
    _form("MUL", (_R, _M), "MUL_REG_MEM"),
    _form("MUL", (_R, _I), "MUL_REG_IMM"),
    _form("INC", (_R,), "INC_REG"),
    _form("DEC", (_R,), "DEC_REG"),

    # Comparison
    _form("CMP", (_R, _R), "CMP_REG_REG"),
    _form("CMP", (_R, _M), "CMP_REG_MEM"),
    _form("CMP", (_R, _I), "CMP_REG_IMM"),

    # Control flow
    _form("JMP", (_R,), "JMP_ABS"),
    _form("JMP", (_J,), "JMP_REL"),
    _form("JC", (_R,), "JC_ABS"),
    _form("JC", (_J,), "JC_REL"),
    _form("JNC", (_R,), "JNC_ABS"),
    _form("JNC", (_J,), "JNC_REL"),
    _form("JZ", (_R,), "JZ_ABS"),
    _form("JZ", (_J,), "JZ_REL"),
    _form("JEQ", (_R,), "JEQ_ABS"),
    _form("JEQ", (_J,), "JEQ_REL"),
    _form("JNZ", (_R,), "JNZ_ABS"),
    _form("JNZ", (_J,), "JNZ_REL"),
    _form("JNE", (_R,), "JNE_ABS"),
    _form("JNE", (_J,), "JNE_REL"),
    _form("JGTR", (_R,), "JGTR_ABS"),
    _form("JGTR", (_J,), "JGTR_REL"),
    _form("JLSS", (_R,), "JLSS_ABS"),
    _form("JLSS", (_J,), "JLSS_REL"),
    _form("JNGTR", (_R,), "JNGTR_ABS"),
    _form("JNGTR", (_J,), "JNGTR_REL"),
)


def _build_tables() -> Tuple[Dict[str, InstructionForm], Dict[Opcode, InstructionForm]]:
    by_key: Dict[str, InstructionForm] = {}
    canonical: Dict[Opcode, InstructionForm] = {}
    for form in INSTRUCTION_SET:
        if form.key in by_key:
            raise RuntimeError(f"Duplicate instruction form: {form.key}")
        if len(form.modes) > 2:
            raise RuntimeError(f"{form.key}: at most two operands fit an instruction")
        by_key[form.key] = form
        existing = canonical.get(form.opcode)
        if existing is None:
            canonical[form.opcode] = form
        elif existing.modes != form.modes:
            raise RuntimeError(
                f"{form.key} shares opcode {int(form.opcode)} with {existing.key} "
                f"but uses different addressing modes"
            )
    missing = [op.name for op in Opcode if op not in canonical]
    if missing:
        raise RuntimeError(f"Opcodes without an instruction form: {missing}")
    return by_key, canonical


FORMS_BY_KEY, CANONICAL_FORMS = _build_tables()


def lookup(mnemonic: str, modes: Tuple[Mode, ...]) -> Optional[InstructionForm]:
    """Find the form for a mnemonic and mode tuple (mnemonic is case-insensitive)."""
    key = mnemonic.upper() + "".join(mode.sigil for mode in modes)
    return FORMS_BY_KEY.get(key)


def form_for_opcode(value: int) -> Optional[InstructionForm]:
    """Canonical form for a numeric opcode, or None if unassigned."""
    try:
        opcode = Opcode(value)
    except ValueError:
        return None
    return CANONICAL_FORMS[opcode]
