"""Two-pass assembler and disassembler.

Source Language:
    - One instruction or label per line; blank lines and lines starting
      with ';' are ignored
    - Label: `name:` on its own line (name matches [.A-Za-z][\\w]*)
    - Instruction: `MNEMONIC op1, op2` where each operand starts with an
      addressing-mode sigil:
          %n   register n
          @n   RAM address n
          #n   immediate value n
          !n   relative displacement of n instructions
    - Literals: decimal (may be negative), `$` hex, `b` binary
    - A bare label (or `!label`) becomes `!(label index - current index)`
    - Compact form: the sigils may follow the mnemonic directly, with bare
      values after them: `MOV%# 0,5`, `JMP!loop`

Binary Format:
    Every instruction is three W-bit bytes: opcode, operand 1, operand 2.
    Missing operands are zero bytes.

    Pass 1 drops comments and records label positions as instruction indices
    (not byte offsets). Pass 2 encodes each instruction. A line that fails is
    reported and encoded as a zero (HLT) instruction so that label
    displacements stay valid; assembly carries on with the next line.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .codec import Bits, bits_to_int, bits_to_uint, fill_zeros, int_to_bits, split_bytes
from .errors import AssemblerError, CodecError
from .opcodes import SIGILS, InstructionForm, Mode, form_for_opcode, lookup

logger = logging.getLogger(__name__)

LABEL_RE = re.compile(r"^[.A-Za-z]\w*:$")
IDENTIFIER_RE = re.compile(r"^[.A-Za-z]\w*$")
MNEMONIC_RE = re.compile(r"^([A-Za-z]+)(.*)$")
SIGIL_RUN_RE = re.compile(r"^[%@#!]+")

# Bytes per encoded instruction
INSTRUCTION_BYTES = 3


@dataclass
class DecodedInstruction:
    """Result of decoding one three-byte instruction.

    Attributes:
        opcode: Numeric opcode read from the first byte
        form: Canonical instruction form, None if the opcode is unassigned
        operands: Operand values, one per addressing mode of the form
        valid: Whether decode succeeded
        error: Error message if decode failed
    """
    opcode: int
    form: Optional[InstructionForm]
    operands: Tuple[int, ...] = ()
    valid: bool = True
    error: Optional[str] = None

    @property
    def mnemonic(self) -> str:
        return self.form.mnemonic if self.form is not None else "???"

    @property
    def text(self) -> str:
        """Canonical assembly text, e.g. 'ADD %0, #5'."""
        if self.form is None:
            return f"??? {self.opcode}"
        parts = [f"{mode.sigil}{value}" for mode, value in zip(self.form.modes, self.operands)]
        if not parts:
            return self.form.mnemonic
        return f"{self.form.mnemonic} {', '.join(parts)}"

    def __str__(self) -> str:
        return self.text


def parse_program(source: str) -> Tuple[List[str], Dict[str, int]]:
    """Pass 1: split source into instruction lines and a label table.

    Handles:
        - Labels (`name:` on its own line)
        - Comments (lines starting with ;)
        - Blank lines

    Args:
        source: Assembly source code

    Returns:
        Tuple of (list of instruction strings, label-to-instruction-index dict)
    """
    instructions: List[str] = []
    labels: Dict[str, int] = {}

    for line in source.split("\n"):
        line = line.strip()

        if not line or line.startswith(";"):
            continue

        if LABEL_RE.match(line):
            labels[line[:-1]] = len(instructions)
        else:
            instructions.append(line)

    return instructions, labels


def parse_literal(text: str) -> int:
    """Parse an operand literal (decimal, $hex or b-binary).

    Raises:
        ValueError: If the text is not a literal
    """
    text = text.strip()

    if text.startswith("$"):
        return int(text[1:], 16)

    if text[:1] in ("b", "B"):
        return int(text[1:], 2)

    return int(text, 10)


def _split_list(text: str) -> List[str]:
    return [token for token in (part.strip() for part in text.split(",")) if token]


class Assembler:
    """Two-pass assembler for one architecture width.

    Attributes:
        width: Byte width W of the target machine
        on_error: Callback receiving each error message
        errors: Messages reported by the last assemble() call
    """

    def __init__(self, width: int, on_error: Optional[Callable[[str], None]] = None):
        self.width = width
        self.on_error = on_error
        self.errors: List[str] = []

    def assemble(self, source: str, strict: bool = False) -> Bits:
        """Assemble source text into a flat bit stream.

        Args:
            source: Assembly source code
            strict: Raise AssemblerError after assembly if anything failed

        Returns:
            Encoded program, three bytes per line (zero bytes for a failed one)
        """
        self.errors = []
        instructions, labels = parse_program(source)
        binary: Bits = []

        for index, line in enumerate(instructions):
            try:
                binary.extend(self.encode_line(line, index, labels))
            except AssemblerError as e:
                self._report(str(e))
                # HLT placeholder keeps later instructions at their label indices
                binary.extend(fill_zeros([], INSTRUCTION_BYTES * self.width))

        logger.debug("assembled %d instructions, %d labels, %d errors",
                     len(instructions), len(labels), len(self.errors))

        if strict and self.errors:
            raise AssemblerError("Assembly failed:\n" + "\n".join(self.errors))
        return binary

    def encode_line(self, line: str, index: int, labels: Dict[str, int]) -> Bits:
        """Pass 2 for a single instruction line.

        Args:
            line: Instruction text (already stripped, no label or comment)
            index: Position of the instruction in the program
            labels: Label table from pass 1

        Raises:
            AssemblerError: On any encoding failure
        """
        match = MNEMONIC_RE.match(line)
        if match is None:
            raise AssemblerError("Invalid instruction", index, line)

        mnemonic = match.group(1).upper()
        operands = self._parse_operands(match.group(2), index, line, labels)
        if len(operands) > 2:
            raise AssemblerError(f"Too many operands for {mnemonic}", index, line)

        modes = tuple(mode for mode, _ in operands)
        form = lookup(mnemonic, modes)
        if form is None:
            key = mnemonic + "".join(mode.sigil for mode in modes)
            raise AssemblerError(f"Unknown instruction: {key}", index, line)

        values = [int(form.opcode)] + [value for _, value in operands]
        values += [0] * (INSTRUCTION_BYTES - len(values))

        binary: Bits = []
        for value in values:
            binary.extend(self._to_byte(value, index, line))
        return binary

    def _parse_operands(self, rest: str, index: int, line: str,
                        labels: Dict[str, int]) -> List[Tuple[Mode, int]]:
        if rest[:1] in SIGILS:
            # Compact form: sigils glued to the mnemonic, bare values after
            sigils = SIGIL_RUN_RE.match(rest).group()
            values = _split_list(rest[len(sigils):])
            if len(values) != len(sigils):
                raise AssemblerError(
                    f"Expected {len(sigils)} operand(s) for '{sigils}', got {len(values)}",
                    index, line,
                )
            tokens = [sigil + value for sigil, value in zip(sigils, values)]
        elif rest and not rest[0].isspace():
            raise AssemblerError(f"Invalid addressing mode identifier: {rest[0]}", index, line)
        else:
            tokens = _split_list(rest)

        return [self._parse_operand(token, index, line, labels) for token in tokens]

    def _parse_operand(self, token: str, index: int, line: str,
                       labels: Dict[str, int]) -> Tuple[Mode, int]:
        if IDENTIFIER_RE.match(token):
            return Mode.RELATIVE, self._resolve_label(token, index, line, labels)

        sigil, body = token[0], token[1:].strip()
        if sigil not in SIGILS:
            raise AssemblerError(f"Invalid addressing mode identifier: {sigil}", index, line)
        mode = Mode(sigil)

        if mode is Mode.RELATIVE and body in labels:
            return mode, self._resolve_label(body, index, line, labels)

        try:
            return mode, parse_literal(body)
        except ValueError:
            pass

        if IDENTIFIER_RE.match(body):
            if mode is Mode.RELATIVE:
                raise AssemblerError(f"Label not found: {body}", index, line)
            raise AssemblerError(f"Labels are only valid as relative operands: {token}",
                                 index, line)
        raise AssemblerError(f"Invalid operand literal: {token}", index, line)

    def _resolve_label(self, name: str, index: int, line: str, labels: Dict[str, int]) -> int:
        if name not in labels:
            raise AssemblerError(f"Label not found: {name}", index, line)
        return labels[name] - index

    def _to_byte(self, value: int, index: int, line: str) -> Bits:
        try:
            return int_to_bits(value, self.width)
        except CodecError:
            raise AssemblerError(f"Value {value} does not fit in {self.width} bits", index, line)

    def _report(self, message: str) -> None:
        self.errors.append(message)
        if self.on_error is not None:
            self.on_error(message)
        else:
            logger.warning("%s", message)


def _operand_value(mode: Mode, byte: Sequence[bool]) -> int:
    """Registers and addresses read unsigned; immediates and offsets signed."""
    if mode in (Mode.REGISTER, Mode.MEMORY):
        return bits_to_uint(byte)
    return bits_to_int(byte)


def decode_instruction(opcode: Sequence[bool], a: Sequence[bool],
                       b: Sequence[bool]) -> DecodedInstruction:
    """Decode one instruction from its three bytes."""
    value = bits_to_uint(opcode)
    form = form_for_opcode(value)
    if form is None:
        return DecodedInstruction(value, None, (), False, error=f"Unknown opcode: {value}")
    operands = tuple(_operand_value(mode, byte) for mode, byte in zip(form.modes, (a, b)))
    return DecodedInstruction(value, form, operands)


def disassemble(binary: Sequence[bool], width: int) -> List[DecodedInstruction]:
    """Decode a flat bit stream, three bytes at a time.

    A trailing partial instruction is padded with zero bytes.
    """
    chunks = [fill_zeros(chunk, width) for chunk in split_bytes(binary, width)]
    decoded = []
    for i in range(0, len(chunks), INSTRUCTION_BYTES):
        group = chunks[i:i + INSTRUCTION_BYTES]
        group += [fill_zeros([], width)] * (INSTRUCTION_BYTES - len(group))
        decoded.append(decode_instruction(*group))
    return decoded
