"""Exception hierarchy for bitcpu.

Only configuration and codec misuse raise. Assembly and run-time faults are
reported through the CPU's error channel (see events.py) so that the
emulator can keep stepping; AssemblerError is used internally to carry one
line's failure up to the reporting loop.
"""


class BitCPUError(Exception):
    """Base class for all bitcpu errors."""


class ConfigurationError(BitCPUError, ValueError):
    """Raised when an Architecture is constructed with invalid values."""


class CodecError(BitCPUError, ValueError):
    """Raised when a value cannot be represented in the requested width."""


class AssemblerError(BitCPUError):
    """Raised on assembly errors.

    Attributes:
        line_num: Index of the offending instruction (0 when unknown)
        line_text: Source text of the offending instruction
    """

    def __init__(self, message: str, line_num: int = 0, line_text: str = ""):
        self.line_num = line_num
        self.line_text = line_text
        if line_text:
            message = f"{message} (instruction {line_num}: '{line_text}')"
        super().__init__(message)
