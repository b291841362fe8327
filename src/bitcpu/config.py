"""Architecture configuration for bitcpu.

One canonical structure, validated once at construction and immutable
afterwards.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# Safety bound on run() for programs that never reach HLT
STEP_LIMIT = 100000


@dataclass(frozen=True)
class Architecture:
    """Shape of the emulated machine.

    Attributes:
        bits: Byte width W used for data, addresses, PC and IR
        register_count: Number of general-purpose registers
        ram_bytes: Number of addressable RAM cells
    """
    bits: int = 8
    register_count: int = 4
    ram_bytes: int = 256

    def __post_init__(self):
        if self.bits < 1:
            raise ConfigurationError(f"Incorrect byte length: {self.bits}")
        if self.register_count < 1:
            raise ConfigurationError(
                f"There must be at least one register, got {self.register_count}"
            )
        if self.ram_bytes < 1:
            raise ConfigurationError(f"RAM must hold at least one byte, got {self.ram_bytes}")
        if self.ram_bytes > self.address_space:
            logger.warning(
                "RAM has %d bytes but %d-bit addresses reach only %d of them",
                self.ram_bytes, self.bits, self.address_space,
            )

    @property
    def address_space(self) -> int:
        """Number of distinct addresses a W-bit byte can express."""
        return 1 << self.bits

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Architecture":
        """Build an Architecture from a mapping with the canonical keys.

        Raises:
            ConfigurationError: On unknown keys or invalid values
        """
        unknown = set(data) - {"bits", "register_count", "ram_bytes"}
        if unknown:
            raise ConfigurationError(f"Unknown architecture keys: {sorted(unknown)}")
        try:
            values = {key: int(value) for key, value in data.items()}
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Architecture values must be integers: {e}")
        return cls(**values)

    def to_dict(self) -> dict:
        return {
            "bits": self.bits,
            "register_count": self.register_count,
            "ram_bytes": self.ram_bytes,
        }
