"""Notification channel between a CPU and whoever drives it.

Each event kind has exactly one slot. Assigning a new callback to a slot
replaces the previous one; there is no fan-out.

Events:
    on_run():            run() started
    on_step(pc):         one step finished; pc is the new program counter
    on_reset():          reset() completed
    on_error(message):   an assembly or run-time fault was reported
    on_output(value):    OUT delivered a byte
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .codec import Bits, bits_to_str

logger = logging.getLogger(__name__)


@dataclass
class CPUEvents:
    """Single-slot observer callbacks for one CPU."""
    on_run: Optional[Callable[[], None]] = None
    on_step: Optional[Callable[[Bits], None]] = None
    on_reset: Optional[Callable[[], None]] = None
    on_error: Optional[Callable[[str], None]] = None
    on_output: Optional[Callable[[Bits], None]] = None

    def emit_run(self) -> None:
        logger.info("run started")
        if self.on_run is not None:
            self.on_run()

    def emit_step(self, pc: Bits) -> None:
        logger.debug("step -> PC=%s", bits_to_str(pc))
        if self.on_step is not None:
            self.on_step(list(pc))

    def emit_reset(self) -> None:
        logger.info("reset")
        if self.on_reset is not None:
            self.on_reset()

    def emit_error(self, message: str) -> None:
        logger.warning("%s", message)
        if self.on_error is not None:
            self.on_error(message)

    def emit_output(self, value: Bits) -> None:
        logger.info("OUT %s", bits_to_str(value))
        if self.on_output is not None:
            self.on_output(list(value))
