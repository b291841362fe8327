"""Sparse, zero-defaulted addressable memory.

The same class backs both RAM and the register file. Only written cells take
storage; every other address reads as the zero byte.

Cells are keyed by the unsigned integer value of the address bits, so two
addresses that differ only in leading zeros name the same cell.

Faults (malformed address, address past capacity, oversized value) are
reported through the `on_error` callback rather than raised: the CPU keeps
stepping after them.
"""

import logging
from typing import Callable, Dict, Iterator, Optional, Sequence, Tuple

from .codec import Bits, bits_to_str, bits_to_uint, fill_zeros

logger = logging.getLogger(__name__)


class Memory:
    """Sparse byte store of `capacity` cells, each `width` bits wide.

    Attributes:
        name: Label used in error messages ("RAM", "register")
        width: Cell width in bits (also the maximum address length)
        capacity: Number of addressable cells
        on_error: Callback receiving fault messages
    """

    def __init__(self, name: str, width: int, capacity: int,
                 on_error: Optional[Callable[[str], None]] = None):
        self.name = name
        self.width = width
        self.capacity = capacity
        self.on_error = on_error
        self._zero: Tuple[bool, ...] = tuple(fill_zeros([], width))
        self._cells: Dict[int, Tuple[bool, ...]] = {}

    def _report(self, message: str) -> None:
        if self.on_error is not None:
            self.on_error(message)
        else:
            logger.warning("%s", message)

    def _locate(self, address: Sequence[bool]) -> Optional[int]:
        """Validate an address and return its cell key, or None on fault."""
        if len(address) > self.width:
            self._report(f"Incorrect {self.name} address: {bits_to_str(address)}")
            return None
        key = bits_to_uint(address)
        if key >= self.capacity:
            self._report(
                f"{self.name} address {key} out of range (capacity {self.capacity})"
            )
            return None
        return key

    def read(self, address: Sequence[bool]) -> Bits:
        """Read the byte at `address`.

        Unwritten cells and faulty addresses both yield the zero byte.
        """
        key = self._locate(address)
        if key is None:
            return list(self._zero)
        return list(self._cells.get(key, self._zero))

    def write(self, address: Sequence[bool], value: Sequence[bool]) -> None:
        """Store `value` (left-padded to the cell width) at `address`."""
        key = self._locate(address)
        if key is None:
            return
        if len(value) > self.width:
            self._report(
                f"Cannot store {len(value)} bits of data in {self.name}, "
                f"since 1 byte = {self.width}"
            )
            return
        self._cells[key] = tuple(fill_zeros(value, self.width))

    def clear(self) -> None:
        """Drop every stored cell; all addresses read as zero again."""
        self._cells.clear()

    def dump(self) -> Dict[int, Bits]:
        """Populated cells as {address: bits}, sorted by address."""
        return {key: list(self._cells[key]) for key in sorted(self._cells)}

    def __len__(self) -> int:
        return len(self._cells)

    def __contains__(self, address: int) -> bool:
        return address in self._cells

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._cells))

    def __repr__(self) -> str:
        return (f"Memory(name={self.name!r}, width={self.width}, "
                f"capacity={self.capacity}, populated={len(self)})")
