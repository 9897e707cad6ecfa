"""Memory model for the CHIP-8 address space."""

from __future__ import annotations

from typing import Iterable, List, Sequence

from chip8emu.errors import MemoryAccessError, ProgramTooLargeError

MEMORY_SIZE = 0x1000
PROGRAM_START = 0x200
MAX_PROGRAM_SIZE = MEMORY_SIZE - PROGRAM_START
FONT_START = 0x050
FONT_GLYPH_SIZE = 5

# 0x000-0x04F  reserved
# 0x050-0x09F  built-in 4x5 hexadecimal font
# 0x200-0xFFF  program ROM and work RAM
FONT_SET: Sequence[int] = (
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
)


class Memory:
    """4 KiB of byte cells with bounds-checked 8/16-bit accesses."""

    length: int
    data: List[int]

    def __init__(self, length: int = MEMORY_SIZE) -> None:
        if length <= 0:
            raise ValueError("invalid memory size")
        self.length = length
        self.data = [0x00] * length
        self._debug: bool = False
        self.install_font()

    def _check(self, address: int) -> int:
        if not (0 <= address < self.length):
            raise MemoryAccessError(address)
        return address

    def load8(self, address: int) -> int:
        value = self.data[self._check(address)] & 0xFF
        if self._debug:
            print(f"load8: addr={address:03X} val={value:02X}")
        return value

    def store8(self, address: int, value: int) -> None:
        if self._debug:
            print(f"store8: addr={address:03X} val={value & 0xFF:02X}")
        self.data[self._check(address)] = value & 0xFF

    def load16(self, address: int) -> int:
        """Read a big-endian word; both bytes must be inside memory."""

        self._check(address + 1)
        hi = self.data[self._check(address)] & 0xFF
        lo = self.data[address + 1] & 0xFF
        value = ((hi << 8) | lo) & 0xFFFF
        if self._debug:
            print(f"load16: addr={address:03X} val={value:04X}")
        return value

    def load_block(self, address: int, length: int) -> List[int]:
        if length <= 0:
            return []
        self._check(address)
        self._check(address + length - 1)
        return list(self.data[address:address + length])

    def store_block(self, address: int, values: Iterable[int]) -> None:
        payload = [value & 0xFF for value in values]
        if not payload:
            return
        self._check(address)
        self._check(address + len(payload) - 1)
        self.data[address:address + len(payload)] = payload

    # ------------------------------------------------------------------
    # Image installation
    # ------------------------------------------------------------------
    def clear(self) -> None:
        self.data = [0x00] * self.length
        self.install_font()

    def install_font(self) -> None:
        self.data[FONT_START:FONT_START + len(FONT_SET)] = list(FONT_SET)

    def load_program(self, image: bytes | bytearray | Sequence[int]) -> int:
        """Copy ``image`` verbatim to 0x200 and return its size.

        Raises
        ------
        ProgramTooLargeError
            If the image is longer than the program area; memory is left untouched.
        """

        size = len(image)
        limit = self.length - PROGRAM_START
        if size > limit:
            raise ProgramTooLargeError(size, limit)
        self.store_block(PROGRAM_START, image)
        return size

    def enable_debug(self, enabled: bool) -> None:
        self._debug = enabled


def font_address(digit: int) -> int:
    """Glyph base for ``digit``, offset by ``FONT_START`` (not ``digit * 5``)."""

    return FONT_START + digit * FONT_GLYPH_SIZE


__all__ = [
    "FONT_GLYPH_SIZE",
    "FONT_SET",
    "FONT_START",
    "MAX_PROGRAM_SIZE",
    "MEMORY_SIZE",
    "PROGRAM_START",
    "Memory",
    "font_address",
]
