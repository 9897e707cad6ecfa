"""Exception hierarchy raised by the CHIP-8 core."""

from __future__ import annotations

from typing import Optional


class Chip8Error(RuntimeError):
    """Base class for every error raised by the interpreter."""


class ProgramLoadError(Chip8Error):
    """Raised when a program image cannot be installed into memory."""


class ProgramTooLargeError(ProgramLoadError):
    """Raised when an image does not fit between 0x200 and the end of memory."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"program too large to fit in memory: {size} bytes (limit {limit})")
        self.size = size
        self.limit = limit


class MachineFault(Chip8Error):
    """Fatal condition detected while executing a program."""

    def __init__(self, message: str, *, pc: Optional[int] = None, opcode: Optional[int] = None) -> None:
        details = []
        if pc is not None:
            details.append(f"pc={pc:04X}")
        if opcode is not None:
            details.append(f"opcode={opcode:04X}")
        if details:
            message = f"{message} ({' '.join(details)})"
        super().__init__(message)
        self.pc = pc
        self.opcode = opcode


class InvalidProgramCounterError(MachineFault):
    """The program counter is odd or points past the last fetchable word."""


class StackOverflowError(MachineFault):
    """A call was made with all sixteen stack slots in use."""


class StackUnderflowError(MachineFault):
    """A return was executed with an empty call stack."""


class UnknownOpcodeError(MachineFault):
    """The fetched word does not match any instruction."""


class InvalidKeyError(MachineFault):
    """A key-test instruction named a key outside 0-F."""


class MemoryAccessError(MachineFault):
    """A memory access fell outside the 4 KiB address space."""

    def __init__(self, address: int, *, pc: Optional[int] = None, opcode: Optional[int] = None) -> None:
        super().__init__(f"memory access out of range: 0x{address:X}", pc=pc, opcode=opcode)
        self.address = address


__all__ = [
    "Chip8Error",
    "ProgramLoadError",
    "ProgramTooLargeError",
    "MachineFault",
    "InvalidProgramCounterError",
    "StackOverflowError",
    "StackUnderflowError",
    "UnknownOpcodeError",
    "InvalidKeyError",
    "MemoryAccessError",
]
