"""File loading helpers for the CHIP-8 emulator."""

from chip8emu.emulator.file.program import (
    ProgramInfo,
    describe_program,
    read_program_image,
)
from chip8emu.errors import ProgramLoadError, ProgramTooLargeError

__all__ = [
    "ProgramInfo",
    "ProgramLoadError",
    "ProgramTooLargeError",
    "describe_program",
    "read_program_image",
]
