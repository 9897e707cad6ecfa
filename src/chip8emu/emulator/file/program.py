"""Program image loading for CHIP-8 ROM files."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from chip8emu.errors import ProgramLoadError, ProgramTooLargeError
from chip8emu.memory import MAX_PROGRAM_SIZE, PROGRAM_START


@dataclass
class ProgramInfo:
    name: str = ""
    size: int = 0
    start: int = PROGRAM_START
    path: Optional[Path] = None

    @property
    def end(self) -> int:
        """Last address occupied by the image (inclusive)."""

        return self.start + max(self.size, 1) - 1


def read_program_image(path: str | Path, *, limit: int = MAX_PROGRAM_SIZE) -> bytes:
    """Read a raw, header-less CHIP-8 image from ``path``.

    Raises
    ------
    ProgramTooLargeError
        If the file is longer than ``limit`` bytes.
    ProgramLoadError
        If ``path`` is not a regular file.
    """

    file_path = Path(path)
    if not file_path.is_file():
        raise ProgramLoadError(f"program file not found: {file_path}")
    data = file_path.read_bytes()
    if len(data) > limit:
        raise ProgramTooLargeError(len(data), limit)
    return data


def describe_program(path: str | Path, data: bytes) -> ProgramInfo:
    file_path = Path(path)
    return ProgramInfo(name=file_path.stem.upper(), size=len(data), path=file_path)
