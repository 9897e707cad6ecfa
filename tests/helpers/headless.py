"""Headless execution helpers for CHIP-8 programs."""

from __future__ import annotations

from dataclasses import dataclass
import random
from typing import List, Sequence

from chip8emu.chip8.computer import Chip8Computer


@dataclass(frozen=True)
class KeyEvent:
    """Represents a keypad latch scheduled by cycle count."""

    cycle: int
    key: int


def assemble(*words: int) -> bytes:
    """Pack 16-bit instruction words big-endian."""

    data = bytearray()
    for word in words:
        data.append((word >> 8) & 0xFF)
        data.append(word & 0xFF)
    return bytes(data)


def run_program(
    image: bytes,
    *,
    total_cycles: int,
    events: Sequence[KeyEvent] | None = None,
    seed: int = 0,
) -> tuple[Chip8Computer, List[int]]:
    """Execute a CHIP-8 image headlessly and capture PC history."""

    computer = Chip8Computer(rng=random.Random(seed))
    computer.load_program(image)

    pc_history: List[int] = []
    scheduled = sorted(events or [], key=lambda evt: evt.cycle)
    index = 0

    for cycle in range(total_cycles):
        while index < len(scheduled) and scheduled[index].cycle <= cycle:
            computer.keyboard.press(scheduled[index].key)
            index += 1
        computer.cycle()
        pc_history.append(computer.cpu_core.registers.program_counter)

    return computer, pc_history
