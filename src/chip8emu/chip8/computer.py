"""CHIP-8 system wiring and the per-instruction cycle driver."""

from __future__ import annotations

import os
from pathlib import Path
import random
from typing import Dict, Optional

from chip8emu.chip8.display import Chip8Display
from chip8emu.chip8.hardware import Chip8Hardware
from chip8emu.chip8.keyboard import Chip8Keyboard
from chip8emu.chip8.sound import Chip8Beeper
from chip8emu.chip8.timers import Chip8Timers
from chip8emu.cpu.cpu import Chip8CPU, Instruction
from chip8emu.emulator.file import ProgramInfo, describe_program, read_program_image
from chip8emu.errors import ProgramLoadError
from chip8emu.memory import Memory


class Chip8Computer:
    """Concrete CHIP-8 machine model.

    One instance owns the whole machine state. ``cycle`` is the only call
    that advances it; the host may additionally set key latches and clear
    the display dirty flag between cycles.
    """

    ENV_TRACE = "CHIP8EMU_TRACE"

    def __init__(self, rng: Optional[random.Random] = None, *, enable_audio: bool = False) -> None:
        self.hardware = Chip8Hardware(
            memory=Memory(),
            display=Chip8Display(),
            keyboard=Chip8Keyboard(),
            timers=Chip8Timers(),
            sound_processor=Chip8Beeper(enable_audio=enable_audio),
        )
        self.cpu_core = Chip8CPU(self, rng=rng)
        self.cycle_count: int = 0
        self.program_info: Optional[ProgramInfo] = None
        if os.getenv(self.ENV_TRACE):
            self.cpu_core.enable_trace(True)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def memory(self) -> Memory:
        return self.hardware.memory

    @property
    def display(self) -> Chip8Display:
        return self.hardware.display

    @property
    def keyboard(self) -> Chip8Keyboard:
        return self.hardware.keyboard

    @property
    def timers(self) -> Chip8Timers:
        return self.hardware.timers

    @property
    def sound_processor(self) -> Chip8Beeper:
        return self.hardware.sound_processor

    @property
    def program_loaded(self) -> bool:
        return self.program_info is not None

    # ------------------------------------------------------------------
    # Program loading
    # ------------------------------------------------------------------
    def load_program(self, image: bytes | bytearray, *, name: str = "") -> ProgramInfo:
        """Install a raw image at 0x200.

        Only one image may be loaded per power-on; call ``reset`` first to
        load another one.
        """

        if self.program_loaded:
            raise ProgramLoadError("program already loaded; reset the machine first")
        size = self.memory.load_program(image)
        self.program_info = ProgramInfo(name=name, size=size)
        return self.program_info

    def load_program_file(self, path: str | os.PathLike[str]) -> ProgramInfo:
        file_path = Path(path)
        data = read_program_image(file_path)
        info = describe_program(file_path, data)
        self.load_program(data, name=info.name)
        self.program_info = info
        return info

    def reset(self) -> None:
        """Return to the power-on state, forgetting any loaded program."""

        self.memory.clear()
        self.display.clear()
        self.display.acknowledge()
        self.keyboard.clear()
        self.timers.reset()
        self.cpu_core.reset()
        self.cycle_count = 0
        self.program_info = None

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def cycle(self) -> Instruction:
        """Fetch, decode and execute one instruction, then tick the timers."""

        ins = self.cpu_core.step()
        self.timers.tick()
        self.cycle_count += 1
        return ins

    def run(self, cycles: int) -> int:
        executed = 0
        while executed < cycles:
            self.cycle()
            executed += 1
        return executed

    def state_summary(self) -> Dict[str, object]:
        regs = self.cpu_core.registers
        return {
            "pc": regs.program_counter,
            "index": regs.index,
            "sp": regs.stack_pointer,
            "v": list(regs.v),
            "stack": list(regs.stack[:regs.stack_pointer]),
            "delay_timer": self.timers.delay,
            "sound_timer": self.timers.sound,
            "waiting_for_key": self.cpu_core.status.waiting_for_key,
            "cycles": self.cycle_count,
        }
