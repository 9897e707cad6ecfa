"""Delay and sound countdown timers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Chip8Timers:
    delay: int = 0
    sound: int = 0

    def set_delay(self, value: int) -> None:
        self.delay = value & 0xFF

    def set_sound(self, value: int) -> None:
        self.sound = value & 0xFF

    @property
    def sound_active(self) -> bool:
        return self.sound > 0

    def tick(self) -> None:
        # One decrement per executed instruction, never below zero.
        if self.delay > 0:
            self.delay -= 1
        if self.sound > 0:
            self.sound -= 1

    def reset(self) -> None:
        self.delay = 0
        self.sound = 0
