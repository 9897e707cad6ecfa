"""CHIP-8 hexadecimal keypad latches."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

KEY_COUNT = 16


@dataclass
class Chip8Keyboard:
    """Sixteen level latches, one per key 0-F.

    The host sets a latch on key press; the interpreter clears it when a
    key-test instruction consumes it. There is no release tracking.
    """

    _latches: List[bool] = field(default_factory=lambda: [False] * KEY_COUNT)

    @staticmethod
    def _check(key: int) -> int:
        if not (0 <= key < KEY_COUNT):
            raise ValueError("key index out of range")
        return key

    def set_latches(self, latches: Iterable[bool]) -> None:
        values = list(latches)
        if len(values) != KEY_COUNT:
            raise ValueError("keypad must have 16 latches")
        self._latches = [bool(value) for value in values]

    def get_latches(self) -> List[bool]:
        return list(self._latches)

    def press(self, key: int) -> None:
        self._latches[self._check(key)] = True

    def release(self, key: int) -> None:
        self._latches[self._check(key)] = False

    def is_set(self, key: int) -> bool:
        return self._latches[self._check(key)]

    def consume(self, key: int) -> bool:
        """Return the latch state and clear it."""

        state = self._latches[self._check(key)]
        self._latches[key] = False
        return state

    def first_pressed(self) -> Optional[int]:
        for key, state in enumerate(self._latches):
            if state:
                return key
        return None

    def clear(self) -> None:
        self._latches = [False] * KEY_COUNT
