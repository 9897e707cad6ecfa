"""Square-wave beeper driven by the CHIP-8 sound timer."""

from __future__ import annotations

from array import array
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

SAMPLE_PEAK = 32767


@dataclass
class Chip8Beeper:
    """Plays a fixed tone while the sound timer is non-zero.

    The interpreter never calls into this object; the host polls
    ``update`` with the current sound timer value once per frame.
    """

    history: List[Tuple[str, Tuple[float, ...]]] = field(default_factory=list)
    sample_rate: int = 44100
    frequency: float = 440.0
    volume: float = 0.3
    enable_audio: bool = False

    def __post_init__(self) -> None:
        self._playing: bool = False
        self._channel: Optional[Any] = None
        self._tone: Optional[Any] = None

    @property
    def playing(self) -> bool:
        return self._playing

    def update(self, sound_timer: int) -> None:
        wanted = sound_timer > 0
        if wanted == self._playing:
            return
        if wanted:
            self.start()
        else:
            self.stop()

    def start(self) -> None:
        self._playing = True
        self.history.append(("start", (self.frequency,)))
        channel = self._open_channel()
        if channel is not None:
            channel.set_volume(self.volume)
            channel.play(self._tone, loops=-1)

    def stop(self) -> None:
        self._playing = False
        self.history.append(("stop", ()))
        if self._channel is not None:
            self._channel.stop()

    def _open_channel(self):
        """Return the mixer channel, creating it on first use.

        Any mixer failure switches audio off for the rest of the session.
        """

        if self._channel is not None or not self.enable_audio:
            return self._channel
        try:
            import pygame  # type: ignore

            mixer = pygame.mixer
            if not mixer.get_init():
                mixer.init(frequency=self.sample_rate, size=-16, channels=1)
            tone = mixer.Sound(buffer=self.render_period())
            channel = mixer.Channel(0)
        except Exception as exc:
            print(f"Audio disabled: {exc}")
            self.enable_audio = False
            return None
        self._tone = tone
        self._channel = channel
        return channel

    def render_period(self) -> array:
        """One full period of a signed 16-bit square wave."""

        length = max(2, int(self.sample_rate / self.frequency))
        level = int(self.volume * SAMPLE_PEAK)
        high = length // 2
        return array("h", [level] * high + [-level] * (length - high))
