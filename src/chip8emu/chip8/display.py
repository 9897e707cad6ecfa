"""CHIP-8 64x32 monochrome display model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Sequence


@dataclass
class Chip8Display:
    WIDTH: int = 64
    HEIGHT: int = 32
    SPRITE_WIDTH: int = 8

    color_map: List[int] = field(default_factory=lambda: [0x000000, 0xFFFFFF])
    pixels: List[int] = field(default_factory=lambda: [0] * (64 * 32))
    dirty: bool = False

    # ------------------------------------------------------------------
    # Buffer access
    # ------------------------------------------------------------------
    def index_of(self, x: int, y: int) -> int:
        return (y % self.HEIGHT) * self.WIDTH + (x % self.WIDTH)

    def get_pixel(self, x: int, y: int) -> int:
        return self.pixels[self.index_of(x, y)]

    def set_pixels(self, data: Iterable[int]) -> None:
        values = list(data)
        if len(values) != self.WIDTH * self.HEIGHT:
            raise ValueError("display buffer must be 2048 pixels")
        self.pixels = [value & 0x01 for value in values]
        self.dirty = True

    def lit_count(self) -> int:
        return sum(self.pixels)

    def clear(self) -> None:
        self.pixels = [0] * (self.WIDTH * self.HEIGHT)
        self.dirty = True

    def acknowledge(self) -> None:
        """Called by the renderer once the current frame has been consumed."""

        self.dirty = False

    # ------------------------------------------------------------------
    # Sprite blit
    # ------------------------------------------------------------------
    def draw_sprite(self, x: int, y: int, rows: Sequence[int]) -> bool:
        """XOR an 8-pixel wide sprite onto the screen at (x, y).

        Coordinates wrap around both edges. Returns True when at least one
        set sprite bit landed on an already lit pixel. The display is marked
        dirty even when ``rows`` is empty.
        """

        collision = False
        for row_offset, row in enumerate(rows):
            for bit in range(self.SPRITE_WIDTH):
                if not (row >> (7 - bit)) & 0x01:
                    continue
                index = self.index_of(x + bit, y + row_offset)
                if self.pixels[index]:
                    collision = True
                self.pixels[index] ^= 0x01
        self.dirty = True
        return collision

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def rows(self) -> List[List[int]]:
        return [self.pixels[y * self.WIDTH:(y + 1) * self.WIDTH] for y in range(self.HEIGHT)]

    def render_text(self, on: str = "*", off: str = " ") -> str:
        return "\n".join("".join(on if pixel else off for pixel in row) for row in self.rows())

    def render_pixels(self) -> List[List[int]]:
        return [[self.color_map[pixel] for pixel in row] for row in self.rows()]

    def render_pygame_surface(self, scaling: int = 1):
        """Render the display into a pygame Surface.

        Parameters
        ----------
        scaling:
            Integer scale factor applied to both axes.

        Returns
        -------
        pygame.Surface
            RGB surface representing the current screen.

        Raises
        ------
        RuntimeError
            If pygame is not available.
        """

        if scaling <= 0:
            raise ValueError("scaling factor must be positive")

        try:
            import pygame  # type: ignore
        except Exception as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("pygame is required for render_pygame_surface") from exc

        surface = pygame.Surface((self.WIDTH * scaling, self.HEIGHT * scaling))
        surface.fill(self.color_map[0])
        lit = self.color_map[1]
        surface.lock()
        try:
            for y, row in enumerate(self.rows()):
                for x, pixel in enumerate(row):
                    if pixel:
                        surface.fill(lit, (x * scaling, y * scaling, scaling, scaling))
        finally:
            surface.unlock()
        return surface

    def set_color_map_entry(self, index: int, color: int) -> None:
        if index not in (0, 1):
            raise ValueError("color map index must be 0 or 1")
        self.color_map[index] = color & 0xFFFFFF
        self.dirty = True
