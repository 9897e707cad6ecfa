"""pygame dependent tests for Chip8Display."""

import pytest

pygame = pytest.importorskip("pygame")

from chip8emu.chip8.display import Chip8Display


def test_render_pygame_surface_scaling_two():
    display = Chip8Display()
    display.set_color_map_entry(1, 0x123456)
    display.draw_sprite(0, 0, [0x80])

    surface = display.render_pygame_surface(scaling=2)

    assert surface.get_width() == display.WIDTH * 2
    assert surface.get_height() == display.HEIGHT * 2
    assert tuple(surface.get_at((1, 1)))[:3] == (0x12, 0x34, 0x56)
    assert tuple(surface.get_at((2, 0)))[:3] == (0, 0, 0)


def test_render_pygame_surface_rejects_bad_scale():
    display = Chip8Display()
    with pytest.raises(ValueError):
        display.render_pygame_surface(scaling=0)
