"""Timer tick tests."""

from chip8emu.chip8.timers import Chip8Timers


def test_tick_decrements_toward_zero() -> None:
    timers = Chip8Timers()
    timers.set_delay(2)
    timers.set_sound(1)

    timers.tick()
    assert (timers.delay, timers.sound) == (1, 0)
    assert timers.sound_active is False

    timers.tick()
    timers.tick()
    assert (timers.delay, timers.sound) == (0, 0)


def test_values_are_masked_to_a_byte() -> None:
    timers = Chip8Timers()
    timers.set_delay(0x1FF)
    assert timers.delay == 0xFF
