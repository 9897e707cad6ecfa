"""CLI helper tests."""

from pathlib import Path

import pytest

from chip8emu import app
from chip8emu.chip8.computer import Chip8Computer
from chip8emu.chip8.keyboard import Chip8Keyboard
from chip8emu.emulator.file import ProgramInfo


def test_keypad_map_covers_all_sixteen_keys() -> None:
    assert sorted(app.KEYPAD_MAP.values()) == list(range(16))


def test_handle_key_event_sets_latch() -> None:
    keyboard = Chip8Keyboard()
    assert app._handle_key_event(keyboard, ord("v")) is True
    assert keyboard.is_set(0xF) is True
    assert app._handle_key_event(keyboard, ord("p")) is False
    assert keyboard.first_pressed() == 0xF


def test_build_caption() -> None:
    info = ProgramInfo(name="PONG", size=246)
    assert app._build_caption(None) == app.BASE_CAPTION
    assert app._build_caption(info) == f"{app.BASE_CAPTION} | PONG"
    assert app._build_caption(info, paused=True, status="halted").endswith("| PAUSED | halted")


def test_run_frame_executes_cycles_and_drops_latches() -> None:
    computer = Chip8Computer()
    computer.load_program(bytes([0x12, 0x00]))
    computer.keyboard.press(0x3)

    app._run_frame(computer, 7)

    assert computer.cycle_count == 7
    assert computer.keyboard.first_pressed() is None


def test_main_reports_missing_rom(tmp_path: Path, capsys) -> None:
    exit_code = app.main([str(tmp_path / "missing.ch8"), "--no-audio"])
    assert exit_code == 1
    assert "Failed to load program" in capsys.readouterr().err


def test_main_rejects_non_positive_scale(tmp_path: Path) -> None:
    with pytest.raises(SystemExit):
        app.main([str(tmp_path / "rom.ch8"), "--scale", "0"])


def test_main_runs_loop_with_loaded_program(tmp_path: Path, monkeypatch) -> None:
    rom = tmp_path / "loop.ch8"
    rom.write_bytes(bytes([0x12, 0x00]))
    captured = {}

    def fake_loop(computer, *, scale, fps, cycles_per_frame):
        captured["pc"] = computer.cpu_core.registers.program_counter
        captured["settings"] = (scale, fps, cycles_per_frame)
        return 0

    monkeypatch.setattr(app, "_pygame_loop", fake_loop)

    exit_code = app.main([str(rom), "--scale", "4", "--fps", "30", "--cycles-per-frame", "12", "--no-audio"])

    assert exit_code == 0
    assert captured == {"pc": 0x200, "settings": (4, 30, 12)}
