from __future__ import annotations

from pathlib import Path

from chip8emu import debug_runner


class FakeTime:
    def __init__(self) -> None:
        self.current = 0.0

    def monotonic(self) -> float:
        value = self.current
        self.current += 0.6
        return value


def _write_rom(path: Path, payload: bytes) -> Path:
    path.write_bytes(payload)
    return path


def test_debug_runner_breaks_and_dumps(tmp_path, capsys) -> None:
    rom = _write_rom(tmp_path / "loop.ch8", bytes([0x60, 0x2A, 0x12, 0x02]))

    exit_code = debug_runner.main(
        [
            "--program",
            str(rom),
            "--cycles",
            "512",
            "--break-pc",
            "0x0202",
            "--dump-range",
            "0200:020F",
            "--registers",
        ]
    )

    captured = capsys.readouterr()
    assert exit_code == 0
    output_lines = [line for line in captured.out.strip().splitlines() if line]
    assert output_lines[0].startswith("PC=0202")
    assert "V0=2A" in output_lines[1]
    assert output_lines[2].startswith("ADDR")
    assert output_lines[3].startswith("0200 60 2A 12 02")


def test_debug_runner_cycle_limit(tmp_path, capsys) -> None:
    rom = _write_rom(tmp_path / "spin.ch8", bytes([0x12, 0x00]))

    exit_code = debug_runner.main(["--program", str(rom), "--cycles", "32", "--no-dump"])

    captured = capsys.readouterr()
    assert exit_code == 2
    assert "cycle limit" in captured.err
    assert captured.out == ""


def test_debug_runner_time_limit(tmp_path, capsys, monkeypatch) -> None:
    rom = _write_rom(tmp_path / "spin.ch8", bytes([0x12, 0x00]))

    fake_time = FakeTime()
    monkeypatch.setattr(debug_runner, "time", fake_time)

    exit_code = debug_runner.main(
        [
            "--program",
            str(rom),
            "--cycles",
            "0",
            "--seconds",
            "1",
            "--dump-range",
            "0200:0200",
        ]
    )

    captured = capsys.readouterr()
    assert exit_code == 3
    assert "time limit" in captured.err


def test_debug_runner_reports_machine_fault(tmp_path, capsys) -> None:
    rom = _write_rom(tmp_path / "bad.ch8", bytes([0x00, 0xEE]))

    exit_code = debug_runner.main(["--program", str(rom), "--no-dump"])

    captured = capsys.readouterr()
    assert exit_code == 4
    assert "machine fault" in captured.err
    assert "pc=0200" in captured.err


def test_debug_runner_load_failure(tmp_path, capsys) -> None:
    exit_code = debug_runner.main(["--program", str(tmp_path / "missing.ch8")])

    captured = capsys.readouterr()
    assert exit_code == 1
    assert "Failed to load program" in captured.err


def test_debug_runner_latches_keys_and_prints_screen(tmp_path, capsys) -> None:
    rom = _write_rom(
        tmp_path / "key.ch8",
        bytes(
            [
                0xF1, 0x0A,  # 200: V1 = key
                0xF1, 0x29,  # 202: I = glyph V1
                0xD0, 0x05,  # 204: draw at (V0, V0)
                0x12, 0x06,  # 206: spin
            ]
        ),
    )

    exit_code = debug_runner.main(
        ["--program", str(rom), "--key", "1", "--break-pc", "206", "--screen", "--no-dump"]
    )

    captured = capsys.readouterr()
    assert exit_code == 0
    rows = captured.out.splitlines()
    assert len(rows) == 32
    assert rows[0].startswith("..#.....")
    assert rows[4].startswith(".###....")
    assert sum(row.count("#") for row in rows) == 8


def test_debug_runner_writes_binary_dump(tmp_path) -> None:
    rom = _write_rom(tmp_path / "spin.ch8", bytes([0x12, 0x00]))
    target = tmp_path / "dump.bin"

    exit_code = debug_runner.main(
        [
            "--program",
            str(rom),
            "--cycles",
            "1",
            "--dump",
            str(target),
            "--dump-format",
            "bin",
            "--dump-range",
            "0050:0054",
            "--dump-range",
            "0200:0201",
        ]
    )

    assert exit_code == 2
    assert target.read_bytes() == bytes([0xF0, 0x90, 0x90, 0x90, 0xF0, 0x12, 0x00])
