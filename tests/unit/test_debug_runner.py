from __future__ import annotations

import pytest

from chip8emu import debug_runner
from chip8emu.chip8.computer import Chip8Computer


class DummyMemory:
    def __init__(self) -> None:
        self.values = {0x200: 0x12, 0x201: 0x00, 0x20F: 0xAB, 0x210: 0xCD}

    def load8(self, address: int) -> int:
        return self.values.get(address & 0xFFF, 0x00)


def test_parse_hex_accepts_prefixed_and_plain() -> None:
    assert debug_runner._parse_hex("0x0200") == 0x200
    assert debug_runner._parse_hex("200") == 0x200
    assert debug_runner._parse_hex("f", limit=0xF) == 0xF


@pytest.mark.parametrize("value", ["", "0x1000", "xyz", "-1"])
def test_parse_hex_rejects_invalid(value: str) -> None:
    with pytest.raises(ValueError):
        debug_runner._parse_hex(value)


def test_parse_hex_respects_key_limit() -> None:
    with pytest.raises(ValueError):
        debug_runner._parse_hex("10", limit=0xF)


def test_parse_range_and_merge() -> None:
    rng = debug_runner._parse_range("0210:021F")
    assert rng.start == 0x210
    assert rng.end == 0x21F
    merged = debug_runner._merge_ranges(
        [debug_runner.DumpRange(0x210, 0x215), debug_runner.DumpRange(0x200, 0x20F)]
    )
    assert merged == [debug_runner.DumpRange(0x200, 0x215)]


@pytest.mark.parametrize("spec", ["0200", "0210:0200"])
def test_parse_range_rejects_invalid(spec: str) -> None:
    with pytest.raises(ValueError):
        debug_runner._parse_range(spec)


def test_merge_ranges_defaults_to_full_memory() -> None:
    merged = debug_runner._merge_ranges([])
    assert merged == [debug_runner.DumpRange(0x000, 0xFFF)]


def test_format_hex_dump_renders_expected_table() -> None:
    memory = DummyMemory()
    dump = debug_runner._format_hex_dump(memory, [debug_runner.DumpRange(0x200, 0x210)])
    lines = dump.splitlines()
    assert lines[0].startswith("ADDR")
    assert lines[1].startswith("0200 12 00")
    assert lines[1].endswith("AB")
    assert lines[2].startswith("0210 CD 00")
    assert len(lines) == 3


def test_format_registers_lists_every_register() -> None:
    computer = Chip8Computer()
    computer.load_program(bytes([0x6A, 0x42]))
    computer.cycle()

    text = debug_runner._format_registers(computer)

    assert text.startswith("PC=0202 I=0000 SP=0")
    assert "VA=42" in text
    assert "CYCLES=1" in text


def test_execute_program_reports_cycle_limit() -> None:
    computer = Chip8Computer()
    computer.load_program(bytes([0x12, 0x00]))

    result = debug_runner._execute_program(computer, max_cycles=10, breakpoints=[], max_seconds=None)

    assert result.executed == 10
    assert result.cycle_hit is True
    assert result.break_hit is False


def test_execute_program_stops_at_breakpoint() -> None:
    computer = Chip8Computer()
    computer.load_program(bytes([0x00, 0xE0, 0x00, 0xE0, 0x12, 0x00]))

    result = debug_runner._execute_program(computer, max_cycles=100, breakpoints=[0x204], max_seconds=None)

    assert result.break_hit is True
    assert result.executed == 2


def test_execute_program_captures_fault() -> None:
    computer = Chip8Computer()
    computer.load_program(bytes([0x00, 0xEE]))

    result = debug_runner._execute_program(computer, max_cycles=None, breakpoints=[], max_seconds=None)

    assert result.executed == 0
    assert result.fault is not None
    assert result.fault.pc == 0x200
