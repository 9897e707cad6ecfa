"""Headless CHIP-8 runner: execute a ROM, stop on a condition, dump state."""

from __future__ import annotations

import argparse
import random
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from chip8emu.chip8.computer import Chip8Computer
from chip8emu.emulator.file import ProgramLoadError
from chip8emu.errors import MachineFault
from chip8emu.memory import MEMORY_SIZE

DEFAULT_MAX_CYCLES = 100_000
ADDRESS_MASK = MEMORY_SIZE - 1
BYTES_PER_ROW = 16

EXIT_OK = 0
EXIT_LOAD_FAILED = 1
EXIT_CYCLE_LIMIT = 2
EXIT_TIME_LIMIT = 3
EXIT_MACHINE_FAULT = 4


@dataclass(frozen=True)
class DumpRange:
    """Closed address interval ``[start, end]``."""

    start: int
    end: int

    def addresses(self) -> range:
        return range(self.start, self.end + 1)

    def touches(self, other: "DumpRange") -> bool:
        return other.start <= self.end + 1


@dataclass
class RunResult:
    executed: int = 0
    break_hit: bool = False
    timeout_hit: bool = False
    cycle_hit: bool = False
    fault: Optional[MachineFault] = None

    @property
    def exit_code(self) -> int:
        if self.fault is not None:
            return EXIT_MACHINE_FAULT
        if self.timeout_hit:
            return EXIT_TIME_LIMIT
        if self.cycle_hit:
            return EXIT_CYCLE_LIMIT
        return EXIT_OK


def _parse_hex(value: str, *, limit: int = ADDRESS_MASK) -> int:
    digits = value.strip()
    if digits[:2].lower() == "0x":
        digits = digits[2:]
    if not digits or digits.startswith(("-", "+")):
        raise ValueError(f"not a hexadecimal value: {value!r}")
    number = int(digits, 16)
    if number > limit:
        raise ValueError(f"0x{number:X} exceeds 0x{limit:X}")
    return number


def _parse_range(spec: str) -> DumpRange:
    if ":" not in spec:
        raise ValueError("expected START:END")
    first, last = (_parse_hex(part) for part in spec.split(":", 1))
    if last < first:
        raise ValueError("END is below START")
    return DumpRange(first, last)


def _merge_ranges(ranges: Sequence[DumpRange]) -> List[DumpRange]:
    """Sort ``ranges`` and join the ones that overlap or abut."""

    if not ranges:
        return [DumpRange(0, ADDRESS_MASK)]
    merged: List[DumpRange] = []
    for item in sorted(ranges, key=lambda entry: (entry.start, entry.end)):
        if merged and merged[-1].touches(item):
            previous = merged.pop()
            item = DumpRange(previous.start, max(previous.end, item.end))
        merged.append(item)
    return merged


def _hex_rows(memory, dump_range: DumpRange) -> Iterator[str]:
    first_row = dump_range.start - dump_range.start % BYTES_PER_ROW
    last_row = min(dump_range.end - dump_range.end % BYTES_PER_ROW, ADDRESS_MASK)
    for base in range(first_row, last_row + 1, BYTES_PER_ROW):
        cells = " ".join("%02X" % memory.load8(base + offset) for offset in range(BYTES_PER_ROW))
        yield f"{base:04X} {cells}"


def _format_hex_dump(memory, dump_ranges: Sequence[DumpRange]) -> str:
    header = "ADDR " + " ".join("+%X" % column for column in range(BYTES_PER_ROW))
    blocks = ["\n".join([header, *_hex_rows(memory, item)]) for item in dump_ranges]
    return "\n\n".join(blocks)


def _write_dump(memory, dump_ranges: Sequence[DumpRange], *, target: Optional[Path], fmt: str) -> None:
    ranges = _merge_ranges(dump_ranges)
    if fmt == "bin":
        payload = bytes(memory.load8(address) for item in ranges for address in item.addresses())
        if target is not None:
            target.write_bytes(payload)
        else:
            sys.stdout.buffer.write(payload)
        return

    table = _format_hex_dump(memory, ranges)
    if target is not None:
        target.write_text(table + "\n")
    else:
        print(table)


def _format_registers(computer: Chip8Computer) -> str:
    state = computer.state_summary()
    header = "PC={pc:04X} I={index:04X} SP={sp} DT={delay_timer:02X} ST={sound_timer:02X} CYCLES={cycles}".format(
        **state
    )
    registers = " ".join("V%X=%02X" % pair for pair in enumerate(state["v"]))
    return f"{header}\n{registers}"


def _execute_program(
    computer: Chip8Computer,
    *,
    max_cycles: Optional[int],
    breakpoints: Sequence[int],
    max_seconds: Optional[float],
) -> RunResult:
    result = RunResult()
    stops = frozenset(breakpoints)
    registers = computer.cpu_core.registers
    deadline = None if max_seconds is None or max_seconds < 0 else time.monotonic() + max_seconds

    while max_cycles is None or result.executed < max_cycles:
        try:
            computer.cycle()
        except MachineFault as exc:
            result.fault = exc
            return result
        result.executed += 1
        if registers.program_counter in stops:
            result.break_hit = True
            return result
        if deadline is not None and time.monotonic() >= deadline:
            result.timeout_hit = True
            return result

    result.cycle_hit = True
    return result


def _argument_type(parse, label: str):
    def convert(text: str):
        try:
            return parse(text)
        except ValueError as exc:
            raise argparse.ArgumentTypeError(f"invalid {label} '{text}': {exc}") from exc

    return convert


def _build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chip8-debug-runner",
        description="Run a CHIP-8 ROM without a window and inspect the machine afterwards.",
    )
    parser.add_argument("--program", required=True, help="Raw CHIP-8 ROM image")
    parser.add_argument(
        "--cycles",
        type=int,
        default=DEFAULT_MAX_CYCLES,
        help="Instruction budget; 0 or less runs until another stop condition",
    )
    parser.add_argument(
        "--break-pc",
        dest="breakpoints",
        type=_argument_type(_parse_hex, "breakpoint address"),
        action="append",
        default=[],
        help="Stop once the program counter equals this hex address (repeatable)",
    )
    parser.add_argument(
        "--key",
        dest="keys",
        type=_argument_type(lambda text: _parse_hex(text, limit=0xF), "key"),
        action="append",
        default=[],
        help="Keypad key 0-F to latch before the first cycle (repeatable)",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for the CXNN random source")
    parser.add_argument("--seconds", type=float, default=None, help="Wall-clock limit in seconds")
    parser.add_argument("--dump", default=None, help="Write the memory dump here instead of stdout")
    parser.add_argument(
        "--dump-range",
        dest="dump_ranges",
        type=_argument_type(_parse_range, "dump range"),
        action="append",
        default=[],
        help="START:END hex addresses to dump, both inclusive (repeatable; default is all memory)",
    )
    parser.add_argument("--dump-format", choices=("hex", "bin"), default="hex", help="hex table or raw bytes")
    parser.add_argument("--no-dump", action="store_true", help="Do not dump memory")
    parser.add_argument("--registers", action="store_true", help="Print registers and timers after the run")
    parser.add_argument("--screen", action="store_true", help="Print the 64x32 display as text")
    parser.add_argument("--trace", action="store_true", help="Print every executed instruction")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_argument_parser().parse_args(argv)

    computer = Chip8Computer(rng=None if args.seed is None else random.Random(args.seed))
    if args.trace:
        computer.cpu_core.enable_trace(True)
    try:
        computer.load_program_file(args.program)
    except (ProgramLoadError, OSError) as exc:
        print(f"Failed to load program: {exc}", file=sys.stderr)
        return EXIT_LOAD_FAILED
    for key in args.keys:
        computer.keyboard.press(key)

    result = _execute_program(
        computer,
        max_cycles=args.cycles if args.cycles > 0 else None,
        breakpoints=args.breakpoints,
        max_seconds=args.seconds,
    )

    if args.registers:
        print(_format_registers(computer))
    if args.screen:
        print(computer.display.render_text(on="#", off="."))
    if not args.no_dump:
        _write_dump(
            computer.memory,
            args.dump_ranges,
            target=None if args.dump is None else Path(args.dump),
            fmt=args.dump_format,
        )

    if result.fault is not None:
        print(f"Execution stopped: machine fault: {result.fault}", file=sys.stderr)
    elif result.timeout_hit:
        print("Execution stopped: time limit reached", file=sys.stderr)
    elif result.cycle_hit:
        print("Execution stopped: cycle limit reached", file=sys.stderr)
    return result.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
