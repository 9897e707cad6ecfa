"""CHIP-8 emulator pygame frontend."""

from __future__ import annotations

import argparse
import random
import sys
from typing import Dict, Iterable, Optional

from chip8emu.chip8.computer import Chip8Computer
from chip8emu.chip8.keyboard import Chip8Keyboard
from chip8emu.emulator.file import ProgramInfo, ProgramLoadError
from chip8emu.errors import MachineFault

BASE_CAPTION = "CHIP-8 Emulator"

# Mapping from pygame key constants to the hexadecimal keypad.
#   1 2 3 4      1 2 3 C
#   Q W E R  ->  4 5 6 D
#   A S D F      7 8 9 E
#   Z X C V      A 0 B F
KEYPAD_MAP: Dict[int, int] = {
    ord("1"): 0x1,
    ord("2"): 0x2,
    ord("3"): 0x3,
    ord("4"): 0xC,
    ord("q"): 0x4,
    ord("w"): 0x5,
    ord("e"): 0x6,
    ord("r"): 0xD,
    ord("a"): 0x7,
    ord("s"): 0x8,
    ord("d"): 0x9,
    ord("f"): 0xE,
    ord("z"): 0xA,
    ord("x"): 0x0,
    ord("c"): 0xB,
    ord("v"): 0xF,
}

DEFAULT_SCALE = 10
DEFAULT_FPS = 60
DEFAULT_CYCLES_PER_FRAME = 10


def _handle_key_event(keyboard: Chip8Keyboard, key: int) -> bool:
    mapping = KEYPAD_MAP.get(key)
    if mapping is None:
        return False
    keyboard.press(mapping)
    return True


def _build_caption(info: Optional[ProgramInfo], *, paused: bool = False, status: str = "") -> str:
    caption = BASE_CAPTION
    if info is not None and info.name:
        caption = f"{caption} | {info.name}"
    if paused:
        caption = f"{caption} | PAUSED"
    if status:
        caption = f"{caption} | {status}"
    return caption


def _run_frame(computer: Chip8Computer, cycles_per_frame: int) -> None:
    for _ in range(cycles_per_frame):
        computer.cycle()
    # Latches are single-shot: whatever was pressed this frame is dropped.
    computer.keyboard.clear()


def _pygame_loop(
    computer: Chip8Computer,
    *,
    scale: int,
    fps: int,
    cycles_per_frame: int,
) -> int:
    import pygame  # type: ignore

    display = computer.display
    beeper = computer.sound_processor

    pygame.init()
    screen = pygame.display.set_mode((display.WIDTH * scale, display.HEIGHT * scale))
    pygame.display.set_caption(_build_caption(computer.program_info))
    clock = pygame.time.Clock()

    running = True
    paused = False
    exit_code = 0
    display.dirty = True

    while running:
        step_once = False
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
                continue
            if event.type != pygame.KEYDOWN:
                continue
            if event.key == pygame.K_ESCAPE:
                paused = not paused
                beeper.update(0 if paused else computer.timers.sound)
                pygame.display.set_caption(_build_caption(computer.program_info, paused=paused))
                continue
            if paused and event.key == pygame.K_n:
                step_once = True
                continue
            _handle_key_event(computer.keyboard, event.key)

        try:
            if not paused:
                _run_frame(computer, cycles_per_frame)
            elif step_once:
                ins = computer.cycle()
                pattern = computer.cpu_core.status.last_pattern
                summary = computer.state_summary()
                print(f"step op={ins} {pattern} -> pc={summary['pc']:04X} I={summary['index']:04X}")
        except MachineFault as exc:
            print(f"Machine fault: {exc}", file=sys.stderr)
            exit_code = 4
            running = False

        if not paused:
            beeper.update(computer.timers.sound)

        if display.dirty:
            screen.blit(display.render_pygame_surface(scale), (0, 0))
            display.acknowledge()
            pygame.display.flip()

        clock.tick(fps)

    beeper.update(0)
    pygame.quit()
    return exit_code


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="CHIP-8 emulator")
    parser.add_argument("rom", help="Path to a raw CHIP-8 program image")
    parser.add_argument(
        "--scale",
        type=int,
        default=DEFAULT_SCALE,
        help=f"Integer scaling factor for display (default: {DEFAULT_SCALE})",
    )
    parser.add_argument("--fps", type=int, default=DEFAULT_FPS, help="Target frames per second")
    parser.add_argument(
        "--cycles-per-frame",
        type=int,
        default=DEFAULT_CYCLES_PER_FRAME,
        help="Instructions executed per rendered frame (also the timer decrements per frame)",
    )
    parser.add_argument(
        "--audio",
        dest="audio",
        action="store_true",
        help="Enable square-wave audio output (requires pygame mixer)",
    )
    parser.add_argument("--no-audio", dest="audio", action="store_false", help="Force audio output off")
    parser.set_defaults(audio=True)
    parser.add_argument("--seed", type=int, default=None, help="Seed for the CXNN random source")
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.scale <= 0:
        raise SystemExit("scale must be positive")
    if args.fps <= 0:
        raise SystemExit("fps must be positive")
    if args.cycles_per_frame <= 0:
        raise SystemExit("cycles-per-frame must be positive")

    rng = random.Random(args.seed) if args.seed is not None else None
    computer = Chip8Computer(rng=rng, enable_audio=args.audio)
    try:
        info = computer.load_program_file(args.rom)
    except (ProgramLoadError, OSError) as exc:
        print(f"Failed to load program: {exc}", file=sys.stderr)
        return 1
    print(f"Loaded {info.name} ({info.size} bytes)")

    try:
        return _pygame_loop(
            computer,
            scale=args.scale,
            fps=args.fps,
            cycles_per_frame=args.cycles_per_frame,
        )
    except RuntimeError as exc:
        raise SystemExit(str(exc))


if __name__ == "__main__":
    raise SystemExit(main())
