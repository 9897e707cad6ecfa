"""CHIP-8 interpreter core: register file, fetch/decode and opcode dispatch."""

from __future__ import annotations

from dataclasses import dataclass, field
import random
from typing import Callable, Dict, List, Optional, Tuple

from chip8emu.chip8.keyboard import KEY_COUNT
from chip8emu.errors import (
    InvalidKeyError,
    InvalidProgramCounterError,
    MemoryAccessError,
    StackOverflowError,
    StackUnderflowError,
    UnknownOpcodeError,
)
from chip8emu.memory import PROGRAM_START, font_address

REGISTER_COUNT = 16
STACK_SIZE = 16
FLAG_REGISTER = 0xF
INDEX_OVERFLOW_LIMIT = 0xFFF

# Field used as the secondary selector for each two-level family.
_SELECTOR_FIELDS: Dict[int, str] = {
    0x0: "nnn",
    0x5: "n",
    0x8: "n",
    0x9: "n",
    0xE: "nn",
    0xF: "nn",
}

Handler = Callable[["Instruction"], Optional[int]]


@dataclass(frozen=True)
class Instruction:
    """A fetched 16-bit word split into the standard operand fields."""

    word: int
    op_class: int
    x: int
    y: int
    n: int
    nn: int
    nnn: int

    @classmethod
    def decode(cls, word: int) -> "Instruction":
        word &= 0xFFFF
        return cls(
            word=word,
            op_class=word & 0xF000,
            x=(word & 0x0F00) >> 8,
            y=(word & 0x00F0) >> 4,
            n=word & 0x000F,
            nn=word & 0x00FF,
            nnn=word & 0x0FFF,
        )

    @property
    def family(self) -> int:
        return self.op_class >> 12

    def __str__(self) -> str:
        return f"{self.word:04X}"


@dataclass
class CPURegisters:
    """Register file matching the CHIP-8 layout."""

    v: List[int] = field(default_factory=lambda: [0] * REGISTER_COUNT)
    index: int = 0
    program_counter: int = PROGRAM_START
    stack: List[int] = field(default_factory=lambda: [0] * STACK_SIZE)
    stack_pointer: int = 0


@dataclass
class CPUStatus:
    waiting_for_key: bool = False
    last_instruction: Optional[Instruction] = None
    last_pattern: str = ""


def add8(a: int, b: int) -> Tuple[int, int]:
    """Return ``((a + b) mod 256, carry)``."""

    total = (a & 0xFF) + (b & 0xFF)
    return total & 0xFF, 1 if total > 0xFF else 0


def sub8(a: int, b: int) -> Tuple[int, int]:
    """Return ``((a - b) mod 256, not_borrow)``."""

    a &= 0xFF
    b &= 0xFF
    return (a - b) & 0xFF, 1 if a >= b else 0


def shr8(a: int) -> Tuple[int, int]:
    a &= 0xFF
    return a >> 1, a & 0x01


def shl8(a: int) -> Tuple[int, int]:
    a &= 0xFF
    return (a << 1) & 0xFF, a >> 7


class Chip8CPU:
    """CHIP-8 instruction interpreter.

    The CPU owns the register file and call stack and reaches memory,
    display, keypad and timers through ``computer.hardware``. ``step``
    performs fetch, decode and dispatch of exactly one instruction; timer
    ticking is left to the cycle driver.
    """

    def __init__(self, computer: object, *, rng: Optional[random.Random] = None) -> None:
        self.computer = computer
        self.registers = CPURegisters()
        self.status = CPUStatus()
        self.rng = rng if rng is not None else random.Random()
        hardware = getattr(computer, "hardware", None)
        if hardware is None:
            raise RuntimeError("Hardware is not attached to the CHIP-8 CPU")
        self.memory = hardware.memory
        self.display = hardware.display
        self.keyboard = hardware.keyboard
        self.timers = hardware.timers
        self._trace: bool = False
        self._opcode_table: Dict[Tuple[int, Optional[int]], Tuple[str, Handler]] = {}
        self._init_opcode_table()

    def reset(self) -> None:
        self.registers = CPURegisters()
        self.status = CPUStatus()

    def enable_trace(self, enabled: bool) -> None:
        self._trace = enabled

    # ------------------------------------------------------------------
    # Fetch / decode / dispatch
    # ------------------------------------------------------------------
    def fetch(self) -> Instruction:
        pc = self.registers.program_counter
        if pc & 0x01 or pc < 0 or pc + 1 >= self.memory.length:
            raise InvalidProgramCounterError("program counter out of range", pc=pc)
        return Instruction.decode(self.memory.load16(pc))

    def lookup(self, ins: Instruction) -> Tuple[str, Handler]:
        family = ins.family
        selector_field = _SELECTOR_FIELDS.get(family)
        entry = None
        if selector_field is not None:
            entry = self._opcode_table.get((family, getattr(ins, selector_field)))
        if entry is None:
            entry = self._opcode_table.get((family, None))
        if entry is None:
            raise UnknownOpcodeError("unknown opcode", pc=self.registers.program_counter, opcode=ins.word)
        return entry

    def step(self) -> Instruction:
        ins = self.fetch()
        pattern, handler = self.lookup(ins)
        pc = self.registers.program_counter
        if self._trace:
            print(f"pc={pc:04X} op={ins.word:04X} {pattern}")
        try:
            next_pc = handler(ins)
        except MemoryAccessError as exc:
            if exc.pc is not None:
                raise
            raise MemoryAccessError(exc.address, pc=pc, opcode=ins.word) from exc
        self.registers.program_counter = (pc + 2) if next_pc is None else (next_pc & 0xFFFF)
        self.status.last_instruction = ins
        self.status.last_pattern = pattern
        return ins

    # ------------------------------------------------------------------
    # Opcode table
    # ------------------------------------------------------------------
    def _init_opcode_table(self) -> None:
        self._opcode_table.clear()
        self._register_opcode("00E0", self._opcode_cls)
        self._register_opcode("00EE", self._opcode_ret)
        self._register_opcode("0NNN", self._opcode_sys)
        self._register_opcode("1NNN", self._opcode_jp)
        self._register_opcode("2NNN", self._opcode_call)
        self._register_opcode("3XNN", self._opcode_se_imm)
        self._register_opcode("4XNN", self._opcode_sne_imm)
        self._register_opcode("5XY0", self._opcode_se_reg)
        self._register_opcode("6XNN", self._opcode_ld_imm)
        self._register_opcode("7XNN", self._opcode_add_imm)
        self._register_opcode("8XY0", self._opcode_ld_reg)
        self._register_opcode("8XY1", self._opcode_or)
        self._register_opcode("8XY2", self._opcode_and)
        self._register_opcode("8XY3", self._opcode_xor)
        self._register_opcode("8XY4", self._opcode_add_reg)
        self._register_opcode("8XY5", self._opcode_sub)
        self._register_opcode("8XY6", self._opcode_shr)
        self._register_opcode("8XY7", self._opcode_subn)
        self._register_opcode("8XYE", self._opcode_shl)
        self._register_opcode("9XY0", self._opcode_sne_reg)
        self._register_opcode("ANNN", self._opcode_ld_index)
        self._register_opcode("BNNN", self._opcode_jp_v0)
        self._register_opcode("CXNN", self._opcode_rnd)
        self._register_opcode("DXYN", self._opcode_drw)
        self._register_opcode("EX9E", self._opcode_skp)
        self._register_opcode("EXA1", self._opcode_sknp)
        self._register_opcode("FX07", self._opcode_ld_vx_dt)
        self._register_opcode("FX0A", self._opcode_ld_vx_key)
        self._register_opcode("FX15", self._opcode_ld_dt_vx)
        self._register_opcode("FX18", self._opcode_ld_st_vx)
        self._register_opcode("FX1E", self._opcode_add_index)
        self._register_opcode("FX29", self._opcode_ld_font)
        self._register_opcode("FX33", self._opcode_bcd)
        self._register_opcode("FX55", self._opcode_store_regs)
        self._register_opcode("FX65", self._opcode_load_regs)

    def _register_opcode(self, pattern: str, handler: Handler) -> None:
        family = int(pattern[0], 16)
        selector: Optional[int] = None
        selector_field = _SELECTOR_FIELDS.get(family)
        if selector_field is not None:
            digits = {"nnn": pattern[1:], "nn": pattern[2:], "n": pattern[3:]}[selector_field]
            try:
                selector = int(digits, 16)
            except ValueError:
                selector = None
        self._opcode_table[(family, selector)] = (pattern, handler)

    def patterns(self) -> List[str]:
        return sorted(pattern for pattern, _ in self._opcode_table.values())

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _skip_if(self, condition: bool) -> int:
        return self.registers.program_counter + (4 if condition else 2)

    def _set_flag(self, value: int) -> None:
        self.registers.v[FLAG_REGISTER] = value & 0x01

    def _push(self, address: int) -> None:
        regs = self.registers
        if regs.stack_pointer >= STACK_SIZE:
            raise StackOverflowError("call stack overflow", pc=regs.program_counter)
        regs.stack[regs.stack_pointer] = address & 0xFFFF
        regs.stack_pointer += 1

    def _pop(self) -> int:
        regs = self.registers
        if regs.stack_pointer <= 0:
            raise StackUnderflowError("call stack underflow", pc=regs.program_counter)
        regs.stack_pointer -= 1
        return regs.stack[regs.stack_pointer]

    # ------------------------------------------------------------------
    # 0x0 - 0x7
    # ------------------------------------------------------------------
    def _opcode_cls(self, ins: Instruction) -> Optional[int]:
        self.display.clear()
        return None

    def _opcode_ret(self, ins: Instruction) -> Optional[int]:
        return self._pop() + 2

    def _opcode_sys(self, ins: Instruction) -> Optional[int]:
        return ins.nnn

    def _opcode_jp(self, ins: Instruction) -> Optional[int]:
        return ins.nnn

    def _opcode_call(self, ins: Instruction) -> Optional[int]:
        self._push(self.registers.program_counter)
        return ins.nnn

    def _opcode_se_imm(self, ins: Instruction) -> Optional[int]:
        return self._skip_if(self.registers.v[ins.x] == ins.nn)

    def _opcode_sne_imm(self, ins: Instruction) -> Optional[int]:
        return self._skip_if(self.registers.v[ins.x] != ins.nn)

    def _opcode_se_reg(self, ins: Instruction) -> Optional[int]:
        return self._skip_if(self.registers.v[ins.x] == self.registers.v[ins.y])

    def _opcode_ld_imm(self, ins: Instruction) -> Optional[int]:
        self.registers.v[ins.x] = ins.nn
        return None

    def _opcode_add_imm(self, ins: Instruction) -> Optional[int]:
        self.registers.v[ins.x], _ = add8(self.registers.v[ins.x], ins.nn)
        return None

    # ------------------------------------------------------------------
    # 0x8 arithmetic family
    #
    # 4, 5, 6 and E write VF first and then read VX/VY again for the
    # result. 7 works from the values read before either write.
    # ------------------------------------------------------------------
    def _opcode_ld_reg(self, ins: Instruction) -> Optional[int]:
        self.registers.v[ins.x] = self.registers.v[ins.y]
        return None

    def _opcode_or(self, ins: Instruction) -> Optional[int]:
        self.registers.v[ins.x] = (self.registers.v[ins.x] | self.registers.v[ins.y]) & 0xFF
        return None

    def _opcode_and(self, ins: Instruction) -> Optional[int]:
        self.registers.v[ins.x] = self.registers.v[ins.x] & self.registers.v[ins.y] & 0xFF
        return None

    def _opcode_xor(self, ins: Instruction) -> Optional[int]:
        self.registers.v[ins.x] = (self.registers.v[ins.x] ^ self.registers.v[ins.y]) & 0xFF
        return None

    def _opcode_add_reg(self, ins: Instruction) -> Optional[int]:
        v = self.registers.v
        self._set_flag(add8(v[ins.x], v[ins.y])[1])
        v[ins.x] = add8(v[ins.x], v[ins.y])[0]
        return None

    def _opcode_sub(self, ins: Instruction) -> Optional[int]:
        v = self.registers.v
        self._set_flag(sub8(v[ins.x], v[ins.y])[1])
        v[ins.x] = sub8(v[ins.x], v[ins.y])[0]
        return None

    def _opcode_shr(self, ins: Instruction) -> Optional[int]:
        v = self.registers.v
        self._set_flag(shr8(v[ins.x])[1])
        v[ins.x] = shr8(v[ins.x])[0]
        return None

    def _opcode_subn(self, ins: Instruction) -> Optional[int]:
        result, not_borrow = sub8(self.registers.v[ins.y], self.registers.v[ins.x])
        self._set_flag(not_borrow)
        self.registers.v[ins.x] = result
        return None

    def _opcode_shl(self, ins: Instruction) -> Optional[int]:
        v = self.registers.v
        self._set_flag(shl8(v[ins.x])[1])
        v[ins.x] = shl8(v[ins.x])[0]
        return None

    # ------------------------------------------------------------------
    # 0x9 - 0xD
    # ------------------------------------------------------------------
    def _opcode_sne_reg(self, ins: Instruction) -> Optional[int]:
        return self._skip_if(self.registers.v[ins.x] != self.registers.v[ins.y])

    def _opcode_ld_index(self, ins: Instruction) -> Optional[int]:
        self.registers.index = ins.nnn
        return None

    def _opcode_jp_v0(self, ins: Instruction) -> Optional[int]:
        return ins.nnn + self.registers.v[0]

    def _opcode_rnd(self, ins: Instruction) -> Optional[int]:
        self.registers.v[ins.x] = self.rng.randrange(256) & ins.nn
        return None

    def _opcode_drw(self, ins: Instruction) -> Optional[int]:
        x = self.registers.v[ins.x]
        y = self.registers.v[ins.y]
        rows = self.memory.load_block(self.registers.index, ins.n)
        self._set_flag(0)
        if self.display.draw_sprite(x, y, rows):
            self._set_flag(1)
        return None

    # ------------------------------------------------------------------
    # 0xE keypad
    # ------------------------------------------------------------------
    def _key_operand(self, ins: Instruction) -> int:
        key = self.registers.v[ins.x]
        if key >= KEY_COUNT:
            raise InvalidKeyError(
                f"key index 0x{key:02X} out of range", pc=self.registers.program_counter, opcode=ins.word
            )
        return key

    def _opcode_skp(self, ins: Instruction) -> Optional[int]:
        key = self._key_operand(ins)
        return self._skip_if(self.keyboard.consume(key))

    def _opcode_sknp(self, ins: Instruction) -> Optional[int]:
        key = self._key_operand(ins)
        return self._skip_if(not self.keyboard.consume(key))

    # ------------------------------------------------------------------
    # 0xF timers, index and memory transfers
    # ------------------------------------------------------------------
    def _opcode_ld_vx_dt(self, ins: Instruction) -> Optional[int]:
        self.registers.v[ins.x] = self.timers.delay
        return None

    def _opcode_ld_vx_key(self, ins: Instruction) -> Optional[int]:
        key = self.keyboard.first_pressed()
        if key is None:
            # Re-poll: the same instruction runs again next cycle.
            self.status.waiting_for_key = True
            return self.registers.program_counter
        self.status.waiting_for_key = False
        self.registers.v[ins.x] = key
        return None

    def _opcode_ld_dt_vx(self, ins: Instruction) -> Optional[int]:
        self.timers.set_delay(self.registers.v[ins.x])
        return None

    def _opcode_ld_st_vx(self, ins: Instruction) -> Optional[int]:
        self.timers.set_sound(self.registers.v[ins.x])
        return None

    def _opcode_add_index(self, ins: Instruction) -> Optional[int]:
        total = self.registers.index + self.registers.v[ins.x]
        self._set_flag(1 if total > INDEX_OVERFLOW_LIMIT else 0)
        self.registers.index = total & 0xFFFF
        return None

    def _opcode_ld_font(self, ins: Instruction) -> Optional[int]:
        self.registers.index = font_address(self.registers.v[ins.x])
        return None

    def _opcode_bcd(self, ins: Instruction) -> Optional[int]:
        value = self.registers.v[ins.x]
        self.memory.store_block(self.registers.index, (value // 100, value // 10 % 10, value % 10))
        return None

    def _opcode_store_regs(self, ins: Instruction) -> Optional[int]:
        # V0 up to but excluding VX.
        self.memory.store_block(self.registers.index, self.registers.v[:ins.x])
        return None

    def _opcode_load_regs(self, ins: Instruction) -> Optional[int]:
        values = self.memory.load_block(self.registers.index, ins.x)
        self.registers.v[:ins.x] = values
        return None
