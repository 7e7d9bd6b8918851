"""
Intcode Machine Emulator
=========================
A fetch/decode/execute emulator for the Intcode instruction set.

Every instruction is decoded from a word in memory: the two low decimal
digits select the opcode, each further digit gives the addressing mode of
one parameter (hundreds digit = first parameter).  The machine owns one
input port and one output port (see ports.py); pipelines of machines are
wired together in pipeline.py.
"""

from __future__ import annotations
from enum import IntEnum
from typing import Callable, Iterable, Optional

# Error types are re-exported for callers that only import intcode
from errors import (IntcodeError, LoadError, FaultError, DecodeError,
                    AddressError, PortError, HaltError, PipelineError)
from ports import Channel, Collector, InputPort, OutputPort

# ---------------------------------------------------------------------------
#  Constants
# ---------------------------------------------------------------------------

# Zero cells appended after a loaded program unless the caller says otherwise
DEFAULT_SCRATCH = 1000

class Opcode(IntEnum):
    ADD           = 1
    MUL           = 2
    INPUT         = 3
    OUTPUT        = 4
    JUMP_IF_TRUE  = 5
    JUMP_IF_FALSE = 6
    LESS_THAN     = 7
    EQUALS        = 8
    ADJUST_BASE   = 9
    HALT          = 99

    @property
    def param_count(self) -> int:
        return PARAM_COUNTS[self]


PARAM_COUNTS = {
    Opcode.ADD: 3, Opcode.MUL: 3,
    Opcode.INPUT: 1, Opcode.OUTPUT: 1,
    Opcode.JUMP_IF_TRUE: 2, Opcode.JUMP_IF_FALSE: 2,
    Opcode.LESS_THAN: 3, Opcode.EQUALS: 3,
    Opcode.ADJUST_BASE: 1,
    Opcode.HALT: 0,
}


class Mode(IntEnum):
    POSITION  = 0   # parameter is an address
    IMMEDIATE = 1   # parameter slot itself holds the operand
    RELATIVE  = 2   # parameter is an offset from the relative base


# ---------------------------------------------------------------------------
#  Memory
# ---------------------------------------------------------------------------

class Memory:
    """Fixed-size word store: program words followed by zero scratch.

    Every access is bounds-checked.  Memory never grows; running past the
    scratch region is an ``AddressError`` like a negative address.
    """

    def __init__(self, words: Iterable[int] = (), scratch: int = 0):
        if scratch < 0:
            raise ValueError(f"scratch must be >= 0, got {scratch}")
        self.words: list[int] = [int(w) for w in words]
        self.program_size = len(self.words)
        self.words.extend([0] * scratch)

    def __len__(self) -> int:
        return len(self.words)

    def _check_addr(self, addr: int):
        if addr < 0:
            raise AddressError(addr, f"Negative address {addr}")
        if addr >= len(self.words):
            raise AddressError(addr, f"Address {addr} out of bounds "
                                     f"(memory size {len(self.words)})")

    def __getitem__(self, addr: int) -> int:
        self._check_addr(addr)
        return self.words[addr]

    def __setitem__(self, addr: int, value: int):
        self._check_addr(addr)
        self.words[addr] = value

    def copy(self) -> "Memory":
        clone = Memory()
        clone.words = list(self.words)
        clone.program_size = self.program_size
        return clone

    def snapshot(self) -> list[int]:
        return list(self.words)

    def dump(self, addr: int, count: int) -> list[int]:
        """Return *count* words starting at *addr*."""
        if count <= 0:
            return []
        self._check_addr(addr)
        self._check_addr(addr + count - 1)
        return self.words[addr:addr + count]


# ---------------------------------------------------------------------------
#  Machine
# ---------------------------------------------------------------------------

class IntcodeMachine:
    """Intcode emulator: one memory, one input port, one output port."""

    def __init__(self, memory: Memory, phase: Optional[int] = None,
                 input_port: Optional[InputPort] = None,
                 output_port: Optional[OutputPort] = None,
                 name: str = "intcode"):
        self.memory = memory
        self.name = name

        # Ports default to an empty, finished input stream and a recording sink
        self.input: InputPort = input_port if input_port is not None else Channel.of()
        self.output: OutputPort = output_port if output_port is not None else Collector()

        # Registers
        self.ip: int = 0
        self.relative_base: int = 0

        # One-shot value for the first INPUT instruction
        self.phase: Optional[int] = phase

        # State
        self.halted: bool = False
        self.fault: Optional[FaultError] = None
        self.steps: int = 0
        self.last_opcode: Optional[Opcode] = None
        self.last_output: Optional[int] = None
        self._instr_ip: int = 0

        # Callbacks
        self.on_output: Optional[Callable[[int], None]] = None
        self.on_halt: Optional[Callable[["IntcodeMachine"], None]] = None

    # -- Decode --

    def decode(self) -> tuple[Opcode, list[Mode]]:
        """Read the word at IP, advance IP by one, and split it into an
        opcode and one mode per declared parameter."""
        word = self.memory[self.ip]
        self.ip += 1
        if word < 0:
            raise DecodeError(f"Unknown instruction {word}")
        try:
            opcode = Opcode(word % 100)
        except ValueError:
            raise DecodeError(f"Unknown instruction {word % 100:02d} "
                              f"(word {word})") from None

        modes = []
        digits = word // 100
        for _ in range(opcode.param_count):
            try:
                modes.append(Mode(digits % 10))
            except ValueError:
                raise DecodeError(f"Unknown addressing mode {digits % 10} "
                                  f"in word {word}") from None
            digits //= 10
        return opcode, modes

    # -- Addressing --

    def resolve(self, modes: list[Mode]) -> list[int]:
        """Turn the parameters following the opcode into concrete
        addresses, one per mode."""
        addrs = []
        for i, mode in enumerate(modes):
            slot = self.ip + i
            if mode == Mode.POSITION:
                addr = self.memory[slot]
            elif mode == Mode.IMMEDIATE:
                addr = slot
            else:
                addr = self.relative_base + self.memory[slot]
            if addr < 0:
                raise AddressError(addr, f"Negative address {addr} "
                                         f"({mode.name.lower()} parameter {i})")
            addrs.append(addr)
        return addrs

    # -- Execute --

    def step(self) -> Optional[Opcode]:
        """Execute one instruction.

        Returns None while the machine keeps running and ``Opcode.HALT``
        once the halt instruction has executed.
        """
        if self.halted:
            raise HaltError(f"{self.name} is halted")
        if self.fault is not None:
            raise HaltError(f"{self.name} aborted: {self.fault}")

        self._instr_ip = self.ip
        try:
            opcode, modes = self.decode()
            addrs = self.resolve(modes)
            self._execute(opcode, addrs)
        except FaultError as e:
            self._abort(e)
            raise

        self.steps += 1
        self.last_opcode = opcode
        if opcode == Opcode.HALT:
            return Opcode.HALT
        return None

    def _execute(self, opcode: Opcode, addrs: list[int]):
        mem = self.memory
        if opcode == Opcode.ADD:
            a, b, out = addrs
            mem[out] = mem[a] + mem[b]
            self.ip += 3
        elif opcode == Opcode.MUL:
            a, b, out = addrs
            mem[out] = mem[a] * mem[b]
            self.ip += 3
        elif opcode == Opcode.INPUT:
            mem[addrs[0]] = self._next_input()
            self.ip += 1
        elif opcode == Opcode.OUTPUT:
            self._emit(mem[addrs[0]])
            self.ip += 1
        elif opcode == Opcode.JUMP_IF_TRUE:
            cond, target = addrs
            self.ip = mem[target] if mem[cond] != 0 else self.ip + 2
        elif opcode == Opcode.JUMP_IF_FALSE:
            cond, target = addrs
            self.ip = mem[target] if mem[cond] == 0 else self.ip + 2
        elif opcode == Opcode.LESS_THAN:
            a, b, out = addrs
            mem[out] = 1 if mem[a] < mem[b] else 0
            self.ip += 3
        elif opcode == Opcode.EQUALS:
            a, b, out = addrs
            mem[out] = 1 if mem[a] == mem[b] else 0
            self.ip += 3
        elif opcode == Opcode.ADJUST_BASE:
            self.relative_base += mem[addrs[0]]
            self.ip += 1
        elif opcode == Opcode.HALT:
            self._halt()
        else:
            raise DecodeError(f"Unknown instruction {opcode}")

    def _next_input(self) -> int:
        if self.phase is not None:
            value, self.phase = self.phase, None
            return value
        return self.input.pull()

    def _emit(self, value: int):
        self.output.push(value)
        self.last_output = value
        if self.on_output:
            self.on_output(value)

    def _halt(self):
        self.halted = True
        self.output.close_send()
        if self.on_halt:
            self.on_halt(self)

    def _abort(self, err: FaultError):
        """Record a fatal fault and close both ports so peers blocked on
        this machine wake up instead of hanging."""
        if err.ip is None:
            err.ip = self._instr_ip
        self.fault = err
        self.input.close_recv()
        self.output.close_send()

    # -- Run --

    def run(self, max_steps: Optional[int] = None) -> int:
        """Run until HALT (or *max_steps*).  Returns instructions executed."""
        count = 0
        while not self.halted:
            if max_steps is not None and count >= max_steps:
                break
            self.step()
            count += 1
        return count

    def run_until_output(self) -> Optional[int]:
        """Run until one value has been written to the output port and
        return it, or return None once the machine halts."""
        while True:
            if self.step() == Opcode.HALT:
                return None
            if self.last_opcode == Opcode.OUTPUT:
                return self.last_output

    # -- Debug / introspection --

    def dump_state(self) -> str:
        phase = "-" if self.phase is None else str(self.phase)
        lines = [
            f"  IP    = {self.ip}",
            f"  RBASE = {self.relative_base}",
            f"  PHASE = {phase}",
            f"  STEPS = {self.steps}  HALTED = {self.halted}",
        ]
        if self.fault is not None:
            lines.append(f"  FAULT = {self.fault}")
        return "\n".join(lines)
