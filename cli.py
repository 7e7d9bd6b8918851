#!/usr/bin/env python3
"""
Intcode Command Line / Monitor
===============================
Command-line front end for the Intcode emulator.

Provides:
  - Single runs with explicit inputs (diagnostic / BOOST style programs)
  - Amplifier phase search, chain or feedback ring
  - The hull-painting robot, with text or PNG rendering
  - Noun/verb patch-and-search for programs that answer in address 0
  - Disassembly and assembly
  - An interactive monitor: step / run / breakpoints / inspection

Usage:
  python cli.py run PROGRAM [--input N ...] [--phase N]
  python cli.py amplify PROGRAM [--feedback] [--seed N]
  python cli.py paint PROGRAM [--start black|white] [--render] [--image PNG]
  python cli.py repair PROGRAM (--noun N --verb N | --target N)
  python cli.py disasm PROGRAM [--addr N] [--count N]
  python cli.py monitor PROGRAM [--input N ...]
  python cli.py assemble SRC OUT [--listing]

Common options: --scratch N (zero cells after the program), --asm (PROGRAM
is assembly source rather than comma-separated words).
"""

from __future__ import annotations
import argparse
import cmd
import shlex
import sys
from typing import Optional

from asm import AsmError, assemble
from errors import FaultError, IntcodeError
from intcode import DEFAULT_SCRATCH, IntcodeMachine, Memory, Mode, Opcode
from loader import load_program_file
from pipeline import CHAIN_PHASES, RING_PHASES, search_phases
from ports import Channel, Collector
from robot import BLACK, WHITE, PaintingRobot
from runner import find_noun_verb, run_program, run_with_noun_verb

# ---------------------------------------------------------------------------
#  Disassembler
# ---------------------------------------------------------------------------

OP_NAMES = {
    Opcode.ADD: "add", Opcode.MUL: "mul", Opcode.INPUT: "in",
    Opcode.OUTPUT: "out", Opcode.JUMP_IF_TRUE: "jt",
    Opcode.JUMP_IF_FALSE: "jf", Opcode.LESS_THAN: "lt",
    Opcode.EQUALS: "eq", Opcode.ADJUST_BASE: "arb", Opcode.HALT: "halt",
}

MODE_PREFIX = {Mode.POSITION: "", Mode.IMMEDIATE: "#", Mode.RELATIVE: "@"}


def disasm_one(mem: Memory, addr: int) -> tuple[str, int]:
    """Disassemble the instruction at *addr*.  Returns (text, size).

    Words that do not decode are shown as data with size 1.
    """
    words = mem.words
    if not 0 <= addr < len(words):
        return "???", 1
    word = words[addr]
    try:
        opcode = Opcode(word % 100) if word >= 0 else None
    except ValueError:
        opcode = None
    if opcode is None:
        return f".data {word}", 1

    n = opcode.param_count
    if addr + n >= len(words):
        return f".data {word}", 1

    ops = []
    digits = word // 100
    for i in range(n):
        try:
            mode = Mode(digits % 10)
        except ValueError:
            return f".data {word}", 1
        digits //= 10
        ops.append(f"{MODE_PREFIX[mode]}{words[addr + 1 + i]}")
    # Mode digits beyond the last parameter would be lost on reassembly
    if digits:
        return f".data {word}", 1

    text = OP_NAMES[opcode]
    if ops:
        text += " " + ", ".join(ops)
    return text, n + 1


def disassemble(mem: Memory, addr: int = 0,
                count: Optional[int] = None) -> list[tuple[int, str]]:
    """Linear sweep from *addr*.  Stops after *count* instructions or at
    the end of the loaded program."""
    out = []
    end = mem.program_size if count is None else len(mem)
    while addr < end and (count is None or len(out) < count):
        text, size = disasm_one(mem, addr)
        out.append((addr, text))
        addr += size
    return out


# ---------------------------------------------------------------------------
#  Monitor
# ---------------------------------------------------------------------------

class IntcodeMonitor(cmd.Cmd):
    """Interactive monitor for a single Intcode machine."""

    intro = (
        "\n"
        "Intcode Monitor\n"
        "Type 'help' for commands.  'quit' to exit.\n"
    )
    prompt = "IC> "

    def __init__(self, memory: Memory, inputs: tuple[int, ...] = (),
                 phase: Optional[int] = None):
        super().__init__()
        self._image = memory.copy()
        self._inputs = inputs
        self._phase = phase
        self.breakpoints: set[int] = set()
        self._boot()

    def _boot(self):
        self.stdin_port = Channel("monitor-in")
        self.stdin_port.feed(*self._inputs)
        self.sink = Collector()
        self.cpu = IntcodeMachine(self._image.copy(), phase=self._phase,
                                  input_port=self.stdin_port,
                                  output_port=self.sink, name="monitor")
        self.cpu.on_output = self._output_handler

    def _output_handler(self, value: int):
        print(f"  OUT {value}")

    def _parse_int(self, s: str) -> int:
        return int(s.strip(), 0)

    def _starved(self) -> bool:
        """True if the next instruction is INPUT and nothing is queued.
        The monitor stops there rather than blocking forever."""
        try:
            word = self.cpu.memory[self.cpu.ip]
        except FaultError:
            return False
        return (word % 100 == Opcode.INPUT and self.cpu.phase is None
                and self.stdin_port.pending == 0)

    def _step_one(self) -> bool:
        """Step once; returns False when execution should stop."""
        if self.cpu.halted or self.cpu.fault is not None:
            print("Machine is halted.")
            return False
        if self._starved():
            print(f"Waiting for input at {self.cpu.ip}.  Use 'send <values>'.")
            return False
        try:
            if self.cpu.step() == Opcode.HALT:
                print(f"Machine halted after {self.cpu.steps} steps.")
                return False
        except FaultError as e:
            print(f"Fault: {e}")
            return False
        return True

    # ================================================================
    #  Commands
    # ================================================================

    def do_step(self, arg):
        """Step N instructions: step [count]"""
        try:
            count = self._parse_int(arg) if arg.strip() else 1
        except ValueError as e:
            print(f"Error: {e}")
            return
        for _ in range(count):
            addr = self.cpu.ip
            text, _ = disasm_one(self.cpu.memory, addr)
            print(f"  {addr:6d}: {text}")
            if not self._step_one():
                break

    def do_run(self, arg):
        """Run until halt/breakpoint/input wait: run [max_steps]"""
        try:
            max_steps = self._parse_int(arg) if arg.strip() else 10_000_000
        except ValueError as e:
            print(f"Error: {e}")
            return
        for n in range(max_steps):
            if n and self.cpu.ip in self.breakpoints:
                print(f"Breakpoint hit at {self.cpu.ip}")
                return
            if not self._step_one():
                return
        print(f"Stopped after {max_steps} steps.")

    do_c = do_run

    def do_send(self, arg):
        """Queue input values: send <value...>"""
        parts = shlex.split(arg.replace(",", " "))
        if not parts:
            print("Usage: send <value...>")
            return
        try:
            values = [self._parse_int(p) for p in parts]
        except ValueError as e:
            print(f"Error: {e}")
            return
        self.stdin_port.feed(*values)
        print(f"  Queued {len(values)} value(s).")

    def do_out(self, arg):
        """Show every value the machine has output."""
        print("  " + ",".join(str(v) for v in self.sink.values))

    def do_bp(self, arg):
        """Set breakpoint: bp <address>"""
        if not arg.strip():
            if self.breakpoints:
                print("Breakpoints:")
                for a in sorted(self.breakpoints):
                    print(f"  {a}")
            else:
                print("No breakpoints set.")
            return
        try:
            addr = self._parse_int(arg)
        except ValueError as e:
            print(f"Error: {e}")
            return
        self.breakpoints.add(addr)
        print(f"Breakpoint set at {addr}")

    def do_bpd(self, arg):
        """Delete breakpoint: bpd <address|all>"""
        if arg.strip().lower() == "all":
            self.breakpoints.clear()
            print("All breakpoints cleared.")
            return
        try:
            addr = self._parse_int(arg)
        except ValueError as e:
            print(f"Error: {e}")
            return
        self.breakpoints.discard(addr)
        print(f"Breakpoint at {addr} removed.")

    def do_regs(self, arg):
        """Show machine registers."""
        print(self.cpu.dump_state())

    def do_dump(self, arg):
        """Dump memory: dump <address> [count]"""
        parts = shlex.split(arg)
        if not parts:
            print("Usage: dump <address> [count]")
            return
        try:
            addr = self._parse_int(parts[0])
            count = self._parse_int(parts[1]) if len(parts) > 1 else 16
            words = self.cpu.memory.dump(addr, count)
        except (ValueError, FaultError) as e:
            print(f"Error: {e}")
            return
        for row in range(0, len(words), 8):
            chunk = " ".join(f"{w:>8d}" for w in words[row:row + 8])
            print(f"  {addr + row:6d}: {chunk}")

    def do_disasm(self, arg):
        """Disassemble: disasm [address] [count]
        Defaults to current IP, 16 instructions."""
        parts = shlex.split(arg)
        try:
            addr = self._parse_int(parts[0]) if parts else self.cpu.ip
            count = self._parse_int(parts[1]) if len(parts) > 1 else 16
        except ValueError as e:
            print(f"Error: {e}")
            return
        for a, text in disassemble(self.cpu.memory, addr, count):
            marker = ">>>" if a == self.cpu.ip else "   "
            print(f"  {marker} {a:6d}: {text}")

    def do_reset(self, arg):
        """Reload the program and restart from address 0."""
        self._boot()
        print("Machine reset.")

    def do_quit(self, arg):
        """Exit the monitor."""
        return True

    do_exit = do_quit
    do_q = do_quit

    def do_EOF(self, arg):
        print()
        return True

    def emptyline(self):
        pass


# ---------------------------------------------------------------------------
#  Commands
# ---------------------------------------------------------------------------

def _load(args) -> Memory:
    if args.asm:
        with open(args.program, "r", encoding="utf-8") as f:
            words = assemble(f.read())
        return Memory(words, scratch=args.scratch)
    return load_program_file(args.program, scratch=args.scratch)


def cmd_run(args) -> int:
    outputs = run_program(_load(args), args.input, phase=args.phase)
    print(",".join(str(v) for v in outputs))
    return 0


def cmd_amplify(args) -> int:
    phase_range = RING_PHASES if args.feedback else CHAIN_PHASES
    value, phases = search_phases(_load(args), phase_range,
                                  feedback=args.feedback, seed=args.seed)
    mode = "ring" if args.feedback else "chain"
    print(f"Best {mode} output: {value}")
    print(f"  Phases: {','.join(str(p) for p in phases)}")
    return 0


def cmd_paint(args) -> int:
    start = WHITE if args.start == "white" else BLACK
    robot = PaintingRobot(_load(args), start_color=start).run()
    print(f"Panels painted: {robot.painted_count}")
    if args.render:
        print(robot.render())
    if args.image:
        from display import render_image
        render_image(robot.panels, args.image, scale=args.scale)
        print(f"Wrote {args.image}")
    return 0


def cmd_repair(args) -> int:
    mem = _load(args)
    if args.target is not None:
        noun, verb = find_noun_verb(mem, args.target)
        print(f"noun={noun} verb={verb} answer={100 * noun + verb}")
        return 0
    if args.noun is None or args.verb is None:
        print("repair needs --target, or both --noun and --verb", file=sys.stderr)
        return 2
    print(run_with_noun_verb(mem, args.noun, args.verb))
    return 0


def cmd_disasm(args) -> int:
    mem = _load(args)
    for addr, text in disassemble(mem, args.addr, args.count):
        print(f"  {addr:6d}: {text}")
    return 0


def cmd_monitor(args) -> int:
    IntcodeMonitor(_load(args), tuple(args.input), phase=args.phase).cmdloop()
    return 0


def cmd_assemble(args) -> int:
    with open(args.source, "r", encoding="utf-8") as f:
        source = f.read()
    words = assemble(source, listing=args.listing)
    with open(args.out, "w", encoding="utf-8") as f:
        f.write(",".join(str(w) for w in words) + "\n")
    print(f"Assembled {args.source} → {args.out} ({len(words)} words)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Intcode machine emulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:\n"
               "  python cli.py run diag.txt --input 5\n"
               "  python cli.py amplify amp.txt --feedback\n"
               "  python cli.py paint robot.txt --start white --render\n"
               "  python cli.py repair gravity.txt --target 19690720\n"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("program", help="Program file (comma-separated words)")
    common.add_argument("--scratch", type=int, default=DEFAULT_SCRATCH,
                        help=f"Zero cells appended after the program "
                             f"(default: {DEFAULT_SCRATCH})")
    common.add_argument("--asm", action="store_true",
                        help="PROGRAM is assembly source")

    p = sub.add_parser("run", parents=[common], help="Run once and print outputs")
    p.add_argument("--input", "-i", type=int, action="append", default=[],
                   help="Input value (can repeat)")
    p.add_argument("--phase", type=int, default=None,
                   help="One-shot value for the first input instruction")
    p.set_defaults(func=cmd_run)

    p = sub.add_parser("amplify", parents=[common],
                       help="Search amplifier phase settings")
    p.add_argument("--feedback", action="store_true",
                   help="Feedback ring with phases 5-9 (default: chain, 0-4)")
    p.add_argument("--seed", type=int, default=0,
                   help="Signal injected into the first stage (default: 0)")
    p.set_defaults(func=cmd_amplify)

    p = sub.add_parser("paint", parents=[common], help="Run the hull-painting robot")
    p.add_argument("--start", choices=("black", "white"), default="white",
                   help="Color of the starting panel (default: white)")
    p.add_argument("--render", action="store_true", help="Print the painted hull")
    p.add_argument("--image", type=str, default=None, metavar="PNG",
                   help="Also write the hull to a PNG file")
    p.add_argument("--scale", type=int, default=8, metavar="N",
                   help="Pixels per panel in the PNG (default: 8)")
    p.set_defaults(func=cmd_paint)

    p = sub.add_parser("repair", parents=[common],
                       help="Run with a noun/verb, or search for a target")
    p.add_argument("--noun", type=int, default=None)
    p.add_argument("--verb", type=int, default=None)
    p.add_argument("--target", type=int, default=None,
                   help="Find the noun/verb leaving TARGET in address 0")
    p.set_defaults(func=cmd_repair)

    p = sub.add_parser("disasm", parents=[common], help="Disassemble")
    p.add_argument("--addr", type=int, default=0)
    p.add_argument("--count", type=int, default=None)
    p.set_defaults(func=cmd_disasm)

    p = sub.add_parser("monitor", parents=[common], help="Interactive monitor")
    p.add_argument("--input", "-i", type=int, action="append", default=[])
    p.add_argument("--phase", type=int, default=None)
    p.set_defaults(func=cmd_monitor)

    p = sub.add_parser("assemble", help="Assemble SRC into program text OUT")
    p.add_argument("source")
    p.add_argument("out")
    p.add_argument("--listing", "-l", action="store_true",
                   help="Print an assembly listing")
    p.set_defaults(func=cmd_assemble)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except AsmError as e:
        print(f"Assembly error: {e}", file=sys.stderr)
    except IntcodeError as e:
        print(f"Error: {e}", file=sys.stderr)
    except (OSError, LookupError, UnicodeDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
