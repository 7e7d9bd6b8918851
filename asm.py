"""
Intcode Assembler
==================
Translates assembly text into Intcode words.

Supports:
  - Labels (terminated with ':'), usable anywhere a number is
  - All ten instructions:
      add a, b, out     mul a, b, out     in dst     out src
      jt cond, target   jf cond, target   lt a, b, out
      eq a, b, out      arb delta         halt
  - Operand modes:  42 / label   position
                    #42 / #label immediate
                    @42 / @-1    relative to the relative base
  - Comments (';' to end of line)
  - .data directive: raw words (numbers or labels), comma separated

Usage:
  from asm import assemble
  words = assemble("in 9\\nout 9\\nhalt")
"""

from __future__ import annotations
import re

from errors import IntcodeError
from intcode import Mode, Opcode

MNEMONICS = {
    "add":  Opcode.ADD,
    "mul":  Opcode.MUL,
    "in":   Opcode.INPUT,
    "out":  Opcode.OUTPUT,
    "jt":   Opcode.JUMP_IF_TRUE,
    "jf":   Opcode.JUMP_IF_FALSE,
    "lt":   Opcode.LESS_THAN,
    "eq":   Opcode.EQUALS,
    "arb":  Opcode.ADJUST_BASE,
    "halt": Opcode.HALT,
}

MODE_PREFIX = {"#": Mode.IMMEDIATE, "@": Mode.RELATIVE}

_LABEL_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*$")


class AsmError(IntcodeError):
    def __init__(self, line: int, msg: str):
        self.line = line
        super().__init__(f"Line {line}: {msg}")


def _split_ops(rest: str) -> list[str]:
    """Split operand text on commas, dropping empties."""
    return [t.strip() for t in rest.split(",") if t.strip()]


def _parse_value(lineno: int, tok: str, labels: dict[str, int]) -> int:
    try:
        return int(tok, 0)
    except ValueError:
        pass
    if tok in labels:
        return labels[tok]
    raise AsmError(lineno, f"Unknown label or bad number: {tok}")


def _parse_operand(lineno: int, tok: str,
                   labels: dict[str, int]) -> tuple[Mode, int]:
    mode = MODE_PREFIX.get(tok[0], Mode.POSITION)
    if mode != Mode.POSITION:
        tok = tok[1:].strip()
        if not tok:
            raise AsmError(lineno, "Missing operand after mode prefix")
    return mode, _parse_value(lineno, tok, labels)


def _strip_comments(source: str) -> list[tuple[int, str]]:
    cleaned: list[tuple[int, str]] = []
    for i, raw in enumerate(source.split("\n"), 1):
        stripped = raw.split(";", 1)[0].strip()
        if stripped:
            cleaned.append((i, stripped))
    return cleaned


def _split_mnemonic(text: str) -> tuple[str, str]:
    parts = text.split(None, 1)
    return parts[0].lower(), (parts[1] if len(parts) > 1 else "")


def assemble(source: str, listing: bool = False) -> list[int]:
    """
    Two-pass assembler.
    Pass 1: collect labels, compute statement sizes.
    Pass 2: emit words with resolved labels.
    If listing=True, print an address/words/source listing to stdout.
    """
    cleaned = _strip_comments(source)

    # ---- Pass 1: labels and sizes ----
    labels: dict[str, int] = {}
    statements: list[tuple[int, str]] = []
    pc = 0
    for lineno, text in cleaned:
        # A label may share its line with a statement: "loop: in 9"
        while ":" in text:
            lbl, rest = text.split(":", 1)
            lbl = lbl.strip()
            if not _LABEL_RE.match(lbl):
                break
            if lbl in labels:
                raise AsmError(lineno, f"Duplicate label: {lbl}")
            labels[lbl] = pc
            text = rest.strip()
        if not text:
            continue

        mnem, rest = _split_mnemonic(text)
        if mnem == ".data":
            pc += len(_split_ops(rest))
        elif mnem in MNEMONICS:
            pc += 1 + MNEMONICS[mnem].param_count
        else:
            raise AsmError(lineno, f"Unknown mnemonic: {mnem}")
        statements.append((lineno, text))

    # ---- Pass 2: emit ----
    words: list[int] = []
    for lineno, text in statements:
        start = len(words)
        mnem, rest = _split_mnemonic(text)
        ops = _split_ops(rest)

        if mnem == ".data":
            if not ops:
                raise AsmError(lineno, ".data needs at least one value")
            words.extend(_parse_value(lineno, t, labels) for t in ops)
        else:
            opcode = MNEMONICS[mnem]
            if len(ops) != opcode.param_count:
                raise AsmError(lineno, f"{mnem} takes {opcode.param_count} "
                                       f"operand(s), got {len(ops)}")
            word = int(opcode)
            params = []
            for i, tok in enumerate(ops):
                mode, value = _parse_operand(lineno, tok, labels)
                word += int(mode) * 10 ** (i + 2)
                params.append(value)
            words.append(word)
            words.extend(params)

        if listing:
            emitted = ",".join(str(w) for w in words[start:])
            print(f"  {start:5d}: {emitted:<28s} {text}")

    return words
