"""
Intcode program loader.

Programs are flat text: signed decimal integers separated by commas,
optionally surrounded by whitespace and ending in a newline.

Usage:
  from loader import load_program_file
  memory = load_program_file("input.txt", scratch=1000)
"""

from __future__ import annotations
import os

from errors import LoadError
from intcode import DEFAULT_SCRATCH, Memory


def parse_program(text: str) -> list[int]:
    """Split program text into words.  Raises LoadError on any bad token."""
    text = text.strip()
    if not text:
        raise LoadError(0, "Empty program")

    words: list[int] = []
    for i, raw in enumerate(text.split(",")):
        tok = raw.strip()
        if not tok:
            raise LoadError(i, "Missing value")
        # int() would also accept '1_000' and '+-' forms; keep to plain decimals
        body = tok[1:] if tok[0] in "+-" else tok
        if not body.isdigit() or not body.isascii():
            raise LoadError(i, f"Not an integer: {tok!r}")
        words.append(int(tok))
    return words


def load_program(text: str, scratch: int = DEFAULT_SCRATCH) -> Memory:
    """Parse *text* and append *scratch* zero cells."""
    return Memory(parse_program(text), scratch=scratch)


def load_program_file(path: str | os.PathLike,
                      scratch: int = DEFAULT_SCRATCH) -> Memory:
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except UnicodeDecodeError as e:
        raise LoadError(0, f"Not UTF-8 text: byte {e.start}") from e
    return load_program(text, scratch=scratch)
