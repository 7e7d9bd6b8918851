"""
Single-machine drivers.

Thin wrappers that wire one IntcodeMachine to a finite input stream and a
recording sink, plus the noun/verb patch-and-search used by programs that
leave their result in address 0.
"""

from __future__ import annotations
from typing import Iterable, Optional

from intcode import IntcodeMachine, Memory
from ports import Channel, Collector

NOUN_ADDR = 1
VERB_ADDR = 2
RESULT_ADDR = 0


def run_program(memory: Memory, inputs: Iterable[int] = (),
                phase: Optional[int] = None) -> list[int]:
    """Run a private copy of *memory* to halt and return every output."""
    sink = Collector()
    cpu = IntcodeMachine(memory.copy(), phase=phase,
                         input_port=Channel.of(*inputs), output_port=sink)
    cpu.run()
    return sink.values


def run_with_noun_verb(memory: Memory, noun: int, verb: int) -> int:
    """Patch addresses 1 and 2, run, and return address 0."""
    mem = memory.copy()
    mem[NOUN_ADDR] = noun
    mem[VERB_ADDR] = verb
    IntcodeMachine(mem).run()
    return mem[RESULT_ADDR]


def find_noun_verb(memory: Memory, target: int,
                   limit: int = 100) -> tuple[int, int]:
    """Search nouns and verbs in ``range(limit)`` for one that leaves
    *target* in address 0."""
    for noun in range(limit):
        for verb in range(limit):
            if run_with_noun_verb(memory, noun, verb) == target:
                return noun, verb
    raise LookupError(f"No noun/verb below {limit} produces {target}")
