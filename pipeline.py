"""
Intcode Amplifier Pipelines
============================
Wires N IntcodeMachine stages together through Channels:

  chain:    seed → [0] → [1] → ... → [N-1] → result
  ring:     seed → [0] → [1] → ... → [N-1] ─┐
                    ↑───────────────────────┘

Each stage runs a private copy of the same program and is primed with its
own phase setting, consumed by its first INPUT instruction.

A chain runs its stages one after another on the calling thread.  A ring
cannot: stage 0 waits on stage N-1, which waits on stage 0's earlier
output.  Every ring stage therefore runs on its own thread, and the ring
is closed before any of them starts so the seed lands in a closed loop.
"""

from __future__ import annotations

import itertools
import threading
from typing import Iterable, Optional, Sequence

from errors import FaultError, PipelineError, PortError
from intcode import IntcodeMachine, Memory
from ports import Channel

# Phase settings searched by each topology
CHAIN_PHASES = range(0, 5)
RING_PHASES  = range(5, 10)


class AmplifierPipeline:
    """A chain or ring of Intcode stages sharing one program."""

    def __init__(self, memory: Memory, phases: Sequence[Optional[int]],
                 feedback: bool = False):
        if not phases:
            raise ValueError("A pipeline needs at least one stage")
        self.feedback = feedback
        n = len(phases)

        # channels[i] is stage i's input; in a ring stage N-1 writes channels[0]
        self.channels: list[Channel] = [Channel(f"link-{i}") for i in range(n)]
        if feedback:
            outputs = [self.channels[(i + 1) % n] for i in range(n)]
        else:
            self.channels.append(Channel(f"link-{n}"))
            outputs = self.channels[1:]

        self.stages: list[IntcodeMachine] = []
        for i, phase in enumerate(phases):
            self.stages.append(IntcodeMachine(
                memory.copy(), phase=phase,
                input_port=self.channels[i], output_port=outputs[i],
                name=f"stage-{i}"))

        # (stage, error) for every ring stage that faulted
        self.faults: list[tuple[int, Exception]] = []
        self._fault_lock = threading.Lock()

    # -----------------------------------------------------------------
    #  Execution
    # -----------------------------------------------------------------

    def run(self, seed: int = 0) -> int:
        """Inject *seed*, run every stage to halt, return the result."""
        if self.feedback:
            return self._run_ring(seed)
        return self._run_chain(seed)

    def _run_chain(self, seed: int) -> int:
        self.channels[0].push(seed)
        self.channels[0].close_send()
        for i, stage in enumerate(self.stages):
            try:
                stage.run()
            except FaultError as e:
                raise PipelineError(f"Stage {i} faulted: {e}", stage=i) from e

        result = self.channels[-1].last_value
        if result is None:
            raise PipelineError("Final stage produced no output",
                                stage=len(self.stages) - 1)
        return result

    def _run_ring(self, seed: int) -> int:
        self.channels[0].push(seed)

        threads = []
        for i, stage in enumerate(self.stages):
            t = threading.Thread(target=self._stage_main, args=(i,),
                                 daemon=True, name=f"intcode-stage-{i}")
            threads.append(t)
        for t in threads:
            t.start()
        # No timeout: a ring whose program never halts hangs here
        for t in threads:
            t.join()

        if self.faults:
            # Port faults cascade from a peer that aborted; report the peer
            i, err = next((f for f in self.faults
                           if not isinstance(f[1], PortError)), self.faults[0])
            raise PipelineError(f"Stage {i} faulted: {err}", stage=i) from err

        # Stage 0 has halted, so the loop's final value is still on its input
        result = self.channels[0].last_value
        if self.channels[0].sent <= 1:
            raise PipelineError("Ring produced no output", stage=len(self.stages) - 1)
        return result

    def _stage_main(self, i: int):
        try:
            self.stages[i].run()
        except Exception as e:
            with self._fault_lock:
                self.faults.append((i, e))

    # -----------------------------------------------------------------
    #  State queries
    # -----------------------------------------------------------------

    @property
    def all_halted(self) -> bool:
        return all(stage.halted for stage in self.stages)

    def dump_state(self) -> str:
        lines = []
        for stage in self.stages:
            lines.append(f"=== {stage.name} ===")
            lines.append(stage.dump_state())
        for ch in self.channels:
            lines.append(f"  {ch!r}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
#  Convenience
# ---------------------------------------------------------------------------

def run_chain(memory: Memory, phases: Sequence[int], seed: int = 0) -> int:
    return AmplifierPipeline(memory, phases).run(seed)


def run_ring(memory: Memory, phases: Sequence[int], seed: int = 0) -> int:
    return AmplifierPipeline(memory, phases, feedback=True).run(seed)


def search_phases(memory: Memory, phase_range: Iterable[int],
                  feedback: bool = False,
                  seed: int = 0) -> tuple[int, tuple[int, ...]]:
    """Try every permutation of *phase_range*; return the best
    (value, phases).  Ties keep the first permutation found."""
    best: Optional[tuple[int, tuple[int, ...]]] = None
    for phases in itertools.permutations(phase_range):
        value = AmplifierPipeline(memory, phases, feedback=feedback).run(seed)
        if best is None or value > best[0]:
            best = (value, phases)
    return best
