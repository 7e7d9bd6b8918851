"""
Hull-painting robot
===================
Drives a single IntcodeMachine whose output stream comes in pairs:

  1st value  — color to paint under the robot (0 black, 1 white)
  2nd value  — turn (0 = left 90°, anything else = right 90°), then move
               one panel forward

The camera input always reads the color of the panel under the robot, however
many times the machine asks, so the machine steers itself until it halts.
A machine that halts between a color and its turn is a fault.

Usage:
  robot = PaintingRobot(load_program_file("input.txt"), start_color=BLACK)
  robot.run()
  print(robot.painted_count)
"""

from __future__ import annotations
from enum import Enum

from errors import PortError
from intcode import IntcodeMachine, Memory
from ports import Collector, InputPort

BLACK = 0
WHITE = 1

ORIGIN = (0, 0)


class Heading(Enum):
    UP    = (0, 1)
    RIGHT = (1, 0)
    DOWN  = (0, -1)
    LEFT  = (-1, 0)

    @property
    def delta(self) -> tuple[int, int]:
        return self.value

    def turn(self, command: int) -> "Heading":
        """0 turns left, any other value turns right."""
        order = _CLOCKWISE
        i = order.index(self)
        step = -1 if command == 0 else 1
        return order[(i + step) % len(order)]


_CLOCKWISE = [Heading.UP, Heading.RIGHT, Heading.DOWN, Heading.LEFT]


class Camera(InputPort):
    """Input port reporting the panel under the robot on every pull."""

    def __init__(self, robot: "PaintingRobot"):
        self.robot = robot
        self.reads = 0
        self._closed = False

    def pull(self) -> int:
        if self._closed:
            raise PortError("pull from terminated source (camera)")
        self.reads += 1
        return self.robot.color_at(self.robot.position)

    def close_recv(self):
        self._closed = True


class PaintingRobot:
    """Interprets one machine's paired output as paint-then-move commands."""

    def __init__(self, memory: Memory, start_color: int = WHITE):
        self.panels: dict[tuple[int, int], int] = {ORIGIN: start_color}
        self.painted: set[tuple[int, int]] = set()
        self.position = ORIGIN
        self.heading = Heading.UP
        self._expect_color = True
        self.moves = 0

        self.camera = Camera(self)
        self.machine = IntcodeMachine(memory, input_port=self.camera,
                                      output_port=Collector(), name="robot")

    def run(self) -> "PaintingRobot":
        """Run the machine to halt, consuming each output as it appears."""
        while True:
            value = self.machine.run_until_output()
            if value is None:
                if not self._expect_color:
                    raise PortError(f"Machine halted after color "
                                    f"{self.panels[self.position]} with no turn",
                                    ip=self.machine.ip)
                break
            self.consume(value)
        return self

    def consume(self, value: int):
        if self._expect_color:
            self.panels[self.position] = value
            self.painted.add(self.position)
        else:
            self.heading = self.heading.turn(value)
            dx, dy = self.heading.delta
            x, y = self.position
            self.position = (x + dx, y + dy)
            self.moves += 1
        self._expect_color = not self._expect_color

    def color_at(self, pos: tuple[int, int]) -> int:
        return self.panels.get(pos, BLACK)

    @property
    def painted_count(self) -> int:
        """Distinct panels painted at least once, whatever their color now."""
        return len(self.painted)

    def render(self) -> str:
        from display import render_text
        return render_text(self.panels)
