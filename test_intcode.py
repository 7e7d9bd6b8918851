#!/usr/bin/env python3
"""
Intcode Machine Test Suite
===========================
Covers the decoder, addressing modes, every instruction, the halt and
fault paths, and the step / run / run_until_output entry points.

Run with:  python -m pytest test_intcode.py
"""

import unittest

from errors import AddressError, DecodeError, FaultError, HaltError, PortError
from intcode import IntcodeMachine, Memory, Mode, Opcode
from ports import Channel, Collector
from runner import run_program

QUINE = [109, 1, 204, -1, 1001, 100, 1, 100, 1008, 100, 16, 101,
         1006, 101, 0, 99]

# Outputs 999 / 1000 / 1001 for input below / equal to / above 8
COMPARE_TO_8 = [
    3, 21, 1008, 21, 8, 20, 1005, 20, 22, 107, 8, 21, 20, 1006, 20, 31,
    1106, 0, 36, 98, 0, 0, 1002, 21, 125, 20, 4, 20, 1105, 1, 46, 104,
    999, 1105, 1, 46, 1101, 1000, 1, 20, 4, 20, 1105, 1, 46, 98, 99,
]


def run_words(words, inputs=(), scratch=0, phase=None):
    """Run *words* to halt; return (machine, outputs)."""
    sink = Collector()
    cpu = IntcodeMachine(Memory(words, scratch=scratch), phase=phase,
                         input_port=Channel.of(*inputs), output_port=sink)
    cpu.run()
    return cpu, sink.values


class TestMemory(unittest.TestCase):

    def test_scratch_is_zero_filled(self):
        mem = Memory([1, 2, 3], scratch=4)
        self.assertEqual(len(mem), 7)
        self.assertEqual(mem.program_size, 3)
        self.assertEqual(mem.snapshot(), [1, 2, 3, 0, 0, 0, 0])

    def test_negative_address_faults(self):
        mem = Memory([1, 2, 3])
        with self.assertRaises(AddressError) as ctx:
            mem[-1]
        self.assertEqual(ctx.exception.addr, -1)
        with self.assertRaises(AddressError):
            mem[-1] = 5

    def test_out_of_bounds_faults_instead_of_growing(self):
        mem = Memory([1, 2, 3], scratch=2)
        with self.assertRaises(AddressError):
            mem[5]
        with self.assertRaises(AddressError):
            mem[5] = 1
        self.assertEqual(len(mem), 5)

    def test_copy_is_independent(self):
        mem = Memory([1, 2, 3], scratch=1)
        clone = mem.copy()
        clone[0] = 99
        self.assertEqual(mem[0], 1)
        self.assertEqual(clone.program_size, 3)

    def test_dump(self):
        mem = Memory([5, 6, 7, 8])
        self.assertEqual(mem.dump(1, 2), [6, 7])
        self.assertEqual(mem.dump(0, 0), [])
        with self.assertRaises(AddressError):
            mem.dump(2, 5)

    def test_negative_scratch_rejected(self):
        with self.assertRaises(ValueError):
            Memory([99], scratch=-1)


class TestDecoder(unittest.TestCase):

    def decode(self, words):
        cpu = IntcodeMachine(Memory(words))
        return cpu, cpu.decode()

    def test_modes_read_from_digits(self):
        cpu, (op, modes) = self.decode([21002, 0, 0, 0])
        self.assertEqual(op, Opcode.MUL)
        self.assertEqual(modes, [Mode.POSITION, Mode.IMMEDIATE, Mode.RELATIVE])
        self.assertEqual(cpu.ip, 1)

    def test_mode_count_follows_opcode(self):
        expected = {1: 3, 2: 3, 3: 1, 4: 1, 5: 2, 6: 2, 7: 3, 8: 3, 9: 1, 99: 0}
        for word, count in expected.items():
            _, (op, modes) = self.decode([word, 0, 0, 0])
            self.assertEqual(len(modes), count, f"opcode {word}")
            self.assertEqual(op.param_count, count)

    def test_unknown_opcode(self):
        cpu = IntcodeMachine(Memory([42, 0, 0]))
        with self.assertRaises(DecodeError):
            cpu.decode()

    def test_unknown_mode(self):
        cpu = IntcodeMachine(Memory([304, 0, 99]))
        with self.assertRaises(DecodeError):
            cpu.decode()

    def test_negative_word(self):
        cpu = IntcodeMachine(Memory([-1, 0]))
        with self.assertRaises(DecodeError):
            cpu.decode()


class TestInstructions(unittest.TestCase):

    def test_add_mul_position_mode(self):
        cases = [
            ([1, 9, 10, 3, 2, 3, 11, 0, 99, 30, 40, 50],
             [3500, 9, 10, 70, 2, 3, 11, 0, 99, 30, 40, 50]),
            ([1, 0, 0, 0, 99], [2, 0, 0, 0, 99]),
            ([2, 3, 0, 3, 99], [2, 3, 0, 6, 99]),
            ([2, 4, 4, 5, 99, 0], [2, 4, 4, 5, 99, 9801]),
            ([1, 1, 1, 4, 99, 5, 6, 0, 99], [30, 1, 1, 4, 2, 5, 6, 0, 99]),
        ]
        for program, final in cases:
            cpu, _ = run_words(program)
            self.assertEqual(cpu.memory.snapshot(), final)

    def test_immediate_mode_operands(self):
        cpu, _ = run_words([1002, 4, 3, 4, 33])
        self.assertEqual(cpu.memory[4], 99)
        cpu, _ = run_words([1101, 100, -1, 4, 0])
        self.assertEqual(cpu.memory[4], 99)

    def test_input_output_echo(self):
        _, out = run_words([3, 0, 4, 0, 99], inputs=[1234])
        self.assertEqual(out, [1234])

    def test_equals_and_less_than(self):
        programs = {
            "eq pos": ([3, 9, 8, 9, 10, 9, 4, 9, 99, -1, 8], lambda x: x == 8),
            "lt pos": ([3, 9, 7, 9, 10, 9, 4, 9, 99, -1, 8], lambda x: x < 8),
            "eq imm": ([3, 3, 1108, -1, 8, 3, 4, 3, 99], lambda x: x == 8),
            "lt imm": ([3, 3, 1107, -1, 8, 3, 4, 3, 99], lambda x: x < 8),
        }
        for name, (program, pred) in programs.items():
            for x in (7, 8, 9):
                _, out = run_words(program, inputs=[x])
                self.assertEqual(out, [int(pred(x))], f"{name} x={x}")

    def test_jumps(self):
        for program in ([3, 12, 6, 12, 15, 1, 13, 14, 13, 4, 13, 99, -1, 0, 1, 9],
                        [3, 3, 1105, -1, 9, 1101, 0, 0, 12, 4, 12, 99, 1]):
            self.assertEqual(run_words(program, inputs=[0])[1], [0])
            self.assertEqual(run_words(program, inputs=[5])[1], [1])

    def test_compare_to_8(self):
        for x, expected in ((3, 999), (8, 1000), (12, 1001)):
            _, out = run_words(COMPARE_TO_8, inputs=[x])
            self.assertEqual(out, [expected])

    def test_adjust_base_accumulates(self):
        cpu, _ = run_words([109, 5, 109, -2, 99])
        self.assertEqual(cpu.relative_base, 3)

    def test_relative_write_matches_position_address(self):
        # base 50, relative offset 7 -> absolute 57
        cpu, out = run_words([109, 50, 21101, 3, 4, 7, 4, 57, 99], scratch=100)
        self.assertEqual(cpu.memory[57], 7)
        self.assertEqual(out, [7])

    def test_relative_read_matches_position_read(self):
        for k, d in ((10, 5), (30, -3), (0, 20)):
            program = [109, k, 204, d, 4, k + d, 99]
            mem = Memory(program, scratch=60)
            mem[k + d] = 4242
            sink = Collector()
            IntcodeMachine(mem, output_port=sink).run()
            self.assertEqual(sink.values, [4242, 4242], f"k={k} d={d}")

    def test_immediate_write_target_hits_parameter_slot(self):
        # Never used by real programs; writes land in the instruction itself
        cpu, _ = run_words([11101, 2, 3, 0, 99])
        self.assertEqual(cpu.memory[3], 5)


class TestLargeNumbers(unittest.TestCase):

    def test_quine(self):
        out = run_program(Memory(QUINE, scratch=100))
        self.assertEqual(out, QUINE)

    def test_sixteen_digit_product(self):
        out = run_program(Memory([1102, 34915192, 34915192, 7, 4, 7, 99, 0],
                                 scratch=100))
        self.assertEqual(len(out), 1)
        self.assertEqual(len(str(out[0])), 16)
        self.assertEqual(out[0], 34915192 * 34915192)

    def test_large_immediate(self):
        out = run_program(Memory([104, 1125899906842624, 99], scratch=100))
        self.assertEqual(out, [1125899906842624])


class TestHalt(unittest.TestCase):

    def test_halt_only_program_changes_nothing(self):
        mem = Memory([99], scratch=10)
        before = mem.snapshot()
        sink = Collector()
        cpu = IntcodeMachine(mem, output_port=sink)
        self.assertEqual(cpu.step(), Opcode.HALT)
        self.assertTrue(cpu.halted)
        self.assertEqual(cpu.steps, 1)
        self.assertEqual(mem.snapshot(), before)
        self.assertEqual(sink.values, [])
        self.assertTrue(sink.closed)

    def test_step_returns_none_while_running(self):
        cpu = IntcodeMachine(Memory([1101, 1, 1, 5, 99, 0]))
        self.assertIsNone(cpu.step())
        self.assertFalse(cpu.halted)
        self.assertEqual(cpu.step(), Opcode.HALT)

    def test_step_after_halt_raises(self):
        cpu = IntcodeMachine(Memory([99]))
        cpu.run()
        with self.assertRaises(HaltError):
            cpu.step()

    def test_halt_closes_output_channel(self):
        out = Channel()
        IntcodeMachine(Memory([104, 7, 99]), output_port=out).run()
        self.assertEqual(out.pull(), 7)
        with self.assertRaises(PortError):
            out.pull()

    def test_on_halt_callback(self):
        seen = []
        cpu = IntcodeMachine(Memory([99]))
        cpu.on_halt = seen.append
        cpu.run()
        self.assertEqual(seen, [cpu])


class TestFaults(unittest.TestCase):

    def test_unknown_opcode_is_fatal(self):
        cpu = IntcodeMachine(Memory([1101, 1, 1, 0, 42]))
        with self.assertRaises(DecodeError) as ctx:
            cpu.run()
        self.assertEqual(ctx.exception.ip, 4)
        self.assertIs(cpu.fault, ctx.exception)
        self.assertIn("ip=4", str(ctx.exception))
        with self.assertRaises(HaltError):
            cpu.step()

    def test_negative_resolved_address(self):
        cpu = IntcodeMachine(Memory([109, -5, 204, 0, 99]))
        with self.assertRaises(AddressError) as ctx:
            cpu.run()
        self.assertEqual(ctx.exception.addr, -5)
        self.assertEqual(ctx.exception.ip, 2)

    def test_negative_position_parameter(self):
        with self.assertRaises(AddressError):
            run_words([4, -1, 99])

    def test_running_off_scratch_is_fatal(self):
        with self.assertRaises(AddressError):
            run_words([4, 10, 99], scratch=2)

    def test_jump_to_negative_address(self):
        with self.assertRaises(AddressError):
            run_words([1105, 1, -3, 99])

    def test_input_from_finished_stream(self):
        cpu = IntcodeMachine(Memory([3, 0, 99]))
        with self.assertRaises(PortError) as ctx:
            cpu.run()
        self.assertIn("pull from terminated source", str(ctx.exception))
        self.assertEqual(ctx.exception.ip, 0)

    def test_fault_closes_both_ports(self):
        inp, out = Channel(), Channel()
        cpu = IntcodeMachine(Memory([42]), input_port=inp, output_port=out)
        with self.assertRaises(FaultError):
            cpu.step()
        with self.assertRaises(PortError):
            inp.push(1)
        with self.assertRaises(PortError):
            out.pull()


class TestPhaseAndStepping(unittest.TestCase):

    def test_phase_consumed_by_first_input_only(self):
        cpu, out = run_words([3, 9, 3, 10, 4, 9, 4, 10, 99, 0, 0],
                             inputs=[5], phase=7)
        self.assertEqual(out, [7, 5])
        self.assertIsNone(cpu.phase)

    def test_zero_phase_is_still_consumed(self):
        _, out = run_words([3, 9, 3, 10, 4, 9, 4, 10, 99, 0, 0],
                           inputs=[5], phase=0)
        self.assertEqual(out, [0, 5])

    def test_run_until_output(self):
        cpu = IntcodeMachine(Memory([104, 1, 104, 2, 99]))
        self.assertEqual(cpu.run_until_output(), 1)
        self.assertEqual(cpu.ip, 2)
        self.assertEqual(cpu.run_until_output(), 2)
        self.assertIsNone(cpu.run_until_output())
        self.assertTrue(cpu.halted)

    def test_run_max_steps(self):
        cpu = IntcodeMachine(Memory([1105, 1, 0]))   # jumps to itself forever
        self.assertEqual(cpu.run(max_steps=50), 50)
        self.assertFalse(cpu.halted)
        self.assertEqual(cpu.steps, 50)

    def test_on_output_callback(self):
        seen = []
        cpu = IntcodeMachine(Memory([104, 3, 104, 4, 99]))
        cpu.on_output = seen.append
        cpu.run()
        self.assertEqual(seen, [3, 4])
        self.assertEqual(cpu.last_output, 4)

    def test_dump_state(self):
        cpu = IntcodeMachine(Memory([109, 4, 99]), phase=3)
        cpu.run()
        text = cpu.dump_state()
        self.assertIn("RBASE = 4", text)
        self.assertIn("PHASE = 3", text)
        self.assertIn("HALTED = True", text)


if __name__ == "__main__":
    unittest.main()
