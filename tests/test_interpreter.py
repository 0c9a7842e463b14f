import struct
import unittest

from svm import core
from svm import device
from svm import interpreter


R0, R1, R2 = 32768, 32769, 32770


def image(*words):
    return struct.pack('<{}H'.format(len(words)), *words)


def make_interpreter(*words, **kwargs):
    output = device.CapturedOutput()
    source = device.ScriptedInput(kwargs.pop('stdin', b''))
    machine = core.Machine(source=source, sink=output, **kwargs)
    machine.load_image(image(*words))
    return interpreter.Interpreter(machine), output


class TestRun(unittest.TestCase):
    def test_halt_only(self):
        interp, output = make_interpreter(0)
        reason = interp.run()

        self.assertTrue(reason.halted)
        self.assertIsNone(reason.fault)
        self.assertEqual(reason.steps, 1)
        self.assertTrue(interp.machine.halted)
        self.assertEqual(interp.machine.pc, 0)
        self.assertEqual(list(interp.machine.registers), [0] * 8)
        self.assertEqual(len(interp.machine.stack), 0)
        self.assertEqual(output.values, [])

    def test_add_wraparound(self):
        interp, _ = make_interpreter(
                1, R0, 32767,
                1, R1, 10,
                9, R2, R0, R1,
                0,
                )
        self.assertTrue(interp.run().halted)
        self.assertEqual(interp.machine.registers.read(2), 9)

    def test_stack_round_trip(self):
        interp, _ = make_interpreter(
                2, 5,
                2, 7,
                3, R0,
                3, R1,
                0,
                )
        self.assertTrue(interp.run().halted)
        self.assertEqual(interp.machine.registers.read(0), 7)
        self.assertEqual(interp.machine.registers.read(1), 5)

    def test_call_return(self):
        interp, _ = make_interpreter(
                17, 4,      # 0: call 4
                0,          # 2: halt
                21,         # 3: noop
                18,         # 4: ret
                )
        steps = [interp.step() for _ in range(3)]

        self.assertEqual([s.mneumonic for s in steps], ['call', 'ret', 'halt'])
        self.assertEqual(steps[0].next_pc, 4)
        self.assertEqual(steps[1].next_pc, 2)
        self.assertTrue(steps[2].halted)

    def test_hello(self):
        interp, output = make_interpreter(
                19, ord('H'),
                1, R0, ord('i'),
                19, R0,
                19, ord('\n'),
                0,
                )
        self.assertTrue(interp.run().halted)
        self.assertEqual(output.text(), 'Hi\n')

    def test_echo(self):
        interp, output = make_interpreter(
                20, R0,
                19, R0,
                20, R0,
                19, R0,
                0,
                stdin=b'ok',
                )
        self.assertTrue(interp.run().halted)
        self.assertEqual(output.text(), 'ok')

    def test_loop(self):
        # count r0 down from 5, emitting a '.' each pass
        interp, output = make_interpreter(
                1, R0, 5,           # 0: set r0 5
                19, ord('.'),       # 3: out '.'
                9, R0, R0, 32767,   # 5: add r0 r0 -1
                7, R0, 3,           # 9: jt r0 3
                0,                  # 12: halt
                )
        self.assertTrue(interp.run().halted)
        self.assertEqual(output.text(), '.....')
        self.assertEqual(interp.machine.registers.read(0), 0)

    def test_self_modifying(self):
        interp, _ = make_interpreter(
                16, 3, 0,   # 0: wmem 3 halt
                22,         # 3: replaced by halt
                )
        self.assertTrue(interp.run().halted)
        self.assertEqual(interp.machine.memory.read(3), 0)

    def test_values_stay_in_word_range(self):
        interp, _ = make_interpreter(
                10, R0, 32767, 32767,
                9, R1, R0, 32767,
                14, R2, R1,
                10, R2, R2, R2,
                0,
                )
        self.assertTrue(interp.run().halted)
        for value in interp.machine.registers:
            self.assertTrue(0 <= value <= 32767)


class TestFaults(unittest.TestCase):
    def assertFault(self, interp, kind, pc, code):
        reason = interp.run()
        self.assertTrue(reason.faulted)
        self.assertIsInstance(reason.fault, kind)
        self.assertEqual(reason.fault.pc, pc)
        self.assertEqual(reason.fault.opcode, code)
        self.assertTrue(interp.machine.halted)
        return reason

    def test_unknown_opcode(self):
        interp, _ = make_interpreter(21, 22, 0)
        reason = self.assertFault(interp, core.UnknownOpcode, 1, 22)
        self.assertEqual(reason.steps, 1)
        self.assertEqual(interp.machine.pc, 1)

    def test_mod_by_zero(self):
        interp, _ = make_interpreter(1, R0, 3, 11, R0, 7, 0, 0)
        self.assertFault(interp, core.DivisionByZero, 3, 11)
        self.assertEqual(interp.machine.registers.read(0), 3)

    def test_invalid_operand(self):
        interp, _ = make_interpreter(2, 32776, 0)
        self.assertFault(interp, core.InvalidOperand, 0, 2)
        self.assertEqual(len(interp.machine.stack), 0)

    def test_literal_destination(self):
        interp, _ = make_interpreter(1, 5, 1, 0)
        self.assertFault(interp, core.InvalidOperand, 0, 1)

    def test_pop_empty(self):
        interp, _ = make_interpreter(3, R0, 0)
        self.assertFault(interp, core.StackUnderflow, 0, 3)

    def test_return_empty(self):
        interp, _ = make_interpreter(18)
        self.assertFault(interp, core.StackUnderflow, 0, 18)

    def test_push_at_capacity(self):
        interp, _ = make_interpreter(2, 1, 2, 2, 0, stack=core.Stack(capacity=1))
        self.assertFault(interp, core.StackOverflow, 2, 2)
        self.assertEqual(list(interp.machine.stack), [1])

    def test_read_out_of_bounds(self):
        interp, _ = make_interpreter(15, R0, 10, 0, memory=core.Memory(capacity=4))
        self.assertFault(interp, core.MemoryOutOfBounds, 0, 15)
        self.assertEqual(interp.machine.registers.read(0), 0)

    def test_fetch_only_declared_operands(self):
        interp, _ = make_interpreter(21, 0, memory=core.Memory(capacity=2))
        self.assertTrue(interp.run().halted)

    def test_operands_past_memory(self):
        interp, _ = make_interpreter(21, 9, R0, memory=core.Memory(capacity=3))
        self.assertFault(interp, core.MemoryOutOfBounds, 1, 9)

    def test_jump_out_of_program(self):
        interp, _ = make_interpreter(6, 100)
        self.assertFault(interp, core.ProgramCounterOutOfBounds, 0, 6)
        self.assertEqual(interp.machine.pc, 0)

    def test_call_out_of_program(self):
        interp, _ = make_interpreter(17, 100)
        self.assertFault(interp, core.ProgramCounterOutOfBounds, 0, 17)
        self.assertEqual(len(interp.machine.stack), 0)

    def test_run_off_the_end(self):
        interp, _ = make_interpreter(21)
        self.assertFault(interp, core.ProgramCounterOutOfBounds, 0, 21)

    def test_empty_program(self):
        interp, _ = make_interpreter()
        self.assertFault(interp, core.ProgramCounterOutOfBounds, 0, None)

    def test_input_exhausted(self):
        interp, _ = make_interpreter(20, R0, 0)
        self.assertFault(interp, core.InputExhausted, 0, 20)


class TestStateMachine(unittest.TestCase):
    def test_step(self):
        interp, _ = make_interpreter(21, 1, R0, 9, 0)

        result = interp.step()
        self.assertEqual(result, interpreter.StepResult(0, 21, 'noop', 1, False))
        self.assertEqual(interp.machine.pc, 1)

        result = interp.step()
        self.assertEqual(result.next_pc, 4)
        self.assertEqual(interp.machine.registers.read(0), 9)

        result = interp.step()
        self.assertTrue(result.halted)
        self.assertEqual(interp.steps, 3)

    def test_decode(self):
        interp, _ = make_interpreter(9, R0, 1, R1, 0)
        instruction = interp.decode(0, 9)

        self.assertEqual(instruction.mneumonic, 'add')
        self.assertEqual([int(op) for op in instruction.operands], [R0, 1, R1])

        with self.assertRaises(core.UnknownOpcode):
            interp.decode(0, 22)

    def test_no_step_after_halt(self):
        interp, _ = make_interpreter(0)
        interp.step()
        with self.assertRaises(core.MachineHalted):
            interp.step()

    def test_step_raises_fault(self):
        interp, _ = make_interpreter(22)
        with self.assertRaises(core.UnknownOpcode):
            interp.step()

        self.assertTrue(interp.machine.halted)
        with self.assertRaises(core.MachineHalted):
            interp.step()

    def test_step_budget(self):
        interp, _ = make_interpreter(21, 6, 0)
        reason = interp.run(max_steps=10)

        self.assertEqual(reason.status, interpreter.ExitReason.STOPPED)
        self.assertEqual(reason.steps, 10)
        self.assertFalse(interp.machine.halted)

        reason = interp.run(max_steps=5)
        self.assertEqual(reason.steps, 15)
        self.assertIn(interp.machine.pc, (0, 1))

    def test_should_stop(self):
        interp, output = make_interpreter(19, ord('x'), 6, 0)
        reason = interp.run(should_stop=lambda: len(output.values) == 3)

        self.assertEqual(reason.status, interpreter.ExitReason.STOPPED)
        self.assertEqual(output.text(), 'xxx')
        self.assertEqual(interp.machine.pc, 2)
