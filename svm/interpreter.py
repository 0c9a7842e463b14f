import collections
import logging

from . import core
from . import opcode


logger = logging.getLogger(__name__)


class StepResult(collections.namedtuple("StepResult", "pc opcode mneumonic next_pc halted")):
    pass


class ExitReason(collections.namedtuple("ExitReason", "status fault steps")):
    HALTED = 'halted'
    FAULTED = 'faulted'
    STOPPED = 'stopped'

    @property
    def halted(self):
        return self.status == ExitReason.HALTED

    @property
    def faulted(self):
        return self.status == ExitReason.FAULTED


class Interpreter(object):
    """
    Drives a machine through the fetch-decode-execute cycle. The machine is
    'running' until it executes a halt or raises a fault; after that it is
    'halted' for good.
    """

    def __init__(self, machine):
        self.machine = machine
        self.steps = 0
        self.opcodes = {op.OPCODE: op for op in opcode.OPCODES}

    def decode(self, pc, code):
        """
        Build the instruction for the opcode word 'code' fetched from 'pc'.
        Only the operand words the opcode declares are fetched from memory.

        """
        memory = self.machine.memory

        if code not in self.opcodes:
            raise core.UnknownOpcode('unrecognized opcode {}'.format(code))

        cls = self.opcodes[code]
        raws = [memory.read(pc + 1 + index) for index in range(cls.arity())]

        return cls(*raws)

    def step(self):
        machine = self.machine
        if machine.halted:
            raise core.MachineHalted('the machine has halted')

        pc = machine.pc
        code = None

        try:
            if not 0 <= pc < machine.memory.extent:
                raise core.ProgramCounterOutOfBounds(
                        'pc outside program of {} words'.format(machine.memory.extent))

            code = machine.memory.read(pc)
            instruction = self.decode(pc, code)

            try:
                next_pc = instruction.execute(machine, pc)

            except core.Terminate:
                logger.debug('halt at {}'.format(pc))
                machine.halted = True
                self.steps += 1
                return StepResult(pc, code, instruction.mneumonic, pc, True)

            if not 0 <= next_pc < machine.memory.extent:
                raise core.ProgramCounterOutOfBounds(
                        'next pc {} outside program of {} words'.format(
                            next_pc,
                            machine.memory.extent,
                            ))

        except core.Fault as fault:
            fault.pc = pc
            fault.opcode = code
            machine.halted = True
            raise

        machine.pc = next_pc
        self.steps += 1

        return StepResult(pc, code, instruction.mneumonic, next_pc, False)

    def run(self, max_steps=None, should_stop=None):
        """
        Step the machine until it halts or faults. The run may also be
        stopped between two instructions, either once 'max_steps' have been
        executed by this call or when 'should_stop()' returns true; the
        machine is left running in that case and can be resumed.

        """
        logger.info('run start at {}'.format(self.machine.pc))
        count = 0

        try:
            while True:
                if max_steps is not None and count >= max_steps:
                    reason = ExitReason(ExitReason.STOPPED, None, self.steps)
                    break

                if should_stop is not None and should_stop():
                    reason = ExitReason(ExitReason.STOPPED, None, self.steps)
                    break

                result = self.step()
                count += 1

                if result.halted:
                    reason = ExitReason(ExitReason.HALTED, None, self.steps)
                    break

        except core.Fault as fault:
            logger.error(str(fault))
            reason = ExitReason(ExitReason.FAULTED, fault, self.steps)

        logger.info('run stop: {} after {} steps'.format(reason.status, reason.steps))

        return reason
