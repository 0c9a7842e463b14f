import logging
import struct


logger = logging.getLogger(__name__)

WORD_MODULO = 2**15
WORD_MASK = 2**15 - 1

REGISTER_BASE = 2**15
REGISTER_COUNT = 8

MEMORY_WORDS = 2**15
STACK_WORDS = 2**15


class Fault(Exception):
    """
    An unrecoverable execution error. The interpreter fills in the program
    counter and opcode of the instruction that raised it.
    """

    def __init__(self, message='', pc=None, opcode=None):
        super(Fault, self).__init__(message)
        self.pc = pc
        self.opcode = opcode

    @property
    def kind(self):
        return self.__class__.__name__

    def __str__(self):
        message = super(Fault, self).__str__()
        if self.pc is None:
            return '{}: {}'.format(self.kind, message)

        return '{}: {} [pc:{}] [opcode:{}]'.format(
                self.kind,
                message,
                self.pc,
                self.opcode,
                )


class InvalidOperand(Fault):
    pass


class MemoryOutOfBounds(Fault):
    pass


class StackOverflow(Fault):
    pass


class StackUnderflow(Fault):
    pass


class UnknownOpcode(Fault):
    pass


class DivisionByZero(Fault):
    pass


class ProgramCounterOutOfBounds(Fault):
    pass


class MalformedImage(Fault):
    pass


class InputExhausted(Fault):
    pass


class MachineHalted(RuntimeError):
    pass


class Terminate(Exception):
    pass


def word(value):
    """Reduce an arithmetic result to the 15-bit word domain"""
    return value % WORD_MODULO


class Registers(object):
    def __init__(self):
        self._regs = [0] * REGISTER_COUNT

    def __len__(self):
        return REGISTER_COUNT

    def __iter__(self):
        return iter(self._regs)

    def __getitem__(self, index):
        return self.read(index)

    def read(self, index):
        assert 0 <= index < REGISTER_COUNT
        return self._regs[index]

    def write(self, index, value):
        # arithmetic results are words; 'rmem' copies raw image words as is
        assert 0 <= index < REGISTER_COUNT
        assert 0 <= value < 2**16
        self._regs[index] = value


class Memory(object):
    """
    The memory store is a fixed array of words covering the whole 15-bit
    address space. The 'extent' is the number of words that were loaded from
    the program image, and bounds the program counter.
    """

    def __init__(self, capacity=MEMORY_WORDS):
        self._ram = [0] * capacity
        self.extent = 0

    def __len__(self):
        return len(self._ram)

    def __iter__(self):
        for index in range(self.extent):
            yield self._ram[index]

    def read(self, address):
        if not 0 <= address < len(self._ram):
            raise MemoryOutOfBounds('read from {}'.format(address))

        return self._ram[address]

    def write(self, address, value):
        if not 0 <= address < len(self._ram):
            raise MemoryOutOfBounds('write to {}'.format(address))

        self._ram[address] = value

    def load_image(self, image):
        """
        Copy a raw program image into memory starting at address 0. Each
        word is stored little-endian in two consecutive bytes.

        """
        if len(image) % 2 != 0:
            raise MalformedImage('odd image length ({} bytes)'.format(len(image)))

        count = len(image) // 2
        if count > len(self._ram):
            raise MalformedImage('image of {} words exceeds memory of {}'.format(
                count,
                len(self._ram),
                ))

        self._ram[:count] = struct.unpack('<{}H'.format(count), image)
        self.extent = count

        logger.info('loaded {} words'.format(count))


class Stack(object):
    def __init__(self, capacity=STACK_WORDS):
        self._data = list()
        self.capacity = capacity

    def __len__(self):
        return len(self._data)

    def __iter__(self):
        return iter(self._data)

    def push(self, value):
        if len(self._data) >= self.capacity:
            raise StackOverflow('stack holds {} words'.format(self.capacity))

        self._data.append(value)

    def pop(self):
        if not self._data:
            raise StackUnderflow('pop from empty stack')

        return self._data.pop()


class Machine(object):
    """
    The execution context: every piece of mutable machine state, plus the
    input source and output sink consumed by the 'in' and 'out' opcodes.
    """

    def __init__(self, source=None, sink=None, memory=None, stack=None):
        self.registers = Registers()
        self.memory = Memory() if memory is None else memory
        self.stack = Stack() if stack is None else stack
        self.source = source
        self.sink = sink
        self.pc = 0
        self.halted = False

    def load_image(self, image):
        self.memory.load_image(image)
        self.pc = 0

    def read_input(self):
        # pending output, e.g. a prompt, must be visible before input blocks
        if self.sink is not None and hasattr(self.sink, 'flush'):
            self.sink.flush()

        value = None if self.source is None else self.source.next_byte()
        if value is None:
            raise InputExhausted('no more input')

        return value

    def write_output(self, value):
        if self.sink is not None:
            self.sink.emit(value)
