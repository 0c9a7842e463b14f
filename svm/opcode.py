import collections

from . import core


REG = 'reg'
VAL = 'val'


class Operand(collections.namedtuple("Operand", "raw")):
    """
    A storage operand is a raw 16-bit word from the instruction stream,

        0     .. 32767  a literal value
        32768 .. 32775  registers 0 .. 7
        32776 .. 65535  invalid

    """

    MAX_LITERAL = core.REGISTER_BASE - 1
    MAX_REGISTER = core.REGISTER_BASE + core.REGISTER_COUNT - 1

    def __new__(cls, raw):
        raw = int(raw)
        if not 0 <= raw < 2**16:
            raise core.InvalidOperand('{} is not a 16-bit word'.format(raw))

        return super(Operand, cls).__new__(cls, raw)

    def __int__(self):
        return self.raw

    @property
    def is_literal(self):
        return self.raw <= Operand.MAX_LITERAL

    @property
    def is_register(self):
        return Operand.MAX_LITERAL < self.raw <= Operand.MAX_REGISTER

    @property
    def index(self):
        if not self.is_register:
            raise core.InvalidOperand('{} does not name a register'.format(self.raw))

        return self.raw - core.REGISTER_BASE

    def resolve(self, registers):
        if self.is_literal:
            return self.raw

        if self.is_register:
            return registers.read(self.index)

        raise core.InvalidOperand('{} is reserved'.format(self.raw))


def resolve(raw, registers):
    return Operand(raw).resolve(registers)


class Opcode(collections.namedtuple("Opcode", "mneumonic opcode operands")):
    """
    An instruction is an opcode word followed by as many operand words as
    the opcode declares,

        OPCODE [A [B [C]]]

    Each operand either names a register to write (REG) or is a value to
    read (VAL). The operands are decoded when the instruction is built, so
    a destination that is not a register faults before anything executes.

    """

    OPERANDS = ()

    def __new__(cls, *operands):
        if len(operands) != len(cls.OPERANDS):
            raise ValueError('{} takes {} operands'.format(
                cls.MNEUMONIC,
                len(cls.OPERANDS),
                ))

        operands = tuple(Operand(raw) for raw in operands)
        for role, operand in zip(cls.OPERANDS, operands):
            if role == REG and not operand.is_register:
                raise core.InvalidOperand('{} is not a register for {}'.format(
                    operand.raw,
                    cls.MNEUMONIC,
                    ))

        return super(Opcode, cls).__new__(
                cls,
                cls.MNEUMONIC,
                cls.OPCODE,
                operands,
                )

    @classmethod
    def arity(cls):
        return len(cls.OPERANDS)

    @property
    def size(self):
        return 1 + len(self.operands)

    @property
    def a(self):
        return self.operands[0]

    @property
    def b(self):
        return self.operands[1]

    @property
    def c(self):
        return self.operands[2]

    def execute(self, machine, pc):
        """Apply the instruction at 'pc' and return the next program counter"""
        raise NotImplementedError()


class Halt(Opcode):
    MNEUMONIC = "halt"
    OPCODE = 0

    def execute(self, machine, pc):
        raise core.Terminate()


class Set(Opcode):
    MNEUMONIC = "set"
    OPCODE = 1
    OPERANDS = (REG, VAL)

    def execute(self, machine, pc):
        val = self.b.resolve(machine.registers)
        machine.registers.write(self.a.index, val)
        return pc + self.size


class Push(Opcode):
    MNEUMONIC = "push"
    OPCODE = 2
    OPERANDS = (VAL,)

    def execute(self, machine, pc):
        machine.stack.push(self.a.resolve(machine.registers))
        return pc + self.size


class Pop(Opcode):
    MNEUMONIC = "pop"
    OPCODE = 3
    OPERANDS = (REG,)

    def execute(self, machine, pc):
        machine.registers.write(self.a.index, machine.stack.pop())
        return pc + self.size


class BinaryOp(Opcode):
    """reg[a] = f(b, c)"""

    OPERANDS = (REG, VAL, VAL)

    def compute(self, vb, vc):
        raise NotImplementedError()

    def execute(self, machine, pc):
        vb = self.b.resolve(machine.registers)
        vc = self.c.resolve(machine.registers)
        machine.registers.write(self.a.index, self.compute(vb, vc))
        return pc + self.size


class Equal(BinaryOp):
    MNEUMONIC = "eq"
    OPCODE = 4

    def compute(self, vb, vc):
        return 1 if vb == vc else 0


class Greater(BinaryOp):
    MNEUMONIC = "gt"
    OPCODE = 5

    def compute(self, vb, vc):
        return 1 if vb > vc else 0


class Jump(Opcode):
    MNEUMONIC = "jmp"
    OPCODE = 6
    OPERANDS = (VAL,)

    def execute(self, machine, pc):
        return self.a.resolve(machine.registers)


class JumpTrue(Opcode):
    MNEUMONIC = "jt"
    OPCODE = 7
    OPERANDS = (VAL, VAL)

    def taken(self, val):
        return val != 0

    def execute(self, machine, pc):
        # the target is only resolved when the branch is taken
        if self.taken(self.a.resolve(machine.registers)):
            return self.b.resolve(machine.registers)

        return pc + self.size


class JumpFalse(JumpTrue):
    MNEUMONIC = "jf"
    OPCODE = 8

    def taken(self, val):
        return val == 0


class Addition(BinaryOp):
    MNEUMONIC = "add"
    OPCODE = 9

    def compute(self, vb, vc):
        return core.word(vb + vc)


class Multiplication(BinaryOp):
    MNEUMONIC = "mult"
    OPCODE = 10

    def compute(self, vb, vc):
        return core.word(vb * vc)


class Modulo(BinaryOp):
    MNEUMONIC = "mod"
    OPCODE = 11

    def compute(self, vb, vc):
        if vc == 0:
            raise core.DivisionByZero('{} mod 0'.format(vb))

        return vb % vc


class And(BinaryOp):
    MNEUMONIC = "and"
    OPCODE = 12

    def compute(self, vb, vc):
        return vb & vc


class Or(BinaryOp):
    MNEUMONIC = "or"
    OPCODE = 13

    def compute(self, vb, vc):
        return vb | vc


class Not(Opcode):
    MNEUMONIC = "not"
    OPCODE = 14
    OPERANDS = (REG, VAL)

    def execute(self, machine, pc):
        val = self.b.resolve(machine.registers)
        machine.registers.write(self.a.index, ~val & core.WORD_MASK)
        return pc + self.size


class ReadMemory(Opcode):
    MNEUMONIC = "rmem"
    OPCODE = 15
    OPERANDS = (REG, VAL)

    def execute(self, machine, pc):
        val = machine.memory.read(self.b.resolve(machine.registers))
        machine.registers.write(self.a.index, val)
        return pc + self.size


class WriteMemory(Opcode):
    MNEUMONIC = "wmem"
    OPCODE = 16
    OPERANDS = (VAL, VAL)

    def execute(self, machine, pc):
        address = self.a.resolve(machine.registers)
        machine.memory.write(address, self.b.resolve(machine.registers))
        return pc + self.size


class Call(Opcode):
    MNEUMONIC = "call"
    OPCODE = 17
    OPERANDS = (VAL,)

    def execute(self, machine, pc):
        target = self.a.resolve(machine.registers)
        if not 0 <= target < machine.memory.extent:
            raise core.ProgramCounterOutOfBounds(
                    'call target {} outside program of {} words'.format(
                        target,
                        machine.memory.extent,
                        ))

        machine.stack.push(pc + self.size)
        return target


class Return(Opcode):
    MNEUMONIC = "ret"
    OPCODE = 18

    def execute(self, machine, pc):
        return machine.stack.pop()


class Output(Opcode):
    MNEUMONIC = "out"
    OPCODE = 19
    OPERANDS = (VAL,)

    def execute(self, machine, pc):
        machine.write_output(self.a.resolve(machine.registers))
        return pc + self.size


class Input(Opcode):
    MNEUMONIC = "in"
    OPCODE = 20
    OPERANDS = (REG,)

    def execute(self, machine, pc):
        machine.registers.write(self.a.index, machine.read_input())
        return pc + self.size


class Noop(Opcode):
    MNEUMONIC = "noop"
    OPCODE = 21

    def execute(self, machine, pc):
        return pc + self.size


OPCODES = (
        Halt,
        Set,
        Push,
        Pop,
        Equal,
        Greater,
        Jump,
        JumpTrue,
        JumpFalse,
        Addition,
        Multiplication,
        Modulo,
        And,
        Or,
        Not,
        ReadMemory,
        WriteMemory,
        Call,
        Return,
        Output,
        Input,
        Noop,
        )
