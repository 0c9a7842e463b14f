import logging
import sys


class TerminalInput(object):
    def __init__(self, stream=None):
        self.stream = sys.stdin.buffer if stream is None else stream
        self.log = logging.getLogger('svm.terminal')

    def next_byte(self):
        data = self.stream.read(1)
        if not data:
            self.log.debug('end of input')
            return None

        self.log.debug('read {}'.format(data[0]))
        return data[0]


class TerminalOutput(object):
    def __init__(self, stream=None):
        self.stream = sys.stdout if stream is None else stream
        self.log = logging.getLogger('svm.terminal')
        self.buf = list()

    def emit(self, value):
        self.buf.append(value)
        if value == ord('\n'):
            self.flush()

    def flush(self):
        if not self.buf:
            return

        self.log.debug("write {}".format(self.buf))
        self.stream.write(''.join(map(chr, self.buf)))
        self.stream.flush()
        self.buf = list()

    def close(self):
        self.flush()


class ScriptedInput(object):
    """
    Replays a fixed byte string, then hands over to the 'fallback' source if
    there is one.
    """

    def __init__(self, data, fallback=None):
        self.data = bytes(data)
        self.offset = 0
        self.fallback = fallback

    def next_byte(self):
        if self.offset < len(self.data):
            value = self.data[self.offset]
            self.offset += 1
            return value

        if self.fallback is not None:
            return self.fallback.next_byte()

        return None


class CapturedOutput(object):
    def __init__(self):
        self.values = list()

    def emit(self, value):
        self.values.append(value)

    def text(self):
        return ''.join(map(chr, self.values))
