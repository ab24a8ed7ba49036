"""Test accessories for serverline project."""
# std imports
import asyncio
import types

# local
from serverline.linereader import LineReader

__all__ = ('MockWriter', 'make_reader', 'make_session', 'finish')


class MockWriter:
    """``asyncio.StreamWriter``-like object collecting written bytes."""

    def __init__(self, fail=None):
        self.data = bytearray()
        self.drained = 0
        self.fail = fail

    def write(self, data):
        assert isinstance(data, bytes), data
        self.data.extend(data)

    async def drain(self):
        self.drained += 1
        if self.fail is not None:
            raise self.fail

    @property
    def text(self):
        return self.data.decode('utf8')

    def clear(self):
        del self.data[:]


def make_reader(terminal=True, prompt='> ', columns=80, **kwds):
    """Return (reader, writer) for a LineReader fed directly by tests."""
    writer = MockWriter()
    reader_input = types.SimpleNamespace(read=None)
    reader = LineReader(reader_input, writer, terminal=terminal, prompt=prompt,
                        columns=columns, **kwds)
    return reader, writer


async def make_session(*args, istty=True, columns=80, **kwds):
    """Return (session, stdin, writer) of an initialized Session."""
    # local
    from serverline.session import Session

    stdin = asyncio.StreamReader()
    writer = MockWriter()
    session = Session(stdin=stdin, stdout=writer, istty=istty, columns=columns)
    await session.init(*args, **kwds)
    return session, stdin, writer


async def finish(session):
    """Close ``session`` and let its reader task observe cancellation."""
    session.close()
    await asyncio.sleep(0)
