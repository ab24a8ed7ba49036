"""Program output drawn above the line being edited."""

# std imports
import asyncio
import collections
import logging
import math
from typing import Any, List, Set

# local
from .accessories import display_width

__all__ = ('OutputFrame', 'OutputInterceptor', 'rows_occupied')

logger = logging.getLogger('serverline.interceptor')

#: One write request: encoded ``data`` bound for the stream named ``stream``.
OutputFrame = collections.namedtuple('OutputFrame', ['data', 'stream'])


def rows_occupied(prompt: str, line: str, columns: int) -> int:
    """
    Return the number of terminal rows used by ``prompt`` and ``line``.

    One extra cell is counted for the cursor following the line.

    Example::

        >>> rows_occupied('> ', 'abc', 80)
        1
        >>> rows_occupied('> ', 'x' * 77, 80)
        1
        >>> rows_occupied('> ', 'x' * 78, 80)
        2
    """
    cells = display_width(prompt) + display_width(line) + 1
    return max(1, math.ceil(cells / max(1, columns)))


class OutputInterceptor:
    """
    Text stream writing above the input line of a line reader.

    While the reader is attached to a terminal and open, each complete line
    of text written is framed by :meth:`before_the_last_line`: the cursor is
    moved to the first row of the prompt, the screen is cleared below, the
    text is written, and rows are reserved for the prompt.  When the
    underlying ``writer`` has drained the frame, the prompt and input line
    are redrawn.  Otherwise, text is passed through unchanged.

    :param str name: name of the target stream, ``'stdout'`` or ``'stderr'``.
    :param writer: ``asyncio.StreamWriter``-like object.
    :param reader: the :class:`~serverline.linereader.LineReader` whose line
        is protected.
    """

    def __init__(
        self,
        name: str,
        writer: Any,
        reader: Any,
        encoding: str = 'utf8',
        errors: str = 'replace',
        log: logging.Logger = logger,
    ) -> None:
        self.name = name
        self.writer = writer
        self.reader = reader
        self.encoding = encoding
        self.errors = errors
        self.log = log
        self._partial = ''
        self._pending: Set["asyncio.Future[None]"] = set()
        self._failures: List[BaseException] = []

    @property
    def _framing(self) -> bool:
        return self.reader.terminal and not self.reader.closed

    def isatty(self) -> bool:
        return self.reader.terminal

    def writable(self) -> bool:
        return True

    def _drawn_rows(self) -> int:
        reader = self.reader
        return rows_occupied(reader.prompt_text,
                             reader.renderer.displayed_line(reader),
                             reader.columns)

    def before_the_last_line(self, text: str) -> str:
        """
        Return ``text`` framed to be written above the input line.

        The cursor moves up from its row to the first row of the prompt, and
        as many rows as the prompt and line occupy on screen are reserved
        below ``text``.
        """
        return ('\n\r\x1b[{0}A\x1b[0J'.format(self.reader.prev_rows + 1) +
                text + '\n' * (self._drawn_rows() - 1))

    def write(self, text: str) -> int:
        """
        Write ``text``, returning its length.

        When framing, text is buffered until a newline; see :meth:`flush`.
        """
        if not isinstance(text, str):
            raise TypeError('write() argument must be str, not {0}'
                            .format(type(text).__name__))
        if not self._framing:
            self.flush()
            if text:
                self._send(text, redraw=False)
            return len(text)
        self._partial += text
        complete, newline, self._partial = self._partial.rpartition('\n')
        if newline:
            self._send(complete + newline, redraw=True)
        return len(text)

    def flush(self) -> None:
        """Send any buffered partial line, terminated by a newline."""
        if self._partial:
            text, self._partial = self._partial + '\n', ''
            self._send(text, redraw=self._framing)

    async def awrite(self, text: str) -> None:
        """Write and flush ``text``, then wait for it to be drawn."""
        self.write(text)
        self.flush()
        await self.drain()

    async def drain(self) -> None:
        """
        Wait for every outstanding frame to be written and redrawn.

        :raises: the first failure of the underlying writer since the last
            call.
        """
        if self._pending:
            await asyncio.wait(list(self._pending))
        if self._failures:
            failure = self._failures[0]
            del self._failures[:]
            raise failure

    def _send(self, text: str, redraw: bool) -> None:
        if redraw:
            text = self.before_the_last_line(text)
        frame = OutputFrame(text.encode(self.encoding, self.errors), self.name)
        self.writer.write(frame.data)
        if redraw:
            # the cursor now rests on the last row reserved for the prompt.
            self.reader.prev_rows = self._drawn_rows() - 1
        task = asyncio.ensure_future(self._complete(redraw))
        self._pending.add(task)
        task.add_done_callback(self._frame_done)

    async def _complete(self, redraw: bool) -> None:
        await self.writer.drain()
        if redraw and not self.reader.closed:
            self.reader.refresh_line()

    def _frame_done(self, task: "asyncio.Future[None]") -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.log.debug('%s: write failed: %s', self.name, exc)
            self._failures.append(exc)

    def __repr__(self) -> str:
        return '<{0} {1} framing={2} pending={3}>'.format(
            self.__class__.__name__, self.name, self._framing,
            len(self._pending))
