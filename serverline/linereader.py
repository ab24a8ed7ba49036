"""Line editing input source for interactive terminal sessions."""

# std imports
import asyncio
import codecs
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

# 3rd party
from prompt_toolkit.input.vt100_parser import Vt100Parser
from prompt_toolkit.keys import Keys

# local
from .accessories import display_width, name_unicode

__all__ = ('LineReader', 'BasicRenderer')

CR, LF = '\r\n'

#: Native events a :class:`LineReader` emits.
EVENTS = ('line', 'interrupt', 'data', 'pause', 'resume', 'close')

logger = logging.getLogger('serverline.linereader')


class BasicRenderer:
    """
    Renders a :class:`LineReader` prompt and buffer to its output.

    :meth:`render` redraws the prompt and current line; :meth:`write_raw`
    writes echoed text.  :meth:`displayed_line` returns the line as it is
    drawn after the prompt.  Wrapping renderers, such as
    :class:`~serverline.masking.MaskingRenderer`, implement the same methods
    and delegate to an inner renderer.
    """

    def render(self, reader: "LineReader") -> None:
        """Redraw prompt and line, leaving the cursor at its position."""
        line = reader.prompt_text + reader.line
        end_rows, end_cols = reader.displayed_pos(line)
        cur_rows, cur_cols = reader.cursor_pos()

        seq = ''
        if reader.prev_rows > 0:
            seq += '\x1b[{0}A'.format(reader.prev_rows)
        seq += '\r\x1b[0J'
        reader.write_control(seq)
        reader.write_to_output(line)

        # force the terminal to allocate a new row when the line exactly
        # fills the last one.
        seq = ' ' if end_cols == 0 else ''
        seq += '\x1b[{0}G'.format(cur_cols + 1)
        if end_rows - cur_rows > 0:
            seq += '\x1b[{0}A'.format(end_rows - cur_rows)
        reader.write_control(seq)
        reader.prev_rows = cur_rows

    def write_raw(self, reader: "LineReader", text: str) -> None:
        """Write ``text`` to the reader's output unchanged."""
        reader.output.write(text.encode(reader.encoding, reader.encoding_errors))

    def displayed_line(self, reader: "LineReader") -> str:
        """Return the line text as drawn after the prompt."""
        return reader.line


class LineReader:
    """
    Asynchronous readline-alike reading lines from an input stream.

    In terminal mode, input is decoded into key presses by
    :class:`prompt_toolkit.input.vt100_parser.Vt100Parser` and edited in
    place with echo; otherwise input is only split into lines.

    :param input: ``asyncio.StreamReader``-like object, ``await read(n)``
        returns bytes and ``b''`` at end of input.
    :param output: ``asyncio.StreamWriter``-like object with ``write(bytes)``
        and ``await drain()``.
    :param bool terminal: whether ``output`` is an interactive terminal.
    :param str prompt: initial prompt string.
    :param completer: callable receiving the text left of the cursor and
        returning ``(hits, matched)``.
    :param columns: terminal width, as int or zero-argument callable.
    :param int history_size: maximum number of history entries kept.
    :param history_filter: callable, when it returns ``True`` at the time a
        line is submitted, the line is not stored in history.
    """

    #: Number of bytes requested per read of input.
    read_size = 2**12

    def __init__(
        self,
        input: Any,
        output: Any,
        terminal: bool = False,
        prompt: str = '> ',
        completer: Optional[Callable[[str], Tuple[List[str], str]]] = None,
        columns: Union[int, Callable[[], int]] = 80,
        history_size: int = 30,
        history_filter: Optional[Callable[[], bool]] = None,
        encoding: str = 'utf8',
        encoding_errors: str = 'replace',
        log: logging.Logger = logger,
    ) -> None:
        self.input = input
        self.output = output
        self.terminal = terminal
        self.prompt_text = prompt
        self.completer = completer
        self._columns = columns
        self.history: List[str] = []
        self.history_size = history_size
        self.history_filter = history_filter
        self.encoding = encoding
        self.encoding_errors = encoding_errors
        self.log = log

        self.renderer: Any = BasicRenderer()
        self.line = ''
        self.cursor = 0
        self.prev_rows = 0
        self.paused = False
        self.closed = False

        self._callbacks: Dict[str, List[Callable[..., Any]]] = {
            name: [] for name in EVENTS}
        self._history_index = -1
        self._question_callback: Optional[Callable[[str], Any]] = None
        self._old_prompt = prompt
        self._saw_return = False
        self._partial = ''
        self._decoder = codecs.getincrementaldecoder(encoding)(
            errors=encoding_errors)
        self._parser = Vt100Parser(self._on_keypress)
        self._task: Optional["asyncio.Task[None]"] = None
        self._resumed: Optional[asyncio.Event] = None
        self._closed_waiter: Optional["asyncio.Future[None]"] = None

    # Events
    #
    def on(self, event_name: str, func: Callable[..., Any]) -> "LineReader":
        """Register ``func`` as a callback for ``event_name``."""
        assert callable(func), ('Argument func must be callable')
        if event_name not in self._callbacks:
            raise ValueError('unknown event: {0!r}, expected one of {1}'
                             .format(event_name, ', '.join(EVENTS)))
        self._callbacks[event_name].append(func)
        return self

    def _emit(self, event_name: str, *args: Any) -> bool:
        """Call each callback of ``event_name``, return whether any exist."""
        callbacks = list(self._callbacks[event_name])
        for func in callbacks:
            func(*args)
        return bool(callbacks)

    # Geometry
    #
    @property
    def columns(self) -> int:
        """Current terminal width."""
        cols = self._columns() if callable(self._columns) else self._columns
        return max(1, cols)

    def displayed_pos(self, text: str) -> Tuple[int, int]:
        """Return ``(rows, cols)`` position reached by writing ``text``."""
        return divmod(display_width(text), self.columns)

    def cursor_pos(self) -> Tuple[int, int]:
        """Return ``(rows, cols)`` of the cursor relative to the prompt."""
        return self.displayed_pos(self.prompt_text + self.line[:self.cursor])

    # Output
    #
    def write_control(self, seq: str) -> None:
        """Write cursor movement sequence ``seq``, bypassing the renderer."""
        if seq:
            self.output.write(seq.encode(self.encoding, self.encoding_errors))

    def write_to_output(self, text: str) -> None:
        """Write echo ``text`` through the renderer."""
        self.renderer.write_raw(self, text)

    def refresh_line(self) -> None:
        """Redraw prompt and current line through the renderer."""
        self.renderer.render(self)

    # Prompt
    #
    def set_prompt(self, prompt: str) -> None:
        self.prompt_text = prompt

    def get_prompt(self) -> str:
        return self.prompt_text

    def prompt(self, preserve_cursor: bool = False) -> None:
        """Display the prompt, resuming input when paused."""
        if self.paused:
            self.resume()
        if self.terminal:
            if not preserve_cursor:
                self.cursor = 0
            self.refresh_line()
        else:
            self.write_to_output(self.prompt_text)

    @property
    def question_pending(self) -> bool:
        """Whether a :meth:`question` awaits its answer."""
        return self._question_callback is not None

    def question(self, query: str, callback: Callable[[str], Any]) -> None:
        """
        Display ``query`` as prompt, deliver the next line to ``callback``.

        The answer does not fire the ``line`` event.  While a question is
        pending, further questions are ignored.
        """
        assert callable(callback), ('Argument callback must be callable')
        if self._question_callback is not None:
            self.log.debug('question ignored, another is pending: %r', query)
            return
        self._old_prompt = self.prompt_text
        self.set_prompt(query)
        self._question_callback = callback
        self.prompt()

    # Lines
    #
    def submit_line(self, line: str) -> None:
        """Deliver ``line`` to a pending question or the ``line`` event."""
        if self._question_callback is not None:
            callback, self._question_callback = self._question_callback, None
            self.set_prompt(self._old_prompt)
            callback(line)
        else:
            self._emit('line', line)

    def clear_line(self) -> None:
        """Move the cursor past the current line and begin a new row."""
        end_rows, _ = self.displayed_pos(self.prompt_text + self.line)
        cur_rows, _ = self.cursor_pos()
        if end_rows > cur_rows:
            self.write_control('\x1b[{0}B'.format(end_rows - cur_rows))
        self.write_to_output(CR + LF)
        self.line = ''
        self.cursor = 0
        self.prev_rows = 0

    def _add_history(self) -> str:
        line = self.line
        if not self.terminal or not line.strip() or self.history_size <= 0:
            return line
        if self.history_filter is not None and self.history_filter():
            self.log.debug('history: entry withheld by filter')
        elif not self.history or self.history[-1] != line:
            self.history.append(line)
            del self.history[:-self.history_size]
        self._history_index = -1
        return line

    def _on_enter(self) -> None:
        line = self._add_history()
        self.clear_line()
        self.submit_line(line)

    # Input
    #
    def feed(self, text: str) -> None:
        """Process decoded input ``text``, then emit the ``data`` event."""
        if self.closed:
            return
        if self.terminal:
            self._parser.feed_and_flush(text)
        else:
            self._normal_write(text)
        self._emit('data', text)

    def _normal_write(self, text: str) -> None:
        if self._saw_return and text.startswith(LF):
            text = text[1:]
        self._saw_return = text.endswith(CR)
        text = self._partial + text
        lines = text.replace(CR + LF, LF).replace(CR, LF).split(LF)
        self._partial = lines.pop()
        for line in lines:
            if self.closed:
                break
            self.submit_line(line)

    def _on_keypress(self, key_press: Any) -> None:
        key, data = key_press.key, key_press.data
        saw_return = self._saw_return
        self._saw_return = key == Keys.ControlM

        if key == Keys.ControlM:
            self._on_enter()
        elif key == Keys.ControlJ:
            # LF of a CR+LF pair was already handled by CR.
            if not saw_return:
                self._on_enter()
        elif key == Keys.ControlC:
            self._on_interrupt()
        elif key == Keys.ControlD:
            if not self.line:
                self.log.debug('^D on empty line')
                self.close()
            else:
                self._delete_right()
        elif key == Keys.ControlH:
            self._delete_left()
        elif key == Keys.Delete:
            self._delete_right()
        elif key == Keys.ControlI:
            if self.completer is not None:
                self._tab_complete()
            else:
                self._insert_string('\t')
        elif key in (Keys.ControlA, Keys.Home):
            self._move_cursor(-self.cursor)
        elif key in (Keys.ControlE, Keys.End):
            self._move_cursor(len(self.line) - self.cursor)
        elif key in (Keys.ControlB, Keys.Left):
            self._move_cursor(-1)
        elif key in (Keys.ControlF, Keys.Right):
            self._move_cursor(1)
        elif key == Keys.ControlLeft:
            self._move_cursor(self._word_left() - self.cursor)
        elif key == Keys.ControlRight:
            self._move_cursor(self._word_right() - self.cursor)
        elif key == Keys.ControlU:
            self._delete_line_left()
        elif key == Keys.ControlK:
            self._delete_line_right()
        elif key == Keys.ControlW:
            self._delete_word_left()
        elif key in (Keys.ControlP, Keys.Up):
            self._history_prev()
        elif key in (Keys.ControlN, Keys.Down):
            self._history_next()
        elif key == Keys.ControlL:
            self.write_control('\x1b[1;1H\x1b[0J')
            self.prev_rows = 0
            self.refresh_line()
        elif isinstance(key, str) and not isinstance(key, Keys) and key.isprintable():
            self._insert_string(data)
        else:
            self.log.debug('key ignored: %s (%s)', getattr(key, 'value', key),
                           ''.join(name_unicode(char) for char in data))

    def _on_interrupt(self) -> None:
        if not self._emit('interrupt'):
            self.log.debug('^C without interrupt callback, closing')
            self.close()

    # Editing
    #
    def _insert_string(self, text: str) -> None:
        if self.cursor < len(self.line):
            self.line = self.line[:self.cursor] + text + self.line[self.cursor:]
            self.cursor += len(text)
            self.refresh_line()
        else:
            self.line += text
            self.cursor += len(text)
            if self.cursor_pos()[1] == 0:
                self.refresh_line()
            else:
                self.write_to_output(text)

    def _move_cursor(self, dx: int) -> None:
        cursor = min(max(0, self.cursor + dx), len(self.line))
        if cursor != self.cursor:
            self.cursor = cursor
            self.refresh_line()

    def _word_left(self) -> int:
        pos = self.cursor
        while pos > 0 and self.line[pos - 1].isspace():
            pos -= 1
        while pos > 0 and not self.line[pos - 1].isspace():
            pos -= 1
        return pos

    def _word_right(self) -> int:
        pos = self.cursor
        while pos < len(self.line) and self.line[pos].isspace():
            pos += 1
        while pos < len(self.line) and not self.line[pos].isspace():
            pos += 1
        return pos

    def _delete_left(self) -> None:
        if self.cursor > 0:
            self.line = self.line[:self.cursor - 1] + self.line[self.cursor:]
            self.cursor -= 1
            self.refresh_line()

    def _delete_right(self) -> None:
        if self.cursor < len(self.line):
            self.line = self.line[:self.cursor] + self.line[self.cursor + 1:]
            self.refresh_line()

    def _delete_word_left(self) -> None:
        pos = self._word_left()
        if pos < self.cursor:
            self.line = self.line[:pos] + self.line[self.cursor:]
            self.cursor = pos
            self.refresh_line()

    def _delete_line_left(self) -> None:
        self.line = self.line[self.cursor:]
        self.cursor = 0
        self.refresh_line()

    def _delete_line_right(self) -> None:
        self.line = self.line[:self.cursor]
        self.refresh_line()

    def _history_prev(self) -> None:
        if self._history_index + 1 < len(self.history):
            self._history_index += 1
            self.line = self.history[-1 - self._history_index]
            self.cursor = len(self.line)
            self.refresh_line()

    def _history_next(self) -> None:
        if self._history_index > 0:
            self._history_index -= 1
            self.line = self.history[-1 - self._history_index]
        elif self._history_index == 0:
            self._history_index = -1
            self.line = ''
        else:
            return
        self.cursor = len(self.line)
        self.refresh_line()

    def _tab_complete(self) -> None:
        hits, matched = self.completer(self.line[:self.cursor])
        self.log.debug('complete: %r -> %r', matched, hits)
        if len(hits) != 1:
            return
        (hit,) = hits
        if hit.startswith(matched):
            if len(hit) > len(matched):
                self._insert_string(hit[len(matched):])
        else:
            self.line = hit + self.line[self.cursor:]
            self.cursor = len(hit)
            self.refresh_line()

    # Lifecycle
    #
    def start(self) -> "asyncio.Task[None]":
        """Begin reading input in a task of the running event loop."""
        assert self._task is None, ('LineReader already started')
        loop = asyncio.get_event_loop()
        self._resumed = asyncio.Event()
        if not self.paused:
            self._resumed.set()
        self._closed_waiter = loop.create_future()
        if self.closed:
            self._closed_waiter.set_result(None)
        self._task = loop.create_task(self._read_loop())
        return self._task

    async def _read_loop(self) -> None:
        while not self.closed:
            await self._resumed.wait()
            data = await self.input.read(self.read_size)
            if not data:
                self.log.debug('EOF from input')
                self._end_of_input()
                break
            await self._resumed.wait()
            self.feed(self._decoder.decode(data))

    def _end_of_input(self) -> None:
        remaining = self._partial + self._decoder.decode(b'', final=True)
        self._partial = ''
        if remaining and not self.terminal:
            self.submit_line(remaining)
        self.close()

    def pause(self) -> bool:
        """Stop consuming input, emitting ``pause``."""
        if self.paused:
            return False
        self.paused = True
        if self._resumed is not None:
            self._resumed.clear()
        self._emit('pause')
        return True

    def resume(self) -> bool:
        """Resume consuming input, emitting ``resume``."""
        if not self.paused or self.closed:
            return False
        self.paused = False
        if self._resumed is not None:
            self._resumed.set()
        self._emit('resume')
        return True

    def close(self) -> None:
        """Stop reading input for good and emit ``close``."""
        if self.closed:
            return
        self.pause()
        self.closed = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._emit('close')
        if self._closed_waiter is not None and not self._closed_waiter.done():
            self._closed_waiter.set_result(None)

    async def wait_closed(self) -> None:
        """Wait until :meth:`close` has been called."""
        if self._closed_waiter is not None:
            await self._closed_waiter

    def __repr__(self) -> str:
        return ('<{0} terminal={1} closed={2} prompt={3!r} line={4!r} '
                'cursor={5}>'.format(self.__class__.__name__, self.terminal,
                                     self.closed, self.prompt_text, self.line,
                                     self.cursor))
