"""
Line editing session that keeps program output off the input line.

A :class:`Session` reads lines from a terminal through a
:class:`~serverline.linereader.LineReader`, renders its input through a
:class:`~serverline.masking.MaskingRenderer` so that secrets are never
echoed, and offers :attr:`Session.stdout` and :attr:`Session.stderr`,
:class:`~serverline.interceptor.OutputInterceptor` streams through which the
program may print at any time: output is drawn above the line being edited,
and the prompt redrawn after it.
"""

# std imports
import collections
import logging
import asyncio
import sys
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

# local
from . import accessories
from .completion import Completer
from .console import Console
from .interceptor import OutputInterceptor
from .linereader import EVENTS as READER_EVENTS, BasicRenderer, LineReader
from .masking import MaskingRenderer
from .terminal import DEFAULT_COLUMNS, Terminal

__all__ = ('Session', 'InitializationError', 'MASK_MESSAGE', 'MIN_PYTHON')

CONFIG = collections.namedtuple(
    "CONFIG",
    [
        "prompt",
        "force_terminal_context",
        "color_mode",
        "inspect_depth",
        "ignore_errors",
        "redirect_stdio",
        "logger",
    ],
)(
    prompt="> ",
    force_terminal_context=False,
    color_mode="auto",
    inspect_depth=2,
    ignore_errors=True,
    redirect_stdio=False,
    logger=None,
)

#: Prompt displayed by :meth:`Session.set_muted` when no message is given.
MASK_MESSAGE = '> [hidden]'

#: Minimum interpreter version, see :meth:`Session.is_compatible`.
MIN_PYTHON = (3, 8)

#: Events handled by the session itself, others are forwarded to the reader.
SESSION_EVENTS = ('line', 'interrupt', 'completion_requested')

logger = logging.getLogger('serverline.session')

# The session attached to the process standard streams, and the asyncio
# streams connected to them, which can be connected only once per loop.
_process_owner: Optional["Session"] = None
_process_stdio: Optional[Tuple[Any, Tuple[Any, Any, Any]]] = None


class InitializationError(RuntimeError):
    """A session could not be initialized."""


async def _connect_process_stdio(terminal: Terminal) -> Tuple[Any, Any, Any]:
    global _process_stdio
    loop = asyncio.get_event_loop()
    if _process_stdio is None or _process_stdio[0] is not loop:
        _process_stdio = (loop, await terminal.make_stdio())
    return _process_stdio[1]


class Session:
    """
    Interactive line editing session.

    By default the session attaches to the process standard streams, and
    only one session may do so at a time.  For other streams, or testing,
    give ``stdin`` and ``stdout``:

    :param stdin: ``asyncio.StreamReader``-like input.
    :param stdout: ``asyncio.StreamWriter``-like output.
    :param stderr: ``asyncio.StreamWriter``-like error output, defaults to
        ``stdout``.
    :param bool istty: whether the given streams are a terminal.
    :param columns: terminal width of the given streams, int or callable.
    """

    def __init__(
        self,
        stdin: Any = None,
        stdout: Any = None,
        stderr: Any = None,
        istty: bool = False,
        columns: Union[int, Callable[[], int], None] = None,
        log: logging.Logger = logger,
    ) -> None:
        if (stdin is None) != (stdout is None):
            raise ValueError('stdin and stdout must be given together')
        self._stdin = stdin
        self._stdout_writer = stdout
        self._stderr_writer = stderr
        self._istty = istty
        self._columns = columns
        self.log = log

        #: Intercepted output streams, set by :meth:`init`.
        self.stdout: Optional[OutputInterceptor] = None
        self.stderr: Optional[OutputInterceptor] = None
        #: :class:`~serverline.console.Console` writing to the intercepted
        #: streams, set by :meth:`init`.
        self.console: Optional[Console] = None

        self._reader: Optional[LineReader] = None
        self._terminal: Optional[Terminal] = None
        self._prompt = CONFIG.prompt
        self._mask_message = MASK_MESSAGE
        self._hide_prompt = False
        self._muted = False
        self._completions: List[str] = []
        self._fix_interrupt_on_question = False
        self._callbacks: Dict[str, List[Callable[..., Any]]] = {
            name: [] for name in SESSION_EVENTS}
        self._forwarded: List[Tuple[str, Callable[..., Any]]] = []
        self._loggers: List[Tuple[logging.Logger, logging.Handler]] = []
        self._saved_stdio: Optional[Tuple[Any, Any]] = None

    @property
    def uses_process_streams(self) -> bool:
        """Whether this session attaches to the process standard streams."""
        return self._stdin is None

    @staticmethod
    def is_compatible(with_err: bool = True) -> bool:
        """
        Return whether the interpreter is at least :data:`MIN_PYTHON`.

        :raises InitializationError: when not, and ``with_err`` is set.
        """
        if tuple(sys.version_info[:2]) < MIN_PYTHON:
            if with_err:
                raise InitializationError(
                    'serverline requires python >= {0}'.format(
                        '.'.join(map(str, MIN_PYTHON))))
            return False
        return True

    async def init(
        self,
        options: Union[str, Dict[str, Any], None] = None,
        with_warn: bool = True,
        **kwds: Any,
    ) -> None:
        """
        Begin the session: attach streams and display the prompt.

        :param options: prompt string, or mapping of options named by
            ``CONFIG``; keyword arguments are merged over it.
        :param bool with_warn: warn when not attached to a terminal.
        :raises InitializationError: when already initialized, or another
            session is attached to the process streams.
        :raises TypeError: for unknown option names.
        """
        global _process_owner
        if self._reader is not None:
            raise InitializationError(
                'Session already initialized, close() it first.')
        if isinstance(options, str):
            options = {'prompt': options}
        cfg = CONFIG._asdict()
        cfg.update(options or {})
        cfg.update(kwds)
        unknown = sorted(set(cfg) - set(CONFIG._fields))
        if unknown:
            raise TypeError('unexpected option(s): {0}'.format(', '.join(unknown)))

        if self.uses_process_streams:
            if _process_owner is not None:
                raise InitializationError(
                    'Another Session is attached to the process streams.')
            _process_owner = self
            try:
                terminal = Terminal(log=self.log)
                stdin, out_writer, err_writer = await _connect_process_stdio(terminal)
            except BaseException:
                _process_owner = None
                raise
            istty = terminal.istty
            # input stays in canonical mode unless lines are edited in place.
            terminal.raw_mode = bool(istty or cfg['force_terminal_context'])
            self._terminal = terminal

            def columns() -> int:
                return terminal.columns
        else:
            stdin, out_writer = self._stdin, self._stdout_writer
            err_writer = self._stderr_writer or out_writer
            istty = self._istty
            columns = self._columns or DEFAULT_COLUMNS

        try:
            if self._terminal is not None:
                self._terminal.__enter__()
            self._begin(cfg, with_warn, stdin, out_writer, err_writer,
                        bool(istty or cfg['force_terminal_context']), columns)
        except BaseException:
            self._release()
            self.stdout = self.stderr = self.console = None
            raise

    def _begin(self, cfg: Dict[str, Any], with_warn: bool, stdin: Any,
               out_writer: Any, err_writer: Any, terminal: bool,
               columns: Union[int, Callable[[], int]]) -> None:
        self._prompt = cfg['prompt']
        self._reader = reader = LineReader(
            stdin, out_writer,
            terminal=terminal,
            prompt=self._mask_message if self._muted else self._prompt,
            columns=columns,
            history_filter=self.is_muted,
        )
        self.log.debug('init: %r', reader)

        self.stdout = OutputInterceptor('stdout', out_writer, reader)
        self.stderr = OutputInterceptor('stderr', err_writer, reader)
        self.console = Console(self.stdout, self.stderr,
                               color_mode=cfg['color_mode'],
                               inspect_depth=cfg['inspect_depth'],
                               ignore_errors=cfg['ignore_errors'])
        if with_warn and not reader.terminal:
            self.console.warn(
                'WARN: Compatibility mode! The current context is not a '
                'terminal. This may occur when you redirect terminal output '
                'into a file.')
            self.console.warn(
                'You can try to define `force_terminal_context=True`.')

        reader.completer = Completer(lambda: self._completions, self._emit,
                                     self.console, lambda: reader.columns)
        reader.renderer = MaskingRenderer(BasicRenderer(), self.is_muted)

        if cfg['redirect_stdio']:
            self._saved_stdio = (sys.stdout, sys.stderr)
            sys.stdout, sys.stderr = self.stdout, self.stderr
        if cfg['logger'] is not None:
            self.attach_logger(cfg['logger'])

        self._init_events()
        reader.start()

    def _init_events(self) -> None:
        reader = self._reader
        reader.on('line', self._on_line)
        reader.on('interrupt', self._on_interrupt)
        reader.on('data', self._on_data)
        reader.on('close', self._on_close)
        for event_name, func in self._forwarded:
            reader.on(event_name, func)
        reader.prompt()

    # Reader callbacks
    #
    def _on_line(self, line: str) -> None:
        reader = self._reader
        if self._hide_prompt and reader.terminal:
            reader.write_control('\x1b[A\x1b[K')
        self._emit('line', line)
        if reader.terminal and not reader.closed:
            reader.prompt()

    def _on_interrupt(self) -> None:
        reader = self._reader
        self._fix_interrupt_on_question = reader.question_pending
        if reader.terminal:
            reader.line = ''
            reader.cursor = 0
        if not self._emit('interrupt'):
            self.log.debug('interrupt without callback, exiting.')
            self.close()
            sys.exit(0)

    def _on_data(self, data: str) -> None:
        # ^C while a question is pending answers it empty, the reader would
        # otherwise be left waiting for the answer.
        reader = self._reader
        if (data == '\x03' and self._fix_interrupt_on_question
                and reader is not None and not reader.closed):
            reader.submit_line('')
            reader.refresh_line()
        self._fix_interrupt_on_question = False

    def _on_close(self) -> None:
        self._release()
        self.log.debug('closed.')

    def _release(self) -> None:
        global _process_owner
        for log, handler in self._loggers:
            log.removeHandler(handler)
        del self._loggers[:]
        if self._saved_stdio is not None:
            sys.stdout, sys.stderr = self._saved_stdio
            self._saved_stdio = None
        for stream in (self.stdout, self.stderr):
            if stream is not None:
                stream.flush()
        if self._terminal is not None:
            self._terminal.__exit__(None, None, None)
            self._terminal = None
        if _process_owner is self:
            _process_owner = None
        self._fix_interrupt_on_question = False
        self._reader = None

    # Questions
    #
    def question(self, query: str, callback: Callable[[str], Any]) -> None:
        """Ask ``query``, delivering the answer to ``callback``."""
        reader = self._require_reader()

        def _on_answer(value: str) -> None:
            callback(value)
            if (reader.terminal and not reader.closed
                    and not reader.question_pending):
                reader.prompt()

        reader.question(query, _on_answer)

    def secret(self, query: str, callback: Callable[[str], Any]) -> None:
        """
        Ask ``query`` with masked input, delivering the answer to ``callback``.

        Input is masked only for this question, the prior muted state is
        restored before ``callback`` is called.  The answer is never stored
        in history.
        """
        reader = self._require_reader()
        if reader.question_pending:
            self.log.debug('secret ignored, a question is pending: %r', query)
            return
        toggle_after_answer = not self._muted
        self._muted = True

        def _on_answer(value: str) -> None:
            if toggle_after_answer:
                self._muted = False
            callback(value)

        self.question(query, _on_answer)

    def is_muted(self) -> bool:
        return self._muted

    # Lifecycle
    #
    def close(self) -> bool:
        """Close the session, return ``False`` if it was not active."""
        if self._reader is None:
            return False
        self._reader.close()
        return True

    def pause(self) -> bool:
        """Pause input, return ``False`` if the session is not active."""
        if self._reader is None:
            return False
        self._reader.pause()
        return True

    def resume(self) -> bool:
        """Resume input, return ``False`` if the session is not active."""
        if self._reader is None:
            return False
        self._reader.resume()
        return True

    async def wait_closed(self) -> None:
        """Wait until the session is closed."""
        if self._reader is not None:
            await self._reader.wait_closed()

    # Events
    #
    def on(self, event_name: str, func: Callable[..., Any]) -> "Session":
        """
        Register ``func`` as a callback for ``event_name``.

        ``'line'`` callbacks receive each submitted line, ``'interrupt'``
        callbacks are called on ^C, which otherwise exits the process, and
        ``'completion_requested'`` callbacks receive a
        :class:`~serverline.completion.CompletionRequest` they may modify.
        Other event names are forwarded to
        :class:`~serverline.linereader.LineReader`, also across re-init.

        :raises ValueError: for names that neither the session nor the
            reader emits, see :data:`~serverline.linereader.EVENTS`.
        """
        assert callable(func), ('Argument func must be callable')
        if event_name in self._callbacks:
            self._callbacks[event_name].append(func)
        elif event_name in READER_EVENTS:
            self._forwarded.append((event_name, func))
            if self._reader is not None:
                self._reader.on(event_name, func)
        else:
            raise ValueError('unknown event: {0!r}'.format(event_name))
        return self

    def _emit(self, event_name: str, *args: Any) -> bool:
        callbacks = list(self._callbacks[event_name])
        for func in callbacks:
            func(*args)
        return bool(callbacks)

    # Logging
    #
    def attach_logger(
        self,
        log: Union[logging.Logger, str],
        level: Union[int, str, None] = None,
        logfmt: str = accessories._DEFAULT_LOGFMT,
    ) -> logging.Handler:
        """
        Route records of ``log`` through :attr:`stderr` until closed.

        :param log: logger, or logger name.
        :returns: the handler added to ``log``.
        """
        if self.stderr is None or self._reader is None:
            raise InitializationError('Session is not initialized.')
        if isinstance(log, str):
            log = logging.getLogger(log)
        handler = logging.StreamHandler(self.stderr)
        handler.setFormatter(logging.Formatter(logfmt))
        if level is not None:
            handler.setLevel(level)
        log.addHandler(handler)
        self._loggers.append((log, handler))
        return handler

    # Setters
    #
    def set_prompt(self, prompt: str, hide_prompt: bool = False) -> str:
        """
        Set the prompt, returning it.

        :param bool hide_prompt: erase each submitted line from the screen.
        """
        self._prompt = prompt
        self._hide_prompt = hide_prompt
        if self._reader is not None:
            self._reader.set_prompt(prompt)
        return self._prompt

    def set_muted(self, enabled: bool, msg: Optional[str] = None) -> bool:
        """
        Set whether input is masked, returning the muted state.

        While muted, ``msg`` (default :data:`MASK_MESSAGE`) is the prompt.
        """
        self._muted = bool(enabled)
        self._mask_message = msg if msg and isinstance(msg, str) else MASK_MESSAGE
        if self._reader is not None:
            self._reader.set_prompt(
                self._mask_message if self._muted else self._prompt)
        return self._muted

    def set_completions(self, completions: Any) -> List[str]:
        """
        Set completion candidates, returning the candidate list.

        Values other than a list or tuple leave the candidates unchanged.
        """
        if isinstance(completions, (list, tuple)):
            self._completions = list(completions)
        else:
            self.log.debug('set_completions ignored: %r', completions)
        return self._completions

    def set_history(self, history: Any) -> bool:
        """
        Replace input history with list ``history``.

        :returns: whether history is supported, that is, attached to a
            terminal.
        """
        reader = self._reader
        if reader is None or not reader.terminal:
            return False
        if isinstance(history, list):
            reader.history = history
        return True

    # Getters
    #
    def get_prompt(self) -> str:
        return self._prompt

    def get_completions(self) -> List[str]:
        return self._completions

    def get_history(self) -> List[str]:
        """Return input history, oldest first, empty without a terminal."""
        reader = self._reader
        if reader is None or not reader.terminal:
            return []
        return reader.history

    def get_collection(self) -> Dict[str, Optional[OutputInterceptor]]:
        """Return the intercepted ``stdout`` and ``stderr`` streams."""
        return {'stdout': self.stdout, 'stderr': self.stderr}

    def get_reader(self) -> Optional[LineReader]:
        return self._reader

    def _require_reader(self) -> LineReader:
        if self._reader is None:
            raise InitializationError('Session is not initialized.')
        return self._reader

    def __repr__(self) -> str:
        return '<{0} active={1} muted={2} prompt={3!r}>'.format(
            self.__class__.__name__, self._reader is not None, self._muted,
            self._prompt)
