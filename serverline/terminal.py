# std imports
import collections
import logging
import asyncio
import struct
import sys
import os

__all__ = ('Terminal',)

logger = logging.getLogger('serverline.terminal')

#: Columns assumed when the output stream is not a terminal.
DEFAULT_COLUMNS = 80

if sys.platform == "win32":

    class Terminal(object):
        def __init__(self, *args, **kwargs):
            raise NotImplementedError(
                "win32 not yet supported as a line editing terminal. "
                "Please contribute!"
            )

else:
    import termios
    import fcntl

    class Terminal(object):
        """
        Context manager for the process terminal, yielding asyncio stdio.

        When standard input is attached to a terminal and :attr:`raw_mode` is
        set, it is placed into a raw-like mode for the duration of the
        context: canonical input, echo and signal generation are disabled, so
        that keystrokes such as ``^C`` arrive as characters and line editing
        is performed by :class:`~serverline.linereader.LineReader`.  Output
        post-processing is kept, so ``'\\n'`` still begins a new line.
        """

        ModeDef = collections.namedtuple(
            "mode", ["iflag", "oflag", "cflag", "lflag", "ispeed", "ospeed", "cc"]
        )

        def __init__(self, stdin=None, stdout=None, stderr=None, raw_mode=True,
                     log=logger):
            self.stdin = stdin or sys.stdin
            self.stdout = stdout or sys.stdout
            self.stderr = stderr or sys.stderr
            #: Whether entering the context switches input to raw mode.
            self.raw_mode = raw_mode
            self.log = log
            self._fileno = self.stdin.fileno()
            self._save_mode = None

        @property
        def input_istty(self):
            """Whether standard input is attached to a terminal."""
            return os.isatty(self._fileno)

        @property
        def istty(self):
            """Whether standard output is attached to a terminal."""
            try:
                return os.isatty(self.stdout.fileno())
            except (AttributeError, ValueError, OSError):
                return False

        def __enter__(self):
            self._save_mode = self.get_mode() if self.raw_mode else None
            if self._save_mode is not None:
                self.set_mode(self.determine_mode(self._save_mode))
            return self

        def __exit__(self, *_):
            if self._save_mode is not None:
                termios.tcsetattr(
                    self._fileno, termios.TCSAFLUSH, list(self._save_mode)
                )
                self._save_mode = None

        def get_mode(self):
            if self.input_istty:
                return self.ModeDef(*termios.tcgetattr(self._fileno))
            return None

        def set_mode(self, mode):
            termios.tcsetattr(self._fileno, termios.TCSAFLUSH, list(mode))

        @staticmethod
        def determine_mode(mode):
            """
            Return copy of 'mode' suitable for character-at-a-time editing.
            """
            iflag = mode.iflag & ~(
                termios.BRKINT  # Do not send INTR signal on break
                | termios.ICRNL  # Do not map CR to NL on input
                | termios.INPCK  # Disable input parity checking
                | termios.ISTRIP  # Do not strip input characters to 7 bits
                | termios.IXON  # Disable START/STOP output control
            )

            # Select eight bits per byte character size.
            cflag = mode.cflag | termios.CS8

            # Disable canonical input (^H and ^C processing),
            # disable any other special control characters,
            # disable checking for INTR, QUIT, and SUSP input.
            lflag = mode.lflag & ~(
                termios.ICANON | termios.IEXTEN | termios.ISIG | termios.ECHO
            )

            # Keep post-output processing, mapping LF to CRLF.
            oflag = mode.oflag | termios.OPOST | termios.ONLCR

            cc = list(mode.cc)
            cc[termios.VMIN] = 1
            cc[termios.VTIME] = 0

            return Terminal.ModeDef(
                iflag=iflag,
                oflag=oflag,
                cflag=cflag,
                lflag=lflag,
                ispeed=mode.ispeed,
                ospeed=mode.ospeed,
                cc=cc,
            )

        @property
        def columns(self):
            """
            The terminal width in printable character columns as integer:
            if standard output is a terminal, the terminal is queried for its
            size; otherwise the value found in the ``COLUMNS`` environment
            variable is returned.
            """
            if self.istty:
                try:
                    _rows, cols, _xpixels, _ypixels = self._query_term_winsize(
                        self.stdout.fileno())
                    if cols > 0:
                        return cols
                except OSError as err:
                    self.log.debug('TIOCGWINSZ failed: %s', err)
            try:
                cols = int(os.environ.get('COLUMNS', str(DEFAULT_COLUMNS)))
            except ValueError:
                cols = DEFAULT_COLUMNS
            return cols

        @staticmethod
        def _query_term_winsize(tty_fd):
            """
            Return the ``winsize`` struct of the terminal ``tty_fd``.

            The value is returned as its natural 4 unsigned short integers,
            ``(ws_rows, ws_cols, ws_xpixels, ws_ypixels)``.
            """
            val = fcntl.ioctl(tty_fd, termios.TIOCGWINSZ, b'\x00' * 8)
            return struct.unpack('hhhh', val)

        async def make_stdio(self):
            """
            Return (reader, writer, error_writer) for stdin, stdout, stderr.
            """
            reader = asyncio.StreamReader()
            reader_protocol = asyncio.StreamReaderProtocol(reader)

            # In the case of a tty where 0 and 1 are the same open file,
            # writing through stdin lets both pipes share one descriptor.
            write_fobj = self.stdout
            if self.input_istty and os.path.sameopenfile(
                    self._fileno, self.stdout.fileno()):
                write_fobj = self.stdin
            loop = asyncio.get_event_loop()
            writer_transport, writer_protocol = await loop.connect_write_pipe(
                asyncio.streams.FlowControlMixin, write_fobj
            )
            writer = asyncio.StreamWriter(writer_transport, writer_protocol, None, loop)

            err_transport, err_protocol = await loop.connect_write_pipe(
                asyncio.streams.FlowControlMixin, self.stderr
            )
            error_writer = asyncio.StreamWriter(err_transport, err_protocol, None, loop)

            await loop.connect_read_pipe(lambda: reader_protocol, self.stdin)

            return reader, writer, error_writer
