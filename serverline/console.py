"""Diagnostic output for programs running a line editing session."""
# std imports
import pprint

__all__ = ('Console',)

_STYLES = {
    'warn': '\x1b[33m',
    'error': '\x1b[31m',
}
_NORMAL = '\x1b[0m'


class Console(object):
    """
    Formatted message output to a pair of text streams.

    ``log``, ``info`` and ``debug`` write to ``stdout``; ``warn`` and
    ``error`` write to ``stderr``.  Arguments are joined by a space, strings
    as-is and other values by :func:`pprint.pformat`.

    :param stdout: text stream for ordinary messages.
    :param stderr: text stream for warnings and errors, defaults to
        ``stdout``.
    :param color_mode: ``True`` or ``False`` to force styling of warnings and
        errors on or off, ``'auto'`` to style when the target stream reports
        :meth:`isatty`.
    :param int inspect_depth: nesting depth shown for non-string values,
        ``None`` for unlimited.
    :param bool ignore_errors: discard :class:`OSError` raised by the target
        stream instead of raising it.
    """

    def __init__(self, stdout, stderr=None, color_mode='auto', inspect_depth=2,
                 ignore_errors=True):
        if color_mode not in (True, False, 'auto'):
            raise ValueError('color_mode must be True, False, or "auto", '
                             'got {0!r}'.format(color_mode))
        self.stdout = stdout
        self.stderr = stderr if stderr is not None else stdout
        self.color_mode = color_mode
        self.inspect_depth = inspect_depth
        self.ignore_errors = ignore_errors

    def format(self, *args):
        """Return message text for ``args``."""
        return ' '.join(
            arg if isinstance(arg, str)
            else pprint.pformat(arg, depth=self.inspect_depth)
            for arg in args)

    def _use_color(self, stream):
        if self.color_mode == 'auto':
            isatty = getattr(stream, 'isatty', None)
            return bool(isatty is not None and isatty())
        return self.color_mode

    def _write(self, stream, args, style=None):
        text = self.format(*args)
        if style and self._use_color(stream):
            text = _STYLES[style] + text + _NORMAL
        try:
            stream.write(text + '\n')
            stream.flush()
        except OSError:
            if not self.ignore_errors:
                raise

    def log(self, *args):
        self._write(self.stdout, args)

    info = log
    debug = log

    def warn(self, *args):
        self._write(self.stderr, args, style='warn')

    warning = warn

    def error(self, *args):
        self._write(self.stderr, args, style='error')
