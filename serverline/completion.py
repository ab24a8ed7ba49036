"""Tab completion against a list of candidate strings."""
# std imports
import logging

# local
from .accessories import display_width

__all__ = ('CompletionRequest', 'Completer', 'filter_candidates',
           'wrap_list', 'format_listing')

logger = logging.getLogger('serverline.completion')

#: Bright cyan, and reset, for the suggestion listing.
_SUGGEST, _NORMAL = '\x1b[96m', '\x1b[00m'


class CompletionRequest(object):
    """
    Mutable completion request handed to ``completion_requested`` callbacks.

    :ivar str line: text left of the cursor.  A callback may assign a new
        value, which is then substituted when completion is unresolved.
    :ivar list hits: candidates starting with ``line``.  A callback may
        replace or modify it; a single remaining hit is completed.
    """

    def __init__(self, line, hits):
        self.line = line
        self.hits = hits

    def __repr__(self):
        return '{0}(line={1!r}, hits={2!r})'.format(
            self.__class__.__name__, self.line, self.hits)


def filter_candidates(candidates, line):
    """Return candidates that begin with ``line``, case-sensitive."""
    return [cand for cand in candidates if cand.startswith(line)]


def wrap_list(candidates, width, sep=', '):
    """
    Return ``candidates`` joined by ``sep``, wrapped to fit ``width`` cells.

    Each wrapped line ends with the stripped separator, a comma by default.
    Trailing whitespace of each candidate is removed.  A candidate wider
    than ``width`` is placed alone on its line.

    Example::

        >>> wrap_list(['help', 'hello', 'exit'], 12)
        ['help, hello,', 'exit']
    """
    tail = sep.rstrip()
    lines, current = [], ''
    for cand in candidates:
        cand = cand.rstrip()
        if not current:
            current = cand
            continue
        joined = current + sep + cand
        if display_width(joined + tail) > width:
            lines.append(current + tail)
            current = cand
        else:
            current = joined
    if current:
        lines.append(current)
    return lines


def format_listing(candidates, width):
    """Return the suggestion listing for ``candidates`` as printed text."""
    body = '\n'.join(wrap_list(candidates, width))
    return '{0}Suggest:{1}\n{0}{2}{1}'.format(_SUGGEST, _NORMAL, body)


class Completer(object):
    """
    Completion callable for :class:`~serverline.linereader.LineReader`.

    :param get_candidates: callable returning the candidate list.
    :param emit: callable ``emit(event_name, request)`` notifying
        ``completion_requested`` subscribers.
    :param console: :class:`~serverline.console.Console` receiving the
        suggestion listing, drawn above the input line.
    :param columns: callable returning the terminal width.
    """

    def __init__(self, get_candidates, emit, console, columns, log=logger):
        self.get_candidates = get_candidates
        self.emit = emit
        self.console = console
        self.columns = columns
        self.log = log

    def __call__(self, line):
        """
        Return ``(hits, line)`` for completion of ``line``.

        When exactly one hit remains after ``completion_requested``
        callbacks, it is returned for completion.  Otherwise the hits, or
        every candidate when none matched, are listed, and the request's
        ``line`` is returned as only hit if a callback changed it.
        """
        candidates = list(self.get_candidates())
        request = CompletionRequest(line, filter_candidates(candidates, line))
        self.emit('completion_requested', request)

        hits = list(request.hits)
        self.log.debug('complete %r: %d hits of %d candidates',
                       line, len(hits), len(candidates))
        if len(hits) == 1:
            return hits, line

        listing = format_listing(hits or candidates, self.columns())
        self.console.log(listing)
        if request.line != line:
            return [request.line], line
        return [], line
