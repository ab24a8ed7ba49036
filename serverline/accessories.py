"""Accessory functions."""
# std imports
import importlib.metadata
import logging

# 3rd party
from wcwidth import strip_sequences, wcswidth, wcwidth

__all__ = ('get_version', 'name_unicode', 'make_logger', 'display_width')


def get_version():
    try:
        return importlib.metadata.version("serverline")
    except importlib.metadata.PackageNotFoundError:
        return 'unknown'


def name_unicode(ucs):
    """Return 7-bit ascii printable of any string. """
    # more or less the same as curses.ascii.unctrl -- but curses
    # module is conditionally excluded from many python distributions!
    bits = ord(ucs)
    if 32 <= bits <= 126:
        # ascii printable as one cell, as-is
        rep = chr(bits)
    elif bits == 127:
        rep = "^?"
    elif bits < 32:
        rep = "^" + chr(((bits & 0x7f) | 0x20) + 0x20)
    else:
        rep = r'\x{:02x}'.format(bits)
    return rep


def display_width(text):
    """
    Return the number of terminal cells ``text`` occupies.

    Terminal sequences occupy no cells.  Characters of indeterminate width,
    such as control characters, count as one cell each.

    Example::

        >>> display_width('\x1b[96mok\x1b[00m')
        2
    """
    text = strip_sequences(text)
    width = wcswidth(text)
    if width >= 0:
        return width
    return sum(cells if cells >= 0 else 1
               for cells in (wcwidth(char) for char in text))


_DEFAULT_LOGFMT = ' '.join(('%(asctime)s',
                            '%(levelname)s',
                            '%(filename)s:%(lineno)d',
                            '%(message)s'))


def make_logger(name, loglevel='info', logfile=None, logfmt=_DEFAULT_LOGFMT):
    """Create and return simple logger for given arguments."""
    lvl = getattr(logging, loglevel.upper())
    logging.getLogger().setLevel(lvl)

    _cfg = {'format': logfmt}
    if logfile:
        _cfg['filename'] = logfile
    logging.basicConfig(**_cfg)
    return logging.getLogger(name)
