"""Masked echo of input, for password-style entry."""

__all__ = ('MaskingRenderer', 'mask_indicator')


#: Glyphs shown for an odd and an even number of typed characters.
INDICATOR_ODD, INDICATOR_EVEN = '=-', '-='


def mask_indicator(prompt, length):
    """
    Return the sequence drawn in place of a masked input line.

    The line is erased and redrawn as ``prompt`` followed by a bracketed
    two-glyph indicator, alternating on the parity of ``length``.  This only
    signals that typing is registered; it does not conceal the input length
    from an observer counting redraws.

    Example::

        >>> mask_indicator('PIN: ', 3)
        '\\x1b[2K\\x1b[200DPIN: [=-]'
    """
    return '\x1b[2K\x1b[200D' + prompt + _indicator(length)


def _indicator(length):
    return '[' + (INDICATOR_ODD if length % 2 == 1 else INDICATOR_EVEN) + ']'


class MaskingRenderer:
    """
    Renderer wrapping another, obscuring echoed input while muted.

    :param inner: renderer providing ``render(reader)`` and
        ``write_raw(reader, text)``, such as
        :class:`~serverline.linereader.BasicRenderer`.
    :param is_muted: callable returning the current muted state.
    """

    def __init__(self, inner, is_muted):
        self.inner = inner
        self.is_muted = is_muted

    def render(self, reader):
        """Redraw through the inner renderer with the line buffer blanked."""
        if not (self.is_muted() and reader.line):
            self.inner.render(reader)
            return
        line = reader.line
        reader.line = ''
        try:
            self.inner.render(reader)
        finally:
            reader.line = line

    def write_raw(self, reader, text):
        """
        Write ``text``, or its masked replacement while muted.

        On a terminal, any write while muted is replaced by
        :func:`mask_indicator`, except the line ending written when a line
        is submitted.  Without a terminal nothing is written while muted.
        """
        if not self.is_muted():
            self.inner.write_raw(reader, text)
        elif reader.terminal:
            if text != '\r\n':
                text = mask_indicator(reader.prompt_text, len(reader.line))
            self.inner.write_raw(reader, text)

    def displayed_line(self, reader):
        """Return the line text as drawn after the prompt."""
        if self.is_muted() and reader.terminal:
            return _indicator(len(reader.line))
        return self.inner.displayed_line(reader)
