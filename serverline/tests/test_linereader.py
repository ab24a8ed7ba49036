"""Tests for serverline.linereader."""
# std imports
import asyncio

# 3rd party
import pytest

# local
from serverline.linereader import LineReader
from serverline.tests.accessories import MockWriter, make_reader


def _collect(reader, event_name='line'):
    received = []
    reader.on(event_name, lambda *args: received.append(args[0] if args else None))
    return received


def test_split_lines_without_terminal():
    reader, _ = make_reader(terminal=False)
    lines = _collect(reader)
    reader.feed('abc\r')
    reader.feed('\ndef\nghi')
    assert lines == ['abc', 'def']
    reader.feed('\r\n')
    assert lines == ['abc', 'def', 'ghi']


def test_data_event_follows_processing():
    reader, _ = make_reader(terminal=False)
    order = []
    reader.on('line', lambda line: order.append(('line', line)))
    reader.on('data', lambda data: order.append(('data', data)))
    reader.feed('x\n')
    assert order == [('line', 'x'), ('data', 'x\n')]


def test_unknown_event():
    reader, _ = make_reader()
    with pytest.raises(ValueError):
        reader.on('keypress', lambda: None)


def test_refresh_line(terminal_reader):
    reader, writer = terminal_reader
    reader.refresh_line()
    assert writer.text == '\r\x1b[0J> \x1b[3G'


def test_refresh_line_moves_up_prior_rows(terminal_reader):
    reader, writer = terminal_reader
    reader.prev_rows = 2
    reader.line = 'abc'
    reader.cursor = 1
    reader.refresh_line()
    assert writer.text == '\x1b[2A\r\x1b[0J> abc\x1b[4G'
    assert reader.prev_rows == 0


def test_type_and_submit(terminal_reader):
    reader, writer = terminal_reader
    lines = _collect(reader)
    reader.feed('hi')
    assert reader.line == 'hi'
    assert writer.text == 'hi'
    reader.feed('\r')
    assert lines == ['hi']
    assert reader.line == ''
    assert reader.history == ['hi']
    assert writer.text.endswith('\r\n')


def test_crlf_submits_once(terminal_reader):
    reader, _ = terminal_reader
    lines = _collect(reader)
    reader.feed('a\r\nb\n')
    assert lines == ['a', 'b']


def test_editing_keys(terminal_reader):
    reader, _ = terminal_reader
    reader.feed('abc')
    reader.feed('\x1b[D')
    reader.feed('X')
    assert (reader.line, reader.cursor) == ('abXc', 3)
    reader.feed('\x7f')
    assert (reader.line, reader.cursor) == ('abc', 2)
    reader.feed('\x01')
    assert reader.cursor == 0
    reader.feed('\x05')
    assert reader.cursor == 3
    reader.feed(' two words')
    reader.feed('\x17')
    assert reader.line == 'abc two '
    reader.feed('\x01\x0b')
    assert (reader.line, reader.cursor) == ('', 0)


def test_delete_line_left(terminal_reader):
    reader, _ = terminal_reader
    reader.feed('hello world')
    reader.feed('\x1b[D' * 5)
    reader.feed('\x15')
    assert (reader.line, reader.cursor) == ('world', 0)


def test_history_navigation(terminal_reader):
    reader, _ = terminal_reader
    reader.history = ['one', 'two']
    reader.feed('\x1b[A')
    assert reader.line == 'two'
    reader.feed('\x1b[A')
    assert reader.line == 'one'
    reader.feed('\x1b[A')
    assert reader.line == 'one'
    reader.feed('\x1b[B')
    assert reader.line == 'two'
    reader.feed('\x1b[B')
    assert reader.line == ''


def test_history_skips_blank_and_repeated(terminal_reader):
    reader, _ = terminal_reader
    reader.feed('one\rone\r   \rtwo\r')
    assert reader.history == ['one', 'two']


def test_history_size():
    reader, _ = make_reader(history_size=2)
    reader.feed('a\rb\rc\r')
    assert reader.history == ['b', 'c']


def test_history_filter():
    withhold = [True]
    reader, _ = make_reader(history_filter=lambda: withhold[0])
    reader.feed('secret\r')
    withhold[0] = False
    reader.feed('public\r')
    assert reader.history == ['public']


def test_no_history_without_terminal():
    reader, _ = make_reader(terminal=False)
    reader.feed('one\n')
    assert reader.history == []


def test_question(terminal_reader):
    reader, _ = terminal_reader
    lines = _collect(reader)
    answers = []
    reader.question('Name? ', answers.append)
    assert reader.prompt_text == 'Name? '
    assert reader.question_pending
    reader.question('Ignored? ', answers.append)
    assert reader.prompt_text == 'Name? '
    reader.feed('bob\r')
    assert answers == ['bob']
    assert lines == []
    assert reader.prompt_text == '> '
    assert not reader.question_pending


def test_submit_line_answers_question(terminal_reader):
    reader, _ = terminal_reader
    answers = []
    reader.question('Sure? ', answers.append)
    reader.submit_line('')
    assert answers == ['']


def test_interrupt_with_subscriber(terminal_reader):
    reader, _ = terminal_reader
    interrupts = _collect(reader, 'interrupt')
    reader.feed('\x03')
    assert interrupts == [None]
    assert not reader.closed


def test_interrupt_without_subscriber_closes(terminal_reader):
    reader, _ = terminal_reader
    closes = _collect(reader, 'close')
    reader.feed('\x03')
    assert reader.closed
    assert closes == [None]
    reader.close()
    assert closes == [None]


def test_eof_key(terminal_reader):
    reader, _ = terminal_reader
    reader.feed('ab\x01\x04')
    assert (reader.line, reader.closed) == ('b', False)
    reader.feed('\x0b\x04')
    assert reader.closed


def test_tab_completion_inserts_remainder(terminal_reader):
    reader, _ = terminal_reader
    reader.completer = lambda text: (['hello'], text)
    reader.feed('he\t')
    assert (reader.line, reader.cursor) == ('hello', 5)


def test_tab_completion_replaces(terminal_reader):
    reader, _ = terminal_reader
    reader.completer = lambda text: (['world'], text)
    reader.feed('xy\t')
    assert (reader.line, reader.cursor) == ('world', 5)


def test_tab_without_completer(terminal_reader):
    reader, _ = terminal_reader
    reader.feed('a\t')
    assert reader.line == 'a\t'


def test_pause_resume(terminal_reader):
    reader, _ = terminal_reader
    events = []
    reader.on('pause', lambda: events.append('pause'))
    reader.on('resume', lambda: events.append('resume'))
    assert reader.pause()
    assert not reader.pause()
    assert reader.resume()
    assert not reader.resume()
    reader.pause()
    reader.prompt()
    assert events == ['pause', 'resume', 'pause', 'resume']


def test_prompt_without_terminal():
    reader, writer = make_reader(terminal=False, prompt='$ ')
    reader.prompt()
    assert writer.text == '$ '


def test_columns_callable():
    width = [10]
    reader, _ = make_reader(columns=lambda: width[0])
    assert reader.displayed_pos('x' * 25) == (2, 5)
    width[0] = 30
    assert reader.displayed_pos('x' * 25) == (0, 25)


@pytest.mark.asyncio
async def test_read_loop_until_eof():
    stdin = asyncio.StreamReader()
    reader = LineReader(stdin, MockWriter(), terminal=False)
    lines = []
    reader.on('line', lines.append)
    reader.start()
    stdin.feed_data('one\ntwo\ntä'.encode('utf8')[:-1])
    stdin.feed_data('tä'.encode('utf8')[-1:] + b'il')
    stdin.feed_eof()
    await asyncio.wait_for(reader.wait_closed(), 1)
    assert lines == ['one', 'two', 'tätail']
    assert reader.closed


@pytest.mark.asyncio
async def test_read_loop_paused():
    stdin = asyncio.StreamReader()
    reader = LineReader(stdin, MockWriter(), terminal=False)
    lines = []
    reader.on('line', lines.append)
    reader.pause()
    reader.start()
    stdin.feed_data(b'one\n')
    await asyncio.sleep(0.01)
    assert lines == []
    reader.resume()
    await asyncio.sleep(0.01)
    assert lines == ['one']
    reader.close()
    await asyncio.wait_for(reader.wait_closed(), 1)
