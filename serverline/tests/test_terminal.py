# std imports
import io
import os
import sys

# 3rd party
import pytest

if sys.platform == "win32":
    pytest.skip("POSIX-only tests", allow_module_level=True)

# std imports
import termios  # noqa: E402

# local
from serverline.terminal import DEFAULT_COLUMNS, Terminal  # noqa: E402


@pytest.fixture
def devnull_terminal():
    with open(os.devnull) as stdin:
        yield Terminal(stdin=stdin, stdout=io.StringIO(), stderr=io.StringIO())


def test_not_a_tty(devnull_terminal):
    assert not devnull_terminal.input_istty
    assert not devnull_terminal.istty
    assert devnull_terminal.get_mode() is None
    with devnull_terminal as term:
        assert term is devnull_terminal


def test_columns_from_environment(devnull_terminal, monkeypatch):
    monkeypatch.setenv('COLUMNS', '132')
    assert devnull_terminal.columns == 132
    monkeypatch.setenv('COLUMNS', 'wide')
    assert devnull_terminal.columns == DEFAULT_COLUMNS
    monkeypatch.delenv('COLUMNS')
    assert devnull_terminal.columns == DEFAULT_COLUMNS


def test_determine_mode():
    mode = Terminal.ModeDef(
        iflag=termios.ICRNL | termios.IXON,
        oflag=0,
        cflag=0,
        lflag=termios.ICANON | termios.ECHO | termios.ISIG | termios.IEXTEN,
        ispeed=termios.B38400,
        ospeed=termios.B38400,
        cc=[b'\x00'] * termios.NCCS,
    )
    raw = Terminal.determine_mode(mode)
    assert raw.iflag & (termios.ICRNL | termios.IXON) == 0
    assert raw.lflag & (termios.ICANON | termios.ECHO | termios.ISIG) == 0
    assert raw.oflag & termios.OPOST
    assert raw.oflag & termios.ONLCR
    assert raw.cflag & termios.CS8 == termios.CS8
    assert raw.cc[termios.VMIN] == 1
    assert raw.cc[termios.VTIME] == 0
    assert mode.cc[termios.VMIN] == b'\x00'


def test_raw_mode_only_when_requested(devnull_terminal, monkeypatch):
    mode = Terminal.ModeDef(0, 0, 0, termios.ECHO | termios.ISIG, 0, 0,
                            [b'\x00'] * termios.NCCS)
    applied = []
    monkeypatch.setattr(devnull_terminal, 'get_mode', lambda: mode)
    monkeypatch.setattr(devnull_terminal, 'set_mode', applied.append)

    devnull_terminal.raw_mode = False
    with devnull_terminal:
        assert applied == []

    devnull_terminal.raw_mode = True
    monkeypatch.setattr(termios, 'tcsetattr', lambda *args: applied.append(args))
    with devnull_terminal:
        assert applied == [Terminal.determine_mode(mode)]
    assert len(applied) == 2
