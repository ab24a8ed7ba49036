"""Pytest configuration and fixtures."""
# 3rd party
import pytest

# local
from serverline.tests.accessories import MockWriter, make_reader


@pytest.fixture
def writer():
    """Writer collecting output bytes."""
    return MockWriter()


@pytest.fixture
def terminal_reader():
    """LineReader in terminal mode at 80 columns, and its output writer."""
    return make_reader(terminal=True)
