#!/usr/bin/env python3
"""
Demonstration program of a serverline session.

Log records are printed at a regular interval while input is being edited,
and never corrupt the line being typed.  Try ``help``, ``pwd`` for a secret
question, and tab completion.
"""
# std imports
import argparse
import asyncio
import collections
import logging
import signal

# local
from . import accessories
from .session import Session

__all__ = ('run_demo', 'parse_demo_args', 'main')

CONFIG = collections.namedtuple(
    "CONFIG",
    ["prompt", "force_terminal", "interval", "loglevel", "logfile", "logfmt"],
)(
    prompt="> ",
    force_terminal=False,
    interval=2.0,
    loglevel="info",
    logfile=None,
    logfmt=accessories._DEFAULT_LOGFMT,
)

COMMANDS = ('help', 'hello', 'history', 'mute', 'unmute', 'pwd', 'exit')

logger = logging.getLogger('serverline.demo')


def handle_line(session, line):
    """Dispatch one command line of the demo."""
    console = session.console
    cmd = line.strip()
    if cmd == 'help':
        console.log('commands:', ', '.join(COMMANDS))
    elif cmd == 'hello':
        console.log('hello!')
    elif cmd == 'history':
        console.log(session.get_history())
    elif cmd == 'mute':
        session.set_muted(True)
    elif cmd == 'unmute':
        session.set_muted(False)
    elif cmd == 'pwd':
        session.secret('Password: ', lambda pwd: console.log(
            'you typed {0} characters.'.format(len(pwd))))
    elif cmd == 'exit':
        session.close()
    elif cmd:
        console.log('unknown command: {0!r}, try help.'.format(cmd))


def handle_interrupt(session):
    """Ask for confirmation before exiting on ^C."""
    def _confirm(answer):
        if answer.strip().lower() in ('y', 'yes'):
            session.close()
    session.question('Confirm exit [y/N]? ', _confirm)


async def _heartbeat(interval, log):
    count = 0
    while True:
        await asyncio.sleep(interval)
        count += 1
        log.info('heartbeat #%d', count)


async def run_demo(
    prompt=CONFIG.prompt,
    force_terminal=CONFIG.force_terminal,
    interval=CONFIG.interval,
    loglevel=CONFIG.loglevel,
    logfile=CONFIG.logfile,
    logfmt=CONFIG.logfmt,
):
    """
    Program entry point for the demonstration.

    A session is run on the process standard streams until ``exit``, end of
    input, a confirmed ^C, or SIGTERM.
    """
    session = Session()
    await session.init(prompt, force_terminal_context=force_terminal)
    if logfile:
        log = accessories.make_logger(
            name="serverline.demo", loglevel=loglevel, logfile=logfile,
            logfmt=logfmt)
    else:
        logging.getLogger().setLevel(getattr(logging, loglevel.upper()))
        session.attach_logger(logging.getLogger(), logfmt=logfmt)
        log = logger

    session.set_completions(COMMANDS)
    session.on('line', lambda line: handle_line(session, line))
    session.on('interrupt', lambda: handle_interrupt(session))
    session.on('completion_requested', lambda request: log.debug(
        'completion requested: %r', request))

    loop = asyncio.get_event_loop()
    loop.add_signal_handler(signal.SIGTERM, session.close)
    heartbeat = asyncio.ensure_future(_heartbeat(interval, log))
    try:
        await session.wait_closed()
    finally:
        heartbeat.cancel()
        loop.remove_signal_handler(signal.SIGTERM)


def parse_demo_args():
    parser = argparse.ArgumentParser(
        description="Line editing with asynchronous output",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--prompt", default=CONFIG.prompt, help="prompt string")
    parser.add_argument(
        "--force-terminal",
        action="store_true",
        default=CONFIG.force_terminal,
        help="edit lines even when not attached to a terminal",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=CONFIG.interval,
        help="seconds between heartbeat log records",
    )
    parser.add_argument("--loglevel", default=CONFIG.loglevel, help="level name")
    parser.add_argument("--logfile", default=CONFIG.logfile, help="filepath")
    parser.add_argument("--logfmt", default=CONFIG.logfmt, help="log format")
    return vars(parser.parse_args())


def main():
    asyncio.run(run_demo(**parse_demo_args()))


if __name__ == "__main__":
    main()
