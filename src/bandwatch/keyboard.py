"""Single-keystroke control of the report order.

The terminal is put in cbreak mode so a key takes effect without Enter;
output processing stays on, so report lines keep their line breaks.
"""
from __future__ import annotations

import atexit
import logging
import sys
import typing as t

from .sort_mode import SortMode, SortModeControl

log = logging.getLogger("bandwatch.keyboard")

TOGGLE_KEY = "s"
MAX_READ_ERRORS = 5


def handle_key(ch: str, control: SortModeControl, out: t.Optional[t.TextIO] = None) -> t.Optional[SortMode]:
    """Apply one keystroke; returns the new mode when it changed."""
    if ch != TOGGLE_KEY:
        return None
    mode = control.toggle()
    print(f"Sorting by {mode.value}", file=out or sys.stdout, flush=True)
    return mode


def read_keys(control: SortModeControl, stream: t.TextIO, out: t.Optional[t.TextIO] = None) -> None:
    """Read `stream` one character at a time until end of input.

    Gives up after MAX_READ_ERRORS consecutive read failures (a hung-up
    terminal keeps failing).
    """
    failures = 0
    while True:
        try:
            ch = stream.read(1)
        except OSError as e:
            failures += 1
            if failures >= MAX_READ_ERRORS:
                log.warning("keyboard read failed %d times, sort toggle disabled: %s", failures, e)
                return
            log.warning("keyboard read failed: %s", e)
            continue
        failures = 0
        if not ch:
            return
        handle_key(ch, control, out)


def run_key_reader(control: SortModeControl, stream: t.Optional[t.TextIO] = None) -> None:
    """Blocking keyboard loop for a daemon thread.

    Does nothing when the stream is not a terminal (piped or redirected).
    """
    stream = stream or sys.stdin
    if not stream.isatty():
        log.debug("stdin is not a terminal; sort toggle disabled")
        return

    import termios
    import tty

    fd = stream.fileno()
    old_settings = termios.tcgetattr(fd)
    # the reader thread is a daemon and may never reach its finally block
    atexit.register(termios.tcsetattr, fd, termios.TCSADRAIN, old_settings)
    try:
        tty.setcbreak(fd)
        read_keys(control, stream)
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
