"""
Raw keystroke input from a terminal.

:class:`RawTerminal` switches a tty to unbuffered, no-echo mode for the
duration of a ``with`` block. :class:`KeyboardReader` polls the
descriptor without blocking and hands back one key at a time.

Example::

    with RawTerminal(0):
        reader = KeyboardReader(0)
        while True:
            key = reader.poll()
            if key is not None:
                print(key)
"""

import os
import select
import termios
import logging

from .exceptions import TerminalReadError

logger = logging.getLogger("objctl.keyboard")

# termios attribute list indices
_LFLAG = 3
_CC = 6


class RawTerminal:
    """Context manager putting *fd* into raw mode and restoring it on exit.

    Descriptors that are not a tty (pipes, files in tests) are left
    alone, and :meth:`restore` is then a no-op.
    """

    def __init__(self, fd: int = 0):
        self._fd = fd
        self._saved = None

    @property
    def active(self) -> bool:
        return self._saved is not None

    def enter_raw(self) -> None:
        if not os.isatty(self._fd):
            logger.debug("fd %d is not a tty, leaving terminal mode alone", self._fd)
            return
        self._saved = termios.tcgetattr(self._fd)
        raw = termios.tcgetattr(self._fd)
        raw[_LFLAG] &= ~(termios.ICANON | termios.ECHO)
        raw[_CC][termios.VMIN] = 1
        raw[_CC][termios.VTIME] = 0
        termios.tcsetattr(self._fd, termios.TCSANOW, raw)
        logger.debug("Terminal fd %d switched to raw mode", self._fd)

    def restore(self) -> None:
        """Put back the saved terminal attributes. Safe to call twice."""
        if self._saved is None:
            return
        saved, self._saved = self._saved, None
        termios.tcsetattr(self._fd, termios.TCSANOW, saved)
        logger.debug("Terminal fd %d restored", self._fd)

    def __enter__(self) -> "RawTerminal":
        self.enter_raw()
        return self

    def __exit__(self, *_) -> None:
        self.restore()


class KeyboardReader:
    """Non-blocking single-key reader.

    Each :meth:`poll` reads everything currently buffered on the
    descriptor (up to *bufsize* bytes) and keeps only the **last** byte;
    keys typed faster than the loop polls are dropped, not queued.

    Args:
        fd:      File descriptor to read, stdin by default.
        bufsize: Maximum bytes consumed per poll.
    """

    def __init__(self, fd: int = 0, bufsize: int = 1024):
        self._fd = fd
        self._bufsize = bufsize
        self.closed = False

    def fileno(self) -> int:
        return self._fd

    def poll(self) -> bytes | None:
        """Return the most recent key as a 1-byte ``bytes``, or ``None``.

        Returns ``None`` when nothing is pending, and also at end of
        input, in which case :attr:`closed` becomes ``True``.

        Raises:
            TerminalReadError: The read itself failed.
        """
        if self.closed:
            return None
        try:
            ready, _, _ = select.select([self._fd], [], [], 0)
            if not ready:
                return None
            buf = os.read(self._fd, self._bufsize)
        except OSError as exc:
            raise TerminalReadError(f"read() on fd {self._fd} failed: {exc}") from exc

        if not buf:
            logger.info("End of input on fd %d", self._fd)
            self.closed = True
            return None
        if len(buf) > 1:
            logger.debug("Discarding %d buffered bytes before the last key", len(buf) - 1)
        return buf[-1:]

    def __repr__(self) -> str:
        return f"KeyboardReader(fd={self._fd})"
