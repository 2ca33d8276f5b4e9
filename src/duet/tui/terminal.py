"""Terminal capabilities used by the line editor.

The editor never touches ``sys.stdin`` or ``sys.stdout`` directly. It is
handed an ``InputSource`` (raw chunks, raw-mode toggle, resize and
end-of-input notifications) and an ``OutputSink`` (escape-sequence writes, width).
``ProcessTerminal`` implements both over real file descriptors with
:mod:`termios`/:mod:`tty` raw mode, an asyncio reader and ``SIGWINCH``.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
import termios
import tty
from typing import Callable, Protocol, TextIO, Union

logger = logging.getLogger(__name__)

DataListener = Callable[[Union[bytes, str]], None]
ResizeListener = Callable[[], None]
EndListener = Callable[[], None]

BRACKETED_PASTE_ENABLE = "\x1b[?2004h"
BRACKETED_PASTE_DISABLE = "\x1b[?2004l"

_READ_SIZE = 4096


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


class InputSource(Protocol):
    """Source of raw terminal input.

    Implementations may additionally provide ``set_raw_mode(enabled)``,
    ``add_resize_listener`` / ``remove_resize_listener`` and
    ``add_end_listener`` / ``remove_end_listener`` (called once when the
    input is exhausted); the editor uses them when present.
    """

    def add_data_listener(self, listener: DataListener) -> None: ...

    def remove_data_listener(self, listener: DataListener) -> None: ...


class OutputSink(Protocol):
    """Destination for rendered text. ``columns`` may be absent or ``None``."""

    def write(self, data: str) -> None: ...


class Terminal(InputSource, OutputSink, Protocol):
    """A device that is both the input source and the output sink."""


# ---------------------------------------------------------------------------
# ProcessTerminal
# ---------------------------------------------------------------------------


class ProcessTerminal:
    """Input source and output sink bound to the controlling terminal.

    Parameters
    ----------
    input_fd:
        Descriptor read for keystrokes (defaults to stdin).
    output:
        Text stream the editor draws on (defaults to stderr, leaving
        stdout free for program output).
    """

    def __init__(
        self,
        input_fd: int | None = None,
        output: TextIO | None = None,
    ) -> None:
        self._fd = sys.stdin.fileno() if input_fd is None else input_fd
        self._output = output if output is not None else sys.stderr
        self._saved_attrs: list | None = None
        self._data_listeners: list[DataListener] = []
        self._resize_listeners: list[ResizeListener] = []
        self._end_listeners: list[EndListener] = []
        self._reading = False
        self._loop: asyncio.AbstractEventLoop | None = None

    # -- properties ---------------------------------------------------------

    @property
    def columns(self) -> int | None:
        try:
            return os.get_terminal_size(self._output.fileno()).columns
        except (ValueError, OSError):
            return None

    # -- raw mode -----------------------------------------------------------

    def set_raw_mode(self, enabled: bool) -> None:
        """Enter or leave raw mode, restoring the saved attributes on exit.

        Raises :class:`termios.error` when the descriptor is not a TTY.
        """
        if enabled:
            if self._saved_attrs is None:
                self._saved_attrs = termios.tcgetattr(self._fd)
            tty.setraw(self._fd)
        elif self._saved_attrs is not None:
            attrs, self._saved_attrs = self._saved_attrs, None
            termios.tcsetattr(self._fd, termios.TCSADRAIN, attrs)

    # -- output ---------------------------------------------------------------

    def write(self, data: str) -> None:
        self._output.write(data)
        self._output.flush()

    # -- listeners ------------------------------------------------------------

    def add_data_listener(self, listener: DataListener) -> None:
        if not self._reading:
            self._event_loop().add_reader(self._fd, self._on_readable)
            self._reading = True
        self._data_listeners.append(listener)

    def remove_data_listener(self, listener: DataListener) -> None:
        if listener not in self._data_listeners:
            return
        self._data_listeners.remove(listener)
        if not self._data_listeners:
            self._stop_reading()
        self._release_loop()

    def add_resize_listener(self, listener: ResizeListener) -> None:
        if not self._resize_listeners:
            self._event_loop().add_signal_handler(signal.SIGWINCH, self._on_resize)
        self._resize_listeners.append(listener)

    def remove_resize_listener(self, listener: ResizeListener) -> None:
        if listener not in self._resize_listeners:
            return
        self._resize_listeners.remove(listener)
        if not self._resize_listeners and self._loop is not None:
            self._loop.remove_signal_handler(signal.SIGWINCH)
        self._release_loop()

    def add_end_listener(self, listener: EndListener) -> None:
        self._end_listeners.append(listener)

    def remove_end_listener(self, listener: EndListener) -> None:
        if listener in self._end_listeners:
            self._end_listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._data_listeners) + len(self._resize_listeners) + len(self._end_listeners)

    # -- private --------------------------------------------------------------

    def _event_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def _stop_reading(self) -> None:
        if self._reading and self._loop is not None:
            self._loop.remove_reader(self._fd)
        self._reading = False

    def _release_loop(self) -> None:
        if not self._data_listeners and not self._resize_listeners:
            self._loop = None

    def _on_readable(self) -> None:
        try:
            raw = os.read(self._fd, _READ_SIZE)
        except (BlockingIOError, InterruptedError):
            return
        except OSError as e:
            logger.debug("Read from fd %d failed: %s", self._fd, e)
            raw = b""
        if not raw:
            # A closed descriptor stays readable; stop polling it
            self._stop_reading()
            for end_listener in list(self._end_listeners):
                end_listener()
            return
        for listener in list(self._data_listeners):
            listener(raw)

    def _on_resize(self) -> None:
        for listener in list(self._resize_listeners):
            listener()
