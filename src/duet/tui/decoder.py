"""Incremental decoder turning raw terminal input into edit commands.

Terminal reads can split a multi-byte character, an escape sequence or a
bracketed-paste marker at any byte. The decoder keeps an explicit parser
state between chunks, so feeding input in one piece or in many pieces
yields the same commands.
"""

from __future__ import annotations

import codecs
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Union

logger = logging.getLogger(__name__)

ESC = "\x1b"
BRACKETED_PASTE_START = "\x1b[200~"
BRACKETED_PASTE_END = "\x1b[201~"


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


class Action(Enum):
    """Edit commands that carry no payload."""

    CANCEL = "cancel"
    END_OF_INPUT = "end_of_input"
    SUBMIT = "submit"
    NEWLINE = "newline"
    BACKSPACE = "backspace"
    DELETE_FORWARD = "delete_forward"
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    LINE_START = "line_start"
    LINE_END = "line_end"
    CLEAR_TO_START = "clear_to_start"
    CLEAR_TO_END = "clear_to_end"


@dataclass(frozen=True)
class InsertText:
    """Insert *text* at the cursor. ``pasted`` marks a bracketed paste."""

    text: str
    pasted: bool = False


Command = Union[Action, InsertText]

# Single control characters recognised in the normal state
_CONTROL_ACTIONS: dict[str, Action] = {
    "\x03": Action.CANCEL,          # Ctrl+C
    "\x04": Action.END_OF_INPUT,    # Ctrl+D
    "\x0a": Action.NEWLINE,         # Ctrl+J / LF
    "\x0d": Action.SUBMIT,          # Enter / CR
    "\x7f": Action.BACKSPACE,
    "\x01": Action.LINE_START,      # Ctrl+A
    "\x05": Action.LINE_END,        # Ctrl+E
    "\x15": Action.CLEAR_TO_START,  # Ctrl+U
    "\x0b": Action.CLEAR_TO_END,    # Ctrl+K
}

# Complete CSI bodies (parameters + final byte) that map to a command
_CSI_ACTIONS: dict[str, Action] = {
    "A": Action.UP,
    "B": Action.DOWN,
    "C": Action.RIGHT,
    "D": Action.LEFT,
    "H": Action.LINE_START,
    "F": Action.LINE_END,
    "3~": Action.DELETE_FORWARD,
}

_CSI_PASTE_START = "200~"


class ParseState(Enum):
    NORMAL = "normal"
    ESCAPE_SEEN = "escape_seen"
    CSI_PARSING = "csi_parsing"
    PASTE = "paste"


# ---------------------------------------------------------------------------
# Bracketed paste
# ---------------------------------------------------------------------------


class PasteAggregator:
    """Collects a bracketed paste until the end marker arrives.

    The pasted block is handed back as a single piece of text so it is
    inserted atomically instead of keystroke by keystroke.
    """

    def __init__(self) -> None:
        self._buffer: str = ""

    def start(self) -> None:
        self._buffer = ""

    def push(self, ch: str) -> str | None:
        """Append *ch*; return the pasted text once the end marker is seen."""
        self._buffer += ch
        if ch == "~" and self._buffer.endswith(BRACKETED_PASTE_END):
            text = self._buffer[: -len(BRACKETED_PASTE_END)]
            self._buffer = ""
            return text
        return None

    def clear(self) -> None:
        self._buffer = ""

    @property
    def pending(self) -> str:
        return self._buffer


# ---------------------------------------------------------------------------
# Decoder
# ---------------------------------------------------------------------------


class InputDecoder:
    """Four-state escape-sequence machine fed one code point at a time."""

    def __init__(self) -> None:
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="strict")
        self._state = ParseState.NORMAL
        self._csi_buffer: str = ""
        self._paste = PasteAggregator()

    @property
    def state(self) -> ParseState:
        return self._state

    def feed(self, chunk: bytes | str) -> Iterator[Command]:
        """Decode *chunk* and lazily yield the commands it completes.

        Bytes are decoded incrementally, so a character split across two
        chunks is held back until its remaining bytes arrive. Malformed
        UTF-8 raises :class:`UnicodeDecodeError` on iteration.
        """
        if isinstance(chunk, (bytes, bytearray)):
            text = self._utf8.decode(bytes(chunk))
        else:
            text = chunk
        for ch in text:
            command = self._step(ch)
            if command is not None:
                yield command

    def reset(self) -> None:
        self._utf8.reset()
        self._state = ParseState.NORMAL
        self._csi_buffer = ""
        self._paste.clear()

    # -- states --------------------------------------------------------------

    def _step(self, ch: str) -> Command | None:
        if self._state is ParseState.NORMAL:
            return self._normal(ch)
        if self._state is ParseState.ESCAPE_SEEN:
            return self._escape_seen(ch)
        if self._state is ParseState.CSI_PARSING:
            return self._csi(ch)
        return self._pasting(ch)

    def _normal(self, ch: str) -> Command | None:
        if ch == ESC:
            self._state = ParseState.ESCAPE_SEEN
            return None
        action = _CONTROL_ACTIONS.get(ch)
        if action is not None:
            return action
        if ord(ch) >= 0x20:
            return InsertText(ch)
        return None

    def _escape_seen(self, ch: str) -> Command | None:
        if ch == "[":
            self._state = ParseState.CSI_PARSING
            self._csi_buffer = ""
            return None
        self._state = ParseState.NORMAL
        if ch in ("\r", "\n"):
            # Alt+Enter
            return Action.NEWLINE
        logger.debug("Discarding unknown escape ESC %r", ch)
        return self._normal(ch)

    def _csi(self, ch: str) -> Command | None:
        code = ord(ch)
        if 0x20 <= code <= 0x3F:
            # Parameter (0x30-0x3F) or intermediate (0x20-0x2F) byte
            self._csi_buffer += ch
            return None

        body = self._csi_buffer + ch
        self._csi_buffer = ""
        self._state = ParseState.NORMAL

        if not 0x40 <= code <= 0x7E:
            logger.debug("Aborting CSI sequence on byte %#x", code)
            return None
        if body == _CSI_PASTE_START:
            self._state = ParseState.PASTE
            self._paste.start()
            return None
        action = _CSI_ACTIONS.get(body)
        if action is None:
            logger.debug("Discarding unrecognised CSI sequence %r", body)
        return action

    def _pasting(self, ch: str) -> Command | None:
        text = self._paste.push(ch)
        if text is None:
            return None
        self._state = ParseState.NORMAL
        return InsertText(text, pasted=True)
