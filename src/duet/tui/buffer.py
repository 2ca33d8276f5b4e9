"""Multi-row edit buffer and the operations that mutate it.

All cursor arithmetic is in characters (code points). Display widths only
matter to the renderer and never leak into buffer coordinates.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

from duet.tui.decoder import Action, Command, InsertText

if TYPE_CHECKING:
    from duet.tui.history import HistoryNavigator

_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


def split_lines(text: str) -> list[str]:
    """Split *text* on CRLF, CR or LF. Always returns at least one row."""
    return _LINE_BREAK_RE.split(text)


@dataclass
class EditorState:
    """Rows, cursor and history position of one editing session.

    ``lines`` is never empty, ``0 <= cursor_row < len(lines)`` and
    ``0 <= cursor_col <= len(lines[cursor_row])``.
    """

    lines: list[str] = field(default_factory=lambda: [""])
    cursor_row: int = 0
    cursor_col: int = 0
    history_index: int = -1
    saved_draft: list[str] = field(default_factory=lambda: [""])

    @property
    def current_line(self) -> str:
        return self.lines[self.cursor_row]

    def text(self) -> str:
        return "\n".join(self.lines)

    def is_empty(self) -> bool:
        return len(self.lines) == 1 and self.lines[0] == ""

    def load(self, lines: list[str]) -> None:
        """Replace the rows and park the cursor at the end of the last one."""
        self.lines = list(lines) or [""]
        self.cursor_row = len(self.lines) - 1
        self.cursor_col = len(self.lines[-1])


class TextBuffer:
    """Applies edit commands to an :class:`EditorState`.

    Vertical movement past the first or last row is handed to the history
    navigator when one is attached.
    """

    def __init__(
        self,
        state: EditorState | None = None,
        history: HistoryNavigator | None = None,
    ) -> None:
        self.state = state if state is not None else EditorState()
        self.history = history
        self._handlers: dict[Action, Callable[[], None]] = {
            Action.NEWLINE: self.insert_newline,
            Action.BACKSPACE: self.backspace,
            Action.DELETE_FORWARD: self.delete_forward,
            Action.LEFT: self.move_left,
            Action.RIGHT: self.move_right,
            Action.UP: self.move_up,
            Action.DOWN: self.move_down,
            Action.LINE_START: self.move_to_start,
            Action.LINE_END: self.move_to_end,
            Action.CLEAR_TO_START: self.clear_to_start,
            Action.CLEAR_TO_END: self.clear_to_end,
        }

    def apply(self, command: Command) -> None:
        """Run the edit operation for *command*.

        Raises :class:`ValueError` for commands that end a session
        (cancel, submit, end of input); those belong to the caller.
        """
        if isinstance(command, InsertText):
            self.insert_text(command.text)
            return
        handler = self._handlers.get(command)
        if handler is None:
            raise ValueError(f"{command} is not an edit command")
        handler()

    # -- insertion -----------------------------------------------------------

    def insert_text(self, text: str) -> None:
        s = self.state
        parts = split_lines(text)
        line = s.current_line
        before, after = line[: s.cursor_col], line[s.cursor_col :]

        if len(parts) == 1:
            s.lines[s.cursor_row] = before + text + after
            s.cursor_col += len(text)
            return

        s.lines[s.cursor_row] = before + parts[0]
        new_rows = parts[1:-1] + [parts[-1] + after]
        s.lines[s.cursor_row + 1 : s.cursor_row + 1] = new_rows
        s.cursor_row += len(parts) - 1
        s.cursor_col = len(parts[-1])

    def insert_newline(self) -> None:
        s = self.state
        line = s.current_line
        s.lines[s.cursor_row] = line[: s.cursor_col]
        s.lines.insert(s.cursor_row + 1, line[s.cursor_col :])
        s.cursor_row += 1
        s.cursor_col = 0

    # -- deletion ------------------------------------------------------------

    def backspace(self) -> None:
        s = self.state
        line = s.current_line
        if s.cursor_col > 0:
            s.lines[s.cursor_row] = line[: s.cursor_col - 1] + line[s.cursor_col :]
            s.cursor_col -= 1
        elif s.cursor_row > 0:
            previous = s.lines[s.cursor_row - 1]
            s.lines[s.cursor_row - 1] = previous + line
            del s.lines[s.cursor_row]
            s.cursor_row -= 1
            s.cursor_col = len(previous)

    def delete_forward(self) -> None:
        s = self.state
        line = s.current_line
        if s.cursor_col < len(line):
            s.lines[s.cursor_row] = line[: s.cursor_col] + line[s.cursor_col + 1 :]
        elif s.cursor_row < len(s.lines) - 1:
            s.lines[s.cursor_row] = line + s.lines[s.cursor_row + 1]
            del s.lines[s.cursor_row + 1]

    def clear_to_start(self) -> None:
        s = self.state
        s.lines[s.cursor_row] = s.current_line[s.cursor_col :]
        s.cursor_col = 0

    def clear_to_end(self) -> None:
        s = self.state
        s.lines[s.cursor_row] = s.current_line[: s.cursor_col]

    # -- movement ------------------------------------------------------------

    def move_left(self) -> None:
        s = self.state
        if s.cursor_col > 0:
            s.cursor_col -= 1
        elif s.cursor_row > 0:
            s.cursor_row -= 1
            s.cursor_col = len(s.current_line)

    def move_right(self) -> None:
        s = self.state
        if s.cursor_col < len(s.current_line):
            s.cursor_col += 1
        elif s.cursor_row < len(s.lines) - 1:
            s.cursor_row += 1
            s.cursor_col = 0

    def move_up(self) -> None:
        s = self.state
        if s.cursor_row > 0:
            s.cursor_row -= 1
            s.cursor_col = min(s.cursor_col, len(s.current_line))
        elif self.history is not None:
            self.history.older(s)

    def move_down(self) -> None:
        s = self.state
        if s.cursor_row < len(s.lines) - 1:
            s.cursor_row += 1
            s.cursor_col = min(s.cursor_col, len(s.current_line))
        elif self.history is not None:
            self.history.newer(s)

    def move_to_start(self) -> None:
        self.state.cursor_col = 0

    def move_to_end(self) -> None:
        self.state.cursor_col = len(self.state.current_line)
