"""Redraw of the multi-row edit area with exact wrap arithmetic.

Each logical row is drawn as its prompt followed by its text and may span
several visual rows. Positions follow the terminal's deferred-wrap rule:
after writing into the last column the cursor stays on that row, so a
row whose width is an exact multiple of the terminal width does not gain
an empty extra row.
"""

from __future__ import annotations

from dataclasses import dataclass

from duet.tui.buffer import EditorState
from duet.tui.width import char_width, split_escapes

DEFAULT_COLUMNS = 80

ERASE_LINE = "\x1b[2K"
_CURSOR_UP_FMT = "\x1b[{}A"
_CURSOR_DOWN_FMT = "\x1b[{}B"
_CURSOR_FORWARD_FMT = "\x1b[{}C"


def effective_columns(columns: object) -> int:
    """Terminal width to lay out against; ``80`` when unknown or not positive."""
    if isinstance(columns, int) and not isinstance(columns, bool) and columns > 0:
        return columns
    return DEFAULT_COLUMNS


def wrap_position(width: int, cols: int) -> tuple[int, int]:
    """Visual ``(row, column)`` reached after writing *width* columns.

    ``row = (width - 1) // cols`` and ``column = width - row * cols``, so a
    width that is an exact multiple of *cols* stays on the row it filled,
    at column *cols*.
    """
    if width <= 0:
        return 0, 0
    row = (width - 1) // cols
    return row, width - row * cols


@dataclass
class RowLayout:
    """One logical row split into the strings for each visual row."""

    segments: list[str]
    width: int
    cursor: tuple[int, int] | None = None

    @property
    def height(self) -> int:
        return len(self.segments)


def layout_row(
    prompt: str,
    line: str,
    cols: int,
    cursor_col: int | None = None,
) -> RowLayout:
    """Lay out ``prompt + line`` across visual rows of *cols* columns.

    Escape sequences in *prompt* take no space and stay attached to the
    preceding character. A double-width character that would straddle the
    right edge moves to the next visual row, as terminals draw it. The
    skipped cell counts toward the width, so a cursor after such a
    character sits one column further right than
    ``wrap_position(prompt_width + line_width(before_cursor), cols)``
    would give: with ``cols=10``, ``"ai> "`` and ``"abcde日"`` the
    cursor lands at column 2 of the second row, where the terminal shows it.
    """
    prompt_tokens = split_escapes(prompt)
    tokens = prompt_tokens + [(ch, char_width(ch)) for ch in line]
    cursor_index = None if cursor_col is None else len(prompt_tokens) + cursor_col

    placed: list[tuple[int, str]] = []
    width = 0
    cursor_width = None
    for index, (token, w) in enumerate(tokens):
        if index == cursor_index:
            cursor_width = width
        if w == 0:
            placed.append((max(0, (width - 1) // cols), token))
            continue
        used = width % cols
        if used and used + w > cols:
            width += cols - used
        placed.append((width // cols, token))
        width += w
    if cursor_index is not None and cursor_width is None:
        cursor_width = width

    height = wrap_position(width, cols)[0] + 1
    rows: list[list[str]] = [[] for _ in range(height)]
    for row, token in placed:
        rows[min(row, height - 1)].append(token)

    cursor = None if cursor_width is None else wrap_position(cursor_width, cols)
    return RowLayout(["".join(r) for r in rows], width, cursor)


@dataclass
class Frame:
    """Output for one redraw plus the bookkeeping it leaves behind."""

    output: str
    row_count: int
    cursor_row: int


class Renderer:
    """Produces minimal redraw sequences for successive editor states.

    Only two facts about the previous frame are remembered: how many visual
    rows it occupied and which of them holds the cursor. A frame is
    committed after its output has been written, so a failed write leaves
    the bookkeeping describing the screen as it was.
    """

    def __init__(self, prompt: str, continuation_prompt: str) -> None:
        self.prompt = prompt
        self.continuation_prompt = continuation_prompt
        self.row_count = 0
        self.cursor_row = 0

    def prompt_for(self, row: int) -> str:
        return self.prompt if row == 0 else self.continuation_prompt

    def frame(self, state: EditorState, columns: object = None) -> Frame:
        cols = effective_columns(columns)
        out: list[str] = []

        # Back to the first visual row of the edit area
        if self.cursor_row > 0:
            out.append(_CURSOR_UP_FMT.format(self.cursor_row))
        out.append("\r")

        total = 0
        target_row = 0
        target_col = 0
        for index, line in enumerate(state.lines):
            on_cursor_row = index == state.cursor_row
            layout = layout_row(
                self.prompt_for(index),
                line,
                cols,
                state.cursor_col if on_cursor_row else None,
            )
            if on_cursor_row and layout.cursor is not None:
                target_row = total + layout.cursor[0]
                target_col = layout.cursor[1]
            for segment in layout.segments:
                if total:
                    out.append("\r\n")
                out.append(ERASE_LINE + segment)
                total += 1

        # Blank out rows left over from a taller previous frame
        if total < self.row_count:
            extra = self.row_count - total
            out.append(("\r\n" + ERASE_LINE) * extra)
            out.append(_CURSOR_UP_FMT.format(extra))

        rows_up = total - 1 - target_row
        if rows_up > 0:
            out.append(_CURSOR_UP_FMT.format(rows_up))
        out.append("\r")
        if target_col > 0:
            out.append(_CURSOR_FORWARD_FMT.format(target_col))

        return Frame("".join(out), total, target_row)

    def commit(self, frame: Frame) -> None:
        self.row_count = frame.row_count
        self.cursor_row = frame.cursor_row

    def leave(self) -> str:
        """Sequence moving the cursor to a fresh line below the edit area."""
        below = self.row_count - 1 - self.cursor_row
        down = _CURSOR_DOWN_FMT.format(below) if below > 0 else ""
        return down + "\n\r"
