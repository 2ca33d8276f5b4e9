"""Read-only browsing of previous entries from inside the edit buffer."""

from __future__ import annotations

from collections.abc import Sequence

from duet.tui.buffer import EditorState, split_lines


class HistoryNavigator:
    """Walks a most-recent-first list of past entries.

    The navigator keeps its own copy of *entries*; the caller's list is
    never touched. ``EditorState.history_index`` is ``-1`` while the user
    edits their own draft, which is snapshotted once on the first step
    back and restored when stepping forward past the newest entry.
    """

    def __init__(self, entries: Sequence[str] = ()) -> None:
        self._entries: list[str] = list(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def older(self, state: EditorState) -> bool:
        """Load the next older entry. Returns ``False`` at the oldest one."""
        if state.history_index >= len(self._entries) - 1:
            return False
        if state.history_index == -1:
            state.saved_draft = list(state.lines)
        state.history_index += 1
        state.load(split_lines(self._entries[state.history_index]))
        return True

    def newer(self, state: EditorState) -> bool:
        """Load the next newer entry, or the saved draft past the newest."""
        if state.history_index < 0:
            return False
        state.history_index -= 1
        if state.history_index == -1:
            state.load(state.saved_draft)
        else:
            state.load(split_lines(self._entries[state.history_index]))
        return True
