"""Raw-mode multi-line prompt editor.

:func:`read_line` runs one editing session against an input source and an
output sink and resolves to exactly one of :class:`Input`,
:class:`Cancel` or :class:`EndOfInput`. The session owns the terminal's
raw-mode and paste-reporting flags while it runs and restores both, and
removes its listeners, on every exit path.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Union

from duet.tui.buffer import EditorState, TextBuffer
from duet.tui.decoder import Action, Command, InputDecoder, ParseState
from duet.tui.history import HistoryNavigator
from duet.tui.render import Renderer
from duet.tui.terminal import (
    BRACKETED_PASTE_DISABLE,
    BRACKETED_PASTE_ENABLE,
    InputSource,
    OutputSink,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Results and options
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Input:
    """The user submitted *value* (rows joined with ``\\n``)."""

    value: str


@dataclass(frozen=True)
class Cancel:
    """The user pressed Ctrl+C, or the session failed and was abandoned."""


@dataclass(frozen=True)
class EndOfInput:
    """Ctrl+D on an empty buffer."""


EditorResult = Union[Input, Cancel, EndOfInput]


@dataclass
class LineEditorOptions:
    """Everything one editing session needs.

    ``history`` is most-recent-first and is copied, never modified.
    """

    prompt: str
    continuation_prompt: str
    output: OutputSink
    input: InputSource
    history: Sequence[str] = field(default_factory=list)


async def read_line(options: LineEditorOptions) -> EditorResult:
    """Run one editing session and return how it ended."""
    return await LineEditorSession(options).run()


# ---------------------------------------------------------------------------
# Session controller
# ---------------------------------------------------------------------------


class LineEditorSession:
    """Wires decoder, buffer, history and renderer to a terminal.

    A session is single use: :meth:`run` may be awaited once.
    """

    def __init__(self, options: LineEditorOptions) -> None:
        self._options = options
        self._decoder = InputDecoder()
        self._buffer = TextBuffer(EditorState(), HistoryNavigator(options.history))
        self._renderer = Renderer(options.prompt, options.continuation_prompt)
        self._result: asyncio.Future[EditorResult] | None = None
        self._released = False

    @property
    def state(self) -> EditorState:
        return self._buffer.state

    @property
    def done(self) -> bool:
        return self._result is not None and self._result.done()

    async def run(self) -> EditorResult:
        if self._result is not None:
            raise RuntimeError("LineEditorSession can only be run once")
        self._result = asyncio.get_running_loop().create_future()

        with self._terminal_acquired():
            try:
                self._render()
            except Exception:
                logger.warning("Initial render failed, cancelling input", exc_info=True)
                self._finish(Cancel())
            return await self._result

    # -- terminal ownership ----------------------------------------------------

    @contextmanager
    def _terminal_acquired(self) -> Iterator[None]:
        source = self._options.input
        try:
            self._set_raw_mode(True)
            self._write_best_effort(BRACKETED_PASTE_ENABLE)
            source.add_data_listener(self._on_data)
            add_resize = getattr(source, "add_resize_listener", None)
            if add_resize is not None:
                add_resize(self._on_resize)
            add_end = getattr(source, "add_end_listener", None)
            if add_end is not None:
                add_end(self._on_end)
            yield
        finally:
            self._release()

    def _release(self) -> None:
        if self._released:
            return
        self._released = True
        source = self._options.input
        try:
            self._set_raw_mode(False)
            self._write_best_effort(BRACKETED_PASTE_DISABLE)
        finally:
            try:
                source.remove_data_listener(self._on_data)
            finally:
                try:
                    remove_resize = getattr(source, "remove_resize_listener", None)
                    if remove_resize is not None:
                        remove_resize(self._on_resize)
                finally:
                    remove_end = getattr(source, "remove_end_listener", None)
                    if remove_end is not None:
                        remove_end(self._on_end)

    def _set_raw_mode(self, enabled: bool) -> None:
        setter = getattr(self._options.input, "set_raw_mode", None)
        if setter is None:
            return
        try:
            setter(enabled)
        except Exception:
            logger.debug("Could not %s raw mode", "enable" if enabled else "disable", exc_info=True)

    def _write_best_effort(self, data: str) -> None:
        try:
            self._options.output.write(data)
        except Exception:
            logger.debug("Terminal write failed: %r", data, exc_info=True)

    # -- events -----------------------------------------------------------------

    def _on_data(self, chunk: bytes | str) -> None:
        if self.done:
            return
        try:
            for command in self._decoder.feed(chunk):
                self._dispatch(command)
                if self.done:
                    return
        except Exception:
            logger.warning("Failed to process terminal input, cancelling", exc_info=True)
            self._finish(Cancel())

    def _on_resize(self) -> None:
        if not self.done:
            self._redraw()

    def _on_end(self) -> None:
        """The input source is exhausted: behave like Ctrl+D in any parser state."""
        if self.done:
            return
        if self._decoder.state is ParseState.PASTE:
            logger.debug("Input ended inside a bracketed paste, dropping it")
        self._decoder.reset()
        self._dispatch(Action.END_OF_INPUT)

    def _dispatch(self, command: Command) -> None:
        state = self._buffer.state
        if command is Action.CANCEL:
            self._finish(Cancel())
        elif command is Action.SUBMIT:
            self._finish(Input(state.text()))
        elif command is Action.END_OF_INPUT:
            self._finish(EndOfInput() if state.is_empty() else Input(state.text()))
        else:
            self._buffer.apply(command)
            self._redraw()

    def _finish(self, result: EditorResult) -> None:
        if self._result is None or self._result.done():
            return
        self._write_best_effort(self._renderer.leave())
        self._release()
        self._result.set_result(result)

    # -- drawing ------------------------------------------------------------------

    def _render(self) -> None:
        output = self._options.output
        frame = self._renderer.frame(self._buffer.state, getattr(output, "columns", None))
        output.write(frame.output)
        self._renderer.commit(frame)

    def _redraw(self) -> None:
        try:
            self._render()
        except Exception:
            logger.debug("Redraw failed, screen may be stale", exc_info=True)
