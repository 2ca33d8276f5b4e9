"""Tests for duet.tui.terminal.ProcessTerminal over real pipes."""

from __future__ import annotations

import asyncio
import io
import os
import signal
import termios

import pytest

from duet.tui.line_editor import EndOfInput, Input, LineEditorOptions, read_line
from duet.tui.terminal import ProcessTerminal


class Pipe:
    """An OS pipe whose ends are closed at most once."""

    def __init__(self) -> None:
        self.read_fd, self.write_fd = os.pipe()
        self._open = {self.read_fd, self.write_fd}

    def send(self, data: bytes) -> None:
        os.write(self.write_fd, data)

    def close_writer(self) -> None:
        self._close(self.write_fd)

    def close(self) -> None:
        for fd in list(self._open):
            self._close(fd)

    def _close(self, fd: int) -> None:
        if fd in self._open:
            self._open.discard(fd)
            os.close(fd)


@pytest.fixture
def pipe():
    p = Pipe()
    yield p
    p.close()


class TestProcessTerminal:
    def test_columns_unknown_for_non_tty_output(self, pipe: Pipe) -> None:
        term = ProcessTerminal(input_fd=pipe.read_fd, output=io.StringIO())
        assert term.columns is None

    def test_write_goes_to_output(self, pipe: Pipe) -> None:
        out = io.StringIO()
        term = ProcessTerminal(input_fd=pipe.read_fd, output=out)
        term.write("abc")
        assert out.getvalue() == "abc"

    def test_raw_mode_on_pipe_raises(self, pipe: Pipe) -> None:
        term = ProcessTerminal(input_fd=pipe.read_fd, output=io.StringIO())
        with pytest.raises(termios.error):
            term.set_raw_mode(True)

    def test_disabling_raw_mode_without_enabling_is_noop(self, pipe: Pipe) -> None:
        term = ProcessTerminal(input_fd=pipe.read_fd, output=io.StringIO())
        term.set_raw_mode(False)

    @pytest.mark.asyncio
    async def test_data_listener_receives_bytes(self, pipe: Pipe) -> None:
        term = ProcessTerminal(input_fd=pipe.read_fd, output=io.StringIO())
        received: list[bytes] = []
        got = asyncio.Event()

        def listener(data: bytes) -> None:
            received.append(data)
            got.set()

        term.add_data_listener(listener)
        pipe.send(b"hi")
        await asyncio.wait_for(got.wait(), timeout=1)
        term.remove_data_listener(listener)
        assert received == [b"hi"]
        assert term.listener_count == 0

    @pytest.mark.asyncio
    async def test_closed_input_notifies_end_listeners_once(self, pipe: Pipe) -> None:
        term = ProcessTerminal(input_fd=pipe.read_fd, output=io.StringIO())
        received: list[bytes] = []
        ends: list[None] = []
        got = asyncio.Event()

        def on_end() -> None:
            ends.append(None)
            got.set()

        term.add_data_listener(received.append)
        term.add_end_listener(on_end)
        pipe.close_writer()
        await asyncio.wait_for(got.wait(), timeout=1)
        # The closed descriptor is no longer polled
        await asyncio.sleep(0.05)
        term.remove_data_listener(received.append)
        term.remove_end_listener(on_end)
        assert ends == [None]
        assert received == []
        assert term.listener_count == 0

    @pytest.mark.asyncio
    async def test_resize_listener_fires_on_sigwinch(self, pipe: Pipe) -> None:
        term = ProcessTerminal(input_fd=pipe.read_fd, output=io.StringIO())
        got = asyncio.Event()
        term.add_resize_listener(got.set)
        os.kill(os.getpid(), signal.SIGWINCH)
        await asyncio.wait_for(got.wait(), timeout=1)
        term.remove_resize_listener(got.set)
        assert term.listener_count == 0

    def test_removing_unknown_listener_is_noop(self, pipe: Pipe) -> None:
        term = ProcessTerminal(input_fd=pipe.read_fd, output=io.StringIO())
        term.remove_data_listener(lambda data: None)
        term.remove_resize_listener(lambda: None)
        assert term.listener_count == 0

    @pytest.mark.asyncio
    async def test_editor_session_over_pipe(self, pipe: Pipe) -> None:
        out = io.StringIO()
        term = ProcessTerminal(input_fd=pipe.read_fd, output=out)
        pipe.send("日本\r".encode())
        result = await asyncio.wait_for(
            read_line(LineEditorOptions("ai> ", "... ", output=term, input=term)),
            timeout=1,
        )
        assert result == Input("日本")
        assert "ai> 日本" in out.getvalue()
        assert term.listener_count == 0

    @pytest.mark.asyncio
    async def test_end_of_input_over_closed_pipe(self, pipe: Pipe) -> None:
        term = ProcessTerminal(input_fd=pipe.read_fd, output=io.StringIO())
        pipe.close_writer()
        result = await asyncio.wait_for(
            read_line(LineEditorOptions("ai> ", "... ", output=term, input=term)),
            timeout=1,
        )
        assert result == EndOfInput()

    @pytest.mark.asyncio
    async def test_input_closed_inside_paste_ends_session(self, pipe: Pipe) -> None:
        term = ProcessTerminal(input_fd=pipe.read_fd, output=io.StringIO())
        pipe.send(b"\x1b[200~abc")
        pipe.close_writer()
        result = await asyncio.wait_for(
            read_line(LineEditorOptions("ai> ", "... ", output=term, input=term)),
            timeout=1,
        )
        assert result == EndOfInput()
        assert term.listener_count == 0

    @pytest.mark.asyncio
    async def test_next_session_after_close_also_ends(self, pipe: Pipe) -> None:
        term = ProcessTerminal(input_fd=pipe.read_fd, output=io.StringIO())
        pipe.send(b"first\r")
        pipe.close_writer()
        options = LineEditorOptions("ai> ", "... ", output=term, input=term)
        assert await asyncio.wait_for(read_line(options), timeout=1) == Input("first")
        assert await asyncio.wait_for(read_line(options), timeout=1) == EndOfInput()
