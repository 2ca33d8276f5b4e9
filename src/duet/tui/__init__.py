"""duet-tui: raw-mode multi-line prompt editor."""

# Edit buffer
from duet.tui.buffer import EditorState, TextBuffer, split_lines

# Input decoding
from duet.tui.decoder import (
    Action,
    Command,
    InputDecoder,
    InsertText,
    ParseState,
    PasteAggregator,
)

# History browsing
from duet.tui.history import HistoryNavigator

# Session controller
from duet.tui.line_editor import (
    Cancel,
    EditorResult,
    EndOfInput,
    Input,
    LineEditorOptions,
    LineEditorSession,
    read_line,
)

# Rendering
from duet.tui.render import Frame, Renderer, RowLayout, layout_row, wrap_position

# Terminal capabilities
from duet.tui.terminal import InputSource, OutputSink, ProcessTerminal, Terminal

# Width measurement
from duet.tui.width import char_width, line_width, prompt_width

__all__ = [
    "Action",
    "Cancel",
    "Command",
    "EditorResult",
    "EditorState",
    "EndOfInput",
    "Frame",
    "HistoryNavigator",
    "Input",
    "InputDecoder",
    "InputSource",
    "InsertText",
    "LineEditorOptions",
    "LineEditorSession",
    "OutputSink",
    "ParseState",
    "PasteAggregator",
    "ProcessTerminal",
    "Renderer",
    "RowLayout",
    "Terminal",
    "TextBuffer",
    "char_width",
    "layout_row",
    "line_width",
    "prompt_width",
    "read_line",
    "split_lines",
    "wrap_position",
]
