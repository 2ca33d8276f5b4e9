"""Interactive prompt loop.

Reads one entry at a time with the raw-mode editor and hands each to a
caller-supplied handler (the plan/review/code workflow). History lives in
memory for the lifetime of the loop, most recent entry first.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Awaitable
from typing import Callable, TextIO

from duet.repl.settings import ReplSettings
from duet.tui.line_editor import Cancel, EndOfInput, LineEditorOptions, read_line
from duet.tui.terminal import Terminal

logger = logging.getLogger(__name__)

PromptHandler = Callable[[str], Awaitable[None]]

EXIT_COMMANDS = frozenset({"exit", "quit"})

WELCOME = (
    "duet {version}\n"
    "Enter submits, Ctrl+J or Alt+Enter adds a line, Ctrl+D or 'exit' quits.\n"
)
GOODBYE = "Bye."
INTERRUPTED = "Interrupted."
NEXT_PROMPT = "Ready for the next prompt."


def push_history(history: list[str], entry: str, max_size: int) -> None:
    """Put *entry* at the front of *history*, skipping a repeat of the front."""
    if history and history[0] == entry:
        return
    history.insert(0, entry)
    del history[max_size:]


async def dispatch_entry(handler: PromptHandler, entry: str, stream: TextIO) -> bool:
    """Await *handler* on *entry*, reporting a failure on *stream*.

    Returns ``False`` when the handler raised. The caller keeps going
    either way.
    """
    try:
        await handler(entry)
    except KeyboardInterrupt:
        stream.write(f"\n{INTERRUPTED}\n")
        return False
    except Exception as e:
        logger.debug("Prompt handler failed", exc_info=True)
        stream.write(f"\nError: {e}\n")
        stream.write(f"{NEXT_PROMPT}\n")
        return False
    return True


async def run_repl(
    handler: PromptHandler,
    terminal: Terminal,
    *,
    settings: ReplSettings | None = None,
    stream: TextIO | None = None,
    history: list[str] | None = None,
    version: str = "",
) -> None:
    """Prompt until end of input or an exit command.

    Banner and status lines go to *stream* (stderr by default).
    *history* is updated in place when given.
    """
    settings = settings or ReplSettings()
    stream = stream if stream is not None else sys.stderr
    history = history if history is not None else []

    stream.write(WELCOME.format(version=version))
    stream.flush()

    while True:
        result = await read_line(
            LineEditorOptions(
                prompt=settings.prompt,
                continuation_prompt=settings.continuation_prompt,
                output=terminal,
                input=terminal,
                history=history,
            )
        )

        if isinstance(result, EndOfInput):
            stream.write(f"{GOODBYE}\n")
            break
        if isinstance(result, Cancel):
            continue

        entry = result.value.strip()
        if not entry:
            continue
        if entry in EXIT_COMMANDS:
            stream.write(f"{GOODBYE}\n")
            break

        push_history(history, entry, settings.max_history)
        await dispatch_entry(handler, entry, stream)
        stream.write("\n")
        stream.flush()

    stream.flush()
