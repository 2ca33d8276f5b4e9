"""CLI entry point for duet. Uses Click for argument parsing."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from typing import TextIO

import click

from duet.repl import __version__
from duet.repl.loop import EXIT_COMMANDS, PromptHandler, dispatch_entry, run_repl
from duet.repl.settings import SettingsManager
from duet.tui.terminal import ProcessTerminal

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _run(coro):
    """Run an async function synchronously."""
    return asyncio.run(coro)


def _resolve_log_level(verbose: bool, debug: bool, log_level: str | None) -> int:
    if log_level:
        return getattr(logging, log_level.upper())
    if debug:
        return logging.DEBUG
    if verbose:
        return logging.INFO
    return logging.WARNING


async def _echo_entry(entry: str) -> None:
    # Stand-in for the plan/review/code workflow
    click.echo(entry)


async def _run_piped(handler: PromptHandler, stream: TextIO | None = None) -> None:
    """Feed newline-separated entries from a non-interactive stdin.

    A failing entry is reported on *stream* (stderr by default) and the
    remaining entries still run.
    """
    stream = stream if stream is not None else sys.stderr
    for line in sys.stdin:
        entry = line.strip()
        if not entry:
            continue
        if entry in EXIT_COMMANDS:
            break
        await dispatch_entry(handler, entry, stream)
        stream.flush()


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, prog_name="duet")
@click.argument("prompt", required=False)
@click.option("--prompt-text", default=None, help="Prompt shown on the first editor row")
@click.option("--continuation-prompt", default=None, help="Prompt shown on following rows")
@click.option(
    "--max-history",
    type=click.IntRange(min=0),
    default=None,
    help="Number of entries kept for Up/Down recall",
)
@click.option(
    "--cwd",
    type=click.Path(exists=True, file_okay=False),
    default=None,
    help="Working directory (project settings are read from here)",
)
@click.option("--verbose", is_flag=True, help="Log progress at INFO level")
@click.option("--debug", is_flag=True, help="Log everything at DEBUG level")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    default=None,
    help="Explicit log level, overrides --verbose/--debug",
)
def main(prompt, prompt_text, continuation_prompt, max_history, cwd, verbose, debug, log_level):
    """Run PROMPT once, or start the interactive prompt loop."""
    logging.basicConfig(
        level=_resolve_log_level(verbose, debug, log_level),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )

    manager = SettingsManager.create(cwd or os.getcwd())
    manager.apply_overrides(
        {
            "prompt": prompt_text,
            "continuationPrompt": continuation_prompt,
            "maxHistory": max_history,
        }
    )
    settings = manager.resolve()

    if prompt:
        _run(_echo_entry(prompt))
        return

    if not sys.stdin.isatty():
        _run(_run_piped(_echo_entry))
        return

    _run(run_repl(_echo_entry, ProcessTerminal(), settings=settings, version=__version__))


if __name__ == "__main__":
    main()
