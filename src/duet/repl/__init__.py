"""duet-repl: interactive prompt loop and command-line entry point."""

from duet.repl.loop import PromptHandler, dispatch_entry, push_history, run_repl
from duet.repl.settings import ReplSettings, SettingsManager, deep_merge_settings

__version__ = "0.1.1"

__all__ = [
    "PromptHandler",
    "ReplSettings",
    "SettingsManager",
    "deep_merge_settings",
    "dispatch_entry",
    "push_history",
    "run_repl",
]
