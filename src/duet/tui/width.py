"""Display-width measurement for the line editor.

Every code point is either one or two terminal columns wide. East-Asian
wide and full-width characters count as two; everything else counts as
one. Prompts may carry ANSI styling, which is stripped before measuring.
"""

from __future__ import annotations

import re

# SGR / erase / cursor CSI sequences and OSC 8 hyperlinks inside prompts
_PROMPT_ESCAPE_RE = re.compile(
    r"\x1b\[[0-9;?]*[A-Za-z]"     # CSI
    r"|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"  # OSC
)

# Inclusive code point ranges rendered two columns wide.
_WIDE_RANGES: tuple[tuple[int, int], ...] = (
    (0x1100, 0x115F),    # Hangul Jamo
    (0x3000, 0x303F),    # CJK Symbols and Punctuation, ideographic space
    (0x3040, 0x309F),    # Hiragana
    (0x30A0, 0x30FF),    # Katakana
    (0x3400, 0x4DBF),    # CJK Unified Ideographs Extension A
    (0x4E00, 0x9FFF),    # CJK Unified Ideographs
    (0xAC00, 0xD7AF),    # Hangul Syllables
    (0xF900, 0xFAFF),    # CJK Compatibility Ideographs
    (0xFF01, 0xFF60),    # Fullwidth Forms
    (0xFFE0, 0xFFE6),    # Fullwidth signs
    (0x20000, 0x2FFFF),  # CJK Unified Ideographs Extension B and later
)


def is_wide(code: int) -> bool:
    """Return ``True`` if *code* falls in an East-Asian wide range."""
    for start, end in _WIDE_RANGES:
        if code < start:
            return False
        if code <= end:
            return True
    return False


def char_width(ch: str) -> int:
    """Return the display width (1 or 2) of a single character."""
    return 2 if is_wide(ord(ch)) else 1


def line_width(text: str) -> int:
    """Sum of :func:`char_width` over *text*, iterated by code point."""
    if text.isascii():
        return len(text)
    return sum(char_width(ch) for ch in text)


def strip_escapes(text: str) -> str:
    return _PROMPT_ESCAPE_RE.sub("", text)


def prompt_width(prompt: str) -> int:
    """Width of a prompt once its escape sequences are removed."""
    return line_width(strip_escapes(prompt))


def split_escapes(text: str) -> list[tuple[str, int]]:
    """Split *text* into ``(token, width)`` pairs.

    Escape sequences come out whole with width ``0`` so a styled prompt
    can be laid out column by column without breaking its escapes.
    """
    tokens: list[tuple[str, int]] = []
    pos = 0
    for match in _PROMPT_ESCAPE_RE.finditer(text):
        tokens.extend((ch, char_width(ch)) for ch in text[pos:match.start()])
        tokens.append((match.group(0), 0))
        pos = match.end()
    tokens.extend((ch, char_width(ch)) for ch in text[pos:])
    return tokens
