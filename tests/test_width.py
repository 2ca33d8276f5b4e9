"""Tests for duet.tui.width display-width measurement."""

from __future__ import annotations

import pytest

from duet.tui.width import (
    char_width,
    is_wide,
    line_width,
    prompt_width,
    split_escapes,
    strip_escapes,
)


class TestCharWidth:
    def test_ascii_is_one(self) -> None:
        assert char_width("a") == 1
        assert char_width(" ") == 1

    @pytest.mark.parametrize(
        "ch",
        [
            "\u1100",      # Hangul Jamo start
            "\u115f",      # Hangul Jamo end
            "\u3000",      # ideographic space
            "\u3042",      # Hiragana
            "\u30a2",      # Katakana
            "\u3400",      # CJK extension A
            "\u65e5",      # CJK unified
            "\ud55c",      # Hangul syllable
            "\uf900",      # CJK compatibility
            "\uff21",      # fullwidth A
            "\uff60",      # fullwidth range end
            "\uffe6",      # fullwidth won sign
            "\U00020000",  # CJK extension B
        ],
    )
    def test_wide_ranges(self, ch: str) -> None:
        assert char_width(ch) == 2

    @pytest.mark.parametrize("ch", ["\u1160", "\uff61", "\uffe7", "\u00e9", "\U0001f600"])
    def test_outside_ranges_is_one(self, ch: str) -> None:
        assert char_width(ch) == 1

    def test_is_wide_below_first_range(self) -> None:
        assert is_wide(0x10FF) is False
        assert is_wide(0x1100) is True


class TestLineWidth:
    def test_empty(self) -> None:
        assert line_width("") == 0

    def test_ascii(self) -> None:
        assert line_width("hello") == 5

    def test_mixed(self) -> None:
        assert line_width("hello日本") == 9

    def test_additive(self) -> None:
        a, b = "ab日", "本c"
        assert line_width(a + b) == line_width(a) + line_width(b)


class TestPromptWidth:
    def test_plain_prompt(self) -> None:
        assert prompt_width("ai> ") == 4

    def test_styled_prompt(self) -> None:
        assert prompt_width("\x1b[32mai>\x1b[0m ") == 4

    def test_strip_escapes(self) -> None:
        assert strip_escapes("\x1b[1;34m>\x1b[0m") == ">"

    def test_split_escapes_keeps_sequences_whole(self) -> None:
        assert split_escapes("\x1b[1m>\x1b[0m") == [
            ("\x1b[1m", 0),
            (">", 1),
            ("\x1b[0m", 0),
        ]

    def test_split_escapes_wide(self) -> None:
        assert split_escapes("日>") == [("日", 2), (">", 1)]
