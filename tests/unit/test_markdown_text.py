"""
Tests for plain-text extraction and metrics (E4.3).

Test assertions:
- TA-0106: Plain text keeps the words, drops the syntax
- TA-0107: Word count and reading time
- TA-0113: Unclosed constructs cost one pass
"""

from __future__ import annotations

import pytest

from src.components.markdown import (
    calculate_word_count,
    estimate_reading_time,
    extract_plain_text,
    reading_time_for,
)


class TestExtractPlainText:
    """Plain-text projection (TA-0106)."""

    def test_strips_common_syntax(self) -> None:
        text = extract_plain_text(
            "# Hello World\n\n**bold** *italic* [a link](https://example.com)"
        )

        for word in ("Hello World", "bold", "italic", "a link"):
            assert word in text
        for marker in ("#", "**", "["):
            assert marker not in text

    @pytest.mark.parametrize("content", [None, "", "   ", 17])
    def test_invalid_input(self, content) -> None:
        assert extract_plain_text(content) == ""

    def test_image_keeps_alt(self) -> None:
        assert extract_plain_text("![A red chart](/chart.png)") == "A red chart"

    def test_html_tags_removed(self) -> None:
        assert extract_plain_text("<strong>Bold</strong> text") == "Bold text"

    def test_code_fence_keeps_code(self) -> None:
        text = extract_plain_text("```python\nprint('hi')\n```")
        assert text == "print('hi')"

    def test_lists_and_quotes(self) -> None:
        text = extract_plain_text("> quoted\n\n- one\n- [x] done\n1. first")
        assert text == "quoted one done first"

    def test_table(self) -> None:
        text = extract_plain_text("| a | b |\n|---|---|\n| 1 | 2 |")
        assert text == "a b 1 2"

    def test_whitespace_collapsed(self) -> None:
        assert extract_plain_text("one\n\n\ntwo\t\tthree") == "one two three"

    def test_snake_case_words_survive(self) -> None:
        assert extract_plain_text("use snake_case names") == "use snake_case names"

    def test_comment_removed(self) -> None:
        assert extract_plain_text("one <!-- hidden\nnote --> two") == "one two"

    def test_unclosed_comment_kept_as_text(self) -> None:
        assert extract_plain_text("one <!-- two") == "one <!-- two"

    def test_autolink_keeps_target(self) -> None:
        assert extract_plain_text("<https://example.com/a>") == "https://example.com/a"

    def test_link_label_markup_stripped(self) -> None:
        assert extract_plain_text("[**bold** label](/n) text") == "bold label text"

    def test_reference_definition_removed(self) -> None:
        assert extract_plain_text("Body\n\n[ref]: https://example.com") == "Body"

    def test_unclosed_brackets(self) -> None:
        assert extract_plain_text("[" * 1000) == "[" * 1000


class TestWordCount:
    """Word counting (TA-0107)."""

    def test_document_word_count(self) -> None:
        content = "# Hello World\n\nThis is a test document with multiple words."
        assert calculate_word_count(content) == 10

    def test_markup_is_not_counted(self) -> None:
        assert calculate_word_count("# Hello World\n\nThis is a **test** document.") == 7

    def test_rule_is_not_a_word(self) -> None:
        assert calculate_word_count("Above\n\n---\n\nBelow") == 2

    @pytest.mark.parametrize("content", [None, "", "  ", 3])
    def test_invalid_input(self, content) -> None:
        assert calculate_word_count(content) == 0


class TestReadingTime:
    """Reading time never drops below one minute."""

    def test_200_words_is_one_minute(self) -> None:
        assert estimate_reading_time(" ".join(["word"] * 200)) == 1

    def test_600_words_is_three_minutes(self) -> None:
        assert estimate_reading_time(" ".join(["word"] * 600)) == 3

    def test_rounds_up(self) -> None:
        assert estimate_reading_time(" ".join(["word"] * 201)) == 2

    def test_custom_speed(self) -> None:
        assert estimate_reading_time(" ".join(["word"] * 300), words_per_minute=100) == 3

    @pytest.mark.parametrize("content", [None, "", "#"])
    def test_minimum_is_one(self, content) -> None:
        assert estimate_reading_time(content) == 1

    @pytest.mark.parametrize("words,wpm,expected", [(0, 200, 1), (1, 200, 1), (400, 200, 2)])
    def test_reading_time_for(self, words: int, wpm: int, expected: int) -> None:
        assert reading_time_for(words, wpm) == expected
