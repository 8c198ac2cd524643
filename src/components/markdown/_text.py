"""
Plain-text projection and content metrics for markdown.

Test assertions: TA-0106, TA-0107, TA-0113

The substitutions below run once, in order. Link and image syntax is
rewritten to its label before any bracket or marker is touched, so the
visible words survive. Every rule is a single forward scan: no pattern
can retry a long stretch of text from each of its positions.
"""

from __future__ import annotations

import math
import re
from typing import Any

from ._links import find_references, replace_references

AVERAGE_READING_SPEED = 200  # words per minute

# Code fence lines (the code itself is kept)
_FENCE_LINE = re.compile(r"^[ \t]*(?:`{3,}|~{3,}).*$", re.MULTILINE)

# Reference-style link definitions
_REFERENCE_DEFINITION = re.compile(r"^[ \t]{0,3}\[[^\]\n]+\]:[ \t]*\S+.*$", re.MULTILINE)

# Autolinks keep their target
_AUTOLINK = re.compile(r"<((?:https?|mailto|ftp|tel):[^<>\s]+)>", re.IGNORECASE)

_MARKUP_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    # HTML tags
    (re.compile(r"</?[a-zA-Z][^<>\n]*>"), " "),
    # Inline code
    (re.compile(r"`+"), ""),
    # Headings (ATX open/close markers, setext underlines)
    (re.compile(r"^[ \t]{0,3}#{1,6}[ \t]*", re.MULTILINE), ""),
    (re.compile(r"(?<![ \t])[ \t]+#+[ \t]*$", re.MULTILINE), ""),
    (re.compile(r"^[ \t]*=+[ \t]*$", re.MULTILINE), ""),
    # Blockquotes
    (re.compile(r"^[ \t]*(?:>[ \t]?)+", re.MULTILINE), ""),
    # Horizontal rules, before list markers so "- - -" is not a list item
    (re.compile(r"^[ \t]*([-*_])(?:[ \t]*\1){2,}[ \t]*$", re.MULTILINE), ""),
    # Table separator rows: only pipes, colons and dashes
    (re.compile(r"^(?=[^\n|]*\|)(?=[^\n-]*-)[ \t|:-]*$", re.MULTILINE), ""),
    # List markers and task boxes
    (re.compile(r"^[ \t]*(?:[-*+]|\d+[.)])[ \t]+(?:\[[ xX]\][ \t]+)?", re.MULTILINE), ""),
    # Table pipes
    (re.compile(r"\|"), " "),
    # Emphasis and strikethrough markers
    (re.compile(r"\*\*|__|~~"), ""),
    (re.compile(r"(?<!\w)[*_]+|[*_]+(?!\w)"), ""),
)

# Tokens made only of markdown punctuation are not words
_MARKUP_ONLY = re.compile(r"^[*_`~#>|+\-=:\[\]()!]+$")


def _keep_labels(text: str) -> str:
    """Images, then links, collapse to their label."""
    text = replace_references(
        text, find_references(text, images=True, empty_target=True), lambda ref: ref.label
    )
    return replace_references(
        text, find_references(text, images=None, empty_target=True), lambda ref: ref.label
    )


def _strip_comments(text: str) -> str:
    """Replace each HTML comment with a space; an unclosed one stays."""
    parts: list[str] = []
    pos = 0
    while True:
        start = text.find("<!--", pos)
        if start < 0:
            break
        end = text.find("-->", start + 4)
        if end < 0:
            break
        parts.append(text[pos:start])
        parts.append(" ")
        pos = end + 3
    parts.append(text[pos:])
    return "".join(parts)


def extract_plain_text(content: Any) -> str:
    """
    Strip markdown syntax, leaving the readable words.

    Returns "" for anything that is not a non-empty string.
    """
    if not isinstance(content, str) or not content.strip():
        return ""

    text = _FENCE_LINE.sub("", content)
    text = _keep_labels(text)
    text = _REFERENCE_DEFINITION.sub("", text)
    text = _AUTOLINK.sub(r"\1", text)
    text = _strip_comments(text)
    for pattern, replacement in _MARKUP_RULES:
        text = pattern.sub(replacement, text)

    return " ".join(text.split())


def calculate_word_count(content: Any) -> int:
    """Count words in the plain-text projection of the content."""
    text = extract_plain_text(content)
    if not text:
        return 0
    return sum(1 for token in text.split() if not _MARKUP_ONLY.match(token))


def reading_time_for(word_count: int, words_per_minute: int = AVERAGE_READING_SPEED) -> int:
    """Minutes to read word_count words, never less than one."""
    if word_count <= 0 or words_per_minute <= 0:
        return 1
    return max(1, math.ceil(word_count / words_per_minute))


def estimate_reading_time(content: Any, words_per_minute: int = AVERAGE_READING_SPEED) -> int:
    """
    Estimate reading time in whole minutes.

    Invalid or empty content degrades to 1 so a UI never shows "0 min read".
    """
    return reading_time_for(calculate_word_count(content), words_per_minute)
