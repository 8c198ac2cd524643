"""
Markdown link and image references.

Finds `[label](target)` and `![alt](source)` with str.find and cached
delimiter positions instead of a regex, so unclosed brackets cost one pass
over the text rather than one pass per bracket.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class Reference:
    """One link or image; start/end cover the whole construct."""

    start: int
    end: int
    label: str
    target: str


class _NextChar:
    """Position of the next occurrence of a character, searched once per stretch."""

    def __init__(self, text: str, char: str) -> None:
        self._text = text
        self._char = char
        self._found = -2

    def at_or_after(self, pos: int) -> int:
        if self._found == -1 or self._found >= pos:
            return self._found
        self._found = self._text.find(self._char, pos)
        return self._found


def find_references(
    content: str,
    images: bool | None,
    empty_target: bool = False,
) -> list[Reference]:
    """
    Scan content for bracket references, left to right, without overlap.

    images=True finds only `![..](..)`, images=False only links (a "[" not
    preceded by "!"), None any bracket pair. The label runs to the first
    "]", the target to the first ")".
    """
    marker = "![" if images else "["
    closing_bracket = _NextChar(content, "]")
    closing_paren = _NextChar(content, ")")
    refs: list[Reference] = []
    pos = 0

    while True:
        found = content.find(marker, pos)
        if found < 0:
            break
        open_at = found + len(marker) - 1
        pos = open_at + 1

        label_end = closing_bracket.at_or_after(open_at + 1)
        if label_end < 0:
            break
        if images is False and open_at > 0 and content[open_at - 1] == "!":
            continue
        if not content.startswith("(", label_end + 1):
            continue

        target_end = closing_paren.at_or_after(label_end + 2)
        if target_end < 0:
            break
        if target_end == label_end + 2 and not empty_target:
            continue

        start = open_at - 1 if images else open_at
        refs.append(
            Reference(
                start=start,
                end=target_end + 1,
                label=content[open_at + 1 : label_end],
                target=content[label_end + 2 : target_end],
            )
        )
        pos = target_end + 1

    return refs


def find_links(content: str) -> list[Reference]:
    return find_references(content, images=False)


def find_images(content: str) -> list[Reference]:
    return find_references(content, images=True)


def replace_references(
    content: str,
    refs: list[Reference],
    replace: Callable[[Reference], str],
) -> str:
    """Rebuild content with each reference swapped for replace(ref)."""
    if not refs:
        return content
    parts: list[str] = []
    pos = 0
    for ref in refs:
        parts.append(content[pos : ref.start])
        parts.append(replace(ref))
        pos = ref.end
    parts.append(content[pos:])
    return "".join(parts)
