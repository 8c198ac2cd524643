"""
ContentSanitizer (E4.3) - Strip unsafe constructs from markdown.

Test assertions:
- TA-0108: No <script, javascript: or disallowed scheme survives
- TA-0109: Sanitizing clean content is a no-op
- TA-0113: Adversarial input near the length limit is handled in linear time

Steps run strictly in sequence, each on the previous step's output:
1. strip dangerous patterns
2. empty the URL of links/images with a disallowed scheme
3. strip HTML tags outside the mode's allow-list

Deleting a match can join two fragments into a new one ("<scr<b>ipt>").
Steps 1 and 3 delete in a single left-to-right scan that re-checks every
join, so nested constructs cost one pass rather than one pass per level.

Safe markdown syntax is never reformatted. Leftover "()" after step 2 is
kept as is.
"""

from __future__ import annotations

import heapq
import logging
import re
from bisect import bisect_left, bisect_right
from typing import Any, Protocol

from ._links import Reference, find_images, find_links, replace_references
from ._policy import (
    DEFAULT_POLICY,
    SIGNATURE_LOOKBEHIND,
    DangerousPattern,
    PatternPolicy,
    classify_url,
    element_bounds,
)
from .models import DEFAULT_OPTIONS, ProcessingOptions

logger = logging.getLogger(__name__)

HTML_TAG_PATTERN = re.compile(r"</?([a-zA-Z][\w-]{0,63})(?=[\s/>])[^<>]*>")

# Opening "<" or "</", the tag name and the character after it
_TAG_START = re.compile(r"</?([a-zA-Z][\w-]{0,63})(?=[\s/>])")
_TAG_START_LENGTH = 67

_ANGLE_BRACKET = re.compile(r"[<>]")

Span = tuple[int, int]


def _search(regex: re.Pattern[str], text: str, pos: int = 0) -> re.Match[str] | None:
    """First non-empty match at or after pos."""
    match = regex.search(text, pos)
    while match is not None and match.end() == match.start():
        match = regex.search(text, match.start() + 1)
    return match


# --- Match Sources ---


class _Matches(Protocol):
    def next_span(self, pos: int) -> Span | None: ...


class _PatternMatches:
    """Successive matches of one dangerous pattern in a fixed text."""

    def __init__(self, pattern: DangerousPattern, text: str) -> None:
        self._regex = pattern.regex
        self._text = text
        self._bounds = element_bounds(pattern.element) if pattern.element else None
        self._closing: re.Match[str] | None = None
        self._unclosed = False

    def next_span(self, pos: int) -> Span | None:
        match = _search(self._regex, self._text, pos)
        if match is None:
            return None
        return match.start(), self._element_end(match)

    def _element_end(self, match: re.Match[str]) -> int:
        if self._bounds is None or self._unclosed:
            return match.end()
        opening = self._bounds[0].match(self._text, match.start())
        if opening is None:
            return match.end()

        closing = self._closing
        if closing is None or closing.start() < opening.end():
            closing = self._bounds[1].search(self._text, opening.end())
            if closing is None:
                # No closing tag after this opening, so none after any later one
                self._unclosed = True
                return match.end()
            self._closing = closing
        return closing.end()


class _TagMatches:
    """Successive HTML tags whose name is outside an allow-list."""

    def __init__(self, allowed: frozenset[str], text: str) -> None:
        self._allowed = allowed
        self._text = text

    def next_span(self, pos: int) -> Span | None:
        match = HTML_TAG_PATTERN.search(self._text, pos)
        while match is not None and match.group(1).lower() in self._allowed:
            match = HTML_TAG_PATTERN.search(self._text, match.end())
        return None if match is None else match.span()


# --- Single-Scan Deletion ---


class _Stripper:
    """
    Deletes every dangerous pattern (and disallowed tag) in one scan.

    Output is held as [start, end] slices of the input. After each run of
    deletions the join is re-checked for a signature starting within
    SIGNATURE_LOOKBEHIND characters before it, and for a tag opened by the
    last unclosed "<" of the output.
    """

    def __init__(
        self,
        text: str,
        patterns: tuple[DangerousPattern, ...],
        allowed_tags: frozenset[str] | None,
    ) -> None:
        self._text = text
        self._patterns = patterns
        self._allowed_tags = allowed_tags

        self._pieces: list[list[int]] = []
        self._offsets: list[int] = []
        self._length = 0

        # Angle brackets of the input, and (output offset, char) of those kept
        self._angle_positions: list[int] = []
        self._angles: list[tuple[int, str]] = []
        if allowed_tags is not None:
            self._angle_positions = [m.start() for m in _ANGLE_BRACKET.finditer(text)]

    def run(self) -> str:
        sources: list[_Matches] = [_PatternMatches(p, self._text) for p in self._patterns]
        if self._allowed_tags is not None:
            sources.append(_TagMatches(self._allowed_tags, self._text))

        queue: list[tuple[int, int, int]] = []
        for index, source in enumerate(sources):
            self._enqueue(queue, sources, index, 0)

        pos = 0
        while self._peek(queue, sources, pos) is not None:
            start, index, end = heapq.heappop(queue)
            self._emit(pos, start)
            pos = end
            self._enqueue(queue, sources, index, pos)

            following = self._peek(queue, sources, pos)
            if following is not None and following[0] == pos:
                continue
            pos = self._repair(pos)

        self._emit(pos, len(self._text))
        return "".join(self._text[start:end] for start, end in self._pieces)

    # --- Queue ---

    @staticmethod
    def _enqueue(
        queue: list[tuple[int, int, int]], sources: list[_Matches], index: int, pos: int
    ) -> None:
        span = sources[index].next_span(pos)
        if span is not None:
            heapq.heappush(queue, (span[0], index, span[1]))

    def _peek(
        self, queue: list[tuple[int, int, int]], sources: list[_Matches], pos: int
    ) -> tuple[int, int, int] | None:
        """Earliest match at or after pos, refreshing entries overtaken by a deletion."""
        while queue and queue[0][0] < pos:
            _, index, _ = heapq.heappop(queue)
            self._enqueue(queue, sources, index, pos)
        return queue[0] if queue else None

    # --- Output ---

    def _emit(self, start: int, end: int) -> None:
        if start >= end:
            return
        if self._allowed_tags is not None:
            lo = bisect_left(self._angle_positions, start)
            hi = bisect_left(self._angle_positions, end)
            shift = self._length - start
            for position in self._angle_positions[lo:hi]:
                self._angles.append((position + shift, self._text[position]))
        self._pieces.append([start, end])
        self._offsets.append(self._length)
        self._length += end - start

    def _truncate(self, length: int) -> None:
        while self._pieces and self._offsets[-1] >= length:
            self._pieces.pop()
            self._offsets.pop()
        if self._pieces:
            piece = self._pieces[-1]
            piece[1] = piece[0] + length - self._offsets[-1]
        self._length = length
        while self._angles and self._angles[-1][0] >= length:
            self._angles.pop()

    def _tail(self, size: int) -> str:
        parts: list[str] = []
        for start, end in reversed(self._pieces):
            take = min(size, end - start)
            parts.append(self._text[end - take : end])
            size -= take
            if size == 0:
                break
        return "".join(reversed(parts))

    def _output_from(self, offset: int, size: int) -> str:
        index = bisect_right(self._offsets, offset) - 1
        start = self._pieces[index][0] + offset - self._offsets[index]
        parts: list[str] = []
        while index < len(self._pieces) and size > 0:
            end = min(self._pieces[index][1], start + size)
            parts.append(self._text[start:end])
            size -= end - start
            index += 1
            if index < len(self._pieces):
                start = self._pieces[index][0]
        return "".join(parts)

    # --- Joins ---

    def _repair(self, pos: int) -> int:
        """Delete matches that only exist because output and text[pos:] now touch."""
        while self._length:
            fused = self._fused_signature(pos) or self._fused_tag(pos)
            if fused is None:
                break
            cut, pos = fused
            self._truncate(cut)
        return pos

    def _fused_signature(self, pos: int) -> Span | None:
        tail = self._tail(SIGNATURE_LOOKBEHIND)
        split = len(tail)
        ahead = SIGNATURE_LOOKBEHIND

        while True:
            window = tail + self._text[pos : pos + ahead]
            best: re.Match[str] | None = None
            for pattern in self._patterns:
                for match in pattern.regex.finditer(window):
                    if match.end() <= split:
                        continue
                    if match.start() < split and (best is None or match.start() < best.start()):
                        best = match
                    break
            if best is None:
                return None
            # A match running to the end of the window may continue past it
            if best.end() == len(window) and pos + ahead < len(self._text):
                ahead *= 2
                continue
            return self._length - split + best.start(), pos + best.end() - split

    def _fused_tag(self, pos: int) -> Span | None:
        if self._allowed_tags is None or not self._angles:
            return None
        opened_at, char = self._angles[-1]
        if char != "<":
            return None

        # The joined tag ends at the next angle bracket, which must be ">"
        index = bisect_left(self._angle_positions, pos)
        if index == len(self._angle_positions):
            return None
        closed_at = self._angle_positions[index]
        if self._text[closed_at] != ">":
            return None

        start = self._output_from(opened_at, _TAG_START_LENGTH)
        if len(start) < _TAG_START_LENGTH:
            start += self._text[pos : pos + _TAG_START_LENGTH - len(start)]
        match = _TAG_START.match(start)
        if match is None or match.group(1).lower() in self._allowed_tags:
            return None
        return opened_at, closed_at + 1


# --- Sanitizer ---


class ContentSanitizer:
    """Produces a cleaned markdown string from untrusted input."""

    def __init__(self, policy: PatternPolicy | None = None) -> None:
        self._policy = policy or DEFAULT_POLICY

    @property
    def policy(self) -> PatternPolicy:
        return self._policy

    def sanitize(self, content: Any, options: ProcessingOptions = DEFAULT_OPTIONS) -> str:
        if not isinstance(content, str) or not content:
            return ""

        # Every step only deletes text, so repeating the pass terminates.
        # A stable pass means nothing unsafe is left and a second call is a no-op.
        current = content
        while True:
            cleaned = self._sanitize_pass(current, options)
            if cleaned == current:
                break
            current = cleaned

        if current != content:
            logger.debug(
                "Sanitized markdown content: %d -> %d chars", len(content), len(current)
            )
        return current

    def _sanitize_pass(self, content: str, options: ProcessingOptions) -> str:
        text = self.strip_dangerous_patterns(content)
        text = self.strip_disallowed_urls(text, options)
        return self.strip_html_tags(text, options)

    # --- Step 1 ---

    def strip_dangerous_patterns(self, content: str) -> str:
        return self._strip(content, None)

    # --- Step 2 ---

    def strip_disallowed_urls(self, content: str, options: ProcessingOptions) -> str:
        policy = self._policy

        def clean_image(ref: Reference) -> str:
            if policy.image_violation(classify_url(ref.target)) is None:
                return f"![{ref.label}]({ref.target})"
            return f"![{ref.label}]()"

        def clean_link(ref: Reference) -> str:
            if policy.link_violation(classify_url(ref.target), options) is None:
                return f"[{ref.label}]({ref.target})"
            return f"[{ref.label}]()"

        text = replace_references(content, find_images(content), clean_image)
        return replace_references(text, find_links(text), clean_link)

    # --- Step 3 ---

    def strip_html_tags(self, content: str, options: ProcessingOptions) -> str:
        """
        Strip tags outside the allow-list.

        A signature that only appears once a tag is gone ("java<b>script:")
        is removed in the same scan.
        """
        return self._strip(content, self._policy.html_tags_for(options))

    # --- Scanning ---

    def _strip(self, content: str, allowed_tags: frozenset[str] | None) -> str:
        text = content
        while True:
            stripped = _Stripper(text, self._policy.dangerous_patterns, allowed_tags).run()
            # Joins are re-checked within a bounded window; a custom signature
            # longer than that is caught here and scanned again.
            if stripped == text or not self._has_match(stripped, allowed_tags):
                return stripped
            text = stripped

    def _has_match(self, text: str, allowed_tags: frozenset[str] | None) -> bool:
        if any(_search(p.regex, text) for p in self._policy.dangerous_patterns):
            return True
        return allowed_tags is not None and _TagMatches(allowed_tags, text).next_span(0) is not None
