"""
ContentValidator (E4.3) - Markdown validation verdicts.

Test assertions:
- TA-0103: is_valid iff no errors
- TA-0104: Dangerous patterns block in strict mode only
- TA-0105: Disallowed link/image protocols always block

Checks run in a fixed order and findings keep that order:
length -> dangerous patterns -> links -> images -> structure.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from ._links import find_images, find_links
from ._policy import DEFAULT_POLICY, DEFAULT_SEVERITY, PatternPolicy, classify_url, is_blocking
from ._text import calculate_word_count, reading_time_for
from .models import (
    DEFAULT_OPTIONS,
    ContentFinding,
    FindingCode,
    ProcessingOptions,
    Severity,
    ValidationResult,
)

logger = logging.getLogger(__name__)

INPUT_GUARD_MESSAGE = "Content must be a non-empty string"

LIST_ITEM_PATTERN = re.compile(r"^(\s*)(?:[-*+]|\d+[.)])\s")
TABLE_ROW_PATTERN = re.compile(r"^\s*\|.*\|\s*$")
TABLE_SEPARATOR_PATTERN = re.compile(r"^(?=[^|]*\|)(?=[^-]*-)[\s|:-]*$")


@dataclass
class _Findings:
    """Ordered finding collector for one validation pass."""

    strict_mode: bool
    items: list[ContentFinding] = field(default_factory=list)

    def add(self, code: FindingCode, message: str, severity: Severity | None = None) -> None:
        base = severity or DEFAULT_SEVERITY[code.value]
        blocking = is_blocking(base, self.strict_mode)
        resolved = Severity.ERROR_ALWAYS if blocking else Severity.WARNING
        self.items.append(ContentFinding(code=code.value, message=message, severity=resolved))

    def result(self, word_count: int, reading_time: int) -> ValidationResult:
        errors = tuple(f.message for f in self.items if f.severity is Severity.ERROR_ALWAYS)
        warnings = tuple(f.message for f in self.items if f.severity is Severity.WARNING)
        return ValidationResult(
            errors=errors,
            warnings=warnings,
            word_count=word_count,
            estimated_reading_time=reading_time,
            findings=tuple(self.items),
        )


def _limit(override: int | None, default: int) -> int:
    """An explicit override wins, zero included."""
    return default if override is None else override


def invalid_input_result() -> ValidationResult:
    """Result for content that is not a non-empty string."""
    finding = ContentFinding(
        code=FindingCode.VALIDATION_ERROR.value,
        message=INPUT_GUARD_MESSAGE,
        severity=Severity.ERROR_ALWAYS,
    )
    return ValidationResult(
        errors=(INPUT_GUARD_MESSAGE,),
        warnings=(),
        word_count=0,
        estimated_reading_time=1,
        findings=(finding,),
    )


# --- Structural Measurements ---


def max_list_depth(content: str) -> int:
    """Deepest list nesting level; two spaces of indent per level."""
    depth = 0
    for line in content.split("\n"):
        match = LIST_ITEM_PATTERN.match(line.expandtabs(4))
        if match:
            depth = max(depth, len(match.group(1)) // 2 + 1)
    return depth


def largest_table_cells(content: str) -> int:
    """Cell count of the largest pipe table (separator rows excluded)."""
    largest = 0
    current = 0
    for line in content.split("\n"):
        if TABLE_ROW_PATTERN.match(line):
            if not TABLE_SEPARATOR_PATTERN.match(line):
                current += len(line.strip().strip("|").split("|"))
            largest = max(largest, current)
        else:
            current = 0
    return largest


# --- Validator ---


class ContentValidator:
    """
    Validates untrusted markdown against a PatternPolicy.

    Never raises for malformed content; every problem becomes a finding.
    """

    def __init__(self, policy: PatternPolicy | None = None) -> None:
        self._policy = policy or DEFAULT_POLICY

    @property
    def policy(self) -> PatternPolicy:
        return self._policy

    def validate(
        self,
        content: Any,
        options: ProcessingOptions = DEFAULT_OPTIONS,
    ) -> ValidationResult:
        if not isinstance(content, str) or not content.strip():
            return invalid_input_result()

        findings = _Findings(strict_mode=options.strict_mode)
        word_count = calculate_word_count(content)

        self._check_length(content, word_count, options, findings)
        self._check_dangerous_patterns(content, findings)
        external_links, suspicious_hosts = self._check_links(content, options, findings)
        data_images = self._check_images(content, options, findings)
        self._check_structure(content, findings)

        if external_links and options.allow_external_links:
            findings.add(
                FindingCode.EXTERNAL_LINKS,
                f"Content contains {external_links} external link(s)",
            )
        if data_images:
            findings.add(FindingCode.DATA_URLS, self._data_url_message(data_images))
        if suspicious_hosts:
            findings.add(
                FindingCode.SUSPICIOUS_DOMAIN,
                "Link to potentially suspicious domain: " + ", ".join(suspicious_hosts),
            )

        result = findings.result(
            word_count, reading_time_for(word_count, self._policy.reading_speed_wpm)
        )
        logger.debug(
            "Validated markdown: %d chars, %d errors, %d warnings",
            len(content),
            len(result.errors),
            len(result.warnings),
        )
        return result

    # --- Checks ---

    def _check_length(
        self,
        content: str,
        word_count: int,
        options: ProcessingOptions,
        findings: _Findings,
    ) -> None:
        max_length = _limit(options.max_content_length, self._policy.max_content_length)
        if len(content) > max_length:
            findings.add(
                FindingCode.CONTENT_TOO_LARGE,
                f"Content exceeds maximum length of {max_length} characters",
            )

        max_words = _limit(options.max_word_count, self._policy.max_word_count)
        if word_count > max_words:
            findings.add(
                FindingCode.CONTENT_TOO_LARGE,
                f"Content exceeds maximum word count of {max_words} words",
            )

    def _check_dangerous_patterns(self, content: str, findings: _Findings) -> None:
        for pattern in self._policy.dangerous_patterns:
            if not pattern.regex.search(content):
                continue
            if is_blocking(pattern.severity, findings.strict_mode):
                message = f"Content contains potentially dangerous pattern: {pattern.label}"
            else:
                message = (
                    "Content contains potentially dangerous pattern that will be sanitized: "
                    f"{pattern.label}"
                )
            findings.add(FindingCode.SECURITY_ERROR, message, pattern.severity)

    def _check_links(
        self,
        content: str,
        options: ProcessingOptions,
        findings: _Findings,
    ) -> tuple[int, list[str]]:
        links = find_links(content)

        max_links = _limit(options.max_link_count, self._policy.max_link_count)
        if len(links) > max_links:
            findings.add(
                FindingCode.INVALID_LINK,
                f"Content contains {len(links)} links, maximum allowed is {max_links}",
            )

        external = 0
        suspicious: list[str] = []
        for link in links:
            info = classify_url(link.target)
            if info.malformed:
                findings.add(
                    FindingCode.INVALID_LINK,
                    f"Invalid URL format: {info.url}",
                    Severity.WARNING,
                )
                continue

            violation = self._policy.link_violation(info, options)
            if violation:
                findings.add(
                    FindingCode.INVALID_LINK,
                    f"Link contains disallowed protocol: {violation}",
                )
                continue

            if self._policy.is_external(info):
                external += 1
            if self._policy.is_suspicious_host(info.host) and info.host not in suspicious:
                suspicious.append(info.host)

        return external, suspicious

    def _check_images(
        self,
        content: str,
        options: ProcessingOptions,
        findings: _Findings,
    ) -> list[int]:
        images = find_images(content)

        max_images = _limit(options.max_image_count, self._policy.max_image_count)
        if len(images) > max_images:
            findings.add(
                FindingCode.INVALID_IMAGE,
                f"Content contains {len(images)} images, maximum allowed is {max_images}",
            )

        data_image_sizes: list[int] = []
        for image in images:
            info = classify_url(image.target)
            if info.malformed:
                findings.add(
                    FindingCode.INVALID_IMAGE,
                    f"Invalid image URL format: {info.url}",
                    Severity.WARNING,
                )
                continue

            violation = self._policy.image_violation(info)
            if violation:
                findings.add(
                    FindingCode.INVALID_IMAGE,
                    f"Image contains disallowed protocol: {violation}",
                )
            elif info.scheme == "data":
                data_image_sizes.append(len(info.url))

        return data_image_sizes

    def _check_structure(self, content: str, findings: _Findings) -> None:
        policy = self._policy

        if content.count("[") != content.count("]"):
            findings.add(FindingCode.UNBALANCED_BRACKETS, "Content has unbalanced square brackets")

        if content.count("(") != content.count(")"):
            findings.add(FindingCode.UNBALANCED_PARENTHESES, "Content has unbalanced parentheses")

        long_lines = sum(1 for line in content.split("\n") if len(line) > policy.max_line_length)
        if long_lines:
            findings.add(
                FindingCode.LONG_LINES,
                f"Content has {long_lines} lines longer than {policy.max_line_length} characters",
            )

        depth = max_list_depth(content)
        if depth > policy.max_nesting_depth:
            findings.add(
                FindingCode.DEEP_NESTING,
                f"Content has deeply nested lists (depth: {depth})",
            )

        cells = largest_table_cells(content)
        if cells > policy.max_table_cells:
            findings.add(
                FindingCode.LARGE_TABLE,
                f"Content has a large table ({cells} cells) which may affect performance",
            )

    def _data_url_message(self, sizes: list[int]) -> str:
        message = f"Content contains {len(sizes)} embedded data URL image(s)"
        if max(sizes) > self._policy.max_data_url_length:
            message += "; large embedded image detected (>750KB)"
        return message
