"""
Markdown component input/output models.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any

# --- Finding Codes ---


class FindingCode(str, Enum):
    """Stable codes a consuming UI keys off of."""

    VALIDATION_ERROR = "MARKDOWN_VALIDATION_ERROR"
    CONTENT_TOO_LARGE = "MARKDOWN_CONTENT_TOO_LARGE"
    SECURITY_ERROR = "MARKDOWN_SECURITY_ERROR"
    INVALID_LINK = "INVALID_LINK"
    INVALID_IMAGE = "INVALID_IMAGE"
    UNBALANCED_BRACKETS = "UNBALANCED_BRACKETS"
    UNBALANCED_PARENTHESES = "UNBALANCED_PARENTHESES"
    LONG_LINES = "LONG_LINES"
    DEEP_NESTING = "DEEP_NESTING"
    LARGE_TABLE = "LARGE_TABLE"
    EXTERNAL_LINKS = "EXTERNAL_LINKS"
    DATA_URLS = "DATA_URLS"
    SUSPICIOUS_DOMAIN = "SUSPICIOUS_DOMAIN"


class Severity(str, Enum):
    """How a finding is reported."""

    ERROR_ALWAYS = "error"
    ERROR_IN_STRICT = "error_in_strict"
    WARNING = "warning"


# --- Options ---

# camelCase keys accepted from UI-shaped option mappings
_OPTION_ALIASES: dict[str, str] = {
    "strictMode": "strict_mode",
    "sanitizeHtml": "sanitize_html",
    "allowExternalLinks": "allow_external_links",
    "maxContentLength": "max_content_length",
    "maxWordCount": "max_word_count",
    "maxLinkCount": "max_link_count",
    "maxImageCount": "max_image_count",
    "allowedHtmlTags": "allowed_html_tags",
}


@dataclass(frozen=True)
class ProcessingOptions:
    """
    Per-call processing options.

    Limit overrides left as None fall back to the policy.
    """

    strict_mode: bool = False
    sanitize_html: bool = True
    allow_external_links: bool = False
    max_content_length: int | None = None
    max_word_count: int | None = None
    max_link_count: int | None = None
    max_image_count: int | None = None
    allowed_html_tags: frozenset[str] | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ProcessingOptions:
        """
        Build options from a mapping with snake_case or camelCase keys.

        Raises TypeError for unknown keys or wrongly typed values.
        """
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in known:
                raise TypeError(f"Unknown processing option: {key!r}")
            kwargs[name] = value

        for name in ("strict_mode", "sanitize_html", "allow_external_links"):
            if name in kwargs and not isinstance(kwargs[name], bool):
                raise TypeError(f"Option {name!r} must be a bool")

        for name in ("max_content_length", "max_word_count", "max_link_count", "max_image_count"):
            value = kwargs.get(name)
            if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
                raise TypeError(f"Option {name!r} must be an int")

        tags = kwargs.get("allowed_html_tags")
        if tags is not None:
            if isinstance(tags, str):
                raise TypeError("Option 'allowed_html_tags' must be a collection of tag names")
            kwargs["allowed_html_tags"] = frozenset(str(t).lower() for t in tags)

        return cls(**kwargs)

    @classmethod
    def coerce(cls, options: ProcessingOptions | Mapping[str, Any] | None) -> ProcessingOptions:
        """Normalize the accepted option shapes into a ProcessingOptions."""
        if options is None:
            return DEFAULT_OPTIONS
        if isinstance(options, ProcessingOptions):
            return options
        if isinstance(options, Mapping):
            return cls.from_mapping(options)
        raise TypeError(
            f"options must be ProcessingOptions or a mapping, got {type(options).__name__}"
        )


DEFAULT_OPTIONS = ProcessingOptions()


# --- Validation Result ---


@dataclass(frozen=True)
class ContentFinding:
    """A single coded validation finding."""

    code: str
    message: str
    severity: Severity


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of one validation pass.

    errors block saving; warnings are shown but never block.
    is_valid is derived from errors, so the two can not disagree.
    """

    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    word_count: int = 0
    estimated_reading_time: int = 1
    findings: tuple[ContentFinding, ...] = ()

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase dictionary the UI consumes."""
        return {
            "isValid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "wordCount": self.word_count,
            "estimatedReadingTime": self.estimated_reading_time,
        }


# --- Component Input Models ---


@dataclass(frozen=True)
class ValidateMarkdownInput:
    """Input for validating markdown content."""

    content: Any
    options: ProcessingOptions = field(default_factory=ProcessingOptions)


@dataclass(frozen=True)
class SanitizeMarkdownInput:
    """Input for sanitizing markdown content."""

    content: Any
    options: ProcessingOptions = field(default_factory=ProcessingOptions)


@dataclass(frozen=True)
class ExtractPlainTextInput:
    """Input for extracting a plain-text projection."""

    content: Any


@dataclass(frozen=True)
class MetricsInput:
    """Input for word count and reading time."""

    content: Any


@dataclass(frozen=True)
class RenderMarkdownInput:
    """Input for rendering markdown to HTML."""

    content: Any
    options: ProcessingOptions = field(default_factory=ProcessingOptions)


# --- Component Output Models ---


@dataclass(frozen=True)
class ValidateOutput:
    """Output for validation result."""

    result: ValidationResult
    success: bool = True


@dataclass(frozen=True)
class SanitizeOutput:
    """Output for sanitized markdown."""

    content: str
    changed: bool = False
    success: bool = True


@dataclass(frozen=True)
class ExtractOutput:
    """Output for plain text."""

    text: str
    success: bool = True


@dataclass(frozen=True)
class MetricsOutput:
    """Output for content metrics."""

    word_count: int
    estimated_reading_time: int
    success: bool = True


@dataclass(frozen=True)
class RenderOutput:
    """Output for rendered HTML."""

    html: str
    sanitized: bool = True
    degraded: bool = False
    success: bool = True


@dataclass(frozen=True)
class PreparedContent:
    """Validated and sanitized content ready to be stored."""

    content: str
    sanitized_content: str
    word_count: int
    estimated_reading_time: int
    warnings: tuple[str, ...] = ()

    @property
    def was_sanitized(self) -> bool:
        return self.sanitized_content != self.content
