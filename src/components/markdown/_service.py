"""
MarkdownProcessingService (E4.3) - Public markdown pipeline facade.

Test assertions:
- TA-0100: Facade entry points degrade instead of raising on bad content
- TA-0112: Storage gate raises coded errors for rejected content

Key behaviors:
- validate_content is a coroutine for API uniformity; it never suspends
- render_to_html sanitizes the markdown before rendering unless
  sanitize_html is turned off
- prepare_for_storage raises for rejected content; rendering and sanitizing
  raise only when the underlying library fails
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from ._policy import DEFAULT_POLICY, PatternPolicy
from ._render import HtmlRenderer
from ._sanitizer import ContentSanitizer
from ._text import calculate_word_count, estimate_reading_time, extract_plain_text
from ._validator import INPUT_GUARD_MESSAGE, ContentValidator
from .errors import (
    MarkdownContentTooLargeError,
    MarkdownSanitizationError,
    MarkdownSecurityError,
    MarkdownValidationError,
)
from .models import (
    FindingCode,
    PreparedContent,
    ProcessingOptions,
    Severity,
    ValidationResult,
)
from .ports import HtmlSanitizerPort

logger = logging.getLogger(__name__)

OptionsLike = ProcessingOptions | Mapping[str, Any] | None

# Warning codes that count as security violations in strict mode
SECURITY_WARNING_CODES = frozenset(
    [FindingCode.SECURITY_ERROR.value, FindingCode.SUSPICIOUS_DOMAIN.value]
)


class MarkdownProcessingService:
    """
    Markdown processing service (E4.3).

    The only surface UI and request code depends on.
    """

    def __init__(
        self,
        policy: PatternPolicy | None = None,
        html_sanitizer: HtmlSanitizerPort | None = None,
    ) -> None:
        """Initialize with optional policy and HTML sanitizer."""
        self._policy = policy or DEFAULT_POLICY
        self._validator = ContentValidator(self._policy)
        self._sanitizer = ContentSanitizer(self._policy)
        self._renderer = HtmlRenderer(self._policy, html_sanitizer)

    @property
    def policy(self) -> PatternPolicy:
        """Get policy."""
        return self._policy

    @property
    def render_degraded(self) -> bool:
        """True when rendering runs without an HTML sanitizer."""
        return self._renderer.degraded

    # --- Public Surface ---

    def validate(self, content: Any, options: OptionsLike = None) -> ValidationResult:
        """Synchronous validation."""
        return self._validator.validate(content, ProcessingOptions.coerce(options))

    async def validate_content(self, content: Any, options: OptionsLike = None) -> ValidationResult:
        """Validate content; resolves immediately."""
        return self.validate(content, options)

    def sanitize_content(self, content: Any, options: OptionsLike = None) -> str:
        """Return content with unsafe constructs removed."""
        opts = ProcessingOptions.coerce(options)
        if not isinstance(content, str):
            return ""
        return self._sanitize(content, opts)

    def extract_plain_text(self, content: Any) -> str:
        """Plain-text projection for search and snippets."""
        return extract_plain_text(content)

    def calculate_word_count(self, content: Any) -> int:
        return calculate_word_count(content)

    def estimate_reading_time(self, content: Any) -> int:
        return estimate_reading_time(content, self._policy.reading_speed_wpm)

    def render_to_html(self, content: Any, options: OptionsLike = None) -> str:
        """Render content to HTML, sanitizing first unless sanitize_html is off."""
        opts = ProcessingOptions.coerce(options)
        if not isinstance(content, str) or not content.strip():
            return ""
        if opts.sanitize_html:
            content = self._sanitize(content, opts)
        return self._renderer.render(content, opts)

    def _sanitize(self, content: str, opts: ProcessingOptions) -> str:
        try:
            return self._sanitizer.sanitize(content, opts)
        except Exception as e:
            logger.exception("Sanitizing markdown content failed")
            raise MarkdownSanitizationError(
                "Failed to sanitize markdown content",
                original_content=content,
                details={"content_length": len(content), "error": str(e)},
            ) from e

    # --- Storage Gate ---

    def prepare_for_storage(self, content: Any, options: OptionsLike = None) -> PreparedContent:
        """
        Validate and sanitize content before it is stored.

        Raises:
            MarkdownContentTooLargeError: content longer than the limit.
            MarkdownValidationError: content has blocking errors.
            MarkdownSecurityError: strict mode and security warnings remain.
            MarkdownSanitizationError: the sanitizer itself failed.
        """
        opts = ProcessingOptions.coerce(options)

        if not isinstance(content, str) or not content.strip():
            raise MarkdownValidationError(
                "Markdown content validation failed", [INPUT_GUARD_MESSAGE]
            )

        max_length = opts.max_content_length
        if max_length is None:
            max_length = self._policy.max_content_length
        if len(content) > max_length:
            raise MarkdownContentTooLargeError(len(content), max_length)

        result = self._validator.validate(content, opts)
        if not result.is_valid:
            raise MarkdownValidationError(
                "Markdown content validation failed",
                list(result.errors),
                list(result.warnings),
                {"content_length": len(content)},
            )

        violations = [
            f.message
            for f in result.findings
            if f.code in SECURITY_WARNING_CODES and f.severity is Severity.WARNING
        ]
        if violations and opts.strict_mode:
            raise MarkdownSecurityError(
                "Content contains security violations",
                violations,
                {"strict_mode": True},
            )

        sanitized = self._sanitize(content, opts)
        prepared = PreparedContent(
            content=content,
            sanitized_content=sanitized,
            word_count=result.word_count,
            estimated_reading_time=result.estimated_reading_time,
            warnings=result.warnings,
        )
        logger.info(
            "Markdown content validated: %d chars, %d words, %d warnings, sanitized=%s",
            len(content),
            prepared.word_count,
            len(prepared.warnings),
            prepared.was_sanitized,
        )
        return prepared

    def prepare_fields(
        self,
        values: Mapping[str, Any],
        field_options: Mapping[str, OptionsLike] | None = None,
        options: OptionsLike = None,
    ) -> dict[str, PreparedContent]:
        """
        Run the storage gate over several named markdown fields.

        Fields that are missing or not strings are skipped. Errors carry the
        offending field name in their details.
        """
        field_options = field_options or {}
        prepared: dict[str, PreparedContent] = {}

        for name, value in values.items():
            if not isinstance(value, str) or not value:
                continue
            opts = ProcessingOptions.coerce(field_options.get(name, options))
            try:
                prepared[name] = self.prepare_for_storage(value, opts)
            except MarkdownValidationError as e:
                raise MarkdownValidationError(
                    f"Validation failed for field '{name}'",
                    e.errors,
                    e.warnings,
                    {**e.details, "field": name},
                ) from e

        return prepared


# --- Factory ---


def create_markdown_processing_service(
    policy: PatternPolicy | None = None,
    html_sanitizer: HtmlSanitizerPort | None = None,
) -> MarkdownProcessingService:
    """Create a MarkdownProcessingService with optional configuration."""
    return MarkdownProcessingService(policy=policy, html_sanitizer=html_sanitizer)
