"""
Markdown component - Validation, sanitization and rendering of user markdown.
"""

from ._policy import (
    DEFAULT_POLICY,
    DangerousPattern,
    LinkRel,
    PatternPolicy,
    UrlInfo,
    classify_url,
    is_blocking,
    policy_from_rules,
)
from ._render import HtmlRenderer, html_sanitizer_available, load_html_sanitizer
from ._sanitizer import ContentSanitizer
from ._service import MarkdownProcessingService, create_markdown_processing_service
from ._text import (
    calculate_word_count,
    estimate_reading_time,
    extract_plain_text,
    reading_time_for,
)
from ._validator import INPUT_GUARD_MESSAGE, ContentValidator
from .component import (
    run,
    run_extract,
    run_metrics,
    run_render,
    run_sanitize,
    run_validate,
)
from .errors import (
    MarkdownContentTooLargeError,
    MarkdownError,
    MarkdownRenderingError,
    MarkdownSanitizationError,
    MarkdownSecurityError,
    MarkdownValidationError,
    error_payload,
    user_friendly_message,
)
from .models import (
    DEFAULT_OPTIONS,
    ContentFinding,
    ExtractOutput,
    ExtractPlainTextInput,
    FindingCode,
    MetricsInput,
    MetricsOutput,
    PreparedContent,
    ProcessingOptions,
    RenderMarkdownInput,
    RenderOutput,
    SanitizeMarkdownInput,
    SanitizeOutput,
    Severity,
    ValidateMarkdownInput,
    ValidateOutput,
    ValidationResult,
)
from .ports import HtmlSanitizerPort, RulesPort

__all__ = [
    # Entry points
    "run",
    "run_extract",
    "run_metrics",
    "run_render",
    "run_sanitize",
    "run_validate",
    # Input models
    "ExtractPlainTextInput",
    "MetricsInput",
    "RenderMarkdownInput",
    "SanitizeMarkdownInput",
    "ValidateMarkdownInput",
    # Output models
    "ExtractOutput",
    "MetricsOutput",
    "PreparedContent",
    "RenderOutput",
    "SanitizeOutput",
    "ValidateOutput",
    "ValidationResult",
    "ContentFinding",
    # Options and codes
    "DEFAULT_OPTIONS",
    "FindingCode",
    "ProcessingOptions",
    "Severity",
    # Ports
    "HtmlSanitizerPort",
    "RulesPort",
    # Policy
    "DEFAULT_POLICY",
    "DangerousPattern",
    "LinkRel",
    "PatternPolicy",
    "UrlInfo",
    "classify_url",
    "is_blocking",
    "policy_from_rules",
    # Pipeline pieces
    "ContentSanitizer",
    "ContentValidator",
    "HtmlRenderer",
    "INPUT_GUARD_MESSAGE",
    "calculate_word_count",
    "estimate_reading_time",
    "extract_plain_text",
    "html_sanitizer_available",
    "load_html_sanitizer",
    "reading_time_for",
    # Service
    "MarkdownProcessingService",
    "create_markdown_processing_service",
    # Errors
    "MarkdownContentTooLargeError",
    "MarkdownError",
    "MarkdownRenderingError",
    "MarkdownSanitizationError",
    "MarkdownSecurityError",
    "MarkdownValidationError",
    "error_payload",
    "user_friendly_message",
]
