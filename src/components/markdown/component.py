"""
Markdown component - Validation, sanitization and rendering of user markdown.

Test assertions: TA-0100 .. TA-0113

Takes untrusted markdown (HR documents, comments, reports) and produces a
validation verdict, a sanitized variant, metrics and HTML.

Invariants:
- I1: is_valid iff there are no errors
- I2: Dangerous patterns block in strict mode, warn otherwise
- I3: Sanitized output holds no <script, javascript: or disallowed scheme
- I4: Sanitizing twice equals sanitizing once
- I5: Reading time is never below one minute
- I6: Scanning cost grows linearly with content length
"""

from __future__ import annotations

from ._policy import DEFAULT_POLICY, PatternPolicy, policy_from_rules
from ._service import MarkdownProcessingService
from ._text import calculate_word_count, estimate_reading_time, extract_plain_text
from .models import (
    ExtractOutput,
    ExtractPlainTextInput,
    MetricsInput,
    MetricsOutput,
    RenderMarkdownInput,
    RenderOutput,
    SanitizeMarkdownInput,
    SanitizeOutput,
    ValidateMarkdownInput,
    ValidateOutput,
)
from .ports import HtmlSanitizerPort, RulesPort


def _build_policy(rules: RulesPort | None) -> PatternPolicy:
    """Build markdown policy from rules port."""
    if rules is None:
        return DEFAULT_POLICY
    return policy_from_rules(rules.get_markdown_rules())


def _service(
    rules: RulesPort | None,
    html_sanitizer: HtmlSanitizerPort | None = None,
) -> MarkdownProcessingService:
    return MarkdownProcessingService(_build_policy(rules), html_sanitizer)


# --- Component Entry Points ---


def run_validate(
    inp: ValidateMarkdownInput,
    *,
    rules: RulesPort | None = None,
) -> ValidateOutput:
    """
    Validate markdown content (TA-0103).

    Args:
        inp: Input containing the content and options.
        rules: Optional rules port for configuration.

    Returns:
        ValidateOutput with the validation result.
    """
    result = _service(rules).validate(inp.content, inp.options)
    return ValidateOutput(result=result, success=True)


def run_sanitize(
    inp: SanitizeMarkdownInput,
    *,
    rules: RulesPort | None = None,
) -> SanitizeOutput:
    """
    Sanitize markdown content (TA-0108).

    Strips dangerous patterns, disallowed link/image URLs and HTML tags
    outside the allow-list.
    """
    sanitized = _service(rules).sanitize_content(inp.content, inp.options)
    return SanitizeOutput(
        content=sanitized,
        changed=isinstance(inp.content, str) and sanitized != inp.content,
        success=True,
    )


def run_extract(inp: ExtractPlainTextInput) -> ExtractOutput:
    """Extract the plain-text projection (TA-0106)."""
    return ExtractOutput(text=extract_plain_text(inp.content))


def run_metrics(
    inp: MetricsInput,
    *,
    rules: RulesPort | None = None,
) -> MetricsOutput:
    """Word count and reading time (TA-0107)."""
    policy = _build_policy(rules)
    return MetricsOutput(
        word_count=calculate_word_count(inp.content),
        estimated_reading_time=estimate_reading_time(inp.content, policy.reading_speed_wpm),
    )


def run_render(
    inp: RenderMarkdownInput,
    *,
    rules: RulesPort | None = None,
    html_sanitizer: HtmlSanitizerPort | None = None,
) -> RenderOutput:
    """
    Render markdown to HTML (TA-0110).

    Args:
        inp: Input containing the content and options.
        rules: Optional rules port for configuration.
        html_sanitizer: Optional HTML sanitizer; bleach when omitted.

    Returns:
        RenderOutput with the HTML and whether it ran in degraded mode.
    """
    service = _service(rules, html_sanitizer)
    html = service.render_to_html(inp.content, inp.options)
    return RenderOutput(
        html=html,
        sanitized=inp.options.sanitize_html,
        degraded=inp.options.sanitize_html and service.render_degraded,
    )


def run(
    inp: ValidateMarkdownInput
    | SanitizeMarkdownInput
    | ExtractPlainTextInput
    | MetricsInput
    | RenderMarkdownInput,
    *,
    rules: RulesPort | None = None,
) -> ValidateOutput | SanitizeOutput | ExtractOutput | MetricsOutput | RenderOutput:
    """
    Main entry point for the markdown component.

    Dispatches to appropriate handler based on input type.
    """
    if isinstance(inp, ValidateMarkdownInput):
        return run_validate(inp, rules=rules)
    elif isinstance(inp, SanitizeMarkdownInput):
        return run_sanitize(inp, rules=rules)
    elif isinstance(inp, ExtractPlainTextInput):
        return run_extract(inp)
    elif isinstance(inp, MetricsInput):
        return run_metrics(inp, rules=rules)
    elif isinstance(inp, RenderMarkdownInput):
        return run_render(inp, rules=rules)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
