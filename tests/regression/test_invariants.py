import asyncio
import re
import time

import pytest

from src.components.markdown import INPUT_GUARD_MESSAGE, FindingCode, ProcessingOptions

SAMPLES = [
    None,
    "",
    "# Clean\n\nJust words.",
    '<script>alert("xss")</script>',
    "[x](javascript:alert(1))",
    "![y](data:text/html;base64,AAAA)",
    "<<script>script>alert(1)<</script>/script>",
    "Unbalanced [ and (",
    "[ext](https://example.com) [short](https://bit.ly/x)",
    "<div onclick=steal()>click</div>",
]


# --- R1: Validity ---
@pytest.mark.parametrize("content", SAMPLES)
@pytest.mark.parametrize("strict_mode", [False, True])
def test_R1_valid_iff_no_errors(markdown_service, content, strict_mode):
    """R1: is_valid is exactly 'no errors', in every mode."""
    result = asyncio.run(
        markdown_service.validate_content(content, ProcessingOptions(strict_mode=strict_mode))
    )
    assert result.is_valid == (len(result.errors) == 0)
    assert result.estimated_reading_time >= 1


# --- R2: Degradation ---
def test_R2_invalid_input_degrades(markdown_service):
    """R2: Bad input never raises from the facade."""
    result = markdown_service.validate(None)
    assert result.to_dict() == {
        "isValid": False,
        "errors": [INPUT_GUARD_MESSAGE],
        "warnings": [],
        "wordCount": 0,
        "estimatedReadingTime": 1,
    }
    assert markdown_service.sanitize_content(None) == ""
    assert markdown_service.extract_plain_text(None) == ""
    assert markdown_service.calculate_word_count(None) == 0
    assert markdown_service.estimate_reading_time(None) == 1


# --- R3: Sanitization ---
@pytest.mark.parametrize("content", [s for s in SAMPLES if s])
@pytest.mark.parametrize("strict_mode", [False, True])
def test_R3_sanitized_output_is_safe_and_stable(markdown_service, content, strict_mode):
    """R3: Sanitized output holds nothing unsafe and a second pass is a no-op."""
    options = ProcessingOptions(strict_mode=strict_mode)
    once = markdown_service.sanitize_content(content, options)

    assert not re.search(r"<script", once, re.IGNORECASE)
    assert not re.search(r"javascript\s*:", once, re.IGNORECASE)
    assert markdown_service.sanitize_content(once, options) == once

    # Whatever the validator still flags in sanitized output is never a protocol error
    result = markdown_service.validate(once, options)
    assert not any("disallowed protocol" in e for e in result.errors)


# --- R4: Severity ---
def test_R4_dangerous_pattern_severity(markdown_service):
    """R4: Dangerous patterns warn in normal mode and block in strict mode."""
    content = '<script>alert("xss")</script>'

    normal = markdown_service.validate(content)
    strict = markdown_service.validate(content, {"strictMode": True})

    assert normal.is_valid
    assert any("dangerous pattern" in w for w in normal.warnings)
    assert not strict.is_valid
    assert any("dangerous pattern" in e for e in strict.errors)


def test_R4_protocol_errors_ignore_mode(markdown_service):
    """R4: Disallowed protocols block in every mode."""
    for strict_mode in (False, True):
        result = markdown_service.validate(
            "[x](javascript:alert(1))", ProcessingOptions(strict_mode=strict_mode)
        )
        assert not result.is_valid
        assert FindingCode.INVALID_LINK.value in [f.code for f in result.findings]


# --- R5: Rendering ---
def test_R5_rendered_html_is_safe(markdown_service):
    """R5: Rendered HTML carries no script or javascript: href."""
    html = markdown_service.render_to_html(
        '<script>alert(1)</script>\n\n<a href="javascript:alert(2)">a</a> [b](javascript:x)'
    )
    assert "<script" not in html
    assert "javascript:" not in html


# --- R6: Linear Time ---
# Each input sits just under the default 1,000,000 character limit and made
# a backtracking scan run for minutes.
LARGE_INPUTS = {
    "script_tags": "<script>" * 125_000,
    "unclosed_comments": "<!-- " * 200_000,
    "unclosed_tags": "<a " * 333_000,
    "open_brackets": "[" * 1_000_000,
    "open_link_targets": "[a](" * 250_000,
    "open_image_labels": "![" * 500_000,
    "open_autolinks": "<http:" * 166_000,
    "blank_line": " " * 999_999 + "x",
    "nested_script": "<scr" * 20_000 + "<script>" + "ipt>" * 20_000,
    "nested_signature": "java" * 20_000 + "javascript:" + "script:" * 20_000,
    "nested_tags": "<d" * 30_000 + "<x-y>" + "iv>" * 30_000,
}
TIME_LIMIT = 5.0


def _elapsed(func, *args):
    start = time.perf_counter()
    func(*args)
    return time.perf_counter() - start


@pytest.mark.parametrize("name", sorted(LARGE_INPUTS))
@pytest.mark.parametrize("strict_mode", [False, True])
def test_R6_large_input_runs_in_linear_time(markdown_service, name, strict_mode):
    """R6: Validation and sanitization stay fast on adversarial input."""
    content = LARGE_INPUTS[name]
    options = ProcessingOptions(strict_mode=strict_mode)
    assert len(content) <= 1_000_000

    assert _elapsed(markdown_service.validate, content, options) < TIME_LIMIT
    assert _elapsed(markdown_service.sanitize_content, content, options) < TIME_LIMIT
    assert _elapsed(markdown_service.extract_plain_text, content) < TIME_LIMIT


def test_R6_nested_fragments_fully_removed(markdown_service):
    """R6: One scan removes every nesting level."""
    strict = ProcessingOptions(strict_mode=True)

    assert markdown_service.sanitize_content(LARGE_INPUTS["nested_script"]) == ""
    assert markdown_service.sanitize_content(LARGE_INPUTS["nested_tags"], strict) == ""
    assert markdown_service.sanitize_content(LARGE_INPUTS["nested_signature"]) == ""
