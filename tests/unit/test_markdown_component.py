"""
Tests for the markdown component entry points (E4.3).

Covers the run_* functions and the run() dispatcher with and without a
rules port.
"""

from __future__ import annotations

import pytest

from src.components.markdown import (
    ExtractOutput,
    ExtractPlainTextInput,
    MetricsInput,
    MetricsOutput,
    ProcessingOptions,
    RenderMarkdownInput,
    RenderOutput,
    SanitizeMarkdownInput,
    SanitizeOutput,
    ValidateMarkdownInput,
    ValidateOutput,
    run,
    run_extract,
    run_metrics,
    run_render,
    run_sanitize,
    run_validate,
)
from src.rules.models import MarkdownLimits, MarkdownRules


class StubRules:
    """RulesPort returning a fixed markdown section."""

    def __init__(self, markdown: MarkdownRules) -> None:
        self._markdown = markdown

    def get_markdown_rules(self) -> MarkdownRules:
        return self._markdown


@pytest.fixture
def tight_rules() -> StubRules:
    return StubRules(
        MarkdownRules(
            allowed_protocols=["https"],
            allowed_html_tags=["p", "em"],
            strict_html_tags=["em"],
            limits=MarkdownLimits(max_link_count=1, reading_speed_wpm=10),
        )
    )


class TestRunValidate:
    def test_default_policy(self) -> None:
        out = run_validate(ValidateMarkdownInput(content="# Hello"))

        assert isinstance(out, ValidateOutput)
        assert out.success is True
        assert out.result.is_valid

    def test_rules_port_limits(self, tight_rules: StubRules) -> None:
        out = run_validate(ValidateMarkdownInput(content="[a](/a) [b](/b)"), rules=tight_rules)
        assert out.result.is_valid is False

    def test_rules_port_protocols(self, tight_rules: StubRules) -> None:
        out = run_validate(
            ValidateMarkdownInput(content="[m](mailto:a@example.com)"), rules=tight_rules
        )
        assert "Link contains disallowed protocol: mailto:" in out.result.errors


class TestRunSanitize:
    def test_reports_change(self) -> None:
        out = run_sanitize(SanitizeMarkdownInput(content="a <script>x</script>b"))

        assert isinstance(out, SanitizeOutput)
        assert out.content == "a b"
        assert out.changed is True

    def test_unchanged(self) -> None:
        out = run_sanitize(SanitizeMarkdownInput(content="plain"))
        assert out.changed is False

    def test_invalid_input(self) -> None:
        out = run_sanitize(SanitizeMarkdownInput(content=None))

        assert out.content == ""
        assert out.changed is False

    def test_rules_port_tags(self, tight_rules: StubRules) -> None:
        out = run_sanitize(
            SanitizeMarkdownInput(content="<p><em>x</em><u>y</u></p>"), rules=tight_rules
        )
        assert out.content == "<p><em>x</em>y</p>"


class TestRunExtractAndMetrics:
    def test_extract(self) -> None:
        out = run_extract(ExtractPlainTextInput(content="## Sub *title*"))

        assert isinstance(out, ExtractOutput)
        assert out.text == "Sub title"

    def test_metrics(self) -> None:
        out = run_metrics(MetricsInput(content=" ".join(["word"] * 600)))

        assert isinstance(out, MetricsOutput)
        assert out.word_count == 600
        assert out.estimated_reading_time == 3

    def test_metrics_use_rules_speed(self, tight_rules: StubRules) -> None:
        out = run_metrics(MetricsInput(content=" ".join(["word"] * 25)), rules=tight_rules)
        assert out.estimated_reading_time == 3


class TestRunRender:
    def test_render(self) -> None:
        out = run_render(RenderMarkdownInput(content="**hi**"))

        assert isinstance(out, RenderOutput)
        assert "<strong>hi</strong>" in out.html
        assert out.sanitized is True
        assert out.degraded is False

    def test_render_unsanitized(self) -> None:
        options = ProcessingOptions(sanitize_html=False)
        out = run_render(RenderMarkdownInput(content="<div>x</div>", options=options))

        assert "<div>x</div>" in out.html
        assert out.sanitized is False
        assert out.degraded is False


class TestRunDispatch:
    @pytest.mark.parametrize(
        "inp,output_type",
        [
            (ValidateMarkdownInput(content="x"), ValidateOutput),
            (SanitizeMarkdownInput(content="x"), SanitizeOutput),
            (ExtractPlainTextInput(content="x"), ExtractOutput),
            (MetricsInput(content="x"), MetricsOutput),
            (RenderMarkdownInput(content="x"), RenderOutput),
        ],
    )
    def test_dispatches_by_type(self, inp, output_type) -> None:
        assert isinstance(run(inp), output_type)

    def test_unknown_input(self) -> None:
        with pytest.raises(ValueError, match="Unknown input type"):
            run("not an input")  # type: ignore[arg-type]
